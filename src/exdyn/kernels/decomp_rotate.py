"""Second kernel of the element chain: polar decomposition and rotation.

The deformation gradient from :mod:`exdyn.kernels.grad_hgop` is split into
``F = V R``. The stress of the previous slot is then carried forward by the
incremental rotation ``dR = R_current R_previous^T`` so that the constitutive
update in :mod:`exdyn.kernels.divergence` starts from a stress expressed in
the current orientation.
"""
import numpy as np
from numba import njit, prange

from exdyn.kernels.hex_geometry import (
    matmul3_bt,
    matrix_to_sym,
    polar_decomposition,
    rotate_symmetric,
)
from exdyn.region import Region
from exdyn.status import DEGENERATE_ELEMENT, POLAR_FALLBACK


@njit(parallel=True, cache=True)
def _decomp_rotate_kernel(
    deform_grad,
    current_state,
    previous_state,
    max_iterations,
    tolerance,
    rotation,
    stretch,
    stress,
    rot_stress,
    elem_status,
):
    n_elems = deform_grad.shape[0]
    for e in prange(n_elems):
        if (elem_status[e] & DEGENERATE_ELEMENT) == 0:
            F = np.empty((3, 3))
            R = np.empty((3, 3))
            R_prev = np.empty((3, 3))
            dR = np.empty((3, 3))
            V = np.empty((3, 3))
            s_prev = np.empty(6)
            s_rot = np.empty(6)
            v_sym = np.empty(6)
            for i in range(3):
                for j in range(3):
                    F[i, j] = deform_grad[e, i, j]
                    R_prev[i, j] = rotation[e, i, j, previous_state]
            for k in range(6):
                s_prev[k] = stress[e, k, previous_state]

            converged, _ = polar_decomposition(
                F, R, max_iterations, tolerance
            )
            if converged:
                matmul3_bt(R, R_prev, dR)
                rotate_symmetric(dR, s_prev, s_rot)
            else:
                # hold the previous orientation; stress is carried unrotated
                elem_status[e] |= POLAR_FALLBACK
                for i in range(3):
                    for j in range(3):
                        R[i, j] = R_prev[i, j]
                for k in range(6):
                    s_rot[k] = s_prev[k]

            matmul3_bt(F, R, V)
            matrix_to_sym(V, v_sym)

            for i in range(3):
                for j in range(3):
                    rotation[e, i, j, current_state] = R[i, j]
            for k in range(6):
                stretch[e, k] = v_sym[k]
                rot_stress[e, k] = s_rot[k]


def decomp_rotate(
    region: Region,
    current_state: int,
    previous_state: int,
    max_iterations: int = 25,
    tolerance: float = 1.0e-12,
) -> None:
    """Polar decomposition of every element and forward rotation of stress.

    Writes ``rotation[..., current_state]``, ``stretch`` and ``rot_stress``
    from ``rotation`` and ``stress`` at ``previous_state``. Elements whose
    decomposition does not converge within ``max_iterations`` (or whose
    deformation gradient has a non-positive determinant) keep the rotation
    of ``previous_state``, carry the stress forward unrotated and are flagged
    ``POLAR_FALLBACK``. Elements already flagged
    ``DEGENERATE_ELEMENT`` are skipped.
    """
    _decomp_rotate_kernel(
        region.deform_grad,
        current_state,
        previous_state,
        int(max_iterations),
        float(tolerance),
        region.rotation,
        region.stretch,
        region.stress,
        region.rot_stress,
        region.elem_status,
    )
