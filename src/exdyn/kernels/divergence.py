"""Third kernel of the element chain: stress update and element forces.

Per element this applies the hypoelastic update to the forward-rotated
stress, adds bulk viscosity, updates the hourglass resistance, and evaluates
the nodal forces ``f_iI = -sigma_ij B_jI - Q_ia G_aI`` (``B`` the gradient
operator, ``G`` the hourglass operator). Forces are left per element in
``element_force``; :mod:`exdyn.kernels.finish_step` gathers them onto nodes.
It also leaves the characteristic length and dilatation rate of every
element for the stable time-step reduction.
"""
import math

import numpy as np
from numba import njit, prange

from exdyn.region import Region
from exdyn.status import DEGENERATE_ELEMENT, NONFINITE_STATE


@njit(parallel=True, cache=True)
def _divergence_kernel(
    elem_node_ids,
    velocity,
    current_state,
    previous_state,
    dt,
    density,
    lame_lambda,
    two_mu,
    dilatational_modulus,
    wave_speed,
    lin_bulk_visc,
    quad_bulk_visc,
    hg_stiffness,
    hg_viscosity,
    gradop,
    volume,
    hgop,
    vel_grad,
    rot_stress,
    stress,
    hg_resist,
    element_force,
    char_length,
    dilatation_rate,
    elem_status,
):
    n_elems = elem_node_ids.shape[0]
    for e in prange(n_elems):
        vol = volume[e]
        if (elem_status[e] & DEGENERATE_ELEMENT) != 0 or not vol > 0.0:
            elem_status[e] |= DEGENERATE_ELEMENT
            for i in range(3):
                for node in range(8):
                    element_force[e, i, node] = 0.0
        else:
            d = np.empty(6)
            sig = np.empty(6)
            q_hg = np.empty((3, 4))
            resist = np.empty((3, 4))
            f = np.empty((3, 8))

            d[0] = vel_grad[e, 0, 0]
            d[1] = vel_grad[e, 1, 1]
            d[2] = vel_grad[e, 2, 2]
            d[3] = 0.5 * (vel_grad[e, 0, 1] + vel_grad[e, 1, 0])
            d[4] = 0.5 * (vel_grad[e, 1, 2] + vel_grad[e, 2, 1])
            d[5] = 0.5 * (vel_grad[e, 2, 0] + vel_grad[e, 0, 2])
            trace_d = d[0] + d[1] + d[2]

            finite = True
            for k in range(6):
                s_new = rot_stress[e, k] + dt * two_mu * d[k]
                if k < 3:
                    s_new += dt * lame_lambda * trace_d
                stress[e, k, current_state] = s_new
                sig[k] = s_new
                if not math.isfinite(s_new):
                    finite = False

            sum_b2 = 0.0
            for i in range(3):
                for node in range(8):
                    sum_b2 += gradop[e, i, node] * gradop[e, i, node]
            length = vol / math.sqrt(2.0 * sum_b2)
            if not (length > 0.0 and math.isfinite(length)):
                finite = False
            char_length[e] = length
            dilatation_rate[e] = trace_d

            # bulk viscosity pressure, tension positive
            q_bulk = density * length * lin_bulk_visc * wave_speed * trace_d
            if trace_d < 0.0:
                q_bulk -= (
                    density * length * quad_bulk_visc * length
                    * trace_d * trace_d
                )
            for k in range(3):
                sig[k] += q_bulk

            for i in range(3):
                for a in range(4):
                    s = 0.0
                    for node in range(8):
                        s += (
                            velocity[elem_node_ids[e, node], i, current_state]
                            * hgop[e, a, node]
                        )
                    q_hg[i, a] = s

            stiff_factor = hg_stiffness * dilatational_modulus * sum_b2 / vol * dt
            visc_factor = (
                hg_viscosity * density * wave_speed * vol ** (2.0 / 3.0)
            )
            for i in range(3):
                for a in range(4):
                    q_stiff = (
                        hg_resist[e, i, a, previous_state]
                        + stiff_factor * q_hg[i, a]
                    )
                    hg_resist[e, i, a, current_state] = q_stiff
                    resist[i, a] = q_stiff + visc_factor * q_hg[i, a]

            for node in range(8):
                b0 = gradop[e, 0, node]
                b1 = gradop[e, 1, node]
                b2 = gradop[e, 2, node]
                f[0, node] = -(sig[0] * b0 + sig[3] * b1 + sig[5] * b2)
                f[1, node] = -(sig[3] * b0 + sig[1] * b1 + sig[4] * b2)
                f[2, node] = -(sig[5] * b0 + sig[4] * b1 + sig[2] * b2)
                for i in range(3):
                    for a in range(4):
                        f[i, node] -= resist[i, a] * hgop[e, a, node]

            for i in range(3):
                for node in range(8):
                    element_force[e, i, node] = f[i, node]
                    if not math.isfinite(f[i, node]):
                        finite = False

            if not finite:
                elem_status[e] |= NONFINITE_STATE


def divergence(
    region: Region, current_state: int, previous_state: int, dt: float = None
) -> None:
    """Stress update, damping and element nodal forces.

    Parameters
    ----------
    region
        Region with the outputs of the first two kernels for this step.
    current_state, previous_state
        Slot indices; ``stress`` and ``hg_resist`` are written at
        ``current_state`` from ``previous_state``.
    dt
        Time increment over which the rate of deformation acts. Defaults
        to ``region.delta_t[current_state]``.
    """
    if dt is None:
        dt = region.delta_t[current_state]
    material = region.material
    _divergence_kernel(
        region.elem_node_ids,
        region.velocity,
        current_state,
        previous_state,
        float(dt),
        material.density,
        material.lame_lambda,
        material.two_mu,
        material.dilatational_modulus,
        material.wave_speed,
        material.lin_bulk_visc,
        material.quad_bulk_visc,
        material.hg_stiffness,
        material.hg_viscosity,
        region.gradop,
        region.volume,
        region.hgop,
        region.vel_grad,
        region.rot_stress,
        region.stress,
        region.hg_resist,
        region.element_force,
        region.char_length,
        region.dilatation_rate,
        region.elem_status,
    )
