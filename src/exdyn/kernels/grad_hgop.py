"""First kernel of the element chain.

Combines three per-element computations that share the gathered nodal data:
the gradient operator (at the current and mid-step configurations), the
velocity and deformation gradients, and the hourglass operator.
"""
import math

import numpy as np
from numba import njit, prange

from exdyn.kernels.hex_geometry import gradient_operator, hourglass_operator
from exdyn.region import Region
from exdyn.status import DEGENERATE_ELEMENT


@njit(parallel=True, cache=True)
def _grad_hgop_kernel(
    model_coords,
    elem_node_ids,
    displacement,
    velocity,
    current_state,
    previous_state,
    reference_gradop,
    reference_volume,
    gradop,
    volume,
    hgop,
    vel_grad,
    deform_grad,
    elem_status,
):
    n_elems = elem_node_ids.shape[0]
    for e in prange(n_elems):
        x = np.empty((8, 3))
        x_mid = np.empty((8, 3))
        u = np.empty((8, 3))
        v = np.empty((8, 3))
        grad = np.empty((3, 8))
        grad_mid = np.empty((3, 8))
        hg = np.empty((4, 8))
        for node in range(8):
            nid = elem_node_ids[e, node]
            for i in range(3):
                u_cur = displacement[nid, i, current_state]
                u_prev = displacement[nid, i, previous_state]
                u[node, i] = u_cur
                v[node, i] = velocity[nid, i, current_state]
                x[node, i] = model_coords[nid, i] + u_cur
                x_mid[node, i] = model_coords[nid, i] + 0.5 * (u_prev + u_cur)

        vol = gradient_operator(x, grad)
        vol_mid = gradient_operator(x_mid, grad_mid)
        volume[e] = vol
        for i in range(3):
            for node in range(8):
                gradop[e, i, node] = grad[i, node]

        if not (vol > 0.0 and vol_mid > 0.0
                and math.isfinite(vol) and math.isfinite(vol_mid)):
            elem_status[e] |= DEGENERATE_ELEMENT
        else:
            inv_mid = 1.0 / vol_mid
            inv_ref = 1.0 / reference_volume[e]
            for i in range(3):
                for j in range(3):
                    lsum = 0.0
                    fsum = 0.0
                    for node in range(8):
                        lsum += v[node, i] * grad_mid[j, node]
                        fsum += u[node, i] * reference_gradop[e, j, node]
                    vel_grad[e, i, j] = lsum * inv_mid
                    deform_grad[e, i, j] = (
                        fsum * inv_ref + (1.0 if i == j else 0.0)
                    )

            hourglass_operator(x, grad, vol, hg)
            for a in range(4):
                for node in range(8):
                    hgop[e, a, node] = hg[a, node]


def grad_hgop(region: Region, current_state: int, previous_state: int) -> None:
    """Gradient, velocity gradient and hourglass operators of every element.

    Reads nodal displacement at ``current_state`` and ``previous_state`` and
    velocity at ``current_state``. Elements whose current or mid-step volume
    is not positive are flagged ``DEGENERATE_ELEMENT``.
    """
    _grad_hgop_kernel(
        region.model_coords,
        region.elem_node_ids,
        region.displacement,
        region.velocity,
        current_state,
        previous_state,
        region.reference_gradop,
        region.reference_volume,
        region.gradop,
        region.volume,
        region.hgop,
        region.vel_grad,
        region.deform_grad,
        region.elem_status,
    )
