"""Node update: force assembly and central-difference integration."""
import math

import numpy as np
from numba import njit, prange

from exdyn.region import Region
from exdyn.status import NONFINITE_STATE, ZERO_MASS


@njit(parallel=True, cache=True)
def _finish_step_kernel(
    node_elem_offset,
    node_elem_ids,
    element_force,
    nodal_mass,
    gravity,
    dt_current,
    dt_next,
    current_state,
    next_state,
    internal_force,
    acceleration,
    velocity,
    displacement,
    node_status,
):
    n_nodes = nodal_mass.shape[0]
    dt_avg = 0.5 * (dt_current + dt_next)
    for n in prange(n_nodes):
        f0 = 0.0
        f1 = 0.0
        f2 = 0.0
        for k in range(node_elem_offset[n], node_elem_offset[n + 1]):
            e = node_elem_ids[k, 0]
            corner = node_elem_ids[k, 1]
            f0 += element_force[e, 0, corner]
            f1 += element_force[e, 1, corner]
            f2 += element_force[e, 2, corner]
        internal_force[n, 0] = f0
        internal_force[n, 1] = f1
        internal_force[n, 2] = f2

        mass = nodal_mass[n]
        if not (mass > 0.0 and math.isfinite(mass)):
            node_status[n] |= ZERO_MASS
        else:
            inv_mass = 1.0 / mass
            finite = True
            for i in range(3):
                a = internal_force[n, i] * inv_mass + gravity[i]
                acceleration[n, i] = a
                v_new = velocity[n, i, current_state] + dt_avg * a
                u_new = displacement[n, i, current_state] + dt_next * v_new
                velocity[n, i, next_state] = v_new
                displacement[n, i, next_state] = u_new
                if not (math.isfinite(v_new) and math.isfinite(u_new)):
                    finite = False
            if not finite:
                node_status[n] |= NONFINITE_STATE


def finish_step(region: Region, current_state: int, next_state: int) -> None:
    """Assemble nodal forces and advance velocity and displacement.

    Uses the average of ``delta_t[current_state]`` and ``delta_t[next_state]``
    for the velocity update and ``delta_t[next_state]`` for the displacement
    update, writing both at ``next_state``. Nodes without positive mass are
    flagged ``ZERO_MASS`` and left untouched.
    """
    _finish_step_kernel(
        region.mesh.node_elem_offset,
        region.mesh.node_elem_ids,
        region.element_force,
        region.nodal_mass,
        np.asarray(region.material.gravity, dtype=np.float64),
        float(region.delta_t[current_state]),
        float(region.delta_t[next_state]),
        current_state,
        next_state,
        region.internal_force,
        region.acceleration,
        region.velocity,
        region.displacement,
        region.node_status,
    )
