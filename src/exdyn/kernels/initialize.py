"""One-time element and node setup run before the first step."""
import numpy as np
from numba import njit, prange

from exdyn.errors import ConfigurationError
from exdyn.kernels.hex_geometry import gradient_operator
from exdyn.mesh import NODES_PER_ELEMENT
from exdyn.region import Region
from exdyn.status import DEGENERATE_ELEMENT


@njit(parallel=True, cache=True)
def _initialize_element_kernel(
    model_coords,
    elem_node_ids,
    density,
    reference_gradop,
    reference_volume,
    elem_mass,
    rotation,
    stress,
    hg_resist,
    elem_status,
):
    n_elems = elem_node_ids.shape[0]
    n_states = rotation.shape[3]
    for e in prange(n_elems):
        x = np.empty((8, 3))
        grad = np.empty((3, 8))
        for node in range(8):
            nid = elem_node_ids[e, node]
            for i in range(3):
                x[node, i] = model_coords[nid, i]
        volume = gradient_operator(x, grad)
        if not volume > 0.0:
            elem_status[e] |= DEGENERATE_ELEMENT
        for i in range(3):
            for node in range(8):
                reference_gradop[e, i, node] = grad[i, node]
        reference_volume[e] = volume
        elem_mass[e] = density * volume

        for s in range(n_states):
            for i in range(3):
                for j in range(3):
                    rotation[e, i, j, s] = 1.0 if i == j else 0.0
            for k in range(6):
                stress[e, k, s] = 0.0
            for i in range(3):
                for a in range(4):
                    hg_resist[e, i, a, s] = 0.0


@njit(parallel=True, cache=True)
def _initialize_node_kernel(
    node_elem_offset,
    node_elem_ids,
    elem_mass,
    nodal_mass,
    displacement,
    velocity,
    acceleration,
    internal_force,
):
    n_nodes = nodal_mass.shape[0]
    n_states = displacement.shape[2]
    for n in prange(n_nodes):
        mass = 0.0
        for k in range(node_elem_offset[n], node_elem_offset[n + 1]):
            mass += elem_mass[node_elem_ids[k, 0]] / NODES_PER_ELEMENT
        nodal_mass[n] = mass
        for i in range(3):
            acceleration[n, i] = 0.0
            internal_force[n, i] = 0.0
            for s in range(n_states):
                displacement[n, i, s] = 0.0
                velocity[n, i, s] = 0.0


def initialize_element(region: Region) -> None:
    """Reference geometry, lumped element mass and zeroed element history.

    Raises
    ------
    ConfigurationError
        If any element has a non-positive reference volume.
    """
    region.elem_status[:] = 0
    _initialize_element_kernel(
        region.model_coords,
        region.elem_node_ids,
        float(region.material.density),
        region.reference_gradop,
        region.reference_volume,
        region.elem_mass,
        region.rotation,
        region.stress,
        region.hg_resist,
        region.elem_status,
    )
    bad = np.flatnonzero(region.elem_status & DEGENERATE_ELEMENT)
    if bad.size:
        raise ConfigurationError(
            f"{bad.size} element(s) have a non-positive reference volume "
            f"(first: {bad[:10].tolist()})"
        )


def initialize_node(region: Region) -> None:
    """Gather nodal mass from adjacent elements and zero the nodal state.

    Also zeroes every ``delta_t`` slot so the first central-difference update
    takes a half step.

    Raises
    ------
    ConfigurationError
        If any node ends up with zero (or non-finite) mass.
    """
    _initialize_node_kernel(
        region.mesh.node_elem_offset,
        region.mesh.node_elem_ids,
        region.elem_mass,
        region.nodal_mass,
        region.displacement,
        region.velocity,
        region.acceleration,
        region.internal_force,
    )
    region.delta_t[:] = 0.0
    bad = np.flatnonzero(~(region.nodal_mass > 0.0))
    if bad.size:
        raise ConfigurationError(
            f"{bad.size} node(s) have zero nodal mass "
            f"(first: {bad[:10].tolist()})"
        )
