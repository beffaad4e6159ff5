"""Structured hexahedral box mesh.

Nodes sit on the integer lattice ``0..ex x 0..ey x 0..ez`` and are numbered
x-fastest, then y, then z; elements are numbered the same way. Element
corners follow the usual hexahedron convention: the four corners of the
``z = iz`` face counter-clockwise from the origin corner, then the four
corners of the ``z = iz + 1`` face in the same order.

Besides connectivity the mesh carries a node-to-element gather index in
compressed-row form, which lets node kernels sum element contributions
without concurrent writes.
"""
import numbers

import numpy as np
from attrs import define, field

from exdyn._utils import get_readonly_view
from exdyn.errors import ConfigurationError

NODES_PER_ELEMENT = 8

# (dx, dy, dz) lattice offsets of the eight element corners.
CORNER_OFFSETS = np.array(
    [
        [0, 0, 0],
        [1, 0, 0],
        [1, 1, 0],
        [0, 1, 0],
        [0, 0, 1],
        [1, 0, 1],
        [1, 1, 1],
        [0, 1, 1],
    ],
    dtype=np.int64,
)


@define(frozen=True, eq=False)
class BoxMesh:
    """Topology and reference coordinates of a structured box mesh.

    Attributes
    ----------
    extents
        Number of elements along x, y and z.
    model_coords
        ``(num_nodes, 3)`` reference node coordinates.
    elem_node_ids
        ``(num_elements, 8)`` element-to-node connectivity.
    node_elem_offset
        ``(num_nodes + 1,)`` row offsets into ``node_elem_ids``.
    node_elem_ids
        ``(num_elements * 8, 2)`` ``(element, local corner)`` pairs grouped
        by node, ascending element order within each node.
    """

    extents: tuple = field()
    model_coords: np.ndarray = field(converter=get_readonly_view)
    elem_node_ids: np.ndarray = field(converter=get_readonly_view)
    node_elem_offset: np.ndarray = field(converter=get_readonly_view)
    node_elem_ids: np.ndarray = field(converter=get_readonly_view)

    @property
    def num_nodes(self) -> int:
        return self.model_coords.shape[0]

    @property
    def num_elements(self) -> int:
        return self.elem_node_ids.shape[0]

    def node_id(self, ix: int, iy: int, iz: int) -> int:
        """Index of the node at lattice position ``(ix, iy, iz)``."""
        ex, ey, _ = self.extents
        return ix + (ex + 1) * (iy + (ey + 1) * iz)

    def element_id(self, ix: int, iy: int, iz: int) -> int:
        """Index of the element whose origin corner is ``(ix, iy, iz)``."""
        ex, ey, _ = self.extents
        return ix + ex * (iy + ey * iz)


def validate_extents(ex, ey, ez) -> tuple:
    """Return ``(ex, ey, ez)`` as ints, or raise for unusable extents.

    Raises
    ------
    ConfigurationError
        If any extent is not an integer or is smaller than one.
    """
    extents = (ex, ey, ez)
    for axis, value in zip("xyz", extents):
        if isinstance(value, bool) or not isinstance(value, numbers.Integral):
            raise ConfigurationError(
                f"Mesh extent along {axis} must be an integer, got {value!r}"
            )
        if value < 1:
            raise ConfigurationError(
                f"Mesh extent along {axis} must be at least 1 element, "
                f"got {value}"
            )
    return tuple(int(v) for v in extents)


def box_mesh(ex, ey, ez) -> BoxMesh:
    """Build a box mesh with ``ex * ey * ez`` unit hexahedra.

    Parameters
    ----------
    ex, ey, ez
        Number of elements along each axis, each at least 1.

    Returns
    -------
    BoxMesh
        Read-only mesh arrays.
    """
    ex, ey, ez = validate_extents(ex, ey, ez)
    nx, ny, nz = ex + 1, ey + 1, ez + 1

    iz, iy, ix = np.meshgrid(
        np.arange(nz), np.arange(ny), np.arange(nx), indexing="ij"
    )
    model_coords = np.column_stack(
        (ix.ravel(), iy.ravel(), iz.ravel())
    ).astype(np.float64)

    ez_, ey_, ex_ = np.meshgrid(
        np.arange(ez), np.arange(ey), np.arange(ex), indexing="ij"
    )
    origins = np.column_stack((ex_.ravel(), ey_.ravel(), ez_.ravel()))
    corners = origins[:, None, :] + CORNER_OFFSETS[None, :, :]
    elem_node_ids = (
        corners[..., 0] + nx * (corners[..., 1] + ny * corners[..., 2])
    ).astype(np.int64)

    num_nodes = nx * ny * nz
    flat_nodes = elem_node_ids.ravel()
    order = np.argsort(flat_nodes, kind="stable")
    node_elem_ids = np.column_stack(
        (order // NODES_PER_ELEMENT, order % NODES_PER_ELEMENT)
    ).astype(np.int64)
    counts = np.bincount(flat_nodes, minlength=num_nodes)
    node_elem_offset = np.zeros(num_nodes + 1, dtype=np.int64)
    np.cumsum(counts, out=node_elem_offset[1:])

    return BoxMesh(
        extents=(ex, ey, ez),
        model_coords=model_coords,
        elem_node_ids=elem_node_ids,
        node_elem_offset=node_elem_offset,
        node_elem_ids=node_elem_ids,
    )
