"""Field storage shared by every kernel of a run.

A :class:`Region` owns the mesh topology, the material constants and every
per-node and per-element buffer. Fields with a time history carry a trailing
slot axis of length ``num_states`` and are addressed as
``field[entity, component..., slot]``; the slot in use is chosen by the
rotating state indices threaded through the kernel calls (see
:mod:`exdyn.state`). The region performs no synchronization: each kernel only
writes the entities it owns and the slots it is allowed to write.

Symmetric tensors are stored as six components in the order
``xx, yy, zz, xy, yz, zx``.
"""
import numpy as np
from attrs import define, field

from exdyn._utils import PrecisionDType
from exdyn.config import MaterialParameters
from exdyn.errors import ConfigurationError
from exdyn.mesh import NODES_PER_ELEMENT, BoxMesh, box_mesh
from exdyn.state import StateIndices

# Symmetric tensor component indices.
XX, YY, ZZ, XY, YZ, ZX = range(6)
NUM_HOURGLASS_MODES = 4


@define(eq=False)
class Region:
    """Mesh, material and field buffers of one explicit-dynamics run.

    Build with :meth:`from_mesh` or :meth:`from_extents`; all buffers are
    allocated once and never resized.
    """

    mesh: BoxMesh
    material: MaterialParameters
    num_states: int
    precision: PrecisionDType

    # nodal fields
    displacement: np.ndarray
    velocity: np.ndarray
    acceleration: np.ndarray
    internal_force: np.ndarray
    nodal_mass: np.ndarray

    # element invariants
    elem_mass: np.ndarray
    reference_volume: np.ndarray
    reference_gradop: np.ndarray

    # element kernel workspace for the current step
    gradop: np.ndarray
    volume: np.ndarray
    hgop: np.ndarray
    vel_grad: np.ndarray
    deform_grad: np.ndarray
    stretch: np.ndarray
    rot_stress: np.ndarray
    element_force: np.ndarray
    char_length: np.ndarray
    dilatation_rate: np.ndarray
    elem_t_step: np.ndarray

    # element history
    rotation: np.ndarray
    stress: np.ndarray
    hg_resist: np.ndarray

    delta_t: np.ndarray
    elem_status: np.ndarray
    node_status: np.ndarray

    @classmethod
    def from_mesh(
        cls,
        mesh: BoxMesh,
        material: MaterialParameters = None,
        num_states: int = 2,
        precision: PrecisionDType = np.float64,
    ) -> "Region":
        """Allocate every buffer for ``mesh``.

        Parameters
        ----------
        mesh
            Topology and reference coordinates.
        material
            Material constants. Defaults to :class:`MaterialParameters()`.
        num_states
            Length of the slot axis of rotating fields.
        precision
            Floating point type of the field buffers.

        Returns
        -------
        Region
            Region with zeroed buffers; run the initialization kernels
            before stepping.
        """
        if material is None:
            material = MaterialParameters()
        if num_states < 2:
            raise ConfigurationError(
                f"num_states must be >= 2, got {num_states}"
            )
        precision = np.dtype(precision).type
        n_nodes = mesh.num_nodes
        n_elems = mesh.num_elements
        npe = NODES_PER_ELEMENT
        ns = num_states

        def zeros(*shape):
            return np.zeros(shape, dtype=precision)

        return cls(
            mesh=mesh,
            material=material,
            num_states=num_states,
            precision=precision,
            displacement=zeros(n_nodes, 3, ns),
            velocity=zeros(n_nodes, 3, ns),
            acceleration=zeros(n_nodes, 3),
            internal_force=zeros(n_nodes, 3),
            nodal_mass=zeros(n_nodes),
            elem_mass=zeros(n_elems),
            reference_volume=zeros(n_elems),
            reference_gradop=zeros(n_elems, 3, npe),
            gradop=zeros(n_elems, 3, npe),
            volume=zeros(n_elems),
            hgop=zeros(n_elems, NUM_HOURGLASS_MODES, npe),
            vel_grad=zeros(n_elems, 3, 3),
            deform_grad=zeros(n_elems, 3, 3),
            stretch=zeros(n_elems, 6),
            rot_stress=zeros(n_elems, 6),
            element_force=zeros(n_elems, 3, npe),
            char_length=zeros(n_elems),
            dilatation_rate=zeros(n_elems),
            elem_t_step=zeros(n_elems),
            rotation=zeros(n_elems, 3, 3, ns),
            stress=zeros(n_elems, 6, ns),
            hg_resist=zeros(n_elems, 3, NUM_HOURGLASS_MODES, ns),
            delta_t=np.zeros(ns, dtype=np.float64),
            elem_status=np.zeros(n_elems, dtype=np.int32),
            node_status=np.zeros(n_nodes, dtype=np.int32),
        )

    @classmethod
    def from_extents(
        cls,
        ex: int,
        ey: int,
        ez: int,
        material: MaterialParameters = None,
        num_states: int = 2,
        precision: PrecisionDType = np.float64,
    ) -> "Region":
        """Build a :func:`~exdyn.mesh.box_mesh` and allocate a region."""
        return cls.from_mesh(
            box_mesh(ex, ey, ez),
            material=material,
            num_states=num_states,
            precision=precision,
        )

    @property
    def num_nodes(self) -> int:
        return self.mesh.num_nodes

    @property
    def num_elements(self) -> int:
        return self.mesh.num_elements

    @property
    def model_coords(self) -> np.ndarray:
        return self.mesh.model_coords

    @property
    def elem_node_ids(self) -> np.ndarray:
        return self.mesh.elem_node_ids

    def clear_status(self) -> None:
        """Reset every element and node status word to OK."""
        self.elem_status[:] = 0
        self.node_status[:] = 0

    def apply_initial_velocity(
        self, component: int, value: float, plane_coordinate: float = 0.0
    ) -> np.ndarray:
        """Set a velocity on every node of a coordinate plane.

        The velocity is written to every slot so that it holds regardless of
        which slot the first step reads.

        Parameters
        ----------
        component
            Axis normal to the plane and direction of the velocity.
        value
            Velocity magnitude.
        plane_coordinate
            Model coordinate of the plane along ``component``.

        Returns
        -------
        np.ndarray
            Indices of the nodes that received the velocity.
        """
        nodes = np.flatnonzero(
            self.model_coords[:, component] == plane_coordinate
        )
        self.velocity[nodes, component, :] = value
        return nodes

    def total_momentum(self, state: int) -> np.ndarray:
        """Sum of nodal mass times velocity in slot ``state``."""
        return np.einsum(
            "n,ni->i",
            self.nodal_mass.astype(np.float64),
            self.velocity[:, :, state].astype(np.float64),
        )

    def stress_tensor(self, element: int, state: int) -> np.ndarray:
        """Full 3x3 stress of one element in slot ``state``."""
        s = self.stress[element, :, state]
        return np.array(
            [
                [s[XX], s[XY], s[ZX]],
                [s[XY], s[YY], s[YZ]],
                [s[ZX], s[YZ], s[ZZ]],
            ]
        )

    def host_mirror(self, step: int, indices: StateIndices) -> "HostMirror":
        """Fresh host copies of the diagnostic fields written during ``step``."""
        mirror = HostMirror()
        mirror.update_from(self, step, indices)
        return mirror


@define(eq=False)
class HostMirror:
    """Host-side copies of the diagnostic fields.

    Updated by the driver every ``copy_interval`` steps; each update is a pure
    read of the region taken after the node update of that step.
    """

    acceleration: np.ndarray = field(default=None)
    velocity: np.ndarray = field(default=None)
    displacement: np.ndarray = field(default=None)
    internal_force: np.ndarray = field(default=None)
    stress: np.ndarray = field(default=None)
    step: int = field(default=-1)
    copies: int = field(default=0)

    def update_from(
        self, region: Region, step: int, indices: StateIndices
    ) -> None:
        """Copy the nodal fields at ``indices.next`` and the stress at
        ``indices.current``, the slots written during ``step``."""
        self.acceleration = region.acceleration.copy()
        self.velocity = region.velocity[:, :, indices.next].copy()
        self.displacement = region.displacement[:, :, indices.next].copy()
        self.internal_force = region.internal_force.copy()
        self.stress = region.stress[:, :, indices.current].copy()
        self.step = step
        self.copies += 1
