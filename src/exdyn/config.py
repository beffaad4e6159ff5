"""Run settings for the explicit-dynamics engine.

Two attrs containers hold everything a run needs besides the mesh extents:
:class:`MaterialParameters` (element block and material constants, read-only
once a :class:`~exdyn.region.Region` is built) and
:class:`ExplicitDynamicsConfig` (time integration and instrumentation
settings). Defaults reproduce the reference benchmark problem: an elastic bar
with no bulk or hourglass damping and a face velocity of 1.0e3 along x.
"""
from typing import Tuple
from warnings import warn

import numpy as np
from attrs import define, evolve, field, validators

from exdyn._utils import (
    PrecisionDType,
    getype_validator,
    gttype_validator,
    in_attr,
    inrangetype_validator,
    precision_converter,
    precision_validator,
)

valid_float = validators.instance_of(float)


def _gravity_converter(value) -> Tuple[float, float, float]:
    gravity = tuple(float(g) for g in value)
    if len(gravity) != 3:
        raise ValueError(f"gravity must have 3 components, got {value!r}")
    return gravity


@define(frozen=True)
class MaterialParameters:
    """Element block and linear elastic material constants.

    Attributes
    ----------
    lin_bulk_visc, quad_bulk_visc
        Linear and quadratic bulk viscosity coefficients.
    hg_stiffness, hg_viscosity
        Hourglass stiffness and viscosity coefficients.
    youngs_modulus
        Young's modulus.
    poissons_ratio
        Poisson ratio, strictly between -1 and 0.5.
    density
        Mass density.
    gravity
        Body acceleration applied to every node.
    """

    lin_bulk_visc: float = field(
        default=0.0, converter=float, validator=getype_validator(float, 0.0)
    )
    quad_bulk_visc: float = field(
        default=0.0, converter=float, validator=getype_validator(float, 0.0)
    )
    hg_stiffness: float = field(
        default=0.0, converter=float, validator=getype_validator(float, 0.0)
    )
    hg_viscosity: float = field(
        default=0.0, converter=float, validator=getype_validator(float, 0.0)
    )
    youngs_modulus: float = field(
        default=1.0e6, converter=float, validator=gttype_validator(float, 0.0)
    )
    poissons_ratio: float = field(
        default=0.0,
        converter=float,
        validator=inrangetype_validator(float, -1.0, 0.5),
    )
    density: float = field(
        default=8.0e-4, converter=float, validator=gttype_validator(float, 0.0)
    )
    gravity: Tuple[float, float, float] = field(
        default=(0.0, 0.0, 0.0), converter=_gravity_converter
    )

    @property
    def shear_modulus(self) -> float:
        """Lame's second parameter, ``mu``."""
        return self.youngs_modulus / (2.0 * (1.0 + self.poissons_ratio))

    @property
    def two_mu(self) -> float:
        return 2.0 * self.shear_modulus

    @property
    def lame_lambda(self) -> float:
        """Lame's first parameter."""
        nu = self.poissons_ratio
        return self.youngs_modulus * nu / ((1.0 + nu) * (1.0 - 2.0 * nu))

    @property
    def bulk_modulus(self) -> float:
        return self.lame_lambda + self.two_mu / 3.0

    @property
    def dilatational_modulus(self) -> float:
        """P-wave modulus, ``lambda + 2 mu``."""
        return self.lame_lambda + self.two_mu

    @property
    def wave_speed(self) -> float:
        """Dilatational wave speed used by the stable time-step estimate."""
        return float(np.sqrt(self.dilatational_modulus / self.density))


@define
class ExplicitDynamicsConfig:
    """Time integration and instrumentation settings for one run.

    Attributes
    ----------
    num_states
        Number of time slots in each rotating field (at least 2).
    user_dt
        Upper bound on the time step; the stable step is used when smaller.
    total_num_steps
        Number of time steps to take.
    initial_velocity
        Velocity assigned to the nodes on the loaded plane.
    initial_velocity_component
        Axis of the loaded plane and of the assigned velocity (0, 1 or 2).
    initial_velocity_plane
        Model coordinate identifying the loaded plane.
    copy_interval
        Copy diagnostic fields to the host mirror every ``copy_interval``
        steps. 0 disables copying.
    max_polar_iterations
        Iteration budget of the polar decomposition.
    polar_tolerance
        Relative convergence tolerance of the polar decomposition.
    precision
        Floating point type of every field buffer.
    material
        Element block and material constants.
    """

    num_states: int = field(default=2, validator=getype_validator(int, 2))
    user_dt: float = field(
        default=1.0e-5, converter=float, validator=gttype_validator(float, 0.0)
    )
    total_num_steps: int = field(
        default=10000, validator=getype_validator(int, 0)
    )
    initial_velocity: float = field(
        default=1.0e3, converter=float, validator=valid_float
    )
    initial_velocity_component: int = field(
        default=0, validator=validators.in_((0, 1, 2))
    )
    initial_velocity_plane: float = field(
        default=0.0, converter=float, validator=valid_float
    )
    copy_interval: int = field(default=0, validator=getype_validator(int, 0))
    max_polar_iterations: int = field(
        default=25, validator=getype_validator(int, 1)
    )
    polar_tolerance: float = field(
        default=1.0e-12,
        converter=float,
        validator=gttype_validator(float, 0.0),
    )
    precision: PrecisionDType = field(
        default=np.float64,
        converter=precision_converter,
        validator=precision_validator,
    )
    material: MaterialParameters = field(
        factory=MaterialParameters,
        validator=validators.instance_of(MaterialParameters),
    )

    @classmethod
    def from_kwargs(cls, base=None, **kwargs) -> "ExplicitDynamicsConfig":
        """Build a config, routing keyword arguments to it or its material.

        Parameters
        ----------
        base
            Config to start from. Defaults to a fresh default config.
        **kwargs
            Any field of :class:`ExplicitDynamicsConfig` or
            :class:`MaterialParameters`.

        Returns
        -------
        ExplicitDynamicsConfig
            A new config; ``base`` is not modified.

        Warns
        -----
        UserWarning
            For keys that match neither container. They are ignored.
        """
        if base is None:
            base = cls()
        config_updates = {}
        material_updates = {}
        for key, value in kwargs.items():
            if in_attr(key, base) and key != "material":
                config_updates[key] = value
            elif in_attr(key, base.material):
                material_updates[key] = value
            elif key == "material":
                config_updates[key] = value
            else:
                warn(
                    f"The parameter {key} was not found in the run "
                    f"configuration or material parameters and was ignored.",
                    UserWarning,
                )

        material = config_updates.pop("material", base.material)
        if material_updates:
            material = evolve(material, **material_updates)
        return evolve(base, material=material, **config_updates)
