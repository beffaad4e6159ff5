"""Exceptions raised by the explicit-dynamics engine."""
from typing import Optional, Sequence


class ExplicitDynamicsError(RuntimeError):
    """Base class for failures of an explicit-dynamics run."""
    pass


class ConfigurationError(ExplicitDynamicsError, ValueError):
    """Raised when a problem cannot be set up as requested.

    Covers invalid mesh extents, non-physical parameters and meshes that
    produce zero or negative element volume or nodal mass.
    """
    pass


class StabilityError(ExplicitDynamicsError):
    """Raised when the simulation can no longer continue safely.

    Parameters
    ----------
    message
        Human-readable diagnostic.
    phase
        Name of the kernel that detected the failure.
    step
        Zero-based step index, or ``None`` outside the stepping loop.
    entities
        Indices of the offending elements or nodes.
    """

    def __init__(
        self,
        message: str,
        phase: Optional[str] = None,
        step: Optional[int] = None,
        entities: Sequence[int] = (),
    ) -> None:
        super().__init__(message)
        self.phase = phase
        self.step = step
        self.entities = tuple(int(e) for e in entities)
