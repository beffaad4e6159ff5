"""Per-entity status codes written by the parallel kernels.

Kernels cannot raise from inside a ``prange`` loop, so every element and node
owns a status word that the kernels OR flags into. The driver inspects the
words after each kernel and turns fatal flags into a
:class:`~exdyn.errors.StabilityError` and non-fatal flags into warnings.
"""
from enum import IntFlag
from warnings import warn

import numpy as np

from exdyn.errors import StabilityError


class StatusCode(IntFlag):
    """Bit flags describing the state of one element or node."""

    OK = 0
    DEGENERATE_ELEMENT = 1
    POLAR_FALLBACK = 2
    NONFINITE_STATE = 4
    ZERO_MASS = 8


# Plain integers for use inside compiled kernels.
DEGENERATE_ELEMENT = int(StatusCode.DEGENERATE_ELEMENT)
POLAR_FALLBACK = int(StatusCode.POLAR_FALLBACK)
NONFINITE_STATE = int(StatusCode.NONFINITE_STATE)
ZERO_MASS = int(StatusCode.ZERO_MASS)

FATAL_MASK = DEGENERATE_ELEMENT | NONFINITE_STATE | ZERO_MASS

_MAX_REPORTED = 10


def describe(code: int) -> str:
    """Return a readable list of the flags set in ``code``."""
    flags = [flag.name for flag in StatusCode
             if flag.value and (int(code) & flag.value)]
    return "|".join(flags) if flags else "OK"


def check_status(
    status: np.ndarray,
    phase: str,
    step=None,
    entity_kind: str = "element",
    report_fallbacks: bool = True,
) -> int:
    """Raise on fatal flags and warn on polar-decomposition fallbacks.

    Parameters
    ----------
    status
        Status words, one per entity.
    phase
        Name of the kernel that produced ``status``, used in diagnostics.
    step
        Zero-based step index, or ``None`` during initialization.
    entity_kind
        ``"element"`` or ``"node"``.
    report_fallbacks
        Warn about and count ``POLAR_FALLBACK`` flags. Later kernels of
        the same step pass ``False`` so each fallback is reported once.

    Returns
    -------
    int
        Number of entities that kept their previous rotation.

    Raises
    ------
    StabilityError
        If any entity carries a fatal flag.
    """
    fatal = np.flatnonzero(status & FATAL_MASK)
    where = "during initialization" if step is None else f"at step {step}"
    if fatal.size:
        first = fatal[:_MAX_REPORTED]
        details = ", ".join(
            f"{entity_kind} {idx} ({describe(status[idx])})" for idx in first
        )
        more = "" if fatal.size <= _MAX_REPORTED else (
            f" and {fatal.size - _MAX_REPORTED} more"
        )
        raise StabilityError(
            f"Stability failure in {phase} {where}: {details}{more}. "
            f"The simulation cannot continue.",
            phase=phase,
            step=step,
            entities=fatal,
        )

    if not report_fallbacks:
        return 0
    fallbacks = int(np.count_nonzero(status & POLAR_FALLBACK))
    if fallbacks:
        warn(
            f"{fallbacks} {entity_kind}(s) fell back to an identity rotation "
            f"increment in {phase} {where}.",
            RuntimeWarning,
        )
    return fallbacks
