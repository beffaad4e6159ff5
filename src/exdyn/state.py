"""Rotating state-slot indices.

Fields with a time history keep ``num_states`` slots. Each step the three
indices advance on a fixed schedule::

    previous = current
    current = next
    next = (next + 1) % num_states

starting from all zeros, so the first step sees ``previous == current == 0``
and ``next == 1``. Element kernels read ``previous`` and write ``current``;
node kernels read ``current`` and write ``next``.
"""
from attrs import define, field

from exdyn._utils import getype_validator


@define(frozen=True)
class StateIndices:
    """Slot indices in use during one step."""

    previous: int = field(default=0, validator=getype_validator(int, 0))
    current: int = field(default=0, validator=getype_validator(int, 0))
    next: int = field(default=0, validator=getype_validator(int, 0))


def initial_state_indices() -> StateIndices:
    """Indices before the first rotation."""
    return StateIndices(0, 0, 0)


def rotate(indices: StateIndices, num_states: int) -> StateIndices:
    """Advance ``indices`` by one step."""
    return StateIndices(
        previous=indices.current,
        current=indices.next,
        next=(indices.next + 1) % num_states,
    )


def state_indices(step: int, num_states: int) -> StateIndices:
    """Indices in use during zero-based ``step``.

    Equivalent to applying :func:`rotate` ``step + 1`` times to
    :func:`initial_state_indices`, without the loop.
    """
    if step < 0:
        raise ValueError(f"step must be non-negative, got {step}")
    current = step % num_states
    previous = (step - 1) % num_states if step > 0 else 0
    return StateIndices(
        previous=previous,
        current=current,
        next=(step + 1) % num_states,
    )
