"""Stable time-step reduction.

Each element proposes the largest step it can take without violating its
Courant condition, reduced further by bulk viscosity. The proposals are
computed in parallel into ``elem_t_step`` and then folded to a single
minimum on the host. The minimum of a fixed set of floats is exact, so the
result does not depend on the traversal order or on the number of threads.
"""
import math

import numpy as np
from numba import njit, prange

from exdyn.errors import StabilityError
from exdyn.region import Region


@njit(parallel=True, cache=True)
def _element_time_step_kernel(
    char_length,
    dilatation_rate,
    wave_speed,
    lin_bulk_visc,
    quad_bulk_visc,
    elem_t_step,
):
    n_elems = char_length.shape[0]
    for e in prange(n_elems):
        length = char_length[e]
        if length > 0.0 and math.isfinite(length):
            compression = max(-dilatation_rate[e], 0.0)
            xi = lin_bulk_visc + quad_bulk_visc * length * compression / wave_speed
            elem_t_step[e] = (length / wave_speed) * (
                math.sqrt(1.0 + xi * xi) - xi
            )
        else:
            elem_t_step[e] = np.nan


def fold_minimum(values) -> float:
    """Minimum of ``values``; NaN if any value is NaN."""
    values = np.asarray(values)
    if values.size == 0:
        return math.inf
    return float(np.min(values))


def minimum_stable_time_step(region: Region, step=None) -> float:
    """Smallest stable time step over all elements.

    Parameters
    ----------
    region
        Region whose ``char_length`` and ``dilatation_rate`` were written by
        :func:`~exdyn.kernels.divergence.divergence` this step.
    step
        Zero-based step index, used in diagnostics only.

    Returns
    -------
    float
        The stable time step.

    Raises
    ------
    StabilityError
        If the minimum is not a finite positive number.
    """
    material = region.material
    _element_time_step_kernel(
        region.char_length,
        region.dilatation_rate,
        material.wave_speed,
        material.lin_bulk_visc,
        material.quad_bulk_visc,
        region.elem_t_step,
    )
    stable_dt = fold_minimum(region.elem_t_step)
    if not (math.isfinite(stable_dt) and stable_dt > 0.0):
        bad = np.flatnonzero(~(region.elem_t_step > 0.0))
        where = "" if step is None else f" at step {step}"
        raise StabilityError(
            f"Stable time step{where} is {stable_dt!r}; "
            f"{bad.size} element(s) gave no usable estimate.",
            phase="minimum_stable_time_step",
            step=step,
            entities=bad[:10],
        )
    return stable_dt


def set_next_time_step(
    region: Region, next_state: int, user_dt: float, stable_dt: float
) -> float:
    """Store ``min(user_dt, stable_dt)`` in ``delta_t[next_state]``."""
    dt = min(float(user_dt), float(stable_dt))
    region.delta_t[next_state] = dt
    return dt
