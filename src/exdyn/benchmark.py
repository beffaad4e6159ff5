"""Multi-size timing sweep of the explicit-dynamics driver.

For each ``i`` in ``[beg, end)`` the bar problem is run on a
``10 f x f x f`` mesh with ``f = int(cbrt(2 ** i))``, ``runs`` times, and
the best time of each phase is printed as one row of a comma-separated,
fixed-width table.
"""
import sys
from typing import List, Optional, TextIO, Tuple

import numpy as np

from exdyn.config import ExplicitDynamicsConfig
from exdyn.driver import PerformanceData, explicit_dynamics_app

COLUMN_WIDTH = 20
BENCHMARK_COPY_INTERVAL = 100

HEADER = (
    "Size",
    "Setup",
    "Initialize",
    "InternalForce",
    "StableTimeStep",
    "CentralDiff",
    "CopyToHost",
    "TimePerElement",
)
UNITS = ("elements",) + ("millisec",) * 6 + ("millisec/element",)


def mesh_extents(i: int) -> Tuple[int, int, int]:
    """Extents of the ``i``-th benchmark mesh."""
    factor = int(np.cbrt(float(1 << i)))
    return 10 * factor, factor, factor


def _label_row(labels) -> str:
    cells = [f'"{label}" , '.ljust(COLUMN_WIDTH) for label in labels[:-1]]
    cells.append(f'"{labels[-1]}"'.ljust(COLUMN_WIDTH))
    return "".join(cells)


def _value(value) -> str:
    if isinstance(value, (int, np.integer)):
        return str(int(value))
    return format(float(value), ".6g")


def format_header() -> str:
    """Column titles and units, two lines."""
    return _label_row(HEADER) + "\n" + _label_row(UNITS)


def format_row(num_elements: int, perf: PerformanceData) -> str:
    """One table row, times in milliseconds."""
    values = [
        num_elements,
        perf.mesh_time * 1000,
        perf.init_time * 1000,
        perf.internal_force_time * 1000,
        perf.minimum_stable_time_step * 1000,
        perf.central_diff * 1000,
        perf.copy_to_host_time * 1000,
    ]
    cells = [_value(v).ljust(COLUMN_WIDTH - 3) + " , " for v in values]
    cells.append(
        _value(perf.time_per_element(num_elements) * 1000).ljust(COLUMN_WIDTH)
    )
    return "".join(cells)


def driver(
    label: str,
    beg: int,
    end: int,
    runs: int,
    num_steps: Optional[int] = None,
    stream: Optional[TextIO] = None,
    config: Optional[ExplicitDynamicsConfig] = None,
    **kwargs,
) -> List[Tuple[int, PerformanceData]]:
    """Run the sweep and print the table.

    Parameters
    ----------
    label
        Text appended to the table title.
    beg, end
        Half-open range of size exponents.
    runs
        Repetitions per size; the best time of each phase is kept.
    num_steps
        Steps per run. Defaults to ``config.total_num_steps``.
    stream
        Destination of the table. Defaults to ``sys.stdout``.
    config
        Base run settings, used as given. When omitted, the defaults with a
        host copy every ``BENCHMARK_COPY_INTERVAL`` steps are used; a
        ``copy_interval`` in ``kwargs`` overrides either.
    **kwargs
        Overrides forwarded to :func:`~exdyn.driver.explicit_dynamics_app`.

    Returns
    -------
    list of (int, PerformanceData)
        Element count and best timings of each size.
    """
    if stream is None:
        stream = sys.stdout
    if runs < 1:
        raise ValueError(f"runs must be at least 1, got {runs}")
    if config is None:
        config = ExplicitDynamicsConfig(copy_interval=BENCHMARK_COPY_INTERVAL)
    if num_steps is not None:
        kwargs["total_num_steps"] = num_steps

    print(file=stream)
    print(f'"MiniExplicitDynamics with exdyn {label}"', file=stream)
    print(format_header(), file=stream)

    rows = []
    for i in range(beg, end):
        ix, iy, iz = mesh_extents(i)
        n = ix * iy * iz
        best = None
        for _ in range(runs):
            perf = PerformanceData()
            explicit_dynamics_app(ix, iy, iz, perf, config=config, **kwargs)
            if best is None:
                best = perf
            else:
                best.best(perf)
        print(format_row(n, best), file=stream)
        stream.flush()
        rows.append((n, best))
    return rows
