"""
Compiled per-element and per-node kernels of the explicit-dynamics step.

Each public function wraps a module-level ``numba.njit(parallel=True)``
kernel and takes the :class:`~exdyn.region.Region` plus the slot indices it
reads and writes. Per step the driver calls them in dependency order:

- :func:`grad_hgop`
- :func:`decomp_rotate`
- :func:`divergence`
- :func:`minimum_stable_time_step` and :func:`set_next_time_step`
- :func:`finish_step`

:func:`initialize_element` and :func:`initialize_node` run once before the
first step.
"""
from exdyn.kernels.initialize import initialize_element, initialize_node
from exdyn.kernels.grad_hgop import grad_hgop
from exdyn.kernels.decomp_rotate import decomp_rotate
from exdyn.kernels.divergence import divergence
from exdyn.kernels.time_step import (
    fold_minimum,
    minimum_stable_time_step,
    set_next_time_step,
)
from exdyn.kernels.finish_step import finish_step

__all__ = [
    "initialize_element",
    "initialize_node",
    "grad_hgop",
    "decomp_rotate",
    "divergence",
    "fold_minimum",
    "minimum_stable_time_step",
    "set_next_time_step",
    "finish_step",
]
