"""Time-stepping driver.

:func:`run_simulation` builds the mesh and region, runs the initialization
kernels, applies the initial velocity and then advances the requested number
of steps. Every step rotates the state slots, runs the element kernel chain,
reduces the stable time step and updates the nodes. Each phase is timed with
a :class:`~exdyn.time_logger.TimeLogger` and the per-run totals are returned
as a :class:`PerformanceData` record.

:func:`explicit_dynamics_app` is the benchmark-facing entry point: it fills a
caller-owned :class:`PerformanceData` and returns a result code.
"""
from enum import Enum
from typing import Callable, Dict, Optional

from attrs import define, field, fields

from exdyn._utils import getype_validator
from exdyn.config import ExplicitDynamicsConfig
from exdyn.kernels import (
    decomp_rotate,
    divergence,
    finish_step,
    grad_hgop,
    initialize_element,
    initialize_node,
    minimum_stable_time_step,
    set_next_time_step,
)
from exdyn.mesh import box_mesh, validate_extents
from exdyn.region import HostMirror, Region
from exdyn.state import StateIndices, initial_state_indices, rotate
from exdyn.status import check_status
from exdyn.time_logger import TimeLogger


class SimulationPhase(Enum):
    """Lifecycle of a single run."""

    INITIALIZING = "initializing"
    STEPPING = "stepping"
    DONE = "done"


# PerformanceData field fed by each timed event.
PHASE_EVENTS = {
    "mesh_time": "mesh",
    "init_time": "initialize",
    "internal_force_time": "internal_force",
    "minimum_stable_time_step": "stable_time_step",
    "central_diff": "central_diff",
    "copy_to_host_time": "copy_to_host",
}

_time_field = dict(
    default=0.0, converter=float, validator=getype_validator(float, 0.0)
)


@define
class PerformanceData:
    """Wall-clock seconds spent in each phase of one run.

    Attributes
    ----------
    mesh_time
        Mesh construction and buffer allocation.
    init_time
        Initialization kernels and initial conditions.
    internal_force_time
        Element kernel chain, summed over steps.
    minimum_stable_time_step
        Stable time-step reduction, summed over steps.
    central_diff
        Node update, summed over steps.
    copy_to_host_time
        Host mirror copies, summed over steps.
    """

    mesh_time: float = field(**_time_field)
    init_time: float = field(**_time_field)
    internal_force_time: float = field(**_time_field)
    minimum_stable_time_step: float = field(**_time_field)
    central_diff: float = field(**_time_field)
    copy_to_host_time: float = field(**_time_field)

    @classmethod
    def from_durations(cls, durations: Dict[str, float]) -> "PerformanceData":
        """Build a record from totals keyed by event name."""
        return cls(**{
            name: durations.get(event, 0.0)
            for name, event in PHASE_EVENTS.items()
        })

    def best(self, other: "PerformanceData") -> "PerformanceData":
        """Keep the smaller of each time from ``other``, in place."""
        for attribute in fields(type(self)):
            mine = getattr(self, attribute.name)
            theirs = getattr(other, attribute.name)
            if theirs < mine:
                setattr(self, attribute.name, theirs)
        return self

    def assign(self, other: "PerformanceData") -> None:
        """Overwrite every time with the values of ``other``."""
        for attribute in fields(type(self)):
            setattr(self, attribute.name, getattr(other, attribute.name))

    @property
    def step_time(self) -> float:
        """Time spent in the kernels that run every step."""
        return (
            self.internal_force_time
            + self.minimum_stable_time_step
            + self.central_diff
        )

    def time_per_element(self, num_elements: int) -> float:
        """Per-step kernel time divided by ``num_elements``."""
        return self.step_time / num_elements


@define(eq=False)
class SimulationResult:
    """Final state and timings of a completed run.

    Attributes
    ----------
    region
        Region holding the final fields.
    performance
        Phase timings of this run.
    num_steps
        Steps taken.
    final_time
        Sum of the time increments applied.
    final_indices
        Slot indices of the last step; the newest nodal state is at
        ``final_indices.next``.
    polar_fallbacks
        Element-steps that kept their previous rotation.
    host_mirror
        Diagnostic copies, if mirroring was enabled.
    phase
        Lifecycle phase reached.
    """

    region: Region
    performance: PerformanceData
    num_steps: int = 0
    final_time: float = 0.0
    final_indices: StateIndices = field(factory=initial_state_indices)
    polar_fallbacks: int = 0
    host_mirror: Optional[HostMirror] = None
    phase: SimulationPhase = SimulationPhase.DONE


def run_simulation(
    ex: int,
    ey: int,
    ez: int,
    config: Optional[ExplicitDynamicsConfig] = None,
    logger: Optional[TimeLogger] = None,
    host_mirror: Optional[HostMirror] = None,
    on_step: Optional[Callable[[int, Region, StateIndices], None]] = None,
    **kwargs,
) -> SimulationResult:
    """Run the elastic bar problem on an ``ex x ey x ez`` box mesh.

    Parameters
    ----------
    ex, ey, ez
        Number of elements along each axis; each must be at least 1.
    config
        Run settings. Defaults to :class:`ExplicitDynamicsConfig()`.
    logger
        Timer receiving the phase events. A silent logger is used when
        omitted.
    host_mirror
        Destination of the periodic diagnostic copies. Created on demand
        when ``config.copy_interval`` is positive.
    on_step
        Called after every step with ``(step, region, indices)``.
    **kwargs
        Overrides for any field of the config or its material.

    Returns
    -------
    SimulationResult
        Final region, timings and run statistics.

    Raises
    ------
    ConfigurationError
        For invalid extents (raised before any allocation) or a mesh that
        yields non-positive volumes or masses.
    StabilityError
        When a kernel reports a fatal condition or the stable time step is
        not a positive finite number.
    """
    validate_extents(ex, ey, ez)
    config = ExplicitDynamicsConfig.from_kwargs(base=config, **kwargs)
    if logger is None:
        logger = TimeLogger(verbosity=None)
    totals = {event: 0.0 for event in PHASE_EVENTS.values()}

    def done(event_name):
        totals[event_name] += logger.stop_event(event_name)

    phase = SimulationPhase.INITIALIZING
    logger.start_event("mesh", category="setup")
    mesh = box_mesh(ex, ey, ez)
    region = Region.from_mesh(
        mesh,
        material=config.material,
        num_states=config.num_states,
        precision=config.precision,
    )
    done("mesh")

    logger.start_event("initialize", category="setup")
    initialize_element(region)
    initialize_node(region)
    region.apply_initial_velocity(
        config.initial_velocity_component,
        config.initial_velocity,
        config.initial_velocity_plane,
    )
    done("initialize")

    if config.copy_interval > 0 and host_mirror is None:
        host_mirror = HostMirror()

    num_steps = config.total_num_steps
    report_every = max(1, num_steps // 10)
    indices = initial_state_indices()
    final_time = 0.0
    polar_fallbacks = 0
    phase = SimulationPhase.STEPPING
    logger.progress(
        "run_simulation",
        f"{region.num_elements} elements, {num_steps} steps",
        phase=phase.value,
    )

    for step in range(num_steps):
        indices = rotate(indices, config.num_states)
        current = indices.current
        previous = indices.previous
        region.clear_status()

        logger.start_event("internal_force", category="step")
        grad_hgop(region, current, previous)
        check_status(region.elem_status, "grad_hgop", step)
        decomp_rotate(
            region,
            current,
            previous,
            config.max_polar_iterations,
            config.polar_tolerance,
        )
        polar_fallbacks += check_status(
            region.elem_status, "decomp_rotate", step
        )
        divergence(region, current, previous)
        check_status(
            region.elem_status, "divergence", step, report_fallbacks=False
        )
        done("internal_force")

        logger.start_event("stable_time_step", category="step")
        stable_dt = minimum_stable_time_step(region, step)
        dt = set_next_time_step(
            region, indices.next, config.user_dt, stable_dt
        )
        done("stable_time_step")

        logger.start_event("central_diff", category="step")
        finish_step(region, current, indices.next)
        check_status(region.node_status, "finish_step", step, "node")
        done("central_diff")
        final_time += dt

        logger.start_event("copy_to_host", category="step")
        if host_mirror is not None and config.copy_interval > 0:
            if step % config.copy_interval == 0:
                host_mirror.update_from(region, step, indices)
        done("copy_to_host")

        if on_step is not None:
            on_step(step, region, indices)
        if (step + 1) % report_every == 0:
            logger.progress(
                "run_simulation",
                f"step {step + 1}/{num_steps}, dt = {dt:.6g}, "
                f"time = {final_time:.6g}",
                step=step,
            )

    phase = SimulationPhase.DONE
    return SimulationResult(
        region=region,
        performance=PerformanceData.from_durations(totals),
        num_steps=num_steps,
        final_time=final_time,
        final_indices=indices,
        polar_fallbacks=polar_fallbacks,
        host_mirror=host_mirror,
        phase=phase,
    )


def explicit_dynamics_app(
    ex: int,
    ey: int,
    ez: int,
    perf: PerformanceData,
    config: Optional[ExplicitDynamicsConfig] = None,
    logger: Optional[TimeLogger] = None,
    **kwargs,
) -> int:
    """Run one simulation and store its timings in ``perf``.

    Accepts the same settings as :func:`run_simulation`. Returns ``0`` on
    success; failures propagate as exceptions and leave ``perf`` untouched.
    """
    result = run_simulation(ex, ey, ez, config=config, logger=logger, **kwargs)
    perf.assign(result.performance)
    return 0
