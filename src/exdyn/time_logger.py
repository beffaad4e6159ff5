"""Phase timing for explicit-dynamics runs.

The driver brackets every phase of a run (mesh setup, initialization and the
per-step kernels) with :meth:`TimeLogger.start_event` and
:meth:`TimeLogger.stop_event`. Durations accumulate per event name so that a
run of many thousands of steps does not keep one record per kernel launch;
the full event history is only retained in ``'debug'`` mode.
"""

import time
from typing import Optional, Dict, Any
import attrs


_VERBOSITIES = {None, 'default', 'verbose', 'debug'}


@attrs.define(frozen=True)
class TimingEvent:
    """Record of a single timing event.

    Attributes
    ----------
    name : str
        Identifier for the event (e.g., 'internal_force')
    event_type : str
        Type of event: 'start', 'stop', or 'progress'
    timestamp : float
        Wall-clock time from time.perf_counter()
    metadata : dict
        Optional metadata (step index, category, messages)
    """
    name: str = attrs.field(validator=attrs.validators.instance_of(str))
    event_type: str = attrs.field(
        validator=attrs.validators.in_({'start', 'stop', 'progress'})
    )
    timestamp: float = attrs.field(
        validator=attrs.validators.instance_of(float)
    )
    metadata: dict = attrs.field(factory=dict)


class TimeLogger:
    """Accumulating phase timer with verbosity-controlled reporting.

    Parameters
    ----------
    verbosity : str or None, default='default'
        Output verbosity level. Options:
        - None: record silently
        - 'default': print aggregate times from :meth:`print_summary`
        - 'verbose': also print each completed 'setup' category event
        - 'debug': print every event and keep the full event history

    Attributes
    ----------
    verbosity : str or None
        Current verbosity level
    events : list[TimingEvent]
        Chronological event history (populated in 'debug' mode only)

    Notes
    -----
    Create one instance per run and pass it to
    :func:`exdyn.driver.run_simulation`.
    """

    def __init__(self, verbosity: Optional[str] = 'default') -> None:
        if verbosity not in _VERBOSITIES:
            raise ValueError(
                f"verbosity must be None, 'default', 'verbose', or 'debug', "
                f"got '{verbosity}'"
            )
        self.verbosity = verbosity
        self.events: list[TimingEvent] = []
        self._active_starts: dict[str, float] = {}
        self._categories: dict[str, Optional[str]] = {}
        self._totals: dict[str, float] = {}
        self._counts: dict[str, int] = {}
        self._last: dict[str, float] = {}

    def _record(self, name: str, event_type: str, timestamp: float,
                metadata: Dict[str, Any]) -> None:
        if self.verbosity == 'debug':
            self.events.append(
                TimingEvent(
                    name=name,
                    event_type=event_type,
                    timestamp=timestamp,
                    metadata=metadata,
                )
            )

    def start_event(self, event_name: str, **metadata: Any) -> None:
        """Record the start of a timed operation.

        Parameters
        ----------
        event_name : str
            Identifier for this phase
        **metadata : Any
            Optional metadata; ``category`` is used for aggregation
        """
        if not event_name:
            raise ValueError("event_name cannot be empty")

        timestamp = time.perf_counter()
        self._record(event_name, 'start', timestamp, metadata)
        self._active_starts[event_name] = timestamp
        self._categories.setdefault(event_name, metadata.get('category'))

        if self.verbosity == 'debug':
            print(f"[DEBUG] Started: {event_name}")

    def stop_event(self, event_name: str, **metadata: Any) -> float:
        """Record the end of a timed operation.

        Parameters
        ----------
        event_name : str
            Identifier matching a previous start_event call
        **metadata : Any
            Optional metadata to store with event

        Returns
        -------
        float
            Duration of this occurrence in seconds, or 0.0 if there was no
            matching start.
        """
        if not event_name:
            raise ValueError("event_name cannot be empty")

        timestamp = time.perf_counter()
        self._record(event_name, 'stop', timestamp, metadata)

        start = self._active_starts.pop(event_name, None)
        if start is None:
            if self.verbosity == 'debug':
                print(f"[DEBUG] Warning: stop_event('{event_name}') "
                      "without matching start")
            return 0.0

        duration = timestamp - start
        self._totals[event_name] = self._totals.get(event_name, 0.0) + duration
        self._counts[event_name] = self._counts.get(event_name, 0) + 1
        self._last[event_name] = duration

        if self.verbosity == 'debug':
            print(f"[DEBUG] Stopped: {event_name} ({duration:.6f}s)")
        elif (self.verbosity == 'verbose'
              and self._categories.get(event_name) == 'setup'):
            print(f"{event_name}: {duration:.6f}s")
        return duration

    def progress(
        self, event_name: str, message: str, **metadata: Any
    ) -> None:
        """Record a progress update within an operation.

        Parameters
        ----------
        event_name : str
            Identifier for the operation in progress
        message : str
            Progress message to log
        **metadata : Any
            Optional metadata to store with event
        """
        if not event_name:
            raise ValueError("event_name cannot be empty")

        metadata_with_msg = dict(metadata)
        metadata_with_msg['message'] = message
        self._record(event_name, 'progress', time.perf_counter(),
                     metadata_with_msg)

        if self.verbosity in ('verbose', 'debug'):
            print(f"[{event_name}] {message}")

    def get_event_duration(self, event_name: str) -> Optional[float]:
        """Duration of the most recent completed occurrence of an event."""
        return self._last.get(event_name)

    def get_event_count(self, event_name: str) -> int:
        """Number of completed occurrences of an event."""
        return self._counts.get(event_name, 0)

    def get_aggregate_durations(
        self, category: Optional[str] = None
    ) -> dict[str, float]:
        """Total durations per event name.

        Parameters
        ----------
        category : str, optional
            If provided, only events started with this ``category`` metadata

        Returns
        -------
        dict[str, float]
            Mapping of event names to total durations in seconds
        """
        return {
            name: total for name, total in self._totals.items()
            if category is None or self._categories.get(name) == category
        }

    def print_summary(self) -> None:
        """Print aggregate durations in 'default' and 'verbose' modes."""
        if self.verbosity in ('default', 'verbose'):
            durations = self.get_aggregate_durations()
            if durations:
                print("\nTiming Summary:")
                for name, duration in sorted(durations.items()):
                    print(f"  {name}: {duration:.6f}s "
                          f"({self._counts[name]} calls)")
