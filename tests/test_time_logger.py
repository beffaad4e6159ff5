"""Tests for the time_logger module."""

import time
import pytest

from exdyn.time_logger import TimeLogger, TimingEvent


class TestTimingEvent:
    """Test TimingEvent record."""

    def test_timing_event_creation(self):
        """Test that TimingEvent can be created with required fields."""
        event = TimingEvent(
            name="internal_force",
            event_type="start",
            timestamp=123.456,
        )
        assert event.name == "internal_force"
        assert event.event_type == "start"
        assert event.timestamp == 123.456
        assert event.metadata == {}

    def test_timing_event_rejects_unknown_type(self):
        """Test that only start, stop and progress events are accepted."""
        with pytest.raises(ValueError):
            TimingEvent(name="x", event_type="pause", timestamp=1.0)


class TestTimeLogger:
    """Test TimeLogger class."""

    def test_initialization_default(self):
        """Test TimeLogger initialization with default verbosity."""
        logger = TimeLogger()
        assert logger.verbosity == "default"
        assert logger.events == []

    @pytest.mark.parametrize("verbosity", [None, "verbose", "debug"])
    def test_initialization_levels(self, verbosity):
        """Test TimeLogger initialization with each verbosity level."""
        logger = TimeLogger(verbosity=verbosity)
        assert logger.verbosity == verbosity

    def test_initialization_invalid_verbosity(self):
        """Test that invalid verbosity raises ValueError."""
        with pytest.raises(ValueError, match="verbosity must be"):
            TimeLogger(verbosity="invalid")

    def test_none_verbosity_keeps_totals_only(self):
        """Test that a silent logger still accumulates durations."""
        logger = TimeLogger(verbosity=None)
        logger.start_event("mesh")
        logger.stop_event("mesh")
        logger.progress("mesh", "message")
        assert logger.events == []
        assert logger.get_event_count("mesh") == 1

    def test_debug_records_events(self):
        """Test that debug mode keeps the full event history."""
        logger = TimeLogger(verbosity="debug")
        logger.start_event("initialize")
        time.sleep(0.01)
        logger.stop_event("initialize")
        logger.progress("initialize", "done")

        assert [e.event_type for e in logger.events] == [
            "start", "stop", "progress"
        ]
        assert logger.events[1].timestamp > logger.events[0].timestamp
        assert logger.events[2].metadata["message"] == "done"

    def test_durations_accumulate(self):
        """Test that repeated events sum into one total."""
        logger = TimeLogger(verbosity=None)
        total = 0.0
        for _ in range(3):
            logger.start_event("central_diff", category="step")
            time.sleep(0.002)
            total += logger.stop_event("central_diff")

        assert logger.get_event_count("central_diff") == 3
        durations = logger.get_aggregate_durations()
        assert durations["central_diff"] == pytest.approx(total)
        assert logger.get_event_duration("central_diff") > 0.0

    def test_aggregate_by_category(self):
        """Test filtering aggregate durations by category."""
        logger = TimeLogger(verbosity=None)
        logger.start_event("mesh", category="setup")
        logger.stop_event("mesh")
        logger.start_event("internal_force", category="step")
        logger.stop_event("internal_force")

        assert set(logger.get_aggregate_durations(category="setup")) == {
            "mesh"
        }
        assert set(logger.get_aggregate_durations()) == {
            "mesh", "internal_force"
        }

    def test_stop_without_start_returns_zero(self):
        """Test that an unmatched stop is ignored."""
        logger = TimeLogger(verbosity=None)
        assert logger.stop_event("never_started") == 0.0
        assert logger.get_event_count("never_started") == 0
        assert logger.get_event_duration("never_started") is None

    def test_empty_event_name_rejected(self):
        """Test that an empty name raises ValueError."""
        logger = TimeLogger()
        with pytest.raises(ValueError, match="cannot be empty"):
            logger.start_event("")
        with pytest.raises(ValueError, match="cannot be empty"):
            logger.stop_event("")
        with pytest.raises(ValueError, match="cannot be empty"):
            logger.progress("", "message")

    def test_verbose_prints_setup_events_only(self, capsys):
        """Test that verbose mode reports setup phases but not step phases."""
        logger = TimeLogger(verbosity="verbose")
        logger.start_event("mesh", category="setup")
        logger.stop_event("mesh")
        logger.start_event("internal_force", category="step")
        logger.stop_event("internal_force")
        out = capsys.readouterr().out
        assert "mesh:" in out
        assert "internal_force" not in out

    def test_print_summary(self, capsys):
        """Test that the summary lists every event with its call count."""
        logger = TimeLogger(verbosity="default")
        for _ in range(2):
            logger.start_event("stable_time_step")
            logger.stop_event("stable_time_step")
        logger.print_summary()
        out = capsys.readouterr().out
        assert "Timing Summary" in out
        assert "stable_time_step" in out
        assert "(2 calls)" in out

    def test_print_summary_silent(self, capsys):
        """Test that a silent logger prints nothing."""
        logger = TimeLogger(verbosity=None)
        logger.start_event("mesh")
        logger.stop_event("mesh")
        logger.print_summary()
        assert capsys.readouterr().out == ""
