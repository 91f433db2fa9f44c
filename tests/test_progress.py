"""Tests for progress events and the notifier."""

from pathlib import Path
from unittest.mock import Mock

from dirscribe.progress import (
    ProgressEvent,
    ProgressEventType,
    ProgressNotifier,
)


class TestProgressEvent:
    """Test ProgressEvent functionality."""

    def test_progress_percentage_calculation(self):
        event = ProgressEvent(
            event_type=ProgressEventType.FILE_DONE,
            message="a.py",
            current=25,
            total=100,
        )

        assert event.progress_percentage == 25.0

    def test_progress_percentage_none_when_missing_data(self):
        event = ProgressEvent(event_type=ProgressEventType.STARTED, message="Starting")

        assert event.progress_percentage is None

    def test_progress_percentage_zero_total(self):
        event = ProgressEvent(
            event_type=ProgressEventType.COMPLETED, message="Done", current=0, total=0
        )

        assert event.progress_percentage is None


class TestProgressNotifier:
    """Test the notifier that feeds callbacks."""

    def test_no_callback_is_noop(self):
        notifier = ProgressNotifier(total=2)

        notifier.started("Starting")
        notifier.file_done(Path("a.py"), ok=True)

        assert notifier.finished == 1

    def test_file_events_count_up(self):
        callback = Mock()
        notifier = ProgressNotifier(callback, total=2)

        notifier.file_done(Path("a.py"), ok=True)
        notifier.file_done(Path("b.py"), ok=False)

        first, second = (call.args[0] for call in callback.call_args_list)
        assert first.event_type == ProgressEventType.FILE_DONE
        assert first.current == 1
        assert first.message == "a.py"
        assert second.event_type == ProgressEventType.FILE_FAILED
        assert second.current == 2
        assert second.path == Path("b.py")

    def test_metadata_passed_through(self):
        callback = Mock()
        notifier = ProgressNotifier(callback, total=3)

        notifier.started("Starting", model="m")
        notifier.completed("Done")

        started, completed = (call.args[0] for call in callback.call_args_list)
        assert started.metadata == {"model": "m"}
        assert started.total == 3
        assert completed.metadata is None

    def test_callback_errors_are_swallowed(self):
        callback = Mock(side_effect=RuntimeError("UI broke"))
        notifier = ProgressNotifier(callback, total=1)

        notifier.file_done(Path("a.py"), ok=True)

        assert notifier.finished == 1
        callback.assert_called_once()
