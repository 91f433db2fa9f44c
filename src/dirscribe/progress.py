"""Progress callbacks for summarization runs.

The engine reports what it is doing through a plain callable so the CLI can
drive a rich progress bar while library users plug in their own UI.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class ProgressEventType(Enum):
    """Types of progress events emitted during a run."""

    STARTED = "started"
    FILE_DONE = "file_done"
    FILE_FAILED = "file_failed"
    COMPLETED = "completed"


@dataclass
class ProgressEvent:
    """A progress event.

    Attributes:
        event_type: The type of progress event
        message: Human-readable description
        path: File the event refers to, for per-file events
        current: Number of files finished so far
        total: Number of files in the run
        metadata: Additional context data
    """

    event_type: ProgressEventType
    message: str
    path: Path | None = None
    current: int | None = None
    total: int | None = None
    metadata: dict[str, Any] | None = None

    @property
    def progress_percentage(self) -> float | None:
        """Calculate progress percentage if current and total are available."""
        if self.current is not None and self.total is not None and self.total > 0:
            return (self.current / self.total) * 100
        return None


ProgressCallback = Callable[[ProgressEvent], None]


class ProgressNotifier:
    """Counts finished files and forwards events to an optional callback."""

    def __init__(self, callback: ProgressCallback | None = None, total: int = 0) -> None:
        self.callback = callback
        self.total = total
        self.finished = 0

    def notify(self, event: ProgressEvent) -> None:
        """Emit an event; callback failures are logged, never raised."""
        if not self.callback:
            return
        try:
            self.callback(event)
        except Exception as e:
            logger.warning(f"Progress callback failed: {e}")

    def started(self, message: str, **kwargs: Any) -> None:
        self.notify(
            ProgressEvent(
                ProgressEventType.STARTED,
                message,
                current=0,
                total=self.total,
                metadata=kwargs or None,
            )
        )

    def file_done(self, path: Path, ok: bool, message: str = "") -> None:
        """Record one finished file, successful or not."""
        self.finished += 1
        event_type = ProgressEventType.FILE_DONE if ok else ProgressEventType.FILE_FAILED
        self.notify(
            ProgressEvent(
                event_type,
                message or str(path),
                path=path,
                current=self.finished,
                total=self.total,
            )
        )

    def completed(self, message: str, **kwargs: Any) -> None:
        self.notify(
            ProgressEvent(
                ProgressEventType.COMPLETED,
                message,
                current=self.finished,
                total=self.total,
                metadata=kwargs or None,
            )
        )
