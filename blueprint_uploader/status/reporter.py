"""
Status reporting for upload runs.

The pipeline talks to its observer through four sinks. A consumer (a UI
widget, a CLI progress printer, a test) replaces the sinks it cares about
when the reporter is built; the pipeline never knows which consumer is
attached.

Example usage:
    >>> tracker = UploadStatusTracker()
    >>> reporter = StatusReporter()
    >>> cancel_query = reporter.attach(tracker)
    >>> pipeline = UploadPipeline(..., reporter=reporter, cancel_query=cancel_query)
"""

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from blueprint_uploader.models import UploadState
from blueprint_uploader.status.cancellation import CancelQuery
from blueprint_uploader.utils.logging import get_logger

logger = get_logger(__name__)

StatusSink = Callable[[str, Optional[str], Optional[str]], None]
ProgressSink = Callable[[int, int], None]
StateSink = Callable[[UploadState], None]
ErrorSink = Callable[[str, str], None]


def _ignore_status(header: str, status: Optional[str] = None, sub_status: Optional[str] = None) -> None:
    pass


def _ignore_progress(done: int, total: int) -> None:
    pass


def _ignore_state(state: UploadState) -> None:
    pass


def _log_error(header: str, details: str) -> None:
    logger.error(f"{header}: {details}")


@dataclass
class StatusReporter:
    """
    Four independent notification sinks.

    Attributes:
        on_status: Three-level status text, latest call wins
        on_upload_progress: Byte counters of the current file transfer
        on_upload_state: UploadState transitions
        on_error: Header and details of an unrecoverable failure

    All sinks default to no-ops except ``on_error``, which logs. Sinks are
    called through the ``set_*`` wrappers, which never raise.
    """

    on_status: StatusSink = _ignore_status
    on_upload_progress: ProgressSink = _ignore_progress
    on_upload_state: StateSink = _ignore_state
    on_error: ErrorSink = _log_error

    @classmethod
    def logging(cls) -> "StatusReporter":
        """Reporter that writes every notification to the log."""
        status_logger = get_logger("blueprint_uploader.status")

        def on_status(header: str, status: Optional[str] = None, sub_status: Optional[str] = None) -> None:
            parts = [part for part in (header, status, sub_status) if part]
            status_logger.info(" | ".join(parts))

        def on_progress(done: int, total: int) -> None:
            percent = (done / total * 100) if total else 100.0
            status_logger.debug(f"Progress {done}/{total} bytes ({percent:.1f}%)")

        def on_state(state: UploadState) -> None:
            status_logger.info(f"Upload state: {state.value}")

        return cls(
            on_status=on_status,
            on_upload_progress=on_progress,
            on_upload_state=on_state,
            on_error=_log_error,
        )

    def attach(self, tracker: "UploadStatusTracker") -> CancelQuery:
        """
        Route all four sinks to ``tracker``.

        Returns:
            A cancellation query that reads the tracker's cancel flag
        """
        self.on_status = tracker.set_status
        self.on_upload_progress = tracker.set_upload_progress
        self.on_upload_state = tracker.set_upload_state
        self.on_error = tracker.set_error_state
        return lambda: tracker.cancel_requested

    def set_status(self, header: str, status: Optional[str] = None, sub_status: Optional[str] = None) -> None:
        try:
            self.on_status(header, status, sub_status)
        except Exception:
            logger.exception("Status sink raised")

    def set_upload_progress(self, done: int, total: int) -> None:
        try:
            self.on_upload_progress(done, total)
        except Exception:
            logger.exception("Progress sink raised")

    def set_upload_state(self, state: UploadState) -> None:
        try:
            self.on_upload_state(state)
        except Exception:
            logger.exception("Upload state sink raised")

    def set_error_state(self, header: str, details: str) -> None:
        try:
            self.on_error(header, details)
        except Exception:
            logger.exception("Error sink raised")


@dataclass
class UploadStatusTracker:
    """
    Headless observer that records what a status window would show.

    Keeps the latest status text and progress, the full state history, and
    every reported error. ``request_cancel`` flips the flag that the query
    returned by ``StatusReporter.attach`` reads.
    """

    header: str = ""
    status: Optional[str] = None
    sub_status: Optional[str] = None
    done: int = 0
    total: int = 0
    state: UploadState = UploadState.IDLE
    states: List[UploadState] = field(default_factory=list)
    errors: List[Tuple[str, str]] = field(default_factory=list)
    cancel_requested: bool = False

    def set_status(self, header: str, status: Optional[str] = None, sub_status: Optional[str] = None) -> None:
        self.header = header
        self.status = status
        self.sub_status = sub_status

    def set_upload_progress(self, done: int, total: int) -> None:
        self.done = done
        self.total = total

    def set_upload_state(self, state: UploadState) -> None:
        self.state = state
        self.states.append(state)

    def set_error_state(self, header: str, details: str) -> None:
        self.errors.append((header, details))

    def request_cancel(self) -> None:
        logger.info("Cancellation requested")
        self.cancel_requested = True

    @property
    def progress(self) -> float:
        """Fraction of the current file transferred."""
        if self.total <= 0:
            return 0.0
        return min(1.0, self.done / self.total)
