"""
Status reporting and cancellation.

Provides the four-sink StatusReporter the pipeline reports through, a
headless UploadStatusTracker observer, and cancellation token helpers.
"""

from .cancellation import CancelQuery, never_cancelled, raise_if_cancelled
from .reporter import StatusReporter, UploadStatusTracker

__all__ = [
    "CancelQuery",
    "StatusReporter",
    "UploadStatusTracker",
    "never_cancelled",
    "raise_if_cancelled",
]
