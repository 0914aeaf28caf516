"""
Exceptions raised by pipeline stages.

Every hard failure is a BlueprintUploadError carrying the header and details
the controller hands to the error sink. Soft failures (an optional file that
is missing) are logged and never raised.
"""

from typing import Optional


class BlueprintUploadError(Exception):
    """Base class for failures that end a pipeline run."""

    header = "Upload failed"

    def __init__(self, details: str, header: Optional[str] = None) -> None:
        super().__init__(details)
        self.details = details
        if header is not None:
            self.header = header


class PreconditionError(BlueprintUploadError):
    """A required local file, session or project handle is missing."""

    header = "Upload preconditions not met"


class AssetUploadError(BlueprintUploadError):
    """The primary asset upload produced no remote URL."""

    header = "Asset bundle upload failed"


class CommitError(BlueprintUploadError):
    """The service rejected the create or update call."""

    header = "Committing blueprint failed"


class UploadCancelledError(BlueprintUploadError):
    """The operator requested abort."""

    header = "Upload cancelled"


class RemoteCallTimeoutError(BlueprintUploadError):
    """A callback-style remote call did not complete within its timeout."""

    header = "Remote call timed out"
