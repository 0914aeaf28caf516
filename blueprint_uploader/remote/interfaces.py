"""
Collaborators the pipeline drives.

The pipeline only depends on these shapes. ``sandbox`` provides local
implementations; a host embedding the uploader passes its own.
"""

from typing import Any, Callable, Optional, Protocol

from blueprint_uploader.models import BlueprintKind, BlueprintRecord, UserIdentity
from blueprint_uploader.status.cancellation import CancelQuery

SuccessCallback = Callable[[Any], None]
FailureCallback = Callable[[str], None]
TransferStatusSink = Callable[[str, Optional[str]], None]
TransferProgressSink = Callable[[int, int], None]


class IdentityProvider(Protocol):
    """Session owner: logs in and knows the current user."""

    async def ensure_logged_in(self) -> bool:
        ...

    @property
    def current_user(self) -> Optional[UserIdentity]:
        ...


class ProjectHandle(Protocol):
    """
    Local state persisted next to the project being uploaded.

    Owns identifier issuance for records that have never been created.
    """

    blueprint_id: str
    completed_onboarding: bool

    def assign_id(self) -> None:
        ...

    def persist(self) -> None:
        ...


class ProjectState(Protocol):
    def find_local_record(self) -> Optional[ProjectHandle]:
        ...


class BlueprintApi(Protocol):
    """
    Callback-style remote blueprint API.

    Each call invokes exactly one of its callbacks exactly once. Success
    callbacks receive a BlueprintRecord, failure callbacks an error string.
    """

    def clear_caches(self) -> None:
        ...

    def fetch(self, kind: BlueprintKind, blueprint_id: str,
              on_success: SuccessCallback, on_failure: FailureCallback) -> None:
        ...

    def save(self, record: BlueprintRecord,
             on_success: SuccessCallback, on_failure: FailureCallback) -> None:
        ...

    def create(self, record: BlueprintRecord,
               on_success: SuccessCallback, on_failure: FailureCallback) -> None:
        ...


class FileTransfer(Protocol):
    """
    Chunked, resumable file transfer.

    An empty ``existing_file_id`` creates a new remote file; otherwise a new
    version is appended to that file. Returns the URL of the stored version.
    Raises UploadCancelledError when ``cancel_query`` turns true mid-transfer.
    """

    async def upload_file(
        self,
        local_path: str,
        existing_file_id: str,
        file_kind: str,
        friendly_name: str,
        on_status: TransferStatusSink,
        on_progress: TransferProgressSink,
        cancel_query: CancelQuery,
    ) -> str:
        ...
