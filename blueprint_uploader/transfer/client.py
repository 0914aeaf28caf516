"""
File upload client.

Sits between the pipeline and the file-transfer collaborator: resolves
whether an upload creates a new remote file or appends a version to an
existing one, forwards status, progress and cancellation, and times the
transfer.

Example usage:
    >>> client = FileUploadClient(transfer, reporter, cancel_query)
    >>> url = await client.upload_file(
    ...     "/tmp/stage/wrld_1_3.vrcw", record.asset_url,
    ...     friendly_file_name("Asset bundle", record, config), "Asset bundle",
    ... )
    >>> if not url:
    ...     print("nothing was uploaded")
"""

import time
from pathlib import Path
from typing import Optional

from blueprint_uploader.errors import UploadCancelledError
from blueprint_uploader.models import BlueprintKind, BlueprintRecord, RemoteFileReference
from blueprint_uploader.remote.interfaces import FileTransfer
from blueprint_uploader.status.cancellation import CancelQuery, never_cancelled
from blueprint_uploader.status.reporter import StatusReporter
from blueprint_uploader.utils.config import UploaderConfig, get_config
from blueprint_uploader.utils.logging import get_logger
from blueprint_uploader.utils.metrics import PrometheusMetrics, get_metrics

logger = get_logger(__name__)


def friendly_file_name(file_kind: str, record: BlueprintRecord, config: UploaderConfig,
                       platform: Optional[str] = None) -> str:
    """
    Human readable name stored with a remote file.

    Worlds are named after the world (or its id before it has a name),
    avatars after their id, each tagged with the build environment so
    versions stay distinguishable.
    """
    environment = (
        f"{config.host_version}_{config.asset_format_version}_"
        f"{platform or config.platform}_{config.server_environment}"
    )
    if record.kind == BlueprintKind.AVATAR:
        return f"Avatar - {record.id} - {file_kind} - {environment}"
    return f"World - {record.name or record.id} - {file_kind} - {environment}"


def format_elapsed(seconds: float) -> str:
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes:02d}:{secs:02d}"


class _ProgressRelay:
    """Forwards collaborator progress with a fixed total and non-decreasing counter."""

    def __init__(self, reporter: StatusReporter, total: int) -> None:
        self.reporter = reporter
        self.total = total
        self.done = 0
        reporter.set_upload_progress(0, total)

    def __call__(self, done: int, total: int) -> None:
        done = min(max(done, self.done), self.total)
        if done == self.done and done != 0:
            return
        self.done = done
        self.reporter.set_upload_progress(done, self.total)


class FileUploadClient:
    """Uploads single files through a FileTransfer collaborator."""

    def __init__(
        self,
        transfer: FileTransfer,
        reporter: Optional[StatusReporter] = None,
        cancel_query: Optional[CancelQuery] = None,
        config: Optional[UploaderConfig] = None,
        metrics: Optional[PrometheusMetrics] = None,
    ) -> None:
        self.transfer = transfer
        self.reporter = reporter or StatusReporter()
        self.cancel_query = cancel_query or never_cancelled
        self.config = config or get_config()
        self.metrics = metrics or get_metrics()

    async def upload_file(self, local_path: str, existing_url: str, friendly_name: str, file_kind: str) -> str:
        """
        Upload one local file.

        Args:
            local_path: File to upload
            existing_url: URL of the file this upload replaces ("" for a new file)
            friendly_name: Name stored with the remote file
            file_kind: Asset bundle, Unity package or Image

        Returns:
            URL of the stored file, or "" when the local file is missing or
            the collaborator returned nothing

        Raises:
            UploadCancelledError: If the transfer was cancelled
            Exception: Any transfer failure, unchanged
        """
        if not local_path:
            logger.error(f"Empty file path passed for {file_kind} upload")
            return ""

        path = Path(local_path)
        if not path.is_file():
            logger.error(f"{file_kind} file not found: {local_path}")
            return ""

        logger.info(f"Uploading {file_kind} ({path.name}) ...")
        self.reporter.set_status(f"Uploading {file_kind}...")

        file_id = RemoteFileReference.parse_file_id(existing_url)
        if file_id:
            logger.debug(f"Appending new version to {file_id}")

        size = path.stat().st_size
        progress = _ProgressRelay(self.reporter, size)
        start_time = time.monotonic()

        try:
            with self.metrics.track_upload(file_kind=file_kind):
                new_url = await self.transfer.upload_file(
                    str(path),
                    file_id,
                    file_kind,
                    friendly_name,
                    lambda status, sub_status=None: self.reporter.set_status(status, sub_status),
                    progress,
                    self.cancel_query,
                )
        except UploadCancelledError:
            logger.warning(f"{file_kind} upload cancelled")
            self.metrics.record_upload_failure(file_kind)
            raise
        except Exception as e:
            logger.error(f"{file_kind} upload failed: {e}", exc_info=True)
            self.metrics.record_upload_failure(file_kind)
            raise

        if not new_url:
            logger.error(f"{file_kind} upload returned no URL")
            self.metrics.record_upload_failure(file_kind)
            return ""

        elapsed = time.monotonic() - start_time
        self.metrics.record_upload_success(file_kind, size)
        logger.info(f"{file_kind} upload succeeded: {new_url} ({size} bytes in {elapsed:.2f}s)")
        self.reporter.set_status("Upload Successful", f"Finished upload in {format_elapsed(elapsed)}")
        return new_url

    async def upload_image(self, record: BlueprintRecord, image_path: str, platform: Optional[str] = None) -> str:
        """Upload a preview image for ``record``, replacing its current image file."""
        friendly_name = friendly_file_name("Image", record, self.config, platform)
        logger.info(f"Preparing image upload for {image_path or '<none>'}...")
        if not image_path:
            return ""
        return await self.upload_file(image_path, record.image_url, friendly_name, "Image")
