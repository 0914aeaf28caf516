"""
Create and update commits of blueprint metadata.

The update path keeps the existing identifier and never blanks a stored URL
with the result of an upload that did not happen. The create path fills in
placeholder metadata for the operator to edit later and guarantees an image,
which the service requires on creation.
"""

from typing import Optional

from blueprint_uploader.errors import BlueprintUploadError, CommitError, UploadCancelledError
from blueprint_uploader.models import (
    BlueprintInfo,
    BlueprintKind,
    BlueprintRecord,
    UploadState,
    UserIdentity,
)
from blueprint_uploader.pipeline.staging import remove_staged
from blueprint_uploader.remote.adapter import call_remote
from blueprint_uploader.remote.interfaces import BlueprintApi, ProjectHandle
from blueprint_uploader.status.reporter import StatusReporter
from blueprint_uploader.transfer.client import FileUploadClient
from blueprint_uploader.utils.config import UploaderConfig, get_config
from blueprint_uploader.utils.imaging import save_placeholder_image
from blueprint_uploader.utils.logging import get_logger
from blueprint_uploader.utils.metrics import PrometheusMetrics, get_metrics

logger = get_logger(__name__)

PLACEHOLDER_NAMES = {
    BlueprintKind.WORLD: "New world",
    BlueprintKind.AVATAR: "New avatar",
}
PLACEHOLDER_DESCRIPTION = "A description"
PLACEHOLDER_RELEASE_STATUS = "private"


def _pick_url(new_url: str, current_url: str) -> str:
    return current_url if not new_url or not new_url.strip() else new_url


class BlueprintCommitter:
    """Commits blueprint metadata through the callback-style API."""

    def __init__(
        self,
        api: BlueprintApi,
        uploads: FileUploadClient,
        reporter: Optional[StatusReporter] = None,
        config: Optional[UploaderConfig] = None,
        metrics: Optional[PrometheusMetrics] = None,
        platform: Optional[str] = None,
    ) -> None:
        self.api = api
        self.uploads = uploads
        self.reporter = reporter or StatusReporter()
        self.config = config or get_config()
        self.metrics = metrics or get_metrics()
        self.platform = platform or self.config.platform

    def _check_version(self, expected: Optional[int], saved: BlueprintRecord) -> None:
        # The client-computed version is trusted; a mismatch is only reported.
        if expected is not None and saved.version != expected:
            logger.warning(
                f"Service reports version {saved.version} for {saved.id}, expected {expected}"
            )

    async def _apply_override(self, record: BlueprintRecord, info: Optional[BlueprintInfo]) -> None:
        if info is None:
            return
        info.apply_to(record)
        if info.new_image_path:
            new_image_url = await self.uploads.upload_image(record, info.new_image_path, self.platform)
            record.image_url = _pick_url(new_image_url, record.image_url)

    async def update_blueprint(
        self,
        record: BlueprintRecord,
        new_asset_url: str,
        new_package_url: str,
        info: Optional[BlueprintInfo] = None,
        expected_version: Optional[int] = None,
    ) -> BlueprintRecord:
        """
        Apply new URLs and the optional override to an existing record and save it.

        Returns:
            The record as saved by the service

        Raises:
            CommitError: With the service's error string when the save fails
        """
        await self._apply_override(record, info)

        record.asset_url = _pick_url(new_asset_url, record.asset_url)
        record.unity_package_url = _pick_url(new_package_url, record.unity_package_url)

        self.reporter.set_status("Applying Blueprint Changes")
        result = await call_remote(
            self.api.save, record, name=f"update {record.id}", poll_interval=self.config.poll_interval
        )
        self.metrics.record_commit(record.kind.value, "update", result.success)

        if not result.success:
            logger.error(f"Updating {record.id} failed: {result.error}")
            raise CommitError(result.error, header="Applying blueprint changes failed")

        saved: BlueprintRecord = result.value
        self._check_version(expected_version, saved)
        logger.info(f"Updated {saved.kind.value} {saved.id} (version {saved.version})")
        return saved

    async def create_blueprint(
        self,
        record: BlueprintRecord,
        new_asset_url: str,
        new_package_url: str,
        handle: ProjectHandle,
        user: UserIdentity,
        info: Optional[BlueprintInfo] = None,
    ) -> BlueprintRecord:
        """
        Create a new record carrying the uploaded URLs.

        On success the issued id is written back to ``handle`` (and to
        ``info.blueprint_id``) so the next run resolves to an update.

        Returns:
            The record as created by the service

        Raises:
            CommitError: With the service's error string when the create fails
        """
        new_record = BlueprintRecord(
            id=record.id,
            kind=record.kind,
            name=PLACEHOLDER_NAMES[record.kind],
            description=PLACEHOLDER_DESCRIPTION,
            tags=[],
            capacity=self.config.default_capacity,
            author_id=user.id,
            author_name=user.display_name,
            asset_url=new_asset_url,
            unity_package_url=new_package_url,
            image_url=record.image_url,
            release_status=PLACEHOLDER_RELEASE_STATUS,
        )

        await self._apply_override(new_record, info)

        if not new_record.image_url.strip():
            logger.info("No image supplied, uploading placeholder image")
            placeholder = save_placeholder_image(self.config.staging_dir)
            try:
                new_record.image_url = await self.uploads.upload_image(new_record, placeholder, self.platform)
            finally:
                remove_staged(placeholder)

        self.reporter.set_status("Creating Blueprint")
        result = await call_remote(
            self.api.create, new_record, name=f"create {new_record.id or 'blueprint'}",
            poll_interval=self.config.poll_interval,
        )
        self.metrics.record_commit(new_record.kind.value, "create", result.success)

        if not result.success:
            logger.error(f"Creating blueprint failed: {result.error}")
            raise CommitError(result.error, header="Creating blueprint failed")

        saved: BlueprintRecord = result.value
        handle.blueprint_id = saved.id
        handle.persist()
        if info is not None:
            info.blueprint_id = saved.id
        logger.info(f"Created {saved.kind.value} {saved.id}")
        return saved

    async def apply_blueprint_changes(self, record: BlueprintRecord) -> bool:
        """Save metadata edits made outside the upload pipeline."""
        self.reporter.set_status("Applying Blueprint Changes")
        result = await call_remote(
            self.api.save, record, name=f"save {record.id}", poll_interval=self.config.poll_interval
        )
        self.metrics.record_commit(record.kind.value, "update", result.success)
        if not result.success:
            logger.error(f"Applying changes to {record.id} failed: {result.error}")
            self.reporter.set_error_state("Applying blueprint changes failed", result.error)
            return False
        if isinstance(result.value, BlueprintRecord):
            record.version = result.value.version
        return True

    async def update_blueprint_image(self, record: BlueprintRecord, image_path: str) -> bool:
        """
        Replace the preview image of an existing record.

        Emits exactly one terminal upload state.
        """
        self.reporter.set_upload_state(UploadState.UPLOADING)
        try:
            new_image_url = await self.uploads.upload_image(record, image_path, self.platform)
            record.image_url = _pick_url(new_image_url, record.image_url)
            success = await self.apply_blueprint_changes(record)
        except UploadCancelledError as e:
            self.reporter.set_error_state(e.header, e.details)
            self.reporter.set_upload_state(UploadState.CANCELLED)
            return False
        except BlueprintUploadError as e:
            self.reporter.set_error_state(e.header, e.details)
            self.reporter.set_upload_state(UploadState.FAILED)
            return False
        except Exception as e:
            logger.error(f"Image update failed: {e}", exc_info=True)
            self.reporter.set_error_state("Updating image failed", str(e))
            self.reporter.set_upload_state(UploadState.FAILED)
            return False

        self.reporter.set_upload_state(UploadState.FINISHED if success else UploadState.FAILED)
        return success
