"""
Upload pipeline controller.

Drives one upload run through its stages in strict order:

    preconditions -> resolve blueprint -> prepare artifacts -> upload image
    -> upload asset bundle -> upload unity package (optional)
    -> commit (create | update) -> finished | failed | cancelled

Every stage raises a BlueprintUploadError on hard failure; ``run`` is the
single place that turns failures into exactly one error-sink call and
exactly one terminal state.

Example usage:
    >>> pipeline = UploadPipeline(identity, project_state, api, transfer,
    ...                           reporter=StatusReporter.logging())
    >>> outcome = pipeline.run_sync(UploadSession(asset_bundle_path="build/scene.vrcw"))
    >>> if outcome.success:
    ...     print(f"Uploaded {outcome.blueprint_id}")
"""

import asyncio
import time
from pathlib import Path
from typing import List, Optional

from blueprint_uploader.errors import (
    AssetUploadError,
    BlueprintUploadError,
    PreconditionError,
    UploadCancelledError,
)
from blueprint_uploader.models import (
    UploadOutcome,
    UploadSession,
    UploadState,
    UserIdentity,
)
from blueprint_uploader.pipeline.commit import BlueprintCommitter
from blueprint_uploader.pipeline.resolver import BlueprintResolver
from blueprint_uploader.pipeline.staging import (
    remove_staged,
    should_upload_package,
    stage_asset_bundle,
    stage_unity_package,
)
from blueprint_uploader.remote.interfaces import (
    BlueprintApi,
    FileTransfer,
    IdentityProvider,
    ProjectHandle,
    ProjectState,
)
from blueprint_uploader.status.cancellation import CancelQuery, never_cancelled, raise_if_cancelled
from blueprint_uploader.status.reporter import StatusReporter
from blueprint_uploader.transfer.client import FileUploadClient, friendly_file_name
from blueprint_uploader.utils.config import UploaderConfig, get_config
from blueprint_uploader.utils.logging import clear_correlation_id, get_logger, set_correlation_id
from blueprint_uploader.utils.metrics import PrometheusMetrics, get_metrics

logger = get_logger(__name__)


class UploadPipeline:
    """
    Sequential, cancellable upload of one blueprint.

    One instance may run several sessions one after another; concurrent runs
    need separate instances and must not target the same blueprint.

    Args:
        identity: Session/identity provider
        project_state: Owner of the local project handle and id issuance
        api: Callback-style blueprint API
        transfer: File-transfer collaborator
        reporter: Status sinks (no-op defaults when omitted)
        cancel_query: Cancellation token (never cancels when omitted)
        config: Uploader configuration (environment when omitted)
        metrics: Prometheus metrics (process-wide instance when omitted)
    """

    def __init__(
        self,
        identity: IdentityProvider,
        project_state: ProjectState,
        api: BlueprintApi,
        transfer: FileTransfer,
        reporter: Optional[StatusReporter] = None,
        cancel_query: Optional[CancelQuery] = None,
        config: Optional[UploaderConfig] = None,
        metrics: Optional[PrometheusMetrics] = None,
    ) -> None:
        self.identity = identity
        self.project_state = project_state
        self.api = api
        self.reporter = reporter or StatusReporter()
        self.cancel_query = cancel_query or never_cancelled
        self.config = config or get_config()
        self.metrics = metrics or get_metrics()

        self.uploads = FileUploadClient(
            transfer, self.reporter, self.cancel_query, self.config, self.metrics
        )
        self.resolver = BlueprintResolver(api, self.config, self.cancel_query)

    def run_sync(self, session: UploadSession) -> UploadOutcome:
        """Run ``session`` on a fresh event loop."""
        return asyncio.run(self.run(session))

    async def run(self, session: UploadSession) -> UploadOutcome:
        """
        Execute one upload run.

        Never raises for pipeline failures; the outcome carries the terminal
        state and, on failure, the header and details sent to the error sink.
        Task cancellation and KeyboardInterrupt are reported as cancelled and
        re-raised.
        """
        set_correlation_id(session.session_id)
        self.metrics.run_started()
        start_time = time.monotonic()
        staged: List[str] = []
        outcome = UploadOutcome(state=UploadState.FAILED)

        try:
            blueprint_id = await self._run_stages(session, staged)
            outcome = UploadOutcome(state=UploadState.FINISHED, blueprint_id=blueprint_id)
        except UploadCancelledError as e:
            logger.warning(f"Upload cancelled: {e.details}")
            outcome = UploadOutcome(UploadState.CANCELLED, error_header=e.header, error_details=e.details)
        except BlueprintUploadError as e:
            logger.error(f"{e.header}: {e.details}")
            outcome = UploadOutcome(UploadState.FAILED, error_header=e.header, error_details=e.details)
        except Exception as e:
            logger.error(f"Unexpected upload failure: {e}", exc_info=True)
            outcome = UploadOutcome(UploadState.FAILED, error_header="Upload failed", error_details=str(e))
        except (asyncio.CancelledError, KeyboardInterrupt) as e:
            logger.warning(f"Upload aborted: {type(e).__name__}")
            outcome = UploadOutcome(
                UploadState.CANCELLED,
                error_header=UploadCancelledError.header,
                error_details="Upload aborted before completion",
            )
            raise
        finally:
            remove_staged(*staged)
            outcome.duration_seconds = time.monotonic() - start_time
            if outcome.error_header is not None:
                self.reporter.set_error_state(outcome.error_header, outcome.error_details or "")
            if outcome.state == UploadState.FINISHED:
                self.reporter.set_status("Upload Finished", f"Blueprint {outcome.blueprint_id}")
            self.reporter.set_upload_state(outcome.state)
            self.metrics.run_finished(outcome.state.value)
            logger.info(f"Upload run {session.session_id} ended: {outcome.state.value}")
            clear_correlation_id()

        return outcome

    async def _check_preconditions(self, session: UploadSession) -> ProjectHandle:
        if not session.asset_bundle_path or not session.asset_bundle_path.strip():
            raise PreconditionError("Invalid empty asset bundle path provided")
        if not Path(session.asset_bundle_path).is_file():
            raise PreconditionError(f"Asset bundle not found: {session.asset_bundle_path}")

        self.api.clear_caches()

        if not await self.identity.ensure_logged_in():
            raise PreconditionError("Failed to login")

        handle = self.project_state.find_local_record()
        if handle is None:
            raise PreconditionError("Couldn't find local project state")
        return handle

    def _current_user(self) -> UserIdentity:
        user = self.identity.current_user
        if user is None:
            raise PreconditionError("No logged in user")
        return user

    async def _run_stages(self, session: UploadSession, staged: List[str]) -> str:
        platform = session.platform or self.config.platform

        self.reporter.set_status("Preparing upload")
        handle = await self._check_preconditions(session)
        user = self._current_user()
        self.reporter.set_upload_state(UploadState.UPLOADING)

        raise_if_cancelled(self.cancel_query, "resolving blueprint")
        self.reporter.set_status("Fetching blueprint")
        record = await self.resolver.resolve(session, handle)
        BlueprintResolver.ensure_id(record, handle)

        raise_if_cancelled(self.cancel_query, "preparing artifacts")
        version = record.next_version()
        asset_path = stage_asset_bundle(self.config, session.asset_bundle_path, record.id, version, platform)
        staged.append(asset_path)

        package_path = ""
        if should_upload_package(session.unity_package_path):
            logger.warning("Found unity package, it will be uploaded alongside the asset bundle")
            package_path = stage_unity_package(
                self.config, session.unity_package_path, record.id, version, platform
            )
            staged.append(package_path)
        elif session.unity_package_path:
            logger.info(f"Unity package not found, skipping: {session.unity_package_path}")

        if session.image_path:
            raise_if_cancelled(self.cancel_query, "uploading image")
            image_url = await self.uploads.upload_image(record, session.image_path, platform)
            if image_url:
                record.image_url = image_url

        raise_if_cancelled(self.cancel_query, "uploading asset bundle")
        asset_url = await self.uploads.upload_file(
            asset_path,
            record.asset_url if session.is_update else "",
            friendly_file_name("Asset bundle", record, self.config, platform),
            "Asset bundle",
        )
        if not asset_url or not asset_url.strip():
            self.reporter.set_status("Failed", "Asset bundle upload failed")
            raise AssetUploadError("Asset bundle upload returned no URL")

        package_url = ""
        if package_path:
            raise_if_cancelled(self.cancel_query, "uploading unity package")
            package_url = await self.uploads.upload_file(
                package_path,
                record.unity_package_url if session.is_update else "",
                friendly_file_name("Unity package", record, self.config, platform),
                "Unity package",
            )

        raise_if_cancelled(self.cancel_query, "committing blueprint")
        committer = BlueprintCommitter(
            self.api, self.uploads, self.reporter, self.config, self.metrics, platform
        )
        if session.is_update:
            saved = await committer.update_blueprint(
                record, asset_url, package_url, session.info, expected_version=version
            )
        else:
            saved = await committer.create_blueprint(
                record, asset_url, package_url, handle, user, session.info
            )
        return saved.id
