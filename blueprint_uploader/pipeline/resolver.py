"""
Fetch-or-create resolution of the target blueprint.

A failed fetch is the expected signal for a first upload, never an error.
"""

from typing import Optional

from blueprint_uploader.models import BlueprintRecord, UploadSession
from blueprint_uploader.remote.adapter import call_remote
from blueprint_uploader.remote.interfaces import BlueprintApi, ProjectHandle
from blueprint_uploader.status.cancellation import CancelQuery
from blueprint_uploader.utils.config import UploaderConfig, get_config
from blueprint_uploader.utils.logging import get_logger

logger = get_logger(__name__)


class BlueprintResolver:
    """Determines the authoritative record for an upload session."""

    def __init__(self, api: BlueprintApi, config: Optional[UploaderConfig] = None,
                 cancel_query: Optional[CancelQuery] = None) -> None:
        self.api = api
        self.config = config or get_config()
        self.cancel_query = cancel_query

    async def resolve(self, session: UploadSession, handle: ProjectHandle) -> BlueprintRecord:
        """
        Fetch the record for ``handle.blueprint_id`` or synthesize a new one.

        Sets ``session.is_update`` and ``handle.completed_onboarding``.
        """
        blueprint_id = handle.blueprint_id or ""
        kind_name = session.kind.value

        if blueprint_id:
            result = await call_remote(
                self.api.fetch,
                session.kind,
                blueprint_id,
                name=f"fetch {blueprint_id}",
                cancel_query=self.cancel_query,
                poll_interval=self.config.poll_interval,
            )
        else:
            logger.debug("No local blueprint id, skipping fetch")
            result = None

        if result is not None and result.success:
            record: BlueprintRecord = result.value
            logger.info(f"Updating an existing {kind_name} ({record.id}, version {record.version})")
            session.is_update = True
            handle.completed_onboarding = bool(record.author_id)
            return record

        if result is not None:
            logger.debug(f"Fetch failed: {result.error}")
        logger.info(f"{kind_name.capitalize()} record not found, creating a new {kind_name}")
        session.is_update = False
        handle.completed_onboarding = False
        return BlueprintRecord(
            id=blueprint_id,
            kind=session.kind,
            capacity=self.config.default_capacity,
        )

    @staticmethod
    def ensure_id(record: BlueprintRecord, handle: ProjectHandle) -> str:
        """Request an identifier from the project handle when the record has none."""
        if not record.id:
            handle.assign_id()
            record.id = handle.blueprint_id
            logger.info(f"Using newly assigned blueprint id {record.id}")
        return record.id
