"""
Data types shared by every pipeline stage.

BlueprintRecord mirrors the remote content entity (a world or an avatar);
UploadSession holds everything one pipeline run needs and is discarded with
the run.
"""

import re
import uuid
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class BlueprintKind(str, Enum):
    """Kinds of content the service hosts."""

    WORLD = "world"
    AVATAR = "avatar"


class UploadState(str, Enum):
    """
    Pipeline-run status for external observers.

    States:
        IDLE: Nothing started yet
        UPLOADING: Preconditions passed, transfers in progress
        FINISHED: Metadata committed
        FAILED: A hard failure ended the run
        CANCELLED: The operator aborted the run
    """

    IDLE = "idle"
    UPLOADING = "uploading"
    FINISHED = "finished"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (UploadState.FINISHED, UploadState.FAILED, UploadState.CANCELLED)


@dataclass
class BlueprintRecord:
    """
    Remote content entity.

    Attributes:
        id: Service identifier, empty until the first successful create
        kind: World or avatar
        version: Server-assigned asset version
        name: Display name
        description: Free text description
        tags: Ordered tag list
        capacity: Player capacity (worlds only)
        author_id: Owner account id, empty for records never set up
        author_name: Owner display name
        asset_url: Remote reference of the primary asset bundle
        unity_package_url: Remote reference of the secondary package
        image_url: Remote reference of the preview image
        release_status: private or public
    """

    id: str = ""
    kind: BlueprintKind = BlueprintKind.WORLD
    version: int = 0
    name: str = ""
    description: str = ""
    tags: List[str] = field(default_factory=list)
    capacity: int = 0
    author_id: str = ""
    author_name: str = ""
    asset_url: str = ""
    unity_package_url: str = ""
    image_url: str = ""
    release_status: str = "private"

    def next_version(self) -> int:
        """Version the next asset upload will carry."""
        return max(1, self.version + 1)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["kind"] = self.kind.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BlueprintRecord":
        known = {name for name in cls.__dataclass_fields__}
        values = {key: value for key, value in data.items() if key in known}
        values["kind"] = BlueprintKind(values.get("kind", BlueprintKind.WORLD.value))
        values["tags"] = list(values.get("tags") or [])
        return cls(**values)


@dataclass
class BlueprintInfo:
    """
    Operator supplied metadata override.

    ``blueprint_id`` is filled in by the create path once the service
    has issued an identifier.
    """

    name: str
    description: str = ""
    tags: List[str] = field(default_factory=list)
    capacity: int = 16
    new_image_path: str = ""
    blueprint_id: str = ""

    def apply_to(self, record: BlueprintRecord) -> None:
        record.name = self.name
        record.description = self.description
        record.tags = list(self.tags)
        record.capacity = self.capacity


@dataclass
class UploadSession:
    """
    Inputs of one pipeline run.

    ``is_update`` is decided by the resolver and must not change afterwards.
    """

    asset_bundle_path: str
    kind: BlueprintKind = BlueprintKind.WORLD
    platform: str = ""
    unity_package_path: str = ""
    image_path: str = ""
    info: Optional[BlueprintInfo] = None
    is_update: bool = False
    session_id: str = field(default_factory=lambda: f"upload-{uuid.uuid4().hex[:12]}")


@dataclass
class UploadOutcome:
    """Result of a pipeline run."""

    state: UploadState
    blueprint_id: str = ""
    error_header: Optional[str] = None
    error_details: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.state == UploadState.FINISHED


@dataclass(frozen=True)
class UserIdentity:
    """Account the current session is logged in as."""

    id: str
    display_name: str


class RemoteFileReference:
    """
    Helpers for file identifiers embedded in remote URLs.

    A remote file URL looks like ``<base>/file_<uuid>/<version>/file``; only
    the ``file_...`` segment matters to the uploader.
    """

    # Whole path segment only; the last one wins when several appear
    FILE_ID_PATTERN = re.compile(r"(?:^|/)(file_[0-9A-Za-z-]+)(?=/|$)")

    @classmethod
    def parse_file_id(cls, url: Optional[str]) -> str:
        """Return the embedded file id, or an empty string when there is none."""
        if not url:
            return ""
        matches = cls.FILE_ID_PATTERN.findall(url)
        return matches[-1] if matches else ""

    @staticmethod
    def new_file_id() -> str:
        return f"file_{uuid.uuid4()}"

    @staticmethod
    def build_url(base_url: str, file_id: str, version: int) -> str:
        return f"{base_url.rstrip('/')}/{file_id}/{version}/file"
