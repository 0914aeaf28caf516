"""
Local collaborators backed by a directory on disk.

The sandbox lets the pipeline run end to end without the hosted service:
blueprint records are JSON files, uploaded files are versioned copies, and
the project handle is a small JSON document next to the build outputs.

Layout of a sandbox root:
    <root>/blueprints/<blueprint_id>.json
    <root>/files/<file_id>/<version>/file
"""

import asyncio
import json
import shutil
import threading
import uuid
from pathlib import Path
from typing import Dict, Optional, Union

from blueprint_uploader.errors import UploadCancelledError
from blueprint_uploader.models import (
    BlueprintKind,
    BlueprintRecord,
    RemoteFileReference,
    UserIdentity,
)
from blueprint_uploader.remote.interfaces import (
    FailureCallback,
    SuccessCallback,
    TransferProgressSink,
    TransferStatusSink,
)
from blueprint_uploader.status.cancellation import CancelQuery
from blueprint_uploader.utils.config import DEFAULT_CHUNK_SIZE
from blueprint_uploader.utils.logging import get_logger

logger = get_logger(__name__)

ID_PREFIXES = {BlueprintKind.WORLD: "wrld", BlueprintKind.AVATAR: "avtr"}


def new_blueprint_id(kind: BlueprintKind) -> str:
    return f"{ID_PREFIXES[kind]}_{uuid.uuid4()}"


class StaticIdentityProvider:
    """Identity provider with a fixed user; ``user=None`` models a logged-out session."""

    def __init__(self, user: Optional[UserIdentity] = None) -> None:
        self._user = user

    async def ensure_logged_in(self) -> bool:
        return self._user is not None

    @property
    def current_user(self) -> Optional[UserIdentity]:
        return self._user


class FileProjectHandle:
    """Project handle persisted as JSON."""

    def __init__(self, path: Path, kind: BlueprintKind, blueprint_id: str = "",
                 completed_onboarding: bool = False) -> None:
        self.path = path
        self.kind = kind
        self.blueprint_id = blueprint_id
        self.completed_onboarding = completed_onboarding

    def assign_id(self) -> None:
        self.blueprint_id = new_blueprint_id(self.kind)
        logger.info(f"Assigned new blueprint id {self.blueprint_id}")
        self.persist()

    def persist(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "blueprint_id": self.blueprint_id,
            "kind": self.kind.value,
            "completed_onboarding": self.completed_onboarding,
        }
        self.path.write_text(json.dumps(payload, indent=2))


class FileProjectState:
    """
    Finds the project handle stored at ``path``.

    When ``create`` is False and the file does not exist, no handle is
    found, which the pipeline treats as a precondition failure.
    """

    def __init__(self, path: Union[str, Path], kind: BlueprintKind = BlueprintKind.WORLD,
                 create: bool = True) -> None:
        self.path = Path(path)
        self.kind = kind
        self.create = create

    def find_local_record(self) -> Optional[FileProjectHandle]:
        if not self.path.exists():
            if not self.create:
                return None
            return FileProjectHandle(self.path, self.kind)

        data = json.loads(self.path.read_text())
        return FileProjectHandle(
            self.path,
            BlueprintKind(data.get("kind", self.kind.value)),
            blueprint_id=data.get("blueprint_id", ""),
            completed_onboarding=bool(data.get("completed_onboarding", False)),
        )


class SandboxBlueprintApi:
    """
    Blueprint API storing records as JSON files.

    Callbacks fire inline by default. With ``threaded=True`` they fire from
    a timer thread after ``latency`` seconds, the way a network backend
    would.
    """

    def __init__(self, root: Union[str, Path], threaded: bool = False, latency: float = 0.01) -> None:
        self.root = Path(root)
        self.records_dir = self.root / "blueprints"
        self.records_dir.mkdir(parents=True, exist_ok=True)
        self.threaded = threaded
        self.latency = latency
        self._cache: Dict[str, BlueprintRecord] = {}

    def _record_path(self, blueprint_id: str) -> Path:
        return self.records_dir / f"{blueprint_id}.json"

    def _dispatch(self, callback, argument) -> None:
        if self.threaded:
            timer = threading.Timer(self.latency, callback, args=(argument,))
            timer.daemon = True
            timer.start()
        else:
            callback(argument)

    def _load(self, blueprint_id: str) -> Optional[BlueprintRecord]:
        if blueprint_id in self._cache:
            return self._cache[blueprint_id]
        path = self._record_path(blueprint_id)
        if not path.exists():
            return None
        record = BlueprintRecord.from_dict(json.loads(path.read_text()))
        self._cache[blueprint_id] = record
        return record

    def _store(self, record: BlueprintRecord) -> BlueprintRecord:
        self._record_path(record.id).write_text(json.dumps(record.to_dict(), indent=2))
        stored = BlueprintRecord.from_dict(record.to_dict())
        self._cache[record.id] = stored
        return BlueprintRecord.from_dict(stored.to_dict())

    def clear_caches(self) -> None:
        self._cache.clear()

    def fetch(self, kind: BlueprintKind, blueprint_id: str,
              on_success: SuccessCallback, on_failure: FailureCallback) -> None:
        record = self._load(blueprint_id) if blueprint_id else None
        if record is None or record.kind != kind:
            self._dispatch(on_failure, f"{kind.value.capitalize()} {blueprint_id!r} not found")
            return
        self._dispatch(on_success, BlueprintRecord.from_dict(record.to_dict()))

    def save(self, record: BlueprintRecord,
             on_success: SuccessCallback, on_failure: FailureCallback) -> None:
        existing = self._load(record.id) if record.id else None
        if existing is None:
            self._dispatch(on_failure, f"Cannot update {record.id!r}: record does not exist")
            return
        if not record.image_url:
            self._dispatch(on_failure, "imageUrl is required")
            return

        updated = BlueprintRecord.from_dict(record.to_dict())
        updated.version = existing.version + 1 if record.asset_url != existing.asset_url else existing.version
        self._dispatch(on_success, self._store(updated))

    def create(self, record: BlueprintRecord,
               on_success: SuccessCallback, on_failure: FailureCallback) -> None:
        if not record.image_url:
            self._dispatch(on_failure, "imageUrl is required")
            return
        if not record.asset_url:
            self._dispatch(on_failure, "assetUrl is required")
            return
        if record.id and self._load(record.id) is not None:
            self._dispatch(on_failure, f"Blueprint {record.id!r} already exists")
            return

        created = BlueprintRecord.from_dict(record.to_dict())
        created.id = record.id or new_blueprint_id(record.kind)
        created.version = 1
        self._dispatch(on_success, self._store(created))


class SandboxFileTransfer:
    """
    Versioned file store in a local directory.

    Copies in ``chunk_size`` pieces, reporting progress after each chunk and
    checking the cancel query before each one.
    """

    def __init__(self, root: Union[str, Path], chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        self.files_dir = Path(root) / "files"
        self.files_dir.mkdir(parents=True, exist_ok=True)
        self.chunk_size = chunk_size

    def _next_version(self, file_id: str) -> int:
        file_dir = self.files_dir / file_id
        if not file_dir.exists():
            return 1
        versions = [int(p.name) for p in file_dir.iterdir() if p.is_dir() and p.name.isdigit()]
        return max(versions, default=0) + 1

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
        source = Path(local_path)
        file_id = existing_file_id or RemoteFileReference.new_file_id()
        version = self._next_version(file_id)
        version_dir = self.files_dir / file_id / str(version)
        version_dir.mkdir(parents=True, exist_ok=True)
        (version_dir / "name").write_text(friendly_name)
        target = version_dir / "file"

        total = source.stat().st_size
        done = 0
        on_status(f"Uploading {file_kind}", friendly_name)
        on_progress(done, total)

        try:
            with open(source, "rb") as src, open(target, "wb") as dst:
                while True:
                    if cancel_query():
                        raise UploadCancelledError(f"{file_kind} upload cancelled at {done}/{total} bytes")
                    chunk = src.read(self.chunk_size)
                    if not chunk:
                        break
                    dst.write(chunk)
                    done += len(chunk)
                    on_progress(done, total)
                    await asyncio.sleep(0)
        except BaseException:
            shutil.rmtree(version_dir, ignore_errors=True)
            raise

        return RemoteFileReference.build_url(self.files_dir.as_uri(), file_id, version)
