"""Recording sandbox collaborators and record builders shared by the tests."""

from typing import Dict, List, Set

from blueprint_uploader.models import BlueprintKind, BlueprintRecord, UserIdentity
from blueprint_uploader.remote.sandbox import SandboxBlueprintApi, SandboxFileTransfer

TEST_USER = UserIdentity(id="usr_test", display_name="Test User")


class RecordingApi(SandboxBlueprintApi):
    """Sandbox API that logs every call and can be told to fail an operation."""

    def __init__(self, root, **kwargs) -> None:
        super().__init__(root, **kwargs)
        self.calls: List[str] = []
        self.fail_with: Dict[str, str] = {}

    def fetch(self, kind, blueprint_id, on_success, on_failure) -> None:
        self.calls.append("fetch")
        super().fetch(kind, blueprint_id, on_success, on_failure)

    def save(self, record, on_success, on_failure) -> None:
        self.calls.append("save")
        if "save" in self.fail_with:
            on_failure(self.fail_with["save"])
            return
        super().save(record, on_success, on_failure)

    def create(self, record, on_success, on_failure) -> None:
        self.calls.append("create")
        if "create" in self.fail_with:
            on_failure(self.fail_with["create"])
            return
        super().create(record, on_success, on_failure)

    @property
    def commit_calls(self) -> List[str]:
        return [call for call in self.calls if call in ("save", "create")]


class RecordingTransfer(SandboxFileTransfer):
    """Sandbox transfer that logs uploads and can return no URL for chosen file kinds."""

    def __init__(self, root, chunk_size: int = 4) -> None:
        super().__init__(root, chunk_size=chunk_size)
        self.uploads: List[Dict[str, str]] = []
        self.empty_for: Set[str] = set()
        self.chunks_written = 0

    async def upload_file(self, local_path, existing_file_id, file_kind, friendly_name,
                          on_status, on_progress, cancel_query) -> str:
        self.uploads.append({
            "local_path": local_path,
            "existing_file_id": existing_file_id,
            "file_kind": file_kind,
            "friendly_name": friendly_name,
        })
        if file_kind in self.empty_for:
            return ""

        def counting_progress(done: int, total: int) -> None:
            if done:
                self.chunks_written += 1
            on_progress(done, total)

        return await super().upload_file(local_path, existing_file_id, file_kind, friendly_name,
                                         on_status, counting_progress, cancel_query)

    @property
    def kinds(self) -> List[str]:
        return [upload["file_kind"] for upload in self.uploads]


def seed_record(api: SandboxBlueprintApi, record: BlueprintRecord) -> BlueprintRecord:
    """Create ``record`` in the sandbox store, bypassing the pipeline."""
    created: List[BlueprintRecord] = []

    def fail(error: str) -> None:
        raise AssertionError(error)

    SandboxBlueprintApi.create(api, record, created.append, fail)
    return created[0]


def existing_world(blueprint_id: str = "wrld_existing", **overrides) -> BlueprintRecord:
    values = dict(
        id=blueprint_id,
        kind=BlueprintKind.WORLD,
        name="Rooftop Garden",
        description="A quiet place",
        tags=["chill"],
        capacity=24,
        author_id=TEST_USER.id,
        author_name=TEST_USER.display_name,
        asset_url="file:///remote/file_asset-0001/1/file",
        unity_package_url="file:///remote/file_pkg-0001/1/file",
        image_url="file:///remote/file_img-0001/1/file",
    )
    values.update(overrides)
    return BlueprintRecord(**values)
