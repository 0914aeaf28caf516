"""Unit tests for blueprint data types."""

from blueprint_uploader.models import (
    BlueprintInfo,
    BlueprintKind,
    BlueprintRecord,
    RemoteFileReference,
    UploadOutcome,
    UploadSession,
    UploadState,
)


class TestBlueprintRecord:
    """Test BlueprintRecord dataclass."""

    def test_defaults_describe_unassigned_world(self):
        """A fresh record has no id and version 0."""
        record = BlueprintRecord()

        assert record.id == ""
        assert record.kind == BlueprintKind.WORLD
        assert record.version == 0
        assert record.tags == []
        assert record.release_status == "private"

    def test_next_version_is_at_least_one(self):
        """Version for the next upload is max(1, version + 1)."""
        assert BlueprintRecord(version=0).next_version() == 1
        assert BlueprintRecord(version=-5).next_version() == 1
        assert BlueprintRecord(version=7).next_version() == 8

    def test_dict_round_trip_keeps_kind_and_tags(self):
        """to_dict/from_dict preserve the enum kind and the tag list."""
        record = BlueprintRecord(id="avtr_1", kind=BlueprintKind.AVATAR, tags=["a", "b"], version=3)

        data = record.to_dict()
        restored = BlueprintRecord.from_dict(data)

        assert data["kind"] == "avatar"
        assert restored == record

    def test_from_dict_ignores_unknown_fields(self):
        """Fields the client does not model are dropped."""
        restored = BlueprintRecord.from_dict({"id": "wrld_1", "occupants": 12, "tags": None})

        assert restored.id == "wrld_1"
        assert restored.tags == []


class TestBlueprintInfo:
    """Test metadata override application."""

    def test_apply_to_copies_fields(self):
        """Override replaces name, description, tags and capacity."""
        info = BlueprintInfo(name="Garden", description="Quiet", tags=["chill"], capacity=24)
        record = BlueprintRecord(name="Old", capacity=16)

        info.apply_to(record)

        assert record.name == "Garden"
        assert record.description == "Quiet"
        assert record.capacity == 24
        assert record.tags == ["chill"]
        assert record.tags is not info.tags


class TestUploadState:
    """Test UploadState terminal classification."""

    def test_terminal_states(self):
        """Test which states end a run."""
        assert UploadState.FINISHED.is_terminal
        assert UploadState.FAILED.is_terminal
        assert UploadState.CANCELLED.is_terminal
        assert not UploadState.IDLE.is_terminal
        assert not UploadState.UPLOADING.is_terminal


class TestUploadSessionAndOutcome:
    """Test session and outcome helpers."""

    def test_sessions_get_distinct_ids(self):
        """Test that every session gets its own id."""
        first = UploadSession(asset_bundle_path="a.vrcw")
        second = UploadSession(asset_bundle_path="a.vrcw")

        assert first.session_id != second.session_id
        assert first.is_update is False

    def test_outcome_success_only_when_finished(self):
        """Test that only finished outcomes are successful."""
        assert UploadOutcome(UploadState.FINISHED, blueprint_id="wrld_1").success
        assert not UploadOutcome(UploadState.FAILED).success
        assert not UploadOutcome(UploadState.CANCELLED).success


class TestRemoteFileReference:
    """Test file id extraction from remote URLs."""

    def test_parse_file_id_from_url(self):
        """Test extracting the file id from a service URL."""
        url = "https://api.example.com/file/file_3f2a9c1e-77aa-4bb2-9d1c-0e5f6a7b8c9d/4/file"
        assert RemoteFileReference.parse_file_id(url) == "file_3f2a9c1e-77aa-4bb2-9d1c-0e5f6a7b8c9d"

    def test_parse_file_id_missing(self):
        """URLs without an id, empty strings and None yield an empty id."""
        assert RemoteFileReference.parse_file_id("https://cdn.example.com/image.png") == ""
        assert RemoteFileReference.parse_file_id("") == ""
        assert RemoteFileReference.parse_file_id(None) == ""

    def test_build_url_embeds_parseable_id(self):
        """Test that built URLs parse back to their file id."""
        file_id = RemoteFileReference.new_file_id()
        url = RemoteFileReference.build_url("gs://bucket/files/", file_id, 2)

        assert url == f"gs://bucket/files/{file_id}/2/file"
        assert RemoteFileReference.parse_file_id(url) == file_id

    def test_parse_file_id_matches_whole_segments(self):
        """Directory names that merely contain ``file_`` are not ids."""
        url = "file:///tmp/run_new_file_upload/files/file_abc-1/3/file"
        assert RemoteFileReference.parse_file_id(url) == "file_abc-1"
