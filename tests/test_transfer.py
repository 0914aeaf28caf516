"""
Unit tests for the file upload client and file-transfer collaborators.

GCS is exercised through a mocked storage client; no credentials needed.
"""

import asyncio
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from blueprint_uploader.errors import UploadCancelledError
from blueprint_uploader.models import BlueprintKind, BlueprintRecord, RemoteFileReference
from blueprint_uploader.remote.sandbox import SandboxFileTransfer
from blueprint_uploader.status import StatusReporter
from blueprint_uploader.transfer import (
    FileUploadClient,
    GCSFileTransfer,
    format_elapsed,
    friendly_file_name,
)


def make_client(transfer, reporter, config, metrics, cancel_query=None) -> FileUploadClient:
    return FileUploadClient(transfer, reporter, cancel_query, config, metrics)


class TestFriendlyNames:
    """Test naming of remote files."""

    def test_world_named_after_world(self, config):
        """Test that world files are named after the world."""
        record = BlueprintRecord(id="wrld_1", name="Garden")

        name = friendly_file_name("Asset bundle", record, config, "android")

        assert name == "World - Garden - Asset bundle - 2022.3.22f1_4_android_release"

    def test_unnamed_world_falls_back_to_id(self, config):
        """Test that a world being created is named after its id."""
        record = BlueprintRecord(id="wrld_new")

        name = friendly_file_name("Asset bundle", record, config, "android")

        assert name == "World - wrld_new - Asset bundle - 2022.3.22f1_4_android_release"

    def test_avatar_named_after_id(self, config):
        """Test that avatar files are named after the avatar id."""
        record = BlueprintRecord(id="avtr_1", kind=BlueprintKind.AVATAR, name="Fox")

        name = friendly_file_name("Image", record, config)

        assert name.startswith("Avatar - avtr_1 - Image - ")
        assert name.endswith("_standalonewindows_release")

    def test_format_elapsed(self):
        """Test minutes and seconds formatting."""
        assert format_elapsed(0.4) == "00:00"
        assert format_elapsed(75.9) == "01:15"


class TestFileUploadClient:
    """Test FileUploadClient.upload_file."""

    def test_empty_path_is_soft_failure(self, transfer, reporter, config, metrics):
        """An empty path logs and returns no URL without calling the transfer."""
        client = make_client(transfer, reporter, config, metrics)

        url = asyncio.run(client.upload_file("", "", "World - x - Image", "Image"))

        assert url == ""
        assert transfer.uploads == []

    def test_missing_file_is_soft_failure(self, transfer, reporter, config, metrics, tmp_path):
        """Test that a missing file returns no URL without calling the transfer."""
        client = make_client(transfer, reporter, config, metrics)

        url = asyncio.run(client.upload_file(str(tmp_path / "missing.png"), "", "n", "Image"))

        assert url == ""
        assert transfer.uploads == []

    def test_new_file_when_no_existing_url(self, transfer, reporter, tracker, config, metrics, asset_bundle):
        """Test that an upload without an existing URL creates a new file."""
        client = make_client(transfer, reporter, config, metrics)

        url = asyncio.run(client.upload_file(str(asset_bundle), "", "World - x - Asset bundle", "Asset bundle"))

        assert transfer.uploads[0]["existing_file_id"] == ""
        assert RemoteFileReference.parse_file_id(url).startswith("file_")
        assert tracker.header == "Upload Successful"
        assert tracker.status.startswith("Finished upload in ")

    def test_existing_url_appends_version(self, transfer, reporter, config, metrics, asset_bundle):
        """Uploading against an existing URL reuses its file id with a new version."""
        client = make_client(transfer, reporter, config, metrics)

        first = asyncio.run(client.upload_file(str(asset_bundle), "", "n", "Asset bundle"))
        second = asyncio.run(client.upload_file(str(asset_bundle), first, "n", "Asset bundle"))

        file_id = RemoteFileReference.parse_file_id(first)
        assert transfer.uploads[1]["existing_file_id"] == file_id
        assert RemoteFileReference.parse_file_id(second) == file_id
        assert first.endswith("/1/file")
        assert second.endswith("/2/file")

    def test_progress_is_monotonic_with_constant_total(self, transfer, config, metrics, asset_bundle):
        """Test that progress starts at zero, never decreases and keeps one total."""
        progress = []
        reporter = StatusReporter(on_upload_progress=lambda done, total: progress.append((done, total)))
        client = make_client(transfer, reporter, config, metrics)

        asyncio.run(client.upload_file(str(asset_bundle), "", "n", "Asset bundle"))

        size = asset_bundle.stat().st_size
        assert progress[0] == (0, size)
        assert progress[-1] == (size, size)
        assert all(total == size for _, total in progress)
        dones = [done for done, _ in progress]
        assert dones == sorted(dones)

    def test_regressing_collaborator_progress_is_clamped(self, reporter, tracker, config, metrics, asset_bundle):
        """Test that regressing or overshooting progress is clamped."""
        progress = []
        reporter.on_upload_progress = lambda done, total: progress.append((done, total))

        class JitteryTransfer:
            async def upload_file(self, local_path, file_id, kind, name, on_status, on_progress, cancel_query):
                for done in (10, 5, 30, 999):
                    on_progress(done, 12345)
                return "file:///remote/file_abc/1/file"

        client = make_client(JitteryTransfer(), reporter, config, metrics)
        asyncio.run(client.upload_file(str(asset_bundle), "", "n", "Asset bundle"))

        size = asset_bundle.stat().st_size
        assert progress == [(0, size), (10, size), (30, size), (size, size)]

    def test_cancellation_propagates(self, transfer, reporter, config, metrics, asset_bundle):
        """Test that a cancelled transfer raises UploadCancelledError."""
        client = make_client(transfer, reporter, config, metrics,
                             cancel_query=lambda: transfer.chunks_written >= 2)

        with pytest.raises(UploadCancelledError):
            asyncio.run(client.upload_file(str(asset_bundle), "", "n", "Asset bundle"))

        assert transfer.chunks_written == 2

    def test_transfer_errors_propagate(self, reporter, config, metrics, asset_bundle):
        """Test that transfer errors reach the caller unchanged."""
        class BrokenTransfer:
            async def upload_file(self, *args):
                raise ConnectionError("connection reset")

        client = make_client(BrokenTransfer(), reporter, config, metrics)

        with pytest.raises(ConnectionError):
            asyncio.run(client.upload_file(str(asset_bundle), "", "n", "Asset bundle"))

    def test_empty_url_from_transfer_returns_empty(self, transfer, reporter, config, metrics, asset_bundle):
        """Test that an empty URL from the transfer is returned as empty."""
        transfer.empty_for.add("Asset bundle")
        client = make_client(transfer, reporter, config, metrics)

        assert asyncio.run(client.upload_file(str(asset_bundle), "", "n", "Asset bundle")) == ""

    def test_metrics_recorded(self, transfer, reporter, config, metrics, asset_bundle):
        """Test that a successful upload is counted with its size."""
        client = make_client(transfer, reporter, config, metrics)

        asyncio.run(client.upload_file(str(asset_bundle), "", "n", "Asset bundle"))

        successes = metrics.registry.get_sample_value(
            "blueprint_file_uploads_total", {"file_kind": "Asset bundle", "status": "success"}
        )
        uploaded = metrics.registry.get_sample_value("blueprint_upload_bytes_total")
        assert successes == 1.0
        assert uploaded == asset_bundle.stat().st_size

    def test_upload_image_uses_record_image(self, transfer, reporter, config, metrics, preview_image):
        """Test that image uploads append to the record's image file."""
        client = make_client(transfer, reporter, config, metrics)
        record = BlueprintRecord(id="wrld_1", name="Garden", image_url="file:///r/file_img-9/3/file")

        url = asyncio.run(client.upload_image(record, str(preview_image)))

        assert transfer.uploads[0]["file_kind"] == "Image"
        assert transfer.uploads[0]["existing_file_id"] == "file_img-9"
        assert url.endswith("/1/file")

    def test_upload_image_without_path(self, transfer, reporter, config, metrics):
        """Test that an empty image path uploads nothing."""
        client = make_client(transfer, reporter, config, metrics)

        assert asyncio.run(client.upload_image(BlueprintRecord(), "")) == ""
        assert transfer.uploads == []


class TestSandboxFileTransfer:
    """Test the local versioned file store."""

    def _upload(self, transfer, path, file_id="", cancel_query=lambda: False, progress=None):
        statuses = []
        return asyncio.run(transfer.upload_file(
            str(path), file_id, "Asset bundle", "World - Garden - Asset bundle",
            lambda status, sub=None: statuses.append((status, sub)),
            progress if progress is not None else (lambda done, total: None),
            cancel_query,
        ))

    def test_stored_copy_matches_source(self, tmp_path, asset_bundle):
        """Test that the stored file matches the source bytes."""
        transfer = SandboxFileTransfer(tmp_path / "store", chunk_size=8)

        url = self._upload(transfer, asset_bundle)

        stored = Path(url[len("file://"):])
        assert stored.read_bytes() == asset_bundle.read_bytes()

    def test_progress_per_chunk(self, tmp_path, asset_bundle):
        """Test that progress is reported after every chunk."""
        transfer = SandboxFileTransfer(tmp_path / "store", chunk_size=10)
        progress = []

        self._upload(transfer, asset_bundle, progress=lambda d, t: progress.append(d))

        assert progress == [0, 10, 20, 30, 40]

    def test_cancel_removes_partial_version(self, tmp_path, asset_bundle):
        """Test that a cancelled upload leaves no partial file."""
        transfer = SandboxFileTransfer(tmp_path / "store", chunk_size=10)
        progress = []

        with pytest.raises(UploadCancelledError):
            self._upload(transfer, asset_bundle,
                         progress=lambda d, t: progress.append(d),
                         cancel_query=lambda: len(progress) >= 2)

        assert progress == [0, 10]
        leftovers = [p for p in (tmp_path / "store" / "files").rglob("file") if p.is_file()]
        assert leftovers == []


class TestGCSFileTransfer:
    """Test GCS transfer against a mocked storage client."""

    def _client(self, existing_names=()):
        client = MagicMock()
        blob = client.bucket.return_value.blob.return_value
        client.list_blobs.return_value = [SimpleNamespace(name=name) for name in existing_names]

        def fake_upload(reader, size, timeout):
            while reader.read(16):
                pass

        blob.upload_from_file.side_effect = fake_upload
        return client, blob

    def test_empty_bucket_rejected(self):
        """Test that an empty bucket name raises ValueError."""
        with pytest.raises(ValueError, match="empty"):
            GCSFileTransfer("")

    def test_chunk_size_aligned(self):
        """Test that chunk sizes round up to 256 KiB multiples."""
        transfer = GCSFileTransfer("b", chunk_size=1000, client=MagicMock())
        assert transfer.chunk_size == 256 * 1024

        transfer = GCSFileTransfer("b", chunk_size=600 * 1024, client=MagicMock())
        assert transfer.chunk_size == 768 * 1024

    def test_new_file_uploaded_as_version_one(self, asset_bundle):
        """Test that a new file is stored as version 1."""
        client, blob = self._client()
        transfer = GCSFileTransfer("blueprints", client=client)
        progress = []

        url = asyncio.run(transfer.upload_file(
            str(asset_bundle), "", "Asset bundle", "World - Garden - Asset bundle",
            lambda s, sub=None: None, lambda d, t: progress.append((d, t)), lambda: False,
        ))

        file_id = RemoteFileReference.parse_file_id(url)
        client.bucket.return_value.blob.assert_called_once_with(
            f"files/{file_id}/1/file", chunk_size=transfer.chunk_size
        )
        assert url == f"gs://blueprints/files/{file_id}/1/file"
        assert blob.metadata["file_kind"] == "Asset bundle"
        assert progress[-1] == (asset_bundle.stat().st_size, asset_bundle.stat().st_size)
        client.list_blobs.assert_not_called()

    def test_existing_file_gets_next_version(self, asset_bundle):
        """Test that an existing file gets the next free version."""
        client, _ = self._client([
            "files/file_abc/1/file",
            "files/file_abc/2/file",
        ])
        transfer = GCSFileTransfer("blueprints", client=client)

        url = asyncio.run(transfer.upload_file(
            str(asset_bundle), "file_abc", "Asset bundle", "n",
            lambda s, sub=None: None, lambda d, t: None, lambda: False,
        ))

        assert url == "gs://blueprints/files/file_abc/3/file"

    def test_cancel_during_upload(self, asset_bundle):
        """Test that a cancel request stops the upload."""
        client, _ = self._client()
        transfer = GCSFileTransfer("blueprints", client=client)

        with pytest.raises(UploadCancelledError):
            asyncio.run(transfer.upload_file(
                str(asset_bundle), "", "Asset bundle", "n",
                lambda s, sub=None: None, lambda d, t: None, lambda: True,
            ))

