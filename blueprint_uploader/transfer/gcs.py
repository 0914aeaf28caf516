"""
Google Cloud Storage file transfer.

Stores each upload as ``files/<file_id>/<version>/file`` in a bucket using a
resumable upload, so large asset bundles go up in ``chunk_size`` pieces.
Progress and cancellation hook into the reads the upload makes from the
local file.
"""

import asyncio
from pathlib import Path
from typing import BinaryIO, Optional

from google.cloud import storage

from blueprint_uploader.errors import UploadCancelledError
from blueprint_uploader.models import RemoteFileReference
from blueprint_uploader.remote.interfaces import TransferProgressSink, TransferStatusSink
from blueprint_uploader.status.cancellation import CancelQuery
from blueprint_uploader.utils.config import DEFAULT_CHUNK_SIZE
from blueprint_uploader.utils.logging import get_logger

logger = get_logger(__name__)

# GCS requires resumable chunk sizes to be multiples of 256 KiB
CHUNK_ALIGNMENT = 256 * 1024


class _ProgressReader:
    """File wrapper reporting bytes read and aborting when cancel is requested."""

    def __init__(self, stream: BinaryIO, total: int, on_progress: TransferProgressSink,
                 cancel_query: CancelQuery) -> None:
        self._stream = stream
        self._total = total
        self._on_progress = on_progress
        self._cancel_query = cancel_query
        self._done = 0

    def read(self, size: int = -1) -> bytes:
        if self._cancel_query():
            raise UploadCancelledError(f"Upload cancelled at {self._done}/{self._total} bytes")
        data = self._stream.read(size)
        self._done = max(self._done, self._stream.tell())
        self._on_progress(self._done, self._total)
        return data

    def tell(self) -> int:
        return self._stream.tell()

    def seek(self, offset: int, whence: int = 0) -> int:
        return self._stream.seek(offset, whence)


class GCSFileTransfer:
    """
    FileTransfer collaborator writing to a GCS bucket.

    Args:
        bucket_name: Target bucket (without gs:// prefix)
        chunk_size: Resumable upload chunk size, rounded up to 256 KiB
        client: Optional pre-built storage client
        timeout_seconds: Per-request timeout
    """

    def __init__(
        self,
        bucket_name: str,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        client: Optional[storage.Client] = None,
        timeout_seconds: int = 300,
    ) -> None:
        if not bucket_name:
            raise ValueError("Bucket name cannot be empty")
        self.bucket_name = bucket_name
        self.chunk_size = max(CHUNK_ALIGNMENT, -(-chunk_size // CHUNK_ALIGNMENT) * CHUNK_ALIGNMENT)
        self.timeout_seconds = timeout_seconds
        self._client = client

    @property
    def client(self) -> storage.Client:
        if self._client is None:
            self._client = storage.Client()
        return self._client

    @property
    def base_url(self) -> str:
        return f"gs://{self.bucket_name}/files"

    def _next_version(self, bucket: storage.Bucket, file_id: str) -> int:
        prefix = f"files/{file_id}/"
        versions = []
        for blob in self.client.list_blobs(bucket, prefix=prefix):
            segment = blob.name[len(prefix):].split("/", 1)[0]
            if segment.isdigit():
                versions.append(int(segment))
        return max(versions, default=0) + 1

    def _upload_blocking(
        self,
        local_path: str,
        existing_file_id: str,
        file_kind: str,
        friendly_name: str,
        on_progress: TransferProgressSink,
        cancel_query: CancelQuery,
    ) -> str:
        bucket = self.client.bucket(self.bucket_name)
        file_id = existing_file_id or RemoteFileReference.new_file_id()
        version = self._next_version(bucket, file_id) if existing_file_id else 1

        blob = bucket.blob(f"files/{file_id}/{version}/file", chunk_size=self.chunk_size)
        blob.metadata = {"friendly_name": friendly_name, "file_kind": file_kind}

        total = Path(local_path).stat().st_size
        logger.info(f"Uploading {total} bytes to gs://{self.bucket_name}/{blob.name}")

        with open(local_path, "rb") as stream:
            reader = _ProgressReader(stream, total, on_progress, cancel_query)
            blob.upload_from_file(reader, size=total, timeout=self.timeout_seconds)

        return RemoteFileReference.build_url(self.base_url, file_id, version)

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
        on_status(f"Uploading {file_kind}", friendly_name)
        return await asyncio.to_thread(
            self._upload_blocking,
            local_path,
            existing_file_id,
            file_kind,
            friendly_name,
            on_progress,
            cancel_query,
        )
