"""
File transfer.

Provides the FileUploadClient the pipeline uploads through and a Google
Cloud Storage backed file-transfer collaborator.
"""

from .client import FileUploadClient, format_elapsed, friendly_file_name
from .gcs import GCSFileTransfer

__all__ = [
    "FileUploadClient",
    "GCSFileTransfer",
    "format_elapsed",
    "friendly_file_name",
]
