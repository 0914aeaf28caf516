"""
Upload pipeline.

Provides the UploadPipeline controller together with its stages: artifact
staging, fetch-or-create resolution, and create/update commits.
"""

from .commit import BlueprintCommitter
from .controller import UploadPipeline
from .resolver import BlueprintResolver
from .staging import should_upload_package, stage_file, staging_path

__all__ = [
    "BlueprintCommitter",
    "BlueprintResolver",
    "UploadPipeline",
    "should_upload_package",
    "stage_file",
    "staging_path",
]
