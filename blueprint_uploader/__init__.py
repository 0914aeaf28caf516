"""
Blueprint Uploader

Uploads a world or avatar blueprint (asset bundle, optional unity package,
preview image) to a content-hosting service and commits its metadata.

This package provides modular components for each part of an upload run:
- models: blueprint records, sessions and upload states
- status: status sinks and cancellation tokens
- remote: callback-to-async adapter, collaborator interfaces, sandbox backend
- transfer: file upload client and GCS file transfer
- pipeline: staging, resolution, commits and the pipeline controller
- utils: logging, configuration, metrics and image helpers
"""

__version__ = "0.1.0"

from blueprint_uploader.utils.logging import setup_logging

setup_logging()
