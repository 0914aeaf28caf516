"""
Environment configuration loader for blueprint-uploader.

Loads settings from a .env file or the process environment. Everything has
a default so a bare checkout can drive the sandbox backend without setup.
"""

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

DEFAULT_HOST_VERSION = "2022.3.22f1"
DEFAULT_ASSET_FORMAT_VERSION = 4
DEFAULT_SERVER_ENV = "release"
DEFAULT_PLATFORM = "standalonewindows"
DEFAULT_CAPACITY = 16
DEFAULT_POLL_INTERVAL = 0.033
DEFAULT_CHUNK_SIZE = 1024 * 1024


@dataclass
class UploaderConfig:
    """Uploader environment configuration."""

    # Staging of build outputs
    staging_dir: str

    # Tags that key staging paths and friendly file names
    host_version: str = DEFAULT_HOST_VERSION
    asset_format_version: int = DEFAULT_ASSET_FORMAT_VERSION
    server_environment: str = DEFAULT_SERVER_ENV
    platform: str = DEFAULT_PLATFORM

    # Blueprint defaults
    default_capacity: int = DEFAULT_CAPACITY

    # Remote call adapter
    poll_interval: float = DEFAULT_POLL_INTERVAL

    # File transfer
    sandbox_dir: Optional[str] = None
    gcs_bucket: Optional[str] = None
    chunk_size: int = DEFAULT_CHUNK_SIZE

    @classmethod
    def from_env(cls) -> "UploaderConfig":
        """
        Load configuration from environment variables.

        Loads a .env file from the repository root if present, then reads
        os.environ.

        Returns:
            UploaderConfig instance with loaded values

        Raises:
            ValueError: If a numeric variable cannot be parsed
        """
        env_path = Path(__file__).parent.parent.parent / ".env"
        if env_path.exists():
            load_dotenv(env_path)

        default_staging = str(Path(tempfile.gettempdir()) / "blueprint-uploader")

        return cls(
            staging_dir=os.getenv("BLUEPRINT_STAGING_DIR", default_staging),
            host_version=os.getenv("BLUEPRINT_HOST_VERSION", DEFAULT_HOST_VERSION),
            asset_format_version=_int_env(
                "BLUEPRINT_ASSET_FORMAT_VERSION", DEFAULT_ASSET_FORMAT_VERSION
            ),
            server_environment=os.getenv("BLUEPRINT_SERVER_ENV", DEFAULT_SERVER_ENV),
            platform=os.getenv("BLUEPRINT_PLATFORM", DEFAULT_PLATFORM),
            default_capacity=_int_env("BLUEPRINT_DEFAULT_CAPACITY", DEFAULT_CAPACITY),
            poll_interval=_float_env("BLUEPRINT_POLL_INTERVAL", DEFAULT_POLL_INTERVAL),
            sandbox_dir=os.getenv("BLUEPRINT_SANDBOX_DIR"),
            gcs_bucket=os.getenv("GCS_BUCKET"),
            chunk_size=_int_env("TRANSFER_CHUNK_SIZE", DEFAULT_CHUNK_SIZE),
        )


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got: {raw!r})") from None


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number (got: {raw!r})") from None


# Global config instance (lazy-loaded)
_config: Optional[UploaderConfig] = None


def get_config() -> UploaderConfig:
    """
    Get or create the uploader configuration singleton.

    Example:
        >>> config = get_config()
        >>> print(config.platform)
        standalonewindows
    """
    global _config
    if _config is None:
        _config = UploaderConfig.from_env()
    return _config
