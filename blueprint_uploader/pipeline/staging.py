"""
Staging of build outputs.

Uploads never read the build output directly; each artifact is first copied
to a deterministic path keyed by blueprint id, version and environment tags.
A leftover from an aborted run at the same path is replaced, never appended
to.
"""

import shutil
from pathlib import Path
from typing import Union

from blueprint_uploader.utils.config import UploaderConfig
from blueprint_uploader.utils.logging import get_logger, log_function_call

logger = get_logger(__name__)

DEFAULT_PACKAGE_EXTENSION = ".unitypackage"


def staging_path(
    config: UploaderConfig,
    blueprint_id: str,
    version: int,
    platform: str,
    extension: str,
) -> Path:
    """
    Deterministic staging location for one artifact.

    Example:
        ``<staging>/wrld_1_3_2022.3.22f1_4_standalonewindows_release.vrcw``
    """
    name = (
        f"{blueprint_id}_{version}_{config.host_version}_{config.asset_format_version}_"
        f"{platform}_{config.server_environment}{extension}"
    )
    return Path(config.staging_dir) / name


@log_function_call
def stage_file(source: Union[str, Path], target: Union[str, Path]) -> str:
    """
    Copy ``source`` to ``target``, deleting any file already at ``target``.

    Returns:
        The target path as a string
    """
    target = Path(target)
    target.parent.mkdir(parents=True, exist_ok=True)
    if target.exists():
        logger.debug(f"Removing stale staged file {target}")
        target.unlink()
    shutil.copyfile(source, target)
    return str(target)


def stage_asset_bundle(config: UploaderConfig, asset_bundle_path: str, blueprint_id: str,
                       version: int, platform: str) -> str:
    extension = Path(asset_bundle_path).suffix
    target = staging_path(config, blueprint_id, version, platform, extension)
    return stage_file(asset_bundle_path, target)


def stage_unity_package(config: UploaderConfig, package_path: str, blueprint_id: str,
                        version: int, platform: str) -> str:
    """Packages always stage as ``.unitypackage`` so they never share the asset bundle's path."""
    target = staging_path(config, blueprint_id, version, platform, DEFAULT_PACKAGE_EXTENSION)
    return stage_file(package_path, target)


def should_upload_package(package_path: str) -> bool:
    """A package is uploaded only when a path is given and the file exists."""
    return bool(package_path) and Path(package_path).is_file()


def remove_staged(*paths: str) -> None:
    for path in paths:
        if not path:
            continue
        try:
            Path(path).unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove staged file {path}: {e}")
