"""
Upload manifest loader and validator.

An upload manifest describes one upload run in YAML, so hosts and CI jobs
can keep the run inputs next to the build outputs.

Example manifest (upload.yaml):
    ```yaml
    version: "1.0"
    kind: world
    platform: standalonewindows

    asset_bundle: build/scene.vrcw
    unity_package: build/scene.unitypackage   # optional
    image: build/preview.png                  # optional

    info:                                     # optional metadata override
      name: Rooftop Garden
      description: A quiet place above the city
      tags: [chill, garden]
      capacity: 24
      image: build/new_preview.png
    ```

Usage:
    >>> manifest = load_manifest("upload.yaml")
    >>> errors = validate_manifest(manifest)
    >>> if not errors:
    ...     session = session_from_manifest(manifest, base_dir="build")
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from blueprint_uploader.models import BlueprintInfo, BlueprintKind, UploadSession
from blueprint_uploader.utils.config import DEFAULT_CAPACITY
from blueprint_uploader.utils.logging import get_logger

logger = get_logger(__name__)

SUPPORTED_VERSIONS = ["1.0"]
VALID_KINDS = [kind.value for kind in BlueprintKind]
MAX_CAPACITY = 80


@dataclass
class ConfigError:
    """Validation error in a manifest."""

    field: str
    message: str
    value: Optional[Any] = None

    def __str__(self) -> str:
        if self.value is not None:
            return f"{self.field}: {self.message} (got: {self.value})"
        return f"{self.field}: {self.message}"


def load_manifest(manifest_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load an upload manifest from YAML.

    Raises:
        FileNotFoundError: If the manifest doesn't exist
        ValueError: If the path is not a file or the manifest is empty
        yaml.YAMLError: If the YAML is malformed
    """
    path = Path(manifest_path)
    logger.info(f"Loading upload manifest from: {path}")

    if not path.exists():
        raise FileNotFoundError(f"Manifest not found: {path}")
    if not path.is_file():
        raise ValueError(f"Manifest path is not a file: {path}")

    try:
        with open(path, "r") as f:
            manifest = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse YAML: {e}")
        raise

    if manifest is None:
        raise ValueError("Manifest file is empty")
    if not isinstance(manifest, dict):
        raise ValueError(f"Manifest must be a mapping, got {type(manifest).__name__}")

    return dict(manifest)


def validate_manifest(manifest: Dict[str, Any]) -> List[ConfigError]:
    """
    Validate a manifest against the expected schema.

    Returns:
        List of validation errors (empty if valid)
    """
    errors: List[ConfigError] = []

    if "version" not in manifest:
        errors.append(ConfigError("version", "Missing required field"))
    elif str(manifest["version"]) not in SUPPORTED_VERSIONS:
        errors.append(
            ConfigError("version", f"Unsupported version (supported: {SUPPORTED_VERSIONS})",
                        manifest["version"])
        )

    kind = manifest.get("kind", BlueprintKind.WORLD.value)
    if kind not in VALID_KINDS:
        errors.append(ConfigError("kind", f"Invalid kind (valid: {VALID_KINDS})", kind))

    asset_bundle = manifest.get("asset_bundle")
    if not asset_bundle:
        errors.append(ConfigError("asset_bundle", "Missing required field"))
    elif not isinstance(asset_bundle, str):
        errors.append(ConfigError("asset_bundle", "Must be a string", type(asset_bundle).__name__))

    for optional in ("unity_package", "image", "platform"):
        value = manifest.get(optional)
        if value is not None and not isinstance(value, str):
            errors.append(ConfigError(optional, "Must be a string", type(value).__name__))

    if "info" in manifest:
        errors.extend(_validate_info(manifest["info"]))

    if errors:
        logger.warning(f"Manifest validation failed with {len(errors)} errors")
    return errors


def _validate_info(info: Any) -> List[ConfigError]:
    errors: List[ConfigError] = []

    if not isinstance(info, dict):
        errors.append(ConfigError("info", "Must be a mapping", type(info).__name__))
        return errors

    if not info.get("name"):
        errors.append(ConfigError("info.name", "Missing required field"))

    tags = info.get("tags", [])
    if not isinstance(tags, list) or not all(isinstance(tag, str) for tag in tags):
        errors.append(ConfigError("info.tags", "Must be a list of strings", tags))

    if "capacity" in info:
        capacity = info["capacity"]
        if not isinstance(capacity, int) or isinstance(capacity, bool):
            errors.append(ConfigError("info.capacity", "Must be an integer", type(capacity).__name__))
        elif not 1 <= capacity <= MAX_CAPACITY:
            errors.append(ConfigError("info.capacity", f"Must be between 1 and {MAX_CAPACITY}", capacity))

    return errors


def _resolve(path: Optional[str], base_dir: Optional[Path]) -> str:
    if not path:
        return ""
    if base_dir is None or Path(path).is_absolute():
        return path
    return str(base_dir / path)


def session_from_manifest(manifest: Dict[str, Any],
                          base_dir: Optional[Union[str, Path]] = None) -> UploadSession:
    """
    Build an UploadSession from a validated manifest.

    Relative paths are resolved against ``base_dir`` when given.

    Raises:
        ValueError: If the manifest does not validate
    """
    errors = validate_manifest(manifest)
    if errors:
        raise ValueError("Invalid manifest: " + "; ".join(str(error) for error in errors))

    base = Path(base_dir) if base_dir is not None else None

    info = None
    if "info" in manifest:
        raw = manifest["info"]
        info = BlueprintInfo(
            name=raw["name"],
            description=raw.get("description", ""),
            tags=list(raw.get("tags", [])),
            capacity=raw.get("capacity", DEFAULT_CAPACITY),
            new_image_path=_resolve(raw.get("image"), base),
        )

    return UploadSession(
        asset_bundle_path=_resolve(manifest["asset_bundle"], base),
        kind=BlueprintKind(manifest.get("kind", BlueprintKind.WORLD.value)),
        platform=manifest.get("platform") or "",
        unity_package_path=_resolve(manifest.get("unity_package"), base),
        image_path=_resolve(manifest.get("image"), base),
        info=info,
    )
