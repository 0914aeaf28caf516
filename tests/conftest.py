"""Shared fixtures for the blueprint uploader tests."""

from pathlib import Path

import pytest

from blueprint_uploader.models import BlueprintKind
from blueprint_uploader.remote.sandbox import FileProjectState, StaticIdentityProvider
from blueprint_uploader.status.reporter import StatusReporter, UploadStatusTracker
from blueprint_uploader.utils.config import UploaderConfig
from blueprint_uploader.utils.metrics import PrometheusMetrics
from tests.helpers import TEST_USER, RecordingApi, RecordingTransfer


@pytest.fixture
def config(tmp_path: Path) -> UploaderConfig:
    return UploaderConfig(staging_dir=str(tmp_path / "staging"), poll_interval=0.001)


@pytest.fixture
def metrics() -> PrometheusMetrics:
    return PrometheusMetrics(enabled=True)


@pytest.fixture
def tracker() -> UploadStatusTracker:
    return UploadStatusTracker()


@pytest.fixture
def reporter(tracker: UploadStatusTracker) -> StatusReporter:
    reporter = StatusReporter()
    reporter.attach(tracker)
    return reporter


@pytest.fixture
def sandbox_dir(tmp_path: Path) -> Path:
    return tmp_path / "sandbox"


@pytest.fixture
def api(sandbox_dir: Path) -> RecordingApi:
    return RecordingApi(sandbox_dir)


@pytest.fixture
def transfer(sandbox_dir: Path) -> RecordingTransfer:
    return RecordingTransfer(sandbox_dir)


@pytest.fixture
def identity() -> StaticIdentityProvider:
    return StaticIdentityProvider(TEST_USER)


@pytest.fixture
def project_state(tmp_path: Path) -> FileProjectState:
    return FileProjectState(tmp_path / "project" / "project.json", BlueprintKind.WORLD)


@pytest.fixture
def asset_bundle(tmp_path: Path) -> Path:
    path = tmp_path / "build" / "scene.vrcw"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"UnityFS\x00" + b"a" * 32)
    return path


@pytest.fixture
def unity_package(tmp_path: Path) -> Path:
    path = tmp_path / "build" / "scene.unitypackage"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"package-bytes")
    return path


@pytest.fixture
def preview_image(tmp_path: Path) -> Path:
    path = tmp_path / "build" / "preview.png"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"\x89PNG fake image")
    return path
