"""
Prometheus metrics for upload runs.

Metrics Provided:
    - blueprint_file_uploads_total: Counter for file transfers by kind/status
    - blueprint_upload_bytes_total: Counter for transferred bytes
    - blueprint_upload_duration_seconds: Histogram for transfer latency
    - blueprint_commits_total: Counter for create/update calls
    - blueprint_pipeline_runs_total: Counter for runs by terminal state
    - blueprint_active_runs: Gauge for runs in flight

Usage:
    from blueprint_uploader.utils.metrics import get_metrics

    metrics = get_metrics()
    with metrics.track_upload(file_kind="Asset bundle"):
        url = await transfer.upload_file(...)
"""

import os
from contextlib import nullcontext
from typing import Optional

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    Info,
    start_http_server,
)

from blueprint_uploader.utils.logging import get_logger

logger = get_logger(__name__)


class PrometheusMetrics:
    """
    Collectors for pipeline operations.

    Each instance owns its registry unless one is passed in, so several
    instances (tests, embedded hosts) never collide on metric names.
    """

    def __init__(self, enabled: bool = True, registry: Optional[CollectorRegistry] = None) -> None:
        self.enabled = enabled
        self.registry = registry if registry is not None else CollectorRegistry()

        if not self.enabled:
            logger.debug("Metrics collection disabled")
            return

        self.file_uploads = Counter(
            name="blueprint_file_uploads_total",
            documentation="Total number of file transfers",
            labelnames=["file_kind", "status"],
            registry=self.registry,
        )

        self.upload_bytes = Counter(
            name="blueprint_upload_bytes_total",
            documentation="Total bytes handed to the file transfer",
            registry=self.registry,
        )

        self.upload_duration = Histogram(
            name="blueprint_upload_duration_seconds",
            documentation="Time spent transferring files",
            labelnames=["file_kind"],
            buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0, 600.0],
            registry=self.registry,
        )

        self.commits = Counter(
            name="blueprint_commits_total",
            documentation="Blueprint create/update calls",
            labelnames=["kind", "operation", "status"],
            registry=self.registry,
        )

        self.pipeline_runs = Counter(
            name="blueprint_pipeline_runs_total",
            documentation="Pipeline runs by terminal state",
            labelnames=["state"],
            registry=self.registry,
        )

        self.active_runs = Gauge(
            name="blueprint_active_runs",
            documentation="Pipeline runs currently in flight",
            registry=self.registry,
        )

        self.app_info = Info(
            name="blueprint_uploader",
            documentation="Application metadata",
            registry=self.registry,
        )
        self.app_info.info({"version": "0.1.0", "name": "blueprint-uploader"})

    def track_upload(self, file_kind: str = "unknown"):
        """Context manager timing one file transfer."""
        if not self.enabled:
            return nullcontext()
        return self.upload_duration.labels(file_kind=file_kind).time()

    def record_upload_success(self, file_kind: str, bytes_uploaded: int) -> None:
        if not self.enabled:
            return
        self.file_uploads.labels(file_kind=file_kind, status="success").inc()
        self.upload_bytes.inc(bytes_uploaded)

    def record_upload_failure(self, file_kind: str) -> None:
        if not self.enabled:
            return
        self.file_uploads.labels(file_kind=file_kind, status="failure").inc()

    def record_commit(self, kind: str, operation: str, success: bool) -> None:
        """
        Record a create/update call.

        Args:
            kind: Blueprint kind (world, avatar)
            operation: create or update
            success: Whether the service accepted the call
        """
        if not self.enabled:
            return
        status = "success" if success else "failure"
        self.commits.labels(kind=kind, operation=operation, status=status).inc()

    def run_started(self) -> None:
        if self.enabled:
            self.active_runs.inc()

    def run_finished(self, state: str) -> None:
        if not self.enabled:
            return
        self.active_runs.dec()
        self.pipeline_runs.labels(state=state).inc()

    def serve(self, port: int = 9090) -> None:
        """Expose this registry over HTTP for scraping."""
        if not self.enabled:
            logger.warning("Metrics disabled, not starting metrics server")
            return
        start_http_server(port, registry=self.registry)
        logger.info(f"Metrics server listening on :{port}")


_metrics_instance: Optional[PrometheusMetrics] = None


def get_metrics() -> PrometheusMetrics:
    """
    Get the process-wide metrics instance.

    Collection can be switched off with METRICS_ENABLED=false.
    """
    global _metrics_instance
    if _metrics_instance is None:
        enabled = os.getenv("METRICS_ENABLED", "true").lower() == "true"
        _metrics_instance = PrometheusMetrics(enabled=enabled)
    return _metrics_instance
