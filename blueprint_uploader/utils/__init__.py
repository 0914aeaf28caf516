"""
Utility modules for the blueprint uploader.

This package provides shared utilities used across all pipeline stages:
- logging: Structured logging with entry/exit decorators
- config: Environment configuration
- config_loader: Upload manifest loading and validation
- metrics: Prometheus instrumentation
- imaging: Preview image helpers
"""

from blueprint_uploader.utils.logging import get_logger, log_function_call

__all__ = ["get_logger", "log_function_call"]
