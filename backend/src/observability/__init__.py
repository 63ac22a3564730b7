"""Observability module for DocShare.

Provides structured logging, request correlation, metrics and health checks.
"""

from .logging_config import configure_logging, get_logger
from .metrics import (
    transitions_total,
    transition_duration_seconds,
    unknown_operation_total,
    counter_updates_total,
    counter_drift_total,
)
from .request_id import request_id_var, get_request_id, bound_request_id, generate_request_id
from .health import HealthStatus, ComponentHealth, run_checks
from .middleware import RequestIDMiddleware

__all__ = [
    # Logging
    "configure_logging",
    "get_logger",
    # Metrics
    "transitions_total",
    "transition_duration_seconds",
    "unknown_operation_total",
    "counter_updates_total",
    "counter_drift_total",
    # Request ID
    "request_id_var",
    "get_request_id",
    "bound_request_id",
    "generate_request_id",
    # Health
    "HealthStatus",
    "ComponentHealth",
    "run_checks",
    # Middleware
    "RequestIDMiddleware",
]
