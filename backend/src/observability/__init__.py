"""Observability for SecureShop: logging, request context, metrics, health."""

from .context import accept_request_id, current_request_id, new_correlation_id
from .health import HealthStatus, build_health_report
from .logging_config import configure_logging, get_logger
from .middleware import RequestContextMiddleware

__all__ = [
    "accept_request_id",
    "current_request_id",
    "new_correlation_id",
    "HealthStatus",
    "build_health_report",
    "configure_logging",
    "get_logger",
    "RequestContextMiddleware",
]
