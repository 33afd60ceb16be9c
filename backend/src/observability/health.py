"""Health checks for the components SecureShop depends on.

The database is required: if it is down the service is UNHEALTHY and
/health answers 503. Redis only backs login rate limiting, so losing it
makes the service DEGRADED, not unavailable.

Messages are fixed strings. Connection URLs and driver errors are logged,
never returned.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional

import redis
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import settings
from .logging_config import get_logger

logger = get_logger(__name__)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    status: HealthStatus
    message: str
    latency_ms: Optional[float] = None


@dataclass
class HealthReport:
    """Aggregate of all component checks."""
    components: Dict[str, ComponentHealth] = field(default_factory=dict)

    @property
    def status(self) -> HealthStatus:
        statuses = {c.status for c in self.components.values()}
        if HealthStatus.UNHEALTHY in statuses:
            return HealthStatus.UNHEALTHY
        if HealthStatus.DEGRADED in statuses:
            return HealthStatus.DEGRADED
        return HealthStatus.HEALTHY

    @property
    def http_status(self) -> int:
        return 503 if self.status == HealthStatus.UNHEALTHY else 200

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "components": {
                name: {
                    "status": c.status.value,
                    "message": c.message,
                    "latency_ms": c.latency_ms,
                }
                for name, c in self.components.items()
            },
        }


def _timed(probe: Callable[[], None]) -> float:
    started = time.perf_counter()
    probe()
    return round((time.perf_counter() - started) * 1000, 2)


def check_database_health(db: Session) -> ComponentHealth:
    try:
        latency = _timed(lambda: db.execute(text("SELECT 1")))
    except SQLAlchemyError:
        logger.error("Database health check failed", exc_info=True)
        return ComponentHealth(HealthStatus.UNHEALTHY, "Database unavailable")
    return ComponentHealth(HealthStatus.HEALTHY, "Database connection OK", latency)


def check_redis_health() -> ComponentHealth:
    try:
        client = redis.from_url(settings.REDIS_URL, socket_connect_timeout=1)
        latency = _timed(client.ping)
    except redis.RedisError:
        logger.warning("Redis health check failed", exc_info=True)
        return ComponentHealth(HealthStatus.DEGRADED, "Redis unavailable, rate limiting disabled")
    return ComponentHealth(HealthStatus.HEALTHY, "Redis connection OK", latency)


def build_health_report(db: Session) -> HealthReport:
    return HealthReport(components={
        "database": check_database_health(db),
        "redis": check_redis_health(),
    })
