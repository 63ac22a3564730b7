"""Readiness probes.

The database is the only hard dependency. Two probes run against it: a
plain round trip, and a read of the ledger table, which fails when the
schema has not been migrated yet. Blob storage belongs to the deployment in
front of this service and is not probed.
"""

import time
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Callable, Dict, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .logging_config import get_logger

logger = get_logger(__name__)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    status: HealthStatus
    message: Optional[str] = None
    latency_ms: Optional[float] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["status"] = self.status.value
        return data


def _probe(name: str, run: Callable[[], None], ok_message: str) -> ComponentHealth:
    started = time.perf_counter()
    try:
        run()
    except SQLAlchemyError as e:
        logger.error(f"Health probe {name} failed: {type(e).__name__}: {e}")
        return ComponentHealth(HealthStatus.UNHEALTHY, f"{type(e).__name__}")
    return ComponentHealth(
        HealthStatus.HEALTHY,
        ok_message,
        round((time.perf_counter() - started) * 1000, 2),
    )


def check_database_health(db: Session) -> ComponentHealth:
    return _probe("database", lambda: db.execute(text("SELECT 1")), "Database connection OK")


def check_schema_health(db: Session) -> ComponentHealth:
    """The ledger table is readable, i.e. migrations have been applied."""
    return _probe(
        "schema",
        lambda: db.execute(text("SELECT id FROM audit_record LIMIT 1")),
        "Ledger table reachable",
    )


def run_checks(db: Session) -> Dict[str, ComponentHealth]:
    database = check_database_health(db)
    if database.status != HealthStatus.HEALTHY:
        return {"database": database}
    return {"database": database, "schema": check_schema_health(db)}


def get_overall_health(components: Dict[str, ComponentHealth]) -> HealthStatus:
    if any(c.status == HealthStatus.UNHEALTHY for c in components.values()):
        return HealthStatus.UNHEALTHY
    return HealthStatus.HEALTHY
