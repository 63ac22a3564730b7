"""Root-level operational endpoints: Prometheus scrape target and readiness probe."""

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy.orm import Session

from database import get_db
from .health import HealthStatus, get_overall_health, run_checks

router = APIRouter(tags=["Observability"])


@router.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@router.get("/health", summary="Readiness probe")
def health_check(db: Session = Depends(get_db)):
    """200 with per-component detail when healthy, 503 otherwise."""
    components = run_checks(db)
    overall = get_overall_health(components)
    return JSONResponse(
        status_code=status.HTTP_200_OK if overall == HealthStatus.HEALTHY else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": overall.value,
            "components": {name: component.to_dict() for name, component in components.items()},
        },
    )
