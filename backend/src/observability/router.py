"""Operational endpoints: /health and /metrics.

Both are public in the route policy table and are mounted without the
/api/v1 prefix so load balancers and Prometheus can reach them directly.
"""

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy.orm import Session

from database import get_db
from .health import build_health_report

router = APIRouter(tags=["Observability"])


@router.get("/health", summary="Component health")
def health_check(db: Session = Depends(get_db)):
    """200 when healthy or degraded, 503 when the database is unreachable."""
    report = build_health_report(db)
    return JSONResponse(content=report.to_dict(), status_code=report.http_status)


@router.get("/metrics", include_in_schema=False)
def metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
