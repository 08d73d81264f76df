from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from sqlalchemy import func, text
from datetime import datetime

import structlog

from backoffice.core.money import qmoney
from backoffice.database.connection import get_db
from backoffice.dependencies.auth import require_admin
from backoffice.schemas.system import HealthCheckResponse, SystemMetricsResponse
from backoffice.models.order import Order

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["System"])


def _uptime(request: Request, now: datetime) -> float:
    start_time = getattr(request.app.state, "start_time", now)
    return (now - start_time).total_seconds()


@router.get("/health", response_model=HealthCheckResponse)
def health_check(request: Request, db: Session = Depends(get_db)):
    """
    Lightweight public health check.
    Returns ok + DB connectivity check (SELECT 1).
    """
    now = datetime.utcnow()

    db_ok = True
    extra = {}
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        # reported as degraded, not raised
        logger.error("health_check_db_failed", error=str(e))
        db_ok = False
        extra["db_error"] = str(e)

    return HealthCheckResponse(
        status="ok" if db_ok else "degraded",
        now=now,
        uptime_seconds=_uptime(request, now),
        db_ok=db_ok,
        extra=extra or None,
    )


@router.get("/metrics", response_model=SystemMetricsResponse, dependencies=[Depends(require_admin)])
def system_metrics(request: Request, db: Session = Depends(get_db)):
    """
    Admin-only system metrics in JSON form.
    Uses in-process counters stored on app.state.metrics and order counts from the DB.
    """
    now = datetime.utcnow()

    metrics = getattr(request.app.state, "metrics", None) or {}
    requests_count = int(metrics.get("requests", 0))
    total_response_ms = float(metrics.get("total_response_ms", 0.0))
    avg_response_ms = (total_response_ms / requests_count) if requests_count > 0 else None

    start_today = datetime.combine(now.date(), datetime.min.time())
    total_orders_today = (
        db.query(func.count(Order.id))
        .filter(Order.created_at >= start_today)
        .scalar()
    ) or 0
    total_orders = db.query(func.count(Order.id)).scalar() or 0
    orders_by_status = dict(
        db.query(Order.status, func.count(Order.id)).group_by(Order.status).all()
    )
    unpaid_orders = (
        db.query(func.count(Order.id)).filter(Order.is_paid.is_(False)).scalar()
    ) or 0

    average_order_value = db.query(func.avg(Order.total_ref_incl_vat)).scalar()
    if average_order_value is not None:
        average_order_value = qmoney(average_order_value)

    return SystemMetricsResponse(
        uptime_seconds=_uptime(request, now),
        now=now,
        requests_count=requests_count,
        errors_count=int(metrics.get("errors", 0)),
        avg_response_ms=avg_response_ms,
        pricing_calls=int(metrics.get("pricing_calls", 0)),
        slow_pricing_calls=int(metrics.get("slow_pricing_calls", 0)),
        total_orders_today=int(total_orders_today),
        total_orders=int(total_orders),
        orders_by_status={k: int(v) for k, v in orders_by_status.items()},
        unpaid_orders=int(unpaid_orders),
        average_order_value=average_order_value,
    )
