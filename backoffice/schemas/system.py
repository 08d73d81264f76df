from pydantic import BaseModel
from typing import Optional, Dict, Any
from datetime import datetime
from decimal import Decimal


class HealthCheckResponse(BaseModel):
    status: str
    now: datetime
    uptime_seconds: float
    db_ok: bool
    extra: Optional[Dict[str, Any]] = None


class SystemMetricsResponse(BaseModel):
    uptime_seconds: float
    now: datetime

    # middleware counters
    requests_count: int
    errors_count: int
    avg_response_ms: Optional[float] = None
    pricing_calls: int
    slow_pricing_calls: int

    # DB metrics
    total_orders_today: int
    total_orders: int
    orders_by_status: Dict[str, int]
    unpaid_orders: int
    # reference currency
    average_order_value: Optional[Decimal] = None
