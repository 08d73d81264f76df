from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from backoffice.core.http import http_errors
from backoffice.database.connection import get_db
from backoffice.dependencies.auth import get_optional_user, require_admin
from backoffice.dependencies.pricing import get_price_resolver
from backoffice.enums.order_status import OrderStatus
from backoffice.models.order import Order
from backoffice.models.user import User
from backoffice.schemas.order import (
    OrderCancelRequest,
    OrderCreate,
    OrderHistoryResponse,
    OrderResponse,
    OrderStatusUpdate,
)
from backoffice.services.order_service import lifecycle
from backoffice.services.order_service.checkout import create_order, get_order, list_orders
from backoffice.services.pricing_service.price_resolver import PriceResolver

router = APIRouter(prefix="/orders", tags=["Orders"])


def _order_or_404(db: Session, order_number: str) -> Order:
    order = get_order(db, order_number)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order

# CHECKOUT
@router.post("/", response_model=OrderResponse)
def checkout(
    data: OrderCreate,
    db: Session = Depends(get_db),
    resolver: PriceResolver = Depends(get_price_resolver),
    user: Optional[User] = Depends(get_optional_user),
):
    # logged-in shoppers order for their own customer account
    if user is not None and user.role != "admin":
        if data.customer_id is not None and data.customer_id != user.customer_id:
            raise HTTPException(status_code=403, detail="Cannot order for another customer")
        if data.customer_id is None and user.customer_id is not None:
            data = data.model_copy(update={"customer_id": user.customer_id})

    with http_errors():
        return create_order(db, data, resolver, user_id=user.id if user else None)

# STATUS CHOICES
@router.get("/statuses")
def statuses():
    return OrderStatus.choices()

# LIST
@router.get("/", response_model=list[OrderResponse], dependencies=[Depends(require_admin)])
def list_all(
    status: Optional[str] = None,
    customer_id: Optional[int] = None,
    db: Session = Depends(get_db),
):
    with http_errors():
        return list_orders(db, status=status, customer_id=customer_id)

# GET
@router.get("/{order_number}", response_model=OrderResponse, dependencies=[Depends(require_admin)])
def get(order_number: str, db: Session = Depends(get_db)):
    return _order_or_404(db, order_number)

# STATUS CHANGE
@router.put("/{order_number}/status", response_model=OrderResponse)
def update_status(
    order_number: str,
    data: OrderStatusUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    order = _order_or_404(db, order_number)
    with http_errors():
        changed = lifecycle.change_status(db, order, data.status, user_id=admin.id)
    if not changed:
        raise HTTPException(status_code=400, detail="Order already has this status")
    return order

# PAYMENT
@router.post("/{order_number}/mark-paid", response_model=OrderResponse)
def mark_paid(
    order_number: str,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    order = _order_or_404(db, order_number)
    if not lifecycle.mark_as_paid(db, order, user_id=admin.id):
        raise HTTPException(status_code=400, detail="Order is already marked as paid")
    return order


@router.post("/{order_number}/mark-unpaid", response_model=OrderResponse)
def mark_unpaid(
    order_number: str,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    order = _order_or_404(db, order_number)
    if not lifecycle.mark_as_unpaid(db, order, user_id=admin.id):
        raise HTTPException(status_code=400, detail="Order is already marked as unpaid")
    return order

# CANCEL
@router.post("/{order_number}/cancel", response_model=OrderResponse)
def cancel(
    order_number: str,
    data: Optional[OrderCancelRequest] = None,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    order = _order_or_404(db, order_number)
    with http_errors():
        cancelled = lifecycle.cancel_order(
            db, order, user_id=admin.id, reason=data.reason if data else None
        )
    if not cancelled:
        raise HTTPException(status_code=400, detail="Order is already cancelled")
    return order

# HISTORY
@router.get(
    "/{order_number}/history",
    response_model=list[OrderHistoryResponse],
    dependencies=[Depends(require_admin)],
)
def history(order_number: str, db: Session = Depends(get_db)):
    order = _order_or_404(db, order_number)
    return lifecycle.list_history(db, order)
