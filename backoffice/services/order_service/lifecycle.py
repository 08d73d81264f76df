from datetime import datetime
from typing import Any, List, Optional

import structlog
from sqlalchemy.orm import Session

from backoffice.core.errors import InvalidStatusTransition
from backoffice.enums.catalog import HistoryAction
from backoffice.enums.order_status import OrderStatus
from backoffice.models.order import Order, OrderHistory

logger = structlog.get_logger(__name__)


def _finish(db: Session, order: Order, commit: bool) -> None:
    if commit:
        db.commit()
        db.refresh(order)
    else:
        db.flush()


# --------------------------
# HISTORY
# --------------------------
def log_history(
    db: Session,
    order: Order,
    action: HistoryAction,
    old_value: Any = None,
    new_value: Any = None,
    description: Optional[str] = None,
    user_id: Optional[int] = None,
) -> OrderHistory:
    """Append one entry to the order's audit log. Entries are never edited."""
    entry = OrderHistory(
        order=order,
        user_id=user_id,
        action=HistoryAction.parse(action).value,
        old_value=old_value,
        new_value=new_value,
        description=description,
    )
    db.add(entry)
    return entry


def list_history(db: Session, order: Order) -> List[OrderHistory]:
    return (
        db.query(OrderHistory)
        .filter(OrderHistory.order_id == order.id)
        .order_by(OrderHistory.created_at.asc(), OrderHistory.id.asc())
        .all()
    )


def latest_history_entry(
    db: Session, order: Order, action: HistoryAction
) -> Optional[OrderHistory]:
    return (
        db.query(OrderHistory)
        .filter(
            OrderHistory.order_id == order.id,
            OrderHistory.action == HistoryAction.parse(action).value,
        )
        .order_by(OrderHistory.created_at.desc(), OrderHistory.id.desc())
        .first()
    )


# --------------------------
# PAYMENT
# --------------------------
def mark_as_paid(
    db: Session, order: Order, user_id: Optional[int] = None, commit: bool = True
) -> bool:
    """Returns False (and logs nothing) when the order is already paid."""
    if order.is_paid:
        return False

    order._is_paid = True
    order._paid_at = datetime.utcnow()
    log_history(
        db, order, HistoryAction.payment_received,
        old_value=False, new_value=True,
        description="Order marked as paid",
        user_id=user_id,
    )
    _finish(db, order, commit)

    logger.info("order_marked_paid", order_number=order.order_number, user_id=user_id)
    return True


def mark_as_unpaid(
    db: Session, order: Order, user_id: Optional[int] = None, commit: bool = True
) -> bool:
    """Refunds / corrections. Returns False when the order is not paid."""
    if not order.is_paid:
        return False

    order._is_paid = False
    order._paid_at = None
    log_history(
        db, order, HistoryAction.payment_reversed,
        old_value=True, new_value=False,
        description="Order marked as unpaid",
        user_id=user_id,
    )
    _finish(db, order, commit)

    logger.info("order_marked_unpaid", order_number=order.order_number, user_id=user_id)
    return True


# --------------------------
# STATUS
# --------------------------
def _status_payload(status: OrderStatus) -> dict:
    return {"status": status.value, "status_label": status.label}


def change_status(
    db: Session,
    order: Order,
    new_status,
    user_id: Optional[int] = None,
    description: Optional[str] = None,
    commit: bool = True,
) -> bool:
    """
    Move the order to `new_status`.

    Same status is a no-op (False). Jumps outside ALLOWED_TRANSITIONS raise
    InvalidStatusTransition. Moving to cancelled also writes the
    order_cancelled entry that is_cancelled / cancelled_at read.
    """
    target = OrderStatus.parse(new_status)
    current = OrderStatus.parse(order.status)

    if current is target:
        return False
    if not current.can_transition_to(target):
        raise InvalidStatusTransition(current.value, target.value)

    order.status = target.value
    log_history(
        db, order, HistoryAction.status_changed,
        old_value=_status_payload(current),
        new_value=_status_payload(target),
        description=f"Status changed from {current.label} to {target.label}",
        user_id=user_id,
    )
    if target is OrderStatus.cancelled:
        log_history(
            db, order, HistoryAction.order_cancelled,
            old_value=_status_payload(current),
            new_value=_status_payload(target),
            description=description or "Order cancelled",
            user_id=user_id,
        )
    _finish(db, order, commit)

    logger.info(
        "order_status_changed",
        order_number=order.order_number,
        old_status=current.value,
        new_status=target.value,
        user_id=user_id,
    )
    return True


# --------------------------
# CANCELLATION
# --------------------------
def is_cancelled(db: Session, order: Order) -> bool:
    if order.status == OrderStatus.cancelled.value:
        return True
    return latest_history_entry(db, order, HistoryAction.order_cancelled) is not None


def cancelled_at(db: Session, order: Order) -> Optional[datetime]:
    entry = latest_history_entry(db, order, HistoryAction.order_cancelled)
    return entry.created_at if entry else None


def cancel_order(
    db: Session,
    order: Order,
    user_id: Optional[int] = None,
    reason: Optional[str] = None,
) -> bool:
    if is_cancelled(db, order):
        return False

    changed = change_status(
        db, order, OrderStatus.cancelled,
        user_id=user_id,
        description=reason,
    )
    if changed:
        logger.info("order_cancelled", order_number=order.order_number, reason=reason)
    return changed
