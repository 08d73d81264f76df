from decimal import Decimal

import pytest

from backoffice.core.errors import ImmutableRecordError, InvalidStatusTransition, ValidationError
from backoffice.enums.catalog import HistoryAction
from backoffice.enums.order_status import ALLOWED_TRANSITIONS, OrderStatus
from backoffice.models.order import Order, OrderHistory
from backoffice.services.order_service import lifecycle


def _order(db, status=OrderStatus.pending, number="ORD_TEST000001"):
    order = Order(
        order_number=number,
        currency="RON",
        exchange_rate=Decimal("1.0000"),
        vat_rate_applied=Decimal("19.00"),
        total_excl_vat=Decimal("84.03"),
        total_incl_vat=Decimal("100.00"),
        total_ref_excl_vat=Decimal("84.03"),
        total_ref_incl_vat=Decimal("100.00"),
        payment_method="bank_transfer",
        status=status.value,
    )
    db.add(order)
    db.commit()
    db.refresh(order)
    return order


def _actions(db, order):
    return [h.action for h in lifecycle.list_history(db, order)]


def test_mark_as_paid_is_idempotent(db):
    order = _order(db)

    assert lifecycle.mark_as_paid(db, order) is True
    assert lifecycle.mark_as_paid(db, order) is False

    assert order.is_paid is True
    assert order.paid_at is not None
    assert _actions(db, order).count("payment_received") == 1

    entry = lifecycle.latest_history_entry(db, order, HistoryAction.payment_received)
    assert entry.old_value is False
    assert entry.new_value is True


def test_mark_as_unpaid_reverses_payment(db):
    order = _order(db)

    assert lifecycle.mark_as_unpaid(db, order) is False
    lifecycle.mark_as_paid(db, order, user_id=None)
    assert lifecycle.mark_as_unpaid(db, order) is True

    assert order.is_paid is False
    assert order.paid_at is None
    assert _actions(db, order) == ["payment_received", "payment_reversed"]


def test_paid_flag_is_read_only(db):
    order = _order(db)
    with pytest.raises(AttributeError):
        order.is_paid = True


def test_change_status_logs_labels(db):
    order = _order(db)

    assert lifecycle.change_status(db, order, "confirmed", user_id=None) is True

    assert order.status == "confirmed"
    entry = lifecycle.latest_history_entry(db, order, HistoryAction.status_changed)
    assert entry.old_value == {"status": "pending", "status_label": "Pending"}
    assert entry.new_value == {"status": "confirmed", "status_label": "Confirmed"}


def test_same_status_is_a_no_op(db):
    order = _order(db)
    assert lifecycle.change_status(db, order, OrderStatus.pending) is False
    assert _actions(db, order) == []


def test_illegal_transition_is_rejected(db):
    order = _order(db, status=OrderStatus.delivered)

    with pytest.raises(InvalidStatusTransition):
        lifecycle.change_status(db, order, OrderStatus.processing)
    assert order.status == "delivered"


def test_unknown_status_is_a_validation_error(db):
    order = _order(db)
    with pytest.raises(ValidationError):
        lifecycle.change_status(db, order, "lost_in_space")


@pytest.mark.parametrize("terminal", [OrderStatus.cancelled, OrderStatus.refunded])
def test_terminal_statuses_have_no_way_out(terminal):
    assert ALLOWED_TRANSITIONS[terminal] == frozenset()
    assert not any(terminal.can_transition_to(s) for s in OrderStatus)


def test_cancelled_status_alone_means_cancelled(db):
    order = _order(db, status=OrderStatus.cancelled)
    assert lifecycle.is_cancelled(db, order) is True
    # no history row, so no date
    assert lifecycle.cancelled_at(db, order) is None


def test_cancel_history_row_alone_means_cancelled(db):
    order = _order(db, status=OrderStatus.processing)
    lifecycle.log_history(db, order, HistoryAction.order_cancelled, description="imported")
    db.commit()

    assert order.status == "processing"
    assert lifecycle.is_cancelled(db, order) is True
    assert lifecycle.cancelled_at(db, order) is not None


def test_cancel_order(db):
    order = _order(db, status=OrderStatus.confirmed)

    assert lifecycle.cancel_order(db, order, reason="customer request") is True
    assert lifecycle.cancel_order(db, order) is False

    assert order.status == "cancelled"
    assert lifecycle.is_cancelled(db, order)
    assert _actions(db, order) == ["status_changed", "order_cancelled"]
    entry = lifecycle.latest_history_entry(db, order, HistoryAction.order_cancelled)
    assert entry.description == "customer request"
    assert lifecycle.cancelled_at(db, order) == entry.created_at


def test_shipped_order_cannot_be_cancelled(db):
    order = _order(db, status=OrderStatus.shipped)
    with pytest.raises(InvalidStatusTransition):
        lifecycle.cancel_order(db, order)


def test_history_rows_cannot_be_edited(db):
    order = _order(db)
    lifecycle.mark_as_paid(db, order)
    entry = lifecycle.list_history(db, order)[0]

    entry.description = "rewritten"
    with pytest.raises(ImmutableRecordError):
        db.commit()
    db.rollback()

    assert db.get(OrderHistory, entry.id).description == "Order marked as paid"


def test_history_rows_cannot_be_deleted(db):
    order = _order(db)
    lifecycle.mark_as_paid(db, order)
    entry = lifecycle.list_history(db, order)[0]

    db.delete(entry)
    with pytest.raises(ImmutableRecordError):
        db.commit()
    db.rollback()


def test_deleting_an_order_with_history_is_rejected(db):
    order = _order(db)
    lifecycle.mark_as_paid(db, order)
    order_id = order.id

    db.delete(order)
    with pytest.raises(ImmutableRecordError):
        db.commit()
    db.rollback()
    assert db.query(OrderHistory).filter(OrderHistory.order_id == order_id).count() == 1


def test_unknown_history_action_is_a_validation_error(db):
    order = _order(db)

    with pytest.raises(ValidationError):
        lifecycle.log_history(db, order, "bogus")
    with pytest.raises(ValidationError):
        lifecycle.latest_history_entry(db, order, "bogus")
    assert HistoryAction.parse("order_cancelled") is HistoryAction.order_cancelled


def test_status_choices_carry_labels_and_colors():
    choices = OrderStatus.choices()
    assert choices[0] == {"value": "pending", "label": "Pending", "color_code": "#F59E0B"}
    assert OrderStatus.from_label(" awaiting payment ") is OrderStatus.awaiting_payment
    assert OrderStatus.from_label("nope") is None
