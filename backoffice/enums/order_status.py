from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from backoffice.core.errors import ValidationError


class OrderStatus(str, Enum):
    pending = "pending"
    awaiting_payment = "awaiting_payment"
    confirmed = "confirmed"
    processing = "processing"
    shipped = "shipped"
    delivered = "delivered"
    cancelled = "cancelled"
    refunded = "refunded"

    @property
    def label(self) -> str:
        return _LABELS[self]

    @property
    def color_code(self) -> str:
        return _COLORS[self]

    @classmethod
    def parse(cls, value) -> "OrderStatus":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValidationError(f"Unknown order status: {value!r}")

    @classmethod
    def from_label(cls, label: str) -> Optional["OrderStatus"]:
        """Look a status up by its display label (case and whitespace insensitive)."""
        wanted = label.strip().lower()
        for status, status_label in _LABELS.items():
            if status_label.lower() == wanted:
                return status
        return None

    @classmethod
    def choices(cls) -> List[Dict[str, str]]:
        return [
            {"value": s.value, "label": s.label, "color_code": s.color_code}
            for s in cls
        ]

    def can_transition_to(self, target: "OrderStatus") -> bool:
        return target in ALLOWED_TRANSITIONS[self]


_LABELS = {
    OrderStatus.pending: "Pending",
    OrderStatus.awaiting_payment: "Awaiting Payment",
    OrderStatus.confirmed: "Confirmed",
    OrderStatus.processing: "Processing",
    OrderStatus.shipped: "Shipped",
    OrderStatus.delivered: "Delivered",
    OrderStatus.cancelled: "Cancelled",
    OrderStatus.refunded: "Refunded",
}

_COLORS = {
    OrderStatus.pending: "#F59E0B",
    OrderStatus.awaiting_payment: "#F97316",
    OrderStatus.confirmed: "#0EA5E9",
    OrderStatus.processing: "#6366F1",
    OrderStatus.shipped: "#3B82F6",
    OrderStatus.delivered: "#10B981",
    OrderStatus.cancelled: "#EF4444",
    OrderStatus.refunded: "#64748B",
}

# cancelled and refunded are terminal
ALLOWED_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.pending: frozenset(
        {OrderStatus.awaiting_payment, OrderStatus.confirmed, OrderStatus.cancelled}
    ),
    OrderStatus.awaiting_payment: frozenset(
        {OrderStatus.confirmed, OrderStatus.cancelled}
    ),
    OrderStatus.confirmed: frozenset(
        {OrderStatus.processing, OrderStatus.cancelled, OrderStatus.refunded}
    ),
    OrderStatus.processing: frozenset(
        {OrderStatus.shipped, OrderStatus.cancelled, OrderStatus.refunded}
    ),
    OrderStatus.shipped: frozenset({OrderStatus.delivered, OrderStatus.refunded}),
    OrderStatus.delivered: frozenset({OrderStatus.refunded}),
    OrderStatus.cancelled: frozenset(),
    OrderStatus.refunded: frozenset(),
}
