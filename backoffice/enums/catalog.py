from enum import Enum

from backoffice.core.errors import ValidationError


class _ParseMixin:
    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValidationError(f"Unknown {cls.__name__} value: {value!r}")


class ProductType(_ParseMixin, str, Enum):
    simple = "simple"
    configurable = "configurable"
    variant = "variant"


class AddressType(_ParseMixin, str, Enum):
    billing = "billing"
    shipping = "shipping"
    headquarters = "headquarters"


class CustomerType(_ParseMixin, str, Enum):
    individual = "individual"
    company = "company"


class ShippingMethodType(_ParseMixin, str, Enum):
    courier = "courier"
    pickup = "pickup"


class HistoryAction(_ParseMixin, str, Enum):
    order_created = "order_created"
    status_changed = "status_changed"
    payment_received = "payment_received"
    payment_reversed = "payment_reversed"
    order_cancelled = "order_cancelled"
