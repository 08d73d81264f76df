from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any

MONEY = Decimal("0.01")
RATE = Decimal("0.0001")
PERCENT = Decimal("0.01")

ZERO = Decimal("0.00")
ONE_RATE = Decimal("1.0000")


def to_decimal(value: Any) -> Decimal:
    """Coerce ints, strings, floats and Decimals to Decimal.

    Floats go through repr() so 19.99 stays 19.99 instead of its binary expansion.
    NaN and infinities are rejected: they cannot be quantized.
    """
    if isinstance(value, Decimal):
        d = value
    else:
        if isinstance(value, float):
            value = repr(value)
        try:
            d = Decimal(value)
        except (InvalidOperation, TypeError) as e:
            raise ValueError(f"Not a decimal value: {value!r}") from e
    if not d.is_finite():
        raise ValueError(f"Not a finite decimal value: {value!r}")
    return d


def qmoney(x: Any) -> Decimal:
    return to_decimal(x).quantize(MONEY, rounding=ROUND_HALF_UP)


def qrate(x: Any) -> Decimal:
    return to_decimal(x).quantize(RATE, rounding=ROUND_HALF_UP)


def qpercent(x: Any) -> Decimal:
    return to_decimal(x).quantize(PERCENT, rounding=ROUND_HALF_UP)


def from_reference(amount: Any, exchange_rate: Any) -> Decimal:
    """Reference currency -> transaction currency.

    The rate is reference units per 1 transaction unit, so this divides.
    """
    return qmoney(to_decimal(amount) / to_decimal(exchange_rate))


def to_reference(amount: Any, exchange_rate: Any) -> Decimal:
    return qmoney(to_decimal(amount) * to_decimal(exchange_rate))


def add_vat(amount_excl_vat: Any, vat_percent: Any) -> Decimal:
    return qmoney(to_decimal(amount_excl_vat) * (1 + to_decimal(vat_percent) / 100))


def remove_vat(amount_incl_vat: Any, vat_percent: Any) -> Decimal:
    return qmoney(to_decimal(amount_incl_vat) / (1 + to_decimal(vat_percent) / 100))

