"""
Order line and order total arithmetic.

All amounts are Decimals. Money is rounded half-up to 2 places and the
exchange rate to 4 places after *every* operation, not once at the end, so
stored totals match what the shop has always written to the database.

Exchange rates are reference-currency units per 1 transaction-currency unit
(1 EUR = 5.0910 RON), so reference -> transaction is a division and the
reference currency itself has rate 1.0000.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable

from backoffice.core.errors import ValidationError
from backoffice.core.money import (
    ZERO,
    add_vat,
    from_reference,
    qmoney,
    qpercent,
    qrate,
    remove_vat,
)


@dataclass(frozen=True)
class LineTotals:
    quantity: int
    vat_percent: Decimal
    exchange_rate: Decimal

    unit_price_ref: Decimal
    unit_price_excl_vat_ref: Decimal
    unit_purchase_price_ref: Decimal
    total_excl_vat_ref: Decimal
    total_incl_vat_ref: Decimal

    unit_price_currency: Decimal
    unit_price_excl_vat_currency: Decimal
    total_excl_vat_currency: Decimal
    total_incl_vat_currency: Decimal

    profit_ref: Decimal


@dataclass(frozen=True)
class OrderTotals:
    total_excl_vat: Decimal
    total_incl_vat: Decimal
    total_ref_excl_vat: Decimal
    total_ref_incl_vat: Decimal
    vat_rate_applied: Decimal


@dataclass(frozen=True)
class ShippingTotals:
    cost_ref_excl_vat: Decimal
    cost_ref_incl_vat: Decimal
    cost_excl_vat: Decimal
    cost_incl_vat: Decimal


def validate_quantity(quantity: Any) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError(f"Quantity must be an integer, got {quantity!r}")
    if quantity <= 0:
        raise ValidationError("Quantity must be positive")
    return quantity


def validate_exchange_rate(exchange_rate: Any) -> Decimal:
    if exchange_rate is None:
        raise ValidationError("Exchange rate is required")
    try:
        rate = qrate(exchange_rate)
    except ValueError as e:
        raise ValidationError(str(e)) from e
    if rate <= 0:
        raise ValidationError(f"Exchange rate must be positive, got {rate}")
    return rate


def validate_vat_percent(vat_percent: Any) -> Decimal:
    if vat_percent is None:
        raise ValidationError("VAT percent is required")
    try:
        vat = qpercent(vat_percent)
    except ValueError as e:
        raise ValidationError(str(e)) from e
    if vat < 0 or vat >= 100:
        raise ValidationError(f"VAT percent must be in [0, 100), got {vat}")
    return vat


def _validate_price(value: Any, field: str) -> Decimal:
    try:
        price = qmoney(value)
    except ValueError as e:
        raise ValidationError(f"{field}: {e}") from e
    if price < 0:
        raise ValidationError(f"{field} cannot be negative")
    return price


def compute_line(
    unit_price_ref: Any,
    quantity: int,
    vat_percent: Any,
    exchange_rate: Any,
    unit_purchase_price_ref: Any = ZERO,
) -> LineTotals:
    """
    Totals for one order line.

    unit_price_ref is the VAT-inclusive unit price in the reference currency.
    Every argument is validated before any arithmetic happens.
    """
    quantity = validate_quantity(quantity)
    rate = validate_exchange_rate(exchange_rate)
    vat = validate_vat_percent(vat_percent)
    unit_ref = _validate_price(unit_price_ref, "unit_price_ref")
    purchase_ref = _validate_price(unit_purchase_price_ref, "unit_purchase_price_ref")

    unit_excl_ref = remove_vat(unit_ref, vat)
    total_excl_ref = qmoney(unit_excl_ref * quantity)
    total_incl_ref = qmoney(unit_ref * quantity)

    unit_currency = from_reference(unit_ref, rate)
    unit_excl_currency = from_reference(unit_excl_ref, rate)
    total_excl_currency = qmoney(unit_excl_currency * quantity)
    total_incl_currency = qmoney(unit_currency * quantity)

    profit_ref = qmoney((unit_excl_ref - purchase_ref) * quantity)

    return LineTotals(
        quantity=quantity,
        vat_percent=vat,
        exchange_rate=rate,
        unit_price_ref=unit_ref,
        unit_price_excl_vat_ref=unit_excl_ref,
        unit_purchase_price_ref=purchase_ref,
        total_excl_vat_ref=total_excl_ref,
        total_incl_vat_ref=total_incl_ref,
        unit_price_currency=unit_currency,
        unit_price_excl_vat_currency=unit_excl_currency,
        total_excl_vat_currency=total_excl_currency,
        total_incl_vat_currency=total_incl_currency,
        profit_ref=profit_ref,
    )


def aggregate_totals(lines: Iterable[LineTotals]) -> OrderTotals:
    """
    Order-level totals.

    Running sums are rounded after each addition. vat_rate_applied is the plain
    mean of the line VAT percents, which is only exact when every line shares
    one rate.
    """
    total_excl = ZERO
    total_incl = ZERO
    total_ref_excl = ZERO
    total_ref_incl = ZERO
    vat_rates = []

    for line in lines:
        total_excl = qmoney(total_excl + line.total_excl_vat_currency)
        total_incl = qmoney(total_incl + line.total_incl_vat_currency)
        total_ref_excl = qmoney(total_ref_excl + line.total_excl_vat_ref)
        total_ref_incl = qmoney(total_ref_incl + line.total_incl_vat_ref)
        vat_rates.append(line.vat_percent)

    average_vat = qpercent(sum(vat_rates, ZERO) / len(vat_rates)) if vat_rates else ZERO

    return OrderTotals(
        total_excl_vat=total_excl,
        total_incl_vat=total_incl,
        total_ref_excl_vat=total_ref_excl,
        total_ref_incl_vat=total_ref_incl,
        vat_rate_applied=average_vat,
    )


def shipping_costs(
    cost_ref_incl_vat: Any,
    vat_percent: Any,
    exchange_rate: Any,
) -> ShippingTotals:
    rate = validate_exchange_rate(exchange_rate)
    vat = validate_vat_percent(vat_percent)
    incl_ref = _validate_price(cost_ref_incl_vat, "shipping cost")
    excl_ref = remove_vat(incl_ref, vat)

    return ShippingTotals(
        cost_ref_excl_vat=excl_ref,
        cost_ref_incl_vat=incl_ref,
        cost_excl_vat=from_reference(excl_ref, rate),
        cost_incl_vat=from_reference(incl_ref, rate),
    )


def unit_price_incl_vat(price_excl_vat_ref: Any, vat_percent: Any) -> Decimal:
    """Catalog prices are stored without VAT; lines are computed from the VAT-inclusive price."""
    return add_vat(
        _validate_price(price_excl_vat_ref, "price"),
        validate_vat_percent(vat_percent),
    )
