import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Tuple

import structlog
from sqlalchemy.orm import Session

from backoffice.core.errors import ValidationError
from backoffice.enums.catalog import AddressType, CustomerType, HistoryAction, ShippingMethodType
from backoffice.enums.order_status import OrderStatus
from backoffice.models.currency import Currency
from backoffice.models.customer import Address, Customer, CustomerGroup
from backoffice.models.order import Order, OrderAddress, OrderShipping
from backoffice.models.product import Product
from backoffice.models.shipping import ShippingMethod
from backoffice.schemas.order import OrderCreate
from backoffice.services import customer_service, product_service
from backoffice.services.currency_service import exchange_rate_for, get_active_currency
from backoffice.services.order_service import snapshot
from backoffice.services.order_service.calculator import (
    LineTotals,
    OrderTotals,
    aggregate_totals,
    compute_line,
    shipping_costs,
    unit_price_incl_vat,
    validate_quantity,
)
from backoffice.services.order_service.lifecycle import log_history, mark_as_paid
from backoffice.services.pricing_service.price_resolver import PriceResolver
from backoffice.services.pricing_service.vat import effective_vat_rate, is_vat_exempt

logger = structlog.get_logger(__name__)

# payment methods settled before the order exists
INSTANT_PAYMENT_METHODS = {"card", "credit_card", "debit_card", "online", "paypal", "stripe"}
# card-like methods wait for the gateway callback
AWAITING_PAYMENT_METHODS = {"card", "credit_card", "debit_card", "online"}
CASH_ON_DELIVERY_METHODS = {"ramburs", "cod", "cash_on_delivery"}


def generate_order_number() -> str:
    return f"ORD_{uuid.uuid4().hex[:10].upper()}"


def initial_status(payment_method: Optional[str]) -> OrderStatus:
    method = (payment_method or "").lower()
    if method in AWAITING_PAYMENT_METHODS:
        return OrderStatus.awaiting_payment
    if method in CASH_ON_DELIVERY_METHODS:
        return OrderStatus.confirmed
    return OrderStatus.pending


def is_paid_instantly(payment_method: Optional[str]) -> bool:
    # card orders keep awaiting_payment as their status even though they are
    # flagged paid at checkout; the status moves on through change_status
    return (payment_method or "").lower() in INSTANT_PAYMENT_METHODS


@dataclass
class _Checkout:
    """Everything create_order needs, gathered before the first write."""

    customer: Optional[Customer]
    group: Optional[CustomerGroup]
    currency: Currency
    exchange_rate: Decimal
    vat_percent: Decimal
    shipping_method: ShippingMethod
    email: Optional[str]
    billing: OrderAddress
    shipping: OrderAddress
    lines: List[Tuple[Product, LineTotals]] = field(default_factory=list)
    totals: Optional[OrderTotals] = None


# --------------------------
# VALIDATION
# --------------------------
def _owned_address(db: Session, customer: Optional[Customer], address_id: int, label: str) -> Address:
    if customer is None:
        raise ValidationError(f"{label} address id given for a guest checkout")
    address = customer_service.get_address(db, customer.id, address_id)
    if not address:
        raise ValidationError(f"{label} address not found: {address_id}")
    return address


def _billing_snapshot(db: Session, data: OrderCreate, customer: Optional[Customer], email: Optional[str]) -> OrderAddress:
    if data.billing_address_id is not None:
        address = _owned_address(db, customer, data.billing_address_id, "Billing")
        return snapshot.address_from_customer_address(address, customer, AddressType.billing, email)
    if data.billing_address is not None:
        payload = data.billing_address.model_dump()
        payload["email"] = payload.get("email") or email
        return snapshot.address_from_data(payload, AddressType.billing)
    raise ValidationError("Billing address is required")


def _require_country(country_id: Optional[int]) -> None:
    # VAT follows the destination; checkout never assumes the shop country
    if country_id is None:
        raise ValidationError("Shipping country is required for VAT calculation")


def _shipping_snapshot(
    db: Session,
    data: OrderCreate,
    customer: Optional[Customer],
    method: ShippingMethod,
    billing: OrderAddress,
    email: Optional[str],
) -> OrderAddress:
    method_type = ShippingMethodType.parse(method.method_type)

    if method_type is ShippingMethodType.pickup:
        if data.pickup is None:
            raise ValidationError("Pickup point is required for this shipping method")
        _require_country(data.pickup.locker_details.country_id)
        return snapshot.address_from_locker(
            data.pickup.model_dump(),
            first_name=billing.first_name,
            last_name=billing.last_name,
            phone=billing.phone,
            email=email,
        )

    if data.shipping_address_id is not None:
        address = _owned_address(db, customer, data.shipping_address_id, "Shipping")
        return snapshot.address_from_customer_address(address, customer, AddressType.shipping, email)
    if data.shipping_address is not None:
        _require_country(data.shipping_address.country_id)
        payload = data.shipping_address.model_dump()
        payload["email"] = payload.get("email") or email
        return snapshot.address_from_data(payload, AddressType.shipping)
    raise ValidationError("Shipping address is required")


def _prepare(db: Session, data: OrderCreate, resolver: PriceResolver) -> _Checkout:
    if not data.items:
        raise ValidationError("Order has no items")
    for item in data.items:
        validate_quantity(item.quantity)

    customer = None
    if data.customer_id is not None:
        customer = customer_service.get_customer(db, data.customer_id)
        if not customer:
            raise ValidationError(f"Customer not found: {data.customer_id}")
        if (
            CustomerType.parse(customer.customer_type) is CustomerType.company
            and not customer_service.has_address_of_type(db, customer, AddressType.headquarters)
        ):
            raise ValidationError("Company customers need a headquarters address")

    email = data.guest_email
    if customer is None:
        if not email and data.billing_address is not None:
            email = data.billing_address.email
        if not email:
            raise ValidationError("Guest checkout requires an email address")

    currency = get_active_currency(db, data.currency)
    if not currency:
        raise ValidationError(f"Currency not found or inactive: {data.currency}")
    exchange_rate = exchange_rate_for(currency)

    method = db.get(ShippingMethod, data.shipping_method_id)
    if not method or not method.status:
        raise ValidationError(f"Shipping method not available: {data.shipping_method_id}")

    billing = _billing_snapshot(db, data, customer, email)
    shipping = _shipping_snapshot(db, data, customer, method, billing, email)

    # group pricing and VAT follow the customer; guests get the retail group
    group_id = customer.customer_group_id if customer else None
    group = resolver.effective_group(db, group_id)
    # the shipping country decides VAT
    vat_percent = effective_vat_rate(db, group, shipping.country_id)

    checkout = _Checkout(
        customer=customer,
        group=group,
        currency=currency,
        exchange_rate=exchange_rate,
        vat_percent=vat_percent,
        shipping_method=method,
        email=email,
        billing=billing,
        shipping=shipping,
    )

    for item in data.items:
        product = product_service.get_product(db, item.product_id)
        if not product or not product.status:
            raise ValidationError(f"Product not available: {item.product_id}")

        price_excl_ref = resolver.resolve_price(db, product.id, group.id if group else None, item.quantity)
        line = compute_line(
            unit_price_incl_vat(price_excl_ref, vat_percent),
            item.quantity,
            vat_percent,
            exchange_rate,
            unit_purchase_price_ref=product.cost_price or 0,
        )
        checkout.lines.append((product, line))

    checkout.totals = aggregate_totals(line for _, line in checkout.lines)
    return checkout


# --------------------------
# CREATE ORDER
# --------------------------
def create_order(
    db: Session,
    data: OrderCreate,
    resolver: PriceResolver,
    user_id: Optional[int] = None,
) -> Order:
    """
    Checkout. Validates everything first, then writes the order, its
    snapshots, shipping, history and stock movements in one transaction.

    A repeated idempotency_key returns the order already written for it.
    """
    if data.idempotency_key:
        existing = get_order_by_idempotency_key(db, data.idempotency_key)
        if existing is not None:
            logger.info(
                "order_idempotent_replay",
                order_number=existing.order_number,
                idempotency_key=data.idempotency_key,
            )
            return existing

    checkout = _prepare(db, data, resolver)
    totals = checkout.totals
    status = initial_status(data.payment_method)

    try:
        order = Order(
            order_number=generate_order_number(),
            idempotency_key=data.idempotency_key or None,
            customer_id=checkout.customer.id if checkout.customer else None,
            guest_email=checkout.email if checkout.customer is None else None,
            currency=checkout.currency.code,
            exchange_rate=checkout.exchange_rate,
            vat_rate_applied=totals.vat_rate_applied,
            is_vat_exempt=is_vat_exempt(checkout.group),
            total_excl_vat=totals.total_excl_vat,
            total_incl_vat=totals.total_incl_vat,
            total_ref_excl_vat=totals.total_ref_excl_vat,
            total_ref_incl_vat=totals.total_ref_incl_vat,
            payment_method=data.payment_method,
            status=status.value,
        )
        db.add(order)
        db.flush()

        log_history(
            db, order, HistoryAction.order_created,
            new_value={
                "status": status.label,
                "total_ref_incl_vat": str(totals.total_ref_incl_vat),
            },
            description=f"Order created with status: {status.label}"
            + (" (Guest)" if checkout.customer is None else ""),
            user_id=user_id,
        )

        order.addresses.append(checkout.billing)
        order.addresses.append(checkout.shipping)

        for product, line in checkout.lines:
            order.products.append(
                snapshot.line_from_product(product, line.quantity, line, checkout.exchange_rate)
            )
            remaining = product_service.adjust_stock(product, -line.quantity)
            if remaining < 0:
                logger.warning(
                    "stock_backordered",
                    order_number=order.order_number,
                    sku=product.sku,
                    stock_quantity=remaining,
                )

        costs = shipping_costs(
            checkout.shipping_method.cost, checkout.vat_percent, checkout.exchange_rate
        )
        courier_data = data.pickup.model_dump() if data.pickup else None
        order.shipping = OrderShipping(
            shipping_method_id=checkout.shipping_method.id,
            title=checkout.shipping_method.name,
            courier_data=courier_data,
            shipping_cost_excl_vat=costs.cost_excl_vat,
            shipping_cost_incl_vat=costs.cost_incl_vat,
            shipping_cost_ref_excl_vat=costs.cost_ref_excl_vat,
            shipping_cost_ref_incl_vat=costs.cost_ref_incl_vat,
        )

        if is_paid_instantly(data.payment_method):
            mark_as_paid(db, order, user_id=user_id, commit=False)

        db.commit()
    except Exception:
        db.rollback()
        logger.exception("order_creation_rolled_back", customer_id=data.customer_id)
        raise

    db.refresh(order)
    logger.info(
        "order_created",
        order_number=order.order_number,
        customer_id=order.customer_id,
        currency=order.currency,
        total_ref_incl_vat=str(order.total_ref_incl_vat),
        status=order.status,
        is_paid=order.is_paid,
    )
    return order


# --------------------------
# READ
# --------------------------
def get_order(db: Session, order_number: str) -> Optional[Order]:
    return db.query(Order).filter(Order.order_number == order_number).first()


def get_order_by_idempotency_key(db: Session, key: str) -> Optional[Order]:
    return db.query(Order).filter(Order.idempotency_key == key).first()


def list_orders(
    db: Session,
    status: Optional[str] = None,
    customer_id: Optional[int] = None,
) -> List[Order]:
    query = db.query(Order)
    if status is not None:
        query = query.filter(Order.status == OrderStatus.parse(status).value)
    if customer_id is not None:
        query = query.filter(Order.customer_id == customer_id)
    return query.order_by(Order.created_at.desc(), Order.id.desc()).all()
