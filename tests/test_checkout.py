from decimal import Decimal

import pytest

from conftest import add_tiers, make_address, make_customer, make_product
from backoffice.core.errors import ImmutableRecordError, ValidationError
from backoffice.enums.catalog import AddressType, CustomerType
from backoffice.models.order import Order, OrderAddress, OrderHistory, OrderProduct
from backoffice.models.user import User
from backoffice.schemas.order import AddressIn, OrderCreate, OrderItemIn, PickupIn
from backoffice.services.order_service import checkout, lifecycle, snapshot
from backoffice.services.order_service.checkout import create_order, get_order, list_orders


@pytest.fixture()
def retail_customer(db, shop):
    customer = make_customer(db, shop["b2c"], phone="0722000000")
    db.add(User(username="ana", email="ana@example.com", hashed_password="x", customer_id=customer.id))
    db.commit()
    billing = make_address(db, customer, AddressType.billing, is_preferred=True)
    shipping = make_address(
        db, customer, AddressType.shipping, address_line_1="Strada Scurta 2", city="Sibiu"
    )
    return customer, billing, shipping


def _order_data(shop, customer, billing, shipping, items, **overrides):
    values = dict(
        customer_id=customer.id,
        currency="RON",
        payment_method="bank_transfer",
        shipping_method_id=shop["courier"].id,
        billing_address_id=billing.id,
        shipping_address_id=shipping.id,
        items=[OrderItemIn(product_id=p.id, quantity=q) for p, q in items],
    )
    values.update(overrides)
    return OrderCreate(**values)


def _guest_address(**kwargs):
    values = dict(
        first_name="Ion",
        last_name="Ionescu",
        phone="0733000000",
        address_line_1="Bulevardul Eroilor 5",
        city="Cluj-Napoca",
        zip_code="400001",
        country_id=1,
    )
    values.update(kwargs)
    return AddressIn(**values)


def test_order_totals_and_snapshots(db, shop, resolver, retail_customer):
    customer, billing, shipping = retail_customer
    product = make_product(db, sku="LAMP", base_price="84.03", cost_price="50.00", stock=10)

    order = create_order(
        db, _order_data(shop, customer, billing, shipping, [(product, 3)]), resolver
    )

    assert order.order_number.startswith("ORD_")
    assert len(order.order_number) == 14
    assert order.status == "pending"
    assert order.is_paid is False
    assert order.is_vat_exempt is False
    assert order.vat_rate_applied == Decimal("19.00")
    assert order.total_ref_excl_vat == Decimal("252.09")
    assert order.total_ref_incl_vat == Decimal("300.00")

    line = order.products[0]
    assert (line.name, line.sku, line.quantity) == ("Product LAMP", "LAMP", 3)
    assert line.unit_price_ref == Decimal("100.00")
    assert line.profit_ref == Decimal("102.09")

    assert order.billing_address.address_line_1 == "Strada Lunga 1"
    assert order.billing_address.email == "ana@example.com"
    assert order.shipping_address.city == "Sibiu"
    assert order.shipping.shipping_cost_ref_incl_vat == Decimal("20.00")
    assert order.shipping.title == "Courier"

    assert [h.action for h in order.history] == ["order_created"]
    db.refresh(product)
    assert product.stock_quantity == 7


def test_order_in_foreign_currency(db, shop, resolver, retail_customer):
    customer, billing, shipping = retail_customer
    product = make_product(db, sku="LAMP", base_price="84.03")

    order = create_order(
        db,
        _order_data(shop, customer, billing, shipping, [(product, 3)], currency="eur"),
        resolver,
    )

    assert order.currency == "EUR"
    assert order.exchange_rate == Decimal("5.0000")
    assert order.total_incl_vat == Decimal("60.00")
    assert order.total_excl_vat == Decimal("50.43")
    assert order.total_ref_incl_vat == Decimal("300.00")
    assert order.products[0].unit_price_currency == Decimal("20.00")
    assert order.shipping.shipping_cost_incl_vat == Decimal("4.00")


def test_group_tiers_apply_at_checkout(db, shop, resolver, retail_customer):
    customer, billing, shipping = retail_customer
    product = make_product(db, sku="BOLT", base_price="10.00")
    add_tiers(db, product, shop["b2c"], [(1, "10.00"), (10, "8.40")])

    order = create_order(
        db, _order_data(shop, customer, billing, shipping, [(product, 10)]), resolver
    )

    # 8.40 + 19% = 10.00 (rounded half up from 9.996)
    assert order.products[0].unit_price_ref == Decimal("10.00")
    assert order.total_ref_incl_vat == Decimal("100.00")


def test_editing_live_address_does_not_touch_order(db, shop, resolver, retail_customer):
    customer, billing, shipping = retail_customer
    product = make_product(db)
    order = create_order(
        db, _order_data(shop, customer, billing, shipping, [(product, 1)]), resolver
    )

    billing.address_line_1 = "Moved Away 99"
    billing.city = "Iasi"
    db.commit()

    db.expire_all()
    snapshot_row = get_order(db, order.order_number).billing_address
    assert snapshot_row.address_line_1 == "Strada Lunga 1"
    assert snapshot_row.city == "Brasov"


def test_order_lines_reject_updates(db, shop, resolver, retail_customer):
    customer, billing, shipping = retail_customer
    product = make_product(db)
    order = create_order(
        db, _order_data(shop, customer, billing, shipping, [(product, 1)]), resolver
    )

    line = order.products[0]
    line.quantity = 99
    with pytest.raises(ImmutableRecordError):
        db.commit()
    db.rollback()
    assert db.get(OrderProduct, line.id).quantity == 1


def test_order_lines_and_addresses_cannot_be_deleted(db, shop, resolver, retail_customer):
    customer, billing, shipping = retail_customer
    product = make_product(db)
    order = create_order(
        db, _order_data(shop, customer, billing, shipping, [(product, 1)]), resolver
    )
    line_id = order.products[0].id

    db.delete(order.products[0])
    with pytest.raises(ImmutableRecordError):
        db.commit()
    db.rollback()

    db.delete(order.addresses[0])
    with pytest.raises(ImmutableRecordError):
        db.commit()
    db.rollback()

    assert db.get(OrderProduct, line_id) is not None
    assert db.query(OrderAddress).filter(OrderAddress.order_id == order.id).count() == 2


def test_deleting_an_order_does_not_bypass_snapshot_guard(db, shop, resolver, retail_customer):
    customer, billing, shipping = retail_customer
    product = make_product(db)
    order = create_order(
        db, _order_data(shop, customer, billing, shipping, [(product, 1)]), resolver
    )
    order_id = order.id

    db.delete(order)
    with pytest.raises(ImmutableRecordError):
        db.commit()
    db.rollback()

    assert db.get(Order, order_id) is not None
    assert db.query(OrderProduct).filter(OrderProduct.order_id == order_id).count() == 1


@pytest.mark.parametrize(
    "method,status,paid",
    [
        ("card", "awaiting_payment", True),
        ("paypal", "pending", True),
        ("ramburs", "confirmed", False),
        ("bank_transfer", "pending", False),
    ],
)
def test_payment_method_decides_initial_state(db, shop, resolver, retail_customer, method, status, paid):
    customer, billing, shipping = retail_customer
    product = make_product(db)

    order = create_order(
        db,
        _order_data(shop, customer, billing, shipping, [(product, 1)], payment_method=method),
        resolver,
    )

    assert order.status == status
    assert order.is_paid is paid
    actions = [h.action for h in lifecycle.list_history(db, order)]
    assert actions == (["order_created", "payment_received"] if paid else ["order_created"])


def test_card_order_is_paid_while_awaiting_payment(db, shop, resolver, retail_customer):
    customer, billing, shipping = retail_customer
    product = make_product(db)
    order = create_order(
        db,
        _order_data(shop, customer, billing, shipping, [(product, 1)], payment_method="card"),
        resolver,
    )
    assert (order.status, order.is_paid) == ("awaiting_payment", True)

    assert lifecycle.change_status(db, order, "confirmed") is True
    assert order.status == "confirmed"
    assert order.is_paid is True
    assert lifecycle.mark_as_paid(db, order) is False


def test_guest_checkout_with_inline_addresses(db, shop, resolver):
    product = make_product(db)

    order = create_order(
        db,
        OrderCreate(
            guest_email="guest@example.com",
            payment_method="ramburs",
            shipping_method_id=shop["courier"].id,
            billing_address=_guest_address(),
            shipping_address=_guest_address(city="Oradea"),
            items=[OrderItemIn(product_id=product.id, quantity=2)],
        ),
        resolver,
    )

    assert order.customer_id is None
    assert order.guest_email == "guest@example.com"
    assert order.shipping_address.city == "Oradea"
    assert order.billing_address.email == "guest@example.com"
    assert "(Guest)" in order.history[0].description


def test_guest_needs_an_email(db, shop, resolver):
    product = make_product(db)
    with pytest.raises(ValidationError):
        create_order(
            db,
            OrderCreate(
                payment_method="ramburs",
                shipping_method_id=shop["courier"].id,
                billing_address=_guest_address(),
                shipping_address=_guest_address(),
                items=[OrderItemIn(product_id=product.id, quantity=1)],
            ),
            resolver,
        )
    assert db.query(Order).count() == 0


def test_company_needs_headquarters_address(db, shop, resolver):
    company = make_customer(
        db, shop["b2b"], CustomerType.company, company_name="Acme SRL", fiscal_code="RO123"
    )
    billing = make_address(db, company, AddressType.billing)
    product = make_product(db)

    with pytest.raises(ValidationError):
        create_order(
            db, _order_data(shop, company, billing, billing, [(product, 1)]), resolver
        )


def test_exempt_company_order(db, shop, resolver):
    company = make_customer(
        db, shop["b2b"], CustomerType.company,
        company_name="Acme SRL", fiscal_code="RO123", reg_number="J40/1/2020",
    )
    make_address(db, company, AddressType.headquarters)
    billing = make_address(db, company, AddressType.billing)
    product = make_product(db, sku="PANEL", base_price="7.00")
    add_tiers(db, product, shop["b2b"], [(1, "6.00")])

    order = create_order(
        db, _order_data(shop, company, billing, billing, [(product, 2)]), resolver
    )

    assert order.is_vat_exempt is True
    assert order.vat_rate_applied == Decimal("0.00")
    assert order.total_ref_excl_vat == order.total_ref_incl_vat == Decimal("12.00")
    assert order.billing_address.company_name == "Acme SRL"
    assert order.billing_address.fiscal_code == "RO123"
    assert order.shipping.shipping_cost_ref_excl_vat == Decimal("20.00")


def test_individual_gets_no_company_fields(db, shop, resolver):
    customer = make_customer(db, shop["b2c"], company_name="Leftover SRL")
    billing = make_address(db, customer, AddressType.billing)
    product = make_product(db)

    order = create_order(
        db,
        _order_data(
            shop, customer, billing, billing, [(product, 1)], guest_email="x@example.com"
        ),
        resolver,
    )
    assert order.billing_address.company_name is None


def test_locker_delivery(db, shop, resolver, retail_customer):
    customer, billing, _ = retail_customer
    product = make_product(db)
    pickup = PickupIn(
        point_id="easybox_1234",
        point_name="Easybox Mega Mall",
        provider="sameday",
        locker_details={
            "address": "Bd. Pierre de Coubertin 3",
            "city": "Bucuresti",
            "zip_code": "021901",
            "country_id": 1,
        },
    )

    order = create_order(
        db,
        _order_data(
            shop, customer, billing, billing, [(product, 1)],
            shipping_method_id=shop["locker"].id,
            shipping_address_id=None,
            pickup=pickup,
        ),
        resolver,
    )

    address = order.shipping_address
    assert address.address_line_1 == "Easybox Mega Mall - Bd. Pierre de Coubertin 3"
    assert address.city == "Bucuresti"
    assert address.country_id == 1
    assert (address.first_name, address.last_name) == ("Ana", "Popescu")
    assert order.shipping.pickup_point_id == "easybox_1234"
    assert order.shipping.courier_data["provider"] == "sameday"


def test_locker_address_defaults():
    address = snapshot.address_from_locker({"point_id": "x"}, "A", "B", "07")
    assert address.address_line_1 == "Pickup Point"
    assert address.type == "shipping"
    assert address.country_id == 1


def test_pickup_method_needs_a_point(db, shop, resolver, retail_customer):
    customer, billing, shipping = retail_customer
    product = make_product(db)
    with pytest.raises(ValidationError):
        create_order(
            db,
            _order_data(
                shop, customer, billing, shipping, [(product, 1)],
                shipping_method_id=shop["locker"].id,
            ),
            resolver,
        )


def test_inline_shipping_address_needs_a_country(db, shop, resolver):
    product = make_product(db)
    data = OrderCreate(
        guest_email="guest@example.com",
        payment_method="bank_transfer",
        shipping_method_id=shop["courier"].id,
        billing_address=_guest_address(),
        shipping_address=_guest_address(country_id=None),
        items=[OrderItemIn(product_id=product.id, quantity=1)],
    )

    with pytest.raises(ValidationError, match="Shipping country is required"):
        create_order(db, data, resolver)
    assert db.query(Order).count() == 0


def test_locker_without_country_is_rejected(db, shop, resolver, retail_customer):
    customer, billing, _ = retail_customer
    product = make_product(db)
    pickup = PickupIn(point_id="easybox_1234", locker_details={"city": "Bucuresti"})

    with pytest.raises(ValidationError, match="Shipping country is required"):
        create_order(
            db,
            _order_data(
                shop, customer, billing, billing, [(product, 1)],
                shipping_method_id=shop["locker"].id,
                shipping_address_id=None,
                pickup=pickup,
            ),
            resolver,
        )
    db.refresh(product)
    assert product.stock_quantity == 10


def test_repeated_idempotency_key_returns_the_first_order(db, shop, resolver, retail_customer):
    customer, billing, shipping = retail_customer
    product = make_product(db, stock=10)
    data = _order_data(
        shop, customer, billing, shipping, [(product, 2)], idempotency_key="checkout-7f3a"
    )

    first = create_order(db, data, resolver)
    second = create_order(db, data, resolver)

    assert second.id == first.id
    assert second.order_number == first.order_number
    assert first.idempotency_key == "checkout-7f3a"
    assert db.query(Order).count() == 1
    db.refresh(product)
    assert product.stock_quantity == 8
    assert [h.action for h in lifecycle.list_history(db, first)] == ["order_created"]


def test_orders_without_idempotency_key_are_independent(db, shop, resolver, retail_customer):
    customer, billing, shipping = retail_customer
    product = make_product(db, stock=10)
    data = _order_data(shop, customer, billing, shipping, [(product, 1)])

    first = create_order(db, data, resolver)
    second = create_order(db, data, resolver)

    assert first.id != second.id
    assert first.idempotency_key is None and second.idempotency_key is None
    db.refresh(product)
    assert product.stock_quantity == 8


@pytest.mark.parametrize("currency", ["USD", "XYZ"])
def test_inactive_or_unknown_currency(db, shop, resolver, retail_customer, currency):
    customer, billing, shipping = retail_customer
    product = make_product(db)
    with pytest.raises(ValidationError):
        create_order(
            db,
            _order_data(shop, customer, billing, shipping, [(product, 1)], currency=currency),
            resolver,
        )


def test_inactive_product_cannot_be_ordered(db, shop, resolver, retail_customer):
    customer, billing, shipping = retail_customer
    product = make_product(db, status=False)
    with pytest.raises(ValidationError):
        create_order(
            db, _order_data(shop, customer, billing, shipping, [(product, 1)]), resolver
        )


def test_zero_quantity_is_rejected(db, shop, resolver, retail_customer):
    customer, billing, shipping = retail_customer
    product = make_product(db)
    with pytest.raises(ValidationError):
        create_order(
            db, _order_data(shop, customer, billing, shipping, [(product, 0)]), resolver
        )


def test_backorders_are_allowed(db, shop, resolver, retail_customer):
    customer, billing, shipping = retail_customer
    product = make_product(db, stock=1)

    create_order(db, _order_data(shop, customer, billing, shipping, [(product, 3)]), resolver)

    db.refresh(product)
    assert product.stock_quantity == -2


def test_failure_mid_checkout_rolls_everything_back(db, shop, resolver, retail_customer, monkeypatch):
    customer, billing, shipping = retail_customer
    first = make_product(db, sku="A", stock=5)
    second = make_product(db, sku="B", stock=5)
    calls = []

    def exploding_line(product, quantity, totals, exchange_rate):
        calls.append(product.sku)
        if len(calls) == 2:
            raise RuntimeError("disk full")
        return snapshot.OrderProduct(
            product_id=product.id, name=product.name, sku=product.sku, quantity=quantity,
            vat_percent=totals.vat_percent, exchange_rate=exchange_rate,
            unit_price_currency=totals.unit_price_currency,
            unit_price_ref=totals.unit_price_ref,
            unit_purchase_price_ref=totals.unit_purchase_price_ref,
            total_currency_excl_vat=totals.total_excl_vat_currency,
            total_currency_incl_vat=totals.total_incl_vat_currency,
            total_ref_excl_vat=totals.total_excl_vat_ref,
            total_ref_incl_vat=totals.total_incl_vat_ref,
            profit_ref=totals.profit_ref,
        )

    monkeypatch.setattr(snapshot, "line_from_product", exploding_line)

    with pytest.raises(RuntimeError):
        create_order(
            db,
            _order_data(shop, customer, billing, shipping, [(first, 1), (second, 1)]),
            resolver,
        )

    assert db.query(Order).count() == 0
    assert db.query(OrderHistory).count() == 0
    assert db.query(OrderProduct).count() == 0
    assert db.get(type(first), first.id).stock_quantity == 5


def test_list_and_get_orders(db, shop, resolver, retail_customer):
    customer, billing, shipping = retail_customer
    product = make_product(db)
    first = create_order(db, _order_data(shop, customer, billing, shipping, [(product, 1)]), resolver)
    second = create_order(
        db,
        _order_data(shop, customer, billing, shipping, [(product, 1)], payment_method="ramburs"),
        resolver,
    )

    assert get_order(db, first.order_number).id == first.id
    assert get_order(db, "ORD_MISSING") is None
    assert {o.id for o in list_orders(db, customer_id=customer.id)} == {first.id, second.id}
    assert [o.id for o in list_orders(db, status="confirmed")] == [second.id]
    with pytest.raises(ValidationError):
        list_orders(db, status="bogus")


def test_order_numbers_are_unique():
    numbers = {checkout.generate_order_number() for _ in range(200)}
    assert len(numbers) == 200
