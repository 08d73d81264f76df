from decimal import Decimal
from types import SimpleNamespace

import pytest
from fastapi import HTTPException

from conftest import make_address, make_customer
from backoffice.core.security import (
    create_access_token,
    create_refresh_token,
    decode_access_token,
    decode_refresh_token,
)
from backoffice.enums.catalog import AddressType
from backoffice.middleware.metrics import new_metrics
from backoffice.routes.auth import refresh_token, register_user
from backoffice.routes.orders import (
    cancel,
    checkout,
    history,
    mark_paid,
    mark_unpaid,
    update_status,
)
from backoffice.routes.products import create, product_price, product_tiers, replace_group_prices
from backoffice.routes.system import health_check, system_metrics
from backoffice.schemas.order import OrderCancelRequest, OrderCreate, OrderItemIn, OrderStatusUpdate
from backoffice.schemas.product import GroupPriceTierIn, GroupPriceUpdateRequest, ProductCreate
from backoffice.schemas.user import UserCreate


def _request():
    state = SimpleNamespace(metrics=new_metrics())
    return SimpleNamespace(app=SimpleNamespace(state=state))


def _admin(db):
    return register_user(
        UserCreate(username="admin", email="admin@example.com", password="secret", role="admin"),
        db=db,
    )


def _product(db, shop, sku="CHAIR"):
    product = create(
        ProductCreate(sku=sku, name="Office chair", base_price=Decimal("84.03"), stock_quantity=5),
        db=db,
    )
    replace_group_prices(
        product.id,
        shop["b2c"].id,
        GroupPriceUpdateRequest(
            tiers=[
                GroupPriceTierIn(min_quantity=1, price=Decimal("84.03")),
                GroupPriceTierIn(min_quantity=4, price=Decimal("75.63")),
            ]
        ),
        db=db,
    )
    return product


def _place_order(db, shop, resolver, product, quantity=1, payment_method="bank_transfer"):
    customer = make_customer(db, shop["b2c"])
    address = make_address(db, customer, AddressType.billing)
    return checkout(
        OrderCreate(
            customer_id=customer.id,
            payment_method=payment_method,
            shipping_method_id=shop["courier"].id,
            billing_address_id=address.id,
            shipping_address_id=address.id,
            items=[OrderItemIn(product_id=product.id, quantity=quantity)],
        ),
        db=db,
        resolver=resolver,
        user=None,
    )


@pytest.mark.order(1)
def test_tokens_are_typed():
    access = create_access_token({"sub": "admin", "role": "admin"})
    refresh = create_refresh_token({"sub": "admin", "role": "admin"})

    assert decode_access_token(access).username == "admin"
    assert decode_refresh_token(refresh).role == "admin"
    # a refresh token cannot be used as an access token
    assert decode_access_token(refresh).username is None

    assert refresh_token(refresh).access_token
    with pytest.raises(HTTPException) as exc:
        refresh_token(access)
    assert exc.value.status_code == 401


@pytest.mark.order(2)
def test_product_pricing_routes(db, shop, resolver):
    product = _product(db, shop)

    single = product_price(_request(), product.id, quantity=1, db=db, resolver=resolver)
    assert single.display_unit_price == Decimal("100.00")

    request = _request()
    bulk = product_price(request, product.id, quantity=4, currency="EUR", db=db, resolver=resolver)
    # 75.63 + 19% = 90.00 RON = 18.00 EUR
    assert bulk.unit_price_incl_vat == Decimal("18.00")
    assert bulk.display_total_price == Decimal("72.00")
    assert request.app.state.metrics["pricing_calls"] == 1

    tiers = product_tiers(product.id, db=db, resolver=resolver)
    assert [t.quantity_range for t in tiers.tiers] == ["1-3", "4+"]


@pytest.mark.order(3)
def test_pricing_route_errors(db, shop, resolver):
    product = _product(db, shop)

    for call, status in [
        (lambda: product_price(_request(), 999, db=db, resolver=resolver), 404),
        (lambda: product_price(_request(), product.id, quantity=0, db=db, resolver=resolver), 400),
        (lambda: product_price(_request(), product.id, currency="USD", db=db, resolver=resolver), 400),
        (lambda: product_price(_request(), product.id, country_id=77, db=db, resolver=resolver), 400),
    ]:
        with pytest.raises(HTTPException) as exc:
            call()
        assert exc.value.status_code == status


@pytest.mark.order(4)
def test_group_price_validation(db, shop):
    product = _product(db, shop, sku="DESK")

    with pytest.raises(HTTPException) as exc:
        replace_group_prices(
            product.id,
            shop["b2c"].id,
            GroupPriceUpdateRequest(tiers=[GroupPriceTierIn(min_quantity=5, price=Decimal("1"))]),
            db=db,
        )
    assert exc.value.status_code == 400

    with pytest.raises(HTTPException) as exc:
        replace_group_prices(
            999, shop["b2c"].id,
            GroupPriceUpdateRequest(tiers=[GroupPriceTierIn(min_quantity=1, price=Decimal("1"))]),
            db=db,
        )
    assert exc.value.status_code == 404


@pytest.mark.order(5)
def test_order_admin_flow(db, shop, resolver):
    admin = _admin(db)
    product = _product(db, shop)
    order = _place_order(db, shop, resolver, product, quantity=4)

    assert order.total_ref_incl_vat == Decimal("360.00")
    assert order.status == "pending"

    update_status(order.order_number, OrderStatusUpdate(status="confirmed"), db=db, admin=admin)
    with pytest.raises(HTTPException) as exc:
        update_status(order.order_number, OrderStatusUpdate(status="confirmed"), db=db, admin=admin)
    assert exc.value.status_code == 400
    with pytest.raises(HTTPException) as exc:
        update_status(order.order_number, OrderStatusUpdate(status="delivered"), db=db, admin=admin)
    assert exc.value.status_code == 400

    paid = mark_paid(order.order_number, db=db, admin=admin)
    assert paid.is_paid is True
    with pytest.raises(HTTPException) as exc:
        mark_paid(order.order_number, db=db, admin=admin)
    assert exc.value.status_code == 400
    mark_unpaid(order.order_number, db=db, admin=admin)

    cancelled = cancel(order.order_number, OrderCancelRequest(reason="out of stock"), db=db, admin=admin)
    assert cancelled.status == "cancelled"
    with pytest.raises(HTTPException) as exc:
        cancel(order.order_number, None, db=db, admin=admin)
    assert exc.value.status_code == 400

    entries = history(order.order_number, db=db)
    assert [e.action for e in entries] == [
        "order_created",
        "status_changed",
        "payment_received",
        "payment_reversed",
        "status_changed",
        "order_cancelled",
    ]
    assert all(e.user_id == admin.id for e in entries[1:])
    assert entries[0].user_id is None


@pytest.mark.order(6)
def test_checkout_route_rejects_bad_orders(db, shop, resolver):
    product = _product(db, shop)
    with pytest.raises(HTTPException) as exc:
        checkout(
            OrderCreate(
                payment_method="card",
                shipping_method_id=shop["courier"].id,
                items=[OrderItemIn(product_id=product.id, quantity=1)],
            ),
            db=db,
            resolver=resolver,
            user=None,
        )
    assert exc.value.status_code == 400

    with pytest.raises(HTTPException) as exc:
        history("ORD_UNKNOWN", db=db)
    assert exc.value.status_code == 404


@pytest.mark.order(7)
def test_health_and_metrics(db, shop, resolver):
    product = _product(db, shop)
    _place_order(db, shop, resolver, product, payment_method="card")
    _place_order(db, shop, resolver, product, payment_method="ramburs")

    request = _request()
    request.app.state.metrics["requests"] = 4
    request.app.state.metrics["total_response_ms"] = 10.0

    health = health_check(request, db=db)
    assert health.status == "ok"
    assert health.db_ok is True

    metrics = system_metrics(request, db=db)
    assert metrics.total_orders == 2
    assert metrics.orders_by_status == {"awaiting_payment": 1, "confirmed": 1}
    assert metrics.unpaid_orders == 1
    assert metrics.avg_response_ms == pytest.approx(2.5)
    assert metrics.average_order_value == Decimal("100.00")
