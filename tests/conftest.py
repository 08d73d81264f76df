import os

os.environ.setdefault("SECRET_KEY", "test-secret")

from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import backoffice.models  # noqa: F401
from backoffice.database.connection import Base
from backoffice.enums.catalog import AddressType, CustomerType, ShippingMethodType
from backoffice.models.currency import Country, Currency, VatRate
from backoffice.models.customer import Address, Customer, CustomerGroup
from backoffice.models.product import Product, ProductGroupPrice
from backoffice.models.shipping import ShippingMethod
from backoffice.services.pricing_service.price_resolver import PriceResolver

TEST_DB_URL = "sqlite:///:memory:"

engine = create_engine(
    TEST_DB_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db():
    # services commit and roll back themselves, so every test gets a fresh schema
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def resolver():
    return PriceResolver()


@pytest.fixture()
def shop(db):
    """
    A minimal shop: Romania (id 1, 19% / 9% VAT), RON and EUR, the retail
    and one VAT-exempt B2B group, a courier and a locker shipping method.
    """
    romania = Country(name="Romania", iso_code="RO")
    db.add(romania)
    db.flush()
    db.add_all([
        VatRate(country_id=romania.id, name="standard", rate=Decimal("19.00")),
        VatRate(country_id=romania.id, name="reduced", rate=Decimal("9.00")),
    ])

    ron = Currency(code="RON", symbol_right=" lei", value=Decimal("1.0000"), status=True)
    eur = Currency(code="EUR", symbol_left="€", value=Decimal("5.0000"), status=True)
    usd = Currency(code="USD", symbol_left="$", value=Decimal("4.5000"), status=False)

    b2c = CustomerGroup(name="Retail", code="B2C", vat_exempt=False)
    b2b = CustomerGroup(name="B2B Standard", code="B2B_STANDARD", vat_exempt=True)

    courier = ShippingMethod(
        name="Courier", method_type=ShippingMethodType.courier.value, cost=Decimal("20.00")
    )
    locker = ShippingMethod(
        name="Easybox", method_type=ShippingMethodType.pickup.value, cost=Decimal("11.90")
    )

    db.add_all([ron, eur, usd, b2c, b2b, courier, locker])
    db.commit()

    return {
        "country": romania,
        "ron": ron,
        "eur": eur,
        "usd": usd,
        "b2c": b2c,
        "b2b": b2b,
        "courier": courier,
        "locker": locker,
    }


def make_product(db, sku="SKU-1", base_price="100.00", cost_price="60.00", stock=10, **kwargs):
    product = Product(
        sku=sku,
        name=kwargs.pop("name", f"Product {sku}"),
        ean=kwargs.pop("ean", None),
        base_price=Decimal(base_price),
        cost_price=Decimal(cost_price),
        stock_quantity=stock,
        **kwargs,
    )
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


def add_tiers(db, product, group, tiers):
    for min_quantity, price in tiers:
        db.add(
            ProductGroupPrice(
                product_id=product.id,
                customer_group_id=group.id,
                min_quantity=min_quantity,
                price=Decimal(price),
            )
        )
    db.commit()


def make_customer(db, group, customer_type=CustomerType.individual, **kwargs):
    customer = Customer(
        customer_type=customer_type.value,
        customer_group_id=group.id,
        **kwargs,
    )
    db.add(customer)
    db.commit()
    db.refresh(customer)
    return customer


def make_address(db, customer, address_type=AddressType.billing, **kwargs):
    values = dict(
        first_name="Ana",
        last_name="Popescu",
        phone="0722000000",
        address_line_1="Strada Lunga 1",
        city="Brasov",
        county_name="Brasov",
        county_code="BV",
        country_id=1,
        zip_code="500001",
        is_preferred=False,
    )
    values.update(kwargs)
    address = Address(customer_id=customer.id, address_type=address_type.value, **values)
    db.add(address)
    db.commit()
    db.refresh(address)
    return address
