from datetime import datetime
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    event,
)
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import object_session, relationship

from backoffice.core.errors import ImmutableRecordError
from backoffice.database.connection import Base
from backoffice.enums.order_status import OrderStatus


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String, unique=True, index=True, nullable=False)  # e.g. ORD_3F9A01BC22
    # client-supplied; a retried checkout with the same key returns the first order
    idempotency_key = Column(String, unique=True, nullable=True, index=True)
    customer_id = Column(
        Integer, ForeignKey("customers.id", ondelete="RESTRICT"), nullable=True, index=True
    )
    guest_email = Column(String, nullable=True)

    # frozen at order time
    currency = Column(String(3), nullable=False)
    exchange_rate = Column(Numeric(15, 4), nullable=False)
    vat_rate_applied = Column(Numeric(5, 2), nullable=False)
    is_vat_exempt = Column(Boolean, nullable=False, default=False)

    # transaction currency
    total_excl_vat = Column(Numeric(15, 2), nullable=False)
    total_incl_vat = Column(Numeric(15, 2), nullable=False)
    # reference currency
    total_ref_excl_vat = Column(Numeric(15, 2), nullable=False)
    total_ref_incl_vat = Column(Numeric(15, 2), nullable=False)

    payment_method = Column(String, nullable=True)
    status = Column(String, nullable=False, default=OrderStatus.pending.value, index=True)

    # written only by the payment operations in services.order_service.lifecycle
    _is_paid = Column("is_paid", Boolean, nullable=False, default=False)
    _paid_at = Column("paid_at", DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    customer = relationship("Customer")
    # order deletes cascade into the snapshot rows so their delete guard fires
    products = relationship(
        "OrderProduct",
        back_populates="order",
        order_by="OrderProduct.id",
        cascade="save-update, merge, delete",
    )
    addresses = relationship(
        "OrderAddress",
        back_populates="order",
        order_by="OrderAddress.id",
        cascade="save-update, merge, delete",
    )
    shipping = relationship(
        "OrderShipping",
        back_populates="order",
        uselist=False,
        cascade="save-update, merge, delete",
    )
    history = relationship(
        "OrderHistory",
        back_populates="order",
        order_by="OrderHistory.id",
        cascade="save-update, merge, delete",
    )

    @hybrid_property
    def is_paid(self):
        return self._is_paid

    @hybrid_property
    def paid_at(self):
        return self._paid_at

    @property
    def status_enum(self) -> OrderStatus:
        return OrderStatus(self.status)

    @property
    def billing_address(self):
        return next((a for a in self.addresses if a.type == "billing"), None)

    @property
    def shipping_address(self):
        return next((a for a in self.addresses if a.type == "shipping"), None)


class OrderProduct(Base):
    """Line item snapshot. Totals are derived once, at write time."""

    __tablename__ = "order_products"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(
        Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # informational only, the catalog row may change or disappear
    product_id = Column(Integer, nullable=True, index=True)

    name = Column(String, nullable=False)
    sku = Column(String, nullable=False)
    ean = Column(String, nullable=True)
    quantity = Column(Integer, nullable=False)
    vat_percent = Column(Numeric(5, 2), nullable=False)
    exchange_rate = Column(Numeric(15, 4), nullable=False)

    unit_price_currency = Column(Numeric(15, 2), nullable=False)
    unit_price_ref = Column(Numeric(15, 2), nullable=False)
    unit_purchase_price_ref = Column(Numeric(15, 2), nullable=False)
    total_currency_excl_vat = Column(Numeric(15, 2), nullable=False)
    total_currency_incl_vat = Column(Numeric(15, 2), nullable=False)
    total_ref_excl_vat = Column(Numeric(15, 2), nullable=False)
    total_ref_incl_vat = Column(Numeric(15, 2), nullable=False)
    profit_ref = Column(Numeric(15, 2), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    order = relationship("Order", back_populates="products")


class OrderAddress(Base):
    """Frozen copy of an address at order time.

    No link to the addresses table: editing a customer's address later must
    not change what an old order shows.
    """

    __tablename__ = "order_addresses"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(
        Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type = Column(String, nullable=False)  # billing / shipping

    company_name = Column(String, nullable=True)
    fiscal_code = Column(String, nullable=True)
    reg_number = Column(String, nullable=True)

    first_name = Column(String, nullable=False, default="")
    last_name = Column(String, nullable=False, default="")
    phone = Column(String, nullable=False, default="")
    email = Column(String, nullable=True)
    address_line_1 = Column(String, nullable=False, default="")
    address_line_2 = Column(String, nullable=True)
    city = Column(String, nullable=False, default="")
    county_name = Column(String, nullable=True)
    county_code = Column(String, nullable=True)
    country_id = Column(Integer, nullable=False)
    zip_code = Column(String, nullable=False, default="")

    created_at = Column(DateTime, default=datetime.utcnow)

    order = relationship("Order", back_populates="addresses")


class OrderShipping(Base):
    __tablename__ = "order_shipping"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(
        Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    shipping_method_id = Column(
        Integer, ForeignKey("shipping_methods.id", ondelete="RESTRICT"), nullable=False
    )
    title = Column(String, nullable=True)
    pickup_point_id = Column(String, nullable=True)  # e.g. easybox_1234
    tracking_number = Column(String, nullable=True)
    # point_id, point_name, provider, locker_details ...
    courier_data = Column(JSON, nullable=True)

    shipping_cost_excl_vat = Column(Numeric(15, 2), nullable=False)
    shipping_cost_incl_vat = Column(Numeric(15, 2), nullable=False)
    shipping_cost_ref_excl_vat = Column(Numeric(15, 2), nullable=False)
    shipping_cost_ref_incl_vat = Column(Numeric(15, 2), nullable=False)

    order = relationship("Order", back_populates="shipping")
    shipping_method = relationship("ShippingMethod")


class OrderHistory(Base):
    """Append-only audit log of everything that happens to an order."""

    __tablename__ = "order_history"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(
        Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # null for system / guest actions
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    action = Column(String, nullable=False, index=True)
    old_value = Column(JSON, nullable=True)
    new_value = Column(JSON, nullable=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    order = relationship("Order", back_populates="history")
    user = relationship("User")


@event.listens_for(OrderShipping, "before_insert")
def _sync_pickup_point(mapper, connection, target):
    if target.courier_data and not target.pickup_point_id:
        target.pickup_point_id = target.courier_data.get("point_id")


def _reject_update(mapper, connection, target):
    session = object_session(target)
    if session is not None and not session.is_modified(target, include_collections=False):
        return
    raise ImmutableRecordError(
        f"{type(target).__name__} rows are written once and never updated"
    )


def _reject_delete(mapper, connection, target):
    raise ImmutableRecordError(f"{type(target).__name__} rows cannot be deleted")


for _model in (OrderProduct, OrderAddress, OrderHistory):
    event.listen(_model, "before_update", _reject_update)
    event.listen(_model, "before_delete", _reject_delete)
