from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, EmailStr

from backoffice.core.config import settings


# ---------- checkout input ----------

class OrderItemIn(BaseModel):
    product_id: int
    quantity: int


class AddressIn(BaseModel):
    """Inline address, used by guests or for a one-off destination."""
    first_name: str
    last_name: str
    phone: str
    email: Optional[EmailStr] = None
    company_name: Optional[str] = None
    fiscal_code: Optional[str] = None
    reg_number: Optional[str] = None
    address_line_1: str
    address_line_2: Optional[str] = None
    city: str
    county_name: Optional[str] = None
    county_code: Optional[str] = None
    country_id: Optional[int] = None
    zip_code: str


class LockerDetailsIn(BaseModel):
    address: Optional[str] = None
    city: Optional[str] = None
    county_name: Optional[str] = None
    county_code: Optional[str] = None
    zip_code: Optional[str] = None
    country_id: Optional[int] = None


class PickupIn(BaseModel):
    point_id: str
    point_name: Optional[str] = None
    provider: Optional[str] = None
    locker_details: LockerDetailsIn = LockerDetailsIn()


class OrderCreate(BaseModel):
    customer_id: Optional[int] = None
    guest_email: Optional[EmailStr] = None
    currency: str = settings.REFERENCE_CURRENCY
    payment_method: str
    shipping_method_id: int

    billing_address_id: Optional[int] = None
    billing_address: Optional[AddressIn] = None
    shipping_address_id: Optional[int] = None
    shipping_address: Optional[AddressIn] = None
    pickup: Optional[PickupIn] = None

    items: List[OrderItemIn]
    idempotency_key: Optional[str] = None


# ---------- admin input ----------

class OrderStatusUpdate(BaseModel):
    status: str


class OrderCancelRequest(BaseModel):
    reason: Optional[str] = None


# ---------- responses ----------

class OrderProductResponse(BaseModel):
    product_id: Optional[int] = None
    name: str
    sku: str
    ean: Optional[str] = None
    quantity: int
    vat_percent: Decimal
    exchange_rate: Decimal
    unit_price_currency: Decimal
    unit_price_ref: Decimal
    total_currency_excl_vat: Decimal
    total_currency_incl_vat: Decimal
    total_ref_excl_vat: Decimal
    total_ref_incl_vat: Decimal

    class Config:
        from_attributes = True


class OrderAddressResponse(BaseModel):
    type: str
    company_name: Optional[str] = None
    fiscal_code: Optional[str] = None
    reg_number: Optional[str] = None
    first_name: str
    last_name: str
    phone: str
    email: Optional[str] = None
    address_line_1: str
    address_line_2: Optional[str] = None
    city: str
    county_name: Optional[str] = None
    county_code: Optional[str] = None
    country_id: int
    zip_code: str

    class Config:
        from_attributes = True


class OrderShippingResponse(BaseModel):
    shipping_method_id: int
    title: Optional[str] = None
    pickup_point_id: Optional[str] = None
    tracking_number: Optional[str] = None
    courier_data: Optional[dict] = None
    shipping_cost_excl_vat: Decimal
    shipping_cost_incl_vat: Decimal
    shipping_cost_ref_excl_vat: Decimal
    shipping_cost_ref_incl_vat: Decimal

    class Config:
        from_attributes = True


class OrderHistoryResponse(BaseModel):
    id: int
    user_id: Optional[int] = None
    action: str
    old_value: Optional[Any] = None
    new_value: Optional[Any] = None
    description: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    id: int
    order_number: str
    customer_id: Optional[int] = None
    guest_email: Optional[str] = None
    currency: str
    exchange_rate: Decimal
    vat_rate_applied: Decimal
    is_vat_exempt: bool
    total_excl_vat: Decimal
    total_incl_vat: Decimal
    total_ref_excl_vat: Decimal
    total_ref_incl_vat: Decimal
    payment_method: Optional[str] = None
    status: str
    is_paid: bool
    paid_at: Optional[datetime] = None
    created_at: datetime

    products: List[OrderProductResponse] = []
    addresses: List[OrderAddressResponse] = []
    shipping: Optional[OrderShippingResponse] = None

    class Config:
        from_attributes = True
