from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel


class PriceInfoResponse(BaseModel):
    product_id: int
    sku: str
    name: str
    quantity: int
    customer_group_id: Optional[int] = None
    currency: str
    exchange_rate: Decimal

    vat_rate: Decimal
    vat_included: bool

    unit_price_excl_vat_ref: Decimal
    unit_price_incl_vat_ref: Decimal
    unit_price_excl_vat: Decimal
    unit_price_incl_vat: Decimal
    total_excl_vat: Decimal
    total_incl_vat: Decimal

    display_unit_price: Decimal
    display_total_price: Decimal

    calculated_in_ms: float


class PriceTierResponse(BaseModel):
    min_quantity: int
    max_quantity: Optional[int] = None
    quantity_range: str
    price_excl_vat_ref: Decimal
    price_incl_vat_ref: Decimal
    display_price: Decimal
    vat_included: bool


class PriceTiersResponse(BaseModel):
    product_id: int
    currency: str
    tiers: List[PriceTierResponse]
