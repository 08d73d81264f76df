from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel

from backoffice.enums.catalog import ProductType


class ProductBase(BaseModel):
    name: str
    ean: Optional[str] = None
    product_type: ProductType = ProductType.simple
    parent_id: Optional[int] = None
    family_id: Optional[int] = None
    base_price: Decimal
    cost_price: Decimal = Decimal("0")
    stock_quantity: int = 0
    status: bool = True


class ProductCreate(ProductBase):
    sku: str


class ProductUpdate(BaseModel):
    name: Optional[str] = None
    ean: Optional[str] = None
    family_id: Optional[int] = None
    base_price: Optional[Decimal] = None
    cost_price: Optional[Decimal] = None
    stock_quantity: Optional[int] = None
    status: Optional[bool] = None


class GroupPriceResponse(BaseModel):
    customer_group_id: int
    min_quantity: int
    price: Decimal

    class Config:
        from_attributes = True


class ProductResponse(ProductBase):
    id: int
    sku: str
    created_at: datetime
    updated_at: datetime
    effective_family_id: Optional[int] = None
    category_ids: List[int] = []
    group_prices: List[GroupPriceResponse] = []

    class Config:
        from_attributes = True


class GroupPriceTierIn(BaseModel):
    min_quantity: int
    price: Decimal


class GroupPriceUpdateRequest(BaseModel):
    tiers: List[GroupPriceTierIn]
