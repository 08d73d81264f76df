from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class CurrencyCreate(BaseModel):
    code: str
    symbol_left: Optional[str] = None
    symbol_right: Optional[str] = None
    value: Decimal
    status: bool = True


class CurrencyRateUpdate(BaseModel):
    value: Decimal
    status: Optional[bool] = None


class CurrencyResponse(BaseModel):
    id: int
    code: str
    symbol_left: Optional[str] = None
    symbol_right: Optional[str] = None
    value: Decimal
    status: bool

    class Config:
        from_attributes = True


class CountryCreate(BaseModel):
    name: str
    iso_code: str


class CountryResponse(CountryCreate):
    id: int

    class Config:
        from_attributes = True


class VatRateCreate(BaseModel):
    country_id: int
    rate: Decimal
    name: Optional[str] = None


class VatRateResponse(VatRateCreate):
    id: int

    class Config:
        from_attributes = True
