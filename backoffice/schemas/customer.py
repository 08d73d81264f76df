from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from backoffice.enums.catalog import AddressType, CustomerType


class CustomerGroupCreate(BaseModel):
    name: str
    code: str
    vat_exempt: bool = False


class CustomerGroupResponse(CustomerGroupCreate):
    id: int

    class Config:
        from_attributes = True


class AddressBase(BaseModel):
    first_name: str
    last_name: str
    phone: str
    address_line_1: str
    address_line_2: Optional[str] = None
    city: str
    county_name: Optional[str] = None
    county_code: Optional[str] = None
    country_id: int
    zip_code: str


class AddressCreate(AddressBase):
    address_type: AddressType
    is_preferred: bool = False


class AddressUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    address_line_1: Optional[str] = None
    address_line_2: Optional[str] = None
    city: Optional[str] = None
    county_name: Optional[str] = None
    county_code: Optional[str] = None
    country_id: Optional[int] = None
    zip_code: Optional[str] = None
    is_preferred: Optional[bool] = None


class AddressResponse(AddressBase):
    id: int
    customer_id: int
    address_type: str
    is_preferred: bool

    class Config:
        from_attributes = True


class CustomerCreate(BaseModel):
    customer_type: CustomerType = CustomerType.individual
    customer_group_id: Optional[int] = None
    company_name: Optional[str] = None
    fiscal_code: Optional[str] = None
    reg_number: Optional[str] = None
    bank_name: Optional[str] = None
    iban: Optional[str] = None
    phone: Optional[str] = None


class CustomerResponse(BaseModel):
    id: int
    customer_type: str
    customer_group_id: Optional[int] = None
    company_name: Optional[str] = None
    fiscal_code: Optional[str] = None
    reg_number: Optional[str] = None
    phone: Optional[str] = None
    created_at: datetime
    addresses: List[AddressResponse] = []

    class Config:
        from_attributes = True
