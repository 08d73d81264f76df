from typing import List, Optional

from sqlalchemy.orm import Session

from backoffice.core.errors import ValidationError
from backoffice.enums.catalog import AddressType, CustomerType
from backoffice.models.customer import Address, Customer, CustomerGroup
from backoffice.schemas.customer import (
    AddressCreate,
    AddressUpdate,
    CustomerCreate,
    CustomerGroupCreate,
)


# --------------------------
# CUSTOMER GROUPS
# --------------------------
def create_group(db: Session, data: CustomerGroupCreate) -> CustomerGroup:
    if get_group_by_code(db, data.code):
        raise ValidationError(f"Customer group code already exists: {data.code}")
    group = CustomerGroup(name=data.name, code=data.code, vat_exempt=data.vat_exempt)
    db.add(group)
    db.commit()
    db.refresh(group)
    return group


def get_group(db: Session, group_id: int) -> Optional[CustomerGroup]:
    return db.get(CustomerGroup, group_id)


def get_group_by_code(db: Session, code: str) -> Optional[CustomerGroup]:
    return db.query(CustomerGroup).filter(CustomerGroup.code == code).first()


def list_groups(db: Session) -> List[CustomerGroup]:
    return db.query(CustomerGroup).order_by(CustomerGroup.id).all()


# --------------------------
# CUSTOMERS
# --------------------------
def create_customer(db: Session, data: CustomerCreate) -> Customer:
    customer_type = CustomerType.parse(data.customer_type)
    if customer_type is CustomerType.company and not data.company_name:
        raise ValidationError("Company customers need a company name")
    if data.customer_group_id is not None and not get_group(db, data.customer_group_id):
        raise ValidationError(f"Customer group not found: {data.customer_group_id}")

    customer = Customer(**data.model_dump())
    customer.customer_type = customer_type.value
    db.add(customer)
    db.commit()
    db.refresh(customer)
    return customer


def get_customer(db: Session, customer_id: int) -> Optional[Customer]:
    return db.get(Customer, customer_id)


def list_customers(db: Session) -> List[Customer]:
    return db.query(Customer).order_by(Customer.id).all()


# --------------------------
# ADDRESSES
# --------------------------
def _clear_preferred(db: Session, customer_id: int, address_type: str, keep_id: Optional[int] = None):
    query = db.query(Address).filter(
        Address.customer_id == customer_id,
        Address.address_type == address_type,
        Address.is_preferred.is_(True),
    )
    if keep_id is not None:
        query = query.filter(Address.id != keep_id)
    for address in query.all():
        address.is_preferred = False


def add_address(db: Session, customer: Customer, data: AddressCreate) -> Address:
    payload = data.model_dump()
    payload["address_type"] = AddressType.parse(data.address_type).value

    # one preferred address per type
    if data.is_preferred:
        _clear_preferred(db, customer.id, payload["address_type"])

    address = Address(customer_id=customer.id, **payload)
    db.add(address)
    db.commit()
    db.refresh(address)
    return address


def get_address(db: Session, customer_id: int, address_id: int) -> Optional[Address]:
    return (
        db.query(Address)
        .filter(Address.id == address_id, Address.customer_id == customer_id)
        .first()
    )


def update_address(db: Session, address: Address, data: AddressUpdate) -> Address:
    changes = data.model_dump(exclude_unset=True)
    if changes.get("is_preferred"):
        _clear_preferred(db, address.customer_id, address.address_type, keep_id=address.id)

    for key, value in changes.items():
        setattr(address, key, value)

    db.commit()
    db.refresh(address)
    return address


def preferred_address(db: Session, customer: Customer, address_type: AddressType) -> Optional[Address]:
    """Preferred address of the type, else any address of the type."""
    address_type = AddressType.parse(address_type)
    return (
        db.query(Address)
        .filter(
            Address.customer_id == customer.id,
            Address.address_type == address_type.value,
        )
        .order_by(Address.is_preferred.desc(), Address.id.asc())
        .first()
    )


def has_address_of_type(db: Session, customer: Customer, address_type: AddressType) -> bool:
    return preferred_address(db, customer, address_type) is not None
