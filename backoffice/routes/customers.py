from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from backoffice.core.http import http_errors
from backoffice.database.connection import get_db
from backoffice.dependencies.auth import require_admin
from backoffice.schemas.customer import (
    AddressCreate,
    AddressResponse,
    AddressUpdate,
    CustomerCreate,
    CustomerGroupCreate,
    CustomerGroupResponse,
    CustomerResponse,
)
from backoffice.services import customer_service

router = APIRouter(
    prefix="/customers",
    tags=["Customers"],
    dependencies=[Depends(require_admin)],
)

# GROUPS
@router.post("/groups", response_model=CustomerGroupResponse)
def create_group(data: CustomerGroupCreate, db: Session = Depends(get_db)):
    with http_errors():
        return customer_service.create_group(db, data)


@router.get("/groups", response_model=list[CustomerGroupResponse])
def list_groups(db: Session = Depends(get_db)):
    return customer_service.list_groups(db)

# CUSTOMERS
@router.post("/", response_model=CustomerResponse)
def create_customer(data: CustomerCreate, db: Session = Depends(get_db)):
    with http_errors():
        return customer_service.create_customer(db, data)


@router.get("/", response_model=list[CustomerResponse])
def list_customers(db: Session = Depends(get_db)):
    return customer_service.list_customers(db)


@router.get("/{customer_id}", response_model=CustomerResponse)
def get_customer(customer_id: int, db: Session = Depends(get_db)):
    customer = customer_service.get_customer(db, customer_id)
    if not customer:
        raise HTTPException(404, "Customer not found")
    return customer

# ADDRESSES
@router.post("/{customer_id}/addresses", response_model=AddressResponse)
def add_address(customer_id: int, data: AddressCreate, db: Session = Depends(get_db)):
    customer = customer_service.get_customer(db, customer_id)
    if not customer:
        raise HTTPException(404, "Customer not found")
    with http_errors():
        return customer_service.add_address(db, customer, data)


@router.put("/{customer_id}/addresses/{address_id}", response_model=AddressResponse)
def update_address(
    customer_id: int,
    address_id: int,
    data: AddressUpdate,
    db: Session = Depends(get_db),
):
    address = customer_service.get_address(db, customer_id, address_id)
    if not address:
        raise HTTPException(404, "Address not found")
    return customer_service.update_address(db, address, data)
