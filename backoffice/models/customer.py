from datetime import datetime
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from backoffice.database.connection import Base
from backoffice.enums.catalog import CustomerType


class CustomerGroup(Base):
    __tablename__ = "customer_groups"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    code = Column(String, unique=True, index=True, nullable=False)  # e.g. B2C, B2B_STANDARD
    # B2B reverse charge: orders for this group carry no VAT
    vat_exempt = Column(Boolean, nullable=False, default=False)

    customers = relationship("Customer", back_populates="customer_group")


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    customer_type = Column(String, nullable=False, default=CustomerType.individual.value)
    customer_group_id = Column(
        Integer, ForeignKey("customer_groups.id", ondelete="SET NULL"), nullable=True
    )

    # company-only fields
    company_name = Column(String, nullable=True)
    fiscal_code = Column(String, nullable=True)
    reg_number = Column(String, nullable=True)
    bank_name = Column(String, nullable=True)
    iban = Column(String, nullable=True)

    phone = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    customer_group = relationship("CustomerGroup", back_populates="customers")
    addresses = relationship(
        "Address", back_populates="customer", cascade="all, delete-orphan"
    )
    users = relationship("User", back_populates="customer")


class Address(Base):
    """Live customer address. Orders keep their own copy in order_addresses."""

    __tablename__ = "addresses"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(
        Integer, ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    address_type = Column(String, nullable=False)
    is_preferred = Column(Boolean, nullable=False, default=False)

    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    phone = Column(String, nullable=False)
    address_line_1 = Column(String, nullable=False)
    address_line_2 = Column(String, nullable=True)
    city = Column(String, nullable=False)
    county_name = Column(String, nullable=True)
    county_code = Column(String, nullable=True)
    country_id = Column(Integer, ForeignKey("countries.id"), nullable=False)
    zip_code = Column(String, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    customer = relationship("Customer", back_populates="addresses")
