from sqlalchemy import Boolean, Column, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from backoffice.database.connection import Base


class Currency(Base):
    __tablename__ = "currencies"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(3), unique=True, index=True, nullable=False)
    symbol_left = Column(String, nullable=True)
    symbol_right = Column(String, nullable=True)
    # reference currency units per 1 unit of this currency (1 EUR = 5.0910 RON)
    value = Column(Numeric(15, 4), nullable=False)
    status = Column(Boolean, nullable=False, default=True)


class Country(Base):
    __tablename__ = "countries"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    iso_code = Column(String(2), unique=True, nullable=False)

    vat_rates = relationship("VatRate", back_populates="country")


class VatRate(Base):
    __tablename__ = "vat_rates"

    id = Column(Integer, primary_key=True, index=True)
    country_id = Column(
        Integer, ForeignKey("countries.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String, nullable=True)  # standard / reduced
    rate = Column(Numeric(5, 2), nullable=False)

    country = relationship("Country", back_populates="vat_rates")
