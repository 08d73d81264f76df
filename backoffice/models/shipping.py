from sqlalchemy import Boolean, Column, Integer, Numeric, String

from backoffice.database.connection import Base
from backoffice.enums.catalog import ShippingMethodType


class ShippingMethod(Base):
    __tablename__ = "shipping_methods"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    method_type = Column(String, nullable=False, default=ShippingMethodType.courier.value)
    # reference currency, VAT included
    cost = Column(Numeric(15, 2), nullable=False, default=0)
    status = Column(Boolean, nullable=False, default=True)
