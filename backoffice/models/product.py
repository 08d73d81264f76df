from datetime import datetime
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from backoffice.database.connection import Base
from backoffice.enums.catalog import ProductType


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    sku = Column(String, unique=True, index=True, nullable=False)
    ean = Column(String, nullable=True)
    name = Column(String, nullable=False)
    product_type = Column(String, nullable=False, default=ProductType.simple.value)
    # variant -> configurable, one level only
    parent_id = Column(Integer, ForeignKey("products.id"), nullable=True, index=True)
    # variants leave this empty and read the family of their parent
    family_id = Column(Integer, ForeignKey("product_families.id"), nullable=True, index=True)

    # reference currency, VAT excluded
    base_price = Column(Numeric(15, 2), nullable=False)
    cost_price = Column(Numeric(15, 2), nullable=False, default=0)

    stock_quantity = Column(Integer, default=0)
    status = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    parent = relationship("Product", remote_side=[id], back_populates="variants")
    variants = relationship("Product", back_populates="parent")
    family = relationship("ProductFamily", back_populates="products")
    categories = relationship(
        "Category",
        secondary="product_categories",
        back_populates="products",
        order_by="Category.id",
    )
    attribute_values = relationship(
        "ProductAttributeValue",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductAttributeValue.attribute_id",
    )
    group_prices = relationship(
        "ProductGroupPrice",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductGroupPrice.min_quantity",
    )

    @property
    def effective_family_id(self):
        if self.product_type == ProductType.variant.value and self.parent is not None:
            return self.parent.family_id
        return self.family_id

    @property
    def category_ids(self):
        return [c.id for c in self.categories]


class ProductGroupPrice(Base):
    __tablename__ = "product_group_prices"
    __table_args__ = (
        UniqueConstraint(
            "product_id", "customer_group_id", "min_quantity",
            name="uq_group_price_tier",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(
        Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    customer_group_id = Column(
        Integer, ForeignKey("customer_groups.id", ondelete="CASCADE"), nullable=False, index=True
    )
    min_quantity = Column(Integer, nullable=False, default=1)
    price = Column(Numeric(15, 2), nullable=False)

    product = relationship("Product", back_populates="group_prices")
    customer_group = relationship("CustomerGroup")
