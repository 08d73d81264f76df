from datetime import datetime
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Table,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from backoffice.database.connection import Base


product_categories = Table(
    "product_categories",
    Base.metadata,
    Column("product_id", Integer, ForeignKey("products.id", ondelete="CASCADE"), primary_key=True),
    Column("category_id", Integer, ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True),
)

family_attributes = Table(
    "family_attributes",
    Base.metadata,
    Column("family_id", Integer, ForeignKey("product_families.id", ondelete="CASCADE"), primary_key=True),
    Column("attribute_id", Integer, ForeignKey("attributes.id", ondelete="CASCADE"), primary_key=True),
)


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    parent_id = Column(Integer, ForeignKey("categories.id"), nullable=True, index=True)
    name = Column(String, nullable=False)
    slug = Column(String, unique=True, index=True, nullable=False)
    status = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    parent = relationship("Category", remote_side=[id], back_populates="children")
    children = relationship("Category", back_populates="parent", order_by="Category.id")
    products = relationship("Product", secondary=product_categories, back_populates="categories")


class ProductFamily(Base):
    """Groups products that share one attribute set (e.g. "Office chairs")."""

    __tablename__ = "product_families"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    code = Column(String, unique=True, index=True, nullable=False)
    status = Column(Boolean, default=True, nullable=False)

    products = relationship("Product", back_populates="family")
    attributes = relationship("Attribute", secondary=family_attributes, order_by="Attribute.id")


class Attribute(Base):
    __tablename__ = "attributes"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False, default="select")
    is_filterable = Column(Boolean, default=False, nullable=False)

    values = relationship(
        "AttributeValue",
        back_populates="attribute",
        cascade="all, delete-orphan",
        order_by="AttributeValue.sort_order",
    )


class AttributeValue(Base):
    __tablename__ = "attribute_values"
    __table_args__ = (
        UniqueConstraint("attribute_id", "value", name="uq_attribute_value"),
    )

    id = Column(Integer, primary_key=True, index=True)
    attribute_id = Column(
        Integer, ForeignKey("attributes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    value = Column(String, nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)

    attribute = relationship("Attribute", back_populates="values")


class ProductAttributeValue(Base):
    __tablename__ = "product_attribute_values"
    # one value per attribute and product
    __table_args__ = (
        UniqueConstraint("product_id", "attribute_id", name="uq_product_attribute"),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(
        Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    attribute_id = Column(
        Integer, ForeignKey("attributes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    attribute_value_id = Column(
        Integer, ForeignKey("attribute_values.id", ondelete="CASCADE"), nullable=False
    )

    product = relationship("Product", back_populates="attribute_values")
    attribute = relationship("Attribute")
    attribute_value = relationship("AttributeValue")

    @property
    def attribute_code(self):
        return self.attribute.code

    @property
    def value(self):
        return self.attribute_value.value
