import re
from typing import Iterable, List, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session

from backoffice.core.errors import ValidationError
from backoffice.models.catalog import (
    Attribute,
    AttributeValue,
    Category,
    ProductAttributeValue,
    ProductFamily,
)
from backoffice.models.product import Product
from backoffice.schemas.catalog import (
    AttributeCreate,
    AttributeValueCreate,
    CategoryCreate,
    CategoryUpdate,
    ProductFamilyCreate,
)

logger = structlog.get_logger(__name__)


def slugify(text: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", text.strip().lower()).strip("-")
    if not slug:
        raise ValidationError(f"Cannot build a slug from {text!r}")
    return slug


# --------------------------
# CATEGORIES
# --------------------------
def _check_category_parent(db: Session, category: Optional[Category], parent_id: Optional[int]) -> None:
    if parent_id is None:
        return
    parent = get_category(db, parent_id)
    if parent is None:
        raise ValidationError(f"Parent category not found: {parent_id}")
    # walk up from the new parent; meeting the category itself means a cycle
    node = parent
    while category is not None and node is not None:
        if node.id == category.id:
            raise ValidationError("A category cannot be moved under itself")
        node = node.parent


def create_category(db: Session, data: CategoryCreate) -> Category:
    slug = slugify(data.slug or data.name)
    if db.query(Category.id).filter(Category.slug == slug).first():
        raise ValidationError(f"Category slug already exists: {slug}")
    _check_category_parent(db, None, data.parent_id)

    category = Category(name=data.name, slug=slug, parent_id=data.parent_id, status=data.status)
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


def get_category(db: Session, category_id: int) -> Optional[Category]:
    return db.get(Category, category_id)


def list_categories(db: Session, parent_id: Optional[int] = None, roots_only: bool = False) -> List[Category]:
    query = db.query(Category)
    if parent_id is not None:
        query = query.filter(Category.parent_id == parent_id)
    elif roots_only:
        query = query.filter(Category.parent_id.is_(None))
    return query.order_by(Category.id).all()


def update_category(db: Session, category_id: int, data: CategoryUpdate) -> Optional[Category]:
    category = get_category(db, category_id)
    if not category:
        return None

    changes = data.model_dump(exclude_unset=True)
    if "parent_id" in changes:
        _check_category_parent(db, category, changes["parent_id"])
    for key, value in changes.items():
        setattr(category, key, value)

    db.commit()
    db.refresh(category)
    return category


def delete_category(db: Session, category_id: int) -> bool:
    category = get_category(db, category_id)
    if not category:
        return False
    if category.children:
        raise ValidationError("Delete or move the child categories first")
    db.delete(category)
    db.commit()
    return True


def set_product_categories(db: Session, product: Product, category_ids: Iterable[int]) -> List[Category]:
    """Replace the categories a product is listed in."""
    categories = []
    for category_id in dict.fromkeys(category_ids):
        category = get_category(db, category_id)
        if category is None:
            raise ValidationError(f"Category not found: {category_id}")
        categories.append(category)

    product.categories = categories
    db.commit()
    db.refresh(product)
    return product.categories


def list_category_products(db: Session, category: Category, active_only: bool = False) -> List[Product]:
    query = db.query(Product).filter(Product.categories.any(Category.id == category.id))
    if active_only:
        query = query.filter(Product.status.is_(True))
    return query.order_by(Product.id).all()


# --------------------------
# PRODUCT FAMILIES
# --------------------------
def create_family(db: Session, data: ProductFamilyCreate) -> ProductFamily:
    if db.query(ProductFamily.id).filter(ProductFamily.code == data.code).first():
        raise ValidationError(f"Product family code already exists: {data.code}")

    family = ProductFamily(name=data.name, code=data.code, status=data.status)
    for attribute_id in dict.fromkeys(data.attribute_ids):
        attribute = get_attribute(db, attribute_id)
        if attribute is None:
            raise ValidationError(f"Attribute not found: {attribute_id}")
        family.attributes.append(attribute)

    db.add(family)
    db.commit()
    db.refresh(family)
    return family


def get_family(db: Session, family_id: int) -> Optional[ProductFamily]:
    return db.get(ProductFamily, family_id)


def list_families(db: Session) -> List[ProductFamily]:
    return db.query(ProductFamily).order_by(ProductFamily.id).all()


def list_family_products(db: Session, family: ProductFamily) -> List[Product]:
    """Members of the family, variants of member products included."""
    members = select(Product.id).where(Product.family_id == family.id)
    return (
        db.query(Product)
        .filter((Product.family_id == family.id) | Product.parent_id.in_(members))
        .order_by(Product.id)
        .all()
    )


def delete_family(db: Session, family_id: int) -> bool:
    family = get_family(db, family_id)
    if not family:
        return False
    if family.products:
        raise ValidationError("Product family is still used by products")
    db.delete(family)
    db.commit()
    return True


# --------------------------
# ATTRIBUTES
# --------------------------
def create_attribute(db: Session, data: AttributeCreate) -> Attribute:
    if db.query(Attribute.id).filter(Attribute.code == data.code).first():
        raise ValidationError(f"Attribute code already exists: {data.code}")
    attribute = Attribute(**data.model_dump())
    db.add(attribute)
    db.commit()
    db.refresh(attribute)
    return attribute


def get_attribute(db: Session, attribute_id: int) -> Optional[Attribute]:
    return db.get(Attribute, attribute_id)


def list_attributes(db: Session, filterable_only: bool = False) -> List[Attribute]:
    query = db.query(Attribute)
    if filterable_only:
        query = query.filter(Attribute.is_filterable.is_(True))
    return query.order_by(Attribute.id).all()


def add_attribute_value(db: Session, attribute: Attribute, data: AttributeValueCreate) -> AttributeValue:
    value = data.value.strip()
    if not value:
        raise ValidationError("Attribute value cannot be empty")
    if any(v.value == value for v in attribute.values):
        raise ValidationError(f"Value already exists for {attribute.code}: {value}")

    row = AttributeValue(attribute_id=attribute.id, value=value, sort_order=data.sort_order)
    db.add(row)
    db.commit()
    db.refresh(row)
    db.expire(attribute, ["values"])
    return row


def delete_attribute_value(db: Session, value_id: int) -> bool:
    row = db.get(AttributeValue, value_id)
    if not row:
        return False
    if db.query(ProductAttributeValue.id).filter(ProductAttributeValue.attribute_value_id == value_id).first():
        raise ValidationError("Attribute value is still assigned to products")
    db.delete(row)
    db.commit()
    return True


def set_product_attribute_values(
    db: Session, product: Product, value_ids: Iterable[int]
) -> List[ProductAttributeValue]:
    """Replace the attribute values of one product. At most one value per attribute."""
    values = []
    seen_attributes = set()
    for value_id in dict.fromkeys(value_ids):
        value = db.get(AttributeValue, value_id)
        if value is None:
            raise ValidationError(f"Attribute value not found: {value_id}")
        if value.attribute_id in seen_attributes:
            raise ValidationError(
                f"Only one value allowed per attribute: {value.attribute.code}"
            )
        seen_attributes.add(value.attribute_id)
        values.append(value)

    product.attribute_values = []
    db.flush()
    product.attribute_values = [
        ProductAttributeValue(attribute_id=v.attribute_id, attribute_value_id=v.id)
        for v in values
    ]
    db.commit()
    db.refresh(product)

    logger.info(
        "product_attributes_replaced",
        product_id=product.id,
        values=len(values),
    )
    return product.attribute_values
