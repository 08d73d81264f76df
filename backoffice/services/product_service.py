from typing import Iterable, List, Optional

import structlog
from sqlalchemy.orm import Session

from backoffice.core.errors import ValidationError
from backoffice.core.money import qmoney
from backoffice.enums.catalog import ProductType
from backoffice.models.catalog import ProductFamily
from backoffice.models.customer import CustomerGroup
from backoffice.models.product import Product, ProductGroupPrice
from backoffice.schemas.product import GroupPriceTierIn, ProductCreate, ProductUpdate

logger = structlog.get_logger(__name__)


def _check_prices(base_price, cost_price) -> None:
    if base_price is not None and qmoney(base_price) < 0:
        raise ValidationError("Base price cannot be negative")
    if cost_price is not None and qmoney(cost_price) < 0:
        raise ValidationError("Cost price cannot be negative")


def _check_parent(db: Session, product_type: ProductType, parent_id: Optional[int]) -> None:
    if product_type is ProductType.variant:
        parent = get_product(db, parent_id) if parent_id is not None else None
        if parent is None:
            raise ValidationError("Variants need an existing parent product")
        # one level only: variant -> configurable
        if parent.product_type != ProductType.configurable.value:
            raise ValidationError("A variant's parent must be a configurable product")
    elif parent_id is not None:
        raise ValidationError("Only variants can have a parent product")


def _check_family(db: Session, product_type: ProductType, family_id: Optional[int]) -> None:
    if family_id is None:
        return
    if product_type is ProductType.variant:
        raise ValidationError("Variants take their family from the parent product")
    if not db.get(ProductFamily, family_id):
        raise ValidationError(f"Product family not found: {family_id}")


# --------------------------
# CREATE PRODUCT
# --------------------------
def create_product(db: Session, data: ProductCreate) -> Product:
    product_type = ProductType.parse(data.product_type)
    _check_prices(data.base_price, data.cost_price)
    _check_parent(db, product_type, data.parent_id)
    _check_family(db, product_type, data.family_id)

    if db.query(Product.id).filter(Product.sku == data.sku).first():
        raise ValidationError(f"SKU already exists: {data.sku}")

    payload = data.model_dump()
    payload["product_type"] = product_type.value
    payload["base_price"] = qmoney(data.base_price)
    payload["cost_price"] = qmoney(data.cost_price)

    product = Product(**payload)
    db.add(product)
    db.commit()
    db.refresh(product)
    return product

# --------------------------
# GET PRODUCT
# --------------------------
def get_product(db: Session, product_id: int) -> Optional[Product]:
    return db.get(Product, product_id)

# --------------------------
# LIST PRODUCTS
# --------------------------
def list_products(db: Session, active_only: bool = False) -> List[Product]:
    query = db.query(Product)
    if active_only:
        query = query.filter(Product.status.is_(True))
    return query.order_by(Product.id).all()


def list_variants(db: Session, product_id: int) -> List[Product]:
    return (
        db.query(Product)
        .filter(Product.parent_id == product_id)
        .order_by(Product.id)
        .all()
    )

# --------------------------
# UPDATE PRODUCT
# --------------------------
def update_product(db: Session, product_id: int, data: ProductUpdate) -> Optional[Product]:
    product = get_product(db, product_id)
    if not product:
        return None

    changes = data.model_dump(exclude_unset=True)
    _check_prices(changes.get("base_price"), changes.get("cost_price"))
    if "family_id" in changes:
        _check_family(db, ProductType.parse(product.product_type), changes["family_id"])

    for key, value in changes.items():
        if key in ("base_price", "cost_price") and value is not None:
            value = qmoney(value)
        setattr(product, key, value)

    db.commit()
    db.refresh(product)
    return product

# --------------------------
# DELETE PRODUCT
# --------------------------
def delete_product(db: Session, product_id: int) -> bool:
    product = get_product(db, product_id)
    if not product:
        return False
    if list_variants(db, product_id):
        raise ValidationError("Delete the variants before their parent product")

    # order lines keep name/sku/prices, nothing to cascade there
    db.delete(product)
    db.commit()
    return True

# --------------------------
# GROUP PRICE TIERS
# --------------------------
def _validate_tiers(tiers: Iterable[GroupPriceTierIn]) -> List[GroupPriceTierIn]:
    tiers = sorted(tiers, key=lambda t: t.min_quantity)
    if not tiers:
        raise ValidationError("At least one price tier is required")

    minimums = [t.min_quantity for t in tiers]
    if any(m < 1 for m in minimums):
        raise ValidationError("Tier minimum quantity must be at least 1")
    if len(set(minimums)) != len(minimums):
        raise ValidationError("Tier minimum quantities must be unique")
    if minimums[0] != 1:
        raise ValidationError("A tier starting at quantity 1 is required")
    if any(qmoney(t.price) <= 0 for t in tiers):
        raise ValidationError("Tier prices must be positive")
    return tiers


def set_group_prices(
    db: Session,
    product_id: int,
    group_id: int,
    tiers: Iterable[GroupPriceTierIn],
) -> Optional[List[ProductGroupPrice]]:
    """Replace every tier the group has for the product."""
    product = get_product(db, product_id)
    if not product:
        return None
    if not db.get(CustomerGroup, group_id):
        raise ValidationError(f"Customer group not found: {group_id}")

    tiers = _validate_tiers(tiers)

    db.query(ProductGroupPrice).filter(
        ProductGroupPrice.product_id == product_id,
        ProductGroupPrice.customer_group_id == group_id,
    ).delete(synchronize_session="fetch")

    rows = [
        ProductGroupPrice(
            product_id=product_id,
            customer_group_id=group_id,
            min_quantity=t.min_quantity,
            price=qmoney(t.price),
        )
        for t in tiers
    ]
    db.add_all(rows)
    db.commit()
    db.expire(product, ["group_prices"])

    logger.info(
        "group_prices_replaced",
        product_id=product_id,
        group_id=group_id,
        tiers=len(rows),
    )
    return rows


def adjust_stock(product: Product, delta: int) -> int:
    """Stock may go negative: backorders are accepted."""
    product.stock_quantity = (product.stock_quantity or 0) + delta
    return product.stock_quantity
