from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from backoffice.core.http import http_errors
from backoffice.database.connection import get_db
from backoffice.dependencies.auth import require_admin
from backoffice.schemas.catalog import (
    AttributeCreate,
    AttributeResponse,
    AttributeValueCreate,
    AttributeValueResponse,
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    ProductAttributesUpdate,
    ProductAttributeValueResponse,
    ProductCategoriesUpdate,
    ProductFamilyCreate,
    ProductFamilyResponse,
)
from backoffice.schemas.product import ProductResponse
from backoffice.services import catalog_service
from backoffice.services.product_service import get_product

router = APIRouter(prefix="/catalog", tags=["Catalog"])


def _product_or_404(db: Session, product_id: int):
    product = get_product(db, product_id)
    if not product:
        raise HTTPException(404, "Product not found")
    return product

# CATEGORIES
@router.post("/categories", response_model=CategoryResponse, dependencies=[Depends(require_admin)])
def create_category(data: CategoryCreate, db: Session = Depends(get_db)):
    with http_errors():
        return catalog_service.create_category(db, data)


@router.get("/categories", response_model=list[CategoryResponse])
def list_categories(
    parent_id: Optional[int] = None,
    roots_only: bool = False,
    db: Session = Depends(get_db),
):
    return catalog_service.list_categories(db, parent_id=parent_id, roots_only=roots_only)


@router.put(
    "/categories/{category_id}",
    response_model=CategoryResponse,
    dependencies=[Depends(require_admin)],
)
def update_category(category_id: int, data: CategoryUpdate, db: Session = Depends(get_db)):
    with http_errors():
        category = catalog_service.update_category(db, category_id, data)
    if not category:
        raise HTTPException(404, "Category not found")
    return category


@router.delete("/categories/{category_id}", dependencies=[Depends(require_admin)])
def delete_category(category_id: int, db: Session = Depends(get_db)):
    with http_errors():
        success = catalog_service.delete_category(db, category_id)
    if not success:
        raise HTTPException(404, "Category not found")
    return {"message": "Category deleted"}


@router.get("/categories/{category_id}/products", response_model=list[ProductResponse])
def category_products(category_id: int, active_only: bool = True, db: Session = Depends(get_db)):
    category = catalog_service.get_category(db, category_id)
    if not category:
        raise HTTPException(404, "Category not found")
    return catalog_service.list_category_products(db, category, active_only=active_only)

# FAMILIES
@router.post("/families", response_model=ProductFamilyResponse, dependencies=[Depends(require_admin)])
def create_family(data: ProductFamilyCreate, db: Session = Depends(get_db)):
    with http_errors():
        return catalog_service.create_family(db, data)


@router.get("/families", response_model=list[ProductFamilyResponse])
def list_families(db: Session = Depends(get_db)):
    return catalog_service.list_families(db)


@router.get("/families/{family_id}/products", response_model=list[ProductResponse])
def family_products(family_id: int, db: Session = Depends(get_db)):
    family = catalog_service.get_family(db, family_id)
    if not family:
        raise HTTPException(404, "Product family not found")
    return catalog_service.list_family_products(db, family)


@router.delete("/families/{family_id}", dependencies=[Depends(require_admin)])
def delete_family(family_id: int, db: Session = Depends(get_db)):
    with http_errors():
        success = catalog_service.delete_family(db, family_id)
    if not success:
        raise HTTPException(404, "Product family not found")
    return {"message": "Product family deleted"}

# ATTRIBUTES
@router.post("/attributes", response_model=AttributeResponse, dependencies=[Depends(require_admin)])
def create_attribute(data: AttributeCreate, db: Session = Depends(get_db)):
    with http_errors():
        return catalog_service.create_attribute(db, data)


@router.get("/attributes", response_model=list[AttributeResponse])
def list_attributes(filterable_only: bool = False, db: Session = Depends(get_db)):
    return catalog_service.list_attributes(db, filterable_only=filterable_only)


@router.post(
    "/attributes/{attribute_id}/values",
    response_model=AttributeValueResponse,
    dependencies=[Depends(require_admin)],
)
def add_attribute_value(attribute_id: int, data: AttributeValueCreate, db: Session = Depends(get_db)):
    attribute = catalog_service.get_attribute(db, attribute_id)
    if not attribute:
        raise HTTPException(404, "Attribute not found")
    with http_errors():
        return catalog_service.add_attribute_value(db, attribute, data)


@router.delete("/attribute-values/{value_id}", dependencies=[Depends(require_admin)])
def delete_attribute_value(value_id: int, db: Session = Depends(get_db)):
    with http_errors():
        success = catalog_service.delete_attribute_value(db, value_id)
    if not success:
        raise HTTPException(404, "Attribute value not found")
    return {"message": "Attribute value deleted"}

# PRODUCT LINKS
@router.put(
    "/products/{product_id}/categories",
    response_model=list[CategoryResponse],
    dependencies=[Depends(require_admin)],
)
def replace_product_categories(
    product_id: int, data: ProductCategoriesUpdate, db: Session = Depends(get_db)
):
    product = _product_or_404(db, product_id)
    with http_errors():
        return catalog_service.set_product_categories(db, product, data.category_ids)


@router.get("/products/{product_id}/attributes", response_model=list[ProductAttributeValueResponse])
def product_attributes(product_id: int, db: Session = Depends(get_db)):
    return _product_or_404(db, product_id).attribute_values


@router.put(
    "/products/{product_id}/attributes",
    response_model=list[ProductAttributeValueResponse],
    dependencies=[Depends(require_admin)],
)
def replace_product_attributes(
    product_id: int, data: ProductAttributesUpdate, db: Session = Depends(get_db)
):
    product = _product_or_404(db, product_id)
    with http_errors():
        return catalog_service.set_product_attribute_values(db, product, data.attribute_value_ids)
