from time import perf_counter
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from backoffice.core.config import settings
from backoffice.core.http import http_errors
from backoffice.database.connection import get_db
from backoffice.dependencies.auth import require_admin
from backoffice.dependencies.pricing import get_price_resolver
from backoffice.models.currency import Currency
from backoffice.schemas.pricing import PriceInfoResponse, PriceTiersResponse
from backoffice.schemas.product import (
    GroupPriceResponse,
    GroupPriceUpdateRequest,
    ProductCreate,
    ProductResponse,
    ProductUpdate,
)
from backoffice.services.currency_service import get_active_currency
from backoffice.services.pricing_service.price_display import display_tiers, price_info
from backoffice.services.pricing_service.price_resolver import PriceResolver
from backoffice.services.product_service import (
    create_product, get_product, list_products, list_variants,
    update_product, delete_product, set_group_prices,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/products", tags=["Products & Group Pricing"])


def _requested_currency(db: Session, code: Optional[str]) -> Optional[Currency]:
    if not code:
        return None
    currency = get_active_currency(db, code)
    if not currency:
        raise HTTPException(400, f"Currency not found or inactive: {code}")
    return currency


def _record_pricing_call(request: Request, duration_ms: float) -> None:
    metrics = getattr(request.app.state, "metrics", None)
    if metrics is None:
        return
    metrics["pricing_calls"] = metrics.get("pricing_calls", 0) + 1
    if duration_ms > settings.SLOW_PRICING_MS:
        metrics["slow_pricing_calls"] = metrics.get("slow_pricing_calls", 0) + 1

# CREATE
@router.post("/", response_model=ProductResponse, dependencies=[Depends(require_admin)])
def create(data: ProductCreate, db: Session = Depends(get_db)):
    with http_errors():
        return create_product(db, data)

# LIST
@router.get("/", response_model=list[ProductResponse])
def list_all(active_only: bool = False, db: Session = Depends(get_db)):
    return list_products(db, active_only=active_only)

# GET BY ID
@router.get("/{product_id}", response_model=ProductResponse)
def get(product_id: int, db: Session = Depends(get_db)):
    product = get_product(db, product_id)
    if not product:
        raise HTTPException(404, "Product not found")
    return product

# VARIANTS
@router.get("/{product_id}/variants", response_model=list[ProductResponse])
def variants(product_id: int, db: Session = Depends(get_db)):
    if not get_product(db, product_id):
        raise HTTPException(404, "Product not found")
    return list_variants(db, product_id)

# UPDATE
@router.put("/{product_id}", response_model=ProductResponse, dependencies=[Depends(require_admin)])
def update(product_id: int, data: ProductUpdate, db: Session = Depends(get_db)):
    with http_errors():
        product = update_product(db, product_id, data)
    if not product:
        raise HTTPException(404, "Product not found")
    return product

# DELETE
@router.delete("/{product_id}", dependencies=[Depends(require_admin)])
def delete(product_id: int, db: Session = Depends(get_db)):
    with http_errors():
        success = delete_product(db, product_id)
    if not success:
        raise HTTPException(404, "Product not found")
    return {"message": "Product deleted"}

# GROUP PRICE TIERS
@router.put(
    "/{product_id}/group-prices/{group_id}",
    response_model=list[GroupPriceResponse],
    dependencies=[Depends(require_admin)],
)
def replace_group_prices(
    product_id: int,
    group_id: int,
    data: GroupPriceUpdateRequest,
    db: Session = Depends(get_db),
):
    with http_errors():
        rows = set_group_prices(db, product_id, group_id, data.tiers)
    if rows is None:
        raise HTTPException(404, "Product not found")
    return rows

# PRICE FOR QUANTITY
@router.get("/{product_id}/price", response_model=PriceInfoResponse)
def product_price(
    request: Request,
    product_id: int,
    quantity: int = 1,
    customer_group_id: Optional[int] = None,
    currency: Optional[str] = None,
    country_id: Optional[int] = None,
    db: Session = Depends(get_db),
    resolver: PriceResolver = Depends(get_price_resolver),
):
    if quantity <= 0:
        raise HTTPException(status_code=400, detail="Quantity must be positive")

    product = get_product(db, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    requested = _requested_currency(db, currency)

    # ---- measure calculation time ----
    start = perf_counter()
    with http_errors():
        info = price_info(
            db, resolver, product, quantity,
            customer_group_id=customer_group_id,
            currency=requested,
            country_id=country_id,
        )
    duration_ms = (perf_counter() - start) * 1000.0

    _record_pricing_call(request, duration_ms)
    if duration_ms > settings.SLOW_PRICING_MS:
        logger.warning(
            "slow_price_resolution",
            product_id=product_id,
            quantity=quantity,
            duration_ms=round(duration_ms, 2),
        )

    return PriceInfoResponse(
        product_id=product.id,
        sku=product.sku,
        name=product.name,
        quantity=info.quantity,
        customer_group_id=info.customer_group_id,
        currency=info.currency,
        exchange_rate=info.exchange_rate,
        vat_rate=info.vat_rate,
        vat_included=info.vat_included,
        unit_price_excl_vat_ref=info.unit_price_excl_vat_ref,
        unit_price_incl_vat_ref=info.unit_price_incl_vat_ref,
        unit_price_excl_vat=info.unit_price_excl_vat,
        unit_price_incl_vat=info.unit_price_incl_vat,
        total_excl_vat=info.total_excl_vat,
        total_incl_vat=info.total_incl_vat,
        display_unit_price=info.display_unit_price,
        display_total_price=info.display_total_price,
        calculated_in_ms=duration_ms,
    )

# QUANTITY TIERS
@router.get("/{product_id}/tiers", response_model=PriceTiersResponse)
def product_tiers(
    product_id: int,
    customer_group_id: Optional[int] = None,
    currency: Optional[str] = None,
    country_id: Optional[int] = None,
    db: Session = Depends(get_db),
    resolver: PriceResolver = Depends(get_price_resolver),
):
    product = get_product(db, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    requested = _requested_currency(db, currency)

    with http_errors():
        tiers = display_tiers(
            db, resolver, product,
            customer_group_id=customer_group_id,
            currency=requested,
            country_id=country_id,
        )

    return PriceTiersResponse(
        product_id=product.id,
        currency=requested.code if requested else settings.REFERENCE_CURRENCY,
        tiers=tiers,
    )
