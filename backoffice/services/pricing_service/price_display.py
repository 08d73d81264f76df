from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional

import structlog
from sqlalchemy.orm import Session

from backoffice.core.config import settings
from backoffice.core.money import from_reference
from backoffice.models.currency import Currency
from backoffice.models.product import Product
from backoffice.services.currency_service import exchange_rate_for
from backoffice.services.order_service.calculator import compute_line, unit_price_incl_vat
from backoffice.services.pricing_service.price_resolver import PriceResolver
from backoffice.services.pricing_service.vat import effective_vat_rate, is_vat_exempt

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PriceInfo:
    product_id: int
    quantity: int
    customer_group_id: Optional[int]
    currency: str
    exchange_rate: Decimal

    vat_rate: Decimal
    vat_included: bool

    # reference currency
    unit_price_excl_vat_ref: Decimal
    unit_price_incl_vat_ref: Decimal

    # requested currency
    unit_price_excl_vat: Decimal
    unit_price_incl_vat: Decimal
    total_excl_vat: Decimal
    total_incl_vat: Decimal

    @property
    def display_unit_price(self) -> Decimal:
        return self.unit_price_incl_vat if self.vat_included else self.unit_price_excl_vat

    @property
    def display_total_price(self) -> Decimal:
        return self.total_incl_vat if self.vat_included else self.total_excl_vat


def price_info(
    db: Session,
    resolver: PriceResolver,
    product: Product,
    quantity: int,
    customer_group_id: Optional[int] = None,
    currency: Optional[Currency] = None,
    country_id: Optional[int] = None,
) -> PriceInfo:
    """
    Everything a product page or cart needs to show for `quantity` units.

    Goes through compute_line so the numbers are the same ones checkout
    would store for this line.
    """
    group = resolver.effective_group(db, customer_group_id)
    vat = effective_vat_rate(db, group, country_id)
    rate = exchange_rate_for(currency)

    price_excl_ref = resolver.resolve_price(db, product.id, customer_group_id, quantity)
    price_incl_ref = unit_price_incl_vat(price_excl_ref, vat)
    line = compute_line(price_incl_ref, quantity, vat, rate)

    return PriceInfo(
        product_id=product.id,
        quantity=quantity,
        customer_group_id=group.id if group else None,
        currency=currency.code if currency else settings.REFERENCE_CURRENCY,
        exchange_rate=rate,
        vat_rate=vat,
        vat_included=not is_vat_exempt(group),
        unit_price_excl_vat_ref=price_excl_ref,
        unit_price_incl_vat_ref=price_incl_ref,
        unit_price_excl_vat=line.unit_price_excl_vat_currency,
        unit_price_incl_vat=line.unit_price_currency,
        total_excl_vat=line.total_excl_vat_currency,
        total_incl_vat=line.total_incl_vat_currency,
    )


def display_tiers(
    db: Session,
    resolver: PriceResolver,
    product: Product,
    customer_group_id: Optional[int] = None,
    currency: Optional[Currency] = None,
    country_id: Optional[int] = None,
) -> List[Dict]:
    tiers = resolver.tiers_for(db, product.id, customer_group_id)
    if not tiers:
        return []

    group = resolver.effective_group(db, customer_group_id)
    vat = effective_vat_rate(db, group, country_id)
    rate = exchange_rate_for(currency)
    vat_included = not is_vat_exempt(group)

    result = []
    for tier in tiers:
        price_incl_ref = unit_price_incl_vat(tier.price, vat)
        shown_ref = price_incl_ref if vat_included else tier.price
        result.append(
            {
                "min_quantity": tier.min_quantity,
                "max_quantity": tier.max_quantity,
                "quantity_range": tier.quantity_range,
                "price_excl_vat_ref": tier.price,
                "price_incl_vat_ref": price_incl_ref,
                "display_price": from_reference(shown_ref, rate),
                "vat_included": vat_included,
            }
        )
    return result
