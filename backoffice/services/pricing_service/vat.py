from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from backoffice.core.config import settings
from backoffice.core.errors import VatRateNotFound
from backoffice.core.money import ZERO, qpercent
from backoffice.models.currency import VatRate
from backoffice.models.customer import CustomerGroup


def vat_rate_for_country(db: Session, country_id: int) -> Decimal:
    """Standard (highest) VAT rate configured for a country."""
    rate = (
        db.query(VatRate.rate)
        .filter(VatRate.country_id == country_id)
        .order_by(VatRate.rate.desc())
        .limit(1)
        .scalar()
    )
    if rate is None:
        raise VatRateNotFound(country_id)
    return qpercent(rate)


def is_vat_exempt(group: Optional[CustomerGroup]) -> bool:
    return bool(group is not None and group.vat_exempt)


def effective_vat_rate(
    db: Session,
    group: Optional[CustomerGroup],
    country_id: Optional[int] = None,
) -> Decimal:
    """
    VAT percent charged to a customer group shipping to a country.

    Exempt groups (B2B reverse charge) pay 0 regardless of country; everyone
    else pays the country's standard rate, falling back to DEFAULT_COUNTRY_ID.
    """
    if is_vat_exempt(group):
        return ZERO
    if country_id is None:
        country_id = settings.DEFAULT_COUNTRY_ID
    return vat_rate_for_country(db, country_id)
