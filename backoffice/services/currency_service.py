from decimal import Decimal
from typing import List, Optional

import structlog
from sqlalchemy.orm import Session

from backoffice.core.config import settings
from backoffice.core.errors import ValidationError
from backoffice.core.money import ONE_RATE, qpercent, qrate
from backoffice.models.currency import Country, Currency, VatRate
from backoffice.schemas.currency import (
    CountryCreate,
    CurrencyCreate,
    CurrencyRateUpdate,
    VatRateCreate,
)

logger = structlog.get_logger(__name__)


def is_reference_currency(code: str) -> bool:
    return code.upper() == settings.REFERENCE_CURRENCY.upper()


def exchange_rate_for(currency: Optional[Currency]) -> Decimal:
    """
    Reference units per 1 unit of `currency`.
    The reference currency (and "no currency") is always exactly 1.0000.
    """
    if currency is None or is_reference_currency(currency.code):
        return ONE_RATE
    rate = qrate(currency.value) if currency.value is not None else None
    if rate is None or rate <= 0:
        raise ValidationError(
            f"Invalid exchange rate for currency: {currency.code}. Currency value must be positive."
        )
    return rate


# --------------------------
# CURRENCIES
# --------------------------
def create_currency(db: Session, data: CurrencyCreate) -> Currency:
    code = data.code.upper()
    value = ONE_RATE if is_reference_currency(code) else qrate(data.value)
    if value <= 0:
        raise ValidationError("Currency value must be positive")

    currency = Currency(
        code=code,
        symbol_left=data.symbol_left,
        symbol_right=data.symbol_right,
        value=value,
        status=data.status,
    )
    db.add(currency)
    db.commit()
    db.refresh(currency)
    return currency


def get_currency(db: Session, code: str) -> Optional[Currency]:
    return db.query(Currency).filter(Currency.code == code.upper()).first()


def get_active_currency(db: Session, code: str) -> Optional[Currency]:
    return (
        db.query(Currency)
        .filter(Currency.code == code.upper(), Currency.status.is_(True))
        .first()
    )


def list_currencies(db: Session) -> List[Currency]:
    return db.query(Currency).order_by(Currency.code).all()


def update_currency_rate(db: Session, code: str, data: CurrencyRateUpdate) -> Optional[Currency]:
    currency = get_currency(db, code)
    if not currency:
        return None

    if is_reference_currency(currency.code):
        # the reference currency never moves
        new_value = ONE_RATE
    else:
        new_value = qrate(data.value)
        if new_value <= 0:
            raise ValidationError("Currency value must be positive")

    old_value = currency.value
    currency.value = new_value
    if data.status is not None:
        currency.status = data.status

    db.commit()
    db.refresh(currency)
    logger.info(
        "exchange_rate_updated",
        currency=currency.code,
        old_value=str(old_value),
        new_value=str(new_value),
    )
    return currency


# --------------------------
# COUNTRIES / VAT
# --------------------------
def create_country(db: Session, data: CountryCreate) -> Country:
    country = Country(name=data.name, iso_code=data.iso_code.upper())
    db.add(country)
    db.commit()
    db.refresh(country)
    return country


def add_vat_rate(db: Session, data: VatRateCreate) -> VatRate:
    rate = qpercent(data.rate)
    if rate < 0 or rate >= 100:
        raise ValidationError(f"VAT percent must be in [0, 100), got {rate}")

    vat_rate = VatRate(country_id=data.country_id, name=data.name, rate=rate)
    db.add(vat_rate)
    db.commit()
    db.refresh(vat_rate)
    return vat_rate
