from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from backoffice.core.http import http_errors
from backoffice.database.connection import get_db
from backoffice.dependencies.auth import require_admin
from backoffice.schemas.currency import (
    CountryCreate,
    CountryResponse,
    CurrencyCreate,
    CurrencyRateUpdate,
    CurrencyResponse,
    VatRateCreate,
    VatRateResponse,
)
from backoffice.services import currency_service

router = APIRouter(tags=["Currencies & VAT"])


@router.get("/currencies", response_model=list[CurrencyResponse])
def list_currencies(db: Session = Depends(get_db)):
    return currency_service.list_currencies(db)


@router.post("/currencies", response_model=CurrencyResponse, dependencies=[Depends(require_admin)])
def create_currency(data: CurrencyCreate, db: Session = Depends(get_db)):
    if currency_service.get_currency(db, data.code):
        raise HTTPException(400, f"Currency already exists: {data.code.upper()}")
    with http_errors():
        return currency_service.create_currency(db, data)


@router.put("/currencies/{code}", response_model=CurrencyResponse, dependencies=[Depends(require_admin)])
def update_rate(code: str, data: CurrencyRateUpdate, db: Session = Depends(get_db)):
    with http_errors():
        currency = currency_service.update_currency_rate(db, code, data)
    if not currency:
        raise HTTPException(404, "Currency not found")
    return currency


@router.post("/countries", response_model=CountryResponse, dependencies=[Depends(require_admin)])
def create_country(data: CountryCreate, db: Session = Depends(get_db)):
    return currency_service.create_country(db, data)


@router.post("/vat-rates", response_model=VatRateResponse, dependencies=[Depends(require_admin)])
def create_vat_rate(data: VatRateCreate, db: Session = Depends(get_db)):
    with http_errors():
        return currency_service.add_vat_rate(db, data)
