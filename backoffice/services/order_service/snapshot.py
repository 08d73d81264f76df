"""
Factories for the frozen rows an order keeps.

OrderAddress and OrderProduct copy values, never references: a customer
editing an address or an admin repricing a product afterwards must not
change what an existing order shows. The factories return unsaved rows;
the caller attaches them to an order.
"""
from typing import Any, Mapping, Optional

from backoffice.core.config import settings
from backoffice.enums.catalog import AddressType, CustomerType
from backoffice.models.customer import Address, Customer
from backoffice.models.order import OrderAddress, OrderProduct
from backoffice.models.product import Product
from backoffice.services.order_service.calculator import LineTotals

DEFAULT_PICKUP_POINT_NAME = "Pickup Point"

_COMPANY_FIELDS = ("company_name", "fiscal_code", "reg_number")


def _company_fields(customer: Customer) -> dict:
    customer_type = CustomerType.parse(customer.customer_type)
    if customer_type is CustomerType.company:
        return {field: getattr(customer, field) for field in _COMPANY_FIELDS}
    if customer_type is CustomerType.individual:
        return {field: None for field in _COMPANY_FIELDS}
    raise AssertionError(f"unhandled customer type {customer_type}")


def _customer_email(customer: Customer) -> Optional[str]:
    for user in customer.users:
        if user.email:
            return user.email
    return None


def address_from_customer_address(
    address: Address,
    customer: Customer,
    address_type: AddressType,
    email: Optional[str] = None,
) -> OrderAddress:
    address_type = AddressType.parse(address_type)
    return OrderAddress(
        type=address_type.value,
        **_company_fields(customer),
        first_name=address.first_name,
        last_name=address.last_name,
        phone=address.phone,
        email=email if email is not None else _customer_email(customer),
        address_line_1=address.address_line_1,
        address_line_2=address.address_line_2,
        city=address.city,
        county_name=address.county_name,
        county_code=address.county_code,
        country_id=address.country_id,
        zip_code=address.zip_code,
    )


def address_from_locker(
    courier_data: Mapping[str, Any],
    first_name: str,
    last_name: str,
    phone: str,
    email: Optional[str] = None,
) -> OrderAddress:
    """
    Shipping address for a parcel locker / pickup point.

    The locker's physical address becomes the shipping address; the technical
    point data stays in OrderShipping.courier_data.
    """
    details = courier_data.get("locker_details") or {}
    point_name = courier_data.get("point_name") or DEFAULT_PICKUP_POINT_NAME

    address_line_1 = point_name
    if details.get("address"):
        address_line_1 = f"{point_name} - {details['address']}"

    return OrderAddress(
        type=AddressType.shipping.value,
        first_name=first_name,
        last_name=last_name,
        phone=phone,
        email=email,
        address_line_1=address_line_1,
        address_line_2=None,
        city=details.get("city") or "",
        county_name=details.get("county_name") or "",
        county_code=details.get("county_code") or "",
        country_id=details.get("country_id") or settings.DEFAULT_COUNTRY_ID,
        zip_code=details.get("zip_code") or "",
    )


def address_from_data(data: Mapping[str, Any], address_type: AddressType) -> OrderAddress:
    """Guest checkout: the address comes straight from the request."""
    address_type = AddressType.parse(address_type)
    return OrderAddress(
        type=address_type.value,
        company_name=data.get("company_name"),
        fiscal_code=data.get("fiscal_code"),
        reg_number=data.get("reg_number"),
        first_name=data.get("first_name") or "",
        last_name=data.get("last_name") or "",
        phone=data.get("phone") or "",
        email=data.get("email"),
        address_line_1=data.get("address_line_1") or "",
        address_line_2=data.get("address_line_2"),
        city=data.get("city") or "",
        county_name=data.get("county_name"),
        county_code=data.get("county_code"),
        country_id=data.get("country_id") or settings.DEFAULT_COUNTRY_ID,
        zip_code=data.get("zip_code") or "",
    )


def line_from_product(
    product: Product,
    quantity: int,
    totals: LineTotals,
    exchange_rate,
) -> OrderProduct:
    return OrderProduct(
        product_id=product.id,
        name=product.name,
        sku=product.sku,
        ean=product.ean,
        quantity=quantity,
        vat_percent=totals.vat_percent,
        exchange_rate=exchange_rate,
        unit_price_currency=totals.unit_price_currency,
        unit_price_ref=totals.unit_price_ref,
        unit_purchase_price_ref=totals.unit_purchase_price_ref,
        total_currency_excl_vat=totals.total_excl_vat_currency,
        total_currency_incl_vat=totals.total_incl_vat_currency,
        total_ref_excl_vat=totals.total_excl_vat_ref,
        total_ref_incl_vat=totals.total_incl_vat_ref,
        profit_ref=totals.profit_ref,
    )
