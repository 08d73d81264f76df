from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

import structlog
from sqlalchemy.orm import Session

from backoffice.core.config import settings
from backoffice.core.money import qmoney
from backoffice.models.customer import CustomerGroup
from backoffice.models.product import Product, ProductGroupPrice
from backoffice.services.order_service.calculator import validate_quantity

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PriceTier:
    min_quantity: int
    max_quantity: Optional[int]  # None = no upper bound
    price: Decimal

    @property
    def quantity_range(self) -> str:
        if self.max_quantity is None:
            return f"{self.min_quantity}+"
        return f"{self.min_quantity}-{self.max_quantity}"


class PriceResolver:
    """
    Quantity-tier price lookup per customer group.

    One instance lives for the whole application (see main.startup_event) and
    remembers the id of the default retail group once it has been found, so
    anonymous lookups do not query customer_groups every time.
    """

    def __init__(
        self,
        default_group_code: Optional[str] = None,
        default_group_id: Optional[int] = None,
    ):
        self.default_group_code = default_group_code or settings.DEFAULT_CUSTOMER_GROUP_CODE
        self._default_group_id = default_group_id

    # ===================== CUSTOMER GROUP =====================

    def default_group_id(self, db: Session) -> Optional[int]:
        if self._default_group_id is not None:
            return self._default_group_id

        group_id = (
            db.query(CustomerGroup.id)
            .filter(CustomerGroup.code == self.default_group_code)
            .scalar()
        )
        # not cached when missing: the group may be created later
        if group_id is not None:
            self._default_group_id = group_id
            logger.info(
                "default_customer_group_resolved",
                code=self.default_group_code,
                group_id=group_id,
            )
        return group_id

    def effective_group_id(self, db: Session, customer_group_id: Optional[int]) -> Optional[int]:
        if customer_group_id is not None:
            return customer_group_id
        return self.default_group_id(db)

    def effective_group(self, db: Session, customer_group_id: Optional[int]) -> Optional[CustomerGroup]:
        group_id = self.effective_group_id(db, customer_group_id)
        if group_id is None:
            return None
        return db.get(CustomerGroup, group_id)

    # ===================== PRICE LOOKUP =====================

    def resolve_price(
        self,
        db: Session,
        product_id: int,
        customer_group_id: Optional[int],
        quantity: int,
    ) -> Optional[Decimal]:
        """
        Unit price (reference currency, VAT excluded) for `quantity` units.

        Picks the group tier with the largest min_quantity <= quantity and falls
        back to the product's base price. Unknown products give None.
        """
        validate_quantity(quantity)

        base_price = (
            db.query(Product.base_price)
            .filter(Product.id == product_id)
            .scalar()
        )
        if base_price is None:
            return None

        group_id = self.effective_group_id(db, customer_group_id)
        if group_id is not None:
            tier_price = (
                db.query(ProductGroupPrice.price)
                .filter(
                    ProductGroupPrice.product_id == product_id,
                    ProductGroupPrice.customer_group_id == group_id,
                    ProductGroupPrice.min_quantity <= quantity,
                )
                .order_by(ProductGroupPrice.min_quantity.desc())
                .limit(1)
                .scalar()
            )
            if tier_price is not None:
                return qmoney(tier_price)

        return qmoney(base_price)

    # ===================== TIER LISTING =====================

    def tiers_for(
        self,
        db: Session,
        product_id: int,
        customer_group_id: Optional[int],
    ) -> List[PriceTier]:
        """
        Quantity tiers for display, ascending by min_quantity.

        A tier ends one unit before the next one starts; the last is open ended.
        No group rows means no tiers: the base price is never dressed up as one.
        """
        group_id = self.effective_group_id(db, customer_group_id)
        if group_id is None:
            return []

        rows = (
            db.query(ProductGroupPrice)
            .filter(
                ProductGroupPrice.product_id == product_id,
                ProductGroupPrice.customer_group_id == group_id,
            )
            .order_by(ProductGroupPrice.min_quantity.asc())
            .all()
        )

        tiers: List[PriceTier] = []
        for index, row in enumerate(rows):
            max_quantity = None
            if index + 1 < len(rows):
                max_quantity = rows[index + 1].min_quantity - 1
            tiers.append(
                PriceTier(
                    min_quantity=row.min_quantity,
                    max_quantity=max_quantity,
                    price=qmoney(row.price),
                )
            )
        return tiers
