"""Cart quote business logic."""

import logging
from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from src.api.middleware.error_handler import InvalidDeliveryZone, ProductUnavailable
from src.core.config import get_settings
from src.models import DeliveryZone, Product
from src.schemas.cart import CartItemInput, DeliveryZoneSummary, Quote, QuoteLine
from src.services.catalog_service import product_image_url
from src.services.pricing import PriceLine, compute_totals, line_total

logger = logging.getLogger(__name__)


class QuoteService:
    """Prices carts from live catalog and delivery zone state.

    Quotes are recomputed on every call and never cached.
    """

    def __init__(self, db: Session) -> None:
        self.db = db
        self.settings = get_settings()

    async def calculate_quote(self, delivery_zone_id: UUID, items: Sequence[CartItemInput]) -> Quote:
        """Price a cart for a delivery zone.

        Args:
            delivery_zone_id: Zone the order ships to. Must be active.
            items: Cart lines.

        Returns:
            Quote: Lines, totals, currency and zone summary.

        Raises:
            InvalidDeliveryZone: Zone is missing or inactive.
            ProductUnavailable: Any product is missing, inactive or out of stock.
        """
        zone = self.db.execute(
            select(DeliveryZone).where(DeliveryZone.id == delivery_zone_id, DeliveryZone.active.is_(True))
        ).scalar_one_or_none()
        if zone is None:
            raise InvalidDeliveryZone()

        product_ids = {item.product_id for item in items}
        products = (
            self.db.execute(
                select(Product).options(joinedload(Product.images)).where(Product.id.in_(product_ids))
            )
            .unique()
            .scalars()
            .all()
        )
        by_id = {product.id: product for product in products}

        lines: list[QuoteLine] = []
        for item in items:
            product = by_id.get(item.product_id)
            if product is None or not product.active or not product.in_stock:
                logger.info("Quote rejected: product %s unavailable", item.product_id)
                raise ProductUnavailable()

            lines.append(
                QuoteLine(
                    product_id=product.id,
                    name=product.name,
                    slug=product.slug,
                    unit_price=product.base_price,
                    qty=item.quantity,
                    line_total=line_total(product.base_price, item.quantity),
                    image_url=product_image_url(product),
                )
            )

        totals = compute_totals((PriceLine(line.unit_price, line.qty) for line in lines), zone.fee)

        return Quote(
            subtotal=totals.subtotal,
            delivery_fee=totals.delivery_fee,
            total=totals.total,
            currency=self.settings.default_currency,
            lines=lines,
            delivery_zone=DeliveryZoneSummary(id=zone.id, zone=zone.zone, eta_text=zone.eta_text),
        )
