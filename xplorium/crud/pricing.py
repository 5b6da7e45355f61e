from typing import Dict

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from xplorium.models.pricing import PricingPackage, PricingStatus


async def get_price_lookup(db: AsyncSession) -> Dict[str, float]:
    """
    Reference price per category from published packages.

    Categories share their names with booking types, so the result can be
    keyed by ``BookingType.value``. The first package in display order wins.
    """
    result = await db.execute(
        select(PricingPackage)
        .filter(PricingPackage.status == PricingStatus.PUBLISHED)
        .order_by(PricingPackage.order.asc(), PricingPackage.id.asc())
    )
    prices: Dict[str, float] = {}
    for package in result.scalars().all():
        prices.setdefault(package.category.value, float(package.price))
    return prices
