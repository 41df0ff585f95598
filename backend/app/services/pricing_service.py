"""
Pricing Service - price a buyer pays for a workshop

Rules, in order:
1. Earlybird price, while confirmed enrollments are below ``earlybirds_count``
2. Offer price, when set and above zero
3. Regular price

A resolved price of exactly 0 means the workshop is free and no payment
is initiated for it.
"""

from dataclasses import dataclass
from typing import Optional, Dict

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging_config import logger
from app.models.workshop import Workshop, UserWorkshop


BENGALI_DIGITS = str.maketrans("0123456789", "০১২৩৪৫৬৭৮৯")


@dataclass(frozen=True)
class WorkshopPricing:
    current_price: float
    original_price: float
    is_earlybird: bool = False
    earlybird_spots_left: int = 0
    total_enrollments: int = 0

    @property
    def is_free(self) -> bool:
        return self.current_price <= 0

    @property
    def has_discount(self) -> bool:
        return self.current_price < self.original_price


def _positive(value) -> bool:
    return value is not None and value > 0


def resolve_pricing(workshop: Workshop, enrolled_count: int) -> WorkshopPricing:
    """Apply the pricing rules to a workshop and its confirmed enrollment count"""
    regular = float(workshop.price_regular or 0)

    if (
        _positive(workshop.price_earlybirds)
        and _positive(workshop.earlybirds_count)
        and enrolled_count < workshop.earlybirds_count
    ):
        return WorkshopPricing(
            current_price=float(workshop.price_earlybirds),
            original_price=regular,
            is_earlybird=True,
            earlybird_spots_left=workshop.earlybirds_count - enrolled_count,
            total_enrollments=enrolled_count,
        )

    if _positive(workshop.price_offer):
        current = float(workshop.price_offer)
    else:
        current = regular

    return WorkshopPricing(
        current_price=current,
        original_price=regular,
        total_enrollments=enrolled_count,
    )


def regular_price_fallback(workshop: Workshop) -> WorkshopPricing:
    """Pricing shown when enrollment counts cannot be read"""
    regular = float(workshop.price_regular or 0)
    return WorkshopPricing(current_price=regular, original_price=regular)


def _group_lakh(integer_part: str) -> str:
    # Bangladeshi grouping: last three digits, then groups of two (1,00,000)
    if len(integer_part) <= 3:
        return integer_part
    head, tail = integer_part[:-3], integer_part[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def format_price(amount: float) -> str:
    """Taka amount with Bengali digits, e.g. ৳১,৫০০"""
    rounded = round(float(amount), 2)
    integer_part, _, fraction = f"{abs(rounded):.2f}".partition(".")
    text = _group_lakh(integer_part)
    if fraction.rstrip("0"):
        text = f"{text}.{fraction.rstrip('0')}"
    sign = "-" if rounded < 0 else ""
    return f"{sign}৳{text}".translate(BENGALI_DIGITS)


def price_display(pricing: WorkshopPricing) -> Dict[str, Optional[str]]:
    """Badge and struck-through price for the workshop page"""
    display: Dict[str, Optional[str]] = {
        "main_price": format_price(pricing.current_price),
        "original_price": None,
        "badge": None,
        "description": None,
    }

    if pricing.is_earlybird:
        display["badge"] = "🎯 Earlybird"
        display["description"] = f"{pricing.earlybird_spots_left} spots left"
        if pricing.has_discount:
            display["original_price"] = format_price(pricing.original_price)
    elif pricing.has_discount:
        display["badge"] = "💥 Offer"
        display["original_price"] = format_price(pricing.original_price)

    return display


class PricingService:
    """Reads enrollment counts and resolves workshop prices"""

    async def count_confirmed_enrollments(self, db: AsyncSession, workshop_id: str) -> int:
        result = await db.execute(
            select(func.count(UserWorkshop.id)).where(UserWorkshop.workshop_id == str(workshop_id))
        )
        return result.scalar() or 0

    async def get_workshop_pricing(
        self,
        db: AsyncSession,
        workshop_id: str
    ) -> Optional[WorkshopPricing]:
        """
        Resolve pricing for a workshop.

        Returns None when the workshop is missing or the store fails;
        callers then show the regular price instead of blocking enrollment.
        """
        try:
            workshop = await db.get(Workshop, str(workshop_id))
            if workshop is None:
                logger.warning(f"[Pricing] Workshop {workshop_id} not found")
                return None
            enrolled = await self.count_confirmed_enrollments(db, workshop.id)
            return resolve_pricing(workshop, enrolled)
        except Exception as e:
            logger.error(f"[Pricing] Failed to resolve pricing for {workshop_id}: {e}", exc_info=True)
            return None

    async def get_pricing_or_regular(self, db: AsyncSession, workshop: Workshop) -> tuple[WorkshopPricing, bool]:
        """Pricing plus a flag telling whether it was fully resolved"""
        pricing = await self.get_workshop_pricing(db, workshop.id)
        if pricing is None:
            return regular_price_fallback(workshop), False
        return pricing, True


pricing_service = PricingService()
