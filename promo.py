"""
Promo code validation.

Checks run in a fixed order and the first failing one decides the message.
The calculator only reads the store; bumping used_count is left to order
creation.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from config import CURRENCY_SYMBOL
from money import format_amount, from_minor, round_half_up, to_minor
from schemas import PromoCode, PromoResult


def _aware(moment: datetime) -> datetime:
    return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)


def discount_for(promo: PromoCode, subtotal: float) -> float:
    if promo.discount_type == "percent":
        return round_half_up(Decimal(str(subtotal)) * Decimal(str(promo.discount_value)) / 100)
    # Fixed discounts are not capped at the subtotal.
    return promo.discount_value


def validate_promo(code: str, order_subtotal: float, store, now: Optional[datetime] = None) -> PromoResult:
    promo = store.find_active_by_code(code) if code and code.strip() else None
    if promo is None or not promo.is_active:
        return PromoResult(valid=False, message="Invalid promo code")

    now = _aware(now or datetime.now(timezone.utc))
    if promo.expires_at and _aware(promo.expires_at) < now:
        return PromoResult(valid=False, message="Promo code expired")

    # max_uses of None or 0 means unlimited
    if promo.max_uses and promo.used_count >= promo.max_uses:
        return PromoResult(valid=False, message="Promo code limit reached")

    if order_subtotal < promo.min_order_value:
        return PromoResult(
            valid=False,
            message=f"Minimum order {CURRENCY_SYMBOL}{format_amount(promo.min_order_value)} required",
        )

    return PromoResult(valid=True, discount_amount=discount_for(promo, order_subtotal), promo=promo)


def apply_discount(subtotal: float, result: Optional[PromoResult]) -> float:
    if not result or not result.valid or not result.discount_amount:
        return subtotal
    return from_minor(to_minor(subtotal) - to_minor(result.discount_amount))
