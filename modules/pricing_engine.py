"""
Pricing engine.

Combines material and service costs with the policy adjustments in a fixed
order:

    1. subtotal      = sum(material totals) + sum(service totals)
    2. after_urgency = subtotal * urgency multiplier
    3. fraction      = min(volume + loyalty, cap)
    4. discounted    = after_urgency * (1 - fraction)
    5. total         = max(discounted, minimum order floor)
    6. per item      = total / quantity
    7. discount      = after_urgency - discounted, or 0 when the floor wins

All math is Decimal; only ``total`` and ``price_per_item`` are rounded
(half-up, 2 places).
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Sequence

from core.exceptions import NonPositivePriceError
from logging_config import get_logger
from models.estimate import MaterialLine, PriceBreakdown, ServiceLine
from models.job_spec import ProductJobSpec
from models.policy import PricingPolicy

logger = get_logger(__name__)

CENT = Decimal("0.01")


def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def price(
    spec: ProductJobSpec,
    materials: Sequence[MaterialLine],
    services: Sequence[ServiceLine],
    policy: PricingPolicy,
    format_name: Optional[str] = None,
) -> PriceBreakdown:
    """
    Price a validated spec.

    Args:
        spec: Validated job spec (quantity >= 1, known tiers)
        materials: Priced material lines
        services: Priced service lines
        policy: Adjustments to apply
        format_name: Format used for the minimum-order lookup; defaults to
            ``spec.format`` (pass the resolved name for custom sizes)

    Returns:
        PriceBreakdown

    Raises:
        NonPositivePriceError: the rounded total is <= 0
        ValueError: quantity < 1 (validation must run first)
    """
    quantity = spec.quantity
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValueError(f"price() requires a validated quantity >= 1, got {quantity!r}")

    subtotal = sum((m.total for m in materials), Decimal("0")) + sum(
        (s.total for s in services), Decimal("0")
    )

    urgency = policy.urgency_multiplier(spec.urgency)
    after_urgency = subtotal * urgency

    volume_fraction = policy.volume_discount(quantity)
    loyalty_fraction = policy.loyalty_discount(spec.customer_tier)
    fraction = min(volume_fraction + loyalty_fraction, policy.max_discount_cap)

    discounted = after_urgency * (Decimal("1") - fraction)

    floor = policy.minimum_order_cost(format_name or spec.format, spec.product_type, quantity)
    floor_applied = discounted < floor
    total = floor if floor_applied else discounted
    discount_amount = Decimal("0") if floor_applied else after_urgency - discounted

    total_rounded = round_money(total)
    if total_rounded <= 0:
        raise NonPositivePriceError(total_rounded, source="local")

    breakdown = PriceBreakdown(
        subtotal=subtotal,
        discount_amount=discount_amount,
        total=total_rounded,
        price_per_item=round_money(total / Decimal(quantity)),
        urgency_multiplier=urgency,
        discount_fraction=fraction,
        minimum_order_cost=floor,
        floor_applied=floor_applied,
    )

    logger.debug(
        f"Priced {spec.product_type} x{quantity}: subtotal {subtotal}, "
        f"urgency x{urgency}, discount {fraction}, floor {floor} -> {breakdown.total}"
    )
    return breakdown
