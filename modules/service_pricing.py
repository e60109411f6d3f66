"""Service lines and production time for the local preview path."""

from __future__ import annotations

from decimal import Decimal
from typing import List, Tuple

from models.estimate import ImpositionResult, ServiceLine
from models.job_spec import (
    ProductJobSpec,
    CAPABILITY_CUTTING,
    CAPABILITY_FOLDING,
    CAPABILITY_MAGNETIC,
    CAPABILITY_ROUND_CORNERS,
)
from modules.product_catalog import ProductCatalogEntry


class ServiceRates:
    """Unit prices for shop operations (same currency as the stock catalog)."""

    PRINT_PER_SHEET = Decimal("0.30")
    DUPLEX_FACTOR = Decimal("1.6")
    LAMINATION_PER_SHEET_SIDE = Decimal("0.20")
    CUTTING_PER_SHEET = Decimal("0.20")
    FOLDING_PER_ITEM = Decimal("0.13")
    MAGNETIC_PER_ITEM = Decimal("2.50")
    ROUND_CORNER_EACH = Decimal("0.80")
    CORNERS_PER_ITEM = 4


LAMINATION_KINDS = ("none", "matte", "glossy")

# Working days by urgency tier
PRODUCTION_DAYS = {
    "standard": 3,
    "online": 2,
    "promo": 5,
    "urgent": 1,
    "rush": 1,
    "express": 0.5,
    "super_urgent": 0.5,
}


def production_time_label(urgency: str) -> str:
    """
    Human-readable turnaround for an urgency tier.

    Raises:
        KeyError: unknown tier (validation rejects these earlier)
    """
    days = PRODUCTION_DAYS[urgency]
    if days == 0.5:
        return "4 hours"
    if days == 1:
        return "1 day"
    return f"{days:g} days"


def build_service_lines(
    spec: ProductJobSpec,
    product: ProductCatalogEntry,
    imposition: ImpositionResult,
) -> Tuple[ServiceLine, ...]:
    """
    Derive the operations a job needs.

    Sheet-based operations count press sheets; finishing operations count
    finished items. Options the product does not offer are skipped here
    (validation reports them as errors before pricing).
    """
    sheets = imposition.sheets_needed
    items = spec.quantity
    duplex = spec.sides == 2

    print_price = ServiceRates.PRINT_PER_SHEET
    if duplex:
        print_price = print_price * ServiceRates.DUPLEX_FACTOR

    lines: List[ServiceLine] = [
        ServiceLine(
            name=f"Digital printing ({'4+4' if duplex else '4+0'})",
            quantity=sheets,
            unit_price=print_price,
            unit="sheets",
        )
    ]

    if spec.lamination in ("matte", "glossy"):
        lines.append(ServiceLine(
            name=f"Lamination ({spec.lamination})",
            quantity=sheets * (2 if duplex else 1),
            unit_price=ServiceRates.LAMINATION_PER_SHEET_SIDE,
            unit="sheet sides",
        ))

    extras = spec.extras
    if extras.cutting and product.supports(CAPABILITY_CUTTING):
        lines.append(ServiceLine(
            name="Cutting",
            quantity=sheets,
            unit_price=ServiceRates.CUTTING_PER_SHEET,
            unit="sheets",
        ))
    if extras.folding and product.supports(CAPABILITY_FOLDING):
        lines.append(ServiceLine(
            name="Folding",
            quantity=items,
            unit_price=ServiceRates.FOLDING_PER_ITEM,
        ))
    if extras.magnetic and product.supports(CAPABILITY_MAGNETIC):
        lines.append(ServiceLine(
            name="Magnetic backing",
            quantity=items,
            unit_price=ServiceRates.MAGNETIC_PER_ITEM,
        ))
    if extras.round_corners and product.supports(CAPABILITY_ROUND_CORNERS):
        lines.append(ServiceLine(
            name="Rounded corners",
            quantity=items * ServiceRates.CORNERS_PER_ITEM,
            unit_price=ServiceRates.ROUND_CORNER_EACH,
            unit="corners",
        ))

    return tuple(lines)
