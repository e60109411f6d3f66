"""
Material matching: (paper type, density) -> stock keeping unit.

Reads the catalog snapshot only. Stock is never reserved here; that is the
warehouse's job once an order is committed.
"""

from __future__ import annotations

from typing import Any

from core.exceptions import PaperTypeNotFoundError, DensityNotAvailableError
from logging_config import get_logger
from models.estimate import MaterialLine
from models.stock import StockCatalogSnapshot

logger = get_logger(__name__)


def find_stock(
    catalog: StockCatalogSnapshot,
    paper_type: str,
    density: Any,
    quantity: int = 0,
) -> MaterialLine:
    """
    Match a paper type and density against the catalog snapshot.

    Args:
        catalog: Snapshot handed in by the caller
        paper_type: Exact paper type key
        density: Density in g/m2, matched numerically
        quantity: Press sheets required; becomes the line quantity

    Returns:
        MaterialLine priced from the catalog, with SKU and known availability

    Raises:
        PaperTypeNotFoundError: paper type not in the snapshot
        DensityNotAvailableError: density not stocked for that type
    """
    paper = catalog.get_paper_type(paper_type)
    if paper is None:
        logger.warning(
            f"Paper type '{paper_type}' not in catalog "
            f"(known: {', '.join(catalog.paper_type_names()) or 'none'})"
        )
        raise PaperTypeNotFoundError(paper_type)

    stock = paper.get_density(density)
    if stock is None:
        logger.warning(
            f"Density {density} not stocked for '{paper_type}' "
            f"(available: {list(paper.density_values)})"
        )
        raise DensityNotAvailableError(paper_type, density, paper.density_values)

    line = MaterialLine(
        name=stock.material_name or f"{paper.display_name} {stock.value:g} g/m²",
        quantity=quantity,
        unit_price=stock.price * paper.price_multiplier,
        unit="sheets",
        sku=stock.material_id,
        available_quantity=stock.available_quantity,
    )

    if quantity and not line.is_available:
        logger.info(
            f"Stock shortfall for {paper_type} {stock.value:g}: "
            f"need {quantity}, have {stock.available_quantity}"
        )
    return line
