"""
Job spec validation.

Every rule runs on every call; nothing short-circuits, so the UI can show
all field errors at once. The result is a field -> message mapping and an
empty mapping means the job spec is valid.
"""

from __future__ import annotations

from typing import Dict, Optional

from core.exceptions import (
    DensityNotAvailableError,
    InfeasibleFormatError,
    PaperTypeNotFoundError,
    UnknownFormatError,
)
from logging_config import get_logger
from models.job_spec import ProductJobSpec, CAPABILITY_PAGES
from models.policy import PricingPolicy
from models.stock import StockCatalogSnapshot
from models.trim import PressSheet, SRA3_SHEET, TrimSize
from modules import format_resolver
from modules.imposition import ImpositionCalculator
from modules.material_matcher import find_stock
from modules.product_catalog import (
    DEFAULT_PRODUCT_CATALOG,
    ProductCatalog,
    ProductCatalogEntry,
    max_quantity_for,
)
from modules.service_pricing import LAMINATION_KINDS, PRODUCTION_DAYS

logger = get_logger(__name__)

_CAPABILITY_LABELS = {
    "pages": "Page count",
    "cutting": "Cutting",
    "folding": "Folding",
    "magnetic": "Magnetic backing",
    "round_corners": "Rounded corners",
}


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 1


def _check_quantity(spec: ProductJobSpec, errors: Dict[str, str]) -> None:
    if not _is_positive_int(spec.quantity):
        errors["quantity"] = "Quantity must be a whole number of at least 1"
        return
    limit = max_quantity_for(spec.product_type)
    if spec.quantity > limit:
        errors["quantity"] = f"Maximum quantity for this product is {limit}"


def _check_format(
    spec: ProductJobSpec,
    product: Optional[ProductCatalogEntry],
    press_sheet: PressSheet,
    calculator: ImpositionCalculator,
    errors: Dict[str, str],
) -> None:
    format_name = None
    if spec.has_custom_size:
        if _is_blank(spec.custom_width) or _is_blank(spec.custom_height):
            errors["format"] = "Enter both width and height in mm"
            return
        width = format_resolver.parse_number(spec.custom_width)
        height = format_resolver.parse_number(spec.custom_height)
        if width is None or height is None:
            errors["format"] = "Width and height must be positive numbers"
            return
        trim = TrimSize(width, height)
    else:
        if _is_blank(spec.format):
            errors["format"] = "Choose a format"
            return
        try:
            trim = format_resolver.resolve(spec.format)
        except UnknownFormatError as e:
            errors["format"] = e.message
            return
        if format_resolver.lookup_format(spec.format) is not None:
            format_name = spec.format

    if product is not None and product.is_roll:
        return
    if calculator.table_ratio(format_name) is not None:
        return
    try:
        calculator.check_feasibility(trim, press_sheet)
    except InfeasibleFormatError as e:
        errors["format"] = e.message


def _check_pages(
    spec: ProductJobSpec,
    product: Optional[ProductCatalogEntry],
    errors: Dict[str, str],
) -> None:
    if product is None or not product.supports(CAPABILITY_PAGES):
        return
    pages = spec.extras.pages
    if not _is_positive_int(pages):
        errors["pages"] = "Enter the number of pages"
    elif pages < 4 or pages % 4 != 0:
        errors["pages"] = "Page count must be at least 4 and a multiple of 4"


def _check_capabilities(
    spec: ProductJobSpec,
    product: Optional[ProductCatalogEntry],
    errors: Dict[str, str],
) -> None:
    if product is None:
        return
    for capability in sorted(spec.extras.requested_capabilities()):
        if not product.supports(capability):
            errors[capability] = (
                f"{_CAPABILITY_LABELS[capability]} is not available for {product.display_name}"
            )


def _check_stock(
    spec: ProductJobSpec,
    stock_catalog: StockCatalogSnapshot,
    errors: Dict[str, str],
) -> None:
    try:
        find_stock(stock_catalog, spec.paper_type, spec.density)
    except PaperTypeNotFoundError as e:
        errors["paper_type"] = e.message
    except DensityNotAvailableError as e:
        errors["density"] = e.message


def validate(
    spec: ProductJobSpec,
    product_catalog: ProductCatalog = DEFAULT_PRODUCT_CATALOG,
    press_sheet: PressSheet = SRA3_SHEET,
    stock_catalog: Optional[StockCatalogSnapshot] = None,
    policy: Optional[PricingPolicy] = None,
    calculator: Optional[ImpositionCalculator] = None,
) -> Dict[str, str]:
    """
    Validate a job spec.

    Args:
        spec: Spec to check
        product_catalog: Products and their capabilities
        press_sheet: Sheet used for the feasibility check
        stock_catalog: When given, paper type and density are matched
            against it and a miss becomes a field error
        policy: Known urgency and customer tiers (default policy if None)
        calculator: Imposition calculator whose rotation setting governs
            feasibility (default: no rotation)

    Returns:
        Field -> message mapping; empty when valid
    """
    policy = policy or PricingPolicy.default()
    calculator = calculator or ImpositionCalculator()
    errors: Dict[str, str] = {}

    product = None
    if _is_blank(spec.product_type):
        errors["product_type"] = "Choose a product"
    else:
        product = product_catalog.get(spec.product_type)
        if product is None:
            errors["product_type"] = f"Unknown product type: {spec.product_type}"

    _check_quantity(spec, errors)
    _check_format(spec, product, press_sheet, calculator, errors)
    _check_pages(spec, product, errors)
    _check_capabilities(spec, product, errors)

    if spec.sides not in (1, 2) or isinstance(spec.sides, bool):
        errors["sides"] = "Choose single- or double-sided printing"
    elif product is not None and spec.sides not in product.sides:
        errors["sides"] = f"{product.display_name} can only be printed {_sides_text(product.sides)}"

    if _is_blank(spec.paper_type):
        errors["paper_type"] = "Choose a paper type"
    if _is_blank(spec.density):
        errors["density"] = "Choose a paper density"

    if _is_blank(spec.lamination):
        errors["lamination"] = "Choose a lamination option"
    elif spec.lamination not in LAMINATION_KINDS:
        errors["lamination"] = f"Unknown lamination: {spec.lamination}"

    if _is_blank(spec.urgency):
        errors["urgency"] = "Choose a turnaround"
    elif spec.urgency not in policy.urgency_tiers or spec.urgency not in PRODUCTION_DAYS:
        errors["urgency"] = f"Unknown urgency tier: {spec.urgency}"

    if _is_blank(spec.customer_tier):
        errors["customer_tier"] = "Choose a customer tier"
    elif spec.customer_tier not in policy.customer_tiers:
        errors["customer_tier"] = f"Unknown customer tier: {spec.customer_tier}"

    if (
        stock_catalog is not None
        and "paper_type" not in errors
        and "density" not in errors
    ):
        _check_stock(spec, stock_catalog, errors)

    if errors:
        logger.debug(f"Spec for {spec.product_type or '?'} invalid: {sorted(errors)}")
    return errors


def is_valid(errors: Dict[str, str]) -> bool:
    return not errors


def _sides_text(sides) -> str:
    return "double-sided" if tuple(sides) == (2,) else "single-sided"
