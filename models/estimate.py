"""
Estimation result models.

These models carry everything an estimate produces: priced consumption
lines, the imposition, the price breakdown and the final immutable
EstimationResult. EstimationOutcome wraps a result (or a typed failure)
together with the orchestrator state it ended in.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from math import floor
from typing import Dict, Any, List, Optional, Tuple

from core.exceptions import (
    ErrorKind,
    EstimatorError,
    EmptyMaterialsOrServicesError,
    NonPositivePriceError,
    RemoteUnavailableError,
)
from models.job_spec import ProductJobSpec
from models.stock import to_decimal
from models.trim import TrimSize


def _money(value: Optional[Decimal]) -> Optional[str]:
    return None if value is None else str(value)


# =============================================================================
# PRICED LINES
# =============================================================================

@dataclass(frozen=True)
class PricedLine:
    """
    A priced consumption line.

    ``total`` is always quantity x unit_price, except when the remote pricing
    service supplied an authoritative total, which then wins.
    """

    name: str
    """Display name of the material or operation."""

    quantity: Any
    """Consumed amount (sheets, items, corners...)."""

    unit_price: Decimal
    """Price per unit."""

    unit: str = "pcs"
    """Unit of measure."""

    authoritative_total: Optional[Decimal] = None
    """Total reported by the remote pricing service, if any."""

    @property
    def computed_total(self) -> Decimal:
        return to_decimal(self.quantity, Decimal("0")) * self.unit_price

    @property
    def total(self) -> Decimal:
        if self.authoritative_total is not None:
            return self.authoritative_total
        return self.computed_total

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "quantity": self.quantity,
            "unit": self.unit,
            "unit_price": _money(self.unit_price),
            "total": _money(self.total),
        }


@dataclass(frozen=True)
class MaterialLine(PricedLine):
    """A material consumption line (paper, magnetic sheet...)."""

    sku: str = ""
    """Warehouse material identifier."""

    available_quantity: Optional[int] = None
    """Known stock for the SKU; None when the source does not report it."""

    @property
    def is_available(self) -> bool:
        """Whether known stock covers the required quantity."""
        if self.available_quantity is None:
            return True
        return self.available_quantity >= self.quantity

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["sku"] = self.sku
        data["available_quantity"] = self.available_quantity
        data["is_available"] = self.is_available
        return data


@dataclass(frozen=True)
class ServiceLine(PricedLine):
    """A service/operation line (printing, lamination, cutting...)."""


# =============================================================================
# IMPOSITION
# =============================================================================

@dataclass(frozen=True)
class ImpositionResult:
    """
    Result of laying pieces out on a press sheet.

    ``items_per_sheet`` may be below 1 for large catalog formats that need
    several sheets per item; ``reported_items_per_sheet`` is the whole number
    of finished items one sheet yields.
    """

    items_per_sheet: float
    """Items per press sheet (table values may be fractional)."""

    sheets_needed: int
    """Press sheets including waste allowance."""

    waste_ratio: float
    """Waste allowance applied to the sheet count."""

    pieces_across_width: int = 0
    """Grid columns (0 when a table or roll rule applied)."""

    pieces_across_height: int = 0
    """Grid rows (0 when a table or roll rule applied)."""

    rotated: bool = False
    """Whether the rotated orientation was used."""

    roll: bool = False
    """Roll product: one length segment per item, no sheet geometry."""

    @property
    def reported_items_per_sheet(self) -> int:
        return max(int(floor(self.items_per_sheet)), 0)

    @property
    def sheets_per_item(self) -> Optional[float]:
        """Sheets consumed per item for table formats below one item per sheet."""
        if 0 < self.items_per_sheet < 1:
            return 1 / self.items_per_sheet
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items_per_sheet": self.reported_items_per_sheet,
            "sheets_per_item": self.sheets_per_item,
            "sheets_needed": self.sheets_needed,
            "waste_ratio": self.waste_ratio,
            "layout": {
                "across_width": self.pieces_across_width,
                "across_height": self.pieces_across_height,
                "rotated": self.rotated,
            },
            "roll": self.roll,
        }


# =============================================================================
# PRICE BREAKDOWN / RESULT
# =============================================================================

@dataclass(frozen=True)
class PriceBreakdown:
    """Output of the pricing engine."""

    subtotal: Decimal
    discount_amount: Decimal
    total: Decimal
    price_per_item: Decimal

    urgency_multiplier: Decimal = Decimal("1")
    discount_fraction: Decimal = Decimal("0")
    minimum_order_cost: Decimal = Decimal("0")
    floor_applied: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "subtotal": _money(self.subtotal),
            "discount_amount": _money(self.discount_amount),
            "total": _money(self.total),
            "price_per_item": _money(self.price_per_item),
            "urgency_multiplier": _money(self.urgency_multiplier),
            "discount_fraction": _money(self.discount_fraction),
            "minimum_order_cost": _money(self.minimum_order_cost),
            "floor_applied": self.floor_applied,
        }


@dataclass(frozen=True)
class EstimationResult:
    """
    Complete, immutable estimate for one spec.

    Never partially filled: either every field is set or an error was
    reported instead.
    """

    spec: ProductJobSpec
    materials: Tuple[MaterialLine, ...]
    services: Tuple[ServiceLine, ...]
    subtotal: Decimal
    discount_amount: Decimal
    total: Decimal
    price_per_item: Decimal
    imposition: ImpositionResult
    production_time_label: str

    trim: Optional[TrimSize] = None
    """Resolved trim size."""

    format_name: str = ""
    """Catalog name of the trim size, or 'WxH' for a custom size."""

    source: str = "local"
    """'local' (preview engine) or 'remote' (pricing service)."""

    warnings: Tuple[str, ...] = ()
    """Non-fatal notices, e.g. stock shortfalls."""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON responses."""
        return {
            "spec": self.spec.to_dict(),
            "format_name": self.format_name,
            "trim": self.trim.to_dict() if self.trim else None,
            "materials": [m.to_dict() for m in self.materials],
            "services": [s.to_dict() for s in self.services],
            "subtotal": _money(self.subtotal),
            "discount_amount": _money(self.discount_amount),
            "total": _money(self.total),
            "price_per_item": _money(self.price_per_item),
            "imposition": self.imposition.to_dict(),
            "production_time_label": self.production_time_label,
            "source": self.source,
            "warnings": list(self.warnings),
        }


# =============================================================================
# STATE MACHINE
# =============================================================================

class EstimationState(Enum):
    """
    State of the estimation orchestrator.

    Lifecycle:
        IDLE -> VALIDATING -> (INVALID | ESTIMATING) -> (ESTIMATED | FAILED)
    """

    IDLE = "idle"
    """No spec yet, or spec unchanged since the last estimate."""

    VALIDATING = "validating"
    """Spec changed; running field validation."""

    INVALID = "invalid"
    """Field-level errors exist; nothing was computed."""

    ESTIMATING = "estimating"
    """Spec is valid; pipeline running."""

    ESTIMATED = "estimated"
    """Holding a complete EstimationResult."""

    FAILED = "failed"
    """A pipeline step failed with a typed error."""


@dataclass(frozen=True)
class EstimationOutcome:
    """
    Terminal state of one estimation run.

    Exactly one of ``result`` (ESTIMATED), ``errors`` (INVALID) or
    ``error_kind`` (FAILED) is meaningful.
    """

    state: EstimationState
    result: Optional[EstimationResult] = None
    errors: Dict[str, str] = field(default_factory=dict)
    error_kind: Optional[ErrorKind] = None
    message: str = ""
    retryable: bool = False
    generation: int = 0

    @property
    def is_success(self) -> bool:
        return self.state is EstimationState.ESTIMATED

    @classmethod
    def estimated(cls, result: EstimationResult, generation: int = 0) -> "EstimationOutcome":
        return cls(state=EstimationState.ESTIMATED, result=result, generation=generation)

    @classmethod
    def invalid(cls, errors: Dict[str, str], generation: int = 0) -> "EstimationOutcome":
        return cls(
            state=EstimationState.INVALID,
            errors=dict(errors),
            error_kind=ErrorKind.VALIDATION_FAILED,
            message="Invalid job specification",
            generation=generation,
        )

    @classmethod
    def failed(cls, error: EstimatorError, generation: int = 0) -> "EstimationOutcome":
        return cls(
            state=EstimationState.FAILED,
            error_kind=error.kind,
            message=error.message,
            retryable=error.retryable,
            generation=generation,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "state": self.state.value,
            "generation": self.generation,
        }
        if self.result is not None:
            data["result"] = self.result.to_dict()
        if self.errors:
            data["errors"] = dict(self.errors)
        if self.error_kind is not None:
            data["error"] = {
                "kind": self.error_kind.value,
                "message": self.message,
                "retryable": self.retryable,
            }
        return data


# =============================================================================
# REMOTE PRICING RESPONSE
# =============================================================================

def _finite_decimal(value: Any) -> Optional[Decimal]:
    """Decimal for a finite number, None for anything else (NaN included)."""
    number = to_decimal(value)
    if number is None or not number.is_finite():
        return None
    return number


def _positive_decimal(value: Any) -> Optional[Decimal]:
    number = _finite_decimal(value)
    if number is None or number <= 0:
        return None
    return number


def _line_entries(value: Any, missing: str, product_id: Any) -> List[Dict[str, Any]]:
    """Material or operation entries; must be a non-empty list of objects."""
    if not value or not isinstance(value, list):
        raise EmptyMaterialsOrServicesError(missing, product_id)
    if not all(isinstance(entry, dict) for entry in value):
        raise EmptyMaterialsOrServicesError(missing, product_id)
    return value


def _parse_remote_line(data: Dict[str, Any], kind: str) -> Dict[str, Any]:
    if kind == "material":
        name = data.get("materialName") or data.get("material") or data.get("name") or ""
    else:
        name = data.get("operationName") or data.get("service") or data.get("name") or ""

    unit_price = _finite_decimal(
        data.get("unitPrice", data.get("unit_price", data.get("price")))
    )
    if unit_price is None:
        unit_price = Decimal("0")
    total = _finite_decimal(data.get("totalCost", data.get("total")))
    quantity = data.get("quantity", 0)
    if _finite_decimal(quantity) is None:
        quantity = 0
    return {
        "name": str(name),
        "quantity": quantity,
        "unit_price": unit_price,
        "unit": str(data.get("unit") or data.get("priceUnit") or "pcs"),
        "authoritative_total": total,
    }


@dataclass(frozen=True)
class RemotePricingQuote:
    """
    Validated response from the remote pricing service.

    The service is the source of truth for totals on this path; a response
    without materials, without operations, or with a price <= 0 means the
    product is misconfigured and is rejected.
    """

    final_price: Decimal
    """Total job price."""

    price_per_unit: Optional[Decimal]
    """Per-item price, when the service reports one."""

    materials: Tuple[MaterialLine, ...]
    services: Tuple[ServiceLine, ...]

    product_size: Optional[TrimSize] = None
    """Trim size the service actually priced."""

    items_per_sheet: Optional[float] = None
    sheets_needed: Optional[int] = None

    @classmethod
    def from_api_data(cls, data: Dict[str, Any], product_id: Any = None) -> "RemotePricingQuote":
        """
        Parse and validate a pricing response.

        Layout and product size are optional; values that are not positive
        numbers are treated as absent.

        Raises:
            RemoteUnavailableError: the response is not a JSON object
            NonPositivePriceError: finalPrice missing, not numeric or <= 0
            EmptyMaterialsOrServicesError: materials or operations missing,
                empty, or not a list of objects
        """
        if not isinstance(data, dict):
            raise RemoteUnavailableError("calculate", "Response is not a JSON object")

        raw_price = data.get("finalPrice", data.get("final_price"))
        final_price = _positive_decimal(raw_price)
        if final_price is None:
            raise NonPositivePriceError(raw_price, source="remote")

        materials_data = _line_entries(data.get("materials"), "materials", product_id)
        services_data = _line_entries(
            data.get("operations") or data.get("services"), "services", product_id
        )

        materials = []
        for entry in materials_data:
            line = _parse_remote_line(entry, "material")
            materials.append(MaterialLine(
                sku=str(entry.get("materialId", entry.get("material_id", entry.get("id", ""))) or ""),
                **line,
            ))
        services = tuple(ServiceLine(**_parse_remote_line(entry, "service")) for entry in services_data)

        product_size = None
        size = data.get("productSize")
        if isinstance(size, dict):
            width = _positive_decimal(size.get("width"))
            height = _positive_decimal(size.get("height"))
            if width is not None and height is not None:
                product_size = TrimSize(float(width), float(height))

        layout = data.get("layout")
        if not isinstance(layout, dict):
            layout = {}
        items_per_sheet = _positive_decimal(layout.get("itemsPerSheet"))
        sheets_needed = _positive_decimal(layout.get("sheetsNeeded"))

        return cls(
            final_price=final_price,
            price_per_unit=_positive_decimal(data.get("pricePerUnit", data.get("price_per_unit"))),
            materials=tuple(materials),
            services=services,
            product_size=product_size,
            items_per_sheet=float(items_per_sheet) if items_per_sheet is not None else None,
            sheets_needed=int(sheets_needed) if sheets_needed is not None else None,
        )
