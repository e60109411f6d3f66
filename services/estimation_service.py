"""
Estimation orchestration.

EstimationOrchestrator composes the engine components into the one public
"estimate" operation. It is stateless: every call is a pure function of
(spec, stock catalog snapshot, pricing policy), so concurrent calls from
different request threads need no locks.

EstimationSession wraps the orchestrator with the UI-facing state machine:

    IDLE -> VALIDATING -> (INVALID | ESTIMATING) -> (ESTIMATED | FAILED)

Pipeline order (local preview path):
    1. SpecValidator           - field errors stop here, nothing is computed
    2. FormatResolver          - trim size
    3. ImpositionCalculator    - items per sheet, sheets needed
    4. MaterialMatcher         - paper SKU for the sheet count
    5. PricingEngine           - subtotal, discounts, floor, per item

Remote path: steps 1-3 run locally (validation and feasibility), then the
pricing service prices the job and its response is validated strictly.

Usage:
    orchestrator = EstimationOrchestrator(waste_ratio=0.05)
    outcome = orchestrator.run(spec, catalog_service.get_snapshot_or_raise(), policy)
    if outcome.is_success:
        result = outcome.result
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple

from core.exceptions import CatalogNotReadyError, EstimatorError, ValidationFailedError
from core.pricing_client import RemotePricingClient
from logging_config import get_logger, get_estimate_logger
from models.estimate import (
    EstimationOutcome,
    EstimationResult,
    EstimationState,
    ImpositionResult,
    RemotePricingQuote,
)
from models.job_spec import ProductJobSpec, CAPABILITY_PAGES
from models.policy import PricingPolicy
from models.stock import StockCatalogSnapshot
from models.trim import PressSheet, SRA3_SHEET, TrimSize
from modules import format_resolver, pricing_engine, spec_validator
from modules.imposition import ImpositionCalculator
from modules.material_matcher import find_stock
from modules.product_catalog import DEFAULT_PRODUCT_CATALOG, ProductCatalog, ProductCatalogEntry
from modules.service_pricing import build_service_lines, production_time_label


# Module logger
logger = get_logger(__name__)


class EstimationOrchestrator:
    """
    Runs the estimation pipeline for one spec at a time.

    Holds only configuration (product catalog, press sheet, imposition
    settings); no state survives between calls.
    """

    def __init__(
        self,
        product_catalog: ProductCatalog = DEFAULT_PRODUCT_CATALOG,
        press_sheet: PressSheet = SRA3_SHEET,
        waste_ratio: float = ImpositionCalculator.DEFAULT_WASTE_RATIO,
        allow_rotation: bool = False,
    ):
        self.product_catalog = product_catalog
        self.press_sheet = press_sheet
        self.calculator = ImpositionCalculator(waste_ratio=waste_ratio, allow_rotation=allow_rotation)

    # -------------------------------------------------------------------------
    # Public contract
    # -------------------------------------------------------------------------

    def validate(
        self,
        spec: ProductJobSpec,
        stock_catalog: Optional[StockCatalogSnapshot] = None,
        policy: Optional[PricingPolicy] = None,
    ) -> Dict[str, str]:
        """Field-level validation with this orchestrator's catalog and sheet."""
        return spec_validator.validate(
            spec,
            product_catalog=self.product_catalog,
            press_sheet=self.press_sheet,
            stock_catalog=stock_catalog,
            policy=policy,
            calculator=self.calculator,
        )

    def run(
        self,
        spec: ProductJobSpec,
        stock_catalog: Optional[StockCatalogSnapshot],
        policy: PricingPolicy,
        pricing_client: Optional[RemotePricingClient] = None,
        generation: int = 0,
    ) -> EstimationOutcome:
        """
        Validate and estimate, returning the terminal state.

        Never raises EstimatorError: validation errors become an INVALID
        outcome, pipeline errors a FAILED outcome carrying the error kind.
        Paper type and density are matched by the MaterialMatcher step, so a
        missing SKU fails with PAPER_TYPE_NOT_FOUND / DENSITY_NOT_AVAILABLE.
        """
        errors = self.validate(spec, None, policy)
        if errors:
            return EstimationOutcome.invalid(errors, generation)

        try:
            if pricing_client is not None:
                result = self._estimate_remote(spec, pricing_client, policy)
            elif stock_catalog is None:
                raise CatalogNotReadyError()
            else:
                result = self.compute_local(spec, stock_catalog, policy)
        except EstimatorError as e:
            get_estimate_logger(spec.product_type).warning(
                f"Estimate failed ({e.kind.value}): {e.message}"
            )
            return EstimationOutcome.failed(e, generation)

        return EstimationOutcome.estimated(result, generation)

    def estimate(
        self,
        spec: ProductJobSpec,
        stock_catalog: StockCatalogSnapshot,
        policy: PricingPolicy,
    ) -> EstimationResult:
        """
        Local estimate, raising on any failure.

        Raises:
            ValidationFailedError: the job spec has field errors
            EstimatorError: any pipeline step failed
        """
        errors = self.validate(spec, None, policy)
        if errors:
            raise ValidationFailedError(errors)
        return self.compute_local(spec, stock_catalog, policy)

    # -------------------------------------------------------------------------
    # Pipeline
    # -------------------------------------------------------------------------

    def _resolve(self, spec: ProductJobSpec) -> Tuple[TrimSize, Optional[str], str]:
        """
        Resolve the trim size.

        Returns:
            (trim, table format name or None, effective format name)
        """
        trim = format_resolver.resolve(spec.format, spec.custom_width, spec.custom_height)
        table_name = None
        if not spec.has_custom_size and format_resolver.lookup_format(spec.format) is not None:
            table_name = spec.format.strip().upper()
        effective_name = table_name or format_resolver.display_name(trim)
        return trim, table_name, effective_name

    def _impose(
        self,
        spec: ProductJobSpec,
        product: ProductCatalogEntry,
        trim: TrimSize,
        table_name: Optional[str],
    ) -> ImpositionResult:
        pieces = spec.quantity
        if product.supports(CAPABILITY_PAGES) and spec.extras.pages:
            # Each copy is pages/2 duplex leaves of the trim size
            pieces = spec.quantity * spec.extras.pages // 2
        return self.calculator.compute(
            trim,
            self.press_sheet,
            pieces,
            format_name=table_name,
            roll=product.is_roll,
        )

    def compute_local(
        self,
        spec: ProductJobSpec,
        stock_catalog: StockCatalogSnapshot,
        policy: PricingPolicy,
    ) -> EstimationResult:
        """Local pipeline for an already validated spec."""
        est_logger = get_estimate_logger(spec.product_type)
        est_logger.debug(f"Estimating locally: {spec.to_dict()}")

        product = self.product_catalog.get(spec.product_type)
        trim, table_name, format_name = self._resolve(spec)
        imposition = self._impose(spec, product, trim, table_name)

        material = find_stock(stock_catalog, spec.paper_type, spec.density, imposition.sheets_needed)
        services = build_service_lines(spec, product, imposition)
        breakdown = pricing_engine.price(spec, [material], services, policy, format_name=format_name)

        warnings: List[str] = []
        if not material.is_available:
            warnings.append(
                f"Only {material.available_quantity} sheets of {material.name} in stock; "
                f"{material.quantity} needed"
            )

        result = EstimationResult(
            spec=spec,
            materials=(material,),
            services=services,
            subtotal=breakdown.subtotal,
            discount_amount=breakdown.discount_amount,
            total=breakdown.total,
            price_per_item=breakdown.price_per_item,
            imposition=imposition,
            production_time_label=production_time_label(spec.urgency),
            trim=trim,
            format_name=format_name,
            source="local",
            warnings=tuple(warnings),
        )
        est_logger.info(
            f"Estimated {spec.quantity} x {format_name}: {imposition.sheets_needed} sheets, "
            f"total {result.total}"
        )
        return result

    def _estimate_remote(
        self,
        spec: ProductJobSpec,
        client: RemotePricingClient,
        policy: PricingPolicy,
    ) -> EstimationResult:
        est_logger = get_estimate_logger(spec.product_type)

        product = self.product_catalog.get(spec.product_type)
        trim, table_name, format_name = self._resolve(spec)
        imposition = self._impose(spec, product, trim, table_name)

        product_id = spec.product_id or spec.product_type
        data = client.calculate(product_id, spec.quantity, build_remote_params(spec, trim, format_name))
        quote = RemotePricingQuote.from_api_data(data, product_id)

        if quote.items_per_sheet is not None and quote.sheets_needed is not None:
            imposition = ImpositionResult(
                items_per_sheet=quote.items_per_sheet,
                sheets_needed=quote.sheets_needed,
                waste_ratio=imposition.waste_ratio,
                roll=imposition.roll,
            )

        subtotal = sum((m.total for m in quote.materials), Decimal("0")) + sum(
            (s.total for s in quote.services), Decimal("0")
        )
        total = pricing_engine.round_money(quote.final_price)
        if quote.price_per_unit is not None:
            per_item = pricing_engine.round_money(quote.price_per_unit)
        else:
            per_item = pricing_engine.round_money(quote.final_price / Decimal(spec.quantity))

        result = EstimationResult(
            spec=spec,
            materials=quote.materials,
            services=quote.services,
            subtotal=subtotal,
            discount_amount=max(subtotal - total, Decimal("0")),
            total=total,
            price_per_item=per_item,
            imposition=imposition,
            production_time_label=production_time_label(spec.urgency),
            trim=quote.product_size or trim,
            format_name=format_name,
            source="remote",
        )
        est_logger.info(f"Remote estimate for product {product_id} x{spec.quantity}: total {total}")
        return result


def build_remote_params(spec: ProductJobSpec, trim: TrimSize, format_name: str) -> Dict[str, Any]:
    """Parameter bag for the pricing service, including the resolved trim size."""
    params = spec.to_dict()
    params.pop("quantity", None)
    params.pop("product_id", None)
    params["format"] = format_name
    params["trim_size"] = trim.to_dict()
    return params


class EstimationSession:
    """
    Stateful wrapper driving the estimation state machine for one UI form.

    Each spec change is validated and estimated synchronously; the state is
    replaced wholesale on every change. Setting an identical spec after a
    successful estimate is a no-op that keeps the current result.

    Attributes:
        state: Current EstimationState
        outcome: Last terminal outcome (None until the first spec)
        transitions: Every state entered, oldest first
    """

    def __init__(
        self,
        orchestrator: EstimationOrchestrator,
        catalog_provider: Callable[[], StockCatalogSnapshot],
        policy: PricingPolicy,
    ):
        self._orchestrator = orchestrator
        self._catalog_provider = catalog_provider
        self._policy = policy

        self.state = EstimationState.IDLE
        self.spec: Optional[ProductJobSpec] = None
        self.outcome: Optional[EstimationOutcome] = None
        self.transitions: List[EstimationState] = [EstimationState.IDLE]

    def _enter(self, state: EstimationState) -> None:
        self.state = state
        self.transitions.append(state)

    def set_spec(self, spec: ProductJobSpec) -> EstimationOutcome:
        """Replace the job spec and run the state machine to a terminal state."""
        if (
            self.spec == spec
            and self.outcome is not None
            and self.outcome.is_success
        ):
            self._enter(EstimationState.IDLE)
            return self.outcome

        self.spec = spec
        self.outcome = None
        self._enter(EstimationState.VALIDATING)

        try:
            catalog = self._catalog_provider()
        except EstimatorError as e:
            self._enter(EstimationState.FAILED)
            self.outcome = EstimationOutcome.failed(e)
            return self.outcome

        errors = self._orchestrator.validate(spec, catalog, self._policy)
        if errors:
            self._enter(EstimationState.INVALID)
            self.outcome = EstimationOutcome.invalid(errors)
            return self.outcome

        self._enter(EstimationState.ESTIMATING)
        try:
            result = self._orchestrator.compute_local(spec, catalog, self._policy)
        except EstimatorError as e:
            self._enter(EstimationState.FAILED)
            self.outcome = EstimationOutcome.failed(e)
            return self.outcome

        self._enter(EstimationState.ESTIMATED)
        self.outcome = EstimationOutcome.estimated(result)
        return self.outcome

    def update(self, **changes: Any) -> EstimationOutcome:
        """Apply field changes to the current spec (the UI's per-field edit)."""
        if self.spec is None:
            raise ValueError("No spec set; call set_spec() first")
        return self.set_spec(self.spec.with_changes(**changes))
