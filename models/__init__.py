"""
Data models for PrintEstimator.

This module contains immutable dataclasses for:
- TrimSize / PressSheet: physical piece and sheet geometry
- ProductJobSpec: the job being estimated
- StockCatalogSnapshot: point-in-time warehouse paper catalog
- PricingPolicy: urgency, volume, loyalty and minimum-order adjustments
- EstimationResult / EstimationOutcome: what an estimate produces

All dataclasses are designed for thread safety:
- Every model is frozen (immutable) so snapshots and policies can be
  shared between the catalog refresh thread and request handlers
"""

from .trim import TrimSize, PressSheet, SRA3_SHEET
from .job_spec import ProductJobSpec, JobExtras
from .stock import StockCatalogSnapshot, PaperStock, DensityStock
from .policy import PricingPolicy, MinimumOrderRule
from .estimate import (
    MaterialLine,
    ServiceLine,
    ImpositionResult,
    PriceBreakdown,
    EstimationResult,
    EstimationState,
    EstimationOutcome,
    RemotePricingQuote,
)

__all__ = [
    # Geometry
    "TrimSize",
    "PressSheet",
    "SRA3_SHEET",
    # Job models
    "ProductJobSpec",
    "JobExtras",
    # Catalog models
    "StockCatalogSnapshot",
    "PaperStock",
    "DensityStock",
    # Pricing models
    "PricingPolicy",
    "MinimumOrderRule",
    # Results
    "MaterialLine",
    "ServiceLine",
    "ImpositionResult",
    "PriceBreakdown",
    "EstimationResult",
    "EstimationState",
    "EstimationOutcome",
    "RemotePricingQuote",
]
