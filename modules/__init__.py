"""Estimation engine components for the PrintEstimator application."""

__all__ = [
    "format_resolver",
    "imposition",
    "material_matcher",
    "pricing_engine",
    "product_catalog",
    "service_pricing",
    "spec_validator",
]
