"""
Core module for PrintEstimator.

Contains fundamental infrastructure components:
- exceptions: Typed error hierarchy (ErrorKind + EstimatorError subclasses)
- pricing_client: HTTP client for the remote pricing / warehouse service
"""

from .exceptions import (
    ErrorKind,
    EstimatorError,
    UnknownFormatError,
    InfeasibleFormatError,
    PaperTypeNotFoundError,
    DensityNotAvailableError,
    EmptyMaterialsOrServicesError,
    NonPositivePriceError,
    ValidationFailedError,
    RemoteUnavailableError,
    CatalogNotReadyError,
)
from .pricing_client import RemotePricingClient

__all__ = [
    "ErrorKind",
    "EstimatorError",
    "UnknownFormatError",
    "InfeasibleFormatError",
    "PaperTypeNotFoundError",
    "DensityNotAvailableError",
    "EmptyMaterialsOrServicesError",
    "NonPositivePriceError",
    "ValidationFailedError",
    "RemoteUnavailableError",
    "CatalogNotReadyError",
    "RemotePricingClient",
]
