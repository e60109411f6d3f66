"""
Custom exceptions for PrintEstimator.

Exception Hierarchy:
    EstimatorError (base)
    ├── UnknownFormatError              - format token not in catalog, not a size
    ├── InfeasibleFormatError           - piece larger than the usable sheet area
    ├── PaperTypeNotFoundError          - paper type absent from stock snapshot
    ├── DensityNotAvailableError        - density not stocked for the paper type
    ├── EmptyMaterialsOrServicesError   - remote price came without line items
    ├── NonPositivePriceError           - remote or local total <= 0
    ├── ValidationFailedError           - field-level errors exist
    ├── RemoteUnavailableError          - network/timeout talking to pricing
    └── CatalogNotReadyError            - stock catalog not loaded or too old

Usage:
    Every error carries an ErrorKind so callers (routes, the remote
    estimation service) can decide between "fix the configuration" and
    "offer a retry" without isinstance ladders. Only RemoteUnavailableError
    is retryable, and nothing in the engine retries on its own.
"""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorKind(Enum):
    """Typed failure reasons surfaced by the estimation pipeline."""

    UNKNOWN_FORMAT = "unknown_format"
    INFEASIBLE_FORMAT = "infeasible_format"
    PAPER_TYPE_NOT_FOUND = "paper_type_not_found"
    DENSITY_NOT_AVAILABLE = "density_not_available"
    EMPTY_MATERIALS_OR_SERVICES = "empty_materials_or_services"
    NON_POSITIVE_PRICE = "non_positive_price"
    VALIDATION_FAILED = "validation_failed"
    REMOTE_UNAVAILABLE = "remote_unavailable"
    CATALOG_NOT_READY = "catalog_not_ready"


class EstimatorError(Exception):
    """
    Base exception for all PrintEstimator errors.

    Subclasses set ``kind``; ``retryable`` is derived from it.
    """

    kind: ErrorKind = ErrorKind.VALIDATION_FAILED

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional context for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    @property
    def retryable(self) -> bool:
        """Whether retrying the same request could succeed."""
        return self.kind is ErrorKind.REMOTE_UNAVAILABLE

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON responses."""
        return {
            "kind": self.kind.value,
            "message": self.message,
            "retryable": self.retryable,
            "details": dict(self.details),
        }

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# CATALOG / CONFIGURATION ERRORS - not recoverable by retrying
# =============================================================================

class UnknownFormatError(EstimatorError):
    """The format token is neither a catalog name nor a WxH dimension string."""

    kind = ErrorKind.UNKNOWN_FORMAT

    def __init__(self, token: Optional[str]):
        message = f"Unknown format: {token!r}" if token else "No format specified"
        details = {
            "format": token,
            "resolution": "Choose a catalog format or enter width and height in mm",
        }
        super().__init__(message, details)
        self.token = token


class InfeasibleFormatError(EstimatorError):
    """The trimmed piece does not fit the press sheet working area."""

    kind = ErrorKind.INFEASIBLE_FORMAT

    def __init__(
        self,
        width: float,
        height: float,
        working_width: float,
        working_height: float,
        sheet_name: str = "",
    ):
        message = (
            f"Format {width:g}x{height:g} mm does not fit the "
            f"{sheet_name + ' ' if sheet_name else ''}working area "
            f"{working_width:g}x{working_height:g} mm"
        )
        details = {
            "trim": {"width": width, "height": height},
            "working_area": {"width": working_width, "height": working_height},
            "sheet": sheet_name,
        }
        super().__init__(message, details)
        self.width = width
        self.height = height


class PaperTypeNotFoundError(EstimatorError):
    """The requested paper type is not in the stock catalog snapshot."""

    kind = ErrorKind.PAPER_TYPE_NOT_FOUND

    def __init__(self, paper_type: str):
        message = f"Paper type '{paper_type}' is not in the stock catalog"
        details = {
            "paper_type": paper_type,
            "resolution": "Add the paper type to the warehouse catalog or pick another",
        }
        super().__init__(message, details)
        self.paper_type = paper_type


class DensityNotAvailableError(EstimatorError):
    """The paper type exists but not at the requested density."""

    kind = ErrorKind.DENSITY_NOT_AVAILABLE

    def __init__(self, paper_type: str, density: Any, available: tuple = ()):
        message = f"Density {density} g/m2 is not available for paper type '{paper_type}'"
        details = {
            "paper_type": paper_type,
            "density": density,
            "available_densities": list(available),
        }
        super().__init__(message, details)
        self.paper_type = paper_type
        self.density = density


class EmptyMaterialsOrServicesError(EstimatorError):
    """The pricing service returned a price with no material or service lines."""

    kind = ErrorKind.EMPTY_MATERIALS_OR_SERVICES

    def __init__(self, missing: str, product_id: Any = None):
        message = f"Pricing returned no {missing} lines; product setup is incomplete"
        details = {"missing": missing, "product_id": product_id}
        super().__init__(message, details)
        self.missing = missing


class NonPositivePriceError(EstimatorError):
    """A final price of zero or less was produced."""

    kind = ErrorKind.NON_POSITIVE_PRICE

    def __init__(self, price: Any, source: str = "local"):
        message = f"Pricing produced a non-positive total ({price}) from the {source} path"
        details = {
            "price": str(price),
            "source": source,
            "resolution": "Check material and operation prices for this product",
        }
        super().__init__(message, details)
        self.price = price


class ValidationFailedError(EstimatorError):
    """Field-level validation errors exist; estimation never started."""

    kind = ErrorKind.VALIDATION_FAILED

    def __init__(self, errors: Dict[str, str]):
        fields = ", ".join(sorted(errors)) or "spec"
        super().__init__(f"Invalid job specification: {fields}", {"errors": dict(errors)})
        self.errors = dict(errors)


# =============================================================================
# RUNTIME ERRORS - surfaced to the caller, who decides whether to retry
# =============================================================================

class RemoteUnavailableError(EstimatorError):
    """The remote pricing or warehouse service could not be reached."""

    kind = ErrorKind.REMOTE_UNAVAILABLE

    def __init__(self, operation: str, reason: str, status_code: Optional[int] = None):
        message = f"Pricing service unavailable during {operation}: {reason}"
        details = {"operation": operation, "reason": reason}
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, details)
        self.operation = operation
        self.status_code = status_code


class CatalogNotReadyError(EstimatorError):
    """The stock catalog has not been loaded yet, or is too old to trust."""

    kind = ErrorKind.CATALOG_NOT_READY

    def __init__(self, message: str = "Stock catalog not yet loaded"):
        details = {
            "resolution": "Wait for the catalog refresh or check the warehouse service"
        }
        super().__init__(message, details)
