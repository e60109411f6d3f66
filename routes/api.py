"""
API routes (JSON endpoints).

Handles:
- POST /api/estimate - Estimate a job spec (local preview or remote pricing)
- POST /api/validate - Field-level validation only
- GET  /api/formats  - Format catalog and press sheet
- GET  /api/products - Product catalog with capabilities
- GET  /health       - Health check endpoint

Estimate responses:
    200  EstimationResult
    422  field errors (nothing was computed)
    404  catalog setup errors (unknown format, paper type, density)
    409  format does not fit the press sheet
    502  pricing service returned unusable data
    503  stock catalog or pricing service unavailable
"""

from __future__ import annotations

from typing import Any, Dict

import bleach
from flask import Blueprint, current_app, request

from core.exceptions import ErrorKind, EstimatorError
from logging_config import get_logger
from models.estimate import EstimationOutcome, EstimationState
from models.job_spec import ProductJobSpec
from modules.format_resolver import FORMAT_CATALOG
from modules.imposition import ImpositionCalculator


# Module logger
logger = get_logger(__name__)

api_bp = Blueprint("api", __name__)

MAX_TEXT_LENGTH = 100

# Free-text fields in the request body
_TEXT_FIELDS = (
    "product_type", "productType",
    "product_id", "productId",
    "format",
    "paper_type", "paperType",
    "lamination",
    "urgency", "price_type", "priceType",
    "customer_tier", "customerTier", "customerType",
)

STATUS_BY_KIND = {
    ErrorKind.VALIDATION_FAILED: 422,
    ErrorKind.UNKNOWN_FORMAT: 404,
    ErrorKind.PAPER_TYPE_NOT_FOUND: 404,
    ErrorKind.DENSITY_NOT_AVAILABLE: 404,
    ErrorKind.INFEASIBLE_FORMAT: 409,
    ErrorKind.EMPTY_MATERIALS_OR_SERVICES: 502,
    ErrorKind.NON_POSITIVE_PRICE: 502,
    ErrorKind.REMOTE_UNAVAILABLE: 503,
    ErrorKind.CATALOG_NOT_READY: 503,
}


def _sanitize_text(text: Any, max_length: int = None) -> Any:
    """Sanitize user input text; non-strings pass through unchanged."""
    if not isinstance(text, str):
        return text
    text = text.strip()
    text = bleach.clean(text, tags=[], strip=True)
    if max_length and len(text) > max_length:
        text = text[:max_length]
    return text


def _json_body() -> Dict[str, Any]:
    """Request JSON object; anything else reads as an empty form."""
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def _read_spec() -> ProductJobSpec:
    body = _json_body()
    for key in _TEXT_FIELDS:
        if key in body:
            body[key] = _sanitize_text(body[key], max_length=MAX_TEXT_LENGTH)
    return ProductJobSpec.from_dict(body)


def _outcome_response(outcome: EstimationOutcome):
    if outcome.state is EstimationState.ESTIMATED:
        return outcome.to_dict(), 200
    return outcome.to_dict(), STATUS_BY_KIND.get(outcome.error_kind, 500)


def _error_response(error: EstimatorError):
    return {
        "state": EstimationState.FAILED.value,
        "error": error.to_dict(),
    }, STATUS_BY_KIND.get(error.kind, 500)


@api_bp.route("/api/estimate", methods=["POST"])
def estimate():
    """
    Estimate a job.

    Uses the remote pricing service when one is configured, unless the body
    asks for a local ``preview``. The local path needs a usable stock
    catalog snapshot.
    """
    orchestrator = current_app.config["ORCHESTRATOR"]
    policy = current_app.config["PRICING_POLICY"]
    client_factory = current_app.config.get("PRICING_CLIENT_FACTORY")

    spec = _read_spec()
    body = _json_body()
    use_remote = client_factory is not None and not body.get("preview")

    if use_remote:
        client = client_factory()
        try:
            outcome = orchestrator.run(spec, None, policy, pricing_client=client)
        finally:
            client.close()
        return _outcome_response(outcome)

    catalog_service = current_app.config["CATALOG_SERVICE"]
    try:
        snapshot = catalog_service.get_snapshot_or_raise()
    except EstimatorError as e:
        logger.warning(f"Estimate refused: {e.message}")
        return _error_response(e)

    outcome = orchestrator.run(spec, snapshot, policy)
    return _outcome_response(outcome)


@api_bp.route("/api/validate", methods=["POST"])
def validate():
    """
    Validate a job spec without estimating.

    Paper type and density are checked against the current stock snapshot
    when one has been loaded.
    """
    orchestrator = current_app.config["ORCHESTRATOR"]
    policy = current_app.config["PRICING_POLICY"]
    catalog_service = current_app.config["CATALOG_SERVICE"]

    snapshot = catalog_service.get_snapshot()
    errors = orchestrator.validate(
        _read_spec(),
        None if snapshot.is_empty else snapshot,
        policy,
    )
    return {"valid": not errors, "errors": errors}, 200


@api_bp.route("/api/formats", methods=["GET"])
def formats():
    """Format catalog with the press sheet in use."""
    orchestrator = current_app.config["ORCHESTRATOR"]
    return {
        "formats": [
            {
                "name": name,
                "width": width,
                "height": height,
                "sheet_ratio": ImpositionCalculator.table_ratio(name),
            }
            for name, (width, height) in FORMAT_CATALOG.items()
        ],
        "press_sheet": orchestrator.press_sheet.to_dict(),
    }, 200


@api_bp.route("/api/products", methods=["GET"])
def products():
    """Product catalog with capabilities and quantity limits."""
    orchestrator = current_app.config["ORCHESTRATOR"]
    return {"products": orchestrator.product_catalog.to_list()}, 200


@api_bp.route("/health", methods=["GET"])
def health():
    """Health check endpoint with service status."""
    health_status = {
        "status": "ok",
        "environment": current_app.config.get("ENVIRONMENT", "unknown"),
        "checks": {}
    }

    # Check stock catalog
    catalog_service = current_app.config.get("CATALOG_SERVICE")
    if catalog_service is None:
        health_status["checks"]["catalog"] = "not_available"
        health_status["status"] = "degraded"
    else:
        snapshot = catalog_service.get_snapshot()
        if snapshot.is_empty:
            health_status["checks"]["catalog"] = "empty"
            health_status["status"] = "degraded"
        elif snapshot.is_stale(catalog_service.max_age_seconds):
            health_status["checks"]["catalog"] = "stale"
            health_status["status"] = "degraded"
        else:
            health_status["checks"]["catalog"] = "ok"
        health_status["checks"]["catalog_refresh"] = (
            "running" if catalog_service.is_running else "manual"
        )

    # Pricing mode
    if current_app.config.get("PRICING_CLIENT_FACTORY") is not None:
        health_status["checks"]["pricing"] = "remote"
    else:
        health_status["checks"]["pricing"] = "local"

    status_code = 200 if health_status["status"] == "ok" else 503
    return health_status, status_code
