"""
PrintEstimator - Flask Application Entry Point.

This is a slim app factory that:
1. Loads configuration and logging
2. Loads the pricing policy
3. Starts the stock catalog service (separate thread, unless disabled)
4. Builds the estimation orchestrator and, when configured, the remote
   pricing client and debounced estimator factories
5. Registers route blueprints and JSON error handlers

ARCHITECTURE:
    Main Thread
    ├── Flask request handling (estimation is synchronous, per request)
    └── Cleanup on shutdown

    Catalog Thread (background)
    └── periodic refresh loop, immutable snapshots

The engine keeps no state between requests; each estimate receives the
current catalog snapshot and the policy by reference.
"""

from __future__ import annotations

import atexit
import json
import logging
import os
import sys
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from flask import Flask

from logging_config import setup_logging, get_logger
from core.pricing_client import RemotePricingClient
from models.policy import PricingPolicy
from routes import register_blueprints
from services.catalog_service import (
    CatalogService,
    file_catalog_fetcher,
    remote_catalog_fetcher,
)
from services.estimation_service import EstimationOrchestrator
from services.remote_estimation_service import RemoteEstimationService


# Module logger (configured after setup_logging)
logger = get_logger(__name__)


def _get_base_path() -> Path:
    """
    Get the base path for the application.

    In PyInstaller bundle: Returns the directory containing the executable
    In development: Returns the directory containing app.py
    """
    if getattr(sys, 'frozen', False):
        return Path(sys.executable).parent
    else:
        return Path(__file__).parent


def load_pricing_policy(path: str, max_discount_cap: Optional[float] = None) -> PricingPolicy:
    """
    Load the pricing policy from a JSON file, or the default policy.

    The configured discount cap applies unless the file sets its own.
    """
    cap = Decimal(str(max_discount_cap)) if max_discount_cap is not None else None
    if not path:
        return PricingPolicy.default(max_discount_cap=cap)

    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if cap is not None:
        data.setdefault("max_discount_cap", str(cap))
    logger.info(f"Pricing policy loaded from {path}")
    return PricingPolicy.from_dict(data)


def create_app(config_object: Any = "config.Config") -> Flask:
    """
    Application factory - creates and configures Flask app.

    Args:
        config_object: Config class, or its import path
            (e.g. "config.TestingConfig")

    Returns:
        Configured Flask application
    """
    # Load .env from base path (next to executable in production)
    # Use override=True so .env file always takes precedence over shell environment
    base_path = _get_base_path()
    env_file = base_path / '.env'
    if env_file.exists():
        load_dotenv(env_file, override=True)
    else:
        load_dotenv(override=True)  # Default behavior

    # Create Flask app
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Configure logging
    log_level = logging.DEBUG if app.config.get("DEBUG") else logging.INFO
    enable_file_logging = app.config.get("ENVIRONMENT") == "production"

    root_logger = setup_logging(
        log_level=log_level,
        enable_file_logging=enable_file_logging
    )

    # Set Flask's logger to use our configured logger
    app.logger.handlers = root_logger.handlers
    app.logger.setLevel(log_level)

    logger.info(f"Starting PrintEstimator in {app.config.get('ENVIRONMENT')} mode")

    # =========================================================================
    # PRICING POLICY
    # =========================================================================

    policy = load_pricing_policy(
        app.config.get("PRICING_POLICY_PATH", ""),
        app.config.get("ESTIMATOR_MAX_DISCOUNT_CAP"),
    )
    app.config["PRICING_POLICY"] = policy

    # =========================================================================
    # SERVICES INITIALIZATION
    # =========================================================================

    pricing_url = app.config.get("PRICING_SERVICE_URL", "")
    pricing_timeout = app.config.get("PRICING_SERVICE_TIMEOUT", 10.0)

    if pricing_url:
        fetch = remote_catalog_fetcher(pricing_url, timeout=pricing_timeout)
        source = pricing_url
    else:
        source = app.config["STOCK_CATALOG_PATH"]
        fetch = file_catalog_fetcher(source)

    refresh_seconds = app.config.get("CATALOG_REFRESH_SECONDS", 0)
    catalog_service = CatalogService(
        fetch,
        refresh_interval_seconds=refresh_seconds or 300.0,
        max_age_seconds=app.config.get("CATALOG_TTL_SECONDS", 600.0),
        source=source,
    )
    if refresh_seconds > 0:
        catalog_service.start()
        logger.info("Catalog service started")
    else:
        # One-off load, no background thread
        catalog_service.force_refresh()
    app.config["CATALOG_SERVICE"] = catalog_service

    orchestrator = EstimationOrchestrator(
        waste_ratio=app.config.get("ESTIMATOR_WASTE_RATIO", 0.05),
    )
    app.config["ORCHESTRATOR"] = orchestrator

    if pricing_url:
        def client_factory() -> RemotePricingClient:
            return RemotePricingClient(pricing_url, timeout=pricing_timeout)

        def remote_estimation_factory(on_result=None) -> RemoteEstimationService:
            """Debounced estimator for one interactive form session."""
            return RemoteEstimationService(
                orchestrator,
                client_factory,
                policy,
                debounce_seconds=app.config.get("ESTIMATOR_DEBOUNCE_SECONDS", 1.0),
                on_result=on_result,
            )

        app.config["PRICING_CLIENT_FACTORY"] = client_factory
        app.config["REMOTE_ESTIMATION_FACTORY"] = remote_estimation_factory
        logger.info(f"Remote pricing enabled: {pricing_url}")
    else:
        app.config["PRICING_CLIENT_FACTORY"] = None
        app.config["REMOTE_ESTIMATION_FACTORY"] = None
        logger.info("Remote pricing disabled; using local estimation engine")

    # =========================================================================
    # CLEANUP REGISTRATION
    # =========================================================================

    def cleanup():
        """Cleanup on application shutdown."""
        logger.info("Shutting down...")
        catalog_service.stop()
        logger.info("Shutdown complete")

    atexit.register(cleanup)

    # =========================================================================
    # REGISTER BLUEPRINTS
    # =========================================================================

    register_blueprints(app)

    # =========================================================================
    # ERROR HANDLERS
    # =========================================================================

    @app.errorhandler(404)
    def handle_not_found(e):
        return {"error": {"kind": "not_found", "message": "Resource not found"}}, 404

    @app.errorhandler(405)
    def handle_method_not_allowed(e):
        return {"error": {"kind": "method_not_allowed", "message": str(e)}}, 405

    @app.errorhandler(500)
    def handle_server_error(e):
        logger.error(f"500 error: {e}", exc_info=True)
        return {"error": {"kind": "internal", "message": "An unexpected error occurred"}}, 500

    logger.info("Application initialized successfully")
    return app


if __name__ == "__main__":
    app = create_app()
    debug_mode = os.environ.get("FLASK_DEBUG", "1") == "1"
    app.run(debug=debug_mode)
