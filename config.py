"""
Configuration for PrintEstimator.

The estimation engine itself is configuration-free (every input is passed in
explicitly); these settings wire the Flask app, the stock catalog poller and
the optional remote pricing service around it.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file early so environment variables are available for Config class
# This must happen before the Config class is defined
load_dotenv(override=True)

# Base directory (where this file lives)
BASE_DIR = Path(__file__).resolve().parent


class Config:
    """Default configuration for the Flask application."""

    # Flask settings
    SECRET_KEY = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
    ENVIRONMENT = os.environ.get("FLASK_ENV", "development")
    JSON_SORT_KEYS = False

    # Debug mode
    DEBUG = os.environ.get("FLASK_DEBUG", "1") == "1"

    # ==========================================================================
    # Estimator Configuration
    # ==========================================================================
    # ESTIMATOR_WASTE_RATIO: extra press sheets added for make-ready and spoilage
    #   Default: 0.05 (5%)
    #
    # ESTIMATOR_DEBOUNCE_SECONDS: quiet period after the last spec edit before
    #   a remote estimate is requested
    #   Default: 1.0
    #
    # ESTIMATOR_MAX_DISCOUNT_CAP: ceiling for volume + loyalty discount
    #   Default: 0.25
    # ==========================================================================
    ESTIMATOR_WASTE_RATIO = float(
        os.environ.get("ESTIMATOR_WASTE_RATIO", "0.05")
    )
    ESTIMATOR_DEBOUNCE_SECONDS = float(
        os.environ.get("ESTIMATOR_DEBOUNCE_SECONDS", "1.0")
    )
    ESTIMATOR_MAX_DISCOUNT_CAP = float(
        os.environ.get("ESTIMATOR_MAX_DISCOUNT_CAP", "0.25")
    )

    # Remote pricing service (production path). Empty means local-only.
    PRICING_SERVICE_URL = os.environ.get("PRICING_SERVICE_URL", "")
    PRICING_SERVICE_TIMEOUT = float(
        os.environ.get("PRICING_SERVICE_TIMEOUT", "10")
    )

    # Stock catalog and pricing policy sources
    # When PRICING_SERVICE_URL is set the catalog is polled from the warehouse
    # endpoint, otherwise it is read from STOCK_CATALOG_PATH.
    STOCK_CATALOG_PATH = os.environ.get(
        "STOCK_CATALOG_PATH", str(BASE_DIR / "data" / "stock_catalog.json")
    )
    PRICING_POLICY_PATH = os.environ.get("PRICING_POLICY_PATH", "")

    # Catalog refresh (0 = load once at startup, no background thread)
    CATALOG_REFRESH_SECONDS = float(
        os.environ.get("CATALOG_REFRESH_SECONDS", "300")
    )
    CATALOG_TTL_SECONDS = float(
        os.environ.get("CATALOG_TTL_SECONDS", "600")
    )


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    TESTING = False
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    TESTING = False


class TestingConfig(Config):
    """Testing configuration."""
    DEBUG = False
    TESTING = True
    ENVIRONMENT = "testing"
    PRICING_SERVICE_URL = ""
    STOCK_CATALOG_PATH = str(BASE_DIR / "data" / "stock_catalog.json")
    PRICING_POLICY_PATH = ""
    CATALOG_REFRESH_SECONDS = 0.0
