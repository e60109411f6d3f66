"""Shared fixtures for the PrintEstimator test suite."""

import json
from pathlib import Path

import pytest

from models.job_spec import ProductJobSpec
from models.policy import PricingPolicy
from models.stock import StockCatalogSnapshot
from services.estimation_service import EstimationOrchestrator


CATALOG_PATH = Path(__file__).parent.parent / "data" / "stock_catalog.json"


# Fixtures

@pytest.fixture
def catalog_data():
    """Raw warehouse payload from the sample catalog file."""
    with open(CATALOG_PATH, "r", encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def stock_catalog(catalog_data):
    """Fresh snapshot of the sample catalog."""
    return StockCatalogSnapshot.from_api_data(catalog_data, source=str(CATALOG_PATH))


@pytest.fixture
def policy():
    """The shop's default pricing policy."""
    return PricingPolicy.default()


@pytest.fixture
def orchestrator():
    """Orchestrator on SRA3 with 5% waste, no rotation."""
    return EstimationOrchestrator()


@pytest.fixture
def make_spec():
    """Factory for flyer specs with overridable fields."""
    def _make(**overrides):
        values = {
            "product_type": "flyers",
            "quantity": 1000,
            "format": "A6",
            "sides": 1,
            "paper_type": "semi-matte",
            "density": 130,
            "lamination": "none",
            "urgency": "standard",
            "customer_tier": "regular",
        }
        values.update(overrides)
        return ProductJobSpec(**values)
    return _make


@pytest.fixture
def remote_payload():
    """A well-formed pricing service response."""
    return {
        "finalPrice": 12.34,
        "pricePerUnit": 0.1234,
        "materials": [
            {"materialId": 7, "materialName": "Semi-matte 130", "quantity": 27, "unitPrice": 0.4, "totalCost": 10.8},
        ],
        "operations": [
            {"operationId": 3, "operationName": "Digital printing", "quantity": 27, "unitPrice": 0.3, "totalCost": 8.1},
        ],
        "productSize": {"width": 105, "height": 148},
        "layout": {"itemsPerSheet": 4, "sheetsNeeded": 27},
    }
