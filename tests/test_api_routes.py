"""
Tests for the JSON API routes.

Uses the Flask test client against an app built with TestingConfig, which
loads the sample stock catalog once and runs in local pricing mode.
"""

from unittest.mock import MagicMock, patch

import pytest

from app import create_app
from core.exceptions import RemoteUnavailableError
from models.job_spec import ProductJobSpec
from services.catalog_service import CatalogService


# Fixtures

@pytest.fixture
def app():
    flask_app = create_app("config.TestingConfig")
    yield flask_app
    flask_app.config["CATALOG_SERVICE"].stop()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def flyer_body():
    return {
        "product_type": "flyers",
        "quantity": 1000,
        "format": "A6",
        "sides": 1,
        "paper_type": "semi-matte",
        "density": 130,
    }


class TestHealth:

    def test_healthy_with_local_catalog(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.get_json()
        assert data["status"] == "ok"
        assert data["environment"] == "testing"
        assert data["checks"]["catalog"] == "ok"
        assert data["checks"]["catalog_refresh"] == "manual"
        assert data["checks"]["pricing"] == "local"

    def test_degraded_without_catalog(self, app, client):
        app.config["CATALOG_SERVICE"] = CatalogService(MagicMock(return_value={}))
        response = client.get("/health")
        assert response.status_code == 503
        assert response.get_json()["checks"]["catalog"] == "empty"


class TestEstimateEndpoint:

    def test_local_estimate(self, client, flyer_body):
        response = client.post("/api/estimate", json=flyer_body)
        assert response.status_code == 200

        data = response.get_json()
        assert data["state"] == "estimated"
        result = data["result"]
        assert result["total"] == "156.49"
        assert result["price_per_item"] == "0.16"
        assert result["imposition"]["items_per_sheet"] == 4
        assert result["imposition"]["sheets_needed"] == 263
        assert result["materials"][0]["sku"] == "SM-130-SRA3"

    def test_camel_case_body(self, client):
        response = client.post("/api/estimate", json={
            "productType": "flyers",
            "quantity": "5",
            "format": "SRA3",
            "paperType": "semi-matte",
            "paperDensity": "130",
        })
        assert response.status_code == 200
        assert response.get_json()["result"]["total"] == "8.00"

    def test_markup_is_stripped(self, client, flyer_body):
        flyer_body["product_type"] = "<b>flyers</b>"
        response = client.post("/api/estimate", json=flyer_body)
        assert response.status_code == 200

    def test_validation_errors(self, client, flyer_body):
        flyer_body["quantity"] = 0
        flyer_body["urgency"] = "yesterday"
        response = client.post("/api/estimate", json=flyer_body)
        assert response.status_code == 422
        data = response.get_json()
        assert data["state"] == "invalid"
        assert set(data["errors"]) == {"quantity", "urgency"}

    def test_oversized_custom_format(self, client, flyer_body):
        del flyer_body["format"]
        flyer_body["custom_width"] = 400
        flyer_body["custom_height"] = 500
        response = client.post("/api/estimate", json=flyer_body)
        assert response.status_code == 422
        assert "format" in response.get_json()["errors"]

    def test_unknown_paper_type(self, client, flyer_body):
        flyer_body["paper_type"] = "unobtainium"
        response = client.post("/api/estimate", json=flyer_body)
        assert response.status_code == 404
        assert response.get_json()["error"]["kind"] == "paper_type_not_found"

    def test_unknown_density(self, client, flyer_body):
        flyer_body["density"] = 999
        response = client.post("/api/estimate", json=flyer_body)
        assert response.status_code == 404
        assert response.get_json()["error"]["kind"] == "density_not_available"

    def test_catalog_not_ready(self, app, client, flyer_body):
        app.config["CATALOG_SERVICE"] = CatalogService(MagicMock(return_value={}))
        response = client.post("/api/estimate", json=flyer_body)
        assert response.status_code == 503
        assert response.get_json()["error"]["kind"] == "catalog_not_ready"

    def test_empty_body(self, client):
        response = client.post("/api/estimate", data="not json", content_type="text/plain")
        assert response.status_code == 422

    @pytest.mark.parametrize("body", [[1, 2], "flyers", 42])
    def test_non_object_body(self, client, body):
        response = client.post("/api/estimate", json=body)
        assert response.status_code == 422
        errors = response.get_json()["errors"]
        assert "product_type" in errors
        assert "quantity" in errors

    def test_non_object_extras(self, client, flyer_body):
        flyer_body["extras"] = ["cutting"]
        response = client.post("/api/estimate", json=flyer_body)
        assert response.status_code == 200

    def test_validate_non_object_body(self, client):
        response = client.post("/api/validate", json=[1, 2])
        assert response.get_json()["valid"] is False


class TestRemoteEstimateEndpoint:

    @pytest.fixture
    def pricing_client(self, app, remote_payload):
        mock_client = MagicMock()
        mock_client.calculate.return_value = remote_payload
        app.config["PRICING_CLIENT_FACTORY"] = lambda: mock_client
        return mock_client

    def test_remote_result(self, client, flyer_body, pricing_client):
        response = client.post("/api/estimate", json=flyer_body)
        assert response.status_code == 200
        result = response.get_json()["result"]
        assert result["source"] == "remote"
        assert result["total"] == "12.34"
        pricing_client.close.assert_called_once()

    def test_preview_stays_local(self, client, flyer_body, pricing_client):
        flyer_body["preview"] = True
        response = client.post("/api/estimate", json=flyer_body)
        assert response.get_json()["result"]["source"] == "local"
        pricing_client.calculate.assert_not_called()

    def test_remote_unavailable(self, client, flyer_body, pricing_client):
        pricing_client.calculate.side_effect = RemoteUnavailableError("calculate", "HTTP 503", 503)
        response = client.post("/api/estimate", json=flyer_body)
        assert response.status_code == 503
        error = response.get_json()["error"]
        assert error["kind"] == "remote_unavailable"
        assert error["retryable"] is True

    def test_bad_remote_response(self, client, flyer_body, pricing_client, remote_payload):
        remote_payload["materials"] = []
        response = client.post("/api/estimate", json=flyer_body)
        assert response.status_code == 502
        assert response.get_json()["error"]["kind"] == "empty_materials_or_services"


class TestValidateEndpoint:

    def test_valid(self, client, flyer_body):
        response = client.post("/api/validate", json=flyer_body)
        assert response.status_code == 200
        assert response.get_json() == {"valid": True, "errors": {}}

    def test_checks_stock(self, client, flyer_body):
        flyer_body["paper_type"] = "unobtainium"
        data = client.post("/api/validate", json=flyer_body).get_json()
        assert data["valid"] is False
        assert "paper_type" in data["errors"]


class TestCatalogEndpoints:

    def test_formats(self, client):
        data = client.get("/api/formats").get_json()
        formats = {f["name"]: f for f in data["formats"]}
        assert formats["A6"]["width"] == 105
        assert formats["A6"]["sheet_ratio"] is None
        assert formats["A2"]["sheet_ratio"] == 0.5
        assert data["press_sheet"]["name"] == "SRA3"

    def test_products(self, client):
        data = client.get("/api/products").get_json()
        products = {p["key"]: p for p in data["products"]}
        assert products["flyers"]["max_quantity"] == 100000
        assert "magnetic" in products["magnetic_cards"]["capabilities"]
        assert products["banners"]["is_roll"] is True

    def test_unknown_route(self, client):
        response = client.get("/api/nothing")
        assert response.status_code == 404
        assert response.get_json()["error"]["kind"] == "not_found"


class RemoteTestingConfig:
    """TestingConfig pointed at a (mocked) pricing service."""

    DEBUG = False
    TESTING = True
    ENVIRONMENT = "testing"
    PRICING_SERVICE_URL = "http://pricing.local"
    PRICING_SERVICE_TIMEOUT = 2.0
    PRICING_POLICY_PATH = ""
    CATALOG_REFRESH_SECONDS = 0.0
    CATALOG_TTL_SECONDS = 600.0
    ESTIMATOR_WASTE_RATIO = 0.05
    ESTIMATOR_DEBOUNCE_SECONDS = 0.01
    ESTIMATOR_MAX_DISCOUNT_CAP = 0.25


class TestRemoteConfiguration:
    """App wiring when PRICING_SERVICE_URL is set."""

    @patch("app.RemotePricingClient")
    @patch("app.remote_catalog_fetcher")
    def test_remote_wiring(self, mock_fetcher, mock_client_class, catalog_data, remote_payload):
        mock_fetcher.return_value = MagicMock(return_value=catalog_data)
        mock_client = MagicMock()
        mock_client.calculate.return_value = remote_payload
        mock_client_class.return_value = mock_client

        app = create_app(RemoteTestingConfig)
        try:
            mock_fetcher.assert_called_once_with("http://pricing.local", timeout=2.0)
            assert app.config["CATALOG_SERVICE"].get_snapshot_or_raise()

            health = app.test_client().get("/health").get_json()
            assert health["checks"]["pricing"] == "remote"

            service = app.config["REMOTE_ESTIMATION_FACTORY"]()
            outcome = service.estimate_now(ProductJobSpec.from_dict({
                "product_type": "flyers",
                "quantity": 1000,
                "format": "A6",
                "paper_type": "semi-matte",
                "density": 130,
            }))
            assert outcome.result.source == "remote"
            mock_client_class.assert_called_with("http://pricing.local", timeout=2.0)
            service.shutdown()
        finally:
            app.config["CATALOG_SERVICE"].stop()

    def test_local_mode_has_no_remote_factory(self, app):
        assert app.config["PRICING_CLIENT_FACTORY"] is None
        assert app.config["REMOTE_ESTIMATION_FACTORY"] is None
