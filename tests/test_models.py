"""
Tests for the data models: job spec parsing, stock snapshots, pricing
policy, result serialization and error types.
"""

from decimal import Decimal

import pytest

from core.exceptions import (
    CatalogNotReadyError,
    EmptyMaterialsOrServicesError,
    ErrorKind,
    NonPositivePriceError,
    PaperTypeNotFoundError,
    RemoteUnavailableError,
    ValidationFailedError,
)
from models.estimate import (
    EstimationOutcome,
    EstimationState,
    ImpositionResult,
    MaterialLine,
    RemotePricingQuote,
)
from models.job_spec import JobExtras, ProductJobSpec
from models.policy import PricingPolicy
from models.stock import StockCatalogSnapshot, to_decimal


class TestProductJobSpec:
    """Building specs from raw form / JSON input."""

    def test_from_dict_snake_case(self):
        spec = ProductJobSpec.from_dict({
            "product_type": "flyers",
            "quantity": "500",
            "format": "A5",
            "sides": "2",
            "paper_type": "glossy",
            "density": "130",
            "urgency": "urgent",
        })
        assert spec.quantity == 500
        assert spec.sides == 2
        assert spec.density == 130
        assert spec.urgency == "urgent"
        assert spec.customer_tier == "regular"

    def test_from_dict_camel_case(self):
        spec = ProductJobSpec.from_dict({
            "productType": "business_cards",
            "quantity": 100,
            "customWidth": "90",
            "customHeight": "50",
            "paperType": "semi-matte",
            "paperDensity": 300,
            "priceType": "express",
            "customerType": "gold",
            "roundCorners": "true",
        })
        assert spec.product_type == "business_cards"
        assert spec.custom_width == 90
        assert spec.custom_height == 50
        assert spec.has_custom_size
        assert spec.density == 300
        assert spec.urgency == "express"
        assert spec.customer_tier == "gold"
        assert spec.extras.round_corners is True

    def test_bad_quantity_kept_for_validation(self):
        spec = ProductJobSpec.from_dict({"product_type": "flyers", "quantity": "abc"})
        assert spec.quantity == "abc"

    def test_nested_extras(self):
        spec = ProductJobSpec.from_dict({
            "product_type": "booklets",
            "quantity": 10,
            "extras": {"pages": "16", "folding": True},
        })
        assert spec.extras.pages == 16
        assert spec.extras.folding is True

    def test_with_changes_returns_new_spec(self):
        spec = ProductJobSpec(product_type="flyers", quantity=100)
        changed = spec.with_changes(quantity=200)
        assert spec.quantity == 100
        assert changed.quantity == 200

    def test_requested_capabilities(self):
        extras = JobExtras(pages=8, magnetic=True)
        assert extras.requested_capabilities() == {"pages", "magnetic"}
        assert JobExtras().requested_capabilities() == frozenset()


class TestStockCatalogSnapshot:

    def test_loads_sample_catalog(self, stock_catalog):
        assert "semi-matte" in stock_catalog.paper_type_names()
        glossy = stock_catalog.get_paper_type("glossy")
        assert glossy.price_multiplier == Decimal("1.1")
        assert glossy.density_values == (130.0, 200.0)

    def test_bare_list_payload(self):
        snapshot = StockCatalogSnapshot.from_api_data([
            {"name": "offset", "densities": [{"density": 80, "price": "0.2"}]},
        ])
        assert snapshot.get_paper_type("offset").get_density(80).price == Decimal("0.2")

    def test_entries_without_price_are_dropped(self):
        snapshot = StockCatalogSnapshot.from_api_data({"paper_types": [
            {"name": "offset", "densities": [{"value": 80}, {"value": 120, "price": 0.28}]},
        ]})
        assert snapshot.get_paper_type("offset").density_values == (120.0,)

    @pytest.mark.parametrize("price", ["NaN", "Infinity", "-Infinity", -0.1, "-2"])
    def test_entries_with_bad_price_are_dropped(self, price):
        snapshot = StockCatalogSnapshot.from_api_data({"paper_types": [
            {"name": "offset", "densities": [{"value": 80, "price": price}, {"value": 120, "price": 0.28}]},
        ]})
        assert snapshot.get_paper_type("offset").density_values == (120.0,)

    def test_free_stock_is_kept(self):
        snapshot = StockCatalogSnapshot.from_api_data([
            {"name": "offset", "densities": [{"value": 80, "price": 0}]},
        ])
        assert snapshot.get_paper_type("offset").get_density(80).price == 0

    @pytest.mark.parametrize("multiplier", ["NaN", "Infinity", -1])
    def test_bad_multiplier_falls_back_to_one(self, multiplier):
        snapshot = StockCatalogSnapshot.from_api_data([
            {"name": "offset", "price_multiplier": multiplier, "densities": [{"value": 80, "price": 0.2}]},
        ])
        assert snapshot.get_paper_type("offset").price_multiplier == Decimal("1")

    def test_empty_snapshot_is_stale(self):
        snapshot = StockCatalogSnapshot.create_empty()
        assert snapshot.is_empty
        assert snapshot.is_stale(600)

    def test_fresh_snapshot_is_not_stale(self, stock_catalog):
        assert not stock_catalog.is_stale(600)

    def test_to_decimal(self):
        assert to_decimal(0.4) == Decimal("0.4")
        assert to_decimal("1,5") == Decimal("1.5")
        assert to_decimal("abc") is None
        assert to_decimal(None, Decimal("0")) == Decimal("0")


class TestPricingPolicy:

    @pytest.mark.parametrize("quantity,fraction", [
        (99, "0"),
        (100, "0.05"),
        (499, "0.05"),
        (1000, "0.15"),
        (4999, "0.20"),
        (5000, "0.25"),
        (100000, "0.25"),
    ])
    def test_volume_tiers(self, policy, quantity, fraction):
        assert policy.volume_discount(quantity) == Decimal(fraction)

    def test_loyalty(self, policy):
        assert policy.loyalty_discount("regular") == 0
        assert policy.loyalty_discount("platinum") == Decimal("0.20")

    def test_minimum_order_lookup(self, policy):
        assert policy.minimum_order_cost("sra3", "flyers", 5) == Decimal("8.00")
        assert policy.minimum_order_cost("SRA3", "flyers", 6) == 0
        assert policy.minimum_order_cost("A4", "posters", 1) == 0
        assert policy.minimum_order_cost(None, "flyers", 1) == 0

    def test_unknown_urgency_raises(self, policy):
        with pytest.raises(KeyError):
            policy.urgency_multiplier("yesterday")

    def test_json_form_round_trip(self, policy):
        assert PricingPolicy.from_dict(policy.to_dict()) == policy

    def test_partial_json_uses_defaults(self, policy):
        loaded = PricingPolicy.from_dict({
            "urgency_multipliers": {"standard": "1", "urgent": "2"},
            "enabled": {"minimum_order": False},
        })
        assert loaded.urgency_tiers == ("standard", "urgent")
        assert loaded.volume_tiers == policy.volume_tiers
        assert loaded.minimum_order_cost("SRA3", "flyers", 1) == 0

    def test_string_toggles(self):
        loaded = PricingPolicy.from_dict({"enabled": {
            "volume": "false",
            "minimum_order": "0",
            "loyalty": "true",
            "urgency": "no",
        }})
        assert loaded.volume_enabled is False
        assert loaded.minimum_order_enabled is False
        assert loaded.urgency_enabled is False
        assert loaded.loyalty_enabled is True
        assert loaded.volume_discount(1000) == 0
        assert loaded.urgency_multiplier("urgent") == 1
        assert loaded.loyalty_discount("platinum") == Decimal("0.20")


class TestResultModels:

    def test_line_total(self):
        line = MaterialLine("paper", 263, Decimal("0.40"))
        assert line.total == Decimal("105.20")
        assert line.to_dict()["total"] == "105.20"

    def test_unknown_availability_counts_as_available(self):
        assert MaterialLine("paper", 10, Decimal("1")).is_available is True

    def test_imposition_reports_whole_items(self):
        result = ImpositionResult(items_per_sheet=0.25, sheets_needed=42, waste_ratio=0.05)
        data = result.to_dict()
        assert data["items_per_sheet"] == 0
        assert data["sheets_per_item"] == 4

    def test_failed_outcome_serialization(self):
        outcome = EstimationOutcome.failed(PaperTypeNotFoundError("kraft"), generation=3)
        data = outcome.to_dict()
        assert data["state"] == "failed"
        assert data["generation"] == 3
        assert data["error"]["kind"] == "paper_type_not_found"
        assert data["error"]["retryable"] is False
        assert "result" not in data

    def test_invalid_outcome(self):
        outcome = EstimationOutcome.invalid({"quantity": "bad"})
        assert outcome.state is EstimationState.INVALID
        assert outcome.error_kind is ErrorKind.VALIDATION_FAILED
        assert not outcome.is_success


class TestRemotePricingQuote:

    def test_parses_response(self, remote_payload):
        quote = RemotePricingQuote.from_api_data(remote_payload, product_id=42)
        assert quote.final_price == Decimal("12.34")
        assert quote.price_per_unit == Decimal("0.1234")
        assert quote.materials[0].sku == "7"
        assert quote.materials[0].total == Decimal("10.8")
        assert quote.services[0].name == "Digital printing"
        assert quote.items_per_sheet == 4
        assert quote.sheets_needed == 27
        assert quote.product_size.width == 105

    @pytest.mark.parametrize("final_price", [0, -5, None, "abc", "NaN"])
    def test_rejects_non_positive_price(self, remote_payload, final_price):
        remote_payload["finalPrice"] = final_price
        with pytest.raises(NonPositivePriceError):
            RemotePricingQuote.from_api_data(remote_payload)

    def test_rejects_empty_materials(self, remote_payload):
        remote_payload["materials"] = []
        with pytest.raises(EmptyMaterialsOrServicesError) as exc_info:
            RemotePricingQuote.from_api_data(remote_payload, product_id=42)
        assert exc_info.value.missing == "materials"

    def test_rejects_empty_operations(self, remote_payload):
        del remote_payload["operations"]
        with pytest.raises(EmptyMaterialsOrServicesError) as exc_info:
            RemotePricingQuote.from_api_data(remote_payload)
        assert exc_info.value.missing == "services"

    @pytest.mark.parametrize("key,value,missing", [
        ("materials", {"paper": 1}, "materials"),
        ("materials", ["paper"], "materials"),
        ("operations", "printing", "services"),
        ("operations", [{"operationName": "Cutting"}, 3], "services"),
    ])
    def test_rejects_malformed_lines(self, remote_payload, key, value, missing):
        remote_payload[key] = value
        with pytest.raises(EmptyMaterialsOrServicesError) as exc_info:
            RemotePricingQuote.from_api_data(remote_payload, product_id=42)
        assert exc_info.value.missing == missing

    def test_rejects_non_object_response(self):
        with pytest.raises(RemoteUnavailableError):
            RemotePricingQuote.from_api_data([1, 2, 3])

    @pytest.mark.parametrize("layout", [
        {"itemsPerSheet": "n/a", "sheetsNeeded": 27},
        {"itemsPerSheet": 4, "sheetsNeeded": None},
        {"itemsPerSheet": "NaN", "sheetsNeeded": "Infinity"},
        "4 up",
    ])
    def test_unusable_layout_is_absent(self, remote_payload, layout):
        remote_payload["layout"] = layout
        quote = RemotePricingQuote.from_api_data(remote_payload)
        assert quote.items_per_sheet is None or quote.sheets_needed is None

    @pytest.mark.parametrize("size", ["105x148", [105, 148], {"width": "NaN", "height": 148}])
    def test_unusable_product_size_is_absent(self, remote_payload, size):
        remote_payload["productSize"] = size
        assert RemotePricingQuote.from_api_data(remote_payload).product_size is None

    def test_non_finite_line_amounts_ignored(self, remote_payload):
        remote_payload["materials"][0].update(quantity="NaN", unitPrice="Infinity", totalCost="NaN")
        line = RemotePricingQuote.from_api_data(remote_payload).materials[0]
        assert line.quantity == 0
        assert line.unit_price == 0
        assert line.total == 0


class TestErrors:

    def test_only_remote_errors_are_retryable(self):
        assert RemoteUnavailableError("calculate", "timeout").retryable is True
        assert CatalogNotReadyError().retryable is False
        assert PaperTypeNotFoundError("x").retryable is False

    def test_to_dict(self):
        error = ValidationFailedError({"quantity": "bad"})
        data = error.to_dict()
        assert data["kind"] == "validation_failed"
        assert data["details"]["errors"] == {"quantity": "bad"}
        assert error.errors == {"quantity": "bad"}

    def test_error_kinds_are_distinct(self):
        assert len({kind.value for kind in ErrorKind}) == len(ErrorKind)
