"""
Tests for the stock catalog service.

Tests refresh logic, staleness, failure tracking and the background thread
with mocked fetchers.
"""

import json
import time
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest

from core.exceptions import CatalogNotReadyError, RemoteUnavailableError
from models.stock import StockCatalogSnapshot
from services.catalog_service import (
    CatalogService,
    file_catalog_fetcher,
    remote_catalog_fetcher,
)


# Fixtures

@pytest.fixture
def fetch(catalog_data):
    return MagicMock(return_value=catalog_data)


@pytest.fixture
def service(fetch):
    catalog_service = CatalogService(fetch, refresh_interval_seconds=0.05, max_age_seconds=600)
    yield catalog_service
    catalog_service.stop()


class TestSnapshotAccess:

    def test_starts_empty(self, service):
        assert service.get_snapshot().is_empty
        with pytest.raises(CatalogNotReadyError):
            service.get_snapshot_or_raise()

    def test_force_refresh_loads_catalog(self, service, fetch):
        assert service.force_refresh() is True
        fetch.assert_called_once()
        snapshot = service.get_snapshot_or_raise()
        assert "semi-matte" in snapshot.paper_type_names()

    def test_stale_snapshot_refused(self, service, stock_catalog):
        service._current_snapshot = StockCatalogSnapshot(
            fetched_at=datetime(2020, 1, 1, tzinfo=timezone.utc),
            paper_types=stock_catalog.paper_types,
        )
        with pytest.raises(CatalogNotReadyError) as exc_info:
            service.get_snapshot_or_raise()
        assert "old" in exc_info.value.message
        # Still readable for display purposes
        assert not service.get_snapshot().is_empty

    def test_snapshots_are_replaced_not_mutated(self, service):
        service.force_refresh()
        first = service.get_snapshot()
        service.force_refresh()
        second = service.get_snapshot()
        assert first is not second
        assert first.paper_type_names() == second.paper_type_names()


class TestRefreshFailures:

    def test_failure_keeps_previous_snapshot(self, service, fetch):
        service.force_refresh()
        previous = service.get_snapshot()

        fetch.side_effect = RemoteUnavailableError("fetch_stock_catalog", "HTTP 503")
        assert service.force_refresh() is False
        assert service.get_snapshot() is previous
        assert service._consecutive_failures == 1

    def test_failure_counter_resets_on_success(self, service, fetch, catalog_data):
        fetch.side_effect = ValueError("bad payload")
        service.force_refresh()
        service.force_refresh()
        assert service._consecutive_failures == 2

        fetch.side_effect = None
        fetch.return_value = catalog_data
        assert service.force_refresh() is True
        assert service._consecutive_failures == 0


class TestBackgroundThread:

    def test_start_and_stop(self, service, fetch):
        service.start()
        assert service.is_running

        deadline = time.time() + 5.0
        while fetch.call_count < 2 and time.time() < deadline:
            time.sleep(0.01)
        assert fetch.call_count >= 2

        service.stop()
        assert not service.is_running
        calls = fetch.call_count
        time.sleep(0.15)
        assert fetch.call_count == calls

    def test_start_twice_is_safe(self, service):
        service.start()
        service.start()
        assert service.is_running

    def test_stop_without_start(self, service):
        service.stop()
        assert not service.is_running


class TestFetchers:

    def test_file_fetcher(self, tmp_path, catalog_data):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps(catalog_data), encoding="utf-8")
        assert file_catalog_fetcher(str(path))() == catalog_data

    def test_file_fetcher_missing_file(self, tmp_path):
        fetch = file_catalog_fetcher(str(tmp_path / "missing.json"))
        with pytest.raises(FileNotFoundError):
            fetch()

    @patch("services.catalog_service.RemotePricingClient")
    def test_remote_fetcher_uses_fresh_client(self, mock_client_class):
        mock_client = MagicMock()
        mock_client.fetch_stock_catalog.return_value = {"paper_types": []}
        mock_client_class.return_value = mock_client

        fetch = remote_catalog_fetcher("http://pricing.local", timeout=3)
        assert fetch() == {"paper_types": []}
        fetch()

        assert mock_client_class.call_count == 2
        assert mock_client.close.call_count == 2
