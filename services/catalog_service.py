"""
Stock catalog service with background refresh thread.

This service keeps the warehouse paper catalog (paper types, densities,
prices, availability) fresh, independently from estimation. A background
thread polls the warehouse collaborator and swaps in a new immutable
snapshot after each successful fetch.

The estimation engine never reads hidden module state: the caller takes a
snapshot from this service and hands it to each estimation call.

Thread Safety:
    - Background thread creates a new StockCatalogSnapshot on each refresh
    - Request threads read the current snapshot via atomic reference
    - No locks needed - immutable snapshots + atomic reference swap

Usage:
    # At app startup
    catalog_service = CatalogService(file_catalog_fetcher(path), refresh_interval_seconds=300)
    catalog_service.start()          # or force_refresh() for a one-off load

    # In routes
    snapshot = catalog_service.get_snapshot_or_raise()
    outcome = orchestrator.run(spec, snapshot, policy)

    # At app shutdown
    catalog_service.stop()
"""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from core.exceptions import CatalogNotReadyError
from core.pricing_client import RemotePricingClient
from models.stock import StockCatalogSnapshot
from logging_config import get_logger, set_thread_name


# Module logger
logger = get_logger(__name__)

CatalogFetcher = Callable[[], Dict[str, Any]]


def file_catalog_fetcher(path: str) -> CatalogFetcher:
    """Fetcher reading the catalog from a JSON file (local/preview deployments)."""
    catalog_path = Path(path)

    def fetch() -> Dict[str, Any]:
        with open(catalog_path, "r", encoding="utf-8") as f:
            return json.load(f)

    return fetch


def remote_catalog_fetcher(base_url: str, timeout: float = 10.0) -> CatalogFetcher:
    """
    Fetcher pulling the catalog from the warehouse service.

    A new client per fetch keeps the refresh thread's HTTP session to itself.
    """
    def fetch() -> Dict[str, Any]:
        client = RemotePricingClient(base_url, timeout=timeout, logger=logger)
        try:
            return client.fetch_stock_catalog()
        finally:
            client.close()

    return fetch


class CatalogService:
    """
    Background service for stock catalog refresh.

    Attributes:
        refresh_interval_seconds: Time between refreshes
        max_age_seconds: Age beyond which get_snapshot_or_raise() refuses data
        is_running: Whether the background thread is active
    """

    def __init__(
        self,
        fetch: CatalogFetcher,
        refresh_interval_seconds: float = 300.0,
        max_age_seconds: float = 600.0,
        source: str = "",
    ):
        """
        Initialize catalog service.

        Args:
            fetch: Callable returning the raw catalog payload
            refresh_interval_seconds: Seconds between refreshes
            max_age_seconds: Hard staleness limit for get_snapshot_or_raise()
            source: Label recorded on each snapshot (path or URL)
        """
        self._fetch = fetch
        self._refresh_interval = refresh_interval_seconds
        self._max_age = max_age_seconds
        self._source = source

        # Thread control
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._is_running = False

        # Start with empty snapshot so get_snapshot() never returns None
        self._current_snapshot: StockCatalogSnapshot = StockCatalogSnapshot.create_empty()

        # Track consecutive failures for logging
        self._consecutive_failures = 0

        logger.info(
            f"CatalogService initialized (refresh interval: {refresh_interval_seconds}s, "
            f"max age: {max_age_seconds}s)"
        )

    @property
    def is_running(self) -> bool:
        """Whether the background refresh thread is active."""
        return self._is_running

    @property
    def refresh_interval_seconds(self) -> float:
        return self._refresh_interval

    @property
    def max_age_seconds(self) -> float:
        return self._max_age

    def start(self) -> None:
        """
        Start the background refresh thread.

        The thread fetches immediately, then every refresh_interval_seconds
        until stop() is called. Safe to call multiple times.
        """
        if self._is_running:
            logger.warning("CatalogService already running")
            return

        logger.info("Starting catalog refresh thread...")

        self._stop_event.clear()

        self._thread = threading.Thread(
            target=self._refresh_loop,
            name="Catalog",
            daemon=True
        )
        self._is_running = True
        self._thread.start()

        logger.info("Catalog refresh thread started")

    def stop(self) -> None:
        """
        Stop the background refresh thread.

        Signals the thread to stop and waits for it to finish.
        Safe to call multiple times.
        """
        if not self._is_running:
            return

        logger.info("Stopping catalog refresh thread...")

        self._stop_event.set()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

            if self._thread.is_alive():
                logger.warning("Catalog thread did not stop cleanly")

        self._is_running = False
        self._thread = None

        logger.info("Catalog refresh thread stopped")

    def get_snapshot(self) -> StockCatalogSnapshot:
        """
        Get the current catalog snapshot.

        Returns:
            Current StockCatalogSnapshot (never None, possibly empty or stale)
        """
        return self._current_snapshot

    def get_snapshot_or_raise(self) -> StockCatalogSnapshot:
        """
        Get current snapshot, raising if the catalog isn't usable.

        Raises:
            CatalogNotReadyError: If snapshot is empty or older than max_age_seconds
        """
        snapshot = self._current_snapshot

        if snapshot.is_empty:
            raise CatalogNotReadyError(
                "Stock catalog not yet loaded. Please wait for initial fetch."
            )

        if snapshot.is_stale(self._max_age):
            raise CatalogNotReadyError(
                f"Stock catalog is {int(snapshot.age_seconds)}s old. "
                "Refresh may have failed - check warehouse service status."
            )

        return snapshot

    def force_refresh(self) -> bool:
        """
        Force an immediate catalog refresh in the calling thread.

        Returns:
            True if refresh succeeded, False otherwise
        """
        logger.info("Forcing catalog refresh...")
        return self._do_refresh()

    def _refresh_loop(self) -> None:
        """
        Background thread main loop.

        Fetches immediately, then every refresh_interval_seconds.
        Runs until stop_event is set.
        """
        set_thread_name("Catalog")

        logger.info("Catalog refresh loop starting")

        self._do_refresh()

        while not self._stop_event.is_set():
            if self._stop_event.wait(timeout=self._refresh_interval):
                break

            self._do_refresh()

        logger.info("Catalog refresh loop exiting")

    def _do_refresh(self) -> bool:
        """
        Perform a single catalog refresh.

        Returns:
            True if refresh succeeded, False otherwise
        """
        logger.debug("Refreshing stock catalog...")

        try:
            data = self._fetch()
            new_snapshot = StockCatalogSnapshot.from_api_data(data, source=self._source)

            # Atomic reference swap
            self._current_snapshot = new_snapshot

            if self._consecutive_failures > 0:
                logger.info(
                    f"Catalog refresh recovered after {self._consecutive_failures} failures"
                )
            self._consecutive_failures = 0

            logger.debug(
                f"Catalog refreshed: {len(new_snapshot.paper_types)} paper types"
            )
            return True

        except Exception as e:
            self._consecutive_failures += 1

            # Log with increasing severity based on consecutive failures
            if self._consecutive_failures == 1:
                logger.warning(f"Catalog refresh failed: {e}")
            elif self._consecutive_failures <= 3:
                logger.error(f"Catalog refresh failed ({self._consecutive_failures} consecutive): {e}")
            else:
                # Only log every 5th failure after that to avoid spam
                if self._consecutive_failures % 5 == 0:
                    logger.error(
                        f"Catalog refresh still failing ({self._consecutive_failures} consecutive): {e}"
                    )

            return False
