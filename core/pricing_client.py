"""
HTTP client for the remote pricing and warehouse service.

In production the pricing service is the source of truth for prices; the
local engine is the preview/fallback path. This client covers the two calls
the estimator needs:

    - calculate(): price one job (product id, quantity, parameter bag)
    - fetch_stock_catalog(): paper types -> densities -> price/availability

NO RETRIES:
    No retry adapter is mounted on the session. A network error, timeout or
    non-2xx response raises RemoteUnavailableError and the caller decides
    whether to retry (normally only on explicit user action).

THREAD SAFETY:
    requests.Session is not guaranteed thread-safe, so each thread that
    talks to the service (catalog refresh, debounce timers) should own its
    own RemotePricingClient.

Usage:
    client = RemotePricingClient("https://pricing.example/api", timeout=10)
    payload = client.calculate("42", 500, {"format": "A6", "sides": 2})
    catalog = client.fetch_stock_catalog()
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, Any, Optional, List

import requests

from .exceptions import RemoteUnavailableError

CALCULATE_PATH = "/calculator/calculate"
PAPER_TYPES_PATH = "/warehouse/paper-types"


class RemotePricingClient:
    """
    Thin requests-based wrapper around the pricing service.

    Attributes:
        base_url: Service root, without trailing slash
        timeout: Per-request timeout in seconds
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: Pricing service root URL
            timeout: Seconds before a request is abandoned
            session: Optional pre-built session (tests inject a mock here)
            logger: Logger instance (creates default if not provided)

        Raises:
            ValueError: If base_url is empty
        """
        if not base_url:
            raise ValueError("base_url is required for the remote pricing client")

        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or self._build_session()
        self._logger = logger or logging.getLogger("print_estimator.core.pricing_client")
        self._thread_id = threading.get_ident()

        self._logger.debug(f"[Thread {self._thread_id}] RemotePricingClient initialized for {self._base_url}")

    @staticmethod
    def _build_session() -> requests.Session:
        s = requests.Session()
        s.headers.update({
            "Accept": "application/json",
            "User-Agent": "PrintEstimator/1.0 (+requests)",
        })
        return s

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def timeout(self) -> float:
        return self._timeout

    def calculate(
        self,
        product_id: Any,
        quantity: int,
        params: Dict[str, Any],
    ) -> Dict[str, Any]:
        """
        Ask the service to price one job.

        Args:
            product_id: Remote product identifier
            quantity: Number of finished items
            params: Parameter bag equivalent to the job spec fields,
                including the resolved trim size for custom formats

        Returns:
            Raw JSON response (validated by RemotePricingQuote)

        Raises:
            RemoteUnavailableError: Network failure, timeout or non-2xx status
        """
        body = {"product_id": product_id, "quantity": quantity, "params": params}
        self._logger.debug(f"Requesting remote price for product {product_id} x{quantity}")
        data = self._request("POST", CALCULATE_PATH, "calculate", json=body)
        if not isinstance(data, dict):
            raise RemoteUnavailableError("calculate", "response is not a JSON object")
        # Some deployments wrap the payload as {"data": {...}}
        if "data" in data and isinstance(data["data"], dict) and "finalPrice" not in data:
            return data["data"]
        return data

    def fetch_stock_catalog(self) -> Dict[str, Any]:
        """
        Fetch the warehouse paper-type catalog.

        Returns:
            ``{"paper_types": [...]}`` ready for StockCatalogSnapshot.from_api_data

        Raises:
            RemoteUnavailableError: Network failure, timeout or non-2xx status
        """
        data = self._request("GET", PAPER_TYPES_PATH, "fetch_stock_catalog")
        if isinstance(data, list):
            return {"paper_types": data}
        if isinstance(data, dict):
            if "paper_types" in data or "paperTypes" in data:
                return data
            if isinstance(data.get("data"), list):
                return {"paper_types": data["data"]}
        raise RemoteUnavailableError("fetch_stock_catalog", "unexpected catalog payload")

    def close(self) -> None:
        self._session.close()

    def _request(self, method: str, path: str, operation: str, **kwargs: Any) -> Any:
        url = f"{self._base_url}{path}"
        try:
            response = self._session.request(method, url, timeout=self._timeout, **kwargs)
        except requests.Timeout as e:
            self._logger.warning(f"{operation} timed out after {self._timeout}s: {e}")
            raise RemoteUnavailableError(operation, f"timed out after {self._timeout}s") from e
        except requests.RequestException as e:
            self._logger.warning(f"{operation} failed: {e}")
            raise RemoteUnavailableError(operation, str(e)) from e

        if not response.ok:
            self._logger.warning(f"{operation} returned HTTP {response.status_code}")
            raise RemoteUnavailableError(
                operation,
                f"HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise RemoteUnavailableError(operation, "response is not valid JSON") from e
