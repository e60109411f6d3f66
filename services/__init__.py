"""
Services layer for PrintEstimator.

This module contains the services around the estimation engine:
- EstimationOrchestrator / EstimationSession: the estimate pipeline and
  its UI-facing state machine
- CatalogService: Background stock catalog refresh thread
- RemoteEstimationService: Debounced, last-write-wins remote pricing

Thread Model:
    Main Thread (Flask)
    ├── CatalogService thread (periodic refresh loop)
    └── Debounce timer threads (one per pending remote estimate)

The engine itself is synchronous and keeps no state between calls.
"""

from .estimation_service import EstimationOrchestrator, EstimationSession
from .catalog_service import CatalogService, file_catalog_fetcher, remote_catalog_fetcher
from .remote_estimation_service import RemoteEstimationService

__all__ = [
    "EstimationOrchestrator",
    "EstimationSession",
    "CatalogService",
    "file_catalog_fetcher",
    "remote_catalog_fetcher",
    "RemoteEstimationService",
]
