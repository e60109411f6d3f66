"""
Remote estimation service: debounced, last-write-wins pricing requests.

In production the pricing service prices every job. User edits arrive much
faster than the service should be called, so each edit:

    1. increments the generation counter
    2. is validated locally (invalid specs cancel the pending timer and
       never reach the network)
    3. (re)starts a debounce timer; only when no further edit arrives
       within the quiet period does the request fire

A response is applied only if its generation is still the latest, so a
slow response to an old spec can never overwrite a newer one. Nothing is
retried automatically; a RemoteUnavailable failure is reported with
``retryable=True`` and the caller offers a retry (estimate_now()).

Thread Model:
    Request thread (Flask)
    ├── submit() - validate, bump generation, arm timer
    └── estimate_now() - runs in the calling thread

    Timer threads ("Estimate-<generation>")
    └── one per armed timer; each creates its OWN RemotePricingClient

Thread Safety:
    - Generation counter, timer and latest outcome are guarded by a Lock
    - Specs and outcomes are immutable
"""

from __future__ import annotations

import threading
from typing import Callable, Optional

from core.pricing_client import RemotePricingClient
from logging_config import get_logger, set_thread_name
from models.estimate import EstimationOutcome, EstimationState
from models.job_spec import ProductJobSpec
from models.policy import PricingPolicy
from services.estimation_service import EstimationOrchestrator


# Module logger
logger = get_logger(__name__)


class RemoteEstimationService:
    """
    Debounced remote estimation for one spec stream (one form/session).

    Attributes:
        generation: Number of spec versions seen so far
        latest_outcome: Outcome of the newest generation that finished
    """

    def __init__(
        self,
        orchestrator: EstimationOrchestrator,
        client_factory: Callable[[], RemotePricingClient],
        policy: PricingPolicy,
        debounce_seconds: float = 1.0,
        on_result: Optional[Callable[[EstimationOutcome], None]] = None,
    ):
        """
        Args:
            orchestrator: Pipeline used for validation and the remote call
            client_factory: Creates a pricing client for the calling thread
            policy: Pricing policy (tiers for validation)
            debounce_seconds: Quiet period before a request fires
            on_result: Called with each applied outcome (not with stale ones)
        """
        self._orchestrator = orchestrator
        self._client_factory = client_factory
        self._policy = policy
        self._debounce = debounce_seconds
        self._on_result = on_result

        self._lock = threading.Lock()
        self._generation = 0
        self._spec: Optional[ProductJobSpec] = None
        self._timer: Optional[threading.Timer] = None
        self._latest_outcome: Optional[EstimationOutcome] = None

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    @property
    def latest_outcome(self) -> Optional[EstimationOutcome]:
        with self._lock:
            return self._latest_outcome

    @property
    def has_pending(self) -> bool:
        """Whether a debounce timer is armed."""
        with self._lock:
            return self._timer is not None

    def submit(self, spec: ProductJobSpec) -> EstimationOutcome:
        """
        Register a spec edit.

        Returns:
            INVALID outcome when the job spec has field errors (timer cancelled),
            otherwise an ESTIMATING placeholder for this generation
        """
        errors = self._orchestrator.validate(spec, None, self._policy)

        with self._lock:
            self._generation += 1
            generation = self._generation
            self._spec = spec
            self._cancel_timer_locked()

            if errors:
                outcome = EstimationOutcome.invalid(errors, generation)
                self._latest_outcome = outcome
                logger.debug(f"Generation {generation} invalid: {sorted(errors)}")
                return outcome

            self._timer = threading.Timer(self._debounce, self._timer_fired, args=(generation, spec))
            self._timer.name = f"Estimate-{generation}"
            self._timer.daemon = True
            self._timer.start()

        logger.debug(f"Generation {generation} scheduled in {self._debounce}s")
        return EstimationOutcome(state=EstimationState.ESTIMATING, generation=generation)

    def estimate_now(self, spec: Optional[ProductJobSpec] = None) -> EstimationOutcome:
        """
        Estimate immediately in the calling thread (explicit user action).

        Args:
            spec: New spec; when None the current spec is re-estimated under
                its existing generation (a retry)

        Raises:
            ValueError: no spec given and none submitted yet
        """
        with self._lock:
            if spec is not None:
                self._generation += 1
                self._spec = spec
            elif self._spec is None:
                raise ValueError("No spec to estimate")
            self._cancel_timer_locked()
            generation = self._generation
            spec = self._spec

        return self._execute(generation, spec)

    def cancel(self) -> None:
        """Cancel any pending request without bumping the generation."""
        with self._lock:
            self._cancel_timer_locked()

    def shutdown(self) -> None:
        """Cancel pending work and invalidate in-flight responses."""
        with self._lock:
            self._cancel_timer_locked()
            self._generation += 1
        logger.debug("RemoteEstimationService shut down")

    def _cancel_timer_locked(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _timer_fired(self, generation: int, spec: ProductJobSpec) -> None:
        set_thread_name(f"Estimate-{generation}")
        with self._lock:
            if self._timer is threading.current_thread():
                self._timer = None
        self._execute(generation, spec)

    def _execute(self, generation: int, spec: ProductJobSpec) -> EstimationOutcome:
        """Run one remote estimate and apply it if still current."""
        client = self._client_factory()
        try:
            outcome = self._orchestrator.run(
                spec,
                None,
                self._policy,
                pricing_client=client,
                generation=generation,
            )
        finally:
            client.close()

        self._apply(outcome)
        return outcome

    def _apply(self, outcome: EstimationOutcome) -> bool:
        """Store ``outcome`` unless a newer generation exists."""
        with self._lock:
            if outcome.generation != self._generation:
                logger.debug(
                    f"Discarding stale result for generation {outcome.generation} "
                    f"(latest is {self._generation})"
                )
                return False
            self._latest_outcome = outcome

        logger.info(f"Generation {outcome.generation} finished: {outcome.state.value}")
        if self._on_result is not None:
            self._on_result(outcome)
        return True
