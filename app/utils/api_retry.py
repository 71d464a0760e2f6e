"""
Retry handler with exponential backoff and a circuit breaker.

Used for best-effort calls only (the model availability probe). Generation
calls are not wrapped: the candidate loop and the image batch own their own
failure policy.
"""
import asyncio
import time
import logging
from typing import Callable, Any
import aiohttp

logger = logging.getLogger(__name__)


class CircuitBreakerOpen(Exception):
    """Raised when circuit breaker is open"""
    pass


class APIRetryHandler:
    """
    Retry transient failures, fail fast after repeated exhaustion.

    Circuit Breaker States:
    - CLOSED: calls pass through
    - OPEN: calls fail immediately with CircuitBreakerOpen
    - HALF_OPEN: one call allowed after circuit_timeout to test recovery
    """

    def __init__(
        self,
        max_retries: int = 2,
        base_delay: float = 0.5,
        max_delay: float = 5.0,
        timeout: float = 15.0,
        circuit_failure_threshold: int = 5,
        circuit_timeout: float = 60.0
    ):
        """
        Args:
            max_retries: Attempts per call (first try included)
            base_delay: Initial backoff delay in seconds
            max_delay: Upper bound for the backoff delay
            timeout: Per-attempt timeout in seconds
            circuit_failure_threshold: Exhausted calls needed to open the circuit
            circuit_timeout: Seconds before a HALF_OPEN probe is allowed
        """
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.timeout = timeout
        self.circuit_failure_threshold = circuit_failure_threshold
        self.circuit_timeout = circuit_timeout

        self._failure_count = 0
        self._circuit_open = False
        self._circuit_open_time = 0.0

    @property
    def is_open(self) -> bool:
        return self._circuit_open

    def reset(self):
        self._failure_count = 0
        self._circuit_open = False
        self._circuit_open_time = 0.0

    def _check_circuit(self):
        if not self._circuit_open:
            return
        elapsed = time.monotonic() - self._circuit_open_time
        if elapsed >= self.circuit_timeout:
            logger.info("Circuit breaker attempting recovery (HALF_OPEN)")
            self._circuit_open = False
        else:
            raise CircuitBreakerOpen(
                f"Circuit breaker open - upstream temporarily unavailable. "
                f"Retry in {self.circuit_timeout - elapsed:.1f}s"
            )

    def _record_success(self):
        if self._failure_count > 0:
            logger.info(f"Upstream recovered - resetting failure count from {self._failure_count}")
        self._failure_count = 0
        self._circuit_open = False

    def _record_failure(self):
        self._failure_count += 1
        logger.warning(f"Upstream failure count: {self._failure_count}/{self.circuit_failure_threshold}")
        if self._failure_count >= self.circuit_failure_threshold:
            self._circuit_open = True
            self._circuit_open_time = time.monotonic()
            logger.error(
                f"Circuit breaker OPENED after {self._failure_count} consecutive failures. "
                f"Will retry after {self.circuit_timeout}s"
            )

    async def execute_with_retry(self, api_call: Callable, *args, **kwargs) -> Any:
        """
        Run an async call, retrying timeouts and aiohttp client errors.

        Raises:
            CircuitBreakerOpen: If the circuit is open
            Exception: The last error once retries are exhausted, or any
                non-transient error immediately
        """
        self._check_circuit()

        last_exception = None
        for attempt in range(self.max_retries):
            try:
                result = await asyncio.wait_for(api_call(*args, **kwargs), timeout=self.timeout)
                self._record_success()
                return result
            except (asyncio.TimeoutError, aiohttp.ClientError) as e:
                last_exception = e
                logger.warning(
                    f"Transient error on attempt {attempt + 1}/{self.max_retries}: {type(e).__name__}"
                )
                if attempt < self.max_retries - 1:
                    delay = min(self.base_delay * (2 ** attempt), self.max_delay)
                    logger.info(f"Retrying in {delay}s...")
                    await asyncio.sleep(delay)

        self._record_failure()
        logger.error(
            f"All {self.max_retries} attempts exhausted. "
            f"Last error: {type(last_exception).__name__}: {last_exception}"
        )
        raise last_exception


probe_api_retry = APIRetryHandler(
    max_retries=2,
    base_delay=0.5,
    timeout=15.0,
    circuit_failure_threshold=5,
    circuit_timeout=60.0
)
