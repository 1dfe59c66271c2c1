import logging
import time
from typing import Any, Awaitable, Callable, Tuple, Type

from .errors import EXPECTED_ERRORS, PersistenceError

logger = logging.getLogger(__name__)


class CircuitBreaker:
    def __init__(
        self,
        failure_threshold: int = 3,
        base_recovery_time: int = 10,
        max_recovery_time: int = 60,
        excluded_exceptions: Tuple[Type[BaseException], ...] = (),
    ):
        self.failure_count = 0
        self.failure_threshold = failure_threshold
        self.base_recovery_time = base_recovery_time
        self.max_recovery_time = max_recovery_time
        self.last_failure_time = 0
        self.state = "CLOSED"
        self.excluded_exceptions = excluded_exceptions

    @property
    def current_recovery_time(self):
        return min(
            self.base_recovery_time
            * (2 ** max(self.failure_count - self.failure_threshold, 0)),
            self.max_recovery_time,
        )

    def _open(self):
        self.state = "OPEN"
        self.last_failure_time = time.time()
        logger.warning(f"Circuit opened after {self.failure_count} failures.")

    def _half_open(self):
        self.state = "HALF_OPEN"
        logger.info("Circuit half-open: testing...")

    def _close(self):
        if self.state != "CLOSED":
            logger.info("Circuit closed: stable again.")
        self.state = "CLOSED"
        self.failure_count = 0

    def reset(self):
        self._close()

    async def call(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        now = time.time()

        if self.state == "OPEN":
            cooldown = self.current_recovery_time
            if now - self.last_failure_time < cooldown:
                raise PersistenceError(
                    f"CircuitBreaker: still open, retry after {cooldown - (now - self.last_failure_time):.1f}s"
                )
            else:
                self._half_open()

        try:
            result = await func(*args, **kwargs)
            self._close()
            return result

        except self.excluded_exceptions:
            # the store answered; the request itself was wrong or lost a race
            self._close()
            raise

        except Exception as e:
            self.failure_count += 1
            logger.error(f"CircuitBreaker call failed ({self.failure_count}): {e}")

            if self.failure_count >= self.failure_threshold:
                self._open()

            raise e


# Lease and payment writes are never queued for a later replay; a failure
# goes straight back to the caller.
breaker = CircuitBreaker(
    failure_threshold=3,
    base_recovery_time=10,
    excluded_exceptions=EXPECTED_ERRORS,
)
