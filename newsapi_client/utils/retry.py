from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
)
from tenacity.wait import wait_base

from newsapi_client.errors import ServerError, TransportError

logger = logging.getLogger(__name__)

# Upstream statuses worth re-issuing; everything else is terminal.
RETRYABLE_STATUS_CODES = frozenset({500, 502, 503, 504})


class RetryStrategy(str, Enum):
    NONE = "none"
    CONSTANT = "constant"
    LINEAR = "linear"
    EXPONENTIAL = "exponential"


def is_transient(exc: BaseException) -> bool:
    """True for failures that may succeed if the request is re-issued."""
    return isinstance(exc, (TransportError, ServerError))


def _log_retry(label: str, retry_state: RetryCallState) -> None:
    exc = retry_state.outcome and retry_state.outcome.exception()
    delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
    logger.warning(
        "Retry attempt %d for %s in %.3fs: %s",
        retry_state.attempt_number,
        label,
        delay,
        exc,
    )


class _wait_policy(wait_base):
    """Tenacity wait strategy delegating to ``RetryPolicy.delay_for``."""

    def __init__(self, policy: RetryPolicy) -> None:
        self._policy = policy

    def __call__(self, retry_state: RetryCallState) -> float:
        # attempt_number is 1-based and counts the attempt that just failed
        delay = self._policy.delay_for(retry_state.attempt_number - 1)
        return delay or 0.0


@dataclass(frozen=True)
class RetryPolicy:
    """How transient failures are retried.

    ``max_retries`` counts re-issues after the first attempt, so a policy
    with ``max_retries=3`` makes at most four requests.
    """

    strategy: RetryStrategy = RetryStrategy.NONE
    delay: float = 0.0
    max_retries: int = 0

    def __post_init__(self) -> None:
        # accepts "exponential" as well as the enum member; unknown names raise
        object.__setattr__(self, "strategy", RetryStrategy(self.strategy))
        if self.delay < 0:
            raise ValueError("retry delay must be >= 0")
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")

    @classmethod
    def none(cls) -> RetryPolicy:
        return cls()

    @classmethod
    def constant(cls, delay: float, max_retries: int) -> RetryPolicy:
        return cls(RetryStrategy.CONSTANT, delay, max_retries)

    @classmethod
    def linear(cls, delay: float, max_retries: int) -> RetryPolicy:
        return cls(RetryStrategy.LINEAR, delay, max_retries)

    @classmethod
    def exponential(cls, base_delay: float, max_retries: int) -> RetryPolicy:
        return cls(RetryStrategy.EXPONENTIAL, base_delay, max_retries)

    @property
    def max_attempts(self) -> int:
        if self.strategy is RetryStrategy.NONE:
            return 1
        return self.max_retries + 1

    def delay_for(self, attempt: int) -> float | None:
        """Seconds to wait before re-issue number ``attempt`` (0-based).

        Returns None when no further attempt should be made.
        """
        if self.strategy is RetryStrategy.NONE or attempt >= self.max_retries:
            return None
        if self.strategy is RetryStrategy.CONSTANT:
            return self.delay
        if self.strategy is RetryStrategy.LINEAR:
            return self.delay * (attempt + 1)
        return self.delay * 2**attempt

    def delays(self) -> list[float]:
        """Full delay schedule, one entry per possible retry."""
        return [
            self.delay_for(attempt)  # type: ignore[misc]
            for attempt in range(self.max_attempts - 1)
        ]

    def _controller_kwargs(self, label: str) -> dict[str, Any]:
        return {
            "stop": stop_after_attempt(self.max_attempts),
            "wait": _wait_policy(self),
            "retry": retry_if_exception(is_transient),
            "before_sleep": functools.partial(_log_retry, label),
            "reraise": True,
        }

    def retrying(self, label: str = "request") -> Retrying:
        """Blocking retry controller; sleeps with ``time.sleep``."""
        return Retrying(**self._controller_kwargs(label))

    def async_retrying(self, label: str = "request") -> AsyncRetrying:
        """Async retry controller; sleeps with ``asyncio.sleep``."""
        return AsyncRetrying(**self._controller_kwargs(label))
