"""Retry policy for generation calls.

Exponential backoff driven by error classification: rate limits back
off with a steep multiplier, overloads and plain server errors with a
gentle one, and everything else is re-raised on the spot.
"""

import asyncio
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

import structlog

from genflow.orchestration.classifier import ErrorClassification, classify
from genflow.protocols.progress import ProgressCallback, notify_progress

log = structlog.get_logger()

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """Configuration for retry behavior.

    Delay before the retry following attempt ``k`` (0-based) is
    ``base_delay * multiplier ** k`` plus uniform jitter in
    ``[0, max_jitter)``, where the multiplier is ``rate_limit_multiplier``
    for rate-limited failures and ``backoff_multiplier`` otherwise.
    All durations are seconds.
    """

    max_attempts: int = 5
    base_delay: float = 3.0
    rate_limit_multiplier: float = 5.0
    backoff_multiplier: float = 2.0
    max_jitter: float = 1.0

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_delay < 0:
            raise ValueError("base_delay must be >= 0")
        if self.rate_limit_multiplier < 1 or self.backoff_multiplier < 1:
            raise ValueError("multipliers must be >= 1")
        if self.max_jitter < 0:
            raise ValueError("max_jitter must be >= 0")

    def backoff_delay(self, attempt: int, classification: ErrorClassification) -> float:
        """Deterministic part of the delay after a failed attempt."""
        multiplier = (
            self.rate_limit_multiplier
            if classification.is_rate_limit
            else self.backoff_multiplier
        )
        return self.base_delay * multiplier ** attempt

    def jitter(self) -> float:
        if self.max_jitter == 0:
            return 0.0
        return random.uniform(0, self.max_jitter)

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        on_retry: Optional[ProgressCallback] = None,
    ) -> T:
        """Run operation, retrying transient failures.

        Args:
            operation: Zero-argument coroutine function.
            on_retry: Optional progress sink told about each scheduled retry.

        Returns:
            The operation's result.

        Raises:
            Exception: The last failure, unchanged, once attempts run out
                or as soon as a failure is classified as terminal.
        """
        last_error: Optional[BaseException] = None

        for attempt in range(self.max_attempts):
            try:
                return await operation()
            except Exception as e:
                last_error = e
                classification = classify(e)

                if not classification.is_retryable:
                    log.warning(
                        "retry_terminal_error",
                        attempt=attempt + 1,
                        category=classification.category.value,
                        status_code=classification.status_code,
                        error=str(e),
                    )
                    raise

                if attempt == self.max_attempts - 1:
                    break

                wait = self.backoff_delay(attempt, classification) + self.jitter()
                reason = "Rate limit hit" if classification.is_rate_limit else "Server busy"
                notify_progress(
                    on_retry,
                    f"{reason}. Retrying attempt {attempt + 2}/{self.max_attempts} "
                    f"in {int(wait + 0.5)}s...",
                )
                log.warning(
                    "retry_scheduled",
                    attempt=attempt + 1,
                    max_attempts=self.max_attempts,
                    delay=round(wait, 3),
                    category=classification.category.value,
                    error=str(e),
                )
                await asyncio.sleep(wait)

        log.error("retry_exhausted", max_attempts=self.max_attempts, error=str(last_error))
        raise last_error if last_error else RuntimeError("Unknown error")


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 5,
    base_delay: float = 3.0,
    on_retry: Optional[ProgressCallback] = None,
) -> T:
    """Run operation under a default RetryPolicy with the given limits."""
    policy = RetryPolicy(max_attempts=max_attempts, base_delay=base_delay)
    return await policy.execute(operation, on_retry)
