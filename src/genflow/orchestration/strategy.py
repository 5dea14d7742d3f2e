"""Ordered fallback strategies.

Some requests have a preferred form and a plainer fallback, e.g.
"generate with a reference image, else without one". A StrategyChain
tries each form in order and stops at the first success or at the
first failure that a fallback could not fix: rate limits and hard
quota exhaustion propagate immediately instead of burning another
request.
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, List, Optional, TypeVar

import structlog

from genflow.core.exceptions import ErrorKind, GenerationError
from genflow.orchestration.classifier import classify

log = structlog.get_logger()

T = TypeVar("T")

_TERMINAL_KINDS = frozenset({ErrorKind.BILLING_ERROR, ErrorKind.QUOTA_ERROR})


@dataclass
class Strategy(Generic[T]):
    """One named way of producing a result."""

    name: str
    run: Callable[[], Awaitable[T]]


def stops_fallback(error: Exception) -> bool:
    """True if error must propagate rather than trigger the next strategy."""
    if isinstance(error, GenerationError):
        return error.kind in _TERMINAL_KINDS
    classification = classify(error)
    return classification.is_rate_limit or classification.is_hard_exhaustion


class StrategyChain(Generic[T]):
    """Tries strategies in order.

    Raises:
        ValueError: If constructed without strategies.
    """

    def __init__(self, strategies: List[Strategy[T]]) -> None:
        if not strategies:
            raise ValueError("StrategyChain needs at least one strategy")
        self._strategies = list(strategies)

    @property
    def names(self) -> List[str]:
        return [strategy.name for strategy in self._strategies]

    async def run(self) -> T:
        last_error: Optional[Exception] = None

        for index, strategy in enumerate(self._strategies):
            try:
                return await strategy.run()
            except Exception as e:
                if stops_fallback(e):
                    raise
                last_error = e
                if index < len(self._strategies) - 1:
                    log.warning(
                        "strategy_fallback",
                        failed=strategy.name,
                        next=self._strategies[index + 1].name,
                        error=str(e),
                    )

        raise last_error if last_error else RuntimeError("Unknown error")
