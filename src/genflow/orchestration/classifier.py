"""Error classification for retry and translation decisions.

``classify`` is the only place in genflow that sniffs error text. The
retry policy, the strategy chain and the error translator all decide
on the ErrorClassification it returns; none of them look at messages
themselves.

The function is pure: the same input always yields the same result.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

RATE_LIMIT_STATUS = 429
OVERLOADED_STATUS = 503
SERVER_ERROR_STATUS = 500
NOT_FOUND_STATUS = 404

_HARD_EXHAUSTION_MARKERS = ("quota", "billing", "plan")
_BILLING_MARKERS = ("billing", "plan")
_RATE_LIMIT_MARKERS = ("429", "resource_exhausted", "too many requests")
_OVERLOADED_MARKERS = ("overloaded", "503", "unavailable")
_NOT_FOUND_MARKERS = ("not found", "not_found")


class ErrorCategory(str, Enum):
    """Derived category of a failure."""

    RATE_LIMIT = "RATE_LIMIT"
    OVERLOADED = "OVERLOADED"
    HARD_EXHAUSTION = "HARD_EXHAUSTION"
    SERVER_ERROR = "SERVER_ERROR"
    NOT_FOUND = "NOT_FOUND"
    OTHER = "OTHER"


@dataclass(frozen=True)
class ErrorClassification:
    """Classification of one failure.

    Attributes:
        is_rate_limit: 429 or rate-limit wording.
        is_overloaded: 503 or overload wording.
        is_hard_exhaustion: quota, billing or plan wording.
        status_code: Status extracted from the error, if any.
        is_not_found: 404 or not-found wording.
        mentions_billing: billing or plan wording.
    """

    is_rate_limit: bool
    is_overloaded: bool
    is_hard_exhaustion: bool
    status_code: Optional[int] = None
    is_not_found: bool = False
    mentions_billing: bool = False

    @property
    def is_billing_capped(self) -> bool:
        """Rate limit that is really a hard quota; never recoverable."""
        return self.is_hard_exhaustion and self.is_rate_limit

    @property
    def is_retryable(self) -> bool:
        if self.is_billing_capped:
            return False
        return (
            self.is_overloaded
            or self.is_rate_limit
            or self.status_code == SERVER_ERROR_STATUS
        )

    @property
    def category(self) -> ErrorCategory:
        if self.is_hard_exhaustion and (self.is_rate_limit or not self.is_overloaded):
            return ErrorCategory.HARD_EXHAUSTION
        if self.is_rate_limit:
            return ErrorCategory.RATE_LIMIT
        if self.is_overloaded:
            return ErrorCategory.OVERLOADED
        if self.status_code is not None and self.status_code >= SERVER_ERROR_STATUS:
            return ErrorCategory.SERVER_ERROR
        if self.is_not_found:
            return ErrorCategory.NOT_FOUND
        return ErrorCategory.OTHER


def _field(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def _as_status(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _message_of(error: Any) -> str:
    message = _field(error, "message")
    if isinstance(message, str) and message:
        return message
    if isinstance(error, Mapping):
        try:
            return json.dumps(error, default=str)
        except (TypeError, ValueError):
            return str(error)
    return str(error)


def extract_status_code(error: Any, message: Optional[str] = None) -> Optional[int]:
    """Find a status code on an error.

    Order of preference: ``status`` (or ``status_code``) on the error,
    the nested ``response`` status, the nested ``error.code``, and
    finally 429 inferred from the message text.
    """
    candidates = (
        _field(error, "status"),
        _field(error, "status_code"),
        _field(_field(error, "response"), "status"),
        _field(_field(error, "response"), "status_code"),
        _field(_field(error, "error"), "code"),
    )
    for candidate in candidates:
        status = _as_status(candidate)
        if status is not None:
            return status

    text = message if message is not None else _message_of(error)
    if str(RATE_LIMIT_STATUS) in text:
        return RATE_LIMIT_STATUS
    return None


def classify(error: Any) -> ErrorClassification:
    """Classify a failure.

    Args:
        error: An exception, a mapping, or any object exposing
            ``status``/``response``/``error``/``message`` fields.

    Returns:
        The ErrorClassification of the failure.
    """
    raw_message = _message_of(error)
    status_code = extract_status_code(error, raw_message)
    message = raw_message.lower()

    return ErrorClassification(
        is_rate_limit=(
            status_code == RATE_LIMIT_STATUS
            or any(marker in message for marker in _RATE_LIMIT_MARKERS)
        ),
        is_overloaded=(
            status_code == OVERLOADED_STATUS
            or any(marker in message for marker in _OVERLOADED_MARKERS)
        ),
        is_hard_exhaustion=any(marker in message for marker in _HARD_EXHAUSTION_MARKERS),
        status_code=status_code,
        is_not_found=(
            status_code == NOT_FOUND_STATUS
            or any(marker in message for marker in _NOT_FOUND_MARKERS)
        ),
        mentions_billing=any(marker in message for marker in _BILLING_MARKERS),
    )
