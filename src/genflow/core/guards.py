"""Input guards applied to caller text before any generation request.

Sanitizes prompts and rejects input that is too long, looks harmful,
attempts a prompt injection, or arrives faster than the client-side
request window allows. Rejections raise InputRejectedError so that
callers see the same GenerationError family as backend failures.
"""

import re
import threading
import time
from collections import deque
from typing import Callable, Deque, Optional

import structlog

from genflow.core.config import GuardConfig
from genflow.core.exceptions import InputRejectedError

log = structlog.get_logger()

DEFAULT_MAX_LENGTH = 5000

_TAG_PATTERN = re.compile(r"<[^>]*>?", re.MULTILINE)

INJECTION_PATTERNS = [
    re.compile(r"ignore previous instructions", re.IGNORECASE),
    re.compile(r"forget all instructions", re.IGNORECASE),
    re.compile(r"system override", re.IGNORECASE),
    re.compile(r"ignore all rules", re.IGNORECASE),
    re.compile(r"bypass safety", re.IGNORECASE),
]

HARMFUL_PATTERNS = [
    re.compile(r"\b(hate speech)\b", re.IGNORECASE),
    re.compile(r"\b(kill yourself)\b", re.IGNORECASE),
    re.compile(r"\b(terrorist)\b", re.IGNORECASE),
]


def sanitize_input(text: Optional[str]) -> str:
    """Strip HTML tags and surrounding whitespace."""
    if not text:
        return ""
    return _TAG_PATTERN.sub("", text).strip()


def detect_prompt_injection(text: str) -> bool:
    """Return True if text contains a known instruction-override phrase."""
    return any(pattern.search(text) for pattern in INJECTION_PATTERNS)


def validate_length(text: str, max_length: int = DEFAULT_MAX_LENGTH) -> bool:
    return len(text) <= max_length


def contains_harmful_content(text: str) -> bool:
    return any(pattern.search(text) for pattern in HARMFUL_PATTERNS)


class RequestThrottle:
    """Sliding-window request counter.

    Args:
        max_requests: Requests allowed inside one window.
        window_seconds: Window length in seconds.
        clock: Monotonic clock, injectable for tests.
    """

    def __init__(
        self,
        max_requests: int = 15,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        self._max_requests = max_requests
        self._window = window_seconds
        self._clock = clock
        self._timestamps: Deque[float] = deque()
        self._lock = threading.Lock()

    def _cleanup(self, now: float) -> None:
        while self._timestamps and now - self._timestamps[0] >= self._window:
            self._timestamps.popleft()

    def try_acquire(self) -> bool:
        """Record a request if the window has room; return whether it did."""
        with self._lock:
            now = self._clock()
            self._cleanup(now)
            if len(self._timestamps) >= self._max_requests:
                return False
            self._timestamps.append(now)
            return True

    @property
    def in_window(self) -> int:
        """Number of requests counted in the current window."""
        with self._lock:
            self._cleanup(self._clock())
            return len(self._timestamps)


class InputGuard:
    """Runs every guard check in order, raising on the first failure."""

    def __init__(
        self,
        config: Optional[GuardConfig] = None,
        throttle: Optional[RequestThrottle] = None,
    ) -> None:
        self._config = config or GuardConfig()
        self._throttle = throttle or RequestThrottle(
            max_requests=self._config.max_requests,
            window_seconds=self._config.window_seconds,
        )

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    def check(self, text: str, context: str = "Input") -> str:
        """Sanitize text and run all checks.

        Args:
            text: Raw caller text.
            context: Label used in the rejection message.

        Returns:
            The sanitized text.

        Raises:
            InputRejectedError: If any check fails.
        """
        clean = sanitize_input(text)
        if not self._config.enabled:
            return clean

        if not self._throttle.try_acquire():
            self._reject(
                "throttle",
                "Rate Limit Exceeded: You are making requests too quickly. Please wait a moment.",
            )
        if not validate_length(clean, self._config.max_length):
            self._reject(
                "length",
                f"{context} is too long. Maximum allowed characters: {self._config.max_length}.",
            )
        if contains_harmful_content(clean):
            self._reject("harmful_content", "Safety Alert: Input contains prohibited or harmful content.")
        if detect_prompt_injection(clean):
            self._reject("prompt_injection", "Security Alert: Prompt injection attempt detected.")

        return clean

    def _reject(self, check: str, message: str) -> None:
        log.warning("input_rejected", check=check)
        raise InputRejectedError(message, check=check)

