"""genflow Exception Hierarchy.

All custom exceptions inherit from GenFlowError, enabling consistent
error handling across the package.

Two families matter to callers:
- Raw failures (TransportError) are what a transport raises. The
  orchestration layer classifies and retries them.
- User-facing failures (GenerationError and subclasses) are what a
  façade method raises once retries are exhausted or a terminal
  classification is hit. UI collaborators only ever see these.

Usage:
    from genflow.core.exceptions import GenerationError, ErrorKind

    try:
        image = await studio.generate_image("a cat in a hat")
    except GenerationError as e:
        if e.kind is ErrorKind.BILLING_ERROR:
            ...
"""

from enum import Enum
from typing import Any, Optional


class GenFlowError(Exception):
    """Base exception for all genflow errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: Optional[str] = None) -> None:
        """Initialize GenFlowError.

        Args:
            message: Optional custom message. Defaults to a generic message.
        """
        self.message = message or "A genflow error occurred."
        super().__init__(self.message)

    @property
    def context(self) -> dict[str, Any]:
        """Return context dictionary for structured logging."""
        return {}

    def __repr__(self) -> str:
        """Return debug representation."""
        return f"{self.__class__.__name__}({self.message!r})"


class ConfigurationError(GenFlowError):
    """Configuration is invalid or cannot be loaded.

    Attributes:
        config_path: Path to the configuration file involved.
        key: Optional configuration key that failed.
    """

    def __init__(
        self,
        config_path: str,
        key: Optional[str] = None,
        message: Optional[str] = None,
    ) -> None:
        self.config_path = config_path
        self.key = key

        if message is None:
            key_info = f" (key: {key})" if key else ""
            message = f"Invalid configuration in '{config_path}'{key_info}."

        super().__init__(message)

    @property
    def context(self) -> dict[str, Any]:
        return {"config_path": self.config_path, "key": self.key}

    def __repr__(self) -> str:
        return f"ConfigurationError(config_path={self.config_path!r}, key={self.key!r})"


# === Raw backend failures ===


class TransportError(GenFlowError):
    """Raw failure reported by a generation transport.

    This is the error shape the classifier inspects. Transports raise it
    with whatever the backend told them; nothing here is user-facing.

    Attributes:
        status_code: Numeric status (HTTP status or backend error code).
        status: Backend status string, e.g. "RESOURCE_EXHAUSTED".
        details: Optional raw error payload.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        status: Optional[str] = None,
        details: Optional[Any] = None,
    ) -> None:
        self.status_code = status_code
        self.status = status
        self.details = details
        super().__init__(message)

    @property
    def context(self) -> dict[str, Any]:
        return {"status_code": self.status_code, "status": self.status}

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(status_code={self.status_code!r}, "
            f"status={self.status!r}, message={self.message!r})"
        )


class JobFailedError(TransportError):
    """A long-running job finished with an embedded error."""

    def __init__(
        self,
        job_name: Optional[str],
        message: str,
        status_code: Optional[int] = None,
        status: Optional[str] = None,
    ) -> None:
        self.job_name = job_name
        super().__init__(message, status_code=status_code, status=status)

    @property
    def context(self) -> dict[str, Any]:
        ctx = super().context
        ctx["job_name"] = self.job_name
        return ctx


# === User-facing failures ===


class ErrorKind(str, Enum):
    """Categories of user-facing failure."""

    BILLING_ERROR = "BILLING_ERROR"
    QUOTA_ERROR = "QUOTA_ERROR"
    SERVER_OVERLOAD = "SERVER_OVERLOAD"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    JOB_LOST = "JOB_LOST"
    CONTENT_FILTERED = "CONTENT_FILTERED"
    INPUT_REJECTED = "INPUT_REJECTED"
    UNKNOWN = "UNKNOWN"


class GenerationError(GenFlowError):
    """User-facing generation failure.

    A bare GenerationError is the generic/unclassified kind and carries
    the original failure's message text. Subclasses fix the kind and
    supply a default message suitable for display.

    Attributes:
        kind: The ErrorKind of this failure.
    """

    kind: ErrorKind = ErrorKind.UNKNOWN
    default_message: str = "An unexpected error occurred."

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def context(self) -> dict[str, Any]:
        return {"kind": self.kind.value}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(kind={self.kind.value!r}, message={self.message!r})"


class BillingError(GenerationError):
    """Hard quota exhaustion tied to billing: no active payment method."""

    kind = ErrorKind.BILLING_ERROR
    default_message = (
        "Billing Required: this API key has no active billing plan. "
        "Enable billing for the project or choose a different key."
    )


class QuotaError(GenerationError):
    """Rate limit or quota exceeded after retries."""

    kind = ErrorKind.QUOTA_ERROR
    default_message = (
        "Quota Exceeded: you have reached the usage limit for the generation "
        "backend. Please wait a moment and try again."
    )


class ServerOverloadError(GenerationError):
    """Backend temporarily saturated."""

    kind = ErrorKind.SERVER_OVERLOAD
    default_message = "The AI model is currently overloaded. Please try again in a few moments."


class BackendConnectionError(GenerationError):
    """Referenced model, resource or key was not found.

    Collaborators should prompt the user to reselect credentials.
    """

    kind = ErrorKind.CONNECTION_ERROR
    default_message = (
        "Connection Error: the requested model or key was not found. "
        "Please reselect your API key and try again."
    )


class JobLostError(GenerationError):
    """A long-running job's handle could not be re-fetched mid-poll."""

    kind = ErrorKind.JOB_LOST
    default_message = "Job Lost: the generation job tracker was lost. Please try again."

    def __init__(self, message: Optional[str] = None, job_name: Optional[str] = None) -> None:
        self.job_name = job_name
        super().__init__(message)

    @property
    def context(self) -> dict[str, Any]:
        ctx = super().context
        ctx["job_name"] = self.job_name
        return ctx


class ContentFilteredError(GenerationError):
    """Generation finished but produced no usable output."""

    kind = ErrorKind.CONTENT_FILTERED
    default_message = (
        "Content Filtered: the request completed but the output was blocked "
        "by the backend's safety filters."
    )


class InputRejectedError(GenerationError):
    """Caller input failed a guard check before any request was made.

    Attributes:
        check: Name of the guard that rejected the input.
    """

    kind = ErrorKind.INPUT_REJECTED
    default_message = "Input rejected."

    def __init__(self, message: Optional[str] = None, check: Optional[str] = None) -> None:
        self.check = check
        super().__init__(message)

    @property
    def context(self) -> dict[str, Any]:
        ctx = super().context
        ctx["check"] = self.check
        return ctx


class StudioNotInitializedError(GenFlowError):
    """Process-wide studio accessed before initialize_studio()."""
    pass
