"""Core module for genflow.

Exports the core components: exceptions, configuration, logging setup,
and input guards.
"""

from genflow.core.exceptions import (
    GenFlowError,
    ConfigurationError,
    TransportError,
    JobFailedError,
    # User-facing generation errors
    ErrorKind,
    GenerationError,
    BillingError,
    QuotaError,
    ServerOverloadError,
    BackendConnectionError,
    JobLostError,
    ContentFilteredError,
    InputRejectedError,
    StudioNotInitializedError,
)
from genflow.core.config import (
    get_settings,
    reset_settings,
    create_settings,
    Settings,
    BackendConfig,
    ModelsConfig,
    RetryConfig,
    QueueConfig,
    PollerConfig,
    BatchConfig,
    GuardConfig,
    LoggingConfig,
)
from genflow.core.logging import configure_logging
from genflow.core.guards import InputGuard, RequestThrottle

__all__ = [
    # Exceptions
    "GenFlowError",
    "ConfigurationError",
    "TransportError",
    "JobFailedError",
    # User-facing generation errors
    "ErrorKind",
    "GenerationError",
    "BillingError",
    "QuotaError",
    "ServerOverloadError",
    "BackendConnectionError",
    "JobLostError",
    "ContentFilteredError",
    "InputRejectedError",
    "StudioNotInitializedError",
    # Configuration
    "get_settings",
    "reset_settings",
    "create_settings",
    "Settings",
    "BackendConfig",
    "ModelsConfig",
    "RetryConfig",
    "QueueConfig",
    "PollerConfig",
    "BatchConfig",
    "GuardConfig",
    "LoggingConfig",
    # Logging
    "configure_logging",
    # Guards
    "InputGuard",
    "RequestThrottle",
]
