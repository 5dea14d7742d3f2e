"""Translation of raw failures into user-facing GenerationErrors.

Façade methods call ``translate_error`` once their retry budget is
spent, so that UI collaborators never parse transport errors.
"""

import structlog

from genflow.core.exceptions import (
    BackendConnectionError,
    BillingError,
    GenerationError,
    QuotaError,
    ServerOverloadError,
)
from genflow.orchestration.classifier import SERVER_ERROR_STATUS, classify

log = structlog.get_logger()


def translate_error(error: BaseException) -> GenerationError:
    """Map a failure onto exactly one GenerationError kind.

    GenerationErrors pass through unchanged. Anything else is classified:

    - hard exhaustion with billing/plan wording -> BillingError
    - rate limit or other quota exhaustion -> QuotaError
    - overload or any 5xx -> ServerOverloadError
    - not found -> BackendConnectionError
    - otherwise a generic GenerationError with the original message
    """
    if isinstance(error, GenerationError):
        return error

    c = classify(error)

    if c.is_hard_exhaustion and c.mentions_billing:
        translated: GenerationError = BillingError()
    elif c.is_rate_limit or c.is_hard_exhaustion:
        translated = QuotaError()
    elif c.is_overloaded or (c.status_code is not None and c.status_code >= SERVER_ERROR_STATUS):
        translated = ServerOverloadError()
    elif c.is_not_found:
        translated = BackendConnectionError()
    else:
        translated = GenerationError(str(error) or None)

    log.error(
        "generation_failed",
        kind=translated.kind.value,
        category=c.category.value,
        status_code=c.status_code,
        error_class=type(error).__name__,
        error=str(error),
    )
    return translated
