"""Protocol abstractions for genflow.

All protocols use `typing.Protocol` for structural subtyping with
`@runtime_checkable` for isinstance() support.

Protocols:
    GenerationTransport: Interface for generation backends.
    ProgressSink: Receiver of human-readable progress messages.
"""

from __future__ import annotations

from genflow.protocols.progress import ProgressCallback, ProgressSink, notify_progress
from genflow.protocols.transport import GenerationTransport

__all__ = [
    "GenerationTransport",
    "ProgressCallback",
    "ProgressSink",
    "notify_progress",
]
