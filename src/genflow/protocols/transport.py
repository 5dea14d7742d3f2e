"""Generation transport protocol for genflow.

A transport performs the actual backend calls. The orchestration layer
never inspects wire formats; it only sees the dataclasses from
`genflow.transport.base` and the TransportError raised on failure.

Usage:
    from genflow.protocols import GenerationTransport

    transport = GeminiTransport(api_key="...")
    assert isinstance(transport, GenerationTransport)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from genflow.transport.base import (
        ContentRequest,
        ContentResponse,
        JobHandle,
        PendingJob,
        VideoRequest,
    )


@runtime_checkable
class GenerationTransport(Protocol):
    """Protocol for generation backends.

    Methods:
        generate_content: One-shot text/image/speech request.
        start_video_job: Start a long-running job, returning its handle.
        poll_video_job: Re-fetch a job by handle; None if the backend lost it.
        download_url: Turn a result URI into something the caller can fetch.

    Note:
        Implementations do NOT need to inherit from this class. All
        failures must be raised as TransportError.
    """

    async def generate_content(self, request: "ContentRequest") -> "ContentResponse":
        ...  # pragma: no cover

    async def start_video_job(self, request: "VideoRequest") -> "JobHandle":
        ...  # pragma: no cover

    async def poll_video_job(self, handle: "PendingJob") -> Optional["JobHandle"]:
        ...  # pragma: no cover

    def download_url(self, uri: str) -> str:
        ...  # pragma: no cover
