"""Transport data model for genflow.

A transport is the only component that talks to the generation backend.
This module holds the request/response dataclasses every transport
speaks, the long-running job handle union, and a scriptable mock
transport for tests.

Classes:
    InlineData: Base64 payload with its mime type.
    Part: One piece of request or response content (text or inline data).
    ContentRequest: One-shot generateContent request.
    ContentResponse: Decoded one-shot response.
    VideoRequest: Request that starts a long-running video job.
    PendingJob / CompletedJob / FailedJob: Long-running job handle variants.
    MockTransport: Scripted transport for testing.
"""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional, Union

from genflow.core.exceptions import TransportError


@dataclass(frozen=True)
class InlineData:
    """Base64-encoded binary content.

    Attributes:
        mime_type: MIME type of the decoded bytes.
        data: Base64 string (no data-URI prefix).
    """

    mime_type: str
    data: str


@dataclass(frozen=True)
class Part:
    """One content part. Exactly one of text/inline_data is set."""

    text: Optional[str] = None
    inline_data: Optional[InlineData] = None

    def __post_init__(self) -> None:
        if (self.text is None) == (self.inline_data is None):
            raise ValueError("Part needs exactly one of text or inline_data")

    @classmethod
    def from_text(cls, text: str) -> "Part":
        return cls(text=text)

    @classmethod
    def from_inline(cls, mime_type: str, data: str) -> "Part":
        return cls(inline_data=InlineData(mime_type=mime_type, data=data))


@dataclass
class ContentRequest:
    """Request for a one-shot generateContent call.

    Attributes:
        model: Backend model identifier.
        parts: Ordered content parts sent as the single user turn.
        system_instruction: Optional system prompt.
        response_mime_type: e.g. "application/json" for structured output.
        response_schema: Opaque JSON schema for structured output.
        response_modalities: e.g. ["AUDIO"] for speech.
        image_config: Opaque image options (aspect ratio, size).
        speech_config: Opaque speech options (voices).
        safety_settings: Opaque safety thresholds.
    """

    model: str
    parts: List[Part]
    system_instruction: Optional[str] = None
    response_mime_type: Optional[str] = None
    response_schema: Optional[Dict[str, Any]] = None
    response_modalities: Optional[List[str]] = None
    image_config: Optional[Dict[str, Any]] = None
    speech_config: Optional[Dict[str, Any]] = None
    safety_settings: Optional[List[Dict[str, str]]] = None

    def __post_init__(self) -> None:
        if not self.model:
            raise ValueError("model cannot be empty")
        if not self.parts:
            raise ValueError("parts cannot be empty")


@dataclass
class ContentResponse:
    """Decoded one-shot response (first candidate only).

    Attributes:
        parts: Content parts of the first candidate.
        finish_reason: Optional backend finish reason.
        model: Model that produced the response.
    """

    parts: List[Part] = field(default_factory=list)
    finish_reason: Optional[str] = None
    model: Optional[str] = None

    @property
    def text(self) -> str:
        """Concatenated text of all text parts."""
        return "".join(part.text for part in self.parts if part.text is not None)

    def first_inline_data(self) -> Optional[InlineData]:
        for part in self.parts:
            if part.inline_data is not None:
                return part.inline_data
        return None


@dataclass
class VideoRequest:
    """Request that starts a long-running video job."""

    model: str
    prompt: str
    image: Optional[InlineData] = None
    aspect_ratio: str = "16:9"
    resolution: str = "720p"
    number_of_videos: int = 1


# === Long-running job handle ===


@dataclass(frozen=True)
class PendingJob:
    """Job still running. ``name`` is the backend's tracking reference."""

    name: Optional[str]
    done: bool = field(default=False, init=False)


@dataclass(frozen=True)
class CompletedJob:
    """Job finished. ``results`` may be empty when output was withheld."""

    name: Optional[str]
    results: List[Any] = field(default_factory=list)
    done: bool = field(default=True, init=False)


@dataclass(frozen=True)
class FailedJob:
    """Job finished with an embedded error."""

    name: Optional[str]
    message: str
    code: Optional[int] = None
    status: Optional[str] = None
    done: bool = field(default=True, init=False)


JobHandle = Union[PendingJob, CompletedJob, FailedJob]


class MockTransport:
    """Scripted transport for testing.

    Each call pops the next scripted outcome from the matching script. An
    outcome that is an exception instance is raised; anything else is
    returned. When a script runs dry the default outcome is used.

    Attributes:
        requests: Every ContentRequest received, in order.
        video_requests: Every VideoRequest received, in order.
        polled: Every handle passed to poll_video_job, in order.
    """

    def __init__(
        self,
        default_response: Optional[ContentResponse] = None,
        download_suffix: str = "",
    ) -> None:
        self._default_response = default_response or ContentResponse(
            parts=[Part.from_text("Mock response")]
        )
        self._download_suffix = download_suffix
        self._content_script: Deque[Any] = deque()
        self._start_script: Deque[Any] = deque()
        self._poll_script: Deque[Any] = deque()
        self._lock = threading.Lock()
        self.requests: List[ContentRequest] = []
        self.video_requests: List[VideoRequest] = []
        self.polled: List[JobHandle] = []

    def script_content(self, *outcomes: Any) -> "MockTransport":
        self._content_script.extend(outcomes)
        return self

    def script_start(self, *outcomes: Any) -> "MockTransport":
        self._start_script.extend(outcomes)
        return self

    def script_poll(self, *outcomes: Any) -> "MockTransport":
        self._poll_script.extend(outcomes)
        return self

    @property
    def call_count(self) -> int:
        with self._lock:
            return len(self.requests)

    def _next(self, script: Deque[Any], default: Any) -> Any:
        with self._lock:
            outcome = script.popleft() if script else default
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def generate_content(self, request: ContentRequest) -> ContentResponse:
        with self._lock:
            self.requests.append(request)
        return self._next(self._content_script, self._default_response)

    async def start_video_job(self, request: VideoRequest) -> JobHandle:
        with self._lock:
            self.video_requests.append(request)
        return self._next(
            self._start_script,
            TransportError("No scripted start outcome", status_code=404),
        )

    async def poll_video_job(self, handle: PendingJob) -> Optional[JobHandle]:
        with self._lock:
            self.polled.append(handle)
        return self._next(self._poll_script, None)

    def download_url(self, uri: str) -> str:
        return f"{uri}{self._download_suffix}"
