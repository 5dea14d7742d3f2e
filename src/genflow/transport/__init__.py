from .base import (
    CompletedJob,
    ContentRequest,
    ContentResponse,
    FailedJob,
    InlineData,
    JobHandle,
    MockTransport,
    Part,
    PendingJob,
    VideoRequest,
)
from .gemini import GeminiTransport, parse_operation

__all__ = [
    "CompletedJob",
    "ContentRequest",
    "ContentResponse",
    "FailedJob",
    "InlineData",
    "JobHandle",
    "MockTransport",
    "Part",
    "PendingJob",
    "VideoRequest",
    "GeminiTransport",
    "parse_operation",
]
