"""
genflow - Resilient orchestration for generative media backends

Queues, retries, polls and translates failures for text, image, speech
and video generation calls.
"""

from genflow.core.exceptions import ErrorKind, GenerationError
from genflow.protocols import GenerationTransport, ProgressSink
from genflow.studio import GenerationStudio, get_studio, initialize_studio, shutdown_studio

__version__ = "0.1.0"

__all__ = [
    "ErrorKind",
    "GenerationError",
    "GenerationTransport",
    "ProgressSink",
    "GenerationStudio",
    "get_studio",
    "initialize_studio",
    "shutdown_studio",
]
