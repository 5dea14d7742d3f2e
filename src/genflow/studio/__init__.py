"""Generation studio façade and its process-wide accessors."""

from .service import (
    GenerationStudio,
    SpeakerVoice,
    decode_image,
    decode_speech,
    decode_structured,
    get_studio,
    initialize_studio,
    shutdown_studio,
)

__all__ = [
    "GenerationStudio",
    "SpeakerVoice",
    "decode_image",
    "decode_speech",
    "decode_structured",
    "get_studio",
    "initialize_studio",
    "shutdown_studio",
]
