"""Data URI helpers.

Images and audio travel between the façade and its callers as
``data:<mime>;base64,<payload>`` strings.
"""

from typing import Optional

from genflow.transport.base import InlineData

DEFAULT_MIME_TYPE = "image/png"


class DataUriError(ValueError):
    """String is not a usable data URI or base64 payload."""


def build_data_uri(mime_type: str, data: str) -> str:
    """Build a base64 data URI."""
    return f"data:{mime_type};base64,{data}"


def split_data_uri(value: str, default_mime_type: Optional[str] = DEFAULT_MIME_TYPE) -> InlineData:
    """Split a data URI into mime type and base64 payload.

    Raw base64 (no ``data:`` prefix) is accepted and tagged with
    ``default_mime_type``.

    Raises:
        DataUriError: If the value is empty, malformed, or raw base64
            arrives without a default mime type.
    """
    if not value:
        raise DataUriError("empty data URI")

    if not value.startswith("data:"):
        if default_mime_type is None:
            raise DataUriError("raw base64 payload needs a mime type")
        return InlineData(mime_type=default_mime_type, data=value)

    header, sep, payload = value.partition(",")
    if not sep or not payload:
        raise DataUriError("data URI has no payload")

    mime_type = header[len("data:"):].split(";", 1)[0] or default_mime_type
    if not mime_type:
        raise DataUriError("data URI has no mime type")

    return InlineData(mime_type=mime_type, data=payload)
