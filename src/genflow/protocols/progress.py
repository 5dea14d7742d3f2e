"""Progress reporting protocol.

Long operations (retry backoff, job polling) report human-readable
progress messages. Callers pass either an object implementing
ProgressSink or a plain ``Callable[[str], None]``.
"""

from __future__ import annotations

from typing import Callable, Optional, Protocol, Union, runtime_checkable


@runtime_checkable
class ProgressSink(Protocol):
    """Receiver of progress messages.

    Implementations must not raise; a failing sink would abort the
    operation it is observing.
    """

    def on_progress(self, message: str) -> None:
        """Handle one progress message."""
        ...  # pragma: no cover


ProgressCallback = Union[ProgressSink, Callable[[str], None]]


def notify_progress(sink: Optional[ProgressCallback], message: str) -> None:
    """Deliver message to sink, whichever form it takes."""
    if sink is None:
        return
    if isinstance(sink, ProgressSink):
        sink.on_progress(message)
    else:
        sink(message)
