"""Long-running job poller.

Drives the "start job, then poll until done" protocol used for video
generation:

    STARTING -> POLLING -> DONE | FAILED | LOST

Starting is retried under a RetryPolicy; polling is not. A failed or
lost job is reported once and never resubmitted here. Callers may start
over from scratch.
"""

import asyncio
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

import structlog

from genflow.core.exceptions import ContentFilteredError, JobFailedError, JobLostError
from genflow.orchestration.retry import RetryPolicy
from genflow.protocols.progress import ProgressCallback, notify_progress
from genflow.transport.base import FailedJob, JobHandle, PendingJob

log = structlog.get_logger()

DEFAULT_POLL_INTERVAL = 12.0
DEFAULT_START_ATTEMPTS = 5
DEFAULT_START_BASE_DELAY = 8.0


class JobState(str, Enum):
    STARTING = "STARTING"
    POLLING = "POLLING"
    DONE = "DONE"
    FAILED = "FAILED"
    LOST = "LOST"


def _lost(handle: Optional[JobHandle]) -> JobLostError:
    job_name = handle.name if handle is not None else None
    log.error("job_lost", job=job_name, state=JobState.LOST.value)
    return JobLostError(
        "Job Lost: the generation job tracker was lost before it finished. Please try again.",
        job_name=job_name,
    )


async def run_job(
    start_fn: Callable[[], Awaitable[JobHandle]],
    poll_fn: Callable[[PendingJob], Awaitable[Optional[JobHandle]]],
    interval: float = DEFAULT_POLL_INTERVAL,
    on_retry: Optional[ProgressCallback] = None,
    start_policy: Optional[RetryPolicy] = None,
) -> Any:
    """Start a job and poll it to completion.

    Args:
        start_fn: Starts the job and returns its first handle.
        poll_fn: Re-fetches a pending handle; returns None if the backend
            no longer knows the job.
        interval: Seconds to sleep before each poll.
        on_retry: Optional progress sink for start retries and poll ticks.
        start_policy: Retry policy for starting. Defaults to 5 attempts
            with an 8 second base delay.

    Returns:
        The first result payload of the completed job.

    Raises:
        JobLostError: The handle lost its reference or could not be re-fetched.
        JobFailedError: The job completed with an embedded error.
        ContentFilteredError: The job completed without any result.
    """
    policy = start_policy or RetryPolicy(
        max_attempts=DEFAULT_START_ATTEMPTS,
        base_delay=DEFAULT_START_BASE_DELAY,
    )

    handle: Optional[JobHandle] = await policy.execute(start_fn, on_retry)
    log.info("job_started", job=handle.name if handle else None, state=JobState.POLLING.value)

    polls = 0
    while handle is not None and not handle.done:
        await asyncio.sleep(interval)

        if not handle.name:
            break

        refreshed = await poll_fn(handle)
        if refreshed is None:
            raise _lost(handle)

        handle = refreshed
        polls += 1
        log.debug("job_polled", job=handle.name, polls=polls, done=handle.done)
        if not handle.done:
            notify_progress(on_retry, f"Still generating... (check {polls})")

    if handle is None or not handle.done:
        raise _lost(handle)

    if isinstance(handle, FailedJob):
        log.error(
            "job_failed",
            job=handle.name,
            code=handle.code,
            status=handle.status,
            state=JobState.FAILED.value,
        )
        raise JobFailedError(
            handle.name,
            handle.message,
            status_code=handle.code,
            status=handle.status,
        )

    if not handle.results:
        log.warning("job_content_filtered", job=handle.name)
        raise ContentFilteredError(
            "Content Filtered: the job finished but returned no output. "
            "The request was likely blocked by safety filters."
        )

    log.info("job_finished", job=handle.name, polls=polls, state=JobState.DONE.value)
    return handle.results[0]
