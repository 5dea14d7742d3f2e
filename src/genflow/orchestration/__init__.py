from .classifier import ErrorCategory, ErrorClassification, classify, extract_status_code
from .retry import RetryPolicy, with_retry
from .task_queue import QueuedTask, TaskQueue
from .job_poller import JobState, run_job
from .strategy import Strategy, StrategyChain, stops_fallback
from .translate import translate_error

__all__ = [
    "ErrorCategory",
    "ErrorClassification",
    "classify",
    "extract_status_code",
    "RetryPolicy",
    "with_retry",
    "QueuedTask",
    "TaskQueue",
    "JobState",
    "run_job",
    "Strategy",
    "StrategyChain",
    "stops_fallback",
    "translate_error",
]
