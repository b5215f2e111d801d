"""Job queue - durable re-evaluation jobs and the bounded worker loop."""

from .errors import JobError, classify_error
from .events import EventBroadcaster, channel_for
from .service import ClaimedJob, JobOutcome, JobQueue
from .worker import EvaluationWorker, WorkerReport, run_worker

__all__ = [
    "JobError",
    "classify_error",
    "EventBroadcaster",
    "channel_for",
    "ClaimedJob",
    "JobOutcome",
    "JobQueue",
    "EvaluationWorker",
    "WorkerReport",
    "run_worker",
]
