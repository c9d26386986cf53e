from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field

DEFAULT_BASE_URL = "https://forge-api.nousresearch.com/v1/asyncplanner/completions"


class TaskStatus(str, Enum):
    pending = "pending"
    succeeded = "succeeded"
    failed = "failed"
    cancelled = "cancelled"


class PollerState(str, Enum):
    idle = "idle"
    submitting = "submitting"
    polling = "polling"
    succeeded = "succeeded"
    failed = "failed"
    timed_out = "timed_out"
    transport_errored = "transport_errored"
    cancelled = "cancelled"
    errored = "errored"


TERMINAL_STATES = frozenset(
    {
        PollerState.succeeded,
        PollerState.failed,
        PollerState.timed_out,
        PollerState.transport_errored,
        PollerState.cancelled,
        PollerState.errored,
    }
)


class OutcomeKind(str, Enum):
    succeeded = "succeeded"
    failed = "failed"
    timed_out = "timed_out"


class Task(BaseModel):
    task_id: str
    credential: str = Field(repr=False, exclude=True)
    status: Optional[str] = None
    result: Optional[Any] = None


class PollSession(BaseModel):
    task_id: str
    attempts: int = 0
    max_attempts: int
    interval: float


class PollOutcome(BaseModel):
    kind: OutcomeKind
    attempts: int
    payload: Optional[Any] = None
    reason: Optional[str] = None
    elapsed_time: float = 0.0


class PollingConfig(BaseModel):
    max_attempts: int = 60
    interval: float = 5.0  # 5 minutes in total
    success_status: str = TaskStatus.succeeded.value
    failure_statuses: List[str] = [
        TaskStatus.failed.value,
        TaskStatus.cancelled.value,
    ]


class CompletionOptions(BaseModel):
    reasoning_speed: str = "medium"
    track: bool = True
