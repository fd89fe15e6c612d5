"""Pydantic schemas for queued maintenance tasks."""

from pydantic import BaseModel, ConfigDict, Field

from helpdesk.db.enums import TaskType


class Task(BaseModel):
    """A queued maintenance job: type tag + payload + enqueue time (epoch ms)."""
    model_config = ConfigDict(frozen=True)

    type: str
    payload: dict = Field(default_factory=dict)
    timestamp: int


class TaskEnqueueRequest(BaseModel):
    """Request body for queueing a maintenance task."""
    type: TaskType
    payload: dict = Field(default_factory=dict)


class TaskEnqueueResponse(BaseModel):
    """Queued task plus the queue length after the push."""
    task: Task
    pending: int | None


class BatchSummary(BaseModel):
    """Outcome of one batch-consumer invocation."""
    message: str
    processed: int = 0
    errors: int = 0
    skipped: int = 0
    remaining: int = 0
