"""Batch router - enqueue and process maintenance tasks.

POST /batch can be called by a cron job or invoked manually.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from helpdesk.core.cache import TicketCache
from helpdesk.core.config import settings
from helpdesk.core.deps import (
    get_cache,
    get_db,
    get_task_queue,
    require_csrf_header,
    require_permission,
)
from helpdesk.core.permissions import Action
from helpdesk.core.task_queue import TaskQueue
from helpdesk.jobs.context import WorkerContext
from helpdesk.schemas.auth import UserSession
from helpdesk.schemas.task import (
    BatchSummary,
    TaskEnqueueRequest,
    TaskEnqueueResponse,
)
from helpdesk.worker import process_batch

router = APIRouter(dependencies=[Depends(require_csrf_header)])


@router.post("", response_model=BatchSummary)
async def run_batch(
    limit: int = Query(settings.BATCH_MAX_TASKS, ge=1, le=100),
    db: Session = Depends(get_db),
    cache: TicketCache = Depends(get_cache),
    queue: TaskQueue = Depends(get_task_queue),
    session: UserSession = Depends(require_permission(Action.TASKS_PROCESS)),
) -> BatchSummary:
    """Process up to `limit` pending tasks."""
    ctx = WorkerContext(db=db, cache=cache, queue=queue)
    return await process_batch(ctx, limit)


@router.post("/tasks", response_model=TaskEnqueueResponse, status_code=202)
def enqueue_task(
    body: TaskEnqueueRequest,
    queue: TaskQueue = Depends(get_task_queue),
    session: UserSession = Depends(require_permission(Action.TASKS_ENQUEUE)),
) -> TaskEnqueueResponse:
    """Queue a maintenance task for the next batch."""
    task = queue.enqueue(body.type, body.payload)
    return TaskEnqueueResponse(task=task, pending=queue.length())
