"""Metrics router - database counts, cache size, queue depth."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from helpdesk.core.cache import TicketCache
from helpdesk.core.deps import get_cache, get_db, get_task_queue, require_permission
from helpdesk.core.permissions import Action
from helpdesk.core.task_queue import TaskQueue
from helpdesk.schemas.auth import UserSession
from helpdesk.services import metrics_service

router = APIRouter()


@router.get("")
def get_metrics(
    db: Session = Depends(get_db),
    cache: TicketCache = Depends(get_cache),
    queue: TaskQueue = Depends(get_task_queue),
    session: UserSession = Depends(require_permission(Action.METRICS_VIEW)),
) -> dict:
    return metrics_service.get_metrics(db, cache, queue)
