"""Task handler registry."""

from __future__ import annotations

from typing import Awaitable, Callable

from helpdesk.db.enums import TaskType
from helpdesk.jobs.context import WorkerContext
from helpdesk.jobs.handlers import tickets
from helpdesk.schemas.task import Task

TaskHandler = Callable[[WorkerContext, Task], Awaitable[None]]


class UnknownTaskTypeError(ValueError):
    """No handler is registered for a task type."""


TASK_HANDLERS: dict[str, TaskHandler] = {
    TaskType.REFRESH_TICKET_CACHE.value: tickets.process_refresh_ticket_cache,
    TaskType.CLOSE_INACTIVE_TICKETS.value: tickets.process_close_inactive_tickets,
}


def register_handler(task_type: TaskType | str, handler: TaskHandler) -> None:
    """Register (or replace) the handler for a task type."""
    key = task_type.value if isinstance(task_type, TaskType) else task_type
    TASK_HANDLERS[key] = handler


def resolve_task_handler(task_type: str) -> TaskHandler:
    handler = TASK_HANDLERS.get(task_type)
    if not handler:
        raise UnknownTaskTypeError(f"Unknown task type: {task_type}")
    return handler
