"""Execution context handed to task handlers."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session

from helpdesk.core.cache import TicketCache
from helpdesk.core.task_queue import TaskQueue


@dataclass
class WorkerContext:
    db: Session
    cache: TicketCache
    queue: TaskQueue
