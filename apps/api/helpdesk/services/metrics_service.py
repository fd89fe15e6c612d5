"""Operational metrics: table counts, cache size, queue depth."""

import logging
import time

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from helpdesk.core.cache import TicketCache
from helpdesk.core.errors import QueueError
from helpdesk.core.task_queue import TaskQueue
from helpdesk.db.models import Interaction, Ticket, User

logger = logging.getLogger(__name__)


def _count_by(db: Session, column) -> dict[str, int]:
    rows = db.execute(select(column, func.count()).group_by(column)).all()
    return {value: count for value, count in rows}


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def get_database_metrics(db: Session) -> dict:
    """Row counts per table plus state/priority/type breakdowns."""
    started = time.perf_counter()
    try:
        users_total = db.execute(select(func.count(User.id))).scalar() or 0
        users_active = (
            db.execute(select(func.count(User.id)).where(User.active.is_(True))).scalar() or 0
        )
        tickets_total = db.execute(select(func.count(Ticket.id))).scalar() or 0
        interactions_total = db.execute(select(func.count(Interaction.id))).scalar() or 0
        return {
            "status": "ok",
            "latency_ms": _elapsed_ms(started),
            "users": {"count": users_total, "active": users_active},
            "tickets": {
                "count": tickets_total,
                "by_state": _count_by(db, Ticket.state),
                "by_priority": _count_by(db, Ticket.priority),
            },
            "interactions": {
                "count": interactions_total,
                "by_type": _count_by(db, Interaction.type),
            },
        }
    except SQLAlchemyError:
        db.rollback()
        logger.error("Failed to collect database metrics", exc_info=True)
        return {"status": "error", "latency_ms": _elapsed_ms(started)}


def get_cache_metrics(cache: TicketCache, queue: TaskQueue) -> dict:
    """Cache key count and pending task count; either is None when unreachable."""
    started = time.perf_counter()
    keys = cache.size()
    try:
        pending = queue.length()
    except QueueError:
        logger.warning("Failed to read task queue length", exc_info=True)
        pending = None
    status = "ok" if keys is not None and pending is not None else "error"
    return {
        "status": status,
        "latency_ms": _elapsed_ms(started),
        "keys": keys,
        "pending_tasks": pending,
    }


def get_metrics(db: Session, cache: TicketCache, queue: TaskQueue) -> dict:
    return {
        "database": get_database_metrics(db),
        "cache": get_cache_metrics(cache, queue),
    }
