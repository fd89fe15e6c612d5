"""Ticket maintenance task handlers."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from helpdesk.core.config import settings
from helpdesk.core.errors import ConflictError
from helpdesk.core.structured_logging import build_log_context
from helpdesk.db.enums import TaskType
from helpdesk.services import ticket_service, workflow_service

logger = logging.getLogger(__name__)

DEFAULT_CLOSE_LIMIT = 100


def _int_field(payload: dict, name: str, default: int | None = None) -> int | None:
    raw = payload.get(name, default)
    if raw is None:
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid {name} in task payload: {raw!r}")


async def process_refresh_ticket_cache(ctx, task) -> None:
    """
    Re-read a ticket and repopulate its cache entry.

    Payload:
        - ticket_id: ticket to refresh
    """
    ticket_id = _int_field(task.payload, "ticket_id")
    if ticket_id is None:
        raise ValueError("Missing ticket_id in task payload")

    snapshot = ticket_service.refresh_ticket(ctx.db, ctx.cache, ticket_id)
    if snapshot is None:
        logger.info("Ticket %s no longer exists; dropped its cache entry", ticket_id)
        return
    logger.debug("Refreshed cache for ticket %s", ticket_id)


async def process_close_inactive_tickets(ctx, task) -> None:
    """
    Close tickets that have not been touched for `days`.

    Payload:
        - days: inactivity threshold (default INACTIVE_TICKET_DAYS)
        - limit: max tickets to close in one run (default 100)
        - actor_id: user recorded on the closure (default MAINTENANCE_ACTOR_ID)
    """
    payload = task.payload or {}
    days = _int_field(payload, "days", settings.INACTIVE_TICKET_DAYS)
    limit = _int_field(payload, "limit", DEFAULT_CLOSE_LIMIT)
    actor_id = _int_field(payload, "actor_id", settings.MAINTENANCE_ACTOR_ID)
    if actor_id is None:
        raise ValueError("No actor_id in payload and MAINTENANCE_ACTOR_ID is not set")

    cutoff = datetime.now(timezone.utc) - timedelta(days=days)
    ticket_ids = ticket_service.find_inactive_ticket_ids(ctx.db, older_than=cutoff, limit=limit)
    logger.info("Closing %d tickets inactive for %d days", len(ticket_ids), days)

    closed = 0
    for ticket_id in ticket_ids:
        try:
            workflow_service.close(
                ctx.db,
                ticket_id=ticket_id,
                actor_id=actor_id,
                cache=ctx.cache,
                queue=ctx.queue,
                comment=f"Closed automatically after {days} days without activity",
            )
            closed += 1
        except ConflictError:
            # Touched or closed since the scan
            logger.info(
                "Skipped ticket %s: changed since inactivity scan",
                ticket_id,
                extra=build_log_context(
                    ticket_id=ticket_id, task_type=TaskType.CLOSE_INACTIVE_TICKETS.value
                ),
            )

    logger.info("Closed %d of %d inactive tickets", closed, len(ticket_ids))
