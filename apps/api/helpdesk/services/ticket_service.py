"""Ticket service - cached reads and visibility rules.

Writes go through workflow_service; everything here is read-only.
"""

import logging
from datetime import datetime

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from helpdesk.core.cache import TicketCache, interactions_key, ticket_key, ticket_list_key
from helpdesk.core.errors import NotFoundError, PermissionDeniedError
from helpdesk.core.permissions import Action, is_allowed, require_permission
from helpdesk.db.enums import Role, TicketState
from helpdesk.db.models import Interaction, Ticket
from helpdesk.schemas.ticket import (
    INTERACTIONS_LIMIT,
    InteractionRead,
    TicketFilters,
    TicketRead,
)

logger = logging.getLogger(__name__)


def _cached_model(cache: TicketCache, key: str, model):
    cached = cache.get(key)
    if cached is None:
        return None
    try:
        if isinstance(cached, list):
            return [model.model_validate(item) for item in cached]
        return model.model_validate(cached)
    except ValidationError:
        logger.warning("Discarding malformed cache entry %s", key)
        cache.invalidate(key)
        return None


# =============================================================================
# Cached reads (no access checks)
# =============================================================================

def get_ticket(db: Session, cache: TicketCache, ticket_id: int) -> TicketRead | None:
    """Read-through: cache first, then the database."""
    key = ticket_key(ticket_id)
    cached = _cached_model(cache, key, TicketRead)
    if cached is not None:
        return cached

    ticket = db.get(Ticket, ticket_id)
    if ticket is None:
        return None
    snapshot = TicketRead.model_validate(ticket)
    cache.set(key, snapshot.model_dump(mode="json"), cache.entity_ttl)
    return snapshot


def refresh_ticket(db: Session, cache: TicketCache, ticket_id: int) -> TicketRead | None:
    """Rewrite the cache entry from the database; drops it if the ticket is gone."""
    key = ticket_key(ticket_id)
    ticket = db.get(Ticket, ticket_id)
    if ticket is None:
        cache.invalidate(key)
        return None
    db.refresh(ticket)
    snapshot = TicketRead.model_validate(ticket)
    cache.set(key, snapshot.model_dump(mode="json"), cache.entity_ttl)
    return snapshot


def list_tickets(db: Session, cache: TicketCache, filters: TicketFilters) -> list[TicketRead]:
    """Equality-filtered tickets, newest first, capped at filters.limit."""
    key = ticket_list_key(filters.model_dump(mode="json"))
    cached = _cached_model(cache, key, TicketRead)
    if cached is not None:
        return cached

    query = select(Ticket)
    if filters.state is not None:
        query = query.where(Ticket.state == filters.state.value)
    if filters.priority is not None:
        query = query.where(Ticket.priority == filters.priority.value)
    if filters.owner_id is not None:
        query = query.where(Ticket.owner_id == filters.owner_id)
    if filters.assignee_id is not None:
        query = query.where(Ticket.assignee_id == filters.assignee_id)
    query = query.order_by(Ticket.created_at.desc(), Ticket.id.desc()).limit(filters.limit)

    tickets = [TicketRead.model_validate(t) for t in db.execute(query).scalars()]
    cache.set(key, [t.model_dump(mode="json") for t in tickets], cache.list_ttl)
    return tickets


def list_interactions(db: Session, cache: TicketCache, ticket_id: int) -> list[InteractionRead]:
    """Full timeline (internal rows included), newest first."""
    key = interactions_key(ticket_id)
    cached = _cached_model(cache, key, InteractionRead)
    if cached is not None:
        return cached

    rows = db.execute(
        select(Interaction)
        .where(Interaction.ticket_id == ticket_id)
        .order_by(Interaction.created_at.desc(), Interaction.id.desc())
        .limit(INTERACTIONS_LIMIT)
    ).scalars()
    interactions = [InteractionRead.model_validate(row) for row in rows]
    cache.set(key, [i.model_dump(mode="json") for i in interactions], cache.list_ttl)
    return interactions


def find_inactive_ticket_ids(db: Session, *, older_than: datetime, limit: int) -> list[int]:
    """Ids of non-closed tickets untouched since `older_than`, oldest first."""
    return list(
        db.execute(
            select(Ticket.id)
            .where(
                Ticket.state != TicketState.CLOSED.value,
                Ticket.updated_at < older_than,
            )
            .order_by(Ticket.updated_at, Ticket.id)
            .limit(limit)
        ).scalars()
    )


# =============================================================================
# Viewer-scoped reads
# =============================================================================

def can_view_ticket(ticket: TicketRead, viewer_id: int, viewer_role: Role | str) -> bool:
    if is_allowed(viewer_role, Action.TICKETS_SELECT_ALL):
        return True
    return ticket.owner_id == viewer_id and is_allowed(viewer_role, Action.TICKETS_SELECT)


def get_ticket_for_viewer(
    db: Session,
    cache: TicketCache,
    *,
    ticket_id: int,
    viewer_id: int,
    viewer_role: Role | str,
) -> TicketRead:
    """
    Raises:
        PermissionDeniedError: viewer may not see this ticket
        NotFoundError: no such ticket
    """
    require_permission(viewer_role, Action.TICKETS_SELECT)
    ticket = get_ticket(db, cache, ticket_id)
    if ticket is None:
        raise NotFoundError(f"Ticket {ticket_id} not found")
    if not can_view_ticket(ticket, viewer_id, viewer_role):
        raise PermissionDeniedError(f"Not allowed to view ticket {ticket_id}")
    return ticket


def list_tickets_for_viewer(
    db: Session,
    cache: TicketCache,
    *,
    filters: TicketFilters,
    viewer_id: int,
    viewer_role: Role | str,
) -> list[TicketRead]:
    """Users without tickets.select_all only ever see their own tickets."""
    require_permission(viewer_role, Action.TICKETS_SELECT)
    if not is_allowed(viewer_role, Action.TICKETS_SELECT_ALL):
        filters = filters.model_copy(update={"owner_id": viewer_id})
    return list_tickets(db, cache, filters)


def list_interactions_for_viewer(
    db: Session,
    cache: TicketCache,
    *,
    ticket_id: int,
    viewer_id: int,
    viewer_role: Role | str,
) -> list[InteractionRead]:
    """Timeline of a visible ticket; internal rows need interactions.view_internal."""
    require_permission(viewer_role, Action.INTERACTIONS_SELECT)
    get_ticket_for_viewer(
        db, cache, ticket_id=ticket_id, viewer_id=viewer_id, viewer_role=viewer_role
    )
    interactions = list_interactions(db, cache, ticket_id)
    if is_allowed(viewer_role, Action.INTERACTIONS_VIEW_INTERNAL):
        return interactions
    return [i for i in interactions if not i.internal_only]
