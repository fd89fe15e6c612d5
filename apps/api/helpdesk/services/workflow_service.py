"""Ticket workflow - every mutation paired with its audit interaction.

Each operation:
1. loads the acting user and checks permissions (no writes on failure)
2. reads the ticket's current state and version
3. runs one atomic batch: version-checked UPDATE + INSERT interaction
4. after commit, invalidates cache entries and queues a refresh (best-effort)
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import insert, select, update
from sqlalchemy.orm import Session

from helpdesk.core.cache import TicketCache
from helpdesk.core.errors import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
    PermissionDeniedError,
    QueueError,
)
from helpdesk.core.permissions import Action, is_allowed, require_permission
from helpdesk.core.structured_logging import build_log_context
from helpdesk.core.task_queue import TaskQueue
from helpdesk.db.enums import (
    ROLES_CAN_BE_ASSIGNED,
    InteractionType,
    TaskType,
    TicketState,
)
from helpdesk.db.models import Interaction, Ticket, User
from helpdesk.db.store import BatchResult, BatchStatement, execute_batch
from helpdesk.schemas.ticket import TicketCreate, TicketRead, WorkflowResult
from helpdesk.services import user_service

logger = logging.getLogger(__name__)

tickets_table = Ticket.__table__
interactions_table = Interaction.__table__

TICKET_CREATED_CONTENT = "ticket created"


@dataclass(frozen=True)
class TicketSnapshot:
    """Fields a workflow operation needs from the row it is about to update."""
    id: int
    owner_id: int
    state: TicketState
    assignee_id: int | None
    version: int


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _load_ticket(db: Session, ticket_id: int) -> TicketSnapshot:
    row = db.execute(
        select(
            Ticket.id, Ticket.owner_id, Ticket.state, Ticket.assignee_id, Ticket.version
        ).where(Ticket.id == ticket_id)
    ).one_or_none()
    if row is None:
        raise NotFoundError(f"Ticket {ticket_id} not found")
    return TicketSnapshot(
        id=row.id,
        owner_id=row.owner_id,
        state=TicketState(row.state),
        assignee_id=row.assignee_id,
        version=row.version,
    )


def _parse_state(value: TicketState | str) -> TicketState:
    if isinstance(value, TicketState):
        return value
    try:
        return TicketState(value)
    except ValueError:
        allowed = ", ".join(s.value for s in TicketState)
        raise InvalidInputError(f"Invalid state '{value}'. Must be one of: {allowed}")


def _versioned_update(snapshot: TicketSnapshot, now: datetime, **values) -> BatchStatement:
    """UPDATE that only matches the version read at the start of the operation."""
    return BatchStatement(
        update(tickets_table)
        .where(
            tickets_table.c.id == snapshot.id,
            tickets_table.c.version == snapshot.version,
        )
        .values(updated_at=now, version=snapshot.version + 1, **values),
        expect_rowcount=1,
        conflict_message=f"Ticket {snapshot.id} was modified concurrently; reload and retry",
    )


def _interaction_insert(
    *,
    ticket_id: int,
    actor_id: int,
    interaction_type: InteractionType,
    now: datetime,
    content: str | None = None,
    metadata: dict | None = None,
    internal_only: bool = False,
) -> BatchStatement:
    return BatchStatement(
        insert(interactions_table).values(
            ticket_id=ticket_id,
            actor_id=actor_id,
            type=interaction_type.value,
            content=content,
            metadata=metadata,
            created_at=now,
            internal_only=internal_only,
        )
    )


def _reload(db: Session, ticket_id: int) -> TicketRead:
    ticket = db.get(Ticket, ticket_id)
    db.refresh(ticket)
    return TicketRead.model_validate(ticket)


def _after_write(
    cache: TicketCache,
    queue: TaskQueue | None,
    *,
    ticket_id: int,
    owner_id: int,
    refresh: bool = True,
) -> None:
    """Post-commit side effects. Failures are logged, never raised."""
    cache.invalidate_ticket(ticket_id, owner_id)
    if not refresh or queue is None:
        return
    try:
        queue.enqueue(TaskType.REFRESH_TICKET_CACHE, {"ticket_id": ticket_id})
    except QueueError:
        logger.warning(
            "Could not queue cache refresh for ticket %s",
            ticket_id,
            exc_info=True,
            extra=build_log_context(
                ticket_id=ticket_id, task_type=TaskType.REFRESH_TICKET_CACHE.value
            ),
        )


# =============================================================================
# Create
# =============================================================================

def create_ticket(
    db: Session,
    *,
    data: TicketCreate,
    creator_id: int,
    cache: TicketCache,
    source: str = "api",
) -> WorkflowResult:
    """
    Open a ticket owned by the creator, with a "ticket created" comment.

    Raises:
        NotFoundError / PermissionDeniedError: unknown or deactivated creator
        InvalidInputError: blank title or description
        StoreError: batch failed, nothing applied
    """
    creator = user_service.require_active_user(db, creator_id)
    require_permission(creator.role, Action.TICKETS_INSERT)

    title = data.title.strip()
    description = data.description.strip()
    if len(title) < 3:
        raise InvalidInputError("Title must be at least 3 characters")
    if len(description) < 5:
        raise InvalidInputError("Description must be at least 5 characters")

    now = _utcnow()
    statements = [
        BatchStatement(
            insert(tickets_table).values(
                title=title,
                description=description,
                owner_id=creator.id,
                state=TicketState.OPEN.value,
                priority=data.priority.value,
                category=data.category,
                assignee_id=None,
                created_at=now,
                updated_at=now,
                closed_at=None,
                version=1,
            )
        ),
        BatchStatement(
            lambda results: insert(interactions_table).values(
                ticket_id=results[0].inserted_id,
                actor_id=creator.id,
                type=InteractionType.COMMENT.value,
                content=TICKET_CREATED_CONTENT,
                metadata={"created_from": source},
                created_at=now,
                internal_only=False,
            )
        ),
    ]
    results = execute_batch(db, statements)
    ticket_id = results[0].inserted_id

    cache.invalidate_ticket_lists(creator.id)
    logger.info(
        "Ticket %s created by user %s",
        ticket_id,
        creator.id,
        extra=build_log_context(user_id=creator.id, ticket_id=ticket_id),
    )
    return WorkflowResult(ticket=_reload(db, ticket_id), interaction_id=results[1].inserted_id)


# =============================================================================
# State transitions
# =============================================================================

def _transition(
    db: Session,
    *,
    snapshot: TicketSnapshot,
    actor: User,
    target: TicketState,
    interaction_type: InteractionType,
    comment: str | None,
    cache: TicketCache,
    queue: TaskQueue | None,
) -> WorkflowResult:
    if target == TicketState.CLOSED and snapshot.state == TicketState.CLOSED:
        raise ConflictError(f"Ticket {snapshot.id} is already closed")

    now = _utcnow()
    results: list[BatchResult] = execute_batch(db, [
        _versioned_update(
            snapshot,
            now,
            state=target.value,
            closed_at=now if target == TicketState.CLOSED else None,
        ),
        _interaction_insert(
            ticket_id=snapshot.id,
            actor_id=actor.id,
            interaction_type=interaction_type,
            now=now,
            content=comment,
            metadata={"previous": snapshot.state.value, "new": target.value},
        ),
    ])

    _after_write(cache, queue, ticket_id=snapshot.id, owner_id=snapshot.owner_id)
    logger.info(
        "Ticket %s moved %s -> %s by user %s",
        snapshot.id,
        snapshot.state.value,
        target.value,
        actor.id,
        extra=build_log_context(user_id=actor.id, ticket_id=snapshot.id),
    )
    return WorkflowResult(
        ticket=_reload(db, snapshot.id),
        interaction_id=results[1].inserted_id,
        previous_state=snapshot.state,
    )


def change_state(
    db: Session,
    *,
    ticket_id: int,
    new_state: TicketState | str,
    actor_id: int,
    cache: TicketCache,
    queue: TaskQueue | None = None,
    comment: str | None = None,
) -> WorkflowResult:
    """
    Move a ticket to any state (always a state_change interaction).

    Targeting `closed` stamps closed_at; leaving `closed` reopens and clears it.

    Raises:
        PermissionDeniedError: actor lacks tickets.update
        InvalidInputError: unknown state
        NotFoundError: no such ticket
        ConflictError: stale version, or closing an already-closed ticket
        StoreError: batch failed, nothing applied
    """
    actor = user_service.require_active_user(db, actor_id)
    require_permission(actor.role, Action.TICKETS_UPDATE)
    target = _parse_state(new_state)
    snapshot = _load_ticket(db, ticket_id)
    return _transition(
        db,
        snapshot=snapshot,
        actor=actor,
        target=target,
        interaction_type=InteractionType.STATE_CHANGE,
        comment=comment,
        cache=cache,
        queue=queue,
    )


def close(
    db: Session,
    *,
    ticket_id: int,
    actor_id: int,
    cache: TicketCache,
    queue: TaskQueue | None = None,
    comment: str | None = None,
) -> WorkflowResult:
    """Close a ticket (closure interaction, closed_at = now)."""
    actor = user_service.require_active_user(db, actor_id)
    require_permission(actor.role, Action.TICKETS_UPDATE)
    snapshot = _load_ticket(db, ticket_id)
    return _transition(
        db,
        snapshot=snapshot,
        actor=actor,
        target=TicketState.CLOSED,
        interaction_type=InteractionType.CLOSURE,
        comment=comment,
        cache=cache,
        queue=queue,
    )


# =============================================================================
# Assignment
# =============================================================================

def assign(
    db: Session,
    *,
    ticket_id: int,
    assignee_id: int,
    actor_id: int,
    cache: TicketCache,
    queue: TaskQueue | None = None,
) -> WorkflowResult:
    """
    Set the operator responsible for a ticket.

    Raises:
        PermissionDeniedError: actor lacks tickets.assign
        NotFoundError: no such ticket or assignee
        InvalidInputError: assignee inactive or not an operator/admin
        ConflictError: stale version
    """
    actor = user_service.require_active_user(db, actor_id)
    require_permission(actor.role, Action.TICKETS_ASSIGN)
    snapshot = _load_ticket(db, ticket_id)

    assignee = user_service.get_user(db, assignee_id)
    if assignee is None:
        raise NotFoundError(f"User {assignee_id} not found")
    if not assignee.active:
        raise InvalidInputError(f"User {assignee_id} is deactivated")
    if assignee.role not in {role.value for role in ROLES_CAN_BE_ASSIGNED}:
        raise InvalidInputError(f"User {assignee_id} cannot be assigned tickets")

    now = _utcnow()
    results = execute_batch(db, [
        _versioned_update(snapshot, now, assignee_id=assignee.id),
        _interaction_insert(
            ticket_id=snapshot.id,
            actor_id=actor.id,
            interaction_type=InteractionType.ASSIGNMENT,
            now=now,
            metadata={"assignee": assignee.id, "previous_assignee": snapshot.assignee_id},
        ),
    ])

    _after_write(cache, queue, ticket_id=snapshot.id, owner_id=snapshot.owner_id)
    logger.info(
        "Ticket %s assigned to user %s by user %s",
        snapshot.id,
        assignee.id,
        actor.id,
        extra=build_log_context(user_id=actor.id, ticket_id=snapshot.id),
    )
    return WorkflowResult(
        ticket=_reload(db, snapshot.id),
        interaction_id=results[1].inserted_id,
        previous_state=snapshot.state,
        previous_assignee_id=snapshot.assignee_id,
    )


# =============================================================================
# Comments
# =============================================================================

def add_comment(
    db: Session,
    *,
    ticket_id: int,
    actor_id: int,
    content: str,
    cache: TicketCache,
    internal_only: bool = False,
) -> WorkflowResult:
    """
    Append a comment to a ticket's timeline.

    Raises:
        PermissionDeniedError: missing interactions.insert, internal note without
            interactions.create_internal, or commenting on someone else's ticket
            without tickets.select_all
        InvalidInputError: empty content
        NotFoundError: no such ticket
    """
    actor = user_service.require_active_user(db, actor_id)
    require_permission(actor.role, Action.INTERACTIONS_INSERT)
    if internal_only:
        require_permission(actor.role, Action.INTERACTIONS_CREATE_INTERNAL)

    text = content.strip()
    if not text:
        raise InvalidInputError("Comment content must not be empty")

    snapshot = _load_ticket(db, ticket_id)
    if snapshot.owner_id != actor.id and not is_allowed(actor.role, Action.TICKETS_SELECT_ALL):
        raise PermissionDeniedError(f"Not allowed to comment on ticket {ticket_id}")

    now = _utcnow()
    results = execute_batch(db, [
        _versioned_update(snapshot, now),
        _interaction_insert(
            ticket_id=snapshot.id,
            actor_id=actor.id,
            interaction_type=InteractionType.COMMENT,
            now=now,
            content=text,
            internal_only=internal_only,
        ),
    ])

    _after_write(cache, None, ticket_id=snapshot.id, owner_id=snapshot.owner_id, refresh=False)
    return WorkflowResult(
        ticket=_reload(db, snapshot.id),
        interaction_id=results[1].inserted_id,
        previous_state=snapshot.state,
    )
