"""Tickets router - ticket reads, timeline, and workflow mutations."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from helpdesk.core.cache import TicketCache
from helpdesk.core.deps import (
    get_cache,
    get_current_session,
    get_db,
    get_task_queue,
    require_csrf_header,
)
from helpdesk.core.task_queue import TaskQueue
from helpdesk.db.enums import TicketPriority, TicketState
from helpdesk.schemas.auth import UserSession
from helpdesk.schemas.ticket import (
    DEFAULT_LIST_LIMIT,
    MAX_LIST_LIMIT,
    AssignRequest,
    CloseRequest,
    CommentCreate,
    InteractionListResponse,
    StateChangeRequest,
    TicketCreate,
    TicketFilters,
    TicketListResponse,
    TicketRead,
    WorkflowResult,
)
from helpdesk.services import ticket_service, workflow_service

router = APIRouter()


# =============================================================================
# Reads
# =============================================================================

@router.get("", response_model=TicketListResponse)
def list_tickets(
    state: TicketState | None = None,
    priority: TicketPriority | None = None,
    owner_id: int | None = None,
    assignee_id: int | None = None,
    limit: int = Query(DEFAULT_LIST_LIMIT, ge=1, le=MAX_LIST_LIMIT),
    db: Session = Depends(get_db),
    cache: TicketCache = Depends(get_cache),
    session: UserSession = Depends(get_current_session),
) -> TicketListResponse:
    """
    List tickets, newest first.

    Clients only ever see their own tickets; owner_id is forced to the caller.
    """
    filters = TicketFilters(
        state=state,
        priority=priority,
        owner_id=owner_id,
        assignee_id=assignee_id,
        limit=limit,
    )
    tickets = ticket_service.list_tickets_for_viewer(
        db, cache, filters=filters, viewer_id=session.user_id, viewer_role=session.role
    )
    return TicketListResponse(tickets=tickets, count=len(tickets))


@router.get("/{ticket_id}", response_model=TicketRead)
def get_ticket(
    ticket_id: int,
    db: Session = Depends(get_db),
    cache: TicketCache = Depends(get_cache),
    session: UserSession = Depends(get_current_session),
) -> TicketRead:
    return ticket_service.get_ticket_for_viewer(
        db, cache, ticket_id=ticket_id, viewer_id=session.user_id, viewer_role=session.role
    )


@router.get("/{ticket_id}/interactions", response_model=InteractionListResponse)
def list_interactions(
    ticket_id: int,
    db: Session = Depends(get_db),
    cache: TicketCache = Depends(get_cache),
    session: UserSession = Depends(get_current_session),
) -> InteractionListResponse:
    """Ticket timeline, newest first. Internal notes are hidden from clients."""
    interactions = ticket_service.list_interactions_for_viewer(
        db, cache, ticket_id=ticket_id, viewer_id=session.user_id, viewer_role=session.role
    )
    return InteractionListResponse(interactions=interactions, count=len(interactions))


# =============================================================================
# Mutations
# =============================================================================

@router.post(
    "",
    response_model=WorkflowResult,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_ticket(
    body: TicketCreate,
    db: Session = Depends(get_db),
    cache: TicketCache = Depends(get_cache),
    session: UserSession = Depends(get_current_session),
) -> WorkflowResult:
    return workflow_service.create_ticket(
        db, data=body, creator_id=session.user_id, cache=cache, source="web"
    )


@router.post(
    "/{ticket_id}/interactions",
    response_model=WorkflowResult,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def add_comment(
    ticket_id: int,
    body: CommentCreate,
    db: Session = Depends(get_db),
    cache: TicketCache = Depends(get_cache),
    session: UserSession = Depends(get_current_session),
) -> WorkflowResult:
    return workflow_service.add_comment(
        db,
        ticket_id=ticket_id,
        actor_id=session.user_id,
        content=body.content,
        internal_only=body.internal_only,
        cache=cache,
    )


@router.post(
    "/{ticket_id}/state",
    response_model=WorkflowResult,
    dependencies=[Depends(require_csrf_header)],
)
def change_state(
    ticket_id: int,
    body: StateChangeRequest,
    db: Session = Depends(get_db),
    cache: TicketCache = Depends(get_cache),
    queue: TaskQueue = Depends(get_task_queue),
    session: UserSession = Depends(get_current_session),
) -> WorkflowResult:
    return workflow_service.change_state(
        db,
        ticket_id=ticket_id,
        new_state=body.state,
        actor_id=session.user_id,
        comment=body.comment,
        cache=cache,
        queue=queue,
    )


@router.post(
    "/{ticket_id}/assign",
    response_model=WorkflowResult,
    dependencies=[Depends(require_csrf_header)],
)
def assign_ticket(
    ticket_id: int,
    body: AssignRequest,
    db: Session = Depends(get_db),
    cache: TicketCache = Depends(get_cache),
    queue: TaskQueue = Depends(get_task_queue),
    session: UserSession = Depends(get_current_session),
) -> WorkflowResult:
    return workflow_service.assign(
        db,
        ticket_id=ticket_id,
        assignee_id=body.assignee_id,
        actor_id=session.user_id,
        cache=cache,
        queue=queue,
    )


@router.post(
    "/{ticket_id}/close",
    response_model=WorkflowResult,
    dependencies=[Depends(require_csrf_header)],
)
def close_ticket(
    ticket_id: int,
    body: CloseRequest | None = None,
    db: Session = Depends(get_db),
    cache: TicketCache = Depends(get_cache),
    queue: TaskQueue = Depends(get_task_queue),
    session: UserSession = Depends(get_current_session),
) -> WorkflowResult:
    return workflow_service.close(
        db,
        ticket_id=ticket_id,
        actor_id=session.user_id,
        comment=body.comment if body else None,
        cache=cache,
        queue=queue,
    )
