"""Pydantic schemas for tickets, interactions, and workflow results."""

from __future__ import annotations

from datetime import datetime

from pydantic import AliasChoices, BaseModel, Field

from helpdesk.db.enums import (
    DEFAULT_TICKET_PRIORITY,
    InteractionType,
    TicketPriority,
    TicketState,
)

DEFAULT_LIST_LIMIT = 50
MAX_LIST_LIMIT = 100
INTERACTIONS_LIMIT = 100


class TicketCreate(BaseModel):
    """Fields a creator supplies; state always starts as open."""

    title: str = Field(..., min_length=3, max_length=200)
    description: str = Field(..., min_length=5)
    priority: TicketPriority = DEFAULT_TICKET_PRIORITY
    category: str | None = Field(None, max_length=100)


class TicketRead(BaseModel):
    """Immutable ticket snapshot (also the cached representation)."""

    id: int
    title: str
    description: str
    owner_id: int
    state: TicketState
    priority: TicketPriority
    category: str | None = None
    assignee_id: int | None = None
    created_at: datetime
    updated_at: datetime
    closed_at: datetime | None = None
    version: int

    model_config = {"from_attributes": True, "frozen": True}


class TicketFilters(BaseModel):
    """Equality filters for ticket list queries."""

    state: TicketState | None = None
    priority: TicketPriority | None = None
    owner_id: int | None = None
    assignee_id: int | None = None
    limit: int = Field(DEFAULT_LIST_LIMIT, ge=1, le=MAX_LIST_LIMIT)


class TicketListResponse(BaseModel):
    tickets: list[TicketRead]
    count: int


class StateChangeRequest(BaseModel):
    state: str
    comment: str | None = Field(None, max_length=5000)


class AssignRequest(BaseModel):
    assignee_id: int


class CloseRequest(BaseModel):
    comment: str | None = Field(None, max_length=5000)


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=10000)
    internal_only: bool = False


class InteractionRead(BaseModel):
    """Immutable timeline entry."""

    id: int
    ticket_id: int
    actor_id: int
    type: InteractionType
    content: str | None = None
    metadata: dict | None = Field(
        None, validation_alias=AliasChoices("details", "metadata")
    )
    created_at: datetime
    internal_only: bool = False

    model_config = {"from_attributes": True, "frozen": True}


class InteractionListResponse(BaseModel):
    interactions: list[InteractionRead]
    count: int


class WorkflowResult(BaseModel):
    """
    Outcome of a workflow mutation.

    `ticket` is the post-write snapshot; `interaction_id` is the audit row
    written in the same transaction.
    """

    ticket: TicketRead
    interaction_id: int
    previous_state: TicketState | None = None
    previous_assignee_id: int | None = None

    model_config = {"frozen": True}
