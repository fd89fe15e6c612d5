"""Pydantic schemas for API request/response models."""

from helpdesk.schemas.auth import LoginRequest, MeResponse, UserSession
from helpdesk.schemas.task import (
    BatchSummary,
    Task,
    TaskEnqueueRequest,
    TaskEnqueueResponse,
)
from helpdesk.schemas.ticket import (
    AssignRequest,
    CloseRequest,
    CommentCreate,
    InteractionListResponse,
    InteractionRead,
    StateChangeRequest,
    TicketCreate,
    TicketFilters,
    TicketListResponse,
    TicketRead,
    WorkflowResult,
)
from helpdesk.schemas.user import (
    OperatorRead,
    UserCreate,
    UserRead,
    UserRegister,
    UserUpdate,
)

__all__ = [
    "AssignRequest",
    "BatchSummary",
    "CloseRequest",
    "CommentCreate",
    "InteractionListResponse",
    "InteractionRead",
    "LoginRequest",
    "MeResponse",
    "OperatorRead",
    "StateChangeRequest",
    "Task",
    "TaskEnqueueRequest",
    "TaskEnqueueResponse",
    "TicketCreate",
    "TicketFilters",
    "TicketListResponse",
    "TicketRead",
    "UserCreate",
    "UserRead",
    "UserRegister",
    "UserSession",
    "UserUpdate",
    "WorkflowResult",
]
