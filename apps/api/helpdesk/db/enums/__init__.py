"""Enum definitions for application constants."""

from helpdesk.db.enums.auth import Role
from helpdesk.db.enums.defaults import (
    DEFAULT_TICKET_PRIORITY,
    DEFAULT_TICKET_STATE,
    DEFAULT_USER_ROLE,
)
from helpdesk.db.enums.permissions import ROLES_CAN_BE_ASSIGNED
from helpdesk.db.enums.tasks import TaskType
from helpdesk.db.enums.tickets import InteractionType, TicketPriority, TicketState

__all__ = [
    "DEFAULT_TICKET_PRIORITY",
    "DEFAULT_TICKET_STATE",
    "DEFAULT_USER_ROLE",
    "InteractionType",
    "ROLES_CAN_BE_ASSIGNED",
    "Role",
    "TaskType",
    "TicketPriority",
    "TicketState",
]
