"""Ticket and interaction enums."""

from enum import Enum


class TicketState(str, Enum):
    """Ticket lifecycle state."""

    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class TicketPriority(str, Enum):
    """Ticket priority level."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class InteractionType(str, Enum):
    """Kind of entry in a ticket's interaction timeline."""

    COMMENT = "comment"
    STATE_CHANGE = "state_change"
    ASSIGNMENT = "assignment"
    CLOSURE = "closure"
