"""Maintenance task enums."""

from enum import Enum


class TaskType(str, Enum):
    """Types of queued maintenance tasks."""

    REFRESH_TICKET_CACHE = "refresh_ticket_cache"  # Warm ticket:{id} after a mutation
    CLOSE_INACTIVE_TICKETS = "close_inactive_tickets"
