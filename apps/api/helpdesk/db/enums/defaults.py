"""Default enum values used by models and services."""

from helpdesk.db.enums.auth import Role
from helpdesk.db.enums.tickets import TicketPriority, TicketState

DEFAULT_USER_ROLE = Role.CLIENT
DEFAULT_TICKET_STATE = TicketState.OPEN
DEFAULT_TICKET_PRIORITY = TicketPriority.MEDIUM
