"""Role permission helper sets."""

from helpdesk.db.enums.auth import Role

# Roles that can be set as a ticket assignee
ROLES_CAN_BE_ASSIGNED = {Role.OPERATOR, Role.ADMIN}
