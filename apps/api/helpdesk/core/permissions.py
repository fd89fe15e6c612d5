"""Permission registry and role grants.

Every action is an `Action` member with a label and description for the UI.
Role grants are static: a role either holds an action or it does not.

Admin role: always has all permissions.
Unknown role or action: denied (fail-closed).
"""

from dataclasses import dataclass
from enum import Enum

from helpdesk.core.errors import PermissionDeniedError
from helpdesk.db.enums import Role


class Action(str, Enum):
    """Permission-gated actions."""
    USERS_SELECT = "users.select"
    USERS_INSERT = "users.insert"
    USERS_UPDATE = "users.update"
    TICKETS_SELECT = "tickets.select"
    TICKETS_SELECT_ALL = "tickets.select_all"
    TICKETS_INSERT = "tickets.insert"
    TICKETS_UPDATE = "tickets.update"
    TICKETS_ASSIGN = "tickets.assign"
    INTERACTIONS_SELECT = "interactions.select"
    INTERACTIONS_INSERT = "interactions.insert"
    INTERACTIONS_CREATE_INTERNAL = "interactions.create_internal"
    INTERACTIONS_VIEW_INTERNAL = "interactions.view_internal"
    TASKS_ENQUEUE = "tasks.enqueue"
    TASKS_PROCESS = "tasks.process"
    METRICS_VIEW = "metrics.view"


class PermissionCategory(str, Enum):
    """Permission categories for UI grouping."""
    USERS = "Users"
    TICKETS = "Tickets"
    INTERACTIONS = "Interactions"
    OPERATIONS = "Operations"


@dataclass(frozen=True)
class PermissionDef:
    """Permission definition with metadata."""
    action: Action
    label: str
    description: str
    category: PermissionCategory


# =============================================================================
# Permission Registry
# =============================================================================

PERMISSION_REGISTRY: dict[Action, PermissionDef] = {
    # Users
    Action.USERS_SELECT: PermissionDef(
        Action.USERS_SELECT, "View Users",
        "List operators and look up user profiles", PermissionCategory.USERS
    ),
    Action.USERS_INSERT: PermissionDef(
        Action.USERS_INSERT, "Create Users",
        "Create accounts with any role", PermissionCategory.USERS
    ),
    Action.USERS_UPDATE: PermissionDef(
        Action.USERS_UPDATE, "Edit Users",
        "Rename and deactivate accounts", PermissionCategory.USERS
    ),

    # Tickets
    Action.TICKETS_SELECT: PermissionDef(
        Action.TICKETS_SELECT, "View Own Tickets",
        "See tickets you opened", PermissionCategory.TICKETS
    ),
    Action.TICKETS_SELECT_ALL: PermissionDef(
        Action.TICKETS_SELECT_ALL, "View All Tickets",
        "See every ticket regardless of owner", PermissionCategory.TICKETS
    ),
    Action.TICKETS_INSERT: PermissionDef(
        Action.TICKETS_INSERT, "Open Tickets",
        "Create new tickets", PermissionCategory.TICKETS
    ),
    Action.TICKETS_UPDATE: PermissionDef(
        Action.TICKETS_UPDATE, "Change Ticket State",
        "Move tickets through the workflow, including closing", PermissionCategory.TICKETS
    ),
    Action.TICKETS_ASSIGN: PermissionDef(
        Action.TICKETS_ASSIGN, "Assign Tickets",
        "Set the operator responsible for a ticket", PermissionCategory.TICKETS
    ),

    # Interactions
    Action.INTERACTIONS_SELECT: PermissionDef(
        Action.INTERACTIONS_SELECT, "View Timeline",
        "Read a ticket's interaction timeline", PermissionCategory.INTERACTIONS
    ),
    Action.INTERACTIONS_INSERT: PermissionDef(
        Action.INTERACTIONS_INSERT, "Comment",
        "Add comments to a ticket", PermissionCategory.INTERACTIONS
    ),
    Action.INTERACTIONS_CREATE_INTERNAL: PermissionDef(
        Action.INTERACTIONS_CREATE_INTERNAL, "Add Internal Notes",
        "Add comments hidden from clients", PermissionCategory.INTERACTIONS
    ),
    Action.INTERACTIONS_VIEW_INTERNAL: PermissionDef(
        Action.INTERACTIONS_VIEW_INTERNAL, "View Internal Notes",
        "Read comments hidden from clients", PermissionCategory.INTERACTIONS
    ),

    # Operations
    Action.TASKS_ENQUEUE: PermissionDef(
        Action.TASKS_ENQUEUE, "Queue Maintenance Tasks",
        "Schedule background maintenance", PermissionCategory.OPERATIONS
    ),
    Action.TASKS_PROCESS: PermissionDef(
        Action.TASKS_PROCESS, "Run Maintenance Batch",
        "Process pending maintenance tasks", PermissionCategory.OPERATIONS
    ),
    Action.METRICS_VIEW: PermissionDef(
        Action.METRICS_VIEW, "View Metrics",
        "Ticket counts, cache and queue stats", PermissionCategory.OPERATIONS
    ),
}


# =============================================================================
# Role Grants
# =============================================================================

ROLE_PERMISSIONS: dict[Role, frozenset[Action]] = {
    Role.CLIENT: frozenset({
        Action.TICKETS_SELECT,
        Action.TICKETS_INSERT,
        Action.INTERACTIONS_SELECT,
        Action.INTERACTIONS_INSERT,
    }),
    Role.OPERATOR: frozenset({
        Action.USERS_SELECT,
        Action.TICKETS_SELECT,
        Action.TICKETS_SELECT_ALL,
        Action.TICKETS_INSERT,
        Action.TICKETS_UPDATE,
        Action.TICKETS_ASSIGN,
        Action.INTERACTIONS_SELECT,
        Action.INTERACTIONS_INSERT,
        Action.INTERACTIONS_CREATE_INTERNAL,
        Action.INTERACTIONS_VIEW_INTERNAL,
        Action.METRICS_VIEW,
    }),
    Role.ADMIN: frozenset(Action),  # All permissions
}


# =============================================================================
# Helper Functions
# =============================================================================

def _coerce_role(role: Role | str) -> Role | None:
    if isinstance(role, Role):
        return role
    if isinstance(role, str) and Role.has_value(role):
        return Role(role)
    return None


def _coerce_action(action: Action | str) -> Action | None:
    if isinstance(action, Action):
        return action
    try:
        return Action(action)
    except ValueError:
        return None


def is_allowed(role: Role | str, action: Action | str) -> bool:
    """Check if a role grants an action. Unknown role or action is denied."""
    resolved_role = _coerce_role(role)
    resolved_action = _coerce_action(action)
    if resolved_role is None or resolved_action is None:
        return False
    return resolved_action in ROLE_PERMISSIONS.get(resolved_role, frozenset())


def require_permission(role: Role | str, action: Action | str) -> None:
    """
    Guard for state-mutating operations.

    Raises:
        PermissionDeniedError: role does not grant action (terminal, not retryable)
    """
    if not is_allowed(role, action):
        role_label = role.value if isinstance(role, Role) else role
        action_label = action.value if isinstance(action, Action) else action
        raise PermissionDeniedError(
            f"Role '{role_label}' is not allowed to perform '{action_label}'"
        )


def get_role_permissions(role: Role | str) -> frozenset[Action]:
    """Get the actions granted to a role (empty for unknown roles)."""
    resolved_role = _coerce_role(role)
    if resolved_role is None:
        return frozenset()
    return ROLE_PERMISSIONS.get(resolved_role, frozenset())


def get_all_permissions() -> list[PermissionDef]:
    """Get all permissions sorted by category."""
    return sorted(PERMISSION_REGISTRY.values(), key=lambda p: (p.category.value, p.action.value))
