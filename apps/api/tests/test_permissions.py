"""
Role grant tests.

Tests cover:
- Admin holds every action
- Client / operator grant boundaries
- Unknown roles and actions are denied (fail-closed)
- require_permission raises a Forbidden-tagged error
"""

import pytest

from helpdesk.core.errors import PermissionDeniedError
from helpdesk.core.permissions import (
    PERMISSION_REGISTRY,
    Action,
    get_all_permissions,
    get_role_permissions,
    is_allowed,
    require_permission,
)
from helpdesk.db.enums import Role


@pytest.mark.parametrize("action", list(Action))
def test_admin_has_every_action(action):
    assert is_allowed(Role.ADMIN, action)


def test_client_grants():
    assert get_role_permissions(Role.CLIENT) == {
        Action.TICKETS_SELECT,
        Action.TICKETS_INSERT,
        Action.INTERACTIONS_SELECT,
        Action.INTERACTIONS_INSERT,
    }


def test_client_cannot_move_or_assign_tickets():
    assert not is_allowed(Role.CLIENT, Action.TICKETS_UPDATE)
    assert not is_allowed(Role.CLIENT, Action.TICKETS_ASSIGN)
    assert not is_allowed(Role.CLIENT, Action.TICKETS_SELECT_ALL)
    assert not is_allowed(Role.CLIENT, Action.INTERACTIONS_VIEW_INTERNAL)


def test_operator_works_queue_but_not_users_or_tasks():
    assert is_allowed(Role.OPERATOR, Action.TICKETS_UPDATE)
    assert is_allowed(Role.OPERATOR, Action.TICKETS_ASSIGN)
    assert is_allowed(Role.OPERATOR, Action.INTERACTIONS_CREATE_INTERNAL)
    assert is_allowed(Role.OPERATOR, Action.METRICS_VIEW)
    assert not is_allowed(Role.OPERATOR, Action.USERS_UPDATE)
    assert not is_allowed(Role.OPERATOR, Action.USERS_INSERT)
    assert not is_allowed(Role.OPERATOR, Action.TASKS_PROCESS)


def test_string_role_and_action_accepted():
    assert is_allowed("operator", "tickets.update")
    assert not is_allowed("client", "tickets.update")


def test_unknown_role_denied():
    assert not is_allowed("superuser", Action.TICKETS_SELECT)
    assert get_role_permissions("superuser") == frozenset()


def test_unknown_action_denied():
    assert not is_allowed(Role.ADMIN, "tickets.delete")


def test_require_permission_raises_forbidden():
    with pytest.raises(PermissionDeniedError) as exc_info:
        require_permission(Role.CLIENT, Action.TICKETS_UPDATE)

    assert exc_info.value.code == "Forbidden"
    assert exc_info.value.status_code == 403
    assert "tickets.update" in exc_info.value.message


def test_require_permission_passes_when_granted():
    require_permission(Role.OPERATOR, Action.TICKETS_UPDATE)


def test_registry_covers_every_action():
    assert set(PERMISSION_REGISTRY) == set(Action)
    assert len(get_all_permissions()) == len(Action)
