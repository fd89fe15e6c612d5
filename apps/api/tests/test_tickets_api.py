"""Tickets, users, batch, metrics, and permissions endpoints."""

from httpx import ASGITransport, AsyncClient

from conftest import CSRF_HEADERS, auth_for
from helpdesk.core.deps import get_task_queue
from helpdesk.main import app
from helpdesk.schemas.ticket import TicketCreate
from helpdesk.services import workflow_service


# =============================================================================
# Tickets
# =============================================================================

async def test_client_opens_ticket(client_api: AsyncClient, client_user):
    response = await client_api.post(
        "/tickets",
        json={"title": "VPN drops", "description": "Disconnects every ten minutes", "priority": "high"},
    )

    assert response.status_code == 201
    data = response.json()
    assert data["ticket"]["state"] == "open"
    assert data["ticket"]["owner_id"] == client_user.id
    assert data["ticket"]["version"] == 1
    assert data["interaction_id"] > 0


async def test_create_ticket_validation_error(client_api: AsyncClient):
    response = await client_api.post("/tickets", json={"title": "x", "description": "short"})

    assert response.status_code == 422
    assert response.json()["error"] == "ValidationError"


async def test_mutation_without_csrf_header_forbidden(api_overrides, client_user):
    auth = auth_for(client_user)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies={auth.cookie_name: auth.token},
    ) as c:
        response = await c.post(
            "/tickets", json={"title": "No header", "description": "Should be rejected"}
        )

    assert response.status_code == 403


async def test_client_lists_only_own_tickets(client_api: AsyncClient, ticket, db, cache, other_client):
    workflow_service.create_ticket(
        db,
        data=TicketCreate(title="Someone else's", description="Not visible to client"),
        creator_id=other_client.id,
        cache=cache,
    )

    response = await client_api.get("/tickets")

    assert response.status_code == 200
    data = response.json()
    assert data["count"] == 1
    assert data["tickets"][0]["id"] == ticket.id


async def test_list_limit_capped(operator_api: AsyncClient):
    response = await operator_api.get("/tickets", params={"limit": 500})

    assert response.status_code == 422


async def test_get_ticket_not_found(operator_api: AsyncClient):
    response = await operator_api.get("/tickets/9999")

    assert response.status_code == 404
    assert response.json()["error"] == "NotFound"


async def test_foreign_client_cannot_read_ticket(api_overrides, ticket, other_client):
    auth = auth_for(other_client)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies={auth.cookie_name: auth.token},
        headers=CSRF_HEADERS,
    ) as c:
        response = await c.get(f"/tickets/{ticket.id}")

    assert response.status_code == 403


async def test_client_cannot_change_state(client_api: AsyncClient, ticket):
    response = await client_api.post(f"/tickets/{ticket.id}/state", json={"state": "resolved"})

    assert response.status_code == 403
    assert response.json()["error"] == "Forbidden"


async def test_operator_changes_state(operator_api: AsyncClient, ticket, queue):
    response = await operator_api.post(
        f"/tickets/{ticket.id}/state",
        json={"state": "in_progress", "comment": "Looking into it"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["ticket"]["state"] == "in_progress"
    assert data["ticket"]["version"] == 2
    assert data["previous_state"] == "open"
    assert queue.length() == 1


async def test_unknown_state_rejected(operator_api: AsyncClient, ticket):
    response = await operator_api.post(f"/tickets/{ticket.id}/state", json={"state": "paused"})

    assert response.status_code == 422
    assert response.json()["error"] == "ValidationError"


async def test_close_twice_conflicts(operator_api: AsyncClient, ticket):
    first = await operator_api.post(f"/tickets/{ticket.id}/close")
    second = await operator_api.post(f"/tickets/{ticket.id}/close", json={"comment": "again"})

    assert first.status_code == 200
    assert first.json()["ticket"]["closed_at"] is not None
    assert second.status_code == 409
    assert second.json()["error"] == "Conflict"


async def test_operator_assigns_ticket(operator_api: AsyncClient, ticket, admin_user):
    response = await operator_api.post(
        f"/tickets/{ticket.id}/assign", json={"assignee_id": admin_user.id}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["ticket"]["assignee_id"] == admin_user.id
    assert data["previous_assignee_id"] is None


async def test_assign_to_client_rejected(operator_api: AsyncClient, ticket, client_user):
    response = await operator_api.post(
        f"/tickets/{ticket.id}/assign", json={"assignee_id": client_user.id}
    )

    assert response.status_code == 422


async def test_internal_note_hidden_from_owner(
    operator_api: AsyncClient, client_api: AsyncClient, ticket
):
    note = await operator_api.post(
        f"/tickets/{ticket.id}/interactions",
        json={"content": "Vendor RMA pending", "internal_only": True},
    )
    assert note.status_code == 201

    staff_view = await operator_api.get(f"/tickets/{ticket.id}/interactions")
    owner_view = await client_api.get(f"/tickets/{ticket.id}/interactions")

    assert staff_view.json()["count"] == 2
    assert owner_view.json()["count"] == 1
    assert owner_view.json()["interactions"][0]["content"] == "ticket created"


async def test_client_cannot_add_internal_note(client_api: AsyncClient, ticket):
    response = await client_api.post(
        f"/tickets/{ticket.id}/interactions",
        json={"content": "Sneaky", "internal_only": True},
    )

    assert response.status_code == 403


# =============================================================================
# Users
# =============================================================================

async def test_operator_lists_operators(operator_api: AsyncClient, admin_user, client_user):
    response = await operator_api.get("/users/operators")

    assert response.status_code == 200
    names = [u["name"] for u in response.json()]
    assert names == ["Ada Admin", "Olga Operator"]


async def test_client_cannot_list_operators(client_api: AsyncClient):
    response = await client_api.get("/users/operators")

    assert response.status_code == 403


async def test_admin_creates_operator(admin_api: AsyncClient):
    response = await admin_api.post(
        "/users",
        json={"email": "ops2@example.com", "name": "Second Op", "password": "password123", "role": "operator"},
    )

    assert response.status_code == 201
    assert response.json()["role"] == "operator"


async def test_admin_deactivates_user(admin_api: AsyncClient, client_user):
    response = await admin_api.patch(f"/users/{client_user.id}", json={"active": False})

    assert response.status_code == 200
    assert response.json()["active"] is False

    fetched = await admin_api.get(f"/users/{client_user.id}")
    assert fetched.json()["active"] is False


async def test_get_missing_user(admin_api: AsyncClient):
    response = await admin_api.get("/users/4242")

    assert response.status_code == 404


# =============================================================================
# Batch / metrics / permissions
# =============================================================================

async def test_enqueue_and_process_batch(admin_api: AsyncClient, ticket, queue):
    enqueued = await admin_api.post(
        "/batch/tasks",
        json={"type": "refresh_ticket_cache", "payload": {"ticket_id": ticket.id}},
    )
    assert enqueued.status_code == 202
    assert enqueued.json()["pending"] == 1
    assert enqueued.json()["task"]["type"] == "refresh_ticket_cache"

    response = await admin_api.post("/batch")

    assert response.status_code == 200
    assert response.json()["processed"] == 1
    assert response.json()["remaining"] == 0


async def test_enqueue_unknown_task_type_rejected(admin_api: AsyncClient):
    response = await admin_api.post("/batch/tasks", json={"type": "mine_bitcoin"})

    assert response.status_code == 422


async def test_operator_cannot_run_batch(operator_api: AsyncClient):
    response = await operator_api.post("/batch")

    assert response.status_code == 403


async def test_batch_reports_queue_unavailable(api_overrides, admin_user, broken_queue):
    app.dependency_overrides[get_task_queue] = lambda: broken_queue
    auth = auth_for(admin_user)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies={auth.cookie_name: auth.token},
        headers=CSRF_HEADERS,
    ) as c:
        response = await c.post("/batch")

    assert response.status_code == 503
    assert response.json()["error"] == "QueueUnavailable"


async def test_metrics_endpoint(operator_api: AsyncClient, ticket):
    response = await operator_api.get("/metrics")

    assert response.status_code == 200
    data = response.json()
    assert data["database"]["tickets"]["count"] == 1
    assert data["cache"]["status"] == "ok"


async def test_client_cannot_view_metrics(client_api: AsyncClient):
    response = await client_api.get("/metrics")

    assert response.status_code == 403


async def test_permissions_flag_grants(client_api: AsyncClient):
    response = await client_api.get("/permissions")

    assert response.status_code == 200
    granted = {p["key"]: p["granted"] for p in response.json()}
    assert granted["tickets.insert"] is True
    assert granted["tickets.assign"] is False
