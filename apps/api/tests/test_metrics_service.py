"""Metrics: table counts, cache size, queue depth."""

from sqlalchemy.exc import SQLAlchemyError

from helpdesk.db.enums import TaskType
from helpdesk.services import metrics_service, workflow_service


def test_database_metrics_counts(db, cache, queue, ticket, operator_user):
    workflow_service.change_state(
        db, ticket_id=ticket.id, new_state="in_progress",
        actor_id=operator_user.id, cache=cache, queue=queue,
    )

    metrics = metrics_service.get_database_metrics(db)

    assert metrics["status"] == "ok"
    assert metrics["users"] == {"count": 2, "active": 2}
    assert metrics["tickets"]["count"] == 1
    assert metrics["tickets"]["by_state"] == {"in_progress": 1}
    assert metrics["tickets"]["by_priority"] == {"medium": 1}
    assert metrics["interactions"]["by_type"] == {"comment": 1, "state_change": 1}


def test_cache_metrics_report_keys_and_pending(cache, queue):
    cache.set("ticket:1", {"id": 1})
    queue.enqueue(TaskType.REFRESH_TICKET_CACHE, {"ticket_id": 1})

    metrics = metrics_service.get_cache_metrics(cache, queue)

    assert metrics["status"] == "ok"
    assert metrics["keys"] == 1
    assert metrics["pending_tasks"] == 1


def test_cache_metrics_degrade_when_backends_down(broken_cache, broken_queue):
    metrics = metrics_service.get_cache_metrics(broken_cache, broken_queue)

    assert metrics["status"] == "error"
    assert metrics["keys"] is None
    assert metrics["pending_tasks"] is None


def test_database_metrics_rolls_back_on_failure(db, client_user, monkeypatch):
    rollbacks = []
    real_rollback = db.rollback

    def failing_execute(*args, **kwargs):
        raise SQLAlchemyError("connection reset")

    def tracking_rollback():
        rollbacks.append(True)
        real_rollback()

    monkeypatch.setattr(db, "execute", failing_execute)
    monkeypatch.setattr(db, "rollback", tracking_rollback)

    metrics = metrics_service.get_database_metrics(db)

    assert metrics["status"] == "error"
    assert rollbacks == [True]

    monkeypatch.undo()
    # Session is usable again for the next query
    assert metrics_service.get_database_metrics(db)["users"]["count"] == 1
