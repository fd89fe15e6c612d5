"""Task queue tests: FIFO order, malformed entries, backend failures."""

from unittest.mock import MagicMock

import pytest

from helpdesk.core.errors import QueueError
from helpdesk.core.task_queue import InMemoryQueueBackend, RedisQueueBackend, TaskQueue
from helpdesk.db.enums import TaskType


def test_enqueue_dequeue_is_fifo(queue):
    queue.enqueue(TaskType.REFRESH_TICKET_CACHE, {"ticket_id": 1})
    queue.enqueue(TaskType.CLOSE_INACTIVE_TICKETS, {"days": 3})

    assert queue.length() == 2
    first = queue.dequeue()
    second = queue.dequeue()

    assert first.type == "refresh_ticket_cache"
    assert first.payload == {"ticket_id": 1}
    assert second.type == "close_inactive_tickets"
    assert queue.dequeue() is None
    assert queue.length() == 0


def test_enqueue_stamps_millisecond_timestamp(queue):
    task = queue.enqueue("refresh_ticket_cache")

    assert task.payload == {}
    # epoch milliseconds, not seconds
    assert task.timestamp > 10**12


def test_malformed_entries_are_dropped():
    backend = InMemoryQueueBackend()
    backend.push("not json at all")
    backend.push('{"type": "refresh_ticket_cache"}')  # missing timestamp
    queue = TaskQueue(backend)
    queue.enqueue(TaskType.REFRESH_TICKET_CACHE, {"ticket_id": 5})

    task = queue.dequeue()

    assert task.payload == {"ticket_id": 5}
    assert queue.length() == 0


def test_backend_failures_raise_queue_error(broken_queue):
    with pytest.raises(QueueError):
        broken_queue.enqueue(TaskType.REFRESH_TICKET_CACHE, {"ticket_id": 1})
    with pytest.raises(QueueError):
        broken_queue.dequeue()
    with pytest.raises(QueueError):
        broken_queue.length()


def test_redis_backend_uses_list_commands():
    client = MagicMock()
    client.lpop.return_value = None
    client.llen.return_value = 4
    queue = TaskQueue(RedisQueueBackend(client, "tasks:pending"))

    queue.enqueue(TaskType.REFRESH_TICKET_CACHE, {"ticket_id": 1})

    key, payload = client.rpush.call_args.args
    assert key == "tasks:pending"
    assert '"refresh_ticket_cache"' in payload
    assert queue.dequeue() is None
    client.lpop.assert_called_once_with("tasks:pending")
    assert queue.length() == 4
