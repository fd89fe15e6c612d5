"""FIFO list of pending maintenance tasks.

No acknowledgement, visibility timeout, or retry: a task is gone once it
has been dequeued, whether or not its handler succeeds. Everything queued by
the ticket workflow is a refresh hint, never the record of a mutation.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from typing import Protocol

from pydantic import ValidationError

from helpdesk.core.config import settings
from helpdesk.core.errors import QueueError
from helpdesk.core.redis_client import get_redis_client
from helpdesk.db.enums import TaskType
from helpdesk.schemas.task import Task

logger = logging.getLogger(__name__)


class QueueBackend(Protocol):
    """Raw list primitives: append, atomic pop from the head, length."""

    def push(self, item: str) -> None: ...

    def pop_front(self) -> str | None: ...

    def length(self) -> int: ...


class RedisQueueBackend:
    """Redis list (RPUSH / LPOP / LLEN)."""

    def __init__(self, client, key: str):
        self.client = client
        self.key = key

    def push(self, item: str) -> None:
        self.client.rpush(self.key, item)

    def pop_front(self) -> str | None:
        return self.client.lpop(self.key)

    def length(self) -> int:
        return int(self.client.llen(self.key))


class InMemoryQueueBackend:
    """Process-local deque, used when REDIS_URL is disabled and in tests."""

    def __init__(self):
        self._items: deque[str] = deque()
        self._lock = threading.Lock()

    def push(self, item: str) -> None:
        with self._lock:
            self._items.append(item)

    def pop_front(self) -> str | None:
        with self._lock:
            return self._items.popleft() if self._items else None

    def length(self) -> int:
        with self._lock:
            return len(self._items)


class TaskQueue:
    """Typed view over a queue backend. Backend failures surface as QueueError."""

    def __init__(self, backend: QueueBackend):
        self.backend = backend

    def enqueue(self, task_type: TaskType | str, payload: dict | None = None) -> Task:
        type_value = task_type.value if isinstance(task_type, TaskType) else task_type
        task = Task(
            type=type_value,
            payload=payload or {},
            timestamp=int(time.time() * 1000),
        )
        try:
            self.backend.push(task.model_dump_json())
        except Exception as exc:
            raise QueueError(f"Failed to enqueue task {type_value}") from exc
        return task

    def dequeue(self) -> Task | None:
        """Pop the oldest task. Malformed entries are dropped and skipped."""
        while True:
            try:
                raw = self.backend.pop_front()
            except Exception as exc:
                raise QueueError("Failed to dequeue task") from exc
            if raw is None:
                return None
            try:
                return Task.model_validate_json(raw)
            except ValidationError:
                logger.error("Dropping malformed task from queue: %.200s", raw)

    def length(self) -> int:
        try:
            return self.backend.length()
        except Exception as exc:
            raise QueueError("Failed to read queue length") from exc


_memory_backend: InMemoryQueueBackend | None = None


def build_task_queue() -> TaskQueue:
    """Queue on Redis when configured, otherwise a process-wide in-memory deque."""
    client = get_redis_client()
    if client is not None:
        return TaskQueue(RedisQueueBackend(client, settings.TASK_QUEUE_KEY))

    global _memory_backend
    if _memory_backend is None:
        _memory_backend = InMemoryQueueBackend()
    return TaskQueue(_memory_backend)
