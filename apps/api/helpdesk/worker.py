"""
Background worker for processing queued maintenance tasks.

Usage:
    python -m helpdesk.worker

The worker polls the task queue and processes up to BATCH_MAX_TASKS tasks per
pass. For production, run this as a separate process (e.g., systemd service,
Docker container).
"""

import asyncio
import logging

from helpdesk.core.cache import build_cache
from helpdesk.core.config import settings
from helpdesk.core.errors import QueueError
from helpdesk.core.structured_logging import build_log_context, configure_logging
from helpdesk.core.task_queue import build_task_queue
from helpdesk.db.session import SessionLocal
from helpdesk.jobs.context import WorkerContext
from helpdesk.jobs.registry import UnknownTaskTypeError, resolve_task_handler
from helpdesk.schemas.task import BatchSummary, Task

logger = logging.getLogger(__name__)


async def process_task(ctx: WorkerContext, task: Task) -> None:
    """Dispatch a single task to its registered handler."""
    handler = resolve_task_handler(task.type)
    logger.info(
        "Processing task %s (queued at %s)",
        task.type,
        task.timestamp,
        extra=build_log_context(task_type=task.type),
    )
    await handler(ctx, task)


async def process_batch(ctx: WorkerContext, limit: int | None = None) -> BatchSummary:
    """
    Dequeue and run up to `limit` tasks.

    A failed task is logged, counted, and lost. Unknown task types are
    counted as skipped.

    Raises:
        QueueError: the queue backend is unreachable
    """
    limit = limit or settings.BATCH_MAX_TASKS
    pending = ctx.queue.length()
    if pending == 0:
        return BatchSummary(message="No pending tasks")

    processed = errors = skipped = 0
    for _ in range(min(limit, pending)):
        task = ctx.queue.dequeue()
        if task is None:
            break
        try:
            await process_task(ctx, task)
            processed += 1
        except UnknownTaskTypeError:
            skipped += 1
            logger.warning(
                "Skipping task with unknown type %s",
                task.type,
                extra=build_log_context(task_type=task.type),
            )
        except Exception as e:
            errors += 1
            ctx.db.rollback()
            logger.error(
                "Task %s failed: %s",
                task.type,
                type(e).__name__,
                exc_info=True,
                extra=build_log_context(task_type=task.type),
            )

    return BatchSummary(
        message=f"Processed {processed} tasks",
        processed=processed,
        errors=errors,
        skipped=skipped,
        remaining=ctx.queue.length(),
    )


async def worker_loop() -> None:
    """Main worker loop - polls for and processes pending tasks."""
    logger.info(
        "Worker starting (poll interval: %ss, batch size: %s)",
        settings.WORKER_POLL_INTERVAL,
        settings.BATCH_MAX_TASKS,
    )

    while True:
        with SessionLocal() as db:
            ctx = WorkerContext(db=db, cache=build_cache(), queue=build_task_queue())
            try:
                summary = await process_batch(ctx)
                if summary.processed or summary.errors or summary.skipped:
                    logger.info(
                        "Batch done: processed=%s errors=%s skipped=%s remaining=%s",
                        summary.processed,
                        summary.errors,
                        summary.skipped,
                        summary.remaining,
                    )
            except QueueError:
                logger.error("Task queue unavailable", exc_info=True)

        await asyncio.sleep(settings.WORKER_POLL_INTERVAL)


def main() -> None:
    """Entry point for the worker."""
    configure_logging()
    try:
        asyncio.run(worker_loop())
    except KeyboardInterrupt:
        logger.info("Worker shutting down")
    except Exception:
        logger.exception(
            "Worker crashed",
            extra=build_log_context(route="worker", method="background"),
        )
        raise


if __name__ == "__main__":
    main()
