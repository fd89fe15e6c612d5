"""CLI tools for helpdesk administration."""

import asyncio
import json

import click
from pydantic import ValidationError

from helpdesk.core.cache import build_cache
from helpdesk.core.errors import HelpdeskError, QueueError
from helpdesk.core.structured_logging import configure_logging
from helpdesk.core.task_queue import build_task_queue
from helpdesk.db.enums import Role, TaskType
from helpdesk.db.session import SessionLocal, engine
from helpdesk.jobs.context import WorkerContext
from helpdesk.schemas.user import UserCreate
from helpdesk.services import user_service


@click.group()
def cli():
    """Helpdesk CLI tools."""
    configure_logging()


@cli.command()
def init_db():
    """
    Create all tables directly from the models.

    For local SQLite setups; deployed databases use `alembic upgrade head`.
    """
    from helpdesk.db.base import Base
    from helpdesk.db import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    click.echo("✓ Tables created")


@cli.command()
@click.option("--email", required=True, help="Login email")
@click.option("--name", required=True, help="Display name")
@click.option("--password", required=True, prompt=True, hide_input=True, help="Initial password")
@click.option(
    "--role",
    type=click.Choice([r.value for r in Role]),
    default=Role.CLIENT.value,
    show_default=True,
    help="Account role",
)
def create_user(email: str, name: str, password: str, role: str):
    """
    Create a user with any role (bootstrap the first admin with this).

    Example:
        python -m helpdesk.cli create-user --email admin@example.com --name Admin --role admin
    """
    try:
        data = UserCreate(email=email, name=name, password=password, role=Role(role))
    except ValidationError as e:
        raise click.ClickException(f"Invalid user data: {e}")

    with SessionLocal() as db:
        try:
            user = user_service.create_user(db, data)
        except HelpdeskError as e:
            raise click.ClickException(e.message)
        click.echo(f"✓ Created {user.role} {user.email} (id={user.id})")


@cli.command()
@click.argument("task_type", type=click.Choice([t.value for t in TaskType]))
@click.option("--payload", default="{}", help="Task payload as a JSON object")
def enqueue_task(task_type: str, payload: str):
    """
    Queue a maintenance task.

    Example:
        python -m helpdesk.cli enqueue-task close_inactive_tickets --payload '{"days": 14}'
    """
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise click.ClickException(f"Payload is not valid JSON: {e}")
    if not isinstance(data, dict):
        raise click.ClickException("Payload must be a JSON object")

    queue = build_task_queue()
    try:
        task = queue.enqueue(task_type, data)
        pending = queue.length()
    except QueueError as e:
        raise click.ClickException(str(e))
    click.echo(f"✓ Queued {task.type} ({pending} pending)")


@cli.command()
@click.option("--limit", default=None, type=int, help="Max tasks to process (default: BATCH_MAX_TASKS)")
def process_batch(limit: int | None):
    """Process pending tasks once and print the summary."""
    from helpdesk.worker import process_batch as run_batch

    with SessionLocal() as db:
        ctx = WorkerContext(db=db, cache=build_cache(), queue=build_task_queue())
        try:
            summary = asyncio.run(run_batch(ctx, limit))
        except QueueError as e:
            raise click.ClickException(str(e))
    click.echo(
        f"✓ {summary.message}: processed={summary.processed} errors={summary.errors} "
        f"skipped={summary.skipped} remaining={summary.remaining}"
    )


if __name__ == "__main__":
    cli()
