"""Structured logging helpers."""

import logging
from typing import Any

from helpdesk.core.config import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for an entry point (API, worker, CLI)."""
    logging.basicConfig(
        level=getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )


def build_log_context(
    *,
    user_id: int | None = None,
    ticket_id: int | None = None,
    task_type: str | None = None,
    request_id: str | None = None,
    route: str | None = None,
    method: str | None = None,
) -> dict[str, Any]:
    """Return a log context dict for `extra=`; credentials never belong here."""
    context: dict[str, Any] = {}
    if user_id is not None:
        context["user_id"] = user_id
    if ticket_id is not None:
        context["ticket_id"] = ticket_id
    if task_type:
        context["task_type"] = task_type
    if request_id:
        context["request_id"] = request_id
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    return context
