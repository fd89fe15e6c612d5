"""FastAPI dependencies: DB session, cache/queue capabilities, auth, CSRF."""

from typing import Callable, Generator

import jwt
from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from helpdesk.core.cache import TicketCache, build_cache
from helpdesk.core.permissions import Action
from helpdesk.core.permissions import require_permission as check_permission
from helpdesk.core.security import decode_session_token
from helpdesk.core.task_queue import TaskQueue, build_task_queue
from helpdesk.db.enums import Role
from helpdesk.db.models import User
from helpdesk.db.session import SessionLocal
from helpdesk.schemas.auth import UserSession

COOKIE_NAME = "helpdesk_session"
CSRF_HEADER = "X-Requested-With"
CSRF_HEADER_VALUE = "XMLHttpRequest"


def get_db() -> Generator[Session, None, None]:
    """One session per request, closed afterwards."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_cache() -> TicketCache:
    return build_cache()


def get_task_queue() -> TaskQueue:
    return build_task_queue()


def _user_id_from_cookie(request: Request) -> int:
    token = request.cookies.get(COOKIE_NAME)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        return int(decode_session_token(token)["sub"])
    except (jwt.InvalidTokenError, KeyError, TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid session")


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """
    Active user behind the session cookie.

    Raises:
        HTTPException 401: missing/invalid cookie, unknown or deactivated user
    """
    user = db.get(User, _user_id_from_cookie(request))
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    if not user.active:
        raise HTTPException(status_code=401, detail="Account disabled")
    return user


def get_current_session(request: Request, db: Session = Depends(get_db)) -> UserSession:
    """
    Session context for most endpoints.

    The role is read from the user row, so role changes apply on the next
    request. A role outside the enum is a 403, not a 500.
    """
    user = get_current_user(request, db)
    if not Role.has_value(user.role):
        raise HTTPException(
            status_code=403,
            detail=f"Unknown role '{user.role}'. Contact administrator.",
        )
    return UserSession(user_id=user.id, role=Role(user.role), email=user.email, name=user.name)


def require_permission(action: Action) -> Callable[..., UserSession]:
    """
    Dependency factory: authenticated session whose role holds `action`.

    Usage:
        session: UserSession = Depends(require_permission(Action.METRICS_VIEW))
    """
    def dependency(request: Request, db: Session = Depends(get_db)) -> UserSession:
        session = get_current_session(request, db)
        check_permission(session.role, action)
        return session
    return dependency


def require_csrf_header(request: Request) -> None:
    """Reject state-changing requests that lack the CSRF header (403)."""
    if request.headers.get(CSRF_HEADER) != CSRF_HEADER_VALUE:
        raise HTTPException(
            status_code=403,
            detail=f"Missing CSRF header. Include '{CSRF_HEADER}: {CSRF_HEADER_VALUE}'",
        )
