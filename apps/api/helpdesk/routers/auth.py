"""Authentication router - register, password login, logout, session info."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session

from helpdesk.core.config import settings
from helpdesk.core.deps import (
    COOKIE_NAME,
    get_current_session,
    get_db,
    require_csrf_header,
)
from helpdesk.core.permissions import get_role_permissions
from helpdesk.core.rate_limit import limiter
from helpdesk.core.security import create_session_token
from helpdesk.core.structured_logging import build_log_context
from helpdesk.schemas.auth import LoginRequest, MeResponse, UserSession
from helpdesk.schemas.user import UserRead, UserRegister
from helpdesk.services import user_service

logger = logging.getLogger(__name__)

router = APIRouter()


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=COOKIE_NAME,
        value=token,
        max_age=settings.JWT_EXPIRES_HOURS * 3600,
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
        path="/",
    )


@router.post(
    "/register",
    response_model=UserRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def register(body: UserRegister, db: Session = Depends(get_db)) -> UserRead:
    """Self-service signup. New accounts are always clients."""
    user = user_service.register_user(db, body)
    return UserRead.model_validate(user)


@router.post("/login", response_model=MeResponse, dependencies=[Depends(require_csrf_header)])
@limiter.limit(f"{settings.RATE_LIMIT_AUTH}/minute")
def login(
    request: Request,
    response: Response,
    body: LoginRequest,
    db: Session = Depends(get_db),
) -> MeResponse:
    """Verify credentials and set the session cookie."""
    user = user_service.authenticate(db, body.email, body.password)
    if user is None:
        logger.info("Failed login attempt", extra=build_log_context(route="/auth/login"))
        raise HTTPException(status_code=401, detail="Invalid email or password")

    _set_session_cookie(response, create_session_token(user.id, user.role))
    return MeResponse(
        user_id=user.id,
        email=user.email,
        name=user.name,
        role=user.role,
        permissions=sorted(a.value for a in get_role_permissions(user.role)),
    )


@router.post("/logout", dependencies=[Depends(require_csrf_header)])
def logout(response: Response) -> dict:
    """Clear the session cookie."""
    response.delete_cookie(COOKIE_NAME, path="/")
    return {"status": "logged_out"}


@router.get("/me", response_model=MeResponse)
def get_me(session: UserSession = Depends(get_current_session)) -> MeResponse:
    """
    Get current authenticated user info.

    Used by the frontend to bootstrap auth state on page load.
    """
    return MeResponse(
        user_id=session.user_id,
        email=session.email,
        name=session.name,
        role=session.role,
        permissions=sorted(a.value for a in get_role_permissions(session.role)),
    )
