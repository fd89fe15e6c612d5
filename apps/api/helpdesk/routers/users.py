"""Users router - operator lookup and account administration."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from helpdesk.core.cache import TicketCache
from helpdesk.core.deps import (
    get_cache,
    get_db,
    require_csrf_header,
    require_permission,
)
from helpdesk.core.errors import NotFoundError
from helpdesk.core.permissions import Action
from helpdesk.schemas.auth import UserSession
from helpdesk.schemas.user import OperatorRead, UserCreate, UserRead, UserUpdate
from helpdesk.services import user_service

router = APIRouter()


@router.get("/operators", response_model=list[OperatorRead])
def list_operators(
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_permission(Action.USERS_SELECT)),
) -> list[OperatorRead]:
    """Active users tickets can be assigned to."""
    return [OperatorRead.model_validate(u) for u in user_service.list_operators(db)]


@router.post(
    "",
    response_model=UserRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_user(
    body: UserCreate,
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_permission(Action.USERS_INSERT)),
) -> UserRead:
    """Create an account with any role (admin only)."""
    return UserRead.model_validate(user_service.create_user(db, body))


@router.get("/{user_id}", response_model=UserRead)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    cache: TicketCache = Depends(get_cache),
    session: UserSession = Depends(require_permission(Action.USERS_SELECT)),
) -> UserRead:
    user = user_service.get_user_read(db, cache, user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")
    return user


@router.patch(
    "/{user_id}",
    response_model=UserRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_user(
    user_id: int,
    body: UserUpdate,
    db: Session = Depends(get_db),
    cache: TicketCache = Depends(get_cache),
    session: UserSession = Depends(require_permission(Action.USERS_UPDATE)),
) -> UserRead:
    """Rename or deactivate a user."""
    user = user_service.update_user(
        db, cache, actor_role=session.role, user_id=user_id, data=body
    )
    return UserRead.model_validate(user)
