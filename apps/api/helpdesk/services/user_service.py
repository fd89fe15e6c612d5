"""User service - registration, lookup, authentication, and soft deactivation."""

import logging

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from helpdesk.core.cache import TicketCache, user_key
from helpdesk.core.errors import ConflictError, NotFoundError, PermissionDeniedError
from helpdesk.core.permissions import Action, require_permission
from helpdesk.core.security import hash_password, verify_password
from helpdesk.db.enums import ROLES_CAN_BE_ASSIGNED, Role
from helpdesk.db.models import User
from helpdesk.schemas.user import UserCreate, UserRead, UserRegister, UserUpdate

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def create_user(db: Session, data: UserCreate) -> User:
    """
    Create a user with the given role.

    Raises:
        ConflictError: email already registered (unique constraint)
    """
    email = normalize_email(data.email)
    if db.execute(select(User.id).where(User.email == email)).first():
        raise ConflictError(f"Email {email} is already registered")

    user = User(
        email=email,
        name=data.name.strip(),
        role=data.role.value,
        password_hash=hash_password(data.password),
        active=True,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        # Lost a race with a concurrent registration
        db.rollback()
        raise ConflictError(f"Email {email} is already registered") from exc
    db.refresh(user)
    logger.info("Created user %s with role %s", user.id, user.role)
    return user


def register_user(db: Session, data: UserRegister) -> User:
    """Self-registration: always a client account."""
    return create_user(db, UserCreate(**data.model_dump(), role=Role.CLIENT))


def get_user(db: Session, user_id: int) -> User | None:
    return db.get(User, user_id)


def get_user_by_email(db: Session, email: str, active_only: bool = True) -> User | None:
    query = select(User).where(User.email == normalize_email(email))
    if active_only:
        query = query.where(User.active.is_(True))
    return db.execute(query).scalar_one_or_none()


def get_user_read(db: Session, cache: TicketCache, user_id: int) -> UserRead | None:
    """Read-through cached user snapshot."""
    key = user_key(user_id)
    cached = cache.get(key)
    if cached is not None:
        try:
            return UserRead.model_validate(cached)
        except ValidationError:
            logger.warning("Discarding malformed cache entry %s", key)
            cache.invalidate(key)

    user = get_user(db, user_id)
    if user is None:
        return None
    snapshot = UserRead.model_validate(user)
    cache.set(key, snapshot.model_dump(mode="json"), cache.entity_ttl)
    return snapshot


def require_active_user(db: Session, user_id: int) -> User:
    """
    Load an acting user.

    Raises:
        NotFoundError: no such user
        PermissionDeniedError: user is deactivated
    """
    user = get_user(db, user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")
    if not user.active:
        raise PermissionDeniedError(f"User {user_id} is deactivated")
    return user


def authenticate(db: Session, email: str, password: str) -> User | None:
    """Return the active user matching the credentials, else None."""
    user = get_user_by_email(db, email, active_only=True)
    if user is None or not verify_password(password, user.password_hash):
        return None
    return user


def list_operators(db: Session) -> list[User]:
    """Active users that can be assigned tickets."""
    roles = [role.value for role in ROLES_CAN_BE_ASSIGNED]
    return list(
        db.execute(
            select(User)
            .where(User.role.in_(roles), User.active.is_(True))
            .order_by(User.name)
        ).scalars()
    )


def update_user(
    db: Session,
    cache: TicketCache,
    *,
    actor_role: Role | str,
    user_id: int,
    data: UserUpdate,
) -> User:
    """
    Rename or (de)activate a user. Users are never hard-deleted.

    Raises:
        PermissionDeniedError: actor lacks users.update
        NotFoundError: no such user
    """
    require_permission(actor_role, Action.USERS_UPDATE)
    user = get_user(db, user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")

    if data.name is not None:
        user.name = data.name.strip()
    if data.active is not None:
        user.active = data.active
    db.commit()
    db.refresh(user)

    cache.invalidate(user_key(user_id))
    return user
