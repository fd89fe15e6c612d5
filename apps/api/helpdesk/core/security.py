"""Password hashing (passlib/argon2) and signed session tokens (PyJWT)."""

from datetime import datetime, timedelta, timezone

import jwt
from passlib.context import CryptContext

from helpdesk.core.config import settings

JWT_ALGORITHM = "HS256"

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """False for a wrong password and for an unreadable stored hash."""
    try:
        return pwd_context.verify(password, password_hash)
    except ValueError:
        return False


def create_session_token(user_id: int, role: str) -> str:
    """Session JWT for the cookie; signed with the current JWT_SECRET only."""
    issued_at = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "role": role,
        "iat": issued_at,
        "exp": issued_at + timedelta(hours=settings.JWT_EXPIRES_HOURS),
    }
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_session_token(token: str) -> dict:
    """
    Verify a session JWT against every accepted secret.

    JWT_SECRET is tried first, then JWT_SECRET_PREVIOUS while a rotation is
    in progress.

    Raises:
        jwt.InvalidTokenError: no accepted secret verifies the token
    """
    error: jwt.InvalidTokenError | None = None
    for secret in settings.jwt_secrets:
        try:
            return jwt.decode(token, secret, algorithms=[JWT_ALGORITHM])
        except jwt.InvalidTokenError as e:
            error = e
    raise error or jwt.InvalidTokenError("No signing secret configured")
