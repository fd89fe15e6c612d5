"""Authentication-related Pydantic schemas."""

from pydantic import BaseModel

from helpdesk.db.enums import Role


class LoginRequest(BaseModel):
    """Credentials for POST /auth/login."""
    email: str
    password: str


class UserSession(BaseModel):
    """
    Session context for authenticated requests.

    Returned by the get_current_session dependency; role comes from the
    user row, not the token, so role changes apply immediately.
    """
    user_id: int
    role: Role
    email: str
    name: str


class MeResponse(BaseModel):
    """Response schema for GET /auth/me endpoint."""
    user_id: int
    email: str
    name: str
    role: Role
    permissions: list[str]
