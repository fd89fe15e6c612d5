"""User-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from helpdesk.db.enums import DEFAULT_USER_ROLE, Role


class UserRegister(BaseModel):
    """Public self-registration (always creates a client)."""

    email: EmailStr
    name: str = Field(..., min_length=2, max_length=255)
    password: str = Field(..., min_length=8, max_length=256)


class UserCreate(UserRegister):
    """Account creation with an explicit role (admin/CLI)."""

    role: Role = DEFAULT_USER_ROLE


class UserUpdate(BaseModel):
    """Mutable user fields: name and active flag only."""

    name: str | None = Field(None, min_length=2, max_length=255)
    active: bool | None = None


class UserRead(BaseModel):
    """Response schema for reading a user (never includes the password hash)."""

    id: int
    email: str
    name: str
    role: Role
    active: bool
    created_at: datetime

    model_config = {"from_attributes": True, "frozen": True}


class OperatorRead(BaseModel):
    """Assignable user (operator or admin)."""

    id: int
    name: str

    model_config = {"from_attributes": True, "frozen": True}
