"""Permissions router - registry listing and the caller's effective grants."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from helpdesk.core.deps import get_current_session
from helpdesk.core.permissions import get_all_permissions, get_role_permissions
from helpdesk.schemas.auth import UserSession

router = APIRouter()


class PermissionInfo(BaseModel):
    """Permission metadata for UI."""
    key: str
    label: str
    description: str
    category: str
    granted: bool


@router.get("", response_model=list[PermissionInfo])
def list_permissions(
    session: UserSession = Depends(get_current_session),
) -> list[PermissionInfo]:
    """Every permission, flagged with whether the caller's role holds it."""
    granted = get_role_permissions(session.role)
    return [
        PermissionInfo(
            key=p.action.value,
            label=p.label,
            description=p.description,
            category=p.category.value,
            granted=p.action in granted,
        )
        for p in get_all_permissions()
    ]
