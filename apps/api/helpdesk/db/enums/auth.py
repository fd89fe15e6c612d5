"""Auth-related enums."""

from enum import Enum


class Role(str, Enum):
    """
    User roles with increasing privilege levels.

    - CLIENT: Opens tickets and follows up on their own tickets
    - OPERATOR: Works the ticket queue (state changes, assignment, internal notes)
    - ADMIN: Full access, including user management and maintenance tasks
    """

    CLIENT = "client"
    OPERATOR = "operator"
    ADMIN = "admin"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_
