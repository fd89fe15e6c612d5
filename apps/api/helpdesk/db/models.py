"""SQLAlchemy ORM models for users, tickets, and ticket interactions."""

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean, CheckConstraint, ForeignKey, Index, Integer, String, Text, func
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from helpdesk.db.base import Base
from helpdesk.db.enums import (
    DEFAULT_TICKET_PRIORITY, DEFAULT_TICKET_STATE, DEFAULT_USER_ROLE,
    InteractionType, Role, TicketPriority, TicketState,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _in_values(column: str, enum_cls) -> str:
    values = ", ".join(f"'{member.value}'" for member in enum_cls)
    return f"{column} IN ({values})"


# =============================================================================
# Users
# =============================================================================

class User(Base):
    """
    A person who can sign in.

    Users are never hard-deleted; deactivation flips `active` so ticket
    and interaction history keeps its references.
    """
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(_in_values("role", Role), name="ck_users_role_valid"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=DEFAULT_USER_ROLE.value
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        nullable=False, default=_utcnow, server_default=func.now()
    )


# =============================================================================
# Tickets
# =============================================================================

class Ticket(Base):
    """
    A unit of support work owned by the user who opened it.

    Invariant: closed_at is set iff state == 'closed'.
    `version` increments on every workflow mutation (optimistic locking).
    """
    __tablename__ = "tickets"
    __table_args__ = (
        CheckConstraint(_in_values("state", TicketState), name="ck_tickets_state_valid"),
        CheckConstraint(
            _in_values("priority", TicketPriority), name="ck_tickets_priority_valid"
        ),
        CheckConstraint(
            "(state = 'closed') = (closed_at IS NOT NULL)",
            name="ck_tickets_closed_at_matches_state",
        ),
        Index("idx_tickets_owner_created", "owner_id", "created_at"),
        Index("idx_tickets_assignee", "assignee_id"),
        Index("idx_tickets_state_updated", "state", "updated_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    owner_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    state: Mapped[str] = mapped_column(
        String(20), nullable=False, default=DEFAULT_TICKET_STATE.value
    )
    priority: Mapped[str] = mapped_column(
        String(20), nullable=False, default=DEFAULT_TICKET_PRIORITY.value
    )
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    assignee_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        nullable=False, default=_utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        nullable=False, default=_utcnow, server_default=func.now()
    )
    closed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    owner: Mapped["User"] = relationship(foreign_keys=[owner_id])
    assignee: Mapped["User | None"] = relationship(foreign_keys=[assignee_id])


# =============================================================================
# Interactions (audit trail + comments)
# =============================================================================

class Interaction(Base):
    """
    Immutable timeline entry for a ticket.

    Every workflow mutation writes exactly one row here in the same
    transaction, so a ticket's history can be rebuilt from this table.
    """
    __tablename__ = "interactions"
    __table_args__ = (
        CheckConstraint(
            _in_values("type", InteractionType), name="ck_interactions_type_valid"
        ),
        Index("idx_interactions_ticket_created", "ticket_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ticket_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tickets.id"), nullable=False
    )
    actor_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    # "metadata" is reserved on declarative classes
    details: Mapped[dict | None] = mapped_column("metadata", nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        nullable=False, default=_utcnow, server_default=func.now()
    )
    internal_only: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    ticket: Mapped["Ticket"] = relationship()
    actor: Mapped["User"] = relationship()
