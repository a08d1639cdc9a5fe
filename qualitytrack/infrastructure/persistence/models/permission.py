from typing import Any

from sqlalchemy import (JSON, Boolean, ForeignKey, Index, Integer, String,
                        Text, UniqueConstraint)
from sqlalchemy.orm import Mapped, mapped_column

from qualitytrack.infrastructure.persistence.database import Base
from qualitytrack.infrastructure.persistence.models.mixins import (CreatedAtMixin,
                                                                   IntegerIdMixin,
                                                                   TimestampMixin)


class Resource(IntegerIdMixin, CreatedAtMixin, Base):
    """
    Protectable resources (e.g., 'entries', 'evaluations', 'settings').

    Immutable once created except for display metadata.
    """

    __tablename__ = "resources"

    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)


class Action(IntegerIdMixin, CreatedAtMixin, Base):
    """Operations (e.g., 'create', 'read', 'approve')."""

    __tablename__ = "actions"

    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)


class Permission(IntegerIdMixin, TimestampMixin, Base):
    """
    Maps a role to a resource action with a scope.

    Example: role=admin, resource=users, action=delete, scope=all

    One row per (role, resource, action): re-granting updates and
    reactivates the row, revoking clears is_active. Rows are never
    deleted so the audit trail keeps pointing at them.
    """

    __tablename__ = "permissions"

    role_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False
    )
    resource_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("resources.id", ondelete="CASCADE"), nullable=False
    )
    action_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("actions.id", ondelete="CASCADE"), nullable=False
    )
    scope: Mapped[str] = mapped_column(String(20), nullable=False)  # 'own', 'team', 'all'
    conditions: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint(
            "role_id", "resource_id", "action_id", name="uq_permission_role_resource_action"
        ),
        Index("ix_permission_role_active", "role_id", "is_active"),
    )
