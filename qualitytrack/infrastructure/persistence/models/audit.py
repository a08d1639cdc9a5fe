from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from qualitytrack.infrastructure.persistence.database import Base
from qualitytrack.infrastructure.persistence.models.mixins import IntegerIdMixin


class PermissionAuditLog(IntegerIdMixin, Base):
    """
    Append-only record of permission changes.

    role_id, resource_name and action_name are copied from the permission
    at write time so the trail can be filtered without joins.
    """

    __tablename__ = "permission_audit_log"

    permission_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("permissions.id"), nullable=False
    )
    action: Mapped[str] = mapped_column(String(20), nullable=False)  # created/updated/deleted
    changed_by: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False, index=True
    )
    role_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    resource_name: Mapped[str | None] = mapped_column(String(50), nullable=True)
    action_name: Mapped[str | None] = mapped_column(String(50), nullable=True)
    old_value: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    new_value: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("ix_permission_audit_created", "created_at"),)
