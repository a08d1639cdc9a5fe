from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from qualitytrack.domain.entities import AuditEntry, AuditFilter
from qualitytrack.domain.exceptions import StoreUnavailableError
from qualitytrack.infrastructure.persistence.models.audit import PermissionAuditLog
from qualitytrack.shared.enums import AuditAction
from qualitytrack.shared.telemetry.logging import get_logger
from qualitytrack.shared.utils import ensure_utc

logger = get_logger(__name__)


def _audit_entry(row: PermissionAuditLog) -> AuditEntry:
    return AuditEntry(
        id=row.id,
        actor_user_id=row.changed_by,
        action=AuditAction(row.action),
        permission_id=row.permission_id,
        role_id=row.role_id,
        resource_name=row.resource_name,
        action_name=row.action_name,
        old_value=row.old_value,
        new_value=row.new_value,
        timestamp=ensure_utc(row.created_at),
    )


class PermissionAuditRepository:
    """
    Append-only repository for the permission audit log.

    Exposes append() and search() only; there is no update or delete path.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def append(
        self,
        *,
        actor_user_id: int,
        action: AuditAction,
        permission_id: int,
        role_id: int,
        resource_name: str | None,
        action_name: str | None,
        old_value: dict[str, Any] | None,
        new_value: dict[str, Any] | None,
        timestamp: datetime,
    ) -> AuditEntry:
        row = PermissionAuditLog(
            permission_id=permission_id,
            action=action.value,
            changed_by=actor_user_id,
            role_id=role_id,
            resource_name=resource_name,
            action_name=action_name,
            old_value=old_value,
            new_value=new_value,
            created_at=ensure_utc(timestamp),
        )
        try:
            self.db.add(row)
            await self.db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to append permission audit entry: %s", e)
            raise StoreUnavailableError("append_audit_entry", type(e).__name__) from e
        return _audit_entry(row)

    async def search(self, filters: AuditFilter, limit: int) -> list[AuditEntry]:
        query = select(PermissionAuditLog)
        if filters.user_id is not None:
            query = query.where(PermissionAuditLog.changed_by == filters.user_id)
        if filters.role_id is not None:
            query = query.where(PermissionAuditLog.role_id == filters.role_id)
        if filters.resource_type:
            query = query.where(PermissionAuditLog.resource_name == filters.resource_type)
        if filters.start is not None:
            query = query.where(PermissionAuditLog.created_at >= ensure_utc(filters.start))
        if filters.end is not None:
            query = query.where(PermissionAuditLog.created_at <= ensure_utc(filters.end))

        query = query.order_by(
            PermissionAuditLog.created_at.desc(), PermissionAuditLog.id.desc()
        ).limit(limit)

        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            logger.error("Failed to query permission audit log: %s", e)
            raise StoreUnavailableError("search_audit_log", type(e).__name__) from e
        return [_audit_entry(row) for row in result.scalars().all()]
