"""
Permission Audit Service.

Appends one immutable entry per permission mutation and answers filtered
queries over the trail. The backing store exposes append and search only,
so entries cannot be edited or removed through the application.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from qualitytrack.application.interfaces.repositories import IAuditLogStore
from qualitytrack.domain.entities import AuditEntry, AuditFilter, PermissionEntity
from qualitytrack.domain.exceptions import ValidationException
from qualitytrack.shared.enums import AuditAction
from qualitytrack.shared.telemetry.logging import get_logger
from qualitytrack.shared.utils import utc_now

logger = get_logger(__name__)

DEFAULT_PAGE_SIZE = 100
MAX_PAGE_SIZE = 500


class PermissionAuditService:
    """Records and queries permission change history"""

    def __init__(
        self,
        store: IAuditLogStore,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        max_page_size: int = MAX_PAGE_SIZE,
    ) -> None:
        self.store = store
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    async def record(
        self,
        *,
        actor_id: int,
        action: AuditAction,
        permission: PermissionEntity,
        old_value: dict[str, Any] | None,
        new_value: dict[str, Any] | None,
        resource_name: str | None = None,
        action_name: str | None = None,
    ) -> AuditEntry:
        """
        Append an audit entry for a permission mutation.

        Args:
            actor_id: User who made the change
            action: created, updated or deleted
            permission: The permission row after the change
            old_value: Snapshot before the change (None for creations)
            new_value: Snapshot after the change
            resource_name: Resource name, stored so the trail can be filtered by it
            action_name: Action name of the permission
        """
        entry = await self.store.append(
            actor_user_id=actor_id,
            action=action,
            permission_id=permission.id,
            role_id=permission.role_id,
            resource_name=resource_name,
            action_name=action_name,
            old_value=old_value,
            new_value=new_value,
            timestamp=utc_now(),
        )

        logger.debug(
            "Recorded permission audit %s for permission %s by user %s",
            action.value,
            permission.id,
            actor_id,
        )
        return entry

    def _page_size(self, requested: int | None) -> int:
        if requested is None:
            return self.default_page_size
        if requested < 1:
            raise ValidationException("limit must be at least 1", field="limit")
        return min(requested, self.max_page_size)

    async def query(self, filters: AuditFilter | None = None) -> list[AuditEntry]:
        """Entries matching filters, newest first, capped at the page size"""
        filters = filters or AuditFilter()
        if filters.start and filters.end and filters.start > filters.end:
            raise ValidationException("start must not be after end", field="start")

        limit = self._page_size(filters.limit)
        return await self.store.search(replace(filters, limit=limit), limit)
