"""
Repository interfaces (ports) for the application layer.

The authorization engine talks to persistence only through these
protocols. Concrete adapters live in qualitytrack.infrastructure.
"""

from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Any, Protocol

from qualitytrack.domain.entities import (ActionEntity, AuditEntry, AuditFilter,
                                          GrantedPermission, PermissionEntity,
                                          PrincipalRole, ResourceEntity,
                                          RoleEntity)
from qualitytrack.domain.enums import Scope
from qualitytrack.shared.enums import AuditAction


class IPermissionStore(Protocol):
    """
    Read/write contract over roles, resources, actions and permissions.

    Implementations raise StoreUnavailableError for connectivity or
    integrity failures; "not found" is always None or an empty list.
    """

    async def get_role_and_team_for_user(self, user_id: int) -> PrincipalRole | None:
        """Role and team of an active user, None for unknown or inactive users"""
        ...

    async def get_active_permissions_for_role(self, role_id: int) -> list[GrantedPermission]:
        ...

    async def get_all_roles(self, include_inactive: bool = False) -> list[RoleEntity]:
        ...

    async def get_all_resources(self) -> list[ResourceEntity]:
        ...

    async def get_all_actions(self) -> list[ActionEntity]:
        ...

    async def get_all_permissions(self, include_inactive: bool) -> list[PermissionEntity]:
        ...

    async def get_role(self, role_id: int) -> RoleEntity | None:
        ...

    async def get_resource(self, resource_id: int) -> ResourceEntity | None:
        ...

    async def get_action(self, action_id: int) -> ActionEntity | None:
        ...

    async def find_permission(
        self, role_id: int, resource_id: int, action_id: int
    ) -> PermissionEntity | None:
        """Permission row for a triple regardless of its active flag"""
        ...

    async def upsert_permission(
        self, role_id: int, resource_id: int, action_id: int, scope: Scope
    ) -> tuple[PermissionEntity | None, PermissionEntity]:
        """
        Insert, or update scope and reactivate the existing row for the triple.

        Returns the row as it was right before the write (None if inserted)
        and the row as written.
        """
        ...

    async def deactivate_permission(self, permission_id: int) -> PermissionEntity:
        ...

    def savepoint(self) -> AbstractAsyncContextManager[Any]:
        """Scope in which one mutation and its audit entry commit or roll back together"""
        ...

    def after_commit(self, callback: Callable[[], None]) -> None:
        """Run callback once pending writes are committed (immediately if none are open)"""
        ...


class IAuditLogStore(Protocol):
    """Append-only storage for permission audit entries (no update, no delete)"""

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
        ...

    async def search(self, filters: AuditFilter, limit: int) -> list[AuditEntry]:
        """Entries matching filters, newest first"""
        ...
