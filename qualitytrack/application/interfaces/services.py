"""
Service interfaces (ports) for the application layer.

These protocols define the contracts for application services.
Following Dependency Inversion Principle (DIP).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

from qualitytrack.shared.enums import AuditAction

if TYPE_CHECKING:
    from qualitytrack.domain.entities import (AuditEntry, PermissionEntity,
                                              ResolvedPermissionSet)


class IPermissionCache(Protocol):
    """Per-principal cache of resolved permission sets"""

    def generation(self) -> int:
        """Counter bumped by every invalidation"""
        ...

    def get(self, user_id: int) -> ResolvedPermissionSet | None:
        """Fresh entry for user_id, or None on miss/expiry"""
        ...

    def set(
        self,
        user_id: int,
        resolved: ResolvedPermissionSet,
        generation: int | None = None,
    ) -> None:
        """Store resolved unless the cache was invalidated since generation was read"""
        ...

    def invalidate(self, user_id: int) -> None:
        ...

    def invalidate_all(self) -> None:
        ...


class IAuditRecorder(Protocol):
    """Records one audit entry per permission mutation"""

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
        ...
