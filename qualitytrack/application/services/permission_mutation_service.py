"""
Permission Mutation Service.

Applies grant/revoke edits from the permission matrix. Every write goes
through the permission store, produces one audit entry, and the whole
permission cache is dropped once per batch: a single role change can
affect any number of principals and there is no cheap reverse index
from permission to user. The drop is deferred until the store commits,
so no reader can cache rows that predate the batch.
"""

from __future__ import annotations

from collections.abc import Iterable

from qualitytrack.application.interfaces.repositories import IPermissionStore
from qualitytrack.application.interfaces.services import (IAuditRecorder,
                                                          IPermissionCache)
from qualitytrack.domain.entities import (PermissionUpdate, UpdateError,
                                          UpdateResult)
from qualitytrack.domain.enums import Scope
from qualitytrack.domain.exceptions import (QualityTrackException,
                                            ValidationException)
from qualitytrack.domain.value_objects.scope import parse_scope
from qualitytrack.shared.enums import AuditAction
from qualitytrack.shared.telemetry.logging import get_logger
from qualitytrack.shared.telemetry.tracing import traced

logger = get_logger(__name__)


class PermissionMutationService:
    def __init__(
        self,
        store: IPermissionStore,
        audit: IAuditRecorder,
        cache: IPermissionCache,
    ) -> None:
        self.store = store
        self.audit = audit
        self.cache = cache

    @traced("authz.update_permissions")
    async def update_many(
        self,
        role_id: int,
        updates: Iterable[PermissionUpdate],
        actor_id: int,
    ) -> UpdateResult:
        """
        Apply a batch of grant/revoke edits for one role.

        A failing item never aborts the batch: its error is collected and
        processing continues. Returns how many rows were written plus the
        per-item errors.
        """
        result = UpdateResult()
        try:
            for update in updates:
                try:
                    written = await self._apply(role_id, update, actor_id)
                except QualityTrackException as e:
                    logger.warning(
                        "Permission update failed for role %s (%s/%s): %s",
                        role_id,
                        update.resource_id,
                        update.action_id,
                        e.message,
                    )
                    result.errors.append(
                        UpdateError(
                            resource_id=update.resource_id,
                            action_id=update.action_id,
                            error=e.message,
                        )
                    )
                    continue

                if written:
                    result.updated_count += 1
        finally:
            self.store.after_commit(self.cache.invalidate_all)

        logger.info(
            "Role %s permissions updated by user %s: %d written, %d errors",
            role_id,
            actor_id,
            result.updated_count,
            len(result.errors),
        )
        return result

    async def create_single(
        self,
        role_id: int,
        resource_id: int,
        action_id: int,
        scope: Scope | str,
        actor_id: int,
    ) -> UpdateResult:
        """Grant (or re-scope) one permission, as a single checkbox edit"""
        update = PermissionUpdate(
            resource_id=resource_id, action_id=action_id, granted=True, scope=scope
        )
        return await self.update_many(role_id, [update], actor_id)

    async def revoke_single(
        self,
        role_id: int,
        resource_id: int,
        action_id: int,
        actor_id: int,
    ) -> UpdateResult:
        update = PermissionUpdate(
            resource_id=resource_id, action_id=action_id, granted=False
        )
        return await self.update_many(role_id, [update], actor_id)

    async def _apply(
        self, role_id: int, update: PermissionUpdate, actor_id: int
    ) -> bool:
        """Write one edit and its audit entry. Returns False for no-op revokes."""
        scope = parse_scope(update.scope)
        if scope is None:
            raise ValidationException(
                f"Invalid scope '{update.scope}'. Must be one of: {', '.join(Scope.values())}",
                field="scope",
            )

        role = await self.store.get_role(role_id)
        if role is None:
            raise ValidationException(f"Unknown role: {role_id}", field="role_id")
        if not role.is_active:
            raise ValidationException(f"Role {role_id} is inactive", field="role_id")
        resource = await self.store.get_resource(update.resource_id)
        if resource is None:
            raise ValidationException(
                f"Unknown resource: {update.resource_id}", field="resource_id"
            )
        action = await self.store.get_action(update.action_id)
        if action is None:
            raise ValidationException(
                f"Unknown action: {update.action_id}", field="action_id"
            )

        async with self.store.savepoint():
            if update.granted:
                previous, permission = await self.store.upsert_permission(
                    role_id, update.resource_id, update.action_id, scope
                )
                audit_action = (
                    AuditAction.CREATED if previous is None else AuditAction.UPDATED
                )
            else:
                previous = await self.store.find_permission(
                    role_id, update.resource_id, update.action_id
                )
                if previous is None:
                    # Nothing was ever granted: nothing to revoke or audit
                    return False
                permission = await self.store.deactivate_permission(previous.id)
                audit_action = AuditAction.DELETED

            await self.audit.record(
                actor_id=actor_id,
                action=audit_action,
                permission=permission,
                old_value=previous.snapshot() if previous else None,
                new_value=permission.snapshot(),
                resource_name=resource.name,
                action_name=action.name,
            )

        return True
