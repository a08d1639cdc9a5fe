"""
SQLAlchemy adapter for the permission store contract.

Translates ORM rows into domain entities and database failures into
StoreUnavailableError, so the authorization engine never sees SQLAlchemy.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from functools import wraps
from typing import ParamSpec, TypeVar

from sqlalchemy import event
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from qualitytrack.domain.entities import (ActionEntity, GrantedPermission,
                                          PermissionEntity, PrincipalRole,
                                          ResourceEntity, RoleEntity)
from qualitytrack.domain.enums import Scope
from qualitytrack.domain.exceptions import (ResourceNotFoundException,
                                            StoreUnavailableError)
from qualitytrack.infrastructure.persistence.models.permission import (Action,
                                                                       Permission,
                                                                       Resource)
from qualitytrack.infrastructure.persistence.models.role import Role
from qualitytrack.infrastructure.persistence.repositories.permission_repo import (
    ActionRepository, PermissionRepository, ResourceRepository)
from qualitytrack.infrastructure.persistence.repositories.role_repo import RoleRepository
from qualitytrack.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

P = ParamSpec("P")
R = TypeVar("R")


def store_operation(name: str):
    """Wrap SQLAlchemy failures of a store method into StoreUnavailableError"""

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            try:
                return await func(*args, **kwargs)
            except SQLAlchemyError as e:
                logger.error("Permission store error during %s: %s", name, e)
                raise StoreUnavailableError(name, type(e).__name__) from e

        return wrapper

    return decorator


def _role_entity(role: Role) -> RoleEntity:
    return RoleEntity(
        id=role.id,
        name=role.name,
        display_name=role.display_name,
        hierarchy=role.hierarchy,
        description=role.description,
        is_active=role.is_active,
    )


def _resource_entity(resource: Resource) -> ResourceEntity:
    return ResourceEntity(
        id=resource.id,
        name=resource.name,
        display_name=resource.display_name,
        description=resource.description,
    )


def _action_entity(action: Action) -> ActionEntity:
    return ActionEntity(
        id=action.id,
        name=action.name,
        display_name=action.display_name,
        description=action.description,
    )


def _permission_entity(permission: Permission) -> PermissionEntity:
    return PermissionEntity(
        id=permission.id,
        role_id=permission.role_id,
        resource_id=permission.resource_id,
        action_id=permission.action_id,
        scope=permission.scope,
        conditions=permission.conditions,
        is_active=permission.is_active,
    )


class SqlAlchemyPermissionStore:
    """IPermissionStore backed by an AsyncSession"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.roles = RoleRepository(db)
        self.resources = ResourceRepository(db)
        self.actions = ActionRepository(db)
        self.permissions = PermissionRepository(db)
        self._commit_callbacks: list[Callable[[], None]] = []
        self._listening = False

    @store_operation("get_role_and_team_for_user")
    async def get_role_and_team_for_user(self, user_id: int) -> PrincipalRole | None:
        found = await self.roles.get_active_user_role(user_id)
        if found is None:
            return None
        user, role = found
        return PrincipalRole(
            user_id=user.id,
            role_id=role.id,
            role_name=role.name,
            role_hierarchy=role.hierarchy,
            team_id=user.team_id,
        )

    @store_operation("get_active_permissions_for_role")
    async def get_active_permissions_for_role(self, role_id: int) -> list[GrantedPermission]:
        rows = await self.permissions.get_active_for_role(role_id)
        return [
            GrantedPermission(
                resource=resource, action=action, scope=scope, conditions=conditions
            )
            for resource, action, scope, conditions in rows
        ]

    @store_operation("get_all_roles")
    async def get_all_roles(self, include_inactive: bool = False) -> list[RoleEntity]:
        return [_role_entity(r) for r in await self.roles.list_roles(include_inactive)]

    @store_operation("get_all_resources")
    async def get_all_resources(self) -> list[ResourceEntity]:
        return [_resource_entity(r) for r in await self.resources.get_all()]

    @store_operation("get_all_actions")
    async def get_all_actions(self) -> list[ActionEntity]:
        return [_action_entity(a) for a in await self.actions.get_all()]

    @store_operation("get_all_permissions")
    async def get_all_permissions(self, include_inactive: bool) -> list[PermissionEntity]:
        rows = await self.permissions.list_permissions(include_inactive)
        return [_permission_entity(p) for p in rows]

    @store_operation("get_role")
    async def get_role(self, role_id: int) -> RoleEntity | None:
        role = await self.roles.get_by_id(role_id)
        return _role_entity(role) if role else None

    @store_operation("get_resource")
    async def get_resource(self, resource_id: int) -> ResourceEntity | None:
        resource = await self.resources.get_by_id(resource_id)
        return _resource_entity(resource) if resource else None

    @store_operation("get_action")
    async def get_action(self, action_id: int) -> ActionEntity | None:
        action = await self.actions.get_by_id(action_id)
        return _action_entity(action) if action else None

    @store_operation("find_permission")
    async def find_permission(
        self, role_id: int, resource_id: int, action_id: int
    ) -> PermissionEntity | None:
        permission = await self.permissions.get_by_triple(role_id, resource_id, action_id)
        return _permission_entity(permission) if permission else None

    async def _write_triple(
        self, role_id: int, resource_id: int, action_id: int, scope: Scope
    ) -> tuple[PermissionEntity | None, Permission]:
        async with self.db.begin_nested():
            permission = await self.permissions.get_by_triple(role_id, resource_id, action_id)
            if permission is None:
                previous = None
                permission = Permission(
                    role_id=role_id,
                    resource_id=resource_id,
                    action_id=action_id,
                    scope=scope.value,
                    is_active=True,
                )
                self.db.add(permission)
            else:
                previous = _permission_entity(permission)
                permission.scope = scope.value
                permission.is_active = True
            await self.db.flush()
        await self.db.refresh(permission)
        return previous, permission

    @store_operation("upsert_permission")
    async def upsert_permission(
        self, role_id: int, resource_id: int, action_id: int, scope: Scope
    ) -> tuple[PermissionEntity | None, PermissionEntity]:
        """
        Insert or reactivate the row for a triple.

        Returns (previous, current): previous is the row as it stood right
        before this write, None when the write inserted it. The unique
        constraint on (role_id, resource_id, action_id) makes a concurrent
        insert fail here; the row it created is then updated and reported
        as previous.
        """
        try:
            previous, permission = await self._write_triple(
                role_id, resource_id, action_id, scope
            )
        except IntegrityError:
            logger.info(
                "Concurrent insert for permission (%s, %s, %s); updating existing row",
                role_id,
                resource_id,
                action_id,
            )
            previous, permission = await self._write_triple(
                role_id, resource_id, action_id, scope
            )
        return previous, _permission_entity(permission)

    @store_operation("deactivate_permission")
    async def deactivate_permission(self, permission_id: int) -> PermissionEntity:
        permission = await self.permissions.get_by_id(permission_id)
        if permission is None:
            raise ResourceNotFoundException("permission", permission_id)
        permission.is_active = False
        permission = await self.permissions.update(permission)
        return _permission_entity(permission)

    @asynccontextmanager
    async def savepoint(self) -> AsyncIterator[None]:
        try:
            async with self.db.begin_nested():
                yield
        except SQLAlchemyError as e:
            logger.error("Permission store savepoint failed: %s", e)
            raise StoreUnavailableError("savepoint", type(e).__name__) from e

    def after_commit(self, callback: Callable[[], None]) -> None:
        """
        Run callback once the session's outermost transaction commits.

        Runs it right away when no transaction is open. SAVEPOINT releases
        do not count as commits.
        """
        if not self.db.in_transaction():
            callback()
            return
        self._commit_callbacks.append(callback)
        if not self._listening:
            event.listen(self.db.sync_session, "after_commit", self._run_commit_callbacks)
            self._listening = True

    def _run_commit_callbacks(self, session: Session) -> None:
        if session.in_nested_transaction():
            return
        callbacks, self._commit_callbacks = self._commit_callbacks, []
        for callback in callbacks:
            callback()
