"""Shared test fixtures for pytest"""
import os
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import datetime
from typing import Any

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-qualitytrack-tests")

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from qualitytrack.domain.entities import (ActionEntity, AuditEntry, AuditFilter,
                                          GrantedPermission, PermissionEntity,
                                          PrincipalRole, ResourceEntity,
                                          RoleEntity)
from qualitytrack.domain.enums import Scope
from qualitytrack.infrastructure.persistence.database import (Base,
                                                              create_engine,
                                                              create_sessionmaker)
from qualitytrack.infrastructure.persistence import models  # noqa: F401
from qualitytrack.shared.enums import AuditAction

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakePermissionStore:
    """In-memory permission store with the same contract as the SQL adapter"""

    def __init__(self):
        self.roles: dict[int, RoleEntity] = {}
        self.resources: dict[int, ResourceEntity] = {}
        self.actions: dict[int, ActionEntity] = {}
        self.permissions: dict[int, PermissionEntity] = {}
        # user_id -> (role_id, team_id, is_active)
        self.users: dict[int, tuple[int, int | None, bool]] = {}
        self.calls: list[str] = []
        self._next_permission_id = 1
        # When True, after_commit callbacks wait for commit()
        self.open_transaction = False
        self.commit_callbacks: list = []

    # Setup helpers
    def add_role(self, role_id: int, name: str, hierarchy: int, is_active: bool = True):
        self.roles[role_id] = RoleEntity(
            id=role_id,
            name=name,
            display_name=name.replace("_", " ").title(),
            hierarchy=hierarchy,
            is_active=is_active,
        )

    def add_resource(self, resource_id: int, name: str, display_name: str | None = None):
        self.resources[resource_id] = ResourceEntity(
            id=resource_id, name=name, display_name=display_name or name.title()
        )

    def add_action(self, action_id: int, name: str, display_name: str | None = None):
        self.actions[action_id] = ActionEntity(
            id=action_id, name=name, display_name=display_name or name.title()
        )

    def add_user(self, user_id: int, role_id: int, team_id: int | None = None, is_active: bool = True):
        self.users[user_id] = (role_id, team_id, is_active)

    def grant(self, role_id: int, resource_id: int, action_id: int, scope: Scope | str, is_active: bool = True):
        permission = PermissionEntity(
            id=self._next_permission_id,
            role_id=role_id,
            resource_id=resource_id,
            action_id=action_id,
            scope=scope,
            is_active=is_active,
        )
        self.permissions[permission.id] = permission
        self._next_permission_id += 1
        return permission

    # Contract
    async def get_role_and_team_for_user(self, user_id: int) -> PrincipalRole | None:
        self.calls.append("get_role_and_team_for_user")
        found = self.users.get(user_id)
        if found is None:
            return None
        role_id, team_id, is_active = found
        role = self.roles.get(role_id)
        if not is_active or role is None:
            return None
        return PrincipalRole(
            user_id=user_id,
            role_id=role.id,
            role_name=role.name,
            role_hierarchy=role.hierarchy,
            team_id=team_id,
        )

    async def get_active_permissions_for_role(self, role_id: int) -> list[GrantedPermission]:
        self.calls.append("get_active_permissions_for_role")
        return [
            GrantedPermission(
                resource=self.resources[p.resource_id].name,
                action=self.actions[p.action_id].name,
                scope=p.scope,
                conditions=p.conditions,
            )
            for p in self.permissions.values()
            if p.role_id == role_id and p.is_active
        ]

    async def get_all_roles(self, include_inactive: bool = False) -> list[RoleEntity]:
        return [r for r in self.roles.values() if include_inactive or r.is_active]

    async def get_all_resources(self) -> list[ResourceEntity]:
        return list(self.resources.values())

    async def get_all_actions(self) -> list[ActionEntity]:
        return list(self.actions.values())

    async def get_all_permissions(self, include_inactive: bool) -> list[PermissionEntity]:
        return [p for p in self.permissions.values() if include_inactive or p.is_active]

    async def get_role(self, role_id: int) -> RoleEntity | None:
        return self.roles.get(role_id)

    async def get_resource(self, resource_id: int) -> ResourceEntity | None:
        return self.resources.get(resource_id)

    async def get_action(self, action_id: int) -> ActionEntity | None:
        return self.actions.get(action_id)

    async def find_permission(self, role_id: int, resource_id: int, action_id: int) -> PermissionEntity | None:
        for p in self.permissions.values():
            if (p.role_id, p.resource_id, p.action_id) == (role_id, resource_id, action_id):
                return p
        return None

    async def upsert_permission(self, role_id: int, resource_id: int, action_id: int, scope: Scope):
        existing = await self.find_permission(role_id, resource_id, action_id)
        if existing is None:
            return None, self.grant(role_id, resource_id, action_id, scope)
        updated = replace(existing, scope=scope, is_active=True)
        self.permissions[existing.id] = updated
        return existing, updated

    async def deactivate_permission(self, permission_id: int) -> PermissionEntity:
        updated = replace(self.permissions[permission_id], is_active=False)
        self.permissions[permission_id] = updated
        return updated

    @asynccontextmanager
    async def savepoint(self):
        snapshot = dict(self.permissions)
        try:
            yield
        except Exception:
            self.permissions = snapshot
            raise

    def after_commit(self, callback) -> None:
        if self.open_transaction:
            self.commit_callbacks.append(callback)
        else:
            callback()

    def commit(self) -> None:
        callbacks, self.commit_callbacks = self.commit_callbacks, []
        self.open_transaction = False
        for callback in callbacks:
            callback()


class FakeAuditLogStore:
    """Append-only in-memory audit log"""

    def __init__(self):
        self.entries: list[AuditEntry] = []

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
        entry = AuditEntry(
            id=len(self.entries) + 1,
            actor_user_id=actor_user_id,
            action=action,
            permission_id=permission_id,
            role_id=role_id,
            resource_name=resource_name,
            action_name=action_name,
            old_value=old_value,
            new_value=new_value,
            timestamp=timestamp,
        )
        self.entries.append(entry)
        return entry

    async def search(self, filters: AuditFilter, limit: int) -> list[AuditEntry]:
        matches = [
            e
            for e in self.entries
            if (filters.user_id is None or e.actor_user_id == filters.user_id)
            and (filters.role_id is None or e.role_id == filters.role_id)
            and (not filters.resource_type or e.resource_name == filters.resource_type)
            and (filters.start is None or e.timestamp >= filters.start)
            and (filters.end is None or e.timestamp <= filters.end)
        ]
        matches.sort(key=lambda e: (e.timestamp, e.id), reverse=True)
        return matches[:limit]


# Ids used by the standard fixture data
ADMIN_ROLE, LEADER_ROLE, EMPLOYEE_ROLE = 1, 2, 3
ENTRIES, EVALUATIONS, SETTINGS = 10, 11, 12
CREATE, READ, UPDATE = 20, 21, 22
ADMIN_USER, LEADER_USER, EMPLOYEE_USER, OTHER_EMPLOYEE, INACTIVE_USER = 100, 101, 102, 103, 104
TEAM_A, TEAM_B = 7, 8


@pytest.fixture
def fake_store() -> FakePermissionStore:
    """
    Three roles with a small grant set:
    admin: entries:read(all), settings:update(all)
    team_leader: entries:read(team), evaluations:create(team)
    employee: entries:read(own), entries:create(own)
    """
    store = FakePermissionStore()
    store.add_role(ADMIN_ROLE, "admin", 3)
    store.add_role(LEADER_ROLE, "team_leader", 2)
    store.add_role(EMPLOYEE_ROLE, "employee", 1)
    store.add_resource(ENTRIES, "entries")
    store.add_resource(EVALUATIONS, "evaluations")
    store.add_resource(SETTINGS, "settings")
    store.add_action(CREATE, "create")
    store.add_action(READ, "read")
    store.add_action(UPDATE, "update")

    store.grant(ADMIN_ROLE, ENTRIES, READ, Scope.ALL)
    store.grant(ADMIN_ROLE, SETTINGS, UPDATE, Scope.ALL)
    store.grant(LEADER_ROLE, ENTRIES, READ, Scope.TEAM)
    store.grant(LEADER_ROLE, EVALUATIONS, CREATE, Scope.TEAM)
    store.grant(EMPLOYEE_ROLE, ENTRIES, READ, Scope.OWN)
    store.grant(EMPLOYEE_ROLE, ENTRIES, CREATE, Scope.OWN)

    store.add_user(ADMIN_USER, ADMIN_ROLE)
    store.add_user(LEADER_USER, LEADER_ROLE, team_id=TEAM_A)
    store.add_user(EMPLOYEE_USER, EMPLOYEE_ROLE, team_id=TEAM_A)
    store.add_user(OTHER_EMPLOYEE, EMPLOYEE_ROLE, team_id=TEAM_B)
    store.add_user(INACTIVE_USER, ADMIN_ROLE, is_active=False)
    return store


@pytest.fixture
def fake_audit_store() -> FakeAuditLogStore:
    return FakeAuditLogStore()


@pytest.fixture
async def test_engine():
    """Create in-memory SQLite engine with the full schema"""
    engine = create_engine(TEST_DATABASE_URL)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def test_db(test_engine):
    """Create test database session"""
    async with create_sessionmaker(test_engine)() as session:
        yield session


@pytest.fixture
async def seeded_db(test_db: AsyncSession):
    """Session with default RBAC data seeded and committed"""
    from qualitytrack.infrastructure.persistence.seed import seed_rbac

    async with test_db.begin():
        await seed_rbac(test_db)
    return test_db
