"""
Default RBAC data: roles, resources, actions and their permission grants.

seed_rbac() is idempotent; existing rows are left untouched.
"""
from typing import TypedDict

from sqlalchemy.ext.asyncio import AsyncSession

from qualitytrack.domain.enums import RoleName, Scope
from qualitytrack.infrastructure.persistence.models.permission import Permission
from qualitytrack.infrastructure.persistence.models.role import Role
from qualitytrack.infrastructure.persistence.repositories.permission_repo import (
    ActionRepository, PermissionRepository, ResourceRepository)
from qualitytrack.infrastructure.persistence.repositories.role_repo import RoleRepository
from qualitytrack.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


class RoleData(TypedDict):
    """Type definition for role configuration"""

    display_name: str
    description: str
    hierarchy: int


DEFAULT_ROLES: dict[str, RoleData] = {
    RoleName.ADMIN.value: {
        "display_name": "Administrator",
        "description": "Full system access - can manage all users, teams, and data",
        "hierarchy": 3,
    },
    RoleName.TEAM_LEADER.value: {
        "display_name": "Team Leader",
        "description": "Manages team members - can create schedules and evaluate performance",
        "hierarchy": 2,
    },
    RoleName.EMPLOYEE.value: {
        "display_name": "Employee",
        "description": "Basic access - can enter data and view personal schedules",
        "hierarchy": 1,
    },
}

# (name, display name, description)
DEFAULT_RESOURCES = [
    ("users", "Users", "User management"),
    ("teams", "Teams", "Team management"),
    ("schedules", "Schedules", "Weekly work schedules"),
    ("entries", "Entries", "Data entries"),
    ("evaluations", "Evaluations", "Quality evaluations"),
    ("reports", "Reports", "Reports and analytics"),
    ("settings", "Settings", "System settings and permissions"),
]

DEFAULT_ACTIONS = [
    ("create", "Create", "Create new items"),
    ("read", "Read", "View items"),
    ("update", "Update", "Modify items"),
    ("delete", "Delete", "Remove items"),
    ("approve", "Approve", "Approve requests"),
    ("reject", "Reject", "Reject requests"),
    ("evaluate", "Evaluate", "Perform evaluations"),
]

_CRUD = ("create", "read", "update", "delete")

# role -> [(resource, action, scope)]
DEFAULT_GRANTS: dict[str, list[tuple[str, str, Scope]]] = {
    RoleName.ADMIN.value: [
        *[("users", a, Scope.ALL) for a in _CRUD],
        *[("teams", a, Scope.ALL) for a in _CRUD],
        *[("schedules", a, Scope.ALL) for a in (*_CRUD, "approve", "reject")],
        *[("entries", a, Scope.ALL) for a in _CRUD],
        *[("evaluations", a, Scope.ALL) for a in _CRUD],
        ("reports", "read", Scope.ALL),
        *[("settings", a, Scope.ALL) for a in _CRUD],
    ],
    RoleName.TEAM_LEADER.value: [
        ("users", "read", Scope.TEAM),
        ("teams", "read", Scope.OWN),
        ("schedules", "create", Scope.TEAM),
        ("schedules", "read", Scope.TEAM),
        ("schedules", "update", Scope.TEAM),
        ("entries", "read", Scope.TEAM),
        ("evaluations", "create", Scope.TEAM),
        ("evaluations", "read", Scope.TEAM),
        ("evaluations", "update", Scope.TEAM),
        ("reports", "read", Scope.TEAM),
    ],
    RoleName.EMPLOYEE.value: [
        ("users", "read", Scope.OWN),
        ("users", "update", Scope.OWN),
        ("teams", "read", Scope.OWN),
        ("schedules", "read", Scope.OWN),
        ("entries", "create", Scope.OWN),
        ("entries", "read", Scope.OWN),
        ("entries", "update", Scope.OWN),
        ("evaluations", "read", Scope.OWN),
        ("reports", "read", Scope.OWN),
    ],
}


async def seed_roles(db: AsyncSession) -> dict[str, int]:
    """Create default roles. Returns mapping of name -> role_id"""
    repo = RoleRepository(db)
    role_map: dict[str, int] = {}
    for name, data in DEFAULT_ROLES.items():
        role = await repo.get_by_name(name)
        if role is None:
            role = await repo.create(Role(name=name, is_active=True, **data))
            logger.info("Created role: %s (%s)", name, data["display_name"])
        role_map[name] = role.id
    return role_map


async def _seed_lookup(
    repo: ResourceRepository | ActionRepository, rows: list[tuple[str, str, str]]
) -> dict[str, int]:
    lookup: dict[str, int] = {}
    for name, display_name, description in rows:
        obj = await repo.get_by_name(name)
        if obj is None:
            obj = await repo.create(
                repo.model(name=name, display_name=display_name, description=description)
            )
        lookup[name] = obj.id
    return lookup


async def seed_rbac(db: AsyncSession) -> None:
    """Seed roles, resources, actions and default permission grants"""
    role_map = await seed_roles(db)
    resource_map = await _seed_lookup(ResourceRepository(db), DEFAULT_RESOURCES)
    action_map = await _seed_lookup(ActionRepository(db), DEFAULT_ACTIONS)

    permissions = PermissionRepository(db)
    created = 0
    for role_name, grants in DEFAULT_GRANTS.items():
        for resource, action, scope in grants:
            triple = (role_map[role_name], resource_map[resource], action_map[action])
            if await permissions.get_by_triple(*triple) is not None:
                continue
            await permissions.create(
                Permission(
                    role_id=triple[0],
                    resource_id=triple[1],
                    action_id=triple[2],
                    scope=scope.value,
                    is_active=True,
                )
            )
            created += 1

    logger.info(
        "RBAC seed complete: %d roles, %d resources, %d actions, %d new permissions",
        len(role_map),
        len(resource_map),
        len(action_map),
        created,
    )
