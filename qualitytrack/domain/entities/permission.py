"""
Authorization domain entities.

These represent roles, permissions and the resolved view of a principal,
independent of how they're stored in the database.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from qualitytrack.domain.enums import Scope
from qualitytrack.shared.enums import AuditAction


@dataclass(frozen=True)
class RoleEntity:
    id: int
    name: str
    display_name: str
    hierarchy: int
    description: str | None = None
    is_active: bool = True


@dataclass(frozen=True)
class ResourceEntity:
    """A protectable noun such as 'entries' or 'evaluations'"""

    id: int
    name: str
    display_name: str
    description: str | None = None


@dataclass(frozen=True)
class ActionEntity:
    """An operation such as 'read' or 'approve'"""

    id: int
    name: str
    display_name: str
    description: str | None = None


@dataclass(frozen=True)
class PermissionEntity:
    """
    A (role, resource, action) grant.

    At most one row exists per triple; revocation clears is_active
    instead of deleting the row.
    """

    id: int
    role_id: int
    resource_id: int
    action_id: int
    scope: Scope | str
    conditions: dict[str, Any] | None = None
    is_active: bool = True

    def snapshot(self) -> dict[str, Any]:
        """State captured in audit entries"""
        scope = self.scope.value if isinstance(self.scope, Scope) else self.scope
        return {
            "id": self.id,
            "role_id": self.role_id,
            "resource_id": self.resource_id,
            "action_id": self.action_id,
            "scope": scope,
            "conditions": self.conditions,
            "is_active": self.is_active,
        }


@dataclass(frozen=True)
class PrincipalRole:
    """A user reduced to what authorization needs (active users only)"""

    user_id: int
    role_id: int
    role_name: str
    role_hierarchy: int
    team_id: int | None = None


@dataclass(frozen=True)
class GrantedPermission:
    resource: str
    action: str
    scope: Scope | str
    conditions: dict[str, Any] | None = None


@dataclass(frozen=True)
class ResolvedPermissionSet:
    """
    Materialized permissions for one principal.

    Derived and cached, never persisted. Stale as soon as the principal's
    role or any permission of that role changes.
    """

    user_id: int
    role_id: int
    role_name: str
    role_hierarchy: int
    team_id: int | None
    permissions: tuple[GrantedPermission, ...] = ()

    def find(self, resource: str, action: str) -> GrantedPermission | None:
        """Exact, case-sensitive match on resource and action names"""
        for permission in self.permissions:
            if permission.resource == resource and permission.action == action:
                return permission
        return None


@dataclass(frozen=True)
class PermissionCheck:
    resource: str
    action: str
    required_scope: Scope | str | None = None

    @property
    def key(self) -> str:
        return f"{self.resource}:{self.action}"


@dataclass(frozen=True)
class AccessContext:
    """Relationship facts about one concrete record being acted on"""

    owner_id: int | None = None
    team_id: int | None = None


@dataclass(frozen=True)
class PermissionUpdate:
    resource_id: int
    action_id: int
    granted: bool
    scope: Scope | str = Scope.OWN


@dataclass(frozen=True)
class UpdateError:
    resource_id: int
    action_id: int
    error: str


@dataclass
class UpdateResult:
    updated_count: int = 0
    errors: list[UpdateError] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class MatrixCell:
    role_id: int
    resource_id: int
    action_id: int
    granted: bool
    scope: Scope | str = Scope.OWN
    permission_id: int | None = None


@dataclass(frozen=True)
class PermissionMatrix:
    roles: list[RoleEntity]
    resources: list[ResourceEntity]
    actions: list[ActionEntity]
    permissions: list[MatrixCell]


@dataclass(frozen=True)
class RolePermissionCount:
    role_id: int
    name: str
    display_name: str
    permission_count: int


@dataclass(frozen=True)
class PermissionStatistics:
    total_roles: int
    total_resources: int
    total_actions: int
    active_permissions: int
    inactive_permissions: int
    by_scope: dict[str, int]
    roles: list[RolePermissionCount]


@dataclass(frozen=True)
class AuditEntry:
    """Immutable record of one permission change"""

    id: int
    actor_user_id: int
    action: AuditAction
    permission_id: int
    role_id: int
    resource_name: str | None
    action_name: str | None
    old_value: dict[str, Any] | None
    new_value: dict[str, Any] | None
    timestamp: datetime


@dataclass(frozen=True)
class AuditFilter:
    user_id: int | None = None
    role_id: int | None = None
    resource_type: str | None = None
    start: datetime | None = None
    end: datetime | None = None
    limit: int | None = None
