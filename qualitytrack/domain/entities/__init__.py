"""Domain entities."""

from qualitytrack.domain.entities.permission import (
    AccessContext,
    ActionEntity,
    AuditEntry,
    AuditFilter,
    GrantedPermission,
    MatrixCell,
    PermissionCheck,
    PermissionEntity,
    PermissionMatrix,
    PermissionStatistics,
    PermissionUpdate,
    PrincipalRole,
    ResolvedPermissionSet,
    ResourceEntity,
    RoleEntity,
    RolePermissionCount,
    UpdateError,
    UpdateResult,
)

__all__ = [
    "AccessContext",
    "ActionEntity",
    "AuditEntry",
    "AuditFilter",
    "GrantedPermission",
    "MatrixCell",
    "PermissionCheck",
    "PermissionEntity",
    "PermissionMatrix",
    "PermissionStatistics",
    "PermissionUpdate",
    "PrincipalRole",
    "ResolvedPermissionSet",
    "ResourceEntity",
    "RoleEntity",
    "RolePermissionCount",
    "UpdateError",
    "UpdateResult",
]
