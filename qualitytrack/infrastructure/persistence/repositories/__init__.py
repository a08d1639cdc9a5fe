from qualitytrack.infrastructure.persistence.repositories.audit_repo import (
    PermissionAuditRepository)
from qualitytrack.infrastructure.persistence.repositories.base import BaseRepository
from qualitytrack.infrastructure.persistence.repositories.permission_repo import (
    ActionRepository, PermissionRepository, ResourceRepository)
from qualitytrack.infrastructure.persistence.repositories.permission_store import (
    SqlAlchemyPermissionStore)
from qualitytrack.infrastructure.persistence.repositories.role_repo import RoleRepository

__all__ = [
    "BaseRepository",
    "RoleRepository",
    "ResourceRepository",
    "ActionRepository",
    "PermissionRepository",
    "PermissionAuditRepository",
    "SqlAlchemyPermissionStore",
]
