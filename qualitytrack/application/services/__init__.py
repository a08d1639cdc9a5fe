from qualitytrack.application.services.authorization_service import AuthorizationService
from qualitytrack.application.services.permission_audit_service import PermissionAuditService
from qualitytrack.application.services.permission_cache import (InMemoryPermissionCache,
                                                                NullPermissionCache)
from qualitytrack.application.services.permission_matrix_service import PermissionMatrixService
from qualitytrack.application.services.permission_mutation_service import (
    PermissionMutationService)

__all__ = [
    "AuthorizationService",
    "InMemoryPermissionCache",
    "NullPermissionCache",
    "PermissionAuditService",
    "PermissionMatrixService",
    "PermissionMutationService",
]
