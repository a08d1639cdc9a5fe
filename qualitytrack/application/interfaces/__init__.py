"""
Application layer interfaces (ports).

These protocols define the contracts between the application layer
and the infrastructure layer, following the Dependency Inversion Principle.
"""

from qualitytrack.application.interfaces.repositories import (IAuditLogStore,
                                                              IPermissionStore)
from qualitytrack.application.interfaces.services import (IAuditRecorder,
                                                          IPermissionCache)

__all__ = [
    # Repository interfaces
    "IPermissionStore",
    "IAuditLogStore",
    # Service interfaces
    "IPermissionCache",
    "IAuditRecorder",
]
