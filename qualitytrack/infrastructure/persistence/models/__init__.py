from qualitytrack.infrastructure.persistence.models.audit import PermissionAuditLog
# Mixins for model composition
from qualitytrack.infrastructure.persistence.models.mixins import (CreatedAtMixin,
                                                                   IntegerIdMixin,
                                                                   TimestampMixin)
from qualitytrack.infrastructure.persistence.models.permission import (Action,
                                                                       Permission,
                                                                       Resource)
from qualitytrack.infrastructure.persistence.models.role import Role
from qualitytrack.infrastructure.persistence.models.user import Team, User

__all__ = [
    # Models
    "Role",
    "Resource",
    "Action",
    "Permission",
    "PermissionAuditLog",
    "Team",
    "User",
    # Mixins
    "IntegerIdMixin",
    "CreatedAtMixin",
    "TimestampMixin",
]
