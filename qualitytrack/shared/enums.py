"""
Shared enumerations for the QualityTrack application.

Note: Scope is in qualitytrack/domain/enums.py as it's a domain concept.
"""

from enum import Enum


class AuditAction(str, Enum):
    """Audit action types for permission change tracking"""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
