"""Domain enumerations."""

from enum import Enum


class Scope(str, Enum):
    """
    Breadth of records a permission covers.

    OWN: the acting user's own records
    TEAM: records belonging to the acting user's team
    ALL: every record
    """

    OWN = "own"
    TEAM = "team"
    ALL = "all"

    @classmethod
    def values(cls) -> list[str]:
        """Get all valid values"""
        return [scope.value for scope in cls]


class RoleName(str, Enum):
    """Role names seeded on first run"""

    ADMIN = "admin"
    TEAM_LEADER = "team_leader"
    EMPLOYEE = "employee"
