"""
Scope ordering.

Scopes form a total order own(1) < team(2) < all(3). Anything that is not a
known scope has ordinal 0 and never satisfies a requirement, so the check is
total and fails closed instead of raising.
"""

from qualitytrack.domain.enums import Scope

SCOPE_ORDINALS: dict[Scope, int] = {
    Scope.OWN: 1,
    Scope.TEAM: 2,
    Scope.ALL: 3,
}


def parse_scope(value: Scope | str | None) -> Scope | None:
    """Return the Scope for a label, or None when the label is unknown"""
    if isinstance(value, Scope):
        return value
    if not isinstance(value, str):
        return None
    try:
        return Scope(value)
    except ValueError:
        return None


def scope_ordinal(value: Scope | str | None) -> int:
    scope = parse_scope(value)
    if scope is None:
        return 0
    return SCOPE_ORDINALS[scope]


def satisfies(granted: Scope | str | None, required: Scope | str | None) -> bool:
    """
    Check whether a granted scope covers a required scope.

    Examples:
        satisfies("all", "own") -> True
        satisfies("own", "all") -> False
        satisfies("bogus", "own") -> False
    """
    granted_level = scope_ordinal(granted)
    if granted_level == 0:
        return False
    return granted_level >= scope_ordinal(required)
