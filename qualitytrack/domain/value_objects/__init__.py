"""Domain value objects."""

from qualitytrack.domain.value_objects.scope import (SCOPE_ORDINALS,
                                                     parse_scope,
                                                     satisfies,
                                                     scope_ordinal)

__all__ = [
    "SCOPE_ORDINALS",
    "parse_scope",
    "satisfies",
    "scope_ordinal",
]
