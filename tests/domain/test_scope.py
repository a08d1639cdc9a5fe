"""Unit tests for scope ordering"""

import pytest

from qualitytrack.domain.enums import Scope
from qualitytrack.domain.value_objects.scope import (parse_scope, satisfies,
                                                     scope_ordinal)


class TestScopeOrdinal:
    def test_known_scopes_are_totally_ordered(self):
        assert scope_ordinal(Scope.OWN) < scope_ordinal(Scope.TEAM) < scope_ordinal(Scope.ALL)

    @pytest.mark.parametrize("value", ["bogus", "", "ALL", None, 3])
    def test_unknown_values_have_ordinal_zero(self, value):
        assert scope_ordinal(value) == 0

    def test_parse_scope_accepts_labels_and_members(self):
        assert parse_scope("team") is Scope.TEAM
        assert parse_scope(Scope.ALL) is Scope.ALL
        assert parse_scope("Team") is None


class TestSatisfies:
    @pytest.mark.parametrize(
        "granted,required,expected",
        [
            ("all", "own", True),
            ("all", "team", True),
            ("all", "all", True),
            ("team", "own", True),
            ("team", "team", True),
            ("team", "all", False),
            ("own", "own", True),
            ("own", "team", False),
            ("own", "all", False),
        ],
    )
    def test_granted_covers_required_when_at_least_as_broad(self, granted, required, expected):
        assert satisfies(granted, required) is expected

    def test_unknown_granted_scope_never_satisfies(self):
        """
        GIVEN a stored scope label that is not own/team/all
        WHEN checked against any requirement
        THEN the check denies instead of raising
        """
        for required in Scope:
            assert satisfies("superuser", required) is False

    def test_unknown_required_scope_is_met_by_any_known_grant(self):
        assert satisfies(Scope.OWN, "bogus") is True
