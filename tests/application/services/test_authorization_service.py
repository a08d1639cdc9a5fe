"""Unit tests for AuthorizationService"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from conftest import (ADMIN_USER, EMPLOYEE_ROLE, EMPLOYEE_USER, ENTRIES, EVALUATIONS,
                      INACTIVE_USER, LEADER_ROLE, LEADER_USER, OTHER_EMPLOYEE, READ, TEAM_A,
                      TEAM_B, UPDATE)
from qualitytrack.application.services.authorization_service import AuthorizationService
from qualitytrack.application.services.permission_cache import (
    InMemoryPermissionCache, NullPermissionCache)
from qualitytrack.domain.entities import AccessContext, PermissionCheck
from qualitytrack.domain.enums import RoleName, Scope
from qualitytrack.domain.exceptions import (PermissionDeniedError,
                                            StoreUnavailableError)


@pytest.fixture
def cache():
    return InMemoryPermissionCache(ttl_seconds=300)


@pytest.fixture
def authz(fake_store, cache):
    """AuthorizationService instance"""
    return AuthorizationService(fake_store, cache=cache, store_timeout=1.0)


class TestResolve:
    """Tests for resolve method"""

    async def test_resolves_role_team_and_active_permissions(self, authz):
        resolved = await authz.resolve(LEADER_USER)

        assert resolved is not None
        assert resolved.role_name == "team_leader"
        assert resolved.role_hierarchy == 2
        assert resolved.team_id == TEAM_A
        assert {(p.resource, p.action) for p in resolved.permissions} == {
            ("entries", "read"),
            ("evaluations", "create"),
        }

    async def test_unknown_user_resolves_to_none(self, authz):
        assert await authz.resolve(9999) is None

    async def test_inactive_user_resolves_to_none(self, authz):
        assert await authz.resolve(INACTIVE_USER) is None

    async def test_inactive_permission_rows_are_excluded(self, authz, fake_store):
        """
        GIVEN an inactive permission row for the employee role
        WHEN resolving an employee
        THEN the inactive row is not part of the set
        """
        fake_store.grant(EMPLOYEE_ROLE, ENTRIES, UPDATE, Scope.OWN, is_active=False)

        resolved = await authz.resolve(EMPLOYEE_USER)

        assert resolved.find("entries", "update") is None

    async def test_second_resolve_is_served_from_cache(self, authz, fake_store):
        await authz.resolve(EMPLOYEE_USER)
        calls_after_first = len(fake_store.calls)

        await authz.resolve(EMPLOYEE_USER)

        assert len(fake_store.calls) == calls_after_first

    async def test_misses_are_not_cached(self, authz, fake_store, cache):
        """
        GIVEN a user unknown on first lookup
        WHEN the user is created and resolved again
        THEN the new user resolves without waiting for a TTL
        """
        assert await authz.resolve(555) is None
        assert cache.size() == 0

        fake_store.add_user(555, EMPLOYEE_ROLE)

        assert await authz.resolve(555) is not None

    async def test_default_cache_is_in_memory(self, fake_store):
        service = AuthorizationService(fake_store)
        assert isinstance(service.cache, InMemoryPermissionCache)


class TestCheck:
    """Tests for check method"""

    async def test_admin_all_scope_covers_every_requirement(self, authz):
        assert await authz.check(ADMIN_USER, "entries", "read", Scope.ALL) is True
        assert await authz.check(ADMIN_USER, "entries", "read", Scope.OWN) is True

    async def test_employee_own_scope_does_not_cover_team(self, authz):
        """
        GIVEN an employee with entries:read at own scope
        WHEN checking entries:read requiring own, then team
        THEN own passes and team is denied
        """
        assert await authz.check(EMPLOYEE_USER, "entries", "read", Scope.OWN) is True
        assert await authz.check(EMPLOYEE_USER, "entries", "read", Scope.TEAM) is False

    async def test_no_required_scope_means_any_scope(self, authz):
        assert await authz.check(EMPLOYEE_USER, "entries", "read") is True

    async def test_missing_permission_denies(self, authz):
        assert await authz.check(EMPLOYEE_USER, "settings", "update") is False

    async def test_names_match_exactly(self, authz):
        assert await authz.check(EMPLOYEE_USER, "Entries", "read") is False
        assert await authz.check(EMPLOYEE_USER, "entries", "READ") is False

    async def test_unknown_user_denies(self, authz):
        assert await authz.check(9999, "entries", "read") is False

    async def test_inactive_user_denies(self, authz):
        assert await authz.check(INACTIVE_USER, "entries", "read") is False

    async def test_unknown_granted_scope_denies(self, authz, fake_store):
        fake_store.grant(EMPLOYEE_ROLE, ENTRIES, UPDATE, "superuser")

        assert await authz.check(EMPLOYEE_USER, "entries", "update", Scope.OWN) is False

    async def test_string_scope_is_accepted(self, authz):
        assert await authz.check(LEADER_USER, "entries", "read", "team") is True


class TestCheckInstance:
    """Tests for check_instance method"""

    async def test_all_scope_passes_without_context(self, authz):
        assert await authz.check_instance(ADMIN_USER, "entries", "read") is True

    async def test_team_scope_requires_matching_team(self, authz):
        assert await authz.check_instance(
            LEADER_USER, "entries", "read", AccessContext(team_id=TEAM_A)
        ) is True
        assert await authz.check_instance(
            LEADER_USER, "entries", "read", AccessContext(team_id=TEAM_B)
        ) is False

    async def test_team_scope_without_record_team_denies(self, authz):
        assert await authz.check_instance(
            LEADER_USER, "entries", "read", AccessContext(owner_id=LEADER_USER)
        ) is False

    async def test_own_scope_requires_ownership(self, authz):
        """
        GIVEN two employees with entries:read at own scope
        WHEN each accesses the other's record
        THEN access is denied in both directions
        """
        assert await authz.check_instance(
            EMPLOYEE_USER, "entries", "read", AccessContext(owner_id=EMPLOYEE_USER)
        ) is True
        assert await authz.check_instance(
            EMPLOYEE_USER, "entries", "read", AccessContext(owner_id=OTHER_EMPLOYEE)
        ) is False
        assert await authz.check_instance(
            OTHER_EMPLOYEE, "entries", "read", AccessContext(owner_id=EMPLOYEE_USER)
        ) is False

    async def test_own_scope_ignores_team_match(self, authz):
        assert await authz.check_instance(
            EMPLOYEE_USER, "entries", "read", AccessContext(team_id=TEAM_A)
        ) is False

    async def test_missing_permission_denies(self, authz):
        assert await authz.check_instance(
            EMPLOYEE_USER, "settings", "update", AccessContext(owner_id=EMPLOYEE_USER)
        ) is False

    async def test_unknown_user_denies(self, authz):
        assert await authz.check_instance(9999, "entries", "read", AccessContext(owner_id=9999)) is False


class TestCheckMany:
    async def test_results_keyed_by_resource_action(self, authz):
        results = await authz.check_many(
            EMPLOYEE_USER,
            [
                PermissionCheck("entries", "read"),
                PermissionCheck("entries", "create", Scope.TEAM),
                PermissionCheck("settings", "update"),
            ],
        )

        assert results == {
            "entries:read": True,
            "entries:create": False,
            "settings:update": False,
        }

    async def test_single_resolve_for_all_checks(self, authz, fake_store):
        await authz.check_many(
            EMPLOYEE_USER,
            [PermissionCheck("entries", "read"), PermissionCheck("entries", "create")],
        )

        assert fake_store.calls.count("get_role_and_team_for_user") == 1

    async def test_unknown_user_gets_all_false(self, authz):
        results = await authz.check_many(9999, [PermissionCheck("entries", "read")])
        assert results == {"entries:read": False}


class TestRoleHelpers:
    async def test_role_predicates(self, authz):
        assert await authz.is_admin(ADMIN_USER) is True
        assert await authz.is_team_leader(LEADER_USER) is True
        assert await authz.is_employee(EMPLOYEE_USER) is True
        assert await authz.is_admin(EMPLOYEE_USER) is False
        assert await authz.has_role(LEADER_USER, RoleName.TEAM_LEADER) is True
        assert await authz.has_role(LEADER_USER, "team_leader") is True

    async def test_hierarchy_at_least(self, authz):
        assert await authz.has_hierarchy_at_least(LEADER_USER, 2) is True
        assert await authz.has_hierarchy_at_least(LEADER_USER, 3) is False
        assert await authz.has_hierarchy_at_least(9999, 1) is False

    async def test_accessible_resources(self, authz):
        assert await authz.get_accessible_resources(LEADER_USER, "read") == ["entries"]
        assert await authz.get_accessible_resources(9999, "read") == []


class TestRequirePermission:
    async def test_allowed_returns_none(self, authz):
        assert await authz.require_permission(ADMIN_USER, "settings", "update") is None

    async def test_denied_raises_generic_error(self, authz):
        with pytest.raises(PermissionDeniedError) as exc_info:
            await authz.require_permission(EMPLOYEE_USER, "settings", "update")

        assert exc_info.value.message == "Forbidden"


class TestStoreFailures:
    async def test_store_timeout_fails_closed(self, fake_store):
        """
        GIVEN a store lookup that never returns
        WHEN checking a permission
        THEN StoreUnavailableError is raised instead of an allow
        """

        async def hang(user_id):
            await asyncio.sleep(10)

        fake_store.get_role_and_team_for_user = hang
        service = AuthorizationService(fake_store, cache=NullPermissionCache(), store_timeout=0.01)

        with pytest.raises(StoreUnavailableError):
            await service.check(ADMIN_USER, "entries", "read")

    async def test_store_error_propagates(self, fake_store):
        fake_store.get_active_permissions_for_role = AsyncMock(
            side_effect=StoreUnavailableError("get_active_permissions_for_role")
        )
        service = AuthorizationService(fake_store, cache=NullPermissionCache())

        with pytest.raises(StoreUnavailableError):
            await service.resolve(ADMIN_USER)


class TestInvalidate:
    async def test_invalidate_user_forces_reload(self, authz, fake_store):
        """
        GIVEN a cached employee set
        WHEN the role gains a permission and the user is invalidated
        THEN the next check sees the new permission
        """
        assert await authz.check(EMPLOYEE_USER, "entries", "update") is False
        fake_store.grant(EMPLOYEE_ROLE, ENTRIES, UPDATE, Scope.OWN)

        # Still served from cache
        assert await authz.check(EMPLOYEE_USER, "entries", "update") is False

        authz.invalidate(EMPLOYEE_USER)

        assert await authz.check(EMPLOYEE_USER, "entries", "update") is True

    async def test_invalidate_without_user_clears_everything(self, authz, cache):
        await authz.resolve(EMPLOYEE_USER)
        await authz.resolve(ADMIN_USER)
        assert cache.size() == 2

        authz.invalidate()

        assert cache.size() == 0

    async def test_fetch_overlapping_invalidation_is_not_cached(self, authz, cache, fake_store):
        """
        GIVEN a resolve whose store fetch is still in flight
        WHEN the cache is invalidated before the fetch returns
        THEN the fetched set is returned but not cached, and the next check reloads
        """
        fetch_permissions = fake_store.get_active_permissions_for_role

        async def fetch_while_role_changes(role_id):
            granted = await fetch_permissions(role_id)
            fake_store.grant(EMPLOYEE_ROLE, ENTRIES, UPDATE, Scope.OWN)
            cache.invalidate_all()
            return granted

        fake_store.get_active_permissions_for_role = fetch_while_role_changes
        resolved = await authz.resolve(EMPLOYEE_USER)
        fake_store.get_active_permissions_for_role = fetch_permissions

        assert resolved is not None
        assert cache.get(EMPLOYEE_USER) is None
        assert await authz.check(EMPLOYEE_USER, "entries", "update") is True

    async def test_invalidate_one_user_keeps_others(self, authz, cache):
        await authz.resolve(EMPLOYEE_USER)
        await authz.resolve(ADMIN_USER)

        authz.invalidate(EMPLOYEE_USER)

        assert cache.get(EMPLOYEE_USER) is None
        assert cache.get(ADMIN_USER) is not None


class TestTeamLeaderScenario:
    async def test_team_scoped_read(self, authz, fake_store):
        """
        GIVEN team_leader holds evaluations:read at team scope
        WHEN checking without scope, at all scope, and on two teams' records
        THEN only the own-team and unscoped checks pass
        """
        fake_store.grant(LEADER_ROLE, EVALUATIONS, READ, Scope.TEAM)

        assert await authz.check(LEADER_USER, "evaluations", "read") is True
        assert await authz.check(LEADER_USER, "evaluations", "read", Scope.ALL) is False
        assert await authz.check_instance(
            LEADER_USER, "evaluations", "read", AccessContext(team_id=TEAM_A)
        ) is True
        assert await authz.check_instance(
            LEADER_USER, "evaluations", "read", AccessContext(team_id=TEAM_B)
        ) is False


class TestDeactivation:
    async def test_deactivated_user_loses_every_permission(self, authz, fake_store):
        assert await authz.check(EMPLOYEE_USER, "entries", "read") is True

        role_id, team_id, _ = fake_store.users[EMPLOYEE_USER]
        fake_store.users[EMPLOYEE_USER] = (role_id, team_id, False)
        authz.invalidate(EMPLOYEE_USER)

        assert await authz.check(EMPLOYEE_USER, "entries", "read") is False
        assert await authz.check(EMPLOYEE_USER, "entries", "create") is False