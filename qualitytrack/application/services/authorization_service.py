from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Iterable
from typing import TypeVar

from qualitytrack.application.interfaces.repositories import IPermissionStore
from qualitytrack.application.interfaces.services import IPermissionCache
from qualitytrack.application.services.permission_cache import InMemoryPermissionCache
from qualitytrack.domain.entities import (AccessContext, PermissionCheck,
                                          ResolvedPermissionSet)
from qualitytrack.domain.enums import RoleName, Scope
from qualitytrack.domain.exceptions import (PermissionDeniedError,
                                            StoreUnavailableError)
from qualitytrack.domain.value_objects.scope import parse_scope, satisfies
from qualitytrack.shared.telemetry.logging import get_logger
from qualitytrack.shared.telemetry.tracing import add_span_attributes, traced

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_STORE_TIMEOUT_SECONDS = 5.0


class AuthorizationService:
    """
    Resolves what a principal may do.

    Follow principle: "Check permissions, not roles". Role-name and
    hierarchy helpers exist only for coarse admin gates.

    Deny outcomes (unknown user, inactive user, missing permission, scope
    mismatch) are ordinary False/None results. Only store failures raise,
    as StoreUnavailableError, and callers must treat them as deny.
    """

    def __init__(
        self,
        store: IPermissionStore,
        cache: IPermissionCache | None = None,
        store_timeout: float = DEFAULT_STORE_TIMEOUT_SECONDS,
    ):
        self.store = store
        self.cache = cache if cache is not None else InMemoryPermissionCache()
        self.store_timeout = store_timeout

    async def _call_store(self, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.store_timeout)
        except asyncio.TimeoutError as e:
            logger.error("Permission store timed out during %s", operation)
            raise StoreUnavailableError(operation, "timeout") from e

    async def _fetch(self, user_id: int) -> ResolvedPermissionSet | None:
        principal = await self._call_store(
            "get_role_and_team_for_user", self.store.get_role_and_team_for_user(user_id)
        )
        if principal is None:
            return None

        granted = await self._call_store(
            "get_active_permissions_for_role",
            self.store.get_active_permissions_for_role(principal.role_id),
        )
        return ResolvedPermissionSet(
            user_id=principal.user_id,
            role_id=principal.role_id,
            role_name=principal.role_name,
            role_hierarchy=principal.role_hierarchy,
            team_id=principal.team_id,
            permissions=tuple(granted),
        )

    @traced("authz.resolve")
    async def resolve(self, user_id: int) -> ResolvedPermissionSet | None:
        """
        Get the resolved permission set for a user, cache first.

        Returns None when the user does not exist or is inactive; callers
        must read None as deny. Misses are not cached so a freshly created
        user resolves on the next call. A fetch that overlaps an
        invalidation is returned but not cached.
        """
        cached = self.cache.get(user_id)
        if cached is not None:
            add_span_attributes(cache_hit=True)
            return cached

        generation = self.cache.generation()
        resolved = await self._fetch(user_id)
        add_span_attributes(cache_hit=False, resolved=resolved is not None)
        if resolved is not None:
            self.cache.set(user_id, resolved, generation=generation)
        return resolved

    @staticmethod
    def _evaluate(
        resolved: ResolvedPermissionSet,
        resource: str,
        action: str,
        required_scope: Scope | str | None,
    ) -> bool:
        permission = resolved.find(resource, action)
        if permission is None:
            return False
        if required_scope is None:
            return True
        return satisfies(permission.scope, required_scope)

    async def check(
        self,
        user_id: int,
        resource: str,
        action: str,
        required_scope: Scope | str | None = None,
    ) -> bool:
        """
        Check if user holds resource:action, optionally at least at required_scope.

        Examples:
            - check(user_id, "evaluations", "read")
            - check(user_id, "evaluations", "read", Scope.ALL)
        """
        resolved = await self.resolve(user_id)
        if resolved is None:
            logger.debug("Deny %s:%s for user %s (unresolved)", resource, action, user_id)
            return False
        return self._evaluate(resolved, resource, action, required_scope)

    async def check_instance(
        self,
        user_id: int,
        resource: str,
        action: str,
        context: AccessContext | None = None,
    ) -> bool:
        """
        Check access to one concrete record.

        The granted scope is matched against relationship facts:
        'all' always passes, 'team' needs matching team ids, 'own' needs
        the record owner to be the user.
        """
        context = context or AccessContext()
        resolved = await self.resolve(user_id)
        if resolved is None:
            return False

        permission = resolved.find(resource, action)
        if permission is None:
            return False

        scope = parse_scope(permission.scope)
        if scope is Scope.ALL:
            return True
        if scope is Scope.TEAM:
            if context.team_id is None or resolved.team_id is None:
                return False
            return resolved.team_id == context.team_id
        if scope is Scope.OWN:
            if context.owner_id is None:
                return False
            return resolved.user_id == context.owner_id
        return False

    async def check_many(
        self, user_id: int, checks: Iterable[PermissionCheck]
    ) -> dict[str, bool]:
        """Run several checks against a single resolve, keyed by 'resource:action'"""
        checks = list(checks)
        resolved = await self.resolve(user_id)
        if resolved is None:
            return {check.key: False for check in checks}

        return {
            check.key: self._evaluate(
                resolved, check.resource, check.action, check.required_scope
            )
            for check in checks
        }

    async def has_hierarchy_at_least(self, user_id: int, required_level: int) -> bool:
        resolved = await self.resolve(user_id)
        if resolved is None:
            return False
        return resolved.role_hierarchy >= required_level

    async def has_role(self, user_id: int, role_name: RoleName | str) -> bool:
        resolved = await self.resolve(user_id)
        if resolved is None:
            return False
        name = role_name.value if isinstance(role_name, RoleName) else role_name
        return resolved.role_name == name

    async def is_admin(self, user_id: int) -> bool:
        return await self.has_role(user_id, RoleName.ADMIN)

    async def is_team_leader(self, user_id: int) -> bool:
        return await self.has_role(user_id, RoleName.TEAM_LEADER)

    async def is_employee(self, user_id: int) -> bool:
        return await self.has_role(user_id, RoleName.EMPLOYEE)

    async def get_accessible_resources(self, user_id: int, action: str) -> list[str]:
        """Names of resources the user may perform action on, at any scope"""
        resolved = await self.resolve(user_id)
        if resolved is None:
            return []
        return [p.resource for p in resolved.permissions if p.action == action]

    async def require_permission(
        self,
        user_id: int,
        resource: str,
        action: str,
        required_scope: Scope | str | None = None,
    ) -> None:
        """Raise PermissionDeniedError if user lacks permission"""
        if not await self.check(user_id, resource, action, required_scope):
            raise PermissionDeniedError()

    def invalidate(self, user_id: int | None = None) -> None:
        """
        Drop cached permissions for one user, or for everyone.

        Call this when:
        - A user's role or team changes
        - A user is deactivated
        - Permissions were changed outside PermissionMutationService
        """
        if user_id is None:
            self.cache.invalidate_all()
        else:
            self.cache.invalidate(user_id)
