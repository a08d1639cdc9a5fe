from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from qualitytrack.application.services.authorization_service import AuthorizationService
from qualitytrack.application.services.permission_audit_service import (
    PermissionAuditService)
from qualitytrack.application.services.permission_cache import InMemoryPermissionCache
from qualitytrack.application.services.permission_matrix_service import (
    PermissionMatrixService)
from qualitytrack.application.services.permission_mutation_service import (
    PermissionMutationService)
from qualitytrack.domain.enums import Scope
from qualitytrack.domain.exceptions import StoreUnavailableError
from qualitytrack.infrastructure.config.settings import get_settings
from qualitytrack.infrastructure.persistence.database import (get_db,
                                                              get_db_transactional)
from qualitytrack.infrastructure.persistence.repositories import (
    PermissionAuditRepository, SqlAlchemyPermissionStore)
from qualitytrack.infrastructure.security.jwt import verify_token
from qualitytrack.presentation.api.v1.schemas.token import TokenPayload
from qualitytrack.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

security = HTTPBearer()

# Process-wide permission cache (singleton)
_permission_cache: InMemoryPermissionCache | None = None


def get_permission_cache() -> InMemoryPermissionCache:
    """
    Permission cache dependency (singleton)

    Every request shares one cache so mutations invalidate what
    later checks read.
    """
    global _permission_cache
    if _permission_cache is None:
        _permission_cache = InMemoryPermissionCache(
            ttl_seconds=get_settings().permission_cache_ttl_seconds
        )
    return _permission_cache


def set_permission_cache(cache: InMemoryPermissionCache | None) -> None:
    """Replace the global permission cache (used on startup and in tests)"""
    global _permission_cache
    _permission_cache = cache


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> TokenPayload:
    """
    Validate JWT token and return authenticated user payload.
    Token must contain a numeric 'sub' (user_id) claim.
    """
    try:
        payload = verify_token(credentials.credentials)
        return TokenPayload(**payload)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid authentication credentials: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


async def get_authz_service(
    db: AsyncSession = Depends(get_db),
    cache: InMemoryPermissionCache = Depends(get_permission_cache),
) -> AuthorizationService:
    """Authorization service for manual permission checks"""
    return AuthorizationService(
        SqlAlchemyPermissionStore(db),
        cache=cache,
        store_timeout=get_settings().authz_store_timeout_seconds,
    )


def require_permission(resource: str, action: str, scope: Scope | None = None):
    """
    Dependency factory for route-level permission checking.

    Usage:
        @router.get("/matrix", dependencies=[Depends(require_permission("settings", "update"))])
        async def get_matrix(...):
            ...

    A deny is a 403 with a generic body; a store failure is a 503.
    Neither lets the request through.
    """

    async def permission_checker(
        user: TokenPayload = Depends(get_current_user),
        authz_service: AuthorizationService = Depends(get_authz_service),
    ) -> TokenPayload:
        try:
            allowed = await authz_service.check(user.sub, resource, action, scope)
        except StoreUnavailableError as e:
            logger.error(
                "Permission check %s:%s for user %s failed closed: %s",
                resource,
                action,
                user.sub,
                e.message,
            )
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Service temporarily unavailable",
            ) from e

        if not allowed:
            logger.debug("Denied %s:%s for user %s", resource, action, user.sub)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden"
            )

        return user

    return permission_checker


async def get_matrix_service(
    db: AsyncSession = Depends(get_db),
) -> PermissionMatrixService:
    return PermissionMatrixService(SqlAlchemyPermissionStore(db))


def _build_audit_service(db: AsyncSession) -> PermissionAuditService:
    settings = get_settings()
    return PermissionAuditService(
        PermissionAuditRepository(db),
        default_page_size=settings.audit_default_page_size,
        max_page_size=settings.audit_max_page_size,
    )


async def get_audit_service(db: AsyncSession = Depends(get_db)) -> PermissionAuditService:
    """Permission audit log dependency (read side)"""
    return _build_audit_service(db)


async def get_mutation_service_transactional(
    db: AsyncSession = Depends(get_db_transactional),
    cache: InMemoryPermissionCache = Depends(get_permission_cache),
) -> PermissionMutationService:
    """Permission mutation service with transaction management"""
    return PermissionMutationService(
        store=SqlAlchemyPermissionStore(db),
        audit=_build_audit_service(db),
        cache=cache,
    )
