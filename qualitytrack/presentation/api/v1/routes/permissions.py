from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from qualitytrack.application.services.authorization_service import AuthorizationService
from qualitytrack.application.services.permission_audit_service import (
    PermissionAuditService)
from qualitytrack.application.services.permission_cache import InMemoryPermissionCache
from qualitytrack.application.services.permission_matrix_service import (
    PermissionMatrixService)
from qualitytrack.application.services.permission_mutation_service import (
    PermissionMutationService)
from qualitytrack.domain.entities import (AuditFilter, PermissionUpdate,
                                          UpdateResult)
from qualitytrack.domain.enums import Scope
from qualitytrack.presentation.api.dependencies import (
    get_audit_service, get_authz_service, get_current_user, get_matrix_service,
    get_mutation_service_transactional, get_permission_cache, require_permission)
from qualitytrack.presentation.api.v1.schemas.permission import (
    ActionResponse, AuditEntryResponse, CacheInvalidateRequest,
    CacheInvalidateResponse, GrantedPermissionResponse, MatrixCellResponse,
    MatrixUpdateRequest, MyPermissionsResponse, PermissionMatrixResponse,
    PermissionStatisticsResponse, PermissionUpdateItem, ResourceResponse,
    RolePermissionCountResponse, RolePermissionsUpdate, RoleResponse,
    UpdateErrorResponse, UpdateResultResponse)
from qualitytrack.presentation.api.v1.schemas.token import TokenPayload

router = APIRouter()


def _scope_value(scope: Scope | str) -> str:
    return scope.value if isinstance(scope, Scope) else scope


def _to_updates(items: list[PermissionUpdateItem]) -> list[PermissionUpdate]:
    return [
        PermissionUpdate(
            resource_id=item.resource_id,
            action_id=item.action_id,
            granted=item.granted,
            scope=item.scope,
        )
        for item in items
    ]


def _update_response(result: UpdateResult) -> UpdateResultResponse:
    return UpdateResultResponse(
        success=result.success,
        updated=result.updated_count,
        errors=[
            UpdateErrorResponse(
                resource_id=e.resource_id, action_id=e.action_id, error=e.error
            )
            for e in result.errors
        ],
    )


@router.get("/permissions/me", response_model=MyPermissionsResponse)
async def get_my_permissions(
    current_user: Annotated[TokenPayload, Depends(get_current_user)],
    authz: Annotated[AuthorizationService, Depends(get_authz_service)],
):
    """Resolved permissions of the authenticated user"""
    resolved = await authz.resolve(current_user.sub)
    if resolved is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")

    return MyPermissionsResponse(
        user_id=resolved.user_id,
        role_id=resolved.role_id,
        role_name=resolved.role_name,
        role_hierarchy=resolved.role_hierarchy,
        team_id=resolved.team_id,
        permissions=[
            GrantedPermissionResponse(
                resource=p.resource,
                action=p.action,
                scope=_scope_value(p.scope),
                conditions=p.conditions,
            )
            for p in resolved.permissions
        ],
    )


@router.get("/permissions/matrix", response_model=PermissionMatrixResponse)
async def get_permission_matrix(
    matrix_service: Annotated[PermissionMatrixService, Depends(get_matrix_service)],
    _: Annotated[TokenPayload, Depends(require_permission("settings", "update"))],
):
    """Full role x resource x action grid (requires 'settings:update')"""
    matrix = await matrix_service.get_matrix()
    return PermissionMatrixResponse(
        roles=[
            RoleResponse(
                id=r.id,
                name=r.name,
                display_name=r.display_name,
                description=r.description,
                hierarchy=r.hierarchy,
            )
            for r in matrix.roles
        ],
        resources=[
            ResourceResponse(
                id=r.id, name=r.name, display_name=r.display_name, description=r.description
            )
            for r in matrix.resources
        ],
        actions=[
            ActionResponse(
                id=a.id, name=a.name, display_name=a.display_name, description=a.description
            )
            for a in matrix.actions
        ],
        permissions=[
            MatrixCellResponse(
                role_id=c.role_id,
                resource_id=c.resource_id,
                action_id=c.action_id,
                granted=c.granted,
                scope=_scope_value(c.scope),
                permission_id=c.permission_id,
            )
            for c in matrix.permissions
        ],
    )


@router.patch("/permissions/matrix", response_model=UpdateResultResponse)
async def update_permission_matrix(
    data: MatrixUpdateRequest,
    mutation_service: Annotated[
        PermissionMutationService, Depends(get_mutation_service_transactional)
    ],
    current_user: Annotated[TokenPayload, Depends(require_permission("settings", "update"))],
):
    """Apply a batch of grant/revoke edits for one role"""
    result = await mutation_service.update_many(
        data.role_id, _to_updates(data.updates), current_user.sub
    )
    return _update_response(result)


@router.put("/roles/{role_id}/permissions", response_model=UpdateResultResponse)
async def update_role_permissions(
    role_id: int,
    data: RolePermissionsUpdate,
    mutation_service: Annotated[
        PermissionMutationService, Depends(get_mutation_service_transactional)
    ],
    current_user: Annotated[TokenPayload, Depends(require_permission("settings", "update"))],
):
    """Apply a batch of grant/revoke edits to the role in the path"""
    result = await mutation_service.update_many(
        role_id, _to_updates(data.updates), current_user.sub
    )
    return _update_response(result)


@router.get("/permissions/audit", response_model=list[AuditEntryResponse])
async def get_permission_audit_log(
    audit_service: Annotated[PermissionAuditService, Depends(get_audit_service)],
    _: Annotated[TokenPayload, Depends(require_permission("settings", "read"))],
    user_id: int | None = Query(None, description="Filter by acting user"),
    role_id: int | None = Query(None, description="Filter by affected role"),
    resource_type: str | None = Query(None, description="Filter by resource name"),
    start_date: datetime | None = Query(None),
    end_date: datetime | None = Query(None),
    limit: int | None = Query(None, ge=1, description="Page size, capped server-side"),
):
    """Permission change history, newest first (requires 'settings:read')"""
    entries = await audit_service.query(
        AuditFilter(
            user_id=user_id,
            role_id=role_id,
            resource_type=resource_type,
            start=start_date,
            end=end_date,
            limit=limit,
        )
    )
    return [
        AuditEntryResponse(
            id=e.id,
            actor_user_id=e.actor_user_id,
            action=e.action,
            permission_id=e.permission_id,
            role_id=e.role_id,
            resource_name=e.resource_name,
            action_name=e.action_name,
            old_value=e.old_value,
            new_value=e.new_value,
            timestamp=e.timestamp,
        )
        for e in entries
    ]


@router.get("/permissions/statistics", response_model=PermissionStatisticsResponse)
async def get_permission_statistics(
    matrix_service: Annotated[PermissionMatrixService, Depends(get_matrix_service)],
    _: Annotated[TokenPayload, Depends(require_permission("settings", "read"))],
):
    stats = await matrix_service.get_statistics()
    return PermissionStatisticsResponse(
        total_roles=stats.total_roles,
        total_resources=stats.total_resources,
        total_actions=stats.total_actions,
        active_permissions=stats.active_permissions,
        inactive_permissions=stats.inactive_permissions,
        by_scope=stats.by_scope,
        roles=[
            RolePermissionCountResponse(
                role_id=r.role_id,
                name=r.name,
                display_name=r.display_name,
                permission_count=r.permission_count,
            )
            for r in stats.roles
        ],
    )


@router.post("/permissions/cache/invalidate", response_model=CacheInvalidateResponse)
async def invalidate_permission_cache(
    cache: Annotated[InMemoryPermissionCache, Depends(get_permission_cache)],
    _: Annotated[TokenPayload, Depends(require_permission("settings", "update"))],
    data: CacheInvalidateRequest | None = None,
):
    """Drop cached permissions for one user, or for everyone"""
    user_id = data.user_id if data else None
    if user_id is None:
        cache.invalidate_all()
        return CacheInvalidateResponse(message="Permission cache cleared")

    cache.invalidate(user_id)
    return CacheInvalidateResponse(
        message="Permission cache cleared for user", user_id=user_id
    )
