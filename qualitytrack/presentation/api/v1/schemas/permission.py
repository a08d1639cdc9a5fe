from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from qualitytrack.domain.enums import Scope
from qualitytrack.shared.enums import AuditAction


# Resolved permissions
class GrantedPermissionResponse(BaseModel):
    resource: str
    action: str
    scope: str
    conditions: dict[str, Any] | None = None


class MyPermissionsResponse(BaseModel):
    """Resolved permission set of the authenticated user"""

    user_id: int
    role_id: int
    role_name: str
    role_hierarchy: int
    team_id: int | None = None
    permissions: list[GrantedPermissionResponse] = []


# Matrix
class RoleResponse(BaseModel):
    id: int
    name: str
    display_name: str
    description: str | None = None
    hierarchy: int


class ResourceResponse(BaseModel):
    id: int
    name: str
    display_name: str
    description: str | None = None


class ActionResponse(BaseModel):
    id: int
    name: str
    display_name: str
    description: str | None = None


class MatrixCellResponse(BaseModel):
    role_id: int
    resource_id: int
    action_id: int
    granted: bool
    scope: str
    permission_id: int | None = None


class PermissionMatrixResponse(BaseModel):
    roles: list[RoleResponse]
    resources: list[ResourceResponse]
    actions: list[ActionResponse]
    permissions: list[MatrixCellResponse]


# Mutations
class PermissionUpdateItem(BaseModel):
    """One checkbox edit in the matrix"""

    resource_id: int = Field(..., description="Resource ID")
    action_id: int = Field(..., description="Action ID")
    granted: bool = Field(..., description="Grant (true) or revoke (false)")
    scope: str = Field(
        Scope.OWN.value, description="Scope to grant: own, team or all"
    )


class RolePermissionsUpdate(BaseModel):
    updates: list[PermissionUpdateItem] = Field(default_factory=list)


class MatrixUpdateRequest(RolePermissionsUpdate):
    role_id: int = Field(..., description="Role whose permissions change")


class UpdateErrorResponse(BaseModel):
    resource_id: int
    action_id: int
    error: str


class UpdateResultResponse(BaseModel):
    success: bool
    updated: int
    errors: list[UpdateErrorResponse] = []


# Audit
class AuditEntryResponse(BaseModel):
    id: int
    actor_user_id: int
    action: AuditAction
    permission_id: int
    role_id: int
    resource_name: str | None = None
    action_name: str | None = None
    old_value: dict[str, Any] | None = None
    new_value: dict[str, Any] | None = None
    timestamp: datetime


# Statistics
class RolePermissionCountResponse(BaseModel):
    role_id: int
    name: str
    display_name: str
    permission_count: int


class PermissionStatisticsResponse(BaseModel):
    total_roles: int
    total_resources: int
    total_actions: int
    active_permissions: int
    inactive_permissions: int
    by_scope: dict[str, int]
    roles: list[RolePermissionCountResponse]


# Cache
class CacheInvalidateRequest(BaseModel):
    user_id: int | None = Field(
        None, description="User to invalidate; omit to clear the whole cache"
    )


class CacheInvalidateResponse(BaseModel):
    message: str
    user_id: int | None = None
