from fastapi import APIRouter, Depends, Request
from app.config import settings
from app.database.supabase_client import get_supabase, get_service_supabase
from app.modules.users.schemas import (
    UserUpdate, UserResponse, UserWithRolesResponse, UserCreate,
    RoleAssignmentCreate, RoleAssignmentUpdate,
    BulkUploadRequest, BulkUploadResult
)
from app.modules.users.service import UserService
from app.modules.workspaces.service import WorkspaceService
from app.core.dependencies import (
    get_current_assignments, get_current_scope, require_module_access, require_roles,
)
from app.core.rate_limit import limiter
from app.core.scope import AppRole, RoleAssignment, Scope, is_super_admin
from supabase import Client
from typing import List, Dict, Optional

router = APIRouter(prefix="/users", tags=["users"])


def get_user_service(
    supabase: Client = Depends(get_supabase),
    admin: Client = Depends(get_service_supabase)
) -> UserService:
    return UserService(supabase, admin)


def _caller_scope(assignments: List[RoleAssignment], scope: Optional[Scope]) -> Optional[Scope]:
    # Super admins are never restricted
    return None if is_super_admin(assignments) else scope


@router.get("", response_model=List[UserResponse])
async def list_users(
    limit: int = 100,
    offset: int = 0,
    user_data: Dict = Depends(require_module_access("user_management")),
    scope: Optional[Scope] = Depends(get_current_scope),
    service: UserService = Depends(get_user_service)
):
    """Users inside the caller's administrative scope (none without a scope)"""
    return service.list_users(scope, limit=limit, offset=offset)


@router.post("", response_model=UserWithRolesResponse, status_code=201)
async def create_user(
    user_create: UserCreate,
    user_data: Dict = Depends(require_module_access("user_management", "can_edit")),
    assignments: List[RoleAssignment] = Depends(get_current_assignments),
    scope: Optional[Scope] = Depends(get_current_scope),
    service: UserService = Depends(get_user_service)
):
    """Create a user with a profile and a first role assignment"""
    return service.create_user(user_create, user_data["id"], _caller_scope(assignments, scope))


@router.post("/bulk-upload", response_model=BulkUploadResult)
@limiter.limit(settings.bulk_upload_rate_limit)
async def bulk_upload_users(
    request: Request,
    upload: BulkUploadRequest,
    user_data: Dict = Depends(require_roles(AppRole.ORGANIZATION_ADMIN, AppRole.GENERAL_ADMIN)),
    assignments: List[RoleAssignment] = Depends(get_current_assignments),
    supabase: Client = Depends(get_supabase),
    service: UserService = Depends(get_user_service)
):
    """Provision many staff users at once; failures are reported per row"""
    workspace_ids = WorkspaceService(supabase).workspace_ids_for(assignments)
    return service.bulk_upload(upload.users, user_data["id"], workspace_ids)


@router.get("/{user_id}", response_model=UserWithRolesResponse)
async def get_user(
    user_id: str,
    user_data: Dict = Depends(require_module_access("user_management")),
    scope: Optional[Scope] = Depends(get_current_scope),
    service: UserService = Depends(get_user_service)
):
    """Get user with role assignments (self, or inside the caller's scope)"""
    if user_id != user_data["id"]:
        service.ensure_user_in_scope(user_id, scope)
    return service.get_user_with_roles(user_id)


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    user_update: UserUpdate,
    user_data: Dict = Depends(require_module_access("user_management", "can_edit")),
    scope: Optional[Scope] = Depends(get_current_scope),
    service: UserService = Depends(get_user_service)
):
    """Update profile fields (name, phone, active flag)"""
    service.ensure_user_in_scope(user_id, scope)
    return service.update_user(user_id, user_update)


@router.get("/{user_id}/roles", response_model=List[RoleAssignment])
async def list_user_roles(
    user_id: str,
    user_data: Dict = Depends(require_module_access("user_management")),
    scope: Optional[Scope] = Depends(get_current_scope),
    service: UserService = Depends(get_user_service)
):
    if user_id != user_data["id"]:
        service.ensure_user_in_scope(user_id, scope)
    return service.get_roles(user_id)


@router.post("/{user_id}/roles", response_model=RoleAssignment, status_code=201)
async def add_user_role(
    user_id: str,
    role_data: RoleAssignmentCreate,
    user_data: Dict = Depends(require_module_access("user_management", "can_edit")),
    assignments: List[RoleAssignment] = Depends(get_current_assignments),
    scope: Optional[Scope] = Depends(get_current_scope),
    service: UserService = Depends(get_user_service)
):
    """Assign a role; the scope fields the role requires must resolve"""
    return service.add_role(user_id, role_data, user_data["id"], _caller_scope(assignments, scope))


@router.put("/{user_id}/roles/{role_id}", response_model=RoleAssignment)
async def update_user_role(
    user_id: str,
    role_id: str,
    role_data: RoleAssignmentUpdate,
    user_data: Dict = Depends(require_module_access("user_management", "can_edit")),
    assignments: List[RoleAssignment] = Depends(get_current_assignments),
    scope: Optional[Scope] = Depends(get_current_scope),
    service: UserService = Depends(get_user_service)
):
    """Change the scope of a role assignment"""
    return service.update_role(user_id, role_id, role_data, _caller_scope(assignments, scope))


@router.delete("/{user_id}/roles/{role_id}", status_code=204)
async def delete_user_role(
    user_id: str,
    role_id: str,
    user_data: Dict = Depends(require_module_access("user_management", "can_delete")),
    assignments: List[RoleAssignment] = Depends(get_current_assignments),
    scope: Optional[Scope] = Depends(get_current_scope),
    service: UserService = Depends(get_user_service)
):
    service.delete_role(user_id, role_id, _caller_scope(assignments, scope))
    return None
