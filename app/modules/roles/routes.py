from fastapi import APIRouter, Depends, HTTPException
from app.database.supabase_client import get_supabase
from app.modules.organizations.service import OrganizationService
from app.modules.roles.schemas import (
    ModulePermission, ModulePermissionResponse,
    CustomRoleCreate, CustomRoleUpdate, CustomRoleResponse, CustomRoleWithPermissionsResponse,
    BulkModulePermissionUpdate, BulkModulePermissionResponse
)
from app.modules.roles.service import CustomRoleService, RoleModuleAccessService
from app.core.dependencies import get_current_assignments, require_module_access, require_roles
from app.core.scope import AppRole, RoleAssignment, is_super_admin
from supabase import Client
from typing import List, Optional, Dict

router = APIRouter(prefix="/roles", tags=["roles"])


def get_custom_role_service(supabase: Client = Depends(get_supabase)) -> CustomRoleService:
    return CustomRoleService(supabase)


def get_role_module_access_service(supabase: Client = Depends(get_supabase)) -> RoleModuleAccessService:
    return RoleModuleAccessService(supabase)


def role_organization_ids(
    assignments: List[RoleAssignment] = Depends(get_current_assignments),
    supabase: Client = Depends(get_supabase)
) -> Optional[List[str]]:
    """Organizations whose custom roles the caller may manage; None for super admins"""
    if is_super_admin(assignments):
        return None
    return OrganizationService(supabase).organization_ids_for(assignments)


def ensure_role_organization(organization_id: Optional[str], org_ids: Optional[List[str]], modify: bool = True) -> None:
    # System-wide roles are readable by everyone and editable by super admins only
    if org_ids is None:
        return
    if organization_id is None and not modify:
        return
    if organization_id not in org_ids:
        raise HTTPException(status_code=403, detail="Custom role not accessible")


def get_accessible_role(
    role_id: str,
    org_ids: Optional[List[str]],
    service: CustomRoleService,
    modify: bool = True
) -> CustomRoleResponse:
    role = service.get_role_by_id(role_id)
    ensure_role_organization(role.organization_id, org_ids, modify)
    return role


# Built-in role endpoints
@router.get("/builtin/modules", response_model=List[ModulePermissionResponse])
async def list_builtin_role_permissions(
    role: Optional[str] = None,
    user_data: Dict = Depends(require_module_access("modules")),
    service: RoleModuleAccessService = Depends(get_role_module_access_service)
):
    """Default module grants of built-in roles (optionally one role)"""
    return service.list_permissions(role)


@router.put("/builtin/{role}/modules/{module_id}", response_model=ModulePermissionResponse)
async def set_builtin_role_permission(
    role: str,
    module_id: str,
    permission: ModulePermission,
    user_data: Dict = Depends(require_roles(AppRole.SUPER_ADMIN)),
    service: RoleModuleAccessService = Depends(get_role_module_access_service)
):
    """Change a built-in role's grant on one module (super admin only)"""
    return service.set_module_permission(role, permission.model_copy(update={"module_id": module_id}))


# Custom role endpoints
@router.post("/custom", response_model=CustomRoleWithPermissionsResponse, status_code=201)
async def create_custom_role(
    role_data: CustomRoleCreate,
    user_data: Dict = Depends(require_module_access("modules", "can_edit")),
    org_ids: Optional[List[str]] = Depends(role_organization_ids),
    service: CustomRoleService = Depends(get_custom_role_service)
):
    """Create a custom role with its module permissions"""
    ensure_role_organization(role_data.organization_id, org_ids)
    return service.create_role(role_data, user_data["id"])


@router.get("/custom", response_model=List[CustomRoleResponse])
async def list_custom_roles(
    limit: int = 100,
    offset: int = 0,
    user_data: Dict = Depends(require_module_access("modules")),
    org_ids: Optional[List[str]] = Depends(role_organization_ids),
    service: CustomRoleService = Depends(get_custom_role_service)
):
    """List custom roles of the user's organizations plus system-wide ones"""
    return service.list_roles(organization_ids=org_ids, limit=limit, offset=offset)


@router.get("/custom/{role_id}", response_model=CustomRoleWithPermissionsResponse)
async def get_custom_role(
    role_id: str,
    user_data: Dict = Depends(require_module_access("modules")),
    org_ids: Optional[List[str]] = Depends(role_organization_ids),
    service: CustomRoleService = Depends(get_custom_role_service)
):
    get_accessible_role(role_id, org_ids, service, modify=False)
    return service.get_role_with_permissions(role_id)


@router.put("/custom/{role_id}", response_model=CustomRoleResponse)
async def update_custom_role(
    role_id: str,
    role_data: CustomRoleUpdate,
    user_data: Dict = Depends(require_module_access("modules", "can_edit")),
    org_ids: Optional[List[str]] = Depends(role_organization_ids),
    service: CustomRoleService = Depends(get_custom_role_service)
):
    get_accessible_role(role_id, org_ids, service)
    return service.update_role(role_id, role_data)


@router.delete("/custom/{role_id}", status_code=204)
async def delete_custom_role(
    role_id: str,
    user_data: Dict = Depends(require_module_access("modules", "can_delete")),
    org_ids: Optional[List[str]] = Depends(role_organization_ids),
    service: CustomRoleService = Depends(get_custom_role_service)
):
    """Delete a custom role (must not be assigned to anyone)"""
    get_accessible_role(role_id, org_ids, service)
    service.delete_role(role_id)
    return None


@router.get("/custom/{role_id}/modules", response_model=List[ModulePermissionResponse])
async def get_custom_role_permissions(
    role_id: str,
    user_data: Dict = Depends(require_module_access("modules")),
    org_ids: Optional[List[str]] = Depends(role_organization_ids),
    service: CustomRoleService = Depends(get_custom_role_service)
):
    get_accessible_role(role_id, org_ids, service, modify=False)
    return service.get_role_permissions(role_id)


@router.put("/custom/{role_id}/modules", response_model=BulkModulePermissionResponse)
async def replace_custom_role_permissions(
    role_id: str,
    bulk_data: BulkModulePermissionUpdate,
    user_data: Dict = Depends(require_module_access("modules", "can_edit")),
    org_ids: Optional[List[str]] = Depends(role_organization_ids),
    service: CustomRoleService = Depends(get_custom_role_service)
):
    """Replace all module grants of a custom role"""
    get_accessible_role(role_id, org_ids, service)
    return service.bulk_update_role_permissions(role_id, bulk_data.permissions)


@router.put("/custom/{role_id}/modules/{module_id}", response_model=ModulePermissionResponse)
async def set_custom_role_permission(
    role_id: str,
    module_id: str,
    permission: ModulePermission,
    user_data: Dict = Depends(require_module_access("modules", "can_edit")),
    org_ids: Optional[List[str]] = Depends(role_organization_ids),
    service: CustomRoleService = Depends(get_custom_role_service)
):
    get_accessible_role(role_id, org_ids, service)
    return service.set_module_permission(role_id, permission.model_copy(update={"module_id": module_id}))
