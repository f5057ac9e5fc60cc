from fastapi import APIRouter, Depends, HTTPException, status
from app.database.supabase_client import get_supabase
from app.modules.organizations.schemas import (
    OrganizationCreate, OrganizationUpdate, OrganizationResponse, OrganizationUsage, LimitCheck
)
from app.modules.organizations.service import OrganizationService
from app.core.dependencies import get_current_assignments, require_module_access, require_roles
from app.core.scope import AppRole, RoleAssignment, is_super_admin
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/organizations", tags=["organizations"])


def get_organization_service(supabase: Client = Depends(get_supabase)) -> OrganizationService:
    return OrganizationService(supabase)


def ensure_organization_access(
    org_id: str,
    assignments: List[RoleAssignment],
    service: OrganizationService,
    admin_only: bool = False
) -> None:
    """Super admins reach every organization; others only their own (admins only when admin_only)"""
    if is_super_admin(assignments):
        return
    if admin_only:
        allowed = {a.organization_id for a in assignments if a.role == AppRole.ORGANIZATION_ADMIN}
    else:
        allowed = set(service.organization_ids_for(assignments))
    if org_id not in allowed:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Organization not accessible")


@router.post("", response_model=OrganizationResponse, status_code=201)
async def create_organization(
    org_data: OrganizationCreate,
    user_data: Dict = Depends(require_roles(AppRole.SUPER_ADMIN)),
    service: OrganizationService = Depends(get_organization_service)
):
    """Create a new organization (super admin only)"""
    return service.create_organization(org_data, user_data["id"])


@router.get("", response_model=List[OrganizationResponse])
async def list_organizations(
    limit: int = 100,
    offset: int = 0,
    user_data: Dict = Depends(require_module_access("organization")),
    assignments: List[RoleAssignment] = Depends(get_current_assignments),
    service: OrganizationService = Depends(get_organization_service)
):
    """List organizations visible to the user (all for super admin)"""
    org_ids = None if is_super_admin(assignments) else service.organization_ids_for(assignments)
    return service.list_organizations(organization_ids=org_ids, limit=limit, offset=offset)


@router.get("/{org_id}", response_model=OrganizationResponse)
async def get_organization(
    org_id: str,
    user_data: Dict = Depends(require_module_access("organization")),
    assignments: List[RoleAssignment] = Depends(get_current_assignments),
    service: OrganizationService = Depends(get_organization_service)
):
    """Get organization by ID"""
    ensure_organization_access(org_id, assignments, service)
    return service.get_organization_by_id(org_id)


@router.put("/{org_id}", response_model=OrganizationResponse)
async def update_organization(
    org_id: str,
    org_data: OrganizationUpdate,
    user_data: Dict = Depends(require_module_access("organization", "can_edit")),
    assignments: List[RoleAssignment] = Depends(get_current_assignments),
    service: OrganizationService = Depends(get_organization_service)
):
    """Update organization (super admin or that organization's admin)"""
    ensure_organization_access(org_id, assignments, service, admin_only=True)
    return service.update_organization(org_id, org_data)


@router.delete("/{org_id}", status_code=204)
async def delete_organization(
    org_id: str,
    user_data: Dict = Depends(require_roles(AppRole.SUPER_ADMIN)),
    service: OrganizationService = Depends(get_organization_service)
):
    """Delete organization (super admin only; must have no workspaces)"""
    service.delete_organization(org_id)
    return None


@router.get("/{org_id}/usage", response_model=OrganizationUsage)
async def get_organization_usage(
    org_id: str,
    user_data: Dict = Depends(require_module_access("organization")),
    assignments: List[RoleAssignment] = Depends(get_current_assignments),
    service: OrganizationService = Depends(get_organization_service)
):
    """Current counts against the organization's plan limits"""
    ensure_organization_access(org_id, assignments, service)
    return service.get_usage(org_id)


@router.get("/{org_id}/limits/{limit_type}", response_model=LimitCheck)
async def check_organization_limit(
    org_id: str,
    limit_type: str,
    attempted: int = 1,
    user_data: Dict = Depends(require_module_access("organization")),
    assignments: List[RoleAssignment] = Depends(get_current_assignments),
    service: OrganizationService = Depends(get_organization_service)
):
    """Whether `attempted` more workspaces/facilities/users fit under the limit (drives disabled create buttons)"""
    ensure_organization_access(org_id, assignments, service)
    return service.check_limit(org_id, limit_type, attempted)
