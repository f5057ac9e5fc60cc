from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.facilities.schemas import FacilityCreate, FacilityUpdate, FacilityResponse
from app.modules.facilities.service import FacilityService
from app.core.dependencies import get_current_assignments, require_module_access
from app.core.scope import RoleAssignment, is_super_admin
from supabase import Client
from typing import List, Dict, Optional

router = APIRouter(prefix="/facilities", tags=["facilities"])


def get_facility_service(supabase: Client = Depends(get_supabase)) -> FacilityService:
    return FacilityService(supabase)


@router.post("", response_model=FacilityResponse, status_code=201)
async def create_facility(
    facility_data: FacilityCreate,
    user_data: Dict = Depends(require_module_access("organization", "can_edit")),
    assignments: List[RoleAssignment] = Depends(get_current_assignments),
    service: FacilityService = Depends(get_facility_service)
):
    """Create a facility in a workspace (rejected once max_facilities is reached)"""
    service.workspaces.ensure_workspace_access(facility_data.workspace_id, assignments, admin_only=True)
    return service.create_facility(facility_data)


@router.get("", response_model=List[FacilityResponse])
async def list_facilities(
    workspace_id: Optional[str] = None,
    user_data: Dict = Depends(require_module_access("organization")),
    assignments: List[RoleAssignment] = Depends(get_current_assignments),
    service: FacilityService = Depends(get_facility_service)
):
    """List facilities visible to the user"""
    if is_super_admin(assignments):
        return service.list_facilities(workspace_id=workspace_id)
    workspace_ids = service.workspaces.workspace_ids_for(assignments)
    # Facility-level roles only see their own facilities
    facility_only = all(a.facility_id for a in assignments if a.workspace_id)
    facility_ids = sorted({a.facility_id for a in assignments if a.facility_id}) if facility_only else None
    return service.list_facilities(
        workspace_id=workspace_id, workspace_ids=workspace_ids, facility_ids=facility_ids
    )


@router.get("/{facility_id}", response_model=FacilityResponse)
async def get_facility(
    facility_id: str,
    user_data: Dict = Depends(require_module_access("organization")),
    assignments: List[RoleAssignment] = Depends(get_current_assignments),
    service: FacilityService = Depends(get_facility_service)
):
    return service.ensure_facility_access(facility_id, assignments)


@router.put("/{facility_id}", response_model=FacilityResponse)
async def update_facility(
    facility_id: str,
    facility_data: FacilityUpdate,
    user_data: Dict = Depends(require_module_access("organization", "can_edit")),
    assignments: List[RoleAssignment] = Depends(get_current_assignments),
    service: FacilityService = Depends(get_facility_service)
):
    """Rename facility"""
    service.ensure_facility_access(facility_id, assignments, admin_only=True)
    return service.update_facility(facility_id, facility_data)


@router.delete("/{facility_id}", status_code=204)
async def delete_facility(
    facility_id: str,
    user_data: Dict = Depends(require_module_access("organization", "can_delete")),
    assignments: List[RoleAssignment] = Depends(get_current_assignments),
    service: FacilityService = Depends(get_facility_service)
):
    """Delete facility (must have no departments)"""
    service.ensure_facility_access(facility_id, assignments, admin_only=True)
    service.delete_facility(facility_id)
    return None
