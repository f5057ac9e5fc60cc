from fastapi import APIRouter, Depends, HTTPException, status
from app.database.supabase_client import get_supabase
from app.modules.workspaces.schemas import (
    WorkspaceCreate, WorkspaceUpdate, WorkspaceResponse,
    WorkspaceTemplateAssign, WorkspaceTemplateResponse
)
from app.modules.workspaces.service import WorkspaceService
from app.core.dependencies import get_current_assignments, require_module_access
from app.core.scope import AppRole, RoleAssignment, is_super_admin
from supabase import Client
from typing import List, Dict, Optional

router = APIRouter(prefix="/workspaces", tags=["workspaces"])


def get_workspace_service(supabase: Client = Depends(get_supabase)) -> WorkspaceService:
    return WorkspaceService(supabase)


@router.post("", response_model=WorkspaceResponse, status_code=201)
async def create_workspace(
    workspace_data: WorkspaceCreate,
    user_data: Dict = Depends(require_module_access("organization", "can_edit")),
    assignments: List[RoleAssignment] = Depends(get_current_assignments),
    service: WorkspaceService = Depends(get_workspace_service)
):
    """Create a workspace (super admin, or admin of the target organization)"""
    if not is_super_admin(assignments) and not any(
        a.role == AppRole.ORGANIZATION_ADMIN and a.organization_id == workspace_data.organization_id
        for a in assignments
    ):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Organization not accessible")
    return service.create_workspace(workspace_data, user_data["id"])


@router.get("", response_model=List[WorkspaceResponse])
async def list_workspaces(
    organization_id: Optional[str] = None,
    limit: int = 100,
    offset: int = 0,
    user_data: Dict = Depends(require_module_access("organization")),
    assignments: List[RoleAssignment] = Depends(get_current_assignments),
    service: WorkspaceService = Depends(get_workspace_service)
):
    """List workspaces visible to the user"""
    workspace_ids = service.workspace_ids_for(assignments)
    return service.list_workspaces(
        organization_id=organization_id, workspace_ids=workspace_ids, limit=limit, offset=offset
    )


@router.get("/{workspace_id}", response_model=WorkspaceResponse)
async def get_workspace(
    workspace_id: str,
    user_data: Dict = Depends(require_module_access("organization")),
    assignments: List[RoleAssignment] = Depends(get_current_assignments),
    service: WorkspaceService = Depends(get_workspace_service)
):
    """Get workspace by ID"""
    return service.ensure_workspace_access(workspace_id, assignments)


@router.put("/{workspace_id}", response_model=WorkspaceResponse)
async def update_workspace(
    workspace_id: str,
    workspace_data: WorkspaceUpdate,
    user_data: Dict = Depends(require_module_access("organization", "can_edit")),
    assignments: List[RoleAssignment] = Depends(get_current_assignments),
    service: WorkspaceService = Depends(get_workspace_service)
):
    """Update workspace"""
    service.ensure_workspace_access(workspace_id, assignments, admin_only=True)
    return service.update_workspace(workspace_id, workspace_data)


@router.delete("/{workspace_id}", status_code=204)
async def delete_workspace(
    workspace_id: str,
    user_data: Dict = Depends(require_module_access("organization", "can_delete")),
    assignments: List[RoleAssignment] = Depends(get_current_assignments),
    service: WorkspaceService = Depends(get_workspace_service)
):
    """Delete workspace (must have no facilities)"""
    service.ensure_workspace_access(workspace_id, assignments, admin_only=True)
    service.delete_workspace(workspace_id)
    return None


@router.get("/{workspace_id}/templates", response_model=List[WorkspaceTemplateResponse])
async def list_workspace_templates(
    workspace_id: str,
    user_data: Dict = Depends(require_module_access("organization")),
    assignments: List[RoleAssignment] = Depends(get_current_assignments),
    service: WorkspaceService = Depends(get_workspace_service)
):
    """Template departments assigned to the workspace"""
    service.ensure_workspace_access(workspace_id, assignments)
    return service.list_templates(workspace_id)


@router.post("/{workspace_id}/templates", response_model=List[WorkspaceTemplateResponse])
async def assign_workspace_templates(
    workspace_id: str,
    assign_data: WorkspaceTemplateAssign,
    user_data: Dict = Depends(require_module_access("organization", "can_edit")),
    assignments: List[RoleAssignment] = Depends(get_current_assignments),
    service: WorkspaceService = Depends(get_workspace_service)
):
    """Assign template departments to the workspace"""
    service.ensure_workspace_access(workspace_id, assignments, admin_only=True)
    return service.assign_templates(workspace_id, assign_data.department_template_ids)


@router.delete("/{workspace_id}/templates/{template_id}", status_code=204)
async def unassign_workspace_template(
    workspace_id: str,
    template_id: str,
    user_data: Dict = Depends(require_module_access("organization", "can_edit")),
    assignments: List[RoleAssignment] = Depends(get_current_assignments),
    service: WorkspaceService = Depends(get_workspace_service)
):
    """Remove a template department from the workspace"""
    service.ensure_workspace_access(workspace_id, assignments, admin_only=True)
    service.unassign_template(workspace_id, template_id)
    return None
