from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from app.database.supabase_client import get_supabase
from app.modules.workspace_modules.schemas import (
    WorkspaceModuleStatus, WorkspaceModuleToggle, ModuleDependencyConflict
)
from app.modules.workspace_modules.service import ModuleDependencyError, WorkspaceModuleService
from app.modules.workspaces.service import WorkspaceService
from app.core.dependencies import get_current_assignments, require_module_access
from app.core.scope import RoleAssignment
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/workspaces/{workspace_id}/modules", tags=["workspace-modules"])


def get_workspace_module_service(supabase: Client = Depends(get_supabase)) -> WorkspaceModuleService:
    return WorkspaceModuleService(supabase)


def get_workspace_service(supabase: Client = Depends(get_supabase)) -> WorkspaceService:
    return WorkspaceService(supabase)


@router.get("", response_model=List[WorkspaceModuleStatus])
async def list_workspace_modules(
    workspace_id: str,
    user_data: Dict = Depends(require_module_access("organization")),
    assignments: List[RoleAssignment] = Depends(get_current_assignments),
    workspaces: WorkspaceService = Depends(get_workspace_service),
    service: WorkspaceModuleService = Depends(get_workspace_module_service)
):
    """Module states (system disabled / workspace restricted / active) for a workspace"""
    workspaces.ensure_workspace_access(workspace_id, assignments)
    return service.list_module_states(workspace_id)


@router.put(
    "/{module_id}",
    response_model=WorkspaceModuleStatus,
    responses={409: {"model": ModuleDependencyConflict}}
)
async def toggle_workspace_module(
    workspace_id: str,
    module_id: str,
    toggle: WorkspaceModuleToggle,
    user_data: Dict = Depends(require_module_access("organization", "can_edit")),
    assignments: List[RoleAssignment] = Depends(get_current_assignments),
    workspaces: WorkspaceService = Depends(get_workspace_service),
    service: WorkspaceModuleService = Depends(get_workspace_module_service)
):
    """Enable or restrict a module for the workspace; 409 lists enabled dependents"""
    workspaces.ensure_workspace_access(workspace_id, assignments, admin_only=True)
    try:
        return service.set_module_enabled(workspace_id, module_id, toggle.is_enabled)
    except ModuleDependencyError as e:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"detail": e.decision.reason, "dependents": e.decision.dependents}
        )
