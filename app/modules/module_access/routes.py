from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.module_access.schemas import (
    ModuleDefinitionResponse, ModuleActiveUpdate,
    UserModuleOverrideUpsert, UserModuleOverrideResponse, ModuleCapabilitiesResponse
)
from app.modules.module_access.service import ModuleAccessService
from app.modules.users.service import UserService
from app.core.dependencies import get_current_scope, get_current_user_id, require_module_access, require_roles
from app.core.module_access import ResolvedModule
from app.core.scope import AppRole, Scope
from supabase import Client
from typing import List, Optional, Dict

router = APIRouter(prefix="/modules", tags=["modules"])


def get_module_access_service(supabase: Client = Depends(get_supabase)) -> ModuleAccessService:
    return ModuleAccessService(supabase)


def get_scoped_user_service(supabase: Client = Depends(get_supabase)) -> UserService:
    return UserService(supabase)


@router.get("", response_model=List[ModuleDefinitionResponse])
async def list_modules(
    active_only: bool = False,
    user_data: Dict = Depends(get_current_user_id),
    service: ModuleAccessService = Depends(get_module_access_service)
):
    """Module catalog"""
    return service.list_modules(active_only=active_only)


@router.get("/me", response_model=List[ResolvedModule])
async def get_my_modules(
    user_data: Dict = Depends(get_current_user_id),
    service: ModuleAccessService = Depends(get_module_access_service)
):
    """Modules the current user can see, with capabilities"""
    return service.user_modules(user_data["id"])


@router.get("/overrides", response_model=List[UserModuleOverrideResponse])
async def list_overrides(
    user_id: Optional[str] = None,
    user_data: Dict = Depends(require_module_access("modules", "can_admin")),
    scope: Optional[Scope] = Depends(get_current_scope),
    users: UserService = Depends(get_scoped_user_service),
    service: ModuleAccessService = Depends(get_module_access_service)
):
    """Overrides of users inside the caller's scope"""
    if user_id:
        users.ensure_user_in_scope(user_id, scope)
        return service.list_overrides(user_id)
    return service.list_overrides(user_ids=users.user_ids_in_scope(scope))


@router.put("/overrides/{user_id}/{module_id}", response_model=UserModuleOverrideResponse)
async def set_override(
    user_id: str,
    module_id: str,
    capabilities: UserModuleOverrideUpsert,
    user_data: Dict = Depends(require_module_access("modules", "can_admin")),
    scope: Optional[Scope] = Depends(get_current_scope),
    users: UserService = Depends(get_scoped_user_service),
    service: ModuleAccessService = Depends(get_module_access_service)
):
    """Give a user explicit capabilities on a module, replacing what their roles grant"""
    users.ensure_user_in_scope(user_id, scope)
    return service.set_override(user_id, module_id, capabilities, user_data["id"])


@router.delete("/overrides/{user_id}/{module_id}", status_code=204)
async def delete_override(
    user_id: str,
    module_id: str,
    user_data: Dict = Depends(require_module_access("modules", "can_admin")),
    scope: Optional[Scope] = Depends(get_current_scope),
    users: UserService = Depends(get_scoped_user_service),
    service: ModuleAccessService = Depends(get_module_access_service)
):
    users.ensure_user_in_scope(user_id, scope)
    service.delete_override(user_id, module_id)
    return None


@router.get("/users/{user_id}", response_model=List[ResolvedModule])
async def get_user_modules(
    user_id: str,
    user_data: Dict = Depends(require_module_access("modules")),
    scope: Optional[Scope] = Depends(get_current_scope),
    users: UserService = Depends(get_scoped_user_service),
    service: ModuleAccessService = Depends(get_module_access_service)
):
    users.ensure_user_in_scope(user_id, scope)
    return service.user_modules(user_id)


@router.get("/users/{user_id}/{module_id}", response_model=ModuleCapabilitiesResponse)
async def get_user_module_capabilities(
    user_id: str,
    module_id: str,
    user_data: Dict = Depends(require_module_access("modules")),
    scope: Optional[Scope] = Depends(get_current_scope),
    users: UserService = Depends(get_scoped_user_service),
    service: ModuleAccessService = Depends(get_module_access_service)
):
    users.ensure_user_in_scope(user_id, scope)
    return service.module_capabilities(user_id, module_id)


@router.patch("/{module_id}", response_model=ModuleDefinitionResponse)
async def set_module_active(
    module_id: str,
    update: ModuleActiveUpdate,
    user_data: Dict = Depends(require_roles(AppRole.SUPER_ADMIN)),
    service: ModuleAccessService = Depends(get_module_access_service)
):
    """Enable or disable a module system-wide (super admin only)"""
    return service.set_module_active(module_id, update.is_active)
