"""
Core dependencies for route protection and access resolution
"""

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.database.supabase_client import get_supabase
from app.modules.auth.service import AuthService
from app.core.module_access import (
    Capabilities, ModuleDefinition, ModuleGrant, ResolvedModule, UserModuleOverride,
    capabilities_for_key, resolve_user_modules,
)
from app.core.realtime import get_access_cache
from app.core.scope import (
    AppRole, RoleAssignment, Scope, has_role, is_super_admin, parse_assignments, resolve_scope,
)
from supabase import Client
from typing import List, Optional, Dict, Any, Tuple
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()


def _get_request_cache(request: Request) -> Dict[str, Any]:
    """Return request-scoped cache for access data (role assignments, scope, modules)."""
    if not hasattr(request.state, "access_cache"):
        request.state.access_cache = {}
    return request.state.access_cache


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Extract current user info from JWT token"""
    token = credentials.credentials
    user_data = auth_service.get_current_user(token)
    return user_data


def get_role_assignments(user_id: str, supabase: Client, cache: Optional[Dict[str, Any]] = None) -> List[RoleAssignment]:
    """Return the user's user_roles rows as typed assignments. Uses request-scoped cache when provided."""
    if cache is not None and "assignments" in cache:
        return cache["assignments"]
    result = supabase.table("user_roles")\
        .select("*")\
        .eq("user_id", user_id)\
        .execute()
    assignments = parse_assignments(result.data or [])
    if cache is not None:
        cache["assignments"] = assignments
    return assignments


def get_restricted_module_ids(assignments: List[RoleAssignment], supabase: Client) -> List[str]:
    """Modules switched off in every workspace the user belongs to."""
    workspace_ids = sorted({a.workspace_id for a in assignments if a.workspace_id})
    if not workspace_ids:
        return []
    result = supabase.table("workspace_module_access")\
        .select("workspace_id, module_id, is_enabled")\
        .in_("workspace_id", workspace_ids)\
        .execute()
    disabled_in: Dict[str, set] = {}
    for row in result.data or []:
        if row.get("is_enabled") is False:
            disabled_in.setdefault(row["module_id"], set()).add(row["workspace_id"])
    return [module_id for module_id, ws in disabled_in.items() if ws == set(workspace_ids)]


def load_module_grants(
    user_id: str,
    assignments: List[RoleAssignment],
    supabase: Client,
    module_id: Optional[str] = None
) -> Tuple[List[ModuleGrant], List[ModuleGrant], List[UserModuleOverride]]:
    """Role grants, custom role grants and overrides that apply to a user, optionally for one module."""
    def scoped(query):
        return query.eq("module_id", module_id) if module_id else query

    roles = sorted({a.role.value for a in assignments if a.role != AppRole.CUSTOM})
    role_grants: List[ModuleGrant] = []
    if roles:
        rma = scoped(supabase.table("role_module_access").select("*"))\
            .in_("role", roles)\
            .execute()
        role_grants = [ModuleGrant(**row) for row in rma.data or []]

    custom_role_ids = sorted({a.custom_role_id for a in assignments if a.custom_role_id})
    custom_grants: List[ModuleGrant] = []
    if custom_role_ids:
        crma = scoped(supabase.table("custom_role_module_access").select("*"))\
            .in_("role_id", custom_role_ids)\
            .execute()
        custom_grants = [ModuleGrant(**row) for row in crma.data or []]

    overrides_result = scoped(supabase.table("user_module_access").select("*"))\
        .eq("user_id", user_id)\
        .eq("is_override", True)\
        .execute()
    overrides = [UserModuleOverride(**row) for row in overrides_result.data or []]
    return role_grants, custom_grants, overrides


def load_user_modules(user_id: str, supabase: Client, assignments: Optional[List[RoleAssignment]] = None) -> List[ResolvedModule]:
    """Resolve the module list for a user from role grants, overrides and workspace restrictions."""
    cached = get_access_cache().get(user_id)
    if cached is not None:
        return cached
    if assignments is None:
        assignments = get_role_assignments(user_id, supabase)

    modules_result = supabase.table("module_definitions").select("*").execute()
    modules = [ModuleDefinition(**m) for m in modules_result.data or []]
    role_grants, custom_grants, overrides = load_module_grants(user_id, assignments, supabase)

    resolved = resolve_user_modules(
        assignments,
        modules,
        role_grants,
        custom_grants,
        overrides,
        user_id,
        restricted_module_ids=get_restricted_module_ids(assignments, supabase),
    )
    get_access_cache().set(user_id, resolved)
    return resolved


def get_current_assignments(
    request: Request,
    user_data: dict = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase)
) -> List[RoleAssignment]:
    return get_role_assignments(user_data["id"], supabase, _get_request_cache(request))


def get_current_scope(
    assignments: List[RoleAssignment] = Depends(get_current_assignments)
) -> Optional[Scope]:
    """Broadest scope of the current user; None when they administer nothing."""
    return resolve_scope(assignments)


def require_module_access(module_key: str, capability: str = "can_view"):
    """Factory function to create a module capability check dependency"""
    def check_module_access(
        request: Request,
        user_data: dict = Depends(get_current_user_id),
        supabase: Client = Depends(get_supabase)
    ) -> dict:
        """Dependency to check the user holds capability on module_key"""
        cache = _get_request_cache(request)
        assignments = get_role_assignments(user_data["id"], supabase, cache)
        if is_super_admin(assignments):
            return user_data
        modules = load_user_modules(user_data["id"], supabase, assignments)
        caps: Capabilities = capabilities_for_key(modules, module_key)
        if not caps.allows(capability):
            logger.warning("Denied %s on %s for user %s", capability, module_key, user_data["id"])
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required: {module_key}:{capability}"
            )
        return user_data
    return check_module_access


def require_roles(*roles: AppRole):
    """Factory function to restrict a route to holders of one of roles (super_admin always passes)"""
    def check_roles(
        request: Request,
        user_data: dict = Depends(get_current_user_id),
        supabase: Client = Depends(get_supabase)
    ) -> dict:
        assignments = get_role_assignments(user_data["id"], supabase, _get_request_cache(request))
        if is_super_admin(assignments) or has_role(assignments, *roles):
            return user_data
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Required role: " + ", ".join(r.value for r in roles)
        )
    return check_roles


def get_request_access_cache(request: Request) -> Dict[str, Any]:
    """Dependency that returns request-scoped access cache (populated by the checks above)."""
    return _get_request_cache(request)
