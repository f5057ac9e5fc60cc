import logging
from supabase import Client
from app.core.dependencies import (
    get_restricted_module_ids, get_role_assignments, load_module_grants, load_user_modules,
)
from app.core.module_access import (
    NO_ACCESS, ModuleDefinition, ResolvedModule,
    find_override, resolve_module_capabilities,
)
from app.core.realtime import ChangeFeed, change_feed
from app.modules.module_access.schemas import (
    ModuleDefinitionResponse, UserModuleOverrideUpsert, UserModuleOverrideResponse,
    ModuleCapabilitiesResponse
)
from typing import List, Optional
from fastapi import HTTPException

logger = logging.getLogger(__name__)


class ModuleAccessService:
    def __init__(self, supabase: Client, feed: ChangeFeed = change_feed):
        self.supabase = supabase
        self.feed = feed

    # Catalog

    def list_modules(self, active_only: bool = False) -> List[ModuleDefinitionResponse]:
        query = self.supabase.table("module_definitions").select("*")
        if active_only:
            query = query.eq("is_active", True)
        result = query.order("name").execute()
        return [ModuleDefinitionResponse(**m) for m in result.data or []]

    def get_module(self, module_id: str) -> ModuleDefinition:
        result = self.supabase.table("module_definitions")\
            .select("*")\
            .eq("id", module_id)\
            .limit(1)\
            .execute()

        if not result.data:
            raise HTTPException(status_code=404, detail="Module not found")

        return ModuleDefinition(**result.data[0])

    def set_module_active(self, module_id: str, is_active: bool) -> ModuleDefinitionResponse:
        """Switch a module on or off for every workspace"""
        self.get_module(module_id)
        result = self.supabase.table("module_definitions")\
            .update({"is_active": is_active})\
            .eq("id", module_id)\
            .execute()

        logger.info("Module %s system-wide is_active=%s", module_id, is_active)
        self.feed.notify("module_definitions")
        return ModuleDefinitionResponse(**result.data[0])

    # User overrides

    def list_overrides(
        self, user_id: Optional[str] = None, user_ids: Optional[List[str]] = None
    ) -> List[UserModuleOverrideResponse]:
        """Overrides of one user, or of every user in user_ids (None means all users)"""
        query = self.supabase.table("user_module_access").select("*").eq("is_override", True)
        if user_id:
            query = query.eq("user_id", user_id)
        elif user_ids is not None:
            if not user_ids:
                return []
            query = query.in_("user_id", user_ids)
        result = query.execute()
        return [UserModuleOverrideResponse(**row) for row in result.data or []]

    def set_override(
        self,
        user_id: str,
        module_id: str,
        capabilities: UserModuleOverrideUpsert,
        created_by: str
    ) -> UserModuleOverrideResponse:
        """Create or replace a user's override on one module"""
        self.get_module(module_id)
        result = self.supabase.table("user_module_access").upsert({
            "user_id": user_id,
            "module_id": module_id,
            **capabilities.model_dump(),
            "is_override": True,
            "created_by": created_by
        }, on_conflict="user_id,module_id").execute()

        logger.info("Module override set for user %s on %s", user_id, module_id)
        self.feed.notify("user_module_access")
        return UserModuleOverrideResponse(**result.data[0])

    def delete_override(self, user_id: str, module_id: str) -> bool:
        """Drop an override; the user falls back to role-derived access"""
        result = self.supabase.table("user_module_access")\
            .delete()\
            .eq("user_id", user_id)\
            .eq("module_id", module_id)\
            .execute()

        if not result.data:
            raise HTTPException(status_code=404, detail="Override not found")

        self.feed.notify("user_module_access")
        return True

    # Resolution

    def user_modules(self, user_id: str) -> List[ResolvedModule]:
        return load_user_modules(user_id, self.supabase)

    def module_capabilities(self, user_id: str, module_id: str) -> ModuleCapabilitiesResponse:
        """Capabilities of one user on one module, with where they came from"""
        module = self.get_module(module_id)
        assignments = get_role_assignments(user_id, self.supabase)

        if not module.active or module_id in get_restricted_module_ids(assignments, self.supabase):
            return ModuleCapabilitiesResponse(
                user_id=user_id, module_id=module_id, module_key=module.key,
                source="restricted", **NO_ACCESS.model_dump()
            )

        role_grants, custom_grants, overrides = load_module_grants(user_id, assignments, self.supabase, module_id)

        caps = resolve_module_capabilities(
            assignments, module_id, role_grants, custom_grants, overrides, user_id
        )
        source = "override" if find_override(overrides, user_id, module_id) else "roles"
        return ModuleCapabilitiesResponse(
            user_id=user_id, module_id=module_id, module_key=module.key,
            source=source, **caps.model_dump()
        )
