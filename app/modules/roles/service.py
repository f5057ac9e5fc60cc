import logging
from datetime import datetime, timezone
from supabase import Client
from app.core.realtime import ChangeFeed, change_feed
from app.core.scope import AppRole
from app.modules.roles.schemas import (
    ModulePermission, ModulePermissionResponse,
    CustomRoleCreate, CustomRoleUpdate, CustomRoleResponse, CustomRoleWithPermissionsResponse,
    BulkModulePermissionResponse
)
from typing import List, Optional
from fastapi import HTTPException

logger = logging.getLogger(__name__)


def _dedupe_by_module(permissions: List[ModulePermission]) -> List[ModulePermission]:
    """Last entry per module wins"""
    return list({p.module_id: p for p in permissions}.values())


class CustomRoleService:
    def __init__(self, supabase: Client, feed: ChangeFeed = change_feed):
        self.supabase = supabase
        self.feed = feed

    def create_role(self, role_data: CustomRoleCreate, user_id: str) -> CustomRoleWithPermissionsResponse:
        """Create a custom role together with its initial module permissions"""
        result = self.supabase.table("custom_roles").insert({
            "name": role_data.name.strip(),
            "description": role_data.description,
            "organization_id": role_data.organization_id,
            "is_active": True,
            "created_by": user_id
        }).execute()

        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to create role")
        role = result.data[0]

        permissions = []
        if role_data.permissions:
            inserted = self.supabase.table("custom_role_module_access").insert([
                {"role_id": role["id"], **p.model_dump()}
                for p in _dedupe_by_module(role_data.permissions)
            ]).execute()
            permissions = [ModulePermissionResponse(**row) for row in inserted.data or []]
            self.feed.notify("custom_role_module_access")

        logger.info("Custom role %s created with %d module grants", role["id"], len(permissions))
        self.feed.notify("custom_roles")
        return CustomRoleWithPermissionsResponse(**role, permissions=permissions)

    def get_role_by_id(self, role_id: str) -> CustomRoleResponse:
        result = self.supabase.table("custom_roles")\
            .select("*")\
            .eq("id", role_id)\
            .limit(1)\
            .execute()

        if not result.data:
            raise HTTPException(status_code=404, detail="Role not found")

        return CustomRoleResponse(**result.data[0])

    def get_role_with_permissions(self, role_id: str) -> CustomRoleWithPermissionsResponse:
        role = self.get_role_by_id(role_id)
        return CustomRoleWithPermissionsResponse(
            **role.model_dump(),
            permissions=self.get_role_permissions(role_id)
        )

    def list_roles(
        self,
        organization_ids: Optional[List[str]] = None,
        limit: int = 100,
        offset: int = 0
    ) -> List[CustomRoleResponse]:
        """List custom roles; organization_ids restricts to those organizations plus system-wide roles"""
        query = self.supabase.table("custom_roles").select("*")
        result = query.order("name")\
            .range(offset, offset + limit - 1)\
            .execute()
        roles = [CustomRoleResponse(**role) for role in result.data or []]
        if organization_ids is None:
            return roles
        allowed = set(organization_ids)
        return [r for r in roles if r.organization_id is None or r.organization_id in allowed]

    def update_role(self, role_id: str, role_data: CustomRoleUpdate) -> CustomRoleResponse:
        update_data = role_data.model_dump(exclude_unset=True, exclude_none=True)
        if not update_data:
            return self.get_role_by_id(role_id)
        update_data["updated_at"] = datetime.now(timezone.utc).isoformat()

        result = self.supabase.table("custom_roles")\
            .update(update_data)\
            .eq("id", role_id)\
            .execute()

        if not result.data:
            raise HTTPException(status_code=404, detail="Role not found")

        self.feed.notify("custom_roles")
        return CustomRoleResponse(**result.data[0])

    def delete_role(self, role_id: str) -> bool:
        """Delete custom role; blocked while users hold it"""
        self.get_role_by_id(role_id)
        holders = self.supabase.table("user_roles")\
            .select("id")\
            .eq("custom_role_id", role_id)\
            .limit(1)\
            .execute()
        if holders.data:
            logger.warning("Refused to delete custom role %s: still assigned", role_id)
            raise HTTPException(
                status_code=409,
                detail="Cannot delete a custom role that is assigned to users. Remove the assignments first."
            )

        # Remove module grants first
        self.supabase.table("custom_role_module_access")\
            .delete()\
            .eq("role_id", role_id)\
            .execute()

        result = self.supabase.table("custom_roles")\
            .delete()\
            .eq("id", role_id)\
            .execute()

        self.feed.notify("custom_role_module_access")
        self.feed.notify("custom_roles")
        return len(result.data) > 0

    def get_role_permissions(self, role_id: str) -> List[ModulePermissionResponse]:
        result = self.supabase.table("custom_role_module_access")\
            .select("*")\
            .eq("role_id", role_id)\
            .execute()
        return [ModulePermissionResponse(**row) for row in result.data or []]

    def set_module_permission(self, role_id: str, permission: ModulePermission) -> ModulePermissionResponse:
        """Create or update the grant for one module"""
        self.get_role_by_id(role_id)
        result = self.supabase.table("custom_role_module_access")\
            .upsert({"role_id": role_id, **permission.model_dump()}, on_conflict="role_id,module_id")\
            .execute()
        self.feed.notify("custom_role_module_access")
        return ModulePermissionResponse(**result.data[0])

    def bulk_update_role_permissions(
        self, role_id: str, permissions: List[ModulePermission]
    ) -> BulkModulePermissionResponse:
        """Replace every module grant of a custom role"""
        self.get_role_by_id(role_id)

        self.supabase.table("custom_role_module_access")\
            .delete()\
            .eq("role_id", role_id)\
            .execute()

        assigned = []
        if permissions:
            result = self.supabase.table("custom_role_module_access").insert([
                {"role_id": role_id, **p.model_dump()}
                for p in _dedupe_by_module(permissions)
            ]).execute()
            assigned = [ModulePermissionResponse(**row) for row in result.data or []]

        logger.info("Custom role %s now has %d module grants", role_id, len(assigned))
        self.feed.notify("custom_role_module_access")
        return BulkModulePermissionResponse(
            role_id=role_id,
            assigned_count=len(assigned),
            permissions=assigned,
            message=f"Updated role with {len(assigned)} module permissions"
        )


class RoleModuleAccessService:
    """Default module grants of the built-in roles"""

    def __init__(self, supabase: Client, feed: ChangeFeed = change_feed):
        self.supabase = supabase
        self.feed = feed

    @staticmethod
    def validate_role(role: str) -> AppRole:
        try:
            app_role = AppRole(role)
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Unknown role: {role}")
        if app_role == AppRole.CUSTOM:
            raise HTTPException(status_code=400, detail="Custom roles are managed through /roles/custom")
        return app_role

    def list_permissions(self, role: Optional[str] = None) -> List[ModulePermissionResponse]:
        query = self.supabase.table("role_module_access").select("*")
        if role:
            query = query.eq("role", self.validate_role(role).value)
        result = query.execute()
        return [ModulePermissionResponse(**row) for row in result.data or []]

    def set_module_permission(self, role: str, permission: ModulePermission) -> ModulePermissionResponse:
        app_role = self.validate_role(role)
        result = self.supabase.table("role_module_access")\
            .upsert({"role": app_role.value, **permission.model_dump()}, on_conflict="role,module_id")\
            .execute()
        logger.info("Role %s grant on module %s updated", app_role.value, permission.module_id)
        self.feed.notify("role_module_access")
        return ModulePermissionResponse(**result.data[0])
