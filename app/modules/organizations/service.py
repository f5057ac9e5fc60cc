import logging
from datetime import datetime, timezone
from supabase import Client
from app.core.realtime import ChangeFeed, change_feed
from app.modules.organizations.limits import check_limit
from app.modules.organizations.schemas import (
    OrganizationCreate, OrganizationUpdate, OrganizationResponse, OrganizationUsage, LimitCheck
)
from typing import List, Optional
from fastapi import HTTPException

logger = logging.getLogger(__name__)

LIMIT_COLUMNS = {
    "workspaces": "max_workspaces",
    "facilities": "max_facilities",
    "users": "max_users",
}


class OrganizationService:
    def __init__(self, supabase: Client, feed: ChangeFeed = change_feed):
        self.supabase = supabase
        self.feed = feed

    def create_organization(self, org_data: OrganizationCreate, user_id: str) -> OrganizationResponse:
        """Create a new organization"""
        result = self.supabase.table("organizations").insert({
            **org_data.model_dump(),
            "is_active": True,
            "created_by": user_id
        }).execute()

        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to create organization")

        logger.info("Organization %s created by %s", result.data[0]["id"], user_id)
        self.feed.notify("organizations")
        return OrganizationResponse(**result.data[0])

    def get_organization_by_id(self, org_id: str) -> OrganizationResponse:
        """Get organization by ID"""
        result = self.supabase.table("organizations")\
            .select("*")\
            .eq("id", org_id)\
            .limit(1)\
            .execute()

        if not result.data:
            raise HTTPException(status_code=404, detail="Organization not found")

        return OrganizationResponse(**result.data[0])

    def list_organizations(
        self,
        organization_ids: Optional[List[str]] = None,
        limit: int = 100,
        offset: int = 0
    ) -> List[OrganizationResponse]:
        """List organizations, optionally restricted to organization_ids (scope-filtered)"""
        if organization_ids is not None and len(organization_ids) == 0:
            return []
        query = self.supabase.table("organizations").select("*")
        if organization_ids is not None:
            query = query.in_("id", organization_ids)
        result = query.order("name")\
            .range(offset, offset + limit - 1)\
            .execute()
        return [OrganizationResponse(**org) for org in result.data]

    def update_organization(self, org_id: str, org_data: OrganizationUpdate) -> OrganizationResponse:
        """Update organization; explicit nulls on max_* fields clear the limit"""
        update_data = org_data.model_dump(exclude_unset=True)
        if not update_data:
            return self.get_organization_by_id(org_id)
        update_data["updated_at"] = datetime.now(timezone.utc).isoformat()

        result = self.supabase.table("organizations")\
            .update(update_data)\
            .eq("id", org_id)\
            .execute()

        if not result.data:
            raise HTTPException(status_code=404, detail="Organization not found")

        self.feed.notify("organizations")
        return OrganizationResponse(**result.data[0])

    def delete_organization(self, org_id: str) -> bool:
        """Delete organization; blocked while it still owns workspaces"""
        self.get_organization_by_id(org_id)
        workspaces = self.supabase.table("workspaces")\
            .select("id")\
            .eq("organization_id", org_id)\
            .limit(1)\
            .execute()
        if workspaces.data:
            logger.warning("Refused to delete organization %s: workspaces present", org_id)
            raise HTTPException(
                status_code=409,
                detail="Cannot delete organization with workspaces. Remove workspaces first."
            )

        result = self.supabase.table("organizations")\
            .delete()\
            .eq("id", org_id)\
            .execute()

        self.feed.notify("organizations")
        return len(result.data) > 0

    def _workspace_ids(self, org_id: str) -> List[str]:
        result = self.supabase.table("workspaces")\
            .select("id")\
            .eq("organization_id", org_id)\
            .execute()
        return [w["id"] for w in result.data or []]

    def get_usage(self, org_id: str) -> OrganizationUsage:
        """Current workspace, facility and user counts for an organization"""
        workspace_ids = self._workspace_ids(org_id)

        facilities = 0
        user_ids = set()
        if workspace_ids:
            facility_result = self.supabase.table("facilities")\
                .select("id", count="exact")\
                .in_("workspace_id", workspace_ids)\
                .execute()
            facilities = facility_result.count or 0

            members = self.supabase.table("user_roles")\
                .select("user_id")\
                .in_("workspace_id", workspace_ids)\
                .execute()
            user_ids.update(m["user_id"] for m in members.data or [])

        direct_members = self.supabase.table("user_roles")\
            .select("user_id")\
            .eq("organization_id", org_id)\
            .execute()
        user_ids.update(m["user_id"] for m in direct_members.data or [])

        return OrganizationUsage(
            organization_id=org_id,
            workspaces=len(workspace_ids),
            facilities=facilities,
            users=len(user_ids),
        )

    def check_limit(self, org_id: str, limit_type: str, attempted: int = 1) -> LimitCheck:
        """Evaluate one plan limit (workspaces, facilities or users) for an organization"""
        if limit_type not in LIMIT_COLUMNS:
            raise HTTPException(status_code=400, detail=f"Unknown limit type: {limit_type}")
        organization = self.get_organization_by_id(org_id)
        usage = self.get_usage(org_id)
        return check_limit(
            limit_type,
            getattr(organization, LIMIT_COLUMNS[limit_type]),
            getattr(usage, limit_type),
            attempted,
        )

    def enforce_limit(self, org_id: str, limit_type: str, attempted: int = 1) -> None:
        """Raise 409 when adding `attempted` items would exceed the organization's limit"""
        result = self.check_limit(org_id, limit_type, attempted)
        if not result.allowed:
            logger.warning("Limit reached for organization %s: %s", org_id, result.message)
            raise HTTPException(status_code=409, detail=result.message)

    def organization_ids_for(self, assignments) -> List[str]:
        """Organizations a user belongs to, directly or through a workspace"""
        org_ids = {a.organization_id for a in assignments if a.organization_id}
        workspace_ids = sorted({a.workspace_id for a in assignments if a.workspace_id})
        if workspace_ids:
            result = self.supabase.table("workspaces")\
                .select("organization_id")\
                .in_("id", workspace_ids)\
                .execute()
            org_ids.update(w["organization_id"] for w in result.data or [] if w.get("organization_id"))
        return sorted(org_ids)
