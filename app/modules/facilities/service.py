import logging
from datetime import datetime, timezone
from supabase import Client
from app.core.realtime import ChangeFeed, change_feed
from app.core.scope import AppRole, RoleAssignment, is_super_admin
from app.modules.facilities.schemas import FacilityCreate, FacilityUpdate, FacilityResponse
from app.modules.workspaces.service import WorkspaceService
from typing import List, Optional
from fastapi import HTTPException

logger = logging.getLogger(__name__)


class FacilityService:
    def __init__(self, supabase: Client, feed: ChangeFeed = change_feed):
        self.supabase = supabase
        self.feed = feed
        self.workspaces = WorkspaceService(supabase, feed)

    def _ensure_unique_name(self, workspace_id: str, name: str, exclude_id: Optional[str] = None) -> None:
        existing = self.supabase.table("facilities")\
            .select("id, name")\
            .eq("workspace_id", workspace_id)\
            .execute()
        for facility in existing.data or []:
            if facility["id"] != exclude_id and facility["name"].strip().lower() == name.strip().lower():
                raise HTTPException(
                    status_code=400,
                    detail="A facility with this name already exists in this workspace"
                )

    def create_facility(self, facility_data: FacilityCreate) -> FacilityResponse:
        """Create a facility; the owning organization's max_facilities applies"""
        workspace = self.workspaces.get_workspace_by_id(facility_data.workspace_id)
        if workspace.organization_id:
            self.workspaces.organizations.enforce_limit(workspace.organization_id, "facilities")
        self._ensure_unique_name(facility_data.workspace_id, facility_data.name)

        result = self.supabase.table("facilities").insert({
            "name": facility_data.name.strip(),
            "workspace_id": facility_data.workspace_id
        }).execute()

        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to create facility")

        logger.info("Facility %s created in workspace %s", result.data[0]["id"], facility_data.workspace_id)
        self.feed.notify("facilities")
        return FacilityResponse(**result.data[0])

    def get_facility_by_id(self, facility_id: str) -> FacilityResponse:
        result = self.supabase.table("facilities")\
            .select("*")\
            .eq("id", facility_id)\
            .limit(1)\
            .execute()

        if not result.data:
            raise HTTPException(status_code=404, detail="Facility not found")

        return FacilityResponse(**result.data[0])

    def list_facilities(
        self,
        workspace_id: Optional[str] = None,
        workspace_ids: Optional[List[str]] = None,
        facility_ids: Optional[List[str]] = None
    ) -> List[FacilityResponse]:
        """List facilities by workspace; workspace_ids / facility_ids restrict visibility"""
        if workspace_ids is not None and len(workspace_ids) == 0 and not facility_ids:
            return []
        query = self.supabase.table("facilities").select("*")
        if workspace_id:
            query = query.eq("workspace_id", workspace_id)
        if facility_ids:
            query = query.in_("id", facility_ids)
        elif workspace_ids is not None:
            query = query.in_("workspace_id", workspace_ids)
        result = query.order("name").execute()
        return [FacilityResponse(**f) for f in result.data or []]

    def update_facility(self, facility_id: str, facility_data: FacilityUpdate) -> FacilityResponse:
        facility = self.get_facility_by_id(facility_id)
        update_data = facility_data.model_dump(exclude_unset=True, exclude_none=True)
        if not update_data:
            return facility
        if "name" in update_data:
            self._ensure_unique_name(facility.workspace_id, update_data["name"], exclude_id=facility_id)
            update_data["name"] = update_data["name"].strip()
        update_data["updated_at"] = datetime.now(timezone.utc).isoformat()

        result = self.supabase.table("facilities")\
            .update(update_data)\
            .eq("id", facility_id)\
            .execute()

        self.feed.notify("facilities")
        return FacilityResponse(**result.data[0])

    def delete_facility(self, facility_id: str) -> bool:
        """Delete facility; blocked while departments belong to it"""
        self.get_facility_by_id(facility_id)
        departments = self.supabase.table("departments")\
            .select("id")\
            .eq("facility_id", facility_id)\
            .limit(1)\
            .execute()
        if departments.data:
            logger.warning("Refused to delete facility %s: departments present", facility_id)
            raise HTTPException(
                status_code=409,
                detail="Cannot delete facility with departments. Remove departments first."
            )

        result = self.supabase.table("facilities")\
            .delete()\
            .eq("id", facility_id)\
            .execute()

        self.feed.notify("facilities")
        return len(result.data) > 0

    def ensure_facility_access(
        self,
        facility_id: str,
        assignments: List[RoleAssignment],
        admin_only: bool = False
    ) -> FacilityResponse:
        """Return the facility when the user reaches it through its workspace or a facility role"""
        facility = self.get_facility_by_id(facility_id)
        if is_super_admin(assignments):
            return facility
        if not admin_only and any(a.facility_id == facility_id for a in assignments):
            return facility
        if admin_only and any(
            a.facility_id == facility_id and a.role == AppRole.FACILITY_SUPERVISOR for a in assignments
        ):
            return facility
        self.workspaces.ensure_workspace_access(facility.workspace_id, assignments, admin_only=admin_only)
        return facility
