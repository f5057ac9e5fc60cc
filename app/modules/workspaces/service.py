import logging
from datetime import datetime, timezone
from supabase import Client
from app.core.realtime import ChangeFeed, change_feed
from app.core.scope import AppRole, RoleAssignment, is_super_admin
from app.modules.organizations.service import OrganizationService
from app.modules.workspaces.schemas import (
    WorkspaceCreate, WorkspaceUpdate, WorkspaceResponse, WorkspaceTemplateResponse
)
from typing import List, Optional
from fastapi import HTTPException

logger = logging.getLogger(__name__)

WORKSPACE_ADMIN_ROLES = (AppRole.GENERAL_ADMIN,)


class WorkspaceService:
    def __init__(self, supabase: Client, feed: ChangeFeed = change_feed):
        self.supabase = supabase
        self.feed = feed
        self.organizations = OrganizationService(supabase, feed)

    def create_workspace(self, workspace_data: WorkspaceCreate, user_id: str) -> WorkspaceResponse:
        """Create a workspace inside an organization, within its workspace limit"""
        self.organizations.enforce_limit(workspace_data.organization_id, "workspaces")

        result = self.supabase.table("workspaces").insert({
            "name": workspace_data.name,
            "organization_id": workspace_data.organization_id,
            "created_by": user_id
        }).execute()

        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to create workspace")

        logger.info("Workspace %s created in organization %s", result.data[0]["id"], workspace_data.organization_id)
        self.feed.notify("workspaces")
        return WorkspaceResponse(**result.data[0])

    def get_workspace_by_id(self, workspace_id: str) -> WorkspaceResponse:
        """Get workspace by ID"""
        result = self.supabase.table("workspaces")\
            .select("*")\
            .eq("id", workspace_id)\
            .limit(1)\
            .execute()

        if not result.data:
            raise HTTPException(status_code=404, detail="Workspace not found")

        return WorkspaceResponse(**result.data[0])

    def list_workspaces(
        self,
        organization_id: Optional[str] = None,
        workspace_ids: Optional[List[str]] = None,
        limit: int = 100,
        offset: int = 0
    ) -> List[WorkspaceResponse]:
        """List workspaces, optionally by organization and/or restricted to workspace_ids"""
        if workspace_ids is not None and len(workspace_ids) == 0:
            return []
        query = self.supabase.table("workspaces").select("*")
        if organization_id:
            query = query.eq("organization_id", organization_id)
        if workspace_ids is not None:
            query = query.in_("id", workspace_ids)
        result = query.order("name")\
            .range(offset, offset + limit - 1)\
            .execute()
        return [WorkspaceResponse(**ws) for ws in result.data]

    def update_workspace(self, workspace_id: str, workspace_data: WorkspaceUpdate) -> WorkspaceResponse:
        """Rename workspace"""
        update_data = workspace_data.model_dump(exclude_unset=True, exclude_none=True)
        if not update_data:
            return self.get_workspace_by_id(workspace_id)
        update_data["updated_at"] = datetime.now(timezone.utc).isoformat()

        result = self.supabase.table("workspaces")\
            .update(update_data)\
            .eq("id", workspace_id)\
            .execute()

        if not result.data:
            raise HTTPException(status_code=404, detail="Workspace not found")

        self.feed.notify("workspaces")
        return WorkspaceResponse(**result.data[0])

    def delete_workspace(self, workspace_id: str) -> bool:
        """Delete workspace; blocked while facilities exist in it"""
        self.get_workspace_by_id(workspace_id)
        facilities = self.supabase.table("facilities")\
            .select("id")\
            .eq("workspace_id", workspace_id)\
            .limit(1)\
            .execute()
        if facilities.data:
            logger.warning("Refused to delete workspace %s: facilities present", workspace_id)
            raise HTTPException(
                status_code=409,
                detail="Cannot delete workspace with facilities. Remove facilities first."
            )

        # Remove template links and module overrides first
        self.supabase.table("workspace_departments")\
            .delete()\
            .eq("workspace_id", workspace_id)\
            .execute()
        self.supabase.table("workspace_module_access")\
            .delete()\
            .eq("workspace_id", workspace_id)\
            .execute()

        result = self.supabase.table("workspaces")\
            .delete()\
            .eq("id", workspace_id)\
            .execute()

        self.feed.notify("workspaces")
        self.feed.notify("workspace_module_access")
        return len(result.data) > 0

    def workspace_ids_for(self, assignments: List[RoleAssignment]) -> Optional[List[str]]:
        """Workspaces visible to a user; None means all (super admin)"""
        if is_super_admin(assignments):
            return None
        ids = {a.workspace_id for a in assignments if a.workspace_id}
        org_ids = [a.organization_id for a in assignments
                   if a.role == AppRole.ORGANIZATION_ADMIN and a.organization_id]
        if org_ids:
            result = self.supabase.table("workspaces")\
                .select("id")\
                .in_("organization_id", org_ids)\
                .execute()
            ids.update(w["id"] for w in result.data or [])
        return sorted(ids)

    def ensure_workspace_access(
        self,
        workspace_id: str,
        assignments: List[RoleAssignment],
        admin_only: bool = False
    ) -> WorkspaceResponse:
        """Return the workspace when the user may manage it (or merely see it when admin_only is False)"""
        workspace = self.get_workspace_by_id(workspace_id)
        if is_super_admin(assignments):
            return workspace
        for a in assignments:
            if a.role == AppRole.ORGANIZATION_ADMIN and a.organization_id == workspace.organization_id:
                return workspace
            if a.workspace_id == workspace_id and (not admin_only or a.role in WORKSPACE_ADMIN_ROLES):
                return workspace
        raise HTTPException(status_code=403, detail="Workspace not accessible")

    def list_templates(self, workspace_id: str) -> List[WorkspaceTemplateResponse]:
        """Template departments assigned to a workspace"""
        result = self.supabase.table("workspace_departments")\
            .select("*")\
            .eq("workspace_id", workspace_id)\
            .execute()
        return [WorkspaceTemplateResponse(**row) for row in result.data or []]

    def assign_templates(self, workspace_id: str, template_ids: List[str]) -> List[WorkspaceTemplateResponse]:
        """Assign template departments to a workspace, skipping ones already assigned"""
        self.get_workspace_by_id(workspace_id)

        templates = self.supabase.table("departments")\
            .select("id, is_template")\
            .in_("id", template_ids)\
            .execute()
        valid = {d["id"] for d in templates.data or [] if d.get("is_template")}
        invalid = [tid for tid in template_ids if tid not in valid]
        if invalid:
            raise HTTPException(status_code=400, detail=f"Not template departments: {', '.join(invalid)}")

        existing = {t.department_template_id for t in self.list_templates(workspace_id)}
        insert_data = [
            {"workspace_id": workspace_id, "department_template_id": tid}
            for tid in dict.fromkeys(template_ids)
            if tid not in existing
        ]
        if insert_data:
            self.supabase.table("workspace_departments").insert(insert_data).execute()
            self.feed.notify("workspace_departments")
        return self.list_templates(workspace_id)

    def unassign_template(self, workspace_id: str, template_id: str) -> bool:
        result = self.supabase.table("workspace_departments")\
            .delete()\
            .eq("workspace_id", workspace_id)\
            .eq("department_template_id", template_id)\
            .execute()
        self.feed.notify("workspace_departments")
        return len(result.data) > 0
