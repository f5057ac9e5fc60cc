import logging
from datetime import datetime, timezone
from supabase import Client
from app.core.realtime import ChangeFeed, change_feed
from app.modules.departments.hierarchy import (
    CategoryRecord, DepartmentRecord, SelectableDepartment, select_departments
)
from app.modules.departments.schemas import (
    CategoryCreate, CategoryUpdate, CategoryResponse,
    DepartmentCreate, DepartmentUpdate, DepartmentResponse
)
from typing import List, Optional
from fastapi import HTTPException

logger = logging.getLogger(__name__)


def _same_name(a: str, b: str) -> bool:
    return a.strip().lower() == b.strip().lower()


class CategoryService:
    def __init__(self, supabase: Client, feed: ChangeFeed = change_feed):
        self.supabase = supabase
        self.feed = feed

    def _ensure_unique_name(self, name: str, exclude_id: Optional[str] = None) -> None:
        existing = self.supabase.table("categories").select("id, name").execute()
        if any(c["id"] != exclude_id and _same_name(c["name"], name) for c in existing.data or []):
            raise HTTPException(status_code=400, detail="Category with this name already exists")

    def create_category(self, category_data: CategoryCreate, user_id: str) -> CategoryResponse:
        self._ensure_unique_name(category_data.name)
        result = self.supabase.table("categories").insert({
            "name": category_data.name.strip(),
            "description": category_data.description,
            "is_system_default": False,
            "is_active": True,
            "created_by": user_id
        }).execute()

        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to create category")

        logger.info("Category %s created", category_data.name)
        self.feed.notify("categories")
        return CategoryResponse(**result.data[0])

    def get_category_by_id(self, category_id: str) -> CategoryResponse:
        result = self.supabase.table("categories")\
            .select("*")\
            .eq("id", category_id)\
            .limit(1)\
            .execute()

        if not result.data:
            raise HTTPException(status_code=404, detail="Category not found")

        return CategoryResponse(**result.data[0])

    def list_categories(self, active_only: bool = False) -> List[CategoryResponse]:
        query = self.supabase.table("categories").select("*")
        if active_only:
            query = query.eq("is_active", True)
        result = query.order("name").execute()
        return [CategoryResponse(**c) for c in result.data or []]

    def update_category(self, category_id: str, category_data: CategoryUpdate) -> CategoryResponse:
        """Update category; a rename is carried over to the departments filed under it"""
        current = self.get_category_by_id(category_id)
        update_data = category_data.model_dump(exclude_unset=True, exclude_none=True)
        if not update_data:
            return current
        if "name" in update_data:
            update_data["name"] = update_data["name"].strip()
            self._ensure_unique_name(update_data["name"], exclude_id=category_id)
        update_data["updated_at"] = datetime.now(timezone.utc).isoformat()

        result = self.supabase.table("categories")\
            .update(update_data)\
            .eq("id", category_id)\
            .execute()

        if "name" in update_data and update_data["name"] != current.name:
            self.supabase.table("departments")\
                .update({"category": update_data["name"]})\
                .eq("category", current.name)\
                .execute()
            self.feed.notify("departments")

        self.feed.notify("categories")
        return CategoryResponse(**result.data[0])

    def delete_category(self, category_id: str) -> bool:
        """Delete category; blocked while departments are filed under it"""
        category = self.get_category_by_id(category_id)
        departments = self.supabase.table("departments")\
            .select("id")\
            .eq("category", category.name)\
            .limit(1)\
            .execute()
        if departments.data:
            logger.warning("Refused to delete category %s: departments present", category.name)
            raise HTTPException(status_code=409, detail="Cannot delete category with departments")

        result = self.supabase.table("categories")\
            .delete()\
            .eq("id", category_id)\
            .execute()

        self.feed.notify("categories")
        return len(result.data) > 0


class DepartmentService:
    def __init__(self, supabase: Client, feed: ChangeFeed = change_feed):
        self.supabase = supabase
        self.feed = feed

    def get_department_by_id(self, department_id: str) -> DepartmentResponse:
        result = self.supabase.table("departments")\
            .select("*")\
            .eq("id", department_id)\
            .limit(1)\
            .execute()

        if not result.data:
            raise HTTPException(status_code=404, detail="Department not found")

        return DepartmentResponse(**result.data[0])

    def list_departments(
        self,
        facility_id: Optional[str] = None,
        category: Optional[str] = None,
        templates_only: bool = False
    ) -> List[DepartmentResponse]:
        query = self.supabase.table("departments").select("*")
        if facility_id:
            query = query.eq("facility_id", facility_id)
        if category:
            query = query.eq("category", category)
        if templates_only:
            query = query.eq("is_template", True)
        result = query.order("name").execute()
        return [DepartmentResponse(**d) for d in result.data or []]

    def _siblings(self, department: dict) -> List[dict]:
        """Rows sharing a name namespace: same parent, else same facility, else same template category"""
        query = self.supabase.table("departments").select("id, name")
        if department.get("parent_department_id"):
            query = query.eq("parent_department_id", department["parent_department_id"])
        elif department.get("facility_id"):
            query = query.eq("facility_id", department["facility_id"]).is_("parent_department_id", "null")
        else:
            query = query.eq("category", department.get("category"))\
                .eq("is_template", True)\
                .is_("parent_department_id", "null")
        return query.execute().data or []

    def _ensure_unique_name(self, department: dict, exclude_id: Optional[str] = None) -> None:
        for sibling in self._siblings(department):
            if sibling["id"] != exclude_id and _same_name(sibling["name"], department["name"]):
                if department.get("parent_department_id"):
                    detail = f"Subdepartment '{department['name']}' already exists"
                elif department.get("facility_id"):
                    detail = "Department with this name already exists in this facility"
                else:
                    detail = "Department with this name already exists in this category"
                raise HTTPException(status_code=400, detail=detail)

    def _parent_for(self, parent_id: str) -> DepartmentResponse:
        parent = self.get_department_by_id(parent_id)
        if parent.parent_department_id:
            raise HTTPException(
                status_code=400,
                detail="Sub-departments can only be created under a top-level department"
            )
        return parent

    def create_department(self, department_data: DepartmentCreate) -> DepartmentResponse:
        """Create a template, a facility department or a sub-department"""
        row = department_data.model_dump()
        row["name"] = row["name"].strip()
        if row.get("parent_department_id"):
            parent = self._parent_for(row["parent_department_id"])
            # Sub-departments live where their parent lives
            row["category"] = parent.category
            row["facility_id"] = parent.facility_id
            row["is_template"] = bool(parent.is_template)
        elif row.get("is_template"):
            if not row.get("category"):
                raise HTTPException(status_code=400, detail="Template departments require a category")
            row["facility_id"] = None
        elif not row.get("facility_id"):
            raise HTTPException(status_code=400, detail="facility_id is required for non-template departments")

        self._ensure_unique_name(row)
        result = self.supabase.table("departments").insert(row).execute()

        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to create department")

        logger.info("Department %s created", result.data[0]["id"])
        self.feed.notify("departments")
        return DepartmentResponse(**result.data[0])

    def create_sub_departments(self, parent_id: str, names: List[str]) -> List[DepartmentResponse]:
        """Add several sub-departments under one parent; any duplicate aborts the batch"""
        parent = self._parent_for(parent_id)
        valid_names = [n.strip() for n in names if n.strip()]
        if not valid_names:
            raise HTTPException(status_code=400, detail="Please enter at least one subdepartment name")

        existing = self._siblings({"parent_department_id": parent_id})
        seen = [e["name"] for e in existing]
        for name in valid_names:
            if any(_same_name(name, other) for other in seen):
                raise HTTPException(status_code=400, detail=f"Subdepartment '{name}' already exists")
            seen.append(name)

        result = self.supabase.table("departments").insert([
            {
                "name": name,
                "category": parent.category,
                "parent_department_id": parent_id,
                "facility_id": parent.facility_id,
                "is_template": bool(parent.is_template),
            }
            for name in valid_names
        ]).execute()

        self.feed.notify("departments")
        return [DepartmentResponse(**d) for d in result.data or []]

    def update_department(self, department_id: str, department_data: DepartmentUpdate) -> DepartmentResponse:
        current = self.get_department_by_id(department_id)
        update_data = department_data.model_dump(exclude_unset=True, exclude_none=True)
        if not update_data:
            return current
        if "name" in update_data:
            update_data["name"] = update_data["name"].strip()
            self._ensure_unique_name({**current.model_dump(), "name": update_data["name"]}, exclude_id=department_id)
        update_data["updated_at"] = datetime.now(timezone.utc).isoformat()

        result = self.supabase.table("departments")\
            .update(update_data)\
            .eq("id", department_id)\
            .execute()

        self.feed.notify("departments")
        return DepartmentResponse(**result.data[0])

    def delete_department(self, department_id: str) -> bool:
        """Delete department; blocked while it has sub-departments or assigned users"""
        self.get_department_by_id(department_id)
        subs = self.supabase.table("departments")\
            .select("id")\
            .eq("parent_department_id", department_id)\
            .limit(1)\
            .execute()
        if subs.data:
            logger.warning("Refused to delete department %s: sub-departments present", department_id)
            raise HTTPException(
                status_code=409,
                detail="Cannot delete department with subdepartments. Delete subdepartments first."
            )

        users = self.supabase.table("user_roles")\
            .select("id")\
            .eq("department_id", department_id)\
            .limit(1)\
            .execute()
        if users.data:
            logger.warning("Refused to delete department %s: users assigned", department_id)
            raise HTTPException(
                status_code=409,
                detail="Cannot delete department with assigned users. Reassign users first."
            )

        result = self.supabase.table("departments")\
            .delete()\
            .eq("id", department_id)\
            .execute()

        self.feed.notify("departments")
        return len(result.data) > 0

    def get_specialties(self, department_id: str) -> List[DepartmentResponse]:
        """Sub-departments of a department"""
        result = self.supabase.table("departments")\
            .select("*")\
            .eq("parent_department_id", department_id)\
            .order("name")\
            .execute()
        return [DepartmentResponse(**d) for d in result.data or []]

    def copy_template_to_facility(self, template_id: str, facility_id: str) -> DepartmentResponse:
        """Instantiate a template (with its sub-departments) inside a facility"""
        template = self.get_department_by_id(template_id)
        if not template.is_template:
            raise HTTPException(status_code=400, detail="Department is not a template")
        if template.parent_department_id:
            raise HTTPException(status_code=400, detail="Copy the parent template instead of a sub-department")

        instance = {
            "name": template.name,
            "category": template.category,
            "facility_id": facility_id,
            "is_template": False,
            "min_staffing": template.min_staffing if template.min_staffing is not None else 1,
        }
        self._ensure_unique_name(instance)
        result = self.supabase.table("departments").insert(instance).execute()
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to copy department template")
        created = result.data[0]

        subs = self.get_specialties(template_id)
        if subs:
            self.supabase.table("departments").insert([
                {
                    "name": sub.name,
                    "category": template.category,
                    "facility_id": facility_id,
                    "parent_department_id": created["id"],
                    "is_template": False,
                    "min_staffing": sub.min_staffing if sub.min_staffing is not None else 1,
                }
                for sub in subs
            ]).execute()

        logger.info("Template %s copied to facility %s as %s", template_id, facility_id, created["id"])
        self.feed.notify("departments")
        return DepartmentResponse(**created)

    def selectable_departments(
        self,
        facility_id: Optional[str] = None,
        workspace_id: Optional[str] = None
    ) -> List[SelectableDepartment]:
        """Departments offered when assigning a role in a facility/workspace"""
        facility_name = None
        facility_departments: List[DepartmentRecord] = []
        if facility_id:
            facility = self.supabase.table("facilities")\
                .select("id, name, workspace_id")\
                .eq("id", facility_id)\
                .limit(1)\
                .execute()
            if not facility.data:
                raise HTTPException(status_code=404, detail="Facility not found")
            facility_name = facility.data[0]["name"]
            workspace_id = workspace_id or facility.data[0].get("workspace_id")
            rows = self.supabase.table("departments")\
                .select("*")\
                .eq("facility_id", facility_id)\
                .execute()
            facility_departments = [DepartmentRecord(**d) for d in rows.data or []]

        if not workspace_id and not facility_departments:
            return []

        template_departments: List[DepartmentRecord] = []
        if workspace_id and not facility_departments:
            links = self.supabase.table("workspace_departments")\
                .select("department_template_id")\
                .eq("workspace_id", workspace_id)\
                .execute()
            template_ids = [link["department_template_id"] for link in links.data or []]
            if template_ids:
                rows = self.supabase.table("departments")\
                    .select("*")\
                    .in_("id", template_ids)\
                    .execute()
                by_id = {d["id"]: d for d in rows.data or []}
                # Keep assignment order
                template_departments = [DepartmentRecord(**by_id[t]) for t in template_ids if t in by_id]

        chosen = facility_departments or template_departments
        known = {d.id for d in chosen}
        missing_parents = sorted({
            d.parent_department_id for d in chosen
            if d.parent_department_id and d.parent_department_id not in known
        })
        lookup: List[DepartmentRecord] = []
        if missing_parents:
            rows = self.supabase.table("departments")\
                .select("*")\
                .in_("id", missing_parents)\
                .execute()
            lookup = [DepartmentRecord(**d) for d in rows.data or []]

        categories = self.supabase.table("categories")\
            .select("id, name")\
            .eq("is_active", True)\
            .order("name")\
            .execute()
        return select_departments(
            facility_departments,
            template_departments,
            facility_name,
            [CategoryRecord(**c) for c in categories.data or []],
            lookup,
        )
