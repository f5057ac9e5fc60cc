import logging
from datetime import datetime, timezone
from supabase import Client
from app.config import settings
from app.core.realtime import ChangeFeed, change_feed
from app.core.scope import (
    RoleAssignment, Scope, parse_assignments, scope_covers, scope_user_filter,
    validate_assignment_scope,
)
from app.modules.organizations.service import OrganizationService
from app.modules.users.schemas import (
    UserUpdate, UserResponse, UserWithRolesResponse, UserCreate,
    RoleAssignmentCreate, RoleAssignmentUpdate,
    BulkUserRow, BulkUploadError, BulkUploadResult
)
from typing import Dict, List, Optional
from fastapi import HTTPException

logger = logging.getLogger(__name__)

SCOPE_FIELDS = (
    "organization_id", "workspace_id", "facility_id", "department_id", "specialty_id", "custom_role_id"
)
HIERARCHY = ("department_id", "facility_id", "workspace_id", "organization_id")


class RowError(Exception):
    """A bulk-upload row that cannot be provisioned"""


class UserService:
    def __init__(self, supabase: Client, admin: Optional[Client] = None, feed: ChangeFeed = change_feed):
        self.supabase = supabase
        # Auth admin calls need the service-role client
        self.admin = admin or supabase
        self.feed = feed
        self.organizations = OrganizationService(supabase, feed)

    # Profiles

    def get_user_by_id(self, user_id: str) -> UserResponse:
        """Get user profile by ID"""
        result = self.supabase.table("profiles")\
            .select("*")\
            .eq("id", user_id)\
            .limit(1)\
            .execute()

        if not result.data:
            raise HTTPException(status_code=404, detail="User not found")

        return UserResponse(**result.data[0])

    def get_user_with_roles(self, user_id: str) -> UserWithRolesResponse:
        user = self.get_user_by_id(user_id)
        return UserWithRolesResponse(**user.model_dump(), roles=self.get_roles(user_id))

    def update_user(self, user_id: str, user_data: UserUpdate) -> UserResponse:
        """Update profile fields"""
        update_data = user_data.model_dump(exclude_unset=True, exclude_none=True)
        if not update_data:
            return self.get_user_by_id(user_id)
        update_data["updated_at"] = datetime.now(timezone.utc).isoformat()

        result = self.supabase.table("profiles")\
            .update(update_data)\
            .eq("id", user_id)\
            .execute()

        if not result.data:
            raise HTTPException(status_code=404, detail="User not found")

        self.feed.notify("profiles")
        return UserResponse(**result.data[0])

    def user_ids_in_scope(self, scope: Optional[Scope]) -> Optional[List[str]]:
        """User ids inside a scope; None means every user, [] means nobody"""
        if scope is None:
            return []
        column_value = scope_user_filter(scope)
        if column_value is None:
            return None
        column, value = column_value
        if not value:
            return []
        result = self.supabase.table("user_roles")\
            .select("user_id")\
            .eq(column, value)\
            .execute()
        return sorted({r["user_id"] for r in result.data or []})

    def list_users(self, scope: Optional[Scope], limit: int = 100, offset: int = 0) -> List[UserResponse]:
        """Profiles visible in the caller's scope; a user without scope sees nobody"""
        user_ids = self.user_ids_in_scope(scope)
        if user_ids is not None and len(user_ids) == 0:
            return []
        query = self.supabase.table("profiles").select("*")
        if user_ids is not None:
            query = query.in_("id", user_ids)
        result = query.order("full_name")\
            .range(offset, offset + limit - 1)\
            .execute()
        return [UserResponse(**user) for user in result.data or []]

    def ensure_user_in_scope(self, user_id: str, scope: Optional[Scope]) -> None:
        user_ids = self.user_ids_in_scope(scope)
        if user_ids is not None and user_id not in user_ids:
            raise HTTPException(status_code=403, detail="User not accessible")

    # Role assignments

    def get_roles(self, user_id: str) -> List[RoleAssignment]:
        result = self.supabase.table("user_roles")\
            .select("*")\
            .eq("user_id", user_id)\
            .execute()
        return parse_assignments(result.data or [])

    def _first(self, table: str, columns: str, row_id: str) -> Optional[dict]:
        result = self.supabase.table(table)\
            .select(columns)\
            .eq("id", row_id)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def resolve_hierarchy(self, data: Dict) -> Dict:
        """Fill facility, workspace and organization ids upward from the most specific one given"""
        data = dict(data)
        if data.get("department_id") and not data.get("facility_id"):
            department = self._first("departments", "id, facility_id", data["department_id"])
            if department:
                data["facility_id"] = department.get("facility_id")
        if data.get("facility_id") and not data.get("workspace_id"):
            facility = self._first("facilities", "id, workspace_id", data["facility_id"])
            if facility:
                data["workspace_id"] = facility.get("workspace_id")
        if data.get("workspace_id") and not data.get("organization_id"):
            workspace = self._first("workspaces", "id, organization_id", data["workspace_id"])
            if workspace:
                data["organization_id"] = workspace.get("organization_id")
        if data.get("custom_role_id") and not data.get("organization_id"):
            custom_role = self._first("custom_roles", "id, organization_id", data["custom_role_id"])
            if custom_role:
                data["organization_id"] = custom_role.get("organization_id")
        return data

    def build_assignment(
        self,
        user_id: Optional[str],
        role_data: RoleAssignmentCreate,
        caller_scope: Optional[Scope] = None
    ) -> RoleAssignment:
        """Validate a new assignment: hierarchy filled, required scope present, inside caller scope"""
        data = self.resolve_hierarchy(role_data.model_dump())
        assignment = RoleAssignment(user_id=user_id, **data)
        missing = validate_assignment_scope(assignment)
        if missing:
            raise HTTPException(
                status_code=400,
                detail=f"Missing required scope for role {assignment.role.value}: {', '.join(missing)}"
            )
        if caller_scope is not None and not scope_covers(caller_scope, assignment):
            raise HTTPException(status_code=403, detail="Role assignment is outside your scope")
        return assignment

    def _insert_assignment(self, assignment: RoleAssignment, created_by: str) -> RoleAssignment:
        row = assignment.model_dump(exclude={"id"})
        row["role"] = assignment.role.value
        row["created_by"] = created_by
        result = self.supabase.table("user_roles").insert(row).execute()
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to add role")
        self.feed.notify("user_roles")
        return RoleAssignment(**result.data[0])

    def add_role(
        self,
        user_id: str,
        role_data: RoleAssignmentCreate,
        created_by: str,
        caller_scope: Optional[Scope] = None
    ) -> RoleAssignment:
        """Add a role assignment; an identical assignment is rejected"""
        self.get_user_by_id(user_id)
        assignment = self.build_assignment(user_id, role_data, caller_scope)

        for existing in self.get_roles(user_id):
            if existing.role == assignment.role and all(
                getattr(existing, f) == getattr(assignment, f) for f in SCOPE_FIELDS
            ):
                raise HTTPException(status_code=400, detail="User already has this role assignment")

        created = self._insert_assignment(assignment, created_by)
        logger.info("Role %s added to user %s", assignment.role.value, user_id)
        return created

    def _get_role(self, user_id: str, role_id: str) -> RoleAssignment:
        result = self.supabase.table("user_roles")\
            .select("*")\
            .eq("id", role_id)\
            .eq("user_id", user_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Role assignment not found")
        return RoleAssignment(**result.data[0])

    def update_role(
        self,
        user_id: str,
        role_id: str,
        role_data: RoleAssignmentUpdate,
        caller_scope: Optional[Scope] = None
    ) -> RoleAssignment:
        """Move an assignment to a different scope; the role itself is unchanged"""
        current = self._get_role(user_id, role_id)
        if caller_scope is not None and not scope_covers(caller_scope, current):
            raise HTTPException(status_code=403, detail="Role assignment is outside your scope")

        changes = role_data.model_dump(exclude_unset=True)
        merged = {f: getattr(current, f) for f in SCOPE_FIELDS}
        merged.update(changes)
        # Levels above the most specific changed id are re-derived unless given
        for i, field in enumerate(HIERARCHY):
            if field in changes:
                for upper in HIERARCHY[i + 1:]:
                    if upper not in changes:
                        merged[upper] = None
                break
        assignment = self.build_assignment(
            user_id, RoleAssignmentCreate(role=current.role, **merged), caller_scope
        )

        update_data = {f: getattr(assignment, f) for f in SCOPE_FIELDS}
        result = self.supabase.table("user_roles")\
            .update(update_data)\
            .eq("id", role_id)\
            .execute()

        if not result.data:
            raise HTTPException(status_code=404, detail="Role assignment not found")

        self.feed.notify("user_roles")
        return RoleAssignment(**result.data[0])

    def delete_role(self, user_id: str, role_id: str, caller_scope: Optional[Scope] = None) -> bool:
        current = self._get_role(user_id, role_id)
        if caller_scope is not None and not scope_covers(caller_scope, current):
            raise HTTPException(status_code=403, detail="Role assignment is outside your scope")

        result = self.supabase.table("user_roles")\
            .delete()\
            .eq("id", role_id)\
            .execute()

        logger.info("Role %s removed from user %s", current.role.value, user_id)
        self.feed.notify("user_roles")
        return len(result.data) > 0

    # Provisioning

    def _existing_emails(self, emails: List[str]) -> set:
        if not emails:
            return set()
        result = self.supabase.table("profiles")\
            .select("email")\
            .in_("email", emails)\
            .execute()
        return {(p.get("email") or "").lower() for p in result.data or []}

    def _check_user_limit(self, organization_id: Optional[str]) -> Optional[str]:
        if not organization_id:
            return None
        check = self.organizations.check_limit(organization_id, "users")
        return None if check.allowed else check.message

    def _provision(
        self,
        email: str,
        full_name: str,
        password: str,
        force_password_change: bool,
        assignment: RoleAssignment,
        created_by: str
    ) -> str:
        """Auth user, then profile, then role; the auth user is removed if a later step fails"""
        auth_response = self.admin.auth.admin.create_user({
            "email": email,
            "password": password,
            "email_confirm": True,
            "user_metadata": {"full_name": full_name, "force_password_change": force_password_change},
        })
        new_user_id = auth_response.user.id

        try:
            self.supabase.table("profiles").insert({
                "id": new_user_id,
                "email": email,
                "full_name": full_name,
                "force_password_change": force_password_change,
                "is_active": True,
                "created_by": created_by,
            }).execute()
            row = assignment.model_dump(exclude={"id"})
            row.update({"user_id": new_user_id, "role": assignment.role.value, "created_by": created_by})
            self.supabase.table("user_roles").insert(row).execute()
        except Exception:
            logger.error("Provisioning %s failed after auth user creation; rolling back", email)
            self.admin.auth.admin.delete_user(new_user_id)
            raise

        return new_user_id

    def create_user(
        self,
        user_data: UserCreate,
        created_by: str,
        caller_scope: Optional[Scope] = None
    ) -> UserWithRolesResponse:
        """Create a login, its profile and its first role assignment"""
        role_data = RoleAssignmentCreate(**user_data.model_dump(include=set(RoleAssignmentCreate.model_fields)))
        assignment = self.build_assignment(None, role_data, caller_scope)

        if self._existing_emails([user_data.email]):
            raise HTTPException(status_code=400, detail="A user with this email already exists")
        limit_message = self._check_user_limit(assignment.organization_id)
        if limit_message:
            raise HTTPException(status_code=409, detail=limit_message)

        try:
            new_user_id = self._provision(
                user_data.email,
                user_data.full_name,
                user_data.password or settings.bulk_upload_temp_password,
                user_data.force_password_change,
                assignment,
                created_by,
            )
        except HTTPException:
            raise
        except Exception as e:
            logger.warning("User creation failed for %s: %s", user_data.email, e)
            raise HTTPException(status_code=400, detail=f"Failed to create user: {e}")

        logger.info("User %s created by %s", new_user_id, created_by)
        self.feed.notify("profiles")
        self.feed.notify("user_roles")
        return self.get_user_with_roles(new_user_id)

    def _find_facility(self, name: str, workspace_ids: Optional[List[str]]) -> dict:
        query = self.supabase.table("facilities").select("id, name, workspace_id")
        if workspace_ids is not None:
            if not workspace_ids:
                raise RowError(f'Facility "{name}" not found')
            query = query.in_("workspace_id", workspace_ids)
        matches = [f for f in query.execute().data or [] if f["name"].strip().lower() == name.lower()]
        if not matches:
            raise RowError(f'Facility "{name}" not found')
        if len(matches) > 1:
            raise RowError(f'Facility name "{name}" is ambiguous')
        return matches[0]

    def _find_department(self, name: str, facility: dict) -> dict:
        result = self.supabase.table("departments")\
            .select("id, name, parent_department_id")\
            .eq("facility_id", facility["id"])\
            .execute()
        for department in result.data or []:
            if not department.get("parent_department_id") and department["name"].strip().lower() == name.lower():
                return department
        raise RowError(f'Department "{name}" not found in facility "{facility["name"]}"')

    def _find_specialty(self, name: str, department_id: str) -> Optional[str]:
        result = self.supabase.table("departments")\
            .select("id, name")\
            .eq("parent_department_id", department_id)\
            .execute()
        for specialty in result.data or []:
            if specialty["name"].strip().lower() == name.lower():
                return specialty["id"]
        logger.warning('Specialty "%s" not found, proceeding without it', name)
        return None

    def bulk_upload(
        self,
        rows: List[BulkUserRow],
        created_by: str,
        workspace_ids: Optional[List[str]] = None
    ) -> BulkUploadResult:
        """Provision each row independently and report per-row failures.

        Row numbers count the spreadsheet header, so the first data row is 2.
        A repeated email fails on its second occurrence; emails that already
        have a profile fail outright. workspace_ids limits which facilities
        rows may name (None means any).
        """
        if len(rows) > settings.bulk_upload_max_rows:
            raise HTTPException(
                status_code=400,
                detail=f"Maximum {settings.bulk_upload_max_rows} users per upload"
            )

        logger.info("Processing bulk upload of %d users by %s", len(rows), created_by)
        result = BulkUploadResult()
        existing = self._existing_emails(sorted({r.email for r in rows}))
        seen: Dict[str, int] = {}
        workspace_orgs: Dict[str, Optional[str]] = {}

        for i, user in enumerate(rows):
            row_number = i + 2
            try:
                if user.email in seen:
                    raise RowError(f"Duplicate email in upload (first seen on row {seen[user.email]})")
                seen[user.email] = row_number
                if user.email in existing:
                    raise RowError("A user with this email already exists")

                facility = self._find_facility(user.facility_name, workspace_ids)
                department = self._find_department(user.department_name, facility)
                specialty_id = self._find_specialty(user.specialty_name, department["id"]) if user.specialty_name else None

                workspace_id = facility["workspace_id"]
                if workspace_id not in workspace_orgs:
                    workspace = self._first("workspaces", "id, organization_id", workspace_id)
                    workspace_orgs[workspace_id] = workspace.get("organization_id") if workspace else None
                organization_id = workspace_orgs[workspace_id]

                limit_message = self._check_user_limit(organization_id)
                if limit_message:
                    raise RowError(limit_message)

                assignment = RoleAssignment(
                    role=user.role,
                    organization_id=organization_id,
                    workspace_id=workspace_id,
                    facility_id=facility["id"],
                    department_id=department["id"],
                    specialty_id=specialty_id,
                )
                self._provision(
                    user.email,
                    user.full_name,
                    settings.bulk_upload_temp_password,
                    True,
                    assignment,
                    created_by,
                )
                result.success += 1
                logger.info("Created user %s (row %d)", user.email, row_number)
            except Exception as e:
                result.failed += 1
                result.errors.append(BulkUploadError(row=row_number, email=user.email, error=str(e)))
                logger.warning("Failed to create user %s (row %d): %s", user.email, row_number, e)

        logger.info("Bulk upload complete: %d succeeded, %d failed", result.success, result.failed)
        if result.success:
            self.feed.notify("profiles")
            self.feed.notify("user_roles")
        return result
