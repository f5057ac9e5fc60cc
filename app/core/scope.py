"""
Administrative scope resolution.

A user holds zero or more role assignments. Screens that list users, send
broadcasts or pick training attendees need the single broadest boundary the
user administers; this module computes it from the assignments alone.
"""

from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict


class AppRole(str, Enum):
    SUPER_ADMIN = "super_admin"
    ORGANIZATION_ADMIN = "organization_admin"
    GENERAL_ADMIN = "general_admin"
    WORKPLACE_SUPERVISOR = "workplace_supervisor"
    WORKSPACE_SUPERVISOR = "workspace_supervisor"
    FACILITY_SUPERVISOR = "facility_supervisor"
    DEPARTMENT_HEAD = "department_head"
    STAFF = "staff"
    INTERN = "intern"
    CUSTOM = "custom"


class ScopeType(str, Enum):
    ALL = "all"
    ORGANIZATION = "organization"
    WORKSPACE = "workspace"
    FACILITY = "facility"
    DEPARTMENT = "department"


class RoleAssignment(BaseModel):
    """One row of user_roles, validated once at the fetch boundary."""
    model_config = ConfigDict(extra="ignore", use_enum_values=False)

    id: Optional[str] = None
    user_id: Optional[str] = None
    role: AppRole
    organization_id: Optional[str] = None
    workspace_id: Optional[str] = None
    facility_id: Optional[str] = None
    department_id: Optional[str] = None
    specialty_id: Optional[str] = None
    custom_role_id: Optional[str] = None


class Scope(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: ScopeType
    organization_id: Optional[str] = None
    workspace_id: Optional[str] = None
    facility_id: Optional[str] = None
    department_id: Optional[str] = None


# Highest first. Roles sharing a tier resolve to the same scope type; the
# tuple order inside a tier still decides which assignment supplies the ids.
SCOPE_PRECEDENCE: List[Tuple[AppRole, ScopeType]] = [
    (AppRole.SUPER_ADMIN, ScopeType.ALL),
    (AppRole.ORGANIZATION_ADMIN, ScopeType.ORGANIZATION),
    (AppRole.GENERAL_ADMIN, ScopeType.WORKSPACE),
    (AppRole.WORKPLACE_SUPERVISOR, ScopeType.WORKSPACE),
    (AppRole.WORKSPACE_SUPERVISOR, ScopeType.WORKSPACE),
    (AppRole.FACILITY_SUPERVISOR, ScopeType.FACILITY),
    (AppRole.DEPARTMENT_HEAD, ScopeType.DEPARTMENT),
]

MANAGEMENT_ROLES = frozenset(role for role, _ in SCOPE_PRECEDENCE)
ADMIN_ROLES = frozenset({AppRole.SUPER_ADMIN, AppRole.ORGANIZATION_ADMIN, AppRole.GENERAL_ADMIN})

REQUIRED_SCOPE_FIELDS: Dict[AppRole, Tuple[str, ...]] = {
    AppRole.SUPER_ADMIN: (),
    AppRole.ORGANIZATION_ADMIN: ("organization_id",),
    AppRole.GENERAL_ADMIN: ("workspace_id",),
    AppRole.WORKPLACE_SUPERVISOR: ("workspace_id",),
    AppRole.WORKSPACE_SUPERVISOR: ("workspace_id",),
    AppRole.FACILITY_SUPERVISOR: ("workspace_id", "facility_id"),
    AppRole.DEPARTMENT_HEAD: ("workspace_id", "facility_id", "department_id"),
    AppRole.STAFF: ("workspace_id", "facility_id", "department_id"),
    AppRole.INTERN: ("workspace_id", "facility_id", "department_id"),
    AppRole.CUSTOM: ("custom_role_id",),
}


def parse_assignments(rows: Iterable[dict]) -> List[RoleAssignment]:
    return [RoleAssignment(**row) for row in rows]


def _scope_for(assignment: RoleAssignment, scope_type: ScopeType) -> Scope:
    if scope_type == ScopeType.ALL:
        return Scope(type=ScopeType.ALL)
    if scope_type == ScopeType.ORGANIZATION:
        return Scope(type=scope_type, organization_id=assignment.organization_id)
    if scope_type == ScopeType.WORKSPACE:
        return Scope(type=scope_type, workspace_id=assignment.workspace_id)
    if scope_type == ScopeType.FACILITY:
        return Scope(
            type=scope_type,
            workspace_id=assignment.workspace_id,
            facility_id=assignment.facility_id,
        )
    # Department heads keep their facility/workspace for follow-up lookups
    return Scope(
        type=ScopeType.DEPARTMENT,
        workspace_id=assignment.workspace_id,
        facility_id=assignment.facility_id,
        department_id=assignment.department_id,
    )


def resolve_scope(assignments: Iterable[RoleAssignment]) -> Optional[Scope]:
    """Return the broadest administrative scope, or None when the user manages nothing."""
    assignments = list(assignments)
    for role, scope_type in SCOPE_PRECEDENCE:
        match = next((a for a in assignments if a.role == role), None)
        if match is not None:
            return _scope_for(match, scope_type)
    return None


def has_role(assignments: Iterable[RoleAssignment], *roles: AppRole) -> bool:
    wanted = set(roles)
    return any(a.role in wanted for a in assignments)


def is_super_admin(assignments: Iterable[RoleAssignment]) -> bool:
    return has_role(assignments, AppRole.SUPER_ADMIN)


def validate_assignment_scope(assignment: RoleAssignment) -> List[str]:
    """Return the scope fields the role requires but the assignment leaves empty."""
    required = REQUIRED_SCOPE_FIELDS.get(assignment.role, ())
    return [field for field in required if not getattr(assignment, field)]


def scope_user_filter(scope: Scope) -> Optional[Tuple[str, str]]:
    """Column/value pair selecting user_roles rows inside a scope; None means unrestricted."""
    if scope.type == ScopeType.ALL:
        return None
    if scope.type == ScopeType.ORGANIZATION:
        return ("organization_id", scope.organization_id)
    if scope.type == ScopeType.WORKSPACE:
        return ("workspace_id", scope.workspace_id)
    if scope.type == ScopeType.FACILITY:
        return ("facility_id", scope.facility_id)
    return ("department_id", scope.department_id)


def scope_covers(scope: Optional[Scope], assignment: RoleAssignment) -> bool:
    """True when an assignment sits inside the scope (used to guard edits to other users)."""
    if scope is None:
        return False
    if scope.type == ScopeType.ALL:
        return True
    column, value = scope_user_filter(scope)
    return value is not None and getattr(assignment, column) == value
