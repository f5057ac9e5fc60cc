from fastapi import APIRouter, Depends, HTTPException
from app.database.supabase_client import get_supabase
from app.modules.departments.hierarchy import SelectableDepartment
from app.modules.departments.schemas import (
    CategoryCreate, CategoryUpdate, CategoryResponse,
    DepartmentCreate, DepartmentUpdate, DepartmentResponse,
    DepartmentCopyRequest, SubDepartmentsCreate
)
from app.modules.departments.service import CategoryService, DepartmentService
from app.modules.facilities.service import FacilityService
from app.core.dependencies import get_current_assignments, require_module_access, require_roles
from app.core.scope import AppRole, RoleAssignment
from supabase import Client
from typing import List, Dict, Optional

router = APIRouter(prefix="/departments", tags=["departments"])
categories_router = APIRouter(prefix="/categories", tags=["categories"])


def get_category_service(supabase: Client = Depends(get_supabase)) -> CategoryService:
    return CategoryService(supabase)


def get_department_service(supabase: Client = Depends(get_supabase)) -> DepartmentService:
    return DepartmentService(supabase)


def get_facility_service(supabase: Client = Depends(get_supabase)) -> FacilityService:
    return FacilityService(supabase)


def ensure_department_write_access(
    department: Dict,
    assignments: List[RoleAssignment],
    facilities: FacilityService
) -> None:
    """Templates belong to organization admins; facility departments to whoever manages the facility"""
    if department.get("facility_id"):
        facilities.ensure_facility_access(department["facility_id"], assignments, admin_only=True)
        return
    if not any(a.role in (AppRole.SUPER_ADMIN, AppRole.ORGANIZATION_ADMIN) for a in assignments):
        raise HTTPException(status_code=403, detail="Only organization admins manage template departments")


# Categories

@categories_router.get("", response_model=List[CategoryResponse])
async def list_categories(
    active_only: bool = False,
    user_data: Dict = Depends(require_module_access("organization")),
    service: CategoryService = Depends(get_category_service)
):
    return service.list_categories(active_only=active_only)


@categories_router.post("", response_model=CategoryResponse, status_code=201)
async def create_category(
    category_data: CategoryCreate,
    user_data: Dict = Depends(require_roles(AppRole.ORGANIZATION_ADMIN)),
    service: CategoryService = Depends(get_category_service)
):
    """Create a category (names are unique, case-insensitive)"""
    return service.create_category(category_data, user_data["id"])


@categories_router.put("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: str,
    category_data: CategoryUpdate,
    user_data: Dict = Depends(require_roles(AppRole.ORGANIZATION_ADMIN)),
    service: CategoryService = Depends(get_category_service)
):
    return service.update_category(category_id, category_data)


@categories_router.delete("/{category_id}", status_code=204)
async def delete_category(
    category_id: str,
    user_data: Dict = Depends(require_roles(AppRole.ORGANIZATION_ADMIN)),
    service: CategoryService = Depends(get_category_service)
):
    """Delete category (must have no departments)"""
    service.delete_category(category_id)
    return None


# Departments

@router.get("", response_model=List[DepartmentResponse])
async def list_departments(
    facility_id: Optional[str] = None,
    category: Optional[str] = None,
    templates_only: bool = False,
    user_data: Dict = Depends(require_module_access("organization")),
    service: DepartmentService = Depends(get_department_service)
):
    return service.list_departments(facility_id=facility_id, category=category, templates_only=templates_only)


@router.get("/selectable", response_model=List[SelectableDepartment])
async def list_selectable_departments(
    facility_id: Optional[str] = None,
    workspace_id: Optional[str] = None,
    user_data: Dict = Depends(require_module_access("user_management")),
    service: DepartmentService = Depends(get_department_service)
):
    """Departments offered for a role assignment, sub-departments labelled under their parent"""
    return service.selectable_departments(facility_id=facility_id, workspace_id=workspace_id)


@router.get("/{department_id}", response_model=DepartmentResponse)
async def get_department(
    department_id: str,
    user_data: Dict = Depends(require_module_access("organization")),
    service: DepartmentService = Depends(get_department_service)
):
    return service.get_department_by_id(department_id)


@router.get("/{department_id}/specialties", response_model=List[DepartmentResponse])
async def list_specialties(
    department_id: str,
    user_data: Dict = Depends(require_module_access("organization")),
    service: DepartmentService = Depends(get_department_service)
):
    """Sub-departments (specialties) of a department"""
    return service.get_specialties(department_id)


@router.post("", response_model=DepartmentResponse, status_code=201)
async def create_department(
    department_data: DepartmentCreate,
    user_data: Dict = Depends(require_module_access("organization", "can_edit")),
    assignments: List[RoleAssignment] = Depends(get_current_assignments),
    service: DepartmentService = Depends(get_department_service),
    facilities: FacilityService = Depends(get_facility_service)
):
    """Create a template department, a facility department or a sub-department"""
    target = department_data.model_dump()
    if department_data.parent_department_id:
        target = service.get_department_by_id(department_data.parent_department_id).model_dump()
    ensure_department_write_access(target, assignments, facilities)
    return service.create_department(department_data)


@router.post("/{department_id}/subdepartments", response_model=List[DepartmentResponse], status_code=201)
async def create_sub_departments(
    department_id: str,
    sub_data: SubDepartmentsCreate,
    user_data: Dict = Depends(require_module_access("organization", "can_edit")),
    assignments: List[RoleAssignment] = Depends(get_current_assignments),
    service: DepartmentService = Depends(get_department_service),
    facilities: FacilityService = Depends(get_facility_service)
):
    """Add up to 10 sub-departments at once"""
    parent = service.get_department_by_id(department_id)
    ensure_department_write_access(parent.model_dump(), assignments, facilities)
    return service.create_sub_departments(department_id, sub_data.names)


@router.post("/{department_id}/copy", response_model=DepartmentResponse, status_code=201)
async def copy_department_template(
    department_id: str,
    copy_data: DepartmentCopyRequest,
    user_data: Dict = Depends(require_module_access("organization", "can_edit")),
    assignments: List[RoleAssignment] = Depends(get_current_assignments),
    service: DepartmentService = Depends(get_department_service),
    facilities: FacilityService = Depends(get_facility_service)
):
    """Create a facility instance of a template department"""
    facilities.ensure_facility_access(copy_data.facility_id, assignments, admin_only=True)
    return service.copy_template_to_facility(department_id, copy_data.facility_id)


@router.put("/{department_id}", response_model=DepartmentResponse)
async def update_department(
    department_id: str,
    department_data: DepartmentUpdate,
    user_data: Dict = Depends(require_module_access("organization", "can_edit")),
    assignments: List[RoleAssignment] = Depends(get_current_assignments),
    service: DepartmentService = Depends(get_department_service),
    facilities: FacilityService = Depends(get_facility_service)
):
    current = service.get_department_by_id(department_id)
    ensure_department_write_access(current.model_dump(), assignments, facilities)
    return service.update_department(department_id, department_data)


@router.delete("/{department_id}", status_code=204)
async def delete_department(
    department_id: str,
    user_data: Dict = Depends(require_module_access("organization", "can_delete")),
    assignments: List[RoleAssignment] = Depends(get_current_assignments),
    service: DepartmentService = Depends(get_department_service),
    facilities: FacilityService = Depends(get_facility_service)
):
    """Delete department (must have no sub-departments or assigned users)"""
    current = service.get_department_by_id(department_id)
    ensure_department_write_access(current.model_dump(), assignments, facilities)
    service.delete_department(department_id)
    return None
