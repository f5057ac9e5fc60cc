from fastapi import APIRouter, Depends, HTTPException
from app.database.supabase_client import get_supabase
from app.modules.organizations.service import OrganizationService
from app.modules.training.attendance import AttendanceSummary
from app.modules.training.schemas import (
    TrainingEventCreate, TrainingEventUpdate, TrainingEventResponse,
    RegistrationResponse, CheckInRequest, BulkCheckInResult, CancelEventResult
)
from app.modules.training.service import TrainingService
from app.core.dependencies import get_current_assignments, require_module_access, require_roles
from app.core.scope import AppRole, RoleAssignment, is_super_admin
from supabase import Client
from typing import List, Dict, Optional

router = APIRouter(prefix="/training/events", tags=["training"])

EVENT_MANAGER_ROLES = (
    AppRole.ORGANIZATION_ADMIN,
    AppRole.GENERAL_ADMIN,
    AppRole.WORKPLACE_SUPERVISOR,
    AppRole.WORKSPACE_SUPERVISOR,
    AppRole.FACILITY_SUPERVISOR,
    AppRole.DEPARTMENT_HEAD,
)


def get_training_service(supabase: Client = Depends(get_supabase)) -> TrainingService:
    return TrainingService(supabase)


def visible_organization_ids(assignments: List[RoleAssignment], supabase: Client) -> Optional[List[str]]:
    if is_super_admin(assignments):
        return None
    return OrganizationService(supabase).organization_ids_for(assignments)


def ensure_organization_member(organization_id: str, assignments: List[RoleAssignment], supabase: Client) -> None:
    org_ids = visible_organization_ids(assignments, supabase)
    if org_ids is not None and organization_id not in org_ids:
        raise HTTPException(status_code=403, detail="Training event not accessible")


def get_accessible_event(
    event_id: str,
    assignments: List[RoleAssignment],
    supabase: Client,
    service: TrainingService
) -> TrainingEventResponse:
    event = service.get_event(event_id)
    ensure_organization_member(event.organization_id, assignments, supabase)
    return event


@router.post("", response_model=TrainingEventResponse, status_code=201)
async def create_event(
    event_data: TrainingEventCreate,
    user_data: Dict = Depends(require_module_access("training", "can_edit")),
    assignments: List[RoleAssignment] = Depends(get_current_assignments),
    supabase: Client = Depends(get_supabase),
    service: TrainingService = Depends(get_training_service)
):
    """Create a training event in one of the user's organizations"""
    ensure_organization_member(event_data.organization_id, assignments, supabase)
    return service.create_event(event_data, user_data["id"])


@router.get("", response_model=List[TrainingEventResponse])
async def list_events(
    status: Optional[str] = None,
    limit: int = 100,
    offset: int = 0,
    user_data: Dict = Depends(require_module_access("training")),
    assignments: List[RoleAssignment] = Depends(get_current_assignments),
    supabase: Client = Depends(get_supabase),
    service: TrainingService = Depends(get_training_service)
):
    return service.list_events(
        organization_ids=visible_organization_ids(assignments, supabase),
        status=status, limit=limit, offset=offset
    )


@router.get("/{event_id}", response_model=TrainingEventResponse)
async def get_event(
    event_id: str,
    user_data: Dict = Depends(require_module_access("training")),
    assignments: List[RoleAssignment] = Depends(get_current_assignments),
    supabase: Client = Depends(get_supabase),
    service: TrainingService = Depends(get_training_service)
):
    return get_accessible_event(event_id, assignments, supabase, service)


@router.put("/{event_id}", response_model=TrainingEventResponse)
async def update_event(
    event_id: str,
    event_data: TrainingEventUpdate,
    user_data: Dict = Depends(require_module_access("training", "can_edit")),
    assignments: List[RoleAssignment] = Depends(get_current_assignments),
    supabase: Client = Depends(get_supabase),
    service: TrainingService = Depends(get_training_service)
):
    get_accessible_event(event_id, assignments, supabase, service)
    return service.update_event(event_id, event_data)


@router.post("/{event_id}/cancel", response_model=CancelEventResult)
async def cancel_event(
    event_id: str,
    user_data: Dict = Depends(require_roles(*EVENT_MANAGER_ROLES)),
    assignments: List[RoleAssignment] = Depends(get_current_assignments),
    supabase: Client = Depends(get_supabase),
    service: TrainingService = Depends(get_training_service)
):
    """Cancel an event: registered users are notified and the event is removed"""
    get_accessible_event(event_id, assignments, supabase, service)
    return service.cancel_event(event_id)


@router.get("/{event_id}/registrations", response_model=List[RegistrationResponse])
async def list_registrations(
    event_id: str,
    user_data: Dict = Depends(require_module_access("training")),
    assignments: List[RoleAssignment] = Depends(get_current_assignments),
    supabase: Client = Depends(get_supabase),
    service: TrainingService = Depends(get_training_service)
):
    get_accessible_event(event_id, assignments, supabase, service)
    return service.list_registrations(event_id)


@router.post("/{event_id}/registrations", response_model=RegistrationResponse, status_code=201)
async def register_for_event(
    event_id: str,
    user_data: Dict = Depends(require_module_access("training")),
    assignments: List[RoleAssignment] = Depends(get_current_assignments),
    supabase: Client = Depends(get_supabase),
    service: TrainingService = Depends(get_training_service)
):
    """Register the current user"""
    get_accessible_event(event_id, assignments, supabase, service)
    return service.register(event_id, user_data["id"])


@router.delete("/{event_id}/registrations/me", status_code=204)
async def unregister_from_event(
    event_id: str,
    user_data: Dict = Depends(require_module_access("training")),
    service: TrainingService = Depends(get_training_service)
):
    service.unregister(event_id, user_data["id"])
    return None


@router.get("/{event_id}/attendance", response_model=AttendanceSummary)
async def get_attendance(
    event_id: str,
    user_data: Dict = Depends(require_module_access("training", "can_edit")),
    assignments: List[RoleAssignment] = Depends(get_current_assignments),
    supabase: Client = Depends(get_supabase),
    service: TrainingService = Depends(get_training_service)
):
    """Attendance checklist with checked-in count and percentage"""
    get_accessible_event(event_id, assignments, supabase, service)
    return service.get_attendance(event_id)


@router.put("/{event_id}/attendance/{user_id}", response_model=AttendanceSummary)
async def set_check_in(
    event_id: str,
    user_id: str,
    check_in: CheckInRequest,
    user_data: Dict = Depends(require_module_access("training", "can_edit")),
    assignments: List[RoleAssignment] = Depends(get_current_assignments),
    supabase: Client = Depends(get_supabase),
    service: TrainingService = Depends(get_training_service)
):
    get_accessible_event(event_id, assignments, supabase, service)
    return service.set_check_in(event_id, user_id, check_in.checked_in, user_data["id"])


@router.post("/{event_id}/attendance/check-in-all", response_model=BulkCheckInResult)
async def bulk_check_in(
    event_id: str,
    user_data: Dict = Depends(require_module_access("training", "can_edit")),
    assignments: List[RoleAssignment] = Depends(get_current_assignments),
    supabase: Client = Depends(get_supabase),
    service: TrainingService = Depends(get_training_service)
):
    get_accessible_event(event_id, assignments, supabase, service)
    return service.bulk_check_in(event_id, user_data["id"])
