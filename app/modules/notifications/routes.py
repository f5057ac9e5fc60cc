from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.notifications.schemas import (
    NotificationResponse, BroadcastRequest, BroadcastResult, NotificationStats
)
from app.modules.notifications.service import NotificationService
from app.core.dependencies import (
    get_current_scope, get_current_user_id, require_module_access
)
from app.core.scope import Scope
from supabase import Client
from typing import List, Dict, Optional

router = APIRouter(prefix="/notifications", tags=["notifications"])


def get_notification_service(supabase: Client = Depends(get_supabase)) -> NotificationService:
    return NotificationService(supabase)


@router.get("", response_model=List[NotificationResponse])
async def list_my_notifications(
    unread_only: bool = False,
    limit: int = 50,
    user_data: Dict = Depends(get_current_user_id),
    service: NotificationService = Depends(get_notification_service)
):
    """Notifications of the current user, newest first"""
    return service.list_for_user(user_data["id"], unread_only=unread_only, limit=limit)


@router.post("/read-all")
async def mark_all_notifications_read(
    user_data: Dict = Depends(get_current_user_id),
    service: NotificationService = Depends(get_notification_service)
):
    return {"updated": service.mark_all_read(user_data["id"])}


@router.post("/broadcast", response_model=BroadcastResult)
async def broadcast_notification(
    broadcast: BroadcastRequest,
    user_data: Dict = Depends(require_module_access("emails", "can_edit")),
    scope: Optional[Scope] = Depends(get_current_scope),
    service: NotificationService = Depends(get_notification_service)
):
    """Announcement to all users in the caller's scope (optionally one role)"""
    return service.broadcast(broadcast, scope)


@router.get("/stats", response_model=NotificationStats)
async def notification_stats(
    user_data: Dict = Depends(require_module_access("emails")),
    scope: Optional[Scope] = Depends(get_current_scope),
    service: NotificationService = Depends(get_notification_service)
):
    return service.get_stats(scope)


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: NotificationService = Depends(get_notification_service)
):
    return service.mark_read(notification_id, user_data["id"])
