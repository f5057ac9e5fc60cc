import logging
from datetime import datetime, timezone
from supabase import Client
from app.core.realtime import ChangeFeed, change_feed
from app.core.scope import AppRole, Scope
from app.modules.notifications.dispatcher import NotificationDispatcher, SYSTEM_ANNOUNCEMENT
from app.modules.notifications.schemas import (
    NotificationResponse, BroadcastRequest, BroadcastResult, NotificationStats
)
from app.modules.users.service import UserService
from typing import List, Optional
from fastapi import HTTPException

logger = logging.getLogger(__name__)


class NotificationService:
    def __init__(self, supabase: Client, feed: ChangeFeed = change_feed):
        self.supabase = supabase
        self.feed = feed
        self.dispatcher = NotificationDispatcher(supabase, feed=feed)
        self.users = UserService(supabase, feed=feed)

    def list_for_user(self, user_id: str, unread_only: bool = False, limit: int = 50) -> List[NotificationResponse]:
        """Newest notifications of one user"""
        query = self.supabase.table("notifications")\
            .select("*")\
            .eq("user_id", user_id)
        if unread_only:
            query = query.eq("is_read", False)
        result = query.order("created_at", desc=True)\
            .limit(limit)\
            .execute()
        return [NotificationResponse(**n) for n in result.data or []]

    def mark_read(self, notification_id: str, user_id: str) -> NotificationResponse:
        """Mark one of the user's notifications read"""
        result = self.supabase.table("notifications")\
            .update({"is_read": True})\
            .eq("id", notification_id)\
            .eq("user_id", user_id)\
            .execute()

        if not result.data:
            raise HTTPException(status_code=404, detail="Notification not found")

        self.feed.notify("notifications")
        return NotificationResponse(**result.data[0])

    def mark_all_read(self, user_id: str) -> int:
        result = self.supabase.table("notifications")\
            .update({"is_read": True})\
            .eq("user_id", user_id)\
            .eq("is_read", False)\
            .execute()
        self.feed.notify("notifications")
        return len(result.data or [])

    def _recipients(self, scope: Optional[Scope], target_role: Optional[AppRole]) -> List[str]:
        user_ids = self.users.user_ids_in_scope(scope)
        if user_ids is not None and len(user_ids) == 0:
            return []
        if target_role is None:
            if user_ids is not None:
                return user_ids
            result = self.supabase.table("profiles").select("id").execute()
            return [p["id"] for p in result.data or []]

        query = self.supabase.table("user_roles")\
            .select("user_id")\
            .eq("role", target_role.value)
        if user_ids is not None:
            query = query.in_("user_id", user_ids)
        result = query.execute()
        return sorted({r["user_id"] for r in result.data or []})

    def broadcast(self, broadcast: BroadcastRequest, scope: Optional[Scope]) -> BroadcastResult:
        """Send an announcement to every user in scope, optionally only holders of one role"""
        recipients = self._recipients(scope, broadcast.target_role)
        count = self.dispatcher.send(
            recipients, broadcast.title, broadcast.message, type=SYSTEM_ANNOUNCEMENT
        )
        logger.info(
            "Broadcast '%s' sent to %d users (role filter: %s)",
            broadcast.title, count, broadcast.target_role.value if broadcast.target_role else "all"
        )
        return BroadcastResult(count=count)

    def _count(self, user_ids: Optional[List[str]], **filters) -> int:
        query = self.supabase.table("notifications").select("id", count="exact")
        if user_ids is not None:
            query = query.in_("user_id", user_ids)
        for column, value in filters.items():
            query = query.eq(column, value)
        return query.execute().count or 0

    def get_stats(self, scope: Optional[Scope]) -> NotificationStats:
        """Totals over the notifications of users in scope"""
        user_ids = self.users.user_ids_in_scope(scope)
        if user_ids is not None and len(user_ids) == 0:
            return NotificationStats()

        today = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
        query = self.supabase.table("notifications")\
            .select("id", count="exact")\
            .gte("created_at", today.isoformat())
        if user_ids is not None:
            query = query.in_("user_id", user_ids)
        today_sent = query.execute().count or 0

        return NotificationStats(
            total=self._count(user_ids),
            unread=self._count(user_ids, is_read=False),
            today_sent=today_sent,
        )
