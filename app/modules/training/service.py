import logging
from datetime import datetime, timezone
from supabase import Client
from app.core.realtime import ChangeFeed, change_feed
from app.modules.notifications.dispatcher import NotificationDispatcher
from app.modules.training.attendance import (
    AttendanceRecord, AttendanceSummary, Registration, attendance_summary, pending_check_ins
)
from app.modules.training.schemas import (
    TrainingEventCreate, TrainingEventUpdate, TrainingEventResponse,
    RegistrationResponse, BulkCheckInResult, CancelEventResult
)
from typing import List, Optional
from fastapi import HTTPException

logger = logging.getLogger(__name__)

REGISTERED = "registered"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class TrainingService:
    def __init__(self, supabase: Client, feed: ChangeFeed = change_feed):
        self.supabase = supabase
        self.feed = feed
        self.dispatcher = NotificationDispatcher(supabase, feed=feed)

    # Events

    def _ensure_unique_title(self, organization_id: str, title: str, exclude_id: Optional[str] = None) -> None:
        query = self.supabase.table("training_events")\
            .select("id")\
            .eq("organization_id", organization_id)\
            .eq("title", title)
        if exclude_id:
            query = query.neq("id", exclude_id)
        if query.limit(1).execute().data:
            raise HTTPException(
                status_code=400,
                detail=f'An event with the title "{title}" already exists in this organization.'
            )

    def create_event(self, event_data: TrainingEventCreate, user_id: str) -> TrainingEventResponse:
        """Create a training event (and its targets for mandatory / invite-only events)"""
        self._ensure_unique_title(event_data.organization_id, event_data.title)

        payload = event_data.model_dump(
            mode="json", exclude={"target_user_ids", "target_department_ids"}
        )
        payload["created_by"] = user_id
        result = self.supabase.table("training_events").insert(payload).execute()

        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to create training event")

        event = TrainingEventResponse(**result.data[0])
        if event_data.registration_type != "open":
            self._replace_targets(event.id, event_data.target_user_ids, event_data.target_department_ids)

        logger.info("Training event %s created in organization %s", event.id, event.organization_id)
        self.feed.notify("training_events")
        return event

    def _replace_targets(self, event_id: str, user_ids: List[str], department_ids: List[str]) -> None:
        self.supabase.table("training_event_targets")\
            .delete()\
            .eq("event_id", event_id)\
            .execute()
        targets = [
            {"event_id": event_id, "target_type": "user", "user_id": uid, "department_id": None}
            for uid in dict.fromkeys(user_ids)
        ] + [
            {"event_id": event_id, "target_type": "department", "user_id": None, "department_id": did}
            for did in dict.fromkeys(department_ids)
        ]
        if targets:
            self.supabase.table("training_event_targets").insert(targets).execute()

    def get_event(self, event_id: str) -> TrainingEventResponse:
        result = self.supabase.table("training_events")\
            .select("*")\
            .eq("id", event_id)\
            .limit(1)\
            .execute()

        if not result.data:
            raise HTTPException(status_code=404, detail="Training event not found")

        return TrainingEventResponse(**result.data[0])

    def list_events(
        self,
        organization_ids: Optional[List[str]] = None,
        status: Optional[str] = None,
        limit: int = 100,
        offset: int = 0
    ) -> List[TrainingEventResponse]:
        """Events ordered by start; organization_ids=None means every organization"""
        if organization_ids is not None and len(organization_ids) == 0:
            return []
        query = self.supabase.table("training_events").select("*")
        if organization_ids is not None:
            query = query.in_("organization_id", organization_ids)
        if status:
            query = query.eq("status", status)
        result = query.order("start_datetime")\
            .range(offset, offset + limit - 1)\
            .execute()
        return [TrainingEventResponse(**e) for e in result.data or []]

    def update_event(self, event_id: str, event_data: TrainingEventUpdate) -> TrainingEventResponse:
        current = self.get_event(event_id)
        update_data = event_data.model_dump(mode="json", exclude_unset=True)
        if not update_data:
            return current

        start = event_data.start_datetime or current.start_datetime
        end = event_data.end_datetime or current.end_datetime
        if end <= start:
            raise HTTPException(status_code=400, detail="End date/time must be after start date/time")
        if event_data.title and event_data.title != current.title:
            self._ensure_unique_title(current.organization_id, event_data.title, exclude_id=event_id)

        update_data["updated_at"] = _now()
        result = self.supabase.table("training_events")\
            .update(update_data)\
            .eq("id", event_id)\
            .execute()

        if not result.data:
            raise HTTPException(status_code=404, detail="Training event not found")

        self.feed.notify("training_events")
        return TrainingEventResponse(**result.data[0])

    def cancel_event(self, event_id: str) -> CancelEventResult:
        """Notify registered users, then remove the event and its targets"""
        event = self.get_event(event_id)
        registrations = self._registrations(event_id, only_registered=True)

        notified = self.dispatcher.send(
            [r.user_id for r in registrations],
            title=f"Event Cancelled: {event.title}",
            message=(
                f'The event "{event.title}" scheduled for '
                f'{event.start_datetime.isoformat()} has been cancelled.'
            ),
            type="training",
            related_id=event_id,
        )

        self.supabase.table("training_event_targets")\
            .delete()\
            .eq("event_id", event_id)\
            .execute()
        self.supabase.table("training_events")\
            .delete()\
            .eq("id", event_id)\
            .execute()

        logger.info("Training event %s cancelled, %d attendees notified", event_id, notified)
        self.feed.notify("training_events")
        return CancelEventResult(
            event_id=event_id, notified=notified, message="Event cancelled and notifications sent"
        )

    # Registrations

    def _registrations(self, event_id: str, only_registered: bool = False) -> List[Registration]:
        query = self.supabase.table("training_registrations")\
            .select("*")\
            .eq("event_id", event_id)
        if only_registered:
            query = query.eq("status", REGISTERED)
        return [Registration(**r) for r in query.execute().data or []]

    def list_registrations(self, event_id: str) -> List[RegistrationResponse]:
        self.get_event(event_id)
        result = self.supabase.table("training_registrations")\
            .select("*")\
            .eq("event_id", event_id)\
            .execute()
        return [RegistrationResponse(**r) for r in result.data or []]

    def register(self, event_id: str, user_id: str) -> RegistrationResponse:
        """Register a user for a published event, within max_participants"""
        event = self.get_event(event_id)
        if event.status != "published":
            raise HTTPException(status_code=400, detail="Registration is only open for published events")

        existing = self.supabase.table("training_registrations")\
            .select("id")\
            .eq("event_id", event_id)\
            .eq("user_id", user_id)\
            .limit(1)\
            .execute()
        if existing.data:
            raise HTTPException(status_code=400, detail="Already registered for this event")

        if event.max_participants:
            count = self.supabase.table("training_registrations")\
                .select("id", count="exact")\
                .eq("event_id", event_id)\
                .eq("status", REGISTERED)\
                .execute().count or 0
            if count >= event.max_participants:
                logger.warning("Event %s is full (%d/%d)", event_id, count, event.max_participants)
                raise HTTPException(status_code=409, detail="This event has reached its maximum capacity")

        result = self.supabase.table("training_registrations").insert({
            "event_id": event_id,
            "user_id": user_id,
            "status": REGISTERED,
        }).execute()

        self.dispatcher.send(
            [user_id],
            title="Registration Confirmed",
            message=f'You have successfully registered for "{event.title}"',
            related_id=event_id,
        )
        self.feed.notify("training_registrations")
        return RegistrationResponse(**result.data[0])

    def unregister(self, event_id: str, user_id: str) -> bool:
        result = self.supabase.table("training_registrations")\
            .delete()\
            .eq("event_id", event_id)\
            .eq("user_id", user_id)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Registration not found")
        self.feed.notify("training_registrations")
        return True

    # Attendance

    def _attendance(self, event_id: str) -> List[AttendanceRecord]:
        result = self.supabase.table("training_attendance")\
            .select("*")\
            .eq("event_id", event_id)\
            .execute()
        return [AttendanceRecord(**a) for a in result.data or []]

    def get_attendance(self, event_id: str) -> AttendanceSummary:
        self.get_event(event_id)
        return attendance_summary(self._registrations(event_id), self._attendance(event_id))

    def set_check_in(self, event_id: str, user_id: str, checked_in: bool, checked_in_by: str) -> AttendanceSummary:
        """Manual check-in, or mark absent when checked_in is False"""
        self.get_event(event_id)
        existing = self.supabase.table("training_attendance")\
            .select("id")\
            .eq("event_id", event_id)\
            .eq("user_id", user_id)\
            .limit(1)\
            .execute()

        if checked_in:
            now = _now()
            values = {
                "check_in_method": "manual",
                "checked_in_at": now,
                "checked_in_by": checked_in_by,
                "attendance_status": "present",
            }
            if existing.data:
                self.supabase.table("training_attendance")\
                    .update(values)\
                    .eq("id", existing.data[0]["id"])\
                    .execute()
            else:
                self.supabase.table("training_attendance").insert({
                    "event_id": event_id,
                    "user_id": user_id,
                    "joined_at": now,
                    **values,
                }).execute()
        elif existing.data:
            self.supabase.table("training_attendance")\
                .update({"attendance_status": "absent", "checked_in_at": None, "checked_in_by": None})\
                .eq("id", existing.data[0]["id"])\
                .execute()

        self.feed.notify("training_attendance")
        return self.get_attendance(event_id)

    def bulk_check_in(self, event_id: str, checked_in_by: str) -> BulkCheckInResult:
        """Check in every registrant not yet checked in (auto-joined attendees excluded)"""
        self.get_event(event_id)
        attendance = self._attendance(event_id)
        pending = pending_check_ins(self._registrations(event_id), attendance)
        if not pending:
            raise HTTPException(status_code=400, detail="No pending attendees to check in")

        joined = {a.user_id: a.joined_at for a in attendance}
        now = _now()
        rows = [
            {
                "event_id": event_id,
                "user_id": reg.user_id,
                "joined_at": joined[reg.user_id].isoformat() if joined.get(reg.user_id) else now,
                "check_in_method": "manual",
                "checked_in_at": now,
                "checked_in_by": checked_in_by,
                "attendance_status": "present",
            }
            for reg in pending
        ]
        self.supabase.table("training_attendance")\
            .upsert(rows, on_conflict="event_id,user_id")\
            .execute()

        logger.info("Bulk check-in of %d attendees for event %s", len(rows), event_id)
        self.feed.notify("training_attendance")
        return BulkCheckInResult(checked_in=len(rows))
