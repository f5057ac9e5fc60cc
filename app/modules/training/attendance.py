"""
Attendance checklist for a training event.

Every registration is matched with the attendance row of the same user (if
any). An attendee counts as checked in when a check-in time is recorded or
when they joined the online session automatically.
"""
import math
from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Iterable, List, Optional

NOT_CHECKED_IN = "Not Checked In"
ABSENT = "Absent"
CHECKED_IN_MANUAL = "Checked In (Manual)"
JOINED_ONLINE = "Joined Online"
PRESENT = "Present"


class Registration(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    user_id: str
    status: str = "registered"


class AttendanceRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    user_id: str
    attendance_status: Optional[str] = None  # present | absent
    check_in_method: Optional[str] = None  # manual | auto
    checked_in_at: Optional[datetime] = None
    joined_at: Optional[datetime] = None
    left_at: Optional[datetime] = None
    duration_minutes: Optional[int] = None

    @property
    def is_checked_in(self) -> bool:
        return self.checked_in_at is not None or self.check_in_method == "auto"


class AttendeeStatus(BaseModel):
    registration_id: Optional[str] = None
    user_id: str
    registration_status: str
    label: str
    checked_in: bool
    check_in_method: Optional[str] = None
    checked_in_at: Optional[datetime] = None


class AttendanceSummary(BaseModel):
    checked_in: int
    total: int
    percentage: int
    attendees: List[AttendeeStatus] = []


def _by_user(attendance: Iterable[AttendanceRecord]) -> dict:
    by_user = {}
    for record in attendance:
        by_user.setdefault(record.user_id, record)
    return by_user


def status_label(attendance: Optional[AttendanceRecord]) -> str:
    if attendance is None:
        return NOT_CHECKED_IN
    if attendance.attendance_status == "absent":
        return ABSENT
    if attendance.check_in_method == "manual":
        return CHECKED_IN_MANUAL
    if attendance.check_in_method == "auto":
        return JOINED_ONLINE
    return PRESENT


def attendance_summary(
    registrations: Iterable[Registration],
    attendance: Iterable[AttendanceRecord]
) -> AttendanceSummary:
    by_user = _by_user(attendance)

    attendees = []
    for reg in registrations:
        record = by_user.get(reg.user_id)
        attendees.append(AttendeeStatus(
            registration_id=reg.id,
            user_id=reg.user_id,
            registration_status=reg.status,
            label=status_label(record),
            checked_in=record is not None and record.is_checked_in,
            check_in_method=record.check_in_method if record else None,
            checked_in_at=record.checked_in_at if record else None,
        ))

    total = len(attendees)
    checked_in = sum(1 for a in attendees if a.checked_in)
    # Half rounds up
    percentage = math.floor(checked_in * 100 / total + 0.5) if total else 0
    return AttendanceSummary(checked_in=checked_in, total=total, percentage=percentage, attendees=attendees)


def pending_check_ins(
    registrations: Iterable[Registration],
    attendance: Iterable[AttendanceRecord]
) -> List[Registration]:
    """Registrations still to be checked in; auto-joined online attendees are left alone."""
    by_user = _by_user(attendance)
    pending = []
    for reg in registrations:
        record = by_user.get(reg.user_id)
        if record is not None and record.is_checked_in:
            continue
        pending.append(reg)
    return pending
