"""Attendance checklist summary."""

from datetime import datetime, timezone

from app.modules.training.attendance import (
    AttendanceRecord,
    Registration,
    attendance_summary,
    pending_check_ins,
)

NOW = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def _regs(*user_ids):
    return [Registration(id=f"r-{u}", user_id=u) for u in user_ids]


def test_empty_event_is_zero_percent():
    summary = attendance_summary([], [])
    assert (summary.checked_in, summary.total, summary.percentage) == (0, 0, 0)


def test_labels_and_counts():
    attendance = [
        AttendanceRecord(user_id="b", check_in_method="manual", checked_in_at=NOW, attendance_status="present"),
        AttendanceRecord(user_id="c", check_in_method="auto", attendance_status="present", joined_at=NOW),
        AttendanceRecord(user_id="d", check_in_method="manual", attendance_status="absent"),
        AttendanceRecord(user_id="e", attendance_status="present"),
    ]

    summary = attendance_summary(_regs("a", "b", "c", "d", "e", "f"), attendance)

    labels = {a.user_id: a.label for a in summary.attendees}
    assert labels == {
        "a": "Not Checked In",
        "b": "Checked In (Manual)",
        "c": "Joined Online",
        "d": "Absent",
        "e": "Present",
        "f": "Not Checked In",
    }
    # b has a check-in time, c joined automatically
    assert summary.checked_in == 2
    assert summary.total == 6
    assert summary.percentage == 33


def test_percentage_rounds_half_up():
    attendance = [AttendanceRecord(user_id=u, checked_in_at=NOW) for u in "abcdefghi"]
    summary = attendance_summary(_regs(*"abcdefghijklmnop"), attendance)
    # 9 of 16 = 56.25
    assert summary.percentage == 56

    half = attendance_summary(_regs("a", "b", "c", "d", "e", "f", "g", "h"), [AttendanceRecord(user_id="a", checked_in_at=NOW)])
    # 1 of 8 = 12.5
    assert half.percentage == 13


def test_pending_excludes_checked_in_and_auto_joined():
    attendance = [
        AttendanceRecord(user_id="b", checked_in_at=NOW),
        AttendanceRecord(user_id="c", check_in_method="auto"),
        AttendanceRecord(user_id="d", check_in_method="manual", attendance_status="absent"),
    ]
    pending = pending_check_ins(_regs("a", "b", "c", "d"), attendance)
    assert [r.user_id for r in pending] == ["a", "d"]
