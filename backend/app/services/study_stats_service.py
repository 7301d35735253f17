"""
Study statistics over study records: the student's week chart and the teacher dashboard.

Records carry created_at in UTC (naive values from SQLite are treated as UTC); days are cut in
the configured timezone, the same one the reminders use.
"""
from collections import defaultdict
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Iterable
from zoneinfo import ZoneInfo

from app.core.constants import OTHER_SUBJECT, UNKNOWN_STUDENT_NAME, WEEKLY_TOP_N


def local_date(created_at: datetime, tz_name: str) -> date:
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return created_at.astimezone(ZoneInfo(tz_name)).date()


def start_of_local_day(day: date, tz_name: str) -> datetime:
    """Local midnight of `day`, as an aware UTC datetime (for created_at >= filters)."""
    return datetime.combine(day, time.min, tzinfo=ZoneInfo(tz_name)).astimezone(timezone.utc)


def week_start(day: date) -> date:
    """Monday of the week containing day."""
    return day - timedelta(days=day.weekday())


def _hours(minutes: int) -> float:
    return round(minutes / 60, 1)


def weekly_breakdown(records: Iterable[Any], start: date, tz_name: str) -> list[dict[str, Any]]:
    """
    Seven days from `start` (Monday first). Each day sums minutes per key, where the key is the
    reference book when one was used and the subject otherwise.
    """
    days: list[dict[str, int]] = [defaultdict(int) for _ in range(7)]
    for r in records:
        offset = (local_date(r.created_at, tz_name) - start).days
        if 0 <= offset < 7:
            days[offset][r.reference_book or r.subject] += r.duration
    return [
        {
            "date": (start + timedelta(days=i)).isoformat(),
            "total_minutes": sum(by_key.values()),
            "by_key": dict(by_key),
        }
        for i, by_key in enumerate(days)
    ]


def daily_active_count(records: Iterable[Any], today: date, tz_name: str) -> int:
    """Distinct users with at least one record on `today` (local)."""
    return len({r.user_id for r in records if local_date(r.created_at, tz_name) == today})


def weekly_summary(records: Iterable[Any]) -> dict[str, Any]:
    """Totals for a set of records: total hours, top students and subjects, average per active student."""
    total = 0
    per_student: dict[str, int] = defaultdict(int)
    names: dict[str, str] = {}
    per_subject: dict[str, int] = defaultdict(int)
    for r in records:
        total += r.duration
        per_student[r.user_id] += r.duration
        names.setdefault(r.user_id, r.user_name)
        per_subject[r.subject or OTHER_SUBJECT] += r.duration

    top_students = sorted(per_student.items(), key=lambda kv: kv[1], reverse=True)[:WEEKLY_TOP_N]
    top_subjects = sorted(per_subject.items(), key=lambda kv: kv[1], reverse=True)[:WEEKLY_TOP_N]
    total_hours = total / 60
    return {
        "total_hours": round(total_hours, 1),
        "top_students": [
            {"user_id": uid, "user_name": names.get(uid) or UNKNOWN_STUDENT_NAME, "hours": _hours(m)}
            for uid, m in top_students
        ],
        "top_subjects": [{"subject": s, "hours": _hours(m)} for s, m in top_subjects],
        "avg_hours_per_student": round(total_hours / len(per_student), 1) if per_student else 0.0,
    }


def assignment_progress(
    assignments: Iterable[Any], students: Iterable[Any], completed: set[tuple[str, int]]
) -> dict[int, dict[str, int]]:
    """
    For each assignment: students whose subjects include its subject (total) and how many of them
    marked it completed. `completed` holds (user_id, assignment_id) pairs.
    """
    students = list(students)
    progress: dict[int, dict[str, int]] = {}
    for a in assignments:
        eligible = [s.id for s in students if s.subjects and a.subject in s.subjects]
        done = sum(1 for uid in eligible if (uid, a.id) in completed)
        progress[a.id] = {"completed": done, "total": len(eligible)}
    return progress
