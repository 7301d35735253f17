"""
User profiles: role and course type guessed from the sign-in email, default subjects, study goals.

A new user gets a complete profile straight away (role, type, subjects); the student can change
type and subjects later. Study goals are minutes per day and never go below the per-day minimum.
"""
import logging
from datetime import date
from typing import Any

from app.core.constants import (
    BUNKEN_KEYWORDS,
    DEFAULT_ENGLISH_SUBJECT,
    DEFAULT_HISTORY_CHOICE,
    DEFAULT_MATH_SUBJECT,
    DEFAULT_SCIENCE_CHOICE,
    DEFAULT_WEEKDAY_GOAL_MINUTES,
    DEFAULT_WEEKEND_GOAL_MINUTES,
    MIN_WEEKDAY_GOAL_MINUTES,
    MIN_WEEKEND_GOAL_MINUTES,
    RIKEN_KEYWORDS,
    ROLE_STUDENT,
    ROLE_TEACHER,
    STUDENT_EMAIL_DOMAINS,
    STUDENT_EMAIL_KEYWORDS,
    STUDY_GOAL_MODES,
    SUBJECT_GROUPS,
    TEACHER_EMAIL_DOMAINS,
    TEACHER_EMAIL_KEYWORDS,
    TYPE_BUNKEN,
    TYPE_RIKEN,
    WEEKEND_DAY_KEYS,
)

logger = logging.getLogger(__name__)


def detect_role_from_email(email: str | None) -> str | None:
    """School domains decide first, then keywords anywhere in the address. None when nothing matches."""
    if not email:
        return None
    if email.endswith(TEACHER_EMAIL_DOMAINS):
        return ROLE_TEACHER
    if email.endswith(STUDENT_EMAIL_DOMAINS):
        return ROLE_STUDENT
    if any(k in email for k in TEACHER_EMAIL_KEYWORDS):
        return ROLE_TEACHER
    if any(k in email for k in STUDENT_EMAIL_KEYWORDS):
        return ROLE_STUDENT
    return None


def detect_type_from_email(email: str | None, display_name: str | None = "") -> str | None:
    if not email and not display_name:
        return None
    text = f"{email or ''} {display_name or ''}".lower()
    if any(k in text for k in BUNKEN_KEYWORDS):
        return TYPE_BUNKEN
    if any(k in text for k in RIKEN_KEYWORDS):
        return TYPE_RIKEN
    return None


def default_subjects(
    user_type: str | None,
    history_choice: str = DEFAULT_HISTORY_CHOICE,
    science_choice: str = DEFAULT_SCIENCE_CHOICE,
) -> list[str]:
    """Common subjects + standard math/english, then the bunken or riken group and one elective."""
    subjects = [*SUBJECT_GROUPS["common"], DEFAULT_MATH_SUBJECT, DEFAULT_ENGLISH_SUBJECT]
    if user_type == TYPE_BUNKEN:
        subjects.extend(SUBJECT_GROUPS["bunken"])
        subjects.append(history_choice)
    else:
        subjects.extend(SUBJECT_GROUPS["riken"])
        subjects.append(science_choice)
    return subjects


def initial_profile(email: str | None, display_name: str | None = None) -> dict[str, Any]:
    role = detect_role_from_email(email)
    user_type = detect_type_from_email(email, display_name) or TYPE_RIKEN
    name = (display_name or "").strip() or (email or "").split("@")[0] or None
    return {
        "email": email,
        "display_name": name,
        "role": role or ROLE_STUDENT,
        "type": user_type,
        "subjects": default_subjects(user_type),
    }


def is_profile_complete(user) -> bool:
    if user is None:
        return False
    return bool(user.role and user.type and user.subjects)


def _is_weekend_key(key: int) -> bool:
    return key in WEEKEND_DAY_KEYS


def _clamp(minutes: int, weekend: bool) -> int:
    floor = MIN_WEEKEND_GOAL_MINUTES if weekend else MIN_WEEKDAY_GOAL_MINUTES
    if minutes < floor:
        logger.info("Study goal %s min below minimum; raised to %s", minutes, floor)
        return floor
    return minutes


def default_study_goals() -> dict[str, Any]:
    return {
        "mode": STUDY_GOAL_MODES[0],
        "weekday": DEFAULT_WEEKDAY_GOAL_MINUTES,
        "weekend": DEFAULT_WEEKEND_GOAL_MINUTES,
        "weekly": {
            str(day): DEFAULT_WEEKEND_GOAL_MINUTES if _is_weekend_key(day) else DEFAULT_WEEKDAY_GOAL_MINUTES
            for day in range(7)
        },
    }


def normalize_study_goals(goals: dict[str, Any] | None) -> dict[str, Any]:
    """
    Fill missing parts of stored/submitted goals from the defaults and raise any value below its
    minimum (weekday 120, weekend 180; days 0 and 6 of `weekly` are weekend).
    """
    result = default_study_goals()
    if not goals:
        return result
    mode = goals.get("mode")
    if mode is not None:
        if mode not in STUDY_GOAL_MODES:
            raise ValueError(f"mode must be one of {STUDY_GOAL_MODES}, got {mode!r}")
        result["mode"] = mode
    if goals.get("weekday") is not None:
        result["weekday"] = _clamp(int(goals["weekday"]), weekend=False)
    if goals.get("weekend") is not None:
        result["weekend"] = _clamp(int(goals["weekend"]), weekend=True)
    for key, minutes in (goals.get("weekly") or {}).items():
        day = int(key)
        if not 0 <= day <= 6:
            raise ValueError(f"weekly day must be 0..6 (0 = Sunday), got {key!r}")
        if minutes is not None:
            result["weekly"][str(day)] = _clamp(int(minutes), weekend=_is_weekend_key(day))
    return result


def goal_minutes_for(goals: dict[str, Any] | None, day: date) -> int:
    """Goal for one calendar day: per-weekday value in advanced mode, weekday/weekend value otherwise."""
    goals = normalize_study_goals(goals)
    key = (day.weekday() + 1) % 7  # Python Monday=0 -> Sunday=0 keys
    if goals["mode"] == "advanced":
        return goals["weekly"][str(key)]
    return goals["weekend"] if _is_weekend_key(key) else goals["weekday"]
