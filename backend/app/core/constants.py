"""
Centralized constants for scheduler and reminders (Encapsulate What Changes).

Change job IDs or message literals here instead of scattering them across main, jobs and services.
"""

# Scheduler job IDs (must match ids used in register_reminder_jobs)
REMINDER_WEEKDAY_JOB_ID = "assignment_reminder_weekday"
REMINDER_WEEKEND_JOB_ID = "assignment_reminder_weekend"
REMINDER_WEEKDAY_DAYS = "mon-fri"
REMINDER_WEEKEND_DAYS = "sat,sun"

# Structured data attached to every reminder (client-side handling)
REMINDER_DATA_TYPE = "assignment_reminder"

# Title/body templates per locale; {count} is the active assignment count
REMINDER_TEMPLATES: dict[str, dict[str, str]] = {
    "ja": {
        "title": "Project3776 - 課題のお知らせ",
        "body": "現在、{count}件の課題があります。学習を忘れずに！",
    },
    "en": {
        "title": "Project3776 - Assignment reminder",
        "body": "You currently have {count} assignment(s); don't forget to study!",
    },
}

# Past assignments list: due more than this many days ago
PAST_ASSIGNMENTS_AFTER_DAYS = 7

# Device tokens are truncated to this many chars in logs
LOG_TOKEN_PREFIX = 20

# Roles and course types
ROLE_STUDENT = "student"
ROLE_TEACHER = "teacher"
TYPE_BUNKEN = "bunken"  # humanities
TYPE_RIKEN = "riken"  # sciences
USER_TYPES = (TYPE_BUNKEN, TYPE_RIKEN)

# Email domains that decide the role outright; otherwise keywords in the address do
TEACHER_EMAIL_DOMAINS = ("@teacher.school.jp", "@staff.school.jp", "@faculty.school.jp")
STUDENT_EMAIL_DOMAINS = ("@student.school.jp", "@st.school.jp")
TEACHER_EMAIL_KEYWORDS = ("teacher", "staff")
STUDENT_EMAIL_KEYWORDS = ("student", "st")
BUNKEN_KEYWORDS = ("bunken", "文系", "liberal")
RIKEN_KEYWORDS = ("riken", "理系", "science")

# Subjects every student takes, then the type-specific groups
SUBJECT_GROUPS: dict[str, list[str]] = {
    "common": ["現代文", "古典", "地理", "情報"],
    "bunken": ["化学基礎", "生物基礎", "政治経済"],
    "bunken_history": ["日本史", "世界史"],
    "riken": ["化学"],
    "riken_science": ["物理", "生物"],
}
DEFAULT_MATH_SUBJECT = "数学（標準）"
DEFAULT_ENGLISH_SUBJECT = "英語（標準）"
DEFAULT_HISTORY_CHOICE = "日本史"
DEFAULT_SCIENCE_CHOICE = "物理"

# Study goals, minutes per day
STUDY_GOAL_MODES = ("basic", "advanced")
DEFAULT_WEEKDAY_GOAL_MINUTES = 240
DEFAULT_WEEKEND_GOAL_MINUTES = 300
MIN_WEEKDAY_GOAL_MINUTES = 120
MIN_WEEKEND_GOAL_MINUTES = 180
# Day keys of weekly goals: 0 = Sunday .. 6 = Saturday
WEEKEND_DAY_KEYS = (0, 6)

# Study record fallbacks and teacher dashboard
UNKNOWN_RECORD_USER_NAME = "Unknown"
UNKNOWN_STUDENT_NAME = "不明"
OTHER_SUBJECT = "その他"
WEEKLY_TOP_N = 3
WEEKLY_STATS_DAYS = 7
