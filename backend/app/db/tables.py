"""
Single source of truth for database tables that exist after migrations (001, 002).

Use these names when writing raw SQL (e.g. TRUNCATE).
"""
# All tables that exist in the DB. Must match models and migrations.
ALL_TABLE_NAMES = (
    "users",
    "assignments",
    "device_tokens",
    "study_records",
    "assignment_statuses",
)
