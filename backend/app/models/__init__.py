from app.models.assignment import Assignment
from app.models.assignment_status import AssignmentStatus
from app.models.device_token import DeviceToken
from app.models.study_record import StudyRecord
from app.models.user import User

__all__ = [
    "Assignment",
    "AssignmentStatus",
    "DeviceToken",
    "StudyRecord",
    "User",
]
