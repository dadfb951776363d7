from .attendance import (
    MARKABLE_STATUSES,
    STATUSES,
    DayStats,
    LiveSession,
    LiveState,
    MonthAttendance,
    Student,
    StudentStats,
    decode_qr_value,
    encode_qr_value,
)
from .gradebook import GradeCell, Gradebook, GradebookItem, RosterRow
from .portal import (
    Assignment,
    Faculty,
    FeedItem,
    GroupAssignment,
    LeaveRequest,
    LeaveTemplate,
    Notification,
    SemesterOrYear,
    Submission,
    UserRow,
)

__all__ = [
    "MARKABLE_STATUSES",
    "STATUSES",
    "Assignment",
    "DayStats",
    "Faculty",
    "FeedItem",
    "GradeCell",
    "Gradebook",
    "GradebookItem",
    "GroupAssignment",
    "LeaveRequest",
    "LeaveTemplate",
    "LiveSession",
    "LiveState",
    "MonthAttendance",
    "Notification",
    "RosterRow",
    "SemesterOrYear",
    "Student",
    "StudentStats",
    "Submission",
    "UserRow",
    "decode_qr_value",
    "encode_qr_value",
]
