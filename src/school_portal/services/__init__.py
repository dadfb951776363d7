from .assignments import AssignmentGrading, GradeInvalid, load_group_assignment, load_my_submission
from .attendance_month import OPEN_TODAY_GUARD_MESSAGE, AttendanceMonthViewModel
from .course_feed import CourseFeed
from .gradebook import GradebookViewModel
from .grid_cursor import GridCursor
from .leave import LeaveService
from .notifications import NotificationInbox
from .references import ReferenceUploader
from .semesters import SemesterForm, SemesterService
from .student_attendance import StudentAttendanceViewModel
from .token_rotator import TokenRotator
from .users import BulkUserForm

__all__ = [
	"OPEN_TODAY_GUARD_MESSAGE",
	"AssignmentGrading",
	"AttendanceMonthViewModel",
	"BulkUserForm",
	"CourseFeed",
	"GradeInvalid",
	"GradebookViewModel",
	"GridCursor",
	"LeaveService",
	"NotificationInbox",
	"ReferenceUploader",
	"SemesterForm",
	"SemesterService",
	"StudentAttendanceViewModel",
	"TokenRotator",
	"load_group_assignment",
	"load_my_submission",
]
