from app.models.activity_log import ActivityLog  # noqa: F401
from app.models.semester_plan import SemesterPlan  # noqa: F401
from app.models.subject_teacher import SubjectTeacherAssignment  # noqa: F401
from app.models.timetable_event import EventStatus, EventType, TimetableEvent  # noqa: F401
from app.models.timetable_exception import ExceptionType, TimetableException  # noqa: F401
from app.models.timetable_template import TimetableTemplate  # noqa: F401
