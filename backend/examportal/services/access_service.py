"""
Access gate: which state an exam is in for one student.

The result is a pure function of the clock, the exam's window/activation/class
and the student's submission status, so it can be recomputed on every request
and by list views without touching the database again.
"""
import enum
from datetime import datetime, timezone
from typing import Optional

from ..models.submission_model import SubmissionStatus, TERMINAL_STATUSES


class StudentStatus(str, enum.Enum):
    UPCOMING = "upcoming"
    AVAILABLE = "available"
    EXPIRED = "expired"
    SUBMITTED = "submitted"
    ACCESS_DENIED = "access-denied"


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def compute_student_status(exam, student_class: Optional[str], submission_status: Optional[SubmissionStatus] = None,
                           now: Optional[datetime] = None) -> StudentStatus:
    """
    Rules, first match wins:
    1. exam missing, inactive or for another class -> access-denied
    2. submitted/graded attempt -> submitted (even while the window is still open)
    3. before start_date -> upcoming
    4. after end_date -> expired
    5. otherwise available
    """
    if exam is None or not exam.is_active or exam.class_name != student_class:
        return StudentStatus.ACCESS_DENIED

    if submission_status is not None and SubmissionStatus(submission_status) in TERMINAL_STATUSES:
        return StudentStatus.SUBMITTED

    now = now or _now()
    if now < exam.start_date:
        return StudentStatus.UPCOMING
    if now > exam.end_date:
        return StudentStatus.EXPIRED
    return StudentStatus.AVAILABLE


def can_autosave(status: StudentStatus) -> bool:
    return status == StudentStatus.AVAILABLE


def can_submit(status: StudentStatus, submission_status: Optional[SubmissionStatus]) -> bool:
    # a forced submit landing just after the window closed still counts
    # when the attempt was started inside the window
    if status == StudentStatus.AVAILABLE:
        return True
    return status == StudentStatus.EXPIRED and submission_status == SubmissionStatus.IN_PROGRESS
