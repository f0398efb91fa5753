from examportal.db import Base
from sqlalchemy import Column, Integer, Float, Boolean, DateTime, Uuid, JSON, Enum as SAEnum, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy import ForeignKey
from sqlalchemy.orm import relationship, backref
import uuid
import enum

from .exam_model import _utcnow


class SubmissionStatus(str, enum.Enum):
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    GRADED = "graded"


TERMINAL_STATUSES = (SubmissionStatus.SUBMITTED, SubmissionStatus.GRADED)


class Submission(Base):
    __tablename__ = "submissions"
    # one attempt per (exam, student); the store writer relies on this constraint
    __table_args__ = (UniqueConstraint('exam_id', 'student_id', name='uq_exam_student'),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    # exam_id is a proper foreign key so DB-level ON DELETE CASCADE removes submissions
    exam_id = Column(Uuid, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False)
    student_id = Column(Uuid, ForeignKey("users.id"), nullable=False)

    status = Column(SAEnum(SubmissionStatus), default=SubmissionStatus.IN_PROGRESS, nullable=False)
    # list of {questionId, answer, isCorrect?, pointsEarned?}
    answers = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False, default=list)
    time_spent = Column(Integer, default=0, nullable=False)  # seconds
    total_score = Column(Float, nullable=True)
    percentage = Column(Float, nullable=True)
    auto_saved = Column(Boolean, default=False, nullable=False)

    submitted_at = Column(DateTime, nullable=True)
    graded_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    # passive_deletes so SQLAlchemy does not try to nullify the FK when deleting the exam
    exam = relationship("Exam", backref=backref("submissions", passive_deletes=True))
    student = relationship("User", lazy="joined")

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
