from examportal.db import Base
from sqlalchemy import String, Text


"""
Exams Model and ExamQuestions Table
| Column | Type | Notes |
| :--- | :--- | :--- |
| `id` | UUID | Primary Key |
| `title` | VARCHAR | |
| `class_name` | VARCHAR | Class allowed to take the exam |
| `teacher_id` | UUID | FK -> Users |
| `start_date` | TIMESTAMP | naive UTC |
| `end_date` | TIMESTAMP | naive UTC, after start_date |
| `duration` | INTEGER | In minutes |
| `is_active` | BOOLEAN | Default `true` |

### ExamQuestions
| Column | Type | Notes |
| :--- | :--- | :--- |
| `id` | UUID | Primary Key |
| `exam_id` | UUID | FK -> Exams, cascade |
| `position` | INTEGER | To maintain sequence in exam |
| `type` | ENUM | multiple_choice / written |
| `correct_answer` | INTEGER | Option index, NULL for written |
| `points` | INTEGER | > 0 |
"""

from sqlalchemy import Column, Boolean, Integer, DateTime, ForeignKey, JSON, Uuid, Enum as SAEnum
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
import uuid
import enum


def _utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class QuestionType(str, enum.Enum):
    MULTIPLE_CHOICE = "multiple_choice"
    WRITTEN = "written"


class Exam(Base):
    __tablename__ = "exams"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    instructions = Column(Text, nullable=True)
    subject = Column(String, nullable=True)
    class_name = Column(String, nullable=False)
    teacher_id = Column(Uuid, ForeignKey("users.id"), nullable=True)
    duration = Column(Integer, nullable=False)  # in minutes
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=_utcnow)

    questions = relationship(
        "ExamQuestion",
        back_populates="exam",
        order_by="ExamQuestion.position",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )

    @property
    def total_marks(self) -> int:
        return sum(q.points or 0 for q in self.questions)


class ExamQuestion(Base):
    __tablename__ = "exam_questions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    exam_id = Column(Uuid, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False)
    position = Column(Integer, nullable=False)
    text = Column(Text, nullable=False)
    options = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False, default=list)
    type = Column(SAEnum(QuestionType), default=QuestionType.MULTIPLE_CHOICE, nullable=False)
    correct_answer = Column(Integer, nullable=True)
    points = Column(Integer, default=1, nullable=False)

    exam = relationship("Exam", back_populates="questions")
"""
The Example,

sample_exam = Exam(
    title="Sample Exam",
    class_name="10-A",
    start_date=datetime(2024, 7, 1, 10, 0, 0),
    end_date=datetime(2024, 7, 1, 12, 0, 0),
    duration=60,
)
sample_exam.questions = [
    ExamQuestion(position=0, text="2 + 2 = ?", options=["3", "4"], correct_answer=1, points=5),
    ExamQuestion(position=1, text="Explain closures", options=[], type=QuestionType.WRITTEN, points=10),
]

sample_exam.total_marks  # 15
"""
