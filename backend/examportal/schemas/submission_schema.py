from pydantic import Field, field_validator
from typing import Optional, List
from datetime import datetime
from uuid import UUID

from .base import CamelModel


class AnswerIn(CamelModel):
    question_id: str
    # option index serialized as text, or free text for written questions
    answer: str

    @field_validator("question_id", "answer", mode="before")
    @classmethod
    def coerce_to_text(cls, v):
        if isinstance(v, (int, float, UUID)):
            return str(v)
        return v


class GradedAnswer(AnswerIn):
    is_correct: Optional[bool] = None
    points_earned: Optional[float] = None


class AnswersPayload(CamelModel):
    answers: List[AnswerIn] = Field(default_factory=list)
    time_spent: int = Field(0, ge=0)


class SubmissionSummary(CamelModel):
    id: UUID
    total_score: Optional[float] = None
    percentage: Optional[float] = None
    status: str


class SubmitResponse(CamelModel):
    message: str
    submission: SubmissionSummary


class SubmissionRecord(CamelModel):
    """What a student gets back about their own attempt when loading an exam."""

    answers: List[GradedAnswer] = []
    time_spent: int = 0
    status: str


class SubmissionRead(CamelModel):
    id: UUID
    exam_id: UUID
    student_id: UUID
    student_name: Optional[str] = None
    status: str
    answers: List[GradedAnswer] = []
    time_spent: int
    total_score: Optional[float] = None
    percentage: Optional[float] = None
    auto_saved: bool
    submitted_at: Optional[datetime] = None
    graded_at: Optional[datetime] = None
