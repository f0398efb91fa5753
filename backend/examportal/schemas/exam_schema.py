from pydantic import Field, field_validator, model_validator
from typing import Optional, List
from datetime import datetime
from uuid import UUID

from ..models.exam_model import QuestionType
from .base import CamelModel
from .submission_schema import SubmissionRecord


class QuestionCreate(CamelModel):
    text: str
    options: List[str] = Field(default_factory=list)
    type: QuestionType = QuestionType.MULTIPLE_CHOICE
    correct_answer: Optional[int] = None
    points: int = Field(1, gt=0)

    @model_validator(mode="after")
    def correct_answer_matches_type(self):
        if self.type == QuestionType.MULTIPLE_CHOICE:
            if len(self.options) < 2:
                raise ValueError("multiple choice questions need at least two options")
            if self.correct_answer is None or not 0 <= self.correct_answer < len(self.options):
                raise ValueError("correct_answer must be the index of one of the options")
        else:
            # written questions are graded by hand
            self.correct_answer = None
        return self


class ExamCreate(CamelModel):
    title: str
    description: Optional[str] = None
    instructions: Optional[str] = None
    subject: Optional[str] = None
    class_name: str
    duration: int
    start_date: datetime
    end_date: datetime
    is_active: bool = True
    # the order in the list defines the exam order
    questions: List[QuestionCreate] = Field(default_factory=list)

    @field_validator("duration")
    @classmethod
    def duration_must_be_positive(cls, v):
        if v is None or v <= 0:
            raise ValueError("duration must be a positive integer (minutes)")
        return v

    @model_validator(mode="after")
    def end_after_start(self):
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class ExamUpdate(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    instructions: Optional[str] = None
    subject: Optional[str] = None
    class_name: Optional[str] = None
    duration: Optional[int] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_active: Optional[bool] = None
    # replaces the whole question list when provided
    questions: Optional[List[QuestionCreate]] = None

    @field_validator("duration")
    @classmethod
    def duration_must_be_positive(cls, v):
        if v is not None and v <= 0:
            raise ValueError("duration must be a positive integer (minutes)")
        return v

    @model_validator(mode="after")
    def end_after_start(self):
        if self.start_date is not None and self.end_date is not None and self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class StudentQuestionRead(CamelModel):
    id: UUID
    text: str
    options: List[str] = []
    type: QuestionType
    points: int


class QuestionRead(StudentQuestionRead):
    correct_answer: Optional[int] = None


class ExamBase(CamelModel):
    id: UUID
    title: str
    description: Optional[str] = None
    instructions: Optional[str] = None
    subject: Optional[str] = None
    class_name: str
    teacher_id: Optional[UUID] = None
    duration: int
    start_date: datetime
    end_date: datetime
    is_active: bool
    total_marks: int


class ExamRead(ExamBase):
    questions: List[QuestionRead] = []


class StudentExamRead(ExamBase):
    questions: List[StudentQuestionRead] = []
    student_status: str
    submission: Optional[SubmissionRecord] = None
