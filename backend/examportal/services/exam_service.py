from typing import Dict, List, Optional
from uuid import UUID
from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import datetime, timezone
from examportal.models.exam_model import Exam, ExamQuestion
from examportal.models.submission_model import Submission, SubmissionStatus
from examportal.models.user_model import User, UserRole

from .access_service import StudentStatus, compute_student_status, _now


class QuestionsLocked(Exception):
    """Questions of an exam cannot change once a submission references it."""


def _to_naive_utc(dt: datetime | None) -> datetime | None:
    """Convert an aware datetime to naive UTC (remove tzinfo). If already naive, assume UTC and return as-is.
    Returns None if input is None.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        # assume naive datetimes are already UTC
        return dt
    # convert to UTC and drop tzinfo
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def _question_to_dict(q: ExamQuestion, include_answer: bool) -> dict:
    out = {
        'id': q.id,
        'text': q.text,
        'options': q.options or [],
        'type': q.type,
        'points': q.points,
    }
    if include_answer:
        out['correct_answer'] = q.correct_answer
    return out


def _exam_to_read_dict(exam: Exam, include_answers: bool = True) -> dict:
    return {
        "id": exam.id,
        "title": exam.title,
        "description": exam.description,
        "instructions": exam.instructions,
        "subject": exam.subject,
        "class_name": exam.class_name,
        "teacher_id": exam.teacher_id,
        "duration": exam.duration,
        "start_date": exam.start_date,
        "end_date": exam.end_date,
        "is_active": exam.is_active,
        "total_marks": exam.total_marks,
        "questions": [_question_to_dict(q, include_answers) for q in exam.questions],
    }


def _student_exam_dict(exam: Exam, status: StudentStatus, submission: Optional[Submission]) -> dict:
    # students never see correct answers
    out = _exam_to_read_dict(exam, include_answers=False)
    out["student_status"] = status.value
    out["submission"] = None
    if submission is not None:
        out["submission"] = {
            "answers": submission.answers or [],
            "time_spent": submission.time_spent or 0,
            "status": submission.status.value,
        }
    return out


def _build_questions(items) -> List[ExamQuestion]:
    return [
        ExamQuestion(
            position=idx,
            text=item.text,
            options=list(item.options),
            type=item.type,
            correct_answer=item.correct_answer,
            points=item.points,
        )
        for idx, item in enumerate(items)
    ]


async def get_exam(session: AsyncSession, exam_id: UUID) -> Optional[Exam]:
    res = await session.execute(select(Exam).where(Exam.id == exam_id))
    return res.scalar_one_or_none()


async def has_submissions(session: AsyncSession, exam_id: UUID) -> bool:
    res = await session.execute(select(func.count()).select_from(Submission).where(Submission.exam_id == exam_id))
    return (res.scalar_one() or 0) > 0


async def list_student_exams(session: AsyncSession, student: User, now: datetime = None) -> List[dict]:
    # upcoming exams are listed too, only the ones already over are hidden
    now = now or _now()
    stmt = (
        select(Exam)
        .where(Exam.class_name == student.class_name, Exam.is_active == True, Exam.end_date >= now)  # noqa: E712
        .order_by(Exam.created_at.desc())
    )
    exams = (await session.execute(stmt)).scalars().all()
    if not exams:
        return []

    sub_stmt = select(Submission.exam_id, Submission.status).where(
        Submission.student_id == student.id, Submission.exam_id.in_([e.id for e in exams])
    )
    statuses: Dict[UUID, SubmissionStatus] = {row.exam_id: row.status for row in await session.execute(sub_stmt)}

    out = []
    for exam in exams:
        status = compute_student_status(exam, student.class_name, statuses.get(exam.id), now)
        item = _exam_to_read_dict(exam, include_answers=False)
        item["student_status"] = status.value
        out.append(item)
    return out


async def list_staff_exams(session: AsyncSession, user: User) -> List[dict]:
    stmt = select(Exam).order_by(Exam.created_at.desc())
    if user.role == UserRole.TEACHER:
        stmt = stmt.where(Exam.teacher_id == user.id)
    exams = (await session.execute(stmt)).scalars().all()
    return [_exam_to_read_dict(exam) for exam in exams]


async def create_exam(session: AsyncSession, payload, teacher_id: UUID) -> Exam:
    exam = Exam(
        title=payload.title,
        description=payload.description,
        instructions=payload.instructions,
        subject=payload.subject,
        class_name=payload.class_name,
        teacher_id=teacher_id,
        duration=payload.duration,
        start_date=_to_naive_utc(payload.start_date),
        end_date=_to_naive_utc(payload.end_date),
        is_active=payload.is_active,
    )
    exam.questions = _build_questions(payload.questions)
    session.add(exam)
    await session.commit()
    await session.refresh(exam)
    return exam


async def update_exam(session: AsyncSession, exam: Exam, payload) -> Exam:
    # update only fields sent; questions are replaced as a whole
    if payload.questions is not None and await has_submissions(session, exam.id):
        raise QuestionsLocked()

    for field in ("title", "description", "instructions", "subject", "class_name", "duration", "is_active"):
        value = getattr(payload, field)
        if value is not None:
            setattr(exam, field, value)
    if payload.start_date is not None:
        exam.start_date = _to_naive_utc(payload.start_date)
    if payload.end_date is not None:
        exam.end_date = _to_naive_utc(payload.end_date)
    if exam.end_date <= exam.start_date:
        raise ValueError("end_date must be after start_date")

    if payload.questions is not None:
        exam.questions = _build_questions(payload.questions)

    session.add(exam)
    await session.commit()
    await session.refresh(exam)
    return exam


async def delete_exam(session: AsyncSession, exam: Exam) -> None:
    # delete submissions first so databases without FK enforcement stay consistent
    await session.execute(delete(Submission).where(Submission.exam_id == exam.id))
    await session.delete(exam)
    await session.commit()
