from fastapi import APIRouter, Depends, HTTPException, status
from typing import List, Union
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import Response

from ..db import get_async_session
from ..models.submission_model import Submission
from ..models.user_model import UserRole
from ..schemas.exam_schema import ExamCreate, ExamRead, ExamUpdate, StudentExamRead
from ..schemas.submission_schema import SubmissionRead
from ..services.access_service import StudentStatus, compute_student_status
from ..services.exam_service import (
    QuestionsLocked, _exam_to_read_dict, _student_exam_dict, create_exam as create_exam_record,
    delete_exam as delete_exam_record, get_exam as get_exam_record, list_staff_exams, list_student_exams,
    update_exam as update_exam_record,
)
from ..services.settings_service import is_exam_portal_enabled
from ..services.submission_service import get_submission
from ..dependencies import current_staff, current_teacher
from ..security import current_active_user

router = APIRouter(prefix="/exams", tags=["Exams"])


async def _ensure_portal_open(session: AsyncSession):
    if not await is_exam_portal_enabled(session):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Exam portal is currently closed")


def _ensure_owner(exam, user):
    # admins may read and delete any exam, teachers only their own
    if user.role == UserRole.TEACHER and exam.teacher_id != user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")


@router.get("/", response_model=Union[List[StudentExamRead], List[ExamRead]])
async def get_all_exams(session: AsyncSession = Depends(get_async_session), user=Depends(current_active_user)):
    if user.role == UserRole.STUDENT:
        await _ensure_portal_open(session)
        return [StudentExamRead.model_validate(item) for item in await list_student_exams(session, user)]
    return [ExamRead.model_validate(item) for item in await list_staff_exams(session, user)]


@router.post("/", response_model=ExamRead, status_code=status.HTTP_201_CREATED)
async def create_exam(payload: ExamCreate, session: AsyncSession = Depends(get_async_session), user=Depends(current_teacher)):
    exam = await create_exam_record(session, payload, user.id)
    return _exam_to_read_dict(exam)


@router.get("/{exam_id}", response_model=Union[StudentExamRead, ExamRead])
async def get_exam(exam_id: UUID, session: AsyncSession = Depends(get_async_session), user=Depends(current_active_user)):
    exam = await get_exam_record(session, exam_id)
    if not exam:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exam not found")

    if user.role == UserRole.STUDENT:
        submission = await get_submission(session, exam.id, user.id)
        student_status = compute_student_status(exam, user.class_name, submission.status if submission else None)
        if student_status == StudentStatus.ACCESS_DENIED:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
        await _ensure_portal_open(session)
        return StudentExamRead.model_validate(_student_exam_dict(exam, student_status, submission))

    _ensure_owner(exam, user)
    return ExamRead.model_validate(_exam_to_read_dict(exam))


@router.put("/{exam_id}", response_model=ExamRead)
async def update_exam(exam_id: UUID, payload: ExamUpdate, session: AsyncSession = Depends(get_async_session), user=Depends(current_teacher)):
    exam = await get_exam_record(session, exam_id)
    if not exam:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exam not found")
    _ensure_owner(exam, user)

    try:
        exam = await update_exam_record(session, exam, payload)
    except QuestionsLocked:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Questions cannot be changed after students have started submitting",
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return _exam_to_read_dict(exam)


@router.delete("/{exam_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_exam(exam_id: UUID, session: AsyncSession = Depends(get_async_session), user=Depends(current_staff)):
    exam = await get_exam_record(session, exam_id)
    if not exam:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exam not found")
    _ensure_owner(exam, user)

    await delete_exam_record(session, exam)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{exam_id}/submissions", response_model=List[SubmissionRead])
async def get_exam_submissions(exam_id: UUID, session: AsyncSession = Depends(get_async_session), user=Depends(current_staff)):
    exam = await get_exam_record(session, exam_id)
    if not exam:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exam not found")
    _ensure_owner(exam, user)

    res = await session.execute(
        select(Submission)
        .where(Submission.exam_id == exam.id)
        .order_by(Submission.submitted_at.desc().nulls_last(), Submission.created_at.desc())
    )
    out = []
    for r in res.scalars().all():
        out.append({
            'id': r.id,
            'exam_id': r.exam_id,
            'student_id': r.student_id,
            'student_name': r.student.full_name if r.student else None,
            'status': r.status.value,
            'answers': r.answers or [],
            'time_spent': r.time_spent,
            'total_score': r.total_score,
            'percentage': r.percentage,
            'auto_saved': r.auto_saved,
            'submitted_at': r.submitted_at,
            'graded_at': r.graded_at,
        })
    return out
