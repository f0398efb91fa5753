from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from ..db import get_async_session
from ..dependencies import current_student
from ..schemas.submission_schema import AnswersPayload, SubmitResponse
from ..services.access_service import StudentStatus, can_autosave, can_submit, compute_student_status
from ..services.exam_service import get_exam
from ..services.submission_service import DuplicateSubmission, SubmissionClosed, autosave, finalize, get_submission

logger = logging.getLogger(__name__)

router = APIRouter()


def _already_submitted(status_code=status.HTTP_400_BAD_REQUEST):
    return JSONResponse(status_code=status_code, content={"isSubmitted": True, "message": "Exam already submitted"})


@router.put("/exams/{exam_id}/auto-save")
async def autosave_exam(exam_id: UUID, payload: AnswersPayload, user=Depends(current_student), session: AsyncSession = Depends(get_async_session)):
    # ids are read up front: a rollback inside the writer expires the user instance
    student_id, student_class = user.id, user.class_name
    exam = await get_exam(session, exam_id)
    if not exam:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exam not found")

    existing = await get_submission(session, exam.id, student_id)
    student_status = compute_student_status(exam, student_class, existing.status if existing else None)
    if student_status == StudentStatus.SUBMITTED:
        return _already_submitted(status.HTTP_409_CONFLICT)
    if not can_autosave(student_status):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"Exam is {student_status.value}")

    answers = [a.model_dump(by_alias=True) for a in payload.answers]
    try:
        await autosave(session, exam_id, student_id, answers, payload.time_spent)
    except SubmissionClosed:
        # a submit won the race against this autosave
        return _already_submitted(status.HTTP_409_CONFLICT)
    except Exception as e:
        logger.exception("Error while autosaving exam_id=%s student_id=%s: %s", exam_id, student_id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Database error while saving progress")

    return {"message": "Progress saved"}


@router.post("/exams/{exam_id}/submit", response_model=SubmitResponse)
async def submit_exam(exam_id: UUID, payload: AnswersPayload, user=Depends(current_student), session: AsyncSession = Depends(get_async_session)):
    student_id, student_class = user.id, user.class_name
    exam = await get_exam(session, exam_id)
    if not exam:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exam not found")

    existing = await get_submission(session, exam.id, student_id)
    existing_status = existing.status if existing else None
    student_status = compute_student_status(exam, student_class, existing_status)
    if student_status == StudentStatus.SUBMITTED:
        return _already_submitted()
    if not can_submit(student_status, existing_status):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"Exam is {student_status.value}")

    answers = [a.model_dump(by_alias=True) for a in payload.answers]
    try:
        submission = await finalize(session, exam, student_id, answers, payload.time_spent)
    except DuplicateSubmission:
        logger.info("Duplicate submission rejected for exam_id=%s student_id=%s", exam_id, student_id)
        return _already_submitted()
    except Exception as e:
        logger.exception("Error while submitting exam_id=%s student_id=%s: %s", exam_id, student_id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Database error while submitting exam")

    return {
        "message": "Exam submitted successfully",
        "submission": {
            "id": submission.id,
            "total_score": submission.total_score,
            "percentage": submission.percentage,
            "status": submission.status.value,
        },
    }
