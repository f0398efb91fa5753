"""
Create-or-update of the one Submission row per (exam, student).

Every terminal write goes through a conditional UPDATE guarded on
status == in_progress, or an INSERT guarded by the uq_exam_student constraint,
so of several concurrent submits exactly one wins and the rest see
DuplicateSubmission.
"""
import logging
from typing import Any, Dict, Iterable, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.exam_model import Exam, _utcnow
from ..models.submission_model import Submission, SubmissionStatus
from .grading_service import grade_submission, normalize_answers, snapshot_questions

logger = logging.getLogger(__name__)


class DuplicateSubmission(Exception):
    """The attempt was already submitted; nothing was written."""


class SubmissionClosed(Exception):
    """An autosave arrived for an attempt that is no longer in progress."""


async def get_submission(session: AsyncSession, exam_id: UUID, student_id: UUID) -> Optional[Submission]:
    res = await session.execute(
        select(Submission).where(Submission.exam_id == exam_id, Submission.student_id == student_id)
    )
    return res.scalars().first()


def _update_in_progress(exam_id: UUID, student_id: UUID, values: Dict[str, Any]):
    return (
        update(Submission)
        .where(
            Submission.exam_id == exam_id,
            Submission.student_id == student_id,
            Submission.status == SubmissionStatus.IN_PROGRESS,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )


async def autosave(session: AsyncSession, exam_id: UUID, student_id: UUID,
                   answers: Iterable[Dict[str, Any]], time_spent: int) -> None:
    values = {
        "answers": normalize_answers(answers),
        "time_spent": time_spent,
        "auto_saved": True,
    }

    res = await session.execute(_update_in_progress(exam_id, student_id, values))
    if res.rowcount == 1:
        await session.commit()
        return

    if await get_submission(session, exam_id, student_id) is not None:
        # the attempt exists but is submitted/graded
        await session.rollback()
        raise SubmissionClosed()

    session.add(Submission(exam_id=exam_id, student_id=student_id, status=SubmissionStatus.IN_PROGRESS, **values))
    try:
        await session.commit()
    except IntegrityError:
        # another request created the row first; last write wins if it is still open
        await session.rollback()
        res = await session.execute(_update_in_progress(exam_id, student_id, values))
        if res.rowcount != 1:
            await session.rollback()
            raise SubmissionClosed()
        await session.commit()


async def finalize(session: AsyncSession, exam: Exam, student_id: UUID,
                   answers: Iterable[Dict[str, Any]], time_spent: int) -> Submission:
    # plain copies: a rollback expires ORM instances and they cannot lazy-load here
    exam_id = exam.id
    questions = snapshot_questions(exam.questions)

    for _ in range(2):
        existing = await get_submission(session, exam_id, student_id)
        if existing is not None and existing.is_terminal:
            await session.rollback()
            raise DuplicateSubmission()

        # autosaved answers first, the submitted ones override them
        merged = normalize_answers(existing.answers if existing is not None else [], answers)
        result = grade_submission(merged, questions)

        now = _utcnow()
        values = {
            "answers": result.answers,
            "status": result.status,
            "total_score": result.total_score,
            "percentage": result.percentage,
            "time_spent": time_spent,
            "submitted_at": now,
            "graded_at": now if result.status == SubmissionStatus.GRADED else None,
        }

        if existing is not None:
            res = await session.execute(_update_in_progress(exam_id, student_id, values))
            if res.rowcount != 1:
                await session.rollback()
                raise DuplicateSubmission()
            await session.commit()
            await session.refresh(existing)
            return existing

        submission = Submission(exam_id=exam_id, student_id=student_id, **values)
        session.add(submission)
        try:
            await session.commit()
        except IntegrityError:
            # the row appeared concurrently: an autosave (update it on the next pass) or a submit (duplicate)
            await session.rollback()
            logger.info("Submission row for exam_id=%s student_id=%s created concurrently, retrying", exam_id, student_id)
            continue
        await session.refresh(submission)
        return submission

    raise DuplicateSubmission()
