import logging
from typing import Any, Dict, Iterable, List, NamedTuple, Optional

from ..models.exam_model import QuestionType
from ..models.submission_model import SubmissionStatus

logger = logging.getLogger(__name__)


class GradingResult(NamedTuple):
    answers: List[Dict[str, Any]]
    total_score: float
    percentage: float
    status: SubmissionStatus


class QuestionKey(NamedTuple):
    id: str
    type: QuestionType
    correct_answer: Optional[int]
    points: int


def snapshot_questions(questions: Iterable[Any]) -> List[QuestionKey]:
    """Detach the grading-relevant fields of ORM questions."""
    return [QuestionKey(str(q.id), QuestionType(q.type), q.correct_answer, q.points or 0) for q in questions]


def normalize_answers(*answer_lists: Optional[Iterable[Dict[str, Any]]]) -> List[Dict[str, Any]]:
    """
    Merge answer lists into one entry per question id.

    Later lists (and later entries inside a list) win, while the position of a
    question is the one where it was first seen.
    """
    merged: Dict[str, Dict[str, Any]] = {}
    for answers in answer_lists:
        for item in answers or []:
            qid = item.get("questionId")
            if qid is None:
                continue
            answer = item.get("answer")
            merged[str(qid)] = {"questionId": str(qid), "answer": "" if answer is None else str(answer)}
    return list(merged.values())


def _is_correct(answer: str, correct_answer: Optional[int]) -> bool:
    if correct_answer is None:
        return False
    try:
        return int(str(answer).strip()) == int(correct_answer)
    except (TypeError, ValueError):
        return False


def grade_submission(answers: Iterable[Dict[str, Any]], questions: List[Any]) -> GradingResult:
    """
    Grade the given answers against the provided questions.
    - answers: iterable of {"questionId": str, "answer": str}
    - questions: exam questions (must have id, type, correct_answer, points)

    Multiple choice answers get isCorrect/pointsEarned; written answers pass through
    ungraded and keep the submission in 'submitted' until reviewed.
    """
    qmap = {str(q.id): q for q in questions}
    total_marks = sum(q.points or 0 for q in questions)

    graded: List[Dict[str, Any]] = []
    total = 0.0
    for item in normalize_answers(answers):
        q = qmap.get(item["questionId"])
        if q is None:
            logger.warning("Dropping answer for unknown question %s", item["questionId"])
            continue
        if q.type == QuestionType.MULTIPLE_CHOICE:
            is_correct = _is_correct(item["answer"], q.correct_answer)
            earned = float(q.points or 0) if is_correct else 0.0
            graded.append({**item, "isCorrect": is_correct, "pointsEarned": earned})
            total += earned
        else:
            graded.append(item)

    percentage = round(total / total_marks * 100, 2) if total_marks else 0.0
    has_written = any(q.type == QuestionType.WRITTEN for q in questions)
    status = SubmissionStatus.SUBMITTED if has_written else SubmissionStatus.GRADED
    return GradingResult(graded, total, percentage, status)
