"""
Decide where an exam attempt resumes from when the exam page is loaded.

Precedence:
1. a terminal submission on the server: nothing to resume, the attempt is over
2. the local progress snapshot for this exam (reload in the same browser)
3. the server's autosave record, if it holds answers
4. a fresh start with the full duration
"""
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from .errors import TimerIntegrityError
from .progress_cache import ProgressSnapshot

logger = logging.getLogger(__name__)

SOURCE_LOCAL = "local"
SOURCE_SERVER = "server"
SOURCE_FRESH = "fresh"

TERMINAL_STATUSES = ("submitted", "graded")


@dataclass
class ReconciledState:
    answers: Dict[str, str] = field(default_factory=dict)
    current_question: int = 0
    time_remaining: int = 0
    deadline: float = 0.0
    source: str = SOURCE_FRESH
    already_submitted: bool = False


def _clamp_remaining(value: Any, total: int, what: str) -> int:
    """Clamp to [0, total]; negative or unreadable values restart the full duration."""
    try:
        seconds = int(value)
    except (TypeError, ValueError):
        seconds = -1
    if seconds < 0:
        logger.warning("%s", TimerIntegrityError(f"Invalid {what} {value!r}, resetting to {total}s"))
        return total
    return min(seconds, total)


def _clamp_question(index: int, exam: Mapping[str, Any]) -> int:
    count = len(exam.get("questions") or [])
    if count == 0:
        return 0
    return max(0, min(int(index), count - 1))


def _server_answers(record: Mapping[str, Any]) -> Dict[str, str]:
    answers = {}
    for item in record.get("answers") or []:
        qid = item.get("questionId")
        if qid is not None and item.get("answer") is not None:
            answers[str(qid)] = str(item["answer"])
    return answers


def reconcile(exam: Mapping[str, Any], snapshot: Optional[ProgressSnapshot],
              server_record: Optional[Mapping[str, Any]], now: float) -> ReconciledState:
    total = int(exam["duration"]) * 60

    if server_record and server_record.get("status") in TERMINAL_STATUSES:
        return ReconciledState(
            answers=_server_answers(server_record),
            time_remaining=0,
            deadline=now,
            source=SOURCE_SERVER,
            already_submitted=True,
        )

    if snapshot is not None:
        deadline = snapshot.deadline
        if deadline is not None and not math.isfinite(deadline):
            logger.warning("%s", TimerIntegrityError(f"Invalid cached deadline {deadline!r}, ignoring it"))
            deadline = None
        if deadline is not None:
            # keep the stored deadline so a reload never shifts it; past deadline means 0, not a reset
            deadline = min(deadline, now + total)
            remaining = max(0, math.ceil(deadline - now))
        else:
            remaining = _clamp_remaining(snapshot.time_remaining, total, "cached remaining time")
            deadline = now + remaining
        return ReconciledState(
            answers=dict(snapshot.answers),
            current_question=_clamp_question(snapshot.current_question, exam),
            time_remaining=remaining,
            deadline=deadline,
            source=SOURCE_LOCAL,
        )

    if server_record:
        answers = _server_answers(server_record)
        if answers:
            raw = server_record.get("timeSpent", 0)
            try:
                spent = int(raw)
            except (TypeError, ValueError):
                spent = -1
            if spent < 0:
                logger.warning("%s", TimerIntegrityError(f"Invalid server time spent {raw!r}, resetting to {total}s"))
                remaining = total
            else:
                remaining = max(0, total - spent)
            return ReconciledState(
                answers=answers,
                time_remaining=remaining,
                deadline=now + remaining,
                source=SOURCE_SERVER,
            )

    return ReconciledState(time_remaining=total, deadline=now + total, source=SOURCE_FRESH)
