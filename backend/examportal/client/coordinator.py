import asyncio
import enum
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from .api import ExamApiClient
from .errors import DuplicateSubmission, ExamClientError, ValidationError
from .progress_cache import ProgressCache

logger = logging.getLogger(__name__)


class SubmissionState(str, enum.Enum):
    ANSWERING = "answering"
    CONFIRMING = "confirming"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    ALREADY_SUBMITTED = "already_submitted"


TERMINAL_STATES = (SubmissionState.SUBMITTED, SubmissionState.ALREADY_SUBMITTED)


class SubmissionCoordinator:
    """
    answering -> confirming -> submitting -> submitted

    The completeness check and the explicit confirmation are separate steps.
    ``force_submit`` (time up) skips both. However many of confirm/force_submit
    race, they share a single in-flight request, so the client makes at most
    one terminal call per attempt; the server's duplicate check covers the rest.
    """

    def __init__(self, api: ExamApiClient, cache: ProgressCache, exam_id: str, question_ids: Sequence[str],
                 get_answers: Callable[[], Mapping[str, Any]], get_time_spent: Callable[[], int],
                 on_state_change: Optional[Callable[[SubmissionState], None]] = None):
        self.api = api
        self.cache = cache
        self.exam_id = exam_id
        self.question_ids = [str(q) for q in question_ids]
        self.get_answers = get_answers
        self.get_time_spent = get_time_spent
        self.on_state_change = on_state_change
        self.state = SubmissionState.ANSWERING
        self.result: Optional[Dict[str, Any]] = None
        self.last_error: Optional[ExamClientError] = None
        self._inflight: Optional[asyncio.Task] = None

    def _set_state(self, state: SubmissionState) -> None:
        if state != self.state:
            logger.debug("Exam %s submission state %s -> %s", self.exam_id, self.state.value, state.value)
            self.state = state
            if self.on_state_change is not None:
                self.on_state_change(state)

    @property
    def is_finished(self) -> bool:
        return self.state in TERMINAL_STATES

    def unanswered(self) -> List[str]:
        answers = self.get_answers()
        return [qid for qid in self.question_ids if answers.get(qid) in (None, "")]

    def request_submit(self) -> None:
        """Completeness check; moves to confirming or raises ValidationError without any network call."""
        if self.state != SubmissionState.ANSWERING:
            return
        missing = self.unanswered()
        if missing:
            raise ValidationError(missing)
        self._set_state(SubmissionState.CONFIRMING)

    def cancel(self) -> None:
        if self.state == SubmissionState.CONFIRMING:
            self._set_state(SubmissionState.ANSWERING)

    async def confirm(self) -> SubmissionState:
        """Explicit confirmation from the student; only valid while confirming."""
        if self.state == SubmissionState.SUBMITTING and self._inflight is not None:
            return await asyncio.shield(self._inflight)
        if self.state != SubmissionState.CONFIRMING:
            return self.state
        return await self._submit()

    async def force_submit(self) -> SubmissionState:
        """Time is up: submit whatever is answered, no completeness check or confirmation."""
        if self.is_finished:
            return self.state
        if self.state == SubmissionState.SUBMITTING and self._inflight is not None:
            return await asyncio.shield(self._inflight)
        logger.info("Forcing submission of exam %s", self.exam_id)
        return await self._submit()

    async def _submit(self) -> SubmissionState:
        self._set_state(SubmissionState.SUBMITTING)
        self.last_error = None
        self._inflight = asyncio.get_running_loop().create_task(self._send())
        return await asyncio.shield(self._inflight)

    async def _send(self) -> SubmissionState:
        try:
            self.result = await self.api.submit(self.exam_id, self.get_answers(), self.get_time_spent())
        except DuplicateSubmission as e:
            self.last_error = e
            self.cache.clear(self.exam_id)
            self._set_state(SubmissionState.ALREADY_SUBMITTED)
        except ExamClientError as e:
            # local progress is kept so the student can retry
            self.last_error = e
            logger.warning("Submitting exam %s failed: %s", self.exam_id, e.message or e.__class__.__name__)
            self._set_state(SubmissionState.ANSWERING)
        else:
            self.cache.clear(self.exam_id)
            self._set_state(SubmissionState.SUBMITTED)
        finally:
            self._inflight = None
        return self.state
