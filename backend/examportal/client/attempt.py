import asyncio
import logging
import time
from typing import Any, Callable, Dict, Optional

from .api import ExamApiClient
from .autosave import AutosaveClient
from .coordinator import SubmissionCoordinator, SubmissionState, TERMINAL_STATES
from .errors import AccessDenied, ExamClientError
from .progress_cache import ProgressCache, ProgressSnapshot
from .reconciler import ReconciledState, reconcile
from .timer import ExamTimer

logger = logging.getLogger(__name__)

# local progress is written on these tick boundaries, plus on every answer change
CACHE_EVERY_SECONDS = 10
AUTOSAVE_EVERY_SECONDS = 30


class ExamAttempt:
    """
    One student's pass at one exam, from loading the page to the terminal submit.

    Owns the timer task; ``close`` must be called when the student navigates
    away so no recurring callback is left behind.
    """

    def __init__(self, api: ExamApiClient, cache: ProgressCache, exam_id: str,
                 autosave: Optional[AutosaveClient] = None, clock: Callable[[], float] = time.time,
                 on_warning: Optional[Callable[[ExamClientError], None]] = None):
        self.api = api
        self.cache = cache
        self.exam_id = str(exam_id)
        self.clock = clock
        self.autosave = autosave or AutosaveClient(api, on_warning=on_warning)
        self.exam: Dict[str, Any] = {}
        self.answers: Dict[str, str] = {}
        self.current_question = 0
        self.initial_state: Optional[ReconciledState] = None
        self.timer: Optional[ExamTimer] = None
        self.coordinator: Optional[SubmissionCoordinator] = None
        self.forced_submit: Optional[asyncio.Task] = None

    @property
    def duration_seconds(self) -> int:
        return int(self.exam.get("duration", 0)) * 60

    @property
    def time_spent(self) -> int:
        remaining = self.timer.remaining if self.timer is not None else self.duration_seconds
        return max(0, self.duration_seconds - remaining)

    @property
    def time_up(self) -> bool:
        return self.timer is not None and self.timer.expired

    @property
    def is_open(self) -> bool:
        """Whether the student may still change answers."""
        if self.coordinator is None or self.time_up:
            return False
        return self.coordinator.state not in TERMINAL_STATES and self.coordinator.state != SubmissionState.SUBMITTING

    async def load(self, start_timer: bool = True) -> ReconciledState:
        self.exam = await self.api.get_exam(self.exam_id)
        status = self.exam.get("studentStatus")
        snapshot = self.cache.load(self.exam_id)
        record = self.exam.get("submission")

        if status == "upcoming":
            raise AccessDenied("Exam has not started yet")
        if status == "expired" and snapshot is None and not (record and record.get("status") == "in_progress"):
            raise AccessDenied("Exam has ended")

        state = reconcile(self.exam, snapshot, record, self.clock())
        self.initial_state = state
        self.answers = dict(state.answers)
        self.current_question = state.current_question

        question_ids = [str(q["id"]) for q in self.exam.get("questions") or []]
        self.coordinator = SubmissionCoordinator(
            self.api, self.cache, self.exam_id, question_ids,
            get_answers=lambda: self.answers,
            get_time_spent=lambda: self.time_spent,
            on_state_change=self._on_state_change,
        )
        self.timer = ExamTimer(state.deadline, on_tick=self._on_tick, on_expire=self._on_expire, clock=self.clock)

        if state.already_submitted or status == "submitted":
            self.coordinator.state = SubmissionState.ALREADY_SUBMITTED
            self.cache.clear(self.exam_id)
            return state

        # persist the deadline right away so a reload keeps counting down from it
        self._save_local(state.time_remaining)
        if start_timer:
            self.timer.start()
        return state

    def _save_local(self, remaining: Optional[int] = None) -> None:
        if remaining is None:
            remaining = self.timer.remaining
        snapshot = ProgressSnapshot(
            answers=self.answers,
            current_question=self.current_question,
            time_remaining=remaining,
            deadline=self.timer.deadline,
        )
        try:
            self.cache.save(self.exam_id, snapshot)
        except OSError as e:
            logger.warning("Could not write local progress for exam %s: %s", self.exam_id, e)

    def select_answer(self, question_id: str, answer: Any) -> bool:
        if not self.is_open:
            return False
        self.answers[str(question_id)] = str(answer)
        # local write first: it is the fallback if the push fails
        self._save_local()
        self.autosave.push(self.exam_id, self.answers, self.time_spent)
        return True

    def go_to(self, index: int) -> None:
        count = len(self.exam.get("questions") or [])
        if count:
            self.current_question = max(0, min(index, count - 1))
            if self.is_open:
                self._save_local()

    def _on_tick(self, remaining: int) -> None:
        if not self.is_open:
            return
        if remaining % CACHE_EVERY_SECONDS == 0:
            self._save_local(remaining)
        if remaining % AUTOSAVE_EVERY_SECONDS == 0:
            self.autosave.push(self.exam_id, self.answers, self.time_spent)

    def _on_expire(self) -> None:
        if self.forced_submit is None and self.coordinator is not None and not self.coordinator.is_finished:
            self.forced_submit = asyncio.get_running_loop().create_task(self.coordinator.force_submit())

    def _on_state_change(self, state: SubmissionState) -> None:
        if state in TERMINAL_STATES and self.timer is not None:
            self.timer.cancel()

    def request_submit(self) -> None:
        self.coordinator.request_submit()

    def cancel_submit(self) -> None:
        self.coordinator.cancel()

    async def confirm_submit(self) -> SubmissionState:
        return await self.coordinator.confirm()

    async def retry_submit(self) -> SubmissionState:
        """After a failed submit: time-up attempts go straight back to the forced path."""
        if self.time_up:
            return await self.coordinator.force_submit()
        self.coordinator.request_submit()
        return await self.coordinator.confirm()

    async def close(self) -> None:
        if self.timer is not None:
            self.timer.cancel()
        if self.forced_submit is not None:
            await asyncio.gather(self.forced_submit, return_exceptions=True)
        await self.autosave.drain()
