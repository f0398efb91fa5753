import asyncio
import logging
from typing import Any, Callable, Mapping, Optional, Set

from .api import ExamApiClient
from .errors import ExamClientError

logger = logging.getLogger(__name__)


class AutosaveClient:
    """
    Fire-and-forget pushes of the current answers.

    ``push`` returns immediately; the request runs as a background task. A
    failed push is logged and handed to ``on_warning`` but never raised, the
    local progress cache stays the fallback until the next push succeeds.
    Ordering between concurrent pushes is left to the server (last write wins).
    """

    def __init__(self, api: ExamApiClient, on_warning: Optional[Callable[[ExamClientError], None]] = None):
        self.api = api
        self.on_warning = on_warning
        self._tasks: Set[asyncio.Task] = set()
        self._seq = 0
        self.last_success_seq = 0
        self.last_error: Optional[ExamClientError] = None

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def push(self, exam_id: str, answers: Mapping[str, Any], time_spent: int) -> asyncio.Task:
        self._seq += 1
        # copy now: the caller keeps mutating its answers while the request is in flight
        task = asyncio.get_running_loop().create_task(self._send(self._seq, exam_id, dict(answers), time_spent))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _send(self, seq: int, exam_id: str, answers: Mapping[str, Any], time_spent: int) -> bool:
        try:
            await self.api.autosave(exam_id, answers, time_spent)
        except ExamClientError as e:
            if seq < self.last_success_seq:
                # a newer push already landed
                return False
            self.last_error = e
            logger.warning("Autosave for exam %s failed: %s", exam_id, e.message or e.__class__.__name__)
            if self.on_warning is not None:
                self.on_warning(e)
            return False
        self.last_success_seq = max(self.last_success_seq, seq)
        self.last_error = None
        return True

    async def drain(self) -> None:
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        await self.drain()
