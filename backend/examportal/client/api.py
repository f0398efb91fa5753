import logging
from typing import Any, Dict, List, Mapping

import httpx

from .errors import (
    AccessDenied, AuthError, DuplicateSubmission, ExamClientError, NotFound, SubmissionClosed,
    TransientNetworkError,
)
from .session import SessionContext

logger = logging.getLogger(__name__)


def answers_to_wire(answers: Mapping[str, Any]) -> List[Dict[str, str]]:
    """{questionId: optionIndex} -> [{"questionId": ..., "answer": "<index>"}]"""
    return [{"questionId": str(qid), "answer": str(ans)} for qid, ans in answers.items()]


def _message(res: httpx.Response) -> str:
    try:
        data = res.json()
    except ValueError:
        return res.text
    if isinstance(data, dict):
        detail = data.get("detail")
        if isinstance(detail, str):
            return detail
        return data.get("message") or str(detail or data)
    return str(data)


def _is_submitted(res: httpx.Response) -> bool:
    try:
        data = res.json()
    except ValueError:
        return False
    return isinstance(data, dict) and bool(data.get("isSubmitted"))


class ExamApiClient:
    """Thin wrapper over the exam endpoints that turns HTTP outcomes into client errors."""

    def __init__(self, http: httpx.AsyncClient, context: SessionContext):
        self.http = http
        self.context = context

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            res = await self.http.request(method, url, headers=self.context.auth_headers(), **kwargs)
        except httpx.TransportError as e:
            raise TransientNetworkError(f"{method} {url} failed: {e}") from e

        if res.status_code < 400:
            return res
        message = _message(res)
        if res.status_code == 401:
            raise AuthError(message, res.status_code)
        if res.status_code == 403:
            raise AccessDenied(message, res.status_code)
        if res.status_code == 404:
            raise NotFound(message, res.status_code)
        if res.status_code in (400, 409) and _is_submitted(res):
            if method == "PUT":
                raise SubmissionClosed(message, res.status_code)
            raise DuplicateSubmission(message, res.status_code)
        if res.status_code >= 500:
            raise TransientNetworkError(message, res.status_code)
        raise ExamClientError(message, res.status_code)

    async def list_exams(self) -> List[Dict[str, Any]]:
        res = await self._request("GET", "/api/exams/")
        return res.json()

    async def get_exam(self, exam_id: str) -> Dict[str, Any]:
        res = await self._request("GET", f"/api/exams/{exam_id}")
        return res.json()

    async def autosave(self, exam_id: str, answers: Mapping[str, Any], time_spent: int) -> Dict[str, Any]:
        body = {"answers": answers_to_wire(answers), "timeSpent": int(time_spent)}
        res = await self._request("PUT", f"/api/exams/{exam_id}/auto-save", json=body)
        return res.json()

    async def submit(self, exam_id: str, answers: Mapping[str, Any], time_spent: int) -> Dict[str, Any]:
        body = {"answers": answers_to_wire(answers), "timeSpent": int(time_spent)}
        res = await self._request("POST", f"/api/exams/{exam_id}/submit", json=body)
        return res.json()["submission"]
