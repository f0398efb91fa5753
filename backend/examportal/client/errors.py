"""Errors raised by the exam client.

Only DuplicateSubmission, ValidationError and time expiry are expected in
normal use; the rest are reported to the student with a retry or go-back path.
"""
from typing import List, Optional


class ExamClientError(Exception):
    def __init__(self, message: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AuthError(ExamClientError):
    """Missing or rejected credential; the student has to log in again."""


class AccessDenied(ExamClientError):
    """Wrong class, inactive exam, closed portal or outside the access window."""


class NotFound(ExamClientError):
    pass


class ValidationError(ExamClientError):
    """Submit requested while questions are still unanswered. Never leaves the client."""

    def __init__(self, unanswered: List[str]):
        super().__init__(f"{len(unanswered)} question(s) remaining")
        self.unanswered = list(unanswered)


class DuplicateSubmission(ExamClientError):
    """The server already holds a submitted attempt for this exam."""


class SubmissionClosed(ExamClientError):
    """An autosave was refused because the attempt is no longer in progress."""


class TransientNetworkError(ExamClientError):
    """The request did not reach the server or the server failed; safe to retry."""


class TimerIntegrityError(ExamClientError):
    """A persisted remaining time was negative or unreadable."""
