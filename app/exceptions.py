"""
Domain exceptions raised by the service layer.

Routers let these propagate; ``app.main`` maps each class to an HTTP status
via ``status_code`` and renders the same JSON error body as the catch-all
handler.
"""
from __future__ import annotations

from typing import Optional

from fastapi import status


class ReadinessError(Exception):
    """Base class for expected, caller-recoverable failures."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail: str = "Processing error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.detail)
        self.message = message or self.detail


class NotFoundError(ReadinessError):
    """No project, submission, report or document exists for the request."""

    status_code = status.HTTP_404_NOT_FOUND
    detail = "Not found"


class InvalidPayloadError(ReadinessError):
    """Malformed input; raised before anything is written or sent to the LLM."""

    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Invalid payload"


class MalformedModelOutputError(ReadinessError):
    """An LLM reply could not be reduced to a JSON value."""

    status_code = status.HTTP_502_BAD_GATEWAY
    detail = "Failed to parse the JSON response from the AI model"

    def __init__(self, message: str = "", raw_text: Optional[str] = None) -> None:
        super().__init__(message)
        self.raw_text = raw_text


class UpstreamFailureError(ReadinessError):
    """LLM provider or storage transport failure."""

    status_code = status.HTTP_502_BAD_GATEWAY
    detail = "Upstream service failure"


class SubmissionChangedError(ReadinessError):
    """The questionnaire submission was replaced while analysis was running."""

    status_code = status.HTTP_409_CONFLICT
    detail = "Submission changed during analysis"
