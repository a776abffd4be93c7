"""Error taxonomy for the interview engine and its HTTP status mapping."""
from __future__ import annotations

from typing import Any, Dict, Optional

GENERIC_CLIENT_MESSAGE = "An error occurred processing your request. Please try again."


class InterviewError(Exception):
    """Base class; ``client_message`` is safe to show to the participant."""

    status_code = 500

    def __init__(self, client_message: str = GENERIC_CLIENT_MESSAGE, *, reason: Optional[str] = None) -> None:
        super().__init__(reason or client_message)
        self.client_message = client_message
        self.reason = reason or client_message

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.client_message}


class InvalidInput(InterviewError):
    status_code = 400


class Unauthorized(InterviewError):
    status_code = 403


class RateLimited(InterviewError):
    status_code = 429

    def __init__(self, client_message: str = "Rate limit exceeded. Please try again later.", **kwargs: Any) -> None:
        super().__init__(client_message, **kwargs)


class UpstreamUnavailable(InterviewError):
    """The model could not be reached; carries any partial reply already produced."""

    def __init__(self, client_message: str = GENERIC_CLIENT_MESSAGE, *, partial_message: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(client_message, **kwargs)
        self.partial_message = partial_message

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        if self.partial_message:
            payload["message"] = self.partial_message
        return payload


class PersistenceFailure(InterviewError):
    """A turn could not be stored; the interviewer's reply is still returned."""

    def __init__(
        self,
        client_message: str = "Failed to save your response. Please try again.",
        *,
        ai_message: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(client_message, **kwargs)
        self.ai_message = ai_message

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        if self.ai_message:
            payload["message"] = self.ai_message
            payload["aiMessage"] = self.ai_message
        return payload


__all__ = [
    "GENERIC_CLIENT_MESSAGE",
    "InterviewError",
    "InvalidInput",
    "PersistenceFailure",
    "RateLimited",
    "Unauthorized",
    "UpstreamUnavailable",
]
