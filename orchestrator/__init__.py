"""Phase routing for adaptive interview conversations."""
from .errors import (
    InterviewError,
    InvalidInput,
    PersistenceFailure,
    RateLimited,
    Unauthorized,
    UpstreamUnavailable,
)

__all__ = [
    "InterviewError",
    "InvalidInput",
    "PersistenceFailure",
    "RateLimited",
    "Unauthorized",
    "UpstreamUnavailable",
]
