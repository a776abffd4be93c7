"""Structured turn events and step timings for the interview engine."""
from .logger import ENABLE_FILE_LOGS, log_event
from .tracing import span

__all__ = ["ENABLE_FILE_LOGS", "log_event", "span"]
