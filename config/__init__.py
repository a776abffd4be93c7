"""Configuration package for the interview engine."""
from .registry import (
    ANALYSIS_KEY,
    CLASSIFIER_KEY,
    INTERVIEWER_KEY,
    MODEL_KEYS,
    SUMMARY_KEY,
    bind_model,
    get_model,
    is_bound,
)
from .settings import Settings, settings

__all__ = [
    "ANALYSIS_KEY",
    "CLASSIFIER_KEY",
    "INTERVIEWER_KEY",
    "MODEL_KEYS",
    "SUMMARY_KEY",
    "bind_model",
    "get_model",
    "is_bound",
    "Settings",
    "settings",
]
