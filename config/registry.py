"""Registry mapping interview model roles to bound callables.

Completion roles (interviewer, classifier, summary) take ``messages``,
``temperature`` and ``max_tokens`` and return text. The analysis role takes
``messages`` and ``tool`` and returns the tool-call arguments as a dict.
"""
from typing import Any, Callable, Dict, Tuple

ModelFn = Callable[..., Any]

INTERVIEWER_KEY = "models.interviewer"
CLASSIFIER_KEY = "models.classifier"
SUMMARY_KEY = "models.summary"
ANALYSIS_KEY = "models.analysis"

MODEL_KEYS: Tuple[str, ...] = (INTERVIEWER_KEY, CLASSIFIER_KEY, SUMMARY_KEY, ANALYSIS_KEY)

_REGISTRY: Dict[str, ModelFn] = {}


def bind_model(key: str, fn: ModelFn) -> None:
    _REGISTRY[key] = fn


def get_model(key: str) -> ModelFn:
    """Return the callable bound to ``key``; raises ``KeyError`` when unbound."""
    try:
        return _REGISTRY[key]
    except KeyError:
        raise KeyError(f"No model bound for role: {key}") from None


def is_bound(key: str) -> bool:
    return key in _REGISTRY
