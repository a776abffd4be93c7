"""Schedulers for best-effort work that runs after the reply is sent."""
from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, List, Optional, Protocol

from starlette.background import BackgroundTasks

logger = logging.getLogger(__name__)


class TaskScheduler(Protocol):  # Fire-and-forget executor contract
    def schedule(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> None: ...


def _guarded(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
    try:
        fn(*args, **kwargs)
    except Exception:  # noqa: BLE001
        logger.exception("background task %s failed", getattr(fn, "__name__", fn))


class BackgroundTasksScheduler:
    """Queue work on Starlette ``BackgroundTasks``; it runs after the response is sent."""

    def __init__(self, background_tasks: BackgroundTasks) -> None:
        self._tasks = background_tasks

    def schedule(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        self._tasks.add_task(_guarded, fn, *args, **kwargs)


class ThreadPoolScheduler:
    def __init__(self, executor: Optional[ThreadPoolExecutor] = None, max_workers: int = 4) -> None:
        self._executor = executor or ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="enrichment")
        self.futures: List[Future] = []

    def schedule(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        self.futures.append(self._executor.submit(_guarded, fn, *args, **kwargs))

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


class InlineScheduler:
    """Runs work immediately in the caller's thread."""

    def schedule(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        _guarded(fn, *args, **kwargs)


__all__ = ["BackgroundTasksScheduler", "InlineScheduler", "TaskScheduler", "ThreadPoolScheduler"]
