"""In-process tracking of background jobs, so shutdown can wait for them"""
import threading
from typing import Any, Callable, Optional

from fastapi import BackgroundTasks


class JobTracker:
    """Counts background jobs from the moment they start until they finish"""

    def __init__(self):
        self._cond = threading.Condition()
        self._pending = 0

    @property
    def pending(self) -> int:
        with self._cond:
            return self._pending

    def schedule(self, background: BackgroundTasks, func: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        """Run ``func`` after the response is sent"""
        background.add_task(self._run, func, *args, **kwargs)

    def _run(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        with self._cond:
            self._pending += 1
        try:
            func(*args, **kwargs)
        finally:
            with self._cond:
                self._pending -= 1
                self._cond.notify_all()

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until no job is running. Returns False on timeout."""
        with self._cond:
            return self._cond.wait_for(lambda: self._pending == 0, timeout=timeout)


job_tracker = JobTracker()
