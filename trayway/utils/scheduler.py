"""
Cancelable repeating tasks.

Each task runs its callback on a daemon thread every ``interval`` seconds
until cancelled. The Scheduler keeps track of live tasks so owners can
cancel everything on shutdown.
"""

import threading
from typing import Callable, List, Optional

from trayway.utils.logger import get_logger

logger = get_logger(__name__)


class PeriodicTask:
    """A callback repeated on a fixed interval until cancelled."""

    def __init__(
        self,
        name: str,
        interval: float,
        callback: Callable[[], None],
        on_finished: Optional[Callable[['PeriodicTask'], None]] = None,
    ):
        self.name = name
        self.interval = interval
        self.callback = callback
        self._on_finished = on_finished
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> 'PeriodicTask':
        if self._thread is not None:
            raise RuntimeError(f"Task {self.name} already started")
        self._thread = threading.Thread(target=self._run, daemon=True, name=self.name)
        self._thread.start()
        return self

    def _run(self) -> None:
        try:
            while not self._stop.wait(self.interval):
                try:
                    self.callback()
                except Exception as e:
                    logger.error(f"Task {self.name} callback failed: {e}")
        finally:
            if self._on_finished:
                self._on_finished(self)

    def cancel(self) -> None:
        """Stop the task. Safe to call more than once and from the callback itself."""
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=1.0)

    @property
    def is_active(self) -> bool:
        return self._thread is not None and not self._stop.is_set()


class Scheduler:
    """Creates PeriodicTasks and tracks the ones still active."""

    def __init__(self):
        self._lock = threading.Lock()
        self._tasks: List[PeriodicTask] = []

    def every(self, interval: float, callback: Callable[[], None], name: str = 'periodic-task') -> PeriodicTask:
        task = PeriodicTask(name, interval, callback, on_finished=self._forget)
        with self._lock:
            self._tasks.append(task)
        return task.start()

    def _forget(self, task: PeriodicTask) -> None:
        with self._lock:
            if task in self._tasks:
                self._tasks.remove(task)

    def active_tasks(self) -> List[PeriodicTask]:
        with self._lock:
            return [task for task in self._tasks if task.is_active]

    def cancel_all(self) -> None:
        with self._lock:
            tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        logger.info(f"Cancelled {len(tasks)} scheduled task(s)")
