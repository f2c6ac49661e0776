"""
Serialized request queue for rate-limited upstream access.

All tasks run one at a time on a single worker thread, with a fixed pause
after each task. Callers block until their own task has completed and
receive its result (or its exception).
"""
import threading
import time
import logging
from collections import deque
from typing import Any, Callable, Deque, Optional
from dataclasses import dataclass, field

from app.errors import QueueFullError

logger = logging.getLogger("clients.request_queue")


@dataclass
class QueuedTask:
    """A task waiting for (or finished on) the worker."""
    fn: Callable[[], Any]
    event: threading.Event = field(default_factory=threading.Event)
    result: Optional[Any] = None
    error: Optional[Exception] = None
    enqueued_at: float = field(default_factory=time.time)


class RequestQueue:
    """
    Bounded work queue with a single in-flight worker.

    Usage:
        queue = RequestQueue(delay_seconds=0.25)
        data = queue.submit(session.get, url, params=params)
    """

    def __init__(self, delay_seconds: float = 0.25, max_pending: int = 100):
        """
        Args:
            delay_seconds: Pause after each task before the next one starts
            max_pending: Max tasks waiting for the worker
        """
        self._delay = delay_seconds
        self._max_pending = max_pending
        self._pending: Deque[QueuedTask] = deque()
        self._cond = threading.Condition()
        self._closed = False
        self._processed = 0
        self._worker = threading.Thread(
            target=self._run,
            name="request-queue-worker",
            daemon=True,
        )
        self._worker.start()

    def submit(self, fn: Callable[..., Any], *args, **kwargs) -> Any:
        """
        Run fn on the worker and wait for it.

        Raises:
            QueueFullError: If max_pending tasks are already waiting
            RuntimeError: If the queue has been shut down
            Exception: Any error raised by fn is propagated
        """
        task = QueuedTask(fn=lambda: fn(*args, **kwargs))

        with self._cond:
            if self._closed:
                raise RuntimeError("Request queue is shut down")
            if len(self._pending) >= self._max_pending:
                raise QueueFullError(
                    f"Request queue full ({self._max_pending} tasks pending)"
                )
            self._pending.append(task)
            self._cond.notify()

        task.event.wait()

        if task.error is not None:
            raise task.error
        return task.result

    def _run(self) -> None:
        while True:
            with self._cond:
                while not self._pending and not self._closed:
                    self._cond.wait()
                if not self._pending:
                    return
                task = self._pending.popleft()

            try:
                task.result = task.fn()
            except Exception as e:
                task.error = e
            finally:
                self._processed += 1
                task.event.set()

            if self._delay > 0:
                time.sleep(self._delay)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting tasks; pending tasks still run."""
        with self._cond:
            self._closed = True
            self._cond.notify_all()
        if wait:
            self._worker.join()

    def get_stats(self) -> dict:
        """Get queue statistics."""
        with self._cond:
            return {
                "pending": len(self._pending),
                "processed": self._processed,
                "max_pending": self._max_pending,
                "delay_seconds": self._delay,
            }
