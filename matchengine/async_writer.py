"""A bounded queue of database tasks run by a pool of worker threads."""

from __future__ import annotations

import logging
import queue
import threading
from typing import Any, List

from matchengine.repository import DBTask, OrderRepository

logger = logging.getLogger(__name__)

_STOP = object()


class AsyncDBWriter:
    """Runs enqueued tasks against ``repo`` in background threads."""

    def __init__(
        self,
        repo: OrderRepository,
        buffer_size: int = 10,
        worker_count: int = 5,
        retry_count: int = 3,
        timeout: float = 0.1,
    ) -> None:
        if buffer_size < 0:
            raise ValueError("buffer_size must not be negative")
        if worker_count < 0:
            raise ValueError("worker_count must not be negative")
        if retry_count < 1:
            raise ValueError("retry_count must be at least 1")
        self._repo = repo
        self._queue: "queue.Queue[Any]" = queue.Queue(maxsize=max(buffer_size, 1))
        self._retry_count = retry_count
        self._timeout = timeout
        self._closed = False
        self._lock = threading.Lock()
        self._workers: List[threading.Thread] = [
            threading.Thread(target=self._work, args=(i,), name=f"db-worker-{i}", daemon=True)
            for i in range(worker_count)
        ]
        for worker in self._workers:
            worker.start()

    def _work(self, worker_id: int) -> None:
        while True:
            task = self._queue.get()
            try:
                if task is _STOP:
                    return
                try:
                    task.execute(self._repo)
                except Exception as exc:
                    logger.error("[Worker %d] Failed to execute task: %s", worker_id, exc)
            finally:
                self._queue.task_done()

    def enqueue_task(self, task: DBTask) -> bool:
        """Queue a task, retrying while the buffer is full; return False if dropped."""
        if self._closed:
            raise RuntimeError("writer is closed")
        for attempt in range(1, self._retry_count + 1):
            try:
                self._queue.put(task, timeout=self._timeout)
                return True
            except queue.Full:
                logger.warning("Enqueue attempt %d timed out", attempt)
        logger.error("Task channel is full after retries, dropping task")
        return False

    def close(self) -> None:
        """Stop accepting tasks, let workers finish queued ones, and wait for them."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        for _ in self._workers:
            self._queue.put(_STOP)
        for worker in self._workers:
            worker.join()

    def __enter__(self) -> "AsyncDBWriter":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()