"""
=============================================================================
THREAD POOL
=============================================================================

A fixed floor of worker threads pulling connection jobs from a bounded
queue, growing toward a ceiling when every worker is busy.

    ┌──────────────┐   submit()   ┌─────────────────────────┐
    │ accept loop  │─────────────►│  queue.Queue(maxsize)   │
    └──────────────┘              └────────────┬────────────┘
                                               │ get()
                          ┌────────────────────┼────────────────────┐
                          ▼                    ▼                    ▼
                     ┌──────────┐         ┌──────────┐         ┌──────────┐
                     │ Worker-0 │         │ Worker-1 │   ...   │ Worker-N │
                     └──────────┘         └──────────┘         └──────────┘

A full queue makes submit() return False; the server answers that
connection with 503 instead of letting the backlog grow without bound.

Shutdown uses the poison-pill pattern: one None per worker.

The route table and error page are read-only, so workers share them
without locks.

=============================================================================
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Task:
    """A deferred call: ``func(*args)``."""

    func: Callable[..., Any]
    args: tuple = ()
    submitted_at: float = field(default_factory=time.time)


class Worker(threading.Thread):
    """Runs tasks from the shared queue until it receives None."""

    def __init__(self, task_queue: "queue.Queue[Optional[Task]]", worker_id: int):
        super().__init__(name=f"Worker-{worker_id}", daemon=True)
        self.task_queue = task_queue
        self.worker_id = worker_id
        self.state = WorkerState.IDLE
        self.tasks_completed = 0
        self.tasks_failed = 0

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while True:
            task = self.task_queue.get()
            try:
                if task is None:
                    break
                self._execute(task)
            finally:
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute(self, task: Task):
        self.state = WorkerState.BUSY
        start = time.time()
        try:
            task.func(*task.args)
            self.tasks_completed += 1
        except Exception:
            # A failing job must not take the worker down with it
            logger.exception(
                f"Worker {self.worker_id} task failed after {time.time() - start:.3f}s"
            )
            self.tasks_failed += 1
        finally:
            self.state = WorkerState.IDLE


class ThreadPool:
    """
    Bounded worker pool.

    Usage:
        pool = ThreadPool(min_workers=4, max_workers=16, queue_size=100)
        pool.start()
        if not pool.submit(handle, conn):
            ...  # overloaded
        pool.shutdown()
    """

    def __init__(self, min_workers: int = 4, max_workers: int = 16, queue_size: int = 100):
        self.min_workers = min_workers
        self.max_workers = max_workers
        self._queue: "queue.Queue[Optional[Task]]" = queue.Queue(maxsize=queue_size)
        self._workers: list[Worker] = []
        self._lock = threading.Lock()
        self._started = False
        self._closing = False

    def start(self):
        if self._started:
            return
        logger.info(f"Starting thread pool with {self.min_workers} workers")
        with self._lock:
            for _ in range(self.min_workers):
                self._spawn()
        self._started = True

    def _spawn(self) -> Worker:
        # Caller holds self._lock
        worker = Worker(self._queue, worker_id=len(self._workers))
        self._workers.append(worker)
        worker.start()
        return worker

    def submit(self, func: Callable[..., Any], *args: Any) -> bool:
        """
        Queue ``func(*args)`` without blocking.

        Returns:
            True if queued, False if the queue is full.

        Raises:
            RuntimeError: If the pool is not running.
        """
        if not self._started or self._closing:
            raise RuntimeError("Thread pool is not running")

        try:
            self._queue.put_nowait(Task(func, args))
        except queue.Full:
            return False

        self._maybe_scale_up()
        return True

    def _maybe_scale_up(self):
        with self._lock:
            all_busy = all(w.state == WorkerState.BUSY for w in self._workers)
            if all_busy and len(self._workers) < self.max_workers and self._queue.qsize() > 0:
                logger.debug(
                    f"Scaling up: {len(self._workers)} -> {len(self._workers) + 1} workers"
                )
                self._spawn()

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop all workers.

        Args:
            wait: Let already queued jobs finish first.
            timeout: Upper bound on that wait, in seconds.
        """
        if not self._started:
            return

        logger.info("Shutting down thread pool...")
        self._closing = True

        if wait:
            deadline = None if timeout is None else time.time() + timeout
            while self._queue.unfinished_tasks:
                if deadline is not None and time.time() > deadline:
                    logger.warning("Thread pool shutdown timed out, abandoning queued work")
                    break
                time.sleep(0.05)

        for _ in self._workers:
            try:
                self._queue.put_nowait(None)
            except queue.Full:
                break  # daemon threads die with the process

        for worker in self._workers:
            worker.join(timeout=2.0)

        self._workers.clear()
        self._started = False
        self._closing = False
        logger.info("Thread pool shutdown complete")

    @property
    def worker_count(self) -> int:
        return len(self._workers)

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.BUSY)

    @property
    def pending(self) -> int:
        """Jobs waiting in the queue."""
        return self._queue.qsize()
