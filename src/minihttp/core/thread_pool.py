"""
=============================================================================
THREAD POOL
=============================================================================

A bounded pool of worker threads pulling connection tasks off a queue.

=============================================================================
WHY BOUNDED?
=============================================================================

A thread per connection has no ceiling: a burst of 10,000 connections
becomes 10,000 threads, each with its own stack. The pool caps both the
number of threads and the number of connections allowed to wait:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         THREAD POOL                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   accept loop                                                        │
    │       │ submit(process, conn)                                        │
    │       ▼                                                              │
    │   ┌───────────────────────────────────────┐                          │
    │   │ Task Queue  [t5][t6][t7] ...  ≤ queue_size                       │
    │   └──────────────────┬────────────────────┘                          │
    │            ┌─────────┼─────────┬─────────┐                           │
    │            ▼         ▼         ▼         ▼                           │
    │        Worker-0  Worker-1  Worker-2  Worker-3   (min_workers)        │
    │                                                  ... up to           │
    │                                                  max_workers         │
    │                                                                      │
    │   Queue full → submit() returns False → caller answers 503          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

min_workers threads start with the pool. Whenever every worker is busy
and tasks are still waiting, one more is spawned, up to max_workers.
Workers never scale back down.

=============================================================================
SHUTDOWN: POISON PILLS
=============================================================================

Each worker loops on queue.get(). Shutdown puts one None per worker on
the queue; a worker that pulls None exits its loop.

=============================================================================
"""

import threading
import queue
import time
import logging
from typing import Callable, Optional, Any
from dataclasses import dataclass, field
from enum import Enum


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Task:
    """
    A deferred call: func(*args), run later on some worker.

    Attributes:
        func: The function to execute.
        args: Positional arguments for it.
        submitted_at: When the task was queued (for wait-time logging).
    """
    func: Callable[..., Any]
    args: tuple = ()
    submitted_at: float = field(default_factory=time.time)


class Worker(threading.Thread):
    """
    Worker thread that runs tasks from the shared queue.

    A task that raises is logged with its traceback and counted as
    failed; the worker carries on with the next one.
    """

    def __init__(self, task_queue: queue.Queue, worker_id: int, idle_timeout: float = 1.0):
        """
        Args:
            task_queue: Queue to pull tasks from.
            worker_id: Number used in the thread name and log lines.
            idle_timeout: Seconds between shutdown checks while idle.
        """
        # daemon=True: a stuck worker must not keep the process alive
        super().__init__(name=f"Worker-{worker_id}", daemon=True)

        self.task_queue = task_queue
        self.worker_id = worker_id
        self.idle_timeout = idle_timeout

        self.state = WorkerState.IDLE
        self._shutdown = threading.Event()

        self.tasks_completed = 0
        self.tasks_failed = 0

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while not self._shutdown.is_set():
            try:
                task = self.task_queue.get(timeout=self.idle_timeout)
            except queue.Empty:
                continue

            try:
                if task is None:
                    break
                self._execute_task(task)
            finally:
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute_task(self, task: Task):
        self.state = WorkerState.BUSY
        start_time = time.time()
        waited = start_time - task.submitted_at

        try:
            task.func(*task.args)
            self.tasks_completed += 1
            logger.debug(
                f"Worker {self.worker_id} finished task in "
                f"{time.time() - start_time:.3f}s (queued {waited:.3f}s)"
            )
        except Exception as e:
            self.tasks_failed += 1
            logger.exception(f"Worker {self.worker_id} task failed: {e}")
        finally:
            self.state = WorkerState.IDLE

    def shutdown(self):
        """Ask the worker to stop after its current task."""
        self._shutdown.set()


class ThreadPool:
    """
    Bounded thread pool.

    Usage:
        pool = ThreadPool(min_workers=4, max_workers=16, queue_size=100)
        pool.start()

        if not pool.submit(handle, conn):
            reject(conn)            # queue full

        pool.shutdown(wait=True)
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: int = 16,
        queue_size: int = 100,
        idle_timeout: float = 1.0,
    ):
        """
        Args:
            min_workers: Threads started by start().
            max_workers: Upper bound on threads.
            queue_size: Tasks allowed to wait for a worker.
            idle_timeout: How often idle workers check for shutdown.

        Raises:
            ValueError: On inconsistent sizes.
        """
        if min_workers < 1 or max_workers < min_workers:
            raise ValueError(
                f"Invalid worker bounds: min={min_workers}, max={max_workers}"
            )
        if queue_size < 1:
            raise ValueError(f"Invalid queue size: {queue_size}")

        self.min_workers = min_workers
        self.max_workers = max_workers
        self.max_queue_size = queue_size
        self.idle_timeout = idle_timeout

        self._task_queue: queue.Queue = queue.Queue(maxsize=queue_size)

        self._workers: list[Worker] = []
        self._lock = threading.Lock()  # guards _workers
        self._started = False
        self._shutdown = False
        self._next_worker_id = 0

    def start(self):
        """Start min_workers threads. No-op if already started."""
        if self._started:
            return

        logger.info(
            f"Starting thread pool with {self.min_workers} workers "
            f"(max {self.max_workers}, queue {self.max_queue_size})"
        )
        with self._lock:
            for _ in range(self.min_workers):
                self._add_worker()

        self._shutdown = False
        self._started = True

    def _add_worker(self) -> Worker:
        # Caller holds _lock
        worker = Worker(
            task_queue=self._task_queue,
            worker_id=self._next_worker_id,
            idle_timeout=self.idle_timeout,
        )
        self._next_worker_id += 1
        self._workers.append(worker)
        worker.start()
        return worker

    def submit(self, func: Callable[..., Any], *args: Any) -> bool:
        """
        Queue func(*args) without blocking.

        Returns:
            True if queued, False if the queue is full.

        Raises:
            RuntimeError: If the pool is not running.
        """
        if not self._started or self._shutdown:
            raise RuntimeError("Thread pool is not running")

        try:
            self._task_queue.put_nowait(Task(func=func, args=args))
        except queue.Full:
            logger.warning(f"Task queue full ({self.max_queue_size} waiting)")
            return False

        self._maybe_scale_up()
        return True

    def _maybe_scale_up(self):
        """Add one worker if all are busy, work is waiting, and we're under max."""
        with self._lock:
            if len(self._workers) >= self.max_workers:
                return
            if self._task_queue.qsize() == 0:
                return
            if any(w.state is WorkerState.IDLE for w in self._workers):
                return

            logger.debug(
                f"Scaling up: {len(self._workers)} -> {len(self._workers) + 1} workers"
            )
            self._add_worker()

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop the pool.

        Args:
            wait: Let queued tasks finish first. Otherwise they are
                  abandoned (their connections are closed by the OS
                  when the process exits).
            timeout: Upper bound on the wait for queued tasks.
        """
        if not self._started:
            return

        logger.info("Shutting down thread pool...")
        self._shutdown = True

        if wait:
            deadline = None if timeout is None else time.time() + timeout
            while self._task_queue.unfinished_tasks:
                if deadline is not None and time.time() > deadline:
                    logger.warning("Thread pool shutdown timed out, abandoning tasks")
                    break
                time.sleep(0.05)

        with self._lock:
            workers = list(self._workers)
            self._workers.clear()

        for worker in workers:
            worker.shutdown()
            try:
                self._task_queue.put_nowait(None)
            except queue.Full:
                pass  # worker will see the shutdown flag instead

        for worker in workers:
            worker.join(timeout=2.0)

        self._started = False
        logger.info("Thread pool shutdown complete")

    # =========================================================================
    # MONITORING
    # =========================================================================

    @property
    def worker_count(self) -> int:
        return len(self._workers)

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.state is WorkerState.BUSY)

    @property
    def pending(self) -> int:
        """Tasks waiting for a worker."""
        return self._task_queue.qsize()

    @property
    def stats(self) -> dict:
        return {
            "workers": {
                "total": self.worker_count,
                "busy": self.busy_workers,
            },
            "tasks": {
                "queued": self.pending,
                "completed": sum(w.tasks_completed for w in self._workers),
                "failed": sum(w.tasks_failed for w in self._workers),
            },
        }
