"""
Unit tests for the bounded thread pool.
"""

import threading
import time

import pytest

from minihttp.core.thread_pool import ThreadPool, Task, WorkerState


def wait_for(condition, timeout: float = 2.0) -> bool:
    """Poll condition() until it is true or the timeout passes."""
    deadline = time.time() + timeout
    while time.time() < deadline:
        if condition():
            return True
        time.sleep(0.01)
    return condition()


@pytest.fixture
def release():
    """An event that blocking tasks wait on; always set at teardown."""
    event = threading.Event()
    yield event
    event.set()


class TestThreadPool:
    """Tests for ThreadPool."""

    def test_runs_tasks(self):
        pool = ThreadPool(min_workers=2, max_workers=2, idle_timeout=0.1)
        pool.start()
        results = []
        lock = threading.Lock()

        def task(n):
            with lock:
                results.append(n)

        try:
            for n in range(10):
                assert pool.submit(task, n) is True
            assert wait_for(lambda: len(results) == 10)
        finally:
            pool.shutdown()

        assert sorted(results) == list(range(10))

    def test_start_spawns_min_workers(self):
        pool = ThreadPool(min_workers=3, max_workers=5, idle_timeout=0.1)
        pool.start()
        try:
            assert pool.worker_count == 3
            pool.start()
            assert pool.worker_count == 3
        finally:
            pool.shutdown()

    def test_queue_full_rejects(self, release):
        pool = ThreadPool(min_workers=1, max_workers=1, queue_size=1, idle_timeout=0.1)
        pool.start()
        try:
            assert pool.submit(release.wait)
            assert wait_for(lambda: pool.busy_workers == 1)

            assert pool.submit(release.wait) is True   # waits in the queue
            assert pool.submit(release.wait) is False  # no room left
            assert pool.pending == 1
        finally:
            release.set()
            pool.shutdown()

    def test_scales_up_when_busy(self, release):
        pool = ThreadPool(min_workers=1, max_workers=3, queue_size=10, idle_timeout=0.1)
        pool.start()
        try:
            pool.submit(release.wait)
            assert wait_for(lambda: pool.busy_workers == 1)

            pool.submit(release.wait)
            assert pool.worker_count == 2
            assert wait_for(lambda: pool.busy_workers == 2)
        finally:
            release.set()
            pool.shutdown()

    def test_never_exceeds_max(self, release):
        pool = ThreadPool(min_workers=1, max_workers=2, queue_size=10, idle_timeout=0.1)
        pool.start()
        try:
            for _ in range(6):
                pool.submit(release.wait)
                time.sleep(0.02)

            assert pool.worker_count <= 2
        finally:
            release.set()
            pool.shutdown()

    def test_failing_task_keeps_worker(self):
        pool = ThreadPool(min_workers=1, max_workers=1, idle_timeout=0.1)
        pool.start()
        done = threading.Event()

        def broken():
            raise RuntimeError("boom")

        try:
            pool.submit(broken)
            pool.submit(done.set)

            assert done.wait(2.0)
            assert wait_for(lambda: pool.stats["tasks"]["failed"] == 1)
            assert wait_for(lambda: pool.stats["tasks"]["completed"] >= 1)
        finally:
            pool.shutdown()

    def test_shutdown_drains_queue(self):
        pool = ThreadPool(min_workers=1, max_workers=1, idle_timeout=0.1)
        pool.start()
        results = []

        for n in range(5):
            pool.submit(lambda n=n: (time.sleep(0.01), results.append(n)))

        pool.shutdown(wait=True, timeout=5.0)

        assert results == [0, 1, 2, 3, 4]
        assert pool.worker_count == 0

    def test_submit_after_shutdown(self):
        pool = ThreadPool(min_workers=1, max_workers=1, idle_timeout=0.1)
        pool.start()
        pool.shutdown()

        with pytest.raises(RuntimeError):
            pool.submit(print)

    def test_submit_before_start(self):
        pool = ThreadPool(min_workers=1, max_workers=1)

        with pytest.raises(RuntimeError):
            pool.submit(print)

    def test_shutdown_without_start(self):
        ThreadPool().shutdown()

    @pytest.mark.parametrize("kwargs", [
        {"min_workers": 0},
        {"min_workers": 4, "max_workers": 2},
        {"queue_size": 0},
    ])
    def test_invalid_bounds(self, kwargs):
        with pytest.raises(ValueError):
            ThreadPool(**kwargs)

    def test_stats(self):
        pool = ThreadPool(min_workers=2, max_workers=4, idle_timeout=0.1)
        pool.start()
        try:
            stats = pool.stats
            assert stats["workers"] == {"total": 2, "busy": 0}
            assert stats["tasks"]["queued"] == 0
        finally:
            pool.shutdown()


class TestTask:
    def test_defaults(self):
        task = Task(func=print)

        assert task.args == ()
        assert task.submitted_at <= time.time()

    def test_worker_states(self):
        assert {s.value for s in WorkerState} == {"idle", "busy", "stopped"}
