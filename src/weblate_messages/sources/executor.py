"""
Execution strategies for remote work.

InlineExecutor runs calls on the caller's thread and hands back completed
futures. BackgroundExecutor queues calls on a single worker thread, so
remote I/O of one message source is serialised and callers never block.
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Hashable

import structlog

logger = structlog.get_logger()


class InlineExecutor:
    """Runs each call immediately and returns an already completed future.

    Like BackgroundExecutor, a failure is logged and kept on the future;
    future.result() raises it.
    """

    is_async = False

    def __init__(self) -> None:
        self.log = logger.bind(component="inline_executor")

    def submit(self, fn: Callable[..., Any], *args: Any, key: Hashable | None = None) -> Future:
        future: Future = Future()
        try:
            future.set_result(fn(*args))
        except Exception as e:
            self.log.exception("executor.task_failed", task=getattr(fn, "__name__", repr(fn)))
            future.set_exception(e)
        return future

    def wait(self, timeout: float | None = None) -> None:
        pass

    def shutdown(self, wait: bool = True) -> None:
        pass


class BackgroundExecutor:
    """Single worker queue with de-duplication of pending keyed calls."""

    is_async = True

    def __init__(self, name: str = "weblate-messages") -> None:
        self._pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix=name)
        self._pending: dict[Hashable, Future] = {}
        self._lock = threading.RLock()
        self.log = logger.bind(component="background_executor")

    def submit(self, fn: Callable[..., Any], *args: Any, key: Hashable | None = None) -> Future:
        """Queue ``fn(*args)``.

        Args:
            fn: Callable to run on the worker
            key: If given and a call with the same key is still pending,
                that call's future is returned instead of queueing again.
        """
        with self._lock:
            if key is not None:
                pending = self._pending.get(key)
                if pending is not None and not pending.done():
                    return pending

            future = self._pool.submit(self._run, fn, args)
            if key is not None:
                self._pending[key] = future
                future.add_done_callback(lambda f, k=key: self._forget(k, f))
            return future

    def wait(self, timeout: float | None = None) -> None:
        """Block until everything queued so far has run."""
        self._pool.submit(lambda: None).result(timeout=timeout)

    def shutdown(self, wait: bool = True) -> None:
        self._pool.shutdown(wait=wait)

    def _run(self, fn: Callable[..., Any], args: tuple) -> Any:
        try:
            return fn(*args)
        except Exception:
            self.log.exception("executor.task_failed", task=getattr(fn, "__name__", repr(fn)))
            raise

    def _forget(self, key: Hashable, future: Future) -> None:
        with self._lock:
            if self._pending.get(key) is future:
                del self._pending[key]
