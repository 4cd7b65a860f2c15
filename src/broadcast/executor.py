"""Thread-affinity execution: run inline, on a worker pool, or on a home thread.

A *home context* stands in for a UI thread's synchronisation context.  Work is
``post``-ed (fire-and-forget) or ``send``-ed (caller blocks until the home
thread ran it).  Two implementations are provided:

* ``QueueHomeContext`` -- a bounded queue drained by the home thread's own run
  loop (``run_forever`` / ``run_pending``).
* ``AsyncioHomeContext`` -- marshals onto a running asyncio event loop.
"""

from __future__ import annotations

import asyncio
import logging
import queue
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

Work = Callable[[], Any]

_STOP = object()


def _run_into(future: Future, fn: Work) -> None:
    if not future.set_running_or_notify_cancel():
        return
    try:
        future.set_result(fn())
    except BaseException as exc:  # handed back to the thread waiting in send()
        future.set_exception(exc)


class HomeContext(ABC):
    """The designated thread that affinity-bound subscribers must run on."""

    @abstractmethod
    def post(self, fn: Work) -> None:
        """Queue ``fn`` for the home thread and return immediately."""
        ...

    @abstractmethod
    def owns_current_thread(self) -> bool:
        ...

    def send(self, fn: Work) -> Any:
        """Run ``fn`` on the home thread and block until it finished.

        Called from the home thread itself, ``fn`` runs inline so the thread
        never waits on its own queue.
        """
        if self.owns_current_thread():
            return fn()
        future: Future = Future()
        self.post(lambda: _run_into(future, fn))
        return future.result()


class QueueHomeContext(HomeContext):
    """Home context backed by a queue that the home thread drains itself.

    The thread that calls ``run_forever``/``run_pending`` becomes the home
    thread.  ``start()`` spawns a dedicated daemon thread for that purpose.
    """

    def __init__(self, maxsize: int = 0, name: str = "broadcast-home"):
        self.name = name
        self._queue: "queue.Queue[Any]" = queue.Queue(maxsize=maxsize)
        self._thread_id: Optional[int] = None
        self._thread: Optional[threading.Thread] = None
        self._stopping = threading.Event()

    @property
    def thread_id(self) -> Optional[int]:
        return self._thread_id

    def owns_current_thread(self) -> bool:
        return self._thread_id is not None and threading.get_ident() == self._thread_id

    def post(self, fn: Work) -> None:
        if self._stopping.is_set():
            raise RuntimeError(f"Home context {self.name!r} is stopped")
        if not self.owns_current_thread():
            self._queue.put(fn)
            return
        # The home thread is the only consumer, so it must never block on its own full queue
        try:
            self._queue.put_nowait(fn)
        except queue.Full:
            self._execute(fn)

    # ------------------------------------------------------------------
    # Run loop (called on the home thread)
    # ------------------------------------------------------------------

    def run_pending(self) -> int:
        """Run everything queued so far without blocking. Returns the number of items run."""
        self._thread_id = threading.get_ident()
        executed = 0
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return executed
            if item is _STOP:
                return executed
            self._execute(item)
            executed += 1

    def run_forever(self, poll_interval: float = 0.1) -> None:
        self._thread_id = threading.get_ident()
        logger.debug("[home] %s run loop started", self.name)
        while not self._stopping.is_set():
            try:
                item = self._queue.get(timeout=poll_interval)
            except queue.Empty:
                continue
            if item is _STOP:
                break
            self._execute(item)
        # Drain whatever was queued before stop() so blocked senders are released
        self.run_pending()
        logger.debug("[home] %s run loop finished", self.name)

    def start(self) -> threading.Thread:
        if self._thread is not None and self._thread.is_alive():
            return self._thread
        self._stopping.clear()
        ready = threading.Event()

        def _main():
            self._thread_id = threading.get_ident()
            ready.set()
            self.run_forever()

        self._thread = threading.Thread(target=_main, name=self.name, daemon=True)
        self._thread.start()
        ready.wait()
        return self._thread

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stopping.set()
        self._queue.put(_STOP)
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    def _execute(self, item: Work) -> None:
        try:
            item()
        except Exception:
            logger.exception("[home] %s work item failed", self.name)


class AsyncioHomeContext(HomeContext):
    """Home context that marshals work onto a running asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop):
        self.loop = loop

    def owns_current_thread(self) -> bool:
        try:
            return asyncio.get_running_loop() is self.loop
        except RuntimeError:
            return False

    def post(self, fn: Work) -> None:
        self.loop.call_soon_threadsafe(fn)


class ThreadAffinityExecutor:
    """Runs units of work inline, on a worker pool, or on the home context."""

    def __init__(
        self,
        max_workers: Optional[int] = None,
        home_context: Optional[HomeContext] = None,
        thread_name_prefix: str = "broadcast",
    ):
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=thread_name_prefix)
        self._home_context = home_context

    @property
    def home_context(self) -> Optional[HomeContext]:
        return self._home_context

    @home_context.setter
    def home_context(self, context: Optional[HomeContext]) -> None:
        self._home_context = context
        logger.debug("[executor] home context set to %r", context)

    def run_here(self, fn: Work) -> Any:
        return fn()

    def run_on_home(self, fn: Work, wait: bool = True) -> Any:
        """Marshal ``fn`` to the home context; inline when none is configured."""
        context = self._home_context
        if context is None:
            return self.run_here(fn)
        if wait:
            return context.send(fn)
        context.post(fn)
        return None

    def run_async(self, fn: Work) -> Future:
        return self._pool.submit(fn)

    def shutdown(self, wait: bool = True) -> None:
        self._pool.shutdown(wait=wait)
