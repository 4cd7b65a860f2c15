import asyncio
import threading

import pytest

from broadcast import AsyncioHomeContext, QueueHomeContext, ThreadAffinityExecutor


@pytest.fixture
def home():
    context = QueueHomeContext(name="test-home")
    context.start()
    yield context
    context.stop(timeout=2)


def test_run_here_runs_on_calling_thread():
    executor = ThreadAffinityExecutor()
    try:
        assert executor.run_here(threading.get_ident) == threading.get_ident()
    finally:
        executor.shutdown()


def test_run_on_home_without_context_runs_inline():
    executor = ThreadAffinityExecutor()
    try:
        assert executor.run_on_home(threading.get_ident) == threading.get_ident()
        assert executor.run_on_home(threading.get_ident, wait=False) == threading.get_ident()
    finally:
        executor.shutdown()


def test_run_on_home_marshals_to_home_thread(home):
    executor = ThreadAffinityExecutor(home_context=home)
    try:
        assert executor.run_on_home(threading.get_ident) == home.thread_id
        assert home.thread_id != threading.get_ident()
    finally:
        executor.shutdown()


def test_run_on_home_without_wait_posts(home):
    executor = ThreadAffinityExecutor(home_context=home)
    seen = []
    done = threading.Event()

    def job():
        seen.append(threading.get_ident())
        done.set()

    try:
        assert executor.run_on_home(job, wait=False) is None
        assert done.wait(5)
        assert seen == [home.thread_id]
    finally:
        executor.shutdown()


def test_home_context_is_settable():
    executor = ThreadAffinityExecutor()
    context = QueueHomeContext()
    try:
        executor.home_context = context
        assert executor.home_context is context
        executor.home_context = None
        assert executor.run_on_home(lambda: "inline") == "inline"
    finally:
        executor.shutdown()


def test_run_async_uses_worker_pool():
    executor = ThreadAffinityExecutor(max_workers=2, thread_name_prefix="pool-test")
    try:
        future = executor.run_async(lambda: threading.current_thread().name)
        assert future.result(timeout=5).startswith("pool-test")
    finally:
        executor.shutdown()


def test_run_async_after_shutdown_raises():
    executor = ThreadAffinityExecutor()
    executor.shutdown()
    with pytest.raises(RuntimeError):
        executor.run_async(lambda: None)


def test_send_propagates_exceptions(home):
    def boom():
        raise ValueError("forced_home_error")

    with pytest.raises(ValueError, match="forced_home_error"):
        home.send(boom)


def test_send_from_home_thread_runs_inline(home):
    # A job on the home thread that sends again must not wait on its own queue
    result = home.send(lambda: home.send(threading.get_ident))
    assert result == home.thread_id


def test_run_pending_drains_on_calling_thread():
    context = QueueHomeContext()
    seen = []
    context.post(lambda: seen.append(threading.get_ident()))
    context.post(lambda: seen.append(threading.get_ident()))

    assert context.run_pending() == 2
    assert seen == [threading.get_ident()] * 2
    assert context.owns_current_thread()


def test_failing_work_item_does_not_stop_run_loop():
    context = QueueHomeContext()
    seen = []

    def boom():
        raise RuntimeError("forced")

    context.post(boom)
    context.post(lambda: seen.append("after"))

    assert context.run_pending() == 2
    assert seen == ["after"]


def test_post_after_stop_raises():
    context = QueueHomeContext()
    context.start()
    context.stop(timeout=2)
    with pytest.raises(RuntimeError):
        context.post(lambda: None)


def test_asyncio_home_context_runs_on_loop_thread():
    loop = asyncio.new_event_loop()
    thread = threading.Thread(target=loop.run_forever, daemon=True)
    thread.start()
    context = AsyncioHomeContext(loop)
    try:
        assert not context.owns_current_thread()
        assert context.send(threading.get_ident) == thread.ident
    finally:
        loop.call_soon_threadsafe(loop.stop)
        thread.join(timeout=5)
        loop.close()


def test_post_from_home_thread_runs_inline_when_queue_is_full():
    context = QueueHomeContext(maxsize=1)
    thread = context.start()
    seen = []
    try:

        def fill_then_overflow():
            context.post(lambda: seen.append("queued"))
            context.post(lambda: seen.append("inline"))
            seen.append("item done")

        context.send(fill_then_overflow)
        assert context.send(threading.get_ident) == thread.ident
    finally:
        context.stop(timeout=2)

    assert seen == ["inline", "item done", "queued"]
