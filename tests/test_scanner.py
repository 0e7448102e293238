import socket
import threading
import time

import pytest

from net_scanner.scanner import iter_jobs, probe_port, run_bounded


@pytest.fixture
def listener():
    srv = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    srv.bind(("127.0.0.1", 0))
    srv.listen(8)
    yield srv.getsockname()[1]
    srv.close()


@pytest.fixture
def closed_port():
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    s.bind(("127.0.0.1", 0))
    port = s.getsockname()[1]
    s.close()
    return port


def test_probe_port_open(listener):
    assert probe_port("127.0.0.1", listener, 1.0) is True


def test_probe_port_closed(closed_port):
    assert probe_port("127.0.0.1", closed_port, 1.0) is False


def test_iter_jobs():
    assert list(iter_jobs(["a", "b"], [1, 2])) == [("a", 1), ("a", 2), ("b", 1), ("b", 2)]


def test_run_bounded_collects_every_result():
    seen_threads = set()

    def on_done(job, result):
        seen_threads.add(threading.current_thread())

    results = run_bounded(range(250), lambda x: x * 2, workers=8, on_done=on_done)
    assert results == {x: x * 2 for x in range(250)}
    # callbacks only ever run on the collecting thread
    assert seen_threads == {threading.current_thread()}


def test_run_bounded_empty():
    assert run_bounded([], lambda x: x, workers=4) == {}


def test_run_bounded_pre_cancelled_runs_nothing():
    calls = []
    cancel = threading.Event()
    cancel.set()
    results = run_bounded(range(10), calls.append, workers=2, cancel=cancel)
    assert results == {}
    assert calls == []


def test_run_bounded_cancel_mid_run():
    cancel = threading.Event()

    def work(x):
        time.sleep(0.02)
        return x

    def on_done(job, result):
        cancel.set()

    results = run_bounded(range(40), work, workers=1, on_done=on_done, cancel=cancel)
    assert 1 <= len(results) < 40


def test_run_bounded_keyboard_interrupt_cancels():
    cancel = threading.Event()

    def work(x):
        if x == 0:
            raise KeyboardInterrupt
        time.sleep(0.01)
        return x

    results = run_bounded(range(20), work, workers=1, cancel=cancel)
    assert cancel.is_set()
    assert 0 not in results


def test_run_bounded_keyboard_interrupt_without_cancel_propagates():
    def work(x):
        raise KeyboardInterrupt

    with pytest.raises(KeyboardInterrupt):
        run_bounded(range(3), work, workers=1)


def test_run_bounded_keep_drops_unwanted_results():
    seen = []
    results = run_bounded(
        range(100), lambda x: x % 10 == 0, workers=4, on_done=lambda job, r: seen.append(job), keep=bool
    )
    assert sorted(results) == list(range(0, 100, 10))
    assert all(results.values())
    # every job still reports completion
    assert sorted(seen) == list(range(100))


def test_run_bounded_accepts_a_lazy_iterable():
    jobs = (x for x in range(30))
    assert run_bounded(jobs, lambda x: x, workers=2) == {x: x for x in range(30)}
