import threading

import pytest

from ipfs_livestream.sync_guard import SyncGuard


def test_idle_guard_runs_publication():
    guard = SyncGuard()
    calls = []
    assert guard.try_publish(1, lambda: calls.append(guard.in_flight_cursor))
    assert calls == [1]
    assert not guard.in_flight
    assert guard.published_count == 1


def test_concurrent_request_is_dropped_and_recorded():
    guard = SyncGuard()
    entered = threading.Event()
    release = threading.Event()
    second_ran = []

    def slow_publish():
        entered.set()
        release.wait(timeout=5)

    worker = threading.Thread(target=guard.try_publish, args=(1, slow_publish))
    worker.start()
    assert entered.wait(timeout=5)

    assert guard.in_flight
    assert guard.try_publish(2, lambda: second_ran.append(True)) is False
    assert second_ran == []
    assert guard.last_requested_cursor == 2
    assert guard.dropped_count == 1

    release.set()
    worker.join(timeout=5)
    assert not guard.in_flight


def test_only_one_body_runs_at_a_time():
    guard = SyncGuard()
    lock = threading.Lock()
    active = [0]
    peak = [0]
    start = threading.Barrier(8)

    def publish():
        with lock:
            active[0] += 1
            peak[0] = max(peak[0], active[0])
        threading.Event().wait(0.01)
        with lock:
            active[0] -= 1

    def attempt(cursor):
        start.wait()
        for _ in range(20):
            guard.try_publish(cursor, publish)

    threads = [threading.Thread(target=attempt, args=(i + 1,)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    assert peak[0] == 1
    assert guard.published_count + guard.dropped_count == 160


def test_marker_released_when_publication_raises():
    guard = SyncGuard()

    def boom():
        raise RuntimeError("network down")

    with pytest.raises(RuntimeError):
        guard.try_publish(4, boom)
    assert not guard.in_flight
    assert guard.try_publish(5, lambda: None)


def test_pending_work_compares_last_deferred_cursor():
    guard = SyncGuard()
    assert guard.has_pending_work(3)
    assert not guard.has_pending_work(0)

    entered = threading.Event()
    release = threading.Event()

    def hold():
        entered.set()
        release.wait(timeout=5)

    worker = threading.Thread(target=guard.try_publish, args=(2, hold))
    worker.start()
    entered.wait(timeout=5)
    guard.try_publish(3, lambda: None)
    release.set()
    worker.join(timeout=5)

    assert not guard.has_pending_work(3)
    assert guard.has_pending_work(4)
