# tests/test_poll_registry.py

from __future__ import annotations

import threading

from gobii_tasks.tasks.poll_registry import PollRegistry


def test_try_acquire_twice_without_release() -> None:
    reg = PollRegistry()

    assert reg.try_acquire("t1") is True
    assert reg.try_acquire("t1") is False
    assert reg.is_active("t1")
    assert len(reg) == 1


def test_release_frees_slot_and_is_idempotent() -> None:
    reg = PollRegistry()
    reg.try_acquire("t1")
    reg.try_acquire("t2")

    reg.release("t1")
    reg.release("t1")
    reg.release("never-acquired")

    assert "t1" not in reg
    assert "t2" in reg
    assert reg.active_ids() == frozenset({"t2"})
    assert reg.try_acquire("t1") is True


def test_concurrent_acquire_has_single_winner() -> None:
    reg = PollRegistry()
    start = threading.Barrier(16)
    wins: list[bool] = []
    wins_lock = threading.Lock()

    def worker() -> None:
        start.wait()
        ok = reg.try_acquire("shared")
        with wins_lock:
            wins.append(ok)

    threads = [threading.Thread(target=worker) for _ in range(16)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert wins.count(True) == 1
    assert len(reg) == 1
