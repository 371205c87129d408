"""Tests for the per-key lock used to serialize slip generation."""

import threading
import time

from payroll_batch.locks import KeyedLock


def test_same_key_serialized():
    locks = KeyedLock()
    active = []
    overlap = []

    def worker():
        with locks.hold((1, "2024-03")):
            active.append(1)
            if len(active) > 1:
                overlap.append(True)
            time.sleep(0.02)
            active.pop()

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert overlap == []


def test_different_keys_do_not_block():
    locks = KeyedLock()
    entered = threading.Event()

    def other():
        with locks.hold((2, "2024-03")):
            entered.set()

    with locks.hold((1, "2024-03")):
        t = threading.Thread(target=other)
        t.start()
        assert entered.wait(timeout=5)
        t.join()


def test_entries_dropped_when_released():
    locks = KeyedLock()
    with locks.hold("a"):
        with locks.hold("b"):
            assert len(locks) == 2
    assert len(locks) == 0
