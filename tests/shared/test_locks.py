"""Tests for the per-key lock table."""

import threading

import pytest
from shared.locks import KeyedLocks


class TestKeyedLocks:
    def test_same_key_is_reentrant(self):
        locks = KeyedLocks("test")
        with locks.hold("a"):
            with locks.hold("a"):
                pass

    def test_duplicate_keys_are_acquired_once(self):
        locks = KeyedLocks("test")
        with locks.hold("a", "a", "b"):
            pass
        assert sorted(locks._locks) == ["a", "b"]

    def test_keys_are_normalised_to_strings(self):
        locks = KeyedLocks("test")
        with locks.hold(1):
            pass
        assert "1" in locks._locks

    def test_busy_key_times_out(self):
        locks = KeyedLocks("test", timeout=0.05)
        held = threading.Event()
        done = threading.Event()
        errors = []

        def owner():
            with locks.hold("a"):
                held.set()
                done.wait(1)

        def contender():
            held.wait(1)
            try:
                with locks.hold("a"):
                    pass
            except TimeoutError as exc:
                errors.append(exc)

        first = threading.Thread(target=owner)
        second = threading.Thread(target=contender)
        first.start()
        second.start()
        second.join()
        done.set()
        first.join()

        assert len(errors) == 1
        assert "test lock on a" in str(errors[0])

    def test_other_keys_are_not_blocked(self):
        locks = KeyedLocks("test", timeout=0.05)
        held = threading.Event()
        done = threading.Event()
        entered = []

        def owner():
            with locks.hold("a"):
                held.set()
                done.wait(1)

        thread = threading.Thread(target=owner)
        thread.start()
        held.wait(1)
        with locks.hold("b"):
            entered.append("b")
        done.set()
        thread.join()

        assert entered == ["b"]

    def test_locks_released_after_an_error(self):
        locks = KeyedLocks("test", timeout=0.05)
        with pytest.raises(RuntimeError):
            with locks.hold("a", "b"):
                raise RuntimeError("boom")

        result = []

        def other_thread():
            with locks.hold("a", "b"):
                result.append("acquired")

        thread = threading.Thread(target=other_thread)
        thread.start()
        thread.join()
        assert result == ["acquired"]
