"""Unit tests for attempt_counter module."""

import threading
from concurrent.futures import ThreadPoolExecutor

from ociprobe.attempt_counter import AttemptCounter


class TestAttemptCounter:
    def test_starts_at_zero(self):
        assert AttemptCounter().current("alice") == 0

    def test_increment_returns_new_value(self):
        counter = AttemptCounter()
        assert counter.increment("alice") == 1
        assert counter.increment("alice") == 2
        assert counter.current("alice") == 2

    def test_tenants_are_independent(self):
        counter = AttemptCounter()
        counter.increment("alice")
        counter.increment("alice")
        counter.increment("bob")

        assert counter.current("alice") == 2
        assert counter.current("bob") == 1

    def test_context_exit_resets(self):
        with AttemptCounter() as counter:
            counter.increment("alice")
        assert counter.current("alice") == 0

    def test_concurrent_increments_are_unique_and_monotonic(self):
        """Every caller observes a distinct value; none are lost."""
        counter = AttemptCounter()
        workers = 8
        per_worker = 250
        start = threading.Barrier(workers)

        def hammer():
            start.wait()
            return [counter.increment("alice") for _ in range(per_worker)]

        with ThreadPoolExecutor(max_workers=workers) as executor:
            results = list(executor.map(lambda _: hammer(), range(workers)))

        observed = [value for values in results for value in values]
        assert sorted(observed) == list(range(1, workers * per_worker + 1))
        assert all(values == sorted(values) for values in results)
        assert counter.current("alice") == workers * per_worker
