"""Per-tenant attempt counter used to correlate log output.

The counter is constructed once at process start (by the CLI) and handed to
every pipeline; it is not module-level state. Counts live in memory only.
"""

import threading
from types import TracebackType


class AttemptCounter:
    """Thread-safe monotonically increasing counter per tenant.

    Example:
        >>> with AttemptCounter() as counter:
        ...     counter.increment("alice")
        1
    """

    def __init__(self):
        self._counts: dict[str, int] = {}
        self._lock = threading.Lock()

    def increment(self, tenant_id: str) -> int:
        """Increment and return the attempt number for a tenant."""
        with self._lock:
            count = self._counts.get(tenant_id, 0) + 1
            self._counts[tenant_id] = count
            return count

    def current(self, tenant_id: str) -> int:
        with self._lock:
            return self._counts.get(tenant_id, 0)

    def reset(self) -> None:
        with self._lock:
            self._counts.clear()

    def __enter__(self) -> "AttemptCounter":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.reset()


__all__ = ["AttemptCounter"]
