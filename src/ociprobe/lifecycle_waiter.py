"""Generic wait-for-lifecycle-state primitive.

One waiter serves every resource kind: callers pass the handle, a re-fetch
function and the target state. The waiter owns the poll cadence (doubling up
to a cap, like the SDK waiters) but never retries a failed fetch; fetch errors
propagate unchanged.
"""

import logging
import time
from collections.abc import Callable

from ociprobe.exceptions import LifecycleError, LifecycleTimeoutError
from ociprobe.models import LifecycleState, Resource

logger = logging.getLogger(__name__)

Refetch = Callable[[str], Resource | None]

DEFAULT_TIMEOUT = 1200.0
DEFAULT_POLL_INTERVAL = 5.0
DEFAULT_MAX_POLL_INTERVAL = 30.0


class LifecycleWaiter:
    """Block until a resource reaches a target lifecycle state.

    Example:
        >>> waiter = LifecycleWaiter(timeout=600)
        >>> vcn = waiter.wait_for(created, network.get_network, LifecycleState.AVAILABLE)
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        max_poll_interval: float = DEFAULT_MAX_POLL_INTERVAL,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize waiter.

        Args:
            timeout: Default wait budget in seconds
            poll_interval: First delay between polls in seconds
            max_poll_interval: Cap for the doubling delay
            sleep: Sleep function (injectable for tests)
            clock: Monotonic clock (injectable for tests)
        """
        if timeout <= 0:
            raise ValueError(f"timeout must be positive, got {timeout}")
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {poll_interval}")
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.max_poll_interval = max(max_poll_interval, poll_interval)
        self._sleep = sleep
        self._clock = clock

    def wait_for(
        self,
        resource: Resource,
        refetch: Refetch,
        target_state: LifecycleState,
        timeout: float | None = None,
    ) -> Resource:
        """Poll until the resource reaches target_state.

        Args:
            resource: Handle of the resource to watch
            refetch: Returns the current handle by id, or None once the
                provider no longer knows the resource
            target_state: State to wait for
            timeout: Wait budget in seconds (defaults to the waiter's)

        Returns:
            The re-fetched resource in target_state (for a vanished resource
            waited to TERMINATED, the last handle marked TERMINATED)

        Raises:
            LifecycleError: If the resource fails, vanishes, or terminates
                while waiting for another state
            LifecycleTimeoutError: If the budget is exhausted
        """
        budget = self.timeout if timeout is None else timeout
        deadline = self._clock() + budget
        delay = self.poll_interval
        label = f"{resource.kind} {resource.id}"
        last_state: LifecycleState | None = None

        logger.debug(f"Waiting for {label} to reach {target_state} (timeout: {budget:.0f}s)")

        while True:
            current = refetch(resource.id)

            if current is None:
                if target_state == LifecycleState.TERMINATED:
                    logger.info(f"{label} is gone (treated as {target_state})")
                    return resource.with_state(LifecycleState.TERMINATED)
                raise LifecycleError(f"{label} disappeared while waiting for {target_state}")

            if current.state != last_state:
                logger.debug(f"{label} state: {current.state}")
                last_state = current.state

            if current.state == target_state:
                logger.info(f"{label} reached {target_state}")
                return current

            if current.state.is_failure or current.state == LifecycleState.TERMINATED:
                raise LifecycleError(
                    f"{label} entered {current.state} while waiting for {target_state}"
                )

            remaining = deadline - self._clock()
            if remaining <= 0:
                raise LifecycleTimeoutError(
                    f"{label} did not reach {target_state} within {budget:.0f}s "
                    f"(last state: {current.state})"
                )

            self._sleep(min(delay, remaining))
            delay = min(delay * 2, self.max_poll_interval)


__all__ = ["LifecycleWaiter", "Refetch"]
