"""Reverse-order compensating cleanup.

TeardownCoordinator is a context manager that records every successful
acquisition together with the operation that releases it. On exit, success or
failure, the releases run in exact reverse order. Cleanup is best-effort: a
failing step is logged and recorded, and the remaining steps still run. The
exception that triggered the teardown (if any) is never replaced.

ResourceReleaser supplies the release operations: each one issues the delete
(or clears dependent rules) and then waits for the terminal state.

Public API:
    TeardownCoordinator: LIFO cleanup scope
    ResourceReleaser: delete/terminate-then-wait operations
    TeardownStep: one recorded acquisition
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from types import TracebackType

from ociprobe.capabilities import ComputeCapability, NetworkCapability, StorageCapability
from ociprobe.exceptions import TeardownError
from ociprobe.lifecycle_waiter import LifecycleWaiter
from ociprobe.log_sanitizer import LogSanitizer
from ociprobe.models import LifecycleState, Resource, ResourceKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TeardownStep:
    """An acquired resource and the operation that releases it."""

    name: str
    kind: ResourceKind
    resource_id: str
    release: Callable[[], None]


class TeardownCoordinator:
    """Track acquisitions and release them in reverse order on exit.

    Example:
        >>> with TeardownCoordinator() as teardown:
        ...     vcn = locator.network(spec)
        ...     teardown.track("network", vcn, lambda: releaser.delete_network(vcn))
        ...     ...  # any exception here still deletes the VCN
    """

    def __init__(self, strict: bool = False):
        """Initialize coordinator.

        Args:
            strict: Raise the first TeardownError after a successful run
                when any cleanup step failed
        """
        self.strict = strict
        self._steps: list[TeardownStep] = []
        self.released: list[str] = []
        self.failures: list[TeardownError] = []

    def track(self, name: str, resource: Resource, release: Callable[[], None]) -> Resource:
        """Record an acquisition. Call only after it succeeded.

        Returns:
            The resource, for chaining
        """
        self._steps.append(
            TeardownStep(name=name, kind=resource.kind, resource_id=resource.id, release=release)
        )
        logger.debug(f"Tracking {name}: {resource.id}")
        return resource

    @property
    def pending(self) -> list[str]:
        return [step.name for step in reversed(self._steps)]

    def teardown(self) -> list[TeardownError]:
        """Run every pending release in reverse order.

        Returns:
            Failures recorded during this run
        """
        failures: list[TeardownError] = []
        while self._steps:
            step = self._steps.pop()
            logger.info(f"Tearing down {step.name}: {step.resource_id}")
            try:
                step.release()
                self.released.append(step.name)
            except Exception as e:
                message = LogSanitizer.sanitize(str(e))
                logger.error(f"Failed to tear down {step.name} ({step.resource_id}): {message}")
                error = TeardownError(f"Teardown of {step.name} failed: {message}", step=step.name)
                error.__cause__ = e
                failures.append(error)
        self.failures.extend(failures)
        return failures

    def __enter__(self) -> "TeardownCoordinator":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        failures = self.teardown()
        if failures:
            logger.warning(
                f"Teardown finished with {len(failures)} failure(s): "
                f"{', '.join(f.step for f in failures)}"
            )
        if self.strict and failures and exc_type is None:
            raise failures[0]


class ResourceReleaser:
    """Delete, terminate and clear operations used as teardown releases."""

    def __init__(
        self,
        compute: ComputeCapability,
        network: NetworkCapability,
        storage: StorageCapability,
        waiter: LifecycleWaiter,
    ):
        self.compute = compute
        self.network = network
        self.storage = storage
        self.waiter = waiter

    def terminate_instance(self, instance: Resource) -> None:
        logger.info(f"Terminating instance: {instance.id}")
        self.compute.terminate_instance(instance.id)
        self.compute.wait_for_instance_state(instance, LifecycleState.TERMINATED)
        logger.info(f"Terminated instance: {instance.id}")

    def delete_boot_volume(self, boot_volume: Resource) -> None:
        # Terminating the instance that booted from it normally removes it already
        current = self.storage.get_boot_volume(boot_volume.id)
        if current is None or current.state == LifecycleState.TERMINATED:
            logger.info(f"Boot volume already released: {boot_volume.id}")
            return
        if current.state != LifecycleState.TERMINATING:
            self.storage.delete_boot_volume(boot_volume.id)
        self.storage.wait_for_boot_volume_state(boot_volume, LifecycleState.TERMINATED)
        logger.info(f"Deleted boot volume: {boot_volume.id}")

    def clear_security_rules(self, group: Resource) -> None:
        rule_ids = [rule.id for rule in self.network.list_security_rules(group.id) if rule.id]
        if rule_ids:
            self.network.remove_security_rules(group.id, rule_ids)
        logger.info(f"Removed {len(rule_ids)} security rule(s) from {group.id}")

    def delete_security_group(self, group: Resource) -> None:
        self.network.delete_security_group(group.id)
        self.waiter.wait_for(group, self.network.get_security_group, LifecycleState.TERMINATED)
        logger.info(f"Deleted security group: {group.id}")

    def clear_route_rules(self, route_table: Resource) -> None:
        self.network.update_route_table(route_table.id, [])
        self.waiter.wait_for(route_table, self.network.get_route_table, LifecycleState.AVAILABLE)
        logger.info(f"Cleared route rules from route table: {route_table.id}")

    def delete_internet_gateway(self, gateway: Resource) -> None:
        self.network.delete_internet_gateway(gateway.id)
        self.waiter.wait_for(gateway, self.network.get_internet_gateway, LifecycleState.TERMINATED)
        logger.info(f"Deleted internet gateway: {gateway.id}")

    def delete_subnet(self, subnet: Resource) -> None:
        self.network.delete_subnet(subnet.id)
        self.waiter.wait_for(subnet, self.network.get_subnet, LifecycleState.TERMINATED)
        logger.info(f"Deleted subnet: {subnet.id}")

    def delete_network(self, vcn: Resource) -> None:
        self.network.delete_network(vcn.id)
        self.waiter.wait_for(vcn, self.network.get_network, LifecycleState.TERMINATED)
        logger.info(f"Deleted network: {vcn.id}")


__all__ = ["ResourceReleaser", "TeardownCoordinator", "TeardownStep"]
