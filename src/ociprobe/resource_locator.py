"""Idempotent "find by name, else create" acquisition of named resources.

Lookup by display name always precedes creation, so re-running the probe in a
compartment that still holds a leftover resource reuses it instead of
duplicating it. A match is returned verbatim: its configuration is not
compared with the requested spec.
"""

import logging
from collections.abc import Callable
from typing import Any

from ociprobe.capabilities import NetworkCapability
from ociprobe.lifecycle_waiter import LifecycleWaiter
from ociprobe.models import (
    InternetGatewaySpec,
    LifecycleState,
    NetworkSpec,
    Resource,
    ResourceKind,
    SecurityGroupSpec,
    SubnetSpec,
)

logger = logging.getLogger(__name__)

OnAcquired = Callable[[Resource], Any] | None


class ResourceLocator:
    """Locate a resource by name or create it and wait until it is available."""

    def __init__(self, waiter: LifecycleWaiter):
        self.waiter = waiter

    def locate_or_create(
        self,
        kind: ResourceKind,
        compartment: str,
        name: str,
        spec: Any,
        *,
        list_fn: Callable[[], list[Resource]],
        create_fn: Callable[[Any], Resource],
        get_fn: Callable[[str], Resource | None],
        on_acquired: OnAcquired = None,
    ) -> Resource:
        """Return the first resource named `name`, creating it if none exists.

        Args:
            kind: Resource kind (for logging)
            compartment: Compartment searched and created into
            name: Display name to match
            spec: Creation spec passed to create_fn
            list_fn: Lists existing resources filtered by compartment and name
            create_fn: Issues the create call
            get_fn: Re-fetches a resource by id for the availability wait
            on_acquired: Called once with the handle as soon as it exists
                (before the availability wait for new resources)

        Returns:
            Existing or newly created (AVAILABLE) resource

        Raises:
            ProviderError: If a provider call fails
            LifecycleTimeoutError: If the new resource never becomes available
        """
        existing = list_fn()
        if existing:
            found = existing[0]
            logger.info(f"Reusing existing {kind} '{name}': {found.id}")
            if on_acquired:
                on_acquired(found)
            return found

        logger.info(f"Creating {kind} '{name}' in compartment {compartment}")
        created = create_fn(spec)
        if on_acquired:
            on_acquired(created)
        resource = self.waiter.wait_for(created, get_fn, LifecycleState.AVAILABLE)
        logger.info(f"Created {kind}: {resource.id}")
        return resource


class NetworkLocator:
    """Binds ResourceLocator to the four named network resource kinds."""

    def __init__(self, network: NetworkCapability, locator: ResourceLocator):
        self.client = network
        self.locator = locator

    def network(self, spec: NetworkSpec, on_acquired: OnAcquired = None) -> Resource:
        return self.locator.locate_or_create(
            ResourceKind.NETWORK,
            spec.compartment_id,
            spec.display_name,
            spec,
            list_fn=lambda: self.client.list_networks(
                spec.compartment_id, display_name=spec.display_name
            ),
            create_fn=self.client.create_network,
            get_fn=self.client.get_network,
            on_acquired=on_acquired,
        )

    def internet_gateway(
        self, spec: InternetGatewaySpec, on_acquired: OnAcquired = None
    ) -> Resource:
        return self.locator.locate_or_create(
            ResourceKind.INTERNET_GATEWAY,
            spec.compartment_id,
            spec.display_name,
            spec,
            list_fn=lambda: self.client.list_internet_gateways(
                spec.compartment_id, display_name=spec.display_name
            ),
            create_fn=self.client.create_internet_gateway,
            get_fn=self.client.get_internet_gateway,
            on_acquired=on_acquired,
        )

    def subnet(self, spec: SubnetSpec, on_acquired: OnAcquired = None) -> Resource:
        return self.locator.locate_or_create(
            ResourceKind.SUBNET,
            spec.compartment_id,
            spec.display_name,
            spec,
            # Match the display name exactly
            list_fn=lambda: [
                subnet
                for subnet in self.client.list_subnets(
                    spec.compartment_id, spec.vcn_id, display_name=spec.display_name
                )
                if subnet.display_name == spec.display_name
            ],
            create_fn=self.client.create_subnet,
            get_fn=self.client.get_subnet,
            on_acquired=on_acquired,
        )

    def security_group(self, spec: SecurityGroupSpec, on_acquired: OnAcquired = None) -> Resource:
        return self.locator.locate_or_create(
            ResourceKind.SECURITY_GROUP,
            spec.compartment_id,
            spec.display_name,
            spec,
            list_fn=lambda: self.client.list_security_groups(
                spec.compartment_id, spec.vcn_id, display_name=spec.display_name
            ),
            create_fn=self.client.create_security_group,
            get_fn=self.client.get_security_group,
            on_acquired=on_acquired,
        )


__all__ = ["NetworkLocator", "ResourceLocator"]
