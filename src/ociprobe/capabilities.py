"""Capability interfaces consumed by the probe core.

The orchestration engine only talks to these protocols. ociprobe.oci_provider
implements them on top of the OCI Python SDK; tests implement them in memory.

Public API (Studs):
    IdentityDirectory - availability domain listing
    ComputeCapability - shapes, images, instances, vnic attachments
    NetworkCapability - networks, gateways, subnets, security groups, routes
    StorageCapability - boot volumes
    CloudClients - bundle of the four, closed on exit
    TenantSession - compartment + per-region client factory
    CredentialResolver - tenant id -> TenantSession
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from types import TracebackType
from typing import Protocol

from ociprobe.models import (
    BootVolumeSpec,
    Image,
    InternetGatewaySpec,
    LaunchSpec,
    LifecycleState,
    NetworkSpec,
    Resource,
    RouteRule,
    SecurityGroupSpec,
    SecurityRule,
    Shape,
    SubnetSpec,
    Vnic,
)


class IdentityDirectory(Protocol):
    def list_availability_domains(self, compartment_id: str) -> list[str]: ...


class ComputeCapability(Protocol):
    def list_shapes(self, compartment_id: str, availability_domain: str) -> list[Shape]: ...

    def list_images(
        self, compartment_id: str, shape: str, operating_system: str
    ) -> list[Image]: ...

    def launch_instance(self, spec: LaunchSpec) -> Resource: ...

    def get_instance(self, instance_id: str) -> Resource | None: ...

    def terminate_instance(self, instance_id: str) -> None: ...

    def wait_for_instance_state(
        self, instance: Resource, state: LifecycleState, timeout: float | None = None
    ) -> Resource: ...

    def list_vnic_attachments(self, compartment_id: str, instance_id: str) -> list[str]:
        """Return the vnic ids attached to an instance."""
        ...


class NetworkCapability(Protocol):
    def list_networks(
        self, compartment_id: str, display_name: str | None = None
    ) -> list[Resource]: ...

    def create_network(self, spec: NetworkSpec) -> Resource: ...

    def get_network(self, network_id: str) -> Resource | None: ...

    def delete_network(self, network_id: str) -> None: ...

    def list_internet_gateways(
        self, compartment_id: str, display_name: str | None = None, vcn_id: str | None = None
    ) -> list[Resource]: ...

    def create_internet_gateway(self, spec: InternetGatewaySpec) -> Resource: ...

    def get_internet_gateway(self, gateway_id: str) -> Resource | None: ...

    def delete_internet_gateway(self, gateway_id: str) -> None: ...

    def list_subnets(
        self, compartment_id: str, vcn_id: str, display_name: str | None = None
    ) -> list[Resource]: ...

    def create_subnet(self, spec: SubnetSpec) -> Resource: ...

    def get_subnet(self, subnet_id: str) -> Resource | None: ...

    def delete_subnet(self, subnet_id: str) -> None: ...

    def list_security_groups(
        self, compartment_id: str, vcn_id: str, display_name: str | None = None
    ) -> list[Resource]: ...

    def create_security_group(self, spec: SecurityGroupSpec) -> Resource: ...

    def get_security_group(self, group_id: str) -> Resource | None: ...

    def delete_security_group(self, group_id: str) -> None: ...

    def list_security_rules(self, group_id: str) -> list[SecurityRule]: ...

    def add_security_rules(self, group_id: str, rules: Sequence[SecurityRule]) -> None: ...

    def remove_security_rules(self, group_id: str, rule_ids: Sequence[str]) -> None: ...

    def get_route_table(self, route_table_id: str) -> Resource | None:
        """Return the route table; details["route_rules"] holds a tuple of RouteRule."""
        ...

    def update_route_table(self, route_table_id: str, rules: Sequence[RouteRule]) -> None: ...

    def get_vnic(self, vnic_id: str) -> Vnic: ...


class StorageCapability(Protocol):
    def list_boot_volumes(
        self, compartment_id: str, availability_domain: str
    ) -> list[Resource]: ...

    def create_boot_volume(self, spec: BootVolumeSpec) -> Resource: ...

    def get_boot_volume(self, boot_volume_id: str) -> Resource | None: ...

    def delete_boot_volume(self, boot_volume_id: str) -> None: ...

    def wait_for_boot_volume_state(
        self, boot_volume: Resource, state: LifecycleState, timeout: float | None = None
    ) -> Resource: ...


class CloudClients(Protocol):
    """Region-scoped client bundle; exiting the context closes every client."""

    identity: IdentityDirectory
    compute: ComputeCapability
    network: NetworkCapability
    storage: StorageCapability

    def close(self) -> None: ...

    def __enter__(self) -> "CloudClients": ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None: ...


@dataclass(frozen=True)
class TenantSession:
    """Resolved tenant credentials.

    Attributes:
        compartment_id: Compartment that receives every probe resource
        region_client_factory: Opens a CloudClients bundle for a region
    """

    compartment_id: str
    region_client_factory: Callable[[str], CloudClients]


class CredentialResolver(Protocol):
    def resolve(self, tenant_id: str) -> TenantSession: ...


__all__ = [
    "CloudClients",
    "ComputeCapability",
    "CredentialResolver",
    "IdentityDirectory",
    "NetworkCapability",
    "StorageCapability",
    "TenantSession",
]
