"""Data models for the probe.

Immutable inputs (ProvisioningRequest, LaunchSpec) are frozen dataclasses
validated at construction. Provider resources are represented by the generic
Resource handle so the orchestration code never depends on SDK model classes.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any


class Architecture(StrEnum):
    """Preferred CPU architecture for the probe instance."""

    ARM = "ARM"
    X86 = "X86"

    @property
    def shape_name(self) -> str:
        """Shape identifier preferred for this architecture."""
        return _ARCHITECTURE_SHAPES[self]

    @classmethod
    def parse(cls, value: "str | Architecture | None") -> "Architecture":
        """Parse an architecture preference, defaulting to ARM.

        Args:
            value: Architecture name (case-insensitive), member, or None

        Returns:
            Matching Architecture, or ARM when absent or unrecognised
        """
        if isinstance(value, Architecture):
            return value
        if not value:
            return cls.ARM
        try:
            return cls(value.strip().upper())
        except ValueError:
            return cls.ARM


_ARCHITECTURE_SHAPES = {
    Architecture.ARM: "VM.Standard.A1.Flex",
    Architecture.X86: "VM.Standard.E2.1.Micro",
}


class LifecycleState(StrEnum):
    """Coarse-grained provisioning status reported by the provider."""

    PROVISIONING = "PROVISIONING"
    AVAILABLE = "AVAILABLE"
    STARTING = "STARTING"
    RUNNING = "RUNNING"
    STOPPING = "STOPPING"
    STOPPED = "STOPPED"
    UPDATING = "UPDATING"
    TERMINATING = "TERMINATING"
    TERMINATED = "TERMINATED"
    FAULTY = "FAULTY"
    FAILED = "FAILED"
    UNKNOWN = "UNKNOWN"

    @property
    def is_failure(self) -> bool:
        return self in (LifecycleState.FAILED, LifecycleState.FAULTY)

    @classmethod
    def parse(cls, value: str | None) -> "LifecycleState":
        if not value:
            return cls.UNKNOWN
        try:
            return cls(value.upper())
        except ValueError:
            return cls.UNKNOWN


class ResourceKind(StrEnum):
    """Kinds of provider resources the probe acquires."""

    NETWORK = "network"
    INTERNET_GATEWAY = "internet_gateway"
    ROUTE_TABLE = "route_table"
    SUBNET = "subnet"
    SECURITY_GROUP = "security_group"
    SECURITY_RULES = "security_rules"
    ROUTE_RULES = "route_rules"
    INSTANCE = "instance"
    BOOT_VOLUME = "boot_volume"


@dataclass(frozen=True)
class Resource:
    """Provider resource handle.

    Attributes:
        kind: Resource kind
        id: Provider-assigned identifier (OCID)
        display_name: Display name used for idempotent lookup
        state: Lifecycle state at the time the handle was fetched
        compartment_id: Owning compartment
        details: Extra provider attributes (cidr_block, default_route_table_id, ...)
    """

    kind: ResourceKind
    id: str
    display_name: str | None = None
    state: LifecycleState = LifecycleState.UNKNOWN
    compartment_id: str | None = None
    details: Mapping[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        return self.details.get(key, default)

    def with_state(self, state: LifecycleState) -> "Resource":
        return replace(self, state=state)


@dataclass(frozen=True)
class Shape:
    """Compute shape offered in an availability domain."""

    name: str
    processor_description: str | None = None
    billing_type: str | None = None

    @property
    def is_vm(self) -> bool:
        return self.name.startswith("VM")

    @property
    def is_flexible(self) -> bool:
        return self.name.endswith(".Flex")


@dataclass(frozen=True)
class Image:
    """Machine image."""

    id: str
    display_name: str
    operating_system: str | None = None


@dataclass(frozen=True)
class SecurityRule:
    """Ingress rule attached to a security group."""

    protocol: str
    source: str
    port: int
    description: str = ""
    id: str | None = None


@dataclass(frozen=True)
class RouteRule:
    """Route table entry."""

    destination: str
    network_entity_id: str
    destination_type: str = "CIDR_BLOCK"


@dataclass(frozen=True)
class Vnic:
    """Virtual network interface attached to an instance."""

    id: str
    public_ip: str | None = None
    private_ip: str | None = None


@dataclass(frozen=True)
class ProvisioningRequest:
    """Immutable input for one probe invocation."""

    tenant_id: str
    display_name: str
    region: str
    architecture: Architecture = Architecture.ARM
    root_password: str = field(default="", repr=False)

    def __post_init__(self):
        if not self.tenant_id:
            raise ValueError("tenant_id is required")
        if not self.region:
            raise ValueError("region is required")
        if not self.root_password:
            raise ValueError("root_password is required")
        object.__setattr__(self, "architecture", Architecture.parse(self.architecture))


@dataclass(frozen=True)
class ImageSource:
    image_id: str
    boot_volume_size_gbs: int = 50


@dataclass(frozen=True)
class BootVolumeSource:
    boot_volume_id: str


@dataclass(frozen=True)
class ShapeConfig:
    ocpus: float = 1.0
    memory_in_gbs: float = 1.0


@dataclass(frozen=True)
class LaunchSpec:
    """Instance launch request, built once per launch and never mutated."""

    compartment_id: str
    availability_domain: str
    display_name: str
    shape: str
    source: ImageSource | BootVolumeSource
    subnet_id: str
    security_group_ids: tuple[str, ...]
    metadata: Mapping[str, str] = field(default_factory=dict)
    extended_metadata: Mapping[str, Any] = field(default_factory=dict)
    fault_domain: str | None = "FAULT-DOMAIN-1"
    shape_config: ShapeConfig | None = None
    monitoring_disabled: bool = False

    def __post_init__(self):
        if not self.security_group_ids:
            raise ValueError("at least one security group id is required")
        if self.shape_config is not None and not self.shape.endswith(".Flex"):
            raise ValueError(f"shape_config is only valid for flexible shapes, got {self.shape}")

    def from_boot_volume(self, boot_volume_id: str, display_name: str | None = None) -> "LaunchSpec":
        """Copy of this spec sourced from a boot volume, monitoring disabled."""
        return replace(
            self,
            source=BootVolumeSource(boot_volume_id=boot_volume_id),
            display_name=display_name or self.display_name,
            monitoring_disabled=True,
        )


@dataclass(frozen=True)
class NetworkSpec:
    compartment_id: str
    display_name: str
    cidr_block: str


@dataclass(frozen=True)
class InternetGatewaySpec:
    compartment_id: str
    display_name: str
    vcn_id: str
    is_enabled: bool = True


@dataclass(frozen=True)
class SubnetSpec:
    """Subnet bound to one availability domain.

    Setting availability_domain to None creates a regional subnet.
    """

    compartment_id: str
    display_name: str
    vcn_id: str
    cidr_block: str
    availability_domain: str | None
    route_table_id: str | None = None


@dataclass(frozen=True)
class SecurityGroupSpec:
    compartment_id: str
    display_name: str
    vcn_id: str


@dataclass(frozen=True)
class BootVolumeSpec:
    """Point-in-time copy of an existing boot volume.

    source_boot_volume_id may be None when no matching source was found; the
    provider rejects such a request.
    """

    compartment_id: str
    availability_domain: str
    display_name: str
    source_boot_volume_id: str | None
    kms_key_id: str | None = None


@dataclass
class NetworkEnvironment:
    """Network resources acquired during one probe (absent members stay None)."""

    cidr_block: str
    network: Resource | None = None
    internet_gateway: Resource | None = None
    subnet: Resource | None = None
    security_group: Resource | None = None


@dataclass
class ComputeEnvironment:
    """Compute selections and resources acquired during one probe."""

    availability_domain: str
    shape: Shape
    image: Image | None = None
    image_instance: Resource | None = None
    boot_volume: Resource | None = None
    boot_volume_instance: Resource | None = None


@dataclass(frozen=True)
class InstanceDiagnostics:
    """Health report for a running instance."""

    instance_id: str
    vnic_id: str | None
    public_ip: str | None
    private_ip: str | None
    monitoring_enabled: bool

    @property
    def monitoring_status(self) -> str:
        return "Enabled" if self.monitoring_enabled else "Disabled"


__all__ = [
    "Architecture",
    "BootVolumeSource",
    "BootVolumeSpec",
    "ComputeEnvironment",
    "Image",
    "ImageSource",
    "InstanceDiagnostics",
    "InternetGatewaySpec",
    "LaunchSpec",
    "LifecycleState",
    "NetworkEnvironment",
    "NetworkSpec",
    "ProvisioningRequest",
    "Resource",
    "ResourceKind",
    "RouteRule",
    "SecurityGroupSpec",
    "SecurityRule",
    "Shape",
    "ShapeConfig",
    "SubnetSpec",
    "Vnic",
]
