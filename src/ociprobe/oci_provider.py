"""OCI SDK implementation of the capability interfaces.

Each capability wraps one SDK client:

    OciIdentityDirectory -> oci.identity.IdentityClient
    OciCompute           -> oci.core.ComputeClient
    OciNetwork           -> oci.core.VirtualNetworkClient
    OciStorage           -> oci.core.BlockstorageClient

SDK models never leave this module: listings and fetches are converted to
Resource / Shape / Image / Vnic handles, and oci.exceptions.ServiceError is
wrapped in ProviderError. A 404 on a get_* call means the resource is gone and
is reported as None; a 404 on delete/terminate is ignored.
"""

import logging
from collections.abc import Callable, Sequence
from types import TracebackType
from typing import Any

import oci
from oci.core.models import (
    AddNetworkSecurityGroupSecurityRulesDetails,
    AddSecurityRuleDetails,
    BootVolumeSourceFromBootVolumeDetails,
    CreateBootVolumeDetails,
    CreateInternetGatewayDetails,
    CreateNetworkSecurityGroupDetails,
    CreateSubnetDetails,
    CreateVcnDetails,
    CreateVnicDetails,
    InstanceSourceViaBootVolumeDetails,
    InstanceSourceViaImageDetails,
    LaunchInstanceAgentConfigDetails,
    LaunchInstanceDetails,
    LaunchInstanceShapeConfigDetails,
    PortRange,
    RemoveNetworkSecurityGroupSecurityRulesDetails,
    TcpOptions,
    UpdateRouteTableDetails,
)
from oci.core.models import RouteRule as SdkRouteRule

from ociprobe.exceptions import CredentialError, ProviderError
from ociprobe.lifecycle_waiter import LifecycleWaiter
from ociprobe.models import (
    BootVolumeSource,
    BootVolumeSpec,
    Image,
    InternetGatewaySpec,
    LaunchSpec,
    LifecycleState,
    NetworkSpec,
    Resource,
    ResourceKind,
    RouteRule,
    SecurityGroupSpec,
    SecurityRule,
    Shape,
    SubnetSpec,
    Vnic,
)

logger = logging.getLogger(__name__)


def _call(operation: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Invoke an SDK call, wrapping provider errors."""
    try:
        return fn(*args, **kwargs)
    except oci.exceptions.ServiceError as e:
        raise ProviderError(
            f"{operation} failed ({e.status} {e.code}): {e.message}",
            operation=operation,
            status=e.status,
            code=e.code,
        ) from e
    except oci.exceptions.RequestException as e:
        raise ProviderError(f"{operation} failed: {e}", operation=operation) from e


def _get(operation: str, fn: Callable[..., Any], resource_id: str) -> Any | None:
    """Fetch a model by id; None when the provider answers 404."""
    try:
        return _call(operation, fn, resource_id).data
    except ProviderError as e:
        if e.status == 404:
            return None
        raise


def _delete(operation: str, fn: Callable[..., Any], resource_id: str, **kwargs: Any) -> None:
    try:
        _call(operation, fn, resource_id, **kwargs)
    except ProviderError as e:
        if e.status != 404:
            raise
        logger.debug(f"{operation}: {resource_id} already gone")


def _list(operation: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> list[Any]:
    """List every page of an SDK listing; None filters are omitted."""
    filters = {key: value for key, value in kwargs.items() if value is not None}
    return _call(
        operation, oci.pagination.list_call_get_all_results, fn, *args, **filters
    ).data


def _to_resource(kind: ResourceKind, model: Any, **details: Any) -> Resource:
    return Resource(
        kind=kind,
        id=model.id,
        display_name=getattr(model, "display_name", None),
        state=LifecycleState.parse(getattr(model, "lifecycle_state", None)),
        compartment_id=getattr(model, "compartment_id", None),
        details=details,
    )


class OciIdentityDirectory:
    def __init__(self, client: Any):
        self.client = client

    def list_availability_domains(self, compartment_id: str) -> list[str]:
        domains = _call(
            "list_availability_domains", self.client.list_availability_domains, compartment_id
        ).data
        return [domain.name for domain in domains]


class OciCompute:
    """Shapes, images and instances."""

    def __init__(self, client: Any, waiter: LifecycleWaiter):
        self.client = client
        self.waiter = waiter

    def list_shapes(self, compartment_id: str, availability_domain: str) -> list[Shape]:
        shapes = _list(
            "list_shapes",
            self.client.list_shapes,
            compartment_id,
            availability_domain=availability_domain,
        )
        return [
            Shape(
                name=shape.shape,
                processor_description=getattr(shape, "processor_description", None),
                billing_type=getattr(shape, "billing_type", None),
            )
            for shape in shapes
        ]

    def list_images(self, compartment_id: str, shape: str, operating_system: str) -> list[Image]:
        images = _list(
            "list_images",
            self.client.list_images,
            compartment_id,
            operating_system=operating_system,
            shape=shape,
            sort_by="TIMECREATED",
            sort_order="DESC",
        )
        return [
            Image(id=image.id, display_name=image.display_name, operating_system=image.operating_system)
            for image in images
        ]

    def _instance(self, model: Any) -> Resource:
        agent_config = getattr(model, "agent_config", None)
        monitoring_disabled = agent_config is None or bool(agent_config.is_monitoring_disabled)
        source = getattr(model, "source_details", None)
        return _to_resource(
            ResourceKind.INSTANCE,
            model,
            shape=model.shape,
            availability_domain=model.availability_domain,
            fault_domain=getattr(model, "fault_domain", None),
            image_id=getattr(source, "image_id", None),
            monitoring_disabled=monitoring_disabled,
        )

    def launch_instance(self, spec: LaunchSpec) -> Resource:
        if isinstance(spec.source, BootVolumeSource):
            source_details = InstanceSourceViaBootVolumeDetails(
                boot_volume_id=spec.source.boot_volume_id
            )
        else:
            source_details = InstanceSourceViaImageDetails(
                image_id=spec.source.image_id,
                boot_volume_size_in_gbs=spec.source.boot_volume_size_gbs,
            )

        shape_config = None
        if spec.shape_config is not None:
            shape_config = LaunchInstanceShapeConfigDetails(
                ocpus=spec.shape_config.ocpus,
                memory_in_gbs=spec.shape_config.memory_in_gbs,
            )

        details = LaunchInstanceDetails(
            compartment_id=spec.compartment_id,
            availability_domain=spec.availability_domain,
            display_name=spec.display_name,
            shape=spec.shape,
            shape_config=shape_config,
            source_details=source_details,
            create_vnic_details=CreateVnicDetails(
                subnet_id=spec.subnet_id,
                nsg_ids=list(spec.security_group_ids),
                assign_public_ip=True,
            ),
            metadata=dict(spec.metadata),
            extended_metadata=dict(spec.extended_metadata),
            fault_domain=spec.fault_domain,
            agent_config=LaunchInstanceAgentConfigDetails(
                is_monitoring_disabled=spec.monitoring_disabled
            ),
        )
        model = _call("launch_instance", self.client.launch_instance, details).data
        return self._instance(model)

    def get_instance(self, instance_id: str) -> Resource | None:
        model = _get("get_instance", self.client.get_instance, instance_id)
        return self._instance(model) if model is not None else None

    def terminate_instance(self, instance_id: str) -> None:
        _delete(
            "terminate_instance",
            self.client.terminate_instance,
            instance_id,
            preserve_boot_volume=False,
        )

    def wait_for_instance_state(
        self, instance: Resource, state: LifecycleState, timeout: float | None = None
    ) -> Resource:
        return self.waiter.wait_for(instance, self.get_instance, state, timeout=timeout)

    def list_vnic_attachments(self, compartment_id: str, instance_id: str) -> list[str]:
        attachments = _list(
            "list_vnic_attachments",
            self.client.list_vnic_attachments,
            compartment_id,
            instance_id=instance_id,
        )
        return [
            attachment.vnic_id
            for attachment in attachments
            if attachment.vnic_id and attachment.lifecycle_state != "DETACHED"
        ]


class OciNetwork:
    """VCNs, gateways, subnets, security groups, route tables and vnics."""

    def __init__(self, client: Any):
        self.client = client

    # Networks

    def _network(self, model: Any) -> Resource:
        return _to_resource(
            ResourceKind.NETWORK,
            model,
            cidr_block=model.cidr_block,
            default_route_table_id=model.default_route_table_id,
            default_security_list_id=getattr(model, "default_security_list_id", None),
        )

    def list_networks(self, compartment_id: str, display_name: str | None = None) -> list[Resource]:
        vcns = _list(
            "list_vcns", self.client.list_vcns, compartment_id, display_name=display_name
        )
        return [self._network(vcn) for vcn in vcns]

    def create_network(self, spec: NetworkSpec) -> Resource:
        details = CreateVcnDetails(
            compartment_id=spec.compartment_id,
            display_name=spec.display_name,
            cidr_block=spec.cidr_block,
        )
        return self._network(_call("create_vcn", self.client.create_vcn, details).data)

    def get_network(self, network_id: str) -> Resource | None:
        model = _get("get_vcn", self.client.get_vcn, network_id)
        return self._network(model) if model is not None else None

    def delete_network(self, network_id: str) -> None:
        _delete("delete_vcn", self.client.delete_vcn, network_id)

    # Internet gateways

    def _gateway(self, model: Any) -> Resource:
        return _to_resource(
            ResourceKind.INTERNET_GATEWAY,
            model,
            vcn_id=model.vcn_id,
            is_enabled=model.is_enabled,
        )

    def list_internet_gateways(
        self, compartment_id: str, display_name: str | None = None, vcn_id: str | None = None
    ) -> list[Resource]:
        gateways = _list(
            "list_internet_gateways",
            self.client.list_internet_gateways,
            compartment_id,
            vcn_id=vcn_id,
            display_name=display_name,
        )
        return [self._gateway(gateway) for gateway in gateways]

    def create_internet_gateway(self, spec: InternetGatewaySpec) -> Resource:
        details = CreateInternetGatewayDetails(
            compartment_id=spec.compartment_id,
            display_name=spec.display_name,
            vcn_id=spec.vcn_id,
            is_enabled=spec.is_enabled,
        )
        model = _call("create_internet_gateway", self.client.create_internet_gateway, details).data
        return self._gateway(model)

    def get_internet_gateway(self, gateway_id: str) -> Resource | None:
        model = _get("get_internet_gateway", self.client.get_internet_gateway, gateway_id)
        return self._gateway(model) if model is not None else None

    def delete_internet_gateway(self, gateway_id: str) -> None:
        _delete("delete_internet_gateway", self.client.delete_internet_gateway, gateway_id)

    # Subnets

    def _subnet(self, model: Any) -> Resource:
        return _to_resource(
            ResourceKind.SUBNET,
            model,
            vcn_id=model.vcn_id,
            cidr_block=model.cidr_block,
            availability_domain=model.availability_domain,
            route_table_id=model.route_table_id,
        )

    def list_subnets(
        self, compartment_id: str, vcn_id: str, display_name: str | None = None
    ) -> list[Resource]:
        subnets = _list(
            "list_subnets",
            self.client.list_subnets,
            compartment_id,
            vcn_id=vcn_id,
            display_name=display_name,
        )
        return [self._subnet(subnet) for subnet in subnets]

    def create_subnet(self, spec: SubnetSpec) -> Resource:
        details = CreateSubnetDetails(
            compartment_id=spec.compartment_id,
            display_name=spec.display_name,
            vcn_id=spec.vcn_id,
            cidr_block=spec.cidr_block,
            availability_domain=spec.availability_domain,
            route_table_id=spec.route_table_id,
        )
        return self._subnet(_call("create_subnet", self.client.create_subnet, details).data)

    def get_subnet(self, subnet_id: str) -> Resource | None:
        model = _get("get_subnet", self.client.get_subnet, subnet_id)
        return self._subnet(model) if model is not None else None

    def delete_subnet(self, subnet_id: str) -> None:
        _delete("delete_subnet", self.client.delete_subnet, subnet_id)

    # Network security groups

    def _security_group(self, model: Any) -> Resource:
        return _to_resource(ResourceKind.SECURITY_GROUP, model, vcn_id=model.vcn_id)

    def list_security_groups(
        self, compartment_id: str, vcn_id: str, display_name: str | None = None
    ) -> list[Resource]:
        groups = _list(
            "list_network_security_groups",
            self.client.list_network_security_groups,
            compartment_id=compartment_id,
            vcn_id=vcn_id,
            display_name=display_name,
        )
        return [self._security_group(group) for group in groups]

    def create_security_group(self, spec: SecurityGroupSpec) -> Resource:
        details = CreateNetworkSecurityGroupDetails(
            compartment_id=spec.compartment_id,
            display_name=spec.display_name,
            vcn_id=spec.vcn_id,
        )
        model = _call(
            "create_network_security_group", self.client.create_network_security_group, details
        ).data
        return self._security_group(model)

    def get_security_group(self, group_id: str) -> Resource | None:
        model = _get(
            "get_network_security_group", self.client.get_network_security_group, group_id
        )
        return self._security_group(model) if model is not None else None

    def delete_security_group(self, group_id: str) -> None:
        _delete(
            "delete_network_security_group", self.client.delete_network_security_group, group_id
        )

    def list_security_rules(self, group_id: str) -> list[SecurityRule]:
        rules = _list(
            "list_network_security_group_security_rules",
            self.client.list_network_security_group_security_rules,
            group_id,
        )
        result = []
        for rule in rules:
            port = 0
            tcp_options = getattr(rule, "tcp_options", None)
            if tcp_options and tcp_options.destination_port_range:
                port = tcp_options.destination_port_range.min
            result.append(
                SecurityRule(
                    protocol=rule.protocol,
                    source=rule.source,
                    port=port,
                    description=rule.description or "",
                    id=rule.id,
                )
            )
        return result

    def add_security_rules(self, group_id: str, rules: Sequence[SecurityRule]) -> None:
        details = AddNetworkSecurityGroupSecurityRulesDetails(
            security_rules=[
                AddSecurityRuleDetails(
                    direction="INGRESS",
                    protocol=rule.protocol,
                    source=rule.source,
                    source_type="CIDR_BLOCK",
                    tcp_options=TcpOptions(
                        destination_port_range=PortRange(min=rule.port, max=rule.port)
                    ),
                    description=rule.description,
                )
                for rule in rules
            ]
        )
        _call(
            "add_network_security_group_security_rules",
            self.client.add_network_security_group_security_rules,
            group_id,
            details,
        )

    def remove_security_rules(self, group_id: str, rule_ids: Sequence[str]) -> None:
        details = RemoveNetworkSecurityGroupSecurityRulesDetails(security_rule_ids=list(rule_ids))
        _call(
            "remove_network_security_group_security_rules",
            self.client.remove_network_security_group_security_rules,
            group_id,
            details,
        )

    # Route tables

    def get_route_table(self, route_table_id: str) -> Resource | None:
        model = _get("get_route_table", self.client.get_route_table, route_table_id)
        if model is None:
            return None
        rules = tuple(
            RouteRule(
                destination=rule.destination,
                network_entity_id=rule.network_entity_id,
                destination_type=rule.destination_type or "CIDR_BLOCK",
            )
            for rule in model.route_rules or []
        )
        return _to_resource(ResourceKind.ROUTE_TABLE, model, vcn_id=model.vcn_id, route_rules=rules)

    def update_route_table(self, route_table_id: str, rules: Sequence[RouteRule]) -> None:
        details = UpdateRouteTableDetails(
            route_rules=[
                SdkRouteRule(
                    destination=rule.destination,
                    destination_type=rule.destination_type,
                    network_entity_id=rule.network_entity_id,
                )
                for rule in rules
            ]
        )
        _call("update_route_table", self.client.update_route_table, route_table_id, details)

    # Vnics

    def get_vnic(self, vnic_id: str) -> Vnic:
        model = _call("get_vnic", self.client.get_vnic, vnic_id).data
        return Vnic(id=model.id, public_ip=model.public_ip, private_ip=model.private_ip)


class OciStorage:
    """Boot volumes."""

    def __init__(self, client: Any, waiter: LifecycleWaiter):
        self.client = client
        self.waiter = waiter

    def _boot_volume(self, model: Any) -> Resource:
        return _to_resource(
            ResourceKind.BOOT_VOLUME,
            model,
            availability_domain=model.availability_domain,
            image_id=getattr(model, "image_id", None),
            size_in_gbs=getattr(model, "size_in_gbs", None),
        )

    def list_boot_volumes(self, compartment_id: str, availability_domain: str) -> list[Resource]:
        volumes = _list(
            "list_boot_volumes",
            self.client.list_boot_volumes,
            availability_domain=availability_domain,
            compartment_id=compartment_id,
        )
        return [self._boot_volume(volume) for volume in volumes]

    def create_boot_volume(self, spec: BootVolumeSpec) -> Resource:
        source_details = None
        if spec.source_boot_volume_id:
            source_details = BootVolumeSourceFromBootVolumeDetails(id=spec.source_boot_volume_id)
        details = CreateBootVolumeDetails(
            compartment_id=spec.compartment_id,
            availability_domain=spec.availability_domain,
            display_name=spec.display_name,
            source_details=source_details,
            kms_key_id=spec.kms_key_id,
        )
        model = _call("create_boot_volume", self.client.create_boot_volume, details).data
        return self._boot_volume(model)

    def get_boot_volume(self, boot_volume_id: str) -> Resource | None:
        model = _get("get_boot_volume", self.client.get_boot_volume, boot_volume_id)
        return self._boot_volume(model) if model is not None else None

    def delete_boot_volume(self, boot_volume_id: str) -> None:
        _delete("delete_boot_volume", self.client.delete_boot_volume, boot_volume_id)

    def wait_for_boot_volume_state(
        self, boot_volume: Resource, state: LifecycleState, timeout: float | None = None
    ) -> Resource:
        return self.waiter.wait_for(boot_volume, self.get_boot_volume, state, timeout=timeout)


class OciCloudClients:
    """Region-scoped bundle of OCI capabilities.

    Use as a context manager; exiting closes every client's HTTP session.

    Example:
        >>> with OciCloudClients(sdk_config, waiter) as clients:
        ...     clients.identity.list_availability_domains(tenancy_id)
    """

    def __init__(
        self,
        config: dict[str, Any],
        waiter: LifecycleWaiter,
        *,
        identity_client: Any = None,
        compute_client: Any = None,
        network_client: Any = None,
        storage_client: Any = None,
    ):
        """Create SDK clients for config["region"].

        Pre-built clients may be passed in place of the SDK defaults.

        Raises:
            CredentialError: If the SDK rejects the signing configuration
        """
        try:
            self._clients = [
                identity_client or oci.identity.IdentityClient(config),
                compute_client or oci.core.ComputeClient(config),
                network_client or oci.core.VirtualNetworkClient(config),
                storage_client or oci.core.BlockstorageClient(config),
            ]
        except oci.exceptions.ClientError as e:
            raise CredentialError(f"Failed to create OCI clients: {e}") from e

        identity, compute, network, storage = self._clients
        self.region = config.get("region")
        self.identity = OciIdentityDirectory(identity)
        self.compute = OciCompute(compute, waiter)
        self.network = OciNetwork(network)
        self.storage = OciStorage(storage, waiter)
        logger.debug(f"Opened OCI clients for region {self.region}")

    def close(self) -> None:
        for client in self._clients:
            client.base_client.session.close()
        logger.debug(f"Closed OCI clients for region {self.region}")

    def __enter__(self) -> "OciCloudClients":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


__all__ = ["OciCloudClients", "OciCompute", "OciIdentityDirectory", "OciNetwork", "OciStorage"]
