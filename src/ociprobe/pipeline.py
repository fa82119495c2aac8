"""Provisioning pipeline: build, verify and destroy a probe environment.

One call to ProvisioningPipeline.provision_and_validate() runs the whole
probe for one tenant:

1. Resolve tenant credentials and open region clients (always closed)
2. Select availability domain, shape and network CIDR
3. Create or reuse network, internet gateway (+ default route), subnet,
   security group (+ TCP/80 ingress rule)
4. Select the image and launch an image-sourced instance; wait RUNNING
5. Clone an available boot volume of that image and launch a second
   instance from it; wait RUNNING
6. Tear everything down in reverse order, success or failure

The environment is always ephemeral: a successful return means the tenant
could stand up working instances, and that they are gone again.
"""

import logging
from dataclasses import dataclass

from ociprobe.attempt_counter import AttemptCounter
from ociprobe.capabilities import CloudClients, CredentialResolver
from ociprobe.cloud_init import encode_user_data, render_cloud_config
from ociprobe.diagnostics import InstanceReporter
from ociprobe.exceptions import OciProbeError
from ociprobe.lifecycle_waiter import LifecycleWaiter
from ociprobe.log_sanitizer import LogSanitizer
from ociprobe.models import (
    BootVolumeSpec,
    ComputeEnvironment,
    ImageSource,
    InternetGatewaySpec,
    LaunchSpec,
    LifecycleState,
    NetworkEnvironment,
    NetworkSpec,
    ProvisioningRequest,
    Resource,
    RouteRule,
    SecurityGroupSpec,
    SecurityRule,
    ShapeConfig,
    SubnetSpec,
)
from ociprobe.resource_locator import NetworkLocator, ResourceLocator
from ociprobe.selection_policy import DEFAULT_CIDR_BLOCK, DEFAULT_OPERATING_SYSTEM, SelectionPolicy
from ociprobe.teardown import ResourceReleaser, TeardownCoordinator

logger = logging.getLogger(__name__)

INTERNET_DESTINATION = "0.0.0.0/0"
TCP_PROTOCOL = "6"
HTTP_PORT = 80


@dataclass(frozen=True)
class ProbeSettings:
    """Probe tuning, constructed once from configuration."""

    resource_prefix: str = "ociprobe"
    operating_system: str = DEFAULT_OPERATING_SYSTEM
    default_cidr_block: str = DEFAULT_CIDR_BLOCK
    boot_volume_size_gbs: int = 50
    flex_ocpus: float = 1.0
    flex_memory_in_gbs: float = 1.0
    fault_domain: str = "FAULT-DOMAIN-1"
    wait_timeout_seconds: float = 1200.0
    poll_interval_seconds: float = 5.0
    max_poll_interval_seconds: float = 30.0
    strict_teardown: bool = False

    def __post_init__(self):
        if not self.resource_prefix:
            raise ValueError("resource_prefix must not be empty")
        if self.boot_volume_size_gbs < 50:
            raise ValueError(
                f"boot_volume_size_gbs must be at least 50, got {self.boot_volume_size_gbs}"
            )

    def name(self, suffix: str) -> str:
        return f"{self.resource_prefix}-{suffix}"

    def build_waiter(self) -> LifecycleWaiter:
        return LifecycleWaiter(
            timeout=self.wait_timeout_seconds,
            poll_interval=self.poll_interval_seconds,
            max_poll_interval=self.max_poll_interval_seconds,
        )


class ProvisioningPipeline:
    """Run the provision-verify-destroy probe for one tenant at a time.

    Instances are safe to share between threads: every call builds its own
    clients, environment and teardown scope; only the AttemptCounter is shared.

    Example:
        >>> pipeline = ProvisioningPipeline(resolver, AttemptCounter())
        >>> pipeline.provision_and_validate(request)
        True
    """

    def __init__(
        self,
        resolver: CredentialResolver,
        counter: AttemptCounter,
        settings: ProbeSettings | None = None,
        waiter: LifecycleWaiter | None = None,
    ):
        self.resolver = resolver
        self.counter = counter
        self.settings = settings or ProbeSettings()
        self.waiter = waiter or self.settings.build_waiter()
        self.selection = SelectionPolicy(
            operating_system=self.settings.operating_system,
            default_cidr_block=self.settings.default_cidr_block,
        )

    def provision_and_validate(self, request: ProvisioningRequest) -> bool:
        """Provision, verify and tear down a probe environment.

        Args:
            request: Tenant, region, architecture and root credential

        Returns:
            True when both instances reached RUNNING (everything is torn down
            before returning)

        Raises:
            OciProbeError: The failure that aborted the probe, raised after
                teardown was attempted
        """
        attempt = self.counter.increment(request.tenant_id)
        logger.info(
            f"Tenant [{request.display_name}] starting probe attempt #{attempt} "
            f"in {request.region} ({request.architecture})"
        )

        try:
            session = self.resolver.resolve(request.tenant_id)
            with session.region_client_factory(request.region) as clients:
                self._run(request, session.compartment_id, clients, attempt)
        except OciProbeError as e:
            logger.error(
                LogSanitizer.create_safe_error_message(
                    e, f"Tenant [{request.display_name}] probe attempt #{attempt} failed"
                )
            )
            raise

        logger.info(f"Tenant [{request.display_name}] probe attempt #{attempt} succeeded")
        return True

    def _run(
        self,
        request: ProvisioningRequest,
        compartment_id: str,
        clients: CloudClients,
        attempt: int,
    ) -> None:
        domain = self.selection.availability_domain(clients.identity, compartment_id)
        shape = self.selection.shape(clients.compute, compartment_id, domain, request.architecture)
        cidr_block = self.selection.network_cidr(clients.network, compartment_id)

        network_env = NetworkEnvironment(cidr_block=cidr_block)
        compute_env = ComputeEnvironment(availability_domain=domain, shape=shape)
        releaser = ResourceReleaser(clients.compute, clients.network, clients.storage, self.waiter)
        reporter = InstanceReporter(clients.compute, clients.network)

        with TeardownCoordinator(strict=self.settings.strict_teardown) as teardown:
            self._build_network(clients, compartment_id, network_env, domain, teardown, releaser)

            compute_env.image = self.selection.image(clients.compute, compartment_id, shape)

            logger.info(
                f"Tenant [{request.display_name}] region [{request.region}]: "
                "launching instance from image"
            )
            launch_spec = self._image_launch_spec(
                request, compartment_id, network_env, compute_env, attempt
            )
            compute_env.image_instance = self._launch(
                clients, launch_spec, "instance", teardown, releaser
            )
            reporter.report(compute_env.image_instance)

            logger.info(
                f"Tenant [{request.display_name}] region [{request.region}]: "
                "launching instance from boot volume"
            )
            compute_env.boot_volume = self._clone_boot_volume(
                clients, compartment_id, compute_env, teardown, releaser
            )
            boot_volume_spec = launch_spec.from_boot_volume(
                compute_env.boot_volume.id,
                display_name=self.settings.name("instance-from-boot-volume"),
            )
            compute_env.boot_volume_instance = self._launch(
                clients, boot_volume_spec, "boot_volume_instance", teardown, releaser
            )
            reporter.report(compute_env.boot_volume_instance)

    def _build_network(
        self,
        clients: CloudClients,
        compartment_id: str,
        env: NetworkEnvironment,
        domain: str,
        teardown: TeardownCoordinator,
        releaser: ResourceReleaser,
    ) -> None:
        locator = NetworkLocator(clients.network, ResourceLocator(self.waiter))

        env.network = locator.network(
            NetworkSpec(
                compartment_id=compartment_id,
                display_name=self.settings.name("vcn"),
                cidr_block=env.cidr_block,
            ),
            on_acquired=lambda vcn: teardown.track(
                "network", vcn, lambda: releaser.delete_network(vcn)
            ),
        )

        env.internet_gateway = locator.internet_gateway(
            InternetGatewaySpec(
                compartment_id=compartment_id,
                display_name=self.settings.name("internet-gateway"),
                vcn_id=env.network.id,
            ),
            on_acquired=lambda gateway: teardown.track(
                "internet_gateway", gateway, lambda: releaser.delete_internet_gateway(gateway)
            ),
        )
        self._add_default_route(clients, env.network, env.internet_gateway, teardown, releaser)

        env.subnet = locator.subnet(
            SubnetSpec(
                compartment_id=compartment_id,
                display_name=self.settings.name("subnet"),
                vcn_id=env.network.id,
                cidr_block=env.cidr_block,
                availability_domain=domain,
                route_table_id=env.network.get("default_route_table_id"),
            ),
            on_acquired=lambda subnet: teardown.track(
                "subnet", subnet, lambda: releaser.delete_subnet(subnet)
            ),
        )

        env.security_group = locator.security_group(
            SecurityGroupSpec(
                compartment_id=compartment_id,
                display_name=self.settings.name("nsg"),
                vcn_id=env.network.id,
            ),
            on_acquired=lambda group: teardown.track(
                "security_group", group, lambda: releaser.delete_security_group(group)
            ),
        )
        self._add_ingress_rule(clients, env.security_group, env.cidr_block, teardown, releaser)

    def _add_default_route(
        self,
        clients: CloudClients,
        vcn: Resource,
        gateway: Resource,
        teardown: TeardownCoordinator,
        releaser: ResourceReleaser,
    ) -> None:
        route_table_id = vcn.get("default_route_table_id")
        route_table = clients.network.get_route_table(route_table_id)
        if route_table is None:
            raise OciProbeError(f"Default route table {route_table_id} of {vcn.id} not found")

        rules = list(route_table.get("route_rules", ()))
        logger.info(f"Current route rules in default route table: {rules}")
        rules.append(RouteRule(destination=INTERNET_DESTINATION, network_entity_id=gateway.id))

        clients.network.update_route_table(route_table.id, rules)
        teardown.track("route_rules", route_table, lambda: releaser.clear_route_rules(route_table))
        updated = self.waiter.wait_for(
            route_table, clients.network.get_route_table, LifecycleState.AVAILABLE
        )
        logger.info(f"Updated route rules in default route table: {updated.get('route_rules')}")

    def _add_ingress_rule(
        self,
        clients: CloudClients,
        group: Resource,
        cidr_block: str,
        teardown: TeardownCoordinator,
        releaser: ResourceReleaser,
    ) -> None:
        logger.info(
            f"Current security rules in {group.id}: {clients.network.list_security_rules(group.id)}"
        )
        rule = SecurityRule(
            protocol=TCP_PROTOCOL,
            source=cidr_block,
            port=HTTP_PORT,
            description="Incoming HTTP connections",
        )
        clients.network.add_security_rules(group.id, [rule])
        teardown.track("security_rules", group, lambda: releaser.clear_security_rules(group))
        logger.info(
            f"Updated security rules in {group.id}: {clients.network.list_security_rules(group.id)}"
        )

    def _image_launch_spec(
        self,
        request: ProvisioningRequest,
        compartment_id: str,
        network_env: NetworkEnvironment,
        compute_env: ComputeEnvironment,
        attempt: int,
    ) -> LaunchSpec:
        user_data = encode_user_data(render_cloud_config(request.root_password))
        shape_config = None
        if compute_env.shape.is_flexible:
            shape_config = ShapeConfig(
                ocpus=self.settings.flex_ocpus,
                memory_in_gbs=self.settings.flex_memory_in_gbs,
            )
        return LaunchSpec(
            compartment_id=compartment_id,
            availability_domain=compute_env.availability_domain,
            display_name=self.settings.name("instance"),
            shape=compute_env.shape.name,
            source=ImageSource(
                image_id=compute_env.image.id,
                boot_volume_size_gbs=self.settings.boot_volume_size_gbs,
            ),
            subnet_id=network_env.subnet.id,
            security_group_ids=(network_env.security_group.id,),
            metadata={"user_data": user_data},
            extended_metadata={
                f"{self.settings.resource_prefix}-tenant": request.tenant_id,
                f"{self.settings.resource_prefix}-attempt": str(attempt),
            },
            fault_domain=self.settings.fault_domain,
            shape_config=shape_config,
            monitoring_disabled=False,
        )

    def _launch(
        self,
        clients: CloudClients,
        spec: LaunchSpec,
        step: str,
        teardown: TeardownCoordinator,
        releaser: ResourceReleaser,
    ) -> Resource:
        logger.info(f"Launching {spec.display_name} ({spec.shape}) in {spec.availability_domain}")
        launched = clients.compute.launch_instance(spec)
        teardown.track(step, launched, lambda: releaser.terminate_instance(launched))
        instance = clients.compute.wait_for_instance_state(launched, LifecycleState.RUNNING)
        logger.info(f"Launched instance: {instance.id}")
        return instance

    def _clone_boot_volume(
        self,
        clients: CloudClients,
        compartment_id: str,
        compute_env: ComputeEnvironment,
        teardown: TeardownCoordinator,
        releaser: ResourceReleaser,
    ) -> Resource:
        source_id = None
        for volume in clients.storage.list_boot_volumes(
            compartment_id, compute_env.availability_domain
        ):
            if (
                volume.state == LifecycleState.AVAILABLE
                and volume.get("image_id") == compute_env.image.id
            ):
                source_id = volume.id
                break

        if source_id is None:
            # Left to the provider to reject
            logger.warning(
                f"No available boot volume found for image {compute_env.image.id}; "
                "requesting a clone without a source"
            )
        else:
            logger.info(f"Found boot volume: {source_id}")

        created = clients.storage.create_boot_volume(
            BootVolumeSpec(
                compartment_id=compartment_id,
                availability_domain=compute_env.availability_domain,
                display_name=self.settings.name("boot-volume"),
                source_boot_volume_id=source_id,
            )
        )
        teardown.track("boot_volume", created, lambda: releaser.delete_boot_volume(created))
        logger.info(f"Provisioning new boot volume: {created.id}")
        volume = clients.storage.wait_for_boot_volume_state(created, LifecycleState.AVAILABLE)
        logger.info(f"Provisioned boot volume: {volume.id}")
        return volume


__all__ = ["ProbeSettings", "ProvisioningPipeline"]
