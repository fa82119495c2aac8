"""Instance diagnostics reported after each launch."""

import logging

from ociprobe.capabilities import ComputeCapability, NetworkCapability
from ociprobe.models import InstanceDiagnostics, Resource

logger = logging.getLogger(__name__)


class InstanceReporter:
    """Report network addressing and monitoring status of a running instance."""

    def __init__(self, compute: ComputeCapability, network: NetworkCapability):
        self.compute = compute
        self.network = network

    def report(self, instance: Resource) -> InstanceDiagnostics:
        """Collect and log diagnostics for an instance.

        Uses the first vnic attachment. An instance without attachments
        reports no addresses.
        """
        vnic_ids = self.compute.list_vnic_attachments(instance.compartment_id, instance.id)
        monitoring_enabled = not instance.get("monitoring_disabled", True)

        if not vnic_ids:
            logger.warning(f"Instance {instance.id} has no vnic attachment")
            diagnostics = InstanceDiagnostics(
                instance_id=instance.id,
                vnic_id=None,
                public_ip=None,
                private_ip=None,
                monitoring_enabled=monitoring_enabled,
            )
        else:
            vnic = self.network.get_vnic(vnic_ids[0])
            diagnostics = InstanceDiagnostics(
                instance_id=instance.id,
                vnic_id=vnic.id,
                public_ip=vnic.public_ip,
                private_ip=vnic.private_ip,
                monitoring_enabled=monitoring_enabled,
            )
            logger.info(f"Virtual network interface: {vnic.id}")
            logger.info(f"Public IP: {vnic.public_ip}")
            logger.info(f"Private IP: {vnic.private_ip}")

        logger.info(f"Instance {instance.id} has monitoring {diagnostics.monitoring_status}")
        return diagnostics


__all__ = ["InstanceReporter"]
