"""Selection of availability domain, shape, image and network CIDR.

Every choice is made from provider-returned candidate lists without further
ranking: the first availability domain, the preferred architecture's shape if
offered (else the first VM shape), and the newest image.
"""

import logging

from ociprobe.capabilities import ComputeCapability, IdentityDirectory, NetworkCapability
from ociprobe.exceptions import (
    NoAvailabilityDomainError,
    NoImageError,
    NoShapeError,
    NoVmShapeError,
)
from ociprobe.models import Architecture, Image, Shape

logger = logging.getLogger(__name__)

DEFAULT_OPERATING_SYSTEM = "Oracle Linux"
DEFAULT_CIDR_BLOCK = "10.0.0.0/16"


class SelectionPolicy:
    """Pick compute placement and sizing from provider listings."""

    def __init__(
        self,
        operating_system: str = DEFAULT_OPERATING_SYSTEM,
        default_cidr_block: str = DEFAULT_CIDR_BLOCK,
    ):
        self.operating_system = operating_system
        self.default_cidr_block = default_cidr_block

    def availability_domain(self, identity: IdentityDirectory, compartment_id: str) -> str:
        """Return the first availability domain of the compartment.

        Raises:
            NoAvailabilityDomainError: If the listing is empty
        """
        domains = identity.list_availability_domains(compartment_id)
        if not domains:
            raise NoAvailabilityDomainError(
                f"No availability domain found for compartment {compartment_id}"
            )
        logger.info(f"Found availability domain: {domains[0]}")
        return domains[0]

    def shape(
        self,
        compute: ComputeCapability,
        compartment_id: str,
        availability_domain: str,
        architecture: Architecture | str | None = None,
    ) -> Shape:
        """Select a VM shape, preferring the architecture's shape.

        Args:
            compute: Compute capability
            compartment_id: Compartment id
            availability_domain: Domain to list shapes for
            architecture: Preference; absent or unrecognised means ARM

        Returns:
            Preferred shape if offered, otherwise the first VM shape in listing order

        Raises:
            NoShapeError: If no shapes are offered
            NoVmShapeError: If no VM shapes are offered
        """
        shapes = compute.list_shapes(compartment_id, availability_domain)
        if not shapes:
            raise NoShapeError(f"No available shape was found in {availability_domain}")

        vm_shapes = [shape for shape in shapes if shape.is_vm]
        if not vm_shapes:
            raise NoVmShapeError(f"No available VM shape was found in {availability_domain}")

        preferred = Architecture.parse(architecture)
        for shape in vm_shapes:
            if shape.name == preferred.shape_name:
                logger.info(f"Selected shape {shape.name} for architecture {preferred}")
                return shape
            logger.debug(f"Skipping shape {shape.name} (billing: {shape.billing_type})")

        fallback = vm_shapes[0]
        logger.info(
            f"Shape {preferred.shape_name} not offered for {preferred}, "
            f"falling back to {fallback.name}"
        )
        return fallback

    def image(self, compute: ComputeCapability, compartment_id: str, shape: Shape) -> Image:
        """Select the newest image for the shape and operating system.

        Raises:
            NoImageError: If no image matches
        """
        images = compute.list_images(compartment_id, shape.name, self.operating_system)
        if not images:
            raise NoImageError(
                f"No available {self.operating_system} image was found for shape {shape.name}"
            )
        # Listings are returned newest first
        image = images[0]
        logger.info(f"Found image: {image.display_name}")
        return image

    def network_cidr(self, network: NetworkCapability, compartment_id: str) -> str:
        """CIDR block of the first existing network, or the default."""
        networks = network.list_networks(compartment_id)
        for vcn in networks:
            logger.debug(f"Network {vcn.display_name} ({vcn.id}): {vcn.get('cidr_block')}")
        if networks and networks[0].get("cidr_block"):
            return networks[0].get("cidr_block")
        logger.info(f"No existing network, using default CIDR {self.default_cidr_block}")
        return self.default_cidr_block


__all__ = ["DEFAULT_CIDR_BLOCK", "DEFAULT_OPERATING_SYSTEM", "SelectionPolicy"]
