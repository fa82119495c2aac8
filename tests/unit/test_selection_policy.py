"""Unit tests for selection_policy module."""

import pytest

from ociprobe.exceptions import (
    NoAvailabilityDomainError,
    NoImageError,
    NoShapeError,
    NoVmShapeError,
    NotFoundError,
)
from ociprobe.models import Architecture, Shape
from ociprobe.selection_policy import DEFAULT_CIDR_BLOCK, SelectionPolicy
from tests.mocks.fake_cloud import FakeCloud

COMPARTMENT = "ocid1.compartment.test"
DOMAIN = "Uocm:AP-TOKYO-1-AD-1"


@pytest.fixture
def policy():
    return SelectionPolicy()


class TestAvailabilityDomain:
    def test_first_domain_is_selected(self, policy):
        cloud = FakeCloud(availability_domains=["AD-1", "AD-2", "AD-3"])
        assert policy.availability_domain(cloud, COMPARTMENT) == "AD-1"

    def test_empty_listing_raises(self, policy):
        cloud = FakeCloud(availability_domains=[])
        with pytest.raises(NoAvailabilityDomainError):
            policy.availability_domain(cloud, COMPARTMENT)


class TestShapeSelection:
    """Tests for architecture preference and fallback."""

    def test_arm_preferred_when_offered(self, policy):
        cloud = FakeCloud()
        shape = policy.shape(cloud, COMPARTMENT, DOMAIN, Architecture.ARM)
        assert shape.name == "VM.Standard.A1.Flex"

    def test_x86_preferred_when_offered(self, policy):
        cloud = FakeCloud()
        shape = policy.shape(cloud, COMPARTMENT, DOMAIN, "x86")
        assert shape.name == "VM.Standard.E2.1.Micro"

    @pytest.mark.parametrize("architecture", [None, "", "SPARC"])
    def test_absent_or_unknown_architecture_means_arm(self, policy, architecture):
        cloud = FakeCloud()
        shape = policy.shape(cloud, COMPARTMENT, DOMAIN, architecture)
        assert shape.name == "VM.Standard.A1.Flex"

    def test_falls_back_to_first_vm_shape(self, policy):
        """Preferred shape missing: first VM shape in listing order wins."""
        cloud = FakeCloud(
            shapes=[
                Shape(name="BM.Standard.E4.128"),
                Shape(name="VM.Standard3.Flex"),
                Shape(name="VM.Standard.E4.Flex"),
            ]
        )
        shape = policy.shape(cloud, COMPARTMENT, DOMAIN, Architecture.ARM)
        assert shape.name == "VM.Standard3.Flex"

    def test_no_shapes_raises(self, policy):
        cloud = FakeCloud(shapes=[])
        with pytest.raises(NoShapeError):
            policy.shape(cloud, COMPARTMENT, DOMAIN, Architecture.ARM)

    def test_only_bare_metal_raises_no_vm_shape(self, policy):
        cloud = FakeCloud(shapes=[Shape(name="BM.Standard2.52")])
        with pytest.raises(NoVmShapeError):
            policy.shape(cloud, COMPARTMENT, DOMAIN, Architecture.X86)

    def test_selection_errors_share_not_found_base(self):
        assert issubclass(NoVmShapeError, NotFoundError)
        assert issubclass(NoImageError, NotFoundError)


class TestImageSelection:
    def test_newest_image_is_selected(self, policy):
        cloud = FakeCloud()
        image = policy.image(cloud, COMPARTMENT, Shape(name="VM.Standard.A1.Flex"))
        assert image.id == "ocid1.image.newest"

    def test_operating_system_filter(self):
        cloud = FakeCloud()
        with pytest.raises(NoImageError, match="Ubuntu"):
            SelectionPolicy(operating_system="Ubuntu").image(
                cloud, COMPARTMENT, Shape(name="VM.Standard.A1.Flex")
            )

    def test_empty_listing_raises(self, policy):
        cloud = FakeCloud(images=[])
        with pytest.raises(NoImageError):
            policy.image(cloud, COMPARTMENT, Shape(name="VM.Standard.A1.Flex"))


class TestNetworkCidr:
    def test_default_when_no_network_exists(self, policy):
        assert policy.network_cidr(FakeCloud(), COMPARTMENT) == DEFAULT_CIDR_BLOCK
        assert DEFAULT_CIDR_BLOCK == "10.0.0.0/16"

    def test_first_existing_network_cidr(self, policy):
        cloud = FakeCloud()
        cloud.add_existing_network("legacy", COMPARTMENT, "172.16.0.0/16")
        cloud.add_existing_network("other", COMPARTMENT, "192.168.0.0/16")

        assert policy.network_cidr(cloud, COMPARTMENT) == "172.16.0.0/16"

    def test_custom_default(self):
        policy = SelectionPolicy(default_cidr_block="10.42.0.0/16")
        assert policy.network_cidr(FakeCloud(), COMPARTMENT) == "10.42.0.0/16"
