"""Unit tests for teardown module."""

from unittest.mock import Mock

import pytest

from ociprobe.exceptions import ProviderError, TeardownError
from ociprobe.models import LifecycleState, Resource, ResourceKind, SecurityRule
from ociprobe.teardown import ResourceReleaser, TeardownCoordinator

COMPARTMENT = "ocid1.compartment.test"


def handle(name: str, kind: ResourceKind = ResourceKind.NETWORK) -> Resource:
    return Resource(kind=kind, id=f"ocid1.{name}", display_name=name)


class TestTeardownCoordinator:
    """Tests for LIFO compensating cleanup."""

    def test_releases_in_reverse_order(self):
        released = []
        with TeardownCoordinator() as teardown:
            for name in ["network", "gateway", "subnet", "instance"]:
                teardown.track(name, handle(name), lambda name=name: released.append(name))

        assert released == ["instance", "subnet", "gateway", "network"]
        assert teardown.released == released

    def test_pending_lists_reverse_order(self):
        teardown = TeardownCoordinator()
        teardown.track("a", handle("a"), Mock())
        teardown.track("b", handle("b"), Mock())

        assert teardown.pending == ["b", "a"]

    def test_runs_on_exception_and_preserves_it(self):
        """The original failure propagates after cleanup."""
        released = []

        with pytest.raises(ValueError, match="launch failed"):
            with TeardownCoordinator() as teardown:
                teardown.track("network", handle("network"), lambda: released.append("network"))
                raise ValueError("launch failed")

        assert released == ["network"]

    def test_failing_step_does_not_stop_the_rest(self):
        released = []

        def explode():
            raise ProviderError("409 Conflict", operation="delete_subnet", status=409)

        with TeardownCoordinator() as teardown:
            teardown.track("network", handle("network"), lambda: released.append("network"))
            teardown.track("subnet", handle("subnet"), explode)
            teardown.track("instance", handle("instance"), lambda: released.append("instance"))

        assert released == ["instance", "network"]
        assert [failure.step for failure in teardown.failures] == ["subnet"]
        assert isinstance(teardown.failures[0].__cause__, ProviderError)

    def test_strict_raises_first_failure_after_success(self):
        with pytest.raises(TeardownError) as exc_info:
            with TeardownCoordinator(strict=True) as teardown:
                teardown.track("subnet", handle("subnet"), Mock(side_effect=RuntimeError("busy")))

        assert exc_info.value.step == "subnet"

    def test_strict_does_not_replace_original_exception(self):
        with pytest.raises(KeyError):
            with TeardownCoordinator(strict=True) as teardown:
                teardown.track("subnet", handle("subnet"), Mock(side_effect=RuntimeError("busy")))
                raise KeyError("original")

    def test_failure_messages_are_sanitized(self):
        with TeardownCoordinator() as teardown:
            teardown.track("instance", handle("instance"), Mock(side_effect=RuntimeError("password=hunter2")))

        assert "hunter2" not in str(teardown.failures[0])

    def test_teardown_is_idempotent(self):
        release = Mock()
        teardown = TeardownCoordinator()
        teardown.track("network", handle("network"), release)

        teardown.teardown()
        teardown.teardown()

        release.assert_called_once()


class TestResourceReleaser:
    """Tests for release operations against the fake cloud."""

    @pytest.fixture
    def releaser(self, fake_cloud, waiter):
        return ResourceReleaser(fake_cloud, fake_cloud, fake_cloud, waiter)

    def test_delete_network_waits_until_gone(self, fake_cloud, releaser):
        vcn = fake_cloud.add_existing_network("ociprobe-vcn", COMPARTMENT, "10.0.0.0/16")

        releaser.delete_network(vcn)

        assert fake_cloud.get_network(vcn.id) is None
        assert fake_cloud.actions("delete") == ["network"]

    def test_delete_boot_volume_skips_vanished_volume(self, fake_cloud, releaser):
        """Terminating the booted instance already removed the volume."""
        volume = Resource(kind=ResourceKind.BOOT_VOLUME, id="ocid1.bootvolume.gone")

        releaser.delete_boot_volume(volume)

        assert fake_cloud.actions("delete") == []

    def test_delete_boot_volume_deletes_available_volume(self, fake_cloud, releaser):
        volume = fake_cloud.add_existing(
            ResourceKind.BOOT_VOLUME, "ociprobe-boot-volume", COMPARTMENT, availability_domain="AD-1"
        )

        releaser.delete_boot_volume(volume)

        assert fake_cloud.get_boot_volume(volume.id) is None

    def test_delete_boot_volume_waits_for_terminating_volume(self, releaser):
        storage = Mock()
        volume = Resource(kind=ResourceKind.BOOT_VOLUME, id="ocid1.bootvolume.1")
        storage.get_boot_volume.return_value = volume.with_state(LifecycleState.TERMINATING)
        releaser.storage = storage

        releaser.delete_boot_volume(volume)

        storage.delete_boot_volume.assert_not_called()
        storage.wait_for_boot_volume_state.assert_called_once_with(volume, LifecycleState.TERMINATED)

    def test_clear_security_rules_removes_all_rules(self, fake_cloud, releaser):
        group = fake_cloud.add_existing(ResourceKind.SECURITY_GROUP, "ociprobe-nsg", COMPARTMENT)
        fake_cloud.add_security_rules(group.id, [SecurityRule(protocol="6", source="10.0.0.0/16", port=80)])

        releaser.clear_security_rules(group)

        assert fake_cloud.list_security_rules(group.id) == []

    def test_clear_route_rules_empties_table(self, fake_cloud, releaser):
        vcn = fake_cloud.add_existing_network("ociprobe-vcn", COMPARTMENT, "10.0.0.0/16")
        route_table = fake_cloud.get_route_table(vcn.get("default_route_table_id"))

        releaser.clear_route_rules(route_table)

        assert fake_cloud.get_route_table(route_table.id).get("route_rules") == ()
        assert fake_cloud.actions("clear_routes") == ["route_rules"]
