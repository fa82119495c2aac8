"""Unit tests for probe_runner module."""

from unittest.mock import Mock

import pytest

from ociprobe.attempt_counter import AttemptCounter
from ociprobe.exceptions import NoImageError
from ociprobe.models import ProvisioningRequest
from ociprobe.pipeline import ProvisioningPipeline
from ociprobe.probe_runner import ProbeRunner
from tests.mocks.fake_cloud import FakeCloud, FakeResolver


def make_request(tenant_id: str) -> ProvisioningRequest:
    return ProvisioningRequest(
        tenant_id=tenant_id,
        display_name=tenant_id.title(),
        region="ap-tokyo-1",
        root_password="pw",  # noqa: S106 - test fixture
    )


class TestProbeRunner:
    def test_rejects_zero_workers(self):
        with pytest.raises(ValueError):
            ProbeRunner(Mock(), max_workers=0)

    def test_empty_request_list(self):
        summary = ProbeRunner(Mock()).run([])
        assert summary.results == []
        assert summary.all_succeeded

    def test_parallel_probes_are_isolated(self, waiter):
        """One tenant's failure does not affect the others."""
        clouds = {
            "alice": FakeCloud(waiter=waiter),
            "bob": FakeCloud(waiter=waiter, images=[]),
            "carol": FakeCloud(waiter=waiter),
        }
        counter = AttemptCounter()
        pipeline = ProvisioningPipeline(FakeResolver(clouds), counter, waiter=waiter)

        summary = ProbeRunner(pipeline, max_workers=3).run(
            [make_request(name) for name in ["carol", "bob", "alice"]]
        )

        assert [r.tenant_id for r in summary.results] == ["alice", "bob", "carol"]
        assert [r.tenant_id for r in summary.get_failures()] == ["bob"]
        assert not summary.all_succeeded
        assert "image" in summary.get_failures()[0].error_message
        assert all(cloud.surviving() == [] for cloud in clouds.values())
        assert all(counter.current(name) == 1 for name in clouds)

    def test_error_message_is_sanitized(self):
        pipeline = Mock()
        pipeline.provision_and_validate.side_effect = NoImageError("password=hunter2")

        summary = ProbeRunner(pipeline).run([make_request("alice")])

        assert "hunter2" not in summary.results[0].error_message
