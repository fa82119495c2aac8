"""Run probes for several tenants concurrently.

Each tenant gets its own pipeline call on a worker thread; the pipelines share
one AttemptCounter and nothing else. A failing tenant never affects the
others: its exception is captured in its ProbeResult.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass

from ociprobe.log_sanitizer import LogSanitizer
from ociprobe.models import ProvisioningRequest
from ociprobe.pipeline import ProvisioningPipeline

logger = logging.getLogger(__name__)


@dataclass
class ProbeResult:
    """Outcome of one tenant probe."""

    tenant_id: str
    display_name: str
    region: str
    architecture: str
    success: bool
    error_message: str | None = None
    duration: float = 0.0


@dataclass
class ProbeSummary:
    results: list[ProbeResult]
    total_duration: float = 0.0

    @property
    def all_succeeded(self) -> bool:
        return all(r.success for r in self.results) if self.results else True

    def get_failures(self) -> list[ProbeResult]:
        return [r for r in self.results if not r.success]


class ProbeRunner:
    """Fan probe requests out over a thread pool.

    Example:
        >>> runner = ProbeRunner(pipeline, max_workers=4)
        >>> summary = runner.run(requests)
        >>> summary.all_succeeded
        True
    """

    def __init__(self, pipeline: ProvisioningPipeline, max_workers: int = 4):
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        self.pipeline = pipeline
        self.max_workers = max_workers

    def run(self, requests: list[ProvisioningRequest]) -> ProbeSummary:
        """Probe every request in parallel; results are sorted by tenant."""
        if not requests:
            return ProbeSummary(results=[])

        start_time = time.time()
        workers = min(self.max_workers, len(requests))
        logger.info(f"Probing {len(requests)} tenant(s) with {workers} worker(s)")

        results: list[ProbeResult] = []
        with ThreadPoolExecutor(max_workers=workers) as executor:
            future_to_request = {
                executor.submit(self._probe_one, request): request for request in requests
            }
            for future in as_completed(future_to_request):
                results.append(future.result())

        results.sort(key=lambda r: r.tenant_id)
        total_duration = time.time() - start_time
        logger.info(
            f"Completed {len(results)} probe(s) in {total_duration:.2f}s "
            f"(succeeded: {sum(1 for r in results if r.success)}, "
            f"failed: {sum(1 for r in results if not r.success)})"
        )
        return ProbeSummary(results=results, total_duration=total_duration)

    def _probe_one(self, request: ProvisioningRequest) -> ProbeResult:
        start_time = time.time()
        error_message = None
        try:
            success = self.pipeline.provision_and_validate(request)
        except Exception as e:
            success = False
            error_message = LogSanitizer.create_safe_error_message(e)
            logger.debug(f"Probe of {request.tenant_id} failed", exc_info=True)

        return ProbeResult(
            tenant_id=request.tenant_id,
            display_name=request.display_name,
            region=request.region,
            architecture=str(request.architecture),
            success=success,
            error_message=error_message,
            duration=time.time() - start_time,
        )


__all__ = ["ProbeResult", "ProbeRunner", "ProbeSummary"]
