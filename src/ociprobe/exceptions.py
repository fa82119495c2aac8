"""Exception hierarchy for ociprobe.

All errors raised by the probe derive from OciProbeError so callers can catch
one type. Provider SDK errors are wrapped at the adapter boundary
(ociprobe.oci_provider) and never leak past it.
"""


class OciProbeError(Exception):
    """Base exception for all probe failures."""

    pass


class ConfigError(OciProbeError):
    """Raised when configuration cannot be loaded or is invalid."""

    pass


class CredentialError(OciProbeError):
    """Raised when tenant credentials cannot be resolved."""

    pass


class NotFoundError(OciProbeError):
    """Raised when the provider returns no usable candidate."""

    pass


class NoAvailabilityDomainError(NotFoundError):
    """No availability domain is visible to the compartment."""

    pass


class NoShapeError(NotFoundError):
    """No compute shape is offered in the availability domain."""

    pass


class NoVmShapeError(NotFoundError):
    """Shapes exist but none is a virtual-machine shape."""

    pass


class NoImageError(NotFoundError):
    """No image matches the selected shape and operating system."""

    pass


class ProviderError(OciProbeError):
    """Raised when an upstream provider call fails.

    Attributes:
        operation: Capability operation that failed (e.g. "create_vcn")
        status: HTTP status reported by the provider, if any
        code: Provider error code, if any
    """

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        status: int | None = None,
        code: str | None = None,
    ):
        super().__init__(message)
        self.operation = operation
        self.status = status
        self.code = code


class LifecycleTimeoutError(OciProbeError, TimeoutError):
    """Raised when a resource does not reach its target state in time."""

    pass


class LifecycleError(LifecycleTimeoutError):
    """Raised when a resource enters a failure or unexpected terminal state."""

    pass


class TeardownError(OciProbeError):
    """Raised (or recorded) when a compensating cleanup step fails.

    Attributes:
        step: Name of the teardown step that failed
    """

    def __init__(self, message: str, step: str):
        super().__init__(message)
        self.step = step


__all__ = [
    "ConfigError",
    "CredentialError",
    "LifecycleError",
    "LifecycleTimeoutError",
    "NoAvailabilityDomainError",
    "NoImageError",
    "NoShapeError",
    "NoVmShapeError",
    "NotFoundError",
    "OciProbeError",
    "ProviderError",
    "TeardownError",
]
