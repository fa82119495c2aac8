"""Tenant credential resolution.

Turns a configured tenant into an OCI SDK config dict and a TenantSession
whose client factory opens region-scoped OciCloudClients.
"""

import logging
from pathlib import Path
from typing import Any

import oci

from ociprobe.capabilities import TenantSession
from ociprobe.config_manager import ProbeConfig, TenantConfig
from ociprobe.exceptions import CredentialError
from ociprobe.lifecycle_waiter import LifecycleWaiter
from ociprobe.log_sanitizer import LogSanitizer
from ociprobe.oci_provider import OciCloudClients

logger = logging.getLogger(__name__)


class OciCredentialResolver:
    """Resolve tenant ids against the probe configuration.

    Example:
        >>> resolver = OciCredentialResolver(config, waiter)
        >>> session = resolver.resolve("alice")
        >>> with session.region_client_factory("ap-tokyo-1") as clients:
        ...     clients.identity.list_availability_domains(session.compartment_id)
    """

    def __init__(self, config: ProbeConfig, waiter: LifecycleWaiter):
        self.config = config
        self.waiter = waiter

    def sdk_config(self, tenant: TenantConfig, region: str | None = None) -> dict[str, Any]:
        """Build and validate the OCI SDK config dict for a tenant.

        Raises:
            CredentialError: If the key file is missing or the SDK rejects the config
        """
        sdk_config: dict[str, Any] = {
            "user": tenant.user,
            "fingerprint": tenant.fingerprint,
            "tenancy": tenant.tenancy,
            "region": region or tenant.region or self.config.default_region,
        }
        if tenant.key_content:
            sdk_config["key_content"] = tenant.key_content
        elif tenant.key_file:
            key_file = Path(tenant.key_file).expanduser()
            if not key_file.is_file():
                raise CredentialError(f"Key file for tenant '{tenant.name}' not found: {key_file}")
            sdk_config["key_file"] = str(key_file)
        if tenant.pass_phrase:
            sdk_config["pass_phrase"] = tenant.pass_phrase

        try:
            oci.config.validate_config(sdk_config)
        except oci.exceptions.InvalidConfig as e:
            raise CredentialError(
                LogSanitizer.create_safe_error_message(
                    e, f"Invalid credentials for tenant '{tenant.name}'"
                )
            ) from e
        return sdk_config

    def resolve(self, tenant_id: str) -> TenantSession:
        """Resolve a tenant to its compartment and region client factory.

        Raises:
            CredentialError: If the tenant is unknown or its credentials are invalid
        """
        tenant = self.config.get_tenant(tenant_id)
        if tenant is None:
            raise CredentialError(f"Tenant '{tenant_id}' is not configured")

        base_config = self.sdk_config(tenant)
        compartment_id = tenant.compartment_id or tenant.tenancy
        logger.debug(f"Resolved tenant '{tenant_id}' (compartment {compartment_id})")

        def open_clients(region: str) -> OciCloudClients:
            return OciCloudClients({**base_config, "region": region}, self.waiter)

        return TenantSession(compartment_id=compartment_id, region_client_factory=open_clients)


__all__ = ["OciCredentialResolver"]
