"""Configuration management module.

This module handles persistent configuration storage using TOML format.
Stores probe tuning (region, name prefix, wait cadence) and the tenants the
probe can run against.

Security:
- Config file permissions: 0600 (owner read/write only)
- Path validation
- Root passwords are never written by add_tenant
"""

import logging
import os
import re
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

try:
    import tomli  # type: ignore[import]
except ImportError:
    # Fallback for Python versions shipping tomllib
    try:
        import tomllib as tomli  # type: ignore[import]
    except ImportError as e:
        raise ImportError("toml library not available. Install with: pip install tomli") from e

try:
    import tomlkit
except ImportError as e:
    raise ImportError("tomlkit library not available. Install with: pip install tomlkit") from e

from ociprobe.exceptions import ConfigError
from ociprobe.models import Architecture
from ociprobe.pipeline import ProbeSettings

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "OCIPROBE_CONFIG"
ROOT_PASSWORD_ENV_VAR = "OCIPROBE_ROOT_PASSWORD"

TENANT_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]{0,63}$")
REQUIRED_TENANT_FIELDS = ("user", "tenancy", "fingerprint")


@dataclass
class TenantConfig:
    """Credentials and preferences of one tenant."""

    name: str
    user: str
    tenancy: str
    fingerprint: str
    key_file: str | None = None
    key_content: str | None = None
    pass_phrase: str | None = None
    region: str | None = None
    compartment_id: str | None = None
    architecture: str = Architecture.ARM.value
    display_name: str | None = None
    root_password: str | None = None

    @property
    def label(self) -> str:
        return self.display_name or self.name

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, excluding None values and the name key."""
        data = {
            "display_name": self.display_name,
            "user": self.user,
            "tenancy": self.tenancy,
            "fingerprint": self.fingerprint,
            "key_file": self.key_file,
            "key_content": self.key_content,
            "pass_phrase": self.pass_phrase,
            "region": self.region,
            "compartment_id": self.compartment_id,
            "architecture": self.architecture,
            "root_password": self.root_password,
        }
        # TOML has no null
        return {k: v for k, v in data.items() if v is not None}

    @classmethod
    def from_dict(cls, name: str, data: dict[str, Any]) -> "TenantConfig":
        """Create from a [tenants.<name>] table.

        Raises:
            ConfigError: If a required field is missing
        """
        missing = [key for key in REQUIRED_TENANT_FIELDS if not data.get(key)]
        if not data.get("key_file") and not data.get("key_content"):
            missing.append("key_file")
        if missing:
            raise ConfigError(f"Tenant '{name}' is missing required field(s): {', '.join(missing)}")

        return cls(
            name=name,
            user=data["user"],
            tenancy=data["tenancy"],
            fingerprint=data["fingerprint"],
            key_file=data.get("key_file"),
            key_content=data.get("key_content"),
            pass_phrase=data.get("pass_phrase"),
            region=data.get("region"),
            compartment_id=data.get("compartment_id"),
            architecture=Architecture.parse(data.get("architecture")).value,
            display_name=data.get("display_name"),
            root_password=data.get("root_password"),
        )


@dataclass
class ProbeConfig:
    """Probe configuration data."""

    default_region: str = "us-ashburn-1"
    resource_prefix: str = "ociprobe"
    wait_timeout_seconds: float = 1200.0
    poll_interval_seconds: float = 5.0
    max_poll_interval_seconds: float = 30.0
    strict_teardown: bool = False
    tenants: dict[str, TenantConfig] = field(default_factory=dict)

    def get_tenant(self, name: str) -> TenantConfig | None:
        return self.tenants.get(name)

    def region_for(self, tenant: TenantConfig, cli_value: str | None = None) -> str:
        """Region precedence: CLI flag, tenant entry, default_region."""
        return cli_value or tenant.region or self.default_region

    def to_settings(self) -> ProbeSettings:
        return ProbeSettings(
            resource_prefix=self.resource_prefix,
            wait_timeout_seconds=self.wait_timeout_seconds,
            poll_interval_seconds=self.poll_interval_seconds,
            max_poll_interval_seconds=self.max_poll_interval_seconds,
            strict_teardown=self.strict_teardown,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "default_region": self.default_region,
            "resource_prefix": self.resource_prefix,
            "wait_timeout_seconds": self.wait_timeout_seconds,
            "poll_interval_seconds": self.poll_interval_seconds,
            "max_poll_interval_seconds": self.max_poll_interval_seconds,
            "strict_teardown": self.strict_teardown,
        }
        if self.tenants:
            data["tenants"] = {name: tenant.to_dict() for name, tenant in self.tenants.items()}
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProbeConfig":
        """Create from dictionary.

        Raises:
            ConfigError: If a tenant table is malformed
        """
        tenants_data = data.get("tenants", {})
        if not isinstance(tenants_data, dict):
            raise ConfigError("'tenants' must be a table")

        tenants = {}
        for name, tenant_data in tenants_data.items():
            if not isinstance(tenant_data, dict):
                raise ConfigError(f"Tenant '{name}' must be a table")
            tenants[name] = TenantConfig.from_dict(name, tenant_data)

        return cls(
            default_region=data.get("default_region", "us-ashburn-1"),
            resource_prefix=data.get("resource_prefix", "ociprobe"),
            wait_timeout_seconds=float(data.get("wait_timeout_seconds", 1200.0)),
            poll_interval_seconds=float(data.get("poll_interval_seconds", 5.0)),
            max_poll_interval_seconds=float(data.get("max_poll_interval_seconds", 30.0)),
            strict_teardown=bool(data.get("strict_teardown", False)),
            tenants=tenants,
        )


class ConfigManager:
    """Manage the ociprobe configuration file.

    Configuration is stored at ~/.ociprobe/config.toml with secure permissions.
    """

    DEFAULT_CONFIG_DIR = Path.home() / ".ociprobe"
    DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.toml"

    @classmethod
    def _validate_config_path(cls, path: Path) -> Path:
        """Validate configuration file path.

        Raises:
            ConfigError: If path is outside ~/.ociprobe/, the working
                directory and the temporary directory
        """
        resolved_path = path.resolve()
        allowed_dirs = [
            cls.DEFAULT_CONFIG_DIR.resolve(),
            Path.cwd().resolve(),
            Path(tempfile.gettempdir()).resolve(),
        ]

        for allowed_dir in allowed_dirs:
            if resolved_path.is_relative_to(allowed_dir):
                return resolved_path

        raise ConfigError(
            f"Config path outside allowed directories: {resolved_path}\n"
            f"Allowed directories:\n"
            f"  - {cls.DEFAULT_CONFIG_DIR}\n"
            f"  - {Path.cwd()}"
        )

    @classmethod
    def get_config_path(cls, custom_path: str | None = None) -> Path:
        """Get configuration file path.

        Args:
            custom_path: Custom config file path; falls back to $OCIPROBE_CONFIG

        Returns:
            Path to config file

        Raises:
            ConfigError: If path is outside allowed directories
        """
        custom_path = custom_path or os.environ.get(CONFIG_ENV_VAR)
        if custom_path:
            return cls._validate_config_path(Path(custom_path).expanduser())
        return cls.DEFAULT_CONFIG_FILE

    @classmethod
    def load_config(cls, custom_path: str | None = None) -> ProbeConfig:
        """Load configuration from file.

        A missing file yields the defaults with no tenants.

        Raises:
            ConfigError: If the file cannot be read or is invalid
        """
        config_path = cls.get_config_path(custom_path)

        if not config_path.exists():
            logger.debug("Config file not found, using defaults")
            return ProbeConfig()

        mode = config_path.stat().st_mode & 0o777
        if mode & 0o077:
            logger.warning(f"Config file has insecure permissions: {oct(mode)}. Fixing to 0600...")
            os.chmod(config_path, 0o600)

        try:
            with open(config_path, "rb") as f:
                data = tomli.load(f)  # type: ignore[attr-defined]
        except (OSError, tomli.TOMLDecodeError) as e:  # type: ignore[attr-defined]
            raise ConfigError(f"Failed to load config: {e}") from e

        logger.debug(f"Loaded config from: {config_path}")
        return ProbeConfig.from_dict(data)

    @classmethod
    def save_config(cls, config: ProbeConfig, custom_path: str | None = None) -> Path:
        """Save configuration to file (atomic rename, mode 0600).

        Existing comments and formatting are preserved through tomlkit.

        Returns:
            Path written

        Raises:
            ConfigError: If saving fails
        """
        config_path = cls.get_config_path(custom_path)
        temp_path = config_path.with_suffix(".tmp")
        try:
            config_path.parent.mkdir(parents=True, exist_ok=True)
            if config_path.parent == cls.DEFAULT_CONFIG_DIR:
                os.chmod(config_path.parent, 0o700)

            if config_path.exists():
                with open(config_path) as f:
                    doc = tomlkit.load(f)
            else:
                doc = tomlkit.document()

            for key, value in config.to_dict().items():
                doc[key] = value
            if not config.tenants and "tenants" in doc:
                del doc["tenants"]

            with open(temp_path, "w") as f:
                tomlkit.dump(doc, f)
            os.chmod(temp_path, 0o600)
            temp_path.replace(config_path)

        except OSError as e:
            if temp_path.exists():
                temp_path.unlink()
            raise ConfigError(f"Failed to save config: {e}") from e

        logger.debug(f"Saved config to: {config_path}")
        return config_path

    @classmethod
    def add_tenant(cls, tenant: TenantConfig, custom_path: str | None = None) -> ProbeConfig:
        """Add or replace a tenant entry and persist the configuration.

        The tenant's root_password is dropped before saving.

        Raises:
            ConfigError: If the tenant name is invalid or saving fails
        """
        if not TENANT_NAME_PATTERN.match(tenant.name):
            raise ConfigError(
                f"Invalid tenant name: {tenant.name!r} "
                "(letters, digits, '.', '_' and '-' only, max 64 chars)"
            )
        if not tenant.key_file and not tenant.key_content:
            raise ConfigError(f"Tenant '{tenant.name}' needs a key_file or key_content")

        config = cls.load_config(custom_path)
        tenant.root_password = None
        config.tenants[tenant.name] = tenant
        cls.save_config(config, custom_path)
        logger.info(f"Saved tenant '{tenant.name}'")
        return config

    @classmethod
    def resolve_root_password(
        cls, tenant: TenantConfig, cli_value: str | None = None
    ) -> str | None:
        """Root password precedence: CLI flag, tenant entry, $OCIPROBE_ROOT_PASSWORD."""
        return cli_value or tenant.root_password or os.environ.get(ROOT_PASSWORD_ENV_VAR)


__all__ = [
    "CONFIG_ENV_VAR",
    "ROOT_PASSWORD_ENV_VAR",
    "ConfigManager",
    "ProbeConfig",
    "TenantConfig",
]
