"""Command line interface for ociprobe.

Commands:
    probe       Provision, verify and tear down a probe environment per tenant
    tenants     List configured tenants
    add-tenant  Store a tenant's API signing credentials
"""

import logging
import sys

import click
from rich.console import Console
from rich.table import Table

from ociprobe import __version__
from ociprobe.attempt_counter import AttemptCounter
from ociprobe.config_manager import ConfigManager, ProbeConfig, TenantConfig
from ociprobe.credentials import OciCredentialResolver
from ociprobe.exceptions import ConfigError
from ociprobe.models import Architecture, ProvisioningRequest
from ociprobe.pipeline import ProvisioningPipeline
from ociprobe.probe_runner import ProbeRunner, ProbeSummary

logger = logging.getLogger(__name__)

ARCHITECTURE_CHOICES = click.Choice([a.value for a in Architecture], case_sensitive=False)


def _load_config(ctx: click.Context) -> ProbeConfig:
    try:
        return ConfigManager.load_config(ctx.obj["config_path"])
    except ConfigError as e:
        raise click.ClickException(str(e)) from e


def _build_requests(
    config: ProbeConfig,
    tenant_names: tuple[str, ...],
    region: str | None,
    architecture: str | None,
    root_password: str | None,
) -> list[ProvisioningRequest]:
    requests = []
    for name in tenant_names:
        tenant = config.get_tenant(name)
        if tenant is None:
            raise click.ClickException(f"Tenant '{name}' is not configured")

        password = ConfigManager.resolve_root_password(tenant, root_password)
        if not password:
            raise click.ClickException(
                f"No root password for tenant '{name}'. "
                "Use --root-password or set OCIPROBE_ROOT_PASSWORD."
            )

        requests.append(
            ProvisioningRequest(
                tenant_id=name,
                display_name=tenant.label,
                region=config.region_for(tenant, region),
                architecture=Architecture.parse(architecture or tenant.architecture),
                root_password=password,
            )
        )
    return requests


def _print_summary(console: Console, summary: ProbeSummary) -> None:
    table = Table(title="Probe Results", show_header=True)
    table.add_column("Tenant", style="cyan", no_wrap=True)
    table.add_column("Region", style="blue")
    table.add_column("Architecture", style="white")
    table.add_column("Result", no_wrap=True)
    table.add_column("Duration", style="white", justify="right")
    table.add_column("Error", style="red")

    for result in summary.results:
        outcome = "[green]OK[/green]" if result.success else "[red]FAILED[/red]"
        table.add_row(
            result.display_name,
            result.region,
            result.architecture,
            outcome,
            f"{result.duration:.0f}s",
            result.error_message or "",
        )

    console.print(table)


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    envvar="OCIPROBE_CONFIG",
    help="Config file path (default: ~/.ociprobe/config.toml)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.version_option(version=__version__)
@click.pass_context
def main(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """ociprobe - ephemeral OCI compute capability probe.

    Stands up a network and two instances (one from an image, one from a
    cloned boot volume) in each tenant, checks they run, then deletes
    everything again.
    """
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format="%(message)s")
    if not verbose:
        # SDK request logging is too noisy at INFO
        logging.getLogger("oci").setLevel(logging.WARNING)

    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


@main.command()
@click.argument("tenant_names", nargs=-1)
@click.option("--all", "all_tenants", is_flag=True, help="Probe every configured tenant")
@click.option("--region", help="Region override for every tenant")
@click.option("--architecture", type=ARCHITECTURE_CHOICES, help="Preferred CPU architecture")
@click.option("--root-password", help="Root password for the probe instances")
@click.option("--workers", default=4, show_default=True, type=click.IntRange(min=1))
@click.pass_context
def probe(
    ctx: click.Context,
    tenant_names: tuple[str, ...],
    all_tenants: bool,
    region: str | None,
    architecture: str | None,
    root_password: str | None,
    workers: int,
) -> None:
    """Provision, verify and tear down a probe environment per tenant."""
    config = _load_config(ctx)

    if all_tenants:
        tenant_names = tuple(config.tenants)
    if not tenant_names:
        raise click.UsageError("Name at least one tenant or pass --all")

    requests = _build_requests(config, tenant_names, region, architecture, root_password)

    settings = config.to_settings()
    waiter = settings.build_waiter()
    with AttemptCounter() as counter:
        pipeline = ProvisioningPipeline(
            OciCredentialResolver(config, waiter), counter, settings=settings, waiter=waiter
        )
        summary = ProbeRunner(pipeline, max_workers=workers).run(requests)

    _print_summary(Console(), summary)
    if not summary.all_succeeded:
        sys.exit(1)


@main.command()
@click.pass_context
def tenants(ctx: click.Context) -> None:
    """List configured tenants."""
    config = _load_config(ctx)
    console = Console()

    if not config.tenants:
        console.print("[yellow]No tenants configured. Use 'ociprobe add-tenant'.[/yellow]")
        return

    table = Table(title="Tenants", show_header=True)
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Display Name")
    table.add_column("Region", style="blue")
    table.add_column("Architecture")
    table.add_column("Tenancy", style="magenta")

    for name, tenant in sorted(config.tenants.items()):
        table.add_row(
            name,
            tenant.label,
            config.region_for(tenant),
            tenant.architecture,
            tenant.tenancy,
        )
    console.print(table)


@main.command("add-tenant")
@click.argument("name")
@click.option("--user", required=True, help="User OCID")
@click.option("--tenancy", required=True, help="Tenancy OCID")
@click.option("--fingerprint", required=True, help="API key fingerprint")
@click.option("--key-file", required=True, help="Path to the API signing private key")
@click.option("--region", required=True, help="Home region for this tenant")
@click.option("--architecture", type=ARCHITECTURE_CHOICES, default="ARM", show_default=True)
@click.option("--display-name", help="Name shown in probe output")
@click.option("--compartment", "compartment_id", help="Compartment OCID (default: tenancy)")
@click.pass_context
def add_tenant(
    ctx: click.Context,
    name: str,
    user: str,
    tenancy: str,
    fingerprint: str,
    key_file: str,
    region: str,
    architecture: str,
    display_name: str | None,
    compartment_id: str | None,
) -> None:
    """Store a tenant's API signing credentials."""
    tenant = TenantConfig(
        name=name,
        user=user,
        tenancy=tenancy,
        fingerprint=fingerprint,
        key_file=key_file,
        region=region,
        compartment_id=compartment_id,
        architecture=Architecture.parse(architecture).value,
        display_name=display_name,
    )
    try:
        ConfigManager.add_tenant(tenant, ctx.obj["config_path"])
    except ConfigError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"Saved tenant '{name}'")


__all__ = ["main"]
