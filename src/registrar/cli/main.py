"""registrar CLI entry point."""

from __future__ import annotations

import asyncio
from pathlib import Path

import click

from registrar.core.errors import RegistrarError


@click.group()
@click.version_option(package_name="registrar")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to registrar.yaml (default: <data-dir>/registrar.yaml).",
)
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Data directory for the json backend (overrides storage.data_dir).",
)
@click.option("--json-logs", is_flag=True, default=False, help="Output logs as JSON.")
@click.option("--log-level", default="WARNING", show_default=True, help="Log level.")
@click.option(
    "--metrics-port",
    type=int,
    default=0,
    help="Prometheus metrics port (0=disabled).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: Path | None,
    data_dir: Path | None,
    json_logs: bool,
    log_level: str,
    metrics_port: int,
) -> None:
    """registrar: role-based account identifiers for school administration."""
    from registrar.core.config import CONFIG_FILENAME, load_config
    from registrar.core.logging import configure_logging
    from registrar.core.models import StorageConfig

    configure_logging(json_output=json_logs, level=log_level)

    if data_dir is not None:
        data_dir = data_dir.resolve()
    if config_path is None:
        config_path = (data_dir or Path.cwd() / StorageConfig().data_dir) / CONFIG_FILENAME

    config = load_config(config_path)
    if data_dir is not None:
        config.storage.data_dir = str(data_dir)

    if metrics_port > 0:
        from registrar.metrics.server import start_metrics_server

        start_metrics_server(metrics_port)

    ctx.obj = config


@cli.command()
@click.argument("role")
@click.pass_obj
def allocate(config, role: str) -> None:
    """Draw one identifier for ROLE and print it."""
    from registrar.core.ids import IdentifierAllocator
    from registrar.store import open_stores

    async def _run() -> str:
        stores = await open_stores(config.storage, Path.cwd())
        return await IdentifierAllocator(stores.counters).allocate(role)

    click.echo(_run_or_exit(_run()))


@cli.command("create-account")
@click.option("--name", required=True, help="Display name.")
@click.option("--email", required=True, help="Unique e-mail address.")
@click.option("--role", default="user", show_default=True, help="Account role.")
@click.option("--identifier", default=None, help="Keep this identifier instead of allocating.")
@click.pass_obj
def create_account(config, name: str, email: str, role: str, identifier: str | None) -> None:
    """Create an account and print its identifier."""
    from registrar.accounts import AccountService
    from registrar.core.ids import IdentifierAllocator
    from registrar.core.models import Account
    from registrar.store import open_stores

    async def _run():
        stores = await open_stores(config.storage, Path.cwd())
        service = AccountService(
            stores.accounts,
            IdentifierAllocator(stores.counters),
            config.allocation,
        )
        return await service.create_account(
            Account(name=name, email=email, role=role, identifier=identifier)
        )

    account = _run_or_exit(_run())
    click.echo(f"{account.identifier}\t{account.id}\t{account.email}")


@cli.command()
@click.option(
    "--dry-run",
    is_flag=True,
    default=False,
    help="List accounts without an identifier; change nothing.",
)
@click.pass_obj
def backfill(config, dry_run: bool) -> None:
    """Assign identifiers to accounts created before allocation existed."""
    from registrar.accounts import Backfill
    from registrar.core.ids import IdentifierAllocator
    from registrar.store import open_stores

    async def _run():
        stores = await open_stores(config.storage, Path.cwd())
        job = Backfill(stores.accounts, IdentifierAllocator(stores.counters), config.backfill)
        return await job.run(dry_run=dry_run)

    report = _run_or_exit(_run())
    if dry_run:
        for account_id in report.pending:
            click.echo(f"pending\t{account_id}")
        click.echo(f"{len(report.pending)} account(s) need an identifier.")
        return

    for assignment in report.assigned:
        click.echo(f"{assignment.identifier}\t{assignment.account_id}")
    click.echo(
        f"Backfill complete: {len(report.assigned)} assigned, "
        f"{report.collisions} collision(s)."
    )


def _run_or_exit(coro):
    try:
        return asyncio.run(coro)
    except RegistrarError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc
