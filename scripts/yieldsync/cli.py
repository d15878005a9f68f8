"""
Command-line interface for yieldsync.

Runs the web server, triggers sweeps by hand and manages pools and job
configuration in the local database.
"""

import asyncio
import logging
import sys
from typing import Optional

import click
from dotenv import load_dotenv

# Load environment variables from .env file (if it exists)
load_dotenv()

from . import __version__
from .config import get_config
from .database import Database
from .errors import EntityNotFound
from .services import SyncServices, build_services
from .sources.morpho import chain_id_for

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()],
)
logger = logging.getLogger(__name__)


def setup_file_logging() -> None:
    """Set up file logging if enabled."""
    config = get_config()
    if config.get("logging.file_enabled", False):
        log_file = config.logs_dir / "yieldsync.log"
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(config.get("logging.format")))
        logging.getLogger().addHandler(file_handler)


def _database() -> Database:
    config = get_config()
    db = Database(config.database_path)
    db.seed_job_configs(config.jobs)
    return db


def _run(services: SyncServices, coro_fn):
    """Run ``coro_fn()`` to completion, then release the services."""

    async def runner():
        try:
            return await coro_fn()
        finally:
            await services.aclose()

    return asyncio.run(runner())


@click.group()
@click.version_option(version=__version__, prog_name="yieldsync")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
def cli(verbose: bool) -> None:
    """yieldsync - Keep pool APY and TVL in step with their sources."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    setup_file_logging()


@cli.command()
@click.option("--host", default="127.0.0.1", help="Host to bind")
@click.option("--port", default=8000, type=int, help="Port to bind")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
def serve(host: str, port: int, reload: bool) -> None:
    """Start the API server and the sweep scheduler."""
    import uvicorn

    click.echo(click.style(f"Starting yieldsync at http://{host}:{port}", fg="green"))
    uvicorn.run("yieldsync.web.main:app", host=host, port=port, reload=reload)


@cli.command()
def sweep() -> None:
    """Run one full sweep over all active pools."""
    services = build_services()
    summary = _run(services, services.orchestrator.sweep_all)

    if summary is None:
        click.echo(click.style("A sweep is already running.", fg="yellow"))
        return

    click.echo(click.style("Sweep complete", fg="green", bold=True))
    click.echo(f"  Total:    {summary.total}")
    click.echo(f"  Success:  {summary.success}")
    click.echo(f"  Failed:   {summary.failed}")
    click.echo(f"  Skipped:  {summary.skipped}")
    if summary.duration_seconds is not None:
        click.echo(f"  Duration: {summary.duration_seconds:.2f}s")

    if summary.failed:
        sys.exit(1)


@cli.command("sweep-pool")
@click.argument("pool_id")
def sweep_pool(pool_id: str) -> None:
    """Sweep a single pool by id."""
    services = build_services()
    try:
        record = _run(services, lambda: services.orchestrator.sweep_one(pool_id))
    except EntityNotFound:
        click.echo(click.style(f"Pool not found: {pool_id}", fg="red"))
        sys.exit(1)

    if record is None:
        click.echo(click.style(f"No data scraped for pool {pool_id}", fg="red"))
        sys.exit(1)

    tvl = f"{record.tvl:,.2f}" if record.tvl is not None else "unchanged"
    click.echo(click.style(f"Pool {pool_id} updated", fg="green"))
    click.echo(f"  APY: {record.apy:.2f}%")
    click.echo(f"  TVL: {tvl}")


@cli.command()
def sources() -> None:
    """List sources with a registered adapter."""
    services = build_services()
    names = services.orchestrator.list_sources()
    asyncio.run(services.aclose())

    if not names:
        click.echo("No sources configured.")
        return

    click.echo(f"{len(names)} sources:")
    for name in names:
        click.echo(f"  - {name}")


@cli.command("add-pool")
@click.argument("pool_id")
@click.option("-p", "--platform", required=True, help="Source identifier (e.g. Lido, Morpho)")
@click.option("-n", "--name", help="Display name")
@click.option("-c", "--chain", default=None, help="Chain name or id (e.g. ethereum, base, 8453)")
@click.option("-a", "--address", help="Contract/vault address")
@click.option("--inactive", is_flag=True, help="Add the pool as inactive")
def add_pool(
    pool_id: str,
    platform: str,
    name: Optional[str],
    chain: Optional[str],
    address: Optional[str],
    inactive: bool,
) -> None:
    """Add or update a pool to be swept."""
    chain_id = None
    if chain:
        chain_id = int(chain) if chain.isdigit() else chain_id_for(chain)
        if chain_id is None:
            click.echo(click.style(f"Unknown chain: {chain}", fg="red"))
            sys.exit(1)

    db = _database()
    db.add_pool(
        pool_id,
        platform,
        name=name,
        chain_id=chain_id,
        address=address,
        is_active=not inactive,
    )
    click.echo(click.style(f"Pool {pool_id} saved ({platform})", fg="green"))


@cli.command()
@click.option("--all", "show_all", is_flag=True, help="Include inactive pools")
def pools(show_all: bool) -> None:
    """List pools in the database."""
    db = _database()
    entities = db.list_pools(active_only=not show_all)

    if not entities:
        click.echo("No pools found.")
        return

    for entity in entities:
        apy = f"{entity.apy:.2f}%" if entity.apy is not None else "-"
        tvl = f"{entity.tvl:,.0f}" if entity.tvl is not None else "-"
        marker = "" if entity.is_active else " [inactive]"
        click.echo(f"[{entity.id}] {entity.name or entity.id}{marker}")
        click.echo(f"     Platform: {entity.source_identifier} | APY: {apy} | TVL: {tvl}")

    stats = db.get_statistics()
    click.echo(f"\n{stats['active_pools']} active of {stats['total_pools']} total")


def _set_active(pool_id: str, is_active: bool) -> None:
    db = _database()
    if not db.set_pool_active(pool_id, is_active):
        click.echo(click.style(f"Pool not found: {pool_id}", fg="red"))
        sys.exit(1)
    state = "activated" if is_active else "deactivated"
    click.echo(click.style(f"Pool {pool_id} {state}", fg="green"))


@cli.command()
@click.argument("pool_id")
def activate(pool_id: str) -> None:
    """Include a pool in sweeps."""
    _set_active(pool_id, True)


@cli.command()
@click.argument("pool_id")
def deactivate(pool_id: str) -> None:
    """Exclude a pool from sweeps."""
    _set_active(pool_id, False)


@cli.command()
def jobs() -> None:
    """Show scheduled job configuration and run statistics."""
    db = _database()
    configs = db.list_job_configs()

    if not configs:
        click.echo("No jobs configured.")
        return

    for job in configs:
        state = click.style("enabled", fg="green") if job.enabled else click.style("disabled", fg="red")
        click.echo(f"{job.name} ({state})")
        click.echo(f"     Every {job.interval_minutes} min | Runs: {job.run_count} | Errors: {job.error_count}")
        click.echo(f"     Last run: {job.last_run or 'never'}")
        if job.last_error:
            click.echo(click.style(f"     Last error: {job.last_error}", fg="yellow"))


@cli.command("set-job")
@click.argument("name")
@click.option("-i", "--interval", type=int, help="Interval in minutes")
@click.option("--enable/--disable", "enabled", default=None, help="Enable or disable the job")
def set_job(name: str, interval: Optional[int], enabled: Optional[bool]) -> None:
    """Change a job's interval or enabled flag.

    A running server picks the change up on restart, or immediately when
    made through PATCH /admin/jobs/NAME.
    """
    if interval is None and enabled is None:
        click.echo(click.style("Nothing to change: pass --interval and/or --enable/--disable", fg="yellow"))
        sys.exit(1)

    if interval is not None:
        is_valid, error = get_config().validate_interval(interval)
        if not is_valid:
            click.echo(click.style(f"Error: {error}", fg="red"))
            sys.exit(1)

    db = _database()
    job = db.update_job_config(name, interval_minutes=interval, enabled=enabled)
    if job is None:
        click.echo(click.style(f"Job not found: {name}", fg="red"))
        sys.exit(1)

    state = "enabled" if job.enabled else "disabled"
    click.echo(click.style(f"{job.name}: every {job.interval_minutes} min, {state}", fg="green"))


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
