"""
Command-line interface for feedrelay.

Usage:
    feedrelay run             # Run delivery cycles until interrupted
    feedrelay run --memory    # Same, with in-process storage
    feedrelay run-once        # Run a single cycle and print its stats
    feedrelay init-db         # Create database tables
    feedrelay health          # Check service dependencies
"""

import asyncio
import os
import signal
import sys

import click

from feedrelay.config.settings import get_settings
from feedrelay.observability.logging import setup_logging
from feedrelay.observability.metrics import get_metrics


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """feedrelay - relays new feed items to subscribed chats."""
    if debug:
        os.environ["LOG_LEVEL"] = "DEBUG"
        get_settings.cache_clear()

    setup_logging()


@main.command()
@click.option("--memory", is_flag=True, help="Use in-process storage instead of Postgres/Redis")
@click.option("--metrics/--no-metrics", default=True, help="Enable metrics server")
def run(memory: bool, metrics: bool) -> None:
    """Run delivery cycles until SIGINT/SIGTERM."""
    from feedrelay.services.relay_service import RelayService

    async def _run():
        service = RelayService(use_memory=memory)

        if metrics:
            get_metrics().start_server()

        # SIGTERM/SIGINT let the current cycle finish, then close resources
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, lambda: asyncio.create_task(service.stop()))

        await service.start()

    asyncio.run(_run())


@main.command("run-once")
@click.option("--memory", is_flag=True, help="Use in-process storage instead of Postgres/Redis")
def run_once(memory: bool) -> None:
    """Run a single delivery cycle."""
    from feedrelay.services.relay_service import RelayService

    async def _run():
        async with RelayService(use_memory=memory) as service:
            return await service.run_once()

    stats = asyncio.run(_run())
    if stats is None:
        click.echo(click.style("Cycle skipped: another cycle is in progress", fg="yellow"))
        sys.exit(1)

    _print_section("Cycle Results:", stats.to_dict())


@main.command("init-db")
def init_db() -> None:
    """Create the subscriber and delivery history tables."""
    from feedrelay.services.relay_service import RelayService

    asyncio.run(RelayService().init_db())
    click.echo("Database initialized successfully")


def _print_section(title: str, rows: dict) -> None:
    click.echo(f"\n{title}")
    click.echo("-" * 40)
    for name, value in rows.items():
        if isinstance(value, bool):
            mark = click.style("ok" if value else "FAIL", fg="green" if value else "red")
            click.echo(f"  {name:<22} {mark}")
        else:
            click.echo(f"  {name}: {value}")
    click.echo("-" * 40)


async def _ping_redis(url: str) -> bool:
    import redis.asyncio as redis

    client = redis.from_url(url)
    try:
        return bool(await client.ping())
    finally:
        await client.aclose()


async def _ping_postgres() -> bool:
    from feedrelay.storage.database import Database

    async with Database() as db:
        return await db.health_check()


@main.command()
def health() -> None:
    """Check that Redis, Postgres and the bot token are available."""
    import structlog

    logger = structlog.get_logger(__name__)
    settings = get_settings()

    async def guarded(name: str, check) -> tuple[str, bool]:
        try:
            return name, await check
        except Exception as e:
            logger.error("Dependency unreachable", dependency=name, error=str(e))
            return name, False

    async def check_all() -> dict[str, bool]:
        results = dict(await asyncio.gather(
            guarded("redis", _ping_redis(str(settings.redis_url))),
            guarded("postgres", _ping_postgres()),
        ))
        results["bot token"] = settings.telegram_configured
        return results

    results = asyncio.run(check_all())
    _print_section("Dependencies:", results)
    if not all(results.values()):
        sys.exit(1)


if __name__ == "__main__":
    main()
