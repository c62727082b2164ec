"""Watch command for kanban-sync CLI."""

import asyncio
from typing import Optional

import typer
from loguru import logger
from rich.console import Console

from kanban_sync.cli.app import app
from kanban_sync.cli.commands.command_utils import get_storage_root
from kanban_sync.config import ConfigManager, WatchConfig, init_watch_logging
from kanban_sync.sync.watch_service import WatchService

console = Console()


async def run_watch(service: WatchService) -> None:  # pragma: no cover
    await service.start()
    try:
        while service.is_running:
            await asyncio.sleep(1)
    finally:
        if service.is_running:
            await service.stop()


@app.command()
def watch(
    interval: Optional[int] = typer.Option(
        None, "--interval", help="Base polling interval in milliseconds"
    ),
    debounce: Optional[int] = typer.Option(
        None, "--debounce", help="Quiet period before changes are dispatched (ms)"
    ),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Do not echo events"),
) -> None:  # pragma: no cover
    """Watch the boards directory and report external changes until interrupted."""
    init_watch_logging()
    config = ConfigManager().config

    changes = {}
    if interval is not None:
        changes["polling_interval"] = interval
    if debounce is not None:
        changes["debounce_delay"] = debounce
    watch_config = WatchConfig(
        **{**config.watch_config().model_dump(), **changes, "enabled": True}
    )

    service = WatchService(
        config, get_storage_root(config), watch_config=watch_config, quiet=quiet
    )
    console.print(f"Watching [cyan]{service.root}[/cyan] (Ctrl+C to stop)")

    try:
        asyncio.run(run_watch(service))
    except KeyboardInterrupt:
        logger.info("Watch interrupted by user")
        console.print("Watch stopped")
