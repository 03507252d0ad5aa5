"""Notification cache management commands."""

from pathlib import Path
from typing import Optional

import typer

from . import app
from ._common import console, resolve_config


def _open_cache(config: Optional[Path], cache_dir: Optional[Path]):
    from ..notifications import NotificationCache

    engine_config = resolve_config(config=config, cache_dir=cache_dir)
    return engine_config, NotificationCache.from_config(engine_config)


@app.command()
def cache_info(
    cache_dir: Optional[Path] = typer.Option(
        None, "--cache-dir", help="Notification cache directory (default: from config)"
    ),
    config: Optional[Path] = typer.Option(
        None, "-c", "--config", help="Configuration file (TOML)", exists=True, dir_okay=False
    ),
):
    """Show notification cache information and statistics."""
    engine_config, cache = _open_cache(config, cache_dir)
    try:
        stats = cache.stats()
    finally:
        cache.close()

    console.print("[bold cyan]codementor Notification Cache[/bold cyan]")
    console.print()

    if stats.get("persistent"):
        console.print("Storage: [green]Persistent[/green]")
        console.print(f"Directory: [blue]{stats.get('directory', 'N/A')}[/blue]")
    else:
        console.print("Storage: [yellow]In memory[/yellow] (set cache_dir to persist)")
    console.print(f"Entries: [yellow]{stats['entries']}[/yellow]")
    console.print(f"Dismissed: [yellow]{stats['dismissed']}[/yellow]")
    console.print(f"Expired: [yellow]{stats['expired']}[/yellow]")
    console.print(f"Size: [yellow]{stats['bytes']} / {stats['max_bytes']} bytes[/yellow]")
    console.print(f"TTL: [yellow]{engine_config.cache_ttl_days:g} days[/yellow]")


@app.command()
def cache_clear(
    cache_dir: Optional[Path] = typer.Option(
        None, "--cache-dir", help="Notification cache directory (default: from config)"
    ),
    config: Optional[Path] = typer.Option(
        None, "-c", "--config", help="Configuration file (TOML)", exists=True, dir_okay=False
    ),
):
    """Clear the notification cache."""
    engine_config, cache = _open_cache(config, cache_dir)

    if not engine_config.cache_dir:
        cache.close()
        console.print("[yellow]No persistent cache configured[/yellow]")
        raise typer.Exit(0)

    try:
        cache.clear()
    finally:
        cache.close()
    console.print("[green]Notification cache cleared[/green]")
