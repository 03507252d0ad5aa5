"""CLI entry point, registers all subcommands."""

from typing import Optional

import typer

from ._common import console

app = typer.Typer(
    name="codementor",
    help="codementor - Real-time code pattern detection and classification",
    add_completion=False,
    rich_markup_mode="rich",
)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        help="Show version and exit",
        is_eager=True,
    ),
):
    """Detect, classify and de-duplicate learning moments in source files."""
    if version:
        from .. import __version__

        console.print(f"[bold cyan]codementor[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit(0)

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


# Import subcommands to register them
from .analyze import analyze as _analyze  # noqa: F401, E402
from .cache import cache_info as _cache_info, cache_clear as _cache_clear  # noqa: F401, E402
