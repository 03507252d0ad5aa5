"""Single-file analysis command."""

import json
from pathlib import Path
from typing import Optional

import click
import typer

from ..config import static_provider
from ..engine import AnalysisEngine, AnalysisResult
from ..exceptions import CodementorError
from ..logging_config import setup_logging
from ..scanning import detect_language
from . import app
from ._common import SEVERITY_STYLES, console, resolve_config


@app.command()
def analyze(
    path: Path = typer.Argument(
        ...,
        help="Source file to analyze",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    language: Optional[str] = typer.Option(
        None,
        "-l",
        "--language",
        help="Language identifier (default: detect from the file extension)",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output in machine-readable JSON format",
    ),
    mode: Optional[str] = typer.Option(
        None,
        "--mode",
        help="aggressive surfaces everything, gentle drops low severity",
        click_type=click.Choice(["aggressive", "gentle"], case_sensitive=False),
    ),
    min_function_length: Optional[int] = typer.Option(
        None,
        "--min-function-length",
        help="Logical lines above which a function is reported",
        min=1,
    ),
    record: bool = typer.Option(
        False,
        "--record",
        help="Record surfaced patterns so later runs suppress them",
    ),
    cache_dir: Optional[Path] = typer.Option(
        None,
        "--cache-dir",
        help="Notification cache directory used by --record (default: from config)",
    ),
    config: Optional[Path] = typer.Option(
        None,
        "-c",
        "--config",
        help="Configuration file (TOML)",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging",
    ),
):
    """
    Analyze one source file and list the patterns found.

    [bold cyan]Examples:[/bold cyan]

      codementor analyze app.py

      codementor analyze src/index.ts --json

      codementor analyze legacy.js --mode gentle --record
    """
    logger = setup_logging(verbose=verbose)

    try:
        engine_config = resolve_config(
            config=config,
            mode=mode.lower() if mode else None,
            min_function_length=min_function_length,
            cache_dir=cache_dir,
        )
        engine = AnalysisEngine(static_provider(engine_config))
        try:
            code = path.read_text(encoding="utf-8", errors="replace")
            result = engine.analyze_sync(str(path), language or detect_language(str(path)), code)
            if record:
                for pattern in result.patterns:
                    engine.check_and_record(result.file, pattern.identity, "shown")
        finally:
            engine.close()

        if json_output:
            print(json.dumps(result.to_dict(), indent=2))
        else:
            _output_rich(result, verbose=verbose)

    except CodementorError as e:
        logger.error(f"{e.__class__.__name__}: {e}")
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    except KeyboardInterrupt:
        console.print("\n[yellow]Analysis interrupted[/yellow]")
        raise typer.Exit(130)


def _output_rich(result: AnalysisResult, verbose: bool = False) -> None:
    """Human-readable Rich table output."""
    from rich.table import Table

    console.print()
    console.print(
        f"[bold cyan]CODEMENTOR[/bold cyan] {result.file} "
        f"([green]{result.language}[/green], {result.backend}) "
        f"in {result.analysis_time_ms:.1f}ms"
    )

    if result.status == "limited":
        console.print(f"[yellow]Language '{result.language}' is not supported; nothing analyzed.[/yellow]")
        return
    if result.status == "unparsable":
        console.print("[yellow]File could not be parsed; no patterns reported.[/yellow]")
        return
    if not result.patterns:
        suffix = f" ({result.suppressed} already surfaced)" if result.suppressed else ""
        console.print(f"[green]No patterns found.[/green]{suffix}")
        return

    table = Table(show_header=True, show_lines=False, pad_edge=True)
    table.add_column("Line", justify="right", style="bold")
    table.add_column("Kind", style="cyan")
    table.add_column("Category")
    table.add_column("Severity")
    table.add_column("Confidence", justify="right")
    table.add_column("Scope", style="dim")
    if verbose:
        table.add_column("Details", style="dim")

    for pattern in result.patterns:
        occurrence = pattern.occurrence
        severity = occurrence.severity.value
        row = [
            str(occurrence.range.start_line),
            str(getattr(occurrence.kind, "value", occurrence.kind)),
            pattern.category.value,
            f"[{SEVERITY_STYLES.get(severity, '')}]{severity}[/]",
            f"{pattern.confidence:.2f}",
            occurrence.scope,
        ]
        if verbose:
            row.append(", ".join(f"{k}={v}" for k, v in occurrence.metadata.items()))
        table.add_row(*row)

    console.print(table)
    if result.suppressed:
        console.print(f"[dim]{result.suppressed} pattern(s) already surfaced and hidden[/dim]")
    if result.degraded:
        console.print("[yellow]Remote assist unavailable; showing local results only.[/yellow]")
    console.print()
