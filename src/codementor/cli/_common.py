"""Shared CLI helpers."""

from pathlib import Path
from typing import Optional

from rich.console import Console

from ..config import EngineConfig, load_config

console = Console()

SEVERITY_STYLES = {"high": "bold red", "medium": "yellow", "low": "dim"}


def resolve_config(
    config: Optional[Path] = None,
    mode: Optional[str] = None,
    min_function_length: Optional[int] = None,
    cache_dir: Optional[Path] = None,
) -> EngineConfig:
    """Build an engine config from CLI options."""
    overrides = {}
    if mode is not None:
        overrides["mode"] = mode
    if min_function_length is not None:
        overrides["min_function_length"] = min_function_length
    if cache_dir is not None:
        overrides["cache_dir"] = str(cache_dir)
    return load_config(config_file=config, **overrides)
