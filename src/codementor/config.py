"""Configuration loading and management for the analysis engine.

Configuration sources are merged in priority order:
    1. Defaults (defined in EngineConfig)
    2. Global config (~/.codementor.toml)
    3. Project config (./codementor.toml)
    4. Explicit config file
    5. Environment variables (CODEMENTOR_* prefix)
    6. Keyword overrides

The engine never holds configuration as mutable global state. It is given a
provider callable and reads a fresh snapshot on every ``analyze`` call, so
edits to the user's settings take effect on the next analysis.

Example:
    >>> config = load_config(mode="gentle", min_function_length=40)
    >>> config.mode
    'gentle'
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Callable, Literal, Optional, get_type_hints

from .exceptions import ConfigurationError

Mode = Literal["aggressive", "gentle"]

CATEGORY_NAMES = (
    "Syntax Basics",
    "Logic Clarity",
    "Performance",
    "Readability",
    "Security",
)

MEGABYTE = 1024 * 1024


@dataclass(frozen=True)
class EngineConfig:
    """Settings consumed by the analysis engine.

    Attributes:
        Detection:
            category_flags: Per-category enable flags, keyed by display name
            min_function_length: Logical lines above which a function is long
            max_parameters: Parameter count above which a signature is long
            duplicate_min_lines: Window size for duplicated-code detection
            mode: "aggressive" surfaces everything, "gentle" drops low severity

        Scheduling:
            max_concurrent_jobs: Concurrent analyses admitted per workspace
            max_queue_depth: Waiting analyses per workspace before overflow
            base_debounce_ms: Debounce interval under normal load (0 = none)
            max_debounce_ms: Upper bound for the adaptive debounce interval
            load_queue_threshold: Queue depth considered sustained load
            load_latency_threshold_ms: Job latency considered sustained load

        Notification cache:
            cache_ttl_days: Days before a shown entry stops suppressing
            cache_max_bytes: Hard cap on the estimated store size
            cache_dir: diskcache directory (None keeps the store in memory)
            cache_autosave_every: Mutations between persisted snapshots

        Remote path:
            remote_endpoint: Base URL of the remote assist service (None = local only)
            structural_timeout_s: Timeout for remote structural analysis
            classification_timeout_s: Timeout for remote classification assist
            probe_interval_s: Seconds between probes while degraded
    """

    category_flags: dict[str, bool] = field(
        default_factory=lambda: {name: True for name in CATEGORY_NAMES}
    )
    min_function_length: int = 50
    max_parameters: int = 5
    duplicate_min_lines: int = 5
    mode: Mode = "aggressive"

    max_concurrent_jobs: int = 3
    max_queue_depth: int = 32
    base_debounce_ms: int = 0
    max_debounce_ms: int = 5000
    load_queue_threshold: int = 3
    load_latency_threshold_ms: int = 1000

    cache_ttl_days: float = 7.0
    cache_max_bytes: int = 10 * MEGABYTE
    cache_dir: Optional[str] = None
    cache_autosave_every: int = 50

    remote_endpoint: Optional[str] = None
    structural_timeout_s: float = 5.0
    classification_timeout_s: float = 10.0
    probe_interval_s: float = 60.0

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.mode not in ("aggressive", "gentle"):
            raise ValueError(f"mode must be 'aggressive' or 'gentle', got '{self.mode}'")

        unknown = set(self.category_flags) - set(CATEGORY_NAMES)
        if unknown:
            raise ValueError(f"Unknown categories in category_flags: {sorted(unknown)}")

        if self.min_function_length < 1:
            raise ValueError("min_function_length must be at least 1")
        if self.max_parameters < 0:
            raise ValueError("max_parameters must be non-negative")
        if self.duplicate_min_lines < 2:
            raise ValueError("duplicate_min_lines must be at least 2")

        if self.max_concurrent_jobs < 1:
            raise ValueError("max_concurrent_jobs must be at least 1")
        if self.max_queue_depth < 0:
            raise ValueError("max_queue_depth must be non-negative")
        if self.base_debounce_ms < 0:
            raise ValueError("base_debounce_ms must be non-negative")
        if self.max_debounce_ms < self.base_debounce_ms:
            raise ValueError("max_debounce_ms must be >= base_debounce_ms")

        if self.cache_ttl_days <= 0:
            raise ValueError("cache_ttl_days must be positive")
        if self.cache_max_bytes < 1:
            raise ValueError("cache_max_bytes must be at least 1")
        if self.cache_autosave_every < 1:
            raise ValueError("cache_autosave_every must be at least 1")

        if self.structural_timeout_s <= 0 or self.classification_timeout_s <= 0:
            raise ValueError("remote timeouts must be positive")
        if self.probe_interval_s <= 0:
            raise ValueError("probe_interval_s must be positive")

    def is_category_enabled(self, category: str) -> bool:
        """Categories missing from ``category_flags`` are enabled."""
        return self.category_flags.get(category, True)

    @property
    def cache_ttl_seconds(self) -> float:
        """Get cache TTL in seconds."""
        return self.cache_ttl_days * 86400

    @property
    def remote_enabled(self) -> bool:
        return bool(self.remote_endpoint)


DEFAULT_CONFIG = EngineConfig()

ConfigProvider = Callable[[], EngineConfig]


def static_provider(config: EngineConfig = DEFAULT_CONFIG) -> ConfigProvider:
    """Provider that always returns the same snapshot."""
    return lambda: config


def file_provider(config_file: Optional[Path] = None, **overrides: Any) -> ConfigProvider:
    """Provider that re-reads files and environment on every call."""
    return lambda: load_config(config_file, **overrides)


def load_config(config_file: Optional[Path] = None, **overrides: Any) -> EngineConfig:
    """Load configuration with auto-discovery and merging.

    Args:
        config_file: Optional explicit config file path
        **overrides: Direct overrides (typically from CLI flags)

    Returns:
        Validated EngineConfig instance

    Raises:
        ConfigurationError: If a config file is invalid or missing
    """
    merged: dict = {}

    global_config = Path.home() / ".codementor.toml"
    if global_config.exists():
        merged.update(_load_section(global_config, "global config"))

    project_config = Path.cwd() / "codementor.toml"
    if project_config.exists():
        merged.update(_load_section(project_config, "project config"))

    if config_file is not None:
        if not config_file.exists():
            raise ConfigurationError(f"Config file not found: {config_file}")
        merged.update(_load_section(config_file, "config file"))

    merged.update(_load_env_vars())

    # [categories] section: {"Security" = false, ...}
    categories = merged.pop("categories", None)
    flags = dict(DEFAULT_CONFIG.category_flags)
    if isinstance(categories, dict):
        flags.update({str(k): bool(v) for k, v in categories.items()})
    if "category_flags" in overrides:
        flags.update(overrides.pop("category_flags"))
    merged["category_flags"] = flags

    merged.update(overrides)

    try:
        return EngineConfig(**merged)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid configuration: {e}")


def with_overrides(config: EngineConfig, **changes: Any) -> EngineConfig:
    """Return a copy of ``config`` with ``changes`` applied and validated."""
    try:
        return replace(config, **changes)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid configuration: {e}")


def _load_section(path: Path, label: str) -> dict:
    try:
        data = _load_toml_file(path)
    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(f"Invalid {label} '{path}': {e}")
    # Allow either a flat file or an [engine] table
    engine = data.pop("engine", None)
    if isinstance(engine, dict):
        data.update(engine)
    return data


def _load_env_vars() -> dict[str, Any]:
    """Load configuration from CODEMENTOR_* environment variables.

    Supported environment variables are the upper-cased field names, e.g.
    CODEMENTOR_MODE, CODEMENTOR_MIN_FUNCTION_LENGTH, CODEMENTOR_CACHE_DIR,
    CODEMENTOR_REMOTE_ENDPOINT. Dict fields are not read from the environment.
    """
    type_hints = get_type_hints(EngineConfig)

    result: dict[str, Any] = {}

    for field_name in EngineConfig.__dataclass_fields__:
        env_key = f"CODEMENTOR_{field_name.upper()}"
        env_value = os.environ.get(env_key)

        if env_value is None:
            continue

        type_hint = type_hints.get(field_name)
        if type_hint is None:
            continue

        try:
            parsed = _parse_env_value(env_value, type_hint)
            if parsed is not None:
                result[field_name] = parsed
        except ValueError as e:
            raise ConfigurationError(f"Invalid {env_key}: {e}")

    return result


def _parse_env_value(value: str, type_hint: Any) -> Any:
    """Parse environment variable string to the correct type.

    Raises:
        ValueError: If value can't be parsed to expected type
    """
    origin = getattr(type_hint, "__origin__", None)

    # Optional[X] is Union[X, None]
    args = getattr(type_hint, "__args__", ())
    if type(None) in args:
        non_none_types = [t for t in args if t is not type(None)]
        if non_none_types:
            type_hint = non_none_types[0]
            origin = getattr(type_hint, "__origin__", None)

    if origin is dict or type_hint is dict:
        return None

    if type_hint is bool:
        lower = value.lower()
        if lower in ("true", "1", "yes", "on"):
            return True
        elif lower in ("false", "0", "no", "off"):
            return False
        else:
            raise ValueError(f"expected true/false, got '{value}'")

    if type_hint is int:
        return int(value)

    if type_hint is float:
        return float(value)

    if type_hint is str or origin is Literal:
        return value

    return None


def _load_toml_file(path: Path) -> dict:
    """Load TOML file and return parsed dict."""
    try:
        import tomllib
    except ModuleNotFoundError:
        try:
            import tomli as tomllib  # type: ignore
        except ImportError:
            raise ConfigurationError(
                "TOML support requires Python 3.11+ or 'tomli' package. "
                "Install with: pip install tomli"
            )

    with open(path, "rb") as f:
        return tomllib.load(f)
