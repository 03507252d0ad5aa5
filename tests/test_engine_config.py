"""Tests for engine configuration loading."""

import pytest

from codementor.config import (
    CATEGORY_NAMES,
    DEFAULT_CONFIG,
    EngineConfig,
    file_provider,
    load_config,
    with_overrides,
)
from codementor.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    """Keep the user's home and project config out of every test."""
    monkeypatch.setattr("pathlib.Path.home", lambda: tmp_path / "home")
    monkeypatch.chdir(tmp_path)
    for name in EngineConfig.__dataclass_fields__:
        monkeypatch.delenv(f"CODEMENTOR_{name.upper()}", raising=False)


class TestDefaults:
    """Test EngineConfig defaults and validation."""

    def test_defaults(self):
        config = load_config()
        assert config.mode == "aggressive"
        assert config.min_function_length == 50
        assert config.max_concurrent_jobs == 3
        assert config.cache_ttl_seconds == 7 * 86400
        assert config.cache_max_bytes == 10 * 1024 * 1024
        assert not config.remote_enabled
        assert all(config.is_category_enabled(name) for name in CATEGORY_NAMES)

    @pytest.mark.parametrize(
        "field, value",
        [
            ("mode", "loud"),
            ("min_function_length", 0),
            ("duplicate_min_lines", 1),
            ("max_concurrent_jobs", 0),
            ("cache_ttl_days", 0),
            ("max_debounce_ms", -1),
            ("structural_timeout_s", 0),
        ],
    )
    def test_invalid_values(self, field, value):
        with pytest.raises(ConfigurationError):
            load_config(**{field: value})

    def test_unknown_category(self):
        with pytest.raises(ConfigurationError):
            load_config(category_flags={"Style": False})

    def test_with_overrides_validates(self):
        assert with_overrides(DEFAULT_CONFIG, mode="gentle").mode == "gentle"
        with pytest.raises(ConfigurationError):
            with_overrides(DEFAULT_CONFIG, mode="loud")


class TestSources:
    """Files, environment and overrides merge in priority order."""

    def test_project_file(self, tmp_path):
        (tmp_path / "codementor.toml").write_text('mode = "gentle"\nmin_function_length = 30\n')
        config = load_config()
        assert config.mode == "gentle"
        assert config.min_function_length == 30

    def test_engine_table_and_categories(self, tmp_path):
        path = tmp_path / "custom.toml"
        path.write_text('[engine]\nmax_parameters = 3\n\n[categories]\n"Security" = false\n')
        config = load_config(path)
        assert config.max_parameters == 3
        assert not config.is_category_enabled("Security")
        assert config.is_category_enabled("Performance")

    def test_global_then_project(self, tmp_path):
        home = tmp_path / "home"
        home.mkdir()
        (home / ".codementor.toml").write_text("max_parameters = 9\nmin_function_length = 70\n")
        (tmp_path / "codementor.toml").write_text("min_function_length = 30\n")
        config = load_config()
        assert config.max_parameters == 9
        assert config.min_function_length == 30

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        (tmp_path / "codementor.toml").write_text('mode = "gentle"\n')
        monkeypatch.setenv("CODEMENTOR_MODE", "aggressive")
        monkeypatch.setenv("CODEMENTOR_CACHE_TTL_DAYS", "2.5")
        monkeypatch.setenv("CODEMENTOR_REMOTE_ENDPOINT", "http://assist.local")
        config = load_config()
        assert config.mode == "aggressive"
        assert config.cache_ttl_days == 2.5
        assert config.remote_enabled

    def test_overrides_win(self, monkeypatch):
        monkeypatch.setenv("CODEMENTOR_MIN_FUNCTION_LENGTH", "40")
        assert load_config(min_function_length=20).min_function_length == 20

    def test_bad_env_value(self, monkeypatch):
        monkeypatch.setenv("CODEMENTOR_MAX_CONCURRENT_JOBS", "three")
        with pytest.raises(ConfigurationError, match="CODEMENTOR_MAX_CONCURRENT_JOBS"):
            load_config()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(tmp_path / "missing.toml")

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / "broken.toml"
        path.write_text("mode = \n")
        with pytest.raises(ConfigurationError, match="Invalid config file"):
            load_config(path)


class TestProviders:
    """Providers return a fresh snapshot per call."""

    def test_file_provider_rereads(self, tmp_path):
        path = tmp_path / "codementor.toml"
        path.write_text('mode = "aggressive"\n')
        provider = file_provider(path)
        assert provider().mode == "aggressive"
        path.write_text('mode = "gentle"\n')
        assert provider().mode == "gentle"
