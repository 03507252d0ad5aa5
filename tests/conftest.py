"""Shared test fixtures for the codementor engine tests."""

import pytest

from codementor.scanning import AstParser
from codementor.tracking import SourceBufferTracker


def pytest_addoption(parser):
    """Add --run-slow option for slow tests."""
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="run slow tests",
    )


def pytest_configure(config):
    """Configure slow marker."""
    config.addinivalue_line("markers", "slow: mark test as slow to run")


def pytest_collection_modifyitems(config, items):
    """Skip slow tests unless --run-slow is given."""
    if config.getoption("--run-slow"):
        return
    skip_slow = pytest.mark.skip(reason="need --run-slow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


class FakeClock:
    """Manually advanced clock, callable like time.time."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


@pytest.fixture
def clock():
    """A fake clock starting at a fixed instant."""
    return FakeClock()


@pytest.fixture
def tracker():
    return SourceBufferTracker()


@pytest.fixture
def fallback_parser():
    """Parser forced onto the regex fallback backend."""
    return AstParser(use_tree_sitter=False)


@pytest.fixture(params=["tree-sitter", "fallback"])
def any_parser(request):
    """Each available backend in turn."""
    from codementor.scanning import TREE_SITTER_AVAILABLE

    if request.param == "tree-sitter":
        if not TREE_SITTER_AVAILABLE:
            pytest.skip("tree-sitter not installed")
        parser = AstParser()
        if parser.backend_for("python") != "tree-sitter":
            pytest.skip("tree-sitter grammars not installed")
        return parser
    return AstParser(use_tree_sitter=False)


def _python_function(name: str, body_lines: int, indent: str = "") -> str:
    """A Python function with ``body_lines`` distinct logical statements."""
    lines = [f"{indent}def {name}(a, b):"]
    lines.extend(f"{indent}    v{i} = a + b + v{i - 1}" if i else f"{indent}    v0 = a + b" for i in range(body_lines))
    return "\n".join(lines) + "\n"


def _js_function(name: str, body_lines: int) -> str:
    """A JavaScript function with ``body_lines`` distinct logical statements."""
    lines = [f"function {name}(a, b) {{"]
    lines.extend(f"  let v{i} = a + b + v{i - 1};" if i else "  let v0 = a + b;" for i in range(body_lines))
    lines.append("}")
    return "\n".join(lines) + "\n"


@pytest.fixture
def python_function():
    """Factory: ``python_function(name, body_lines)`` source text."""
    return _python_function


@pytest.fixture
def js_function():
    """Factory: ``js_function(name, body_lines)`` source text."""
    return _js_function
