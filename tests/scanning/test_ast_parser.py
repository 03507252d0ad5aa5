"""Tests for AstParser: backends, error tolerance and incremental reuse."""

import pytest

from codementor.scanning import AstParser, NodeKind, TREE_SITTER_AVAILABLE, detect_language, get_profile, require_profile
from codementor.exceptions import UnsupportedLanguageError

TWO_FUNCTIONS = """def first(a):
    total = a * 3
    return total

def second(b):
    for i in range(b):
        print(i)
    return b
"""


def _functions(tree):
    return {p.node.name: p for p in tree.walk() if p.kind is NodeKind.FUNCTION}


class TestLanguages:
    """Language profile resolution."""

    def test_aliases(self):
        assert get_profile("py").name == "python"
        assert get_profile("TypeScriptReact").grammar == "tsx"
        assert get_profile("cobol") is None

    def test_detect_language(self):
        assert detect_language("src/app.tsx") == "tsx"
        assert detect_language("main.py") == "python"
        assert detect_language("README.md") == "unknown"

    def test_require_profile_raises(self):
        with pytest.raises(UnsupportedLanguageError) as exc_info:
            require_profile("cobol")
        assert "python" in exc_info.value.supported_languages


class TestLimitedSupport:
    """Unsupported languages yield an empty limited tree."""

    def test_unknown_language(self, tracker):
        parser = AstParser(use_tree_sitter=False)
        rev = tracker.record_edit("x.cob", "DISPLAY 'HI'.", language="cobol")
        tree = parser.parse(rev)
        assert tree.limited
        assert tree.roots == ()
        assert tree.backend == "none"
        assert parser.limited_count == 1
        assert not tree.fully_unparsable

    def test_backend_for(self):
        assert AstParser(use_tree_sitter=False).backend_for("python") == "fallback"
        assert AstParser().backend_for("cobol") == "none"


class TestParsing:
    """Both backends produce the same normalized shape."""

    def test_functions_found(self, any_parser, tracker):
        rev = tracker.record_edit("a.py", TWO_FUNCTIONS, language="python")
        tree = any_parser.parse(rev)
        functions = _functions(tree)
        assert set(functions) == {"first", "second"}
        assert functions["first"].start_line == 1
        assert functions["second"].start_line == 5
        assert not tree.has_errors

    def test_loop_has_body(self, any_parser, tracker):
        rev = tracker.record_edit("a.py", TWO_FUNCTIONS, language="python")
        tree = any_parser.parse(rev)
        loops = [p for p in tree.walk() if p.kind is NodeKind.LOOP]
        assert len(loops) == 1
        assert loops[0].start_line == 6
        assert loops[0].node.body is not None

    def test_numbers_in_strings_and_comments_ignored(self, any_parser, tracker):
        code = 'def f():\n    # wait 42 seconds\n    s = "99 bottles"\n    return s\n'
        rev = tracker.record_edit("a.py", code, language="python")
        tree = any_parser.parse(rev)
        assert [p for p in tree.walk() if p.kind is NodeKind.NUMBER] == []

    def test_javascript_parameters(self, any_parser, tracker):
        code = "function add(a, b, c) {\n  return a + b + c;\n}\n"
        rev = tracker.record_edit("a.js", code, language="javascript")
        tree = any_parser.parse(rev)
        (fn,) = [p for p in tree.walk() if p.kind is NodeKind.FUNCTION]
        assert fn.node.name == "add"
        assert fn.node.param_count == 3

    def test_self_not_counted(self, any_parser, tracker):
        code = "class A:\n    def m(self, a, b):\n        return a\n"
        rev = tracker.record_edit("a.py", code, language="python")
        tree = any_parser.parse(rev)
        (fn,) = [p for p in tree.walk() if p.kind is NodeKind.FUNCTION]
        assert fn.node.param_count == 2


class TestFallbackErrors:
    """The regex fallback isolates broken regions."""

    def test_unbalanced_bracket_is_local(self, fallback_parser, tracker):
        code = "def broken(a):\n    x = (a + 1\n    return x\n\ndef fine(b):\n    return b\n"
        rev = tracker.record_edit("a.py", code, language="python")
        tree = fallback_parser.parse(rev)
        assert tree.error_spans() == [(2, 2)]
        assert "fine" in _functions(tree)
        numbers = [p for p in tree.walk() if p.kind is NodeKind.NUMBER]
        assert numbers == []

    def test_fully_unparsable(self, fallback_parser, tracker):
        rev = tracker.record_edit("a.py", ")))", language="python")
        tree = fallback_parser.parse(rev)
        assert tree.fully_unparsable

    def test_expression_arrow_is_not_a_function(self, fallback_parser, tracker):
        code = "const double = (x) => x * 2;\nconst run = (x) => {\n  return x;\n};\n"
        rev = tracker.record_edit("a.js", code, language="javascript")
        tree = fallback_parser.parse(rev)
        names = [p.node.name for p in tree.walk() if p.kind is NodeKind.FUNCTION]
        assert names == ["run"]
        assert not tree.has_errors

    def test_header_without_body(self, fallback_parser, tracker):
        code = "def f(a):\n\nx = 1\n"
        rev = tracker.record_edit("a.py", code, language="python")
        tree = fallback_parser.parse(rev)
        assert tree.error_spans() == [(1, 1)]


@pytest.mark.skipif(not TREE_SITTER_AVAILABLE, reason="tree-sitter not installed")
class TestTreeSitterErrors:
    """tree-sitter trees with syntax errors still come back."""

    def test_syntax_error_does_not_raise(self, tracker):
        parser = AstParser()
        if parser.backend_for("javascript") != "tree-sitter":
            pytest.skip("javascript grammar not installed")
        code = "function ok(a) {\n  return a;\n}\nfunction bad( {\n"
        rev = tracker.record_edit("a.js", code, language="javascript")
        tree = parser.parse(rev)
        assert tree.backend == "tree-sitter"
        assert tree.has_errors


class TestIncrementalReuse:
    """Unchanged top-level nodes are carried over between revisions."""

    def test_edit_inside_one_function(self, any_parser, tracker):
        r1 = tracker.record_edit("a.py", TWO_FUNCTIONS, language="python")
        t1 = any_parser.parse(r1)
        r2 = tracker.record_edit("a.py", TWO_FUNCTIONS.replace("print(i)", "print(i, b)"))
        t2 = any_parser.parse(r2, previous_tree=t1)

        assert t2.arena is t1.arena
        assert t2.reused_count == 1
        first_root = next(r for r in t2.roots if t2.node(r.index).name == "first")
        assert first_root.reused
        assert first_root.index == t1.roots[0].index

    def test_insert_above_shifts_reused_nodes(self, any_parser, tracker):
        r1 = tracker.record_edit("a.py", TWO_FUNCTIONS, language="python")
        t1 = any_parser.parse(r1)
        r2 = tracker.record_edit("a.py", "# header\n" + TWO_FUNCTIONS)
        t2 = any_parser.parse(r2, previous_tree=t1)

        assert t2.reused_count == 2
        functions = _functions(t2)
        assert functions["first"].start_line == 2
        assert functions["second"].start_line == 6
        loops = [p for p in t2.walk() if p.kind is NodeKind.LOOP]
        assert loops[0].start_line == 7

    def test_unrelated_previous_tree_not_reused(self, any_parser, tracker):
        r1 = tracker.record_edit("a.py", TWO_FUNCTIONS, language="python")
        t1 = any_parser.parse(r1)
        other = tracker.record_edit("b.py", TWO_FUNCTIONS, language="python")
        t2 = any_parser.parse(other, previous_tree=t1)
        assert t2.reused_count == 0
        assert t2.arena is not t1.arena

    def test_arena_cap_starts_fresh(self, tracker):
        parser = AstParser(use_tree_sitter=False, max_arena_nodes=1)
        r1 = tracker.record_edit("a.py", TWO_FUNCTIONS, language="python")
        t1 = parser.parse(r1)
        r2 = tracker.record_edit("a.py", "# header\n" + TWO_FUNCTIONS)
        t2 = parser.parse(r2, previous_tree=t1)
        assert t2.arena is not t1.arena
        assert t2.reused_count == 0

    def test_counters(self, fallback_parser, tracker):
        r1 = tracker.record_edit("a.py", TWO_FUNCTIONS, language="python")
        t1 = fallback_parser.parse(r1)
        r2 = tracker.record_edit("a.py", "# header\n" + TWO_FUNCTIONS)
        fallback_parser.parse(r2, previous_tree=t1)
        assert fallback_parser.fallback_count == 2
        assert fallback_parser.reused_roots == 2


class TestBackendFailure:
    """A crashing backend degrades instead of raising."""

    def test_fallback_crash_returns_error_tree(self, tracker, monkeypatch):
        from codementor.scanning import fallback

        def explode(self, text):
            raise RuntimeError("boom")

        monkeypatch.setattr(fallback.RegexFallbackParser, "scan", explode)
        parser = AstParser(use_tree_sitter=False)
        rev = tracker.record_edit("a.py", "x = 1\n", language="python")
        tree = parser.parse(rev)
        assert tree.fully_unparsable
        assert tree.error_spans() == [(1, 2)]
