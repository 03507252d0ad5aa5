"""Regex-based fallback parser.

Used when tree-sitter or a grammar is unavailable, or when the tree-sitter
backend fails. Produces the same normalized nodes as the tree-sitter
normalizer, built from line regexes and bracket matching over a copy of the
source with strings and comments blanked out.

Results are approximate but sufficient for the local pattern queries.
Unbalanced brackets and function headers without a body become error
nodes; everything else in the file is still scanned.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass, field
from typing import Optional

from .languages import LanguageProfile
from .syntax import NodeArena, NodeKind, SyntaxNode

_NUMBER_RE = re.compile(
    r"(?<![\w.$])(?:0[xX][0-9a-fA-F_]+|0[bB][01_]+|0[oO][0-7_]+|"
    r"(?:\d[\d_]*\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)[njJ]?(?![\w$])"
)
_LOOSE_EQ_RE = re.compile(r"(?<![=!<>])(==|!=)(?!=)")

# Brace languages
_JS_FUNCTION_RES = (
    re.compile(r"\bfunction\b\s*\*?\s*(?P<name>[\w$]*)\s*(?:<[^>]*>)?\s*\("),
    re.compile(
        r"(?P<name>[\w$]+)\s*(?::[^=]+)?=\s*(?:async\s+)?(?:<[^>]*>)?\s*\((?=[^)]*\)\s*(?::[^=]+)?=>)"
    ),
    re.compile(
        r"^\s*(?:(?:public|private|protected|static|async|get|set|readonly|override)\s+)*"
        r"\*?\s*(?P<name>#?[\w$]+)\s*(?:<[^>]*>)?\s*\((?=[^;]*\)\s*(?::[^{;]+)?\{)"
    ),
)
_JS_KEYWORDS = frozenset(
    {"if", "for", "while", "switch", "catch", "function", "return", "with", "do", "else", "new"}
)
_JS_LOOP_RE = re.compile(r"\b(?P<kw>for|while)\s*(?:await\s*)?\(|\bdo\s*\{")
_JS_DECL_RE = re.compile(r"\b(?:const|let|var)\s+[\w${\[]|\btype\s+[\w$]+\s*(?:<[^>]*>)?\s*=")
_JS_ENUM_RE = re.compile(r"\b(?:const\s+)?enum\s+[\w$]+\s*\{")
_JS_CLASS_RE = re.compile(r"\bclass\s+[\w$]+[^{]*\{")
_JS_FIELD_RE = re.compile(
    r"^\s*(?:(?:public|private|protected|static|readonly|declare|override)\s+)*"
    r"#?[\w$]+\s*[?!]?\s*(?::\s*[^=;(]+)?=(?![=>])"
)
_JS_CALL_RE = re.compile(r"(?<![\w.$])(?P<name>eval|Function)\s*\(")

# Indent languages
_PY_FUNCTION_RE = re.compile(r"^(?P<indent>[ \t]*)(?:async\s+)?def\s+(?P<name>\w+)\s*\(")
_PY_LOOP_RE = re.compile(r"^(?P<indent>[ \t]*)(?:async\s+)?(?:for|while)\b")
_PY_CONSTANT_RE = re.compile(
    r"^[ \t]*[A-Za-z_][\w.]*\s*(?::\s*[^=]+)?=\s*[-+]?\s*(?P<number>[\w.]+)\s*$"
)
_PY_CALL_RE = re.compile(r"(?<![\w.])(?P<name>eval|exec)\s*\(")

_OPENERS = {"(": ")", "[": "]", "{": "}"}
_CLOSERS = {")": "(", "]": "[", "}": "{"}


@dataclass
class _Draft:
    kind: NodeKind
    type: str
    start: tuple[int, int]  # (line, col), 1-indexed line
    end: tuple[int, int]
    name: str = ""
    value: str = ""
    param_count: int = 0
    body: Optional["_Draft"] = None
    children: list["_Draft"] = field(default_factory=list)

    def contains(self, other: "_Draft") -> bool:
        return self.start <= other.start and other.end <= self.end and self is not other


@dataclass
class FallbackRoot:
    """A top-level construct found by the fallback scanner."""

    start_line: int
    end_line: int
    digest: str
    draft: _Draft

    def emit(self, arena: NodeArena) -> int:
        return _emit(self.draft, arena, self.start_line)


class RegexFallbackParser:
    """Line/bracket scanner producing normalized nodes for one profile."""

    def __init__(self, profile: LanguageProfile) -> None:
        self.profile = profile

    def scan(self, text: str) -> list[FallbackRoot]:
        """Scan ``text`` into top-level roots in source order."""
        masked = mask_source(text, self.profile)
        lines = masked.split("\n")
        offsets = _line_offsets(masked)

        errors, pairs = _match_brackets(masked, offsets)
        drafts: list[_Draft] = list(errors)

        if self.profile.block_style == "indent":
            drafts.extend(self._scan_indent(lines, masked, offsets, pairs, errors))
        else:
            drafts.extend(self._scan_brace(lines, masked, offsets, pairs, errors))

        drafts.extend(self._scan_leaves(lines))

        # Partial-result policy: nothing survives inside an error span
        error_spans = [(e.start, e.end) for e in errors]
        drafts = [
            d
            for d in drafts
            if d.kind is NodeKind.ERROR
            or not any(s[0] <= d.start[0] <= e[0] for s, e in error_spans)
        ]

        roots = _nest(drafts)
        source_lines = text.split("\n")
        result: list[FallbackRoot] = []
        for draft in roots:
            snippet = "\n".join(source_lines[draft.start[0] - 1:draft.end[0]])
            digest = hashlib.sha1(f"{draft.start[1]}:{snippet}".encode("utf-8", "surrogatepass")).hexdigest()
            result.append(FallbackRoot(draft.start[0], draft.end[0], digest, draft))
        return result

    # -- brace languages ---------------------------------------------------

    def _scan_brace(self, lines, masked, offsets, pairs, errors) -> list[_Draft]:
        drafts: list[_Draft] = []
        seen_functions: set[int] = set()
        for pattern_index, pattern in enumerate(_JS_FUNCTION_RES):
            if pattern.pattern.startswith("^"):
                matches = _iter_line_matches(pattern, lines, offsets)
            else:
                matches = pattern.finditer(masked)
            for match in matches:
                name = match.group("name") or "<anonymous>"
                if name in _JS_KEYWORDS:
                    continue
                paren = masked.find("(", match.start("name") if match.group("name") else match.start())
                if paren < 0 or paren in seen_functions:
                    continue
                close = pairs.get(paren)
                if close is None:
                    continue
                if pattern_index == 1:
                    # Arrow functions only count with a block body
                    arrow = masked.find("=>", close)
                    brace = _next_code_char(masked, arrow + 2) if arrow >= 0 else None
                    if brace is None or masked[brace] != "{":
                        continue
                else:
                    brace = _next_code_char(masked, close + 1, "{")
                # Overload signatures have no body; unmatched braces are already errors
                if brace is None or brace not in pairs:
                    continue
                seen_functions.add(paren)
                end = _pos(offsets, pairs[brace] + 1)
                body = _Draft(NodeKind.OTHER, "statement_block", _pos(offsets, brace), end)
                drafts.append(
                    _Draft(
                        NodeKind.FUNCTION,
                        "function",
                        _pos(offsets, match.start()),
                        end,
                        name=name,
                        param_count=_count_params(masked[paren + 1:close], self.profile),
                        body=body,
                    )
                )
                drafts.append(body)
                drafts.append(
                    _Draft(NodeKind.PARAMETERS, "formal_parameters", _pos(offsets, paren), _pos(offsets, close + 1))
                )

        for match in _JS_LOOP_RE.finditer(masked):
            if match.group("kw") is None:
                brace = masked.find("{", match.start())
                if brace not in pairs:
                    continue
                body_start, body_end = brace, pairs[brace] + 1
            else:
                paren = masked.find("(", match.start())
                close = pairs.get(paren)
                if close is None:
                    continue
                nxt = _next_code_char(masked, close + 1)
                if nxt is None or masked[nxt] == ";":
                    # do { } while (...); tail
                    continue
                if masked[nxt] == "{" and nxt in pairs:
                    body_start, body_end = nxt, pairs[nxt] + 1
                else:
                    body_start, body_end = nxt, _statement_end(masked, nxt, pairs)
            body = _Draft(NodeKind.OTHER, "statement", _pos(offsets, body_start), _pos(offsets, body_end))
            drafts.append(
                _Draft(NodeKind.LOOP, "loop", _pos(offsets, match.start()), body.end, body=body)
            )
            drafts.append(body)

        for match in _JS_DECL_RE.finditer(masked):
            end = _statement_end(masked, match.start(), pairs)
            drafts.append(
                _Draft(NodeKind.DECLARATION, "declaration", _pos(offsets, match.start()), _pos(offsets, end))
            )

        for match in _JS_ENUM_RE.finditer(masked):
            brace = match.end() - 1
            if brace in pairs:
                drafts.append(
                    _Draft(NodeKind.ENUM, "enum_declaration", _pos(offsets, match.start()), _pos(offsets, pairs[brace] + 1))
                )

        function_bodies = [d for d in drafts if d.kind is NodeKind.FUNCTION]
        for match in _JS_CLASS_RE.finditer(masked):
            brace = match.end() - 1
            if brace not in pairs:
                continue
            first, last = _pos(offsets, brace)[0], _pos(offsets, pairs[brace])[0]
            for line_no in range(first + 1, last):
                if any(f.body and f.body.start[0] <= line_no <= f.body.end[0] for f in function_bodies):
                    continue
                field_match = _JS_FIELD_RE.match(lines[line_no - 1])
                if field_match:
                    line_end = len(lines[line_no - 1].rstrip())
                    drafts.append(
                        _Draft(NodeKind.DECLARATION, "field_definition", (line_no, field_match.start()), (line_no, line_end))
                    )
        return drafts

    # -- indent languages --------------------------------------------------

    def _scan_indent(self, lines, masked, offsets, pairs, errors) -> list[_Draft]:
        drafts: list[_Draft] = []

        for index, line in enumerate(lines):
            line_no = index + 1
            match = _PY_FUNCTION_RE.match(line)
            if match:
                paren = offsets[index] + match.end() - 1
                close = pairs.get(paren)
                if close is None:
                    continue
                # Skips a return annotation up to the header colon
                colon = _header_colon(masked, close + 1, pairs)
                if colon is None:
                    drafts.append(_error_line(line_no, lines))
                    continue
                body = _indent_body(lines, offsets, colon, len(match.group("indent").expandtabs()))
                if body is None:
                    drafts.append(_error_line(line_no, lines))
                    continue
                drafts.append(
                    _Draft(
                        NodeKind.FUNCTION,
                        "function_definition",
                        (line_no, len(match.group("indent"))),
                        body.end,
                        name=match.group("name"),
                        param_count=_count_params(masked[paren + 1:close], self.profile),
                        body=body,
                    )
                )
                drafts.append(body)
                drafts.append(
                    _Draft(NodeKind.PARAMETERS, "parameters", _pos(offsets, paren), _pos(offsets, close + 1))
                )
                continue

            match = _PY_LOOP_RE.match(line)
            if match:
                colon = _header_colon(masked, offsets[index] + match.end(), pairs)
                if colon is None:
                    continue
                body = _indent_body(lines, offsets, colon, len(match.group("indent").expandtabs()))
                if body is None:
                    continue
                drafts.append(
                    _Draft(NodeKind.LOOP, "loop", (line_no, len(match.group("indent"))), body.end, body=body)
                )
                drafts.append(body)
                continue

            match = _PY_CONSTANT_RE.match(line)
            if match and _NUMBER_RE.fullmatch(match.group("number")):
                start_col = len(line) - len(line.lstrip())
                drafts.append(
                    _Draft(NodeKind.DECLARATION, "assignment", (line_no, start_col), (line_no, len(line.rstrip())))
                )
        return drafts

    # -- leaves --------------------------------------------------------------

    def _scan_leaves(self, lines: list[str]) -> list[_Draft]:
        profile = self.profile
        call_re = _PY_CALL_RE if profile.block_style == "indent" else _JS_CALL_RE
        drafts: list[_Draft] = []
        for index, line in enumerate(lines):
            line_no = index + 1
            for match in _NUMBER_RE.finditer(line):
                drafts.append(
                    _Draft(
                        NodeKind.NUMBER,
                        "number",
                        (line_no, match.start()),
                        (line_no, match.end()),
                        value=match.group(),
                    )
                )
            for match in call_re.finditer(line):
                if match.group("name") in profile.dangerous_calls:
                    drafts.append(
                        _Draft(NodeKind.CALL, "call", (line_no, match.start()), (line_no, match.end()), name=match.group("name"))
                    )
            if profile.loose_equality_operators:
                for match in _LOOSE_EQ_RE.finditer(line):
                    drafts.append(
                        _Draft(
                            NodeKind.COMPARISON,
                            "binary_expression",
                            (line_no, match.start()),
                            (line_no, match.end()),
                            value=match.group(1),
                        )
                    )
        return drafts


def mask_source(text: str, profile: LanguageProfile) -> str:
    """Blank out comments and string literals, preserving line/column layout."""
    out = list(text)
    i = 0
    n = len(text)
    line_comment = profile.line_comment
    block = profile.block_comment
    quotes = ("'", '"', "`") if profile.block_style == "brace" else ("'", '"')

    def blank(start: int, end: int) -> None:
        for k in range(start, min(end, n)):
            if out[k] != "\n":
                out[k] = " "

    while i < n:
        if text.startswith(line_comment, i):
            end = text.find("\n", i)
            end = n if end < 0 else end
            blank(i, end)
            i = end
        elif block is not None and text.startswith(block[0], i):
            end = text.find(block[1], i + len(block[0]))
            end = n if end < 0 else end + len(block[1])
            blank(i, end)
            i = end
        elif text[i] in quotes:
            delimiter = text[i]
            if profile.block_style == "indent" and text.startswith(delimiter * 3, i):
                delimiter = delimiter * 3
            multiline = len(delimiter) == 3 or delimiter == "`"
            j = i + len(delimiter)
            while j < n:
                if text[j] == "\\":
                    j += 2
                    continue
                if text.startswith(delimiter, j):
                    j += len(delimiter)
                    break
                if text[j] == "\n" and not multiline:
                    break
                j += 1
            blank(i, j)
            i = j
        else:
            i += 1
    return "".join(out)


def _iter_line_matches(pattern: re.Pattern, lines: list[str], offsets: list[int]):
    """Run a line-anchored pattern, yielding matches shifted to absolute offsets."""
    for index, line in enumerate(lines):
        match = pattern.match(line)
        if match:
            yield _ShiftedMatch(match, offsets[index])


class _ShiftedMatch:
    def __init__(self, match: re.Match, offset: int) -> None:
        self._match = match
        self._offset = offset

    def group(self, name: str = None):  # type: ignore[assignment]
        return self._match.group(name) if name else self._match.group()

    def start(self, name: str = None) -> int:  # type: ignore[assignment]
        return self._offset + (self._match.start(name) if name else self._match.start())


def _line_offsets(text: str) -> list[int]:
    offsets = [0]
    for match in re.finditer("\n", text):
        offsets.append(match.end())
    return offsets


def _pos(offsets: list[int], offset: int) -> tuple[int, int]:
    """Absolute offset to (1-indexed line, column)."""
    lo, hi = 0, len(offsets) - 1
    while lo < hi:
        mid = (lo + hi + 1) // 2
        if offsets[mid] <= offset:
            lo = mid
        else:
            hi = mid - 1
    return (lo + 1, offset - offsets[lo])


def _match_brackets(masked: str, offsets: list[int]) -> tuple[list[_Draft], dict[int, int]]:
    """Pair brackets; unmatched or mismatched ones become error lines."""
    pairs: dict[int, int] = {}
    stack: list[int] = []
    bad: set[int] = set()
    for i, ch in enumerate(masked):
        if ch in _OPENERS:
            stack.append(i)
        elif ch in _CLOSERS:
            if stack and masked[stack[-1]] == _CLOSERS[ch]:
                pairs[stack.pop()] = i
            else:
                bad.add(_pos(offsets, i)[0])
    for i in stack:
        bad.add(_pos(offsets, i)[0])

    lines = masked.split("\n")
    return [_error_line(line_no, lines) for line_no in sorted(bad)], pairs


def _error_line(line_no: int, lines: list[str]) -> _Draft:
    text = lines[line_no - 1] if line_no - 1 < len(lines) else ""
    start_col = len(text) - len(text.lstrip())
    return _Draft(NodeKind.ERROR, "ERROR", (line_no, start_col), (line_no, len(text.rstrip())))


def _next_code_char(masked: str, start: int, expected: Optional[str] = None) -> Optional[int]:
    """Index of the next non-whitespace character (or of ``expected``)."""
    i = start
    while i < len(masked):
        ch = masked[i]
        if expected is not None:
            if ch == expected:
                return i
            if ch in ";":
                return None
        elif not ch.isspace():
            return i
        i += 1
    return None


def _statement_end(masked: str, start: int, pairs: dict[int, int]) -> int:
    """End offset of the statement starting at ``start``."""
    i = start
    n = len(masked)
    last_code = ""
    while i < n:
        ch = masked[i]
        if ch in _OPENERS and i in pairs:
            i = pairs[i] + 1
            last_code = _CLOSERS_OF[ch]
            continue
        if ch in _CLOSERS:
            # Closes the construct the statement sits in, e.g. a for header
            return i
        if ch == ";":
            return i + 1
        if ch == "\n" and last_code and last_code not in "=,+-*/%&|?:<>!([{.":
            return i
        if not ch.isspace():
            last_code = ch
        i += 1
    return n


_CLOSERS_OF = {"(": ")", "[": "]", "{": "}"}


def _header_colon(masked: str, start: int, pairs: dict[int, int]) -> Optional[int]:
    """The block-opening colon of a Python header, skipping bracketed parts."""
    i = start
    while i < len(masked):
        ch = masked[i]
        if ch in _OPENERS:
            if i not in pairs:
                return None
            i = pairs[i] + 1
            continue
        if ch == ":":
            return i
        if ch == "\n":
            return None
        i += 1
    return None


def _indent_body(lines: list[str], offsets: list[int], colon: int, header_indent: int) -> Optional[_Draft]:
    """Body of an indented block whose header colon is at offset ``colon``."""
    line_index, col = _pos(offsets, colon)
    line_index -= 1
    rest = lines[line_index][col + 1:]
    if rest.strip():
        # One-liner: def f(): return 1
        start_col = col + 1 + (len(rest) - len(rest.lstrip()))
        return _Draft(NodeKind.OTHER, "block", (line_index + 1, start_col), (line_index + 1, len(lines[line_index].rstrip())))

    first = None
    last = None
    for k in range(line_index + 1, len(lines)):
        text = lines[k]
        if not text.strip():
            continue
        indent = len(text.expandtabs()) - len(text.expandtabs().lstrip())
        if indent <= header_indent:
            break
        if first is None:
            first = k
        last = k
    if first is None or last is None:
        return None
    start_col = len(lines[first]) - len(lines[first].lstrip())
    return _Draft(NodeKind.OTHER, "block", (first + 1, start_col), (last + 1, len(lines[last].rstrip())))


def _count_params(params: str, profile: LanguageProfile) -> int:
    depth = 0
    parts: list[str] = []
    current: list[str] = []
    for ch in params:
        if ch in "([{<":
            depth += 1
        elif ch in ")]}>":
            depth -= 1
        if ch == "," and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
    parts.append("".join(current))

    count = 0
    for part in parts:
        label = part.split(":")[0].split("=")[0].strip()
        if not label or label in ("/", "*") or label in profile.implicit_parameters:
            continue
        count += 1
    return count


def _nest(drafts: list[_Draft]) -> list[_Draft]:
    """Arrange drafts into a forest by span containment."""
    owners = {id(d.body): d for d in drafts if d.body is not None}

    def rank(draft: _Draft) -> float:
        owner = owners.get(id(draft))
        if owner is None:
            return _PRIORITY.get(draft.kind, 9)
        # A body goes directly under its owner, ahead of statements sharing its span
        if (owner.start, owner.end) == (draft.start, draft.end):
            return rank(owner) + 0.5
        return -1

    ordered = sorted(drafts, key=lambda d: (d.start, (-d.end[0], -d.end[1]), rank(d)))
    roots: list[_Draft] = []
    stack: list[_Draft] = []
    for draft in ordered:
        while stack and not stack[-1].contains(draft):
            stack.pop()
        if stack:
            stack[-1].children.append(draft)
        else:
            roots.append(draft)
        if draft.kind is not NodeKind.ERROR:
            stack.append(draft)
    return roots


# Outer-first ordering for drafts sharing a span
_PRIORITY = {
    NodeKind.FUNCTION: 0,
    NodeKind.LOOP: 1,
    NodeKind.ENUM: 2,
    NodeKind.DECLARATION: 3,
    NodeKind.PARAMETERS: 4,
    NodeKind.OTHER: 5,
    NodeKind.COMPARISON: 6,
    NodeKind.CALL: 7,
    NodeKind.NUMBER: 8,
}


def _emit(draft: _Draft, arena: NodeArena, root_line: int) -> int:
    children = tuple(_emit(child, arena, root_line) for child in draft.children)
    body_index = None
    if draft.body is not None:
        for child, index in zip(draft.children, children):
            if child is draft.body:
                body_index = index
                break
    return arena.add(
        SyntaxNode(
            kind=draft.kind,
            type=draft.type,
            start_line=draft.start[0] - root_line,
            start_col=draft.start[1],
            end_line=draft.end[0] - root_line,
            end_col=draft.end[1],
            children=children,
            body=body_index,
            name=draft.name,
            value=draft.value,
            param_count=draft.param_count,
        )
    )
