r"""Locate code blocks and inline code spans in chapter markdown.

The scanner works on the raw chapter text and reports exact offsets, so the
transformer can splice replacements into the original string and leave every
other byte untouched. It follows the CommonMark rules that matter for
splicing:

- backtick and tilde fences of three or more characters, indented at most
  three spaces past their container, closed by a fence at least as long as
  the opening one; unterminated fences run to the end of their container;
- indented code blocks (four columns past the enclosing list item's content)
  that start after a blank line or a block other than a paragraph;
- inline spans delimited by equal-length backtick runs that do not cross a
  blank line and never sit inside a code block.

Fences may open inside block quotes and list items, including on the list
marker line itself (``- ```typ``). Block quote markers are stripped from each
content line; list markers count as indentation.

Example
-------
>>> from typst_highlight.markdown_scanner import scan
>>> [type(c).__name__ for c in scan("Use `x`.\n\n```typ\n#x\n```\n")]
['InlineSpan', 'FencedBlock']
"""

from __future__ import annotations

import dataclasses as dc
import re
import typing as typ

from .policy import BlockTag, parse_tag

FENCE_OPEN_PATTERN = re.compile(
    r"^(?P<container>(?:[ ]{0,3}(?:>[ ]?|(?:[-+*]|\d{1,9}[.)])[ ]{1,4}))*)"
    r"(?P<indent>[ ]{0,3})(?P<fence>`{3,}|~{3,})(?P<info>.*)$"
)
LIST_ITEM_PATTERN = re.compile(
    r"^(?P<lead>[ ]{0,3})(?P<marker>[-+*]|\d{1,9}[.)])(?:(?P<gap>[ ]{1,4})|$)"
)
LIST_MARKER_CHARS = re.compile(r"[-+*.)\d]")
ATX_HEADING_PATTERN = re.compile(r"^[ ]{0,3}#{1,6}(?:[ \t]|$)")
BACKTICK_RUN_PATTERN = re.compile(r"`+")
BLANK_LINE_PATTERN = re.compile(r"\n[ \t]*\n")
CODE_INDENT = 4
TAB_STOP = 4


@dc.dataclass(frozen=True, slots=True)
class FencedBlock:
    """A fenced code block.

    Attributes
    ----------
    chapter : str
        Identifier of the chapter the block belongs to.
    start : int
        Offset of the first character of the opening fence line.
    end : int
        Offset just past the closing fence line, excluding its line break.
    code : str
        Block content with the container prefix removed from each line.
    info : str
        Info string following the opening fence.
    tag : BlockTag or None
        Parsed language tag; ``None`` when the info string is empty.
    prefix : str
        Text of the opening line before the fence (indentation, block quote
        and list markers); kept in front of the replacement.
    """

    chapter: str
    start: int
    end: int
    code: str
    info: str
    tag: BlockTag | None
    prefix: str = ""


@dc.dataclass(frozen=True, slots=True)
class IndentedBlock:
    """An indented code block; it never carries a language tag.

    ``prefix`` is the indentation of the enclosing list item's content, empty
    at top level. ``end`` excludes trailing blank lines.
    """

    chapter: str
    start: int
    end: int
    code: str
    prefix: str = ""


@dc.dataclass(frozen=True, slots=True)
class InlineSpan:
    """An inline code span such as ``#let x = 1`` written between backticks.

    ``code`` is the normalised content: line breaks become spaces and one
    surrounding space is stripped when present on both sides.
    """

    chapter: str
    start: int
    end: int
    code: str


CodeBlock: typ.TypeAlias = FencedBlock | IndentedBlock
CodeConstruct: typ.TypeAlias = FencedBlock | IndentedBlock | InlineSpan


@dc.dataclass(slots=True)
class _Line:
    start: int
    end: int
    text: str

    @property
    def blank(self) -> bool:
        return not self.text.strip()


def _split_lines(content: str) -> list[_Line]:
    lines: list[_Line] = []
    offset = 0
    for raw in content.splitlines(keepends=True):
        text = raw.rstrip("\r\n")
        lines.append(_Line(offset, offset + len(text), text))
        offset += len(raw)
    return lines


def _indent_width(text: str) -> int:
    """Return the column of the first non-blank character, expanding tabs."""
    column = 0
    for char in text:
        if char == " ":
            column += 1
        elif char == "\t":
            column += TAB_STOP - column % TAB_STOP
        else:
            break
    return column


def _split_columns(text: str, width: int) -> tuple[str, str]:
    """Split up to ``width`` columns of leading whitespace off ``text``."""
    column = 0
    idx = 0
    while idx < len(text) and column < width:
        char = text[idx]
        if char == " ":
            column += 1
        elif char == "\t":
            column += TAB_STOP - column % TAB_STOP
        else:
            break
        idx += 1
    # A tab straddling the boundary leaves its excess columns as spaces.
    return text[:idx], " " * max(column - width, 0) + text[idx:]


def _strip_columns(text: str, width: int) -> str:
    return _split_columns(text, width)[1]


def _strip_prefix(text: str, prefix: str) -> str:
    """Remove the content ``prefix`` from a line inside a fence.

    Block quote markers must match; missing spaces are tolerated, as
    CommonMark strips at most the fence's own indentation.
    """
    if text.startswith(prefix):
        return text[len(prefix) :]
    pos = 0
    for char in prefix:
        if pos < len(text) and text[pos] == char:
            pos += 1
        elif char != " ":
            break
    return text[pos:]


def _continues(line: _Line, container: str) -> bool:
    """Return ``True`` while ``line`` still belongs to the fence's container."""
    if ">" in container:
        return line.text.lstrip(" ").startswith(">")
    return line.blank or _indent_width(line.text) >= len(container)


def _is_closing(text: str, fence: str) -> bool:
    stripped = text.lstrip(" ")
    if len(text) - len(stripped) > 3:
        return False
    run = len(stripped) - len(stripped.lstrip(fence[0]))
    return run >= len(fence) and not stripped[run:].strip()


class _BlockScanner:
    """Walk the lines of a chapter, tracking list items and paragraphs."""

    def __init__(self, content: str, chapter: str) -> None:
        self.lines = _split_lines(content)
        self.chapter = chapter
        self.list_stack: list[int] = []
        self.paragraph = False
        self.after_blank = True
        self.blocks: list[CodeBlock] = []

    def run(self) -> list[CodeBlock]:
        idx = 0
        while idx < len(self.lines):
            idx = self._step(idx)
        return self.blocks

    def _step(self, idx: int) -> int:
        line = self.lines[idx]
        if line.blank:
            self.paragraph = False
            self.after_blank = True
            return idx + 1

        indent = _indent_width(line.text)
        lazy = self.paragraph and not self.after_blank
        if not lazy:
            while self.list_stack and indent < self.list_stack[-1]:
                self.list_stack.pop()
        base = self.list_stack[-1] if self.list_stack else 0
        self.after_blank = False

        if not self.paragraph and indent >= base + CODE_INDENT:
            return self._indented_block(idx, base)

        strip = min(base, indent)
        lead, rest = _split_columns(line.text, strip)
        item = LIST_ITEM_PATTERN.match(rest)
        if item is not None:
            marker_column = strip + len(item.group("lead"))
            while self.list_stack and self.list_stack[-1] > marker_column:
                self.list_stack.pop()
            gap = item.group("gap") or " "
            self.list_stack.append(marker_column + len(item.group("marker")) + len(gap))

        opener = FENCE_OPEN_PATTERN.match(rest)
        if opener is not None and not (
            opener.group("fence")[0] == "`" and "`" in opener.group("info")
        ):
            return self._fenced_block(idx, lead, rest, opener)

        self.paragraph = ATX_HEADING_PATTERN.match(line.text) is None and bool(
            item is None or item.end() < len(rest)
        )
        return idx + 1

    def _fenced_block(self, idx: int, lead: str, rest: str, opener: re.Match[str]) -> int:
        line = self.lines[idx]
        # List markers become spaces: content lines are indented past them.
        container = lead + LIST_MARKER_CHARS.sub(" ", opener.group("container"))
        content_prefix = container + opener.group("indent")
        fence = opener.group("fence")
        info = opener.group("info").strip()

        body: list[str] = []
        end = line.end
        last_content = idx
        close_idx = idx + 1
        closed = False
        while close_idx < len(self.lines):
            candidate_line = self.lines[close_idx]
            if not _continues(candidate_line, container):
                break
            candidate = _strip_prefix(candidate_line.text, content_prefix)
            close_idx += 1
            if _is_closing(candidate, fence):
                end = candidate_line.end
                closed = True
                break
            body.append(candidate + "\n")
            if not candidate_line.blank:
                last_content = close_idx - 1

        if not closed:
            # The container ended first; trailing blank lines stay outside.
            body = body[: last_content - idx]
            end = self.lines[last_content].end
            close_idx = last_content + 1

        self.blocks.append(
            FencedBlock(
                chapter=self.chapter,
                start=line.start,
                end=end,
                code="".join(body),
                info=info,
                tag=parse_tag(info),
                prefix=lead + rest[: opener.start("fence")],
            )
        )
        self.paragraph = False
        return close_idx

    def _indented_block(self, idx: int, base: int) -> int:
        width = base + CODE_INDENT
        last = idx
        scan_idx = idx
        while scan_idx < len(self.lines):
            candidate = self.lines[scan_idx]
            if not candidate.blank:
                if _indent_width(candidate.text) < width:
                    break
                last = scan_idx
            scan_idx += 1

        code = "".join(
            _strip_columns(self.lines[k].text, width) + "\n" for k in range(idx, last + 1)
        )
        self.blocks.append(
            IndentedBlock(
                chapter=self.chapter,
                start=self.lines[idx].start,
                end=self.lines[last].end,
                code=code,
                prefix=" " * base,
            )
        )
        self.paragraph = False
        return last + 1


def _normalize_span(code: str) -> str:
    code = code.replace("\r\n", " ").replace("\n", " ")
    if code.startswith(" ") and code.endswith(" ") and code.strip(" "):
        return code[1:-1]
    return code


def _scan_spans(content: str, start: int, stop: int, chapter: str) -> list[InlineSpan]:
    """Return inline spans found in ``content[start:stop]``."""
    spans: list[InlineSpan] = []
    pos = start
    while pos < stop:
        char = content[pos]
        if char == "\\":
            pos += 2
            continue
        if char != "`":
            pos += 1
            continue

        opener = typ.cast("re.Match[str]", BACKTICK_RUN_PATTERN.match(content, pos, stop))
        width = opener.end() - pos
        blank = BLANK_LINE_PATTERN.search(content, opener.end(), stop)
        limit = blank.start() if blank else stop
        closer = next(
            (
                run
                for run in BACKTICK_RUN_PATTERN.finditer(content, opener.end(), limit)
                if run.end() - run.start() == width
            ),
            None,
        )
        if closer is None:
            pos = opener.end()
            continue
        spans.append(
            InlineSpan(
                chapter=chapter,
                start=pos,
                end=closer.end(),
                code=_normalize_span(content[opener.end() : closer.start()]),
            )
        )
        pos = closer.end()
    return spans


def scan_blocks(content: str, chapter: str = "") -> list[CodeBlock]:
    """Return the fenced and indented code blocks of ``content`` in order."""
    return _BlockScanner(content, chapter).run()


def scan(content: str, chapter: str = "") -> list[CodeConstruct]:
    """Return every code block and inline span of ``content`` in source order.

    Parameters
    ----------
    content : str
        Chapter markdown.
    chapter : str, optional
        Identifier stored on each construct for diagnostics.

    Returns
    -------
    list[CodeConstruct]
        Non-overlapping constructs sorted by ``start``. Inline spans are never
        reported inside code blocks.
    """
    constructs: list[CodeConstruct] = []
    cursor = 0
    for block in scan_blocks(content, chapter):
        constructs.extend(_scan_spans(content, cursor, block.start, chapter))
        constructs.append(block)
        cursor = block.end
    constructs.extend(_scan_spans(content, cursor, len(content), chapter))
    return constructs


__all__ = [
    "CodeBlock",
    "CodeConstruct",
    "FencedBlock",
    "IndentedBlock",
    "InlineSpan",
    "scan",
    "scan_blocks",
]
