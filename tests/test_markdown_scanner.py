"""Tests for locating fenced blocks and inline spans in chapter markdown."""

from __future__ import annotations

import pytest

from typst_highlight.markdown_scanner import FencedBlock, IndentedBlock, InlineSpan, scan


def _only(constructs: list, kind: type) -> list:
    return [construct for construct in constructs if isinstance(construct, kind)]


def test_constructs_are_reported_in_source_order() -> None:
    content = "Use `x`.\n\n```typ\n#x\n```\n\nthen `y`"
    constructs = scan(content, "intro.md")
    assert [type(c).__name__ for c in constructs] == [
        "InlineSpan",
        "FencedBlock",
        "InlineSpan",
    ]
    assert all(c.chapter == "intro.md" for c in constructs)
    starts = [c.start for c in constructs]
    assert starts == sorted(starts)


def test_fenced_block_offsets_cover_the_fences() -> None:
    content = "before\n```typst,ignore\n#let x = 1\n```\nafter\n"
    (block,) = scan(content)
    assert isinstance(block, FencedBlock)
    assert content[block.start : block.end] == "```typst,ignore\n#let x = 1\n```"
    assert block.code == "#let x = 1\n"
    assert block.info == "typst,ignore"
    assert block.tag is not None
    assert block.tag.base == "typst"


def test_untagged_fence_has_no_tag() -> None:
    (block,) = scan("```\nplain\n```\n")
    assert block.info == ""
    assert block.tag is None


@pytest.mark.parametrize(
    ("content", "code"),
    [
        ("~~~typ\n#x\n~~~\n", "#x\n"),
        ("````typ\n```\n````\n", "```\n"),
        ("```typ\na\n``````\nb", "a\n"),
        ("```typ\n\n\n```", "\n\n"),
    ],
)
def test_fence_closing_rules(content: str, code: str) -> None:
    (block,) = _only(scan(content), FencedBlock)
    assert block.code == code


def test_unterminated_fence_runs_to_end_of_input() -> None:
    content = "text\n```typ\n#a\n#b"
    (block,) = scan(content)
    assert block.end == len(content)
    assert block.code == "#a\n#b\n"


def test_tilde_fence_is_not_closed_by_backticks() -> None:
    content = "~~~typ\n```\n~~~\n"
    (block,) = scan(content)
    assert block.code == "```\n"


def test_fence_inside_block_quote_strips_markers() -> None:
    content = "> Quote\n> ```typ\n> #x\n> ```\n"
    (block,) = scan(content)
    assert block.prefix == "> "
    assert block.code == "#x\n"
    assert content[block.start : block.end] == "> ```typ\n> #x\n> ```"


def test_fence_inside_list_item_strips_indentation() -> None:
    content = "- item\n\n  ```typ\n  #x\n    nested\n  ```\n"
    (block,) = scan(content)
    assert block.prefix == "  "
    assert block.code == "#x\n  nested\n"


def test_backtick_fence_info_may_not_contain_backticks() -> None:
    constructs = scan("```a`b\n")
    assert _only(constructs, FencedBlock) == []


@pytest.mark.parametrize(
    ("content", "code"),
    [
        ("a `#let x = 1` b", "#let x = 1"),
        ("``a`b``", "a`b"),
        ("`` `a` ``", "`a`"),
        ("`a\nb`", "a b"),
        ("`  `", "  "),
    ],
)
def test_inline_span_content_is_normalized(content: str, code: str) -> None:
    (span,) = scan(content)
    assert isinstance(span, InlineSpan)
    assert span.code == code
    assert content[span.start : span.end].startswith("`")


@pytest.mark.parametrize(
    "content",
    [
        "`a\n\nb`",
        "``a`",
        "\\`not code`",
        "plain text",
    ],
)
def test_text_without_inline_spans(content: str) -> None:
    assert _only(scan(content), InlineSpan) == []


def test_spans_are_never_reported_inside_fences() -> None:
    content = "```typ\n`inside`\n```\n`outside`"
    constructs = scan(content)
    spans = _only(constructs, InlineSpan)
    assert [span.code for span in spans] == ["outside"]


def test_constructs_do_not_overlap() -> None:
    content = "`a` ``b`` \n```\n`c`\n```\n~~~typ\nd\n~~~\n`e`"
    constructs = scan(content)
    for left, right in zip(constructs, constructs[1:], strict=False):
        assert left.end <= right.start


@pytest.mark.parametrize(
    ("content", "prefix"),
    [
        ("- ```typ\n  #x\n  ```\n", "- "),
        ("1. ```typ\n   #x\n   ```\n", "1. "),
        ("> - ```typ\n>   #x\n>   ```\n", "> - "),
    ],
)
def test_fence_on_list_marker_line(content: str, prefix: str) -> None:
    (block,) = scan(content)
    assert isinstance(block, FencedBlock)
    assert block.prefix == prefix
    assert block.tag is not None
    assert block.tag.base == "typ"
    assert block.code == "#x\n"
    assert content[block.end :] == "\n"


def test_list_fence_closing_line_does_not_open_a_new_fence() -> None:
    content = "- ```typ\n  #x\n  ```\n\nSee `y` here.\n\n```rust\nfn main() {}\n```\n"
    constructs = scan(content)
    assert [type(c).__name__ for c in constructs] == [
        "FencedBlock",
        "InlineSpan",
        "FencedBlock",
    ]
    assert constructs[1].code == "y"
    assert constructs[2].info == "rust"


def test_unclosed_list_fence_ends_with_its_item() -> None:
    content = "- ```typ\n  #x\n\nAfter `y`.\n"
    block, span = scan(content)
    assert isinstance(block, FencedBlock)
    assert block.code == "#x\n"
    assert content[block.start : block.end] == "- ```typ\n  #x"
    assert isinstance(span, InlineSpan)
    assert span.code == "y"


def test_indented_block_is_reported_with_its_code() -> None:
    content = "Para.\n\n    echo `date`\n    \tdone\n\nEnd.\n"
    (block,) = scan(content)
    assert isinstance(block, IndentedBlock)
    assert block.prefix == ""
    assert block.code == "echo `date`\n\tdone\n"
    assert content[block.start : block.end] == "    echo `date`\n    \tdone"


def test_indented_block_trailing_blank_lines_stay_outside() -> None:
    content = "    #a\n\n    #b\n\n\ntext\n"
    (block,) = scan(content)
    assert block.code == "#a\n\n#b\n"
    assert content[block.end :] == "\n\n\ntext\n"


def test_spans_are_never_reported_inside_indented_code() -> None:
    content = "Para.\n\n    echo `date`\n\nEnd `x`.\n"
    spans = _only(scan(content), InlineSpan)
    assert [span.code for span in spans] == ["x"]


def test_indented_lines_continuing_a_paragraph_are_not_code() -> None:
    content = "Para.\n    still `para`\n"
    (span,) = scan(content)
    assert isinstance(span, InlineSpan)
    assert span.code == "para"


def test_indented_block_inside_list_item() -> None:
    content = "- item\n\n      #x\n"
    (block,) = scan(content)
    assert isinstance(block, IndentedBlock)
    assert block.prefix == "  "
    assert block.code == "#x\n"


def test_list_content_is_not_indented_code() -> None:
    content = "- item\n\n  ```typ\n  #x\n  ```\n\n  more `y`\n"
    assert [type(c).__name__ for c in scan(content)] == ["FencedBlock", "InlineSpan"]


@pytest.mark.parametrize(
    "content",
    [
        "Para.\n    ```\n`x`\n",
        "- item\n      ```\n  `x`\n",
    ],
)
def test_fence_indented_four_spaces_does_not_open(content: str) -> None:
    constructs = scan(content)
    assert _only(constructs, FencedBlock) == []
    assert [span.code for span in _only(constructs, InlineSpan)] == ["x"]


def test_fence_line_inside_indented_code_stays_code() -> None:
    content = "Text.\n\n    ```\n    #x\n\n`y`\n"
    block, span = scan(content)
    assert isinstance(block, IndentedBlock)
    assert block.code == "```\n#x\n"
    assert isinstance(span, InlineSpan)
    assert span.code == "y"
