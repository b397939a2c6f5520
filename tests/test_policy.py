"""Tests for fence tag parsing and the per-construct decision table."""

from __future__ import annotations

import itertools

import pytest

from typst_highlight.config import PreprocessorConfig
from typst_highlight.policy import INLINE, SKIP, BlockTag, Policy, parse_tag, resolve_policy


@pytest.mark.parametrize(
    ("info", "expected"),
    [
        ("typ", BlockTag(raw="typ", base="typ")),
        ("typst,ignore", BlockTag(raw="typst", base="typst")),
        ("typst {.class}", BlockTag(raw="typst", base="typst")),
        ("typ-noprelude", BlockTag(raw="typ-noprelude", base="typ", no_prelude=True)),
        (
            "typst-noprelude-norender",
            BlockTag(
                raw="typst-noprelude-norender", base="typst", no_prelude=True, no_render=True
            ),
        ),
        (
            "typst-norender-noprelude",
            BlockTag(
                raw="typst-norender-noprelude", base="typst", no_prelude=True, no_render=True
            ),
        ),
        ("-norender", BlockTag(raw="-norender", base="", no_render=True)),
        ("rust", BlockTag(raw="rust", base="rust")),
    ],
)
def test_parse_tag(info: str, expected: BlockTag) -> None:
    assert parse_tag(info) == expected


@pytest.mark.parametrize("info", [None, "", "   "])
def test_parse_tag_without_a_word(info: str | None) -> None:
    assert parse_tag(info) is None


@pytest.mark.parametrize(
    ("tag", "typst_default", "render", "expected"),
    [
        ("typ", False, True, Policy(highlight=True, render=True, use_prelude=True)),
        ("typst", False, False, Policy(highlight=True, render=False, use_prelude=True)),
        ("typ-norender", False, True, Policy(highlight=True, render=False, use_prelude=True)),
        ("typ-noprelude", False, True, Policy(highlight=True, render=True, use_prelude=False)),
        (
            "typst-noprelude-norender",
            False,
            True,
            Policy(highlight=True, render=False, use_prelude=False),
        ),
        (None, True, True, Policy(highlight=True, render=True, use_prelude=True)),
        (None, False, True, SKIP),
        ("-norender", False, True, SKIP),
        ("-norender", True, True, Policy(highlight=True, render=False, use_prelude=True)),
        ("-noprelude", True, True, Policy(highlight=True, render=True, use_prelude=False)),
        ("-noprelude", False, True, SKIP),
        ("rust", True, True, SKIP),
        ("typstx", False, True, SKIP),
    ],
)
def test_fenced_block_policies(
    tag: str | None, typst_default: bool, render: bool, expected: Policy
) -> None:
    config = PreprocessorConfig(typst_default=typst_default, render=render)
    assert resolve_policy(config, tag) == expected


def test_suffix_only_tag_keeps_its_flags() -> None:
    config = PreprocessorConfig(typst_default=True, render=True)
    policy = resolve_policy(config, "-norender-noprelude")
    assert policy == Policy(highlight=True, render=False, use_prelude=False)
    assert policy != resolve_policy(config, None)


@pytest.mark.parametrize(
    ("disable_inline", "expected"), [(False, INLINE), (True, SKIP)]
)
def test_inline_policies(disable_inline: bool, expected: Policy) -> None:
    config = PreprocessorConfig(disable_inline=disable_inline, render=True)
    assert resolve_policy(config, "typ", inline=True) == expected
    assert not expected.render


def test_parsed_and_raw_tags_agree() -> None:
    config = PreprocessorConfig(render=True)
    for info in ("typ", "typst-norender", "python", "typ-noprelude"):
        assert resolve_policy(config, info) == resolve_policy(config, parse_tag(info))


def test_resolution_is_pure() -> None:
    flags = [False, True]
    tags = [None, "typ", "typst-norender", "typ-noprelude", "text"]
    for disable_inline, typst_default, render in itertools.product(flags, repeat=3):
        config = PreprocessorConfig(
            disable_inline=disable_inline, typst_default=typst_default, render=render
        )
        for tag, inline in itertools.product(tags, flags):
            first = resolve_policy(config, tag, inline=inline)
            assert first == resolve_policy(config, tag, inline=inline)
            if not first.highlight:
                assert first == SKIP
            if inline:
                assert not first.render
