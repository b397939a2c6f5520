"""Tests for reading the ``[preprocessor.typst-highlight]`` table."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from typst_highlight._constants import PRELUDE
from typst_highlight.config import (
    ConfigurationError,
    PreprocessorConfig,
    config_from_context,
    load_book_config,
    load_preprocessor_config,
)


def _write_book_toml(tmp_path: Path, body: str) -> Path:
    path = tmp_path / "book.toml"
    path.write_text(
        """
[book]
title = "Typst notes"

[preprocessor.typst-highlight]
command = "typst-highlight"
"""
        .strip()
        + "\n"
        + body,
        encoding="utf-8",
    )
    return path


def test_defaults() -> None:
    config = load_preprocessor_config(None)
    assert config == PreprocessorConfig()
    assert not config.disable_inline
    assert not config.typst_default
    assert not config.render
    assert config.theme == "solarized-dark"
    assert config.typst_binary == "typst"
    assert config.timeout == 30.0
    assert 1 <= config.jobs <= 4
    assert config.prelude == PRELUDE


def test_all_options_are_read() -> None:
    config = load_preprocessor_config(
        {
            "disable_inline": True,
            "typst_default": True,
            "render": True,
            "theme": "monokai",
            "typst_binary": "/opt/typst/bin/typst",
            "timeout": 5,
            "jobs": 2,
            "prelude": "",
        }
    )
    assert config == PreprocessorConfig(
        disable_inline=True,
        typst_default=True,
        render=True,
        theme="monokai",
        typst_binary="/opt/typst/bin/typst",
        timeout=5.0,
        jobs=2,
        prelude="",
    )


@pytest.mark.parametrize(
    ("options", "key"),
    [
        ({"disable_inline": "yes"}, "disable_inline"),
        ({"render": 1}, "render"),
        ({"typst_default": None}, "typst_default"),
        ({"theme": ""}, "theme"),
        ({"timeout": 0}, "timeout"),
        ({"timeout": True}, "timeout"),
        ({"jobs": 1.5}, "jobs"),
        ({"jobs": -1}, "jobs"),
        ({"prelude": 3}, "prelude"),
    ],
)
def test_wrong_types_are_rejected(options: dict[str, object], key: str) -> None:
    with pytest.raises(ConfigurationError, match=f"Incorrect argument at {key}"):
        load_preprocessor_config(options)


def test_legacy_alias_is_accepted_with_a_warning(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="typst_highlight.config.loader"):
        config = load_preprocessor_config({"highlight_without_lang": True})
    assert config.typst_default
    assert "'highlight_without_lang' is deprecated" in caplog.text


def test_current_key_wins_over_legacy_alias() -> None:
    config = load_preprocessor_config(
        {"highlight_without_lang": True, "typst_default": False}
    )
    assert not config.typst_default


def test_unknown_keys_warn_but_mdbook_keys_do_not(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="typst_highlight.config.loader"):
        load_preprocessor_config({"command": "x", "renderers": ["html"], "colour": "red"})
    assert "Ignoring unknown option 'colour'" in caplog.text
    assert "command" not in caplog.text


def test_config_from_context() -> None:
    context = {
        "root": "/book",
        "renderer": "html",
        "config": {
            "book": {"title": "T"},
            "preprocessor": {"typst-highlight": {"render": True}},
        },
    }
    assert config_from_context(context).render


@pytest.mark.parametrize(
    "context",
    [
        {},
        {"config": {}},
        {"config": {"preprocessor": {"other": {}}}},
    ],
)
def test_config_from_context_without_table_uses_defaults(context: dict) -> None:
    assert config_from_context(context) == PreprocessorConfig()


def test_non_table_preprocessor_section_is_rejected() -> None:
    with pytest.raises(ConfigurationError, match="Expected a table"):
        config_from_context({"config": {"preprocessor": {"typst-highlight": "on"}}})


def test_load_book_config(tmp_path: Path) -> None:
    path = _write_book_toml(tmp_path, 'render = true\ntheme = "solarized-light"\n')
    config = load_book_config(path)
    assert config.render
    assert config.theme == "solarized-light"


def test_load_book_config_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_book_config(tmp_path / "book.toml")


def test_load_book_config_invalid_toml(tmp_path: Path) -> None:
    path = tmp_path / "book.toml"
    path.write_text("[preprocessor.typst-highlight\n", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="Unable to parse"):
        load_book_config(path)
