"""Load preprocessor configuration into typed dataclasses."""

from __future__ import annotations

import logging
import typing as typ
from pathlib import Path

import tomlkit
from tomlkit.exceptions import ParseError

from typst_highlight._constants import PREPROCESSOR_NAME

from .helpers import (
    _as_mapping,
    _require_bool,
    _require_positive_int,
    _require_positive_number,
    _require_str,
)
from .models import ConfigurationError, PreprocessorConfig

logger = logging.getLogger(__name__)

# Keys mdBook itself reads from every preprocessor table.
MDBOOK_KEYS = frozenset({"command", "renderers", "before", "after", "optional"})
LEGACY_ALIASES = {"highlight_without_lang": "typst_default"}


def load_preprocessor_config(
    options: typ.Mapping[str, typ.Any] | None,
) -> PreprocessorConfig:
    """Build a :class:`PreprocessorConfig` from the preprocessor's option table.

    Parameters
    ----------
    options : Mapping[str, Any] or None
        Contents of ``[preprocessor.typst-highlight]``. ``None`` or an empty
        mapping yields the defaults.

    Returns
    -------
    PreprocessorConfig
        Validated configuration.

    Raises
    ------
    ConfigurationError
        If a recognised option carries a value of the wrong type.

    Examples
    --------
    >>> load_preprocessor_config({"render": True}).render
    True
    >>> load_preprocessor_config(None).disable_inline
    False
    """
    raw = _as_mapping(options, where=f"preprocessor.{PREPROCESSOR_NAME}")
    for legacy, current in LEGACY_ALIASES.items():
        if legacy in raw:
            logger.warning("'%s' is deprecated; use '%s' instead", legacy, current)
            raw.setdefault(current, raw[legacy])
            del raw[legacy]

    base = PreprocessorConfig()
    known = {
        "disable_inline",
        "typst_default",
        "render",
        "theme",
        "typst_binary",
        "timeout",
        "jobs",
        "prelude",
    }
    for key in sorted(set(raw) - known - MDBOOK_KEYS):
        logger.warning("Ignoring unknown option '%s' for %s", key, PREPROCESSOR_NAME)

    prelude = raw.get("prelude", base.prelude)
    if not isinstance(prelude, str):
        msg = f"Incorrect argument at prelude: expected a string, got {prelude!r}"
        raise ConfigurationError(msg)

    return PreprocessorConfig(
        disable_inline=_require_bool(
            "disable_inline", raw.get("disable_inline", base.disable_inline)
        ),
        typst_default=_require_bool(
            "typst_default", raw.get("typst_default", base.typst_default)
        ),
        render=_require_bool("render", raw.get("render", base.render)),
        theme=_require_str("theme", raw.get("theme", base.theme)),
        typst_binary=_require_str(
            "typst_binary", raw.get("typst_binary", base.typst_binary)
        ),
        timeout=_require_positive_number("timeout", raw.get("timeout", base.timeout)),
        jobs=_require_positive_int("jobs", raw.get("jobs", base.jobs)),
        prelude=prelude,
    )


def config_from_context(context: typ.Mapping[str, typ.Any]) -> PreprocessorConfig:
    """Extract the preprocessor table from an mdBook ``PreprocessorContext``."""
    book_config = _as_mapping(context.get("config"), where="context.config")
    return _config_from_book_table(book_config)


def load_book_config(path: Path) -> PreprocessorConfig:
    """Load configuration from an mdBook ``book.toml`` file.

    Raises
    ------
    FileNotFoundError
        If ``path`` does not exist.
    ConfigurationError
        If the TOML cannot be parsed or an option is invalid.
    """
    if not path.exists():
        msg = f"Configuration file '{path}' not found."
        raise FileNotFoundError(msg)
    try:
        document = tomlkit.parse(path.read_text(encoding="utf-8"))
    except ParseError as exc:
        msg = f"Unable to parse book configuration at {path}"
        raise ConfigurationError(msg) from exc
    return _config_from_book_table(document.unwrap())


def _config_from_book_table(book_config: dict[str, typ.Any]) -> PreprocessorConfig:
    preprocessors = _as_mapping(book_config.get("preprocessor"), where="preprocessor")
    return load_preprocessor_config(
        _as_mapping(
            preprocessors.get(PREPROCESSOR_NAME),
            where=f"preprocessor.{PREPROCESSOR_NAME}",
        )
    )


__all__ = ["config_from_context", "load_book_config", "load_preprocessor_config"]
