"""Typed dataclasses describing typst-highlight preprocessor configuration."""

from __future__ import annotations

import dataclasses as dc
import os

from typst_highlight._constants import (
    DEFAULT_THEME,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_TYPST_BINARY,
    MAX_DEFAULT_JOBS,
    PRELUDE,
)


class ConfigurationError(ValueError):
    """Raised when the preprocessor configuration is invalid."""


def _default_jobs() -> int:
    return max(1, min(MAX_DEFAULT_JOBS, os.cpu_count() or 1))


@dc.dataclass(frozen=True, slots=True)
class PreprocessorConfig:
    """Options read from ``[preprocessor.typst-highlight]``.

    Attributes
    ----------
    disable_inline : bool
        Leave inline code spans untouched when ``True``.
    typst_default : bool
        Treat fenced blocks without a language tag as Typst.
    render : bool
        Compile Typst blocks with the external compiler and embed the image.
    theme : str
        Bundled theme name or any Pygments style name.
    typst_binary : str
        Executable looked up on ``PATH`` for rendering.
    timeout : float
        Seconds before a render subprocess is killed.
    jobs : int
        Upper bound on concurrently processed blocks.
    prelude : str
        Text prepended to rendered sources unless a block opts out.
    """

    disable_inline: bool = False
    typst_default: bool = False
    render: bool = False
    theme: str = DEFAULT_THEME
    typst_binary: str = DEFAULT_TYPST_BINARY
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    jobs: int = dc.field(default_factory=_default_jobs)
    prelude: str = PRELUDE


__all__ = ["ConfigurationError", "PreprocessorConfig"]
