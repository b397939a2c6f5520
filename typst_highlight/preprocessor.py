"""The mdBook preprocessor tying configuration, book protocol and transformer.

Example
-------
>>> import json
>>> from typst_highlight.preprocessor import run_preprocessor
>>> book = {"sections": [{"Chapter": {"name": "Intro", "content": "plain", "sub_items": []}}]}
>>> out = json.loads(run_preprocessor(json.dumps([{"config": {}}, book])))
>>> out["sections"][0]["Chapter"]["content"]
'plain'
"""

from __future__ import annotations

import logging
import typing as typ
from pathlib import Path

from ._constants import PREPROCESSOR_NAME
from .book import dump_book, parse_input, supports_renderer
from .config import ConfigurationError, PreprocessorConfig, config_from_context
from .theme import ThemeError, load_theme
from .transformer import BlockState, BookTransformer, TransformReport

logger = logging.getLogger(__name__)


class TypstHighlight:
    """Highlight Typst code blocks and inline spans in a book."""

    name = PREPROCESSOR_NAME

    def __init__(self, config: PreprocessorConfig | None = None) -> None:
        """Create the preprocessor; ``config`` overrides the book's own table."""
        self.config = config

    def supports_renderer(self, renderer: str) -> bool:
        return supports_renderer(renderer)

    def transformer(self, config: PreprocessorConfig) -> BookTransformer:
        """Build a transformer, turning theme problems into configuration errors."""
        try:
            theme = load_theme(config.theme)
        except ThemeError as exc:
            msg = f"Incorrect argument at theme: {exc}"
            raise ConfigurationError(msg) from exc
        return BookTransformer(config, theme=theme)

    def run(
        self, context: typ.Mapping[str, typ.Any], book: dict[str, typ.Any]
    ) -> TransformReport:
        """Transform ``book`` in place.

        Raises
        ------
        ConfigurationError
            If the preprocessor table in ``context`` is malformed.
        """
        config = self.config or config_from_context(context)
        report = self.transformer(config).transform_book(book)
        logger.info(
            "%s: %d highlighted, %d rendered, %d render failures",
            self.name,
            report.count(BlockState.HIGHLIGHTED),
            report.count(BlockState.RENDERED),
            report.count(BlockState.RENDER_FAILED),
        )
        return report

    def process_markdown(
        self, text: str, *, config: PreprocessorConfig, source: Path | None = None
    ) -> str:
        """Transform a standalone markdown document."""
        label = str(source) if source else ""
        content, _outcomes = self.transformer(config).transform_content(text, label)
        return content


def run_preprocessor(payload: str | bytes) -> str:
    """Run the preprocessor over mdBook's stdin payload and return the new book JSON."""
    context, book = parse_input(payload)
    TypstHighlight().run(context, book)
    return dump_book(book)


__all__ = ["TypstHighlight", "run_preprocessor"]
