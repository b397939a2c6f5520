"""mdBook preprocessor that highlights and renders Typst code.

The package tokenizes Typst snippets with a declarative grammar, styles the
tokens with a theme, optionally compiles each block with the ``typst`` binary,
and splices the resulting HTML back into the book's chapters.

Exports
-------
- ``app``: Cyclopts application behind the ``typst-highlight`` command.
- ``main``: Convenience function that configures logging and runs ``app``.
- ``TypstHighlight``: The preprocessor object for programmatic use.

Examples
--------
>>> from typst_highlight import TypstHighlight
>>> TypstHighlight().supports_renderer("html")
True
"""

from __future__ import annotations

from .cli import app, main
from .preprocessor import TypstHighlight

__all__ = ["TypstHighlight", "app", "main"]
