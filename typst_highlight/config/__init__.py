"""Load and validate typst-highlight configuration.

This subpackage reads the ``[preprocessor.typst-highlight]`` table, either from
the context mdBook sends on stdin or from a ``book.toml`` on disk, and produces
a frozen :class:`PreprocessorConfig`. Wrong value types raise
:class:`ConfigurationError`, the one error class that aborts a whole run.

Examples
--------
>>> from typst_highlight.config import load_preprocessor_config
>>> config = load_preprocessor_config({"typst_default": True})
>>> config.typst_default, config.render
(True, False)
"""

from .loader import config_from_context, load_book_config, load_preprocessor_config
from .models import ConfigurationError, PreprocessorConfig

__all__ = [
    "ConfigurationError",
    "PreprocessorConfig",
    "config_from_context",
    "load_book_config",
    "load_preprocessor_config",
]
