"""Common literal values used across typst_highlight.

These constants keep the preprocessor name, the recognised code tags, and the
render prelude centralized so the policy resolver, the renderer, and tests can
import the same values without drifting. Intended for internal use within the
typst_highlight package.

Examples
--------
>>> from typst_highlight import _constants
>>> _constants.PREPROCESSOR_NAME
'typst-highlight'
>>> "typ" in _constants.TARGET_TAGS
True
"""

PREPROCESSOR_NAME = "typst-highlight"
SUPPORTED_RENDERERS = frozenset({"html"})

TARGET_TAGS = frozenset({"typ", "typst"})
NO_PRELUDE_SUFFIX = "-noprelude"
NO_RENDER_SUFFIX = "-norender"

DEFAULT_TYPST_BINARY = "typst"
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_THEME = "solarized-dark"
MAX_DEFAULT_JOBS = 4

PRELUDE = "#set page(width: 120mm, height: auto, margin: 0.5cm)\n"
