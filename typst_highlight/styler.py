"""Turn tokens into styled HTML fragments.

The output is embedded in markdown that mdBook parses again, so text is escaped
for HTML and additionally has markdown-active characters and line breaks
entity-encoded. A highlighted block therefore always fits on one line and
never picks up emphasis, links or table cells from the surrounding markdown.
"""

from __future__ import annotations

import typing as typ
from html import escape

if typ.TYPE_CHECKING:
    from .grammar import Token
    from .theme import Style, Theme

MARKDOWN_ENTITIES = {
    "\\": "&#92;",
    "`": "&#96;",
    "*": "&#42;",
    "_": "&#95;",
    "[": "&#91;",
    "]": "&#93;",
    "|": "&#124;",
    "~": "&#126;",
    "$": "&#36;",
    "\n": "&#10;",
}
_TRANSLATION = str.maketrans(MARKDOWN_ENTITIES)


def escape_text(text: str) -> str:
    """Escape ``text`` for HTML embedded inside markdown.

    Examples
    --------
    >>> escape_text("<a> *b*")
    '&lt;a&gt; &#42;b&#42;'
    """
    return escape(text, quote=False).translate(_TRANSLATION)


def render_tokens(tokens: typ.Iterable[Token], theme: Theme) -> list[str]:
    """Return one HTML fragment per run of adjacent tokens sharing a style.

    Parameters
    ----------
    tokens : Iterable[Token]
        Tokens in source order, usually from :meth:`Grammar.tokenize`.
    theme : Theme
        Theme used to resolve each token's scopes.

    Returns
    -------
    list[str]
        Fragments in token order. Plain styles produce bare escaped text,
        everything else a ``<span style="...">`` element.
    """
    fragments: list[str] = []
    run_style: Style | None = None
    run_text: list[str] = []
    for token in tokens:
        style = theme.style_for(token.scopes)
        if style != run_style and run_text:
            fragments.append(_wrap(run_text, run_style))
            run_text = []
        run_style = style
        run_text.append(token.text)
    if run_text:
        fragments.append(_wrap(run_text, run_style))
    return fragments


def highlight_html(tokens: typ.Iterable[Token], theme: Theme) -> str:
    """Concatenate :func:`render_tokens` output into a single string."""
    return "".join(render_tokens(tokens, theme))


def _wrap(parts: list[str], style: Style | None) -> str:
    text = escape_text("".join(parts))
    if style is None or style.is_plain:
        return text
    return f'<span style="{style.css()}">{text}</span>'


__all__ = ["MARKDOWN_ENTITIES", "escape_text", "highlight_html", "render_tokens"]
