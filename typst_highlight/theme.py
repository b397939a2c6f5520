"""Visual themes mapping token scopes to styles.

A :class:`Theme` maps scope selectors such as ``string`` or
``constant.character.escape`` to a :class:`Style`. Resolution picks the longest
selector that is a dotted prefix of the token's most specific scope, then
cascades outwards through the enclosing scopes, and finally falls back to the
theme's default style.

Themes come from bundled YAML files (``solarized-dark``, ``solarized-light``)
or from any installed Pygments style.

Examples
--------
>>> theme = load_theme("solarized-dark")
>>> theme.style_for(("string.quoted.double.typst",)).foreground
'#2aa198'
"""

from __future__ import annotations

import dataclasses as dc
import functools
import typing as typ
from pathlib import Path

from pygments.styles import get_style_by_name
from pygments.token import Token
from pygments.util import ClassNotFound
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

THEMES_DIR = Path(__file__).resolve().parent / "data" / "themes"
DEFAULT_FOREGROUND = "var(--fg)"

# Scope selectors and the Pygments token types whose colours they borrow.
PYGMENTS_SCOPE_MAP: dict[str, typ.Any] = {
    "comment": Token.Comment,
    "string": Token.String,
    "constant.character.escape": Token.String.Escape,
    "constant.character.shorthand": Token.Operator,
    "constant.numeric": Token.Number,
    "constant.language": Token.Keyword.Constant,
    "keyword": Token.Keyword,
    "keyword.operator": Token.Operator,
    "keyword.operator.word": Token.Operator.Word,
    "entity.name.function": Token.Name.Function,
    "entity.name.label": Token.Name.Label,
    "entity.name.reference": Token.Name.Tag,
    "variable": Token.Name.Variable,
    "support.constant": Token.Name.Constant,
    "markup.heading": Token.Generic.Heading,
    "markup.bold": Token.Generic.Strong,
    "markup.italic": Token.Generic.Emph,
    "markup.raw": Token.String.Backtick,
    "markup.list": Token.Name.Tag,
    "markup.underline.link": Token.Name.Attribute,
    "punctuation": Token.Punctuation,
}


class ThemeError(ValueError):
    """Raised when a theme cannot be found or is malformed."""


@dc.dataclass(frozen=True, slots=True)
class Style:
    """Visual attributes applied to a run of text."""

    foreground: str | None = None
    bold: bool = False
    italic: bool = False
    underline: bool = False

    @property
    def is_plain(self) -> bool:
        """Return ``True`` when the style carries no attribute at all."""
        return not (self.foreground or self.bold or self.italic or self.underline)

    def css(self) -> str:
        """Return the inline CSS declarations for this style."""
        parts: list[str] = []
        if self.foreground:
            parts.append(f"color:{self.foreground};")
        if self.bold:
            parts.append("font-weight:bold;")
        if self.italic:
            parts.append("font-style:italic;")
        if self.underline:
            parts.append("text-decoration:underline;")
        return "".join(parts)


@dc.dataclass(frozen=True, slots=True)
class Theme:
    """Named mapping from scope selectors to styles."""

    name: str
    default: Style = Style(foreground=DEFAULT_FOREGROUND)
    styles: typ.Mapping[str, Style] = dc.field(default_factory=dict)

    def style_for(self, scopes: typ.Sequence[str]) -> Style:
        """Resolve the style for a scope stack (outermost first)."""
        for scope in reversed(scopes):
            style = self._lookup(scope)
            if style is not None:
                return style
        return self.default

    def _lookup(self, scope: str) -> Style | None:
        """Return the style of the longest selector prefixing ``scope``."""
        parts = scope.split(".")
        for cut in range(len(parts), 0, -1):
            style = self.styles.get(".".join(parts[:cut]))
            if style is not None:
                return style
        return None

    @classmethod
    def from_pygments(cls, style_name: str) -> Theme:
        """Build a theme borrowing colours from the Pygments style ``style_name``.

        Raises
        ------
        ThemeError
            If Pygments does not know ``style_name``.
        """
        try:
            pygments_style = get_style_by_name(style_name)
        except ClassNotFound as exc:
            msg = f"Unknown theme '{style_name}'"
            raise ThemeError(msg) from exc

        base = _style_from_pygments(pygments_style.style_for_token(Token.Text))
        default = dc.replace(base, foreground=base.foreground or DEFAULT_FOREGROUND)
        styles = {
            selector: _style_from_pygments(pygments_style.style_for_token(token_type))
            for selector, token_type in PYGMENTS_SCOPE_MAP.items()
        }
        return cls(name=style_name, default=default, styles=styles)


def _style_from_pygments(attrs: typ.Mapping[str, typ.Any]) -> Style:
    color = attrs.get("color")
    return Style(
        foreground=f"#{color}" if color else None,
        bold=bool(attrs.get("bold")),
        italic=bool(attrs.get("italic")),
        underline=bool(attrs.get("underline")),
    )


def _style_from_mapping(payload: object, *, where: str) -> Style:
    match payload:
        case str() as color:
            return Style(foreground=color)
        case dict():
            return Style(
                foreground=payload.get("foreground"),
                bold=bool(payload.get("bold", False)),
                italic=bool(payload.get("italic", False)),
                underline=bool(payload.get("underline", False)),
            )
        case _:
            msg = f"Invalid style at {where}: {payload!r}"
            raise ThemeError(msg)


def load_theme_file(path: Path) -> Theme:
    """Read a YAML theme file.

    The file holds a ``name``, an optional ``default`` style and a ``styles``
    mapping from selector to either a colour string or a mapping with
    ``foreground``, ``bold``, ``italic`` and ``underline`` keys.
    """
    loader = YAML(typ="safe")
    try:
        with path.open("r", encoding="utf-8") as handle:
            loaded = loader.load(handle) or {}
    except YAMLError as exc:
        msg = f"Unable to parse theme file {path}"
        raise ThemeError(msg) from exc
    if not isinstance(loaded, dict):
        msg = f"Theme file {path} must contain a mapping."
        raise ThemeError(msg)

    default = Style(foreground=DEFAULT_FOREGROUND)
    if "default" in loaded:
        default = _style_from_mapping(loaded["default"], where=f"{path}:default")
    styles_raw = loaded.get("styles") or {}
    if not isinstance(styles_raw, dict):
        msg = f"'styles' in {path} must be a mapping."
        raise ThemeError(msg)
    styles = {
        str(selector): _style_from_mapping(value, where=f"{path}:{selector}")
        for selector, value in styles_raw.items()
    }
    return Theme(name=str(loaded.get("name", path.stem)), default=default, styles=styles)


@functools.cache
def load_theme(name: str) -> Theme:
    """Return the bundled theme ``name`` or a theme built from a Pygments style.

    Raises
    ------
    ThemeError
        If ``name`` is neither a bundled theme nor a Pygments style.
    """
    bundled = THEMES_DIR / f"{name}.yaml"
    if bundled.exists():
        return load_theme_file(bundled)
    return Theme.from_pygments(name)


def available_themes() -> list[str]:
    """List the bundled theme names."""
    return sorted(path.stem for path in THEMES_DIR.glob("*.yaml"))


__all__ = [
    "DEFAULT_FOREGROUND",
    "Style",
    "Theme",
    "ThemeError",
    "available_themes",
    "load_theme",
    "load_theme_file",
]
