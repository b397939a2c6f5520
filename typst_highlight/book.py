"""Read and walk the JSON book mdBook hands to preprocessors.

mdBook runs a preprocessor as ``<command> supports <renderer>`` to ask about
renderer support, then as ``<command>`` with ``[context, book]`` on stdin. The
book holds a list of items under ``sections`` (``items`` in newer releases);
each item is ``{"Chapter": {...}}``, ``"Separator"`` or
``{"PartTitle": "..."}``. Chapters nest through ``sub_items``.
"""

from __future__ import annotations

import json
import typing as typ

from ._constants import SUPPORTED_RENDERERS

BOOK_ITEM_KEYS = ("sections", "items")


class BookFormatError(ValueError):
    """Raised when the preprocessor input is not a ``[context, book]`` pair."""


def parse_input(payload: str | bytes) -> tuple[dict[str, typ.Any], dict[str, typ.Any]]:
    """Decode the JSON mdBook writes to a preprocessor's stdin.

    Raises
    ------
    BookFormatError
        If the payload is not valid JSON or not a two-item array of objects.

    Examples
    --------
    >>> context, book = parse_input('[{"root": "."}, {"sections": []}]')
    >>> book
    {'sections': []}
    """
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as exc:
        msg = f"Preprocessor input is not valid JSON: {exc}"
        raise BookFormatError(msg) from exc
    match data:
        case [dict() as context, dict() as book]:
            return context, book
        case _:
            msg = "Expected a JSON array of [context, book] from mdBook."
            raise BookFormatError(msg)


def _book_items(book: typ.Mapping[str, typ.Any]) -> list[typ.Any]:
    for key in BOOK_ITEM_KEYS:
        items = book.get(key)
        if isinstance(items, list):
            return items
    return []


def iter_chapters(book: typ.Mapping[str, typ.Any]) -> typ.Iterator[dict[str, typ.Any]]:
    """Yield every chapter mapping depth-first, parents before children."""
    stack = list(reversed(_book_items(book)))
    while stack:
        item = stack.pop()
        match item:
            case {"Chapter": dict() as chapter}:
                yield chapter
                stack.extend(reversed(chapter.get("sub_items") or []))
            case {"PartTitle": {"sub_items": list() as children}}:
                stack.extend(reversed(children))
            case _:
                continue


def chapter_id(chapter: typ.Mapping[str, typ.Any], position: int = 0) -> str:
    """Return a readable identifier for diagnostics."""
    for key in ("source_path", "path", "name"):
        value = chapter.get(key)
        if isinstance(value, str) and value:
            return value
    return f"chapter #{position + 1}"


def supports_renderer(renderer: str) -> bool:
    """Return ``True`` when output for ``renderer`` can carry inline HTML."""
    return renderer in SUPPORTED_RENDERERS


def dump_book(book: typ.Mapping[str, typ.Any]) -> str:
    return json.dumps(book, ensure_ascii=False)


__all__ = [
    "BookFormatError",
    "chapter_id",
    "dump_book",
    "iter_chapters",
    "parse_input",
    "supports_renderer",
]
