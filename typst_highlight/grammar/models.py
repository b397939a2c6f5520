"""Records shared by the grammar loader and the tokenizer."""

from __future__ import annotations

import dataclasses as dc
import re

SCOPE_SEPARATOR = " > "


class GrammarError(ValueError):
    """Raised when a grammar definition is malformed."""


@dc.dataclass(frozen=True, slots=True)
class Token:
    """A contiguous span of the input and the scopes active over it.

    Attributes
    ----------
    text : str
        The covered text, equal to ``source[start:end]``.
    start : int
        Offset of the first character in the tokenized string.
    end : int
        Offset one past the last character.
    scopes : tuple[str, ...]
        Scope names from outermost to most specific; empty when unscoped.
    """

    text: str
    start: int
    end: int
    scopes: tuple[str, ...] = ()

    @property
    def scope(self) -> str:
        """Return the compound scope name, e.g. ``string.quoted > constant.escape``."""
        return SCOPE_SEPARATOR.join(self.scopes)


@dc.dataclass(frozen=True, slots=True)
class Rule:
    """One pattern of a context.

    ``push`` and ``set_context`` hold indices into the grammar's context arena.
    """

    pattern: re.Pattern[str]
    scope: str | None = None
    push: int | None = None
    pop: bool = False
    set_context: int | None = None


@dc.dataclass(frozen=True, slots=True)
class RuleContext:
    """An ordered rule list plus the scope applied to everything inside it."""

    name: str
    rules: tuple[Rule, ...]
    meta_scope: str | None = None


__all__ = ["SCOPE_SEPARATOR", "GrammarError", "Rule", "RuleContext", "Token"]
