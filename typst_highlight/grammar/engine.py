"""Stack-based tokenizer driven by a loaded :class:`Grammar`.

The tokenizer keeps an explicit stack of active contexts instead of recursing.
At each position the rules of the innermost context are tried in declaration
order and the first match wins. When nothing matches, a single character is
emitted carrying only the enclosing contexts' meta scopes, which guarantees
progress. Contexts left open at end of input are closed implicitly.
"""

from __future__ import annotations

import dataclasses as dc

from .models import Rule, RuleContext, Token

MAX_STACK_DEPTH = 64


@dc.dataclass(slots=True)
class _Frame:
    context: int
    scopes: tuple[str, ...]


@dc.dataclass(frozen=True, slots=True)
class Grammar:
    """An immutable lexical grammar.

    Attributes
    ----------
    name : str
        Human-readable grammar name.
    scope : str
        Root scope name of the language (``source.typst``).
    contexts : tuple[RuleContext, ...]
        Arena of contexts; rules reference each other by index.
    main : int
        Index of the context active at the start of input.
    """

    name: str
    scope: str
    contexts: tuple[RuleContext, ...]
    main: int = 0

    def context_index(self, name: str) -> int:
        """Return the arena index of the context called ``name``."""
        for idx, context in enumerate(self.contexts):
            if context.name == name:
                return idx
        msg = f"Unknown context '{name}'"
        raise KeyError(msg)

    def tokenize(self, text: str) -> list[Token]:
        """Split ``text`` into tokens that partition it exactly.

        Parameters
        ----------
        text : str
            Arbitrary input; the empty string yields no tokens.

        Returns
        -------
        list[Token]
            Tokens in order. Concatenating their ``text`` reproduces ``text``.

        Examples
        --------
        >>> from typst_highlight.grammar import default_grammar
        >>> tokens = default_grammar().tokenize('#let x = "a"')
        >>> "".join(token.text for token in tokens)
        '#let x = "a"'
        """
        stack = [_Frame(self.main, self._enter((), self.main))]
        tokens: list[Token] = []
        pos = 0
        length = len(text)
        while pos < length:
            frame = stack[-1]
            rule, end = self._first_match(
                self.contexts[frame.context], text, pos, popable=len(stack) > 1
            )
            if rule is None:
                tokens.append(Token(text[pos], pos, pos + 1, frame.scopes))
                pos += 1
                continue

            if rule.pop or rule.set_context is not None:
                scopes = _with_scope(frame.scopes, rule.scope)
                if len(stack) > 1:
                    stack.pop()
                if rule.set_context is not None:
                    scopes = self._push(stack, rule.set_context, rule.scope)
            elif rule.push is not None:
                scopes = self._push(stack, rule.push, rule.scope)
            else:
                scopes = _with_scope(frame.scopes, rule.scope)

            if end > pos:
                tokens.append(Token(text[pos:end], pos, end, scopes))
                pos = end
        return tokens

    def _first_match(
        self, context: RuleContext, text: str, pos: int, *, popable: bool
    ) -> tuple[Rule | None, int]:
        """Return the first rule matching at ``pos`` and the match end."""
        for rule in context.rules:
            match = rule.pattern.match(text, pos)
            if match is None:
                continue
            end = match.end()
            if end == pos and not (rule.pop and popable and rule.set_context is None):
                # Zero-width matches only make progress by shrinking the stack.
                continue
            return rule, end
        return None, pos

    def _push(self, stack: list[_Frame], target: int, scope: str | None) -> tuple[str, ...]:
        """Push ``target`` unless the stack is full; return the token's scopes."""
        parent = stack[-1].scopes
        if len(stack) >= MAX_STACK_DEPTH:
            return _with_scope(parent, scope)
        entered = self._enter(parent, target)
        stack.append(_Frame(target, entered))
        return _with_scope(entered, scope)

    def _enter(self, parent: tuple[str, ...], target: int) -> tuple[str, ...]:
        meta = self.contexts[target].meta_scope
        return _with_scope(parent, meta)


def _with_scope(scopes: tuple[str, ...], scope: str | None) -> tuple[str, ...]:
    if not scope:
        return scopes
    return (*scopes, scope)


__all__ = ["MAX_STACK_DEPTH", "Grammar"]
