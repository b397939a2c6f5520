"""Load declarative grammar files into :class:`Grammar` instances.

Grammar files are YAML documents in a small subset of the sublime-syntax
format::

    name: Typst
    scope: source.typst
    variables:
      ident: '[^\\W\\d][\\w-]*'
    contexts:
      main:
        - include: markup
      string:
        - meta_scope: string.quoted.double.typst
        - match: '"'
          pop: true

Rules support ``match``, ``scope``, ``push``, ``pop`` and ``set``.
``{{name}}`` inside a pattern is replaced by the matching variable.
``include`` splices another context's rules in place and is resolved once at
load time, so the tokenizer only ever sees flat rule lists.
"""

from __future__ import annotations

import functools
import re
import typing as typ
from pathlib import Path

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .engine import Grammar
from .models import GrammarError, Rule, RuleContext

VARIABLE_PATTERN = re.compile(r"\{\{(\w+)\}\}")
DEFAULT_GRAMMAR_PATH = Path(__file__).resolve().parents[1] / "data" / "typst.grammar.yaml"
RULE_KEYS = frozenset({"match", "scope", "push", "pop", "set"})


def load_grammar(path: Path) -> Grammar:
    """Read and compile the grammar stored at ``path``.

    Raises
    ------
    FileNotFoundError
        If ``path`` does not exist.
    GrammarError
        If the YAML cannot be parsed or describes an invalid grammar.
    """
    if not path.exists():
        msg = f"Grammar file '{path}' not found."
        raise FileNotFoundError(msg)
    loader = YAML(typ="safe")
    try:
        with path.open("r", encoding="utf-8") as handle:
            loaded = loader.load(handle)
    except YAMLError as exc:
        msg = f"Unable to parse grammar file {path}"
        raise GrammarError(msg) from exc
    if not isinstance(loaded, dict):
        msg = f"Grammar file {path} must contain a mapping."
        raise GrammarError(msg)
    return parse_grammar(loaded)


@functools.cache
def default_grammar() -> Grammar:
    """Return the bundled Typst grammar, loaded once per process."""
    return load_grammar(DEFAULT_GRAMMAR_PATH)


def parse_grammar(payload: typ.Mapping[str, typ.Any]) -> Grammar:
    """Compile an already-parsed grammar mapping.

    Examples
    --------
    >>> grammar = parse_grammar(
    ...     {"name": "t", "scope": "source.t",
    ...      "contexts": {"main": [{"match": "a+", "scope": "letter.a"}]}}
    ... )
    >>> [token.scope for token in grammar.tokenize("aab")]
    ['letter.a', '']
    """
    contexts_raw = payload.get("contexts")
    if not isinstance(contexts_raw, dict) or "main" not in contexts_raw:
        msg = "Grammar must define a 'contexts' mapping with a 'main' context."
        raise GrammarError(msg)

    variables = _expand_variables(payload.get("variables") or {})
    names = list(contexts_raw)
    index = {name: idx for idx, name in enumerate(names)}

    compiled: list[RuleContext] = []
    for name in names:
        entries = contexts_raw[name]
        if not isinstance(entries, list):
            msg = f"Context '{name}' must be a list of rules."
            raise GrammarError(msg)
        meta_scope = _meta_scope(name, entries)
        rules = _flatten_rules(name, contexts_raw, index, variables, ())
        compiled.append(RuleContext(name=name, rules=tuple(rules), meta_scope=meta_scope))

    return Grammar(
        name=str(payload.get("name", "grammar")),
        scope=str(payload.get("scope", "source")),
        contexts=tuple(compiled),
        main=index["main"],
    )


def _expand_variables(raw: typ.Mapping[str, typ.Any]) -> dict[str, str]:
    """Resolve variables that reference other variables."""
    resolved: dict[str, str] = {}

    def _resolve(name: str, trail: tuple[str, ...]) -> str:
        if name in resolved:
            return resolved[name]
        if name in trail:
            msg = f"Variable cycle: {' -> '.join((*trail, name))}"
            raise GrammarError(msg)
        if name not in raw:
            msg = f"Unknown variable '{name}'"
            raise GrammarError(msg)
        value = VARIABLE_PATTERN.sub(
            lambda match: _resolve(match.group(1), (*trail, name)), str(raw[name])
        )
        resolved[name] = value
        return value

    for key in raw:
        _resolve(key, ())
    return resolved


def _meta_scope(name: str, entries: list[typ.Any]) -> str | None:
    for entry in entries:
        if isinstance(entry, dict) and "meta_scope" in entry:
            value = entry["meta_scope"]
            if not isinstance(value, str):
                msg = f"meta_scope of context '{name}' must be a string."
                raise GrammarError(msg)
            return value
    return None


def _flatten_rules(
    name: str,
    contexts_raw: typ.Mapping[str, typ.Any],
    index: typ.Mapping[str, int],
    variables: typ.Mapping[str, str],
    trail: tuple[str, ...],
) -> list[Rule]:
    """Return the rules of ``name`` with every ``include`` spliced in order."""
    if name in trail:
        msg = f"Include cycle: {' -> '.join((*trail, name))}"
        raise GrammarError(msg)
    if name not in contexts_raw:
        msg = f"Unknown context '{name}'"
        raise GrammarError(msg)

    rules: list[Rule] = []
    for entry in contexts_raw[name]:
        match entry:
            case {"include": str() as target}:
                rules.extend(
                    _flatten_rules(target, contexts_raw, index, variables, (*trail, name))
                )
            case {"meta_scope": _}:
                continue
            case {"match": str()}:
                rules.append(_compile_rule(name, entry, index, variables))
            case _:
                msg = f"Unsupported rule in context '{name}': {entry!r}"
                raise GrammarError(msg)
    return rules


def _compile_rule(
    context: str,
    entry: typ.Mapping[str, typ.Any],
    index: typ.Mapping[str, int],
    variables: typ.Mapping[str, str],
) -> Rule:
    unknown = set(entry) - RULE_KEYS
    if unknown:
        msg = f"Unknown keys {sorted(unknown)} in context '{context}'"
        raise GrammarError(msg)

    def _substitute(match: re.Match[str]) -> str:
        key = match.group(1)
        if key not in variables:
            msg = f"Unknown variable '{key}' in context '{context}'"
            raise GrammarError(msg)
        return variables[key]

    source = VARIABLE_PATTERN.sub(_substitute, entry["match"])
    try:
        pattern = re.compile(source, re.MULTILINE)
    except re.error as exc:
        msg = f"Invalid pattern {source!r} in context '{context}': {exc}"
        raise GrammarError(msg) from exc

    scope = entry.get("scope")
    if scope is not None and not isinstance(scope, str):
        msg = f"Scope in context '{context}' must be a string."
        raise GrammarError(msg)

    return Rule(
        pattern=pattern,
        scope=scope,
        push=_target(entry.get("push"), index, context),
        pop=bool(entry.get("pop", False)),
        set_context=_target(entry.get("set"), index, context),
    )


def _target(value: object, index: typ.Mapping[str, int], context: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, str) and value in index:
        return index[value]
    msg = f"Unknown push/set target {value!r} in context '{context}'"
    raise GrammarError(msg)


__all__ = ["DEFAULT_GRAMMAR_PATH", "default_grammar", "load_grammar", "parse_grammar"]
