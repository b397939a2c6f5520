"""Declarative lexical grammars and the tokenizer that runs them."""

from .engine import MAX_STACK_DEPTH, Grammar
from .loader import default_grammar, load_grammar, parse_grammar
from .models import SCOPE_SEPARATOR, GrammarError, Rule, RuleContext, Token

__all__ = [
    "MAX_STACK_DEPTH",
    "SCOPE_SEPARATOR",
    "Grammar",
    "GrammarError",
    "Rule",
    "RuleContext",
    "Token",
    "default_grammar",
    "load_grammar",
    "parse_grammar",
]
