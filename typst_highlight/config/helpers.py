"""Value coercion helpers shared by the configuration loader."""

from __future__ import annotations

import typing as typ

from .models import ConfigurationError


def _require_bool(key: str, value: object) -> bool:
    """Return ``value`` when it is a real boolean, else fail loudly."""
    if isinstance(value, bool):
        return value
    msg = f"Incorrect argument at {key}: expected a boolean, got {value!r}"
    raise ConfigurationError(msg)


def _require_str(key: str, value: object) -> str:
    if isinstance(value, str) and value.strip():
        return value
    msg = f"Incorrect argument at {key}: expected a non-empty string, got {value!r}"
    raise ConfigurationError(msg)


def _require_positive_number(key: str, value: object) -> float:
    """Return ``value`` as a float when it is a positive int or float."""
    match value:
        case bool():
            pass
        case int() | float() if value > 0:
            return float(value)
        case _:
            pass
    msg = f"Incorrect argument at {key}: expected a positive number, got {value!r}"
    raise ConfigurationError(msg)


def _require_positive_int(key: str, value: object) -> int:
    if isinstance(value, int) and not isinstance(value, bool) and value > 0:
        return value
    msg = f"Incorrect argument at {key}: expected a positive integer, got {value!r}"
    raise ConfigurationError(msg)


def _as_mapping(value: object, *, where: str) -> dict[str, typ.Any]:
    """Return a plain dict copy of ``value`` or raise when it is not a mapping."""
    if value is None:
        return {}
    if isinstance(value, typ.Mapping):
        return dict(value)
    msg = f"Expected a table at {where}, got {type(value).__name__}"
    raise ConfigurationError(msg)


__all__ = [
    "_as_mapping",
    "_require_bool",
    "_require_positive_int",
    "_require_positive_number",
    "_require_str",
]
