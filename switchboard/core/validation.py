"""Argument type guards for tool calls.

Each guard reads one key from a call's argument mapping, checks its type
and returns the value, raising ArgumentError when the value is malformed.
Guards never touch the network, so a rejected call costs nothing.
"""

from collections.abc import Mapping, Sequence
from typing import Any

from .errors import ArgumentError


def require_mapping(arguments: Any) -> dict[str, Any]:
    """Return the call arguments as a dict.

    None is treated as an empty argument object.
    """
    if arguments is None:
        return {}
    if not isinstance(arguments, Mapping):
        raise ArgumentError("Arguments must be an object")
    return dict(arguments)


def is_provided(value: Any) -> bool:
    """Whether a value counts as supplied (not None and not blank)."""
    return value is not None and str(value).strip() != ""


def require_str(args: Mapping[str, Any], key: str) -> str:
    """Return a required, non-blank string argument."""
    value = args.get(key)
    if value is None:
        raise ArgumentError(f"'{key}' is required")
    if not isinstance(value, str):
        raise ArgumentError(f"'{key}' must be a string")
    if not value.strip():
        raise ArgumentError(f"'{key}' must not be empty")
    return value


def optional_str(args: Mapping[str, Any], key: str) -> str | None:
    """Return an optional string argument, or None when absent."""
    value = args.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ArgumentError(f"'{key}' must be a string")
    return value


def _as_int(key: str, value: Any) -> int:
    # JSON clients may send 2.0 for 2; bool is an int subclass and is refused.
    if isinstance(value, bool):
        raise ArgumentError(f"'{key}' must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise ArgumentError(f"'{key}' must be an integer")


def optional_int(
    args: Mapping[str, Any],
    key: str,
    *,
    minimum: int | None = None,
    maximum: int | None = None,
    choices: Sequence[int] | None = None,
) -> int | None:
    """Return an optional integer argument within the given bounds."""
    value = args.get(key)
    if value is None:
        return None
    number = _as_int(key, value)
    if choices is not None and number not in choices:
        allowed = ", ".join(str(c) for c in choices)
        raise ArgumentError(f"'{key}' must be one of: {allowed}")
    if minimum is not None and number < minimum:
        raise ArgumentError(f"'{key}' must be >= {minimum}")
    if maximum is not None and number > maximum:
        raise ArgumentError(f"'{key}' must be <= {maximum}")
    return number


def require_int(args: Mapping[str, Any], key: str, **bounds: Any) -> int:
    """Return a required integer argument."""
    if args.get(key) is None:
        raise ArgumentError(f"'{key}' is required")
    value = optional_int(args, key, **bounds)
    assert value is not None
    return value


def optional_number(args: Mapping[str, Any], key: str) -> float | int | None:
    """Return an optional numeric argument (int or float)."""
    value = args.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ArgumentError(f"'{key}' must be a number")
    return value


def require_number(args: Mapping[str, Any], key: str) -> float | int:
    """Return a required numeric argument."""
    value = optional_number(args, key)
    if value is None:
        raise ArgumentError(f"'{key}' is required")
    return value


def optional_bool(args: Mapping[str, Any], key: str) -> bool | None:
    """Return an optional boolean argument."""
    value = args.get(key)
    if value is None:
        return None
    if not isinstance(value, bool):
        raise ArgumentError(f"'{key}' must be a boolean")
    return value


def optional_str_list(
    args: Mapping[str, Any], key: str, *, non_empty: bool = False
) -> list[str] | None:
    """Return an optional list of strings."""
    value = args.get(key)
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ArgumentError(f"'{key}' must be an array of strings")
    if non_empty and not value:
        raise ArgumentError(f"'{key}' must contain at least one item")
    return list(value)


def require_str_list(args: Mapping[str, Any], key: str) -> list[str]:
    """Return a required, non-empty list of strings."""
    if args.get(key) is None:
        raise ArgumentError(f"'{key}' is required")
    value = optional_str_list(args, key, non_empty=True)
    assert value is not None
    return value


def optional_mapping(args: Mapping[str, Any], key: str) -> dict[str, Any] | None:
    """Return an optional object argument."""
    value = args.get(key)
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise ArgumentError(f"'{key}' must be an object")
    return dict(value)


def optional_choice(
    args: Mapping[str, Any], key: str, choices: Sequence[str]
) -> str | None:
    """Return an optional string restricted to a fixed set of values."""
    value = optional_str(args, key)
    if value is None:
        return None
    if value not in choices:
        raise ArgumentError(f"'{key}' must be one of: {', '.join(choices)}")
    return value


def require_choice(args: Mapping[str, Any], key: str, choices: Sequence[str]) -> str:
    """Return a required string restricted to a fixed set of values."""
    if args.get(key) is None:
        raise ArgumentError(f"'{key}' is required")
    value = optional_choice(args, key, choices)
    assert value is not None
    return value


def exactly_one_of(args: Mapping[str, Any], keys: Sequence[str]) -> tuple[str, str]:
    """Return the single provided key among ``keys`` and its string value.

    A key counts as provided when its value is not None and not blank.
    Raises ArgumentError unless exactly one is provided and it is a string.
    """
    provided = [(k, args.get(k)) for k in keys if is_provided(args.get(k))]
    if len(provided) != 1:
        raise ArgumentError(f"Provide exactly one of: {', '.join(keys)}")
    key, value = provided[0]
    if not isinstance(value, str):
        raise ArgumentError(f"'{key}' must be a string")
    return key, value


def at_most_one_of(
    args: Mapping[str, Any], keys: Sequence[str]
) -> tuple[str, str] | None:
    """Like exactly_one_of, but also accepts none of the keys."""
    if not any(is_provided(args.get(k)) for k in keys):
        return None
    return exactly_one_of(args, keys)


__all__ = [
    "at_most_one_of",
    "exactly_one_of",
    "is_provided",
    "optional_bool",
    "optional_choice",
    "optional_int",
    "optional_mapping",
    "optional_number",
    "optional_str",
    "optional_str_list",
    "require_choice",
    "require_int",
    "require_mapping",
    "require_number",
    "require_str",
    "require_str_list",
]
