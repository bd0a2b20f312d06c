"""
Argosy value conversion and defaulting.

Conversion
- convert(field, raw) applies field.converter to one raw string. Any exception
  raised by the converter is reported, never propagated: the result is
  (Unset, message) where message is str(exception) (or "invalid value").
- Choices are checked after conversion, against the converted value.

Defaulting
- resolve_default(field) materializes the value of a field that captured
  nothing: its eager default, the result of its default_factory, [] for
  repeated fields, False for switches (0 for counting ones) and None
  otherwise. It is only called while building a successful result, at most
  once per field and pass.

Ready-made converters
- integer, number, boolean: strict scalar converters with short messages.
- choice(*values): converter accepting exactly one of the given strings.
- separated(converter, sep=","): converter for "a,b,c" style lists.
"""
import copy

from .schema import Arity, FieldKind
from .utils import *


def convert(field, raw, /):
    """
    Convert one raw string for a value-bearing field.

    Returns
    - (value, None) on success.
    - (Unset, message) on converter failure or when the value is not a choice.
    """
    try:
        value = field.converter(raw)
    except Exception as exception:
        return Unset, str(exception) or "invalid value"
    if field.choices and value not in field.choices:
        return Unset, "expected one of %s" % ", ".join(map(repr, field.choices))
    return value, None


def resolve_default(field, /):
    """
    Return the value of a field that captured nothing during the pass.
    """
    if field.kind is FieldKind.SWITCH:
        return 0 if field.count else False
    if field.kind is FieldKind.SUBCOMMAND:
        return None
    if field.default_factory is not Unset:
        return field.default_factory()
    if field.default is not Unset:
        return list(field.default) if field.arity is Arity.REPEATED else copy.copy(field.default)
    return [] if field.arity is Arity.REPEATED else None


@rename("integer")
def integer(raw, /):
    """
    Decimal integers, plus 0x/0o/0b prefixed literals.
    """
    for base in (10, 0):
        try:
            return int(raw, base)
        except ValueError:
            continue
    raise ValueError(f"expected an integer, got {raw!r}")


@rename("number")
def number(raw, /):
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"expected a number, got {raw!r}") from None


@rename("boolean")
def boolean(raw, /):
    """
    Accept the usual spellings of true/false (case-insensitive).
    """
    match raw.strip().lower():
        case "1" | "true" | "yes" | "on" | "y":
            return True
        case "0" | "false" | "no" | "off" | "n":
            return False
        case _:
            raise ValueError(f"expected a boolean, got {raw!r}")


def choice(*values):
    """
    Build a converter that accepts exactly one of the given strings.
    """
    if not values or not all(isinstance(value, str) for value in values):
        raise TypeError("choice() arguments must be one or more strings")

    @rename("choice")
    def converter(raw, /):
        if raw not in values:
            raise ValueError("expected one of %s, got %r" % (", ".join(map(repr, values)), raw))
        return raw

    return converter


def separated(converter=str, /, sep=","):
    """
    Build a converter splitting "a,b,c" on `sep` and converting every item.
    """
    if not callable(converter):
        raise TypeError("separated() first argument must be callable")
    if not isinstance(sep, str) or not sep:
        raise TypeError("separated() 'sep' must be a non-empty string")

    @rename("separated")
    def wrapper(raw, /):
        return [converter(item.strip()) for item in raw.split(sep) if item.strip()]

    return wrapper


__all__ = (
    "convert",
    "resolve_default",
    "integer",
    "number",
    "boolean",
    "choice",
    "separated",
)
