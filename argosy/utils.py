"""
Argosy utilities (small building blocks shared by the schema and the engine)

Overview
- UnsetType / Unset
  • Sentinel for "not provided", kept apart from None because None is a legal default.
  • Falsey, printable as "Unset", sealed against subclassing.

- coalesce(value, default=None)
  • Materialize Unset into a fallback while preserving None/0/""/[] as given.

- rename(callable, name) / @rename("name")
  • Stable __name__/__qualname__ for generated accessors and wrappers.

- mirror("attr")
  • Read-only property over a private backing field (self._attr); containers come
    back as tuples / read-only mappings / frozensets so schemas stay immutable.

Quick examples
    >>> coalesce(Unset, "fallback")
    'fallback'
    >>> coalesce(None, "fallback") is None
    True
"""
import builtins
import functools
from collections.abc import Sequence, Mapping, Set
from types import MappingProxyType
from typing import final


@final
class UnsetType:
    """
    Sentinel type for values that were never provided.

    A field declared with default=None must still be told apart from a field
    declared without any default, so the public constructors use Unset as their
    parameter default and resolve it through coalesce().

    Characteristics
    - bool(Unset) is False.
    - repr(Unset) is "Unset".
    - UnsetType() always returns the same instance.
    - The type cannot be subclassed.
    """

    def __or__(self, other, /):
        """
        Support PEP 604 unions in isinstance checks (e.g., str | Unset).
        """
        try:
            return type(self) | other
        except TypeError:
            return NotImplemented

    def __ror__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")


def coalesce(object, default=None, /):
    """
    Return object unless it is Unset, in which case return default.

    Falsey values (None, 0, "", []) are returned untouched; only the sentinel
    is replaced.
    """
    return object if object is not Unset else default


def rename(*parameters):
    """
    Set __name__/__qualname__ on a callable, or build a decorator that will.

    Forms
    - rename(callable, name) -> callable
    - rename(name) -> decorator

    Errors
    - TypeError on a non-callable target, a non-string name, or wrong arity.
    """
    match len(parameters):
        case 2:
            callable, name = parameters
            if not builtins.callable(callable):
                raise TypeError("rename() first argument must be callable")
            if not isinstance(name, str):
                raise TypeError("rename() second argument must be a string")
            try:
                callable.__qualname__ = name
                callable.__name__ = name
            except (AttributeError, TypeError):
                raise TypeError("rename() first argument must be a updatable callable") from None
            return callable
        case 1:
            name, = parameters
            if not isinstance(name, str):
                raise TypeError("@rename() argument must be a string")

            def wrapper(callable):
                if not builtins.callable(callable):
                    raise TypeError("@rename() must be applied to a callable")
                return rename(callable, name)

            return rename(wrapper, "rename")
        case _:
            raise TypeError("rename takes 1 to 2 arguments but %d were given" % len(parameters))


def _freeze(object):
    """
    Return a read-only view of a container value.

    - Sequence (non-string) -> tuple
    - Mapping              -> MappingProxyType (values left as-is)
    - Set                  -> frozenset
    - anything else        -> unchanged
    """
    if isinstance(object, Sequence) and not isinstance(object, str | tuple):
        return tuple(object)
    elif isinstance(object, Mapping) and not isinstance(object, MappingProxyType):
        return MappingProxyType(dict(object))
    elif isinstance(object, Set) and not isinstance(object, frozenset):
        return frozenset(object)
    return object


def mirror(name, /):
    """
    Define a read-only property that mirrors the private attribute "_{name}".

    Container values are frozen on the way out (see _freeze) so callers can
    not mutate a schema through its public surface.
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        return _freeze(getattr(self, "_" + name))

    return property(getter)


Unset = UnsetType()
"""
Sentinel for "not provided"; distinct from None, falsey, and a singleton.
"""


__all__ = (
    # Functions
    "coalesce",
    "rename",
    "mirror",

    # Types
    "UnsetType",

    # Constants
    "Unset",
)
