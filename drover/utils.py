"""
Drover utilities (internal helpers, carefully exposed)

Scope
- Small building blocks shared by the values, flags and commands layers.

Overview
- UnsetType / Unset
  • Singleton sentinel for "not provided", distinct from None (a legitimate flag default).
  • Falsey, printable as "Unset", and sealed against subclassing.

- coalesce(value, default=None)
  • Replace Unset with a concrete default, preserving None/0/""/[].

- rename(callable, name) / @rename("name")
  • Stable __name__/__qualname__ for generated callables (properties, adapters).

- mirror("attr")
  • Read-only property over a private backing field, returning fresh copies of containers.

- split(text, separator)
  • Separator split honouring backslash escapes (used by the declarative flag adapter).

- Introspective
  • Metaclass giving declarations a __typename__, mirrored properties and a rich repr.
"""
import builtins
import functools
import operator
import re
from collections.abc import Sequence, Mapping, Set
from typing import final


@final
class UnsetType:
    """
    Sentinel type for a value that was not provided.

    flag defaults, commands names and context sinks may all legitimately be None,
    so every optional keyword in drover defaults to Unset instead.
    """

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __or__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    def __ror__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")


def coalesce(object, default=None, /):
    """
    Return object unless it is Unset, in which case return default.

    falsey values (None, 0, "", []) are preserved; only the sentinel is replaced.

    Examples
    - coalesce("push", "pull") -> "push"
    - coalesce(Unset, "pull")  -> "pull"
    - coalesce(None, "pull")   -> None
    """
    return object if object is not Unset else default


def rename(*parameters):
    """
    Set __name__/__qualname__ on a callable, or build a decorator doing so.

    Forms
    - rename(callable, name) -> callable
    - rename(name) -> decorator
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


def _immortalize(object):
    # tuples stay tuples, everything else container-like becomes a fresh copy
    if isinstance(object, tuple):
        return object
    if isinstance(object, Sequence) and not isinstance(object, str | bytes):
        return list(map(_immortalize, object))
    elif isinstance(object, Mapping):
        return dict(zip(object.keys(), map(_immortalize, object.values())))
    elif isinstance(object, Set):
        return set(map(_immortalize, object))
    return object


def mirror(name, /):
    """
    Define a read-only property reading self._{name}.

    containers are copied on every read so callers cannot mutate a declaration
    through its public surface; nested declarations (flags, commands) are shared.
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        return _immortalize(getattr(self, "_" + name))

    return property(getter)


def split(text, separator, /):
    r"""
    Split text on separator, treating a backslash as an escape for the next character.

    Examples
    - split("a,b", ",")        -> ["a", "b"]
    - split(r"a\,b,c", ",")    -> ["a,b", "c"]
    - split("", ",")           -> []
    """
    if not isinstance(text, str):
        raise TypeError("split() first argument must be a string")
    if not isinstance(separator, str) or len(separator) != 1:
        raise TypeError("split() second argument must be a single character")
    if not text:
        return []

    parts, current, escaped = [], [], False
    for char in text:
        if escaped:
            current.append(char)
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == separator:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
    if escaped:
        current.append("\\")
    parts.append("".join(current))
    return parts


class Introspective(type):
    """
    Metaclass for declarations (flags, commands) with stable introspection.

    Responsibilities
    - __typename__: hyphenated lowercase class name, used in configuration faults.
    - read-only properties for every name in __introspectable__ not already defined
      by the class body (see mirror()).
    - __repr__/__rich_repr__ listing __displayable__ (or __introspectable__).
    """
    __introspectable__ = ()
    __displayable__ = ()

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            {
                attribute: mirror(attribute)
                for attribute in namespace.get("__introspectable__", ())
                if attribute not in namespace
            } | namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            },
        )

        if "__repr__" not in namespace:
            @rename("__repr__")
            def __repr__(self):
                return f"{type(self).__typename__}({', '.join(map(functools.partial(operator.mod, '%s=%r'), self.__rich_repr__()))})"
            self.__repr__ = __repr__

        if "__rich_repr__" not in namespace:
            @rename("__rich_repr__")
            def __rich_repr__(self):
                for attribute in type(self).__displayable__ or type(self).__introspectable__:
                    yield attribute, getattr(self, attribute)
            self.__rich_repr__ = __rich_repr__

        return self


Unset = UnsetType()
"""
Sentinel for "not provided"; see UnsetType.
"""


__all__ = (
    # Functions
    "coalesce",
    "rename",
    "mirror",
    "split",

    # Types
    "UnsetType",
    "Introspective",

    # Constants
    "Unset",
)
