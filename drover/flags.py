"""
Drover flag declarations and the per-parse variable table.

Overview
- Flag: static metadata of one flag (identity, type descriptor, default, no-argument
  behavior, bindings, visibility). Validated on construction.
- Binding: auxiliary sink updated on every assignment (attribute or mapping item),
  optionally toggling a companion "was set" marker on explicit assignments.
- FlagSet: ordered flags owned by one command, with one typed builder per descriptor.
- Vars: long name -> live Value, scoped to one parse; Vars.set is the single
  assignment entry point.

Validation highlights
- names are non-empty and never carry their dashes; short names are one character.
- a no-argument flag needs a no-argument default; a hook needs a callable action.
- within one FlagSet long names are unique and short names do not collide.
"""
import functools
import operator
from collections.abc import Iterable, MutableMapping, Sequence
from typing import NamedTuple

from .faults import *
from .faults import invalid_value
from .utils import *
from .values import Type, SliceValue, MapValue, HookValue


class Binding(NamedTuple):
    """
    sink mirrored from a flag's value.

    target is any object (attribute assignment) or a mutable mapping (item assignment);
    marker, when given, names a companion set to True on explicit assignments.
    """
    target: object
    attribute: str
    marker: str | None = None

    def apply(self, value, explicit, /):
        store = operator.setitem if isinstance(self.target, MutableMapping) else setattr
        store(self.target, self.attribute, value.get())
        if explicit and self.marker:
            store(self.target, self.marker, True)


def _sanitize_name(name, /):
    if not isinstance(name, str):
        raise TypeError("flag 'name' must be a string")
    if not (name := name.strip()) or name.startswith("-") or "=" in name:
        raise InvalidFlagNameError(
            f"invalid flag name {name!r}",
            hint="use a non-empty name without leading dashes or '='",
        )
    return name


def _sanitize_short(name, short, /):
    if short is Unset or short is None:
        return None
    if not isinstance(short, str):
        raise TypeError(f"flag {name!r} 'short' must be a string")
    if len(short) != 1 or short in "-=":
        raise InvalidShortNameError(f"flag {name!r} short name {short!r} must be exactly one character")
    return short


def _sanitize_aliases(name, aliases, /):
    if isinstance(aliases, str) or not isinstance(aliases, Iterable):
        raise TypeError(f"flag {name!r} 'aliases' must be an iterable of strings")
    result = []
    for alias in aliases:
        if not isinstance(alias, str):
            raise TypeError(f"flag {name!r} aliases must be strings")
        if not alias or alias.startswith("-") or "=" in alias:
            raise InvalidFlagNameError(f"flag {name!r} has an invalid alias {alias!r}")
        if alias not in result:
            result.append(alias)
    return tuple(result)


def _sanitize_type(name, type, role, /, scalar=False):
    try:
        type = Type(type)
    except ValueError:
        raise InvalidTypeError(f"flag {name!r} {role} type {type!r} is unknown") from None
    if scalar and not type.scalar:
        raise InvalidTypeError(f"flag {name!r} {role} type must be scalar, not {type.value!r}")
    return type


def _sanitize_binds(name, binds, /):
    result = []
    for bind in binds:
        if isinstance(bind, Binding):
            result.append(bind)
        elif isinstance(bind, tuple) and 2 <= len(bind) <= 3:
            result.append(Binding(*bind))
        else:
            raise TypeError(f"flag {name!r} binds must be Binding objects or (target, attribute) tuples")
    return tuple(result)


class Flag(metaclass=Introspective):
    """
    declaration of one flag.

    Parameters
    - name: long name, without dashes (required).
    - usage: one-line description.
    - type: value type descriptor (see values.Type), default string.
    - short: optional single-character short name.
    - aliases: extra long names or single-character short names.
    - elem/key: element and key types for slice/map flags.
    - default: untyped default, expanded and parsed during population (None: no default).
      for hooks this is the action.
    - noarg/noarg_default: satisfied by presence alone, using noarg_default as its text.
      bool flags default to (True, True); count and hook flags to (True, "").
    - binds: Binding sinks; keys: config lookup keys; spec: value placeholder for help.
    - layout: strftime layout for timestamp/datetime values.
    - section/hidden/deprecated/special: grouping and visibility metadata.
    """
    __introspectable__ = (
        "name",
        "usage",
        "type",
        "short",
        "aliases",
        "elem",
        "key",
        "default",
        "noarg",
        "noarg_default",
        "binds",
        "keys",
        "spec",
        "layout",
        "section",
        "hidden",
        "deprecated",
        "special",
    )
    __displayable__ = ("name", "type", "short", "default")

    def __init__(
            self,
            name,
            usage=Unset,
            /,
            type=Type.STRING,
            *,
            short=Unset,
            aliases=(),
            elem=Type.STRING,
            key=Type.STRING,
            default=None,
            noarg=Unset,
            noarg_default=Unset,
            binds=(),
            keys=(),
            spec=Unset,
            layout=Unset,
            section=-1,
            hidden=False,
            deprecated=False,
            special=Unset,
    ):
        self._name = name = _sanitize_name(name)
        self._usage = coalesce(usage, "")
        self._type = _sanitize_type(name, type, "value")
        self._short = _sanitize_short(name, short)
        self._aliases = _sanitize_aliases(name, aliases)
        self._elem = _sanitize_type(name, elem, "element", scalar=True)
        self._key = _sanitize_type(name, key, "key", scalar=True)
        self._default = default
        self._binds = _sanitize_binds(name, binds)
        self._keys = tuple(keys)
        self._spec = coalesce(spec, None)
        self._layout = layout
        self._section = section
        self._hidden = bool(hidden)
        self._deprecated = bool(deprecated)
        self._special = coalesce(special, "")

        match self._type:
            case Type.BOOL:
                noarg, noarg_default = coalesce(noarg, True), coalesce(noarg_default, True)
            case Type.COUNT | Type.HOOK:
                noarg, noarg_default = coalesce(noarg, True), coalesce(noarg_default, "")
        self._noarg = bool(coalesce(noarg, False))
        self._noarg_default = coalesce(noarg_default, None)

        if self._noarg and self._noarg_default is None:
            raise MissingNoArgDefaultError(
                f"flag {decorate(name)!r} takes no argument but has no no-argument default",
                hint="pass noarg_default= alongside noarg=True",
            )
        if self._type in (Type.SLICE, Type.MAP) and not isinstance(default, str | None):
            raise InvalidTypeError(
                f"{self._type.value} flag {decorate(name)!r} default must be text, not {default.__class__.__name__}",
                hint="give the default as the text of one element, e.g. default=\"a\"",
            )
        if self._type is Type.HOOK and not callable(default):
            raise MissingHookActionError(
                f"hook flag {decorate(name)!r} needs a callable action",
                hint="pass the action as the flag default",
            )

    @property
    def placeholder(self):
        """
        value placeholder shown in help: spec, or "TYPE", "ELEM", "KEY=ELEM".
        """
        if self._spec:
            return self._spec
        match self._type:
            case Type.SLICE:
                return self._elem.value
            case Type.MAP:
                return f"{self._key.value}={self._elem.value}"
            case Type.HOOK | Type.BOOL | Type.COUNT:
                return ""
            case _:
                return self._type.value

    def matches(self, name, /, short=False):
        """
        check name against the short axis (short name, one-character aliases)
        or the long axis (long name, longer aliases).
        """
        if short:
            return name == self._short or (len(name) == 1 and name in self._aliases)
        return name == self._name or (len(name) > 1 and name in self._aliases)

    def new(self, context=None, /):
        """
        fresh zero value for this flag (hooks capture the context for their action).
        """
        match self._type:
            case Type.SLICE:
                return SliceValue(self._elem, layout=self._layout)
            case Type.MAP:
                return MapValue(self._key, self._elem, layout=self._layout)
            case Type.HOOK:
                return HookValue(self._default, context)
            case _:
                return self._type.new(layout=self._layout)


class FlagSet(Sequence):
    """
    ordered flags of one command.

    builders append a new Flag and return the set, so declarations chain:

        flags = FlagSet().bool("verbose", "say more", short="v").int("jobs", "workers", default=4)
    """

    def __init__(self, flags=(), /):
        self._flags = []
        for flag in flags:
            self.add(flag)

    def __getitem__(self, index):
        return self._flags[index]

    def __len__(self):
        return len(self._flags)

    def __repr__(self):
        return f"flag-set({', '.join(flag.name for flag in self._flags)})"

    def __rich_repr__(self):
        yield from self._flags

    def add(self, flag, /):
        if not isinstance(flag, Flag):
            raise TypeError("FlagSet.add() argument must be a Flag")
        for other in self._flags:
            if other.name == flag.name:
                raise DuplicateFlagError(f"flag {decorate(flag.name)!r} is declared twice")
            if flag.short is not None and other.short == flag.short:
                raise DuplicateFlagError(
                    f"flags {decorate(other.name)!r} and {decorate(flag.name)!r} share the short name {flag.short!r}"
                )
        self._flags.append(flag)
        return self

    def extend(self, flags, /):
        for flag in flags:
            self.add(flag)
        return self

    def var(self, name, usage=Unset, /, type=Type.STRING, **options):
        return self.add(Flag(name, usage, type, **options))

    def hook(self, name, usage, action, /, **options):
        return self.add(Flag(name, usage, Type.HOOK, default=action, **options))

    def slice(self, name, usage=Unset, /, elem=Type.STRING, **options):
        return self.add(Flag(name, usage, Type.SLICE, elem=elem, **options))

    def map(self, name, usage=Unset, /, key=Type.STRING, elem=Type.STRING, **options):
        return self.add(Flag(name, usage, Type.MAP, key=key, elem=elem, **options))

    string = functools.partialmethod(var, type=Type.STRING)
    bytes = functools.partialmethod(var, type=Type.BYTES)
    base64 = functools.partialmethod(var, type=Type.BASE64)
    hex = functools.partialmethod(var, type=Type.HEX)
    bool = functools.partialmethod(var, type=Type.BOOL)
    byte = functools.partialmethod(var, type=Type.BYTE)
    rune = functools.partialmethod(var, type=Type.RUNE)
    int = functools.partialmethod(var, type=Type.INT)
    int8 = functools.partialmethod(var, type=Type.INT8)
    int16 = functools.partialmethod(var, type=Type.INT16)
    int32 = functools.partialmethod(var, type=Type.INT32)
    int64 = functools.partialmethod(var, type=Type.INT64)
    uint = functools.partialmethod(var, type=Type.UINT)
    uint8 = functools.partialmethod(var, type=Type.UINT8)
    uint16 = functools.partialmethod(var, type=Type.UINT16)
    uint32 = functools.partialmethod(var, type=Type.UINT32)
    uint64 = functools.partialmethod(var, type=Type.UINT64)
    float32 = functools.partialmethod(var, type=Type.FLOAT32)
    float64 = functools.partialmethod(var, type=Type.FLOAT64)
    complex64 = functools.partialmethod(var, type=Type.COMPLEX64)
    complex128 = functools.partialmethod(var, type=Type.COMPLEX128)
    bigint = functools.partialmethod(var, type=Type.BIGINT)
    bigfloat = functools.partialmethod(var, type=Type.BIGFLOAT)
    bigrat = functools.partialmethod(var, type=Type.BIGRAT)
    timestamp = functools.partialmethod(var, type=Type.TIMESTAMP)
    datetime = functools.partialmethod(var, type=Type.DATETIME)
    date = functools.partialmethod(var, type=Type.DATE)
    time = functools.partialmethod(var, type=Type.TIME)
    duration = functools.partialmethod(var, type=Type.DURATION)
    path = functools.partialmethod(var, type=Type.PATH)
    count = functools.partialmethod(var, type=Type.COUNT)
    addr = functools.partialmethod(var, type=Type.ADDR)
    addrport = functools.partialmethod(var, type=Type.ADDRPORT)
    cidr = functools.partialmethod(var, type=Type.CIDR)
    url = functools.partialmethod(var, type=Type.URL)
    uuid = functools.partialmethod(var, type=Type.UUID)
    color = functools.partialmethod(var, type=Type.COLOR)


class Vars(dict):
    """
    long flag name -> live Value for one parse invocation.

    assignment rules (see set())
    - the first explicit assignment discards a populated default;
    - later explicit assignments overwrite scalars and append to slices/maps;
    - default assignments never replace an explicit value (drop the entry to force it);
    - a default with empty text leaves the fresh zero value untouched.
    """

    def set(self, flag, text, explicit, /, context=None):
        current = self.get(flag.name)
        if current is not None and current.was_set and not explicit:
            return current

        value = current if current is not None and current.was_set else flag.new(context)
        if explicit or text != "":
            try:
                value.set(text)
            except CommandException:
                raise
            except (ValueError, ArithmeticError) as error:
                raise invalid_value(flag, text, error) from error

        if explicit:
            value.was_set = True
            if flag.deprecated:
                DeprecatedFlagWarning(
                    f"flag {decorate(flag.name)!r} is deprecated",
                    flag=flag,
                    command=getattr(context, "command", None),
                ).__trigger__()

        self[flag.name] = value
        if flag.type is not Type.HOOK:
            for binding in flag.binds:
                binding.apply(value, explicit)
        return value

    def value(self, name, default=None, /):
        """
        native value of a flag, or default when it was never populated.
        """
        if (value := self.get(name)) is None:
            return default
        return value.get()


__all__ = (
    "Binding",
    "Flag",
    "FlagSet",
    "Vars",
)
