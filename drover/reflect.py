r"""
Drover declarative adapter: flags derived from dataclass fields.

Every field of a dataclass instance becomes a Flag bound back to that field. The
field metadata entry named by `tag` (default "drover") refines the declaration with
a comma separated spec; the first item is the usage, the rest are key:value options:

    @dataclasses.dataclass
    class Options:
        dry_run: bool = field(default=False, metadata={"drover": "only print actions,short:n"})
        jobs: int = field(default=4, metadata={"drover": "parallel jobs,short:j,set:jobs_set"})
        jobs_set: bool = field(default=False, metadata={"drover": "-"})

    FlagSet(flags_from(Options()))

Options
- type, elem, mapkey: override the inferred value/element/key types.
- name: long name (otherwise mapper(field name)); short; alias; aliases (a|b|c).
- spec: help placeholder; default: default text (otherwise the field's scalar value).
- noarg[:text]: flag satisfied by presence alone ("true" when text is omitted).
- key: config keys (a|b); section: help section number.
- hook:help / hook:version: turn the field into the corresponding hook flag.
- hidden, deprecated: visibility; set:field: companion bool marking explicit use.
A backslash escapes "," ":" and "|". A spec of "-" skips the field.

This module is never imported by the parser.
"""
import dataclasses
import datetime
import decimal
import fractions
import ipaddress
import pathlib
import re
import types
import typing
import urllib.parse
import uuid
from collections import abc

from rich.color import Color

from .commands import HOOKS
from .faults import *
from .flags import Binding, Flag
from .utils import *
from .values import Type, AddrPort, codec

DEFAULT_TAG_NAME = "drover"

_OPTIONS = frozenset((
    "type", "mapkey", "elem", "name", "short", "alias", "aliases", "spec", "default",
    "noarg", "key", "hook", "section", "hidden", "deprecated", "set",
))

_ANNOTATIONS = {
    str: Type.STRING,
    bytes: Type.BYTES,
    bool: Type.BOOL,
    int: Type.INT,
    float: Type.FLOAT64,
    complex: Type.COMPLEX128,
    decimal.Decimal: Type.BIGFLOAT,
    fractions.Fraction: Type.BIGRAT,
    datetime.datetime: Type.TIMESTAMP,
    datetime.date: Type.DATE,
    datetime.time: Type.TIME,
    datetime.timedelta: Type.DURATION,
    pathlib.Path: Type.PATH,
    ipaddress.IPv4Address: Type.ADDR,
    ipaddress.IPv6Address: Type.ADDR,
    ipaddress.IPv4Network: Type.CIDR,
    ipaddress.IPv6Network: Type.CIDR,
    AddrPort: Type.ADDRPORT,
    urllib.parse.SplitResult: Type.URL,
    uuid.UUID: Type.UUID,
    Color: Type.COLOR,
}


def default_name_mapper(name, /):
    """
    map a field name to a flag name: "dry_run" and "DryRun" both become "dry-run".
    """
    name = re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "-", name)
    return name.replace("_", "-").strip("-").lower()


def _unwrap(annotation):
    # "X | None" and Optional[X] declare X
    if isinstance(annotation, types.UnionType) or typing.get_origin(annotation) is typing.Union:
        arguments = [argument for argument in typing.get_args(annotation) if argument is not type(None)]
        if len(arguments) == 1:
            return arguments[0]
    return annotation


def _infer(field, annotation):
    annotation = _unwrap(annotation)
    origin = typing.get_origin(annotation)
    arguments = typing.get_args(annotation)

    def scalar(annotation):
        try:
            return _ANNOTATIONS[_unwrap(annotation)]
        except (KeyError, TypeError):
            raise InvalidTypeError(
                f"field {field.name!r} has an unsupported type {annotation!r}",
                hint="set type: in the field tag or skip the field with '-'",
            ) from None

    if origin in (list, tuple, abc.Sequence) or annotation in (list, tuple):
        return Type.SLICE, scalar(arguments[0]) if arguments else Type.STRING, Type.STRING
    if origin in (dict, abc.Mapping) or annotation is dict:
        if arguments:
            return Type.MAP, scalar(arguments[1]), scalar(arguments[0])
        return Type.MAP, Type.STRING, Type.STRING
    return scalar(annotation), Type.STRING, Type.STRING


def _parse_tag(field, spec):
    parts = split(spec, ",")
    usage = parts[0].strip() if parts else ""
    options = {}
    for part in parts[1:]:
        key, separator, value = part.partition(":")
        if (key := key.strip()) not in _OPTIONS:
            raise InvalidTagOptionError(
                f"field {field.name!r} has an unknown tag option {key!r}",
                hint="known options: " + ", ".join(sorted(_OPTIONS)),
            )
        options[key] = value if separator else None
    return usage, options


def _boolean(field, key, value):
    if value is None or value == "":
        return True
    try:
        return codec(Type.BOOL).parse(value)
    except ValueError:
        raise InvalidTagOptionError(f"field {field.name!r} option {key!r} expects a boolean") from None


def _integer(field, key, value):
    try:
        return int(value)
    except ValueError:
        raise InvalidTagOptionError(f"field {field.name!r} option {key!r} expects an integer") from None


def flags_from(record, /, *, tag=DEFAULT_TAG_NAME, mapper=default_name_mapper):
    """
    derive Flag declarations from a dataclass instance.

    Parameters
    - record: dataclass instance; parsed values are written back to its fields.
    - tag: metadata key holding the field spec.
    - mapper: field name -> flag name, used when the field tag has no name: option.

    Returns
    - list[Flag], in field order.

    Raises
    - TypeError: record is not a dataclass instance.
    - InvalidTagOptionError, InvalidTypeError: malformed field specs.
    - DuplicateFieldError: a field is bound twice (as a value or as a set: marker).
    - DuplicateFlagError: two fields map to the same flag name.
    - ConfigurationError: any invalid resulting declaration.
    """
    if not dataclasses.is_dataclass(record) or isinstance(record, type):
        raise TypeError("flags_from() argument must be a dataclass instance")
    if not callable(mapper):
        raise TypeError("flags_from() mapper must be callable")

    hints = typing.get_type_hints(type(record))
    fields = {field.name: field for field in dataclasses.fields(record)}

    flags, names, bound = [], set(), set()
    for field in fields.values():
        spec = field.metadata.get(tag, "")
        if spec == "-":
            continue
        usage, options = _parse_tag(field, spec)

        name = options.get("name") or mapper(field.name)
        if name in names:
            raise DuplicateFlagError(f"field {field.name!r} maps to the already declared flag {name!r}")
        names.add(name)

        aliases = split(options.get("aliases") or "", "|")
        if options.get("alias"):
            aliases.insert(0, options["alias"])
        common = {
            "aliases": aliases,
            "short": options.get("short") or Unset,
            "section": _integer(field, "section", options["section"]) if options.get("section") else -1,
            "hidden": _boolean(field, "hidden", options["hidden"]) if "hidden" in options else False,
            "deprecated": _boolean(field, "deprecated", options["deprecated"]) if "deprecated" in options else False,
        }

        if "hook" in options:
            if (action := HOOKS.get(options["hook"] or "")) is None:
                raise InvalidTagOptionError(
                    f"field {field.name!r} names an unknown hook {options['hook']!r}",
                    hint="known hooks: " + ", ".join(HOOKS),
                )
            flags.append(Flag(name, usage, Type.HOOK, default=action, special="hook:" + options["hook"], **common))
            continue

        if options.get("type"):
            kind, elem, key = options["type"], Type.STRING, Type.STRING
        else:
            kind, elem, key = _infer(field, hints.get(field.name, str))

        declaration = common | {
            "elem": options.get("elem") or elem,
            "key": options.get("mapkey") or key,
            "spec": options.get("spec") or Unset,
            "keys": tuple(split(options.get("key") or "", "|")),
        }
        if "noarg" in options:
            declaration["noarg"] = True
            declaration["noarg_default"] = options["noarg"] if options["noarg"] is not None else "true"
        if "default" in options:
            declaration["default"] = options["default"] or ""
        elif (current := getattr(record, field.name)) is not None and not isinstance(current, list | tuple | dict | set):
            declaration["default"] = current

        for attribute in (field.name, options.get("set")):
            if not attribute:
                continue
            if attribute not in fields:
                raise InvalidTagOptionError(f"field {field.name!r} marks an unknown field {attribute!r}")
            if attribute in bound:
                raise DuplicateFieldError(f"field {attribute!r} is bound to more than one flag")
            bound.add(attribute)

        flags.append(Flag(
            name,
            usage,
            kind,
            binds=(Binding(record, field.name, options.get("set") or None),),
            **declaration,
        ))
    return flags


__all__ = (
    "DEFAULT_TAG_NAME",
    "default_name_mapper",
    "flags_from",
)
