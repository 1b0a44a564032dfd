"""
Drover value model: typed containers behind every flag.

Overview
- Type: the closed set of type descriptors a flag may declare.
- Codec: parse/format/zero triple registered for every scalar descriptor.
- Values (all final)
  • ScalarValue: one typed value; every assignment overwrites.
  • CountValue: an integer bumped by each bare occurrence ("-vvv").
  • SliceValue: ordered list of elements of one scalar type; assignments append.
  • MapValue: key-ordered mapping; "key=value" assignments merge.
  • HookValue: no data; assignment runs an action with the active context.

Parsing contract
- parse functions raise ValueError on malformed text; Vars.set turns that into an
  InvalidValueError carrying the flag and the raw text.
- format(parse(text)) == text for canonical spellings of every scalar type.
"""
import base64
import binascii
import datetime
import decimal
import fractions
import inspect
import ipaddress
import math
import pathlib
import re
import struct
import urllib.parse
import uuid
from enum import StrEnum
from typing import NamedTuple, final

from rich.color import Color, ColorParseError

from .utils import *


class Type(StrEnum):
    STRING = "string"
    BYTES = "bytes"
    BASE64 = "base64"
    HEX = "hex"
    BOOL = "bool"
    BYTE = "byte"
    RUNE = "rune"
    INT = "int"
    INT8 = "int8"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    UINT = "uint"
    UINT8 = "uint8"
    UINT16 = "uint16"
    UINT32 = "uint32"
    UINT64 = "uint64"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    COMPLEX64 = "complex64"
    COMPLEX128 = "complex128"
    BIGINT = "bigint"
    BIGFLOAT = "bigfloat"
    BIGRAT = "bigrat"
    TIMESTAMP = "timestamp"
    DATETIME = "datetime"
    DATE = "date"
    TIME = "time"
    DURATION = "duration"
    PATH = "path"
    COUNT = "count"
    ADDR = "addr"
    ADDRPORT = "addrport"
    CIDR = "cidr"
    URL = "url"
    UUID = "uuid"
    COLOR = "color"
    SLICE = "slice"
    MAP = "map"
    HOOK = "hook"

    @property
    def scalar(self):
        return self not in (Type.SLICE, Type.MAP, Type.HOOK)

    def new(self, *, layout=Unset):
        """
        fresh zero value for a scalar descriptor; containers and hooks are built by Flag.new().
        """
        if self is Type.COUNT:
            return CountValue()
        if not self.scalar:
            raise TypeError(f"type {self.value!r} needs a flag to build its value")
        return ScalarValue(self, layout=layout)


class Codec(NamedTuple):
    parse: object
    format: object
    zero: object


class AddrPort(NamedTuple):
    addr: ipaddress.IPv4Address | ipaddress.IPv6Address
    port: int

    def __str__(self):
        if self.addr.version == 6:
            return f"[{self.addr}]:{self.port}"
        return f"{self.addr}:{self.port}"


_TRUE = frozenset(("1", "t", "T", "TRUE", "true", "True"))
_FALSE = frozenset(("0", "f", "F", "FALSE", "false", "False"))

_DURATION_UNITS = {
    "ns": 0.001,
    "us": 1,
    "µs": 1,  # U+00B5
    "μs": 1,  # U+03BC
    "ms": 1_000,
    "s": 1_000_000,
    "m": 60_000_000,
    "h": 3_600_000_000,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")

_FLOAT32_MAX = 3.4028234663852886e38


def _parse_bool(text):
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError(f"invalid boolean {text!r}")


def _format_bool(value):
    return "true" if value else "false"


def _integer(bits, signed):
    if signed:
        low, high = -(1 << (bits - 1)), (1 << (bits - 1)) - 1
    else:
        low, high = 0, (1 << bits) - 1

    def parse(text):
        value = int(text, 0)
        if not low <= value <= high:
            raise ValueError(f"{text!r} out of range [{low}, {high}]")
        return value

    return parse


def _parse_bigint(text):
    return int(text, 0)


def _float32(value):
    if math.isfinite(value) and abs(value) > _FLOAT32_MAX:
        raise ValueError(f"{value!r} out of float32 range")
    return struct.unpack("f", struct.pack("f", value))[0]


def _parse_float32(text):
    return _float32(float(text))


def _format_float32(value):
    # shortest spelling that survives the float32 round trip
    for precision in range(1, 10):
        if _float32(float(spelling := "%.*g" % (precision, value))) == value:
            return spelling
    return repr(value)


def _parse_complex(text):
    text = text.strip("()")
    if text.endswith("i"):
        text = text[:-1] + "j"
    return complex(text)


def _parse_complex64(text):
    value = _parse_complex(text)
    return complex(_float32(value.real), _float32(value.imag))


def _parse_bigfloat(text):
    try:
        value = decimal.Decimal(text)
    except decimal.InvalidOperation:
        raise ValueError(f"invalid decimal {text!r}") from None
    return value


def _parse_bigrat(text):
    try:
        return fractions.Fraction(text)
    except ZeroDivisionError:
        raise ValueError(f"invalid rational {text!r}: zero denominator") from None


def _parse_byte(text):
    if len(text) != 1:
        raise ValueError(f"expected a single byte, got {len(text)} characters")
    if ord(text) > 0xFF:
        raise ValueError(f"{text!r} does not fit in one byte")
    return ord(text)


def _parse_rune(text):
    if len(text) != 1:
        raise ValueError(f"expected a single character, got {len(text)}")
    return text


def _parse_base64(text):
    try:
        return base64.b64decode(text, validate=True)
    except binascii.Error as error:
        raise ValueError(str(error)) from None


def _parse_bytes(text):
    return text.encode()


def _format_bytes(value):
    return value.decode("utf-8", "backslashreplace")


def _timestamp(layout):
    def parse(text):
        if layout:
            return datetime.datetime.strptime(text, layout)
        return datetime.datetime.fromisoformat(text)

    def format(value):
        if layout:
            return value.strftime(layout)
        text = value.isoformat()
        return text[:-6] + "Z" if text.endswith("+00:00") else text

    return parse, format


def _layout(layout):
    def parse(text):
        return datetime.datetime.strptime(text, layout)

    def format(value):
        return value.strftime(layout)

    return parse, format


def parse_duration(text):
    """
    parse a duration in the "1h2m3.5s" notation (units ns, us/µs, ms, s, m, h).

    a bare "0" (optionally signed) is accepted; any other unit-less number is refused.
    """
    original = text
    sign = 1
    if text[:1] in "+-" and text:
        sign = -1 if text[0] == "-" else 1
        text = text[1:]
    if text == "0":
        return datetime.timedelta(0)
    if not text:
        raise ValueError(f"invalid duration {original!r}")

    microseconds = 0.0
    position = 0
    while position < len(text):
        if not (match := _DURATION_PART.match(text, position)):
            raise ValueError(f"invalid duration {original!r}")
        microseconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()
    try:
        return sign * datetime.timedelta(microseconds=microseconds)
    except OverflowError:
        raise ValueError(f"duration {original!r} out of range") from None


def _fraction(value, unit, suffix):
    whole, rest = divmod(value, unit)
    if not rest:
        return f"{whole}{suffix}"
    digits = len(str(unit)) - 1
    return f"{whole}.{str(rest).rjust(digits, '0').rstrip('0')}{suffix}"


def format_duration(value):
    """
    render a timedelta in the "1h2m3.5s" notation; zero renders as "0s".
    """
    total = value // datetime.timedelta(microseconds=1)
    if total == 0:
        return "0s"
    sign, total = ("-", -total) if total < 0 else ("", total)
    if total < 1_000:
        return f"{sign}{total}µs"
    if total < 1_000_000:
        return sign + _fraction(total, 1_000, "ms")

    hours, total = divmod(total, 3_600_000_000)
    minutes, total = divmod(total, 60_000_000)
    text = sign
    if hours:
        text += f"{hours}h"
    if hours or minutes:
        text += f"{minutes}m"
    return text + _fraction(total, 1_000_000, "s")


def _parse_addrport(text):
    host, separator, port = text.rpartition(":")
    if not separator or not host or not port.isdigit():
        raise ValueError(f"invalid address:port {text!r}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    elif ":" in host:
        raise ValueError(f"ipv6 address in {text!r} must be bracketed")
    if (port := int(port)) > 0xFFFF:
        raise ValueError(f"port {port} out of range")
    return AddrPort(ipaddress.ip_address(host), port)


def _parse_cidr(text):
    if "/" not in text:
        raise ValueError(f"invalid prefix {text!r}: missing '/'")
    return ipaddress.ip_network(text, strict=False)


def _parse_url(text):
    value = urllib.parse.urlsplit(text)
    value.port  # raises ValueError on a malformed port
    return value


def _parse_color(text):
    try:
        return Color.parse(text)
    except ColorParseError as error:
        raise ValueError(str(error)) from None


_CODECS = {
    Type.STRING: Codec(str, str, ""),
    Type.BYTES: Codec(_parse_bytes, _format_bytes, b""),
    Type.BASE64: Codec(_parse_base64, lambda value: base64.b64encode(value).decode(), b""),
    Type.HEX: Codec(bytes.fromhex, bytes.hex, b""),
    Type.BOOL: Codec(_parse_bool, _format_bool, False),
    Type.BYTE: Codec(_parse_byte, chr, 0),
    Type.RUNE: Codec(_parse_rune, str, "\0"),
    Type.INT: Codec(_integer(64, True), str, 0),
    Type.INT8: Codec(_integer(8, True), str, 0),
    Type.INT16: Codec(_integer(16, True), str, 0),
    Type.INT32: Codec(_integer(32, True), str, 0),
    Type.INT64: Codec(_integer(64, True), str, 0),
    Type.UINT: Codec(_integer(64, False), str, 0),
    Type.UINT8: Codec(_integer(8, False), str, 0),
    Type.UINT16: Codec(_integer(16, False), str, 0),
    Type.UINT32: Codec(_integer(32, False), str, 0),
    Type.UINT64: Codec(_integer(64, False), str, 0),
    Type.FLOAT32: Codec(_parse_float32, _format_float32, 0.0),
    Type.FLOAT64: Codec(float, repr, 0.0),
    Type.COMPLEX64: Codec(_parse_complex64, str, 0j),
    Type.COMPLEX128: Codec(_parse_complex, str, 0j),
    Type.BIGINT: Codec(_parse_bigint, str, 0),
    Type.BIGFLOAT: Codec(_parse_bigfloat, str, decimal.Decimal(0)),
    Type.BIGRAT: Codec(_parse_bigrat, str, fractions.Fraction(0)),
    Type.DATE: Codec(datetime.date.fromisoformat, datetime.date.isoformat, None),
    Type.TIME: Codec(datetime.time.fromisoformat, datetime.time.isoformat, None),
    Type.DURATION: Codec(parse_duration, format_duration, datetime.timedelta(0)),
    Type.PATH: Codec(pathlib.Path, str, None),
    Type.COUNT: Codec(int, str, 0),
    Type.ADDR: Codec(ipaddress.ip_address, str, None),
    Type.ADDRPORT: Codec(_parse_addrport, str, None),
    Type.CIDR: Codec(_parse_cidr, str, None),
    Type.URL: Codec(_parse_url, urllib.parse.SplitResult.geturl, None),
    Type.UUID: Codec(uuid.UUID, str, None),
    Type.COLOR: Codec(_parse_color, lambda value: value.name, None),
}


def codec(type, /, layout=Unset):
    """
    return the Codec for a scalar type; timestamp/datetime honour a strftime layout.
    """
    match type:
        case Type.TIMESTAMP:
            return Codec(*_timestamp(layout), None)
        case Type.DATETIME:
            return Codec(*_layout(coalesce(layout, "%Y-%m-%d %H:%M:%S")), None)
        case _:
            try:
                return _CODECS[type]
            except KeyError:
                raise TypeError(f"type {type!r} has no scalar codec") from None


def render(object, /):
    """
    render a native default to the textual form its type parses.
    """
    match object:
        case str():
            return object
        case bool():
            return _format_bool(object)
        case datetime.timedelta():
            return format_duration(object)
        case datetime.datetime():
            return _timestamp(Unset)[1](object)
        case datetime.date() | datetime.time():
            return object.isoformat()
        case bytes():
            return _format_bytes(object)
        case Color():
            return object.name
        case _:
            return str(object)


class Value:
    """
    common capability of every value: set from text, get the native value, render.

    was_set is True once an explicit (command-line) assignment landed.
    """
    accumulates = False

    def __init__(self, type, /):
        self.type = type
        self.was_set = False

    def set(self, text, /):
        raise NotImplementedError

    def get(self):
        raise NotImplementedError

    def __repr__(self):
        return f"{type(self).__name__}({self.type.value}, {str(self)!r})"


@final
class ScalarValue(Value):
    def __init__(self, type, /, layout=Unset):
        super().__init__(type)
        self._codec = codec(type, layout)
        self._value = self._codec.zero

    def set(self, text, /):
        self._value = self._codec.parse(text)

    def get(self):
        return self._value

    def __str__(self):
        if self._value is None:
            return ""
        return self._codec.format(self._value)


@final
class CountValue(Value):
    """
    occurrence counter: an empty assignment increments, a number assigns.
    """

    def __init__(self):
        super().__init__(Type.COUNT)
        self._value = 0

    def set(self, text, /):
        if text == "":
            self._value += 1
        else:
            self._value = int(text, 0)

    def get(self):
        return self._value

    def __str__(self):
        return str(self._value)


@final
class SliceValue(Value):
    accumulates = True

    def __init__(self, elem=Type.STRING, /, layout=Unset):
        if not Type(elem).scalar:
            raise TypeError(f"slice element type must be scalar, not {elem!r}")
        super().__init__(Type.SLICE)
        self.elem = Type(elem)
        self._codec = codec(self.elem, layout)
        self._items = []

    def set(self, text, /):
        self._items.append(self._codec.parse(text))

    def get(self):
        return list(self._items)

    def __str__(self):
        return "[" + ",".join(map(self._codec.format, self._items)) + "]"


@final
class MapValue(Value):
    accumulates = True

    def __init__(self, key=Type.STRING, elem=Type.STRING, /, layout=Unset):
        if not Type(key).scalar or not Type(elem).scalar:
            raise TypeError("map key and element types must be scalar")
        super().__init__(Type.MAP)
        self.key, self.elem = Type(key), Type(elem)
        self._keys = codec(self.key)
        self._elems = codec(self.elem, layout)
        self._items = {}

    def set(self, text, /):
        key, separator, elem = text.partition("=")
        if not separator:
            raise ValueError(f"expected key=value, got {text!r}")
        self._items[self._keys.parse(key)] = self._elems.parse(elem)

    def get(self):
        return dict(self._items)

    def __str__(self):
        return "[" + ",".join(
            f"{self._keys.format(key)}={self._elems.format(elem)}" for key, elem in self._items.items()
        ) + "]"


@final
class HookValue(Value):
    """
    action run on every assignment; it receives the context when it accepts a parameter.
    """

    def __init__(self, action, context=None, /):
        if not callable(action):
            raise TypeError("hook action must be callable")
        super().__init__(Type.HOOK)
        self._action = action
        self._context = context
        try:
            self._arity = len(inspect.signature(action).parameters)
        except (TypeError, ValueError):
            self._arity = 1

    def set(self, text, /):
        if self._arity:
            self._action(self._context)
        else:
            self._action()

    def get(self):
        return self._action

    def __str__(self):
        return ""


__all__ = (
    "Type",
    "Codec",
    "AddrPort",
    "Value",
    "ScalarValue",
    "CountValue",
    "SliceValue",
    "MapValue",
    "HookValue",
    "codec",
    "render",
    "parse_duration",
    "format_duration",
)
