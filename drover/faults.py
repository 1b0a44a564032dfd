"""
Drover faults (errors, warnings and the exit signal) and rendering.

Scope
- FaultCode: stable numeric identifiers grouped by domain.
- CommandException: base error carrying a message plus options (command, flag, input, index...),
  able to render itself through rich.
- Kinds
  • configuration faults: raised while declaring flags/commands; construction aborts.
  • resolution faults: unknown command/flag, carrying the offending token and the command.
  • argument faults: missing or malformed flag values, carrying the flag and raw text.
- ExitSignal: normal early exit (help/version hooks); not a fault, maps to exit code 0.
- CommandWarning: soft notices (deprecations) surfaced through the warnings module.
- trigger(): render a fault on a console.

Messages
- Flags are decorated with the form they were typed in: "-x" for single characters,
  "--name" otherwise; commands read "command 'name': ...".
- Lowercased tone, one-sentence bodies, a single hint. Styles are overridable through
  __styles__ in __main__, codes through __codes__.
"""
import inspect
import warnings
from abc import ABC
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset, coalesce

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes (stable identifiers).

    grouping
    - configuration (10xxx): bad declarations, detected while building the tree.
    - resolution (111xx): tokens naming no known command or flag.
    - argument (112xx): flag values or positionals that cannot be accepted.
    - warnings (12xxx): deprecations.
    - control flow (13xxx): the early-exit signal.
    """
    # --- configuration (10xxx) ---
    INVALID_FLAG_NAME           = 10101
    INVALID_SHORT_NAME          = 10102
    MISSING_NOARG_DEFAULT       = 10103
    MISSING_HOOK_ACTION         = 10104
    DUPLICATE_FIELD             = 10105
    DUPLICATE_FLAG              = 10106
    INVALID_TYPE                = 10107
    MISSING_COMMAND_NAME        = 10108
    INVALID_TAG_OPTION          = 10109
    EXPANSION_FAILED            = 10110
    POPULATE_FAILED             = 10111
    ROOT_ONLY                   = 10112

    # --- resolution (111xx) ---
    UNKNOWN_COMMAND             = 11101
    SUGGESTED_COMMAND           = 11102
    UNKNOWN_FLAG                = 11111

    # --- argument (112xx) ---
    MISSING_ARGUMENT            = 11201
    INVALID_VALUE               = 11202
    INVALID_ARG_COUNT           = 11203
    INVALID_ARG_VALUE           = 11204

    # --- warnings (12xxx) ---
    DEPRECATED_FLAG             = 12111
    DEPRECATED_COMMAND          = 12112

    # --- control flow (13xxx) ---
    EXIT                        = 13101

    def normalize(self):
        """
        return a host-normalized string for this code (__codes__ in __main__), or the number.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


def decorate(name, /, short=None):
    """
    decorate a flag name with the prefix it is typed with: "-x" or "--name".

    short picks the axis explicitly; None guesses it from the name length.
    """
    if short is None:
        short = len(name) == 1
    return ("-" if short else "--") + name


def _render(fault, palette, /):
    main = __import__("__main__")
    options = fault.options
    colorful = options.get("colorful", True)
    fancy = options.get("fancy", False)

    styles = defaultdict(str, palette | getattr(main, "__styles__", {}))

    def text(fragment, style=""):
        if not fragment:
            return Text("")
        if isinstance(fragment, Text):
            return fragment if colorful else Text(fragment.plain)
        return Text(str(fragment), styles[style] if colorful else "")

    command = options.get("command")
    prog = getattr(main, "__prog__", command.root_name if command is not None else "")

    header = Text.assemble(
        "[ ",
        text(prog, "prog-name"),
        " - ",
        text(type(fault).code.normalize(), "code"),
        " | ",
        text(coalesce(options.get("title", Unset), type(fault).title).title(), "title"),
        " ]",
    )
    message = text(fault.message, "message")
    parts = [message]
    if hint := options.get("hint", type(fault).hint):
        parts.append(Text.assemble(text(" → ", "hint-arrow"), text(hint, "hint")))

    if fancy:
        return Panel(Group(*parts), title=header, title_align="left")
    return Group(header, *parts)


class CommandException(Exception):
    """
    base class of every drover fault.

    options (all optional)
    - command: the command being resolved when the fault happened.
    - flag: the flag declaration involved.
    - input: the flag or command name exactly as typed (without dashes).
    - text: the raw value text.
    - index: 1-based position of the offending token.
    - title/hint/colorful/fancy: rendering overrides.
    """
    code = FaultCode.INVALID_VALUE
    title = "fault"
    hint = ""

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        self.message = coalesce(message, "")
        self.options = MappingProxyType(options)
        super().__init__(self.message)

    @property
    def command(self):
        return self.options.get("command")

    @property
    def flag(self):
        return self.options.get("flag")

    @property
    def input(self):
        return self.options.get("input")

    @property
    def text(self):
        return self.options.get("text")

    @property
    def index(self):
        return self.options.get("index")

    def __str__(self):
        return self.message

    def __rich__(self):
        return _render(self, {
            "prog-name": "bold #E6E6F0",
            "code": "bold #00E5FF",
            "title": "bold #FF4DA6",
            "message": "#C8C8D0",
            "hint-arrow": "#9CE19C dim",
            "hint": "italic #9CE19C",
        })

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


# --- configuration ---
class ConfigurationError(CommandException, ValueError):
    code = FaultCode.INVALID_TYPE
    title = "bad declaration"

class InvalidFlagNameError(ConfigurationError):
    code = FaultCode.INVALID_FLAG_NAME
    title = "invalid flag name"

class InvalidShortNameError(ConfigurationError):
    code = FaultCode.INVALID_SHORT_NAME
    title = "invalid short name"
    hint = "short names are exactly one character"

class MissingNoArgDefaultError(ConfigurationError):
    code = FaultCode.MISSING_NOARG_DEFAULT
    title = "missing no-argument default"

class MissingHookActionError(ConfigurationError):
    code = FaultCode.MISSING_HOOK_ACTION
    title = "missing hook action"

class DuplicateFieldError(ConfigurationError):
    code = FaultCode.DUPLICATE_FIELD
    title = "duplicate field"

class DuplicateFlagError(ConfigurationError):
    code = FaultCode.DUPLICATE_FLAG
    title = "duplicate flag"

class InvalidTypeError(ConfigurationError):
    code = FaultCode.INVALID_TYPE
    title = "invalid type"

class MissingCommandNameError(ConfigurationError):
    code = FaultCode.MISSING_COMMAND_NAME
    title = "missing command name"

class InvalidTagOptionError(ConfigurationError):
    code = FaultCode.INVALID_TAG_OPTION
    title = "invalid tag option"

class ExpansionError(ConfigurationError):
    code = FaultCode.EXPANSION_FAILED
    title = "expansion failed"

class PopulateError(ConfigurationError):
    code = FaultCode.POPULATE_FAILED
    title = "cannot populate"

class RootOnlyError(ConfigurationError):
    code = FaultCode.ROOT_ONLY
    title = "root command only"
    hint = "parse the root of the command tree"


# --- resolution ---
class ResolutionError(CommandException, LookupError):
    code = FaultCode.UNKNOWN_COMMAND
    title = "unresolved"

class UnknownCommandError(ResolutionError):
    code = FaultCode.UNKNOWN_COMMAND
    title = "unknown command"

class SuggestionError(UnknownCommandError):
    code = FaultCode.SUGGESTED_COMMAND
    title = "unknown command"

    @property
    def suggestion(self):
        return self.options.get("suggestion")

class UnknownFlagError(ResolutionError):
    code = FaultCode.UNKNOWN_FLAG
    title = "unknown flag"


# --- arguments ---
class ArgumentError(CommandException, ValueError):
    code = FaultCode.INVALID_VALUE
    title = "bad argument"

class MissingArgumentError(ArgumentError):
    code = FaultCode.MISSING_ARGUMENT
    title = "missing argument"

class InvalidValueError(ArgumentError):
    code = FaultCode.INVALID_VALUE
    title = "invalid value"

class InvalidArgCountError(ArgumentError):
    code = FaultCode.INVALID_ARG_COUNT
    title = "invalid argument count"

class InvalidArgValueError(ArgumentError):
    code = FaultCode.INVALID_ARG_VALUE
    title = "invalid argument"


def unknown_flag(name, /, short=None, **options):
    return UnknownFlagError(
        f"unknown flag {decorate(name, short)!r}",
        input=name,
        hint="run with --help to list the available flags",
        **options,
    )


def missing_argument(name, /, short=None, **options):
    return MissingArgumentError(
        f"flag {decorate(name, short)!r} requires an argument",
        input=name,
        **options,
    )


def invalid_value(flag, text, /, cause=Unset, short=None, **options):
    """
    build the fault for text that flag's type refused; input defaults to the long name.
    """
    name = options.pop("input", flag.name)
    message = f"invalid value {text!r} for flag {decorate(name, short)!r}"
    if cause:
        message += f": {cause}"
    return InvalidValueError(message, flag=flag, text=text, input=name, **options)


class ExitSignal(Exception):
    """
    normal early exit requested by a hook flag (help, version).

    not a CommandException: callers tell it apart from real faults and map it to code.
    """

    def __init__(self, code=0, /):
        super().__init__(code)
        self.code = code


class CommandWarning(ABC, Warning):
    code = FaultCode.DEPRECATED_FLAG
    title = "warning"
    hint = ""

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        self.message = coalesce(message, "")
        self.options = MappingProxyType(options)
        super().__init__(self.message)

    def __str__(self):
        return self.message

    def __rich__(self):
        return _render(self, {
            "prog-name": "bold #E6E6F0",
            "code": "bold #FFB400",
            "title": "bold #FFC2E0",
            "message": "#D6D6DE",
            "hint-arrow": "#B8EFAF dim",
            "hint": "italic #B8EFAF",
        })

    def __trigger__(self):
        warnings.warn(self, stacklevel=len(inspect.stack()))

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class DeprecatedFlagWarning(CommandWarning):
    code = FaultCode.DEPRECATED_FLAG
    title = "deprecated flag"

class DeprecatedCommandWarning(CommandWarning):
    code = FaultCode.DEPRECATED_COMMAND
    title = "deprecated command"


def trigger(fault, target=Unset, /, **options):
    """
    render a fault (or warning) on a rich console.

    contract
    - fault must provide __rich__ and __replace__ (see the base classes).
    - options are merged into the fault before rendering (colorful, fancy, title, hint...).
    - target defaults to the module stderr console.
    """
    if not hasattr(fault, "__rich__") or not callable(getattr(fault, "__replace__", None)):
        raise TypeError("trigger() argument must have a __rich__ and __replace__ methods")
    coalesce(target, console).print(fault.__replace__(**options) if options else fault)


def getdoc(code, /):
    """
    optional documentation for a fault code, from __docs__ in __main__.
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be an fault-code")
    return getattr(__import__("__main__"), "__docs__", {}).get(code)


__all__ = (
    "FaultCode",
    "CommandException",
    "ConfigurationError",
    "InvalidFlagNameError",
    "InvalidShortNameError",
    "MissingNoArgDefaultError",
    "MissingHookActionError",
    "DuplicateFieldError",
    "DuplicateFlagError",
    "InvalidTypeError",
    "MissingCommandNameError",
    "InvalidTagOptionError",
    "ExpansionError",
    "PopulateError",
    "RootOnlyError",
    "ResolutionError",
    "UnknownCommandError",
    "SuggestionError",
    "UnknownFlagError",
    "ArgumentError",
    "MissingArgumentError",
    "InvalidValueError",
    "InvalidArgCountError",
    "InvalidArgValueError",
    "ExitSignal",
    "CommandWarning",
    "DeprecatedFlagWarning",
    "DeprecatedCommandWarning",
    "decorate",
    "trigger",
    "getdoc",
)
