r"""
Drover command tree: resolution, default population, suggestions and completion.

Overview
- Command: one node of the tree. Owns its children (ordered) and its FlagSet; refers
  to its parent through a weak reference only.
- Resolution
  • child(name): first child matching by exact name or alias.
  • lookup(*names): greedy descent, never fails (deepest node reached).
  • flag(name, parents, short): own flags first, then ancestors when allowed.
  • child_special()/flag_special(): retrieval by special marker ("hook:help"...).
- Population: populate() expands and parses defaults into Vars.
- Recovery: suggest() turns an unresolved token into a "did you mean" fault.
- Completion: comps() replays the parser leniently, then proposes flags or commands.
- Execution: command()/Command.command() build trees decorator-style; invoke() wires
  a prompt through parse, validation and the handler, mapping faults to exit codes.

Quick example:
    >>> from drover import command, invoke, FlagSet
    >>> @command(name="tool", flags=FlagSet().bool("verbose", "say more", short="v"))
    ... def tool(context, args): ...
    ...
    >>> @tool.command(aliases=("p",))
    ... def push(context, args): ...
    ...
    >>> invoke(tool, "-v push origin")
"""
import builtins
import inspect
import os
import shlex
import sys
import weakref
from collections.abc import Iterable

from rich.console import Console
from rich.table import Table
from rich.text import Text

from .context import Context, OnErr
from .faults import *
from .flags import Flag, FlagSet
from .parsing import parse
from .suggest import *
from .utils import *
from .values import Type


def _executor(callback, /):
    """
    adapt a handler to the (context, args) calling convention.

    handlers may accept (context, args), (context) or nothing at all.
    """
    try:
        parameters = inspect.signature(callback).parameters.values()
    except (TypeError, ValueError):
        return callback

    positional = [
        parameter for parameter in parameters
        if parameter.kind in (parameter.POSITIONAL_ONLY, parameter.POSITIONAL_OR_KEYWORD)
    ]
    if len(positional) >= 2 or any(parameter.kind is parameter.VAR_POSITIONAL for parameter in parameters):
        return callback

    @rename(getattr(callback, "__name__", "handler"))
    def handler(context, args, /):
        return callback(context) if positional else callback()

    return handler


def arity(minimum=0, maximum=-1, /, *values):
    """
    build a positional validator.

    Parameters
    - minimum: fewest positionals accepted.
    - maximum: most positionals accepted (negative: unbounded).
    - values: when given, every positional must be one of them.

    Raises (from the validator)
    - InvalidArgCountError, InvalidArgValueError.
    """
    if maximum >= 0 and maximum < minimum:
        raise ValueError("arity() maximum cannot be lower than minimum")

    @rename("arity")
    def validator(args, /):
        if len(args) < minimum or (maximum >= 0 and len(args) > maximum):
            if maximum < 0:
                expected = f"at least {minimum}"
            elif minimum == maximum:
                expected = f"exactly {minimum}"
            else:
                expected = f"between {minimum} and {maximum}"
            raise InvalidArgCountError(f"expected {expected} arguments, got {len(args)}")
        if values:
            for index, arg in enumerate(args, 1):
                if arg not in values:
                    raise InvalidArgValueError(
                        f"invalid argument {arg!r}",
                        text=arg,
                        index=index,
                        hint="expected one of " + ", ".join(map(repr, values)),
                    )

    return validator


def show_help(context, /):
    """
    hook action: print a compact summary of the command being resolved, then exit.
    """
    command = context.command or context.root
    console = context.stdout

    title = Text(" ".join(node.name for node in command.tree()), "bold")
    if command.usage:
        title.append(" - " + command.usage)
    console.print(title)

    if children := [child for child in command.children if not child.hidden]:
        table = Table.grid(padding=(0, 2))
        for child in children:
            table.add_row("  " + child.name, child.usage)
        console.print(Text("\ncommands", "bold"), table)

    table = Table.grid(padding=(0, 2))
    shown = set()
    for node in reversed(command.tree()):
        for flag in node.flags:
            if flag.hidden or flag.name in shown:
                continue
            shown.add(flag.name)
            names = (f"-{flag.short}, " if flag.short else "    ") + "--" + flag.name
            table.add_row("  " + names, flag.placeholder, flag.usage)
    if shown:
        console.print(Text("\nflags", "bold"), table)

    raise ExitSignal(0)


def show_version(context, /):
    """
    hook action: print "<root> <version>" using the nearest declared version, then exit.
    """
    command = context.command or context.root
    version = next((node.version for node in reversed(command.tree()) if node.version), "")
    context.stdout.print(f"{command.root_name} {version}".rstrip(), highlight=False)
    raise ExitSignal(0)


HOOKS = {
    "help": show_help,
    "version": show_version,
}


def _lenient(command, fault, /):
    return isinstance(fault, UnknownFlagError | MissingArgumentError | ExitSignal)


class Command(metaclass=Introspective):
    """
    one node of the command tree.

    Parameters
    - callback: handler run by invoke() once this command is resolved; None or Unset
      for pure grouping commands. Accepts (context, args), (context) or ().
    - parent: command owning this one; the child is appended to parent.children.
    - name: defaults to the callback name (underscores as dashes), then, for roots only,
      to the program basename. A child without a resolvable name is refused.
    - usage: one-line summary.
    - aliases: exact synonyms; suggested: extra names only used by suggest().
    - flags: FlagSet (or iterable of Flag), copied on construction.
    - args: positional validators, each called with the positional list.
    - on_err: OnErr policy, inherited from the parent (ERROR for roots).
    - help: add a --help/-h hook (default: roots only); version: add --version/-v.
    - section/hidden/deprecated/special: grouping and visibility metadata.
    - comp: completion enabled; min_dist: suggestion threshold (inherited, default 2).
    - colorful/fancy: fault rendering toggles (inherited).
    """
    __introspectable__ = (
        "name",
        "usage",
        "aliases",
        "suggested",
        "version",
        "section",
        "hidden",
        "deprecated",
        "special",
        "comp",
        "min_dist",
        "colorful",
        "fancy",
    )
    __displayable__ = ("name", "usage", "aliases", "children", "flags")

    def __init__(
            self,
            callback=Unset,
            /,
            parent=Unset,
            name=Unset,
            usage=Unset,
            *,
            aliases=(),
            suggested=(),
            flags=Unset,
            args=(),
            on_err=Unset,
            help=Unset,
            version=Unset,
            section=-1,
            hidden=False,
            deprecated=False,
            special=Unset,
            comp=True,
            min_dist=Unset,
            colorful=Unset,
            fancy=Unset,
    ):
        if callback is not Unset and callback is not None and not callable(callback):
            raise TypeError("command callback must be callable")
        if parent is not Unset and parent is not None and not isinstance(parent, Command):
            raise TypeError("command 'parent' must be a command")
        parent = coalesce(parent)

        if name is Unset and callable(callback):
            name = getattr(callback, "__name__", Unset)
            name = name.strip("_").replace("_", "-") if isinstance(name, str) else Unset
        if name is Unset or not name:
            if parent is not None:
                raise MissingCommandNameError(
                    "sub-command has no name",
                    command=parent,
                    hint="pass name= or decorate a named function",
                )
            name = os.path.basename(sys.argv[0]) if sys.argv and sys.argv[0] else "command"
        if not isinstance(name, str):
            raise TypeError("command 'name' must be a string")

        self._name = name
        self._usage = coalesce(usage, "")
        self._aliases = tuple(aliases)
        self._suggested = tuple(suggested)
        self._callback = coalesce(callback)
        self._exec = _executor(self._callback) if self._callback is not None else None
        self._args = tuple(args)
        self._version = coalesce(version, None)
        self._section = section
        self._hidden = bool(hidden)
        self._deprecated = bool(deprecated)
        self._special = coalesce(special, "")
        self._comp = bool(comp)
        self._children = []
        self._parent = None

        if parent is not None:
            if parent.child(name) is not None:
                raise ConfigurationError(
                    f"command {parent.name!r}: sub-command name {name!r} is already in use",
                    command=parent,
                )
            self._parent = weakref.ref(parent)
            parent._children.append(self)

        inherit = (lambda option, default: getattr(parent, option)) if parent is not None else (
            lambda option, default: default
        )
        self._on_err = OnErr(coalesce(on_err, inherit("on_err", OnErr.ERROR)))
        self._min_dist = coalesce(min_dist, inherit("min_dist", DEFAULT_MIN_DIST))
        self._colorful = coalesce(colorful, inherit("colorful", True))
        self._fancy = coalesce(fancy, inherit("fancy", False))

        self._flags = FlagSet(coalesce(flags, ()))
        if coalesce(help, parent is None):
            self._attach_hook("help", "h", "show help and exit")
        if self._version is not None:
            self._attach_hook("version", "v", "show version and exit")

    def _attach_hook(self, hook, short, usage, /):
        if self.flag_special("hook:" + hook) is not None or self.flag(hook) is not None:
            return
        taken = self.flag(short, short=True) is not None
        self._flags.add(Flag(
            hook,
            usage,
            Type.HOOK,
            short=Unset if taken else short,
            default=HOOKS[hook],
            special="hook:" + hook,
        ))

    @property
    def parent(self):
        return self._parent() if self._parent is not None else None

    @property
    def children(self):
        return list(self._children)

    @property
    def flags(self):
        return self._flags

    @property
    def exec(self):
        return self._exec

    @property
    def args(self):
        return self._args

    @property
    def on_err(self):
        return self._on_err

    @property
    def root(self):
        command = self
        while (parent := command.parent) is not None:
            command = parent
        return command

    @property
    def root_name(self):
        return self.root.name

    def tree(self):
        """
        nodes from the root down to this command (inclusive).
        """
        nodes = [self]
        while (parent := nodes[-1].parent) is not None:
            nodes.append(parent)
        return nodes[::-1]

    def path(self):
        """
        tree() without the root.
        """
        return self.tree()[1:]

    def child(self, name, /):
        for child in self._children:
            if child.name == name or name in child.aliases:
                return child
        return None

    def child_special(self, special, /):
        for child in self._children:
            if child.special == special:
                return child
        return None

    def lookup(self, *names):
        """
        descend greedily through names; stop at the first unresolved one.

        never fails: returns the deepest command reached (self for an empty path).
        """
        command = self
        for name in names:
            if (child := command.child(name)) is None:
                break
            command = child
        return command

    def flag(self, name, /, parents=False, short=False):
        """
        find a flag by long name/alias (short=False) or short name/one-character alias
        (short=True), in this command first and then, when parents is set, its ancestors.

        returns None when nothing matches.
        """
        for flag in self._flags:
            if flag.matches(name, short):
                return flag
        if parents and (parent := self.parent) is not None:
            return parent.flag(name, parents, short)
        return None

    def flag_special(self, special, /, parents=False):
        for flag in self._flags:
            if flag.special == special:
                return flag
        if parents and (parent := self.parent) is not None:
            return parent.flag_special(special, parents)
        return None

    def populate(self, context=None, all=False, overwrite=False, vars=None):
        """
        expand and parse this command's flag defaults into vars.

        Parameters
        - context: Context used for expansion (a default one when None).
        - all: also populate flags without a default (to their zero value).
        - overwrite: drop existing entries first, explicit ones included.
        - vars: target table (context.vars when None).

        hook flags are never populated.

        Raises
        - PopulateError: a default does not parse as its flag's type.
        - ExpansionError: a default references an undefined variable.
        """
        if context is None:
            context = Context(self.root)
        if vars is None:
            vars = context.vars

        for flag in self._flags:
            if overwrite:
                vars.pop(flag.name, None)
            if flag.type is Type.HOOK or (flag.default is None and not all):
                continue
            text = "" if flag.default is None else context.expand(flag.default)
            try:
                vars.set(flag, text, False, context)
            except InvalidValueError as error:
                raise PopulateError(
                    f"command {self.name!r}: cannot populate {flag.name} with {text!r}: {error}",
                    command=self,
                    flag=flag,
                    text=text,
                ) from error
        return vars

    def validate(self, args, /):
        """
        run the positional validators; faults are tagged with this command.
        """
        for validator in self._args:
            try:
                validator(list(args))
            except ArgumentError as error:
                raise error.__replace__(command=self) from error.__cause__

    def suggest(self, *args):
        """
        build the fault for an unresolved sub-command token (args[0]).

        returns a SuggestionError naming the first child whose name, alias or suggested
        name lies within min_dist (case-insensitive), an UnknownCommandError otherwise,
        and None when args is empty.
        """
        if not args:
            return None
        token = args[0]
        folded = token.casefold()
        for child in self._children:
            for name in (child.name, *child.aliases, *child.suggested):
                if ldist(folded, name.casefold()) <= self._min_dist:
                    return SuggestionError(
                        f"command {self.name!r}: unknown command {token!r}",
                        command=self,
                        input=token,
                        suggestion=child,
                        hint=f"did you mean {child.name!r}?",
                    )
        return UnknownCommandError(
            f"command {self.name!r}: unknown command {token!r}",
            command=self,
            input=token,
        )

    def comp_commands(self, name, /):
        """
        ranked child completions for a partial name (hidden children are skipped).
        """
        return list(rank(name, (
            (child.name, (child.name, *child.aliases), Completion(child.name, child.usage))
            for child in self._children
            if not child.hidden
        ), self._min_dist))

    def comp_flags(self, name, /, parents=True, short=False):
        """
        flag completions: "--long" names starting with name, or "-x" short forms
        (all of them when name is empty). descendants shadow same-named ancestor flags.
        """
        completions = []
        seen, taken = set(), set()
        for command in reversed(self.tree()) if parents else (self,):
            for flag in command.flags:
                if flag.name in seen:
                    continue
                seen.add(flag.name)
                if flag.hidden:
                    continue
                if short:
                    for spelling in (flag.short, *flag.aliases):
                        if spelling and len(spelling) == 1 and spelling not in taken and (
                                not name or spelling == name):
                            taken.add(spelling)
                            completions.append(Completion("-" + spelling, flag.usage))
                            break
                elif any(
                        spelling.startswith(name)
                        for spelling in (flag.name, *flag.aliases) if len(spelling) > 1
                ):
                    completions.append(Completion("--" + flag.name, flag.usage))
        return completions

    def _expects_value(self, token, /):
        if token.startswith("--"):
            flag = self.flag(token[2:], parents=True)
            return flag is not None and not flag.noarg
        for position, name in enumerate(cluster := token[1:], 1):
            if (flag := self.flag(name, parents=True, short=True)) is None:
                return False
            if not flag.noarg:
                return position == len(cluster)
        return False

    def comps(self, *args):
        """
        completion candidates for the last (possibly partial) token of args.

        the preceding tokens are parsed leniently (unknown flags, a trailing flag awaiting
        its value and early exits only stop scanning) on quiet consoles, then the last token is classified:
        - "--prefix": long flag completions;
        - "-x": short flag completions;
        - value of a preceding flag that needs one: nothing (type-specific values are
          left to the shell);
        - anything else: ranked child command completions.

        Returns
        - (completions, directive)

        Raises
        - InvalidArgCountError: args is empty.
        - any other fault from the lenient parse (invalid values, bad defaults).
        """
        if not args:
            raise InvalidArgCountError("completion needs at least one argument", command=self)

        context = Context(
            self,
            stdout=Console(quiet=True),
            stderr=Console(stderr=True, quiet=True),
            tolerate=_lenient,
        )
        context.stderr.log("completing", args)

        command, _ = parse(context, self, args[:-1], context.vars)
        if not command.comp or "--" in args[:-1]:
            return [], CompDirective.DEFAULT

        current = args[-1]
        previous = args[-2] if len(args) > 1 else ""
        if current.startswith("--"):
            return command.comp_flags(current[2:]), CompDirective.NO_FILE_COMP
        if current.startswith("-"):
            return command.comp_flags(current[1:], short=True), CompDirective.NO_FILE_COMP
        if previous.startswith("-") and "=" not in previous and command._expects_value(previous):
            return [], CompDirective.DEFAULT
        return command.comp_commands(current), CompDirective.NO_FILE_COMP

    def execute(self, context, args, /):
        """
        run the handler; a handler-less command given positionals reports the
        closest sub-command through suggest().
        """
        if self._exec is None:
            if args and self._children:
                raise self.suggest(*args)
            return None
        return self._exec(context, args)

    def command(self, source=Unset, /, *args, **kwargs):
        """
        create a sub-command of this command (see command()).
        """
        return command(source, self, *args, **kwargs)


def command(source=Unset, /, *args, **kwargs):
    """
    create a Command, or return a decorator building it from a function.

    Modes
    - command(callback, ...) / command(None, ..., name="group"): direct.
    - @command(...): decorator.
    """
    @rename("command")
    def wrapper(source, /):
        if source is not None and not builtins.callable(source):
            raise TypeError("@command() must be applied to a callable")
        return Command(source, *args, **kwargs)

    return wrapper(source) if source is not Unset else wrapper


def invoke(root, prompt=Unset, /, *, context=Unset):
    """
    run a command tree on a prompt and return the exit code.

    Parameters
    - root: root command.
    - prompt:
      • Unset: read sys.argv[1:].
      • str: split with shlex.split.
      • Iterable[str]: used as tokens.
    - context: Context to run in (a fresh one bound to root by default).

    Behavior
    - parse, validate positionals, then execute the resolved command.
    - ExitSignal yields its code; faults are rendered on context.stderr and yield 1,
      unless the resolved command's policy is OnErr.PANIC (re-raised).
    """
    if prompt is Unset:
        tokens = sys.argv[1:]
    elif isinstance(prompt, str):
        tokens = shlex.split(prompt)
    elif isinstance(prompt, Iterable):
        tokens = list(prompt)
        if not all(isinstance(token, str) for token in tokens):
            raise TypeError("invoke() prompt must be a string or an iterable of strings")
    else:
        raise TypeError("invoke() prompt must be a string or an iterable of strings")

    context = coalesce(context, None) or Context(root)
    if context.root is None:
        context.root = root

    try:
        command, args = parse(context, root, tokens, context.vars)
        context.command, context.args = command, args
        command.validate(args)
        command.execute(context, args)
    except (CommandException, ExitSignal) as fault:
        return context.handle(fault)
    return 0


__all__ = (
    "Command",
    "command",
    "invoke",
    "arity",
    "show_help",
    "show_version",
    "HOOKS",
)
