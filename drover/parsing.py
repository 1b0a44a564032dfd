"""
Drover token parser.

parse() walks the argument vector once, left to right, against a cursor command:

- bare tokens (empty, one character, or not starting with "-") resolve to a child
  command while no positional has been collected yet, otherwise become positionals;
- "--" ends scanning: every remaining token is positional;
- "--name", "--name=value": long flags, value from "=" or the next token;
- "-abc", "-fvalue", "-f=value", "-f value": short clusters.

Every flag assignment goes through Vars.set(..., explicit=True). Classification is
final; there is no backtracking.
"""
from collections import deque

from .context import Context
from .faults import *
from .faults import unknown_flag, missing_argument, invalid_value
from .utils import Unset
from .values import render


def _assign(context, command, vars, flag, name, text, index, short):
    try:
        vars.set(flag, text, True, context)
    except InvalidValueError as error:
        cause = error.__cause__ if error.__cause__ is not None else Unset
        raise invalid_value(flag, text, cause, short, input=name, index=index, command=command) from error.__cause__


def _parse_long(context, command, token, tokens, vars, index):
    name, separator, text = token[2:].partition("=")
    if (flag := command.flag(name, parents=True)) is None:
        raise unknown_flag(name, False, command=command, index=index)

    if separator:
        pass
    elif flag.noarg:
        text = render(flag.noarg_default)
    elif tokens:
        text = tokens.popleft()
    else:
        raise missing_argument(name, False, flag=flag, command=command, index=index)

    _assign(context, command, vars, flag, name, text, index, False)


def _parse_short(context, command, token, tokens, vars, index):
    cluster = token[1:]
    while cluster:
        name, cluster = cluster[0], cluster[1:]
        if (flag := command.flag(name, parents=True, short=True)) is None:
            raise unknown_flag(name, True, command=command, index=index)

        if flag.noarg:
            # "-a=value" ends the cluster, "-abc" keeps going
            if cluster.startswith("="):
                text, cluster = cluster[1:], ""
            else:
                text = render(flag.noarg_default)
            _assign(context, command, vars, flag, name, text, index, True)
            continue

        if cluster:
            text = cluster[1:] if cluster.startswith("=") else cluster
        elif tokens:
            text = tokens.popleft()
        else:
            raise missing_argument(name, True, flag=flag, command=command, index=index)
        _assign(context, command, vars, flag, name, text, index, True)
        return


def parse(context, root, args, vars=None):
    """
    resolve args against the tree rooted at root.

    Parameters
    - context: Context of this invocation (None builds a default one); its command
      attribute follows the cursor, and its tolerate() policy may stop scanning early.
    - root: root command; parsing a non-root node is refused.
    - args: iterable of tokens (without the program name).
    - vars: Vars receiving defaults and assignments (context.vars when None).

    Returns
    - (command, positionals): the resolved command and the residual positional tokens.

    Raises
    - RootOnlyError: root has a parent.
    - ConfigurationError: a default could not be expanded or parsed.
    - UnknownFlagError, MissingArgumentError, InvalidValueError: bad tokens.
    - ExitSignal: a hook flag (help, version) ended processing.
    """
    if root.parent is not None:
        raise RootOnlyError(
            f"command {root.name!r}: parse() can only be used with the root command",
            command=root,
        )
    if context is None:
        context = Context(root)
    if vars is None:
        vars = context.vars

    context.command = root
    root.populate(context, False, False, vars)

    args = list(args)
    if not args:
        return root, []

    command = root
    positionals = []
    tokens = deque(args)
    while tokens:
        token = tokens.popleft()
        index = len(args) - len(tokens)
        try:
            if len(token) <= 1 or not token.startswith("-"):
                if not positionals and (child := command.child(token)) is not None:
                    context.command = command = child
                    if child.deprecated:
                        DeprecatedCommandWarning(
                            f"command {child.name!r} is deprecated",
                            command=child,
                        ).__trigger__()
                    child.populate(context, False, False, vars)
                else:
                    positionals.append(token)
            elif token == "--":
                return command, positionals + list(tokens)
            elif token.startswith("--"):
                _parse_long(context, command, token, tokens, vars, index)
            else:
                _parse_short(context, command, token, tokens, vars, index)
        except (CommandException, ExitSignal) as fault:
            if not context.tolerate(command, fault):
                raise
            return command, positionals

    return command, positionals


__all__ = (
    "parse",
)
