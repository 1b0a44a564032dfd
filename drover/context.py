"""
Drover execution context.

The context travels with one parse/execution: it names the root and the command
being resolved, owns the Vars table and the output consoles, expands defaults and
decides which faults may be tolerated.
"""
import os
import re
from enum import Enum

from rich.console import Console

from .faults import *
from .flags import Vars
from .utils import *
from .values import render

_VARIABLE = re.compile(r"\$(?:(\$)|\{([^}]*)\}|(\w+))")


class OnErr(Enum):
    """
    command error policy.

    - CONTINUE: render the fault, stop scanning and keep what was resolved so far.
    - PANIC: let the fault propagate untouched out of invoke().
    - ERROR: render the fault and report a failing exit code.
    """
    CONTINUE = "continue"
    PANIC = "panic"
    ERROR = "error"


class Context:
    """
    state shared by the parser, hook actions and command handlers.

    Parameters
    - root: root command of the tree (the resolution cursor starts there).
    - vars: variable table, a fresh Vars by default.
    - stdout/stderr: rich consoles for output and diagnostics.
    - environ: mapping used by expand(), os.environ by default.
    - tolerate: optional (command, fault) -> bool override of the tolerance policy.
    """

    def __init__(self, root=None, /, *, vars=Unset, stdout=Unset, stderr=Unset, environ=Unset, tolerate=Unset):
        self.root = root
        self.command = root
        self.args = []
        self.vars = vars if vars is not Unset else Vars()
        self.stdout = stdout if stdout is not Unset else Console()
        self.stderr = stderr if stderr is not Unset else Console(stderr=True)
        self.environ = coalesce(environ, os.environ)
        self._tolerate = coalesce(tolerate)

    def __repr__(self):
        command = self.command.name if self.command is not None else None
        return f"context(command={command!r}, args={self.args!r}, vars={sorted(self.vars)!r})"

    def get(self, name, default=None, /):
        """
        native value of a flag in this context's Vars.
        """
        return self.vars.value(name, default)

    def expand(self, raw, /):
        """
        expand a flag default into literal text.

        - non-string defaults are rendered first (true/false, 1h0m0s, iso timestamps...);
        - $NAME and ${NAME} are replaced from environ, "$$" yields "$";
        - a leading "~" is expanded to the home directory.

        Raises
        - ExpansionError: a referenced variable is not defined.
        """
        text = render(raw)

        def substitute(match):
            if match.group(1):
                return "$"
            name = match.group(2) if match.group(2) is not None else match.group(3)
            try:
                return self.environ[name]
            except KeyError:
                raise ExpansionError(
                    f"undefined variable {name!r} in default {text!r}",
                    text=text,
                    command=self.command,
                ) from None

        text = _VARIABLE.sub(substitute, text)
        if text == "~" or text.startswith("~/"):
            text = os.path.expanduser(text)
        return text

    def tolerate(self, command, fault, /):
        """
        decide whether the parser may stop scanning instead of raising fault.
        """
        if self._tolerate is not None:
            return bool(self._tolerate(command, fault))
        if command is None or command.on_err is not OnErr.CONTINUE or isinstance(fault, ExitSignal):
            return False
        trigger(fault, self.stderr, colorful=command.colorful, fancy=command.fancy)
        return True

    def handle(self, fault, /):
        """
        turn an escaped fault into an exit code, rendering it on stderr.

        the exit signal maps to its own code; commands with the PANIC policy re-raise.
        """
        if isinstance(fault, ExitSignal):
            return fault.code
        command = fault.command or self.command
        if command is not None and command.on_err is OnErr.PANIC:
            raise fault
        options = {} if command is None else {"colorful": command.colorful, "fancy": command.fancy}
        trigger(fault.__replace__(command=command), self.stderr, **options)
        return 1


__all__ = (
    "OnErr",
    "Context",
)
