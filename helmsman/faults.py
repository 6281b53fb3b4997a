"""
Helmsman faults and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every failure the
  parser, resolver, completion synthesizer and registration layer can report.
- CommandException: base type that carries a message plus context options and
  knows how to render itself with rich (header, message, hint).
- trigger(): central entry point to surface a fault, raising it outside shell
  mode and printing it (then exiting) inside shell mode.
- getdoc(): optional description lookup for a code from the host application,
  rendered under the hint when present.

Every fault is an ordinary, expected outcome of malformed input or a
malformed tree. Nothing here is fatal to the interpreter; callers decide
whether to report to the end user or to escalate.

Integration
- The parser and resolver raise the concrete subclasses directly (fail-fast).
- Application.run() catches CommandException and routes it through trigger()
  with its runtime options (shell/fancy/colorful).
"""
import sys
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes (stable identifiers).

    grouping (by high-level domain)
    - registration (2110x): DUPLICATE_COMMAND, INVALID_NAME
    - routing      (2111x): COMMAND_NOT_FOUND
    - flags        (2112x): REQUIRED_FLAG, INVALID_FLAG_VALUE, UNKNOWN_FLAG
    - positionals  (2113x): INVALID_ARGS
    - completion   (2114x): UNSUPPORTED_SHELL

    normalize() allows host remapping to custom labels while keeping the
    numeric codes stable.
    """
    # --- registration errors ---
    DUPLICATE_COMMAND  = 21101
    INVALID_NAME       = 21102

    # --- routing errors ---
    COMMAND_NOT_FOUND  = 21111

    # --- flag errors ---
    REQUIRED_FLAG      = 21121
    INVALID_FLAG_VALUE = 21122
    UNKNOWN_FLAG       = 21123

    # --- positional errors ---
    INVALID_ARGS       = 21131

    # --- completion errors ---
    UNSUPPORTED_SHELL  = 21141

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__ to
        override numeric ids with friendlier labels.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class CommandException(Exception):
    """
    Base class of every helmsman fault.

    - message: one lowercased sentence, readable on its own (str(fault)).
    - options: read-only context (flag, value, command, dialect, hint, ...).
      Every option is also reachable as an attribute (fault.flag, fault.value).
    - code/title: class-level identity, machine-matchable via isinstance or code.
    """
    code = Unset
    title = "command error"
    hint = ""

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message or self.title)
        self.message = message or self.title
        self.options = MappingProxyType(options)

    def __getattr__(self, name):
        try:
            return self.__dict__["options"][name]
        except KeyError:
            raise AttributeError(name) from None

    def __str__(self):
        return self.message

    def __rich__(self):
        main = __import__("__main__")
        colorful = self.options.get("colorful", False)
        fancy = self.options.get("fancy", False)

        styles = defaultdict(str, {
            "prog-name": "bold #E6E6F0",
            "code": "bold #00E5FF",
            "error-title": "bold #FF4DA6",
            "error-message": "#C8C8D0",
            "hint-arrow": "#9CE19C dim",
            "hint": "italic #9CE19C",
            "docs": "underline #00E5FF dim",
        } | getattr(main, "__styles__", {}))

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not colorful:
                return Text(str(fragment))
            return Text(str(fragment), styles[style])

        prog = text(getattr(main, "__prog__", self.options.get("prog", "")), "prog-name")
        code = self.code.normalize() if isinstance(self.code, FaultCode) else ""
        docs = self.options.get("docs", getdoc(self.code) if isinstance(self.code, FaultCode) else None)
        header = Text.assemble(
            "[ ",
            prog,
            " — " if prog else "",
            text(code, "code"),
            " | ",
            text(self.title.title(), "error-title"),
            " ]"
        )
        message = text(self.message, "error-message")
        hint = Text.assemble(text(" → ", "hint-arrow"), text(self.options.get("hint", self.hint), "hint"))
        body = [message, hint] + ([text(docs, "docs")] if docs else [])

        if fancy:
            return Panel(Group(*body), title=header, title_align="left")
        return Group(header, *body)

    def __trigger__(self):
        if not self.options.get("shell", False):
            raise self from self.__cause__
        console.print(self)
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        fault = type(self)(self.message, **{**self.options, **overrides})
        fault.__cause__ = self.__cause__
        return fault


class DuplicateCommandError(CommandException):
    code = FaultCode.DUPLICATE_COMMAND
    title = "duplicate command"
    hint = "rename one of the commands; sibling names must be unique"


class InvalidNameError(CommandException):
    code = FaultCode.INVALID_NAME
    title = "invalid name"
    hint = "give every command and flag a non-empty name"


class RequiredFlagError(CommandException):
    code = FaultCode.REQUIRED_FLAG
    title = "required flag"
    hint = "pass the flag, set its environment variable, or declare a default"


class InvalidFlagValueError(CommandException):
    code = FaultCode.INVALID_FLAG_VALUE
    title = "invalid flag value"
    hint = "check the flag type with --help"


class UnknownFlagError(CommandException):
    code = FaultCode.UNKNOWN_FLAG
    title = "unknown flag"
    hint = "run with --help to see the accepted flags"


class CommandNotFoundError(CommandException):
    code = FaultCode.COMMAND_NOT_FOUND
    title = "command not found"
    hint = "run 'help' to list the available commands"


class UnsupportedShellError(CommandException):
    code = FaultCode.UNSUPPORTED_SHELL
    title = "unsupported shell"
    hint = "use one of: bash, zsh, fish, powershell"


class InvalidArgsError(CommandException):
    code = FaultCode.INVALID_ARGS
    title = "invalid arguments"
    hint = "run with --help to see the expected usage"


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ (see CommandException).
    - options are merged into a copy of the fault via __replace__ before triggering.
    - in shell mode the fault is printed with rich and the process exits with
      status 1; otherwise the fault is raised.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    fault.__replace__(**options).__trigger__()


def getdoc(code, /):
    """
    optional documentation fetch for a fault code.

    the host application may expose a __docs__ mapping in __main__ keyed by
    FaultCode. returns None when not found.
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    return getattr(__import__("__main__"), "__docs__", {}).get(code)


__all__ = (
    "FaultCode",
    "CommandException",
    "DuplicateCommandError",
    "InvalidNameError",
    "RequiredFlagError",
    "InvalidFlagValueError",
    "UnknownFlagError",
    "CommandNotFoundError",
    "UnsupportedShellError",
    "InvalidArgsError",
    "trigger",
    "getdoc",
)
