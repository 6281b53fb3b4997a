"""
Helmsman application: registration, dispatch and help.

Application ties the pieces together:
- it owns the top-level command list and the global flags;
- finalize() performs the one-time initialization (builtin "help" and
  "completion" commands) and freezes the top-level list;
- run(argv) resolves the command path, honours the help short-circuit, parses
  flags, checks positional arity and dispatches to the callback;
- completion(shell) synthesizes a completion script for the same tree;
- help and command listings are rendered with rich.

Runtime options
- allow_unknown: undeclared flags are passed through as raw strings.
- shell: faults are printed (rich, stderr) and the process exits with status 1
  instead of raising.
- fancy/colorful: panel chrome and colors for help and faults.
- output: file-like sink for help and completion scripts (default: stdout).
"""
import logging
import shlex
import sys
from collections.abc import Iterable

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .commands import Command, Invocation, command
from .completion import Shell, generate
from .faults import CommandException, CommandNotFoundError, DuplicateCommandError, trigger
from .flags import check
from .parser import parse
from .routing import HELP_TOKENS, lookup, resolve
from .utils import *

logger = logging.getLogger(__name__)


class Application:
    """
    Top-level CLI application.

    Parameters
    - name: program name (used in help headers and completion scripts).
    - descr: short description shown in the command listing.
    - globals: flags available to every command (command flags shadow them).
    - allow_unknown, shell, fancy, colorful, output: see module docstring.
    """

    def __init__(
            self,
            name,
            /,
            descr=Unset,
            globals=(),
            *,
            allow_unknown=False,
            shell=False,
            fancy=False,
            colorful=False,
            output=Unset,
    ):
        if not isinstance(name, str) or not name.strip():
            raise ValueError("application name must be a non-empty string")
        self._name = name.strip()
        self._descr = coalesce(descr, "")
        self._globals = check(list(globals), "application")
        self._commands = []
        self._finalized = False
        self.allow_unknown = bool(allow_unknown)
        self.shell = bool(shell)
        self.fancy = bool(fancy)
        self.colorful = bool(colorful)
        self.console = Console(file=coalesce(output, sys.stdout), highlight=False, no_color=not self.colorful)

    def __repr__(self):
        return f"application(name={self._name!r}, commands={[command.name for command in self._commands]!r})"

    @property
    def name(self):
        return self._name

    @property
    def descr(self):
        return self._descr

    @property
    def globals(self):
        return self._globals

    @property
    def commands(self):
        return tuple(self._commands)

    # ── registration ────────────────────────────────────────────────────

    def add(self, command, /):
        """
        Register a top-level command.

        Raises
        - TypeError when `command` is not a Command or is already attached to a parent.
        - DuplicateCommandError when the name or an alias is already taken.
        - RuntimeError once the application has been finalized.
        """
        if self._finalized:
            raise RuntimeError("application %r is finalized; commands cannot be added" % self._name)
        if not isinstance(command, Command):
            raise TypeError("add() argument must be a command")
        if command.parent:
            raise TypeError("add() argument must be a top-level command")
        for name in command.names:
            if lookup(self._commands, name) is not None:
                raise DuplicateCommandError("command name %r is already in use" % name, command=name)
        self._commands.append(command)
        return command

    def command(self, source=Unset, /, *args, **kwargs):
        """
        Create and register a top-level command (direct call or decorator).
        """
        if source is not Unset:
            return self.add(command(source, *args, **kwargs))
        decorator = command(Unset, *args, **kwargs)
        return rename(lambda source: self.add(decorator(source)), "command")

    def group(self, name, /, **kwargs):
        """
        Create and register a callback-less top-level command.
        """
        return self.add(Command(Unset, name=name, **kwargs))

    def finalize(self):
        """
        One-time initialization: append the builtin "help" and "completion"
        commands (unless the application declares its own) and freeze the
        top-level command list. Idempotent.
        """
        if self._finalized:
            return
        if lookup(self._commands, "help") is None:
            self.add(Command(self._help, name="help", descr="Show help for a command.", usage="help [command]"))
        if lookup(self._commands, "completion") is None:
            self.add(Command(
                self._completion,
                name="completion",
                descr="Generate shell completion script.",
                usage="completion <%s>" % "|".join(Shell),
                maxargs=1,
            ))
        self._finalized = True

    # ── builtins ────────────────────────────────────────────────────────

    def _help(self, invocation):
        if not invocation.args:
            self.render_list()
            return
        target = lookup(self._commands, name := invocation.args[0])
        if target is None:
            raise CommandNotFoundError("command %r not found" % name, command=name)
        for token in invocation.args[1:]:
            if (child := target.find(token)) is None:
                break
            target = child
        self.render_help(target)

    def _completion(self, invocation):
        if not invocation.args:
            self.console.print(Text("Usage: completion <%s>" % "|".join(Shell)))
            return
        self.completion(invocation.args[0], file=self.console.file)

    # ── execution ───────────────────────────────────────────────────────

    def completion(self, shell, /, file=Unset):
        """
        Return the completion script for `shell` ("bash", "zsh", "fish",
        "powershell"); when `file` is given the script is also written to it.

        Raises UnsupportedShellError for any other identifier.
        """
        self.finalize()
        script = generate(shell, self._commands, prog=self._name, globals=self._globals)
        if file is not Unset:
            file.write(script)
        return script

    def dispatch(self, tokens, /):
        """
        Resolve, parse and execute `tokens` (program name excluded). Faults are
        raised; see run() for the shell-aware wrapper.
        """
        self.finalize()
        tokens = list(tokens)

        if not tokens or tokens[0] in HELP_TOKENS:
            self.render_list()
            return None

        route = resolve(self._commands, tokens)
        if route.helping or route.command.callback is None:
            self.render_help(route.command)
            return None

        args, values = parse(
            route.command,
            route.tokens,
            globals=self._globals,
            allow_unknown=self.allow_unknown,
        )
        route.command.check_args(args)
        logger.debug("dispatching %s with args=%r", route.command.canonical, args)
        return route.command(Invocation(route.command, args, values, self.console))

    def run(self, argv=Unset, /):
        """
        Execute the application.

        - argv Unset: sys.argv[1:]
        - argv str: split shell-style with shlex
        - argv iterable of str: used as-is

        Returns the callback's result (None when help was rendered). Faults are
        raised, or printed followed by exit status 1 when the application runs
        in shell mode.
        """
        if argv is Unset:
            tokens = sys.argv[1:]
        elif isinstance(argv, str):
            tokens = shlex.split(argv)
        elif isinstance(argv, Iterable):
            tokens = list(argv)
            if not all(isinstance(token, str) for token in tokens):
                raise TypeError("run() argument must be a string or an iterable of strings")
        else:
            raise TypeError("run() argument must be a string or an iterable of strings")

        try:
            return self.dispatch(tokens)
        except CommandException as fault:
            trigger(fault, prog=self._name, shell=self.shell, fancy=self.fancy, colorful=self.colorful)

    # ── rendering ───────────────────────────────────────────────────────

    def _styled(self, fragment, style):
        return Text(fragment, style if self.colorful else "")

    def _flag_table(self, flags):
        table = Table(box=None, show_header=False, padding=(0, 2, 0, 2))
        table.add_column(no_wrap=True)
        table.add_column(no_wrap=True)
        table.add_column()
        for flag in flags:
            notes = []
            if flag.required:
                notes.append("(required)")
            if flag.env:
                notes.append("[env: %s]" % flag.env)
            if flag.default:
                notes.append("[default: %s]" % flag.default)
            table.add_row(
                self._styled(flag.label, "bold cyan"),
                self._styled("<%s>" % flag.type, "dim"),
                Text(" ".join(filter(None, (str(flag.descr), *notes)))),
            )
        return table

    def _command_table(self, commands):
        table = Table(box=None, show_header=False, padding=(0, 2, 0, 2))
        table.add_column(no_wrap=True)
        table.add_column()
        for command in commands:
            table.add_row(self._styled(command.name, "bold green"), Text(command.descr))
        return table

    def _emit(self, title, renderables):
        if self.fancy:
            self.console.print(Panel(Group(*renderables), title=title, title_align="left"))
        else:
            self.console.print(Group(title, *renderables))

    def render_list(self):
        """
        Render the top-level command listing (and global flags).
        """
        self.finalize()
        header = Text.assemble("Welcome to ", self._styled(self._name, "bold"), "!")
        if self._descr:
            header.append(" " + self._descr)
        renderables = [
            Text("Type 'help <command>' to get help with any command."),
            Text(""),
            self._command_table(self._commands),
        ]
        if self._globals:
            renderables += [Text(""), self._styled("Global Flags:", "bold"), self._flag_table(self._globals)]
        self._emit(header, renderables)

    def render_help(self, command, /):
        """
        Render detailed help for one command.
        """
        route = " ".join(step.name for step in command.path)
        header = Text.assemble(self._styled(route, "bold"), " - " if command.descr else "", command.descr)
        renderables = []
        if command.aliases:
            renderables.append(Text("Aliases: " + ", ".join(command.aliases)))
        renderables.append(Text("Usage: %s %s" % (self._name, command.usage or route + (" <command>" if command.children else "") + " [flags]")))
        if command.children:
            renderables += [self._styled("Commands:", "bold"), self._command_table(command.children)]
        if command.flags:
            renderables += [self._styled("Flags:", "bold"), self._flag_table(command.flags)]
        if self._globals:
            renderables += [self._styled("Global Flags:", "bold"), self._flag_table(self._globals)]
        if command.example:
            renderables += [self._styled("Example:", "bold"), Text(command.example)]
        self._emit(header, renderables)


__all__ = (
    "Application",
)
