"""
Helmsman command layer: the declarative command tree.

What this module provides
- Command: one node of the command tree. It carries a name, aliases, an
  ordered list of Flag specs, ordered subcommands, and (optionally) the
  callback executed when the node is the resolved target.
- command(...): create a Command, or return a decorator that creates one.
- Invocation: the parsed invocation handed to a callback (command, positional
  args, typed flag values) with typed accessors.

Tree rules
- Commands form a strict ownership tree: every child is attached to exactly
  one parent, and sibling names are unique (DuplicateCommandError).
- Names and aliases are non-empty (InvalidNameError); a command name doubles as
  the default derived from the callback's __name__ ("run_all" -> "run-all").
- The tree is built once and only read afterwards by the resolver, parser and
  completion synthesizer.

Quick start
    from helmsman import Application, Flag, FlagType

    app = Application("tool")

    @app.command(flags=[Flag("verbose", "v", FlagType.COUNT)])
    def db(invocation): ...

    @db.command(aliases=["m"])
    def migrate(invocation):
        invocation.console.print(invocation.args, invocation.count("verbose"))
"""
import functools
import inspect
import operator
from types import MappingProxyType

from .faults import DuplicateCommandError, InvalidArgsError, InvalidNameError
from .flags import check, find
from .utils import *


class CommandType(type):
    """
    Metaclass that publishes __introspectable__ fields as read-only properties
    and gives commands a compact, stable __repr__/__rich_repr__.

    __displayable__ (if set) narrows the fields shown by __rich_repr__; the
    parent is never displayed in full to avoid walking the tree upwards.
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": typename(name),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


def _sanitize_name(cls, name, what="name"):
    if not isinstance(name, str):
        raise TypeError(f"{cls.__typename__} {what} must be a string")
    elif not (name := name.strip()):
        raise InvalidNameError(f"{cls.__typename__} {what} cannot be empty")
    elif name.startswith("-") or any(char.isspace() for char in name):
        raise ValueError(f"{cls.__typename__} {what} {name!r} cannot start with '-' or contain spaces")
    return name


def _attach_to_parent(self, parent):
    """
    Register this command under its parent, enforcing unique sibling names.
    """
    if not parent:
        return
    if parent.find(self.name) is not None or any(parent.find(alias) for alias in self.aliases):
        raise DuplicateCommandError(
            "subcommand name %r is already in use under %r" % (self.name, parent.name),
            command=self.name,
        )
    parent._children.append(self)


class Command(metaclass=CommandType):
    """
    One node of the command tree.

    Fields (read-only properties)
    - name, aliases: the identifiers a user may type to select this node.
    - flags: ordered Flag specs owned by this node (global flags are merged
      later by the parser and the completion synthesizer).
    - descr, usage, example: help text.
    - parent, children: tree wiring.
    - minargs, maxargs, validator: positional-argument constraints checked
      after parsing (see check_args).

    A Command without a callback is a pure grouping node: when it is the final
    resolution target it renders its own help instead of executing.
    """
    __introspectable__ = (
        "name",
        "aliases",
        "flags",
        "descr",
        "usage",
        "example",
        "parent",
        "children",
        "minargs",
        "maxargs",
        "validator",
    )

    __displayable__ = (
        "name",
        "aliases",
        "flags",
        "descr",
        "children",
    )

    def __new__(
            cls,
            callback=Unset,
            /,
            parent=Unset,
            name=Unset,
            aliases=(),
            flags=(),
            descr=Unset,
            usage=Unset,
            example=Unset,
            *,
            minargs=0,
            maxargs=0,
            validator=Unset,
    ):
        """
        Construct a command node and attach it to `parent` when given.

        Raises
        - InvalidNameError for empty names/aliases.
        - DuplicateCommandError when a sibling already uses the name or an alias.
        - TypeError/ValueError for malformed metadata (non-callable callback,
          duplicate flags, negative arity, ...).
        """
        if not isinstance(parent, Command | Unset):
            raise TypeError(f"{cls.__typename__} 'parent' must be a command")
        if callback is not Unset and not callable(callback):
            raise TypeError(f"{cls.__typename__} 'callback' must be callable")

        if name is Unset:
            if callback is Unset:
                raise InvalidNameError(f"{cls.__typename__} without a callback must specify a name")
            name = callback.__name__.strip("_").replace("_", "-")
        name = _sanitize_name(cls, name)

        sanitized = []
        for alias in aliases:
            alias = _sanitize_name(cls, alias, "alias")
            if alias == name or alias in sanitized:
                raise ValueError(f"{cls.__typename__} alias {alias!r} is duplicated")
            sanitized.append(alias)

        if descr is Unset and callback is not Unset:
            descr = inspect.getdoc(callback) or Unset
        for field, value in (("descr", descr), ("usage", usage), ("example", example)):
            if not isinstance(value, str | Unset):
                raise TypeError(f"{cls.__typename__} {field!r} must be a string")

        if not isinstance(minargs, int) or not isinstance(maxargs, int) or minargs < 0 or maxargs < 0:
            raise ValueError(f"{cls.__typename__} 'minargs' and 'maxargs' must be non-negative integers")
        if maxargs and minargs > maxargs:
            raise ValueError(f"{cls.__typename__} 'minargs' cannot exceed 'maxargs'")
        if validator is not Unset and not callable(validator):
            raise TypeError(f"{cls.__typename__} 'validator' must be callable")

        self = super().__new__(cls)
        self._callback = callback
        self._name = name
        self._aliases = sanitized
        self._flags = list(check(list(flags), f"{cls.__typename__} {name!r}"))
        self._descr = coalesce(descr, "").strip()
        self._usage = coalesce(usage, "")
        self._example = coalesce(example, "")
        self._parent = coalesce(parent)
        self._children = []
        self._minargs = minargs
        self._maxargs = maxargs
        self._validator = coalesce(validator)

        _attach_to_parent(self, self.parent)
        return self

    def __call__(self, *args, **kwargs):
        """
        Forward to the callback (a grouping command returns None).
        """
        if self._callback is Unset:
            return None
        return self._callback(*args, **kwargs)

    @property
    def callback(self):
        return coalesce(self._callback)

    @property
    def path(self):
        """
        Ancestry from the top-level command down to this one, as a tuple.
        """
        path = [command := self]
        while command.parent:
            path.append(command := command.parent)
        return tuple(reversed(path))

    @property
    def canonical(self):
        """
        Canonical Path: alias-independent key such as "ROOT/db/migrate/up".
        """
        return "/".join(("ROOT", *(step.name for step in self.path)))

    @property
    def names(self):
        """
        Every identifier selecting this command: the name followed by its aliases.
        """
        return (self.name, *self.aliases)

    def find(self, token, /):
        """
        Return the direct child named `token` (by name or alias), or None.
        """
        for child in self._children:
            if child.name == token or token in child.aliases:
                return child
        return None

    def flag(self, name, /):
        """
        Return this command's own flag `name` (long name or short), or None.
        """
        return find(self._flags, name)

    def command(self, source=Unset, /, *args, **kwargs):
        """
        Create a subcommand under this command (direct call or decorator).
        """
        return command(source, self, *args, **kwargs)

    def group(self, name, /, **kwargs):
        """
        Create a callback-less subcommand (a grouping node) under this command.
        """
        return Command(Unset, self, name, **kwargs)

    def check_args(self, args, /):
        """
        Enforce positional-argument constraints on the parsed args.

        - validator, when set, takes precedence: it receives the args tuple and
          may raise InvalidArgsError; ValueError/TypeError are wrapped into it.
        - otherwise minargs/maxargs apply (0 means unbounded).
        """
        if self.validator:
            try:
                self.validator(args)
            except InvalidArgsError:
                raise
            except (ValueError, TypeError) as exception:
                raise InvalidArgsError(
                    "invalid arguments for %r: %s" % (self.name, exception),
                    command=self.name,
                ) from exception
            return
        if self.minargs and len(args) < self.minargs:
            raise InvalidArgsError(
                "%r requires at least %d argument(s), got %d" % (self.name, self.minargs, len(args)),
                command=self.name,
            )
        if self.maxargs and len(args) > self.maxargs:
            raise InvalidArgsError(
                "%r accepts at most %d argument(s), got %d" % (self.name, self.maxargs, len(args)),
                command=self.name,
            )


class Invocation:
    """
    Validated invocation handed to a command callback.

    - command: the resolved Command.
    - args: positional arguments (tuple of str).
    - values: read-only mapping flag-name → typed value.
    - console: the application's rich Console (output sink).

    Typed accessors return the zero value of their type when the flag is
    absent: string → "", bool → False, int → 0, float → 0.0, strings → (),
    count → 0.
    """
    __slots__ = ("command", "args", "values", "console")

    def __init__(self, command, args, values, console):
        self.command = command
        self.args = tuple(args)
        self.values = MappingProxyType(dict(values))
        self.console = console

    def __getitem__(self, name):
        return self.values[name]

    def __contains__(self, name):
        return name in self.values

    def __repr__(self):
        return f"invocation(command={self.command.name!r}, args={self.args!r}, values={dict(self.values)!r})"

    def get(self, name, default=None, /):
        return self.values.get(name, default)

    def string(self, name, /):
        return self.values.get(name, "")

    def bool(self, name, /):
        return self.values.get(name, False)

    def int(self, name, /):
        return self.values.get(name, 0)

    def float(self, name, /):
        return self.values.get(name, 0.0)

    def strings(self, name, /):
        return self.values.get(name, ())

    def count(self, name, /):
        return self.values.get(name, 0)


def command(source=Unset, /, *args, **kwargs):
    """
    Create a Command or return a decorator to build it later.

    Invocation modes
    - Direct:     cmd = command(func, parent, name="x", ...)
    - Decorator:  @command(name="x", flags=[...])
                  def func(invocation): ...

    Parameters are forwarded to Command (parent, name, aliases, flags, descr,
    usage, example, minargs, maxargs, validator).
    """
    @rename("command")
    def wrapper(source, /):
        if not callable(source):
            raise TypeError("@command() must be applied to a callable")
        return Command(source, *args, **kwargs)

    return wrapper(source) if source is not Unset else wrapper


def group(name, /, **kwargs):
    """
    Build a callback-less command (a pure grouping node) named `name`.

    Parameters after the name are forwarded to Command (aliases, flags, descr,
    usage, example, ...); pass parent=... to attach it.
    """
    return Command(Unset, name=name, **kwargs)


__all__ = (
    "Command",
    "Invocation",
    "command",
    "group",
)

# Not part of the public API.
del CommandType
