r"""
Helmsman flag specifications and the flag value validator.

Overview
- FlagType: the closed set of value types a flag may declare
  (string, bool, int, float, []string, count).
- Flag: an immutable, introspectable spec for one named option with an
  optional one-character shorthand, a default, and an environment fallback.
- validate(flag, value): pure predicate; raises InvalidFlagValueError carrying
  the flag name and the offending literal.
- convert(flag, value): validate, then produce the typed value that the parser
  stores for the flag (str | bool | int | float | tuple[str, ...]).
- find(flags, name): resolve a long name, or a single-character short, within
  one flag set.
- merge(flags, globals): effective flag set, command flags shadowing global
  flags of the same name.

Validation rules
- bool   → case-insensitive "true", "false", "1", "0".
- int    → optionally signed base-10 integer: [+-]?[0-9]+
- float  → base-10 decimal or exponent notation, plus inf/infinity/nan.
- string, []string → any text.
- count  → never validated; counts are synthesized by the parser.

Names
- A flag name must be non-empty after trimming (InvalidNameError otherwise)
  and cannot start with '-' or contain '=' or whitespace, since those
  characters are part of the invocation grammar.
- A short must be exactly one character other than '-' and '='.
"""
import functools
import operator
import re
from enum import StrEnum

from rich.text import Text

from .faults import InvalidFlagValueError, InvalidNameError
from .utils import *


class FlagType(StrEnum):
    """
    Declared value type of a flag; the string value is the label used in help.
    """
    STRING = "string"
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    STRING_SLICE = "[]string"
    COUNT = "count"


class SpecType(type):
    """
    Metaclass that exposes __introspectable__ fields as read-only properties and
    provides a stable __repr__/__rich_repr__ pair for diagnostics.
    """
    __introspectable__ = ()

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
            for name in type(self).__introspectable__:
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


_BOOLEANS = {"true": True, "false": False, "1": True, "0": False}
_INTEGER = re.compile(r"[+-]?[0-9]+")
_FLOAT = re.compile(r"[+-]?(?:(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|inf(?:inity)?|nan)", re.IGNORECASE)


def validate(flag, value, /):
    """
    Check that a raw string is acceptable for the flag's declared type.

    Returns None on success; raises InvalidFlagValueError otherwise. The error
    carries `flag` (the flag name) and `value` (the offending literal).
    """
    match flag.type:
        case FlagType.BOOL:
            ok = value.lower() in _BOOLEANS
        case FlagType.INT:
            ok = _INTEGER.fullmatch(value) is not None
        case FlagType.FLOAT:
            ok = _FLOAT.fullmatch(value) is not None
        case _:
            ok = True
    if not ok:
        raise InvalidFlagValueError(
            "flag --%s: expected %s, got %r" % (flag.name, flag.type, value),
            flag=flag.name,
            value=value,
        )


def convert(flag, value, /):
    """
    Validate a raw string and return the typed value stored for the flag.

    - bool → True/False
    - int  → int
    - float → float
    - []string → tuple of comma-separated elements (order preserved)
    - count → int increment; must be an integer (counts given inline,
      through the environment, or as a default). This is stricter than
      plain count flags need: a non-integer raises InvalidFlagValueError
      instead of silently counting as zero.
    - string → the text unchanged
    """
    validate(flag, value)
    match flag.type:
        case FlagType.BOOL:
            return _BOOLEANS[value.lower()]
        case FlagType.INT:
            return int(value)
        case FlagType.FLOAT:
            return float(value)
        case FlagType.STRING_SLICE:
            return tuple(value.split(","))
        case FlagType.COUNT:
            if _INTEGER.fullmatch(value) is None:
                raise InvalidFlagValueError(
                    "flag --%s: expected count, got %r" % (flag.name, value),
                    flag=flag.name,
                    value=value,
                )
            return int(value)
    return value


class Flag(metaclass=SpecType):
    """
    Named, typed command-line option specification.

    A Flag is immutable once built; its fields are exposed as read-only
    properties. Commands own an ordered list of flags; at most one flag per
    command carries a given name, and at most one carries a given short.

    Fields
    - name: long identifier, used as --name (or -name) and as the key of the
      parsed values.
    - short: optional single character, used as -x.
    - type: FlagType (or its string label).
    - required: the flag must be present after CLI/environment/default resolution.
    - default: string literal adopted when the flag is absent from both the
      command line and the environment. The empty string means "no default".
    - env: optional environment variable consulted when the flag is absent
      from the command line.
    - descr: short description for help and completion scripts.
    """
    __introspectable__ = (
        "name",
        "short",
        "type",
        "required",
        "default",
        "env",
        "descr",
    )

    def __new__(
            cls,
            name,
            /,
            short=Unset,
            type=FlagType.STRING,
            required=False,
            default="",
            env=Unset,
            descr=Unset,
    ):
        if not isinstance(name, str):
            raise TypeError(f"{cls.__typename__} 'name' must be a string")
        elif not (name := name.strip()):
            raise InvalidNameError(f"{cls.__typename__} name cannot be empty")
        elif name.startswith("-") or "=" in name or re.search(r"\s", name):
            raise ValueError(f"{cls.__typename__} name {name!r} cannot start with '-' or contain '=' or spaces")

        if not isinstance(short, str | Unset):
            raise TypeError(f"{cls.__typename__} 'short' must be a string")
        elif isinstance(short, str) and (len(short) != 1 or short in "-= "):
            raise ValueError(f"{cls.__typename__} 'short' must be a single character other than '-' and '='")

        try:
            type = FlagType(type)
        except ValueError:
            raise ValueError(f"{cls.__typename__} 'type' must be one of %s" % ", ".join(map(repr, map(str, FlagType)))) from None

        if not isinstance(default, str):
            raise TypeError(f"{cls.__typename__} 'default' must be a string")

        if not isinstance(env, str | Unset):
            raise TypeError(f"{cls.__typename__} 'env' must be a string")
        elif isinstance(env, str) and not (env := env.strip()):
            raise ValueError(f"{cls.__typename__} 'env' cannot be empty")

        if not isinstance(descr, str | Text | Unset):
            raise TypeError(f"{cls.__typename__} 'descr' must be a string")

        self = super().__new__(cls)
        self._name = name
        self._short = coalesce(short)
        self._type = type
        self._required = bool(required)
        self._default = default
        self._env = coalesce(env)
        self._descr = coalesce(descr, "")

        # validated once, at declaration
        if default:
            convert(self, default)
        return self

    @property
    def label(self):
        """
        Help label: "-x, --name" when a short exists, "--name" otherwise.
        """
        if self.short:
            return f"-{self.short}, --{self.name}"
        return f"--{self.name}"

    @property
    def options(self):
        """
        Completion candidates for this flag: long form, then short form if any.
        """
        return ("--" + self.name,) + (("-" + self.short,) if self.short else ())


def find(flags, name, /):
    """
    Resolve `name` against a flag sequence by long name or, when `name` is a
    single character, by short. Returns the Flag or None.
    """
    for flag in flags:
        if flag.name == name:
            return flag
        if flag.short and len(name) == 1 and flag.short == name:
            return flag
    return None


def merge(flags, globals=(), /):
    """
    Return the effective flag set: `flags` followed by every global flag whose
    name is not already declared in `flags` (command flags win ties).
    """
    merged = list(flags)
    names = {flag.name for flag in merged}
    for flag in globals:
        if flag.name not in names:
            merged.append(flag)
            names.add(flag.name)
    return tuple(merged)


def check(flags, /, owner="command"):
    """
    Reject duplicate names or shorts within one flag set (ValueError).
    Returns the flags as a tuple.
    """
    names = set()
    shorts = set()
    for flag in flags:
        if not isinstance(flag, Flag):
            raise TypeError(f"{owner} flags must be flag instances")
        if flag.name in names:
            raise ValueError(f"{owner} flag name {flag.name!r} is already in use")
        if flag.short and flag.short in shorts:
            raise ValueError(f"{owner} flag short {flag.short!r} is already in use")
        names.add(flag.name)
        if flag.short:
            shorts.add(flag.short)
    return tuple(flags)


__all__ = (
    "FlagType",
    "Flag",
    "validate",
    "convert",
    "find",
    "merge",
    "check",
)

# Not part of the public API.
del SpecType
