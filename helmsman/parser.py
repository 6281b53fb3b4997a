"""
Helmsman argument tokenizer and parser.

parse(command, tokens, ...) consumes a raw token list against one resolved
command's effective flag set and returns (args, values):

- args: positional tokens, in order.
- values: mapping flag-name → typed value (str | bool | int | float |
  tuple[str, ...]); unknown-but-permitted flags keep their raw string.

Token grammar (left to right)
- "--"              switch the rest of the stream to positional-only (once, irreversibly).
- "---x", "----"    malformed, always InvalidFlagValueError.
- "-x", "--name"    flag reference, resolved by long name or single-character short.
- "-x=v", "--name=v" inline value; consumes exactly one token.
- anything else     positional.

Per-type consumption of a bare flag reference
- bool         peek the next token; consume it when it is true/false/1/0
               (case-insensitive), otherwise the value is True.
- count        never consumes; each occurrence adds 1. A bare token made of one
               repeated character that is the short of a count flag ("-vvv")
               adds its length in one step.
- []string     consumes the next token, comma-split, appended to earlier
               occurrences.
- other types  consume and validate the next token; a missing token is an
               InvalidFlagValueError ("flag requires a value").

After the stream: environment values, then declared defaults, fill the flags
still absent; finally every required flag must be present. Precedence is
therefore command line > environment > default.

The parser is fail-fast: the first fault is raised and nothing partial is
returned.
"""
import logging
import os

from .faults import InvalidFlagValueError, RequiredFlagError, UnknownFlagError
from .flags import FlagType, convert, find, merge
from .utils import *

logger = logging.getLogger(__name__)


def _repeated(name):
    """True when `name` has more than one character and all of them are identical."""
    return len(name) > 1 and name == name[0] * len(name)


def _store(values, flag, value):
    """
    Record a converted value, accumulating slices and counts across occurrences.
    """
    if flag.type is FlagType.STRING_SLICE:
        values[flag.name] = values.get(flag.name, ()) + value
    elif flag.type is FlagType.COUNT:
        values[flag.name] = values.get(flag.name, 0) + value
    else:
        values[flag.name] = value


def _resolve_flag(flags, tokens, index, allow_unknown):
    """
    Resolve the flag reference at tokens[index].

    returns
    - (flag, name, value, consumed): `flag` is None for a permitted unknown flag,
      in which case `name` is the stripped name and `value` the raw string;
      otherwise `value` is already converted to the flag's type.
    """
    token = tokens[index]

    if token.startswith("---"):
        raise InvalidFlagValueError(
            "malformed flag %r: too many leading dashes" % token,
            flag=token,
            value=token,
            hint="use -x or --name",
        )

    name = token.removeprefix("--") if token.startswith("--") else token.removeprefix("-")

    # inline form: --name=value / -x=value
    if "=" in name:
        name, value = name.split("=", 1)
        if (flag := find(flags, name)) is None:
            if not allow_unknown:
                raise UnknownFlagError("unknown flag --%s" % name, flag=name)
            return None, name, value, 1
        return flag, flag.name, convert(flag, value), 1

    flag = find(flags, name)

    # bundled count shorts: -vvv
    if flag is None and _repeated(name):
        bundled = find(flags, name[0])
        if bundled is not None and bundled.type is FlagType.COUNT:
            return bundled, bundled.name, len(name), 1

    if flag is None and not allow_unknown:
        raise UnknownFlagError("unknown flag --%s" % name, flag=name)

    if flag is not None and flag.type is FlagType.BOOL:
        if index + 1 < len(tokens) and tokens[index + 1].lower() in ("true", "false", "1", "0"):
            return flag, flag.name, convert(flag, tokens[index + 1]), 2
        return flag, flag.name, True, 1

    if flag is not None and flag.type is FlagType.COUNT:
        return flag, flag.name, 1, 1

    if index + 1 >= len(tokens):
        raise InvalidFlagValueError(
            "flag --%s requires a value" % name,
            flag=name,
            value="",
            hint="pass a value after the flag (for example: --%s <value>) or use --%s=<value>" % (name, name),
        )
    value = tokens[index + 1]

    if flag is None:
        return None, name, value, 2
    return flag, flag.name, convert(flag, value), 2


def parse(command, tokens, /, *, globals=(), allow_unknown=False, environ=Unset):
    """
    Parse raw tokens against a command's effective flag set.

    parameters
    - command: Command providing `.flags`.
    - tokens: sequence of raw strings (already stripped of the resolved
      command path).
    - globals: application-wide flags merged under the command's own flags.
    - allow_unknown: accept undeclared flags as raw string values instead of
      raising UnknownFlagError.
    - environ: mapping consulted for flag env fallbacks (defaults to os.environ,
      read once per call).

    returns
    - (args, values): tuple of positional strings and a dict of typed values.

    raises
    - InvalidFlagValueError, UnknownFlagError, RequiredFlagError.
    """
    flags = merge(command.flags, globals)
    environ = coalesce(environ, os.environ)
    tokens = list(tokens)

    args = []
    values = {}
    separated = False

    index = 0
    while index < len(tokens):
        token = tokens[index]

        if not separated and token == "--":
            separated = True
            index += 1
            continue

        if separated or not token.startswith("-"):
            args.append(token)
            index += 1
            continue

        flag, name, value, consumed = _resolve_flag(flags, tokens, index, allow_unknown)
        if flag is None:
            logger.debug("passing through unknown flag %r=%r", name, value)
            values[name] = value
        else:
            logger.debug("flag %r=%r from command line", name, value)
            _store(values, flag, value)
        index += consumed

    for flag in flags:
        if flag.name not in values and flag.env and flag.env in environ:
            logger.debug("flag %r from environment variable %s", flag.name, flag.env)
            values[flag.name] = convert(flag, environ[flag.env])

    for flag in flags:
        if flag.name not in values and flag.default:
            logger.debug("flag %r from default %r", flag.name, flag.default)
            values[flag.name] = convert(flag, flag.default)

    for flag in flags:
        if flag.required and flag.name not in values:
            raise RequiredFlagError(
                "required flag --%s not provided" % flag.name,
                flag=flag.name,
                hint="pass --%s%s" % (flag.name, " or set %s" % flag.env if flag.env else ""),
            )

    return tuple(args), values


__all__ = (
    "parse",
)
