"""
Subcommand path resolution.

resolve(commands, tokens) walks the command tree following positional tokens
(by name or alias) and returns the deepest matching command together with the
tokens left for the parser.

Rules
- The first token must name a top-level command (or one of its aliases);
  otherwise CommandNotFoundError.
- Descent continues while the current command has subcommands and tokens
  remain. A flag-like token (leading '-') stops descent; an unmatched token also
  stops it and is left in place as a positional for the current command (not
  an error).
- Help short-circuit: when "--help" or "-h" appears among the remaining tokens
  before a bare "--", Route.helping is True and the caller renders help for
  the resolved command instead of running it. Tokens after "--" are user data
  and never trigger help.
"""
import logging
from typing import NamedTuple

from .faults import CommandNotFoundError

logger = logging.getLogger(__name__)

HELP_TOKENS = ("--help", "-h")


class Route(NamedTuple):
    """
    Result of resolution: target command, remaining tokens, help request.
    """
    command: object
    tokens: tuple
    helping: bool


def lookup(commands, token, /):
    """
    Find `token` among `commands` by exact name or alias; None when absent.
    """
    for command in commands:
        if command.name == token or token in command.aliases:
            return command
    return None


def wants_help(tokens, /):
    """
    True when a help token appears before the first bare "--".
    """
    for token in tokens:
        if token == "--":
            return False
        if token in HELP_TOKENS:
            return True
    return False


def resolve(commands, tokens, /):
    """
    Resolve the deepest command selected by `tokens`.

    parameters
    - commands: the application's top-level commands.
    - tokens: raw argument tokens (program name excluded).

    returns
    - Route(command, tokens, helping)

    raises
    - CommandNotFoundError when the first token matches no top-level command.
    """
    tokens = list(tokens)
    if not tokens:
        raise CommandNotFoundError("no command given", command="")

    command = lookup(commands, name := tokens[0])
    if command is None:
        raise CommandNotFoundError("command %r not found" % name, command=name)

    index = 1
    while command.children and index < len(tokens):
        token = tokens[index]
        if token.startswith("-"):
            break
        if (child := command.find(token)) is None:
            logger.debug("token %r does not match a subcommand of %r", token, command.name)
            break
        command = child
        index += 1

    remaining = tuple(tokens[index:])
    logger.debug("resolved %s with %d remaining token(s)", command.canonical, len(remaining))
    return Route(command, remaining, wants_help(remaining))


__all__ = (
    "Route",
    "lookup",
    "wants_help",
    "resolve",
)
