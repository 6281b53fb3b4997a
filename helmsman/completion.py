"""
Shell completion synthesis.

generate(shell, commands, prog=..., globals=...) walks the command tree and
emits a completion script for one of four shells. Generation is a pure text
transformation; writing the script anywhere is the caller's business.

Shared substrate
- walk(commands, globals) yields one Node per tree location in pre-order,
  starting with a synthetic ROOT node for the top-level command list. Each node
  carries its Canonical Path ("ROOT/db/migrate"), its effective flags (own flags
  merged with global flags, own flags winning), its direct children, and the
  candidate words those children answer to (name + aliases).

Backends (matching strategy of the generated script)
- bash:        flat table + resolver. One function walks COMP_WORDS, mapping
               every "parent/alias" to the canonical child path, then completes
               from the options table of the deepest resolved path.
- zsh:         nested function graph. One function per node; non-leaf nodes
               describe their children and route into a child's function by
               name or alias; leaves complete flags only.
- fish:        chained conditions. Each entry is gated by one
               "__fish_seen_subcommand_from <name> <aliases...>" per ancestor.
- powershell:  flat table + resolver, registered with Register-ArgumentCompleter.

Every script lists, for every node, all children (names and aliases) and all
effective flags (long form, plus short form when declared).
"""
import re
import shlex
from enum import StrEnum
from typing import NamedTuple

from .faults import UnsupportedShellError
from .flags import merge


class Shell(StrEnum):
    """
    Supported completion dialects; identifiers are case-sensitive.
    """
    BASH = "bash"
    ZSH = "zsh"
    FISH = "fish"
    POWERSHELL = "powershell"


class Node(NamedTuple):
    """
    One tree location as seen by the completion backends.
    """
    path: str
    command: object
    flags: tuple
    children: tuple

    @property
    def names(self):
        """
        Candidate words for the children of this node: each name followed by its aliases.
        """
        return tuple(name for child in self.children for name in child.names)

    @property
    def options(self):
        """
        Flag candidates: "--name" then "-x" (when declared) for each effective flag.
        """
        return tuple(option for flag in self.flags for option in flag.options)


def walk(commands, globals=(), /):
    """
    Pre-order traversal of the command tree, starting with the ROOT node.
    """
    yield Node("ROOT", None, tuple(globals), tuple(commands))

    def descend(commands, prefix):
        for command in commands:
            path = prefix + "/" + command.name
            yield Node(path, command, merge(command.flags, globals), command.children)
            yield from descend(command.children, path)

    yield from descend(commands, "ROOT")


def _identifier(text):
    """Shell-safe function-name fragment."""
    return re.sub(r"[^\w-]", "_", text)


# ── Bash ─────────────────────────────────────────────────────────────────
#
#   COMP_WORDS: [tool, db, m, --ve]
#   resolver:   ROOT -> ROOT/db -> ROOT/db/migrate   (m is an alias of migrate)
#   complete:   options of ROOT/db/migrate matching "--ve"

def _bash(nodes, prog):
    function = "_%s_completions" % _identifier(prog)
    lines = [
        "%s() {" % function,
        '    local cur="${COMP_WORDS[COMP_CWORD]}"',
        "    COMPREPLY=()",
        "",
        "    # Resolve the deepest subcommand path from COMP_WORDS.",
        '    local path="ROOT"',
        "    local i=1",
        "    while [[ $i -lt $COMP_CWORD ]]; do",
        '        case "${COMP_WORDS[$i]}" in',
        "            -*) ;;",
        "            *)",
        '                case "${path}/${COMP_WORDS[$i]}" in',
    ]
    for node in nodes:
        for child in node.children:
            canonical = node.path + "/" + child.name
            patterns = "|".join(shlex.quote(node.path + "/" + name) for name in child.names)
            lines.append("                    %s) path=%s ;;" % (patterns, shlex.quote(canonical)))
    lines += [
        "                esac",
        "                ;;",
        "        esac",
        "        ((i++))",
        "    done",
        "",
        "    # Complete based on the resolved path.",
        '    local opts=""',
        '    case "$path" in',
    ]
    for node in nodes:
        lines.append("        %s) opts=%s ;;" % (shlex.quote(node.path), shlex.quote(" ".join(node.names + node.options))))
    lines += [
        "    esac",
        '    COMPREPLY=( $(compgen -W "$opts" -- "$cur") )',
        "}",
        "",
        "complete -F %s %s" % (function, shlex.quote(prog)),
        "",
    ]
    return "\n".join(lines)


# ── Zsh ──────────────────────────────────────────────────────────────────
#
#   _tool            -> routes to _tool__db, _tool__help, ...
#   _tool__db        -> routes to _tool__db__migrate (also via its alias)
#   _tool__db__migrate -> completes flags only (leaf)

def _zsh_quote(text):
    return "'" + text.replace("'", "'\\''") + "'"


def _zsh_flag_specs(node):
    specs = []
    for flag in node.flags:
        descr = str(flag.descr).replace("[", "\\[").replace("]", "\\]")
        for option in flag.options:
            specs.append(_zsh_quote("%s[%s]" % (option, descr)))
    return specs


def _zsh(nodes, prog):
    root = "_" + _identifier(prog)
    lines = ["#compdef %s" % prog, ""]
    for node in nodes:
        function = root + "".join("__" + _identifier(step) for step in node.path.split("/")[1:])
        specs = _zsh_flag_specs(node)
        lines.append("%s() {" % function)
        if node.children:
            lines += [
                "    local line state",
                "",
                "    _arguments -C \\",
                *("        %s \\" % spec for spec in specs),
                "        '1:command:->cmds' \\",
                "        '*::arg:->args'",
                "",
                "    case $state in",
                "    cmds)",
                "        local -a commands",
                "        commands=(",
            ]
            for child in node.children:
                for name in child.names:
                    lines.append("            %s" % _zsh_quote("%s:%s" % (name.replace(":", "\\:"), child.descr)))
            lines += [
                "        )",
                "        _describe 'command' commands",
                "        ;;",
                "    args)",
                "        case ${line[1]} in",
            ]
            for child in node.children:
                lines.append("        %s) %s__%s ;;" % (
                    "|".join(map(shlex.quote, child.names)), function, _identifier(child.name)
                ))
            lines += [
                "        esac",
                "        ;;",
                "    esac",
            ]
        elif specs:
            lines.append("    _arguments \\")
            lines += ["        %s \\" % spec for spec in specs[:-1]]
            lines.append("        %s" % specs[-1])
        else:
            lines.append("    :")
        lines += ["}", ""]
    lines += [
        'if [ "$funcstack[1]" = "%s" ]; then' % root,
        '    %s "$@"' % root,
        "else",
        "    compdef %s %s" % (root, prog),
        "fi",
        "",
    ]
    return "\n".join(lines)


# ── Fish ─────────────────────────────────────────────────────────────────
#
#   db (alias d):   condition = "__fish_seen_subcommand_from db d"
#   db > migrate:   condition += "; and __fish_seen_subcommand_from migrate m"

def _fish_quote(text):
    return "'" + text.replace("\\", "\\\\").replace("'", "\\'") + "'"


def _fish(nodes, prog):
    conditions = {"ROOT": "__fish_use_subcommand"}
    lines = ["complete -c %s -f" % prog, ""]
    for node in nodes:
        condition = conditions[node.path]
        for child in node.children:
            for name in child.names:
                lines.append("complete -c %s -n %s -a %s -d %s" % (
                    prog, _fish_quote(condition), _fish_quote(name), _fish_quote(child.descr)
                ))
            seen = "__fish_seen_subcommand_from " + " ".join(child.names)
            conditions[node.path + "/" + child.name] = seen if node.path == "ROOT" else condition + "; and " + seen
        for flag in node.flags:
            short = " -s %s" % flag.short if flag.short else ""
            lines.append("complete -c %s -n %s -l %s%s -d %s" % (
                prog, _fish_quote(condition), flag.name, short, _fish_quote(str(flag.descr))
            ))
        lines.append("")
    return "\n".join(lines)


# ── PowerShell ───────────────────────────────────────────────────────────
#
#   $completions: canonical path -> candidates
#   $resolve:     "parent/alias" -> canonical child path

def _posh_quote(text):
    return "'" + text.replace("'", "''") + "'"


def _powershell(nodes, prog):
    lines = [
        "Register-ArgumentCompleter -Native -CommandName %s -ScriptBlock {" % _posh_quote(prog),
        "    param($wordToComplete, $commandAst, $cursorPosition)",
        "",
        "    $completions = @{",
    ]
    for node in nodes:
        lines.append("        %s = @(%s)" % (_posh_quote(node.path), ", ".join(map(_posh_quote, node.names + node.options))))
    lines += ["    }", "", "    $resolve = @{"]
    for node in nodes:
        for child in node.children:
            for alias in child.aliases:
                lines.append("        %s = %s" % (_posh_quote(node.path + "/" + alias), _posh_quote(node.path + "/" + child.name)))
    lines += [
        "    }",
        "",
        "    # Resolve the deepest subcommand path.",
        "    $words = @($commandAst.CommandElements | ForEach-Object { $_.ToString() })",
        "    $count = $words.Count",
        "    if ($wordToComplete -ne '') { $count-- }",
        "    $path = 'ROOT'",
        "    for ($i = 1; $i -lt $count; $i++) {",
        "        $t = $words[$i]",
        "        if ($t -notlike '-*') {",
        '            $try = "$path/$t"',
        "            if ($resolve.ContainsKey($try)) { $try = $resolve[$try] }",
        "            if ($completions.ContainsKey($try)) { $path = $try }",
        "        }",
        "    }",
        "",
        "    $completions[$path] | Where-Object { $_ -like \"$wordToComplete*\" } | ForEach-Object {",
        "        [System.Management.Automation.CompletionResult]::new($_, $_, 'ParameterValue', $_)",
        "    }",
        "}",
        "",
    ]
    return "\n".join(lines)


GENERATORS = {
    Shell.BASH: _bash,
    Shell.ZSH: _zsh,
    Shell.FISH: _fish,
    Shell.POWERSHELL: _powershell,
}


def generate(shell, commands, /, *, prog, globals=()):
    """
    Produce the completion script for `shell`.

    parameters
    - shell: one of "bash", "zsh", "fish", "powershell" (case-sensitive) or a Shell.
    - commands: the top-level commands of the application.
    - prog: program name the script registers completion for.
    - globals: flags offered at every node.

    raises
    - UnsupportedShellError naming the identifier when it is not supported.
    """
    try:
        generator = GENERATORS[Shell(shell)]
    except ValueError:
        raise UnsupportedShellError("unsupported shell %r" % shell, dialect=shell) from None
    return generator(list(walk(commands, globals)), prog)


__all__ = (
    "Shell",
    "Node",
    "walk",
    "generate",
    "GENERATORS",
)
