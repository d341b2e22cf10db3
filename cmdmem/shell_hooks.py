from __future__ import annotations

import os
from enum import Enum
from pathlib import Path


class ShellType(str, Enum):
    ZSH = "zsh"
    BASH = "bash"


ZSH_HOOK = """\
# cmdmem: shell command history capture (zsh)
zmodload zsh/datetime 2>/dev/null
zmodload zsh/mathfunc 2>/dev/null

_cmdmem_preexec() {
    _CMDMEM_START=$EPOCHREALTIME
}

_cmdmem_precmd() {
    local exit_code=$?
    [[ -z "$_CMDMEM_START" ]] && return
    local cmd=$(fc -ln -1 | sed 's/^[[:space:]]*//')
    local duration=$(( int((EPOCHREALTIME - _CMDMEM_START) * 1000) ))
    unset _CMDMEM_START
    ( cmdmem capture --exit-code="$exit_code" --duration="$duration" -- "$cmd" >/dev/null 2>&1 & )
}

autoload -Uz add-zsh-hook
add-zsh-hook preexec _cmdmem_preexec
add-zsh-hook precmd _cmdmem_precmd
"""

BASH_HOOK = """\
# cmdmem: shell command history capture (bash >= 5)
_cmdmem_preexec() {
    [[ -n "$COMP_LINE" ]] && return
    [[ -z "$_CMDMEM_AT_PROMPT" ]] && return
    unset _CMDMEM_AT_PROMPT
    _CMDMEM_START=${EPOCHREALTIME/[.,]/}
}

_cmdmem_precmd() {
    local exit_code=$_CMDMEM_STATUS
    local start=$_CMDMEM_START
    unset _CMDMEM_START
    _CMDMEM_AT_PROMPT=1
    [[ -z "$start" ]] && return
    local entry histnum cmd
    entry=$(HISTTIMEFORMAT= history 1)
    histnum=$(sed 's/^[[:space:]]*\\([0-9]*\\).*/\\1/' <<<"$entry")
    [[ "$histnum" == "$_CMDMEM_LAST_HISTNUM" ]] && return
    _CMDMEM_LAST_HISTNUM=$histnum
    cmd=$(sed 's/^[[:space:]]*[0-9]*[*]\\{0,1\\}[[:space:]]*//' <<<"$entry")
    local now=${EPOCHREALTIME/[.,]/}
    local duration=$(( (now - start) / 1000 ))
    ( cmdmem capture --exit-code="$exit_code" --duration="$duration" -- "$cmd" >/dev/null 2>&1 & )
}

_CMDMEM_AT_PROMPT=1
trap '_cmdmem_preexec' DEBUG
PROMPT_COMMAND="_CMDMEM_STATUS=\\$?${PROMPT_COMMAND:+; $PROMPT_COMMAND}; _cmdmem_precmd"
"""

RC_FILES = {
    ShellType.ZSH: "~/.zshrc",
    ShellType.BASH: "~/.bashrc",
}


def parse_shell(name: str) -> ShellType:
    try:
        return ShellType(name.strip().lower())
    except ValueError:
        supported = ", ".join(shell.value for shell in ShellType)
        raise ValueError(f"Unsupported shell {name!r}. Supported shells: {supported}") from None


def detect_shell(shell_env: str | None = None) -> ShellType:
    value = shell_env if shell_env is not None else os.environ.get("SHELL", "")
    if not value:
        raise ValueError("Could not detect shell: $SHELL is not set")
    return parse_shell(Path(value).name)


def generate_hook(shell: ShellType) -> str:
    if shell is ShellType.ZSH:
        return ZSH_HOOK
    return BASH_HOOK


def installation_instructions(shell: ShellType) -> str:
    rc_file = RC_FILES[shell]
    return (
        f"Add cmdmem to {shell.value}:\n"
        f"  cmdmem init --shell {shell.value} >> {rc_file}\n"
        f"Then restart your shell or run: source {rc_file}"
    )
