from __future__ import annotations

from typing import Final

DEFAULT_CATEGORY: Final = "other"

CATEGORY_COMMANDS: Final[dict[str, tuple[str, ...]]] = {
    "git": ("git", "gh"),
    "docker": ("docker", "docker-compose", "podman"),
    "package": (
        "npm",
        "yarn",
        "pnpm",
        "cargo",
        "pip",
        "pip3",
        "uv",
        "gem",
        "bundle",
        "apt",
        "apt-get",
        "brew",
        "yum",
        "dnf",
        "pacman",
    ),
    "file": (
        "ls",
        "cd",
        "mkdir",
        "rm",
        "rmdir",
        "cp",
        "mv",
        "cat",
        "less",
        "more",
        "head",
        "tail",
        "touch",
        "find",
        "grep",
        "awk",
        "sed",
    ),
    "network": (
        "curl",
        "wget",
        "ping",
        "ssh",
        "scp",
        "rsync",
        "nc",
        "netcat",
        "telnet",
        "ftp",
        "sftp",
    ),
    "build": ("make", "cmake", "ninja", "bazel", "gradle", "mvn", "ant"),
    "database": ("psql", "mysql", "sqlite3", "mongo", "redis-cli", "mongosh"),
    "kubernetes": ("kubectl", "k9s", "helm", "minikube", "kind"),
    "cloud": ("aws", "gcloud", "az", "terraform", "terragrunt", "pulumi"),
    "editor": ("vim", "nvim", "nano", "emacs", "code", "subl"),
    "system": (
        "sudo",
        "systemctl",
        "service",
        "journalctl",
        "top",
        "htop",
        "ps",
        "kill",
        "killall",
        "df",
        "du",
        "free",
        "uptime",
    ),
    "vcs": ("svn", "hg", "bzr"),
}


class Categorizer:
    """Maps a command to a label by its first word (``/usr/bin/git`` -> ``git``)."""

    def __init__(self, rules: dict[str, tuple[str, ...]] | None = None):
        self.rules: dict[str, str] = {}
        for category, names in (rules or CATEGORY_COMMANDS).items():
            for name in names:
                self.rules[name] = category

    def categorize(self, command: str) -> str:
        parts = command.split(maxsplit=1)
        if not parts:
            return DEFAULT_CATEGORY
        name = parts[0].rsplit("/", 1)[-1]
        return self.rules.get(name, DEFAULT_CATEGORY)
