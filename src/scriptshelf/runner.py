"""
scriptshelf.runner - External Command Runner
============================================

Every call out to conda, mamba, poetry, git and friends goes through a
small runner interface. The real implementation wraps ``subprocess.run``
and ``shutil.which``; tests substitute a fake that records the argument
lists and returns scripted exit codes.

Commands block until they finish. There is no timeout, retry or
cancellation.
"""

from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from rich.console import Console


# Exit status reported when the executable itself cannot be found,
# matching what a POSIX shell reports.
COMMAND_NOT_FOUND = 127


@dataclass(frozen=True)
class CommandResult:
    """
    Outcome of one external command.

    Attributes
    ----------
    args : tuple[str, ...]
        The argument list that was executed.

    returncode : int
        Exit status of the process.

    stdout : str
        Captured standard output.

    stderr : str
        Captured standard error.
    """

    args: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandError(RuntimeError):
    """A mandatory external command exited with a non-zero status."""

    def __init__(self, result: CommandResult) -> None:
        self.result = result
        detail = result.stderr.strip() or result.stdout.strip()
        message = f"Command failed with exit status {result.returncode}: {' '.join(result.args)}"
        if detail:
            message = f"{message}\n{detail}"
        super().__init__(message)

    @property
    def returncode(self) -> int:
        return self.result.returncode


class CommandRunner(Protocol):
    """Narrow interface over process execution and executable lookup."""

    def run(self, args: list[str], *, cwd: Path | None = None) -> CommandResult: ...

    def which(self, name: str) -> str | None: ...


class SubprocessRunner:
    """
    Runner backed by the ``subprocess`` module.

    Parameters
    ----------
    console : Console | None
        When given, each command is echoed before it runs.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console

    def run(self, args: list[str], *, cwd: Path | None = None) -> CommandResult:
        if self.console is not None:
            self.console.print(f"  [dim]$ {' '.join(args)}[/]", highlight=False)

        try:
            proc = subprocess.run(
                args,
                cwd=cwd,
                capture_output=True,
                text=True,
                check=False,
            )
        except FileNotFoundError as e:
            return CommandResult(tuple(args), COMMAND_NOT_FOUND, "", str(e))

        return CommandResult(tuple(args), proc.returncode, proc.stdout, proc.stderr)

    def which(self, name: str) -> str | None:
        return shutil.which(name)


def check(result: CommandResult) -> CommandResult:
    """Return ``result`` unchanged, or raise CommandError if it failed."""
    if not result.ok:
        raise CommandError(result)
    return result
