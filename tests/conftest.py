"""
pytest configuration and shared fixtures for scriptshelf tests.

Fixtures
--------
fake_runner : FakeRunner
    Command runner that records invocations instead of executing them.

scaffold_config : ScaffoldConfig
    Config for a hyphenated slug rooted in a temporary directory.

home : Path
    Fake home directory for installer tests.

settings : InstallerSettings
    Installer settings pointing at the fake home, bash shell.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from scriptshelf.models import InstallerSettings, ScaffoldConfig
from scriptshelf.runner import CommandResult


class FakeRunner:
    """
    Recording stand-in for :class:`scriptshelf.runner.SubprocessRunner`.

    Parameters
    ----------
    available : set[str]
        Executable names that ``which`` reports as present.

    responder : callable, optional
        Maps an argument list to ``(returncode, stdout)``. Defaults to
        success with empty output.
    """

    def __init__(
        self,
        available: set[str] | None = None,
        responder: Callable[[list[str]], tuple[int, str]] | None = None,
    ) -> None:
        self.available = available if available is not None else {"git"}
        self.responder = responder
        self.calls: list[list[str]] = []
        self.cwds: list[Path | None] = []

    def run(self, args: list[str], *, cwd: Path | None = None) -> CommandResult:
        self.calls.append(list(args))
        self.cwds.append(cwd)
        returncode, stdout = (0, "")
        if self.responder is not None:
            returncode, stdout = self.responder(list(args))
        return CommandResult(tuple(args), returncode, stdout, "")

    def which(self, name: str) -> str | None:
        return f"/usr/bin/{name}" if name in self.available else None

    def commands_starting_with(self, *prefix: str) -> list[list[str]]:
        return [call for call in self.calls if call[: len(prefix)] == list(prefix)]


def fail_when(*needles: str, returncode: int = 1) -> Callable[[list[str]], tuple[int, str]]:
    """Responder failing any command that contains all of ``needles``."""

    def respond(args: list[str]) -> tuple[int, str]:
        if all(needle in args for needle in needles):
            return returncode, ""
        return 0, ""

    return respond


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def scaffold_config(tmp_path: Path) -> ScaffoldConfig:
    return ScaffoldConfig(
        slug="fraud-lab",
        python_version="3.11",
        output_dir=tmp_path,
    )


@pytest.fixture
def home(tmp_path: Path) -> Path:
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    return home_dir


@pytest.fixture
def source_dir(tmp_path: Path) -> Path:
    """A source directory holding one script, ``hello.sh``."""
    src = tmp_path / "repo" / "src"
    src.mkdir(parents=True)
    script = src / "hello.sh"
    script.write_text("#!/bin/sh\necho hello\n", encoding="utf-8")
    return src


@pytest.fixture
def settings(home: Path, source_dir: Path) -> InstallerSettings:
    return InstallerSettings.from_env(
        {"HOME": str(home), "SHELL": "/bin/bash", "PATH": "/usr/bin:/bin"},
        source_dir=source_dir,
    )


# =============================================================================
# pytest Configuration
# =============================================================================

def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers used in the test suite."""
    config.addinivalue_line(
        "markers", "integration: marks tests requiring external tools"
    )
