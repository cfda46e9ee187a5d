"""
scriptshelf.models - Configuration Models and Name Derivation
=============================================================

This module defines the data models shared by the two scriptshelf tools:
the ML project bootstrapper and the script installer. Pydantic gives us
validated, self-documenting configuration objects that can be built from
CLI arguments, a TOML file, or an environment mapping.

Architecture Notes
------------------
    ScaffoldConfig (bootstrapper)
    ├── slug / python_version / env_name
    └── derived: package_name, kernel_name, python_constraint

    InstallerSettings (installer)
    ├── home / data_home / shell / search_path / source_dir
    └── derived: link_dir, startup_file

    EnvManager (enum)  - mamba or conda
    ShellKind (enum)   - bash, zsh, fish or anything else

Nothing in this module reads ``os.environ`` on its own. The installer
settings are built from an explicit mapping so tests can hand in a fake
home directory and search path.

Usage Example
-------------
>>> from scriptshelf.models import ScaffoldConfig
>>> config = ScaffoldConfig(slug="fraud-lab")
>>> config.package_name
'fraud_lab'
>>> config.env_name
'fraud-lab'
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from enum import Enum
from pathlib import Path

import tomlkit
from pydantic import BaseModel, Field, ValidationInfo, field_validator, model_validator


DEFAULT_SLUG = "ml-project"
DEFAULT_PYTHON_VERSION = "3.11"


# =============================================================================
# Name Derivation
# =============================================================================

def derive_package_name(slug: str) -> str:
    """
    Derive an importable package name from a project slug.

    Every hyphen becomes an underscore. Nothing else is touched: case,
    leading digits and reserved words pass through unchanged, so a
    malformed slug ends up verbatim in the generated file names.

    Examples
    --------
    >>> derive_package_name("my-cool-project")
    'my_cool_project'
    """
    return slug.replace("-", "_")


def derive_kernel_name(env_name: str) -> str:
    """Kernel-safe variant of an environment name (underscores only)."""
    return env_name.replace("-", "_")


def python_constraint(version: str) -> str:
    """
    Build the Poetry ``python`` constraint for an interpreter version.

    The upper bound bumps the last version component, so ``3.11`` gives
    ``>=3.11,<3.12``. A version whose last component is not a number
    keeps only the lower bound.

    Examples
    --------
    >>> python_constraint("3.11")
    '>=3.11,<3.12'
    >>> python_constraint("3")
    '>=3'
    """
    head, sep, last = version.rpartition(".")
    if not sep or not last.isdigit():
        return f">={version}"
    return f">={version},<{head}.{int(last) + 1}"


# =============================================================================
# Enumerations
# =============================================================================

class EnvManager(str, Enum):
    """
    Conda-compatible environment manager binaries.

    ``mamba`` is a faster drop-in for ``conda`` and is preferred when it
    is on the search path.
    """

    MAMBA = "mamba"
    CONDA = "conda"


class ShellKind(str, Enum):
    """
    Shell families with a known startup file.

    Attributes
    ----------
    BASH : str
        Uses ``~/.bashrc``.
    ZSH : str
        Uses ``~/.zprofile``, which is read for login shells and is the
        usual place for PATH setup.
    FISH : str
        Uses ``~/.config/fish/config.fish`` and fish's own syntax.
    OTHER : str
        Falls back to ``~/.profile``.
    """

    BASH = "bash"
    ZSH = "zsh"
    FISH = "fish"
    OTHER = "other"

    @classmethod
    def from_shell_path(cls, shell: str | None) -> ShellKind:
        """Classify a ``$SHELL`` value such as ``/usr/bin/zsh``."""
        name = os.path.basename(shell or "")
        try:
            return cls(name)
        except ValueError:
            return cls.OTHER

    def startup_file(self, home: Path) -> Path:
        """Path of the startup file this shell reads, under ``home``."""
        files = {
            ShellKind.BASH: home / ".bashrc",
            ShellKind.ZSH: home / ".zprofile",
            ShellKind.FISH: home / ".config" / "fish" / "config.fish",
        }
        return files.get(self, home / ".profile")

    def path_line(self, directory: Path) -> str:
        """Shell statement that prepends ``directory`` to PATH."""
        if self is ShellKind.FISH:
            return f"set -Ux PATH {directory} $PATH"
        return f'export PATH="{directory}:$PATH"'


# =============================================================================
# Bootstrapper Configuration
# =============================================================================

class ScaffoldConfig(BaseModel):
    """
    Inputs for one bootstrap run.

    Attributes
    ----------
    slug : str
        Project slug, used for the directory, the Poetry project name and
        the notebook kernel display name.

    python_version : str
        Interpreter version pinned in ``environment.yml``.

    env_name : str
        Conda environment name. Defaults to the slug.

    output_dir : Path
        Directory in which the project directory is created.

    Examples
    --------
    >>> config = ScaffoldConfig(slug="fraudlab", python_version="3.12")
    >>> config.python_constraint
    '>=3.12,<3.13'
    """

    slug: str = Field(
        default=DEFAULT_SLUG,
        min_length=1,
        description="Project slug (letters, digits, hyphens)",
    )
    python_version: str = Field(
        default=DEFAULT_PYTHON_VERSION,
        min_length=1,
        description="Python version for the Conda environment",
    )
    env_name: str = Field(
        default="",
        description="Conda environment name (defaults to the slug)",
    )
    output_dir: Path = Field(
        default_factory=Path.cwd,
        description="Directory where the project will be created",
    )

    @field_validator("slug", "python_version")
    @classmethod
    def strip_required(cls, v: str, info: ValidationInfo) -> str:
        v = v.strip()
        if not v:
            raise ValueError(f"{info.field_name} must not be blank")
        return v

    @field_validator("env_name")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        return v.strip()

    @model_validator(mode="after")
    def default_env_name(self) -> ScaffoldConfig:
        if not self.env_name:
            self.env_name = self.slug
        return self

    @property
    def package_name(self) -> str:
        return derive_package_name(self.slug)

    @property
    def kernel_name(self) -> str:
        return derive_kernel_name(self.env_name)

    @property
    def python_constraint(self) -> str:
        return python_constraint(self.python_version)

    @property
    def project_dir(self) -> Path:
        return self.output_dir / self.slug

    @property
    def src_path(self) -> Path:
        """Relative path of the generated package (``src/<package>``)."""
        return Path("src") / self.package_name

    @classmethod
    def from_toml(cls, path: Path, **overrides: object) -> ScaffoldConfig:
        """
        Load a configuration from a TOML file.

        The file may hold the keys at top level or under a
        ``[scriptshelf]`` table. Keyword overrides whose value is not
        ``None`` win over file values.

        Raises
        ------
        FileNotFoundError
            If the file does not exist.
        ValidationError
            If a value is invalid.
        """
        with path.open("r", encoding="utf-8") as f:
            doc = tomlkit.load(f).unwrap()

        data = dict(doc.get("scriptshelf", doc))
        data.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**data)


# =============================================================================
# Installer Configuration
# =============================================================================

class InstallerSettings(BaseModel):
    """
    Where the installer links scripts and which startup file it edits.

    Build it with :meth:`from_env` from an explicit environment mapping.

    Attributes
    ----------
    home : Path
        User home directory.

    data_home : Path
        XDG data directory; the link directory is ``data_home/scripts``.

    shell : ShellKind
        Shell family of the caller, picks the startup file and syntax.

    search_path : list[Path]
        Entries of the caller's PATH.

    source_dir : Path
        Fallback directory searched for scripts given by bare name.
    """

    home: Path
    data_home: Path
    shell: ShellKind = ShellKind.OTHER
    search_path: list[Path] = Field(default_factory=list)
    source_dir: Path = Field(default_factory=lambda: Path.cwd() / "src")

    @property
    def link_dir(self) -> Path:
        return self.data_home / "scripts"

    @property
    def startup_file(self) -> Path:
        return self.shell.startup_file(self.home)

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str],
        *,
        source_dir: Path | None = None,
    ) -> InstallerSettings:
        """
        Build settings from an environment mapping.

        ``XDG_DATA_HOME`` unset or empty falls back to ``~/.local/share``.

        Examples
        --------
        >>> s = InstallerSettings.from_env({"HOME": "/home/ada"})
        >>> s.link_dir
        PosixPath('/home/ada/.local/share/scripts')
        """
        home = Path(environ.get("HOME") or Path.home())
        data_home = environ.get("XDG_DATA_HOME") or str(home / ".local" / "share")
        search_path = [
            Path(entry)
            for entry in environ.get("PATH", "").split(os.pathsep)
            if entry
        ]

        settings: dict[str, object] = {
            "home": home,
            "data_home": Path(data_home),
            "shell": ShellKind.from_shell_path(environ.get("SHELL")),
            "search_path": search_path,
        }
        if source_dir is not None:
            settings["source_dir"] = source_dir
        return cls(**settings)
