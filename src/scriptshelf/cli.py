"""
scriptshelf.cli - Command Line Interface
========================================

Typer application exposing the two scriptshelf tools.

Architecture
------------
    app (main entry point)
    ├── bootstrap  - Scaffold a Conda + Poetry ML project
    └── install    - Link a script into the user scripts directory

Usage Examples
--------------
    $ scriptshelf bootstrap fraudlab 3.11 fraudlab
    $ scriptshelf bootstrap --interactive
    $ scriptshelf install myscript.sh
    $ scriptshelf install -u myscript.sh
    $ scriptshelf install -U

Exit Codes
----------
0 on success, 1 for misuse, conflicts and missing files. When a
mandatory external command fails the CLI exits with that command's
status.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Annotated

import questionary
import typer
from rich import print as rprint
from rich.console import Console
from rich.panel import Panel

from scriptshelf import __version__
from scriptshelf.generator import create_project
from scriptshelf.installer import install_script, uninstall_all, uninstall_script
from scriptshelf.models import (
    DEFAULT_PYTHON_VERSION,
    DEFAULT_SLUG,
    InstallerSettings,
    ScaffoldConfig,
)
from scriptshelf.runner import CommandError


# =============================================================================
# CLI Application Setup
# =============================================================================

app = typer.Typer(
    name="scriptshelf",
    help="Personal script shelf: ML project bootstrapper and script linker.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

console = Console()


def version_callback(value: bool) -> None:
    if value:
        console.print(Panel(
            f"[bold green]scriptshelf[/] version [cyan]{__version__}[/]\n\n"
            f"[dim]Conda + Poetry ML bootstrapper and script linker[/]",
            border_style="green",
        ))
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """
    [bold]scriptshelf[/] - personal script shelf.

    [bold]bootstrap[/] scaffolds a Conda + Poetry ML project,
    [bold]install[/] links scripts into ~/.local/share/scripts.
    """


# =============================================================================
# Interactive Prompts
# =============================================================================

def _ask(question: questionary.Question) -> str:
    answer = question.ask()
    if answer is None:
        raise typer.Abort()
    return answer


def prompt_scaffold_values(
    slug: str | None,
    python_version: str | None,
    env_name: str | None,
) -> tuple[str, str, str]:
    """Ask for slug, Python version and environment name."""
    slug = _ask(questionary.text("Project slug:", default=slug or DEFAULT_SLUG))
    python_version = _ask(
        questionary.text("Python version:", default=python_version or DEFAULT_PYTHON_VERSION)
    )
    env_name = _ask(questionary.text("Conda environment name:", default=env_name or slug))
    return slug, python_version, env_name


# =============================================================================
# Bootstrap Command
# =============================================================================

@app.command()
def bootstrap(
    project_slug: Annotated[
        str | None,
        typer.Argument(help="Project slug", show_default=DEFAULT_SLUG),
    ] = None,
    python_version: Annotated[
        str | None,
        typer.Argument(help="Python version", show_default=DEFAULT_PYTHON_VERSION),
    ] = None,
    env_name: Annotated[
        str | None,
        typer.Argument(help="Conda environment name", show_default="project slug"),
    ] = None,
    output_dir: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            help="Directory to create the project in (default: current directory)",
        ),
    ] = None,
    config_file: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="TOML file with slug, python_version, env_name, output_dir",
        ),
    ] = None,
    no_git: Annotated[
        bool,
        typer.Option("--no-git", help="Skip git init and the initial commit"),
    ] = False,
    no_env: Annotated[
        bool,
        typer.Option("--no-env", help="Only generate files; skip environment and tooling"),
    ] = False,
    with_deps: Annotated[
        bool,
        typer.Option("--with-deps", help="Also poetry add the core and dev dependencies"),
    ] = False,
    interactive: Annotated[
        bool,
        typer.Option("--interactive", "-i", help="Prompt for slug, version and env name"),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Only print errors"),
    ] = False,
) -> None:
    """
    Scaffold a Conda + Poetry ML project.

    Creates the directory tree and files, creates or updates the Conda
    environment (mamba when available), installs the Poetry project,
    pre-commit hooks and a Jupyter kernel, and makes an initial commit.

    [bold]Examples:[/]

        scriptshelf bootstrap fraudlab 3.11 fraudlab
        scriptshelf bootstrap my-lab --no-env
    """
    if interactive:
        project_slug, python_version, env_name = prompt_scaffold_values(
            project_slug, python_version, env_name
        )

    values = {
        "slug": project_slug,
        "python_version": python_version,
        "env_name": env_name,
        "output_dir": output_dir,
    }

    try:
        if config_file is not None:
            config = ScaffoldConfig.from_toml(config_file, **values)
        else:
            config = ScaffoldConfig(**{k: v for k, v in values.items() if v is not None})
    except (OSError, ValueError) as e:
        rprint(f"[red]Error:[/] {e}")
        raise typer.Exit(1)

    try:
        create_project(
            config,
            verbose=not quiet,
            init_git=not no_git,
            setup_env=not no_env,
            add_deps=with_deps,
        )
    except CommandError as e:
        rprint(f"[red]Error:[/] {e}")
        raise typer.Exit(e.returncode)
    except OSError as e:
        rprint(f"[red]Error:[/] {e}")
        raise typer.Exit(1)


# =============================================================================
# Install Command
# =============================================================================

@app.command()
def install(
    script: Annotated[
        str | None,
        typer.Argument(help="Script to link (path, or name inside the source directory)"),
    ] = None,
    uninstall: Annotated[
        bool,
        typer.Option("--uninstall", "-u", help="Remove the link for SCRIPT"),
    ] = False,
    uninstall_everything: Annotated[
        bool,
        typer.Option("--uninstall-all", "-U", help="Remove the whole scripts directory"),
    ] = False,
    source_dir: Annotated[
        Path | None,
        typer.Option(
            "--source-dir",
            "-s",
            help="Where bare script names are looked up (default: ./src)",
        ),
    ] = None,
) -> None:
    """
    Link a script into $XDG_DATA_HOME/scripts and keep it on PATH.

    [bold]Examples:[/]

        scriptshelf install myscript.sh
        scriptshelf install -u myscript.sh
        scriptshelf install -U
    """
    settings = InstallerSettings.from_env(os.environ, source_dir=source_dir)

    if uninstall_everything:
        uninstall_all(settings)
        return

    if not script:
        rprint("[red]Error:[/] No script specified.")
        raise typer.Exit(1)

    try:
        if uninstall:
            uninstall_script(script, settings)
        else:
            install_script(script, settings)
    except (FileNotFoundError, FileExistsError) as e:
        rprint(f"[red]Error:[/] {e}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
