"""
scriptshelf.generator - ML Project Bootstrapper
===============================================

This module generates a Conda + Poetry machine-learning project skeleton
and then drives the external tools that bring it to life.

Architecture
------------
The bootstrapper follows a fixed pipeline:

    1. Pick the environment manager (mamba if present, else conda)
    2. Create the directory tree
    3. Initialize git (optional)
    4. Render templates with Jinja2 and write them to disk
    5. Create or update the Conda environment        (fatal on failure)
    6. Install the Poetry project into it            (fatal on failure)
    7. Install pre-commit hooks                      (warning on failure)
    8. Register a Jupyter kernel                     (warning on failure)
    9. Make the initial git commit                   (warning on failure)

Generated files are always overwritten, so re-running against an
existing project refreshes every template. Rendering is deterministic:
identical inputs produce byte-identical files.

All external commands go through a :class:`~scriptshelf.runner.CommandRunner`
so tests can swap in a recording fake.

Usage Example
-------------
>>> from scriptshelf.generator import create_project
>>> from scriptshelf.models import ScaffoldConfig
>>> result = create_project(ScaffoldConfig(slug="fraudlab"))
>>> result.project_path
PosixPath('/current/dir/fraudlab')
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import tomlkit
from jinja2 import Environment, PackageLoader, StrictUndefined, select_autoescape
from rich.console import Console
from rich.panel import Panel
from tomlkit.exceptions import TOMLKitError

from scriptshelf.models import EnvManager, ScaffoldConfig
from scriptshelf.runner import CommandResult, CommandRunner, SubprocessRunner, check


# =============================================================================
# Module-Level Configuration
# =============================================================================

console = Console()

PACKAGE_SUBDIRS = ("data", "features", "models", "utils", "viz")
TOP_LEVEL_DIRS = ("tests", "notebooks", "scripts", "configs", "docs")
DATA_SUBDIRS = ("raw", "interim", "processed", "external")

# template_name -> output path pattern
TEMPLATE_MAPPINGS: dict[str, str] = {
    "gitignore.j2": ".gitignore",
    "README.md.j2": "README.md",
    "environment.yml.j2": "environment.yml",
    "pyproject.toml.j2": "pyproject.toml",
    "pre-commit-config.yaml.j2": ".pre-commit-config.yaml",
    "Makefile.j2": "Makefile",
    "package_init.py.j2": "{src_path}/__init__.py",
    "cli.py.j2": "{src_path}/cli.py",
    "test_smoke.py.j2": "tests/test_smoke.py",
    "notebooks_README.md.j2": "notebooks/README.md",
    "env.example.j2": ".env.example",
}

CORE_DEPENDENCIES = [
    "numpy",
    "pandas",
    "scikit-learn",
    "scipy",
    "matplotlib",
    "rich",
    "python-dotenv",
    "pydantic",
    "typer",
    "hydra-core",
]

DEV_DEPENDENCIES = [
    "ruff",
    "mypy",
    "pytest",
    "pytest-cov",
    "pre-commit",
    "ipykernel",
]

COMMIT_MESSAGE = "chore: initial scaffold (conda+poetry ML project)"


# =============================================================================
# Result Data Classes
# =============================================================================


@dataclass
class ScaffoldResult:
    """
    Outcome of a bootstrap run.

    Attributes
    ----------
    success : bool
        Whether every mandatory step completed.

    project_path : Path
        Absolute path of the project directory.

    env_manager : EnvManager
        The manager binary used for environment commands.

    files_created : list[Path]
        Every file written by the run.

    commands : list[CommandResult]
        External commands executed, in order.

    warnings : list[str]
        Optional steps that were skipped or failed.

    validation_passed : bool
        Whether post-render validation found no issues.
    """

    success: bool
    project_path: Path
    env_manager: EnvManager = EnvManager.CONDA
    files_created: list[Path] = field(default_factory=list)
    commands: list[CommandResult] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    validation_passed: bool = False


# =============================================================================
# Environment Manager Selection
# =============================================================================


def select_env_manager(runner: CommandRunner) -> EnvManager:
    """Prefer mamba when it is on the search path, otherwise use conda."""
    if runner.which(EnvManager.MAMBA.value):
        return EnvManager.MAMBA
    return EnvManager.CONDA


# =============================================================================
# Directory Structure Creation
# =============================================================================


def create_directory_structure(config: ScaffoldConfig) -> list[Path]:
    """
    Create the project directory tree.

    Existing directories are reused. Any failure to create a directory
    propagates and aborts the run; nothing already created is removed.

    Layout::

        <slug>/
        ├── src/<package>/{data,features,models,utils,viz}/
        ├── tests/ notebooks/ scripts/ configs/ docs/
        └── data/{raw,interim,processed,external}/

    Returns
    -------
    list[Path]
        Every directory in the tree, project root first.

    Raises
    ------
    OSError
        If a directory cannot be created.
    """
    project_dir = config.project_dir
    src_path = project_dir / config.src_path

    directories = [project_dir, src_path]
    directories += [src_path / name for name in PACKAGE_SUBDIRS]
    directories += [project_dir / name for name in TOP_LEVEL_DIRS]
    directories += [project_dir / "data" / name for name in DATA_SUBDIRS]

    for directory in directories:
        directory.mkdir(parents=True, exist_ok=True)

    return directories


# =============================================================================
# Template Rendering
# =============================================================================


def create_jinja_env() -> Environment:
    """
    Create the Jinja2 environment for the scaffold templates.

    Autoescaping is off because the output is code and config, not HTML.
    Undefined variables raise instead of rendering as empty strings.
    """
    return Environment(
        loader=PackageLoader("scriptshelf", "templates"),
        autoescape=select_autoescape([]),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )


def build_context(config: ScaffoldConfig, env_manager: EnvManager) -> dict[str, Any]:
    """Placeholder values shared by every template."""
    return {
        "slug": config.slug,
        "package_name": config.package_name,
        "python_version": config.python_version,
        "python_constraint": config.python_constraint,
        "env_name": config.env_name,
        "kernel_name": config.kernel_name,
        "env_manager": env_manager.value,
        "core_dependencies": CORE_DEPENDENCIES,
        "dev_dependencies": DEV_DEPENDENCIES,
    }


def render_template(env: Environment, template_name: str, context: dict[str, Any]) -> str:
    """
    Render one template.

    Raises
    ------
    jinja2.TemplateNotFound
        If the template file doesn't exist.
    jinja2.UndefinedError
        If the template uses a name missing from ``context``.
    """
    return env.get_template(template_name).render(**context)


def get_output_path(template_path: str, config: ScaffoldConfig) -> Path:
    """
    Resolve an output path pattern relative to the project root.

    Examples
    --------
    >>> get_output_path("{src_path}/cli.py", ScaffoldConfig(slug="my-lab"))
    PosixPath('src/my_lab/cli.py')
    """
    return Path(template_path.format(src_path=config.src_path.as_posix()))


def render_all_templates(
    config: ScaffoldConfig,
    env_manager: EnvManager,
) -> dict[Path, str]:
    """
    Render the full, fixed template set.

    Returns
    -------
    dict[Path, str]
        Output path (relative to the project root) to rendered content,
        in ``TEMPLATE_MAPPINGS`` order.
    """
    env = create_jinja_env()
    context = build_context(config, env_manager)

    return {
        get_output_path(output_pattern, config): render_template(env, template_name, context)
        for template_name, output_pattern in TEMPLATE_MAPPINGS.items()
    }


# =============================================================================
# File Writing
# =============================================================================


def write_files(project_dir: Path, files: dict[Path, str]) -> list[Path]:
    """
    Write rendered files below ``project_dir``, overwriting existing ones.

    Returns
    -------
    list[Path]
        Absolute paths of the written files.
    """
    written: list[Path] = []

    for relative_path, content in files.items():
        full_path = project_dir / relative_path
        full_path.parent.mkdir(parents=True, exist_ok=True)
        full_path.write_text(content, encoding="utf-8")
        written.append(full_path)

    return written


def create_data_marker(config: ScaffoldConfig) -> Path:
    """Create ``data/.gitkeep`` so the ignored data tree keeps a tracked file."""
    marker = config.project_dir / "data" / ".gitkeep"
    marker.touch()
    return marker


# =============================================================================
# Git
# =============================================================================


def init_git_repository(project_dir: Path, runner: CommandRunner) -> bool:
    """
    Initialize a git repository on a ``main`` branch.

    Returns False when git is not installed. Command failures are
    ignored; ``git init`` on an existing repository is harmless.
    """
    if not runner.which("git"):
        return False

    runner.run(["git", "init", "-q"], cwd=project_dir)
    runner.run(["git", "branch", "-M", "main"], cwd=project_dir)
    return True


def commit_scaffold(project_dir: Path, runner: CommandRunner) -> bool:
    """Stage everything and make the initial commit. True on success."""
    added = runner.run(["git", "add", "."], cwd=project_dir)
    if not added.ok:
        return False

    committed = runner.run(["git", "commit", "-m", COMMIT_MESSAGE], cwd=project_dir)
    return committed.ok


# =============================================================================
# Environment and Tooling
# =============================================================================


def env_exists(runner: CommandRunner, env_manager: EnvManager, env_name: str) -> bool:
    """
    Check whether ``env_name`` shows up in ``<manager> env list``.

    A failing listing counts as "not present", so the caller falls back
    to ``env create``.
    """
    listing = runner.run([env_manager.value, "env", "list"])
    if not listing.ok:
        return False

    for line in listing.stdout.splitlines():
        fields = line.split()
        if fields and not fields[0].startswith("#") and fields[0] == env_name:
            return True
    return False


def in_env(config: ScaffoldConfig, env_manager: EnvManager, *args: str) -> list[str]:
    """Argument list that runs ``args`` inside the project environment."""
    return [env_manager.value, "run", "-n", config.env_name, *args]


def setup_environment(
    config: ScaffoldConfig,
    env_manager: EnvManager,
    runner: CommandRunner,
) -> list[CommandResult]:
    """
    Create the Conda environment, or update it if it already exists.

    Raises
    ------
    CommandError
        If the create/update command fails.
    """
    mgr = env_manager.value
    if env_exists(runner, env_manager, config.env_name):
        args = [mgr, "env", "update", "-f", "environment.yml", "--prune"]
    else:
        args = [mgr, "env", "create", "-f", "environment.yml"]

    return [check(runner.run(args, cwd=config.project_dir))]


def install_poetry_project(
    config: ScaffoldConfig,
    env_manager: EnvManager,
    runner: CommandRunner,
    *,
    add_deps: bool = False,
) -> list[CommandResult]:
    """
    Install the (empty) Poetry project into the Conda environment.

    With ``add_deps`` the core and dev dependency lists are also added
    through ``poetry add`` so they end up in the lock file.

    Raises
    ------
    CommandError
        If any Poetry command fails.
    """
    poetry = ("python", "-m", "poetry")
    steps = [
        in_env(config, env_manager, *poetry, "config", "virtualenvs.create", "false"),
        in_env(config, env_manager, *poetry, "install", "--no-interaction", "--no-root"),
    ]
    if add_deps:
        steps.append(in_env(config, env_manager, *poetry, "add", *CORE_DEPENDENCIES))
        steps.append(in_env(config, env_manager, *poetry, "add", "-G", "dev", *DEV_DEPENDENCIES))

    return [check(runner.run(args, cwd=config.project_dir)) for args in steps]


def install_pre_commit_hooks(
    config: ScaffoldConfig,
    env_manager: EnvManager,
    runner: CommandRunner,
) -> CommandResult:
    args = in_env(config, env_manager, "python", "-m", "poetry", "run", "pre-commit", "install")
    return runner.run(args, cwd=config.project_dir)


def register_kernel(
    config: ScaffoldConfig,
    env_manager: EnvManager,
    runner: CommandRunner,
) -> CommandResult:
    args = in_env(
        config,
        env_manager,
        "python", "-m", "ipykernel", "install", "--user",
        "--name", config.kernel_name,
        "--display-name", f"{config.slug} (poetry)",
    )
    return runner.run(args, cwd=config.project_dir)


# =============================================================================
# Post-Creation Validation
# =============================================================================


def validate_project(config: ScaffoldConfig) -> tuple[bool, list[str]]:
    """
    Sanity-check the generated files.

    Checks Performed
    ----------------
    1. Every templated file exists
    2. pyproject.toml is valid TOML
    3. Generated Python files compile
    """
    issues: list[str] = []
    project_dir = config.project_dir

    for output_pattern in TEMPLATE_MAPPINGS.values():
        relative = get_output_path(output_pattern, config)
        if not (project_dir / relative).exists():
            issues.append(f"Missing file: {relative}")

    pyproject_path = project_dir / "pyproject.toml"
    if pyproject_path.exists():
        try:
            tomlkit.parse(pyproject_path.read_text(encoding="utf-8"))
        except TOMLKitError as e:
            issues.append(f"Invalid pyproject.toml: {e}")

    for py_file in sorted((project_dir / "src").rglob("*.py")) + sorted(
        (project_dir / "tests").rglob("*.py")
    ):
        try:
            compile(py_file.read_text(encoding="utf-8"), str(py_file), "exec")
        except SyntaxError as e:
            issues.append(f"Syntax error in {py_file.relative_to(project_dir)}: {e}")

    return len(issues) == 0, issues


# =============================================================================
# Main Bootstrap Function
# =============================================================================


def _report(verbose: bool, message: str) -> None:
    if verbose:
        console.print(message)


def _optional_step(
    result: ScaffoldResult,
    outcome: CommandResult,
    *,
    verbose: bool,
    done: str,
    failed: str,
) -> None:
    result.commands.append(outcome)
    if outcome.ok:
        _report(verbose, f"  [green]✓[/] {done}")
    else:
        result.warnings.append(f"{failed} (exit status {outcome.returncode})")
        _report(verbose, f"  [yellow]⚠[/] {failed}")


def create_project(
    config: ScaffoldConfig,
    *,
    runner: CommandRunner | None = None,
    verbose: bool = True,
    init_git: bool = True,
    setup_env: bool = True,
    add_deps: bool = False,
) -> ScaffoldResult:
    """
    Bootstrap a Conda + Poetry ML project.

    Parameters
    ----------
    config : ScaffoldConfig
        Slug, Python version, environment name and output directory.

    runner : CommandRunner | None
        Command runner; defaults to a :class:`SubprocessRunner`.

    verbose : bool, default=True
        Print progress to the console.

    init_git : bool, default=True
        Initialize git and make the initial commit.

    setup_env : bool, default=True
        Create the environment and run the tooling steps. When False only
        the files are generated.

    add_deps : bool, default=False
        Also ``poetry add`` the core and dev dependency lists.

    Returns
    -------
    ScaffoldResult

    Raises
    ------
    OSError
        If the directory tree cannot be created or a file cannot be written.
    CommandError
        If environment creation or the Poetry install fails. The
        partially generated project is left in place.
    """
    if runner is None:
        runner = SubprocessRunner(console if verbose else None)

    env_manager = select_env_manager(runner)
    result = ScaffoldResult(
        success=False,
        project_path=config.project_dir.resolve(),
        env_manager=env_manager,
    )

    if verbose:
        console.print()
        console.print(
            Panel(
                f"[bold blue]Scaffolding project:[/] [green]{config.slug}[/] "
                f"[dim](package: {config.package_name})[/]\n"
                f"[dim]Python: {config.python_version} | "
                f"Env: {config.env_name} | Manager: {env_manager.value}[/]",
                title="[bold]scriptshelf bootstrap[/]",
                border_style="blue",
            )
        )

    _report(verbose, "\n[bold]📁 Creating directory structure...[/]")
    create_directory_structure(config)

    git_available = False
    if init_git:
        git_available = init_git_repository(config.project_dir, runner)
        if git_available:
            _report(verbose, "  [green]✓[/] Git repository initialized")
        else:
            result.warnings.append("git not found; skipping git init")
            _report(verbose, "  [yellow]⚠[/] git not found; skipping git init")

    _report(verbose, "\n[bold]📝 Writing files...[/]")
    rendered = render_all_templates(config, env_manager)
    result.files_created.extend(write_files(config.project_dir, rendered))
    result.files_created.append(create_data_marker(config))
    for path in rendered:
        _report(verbose, f"  Created {path.as_posix()}")

    result.validation_passed, issues = validate_project(config)
    result.warnings.extend(issues)
    for issue in issues:
        _report(verbose, f"  [yellow]⚠[/] {issue}")

    if setup_env:
        _report(
            verbose,
            f"\n[bold]🐍 Creating/updating environment '{config.env_name}' "
            f"(python={config.python_version}) with {env_manager.value}...[/]",
        )
        result.commands.extend(setup_environment(config, env_manager, runner))

        _report(verbose, "\n[bold]📦 Installing Poetry project into the environment...[/]")
        result.commands.extend(
            install_poetry_project(config, env_manager, runner, add_deps=add_deps)
        )

        _report(verbose, "\n[bold]🔧 Installing pre-commit hooks...[/]")
        _optional_step(
            result,
            install_pre_commit_hooks(config, env_manager, runner),
            verbose=verbose,
            done="pre-commit hooks installed",
            failed="pre-commit hook installation failed",
        )

        _report(verbose, f"\n[bold]📓 Registering Jupyter kernel ({config.kernel_name})...[/]")
        _optional_step(
            result,
            register_kernel(config, env_manager, runner),
            verbose=verbose,
            done="Jupyter kernel registered",
            failed="Jupyter kernel registration failed",
        )

    if git_available:
        if commit_scaffold(config.project_dir, runner):
            _report(verbose, "  [green]✓[/] Initial commit created")
        else:
            result.warnings.append("initial git commit failed")
            _report(verbose, "  [yellow]⚠[/] Initial commit skipped")

    result.success = True

    if verbose:
        console.print()
        console.print(
            Panel(
                f"[bold green]✅ Done![/]\n\n"
                f"[dim]Location:[/] {result.project_path}\n\n"
                f"[bold]Next steps:[/]\n"
                f"  1) conda activate {config.env_name}\n"
                f"  2) poetry run {config.package_name} --help\n"
                f"  3) make lint test",
                title="[bold green]Success[/]",
                border_style="green",
            )
        )

    return result
