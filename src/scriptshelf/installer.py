"""
scriptshelf.installer - Script Link Installer
=============================================

Installs scripts by symlinking them into a user-local link directory
(``$XDG_DATA_HOME/scripts``, by default ``~/.local/share/scripts``) and
keeps that directory on PATH by editing the shell startup file.

Link States
-----------
Each script is either ``absent`` or ``linked``:

    install_script     absent -> linked   (fails if the link path is taken)
    uninstall_script   linked -> absent   (no-op when there is no link)
    uninstall_all      removes the whole link directory

When the link directory becomes empty it is removed and its PATH line
is stripped from the startup file.

PATH Editing
------------
Adding is idempotent: nothing is written when the directory is already
an entry of the caller's search path, or when the startup file already
holds the exact line. Removing deletes every line of the startup file
that mentions the directory. This is a plain text match, not a shell
parser, so a comment mentioning the directory is removed too.

A newline added to an unterminated last line is marked so removal can
take it back, and a startup file left holding nothing but installer
lines is deleted.

The startup file and search path come from :class:`InstallerSettings`;
nothing here reads the process environment or modifies the settings.
"""

from __future__ import annotations

import os
import shutil
import stat
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from rich.console import Console

from scriptshelf.models import InstallerSettings, ShellKind


console = Console()

MARKER_COMMENT = "# Added by scriptshelf install: {directory}"
# Used when a newline had to be added to the previous last line.
JOINED_MARKER_COMMENT = "# Added by scriptshelf install (newline inserted): {directory}"


class LinkAction(str, Enum):
    """What an installer operation ended up doing."""

    INSTALLED = "installed"
    UNINSTALLED = "uninstalled"
    NOTHING_TO_DO = "nothing_to_do"
    REMOVED_ALL = "removed_all"


@dataclass
class LinkResult:
    """
    Outcome of an installer operation.

    Attributes
    ----------
    action : LinkAction
        The transition that happened.

    link_dir : Path
        The link directory the operation worked on.

    link_path : Path | None
        The symlink created or removed, if any.

    target : Path | None
        The resolved script the link points to.

    startup_file : Path | None
        Startup file that was inspected for the PATH line.

    path_added : bool
        A PATH line was appended to the startup file.

    path_removed : bool
        PATH lines were removed from the startup file.

    directory_removed : bool
        The link directory was deleted.

    messages : list[str]
        Human-readable log of what happened.
    """

    action: LinkAction
    link_dir: Path
    link_path: Path | None = None
    target: Path | None = None
    startup_file: Path | None = None
    path_added: bool = False
    path_removed: bool = False
    directory_removed: bool = False
    messages: list[str] = field(default_factory=list)


def _log(result: LinkResult, message: str, verbose: bool) -> None:
    result.messages.append(message)
    if verbose:
        console.print(message, highlight=False)


# =============================================================================
# Script Resolution
# =============================================================================


def resolve_script(script: str | Path, source_dir: Path) -> Path:
    """
    Resolve a script argument to an absolute path.

    The argument is tried as a literal path first, then inside
    ``source_dir``.

    Raises
    ------
    FileNotFoundError
        If neither location holds a file.
    """
    for candidate in (Path(script), source_dir / script):
        if candidate.is_file():
            return candidate.resolve()
    raise FileNotFoundError(f"Script not found: {script}")


def make_executable(path: Path) -> bool:
    """Add execute permission like ``chmod +x``. True if it changed."""
    if os.access(path, os.X_OK):
        return False
    mode = path.stat().st_mode
    path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return True


# =============================================================================
# PATH Management
# =============================================================================


def is_on_search_path(directory: Path, search_path: list[Path]) -> bool:
    return any(Path(entry) == directory for entry in search_path)


def ensure_on_path(
    link_dir: Path,
    startup_file: Path,
    shell: ShellKind,
    search_path: list[Path],
) -> bool:
    """
    Append a PATH line for ``link_dir`` to ``startup_file`` if needed.

    A marker comment and the shell-specific PATH statement are appended.
    The startup file and its parent directories are created when
    missing.

    Returns
    -------
    bool
        True if the startup file was modified.
    """
    if is_on_search_path(link_dir, search_path):
        return False

    line = shell.path_line(link_dir)
    existing = startup_file.read_text(encoding="utf-8") if startup_file.exists() else ""
    if line in existing.splitlines():
        return False

    if existing and not existing.endswith("\n"):
        block = f"\n{JOINED_MARKER_COMMENT.format(directory=link_dir)}\n{line}\n"
    else:
        block = f"{MARKER_COMMENT.format(directory=link_dir)}\n{line}\n"

    startup_file.parent.mkdir(parents=True, exist_ok=True)
    with startup_file.open("a", encoding="utf-8") as f:
        f.write(block)
    return True


def remove_from_path(link_dir: Path, startup_file: Path) -> bool:
    """
    Delete every line of ``startup_file`` that mentions ``link_dir``.

    The previous content is saved next to it as ``<name>.bak``. A
    newline that :func:`ensure_on_path` added to the file's last line is
    taken back off. If nothing but installer lines was in the file, the
    file is deleted and no backup is kept.

    Returns
    -------
    bool
        True if any line was removed.
    """
    if not startup_file.is_file():
        return False

    needle = str(link_dir)
    joined_marker = JOINED_MARKER_COMMENT.format(directory=link_dir)
    ours = {MARKER_COMMENT.format(directory=link_dir), joined_marker}
    ours.update(shell.path_line(link_dir) for shell in ShellKind)

    content = startup_file.read_text(encoding="utf-8")
    lines = content.splitlines(keepends=True)
    kept: list[str] = []
    only_ours = True
    joined_at: int | None = None
    for line in lines:
        if needle not in line:
            kept.append(line)
            continue
        only_ours = only_ours and line.rstrip("\n") in ours
        if line.rstrip("\n") == joined_marker:
            joined_at = len(kept)

    if len(kept) == len(lines):
        return False

    if only_ours and not kept:
        startup_file.unlink()
        return True

    if joined_at is not None and joined_at == len(kept) and kept:
        kept[-1] = kept[-1].removesuffix("\n")

    shutil.copy2(startup_file, startup_file.with_name(startup_file.name + ".bak"))
    startup_file.write_text("".join(kept), encoding="utf-8")
    return True


# =============================================================================
# Operations
# =============================================================================


def install_script(
    script: str | Path,
    settings: InstallerSettings,
    *,
    verbose: bool = True,
) -> LinkResult:
    """
    Link ``script`` into the link directory and put it on PATH.

    Raises
    ------
    FileNotFoundError
        If the script cannot be resolved.
    FileExistsError
        If anything, including a dangling symlink, already occupies the
        link path. The existing entry is left untouched.
    """
    target = resolve_script(script, settings.source_dir)
    link_dir = settings.link_dir
    link_path = link_dir / target.name

    if link_path.exists() or link_path.is_symlink():
        raise FileExistsError(f"Link or file already exists at {link_path}")

    result = LinkResult(
        action=LinkAction.INSTALLED,
        link_dir=link_dir,
        link_path=link_path,
        target=target,
        startup_file=settings.startup_file,
    )

    if make_executable(target):
        _log(result, f"Making {target} executable", verbose)

    link_dir.mkdir(parents=True, exist_ok=True)
    _log(result, f"Creating link: {link_path} -> {target}", verbose)
    link_path.symlink_to(target)

    result.path_added = ensure_on_path(
        link_dir, settings.startup_file, settings.shell, settings.search_path
    )
    if result.path_added:
        _log(result, f"Adding {link_dir} to PATH in {settings.startup_file}", verbose)

    return result


def uninstall_script(
    script: str | Path,
    settings: InstallerSettings,
    *,
    verbose: bool = True,
) -> LinkResult:
    """
    Remove the link for ``script``.

    The link name comes from the resolved script when it still exists,
    otherwise from the argument's file name. If the link directory is
    empty afterwards it is removed along with its PATH line.
    """
    try:
        name = resolve_script(script, settings.source_dir).name
    except FileNotFoundError:
        name = Path(script).name

    link_dir = settings.link_dir
    link_path = link_dir / name
    result = LinkResult(
        action=LinkAction.NOTHING_TO_DO,
        link_dir=link_dir,
        link_path=link_path,
        startup_file=settings.startup_file,
    )

    if link_path.is_symlink():
        _log(result, f"Removing link: {link_path}", verbose)
        link_path.unlink()
        result.action = LinkAction.UNINSTALLED
    else:
        _log(result, f"No link found at {link_path}", verbose)

    if link_dir.is_dir() and not any(link_dir.iterdir()):
        _log(result, f"Scripts folder is empty, removing {link_dir}", verbose)
        link_dir.rmdir()
        result.directory_removed = True
        result.path_removed = remove_from_path(link_dir, settings.startup_file)
        if result.path_removed:
            _log(result, f"Removing {link_dir} from PATH in {settings.startup_file}", verbose)

    return result


def uninstall_all(settings: InstallerSettings, *, verbose: bool = True) -> LinkResult:
    """
    Remove the whole link directory, whatever it contains, and strip its
    PATH lines. Nothing changes when the directory does not exist.
    """
    link_dir = settings.link_dir
    result = LinkResult(
        action=LinkAction.NOTHING_TO_DO,
        link_dir=link_dir,
        startup_file=settings.startup_file,
    )

    if not link_dir.is_dir():
        _log(result, f"Scripts directory does not exist: {link_dir}", verbose)
        return result

    _log(result, f"Removing entire scripts directory: {link_dir}", verbose)
    shutil.rmtree(link_dir)
    result.action = LinkAction.REMOVED_ALL
    result.directory_removed = True

    result.path_removed = remove_from_path(link_dir, settings.startup_file)
    if result.path_removed:
        _log(result, f"Removing {link_dir} from PATH in {settings.startup_file}", verbose)

    return result
