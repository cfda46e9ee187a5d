"""
Tests for scriptshelf.installer
===============================

Test Organization
-----------------
- TestResolveScript: literal path and source directory lookup
- TestEnsureOnPath: idempotent PATH line append
- TestRemoveFromPath: heuristic PATH line removal
- TestInstall: absent -> linked
- TestUninstall: linked -> absent
- TestUninstallAll: removing the whole link directory
- TestRoundTrip: install + uninstall restores the original state
"""

import os
from pathlib import Path

import pytest

from scriptshelf.installer import (
    LinkAction,
    ensure_on_path,
    install_script,
    remove_from_path,
    resolve_script,
    uninstall_all,
    uninstall_script,
)
from scriptshelf.models import InstallerSettings, ShellKind


def _path_lines(startup_file: Path, directory: Path) -> list[str]:
    return [
        line
        for line in startup_file.read_text().splitlines()
        if str(directory) in line and not line.startswith("#")
    ]


# =============================================================================
# Script Resolution
# =============================================================================

class TestResolveScript:
    """Tests for resolve_script."""

    def test_literal_path(self, tmp_path: Path) -> None:
        script = tmp_path / "tool.sh"
        script.write_text("echo")

        assert resolve_script(str(script), tmp_path / "src") == script.resolve()

    def test_source_dir_fallback(self, source_dir: Path, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.chdir(tmp_path)
        assert resolve_script("hello.sh", source_dir) == (source_dir / "hello.sh").resolve()

    def test_result_is_absolute(self, tmp_path: Path, monkeypatch) -> None:
        (tmp_path / "rel.sh").write_text("echo")
        monkeypatch.chdir(tmp_path)

        resolved = resolve_script("rel.sh", tmp_path / "src")

        assert resolved.is_absolute()

    def test_not_found(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError, match="Script not found"):
            resolve_script("missing.sh", tmp_path)

    def test_directory_is_not_a_script(self, tmp_path: Path) -> None:
        (tmp_path / "dir.sh").mkdir()
        with pytest.raises(FileNotFoundError):
            resolve_script(str(tmp_path / "dir.sh"), tmp_path / "src")


# =============================================================================
# PATH Editing
# =============================================================================

class TestEnsureOnPath:
    """Tests for ensure_on_path."""

    def test_appends_once(self, tmp_path: Path) -> None:
        rc = tmp_path / ".bashrc"
        rc.write_text("alias ll='ls -l'\n")
        link_dir = tmp_path / "scripts"

        assert ensure_on_path(link_dir, rc, ShellKind.BASH, []) is True
        assert ensure_on_path(link_dir, rc, ShellKind.BASH, []) is False

        assert rc.read_text().startswith("alias ll='ls -l'\n")
        assert _path_lines(rc, link_dir) == [f'export PATH="{link_dir}:$PATH"']

    def test_skips_when_on_search_path(self, tmp_path: Path) -> None:
        rc = tmp_path / ".bashrc"
        link_dir = tmp_path / "scripts"

        assert ensure_on_path(link_dir, rc, ShellKind.BASH, [Path("/bin"), link_dir]) is False
        assert not rc.exists()

    def test_prefix_entry_does_not_count(self, tmp_path: Path) -> None:
        """Test that a longer directory on PATH is not mistaken for ours."""
        rc = tmp_path / ".bashrc"
        link_dir = tmp_path / "scripts"

        assert ensure_on_path(link_dir, rc, ShellKind.BASH, [tmp_path / "scripts-old"]) is True

    def test_fish_syntax_and_parents(self, tmp_path: Path) -> None:
        rc = tmp_path / ".config" / "fish" / "config.fish"
        link_dir = tmp_path / "scripts"

        ensure_on_path(link_dir, rc, ShellKind.FISH, [])

        assert f"set -Ux PATH {link_dir} $PATH" in rc.read_text().splitlines()

    def test_missing_trailing_newline(self, tmp_path: Path) -> None:
        rc = tmp_path / ".profile"
        rc.write_text("umask 022")
        link_dir = tmp_path / "scripts"

        ensure_on_path(link_dir, rc, ShellKind.OTHER, [])

        assert rc.read_text().splitlines()[0] == "umask 022"


class TestRemoveFromPath:
    """Tests for remove_from_path."""

    def test_removes_every_mention(self, tmp_path: Path) -> None:
        rc = tmp_path / ".bashrc"
        link_dir = tmp_path / "scripts"
        line = f'export PATH="{link_dir}:$PATH"'
        rc.write_text(f"a\n{line}\nb\n{line}\n# see {link_dir}\nc\n")

        assert remove_from_path(link_dir, rc) is True
        assert rc.read_text() == "a\nb\nc\n"

    def test_keeps_backup(self, tmp_path: Path) -> None:
        rc = tmp_path / ".bashrc"
        link_dir = tmp_path / "scripts"
        original = f"x\nexport PATH={link_dir}:$PATH\n"
        rc.write_text(original)

        remove_from_path(link_dir, rc)

        assert (tmp_path / ".bashrc.bak").read_text() == original

    def test_nothing_to_remove(self, tmp_path: Path) -> None:
        rc = tmp_path / ".bashrc"
        rc.write_text("a\n")

        assert remove_from_path(tmp_path / "scripts", rc) is False
        assert not (tmp_path / ".bashrc.bak").exists()

    def test_missing_file(self, tmp_path: Path) -> None:
        assert remove_from_path(tmp_path / "scripts", tmp_path / ".bashrc") is False

    def test_takes_back_inserted_newline(self, tmp_path: Path) -> None:
        rc = tmp_path / ".profile"
        rc.write_text("umask 022")
        link_dir = tmp_path / "scripts"
        ensure_on_path(link_dir, rc, ShellKind.OTHER, [])

        assert remove_from_path(link_dir, rc) is True
        assert rc.read_text() == "umask 022"

    def test_deletes_file_with_only_installer_lines(self, tmp_path: Path) -> None:
        rc = tmp_path / ".bashrc"
        link_dir = tmp_path / "scripts"
        ensure_on_path(link_dir, rc, ShellKind.BASH, [])

        assert remove_from_path(link_dir, rc) is True
        assert not rc.exists()
        assert not (tmp_path / ".bashrc.bak").exists()

    def test_keeps_file_with_foreign_mention(self, tmp_path: Path) -> None:
        """Test that a user-written line keeps the emptied file and its backup."""
        rc = tmp_path / ".bashrc"
        link_dir = tmp_path / "scripts"
        rc.write_text(f"alias s='ls {link_dir}'\n")

        assert remove_from_path(link_dir, rc) is True
        assert rc.read_text() == ""
        assert (tmp_path / ".bashrc.bak").exists()


# =============================================================================
# Install
# =============================================================================

class TestInstall:
    """Tests for install_script."""

    def test_creates_link(self, settings: InstallerSettings, source_dir: Path) -> None:
        result = install_script("hello.sh", settings, verbose=False)

        link = settings.link_dir / "hello.sh"
        assert result.action is LinkAction.INSTALLED
        assert result.link_path == link
        assert link.is_symlink()
        assert Path(os.readlink(link)) == (source_dir / "hello.sh").resolve()

    def test_default_link_dir(self, settings: InstallerSettings, home: Path) -> None:
        """Test the ~/.local/share/scripts default without XDG_DATA_HOME."""
        install_script("hello.sh", settings, verbose=False)
        assert (home / ".local" / "share" / "scripts" / "hello.sh").is_symlink()

    def test_makes_script_executable(self, settings: InstallerSettings, source_dir: Path) -> None:
        script = source_dir / "hello.sh"
        script.chmod(0o644)

        result = install_script("hello.sh", settings, verbose=False)

        assert os.access(script, os.X_OK)
        assert any("executable" in m for m in result.messages)

    def test_appends_path_line(self, settings: InstallerSettings, home: Path) -> None:
        result = install_script("hello.sh", settings, verbose=False)

        rc = home / ".bashrc"
        assert result.path_added is True
        assert result.startup_file == rc
        assert _path_lines(rc, settings.link_dir) == [
            f'export PATH="{settings.link_dir}:$PATH"'
        ]

    def test_settings_left_unchanged(self, settings: InstallerSettings) -> None:
        before = list(settings.search_path)

        install_script("hello.sh", settings, verbose=False)

        assert settings.search_path == before

    def test_skips_path_line_when_on_path(self, home: Path, source_dir: Path) -> None:
        link_dir = home / ".local" / "share" / "scripts"
        settings = InstallerSettings.from_env(
            {"HOME": str(home), "SHELL": "/bin/zsh", "PATH": f"{link_dir}:/usr/bin"},
            source_dir=source_dir,
        )

        result = install_script("hello.sh", settings, verbose=False)

        assert result.path_added is False
        assert not (home / ".zprofile").exists()

    def test_conflict_leaves_existing_file(
        self, settings: InstallerSettings, home: Path
    ) -> None:
        """Test that an occupied link path is never overwritten."""
        settings.link_dir.mkdir(parents=True)
        occupant = settings.link_dir / "hello.sh"
        occupant.write_text("mine")

        with pytest.raises(FileExistsError, match="already exists"):
            install_script("hello.sh", settings, verbose=False)

        assert not occupant.is_symlink()
        assert occupant.read_text() == "mine"
        assert not (home / ".bashrc").exists()

    def test_conflict_with_dangling_link(self, settings: InstallerSettings, tmp_path: Path) -> None:
        settings.link_dir.mkdir(parents=True)
        dangling = settings.link_dir / "hello.sh"
        dangling.symlink_to(tmp_path / "gone.sh")

        with pytest.raises(FileExistsError):
            install_script("hello.sh", settings, verbose=False)

        assert Path(os.readlink(dangling)) == tmp_path / "gone.sh"

    def test_missing_script(self, settings: InstallerSettings) -> None:
        with pytest.raises(FileNotFoundError):
            install_script("nope.sh", settings, verbose=False)
        assert not settings.link_dir.exists()

    def test_installed_twice_appends_once(
        self, settings: InstallerSettings, source_dir: Path, home: Path
    ) -> None:
        """Test that a second install fails and the PATH line stays single."""
        install_script("hello.sh", settings, verbose=False)

        fresh = InstallerSettings.from_env(
            {"HOME": str(home), "SHELL": "/bin/bash", "PATH": "/usr/bin"},
            source_dir=source_dir,
        )
        with pytest.raises(FileExistsError):
            install_script("hello.sh", fresh, verbose=False)

        (source_dir / "other.sh").write_text("echo")
        install_script("other.sh", fresh, verbose=False)

        assert len(_path_lines(home / ".bashrc", settings.link_dir)) == 1


# =============================================================================
# Uninstall
# =============================================================================

class TestUninstall:
    """Tests for uninstall_script."""

    def test_removes_link_and_empty_dir(self, settings: InstallerSettings, home: Path) -> None:
        install_script("hello.sh", settings, verbose=False)

        result = uninstall_script("hello.sh", settings, verbose=False)

        assert result.action is LinkAction.UNINSTALLED
        assert result.directory_removed is True
        assert result.path_removed is True
        assert not settings.link_dir.exists()
        assert not (home / ".bashrc").exists()
        assert not (home / ".bashrc.bak").exists()

    def test_keeps_dir_with_other_links(
        self, settings: InstallerSettings, source_dir: Path, home: Path
    ) -> None:
        (source_dir / "other.sh").write_text("echo")
        install_script("hello.sh", settings, verbose=False)
        install_script("other.sh", settings, verbose=False)

        result = uninstall_script("hello.sh", settings, verbose=False)

        assert result.directory_removed is False
        assert (settings.link_dir / "other.sh").is_symlink()
        assert str(settings.link_dir) in (home / ".bashrc").read_text()

    def test_nothing_to_do(self, settings: InstallerSettings) -> None:
        settings.link_dir.mkdir(parents=True)
        (settings.link_dir / "keep.sh").symlink_to("/bin/true")

        result = uninstall_script("hello.sh", settings, verbose=False)

        assert result.action is LinkAction.NOTHING_TO_DO
        assert any("No link found" in m for m in result.messages)
        assert settings.link_dir.exists()

    def test_regular_file_is_not_removed(self, settings: InstallerSettings) -> None:
        settings.link_dir.mkdir(parents=True)
        occupant = settings.link_dir / "hello.sh"
        occupant.write_text("mine")

        result = uninstall_script("hello.sh", settings, verbose=False)

        assert result.action is LinkAction.NOTHING_TO_DO
        assert occupant.exists()

    def test_script_source_deleted(self, settings: InstallerSettings, source_dir: Path) -> None:
        """Test uninstalling after the original script is gone."""
        install_script("hello.sh", settings, verbose=False)
        (source_dir / "hello.sh").unlink()

        result = uninstall_script("hello.sh", settings, verbose=False)

        assert result.action is LinkAction.UNINSTALLED
        assert not settings.link_dir.exists()


# =============================================================================
# Uninstall All
# =============================================================================

class TestUninstallAll:
    """Tests for uninstall_all."""

    def test_removes_everything(self, settings: InstallerSettings, home: Path) -> None:
        """Test removal of a directory with several unrelated entries."""
        link_dir = settings.link_dir
        link_dir.mkdir(parents=True)
        (link_dir / "a").symlink_to("/bin/true")
        (link_dir / "b").symlink_to("/bin/false")
        (link_dir / "notes.txt").write_text("stray file")
        rc = home / ".bashrc"
        line = f'export PATH="{link_dir}:$PATH"'
        rc.write_text(f"first\n{line}\nmiddle\n{line}\nlast\n")

        result = uninstall_all(settings, verbose=False)

        assert result.action is LinkAction.REMOVED_ALL
        assert not link_dir.exists()
        assert rc.read_text() == "first\nmiddle\nlast\n"

    def test_missing_directory(self, settings: InstallerSettings, home: Path) -> None:
        rc = home / ".bashrc"
        rc.write_text(f"export PATH={settings.link_dir}:$PATH\n")

        result = uninstall_all(settings, verbose=False)

        assert result.action is LinkAction.NOTHING_TO_DO
        assert any("does not exist" in m for m in result.messages)
        assert str(settings.link_dir) in rc.read_text()


# =============================================================================
# Round Trip
# =============================================================================

class TestRoundTrip:
    """Install followed by uninstall restores the starting state."""

    @pytest.mark.parametrize("shell", ["/bin/bash", "/bin/zsh", "/usr/bin/fish", "/bin/sh"])
    @pytest.mark.parametrize(
        "original",
        ["# my settings\nexport EDITOR=vim\n", "# my settings\nexport EDITOR=vim"],
        ids=["trailing-newline", "no-trailing-newline"],
    )
    def test_round_trip(self, home: Path, source_dir: Path, shell: str, original: str) -> None:
        settings = InstallerSettings.from_env(
            {"HOME": str(home), "SHELL": shell, "PATH": "/usr/bin:/bin"},
            source_dir=source_dir,
        )
        rc = settings.startup_file
        rc.parent.mkdir(parents=True, exist_ok=True)
        rc.write_text(original)

        install_script("hello.sh", settings, verbose=False)
        assert rc.read_text() != original

        uninstall_script("hello.sh", settings, verbose=False)

        assert rc.read_text() == original
        assert not settings.link_dir.exists()

    def test_xdg_data_home(self, home: Path, source_dir: Path, tmp_path: Path) -> None:
        settings = InstallerSettings.from_env(
            {"HOME": str(home), "XDG_DATA_HOME": str(tmp_path / "xdg")},
            source_dir=source_dir,
        )

        install_script("hello.sh", settings, verbose=False)

        assert (tmp_path / "xdg" / "scripts" / "hello.sh").is_symlink()
        assert (home / ".profile").exists()

    def test_without_startup_file(self, settings: InstallerSettings, home: Path) -> None:
        """Test that a startup file created by install is removed again."""
        install_script("hello.sh", settings, verbose=False)
        uninstall_script("hello.sh", settings, verbose=False)

        assert sorted(p.name for p in home.iterdir()) == [".local"]

    def test_reinstall_with_same_settings(
        self, settings: InstallerSettings, home: Path
    ) -> None:
        """Test install, uninstall, install on one settings object."""
        install_script("hello.sh", settings, verbose=False)
        uninstall_script("hello.sh", settings, verbose=False)

        result = install_script("hello.sh", settings, verbose=False)

        assert result.path_added is True
        assert _path_lines(home / ".bashrc", settings.link_dir) == [
            f'export PATH="{settings.link_dir}:$PATH"'
        ]
