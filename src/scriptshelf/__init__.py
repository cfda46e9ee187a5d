"""
scriptshelf - Personal Script Shelf
===================================

Two small tools that used to live as shell scripts:

- ``bootstrap``: scaffold a machine-learning project that uses
  Conda/Mamba for the interpreter and Poetry for Python packages, then
  create the environment, install hooks and register a Jupyter kernel.
- ``install``: symlink scripts into ``~/.local/share/scripts`` and keep
  that directory on PATH.

Quick Start
-----------
```bash
scriptshelf bootstrap fraudlab 3.11
scriptshelf install myscript.sh
```

Architecture
------------
- ``cli``: Typer command line interface
- ``generator``: project scaffolding and tool orchestration
- ``installer``: symlink install/uninstall and PATH editing
- ``runner``: external command interface
- ``models``: Pydantic configuration models
- ``templates``: Jinja2 templates for generated files
"""

__version__ = "0.1.0"

from scriptshelf.generator import create_project
from scriptshelf.installer import install_script, uninstall_all, uninstall_script
from scriptshelf.models import InstallerSettings, ScaffoldConfig


__all__ = [
    "InstallerSettings",
    "ScaffoldConfig",
    "__version__",
    "create_project",
    "install_script",
    "uninstall_all",
    "uninstall_script",
]
