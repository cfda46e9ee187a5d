"""
scriptshelf.templates - Jinja2 Templates for the ML Project Scaffold
====================================================================

This package holds the Jinja2 template files rendered by
``scriptshelf.generator`` when bootstrapping a Conda + Poetry project.

Available Templates
-------------------
Core:
    - gitignore.j2: Git ignore patterns (Python, Jupyter, data)
    - README.md.j2: Project readme with a quickstart
    - environment.yml.j2: Conda environment (interpreter + tooling only)
    - pyproject.toml.j2: Poetry manifest with core ML dependencies

Tooling:
    - pre-commit-config.yaml.j2: Local ruff, mypy and pytest hooks
    - Makefile.j2: Task runner targets

Source Files:
    - package_init.py.j2: Package __init__.py with __version__
    - cli.py.j2: Typer entry point with ``hello`` and ``train``
    - test_smoke.py.j2: Smoke test asserting the version constant

Misc:
    - notebooks_README.md.j2: Placeholder for notebooks/
    - env.example.j2: Example environment variables

Template Context
----------------
    slug, package_name, python_version, python_constraint,
    env_name, kernel_name, env_manager,
    core_dependencies, dev_dependencies
"""

# Templates are loaded by Jinja2's PackageLoader.
