"""
scriptshelf test suite
======================

Test Modules
------------
- test_models.py: configuration models and name derivation
- test_runner.py: subprocess-backed command runner
- test_generator.py: project scaffolding and tool orchestration
- test_installer.py: symlink installer and PATH editing
- test_cli.py: command-line interface

Running Tests
-------------
    pytest
    pytest --cov=src/scriptshelf
    pytest tests/test_installer.py::TestUninstallAll
"""
