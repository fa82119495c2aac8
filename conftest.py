"""Pytest configuration and fixtures for ociprobe tests.

CRITICAL: Protects production configuration and tenancies from test runs.
"""

import os
import shutil
from pathlib import Path

import pytest


@pytest.fixture(scope="session", autouse=True)
def protect_production_config():
    """Protect ~/.ociprobe/config.toml from being modified by tests.

    Backs up the real config before any tests run and restores it after all
    tests complete.
    """
    config_path = Path.home() / ".ociprobe" / "config.toml"
    backup_path = Path.home() / ".ociprobe" / ".config.toml.pytest-backup"

    config_existed = config_path.exists()
    if config_existed:
        shutil.copy2(config_path, backup_path)

    yield

    if config_existed and backup_path.exists():
        shutil.copy2(backup_path, config_path)
        backup_path.unlink()
    elif backup_path.exists():
        backup_path.unlink()


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch):
    """Keep the caller's OCIPROBE_* variables out of every test."""
    monkeypatch.delenv("OCIPROBE_CONFIG", raising=False)
    monkeypatch.delenv("OCIPROBE_ROOT_PASSWORD", raising=False)


@pytest.fixture
def isolated_config(tmp_path):
    """Provide an isolated config directory for tests.

    Use this fixture instead of touching ~/.ociprobe/config.toml.
    """
    config_dir = tmp_path / ".ociprobe"
    config_dir.mkdir(parents=True)
    return config_dir


@pytest.fixture
def config_file(isolated_config):
    """Path of a config file inside the isolated directory (not yet written)."""
    return isolated_config / "config.toml"
