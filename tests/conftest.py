"""Pytest hooks and fixtures."""

import os

import pytest

from dyfunc.registry import FunctionRegistry


def pytest_configure(config):
    """Register custom markers (also in pyproject.toml)."""
    config.addinivalue_line(
        "markers",
        "slow: waits on real call timeouts (skipped when DYFUNC_SKIP_SLOW=1)",
    )


def pytest_collection_modifyitems(config, items):
    """Skip slow tests when DYFUNC_SKIP_SLOW=1."""
    if os.environ.get("DYFUNC_SKIP_SLOW") != "1":
        return
    skip = pytest.mark.skip(reason="Slow test (DYFUNC_SKIP_SLOW=1)")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point config and log files at a temp home and drop DYFUNC_* overrides."""
    for key in list(os.environ):
        if key.startswith("DYFUNC_"):
            monkeypatch.delenv(key)
    monkeypatch.setenv("HOME", str(tmp_path))
    config_path = tmp_path / ".dyfunc" / "config.json"
    monkeypatch.setenv("DYFUNC_CONFIG_PATH", str(config_path))
    return config_path


@pytest.fixture
def registry():
    reg = FunctionRegistry()

    def sum_(x: int, y: int) -> int:
        return x + y

    reg.register("sum", sum_)
    return reg
