"""Shared fixtures for the skoria tests."""

import io

import pytest

from console_ui import ConsoleUI
from skoria_config import Configuration


@pytest.fixture(autouse=True)
def isolated_home(tmp_path_factory, monkeypatch):
    """Keep user defaults files out of the tests"""
    monkeypatch.setenv("SKORIA_HOME", str(tmp_path_factory.mktemp("skoria-home")))


@pytest.fixture
def output() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def ui(output) -> ConsoleUI:
    return ConsoleUI(force_terminal=False, file=output)


@pytest.fixture
def config_for(tmp_path):
    """Build a Configuration rooted at tmp_path"""

    def factory(**overrides) -> Configuration:
        overrides.setdefault("root", tmp_path)
        overrides.setdefault("scan_workers", 4)
        return Configuration(**overrides)

    return factory
