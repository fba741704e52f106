"""Unit tests configuration file."""

import os

import pytest

from httpbind.generator.loader import load_file

MODELS_DIR = os.path.join(os.path.dirname(os.path.realpath(__file__)), "generator", "models")


def pytest_configure(config):
    """Keep test output short."""
    terminal = config.pluginmanager.getplugin("terminal")
    if terminal:
        terminal.TerminalReporter.showfspath = False


@pytest.fixture
def store():
    """The example store service model used across the generator tests."""
    return load_file(os.path.join(MODELS_DIR, "store.json"))
