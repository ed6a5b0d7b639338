"""
Pytest configuration and global fixtures.

This module provides shared fixtures used across all tests.
"""

import os
from collections.abc import Generator

import pytest

import openlsp.utils.config as config_module
from openlsp.utils.logging import clear_correlation_id


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path) -> Generator[None, None, None]:
    """Keep tests independent from the developer's environment and ``.env``."""
    for name in list(os.environ):
        if name.upper().startswith("OPENLSP_"):
            monkeypatch.delenv(name, raising=False)

    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(config_module, "_settings", None)
    yield
    clear_correlation_id()
