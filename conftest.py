"""Shared pytest fixtures for Homebrew layouts and inherited environments.

Tests build a throwaway prefix and Cellar under ``tmp_path`` and pass an
explicit inherited environment to the code under test, so nothing depends on
a real Homebrew installation or on the developer's shell.

Example
-------
def test_exposes_openssl(layout, base_environ):
    install_keg(layout, "openssl", "3.3.1")
"""

from __future__ import annotations

import os
import typing as typ

import pytest

from tests.helpers.homebrew import make_layout

if typ.TYPE_CHECKING:
    from pathlib import Path

    from brewexec._config import HomebrewLayout

BASE_PATH = "/usr/bin:/bin"


@pytest.fixture(autouse=True)
def _isolate_homebrew_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove ``HOMEBREW_*`` variables inherited from the developer's shell.

    Prevents a local override such as ``HOMEBREW_BUNDLE_FILE`` or
    ``HOMEBREW_DEBUG`` from leaking into code paths that read
    ``os.environ``.
    """
    for name in list(os.environ):
        if name.startswith("HOMEBREW_"):
            monkeypatch.delenv(name)


@pytest.fixture
def layout(tmp_path: Path) -> HomebrewLayout:
    """Provide an empty Homebrew prefix and Cellar.

    Parameters
    ----------
    tmp_path : Path
        Per-test temporary directory.

    Returns
    -------
    HomebrewLayout
        Layout rooted at ``tmp_path / "homebrew"``.
    """
    return make_layout(tmp_path)


@pytest.fixture
def base_environ(layout: HomebrewLayout, tmp_path: Path) -> dict[str, str]:
    """Provide an inherited environment pointing at ``layout``.

    Parameters
    ----------
    layout : HomebrewLayout
        Layout fixture the environment refers to.
    tmp_path : Path
        Per-test temporary directory holding the fake home directory.

    Returns
    -------
    dict[str, str]
        A fresh mapping each test may modify freely.
    """
    home = tmp_path / "home"
    home.mkdir()
    return {
        "PATH": BASE_PATH,
        "MANPATH": "/usr/share/man",
        "HOME": str(home),
        "HOMEBREW_PREFIX": str(layout.prefix),
        "HOMEBREW_CELLAR": str(layout.cellar),
    }
