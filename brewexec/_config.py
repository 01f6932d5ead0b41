"""Environment-driven configuration for bundle exec.

All settings are read from an explicit mapping (normally the environment copy
being built) rather than from ``os.environ`` so that resolution never depends
on, or changes, ambient process state.

Example
-------
layout = HomebrewLayout.from_env({"HOMEBREW_PREFIX": "/opt/homebrew"})
layout.opt_path("openssl")  # PosixPath('/opt/homebrew/opt/openssl')
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import platform
import sys
from pathlib import Path

from brewexec.errors import ConfigurationError

type EnvMapping = cabc.Mapping[str, str]

ALL_KEG_ONLY_DEPS_VAR = "HOMEBREW_BUNDLE_EXEC_ALL_KEG_ONLY_DEPS"
FORMULA_VERSION_PREFIX = "HOMEBREW_BUNDLE_FORMULA_VERSION_"
BUNDLE_FILE_VAR = "HOMEBREW_BUNDLE_FILE"
BUNDLE_FILE_GLOBAL_VAR = "HOMEBREW_BUNDLE_FILE_GLOBAL"
HOMEBREW_PATH_VAR = "HOMEBREW_PATH"
DEBUG_VAR = "HOMEBREW_DEBUG"

_FALSEY = frozenset({"", "0", "false", "no", "off"})


def read_flag(env: EnvMapping, name: str) -> bool:
    """Return whether the flag variable ``name`` is set to a truthy value.

    Unset, blank and the usual negative spellings (``0``, ``false``, ``no``,
    ``off``) are all false; anything else is true.
    """
    return env.get(name, "").strip().lower() not in _FALSEY


def home_directory(env: EnvMapping) -> Path:
    """Return the user's home directory, preferring ``HOME`` from ``env``."""
    raw = env.get("HOME", "").strip()
    return Path(raw) if raw else Path.home()


def runtime_manager_root(env: EnvMapping, name: str) -> Path:
    """Return the root directory of the runtime manager ``name``.

    The root is read from ``HOMEBREW_<NAME>_ROOT`` and defaults to
    ``<home>/.<name>``, e.g. ``HOMEBREW_RBENV_ROOT`` or ``~/.rbenv``.
    """
    configured = env.get(f"HOMEBREW_{name.upper()}_ROOT", "").strip()
    return Path(configured or f"{home_directory(env)}/.{name}")


def _default_prefix() -> Path:
    if sys.platform == "darwin" and platform.machine() == "arm64":
        return Path("/opt/homebrew")
    if sys.platform.startswith("linux"):
        return Path("/home/linuxbrew/.linuxbrew")
    return Path("/usr/local")


def _read_path(env: EnvMapping, name: str) -> Path | None:
    raw = env.get(name, "").strip()
    if not raw:
        return None
    path = Path(raw)
    if not path.is_absolute():
        msg = f"invalid {name} value {raw!r}; expected an absolute path"
        raise ConfigurationError(msg)
    return path


@dc.dataclass(frozen=True, slots=True)
class HomebrewLayout:
    """Filesystem layout of a Homebrew installation.

    Attributes
    ----------
    prefix:
        Shared install prefix holding ``opt/`` symlinks and linked files.
    cellar:
        Directory holding one rack per formula with one keg per version.

    """

    prefix: Path
    cellar: Path

    @classmethod
    def from_env(cls, env: EnvMapping) -> HomebrewLayout:
        """Build a layout from ``HOMEBREW_PREFIX`` and ``HOMEBREW_CELLAR``.

        Raises
        ------
        ConfigurationError
            If either variable is set to a relative path.
        """
        prefix = _read_path(env, "HOMEBREW_PREFIX") or _default_prefix()
        cellar = _read_path(env, "HOMEBREW_CELLAR") or prefix / "Cellar"
        return cls(prefix=prefix, cellar=cellar)

    def opt_path(self, name: str) -> Path:
        """Return the standard ``opt`` symlink for ``name``."""
        return self.prefix / "opt" / name

    def rack(self, name: str) -> Path:
        """Return the rack directory holding every installed keg of ``name``."""
        return self.cellar / name

    def keg_path(self, name: str, version: str) -> Path:
        """Return the version-pinned keg directory for ``name``."""
        return self.rack(name) / version

    def linked_marker(self, name: str) -> Path:
        """Return the marker Homebrew keeps for kegs linked into the prefix."""
        return self.prefix / "var" / "homebrew" / "linked" / name


__all__ = [
    "ALL_KEG_ONLY_DEPS_VAR",
    "BUNDLE_FILE_GLOBAL_VAR",
    "BUNDLE_FILE_VAR",
    "DEBUG_VAR",
    "FORMULA_VERSION_PREFIX",
    "HOMEBREW_PATH_VAR",
    "EnvMapping",
    "HomebrewLayout",
    "home_directory",
    "read_flag",
    "runtime_manager_root",
]
