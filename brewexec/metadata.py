"""Installed-package metadata and platform capability lookups.

The environment builder talks to these collaborators through small
protocols so tests (and alternative package stores) can supply their own.
``CellarMetadataProvider`` reads a Homebrew installation straight from disk:
the ``opt/<name>`` symlink names the active keg, the rack under the Cellar
lists every installed version, and the ``var/homebrew/linked`` markers tell
linked kegs apart from keg-only ones.
"""

from __future__ import annotations

import collections.abc as cabc
import logging
import platform
import re
import shutil
import sys
import typing as typ

from brewexec.requirement import PackageInfo

if typ.TYPE_CHECKING:
    from pathlib import Path

    from brewexec._config import HomebrewLayout

logger = logging.getLogger(__name__)

MINIMUM_SYSTEM_GLIBC = (2, 13)
_VERSION_PART = re.compile(r"\d+|[A-Za-z]+")


class PackageMetadataProvider(typ.Protocol):
    """Source of installed-package metadata."""

    def lookup(self, name: str) -> PackageInfo | None:
        """Return metadata for ``name``, or ``None`` when not installed."""
        ...

    def installed(self) -> cabc.Iterable[PackageInfo]:
        """Yield metadata for every installed package."""
        ...


class PlatformCapabilities(typ.Protocol):
    """Answers questions about the host toolchain."""

    def needs_bundled_toolchain(self) -> bool:
        """Return True when a bundled compiler/libc formula is required."""
        ...


def version_sort_key(version: str) -> tuple[tuple[int, int | str], ...]:
    """Return a key ordering version strings numerically where possible.

    Numeric components compare as integers, so ``1.10`` sorts after ``1.9``;
    alphabetic components sort before numeric ones at the same position.
    """
    return tuple(
        (1, int(part)) if part.isdigit() else (0, part)
        for part in _VERSION_PART.findall(version)
    )


class CellarMetadataProvider:
    """Read package metadata from a Homebrew prefix and Cellar."""

    __slots__ = ("_layout",)

    def __init__(self, layout: HomebrewLayout) -> None:
        self._layout = layout

    def _active_keg(self, name: str) -> Path | None:
        opt = self._layout.opt_path(name)
        if opt.exists():
            return opt.resolve()
        rack = self._layout.rack(name)
        if not rack.is_dir():
            return None
        kegs = [keg for keg in rack.iterdir() if keg.is_dir()]
        if not kegs:
            return None
        return max(kegs, key=lambda keg: version_sort_key(keg.name))

    def lookup(self, name: str) -> PackageInfo | None:
        """Return metadata for ``name``, or ``None`` when it is not installed."""
        keg = self._active_keg(name)
        if keg is None:
            logger.debug("brewexec.metadata name=%s installed=false", name)
            return None
        info = PackageInfo(
            name=name,
            install_prefix=keg,
            version=keg.name,
            keg_only=not self._layout.linked_marker(name).exists(),
        )
        logger.debug(
            "brewexec.metadata name=%s version=%s keg_only=%s",
            name,
            info.version,
            info.keg_only,
        )
        return info

    def installed(self) -> cabc.Iterator[PackageInfo]:
        """Yield metadata for every rack in the Cellar, sorted by name."""
        cellar = self._layout.cellar
        if not cellar.is_dir():
            return
        for rack in sorted(cellar.iterdir(), key=lambda path: path.name):
            if not rack.is_dir():
                continue
            info = self.lookup(rack.name)
            if info is not None:
                yield info


class HostPlatform:
    """Platform capability check for the running host.

    Only Linux hosts can need the bundled toolchain: either the system glibc
    is older than Homebrew supports, or there is no system C compiler.
    """

    def needs_bundled_toolchain(self) -> bool:
        """Return True when ``gcc``/``glibc`` formulae must be exposed."""
        if not sys.platform.startswith("linux"):
            return False
        return self._glibc_too_old() or shutil.which("cc") is None

    @staticmethod
    def _glibc_too_old() -> bool:
        library, version = platform.libc_ver()
        if library != "glibc" or not version:
            return False
        parsed = tuple(int(part) for part in version.split(".")[:2] if part.isdigit())
        return parsed < MINIMUM_SYSTEM_GLIBC


__all__ = [
    "MINIMUM_SYSTEM_GLIBC",
    "CellarMetadataProvider",
    "HostPlatform",
    "PackageMetadataProvider",
    "PlatformCapabilities",
    "version_sort_key",
]
