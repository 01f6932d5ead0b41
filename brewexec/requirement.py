"""Typed records describing manifest requirements and installed packages."""

from __future__ import annotations

import dataclasses as dc
import enum
import typing as typ

if typ.TYPE_CHECKING:
    from pathlib import Path


class RequirementKind(enum.StrEnum):
    """Kinds of manifest entries.

    Members
    -------
    FORMULA
        A Homebrew formula; the only kind that contributes to the environment.
    CASK
        A macOS application cask.
    OTHER
        Any other entry type (taps, App Store apps, editor extensions, ...).
    """

    FORMULA = "formula"
    CASK = "cask"
    OTHER = "other"


class VersionSource(enum.StrEnum):
    """Where an effective version came from."""

    OVERRIDE = "override"
    INSTALLED = "installed"


@dc.dataclass(frozen=True, slots=True)
class PackageRequirement:
    """A single dependency declared in the manifest."""

    name: str
    kind: RequirementKind = RequirementKind.FORMULA


@dc.dataclass(frozen=True, slots=True)
class PackageInfo:
    """Installed package metadata as reported by the metadata provider.

    Attributes
    ----------
    name:
        Formula name.
    install_prefix:
        Prefix of the installed keg, e.g. ``<cellar>/openssl/3.3.1``.
    version:
        Installed version string.
    keg_only:
        True when the formula is not linked into the shared prefix.

    """

    name: str
    install_prefix: Path
    version: str
    keg_only: bool = False


@dc.dataclass(frozen=True, slots=True)
class EffectiveVersion:
    """The version of a package that the environment will expose."""

    name: str
    version: str
    source: VersionSource

    @property
    def overridden(self) -> bool:
        """Return True when the version was pinned through the environment."""
        return self.source is VersionSource.OVERRIDE


__all__ = [
    "EffectiveVersion",
    "PackageInfo",
    "PackageRequirement",
    "RequirementKind",
    "VersionSource",
]
