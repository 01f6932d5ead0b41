"""Baseline compiler and library variables for exposed kegs."""

from __future__ import annotations

import collections.abc as cabc
import os
import typing as typ

if typ.TYPE_CHECKING:
    from pathlib import Path

FLAG_VARIABLES: dict[str, tuple[str, str]] = {
    "CPPFLAGS": ("-I", "include"),
    "LDFLAGS": ("-L", "lib"),
}
SEARCH_PATH_VARIABLES: dict[str, str] = {
    "PKG_CONFIG_PATH": "lib/pkgconfig",
    "CMAKE_PREFIX_PATH": "",
}


def separator_for(variable: str) -> str:
    """Return the separator used to join entries of ``variable``."""
    return " " if variable in FLAG_VARIABLES else os.pathsep


class BuildEnvironmentConstructor(typ.Protocol):
    """Produces baseline build variables for a set of kegs."""

    def build(self, kegs: cabc.Sequence[Path]) -> cabc.Mapping[str, str]:
        """Return variable segments to layer in front of inherited values."""
        ...


class StandardBuildEnvironment:
    """Expose headers, libraries and pkg-config/CMake metadata of each keg.

    Entries are emitted in keg order and only for subdirectories that exist.
    """

    def build(self, kegs: cabc.Sequence[Path]) -> dict[str, str]:
        """Return the joined segments per variable, omitting empty ones."""
        segments: dict[str, list[str]] = {}
        for keg in kegs:
            for variable, (flag, subdir) in FLAG_VARIABLES.items():
                if (keg / subdir).is_dir():
                    segments.setdefault(variable, []).append(f"{flag}{keg / subdir}")
            for variable, subdir in SEARCH_PATH_VARIABLES.items():
                target = keg / subdir if subdir else keg
                if target.is_dir():
                    segments.setdefault(variable, []).append(str(target))
        return {
            variable: separator_for(variable).join(entries)
            for variable, entries in segments.items()
        }


__all__ = [
    "FLAG_VARIABLES",
    "SEARCH_PATH_VARIABLES",
    "BuildEnvironmentConstructor",
    "StandardBuildEnvironment",
    "separator_for",
]
