"""Construction of the environment a bundled command runs under.

The builder starts from a copy of the inherited environment and layers in,
front to back:

1. runtime-manager ``shims`` directories (``nodenv``, ``pyenv``, ``rbenv``);
2. ``bin`` directories of every exposed keg, in manifest order;
3. whatever was already on ``PATH``.

Manual pages and the baseline compiler/library variables are layered the
same way. Inherited values of list-valued variables are only ever prefixed,
so every prior entry stays reachable. The inherited mapping is never
modified.
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import logging
import os
import typing as typ
from pathlib import Path

from brewexec._config import (
    ALL_KEG_ONLY_DEPS_VAR,
    HomebrewLayout,
    read_flag,
    runtime_manager_root,
)
from brewexec.metadata import HostPlatform
from brewexec.requirement import PackageRequirement, RequirementKind
from brewexec.stdenv import StandardBuildEnvironment, separator_for
from brewexec.versions import VersionResolver

if typ.TYPE_CHECKING:
    from brewexec._config import EnvMapping
    from brewexec.metadata import PackageMetadataProvider, PlatformCapabilities
    from brewexec.requirement import EffectiveVersion, PackageInfo
    from brewexec.stdenv import BuildEnvironmentConstructor

logger = logging.getLogger(__name__)

RUNTIME_MANAGERS = ("nodenv", "pyenv", "rbenv")
TOOLCHAIN_FORMULAE = frozenset({"gcc", "glibc"})
MANPAGE_SUBDIRS = ("share/man", "man")


class ExecutionEnvironment(cabc.MutableMapping[str, str]):
    """Mutable copy of a process environment with path-list helpers."""

    __slots__ = ("_values",)

    def __init__(self, base: EnvMapping | None = None) -> None:
        self._values: dict[str, str] = dict(base or {})

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __setitem__(self, key: str, value: str) -> None:
        self._values[key] = value

    def __delitem__(self, key: str) -> None:
        del self._values[key]

    def __iter__(self) -> cabc.Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"ExecutionEnvironment({len(self._values)} variables)"

    def entries(self, variable: str, *, separator: str = os.pathsep) -> list[str]:
        """Return the non-empty entries of a list-valued variable."""
        return [entry for entry in self.get(variable, "").split(separator) if entry]

    def prepend_paths(
        self,
        variable: str,
        entries: cabc.Sequence[str | Path],
        *,
        separator: str = os.pathsep,
    ) -> None:
        """Put ``entries`` in front of ``variable``, keeping their order."""
        new = [str(entry) for entry in entries if str(entry)]
        if not new:
            return
        existing = self.get(variable, "")
        self[variable] = separator.join([*new, existing] if existing else new)
        for entry in new:
            logger.debug("brewexec.path var=%s entry=%s", variable, entry)

    def prepend_path(
        self,
        variable: str,
        entry: str | Path,
        *,
        separator: str = os.pathsep,
    ) -> None:
        """Put a single entry in front of ``variable``."""
        self.prepend_paths(variable, [entry], separator=separator)

    def move_to_front(
        self,
        variable: str,
        entry: str | Path,
        *,
        separator: str = os.pathsep,
    ) -> None:
        """Make ``entry`` the first entry of ``variable``, dropping other copies."""
        target = str(entry)
        remaining = [
            existing
            for existing in self.entries(variable, separator=separator)
            if existing != target
        ]
        self[variable] = separator.join([target, *remaining])
        logger.debug("brewexec.path var=%s entry=%s", variable, target)

    def append_path(
        self,
        variable: str,
        entry: str | Path,
        *,
        separator: str = os.pathsep,
    ) -> None:
        """Put a single entry at the end of ``variable``."""
        existing = self.get(variable, "")
        self[variable] = f"{existing}{separator}{entry}" if existing else str(entry)

    def as_dict(self) -> dict[str, str]:
        """Return a plain dictionary snapshot suitable for ``os.execve``."""
        return dict(self._values)


@dc.dataclass(frozen=True, slots=True)
class BuildOptions:
    """Policy switches for environment construction.

    Attributes
    ----------
    include_all_keg_only_deps:
        Also expose every installed keg-only package, not only the ones the
        manifest declares.
    include_unrelated_keg_only:
        With ``include_all_keg_only_deps``, whether keg-only packages other
        than the toolchain formulae are exposed on hosts that need the
        bundled toolchain.
    skip_missing:
        Skip manifest formulae that are not installed instead of failing.

    """

    include_all_keg_only_deps: bool = False
    include_unrelated_keg_only: bool = True
    skip_missing: bool = False

    @classmethod
    def from_env(cls, env: EnvMapping, **overrides: bool) -> BuildOptions:
        """Read ``HOMEBREW_BUNDLE_EXEC_ALL_KEG_ONLY_DEPS`` from ``env``."""
        options = cls(include_all_keg_only_deps=read_flag(env, ALL_KEG_ONLY_DEPS_VAR))
        return dc.replace(options, **overrides)


@dc.dataclass(frozen=True, slots=True)
class ExposedKeg:
    """A package whose directories are layered into the environment."""

    name: str
    path: Path
    version: EffectiveVersion


def _unique_formulae(
    requirements: cabc.Iterable[PackageRequirement],
) -> list[PackageRequirement]:
    seen: set[str] = set()
    formulae: list[PackageRequirement] = []
    for requirement in requirements:
        if requirement.kind is not RequirementKind.FORMULA:
            continue
        if requirement.name in seen:
            continue
        seen.add(requirement.name)
        formulae.append(requirement)
    return formulae


class EnvironmentBuilder:
    """Build the execution environment for a set of manifest requirements.

    Parameters
    ----------
    layout:
        Homebrew prefix and Cellar locations.
    provider:
        Installed-package metadata store.
    platform:
        Toolchain capability check; defaults to the running host.
    stdenv:
        Baseline build-variable constructor.

    """

    __slots__ = ("_layout", "_platform", "_provider", "_stdenv")

    def __init__(
        self,
        *,
        layout: HomebrewLayout,
        provider: PackageMetadataProvider,
        platform: PlatformCapabilities | None = None,
        stdenv: BuildEnvironmentConstructor | None = None,
    ) -> None:
        self._layout = layout
        self._provider = provider
        self._platform = platform if platform is not None else HostPlatform()
        self._stdenv = stdenv if stdenv is not None else StandardBuildEnvironment()

    def keg_path(self, version: EffectiveVersion) -> Path:
        """Return the directory exposing ``version``.

        Overridden versions point at the version-pinned keg in the Cellar;
        installed versions use the stable ``opt`` symlink.
        """
        if version.overridden:
            return self._layout.keg_path(version.name, version.version)
        return self._layout.opt_path(version.name)

    def _expose(
        self,
        resolver: VersionResolver,
        requirement: PackageRequirement,
        *,
        allow_missing: bool,
    ) -> ExposedKeg | None:
        version = resolver.resolve(requirement, allow_missing=allow_missing)
        if version is None:
            return None
        return ExposedKeg(
            name=requirement.name,
            path=self.keg_path(version),
            version=version,
        )

    def _extra_keg_only(
        self,
        declared: cabc.Container[str],
        options: BuildOptions,
    ) -> list[PackageInfo]:
        toolchain_needed = self._platform.needs_bundled_toolchain()
        extras: list[PackageInfo] = []
        for info in self._provider.installed():
            if not info.keg_only or info.name in declared:
                continue
            if info.name in TOOLCHAIN_FORMULAE:
                if not toolchain_needed:
                    continue
            elif toolchain_needed and not options.include_unrelated_keg_only:
                continue
            extras.append(info)
        return extras

    def build(
        self,
        requirements: cabc.Iterable[PackageRequirement],
        base_env: EnvMapping,
        options: BuildOptions | None = None,
    ) -> ExecutionEnvironment:
        """Return a new environment exposing ``requirements``.

        Parameters
        ----------
        requirements:
            Manifest requirements in declaration order; only formulae are
            exposed.
        base_env:
            Inherited environment; copied, never modified.
        options:
            Construction policy; read from ``base_env`` when omitted.

        Returns
        -------
        ExecutionEnvironment
            The layered environment.

        Raises
        ------
        UnresolvedDependencyError
            If a formula is neither installed nor overridden and
            ``skip_missing`` is not set.
        ConfigurationError
            If a version override is malformed.
        """
        opts = options if options is not None else BuildOptions.from_env(base_env)
        env = ExecutionEnvironment(base_env)
        env.pop(ALL_KEG_ONLY_DEPS_VAR, None)
        resolver = VersionResolver(base_env, self._provider)

        formulae = _unique_formulae(requirements)
        kegs: list[ExposedKeg] = []
        for requirement in formulae:
            keg = self._expose(resolver, requirement, allow_missing=opts.skip_missing)
            if keg is not None:
                kegs.append(keg)
        if opts.include_all_keg_only_deps:
            declared = {requirement.name for requirement in formulae}
            for info in self._extra_keg_only(declared, opts):
                extra = PackageRequirement(info.name)
                keg = self._expose(resolver, extra, allow_missing=True)
                if keg is not None:
                    kegs.append(keg)

        for variable, value in self._stdenv.build([keg.path for keg in kegs]).items():
            env.prepend_path(variable, value, separator=separator_for(variable))
        env.prepend_paths(
            "MANPATH",
            [
                keg.path / subdir
                for keg in kegs
                for subdir in MANPAGE_SUBDIRS
                if (keg.path / subdir).is_dir()
            ],
        )
        env.prepend_paths(
            "PATH",
            [
                keg.path / "bin"
                for keg in kegs
                # pinned kegs are exposed even when absent from the Cellar
                if keg.version.overridden or (keg.path / "bin").is_dir()
            ],
        )

        for requirement in formulae:
            if requirement.name in RUNTIME_MANAGERS:
                root = runtime_manager_root(env, requirement.name)
                env.prepend_path("PATH", root / "shims")

        logger.info(
            "brewexec.environment kegs=%s",
            ",".join(f"{keg.name}@{keg.version.version}" for keg in kegs),
        )
        return env


__all__ = [
    "MANPAGE_SUBDIRS",
    "RUNTIME_MANAGERS",
    "TOOLCHAIN_FORMULAE",
    "BuildOptions",
    "EnvironmentBuilder",
    "ExecutionEnvironment",
    "ExposedKeg",
]
