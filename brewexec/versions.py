"""Effective version resolution for manifest formulae.

An explicit per-formula override in the environment always wins and is used
verbatim, without consulting the package store. Otherwise the installed
version reported by the metadata provider is used.

Example
-------
>>> override_variable_name("openssl@3")
'HOMEBREW_BUNDLE_FORMULA_VERSION_OPENSSL_3'

"""

from __future__ import annotations

import logging
import re
import typing as typ

from brewexec._config import FORMULA_VERSION_PREFIX
from brewexec.errors import ConfigurationError, UnresolvedDependencyError
from brewexec.requirement import (
    EffectiveVersion,
    PackageRequirement,
    RequirementKind,
    VersionSource,
)

if typ.TYPE_CHECKING:
    from brewexec._config import EnvMapping
    from brewexec.metadata import PackageMetadataProvider

logger = logging.getLogger(__name__)

_NON_ALPHANUMERIC = re.compile(r"[^A-Z0-9]")


def override_variable_name(name: str) -> str:
    """Return the environment variable that pins the version of ``name``.

    The name is upper-cased and every character outside ``A-Z0-9`` becomes an
    underscore, so ``homebrew/core/node@20`` maps to
    ``HOMEBREW_BUNDLE_FORMULA_VERSION_HOMEBREW_CORE_NODE_20``.
    """
    return FORMULA_VERSION_PREFIX + _NON_ALPHANUMERIC.sub("_", name.upper())


def _validate_override(variable: str, value: str) -> str:
    if "/" in value or "\x00" in value or value in {".", ".."}:
        msg = f"invalid {variable} value {value!r}; expected a version string"
        raise ConfigurationError(msg)
    return value


class VersionResolver:
    """Resolve the version of each formula that the environment exposes.

    Parameters
    ----------
    env:
        Environment mapping to read overrides from.
    provider:
        Package metadata store consulted when no override is set.

    """

    __slots__ = ("_env", "_provider")

    def __init__(self, env: EnvMapping, provider: PackageMetadataProvider) -> None:
        self._env = env
        self._provider = provider

    def override_for(self, name: str) -> str | None:
        """Return the override for ``name``; blank values count as unset.

        Raises
        ------
        ConfigurationError
            If the override would escape the package's keg directory.
        """
        variable = override_variable_name(name)
        value = self._env.get(variable, "")
        if not value.strip():
            return None
        return _validate_override(variable, value)

    @typ.overload
    def resolve(
        self,
        requirement: PackageRequirement,
        *,
        allow_missing: typ.Literal[False] = ...,
    ) -> EffectiveVersion: ...

    @typ.overload
    def resolve(
        self,
        requirement: PackageRequirement,
        *,
        allow_missing: bool,
    ) -> EffectiveVersion | None: ...

    def resolve(
        self,
        requirement: PackageRequirement,
        *,
        allow_missing: bool = False,
    ) -> EffectiveVersion | None:
        """Return the effective version of ``requirement``.

        Parameters
        ----------
        requirement:
            A formula requirement from the manifest.
        allow_missing:
            When True, return ``None`` for formulae that are neither
            overridden nor installed instead of raising.

        Returns
        -------
        EffectiveVersion | None
            The pinned or installed version.

        Raises
        ------
        ConfigurationError
            If the requirement is not a formula, or its override is malformed.
        UnresolvedDependencyError
            If the formula is not installed, has no override and
            ``allow_missing`` is False.
        """
        if requirement.kind is not RequirementKind.FORMULA:
            msg = (
                f"cannot resolve a version for {requirement.kind} "
                f"{requirement.name!r}; only formulae are versioned"
            )
            raise ConfigurationError(msg)

        override = self.override_for(requirement.name)
        if override is not None:
            resolved = EffectiveVersion(
                name=requirement.name,
                version=override,
                source=VersionSource.OVERRIDE,
            )
        else:
            info = self._provider.lookup(requirement.name)
            if info is None:
                if allow_missing:
                    logger.info(
                        "brewexec.version name=%s skipped=missing",
                        requirement.name,
                    )
                    return None
                msg = (
                    f"formula {requirement.name!r} is not installed; run "
                    "`brew bundle install` or set "
                    f"{override_variable_name(requirement.name)}"
                )
                raise UnresolvedDependencyError(msg)
            resolved = EffectiveVersion(
                name=requirement.name,
                version=info.version,
                source=VersionSource.INSTALLED,
            )

        logger.debug(
            "brewexec.version name=%s version=%s source=%s",
            resolved.name,
            resolved.version,
            resolved.source,
        )
        return resolved


__all__ = ["VersionResolver", "override_variable_name"]
