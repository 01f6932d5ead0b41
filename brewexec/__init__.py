"""brewexec package.

Runs a command under an environment built from the formulae a Brewfile
declares: each formula's ``bin`` and ``man`` directories are put in front of
``PATH`` and ``MANPATH`` (at an overridden version when
``HOMEBREW_BUNDLE_FORMULA_VERSION_<NAME>`` is set), runtime-manager shims go
first, and the process is then replaced by the requested command.

Example:
>>> from brewexec import override_variable_name
>>> override_variable_name("openssl")
'HOMEBREW_BUNDLE_FORMULA_VERSION_OPENSSL'

"""

from __future__ import annotations

from brewexec.command import CommandResolver, ResolvedCommand, is_literal_path
from brewexec.environment import BuildOptions, EnvironmentBuilder, ExecutionEnvironment
from brewexec.errors import (
    BundleExecError,
    CommandNotFoundError,
    ConfigurationError,
    LaunchFailure,
    ManifestNotFoundError,
    ManifestReadError,
    ManifestSyntaxError,
    UnresolvedDependencyError,
    UsageError,
)
from brewexec.invocation import (
    BundleExec,
    InvocationRequest,
    InvocationStage,
    Subcommand,
)
from brewexec.manifest import ManifestLocation, load_manifest, parse_manifest
from brewexec.requirement import (
    EffectiveVersion,
    PackageInfo,
    PackageRequirement,
    RequirementKind,
    VersionSource,
)
from brewexec.versions import VersionResolver, override_variable_name

PACKAGE_NAME = "brewexec"

__all__ = [
    "PACKAGE_NAME",
    "BuildOptions",
    "BundleExec",
    "BundleExecError",
    "CommandNotFoundError",
    "CommandResolver",
    "ConfigurationError",
    "EffectiveVersion",
    "EnvironmentBuilder",
    "ExecutionEnvironment",
    "InvocationRequest",
    "InvocationStage",
    "LaunchFailure",
    "ManifestLocation",
    "ManifestNotFoundError",
    "ManifestReadError",
    "ManifestSyntaxError",
    "PackageInfo",
    "PackageRequirement",
    "RequirementKind",
    "ResolvedCommand",
    "Subcommand",
    "UnresolvedDependencyError",
    "UsageError",
    "VersionResolver",
    "VersionSource",
    "is_literal_path",
    "load_manifest",
    "override_variable_name",
    "parse_manifest",
]
