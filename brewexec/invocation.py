"""End-to-end bundle exec invocations.

A ``BundleExec`` walks one invocation through its stages::

    idle -> requirements-loaded -> environment-built -> command-resolved -> launched

Any failure moves straight to ``failed``. Nothing is retried and no command
is launched unless every earlier stage succeeded. Collaborators (manifest
loader, metadata provider, platform check, path searcher and launcher) are
injected so each stage can be exercised without touching process state.

Example
-------
BundleExec().run(InvocationRequest(argv=("bundle", "install")))
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import enum
import logging
import os
import re
import sys
import typing as typ
from pathlib import Path

from brewexec._config import HOMEBREW_PATH_VAR, HomebrewLayout
from brewexec.command import CommandResolver
from brewexec.environment import BuildOptions, EnvironmentBuilder
from brewexec.errors import BundleExecError, UsageError
from brewexec.launcher import ExecLauncher
from brewexec.manifest import ManifestLocation, load_manifest
from brewexec.metadata import CellarMetadataProvider

if typ.TYPE_CHECKING:
    from brewexec._config import EnvMapping
    from brewexec.command import PathSearcher, ResolvedCommand
    from brewexec.environment import ExecutionEnvironment
    from brewexec.launcher import Launcher
    from brewexec.metadata import PackageMetadataProvider, PlatformCapabilities
    from brewexec.requirement import PackageRequirement
    from brewexec.stdenv import BuildEnvironmentConstructor

type ManifestLoader = cabc.Callable[
    [EnvMapping, ManifestLocation],
    cabc.Sequence[PackageRequirement],
]

logger = logging.getLogger(__name__)

DEFAULT_SHELL = "/bin/bash"
_SHELL_SPECIAL = re.compile(r'(["\\$`])')


class InvocationStage(enum.StrEnum):
    """Lifecycle stages of a single invocation."""

    IDLE = "idle"
    REQUIREMENTS_LOADED = "requirements-loaded"
    ENVIRONMENT_BUILT = "environment-built"
    COMMAND_RESOLVED = "command-resolved"
    LAUNCHED = "launched"
    FAILED = "failed"


class Subcommand(enum.StrEnum):
    """What to do with the constructed environment.

    Members
    -------
    EXEC
        Launch the requested command.
    SH
        Launch the user's shell.
    ENV
        Print the environment as shell ``export`` statements.
    """

    EXEC = "exec"
    SH = "sh"
    ENV = "env"


@dc.dataclass(frozen=True, slots=True)
class InvocationRequest:
    """Parameters of one invocation.

    Attributes
    ----------
    argv:
        Command and arguments to launch (``exec`` only).
    subcommand:
        Action to perform once the environment is built.
    location:
        Where to find the manifest.
    skip_missing:
        Skip manifest formulae that are not installed instead of failing.

    """

    argv: tuple[str, ...] = ()
    subcommand: Subcommand = Subcommand.EXEC
    location: ManifestLocation = dc.field(default_factory=ManifestLocation)
    skip_missing: bool = False


def shell_quote(value: str) -> str:
    """Escape ``value`` for use inside a double-quoted shell string."""
    return _SHELL_SPECIAL.sub(r"\\\1", value)


def format_exports(env: cabc.Mapping[str, str]) -> str:
    """Render ``env`` as sorted ``export KEY="value"`` lines.

    Variables with empty values are omitted.
    """
    lines = [
        f'export {key}="{shell_quote(value)}"'
        for key, value in sorted(env.items())
        if value
    ]
    return "".join(f"{line}\n" for line in lines)


class BundleExec:
    """Run commands under the environment described by a manifest.

    Parameters
    ----------
    environ:
        Inherited environment; defaults to a snapshot of ``os.environ``. It is
        read, never modified.
    loader:
        Manifest loader; defaults to reading a Brewfile relative to ``cwd``.
    provider:
        Installed-package metadata; defaults to reading the Cellar.
    platform:
        Toolchain capability check; defaults to the running host.
    stdenv:
        Baseline build-variable constructor.
    searcher:
        Executable lookup used to resolve bare command names.
    launcher:
        Process replacement strategy; defaults to ``os.execve``.
    cwd:
        Directory manifests are resolved against.
    stdin:
        Stream read when the manifest is ``-``.
    stdout:
        Stream the ``env`` subcommand writes to.

    """

    def __init__(  # noqa: PLR0913 - every collaborator is injectable
        self,
        *,
        environ: EnvMapping | None = None,
        loader: ManifestLoader | None = None,
        provider: PackageMetadataProvider | None = None,
        platform: PlatformCapabilities | None = None,
        stdenv: BuildEnvironmentConstructor | None = None,
        searcher: PathSearcher | None = None,
        launcher: Launcher | None = None,
        cwd: Path | None = None,
        stdin: typ.IO[str] | None = None,
        stdout: typ.IO[str] | None = None,
    ) -> None:
        self._environ: dict[str, str] = dict(
            environ if environ is not None else os.environ,
        )
        self._cwd = cwd
        self._stdin = stdin
        self._stdout = stdout
        self._loader = loader if loader is not None else self._load_brewfile
        self._provider = provider
        self._platform = platform
        self._stdenv = stdenv
        self._resolver = CommandResolver(searcher)
        self._launcher = launcher if launcher is not None else ExecLauncher()
        self._stage = InvocationStage.IDLE

    @property
    def stage(self) -> InvocationStage:
        """Return the stage the invocation last reached."""
        return self._stage

    def _advance(self, stage: InvocationStage) -> None:
        self._stage = stage
        logger.debug("brewexec.stage stage=%s", stage)

    def _load_brewfile(
        self,
        env: EnvMapping,
        location: ManifestLocation,
    ) -> tuple[PackageRequirement, ...]:
        return load_manifest(
            env,
            location,
            cwd=self._cwd if self._cwd is not None else Path.cwd(),
            stdin=self._stdin,
        )

    def _builder(self) -> EnvironmentBuilder:
        layout = HomebrewLayout.from_env(self._environ)
        provider = (
            self._provider
            if self._provider is not None
            else CellarMetadataProvider(layout)
        )
        return EnvironmentBuilder(
            layout=layout,
            provider=provider,
            platform=self._platform,
            stdenv=self._stdenv,
        )

    def _command_argv(self, request: InvocationRequest) -> tuple[str, ...]:
        if request.subcommand is Subcommand.SH:
            return (self._environ.get("SHELL") or DEFAULT_SHELL,)
        if request.subcommand is Subcommand.EXEC and not request.argv:
            msg = "No command to execute was specified!"
            raise UsageError(msg)
        return request.argv

    def prepare(self, request: InvocationRequest) -> ExecutionEnvironment:
        """Load the manifest and build the environment for ``request``.

        Raises
        ------
        BundleExecError
            If the manifest is missing or malformed, or a dependency cannot
            be resolved.
        """
        requirements = self._loader(self._environ, request.location)
        self._advance(InvocationStage.REQUIREMENTS_LOADED)
        options = BuildOptions.from_env(
            self._environ,
            skip_missing=request.skip_missing,
        )
        env = self._builder().build(requirements, self._environ, options)
        if request.subcommand is not Subcommand.EXEC:
            homebrew_path = self._environ.get(HOMEBREW_PATH_VAR, "")
            if homebrew_path:
                env.append_path("PATH", homebrew_path)
        self._advance(InvocationStage.ENVIRONMENT_BUILT)
        return env

    def resolve(
        self,
        argv: cabc.Sequence[str],
        env: ExecutionEnvironment,
    ) -> ResolvedCommand:
        """Resolve ``argv[0]`` against ``env`` and pin its directory on PATH.

        A bare command found on ``PATH`` has its directory moved to the front of
        ``PATH``, leaving exactly one copy, so the same executable stays first
        in line for anything it spawns.

        Raises
        ------
        CommandNotFoundError
            If a bare command is absent from the constructed ``PATH``.
        """
        found = self._resolver.locate(argv[0], env.get("PATH", "")) if argv else None
        if found is not None:
            env.move_to_front("PATH", os.path.dirname(found))
        command = self._resolver.resolve_command(argv, env.get("PATH", ""))
        self._advance(InvocationStage.COMMAND_RESOLVED)
        return command

    def run(self, request: InvocationRequest) -> int:
        """Carry out ``request``.

        For ``exec`` and ``sh`` this does not return on success because the
        process is replaced. For ``env`` it prints the environment and returns
        ``0``.

        Raises
        ------
        BundleExecError
            On any failure; the invocation is left in the ``failed`` stage and
            nothing has been launched.
        """
        try:
            argv = self._command_argv(request)
            env = self.prepare(request)
            if request.subcommand is Subcommand.ENV:
                stream = self._stdout if self._stdout is not None else sys.stdout
                stream.write(format_exports(env))
                return 0
            command = self.resolve(argv, env)
            self._advance(InvocationStage.LAUNCHED)
            self._launcher.launch(command.executable_path, command.argv, env.as_dict())
        except BundleExecError:
            self._advance(InvocationStage.FAILED)
            raise


__all__ = [
    "DEFAULT_SHELL",
    "BundleExec",
    "InvocationRequest",
    "InvocationStage",
    "ManifestLoader",
    "Subcommand",
    "format_exports",
    "shell_quote",
]
