"""Error hierarchy for bundle exec invocations.

Every failure raised by the launcher derives from ``BundleExecError`` so the
command-line surface can report it uniformly. None of these errors are
retried; each one aborts the invocation before a process is launched (or, for
``LaunchFailure``, at the moment the launch itself is attempted).
"""

from __future__ import annotations


class BundleExecError(RuntimeError):
    """Base class for fatal bundle exec failures."""


class UsageError(BundleExecError):
    """Raised when the invocation itself is malformed (e.g. no command)."""


class ManifestNotFoundError(BundleExecError):
    """Raised when no manifest exists at the expected location."""


class ManifestReadError(BundleExecError):
    """Raised when the manifest exists but cannot be read."""


class ConfigurationError(BundleExecError):
    """Raised for malformed overrides or unsupported requirement kinds."""


class ManifestSyntaxError(ConfigurationError):
    """Raised when a manifest entry directive cannot be parsed."""


class UnresolvedDependencyError(BundleExecError):
    """Raised when a required package is not installed and has no override."""


class CommandNotFoundError(BundleExecError):
    """Raised when a bare command name is absent from the constructed PATH."""


class LaunchFailure(BundleExecError):
    """Raised when replacing the process image fails at the OS level.

    Attributes
    ----------
    path:
        Executable path handed to the operating system.
    errno:
        Error number reported by the failed call, when available.
    strerror:
        Operating system error text, when available.

    """

    def __init__(self, path: str, exc: OSError) -> None:
        self.path = path
        self.errno = exc.errno
        self.strerror = exc.strerror
        detail = exc.strerror or str(exc)
        super().__init__(f"failed to execute {path}: {detail}")


__all__ = [
    "BundleExecError",
    "CommandNotFoundError",
    "ConfigurationError",
    "LaunchFailure",
    "ManifestNotFoundError",
    "ManifestReadError",
    "ManifestSyntaxError",
    "UnresolvedDependencyError",
    "UsageError",
]
