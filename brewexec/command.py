"""Command path resolution.

Tokens that contain a path separator (``./configure``, ``bin/install``,
``/usr/bin/true``) are literal paths: they are handed to the launcher
untouched, and any problem with them surfaces as the operating system's own
exec failure. Bare names are searched for on the constructed ``PATH`` and a
miss is fatal.
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import logging
import os
import shutil
import typing as typ

from brewexec.errors import CommandNotFoundError, UsageError

logger = logging.getLogger(__name__)


class PathSearcher(typ.Protocol):
    """Locates executables on a search path."""

    def which(self, command: str, search_path: str) -> str | None:
        """Return the absolute path of ``command`` or ``None``."""
        ...


class ShutilPathSearcher:
    """``PathSearcher`` backed by :func:`shutil.which`."""

    def which(self, command: str, search_path: str) -> str | None:
        """Search ``search_path`` for an executable named ``command``."""
        found = shutil.which(command, path=search_path)
        return os.path.abspath(found) if found is not None else None


def is_literal_path(token: str) -> bool:
    """Return True when ``token`` names a path rather than a bare command."""
    if os.sep in token or (os.altsep is not None and os.altsep in token):
        return True
    return os.path.isabs(token)


@dc.dataclass(frozen=True, slots=True)
class ResolvedCommand:
    """An executable path plus the full argument vector to launch it with.

    Attributes
    ----------
    executable_path:
        Absolute path for searched commands; the literal token otherwise.
    argv:
        Argument vector, starting with the command token as requested.

    """

    executable_path: str
    argv: tuple[str, ...]

    @property
    def token(self) -> str:
        """Return the command token the user asked for."""
        return self.argv[0]


class CommandResolver:
    """Resolve command tokens against a search path.

    Parameters
    ----------
    searcher:
        Executable lookup strategy; defaults to :class:`ShutilPathSearcher`.

    """

    __slots__ = ("_searcher",)

    def __init__(self, searcher: PathSearcher | None = None) -> None:
        self._searcher = searcher if searcher is not None else ShutilPathSearcher()

    def locate(self, token: str, search_path: str) -> str | None:
        """Search for a bare ``token``; literal paths are never searched."""
        if is_literal_path(token):
            return None
        return self._searcher.which(token, search_path)

    def resolve(self, token: str, search_path: str) -> str:
        """Return the path to launch for ``token``.

        Raises
        ------
        CommandNotFoundError
            If ``token`` is a bare name absent from ``search_path``.
        """
        if is_literal_path(token):
            logger.debug("brewexec.resolve token=%s literal=true", token)
            return token
        found = self._searcher.which(token, search_path)
        if found is None:
            msg = f"command was not found in your PATH: {token}"
            raise CommandNotFoundError(msg)
        logger.debug("brewexec.resolve token=%s path=%s", token, found)
        return found

    def resolve_command(
        self,
        argv: cabc.Sequence[str],
        search_path: str,
    ) -> ResolvedCommand:
        """Resolve ``argv[0]`` and pair it with the full argument vector.

        Raises
        ------
        UsageError
            If ``argv`` is empty.
        CommandNotFoundError
            If the command is a bare name absent from ``search_path``.
        """
        if not argv or not argv[0]:
            msg = "No command to execute was specified!"
            raise UsageError(msg)
        return ResolvedCommand(
            executable_path=self.resolve(argv[0], search_path),
            argv=tuple(argv),
        )


__all__ = [
    "CommandResolver",
    "PathSearcher",
    "ResolvedCommand",
    "ShutilPathSearcher",
    "is_literal_path",
]
