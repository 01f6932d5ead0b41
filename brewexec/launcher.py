"""Process replacement."""

from __future__ import annotations

import logging
import os
import sys
import typing as typ

from brewexec.errors import LaunchFailure

if typ.TYPE_CHECKING:
    import collections.abc as cabc

logger = logging.getLogger(__name__)


class Launcher(typ.Protocol):
    """Replaces the current process with a command."""

    def launch(
        self,
        executable_path: str,
        argv: cabc.Sequence[str],
        env: cabc.Mapping[str, str],
    ) -> typ.NoReturn:
        """Run ``executable_path`` in place of the current process."""
        ...


class ExecLauncher:
    """``Launcher`` backed by :func:`os.execve`.

    There is no child process: on success the call never returns and the
    command's exit status becomes the exit status of this process.
    """

    def launch(
        self,
        executable_path: str,
        argv: cabc.Sequence[str],
        env: cabc.Mapping[str, str],
    ) -> typ.NoReturn:
        """Replace the process image.

        Raises
        ------
        LaunchFailure
            If the operating system refuses to execute ``executable_path``.
        """
        logger.info("brewexec.launch path=%s argv=%r", executable_path, tuple(argv))
        # Buffered output is discarded by execve.
        for stream in (sys.stdout, sys.stderr):
            stream.flush()
        try:
            os.execve(executable_path, list(argv), dict(env))
        except OSError as exc:
            raise LaunchFailure(executable_path, exc) from exc


__all__ = ["ExecLauncher", "Launcher"]
