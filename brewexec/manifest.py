"""Brewfile manifest loading.

A Brewfile is a Ruby DSL. Only the entry directives matter here, so lines are
scanned individually instead of being evaluated: ``brew "name"`` yields a
formula requirement, ``cask "name"`` a cask requirement and the remaining
entry directives (``tap``, ``mas``, ...) an ``other`` requirement. Entry
options, comments and control flow are ignored.

Example
-------
>>> [entry.name for entry in parse_manifest('brew "openssl@3"\\ncask "iterm2"')]
['openssl@3', 'iterm2']

"""

from __future__ import annotations

import dataclasses as dc
import logging
import re
import sys
import typing as typ
from pathlib import Path

from brewexec._config import (
    BUNDLE_FILE_GLOBAL_VAR,
    BUNDLE_FILE_VAR,
    EnvMapping,
    home_directory,
)
from brewexec.errors import (
    ManifestNotFoundError,
    ManifestReadError,
    ManifestSyntaxError,
)
from brewexec.requirement import PackageRequirement, RequirementKind

logger = logging.getLogger(__name__)

STDIN_MARKER = "-"
DEFAULT_MANIFEST_NAME = "Brewfile"
GLOBAL_MANIFEST_NAME = ".Brewfile"

_DIRECTIVE_KINDS: dict[str, RequirementKind] = {
    "brew": RequirementKind.FORMULA,
    "cask": RequirementKind.CASK,
    "tap": RequirementKind.OTHER,
    "mas": RequirementKind.OTHER,
    "vscode": RequirementKind.OTHER,
    "whalebrew": RequirementKind.OTHER,
    "go": RequirementKind.OTHER,
    "cargo": RequirementKind.OTHER,
    "flatpak": RequirementKind.OTHER,
}
_DIRECTIVE_PATTERN = re.compile(
    r"^\s*(?P<directive>" + "|".join(_DIRECTIVE_KINDS) + r")(?=[\s(]|$)",
)
_ENTRY_PATTERN = re.compile(
    r"""^\s*(?P<directive>\w+)\s*\(?\s*(?P<quote>["'])(?P<name>[^"']+)(?P=quote)""",
)


@dc.dataclass(frozen=True, slots=True)
class ManifestLocation:
    """Caller preferences for where the manifest lives.

    Attributes
    ----------
    file:
        Explicit manifest path, or ``"-"`` to read from standard input.
    use_global:
        When True, use the user's global manifest instead of ``./Brewfile``.

    """

    file: str | None = None
    use_global: bool = False


def _strip_comment(line: str) -> str:
    quote: str | None = None
    for index, char in enumerate(line):
        if quote is not None:
            if char == quote:
                quote = None
        elif char in "\"'":
            quote = char
        elif char == "#":
            return line[:index]
    return line


def _parse_line(line: str, *, source: str, lineno: int) -> PackageRequirement | None:
    content = _strip_comment(line).strip()
    directive = _DIRECTIVE_PATTERN.match(content)
    if directive is None:
        return None
    entry = _ENTRY_PATTERN.match(content)
    if entry is None or not entry.group("name").strip():
        keyword = directive.group("directive")
        msg = f"{source}:{lineno}: expected a quoted name after {keyword!r}"
        raise ManifestSyntaxError(msg)
    return PackageRequirement(
        name=entry.group("name").strip(),
        kind=_DIRECTIVE_KINDS[entry.group("directive")],
    )


def parse_manifest(
    text: str,
    *,
    source: str = DEFAULT_MANIFEST_NAME,
) -> tuple[PackageRequirement, ...]:
    """Parse Brewfile text into requirements in declaration order.

    Parameters
    ----------
    text:
        Manifest contents.
    source:
        Name used in error messages.

    Returns
    -------
    tuple[PackageRequirement, ...]
        One requirement per entry directive.

    Raises
    ------
    ManifestSyntaxError
        If an entry directive has no quoted name.
    """
    requirements: list[PackageRequirement] = []
    for lineno, line in enumerate(text.splitlines(), start=1):
        requirement = _parse_line(line, source=source, lineno=lineno)
        if requirement is not None:
            requirements.append(requirement)
    return tuple(requirements)


def locate_manifest(
    env: EnvMapping,
    location: ManifestLocation,
    *,
    cwd: Path,
) -> Path | None:
    """Return the manifest path to read, or ``None`` for standard input.

    Precedence: an explicit ``file``; then ``HOMEBREW_BUNDLE_FILE_GLOBAL`` or
    ``~/.Brewfile`` when ``use_global`` is set; then ``HOMEBREW_BUNDLE_FILE``;
    then ``./Brewfile``.
    """
    if location.file is not None:
        if location.file == STDIN_MARKER:
            return None
        return cwd / location.file
    if location.use_global:
        configured = env.get(BUNDLE_FILE_GLOBAL_VAR, "").strip()
        if configured:
            return cwd / configured
        return home_directory(env) / GLOBAL_MANIFEST_NAME
    configured = env.get(BUNDLE_FILE_VAR, "").strip()
    if configured:
        return cwd / configured
    return cwd / DEFAULT_MANIFEST_NAME


def load_manifest(
    env: EnvMapping,
    location: ManifestLocation | None = None,
    *,
    cwd: Path | None = None,
    stdin: typ.IO[str] | None = None,
) -> tuple[PackageRequirement, ...]:
    """Locate, read and parse the manifest.

    Raises
    ------
    ManifestNotFoundError
        If no manifest exists at the resolved location.
    ManifestReadError
        If the manifest exists but the operating system refuses to read it.
    ManifestSyntaxError
        If the manifest is not UTF-8 or contains a malformed entry.
    """
    path = locate_manifest(
        env,
        location or ManifestLocation(),
        cwd=cwd if cwd is not None else Path.cwd(),
    )
    if path is None:
        stream = stdin if stdin is not None else sys.stdin
        return parse_manifest(stream.read(), source="<stdin>")
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        msg = f"No Brewfile found at {path}"
        raise ManifestNotFoundError(msg) from None
    except IsADirectoryError:
        msg = f"Brewfile path {path} is a directory"
        raise ManifestNotFoundError(msg) from None
    except UnicodeDecodeError as exc:
        msg = f"{path}: Brewfile is not valid UTF-8 ({exc.reason})"
        raise ManifestSyntaxError(msg) from exc
    except OSError as exc:
        msg = f"Brewfile at {path} could not be read: {exc.strerror or exc}"
        raise ManifestReadError(msg) from exc
    requirements = parse_manifest(text, source=str(path))
    logger.debug(
        "brewexec.manifest path=%s entries=%d",
        path,
        len(requirements),
    )
    return requirements


__all__ = [
    "DEFAULT_MANIFEST_NAME",
    "GLOBAL_MANIFEST_NAME",
    "STDIN_MARKER",
    "ManifestLocation",
    "load_manifest",
    "locate_manifest",
    "parse_manifest",
]
