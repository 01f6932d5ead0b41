"""Behavioural tests for bundle exec invocations."""

from __future__ import annotations

from pytest_bdd import scenario


@scenario("../features/bundle_exec.feature", "Missing Brewfile is fatal")
def test_missing_brewfile_is_fatal() -> None:
    """Behavioural guard rail for invocations without a Brewfile."""


@scenario(
    "../features/bundle_exec.feature",
    "Bare command is found on PATH and launched",
)
def test_bare_command_launched() -> None:
    """Behavioural coverage for PATH search and directory pinning."""


@scenario(
    "../features/bundle_exec.feature",
    "Command directory already on PATH is moved to the front",
)
def test_command_directory_not_duplicated() -> None:
    """Behavioural coverage for pinning a directory already on PATH."""


@scenario(
    "../features/bundle_exec.feature",
    "Bare command missing from PATH is never launched",
)
def test_missing_command_never_launched() -> None:
    """Behavioural coverage for resolution failing before launch."""


@scenario(
    "../features/bundle_exec.feature",
    "Literal command paths are launched as given",
)
def test_literal_command_paths() -> None:
    """Behavioural coverage for commands given as paths."""
