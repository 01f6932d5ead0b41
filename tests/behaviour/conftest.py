"""Step definitions shared by the bundle exec behavioural scenarios."""

from __future__ import annotations

import logging
import os
import shlex
import typing as typ

import pytest
from pytest_bdd import given, parsers, then, when

from brewexec.errors import BundleExecError, CommandNotFoundError
from brewexec.invocation import BundleExec, InvocationRequest, InvocationStage
from tests.helpers.homebrew import (
    CommandLaunched,
    FakePlatform,
    RecordingLauncher,
    RecordingSearcher,
    install_keg,
)

if typ.TYPE_CHECKING:
    from pathlib import Path

    from brewexec._config import HomebrewLayout

_DEFAULT_VERSION = "1.0"


@pytest.fixture
def bundle_state() -> dict[str, object]:
    """Shared mutable state for behaviour scenarios."""
    return {"searcher": RecordingSearcher(), "launcher": RecordingLauncher()}


def _launched(bundle_state: dict[str, object]) -> CommandLaunched:
    launched = bundle_state.get("launched")
    assert isinstance(launched, CommandLaunched), "Expected a launched command"
    return launched


def _launched_path(bundle_state: dict[str, object]) -> list[str]:
    return _launched(bundle_state).env["PATH"].split(os.pathsep)


@given("a project without a Brewfile")
def given_no_brewfile(tmp_path: Path) -> None:
    """Leave the project directory without a Brewfile."""
    assert not (tmp_path / "Brewfile").exists()


@given(parsers.parse('a Brewfile declaring "{name}"'))
def given_brewfile(layout: HomebrewLayout, tmp_path: Path, name: str) -> None:
    """Install the formula and declare it in the project's Brewfile."""
    install_keg(layout, name, _DEFAULT_VERSION)
    (tmp_path / "Brewfile").write_text(f"brew '{name}'\n", encoding="utf-8")


@given(parsers.parse('"{command}" is installed at "{location}"'))
def given_command_location(
    bundle_state: dict[str, object],
    command: str,
    location: str,
) -> None:
    """Make the path searcher report ``command`` at ``location``."""
    searcher = typ.cast("RecordingSearcher", bundle_state["searcher"])
    searcher.locations[command] = location


@given(parsers.parse('"{name}" version "{version}" is installed but not active'))
def given_inactive_version(layout: HomebrewLayout, name: str, version: str) -> None:
    """Install a second keg without pointing the opt symlink at it."""
    install_keg(layout, name, version, link_opt=False)


@given(parsers.parse('a keg-only formula "{name}" is installed'))
def given_keg_only(layout: HomebrewLayout, name: str) -> None:
    """Install a keg that is not linked into the prefix."""
    install_keg(layout, name, _DEFAULT_VERSION, keg_only=True)


@given(parsers.parse('the environment variable "{name}" is "{value}"'))
def given_environment_variable(
    base_environ: dict[str, str],
    name: str,
    value: str,
) -> None:
    """Set a variable in the inherited environment."""
    base_environ[name] = value


def _run(
    bundle_state: dict[str, object],
    environ: dict[str, str],
    cwd: Path,
    argv: tuple[str, ...],
) -> None:
    bundle = BundleExec(
        environ=environ,
        cwd=cwd,
        platform=FakePlatform(),
        searcher=typ.cast("RecordingSearcher", bundle_state["searcher"]),
        launcher=typ.cast("RecordingLauncher", bundle_state["launcher"]),
    )
    bundle_state["bundle"] = bundle
    try:
        bundle.run(InvocationRequest(argv=argv))
    except CommandLaunched as launched:
        bundle_state["launched"] = launched
    except BundleExecError as exc:
        bundle_state["error"] = exc


@when("I run bundle exec with no command")
def when_run_without_command(
    bundle_state: dict[str, object],
    base_environ: dict[str, str],
    tmp_path: Path,
    caplog: pytest.LogCaptureFixture,
) -> None:
    """Invoke bundle exec with an empty argv."""
    caplog.set_level(logging.DEBUG, logger="brewexec")
    _run(bundle_state, base_environ, tmp_path, ())
    bundle_state["logs"] = [record.getMessage() for record in caplog.records]


@when(parsers.parse('I run bundle exec "{command_line}"'))
def when_run_command(
    bundle_state: dict[str, object],
    base_environ: dict[str, str],
    tmp_path: Path,
    command_line: str,
) -> None:
    """Invoke bundle exec with the given command line."""
    _run(bundle_state, base_environ, tmp_path, tuple(shlex.split(command_line)))


@then("the invocation fails before the environment is built")
def then_fails_before_environment(bundle_state: dict[str, object]) -> None:
    """The invocation failed and never reached the environment stage."""
    assert isinstance(bundle_state.get("error"), BundleExecError), (
        "Expected a fatal bundle exec error"
    )
    bundle = typ.cast("BundleExec", bundle_state["bundle"])
    assert bundle.stage is InvocationStage.FAILED
    logs = typ.cast("list[str]", bundle_state["logs"])
    assert not any("stage=environment-built" in message for message in logs), (
        "The environment must not be built"
    )


@then("the invocation fails with a command not found error")
def then_command_not_found(bundle_state: dict[str, object]) -> None:
    """The bare command could not be resolved."""
    assert isinstance(bundle_state.get("error"), CommandNotFoundError)


@then("nothing is launched")
def then_nothing_launched(bundle_state: dict[str, object]) -> None:
    """The launcher was never called."""
    launcher = typ.cast("RecordingLauncher", bundle_state["launcher"])
    assert launcher.launches == [], "No command may run after a failure"


@then(parsers.parse('"{executable}" is launched with "{command_line}"'))
def then_launched_with(
    bundle_state: dict[str, object],
    executable: str,
    command_line: str,
) -> None:
    """The launcher received the resolved path and the full argv."""
    launched = _launched(bundle_state)
    assert launched.executable_path == executable
    assert launched.argv == tuple(shlex.split(command_line))


@then(parsers.parse('PATH contains "{entry}" exactly once'))
def then_path_contains_once(bundle_state: dict[str, object], entry: str) -> None:
    """The entry appears exactly once in the launched PATH."""
    assert _launched_path(bundle_state).count(entry) == 1


@then(parsers.parse("the command was searched for {count:d} times"))
def then_search_count(bundle_state: dict[str, object], count: int) -> None:
    """The path searcher was consulted the expected number of times."""
    searcher = typ.cast("RecordingSearcher", bundle_state["searcher"])
    assert len(searcher.calls) == count


@then(parsers.parse('the first PATH entry ends with "{suffix}"'))
def then_first_path_entry_ends_with(
    bundle_state: dict[str, object],
    suffix: str,
) -> None:
    """The highest-priority PATH entry ends with ``suffix``."""
    assert _launched_path(bundle_state)[0].endswith(suffix)


@then(parsers.parse('the first PATH entry is "{entry}"'))
def then_first_path_entry_is(bundle_state: dict[str, object], entry: str) -> None:
    """The highest-priority PATH entry is exactly ``entry``."""
    assert _launched_path(bundle_state)[0] == entry


@then("the inherited PATH entries follow the package entries")
def then_inherited_entries_last(
    bundle_state: dict[str, object],
    base_environ: dict[str, str],
) -> None:
    """The inherited PATH is preserved intact at the end."""
    inherited = base_environ["PATH"].split(os.pathsep)
    assert _launched_path(bundle_state)[-len(inherited) :] == inherited


@then(parsers.parse('PATH includes the bin directory of "{name}"'))
def then_path_includes_keg(
    bundle_state: dict[str, object],
    layout: HomebrewLayout,
    name: str,
) -> None:
    """The keg's opt bin directory is on the launched PATH."""
    assert str(layout.opt_path(name) / "bin") in _launched_path(bundle_state)


@then(parsers.parse('the launched environment does not contain "{name}"'))
def then_environment_lacks(bundle_state: dict[str, object], name: str) -> None:
    """The variable was consumed and not passed to the command."""
    assert name not in _launched(bundle_state).env
