"""Pytest configuration for the behavioural test suite.

Scenarios are written in Gherkin under ``tests/features`` and bound to steps
via pytest-bdd. Pytest does not collect ``.feature`` files on its own, so a
feature file named on the command line would otherwise select nothing. This
collector turns each selected file into a single check that it is a usable
feature definition.
"""

from __future__ import annotations

import typing as typ

import pytest

if typ.TYPE_CHECKING:
    from pathlib import Path


class FeatureFile(pytest.File):
    """Collect a ``.feature`` file as one validation item."""

    def collect(self) -> list[pytest.Item]:
        """Return the single validation item for this file."""
        return [FeatureFileItem.from_parent(self, name=self.path.name)]


class FeatureFileItem(pytest.Item):
    """Checks that a selected feature file declares scenarios."""

    def runtest(self) -> None:
        """Require a ``Feature:`` header and at least one scenario."""
        content = self.path.read_text(encoding="utf-8")
        if "Feature:" not in content:
            msg = f"{self.path} does not declare a Feature."
            raise AssertionError(msg)
        if "Scenario" not in content:
            msg = f"{self.path} declares no scenarios."
            raise AssertionError(msg)


def pytest_collect_file(
    file_path: Path,
    parent: pytest.Collector,
) -> FeatureFile | None:
    """Collect ``.feature`` files so they can be selected on the CLI."""
    if file_path.suffix != ".feature":
        return None
    return FeatureFile.from_parent(parent, path=file_path)
