"""Shared pytest fixtures for pytest-triage tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from pytest_triage.history.store import COLUMNS
from pytest_triage.identity import TestCaseStore


if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from pathlib import Path


@pytest.fixture
def test_cases() -> TestCaseStore:
    """Create an empty test identity registry."""
    return TestCaseStore()


@pytest.fixture
def write_history(tmp_path: Path) -> Callable[[Iterable[tuple[str, int, str]]], Path]:
    """Write a history log from (test_name, revision_id, outcome) rows.

    Runtime defaults to 10 and the other columns to fixed values.
    """

    def _write(rows: Iterable[tuple[str, int, str]], name: str = 'history.csv') -> Path:
        lines = [','.join(COLUMNS)]
        for test_name, revision_id, outcome in rows:
            lines.append(f'shop,1,3,{revision_id},{test_name},10,{outcome},')
        path = tmp_path / name
        path.write_text('\n'.join(lines) + '\n')
        return path

    return _write
