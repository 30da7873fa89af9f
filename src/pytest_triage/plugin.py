"""pytest plugin for regression-test prioritization.

This module provides the pytest plugin hooks that reorder the collected
items with the configured prioritizer. Configuration comes from the
[tool.pytest-triage] section of pyproject.toml, overridden by command-line
options. All configuration errors and unmet prerequisites are reported as
usage errors before any test runs.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from pytest_triage.config import VALID_RANKING_ORDERS, TriageConfig, load_config, merge_configs
from pytest_triage.errors import PrerequisiteError, TriageError
from pytest_triage.identity import TestCaseStore
from pytest_triage.prioritizer import PrioritizerRegistry, default_prioritizers, prioritize


if TYPE_CHECKING:
    from pytest_triage.identity import TestCase


logger = logging.getLogger(__name__)

config_key = pytest.StashKey[TriageConfig]()
registry_key = pytest.StashKey[PrioritizerRegistry]()


def pytest_addoption(parser: pytest.Parser) -> None:
    """Add command-line options for pytest-triage."""
    group = parser.getgroup('triage', 'regression test prioritization')
    group.addoption(
        '--triage',
        action='store',
        default=None,
        dest='triage',
        help='Reorder tests with a prioritizer: history, schwa',
    )
    group.addoption(
        '--triage-history-file',
        action='store',
        default=None,
        dest='triage_history_file',
        help='CSV log of historical test executions (history prioritizer)',
    )
    group.addoption(
        '--triage-coverage-file',
        action='store',
        default=None,
        dest='triage_coverage_file',
        help='coverage.py data file recorded with --cov-context=test (schwa prioritizer)',
    )
    group.addoption(
        '--triage-group-size',
        action='store',
        type=int,
        default=None,
        dest='triage_group_size',
        help='Number of fault-prone files whose tests form one wave (default: 1)',
    )
    group.addoption(
        '--triage-secondary-objective',
        action='store',
        default=None,
        dest='triage_secondary_objective',
        help='Ordering within a wave: greedy, specificity',
    )
    group.addoption(
        '--triage-ranking-order',
        action='store',
        default=None,
        choices=sorted(VALID_RANKING_ORDERS),
        dest='triage_ranking_order',
        help='Run tests of the most (descending) or least (ascending) fault-prone files first',
    )


def pytest_configure(config: pytest.Config) -> None:
    """Load configuration and check the selected prioritizer's prerequisites."""
    rootdir = Path(config.rootpath)
    try:
        triage_config = merge_configs(
            load_config(rootdir),
            cli_algorithm=config.option.triage,
            cli_history_file=config.option.triage_history_file,
            cli_coverage_file=config.option.triage_coverage_file,
            cli_group_size=config.option.triage_group_size,
            cli_secondary_objective=config.option.triage_secondary_objective,
            cli_ranking_order=config.option.triage_ranking_order,
            rootdir=rootdir,
        )
    except TriageError as exc:
        raise pytest.UsageError(f'pytest-triage: {exc}') from exc

    registry = default_prioritizers()
    config.stash[config_key] = triage_config
    config.stash[registry_key] = registry

    algorithm = triage_config.algorithm
    if algorithm is None:
        return

    if algorithm not in registry.available():
        msg = f"pytest-triage: unknown prioritizer '{algorithm}'. Available prioritizers are: {sorted(registry.available())}"
        raise pytest.UsageError(msg)

    failures = registry.check_prerequisites(algorithm, triage_config, rootdir)
    if failures:
        error = PrerequisiteError(failures)
        raise pytest.UsageError(f'pytest-triage: {algorithm} cannot run:\n{error}') from error


def pytest_report_header(config: pytest.Config) -> str | None:
    """Show the active prioritizer in the session header."""
    triage_config = config.stash.get(config_key, None)
    if triage_config is None or triage_config.algorithm is None:
        return None
    return f'triage: {triage_config.algorithm} prioritization'


@pytest.hookimpl(trylast=True)
def pytest_collection_modifyitems(
    session: pytest.Session,  # noqa: ARG001
    config: pytest.Config,
    items: list[pytest.Item],
) -> None:
    """Reorder the collected items with the configured prioritizer."""
    triage_config = config.stash.get(config_key, None)
    if triage_config is None or triage_config.algorithm is None or not items:
        return

    # Duplicate node ids (--keep-duplicates) share a test case and run together.
    test_cases = TestCaseStore()
    items_by_test: dict[TestCase, list[pytest.Item]] = {}
    for item in items:
        items_by_test.setdefault(test_cases.from_id(item.nodeid), []).append(item)

    try:
        prioritizer = config.stash[registry_key].create(
            triage_config.algorithm,
            triage_config,
            Path(config.rootpath),
            test_cases,
        )
        ordered = prioritize(prioritizer, items_by_test)
    except TriageError as exc:
        raise pytest.UsageError(f'pytest-triage: {exc}') from exc

    items[:] = [item for test_case in ordered for item in items_by_test[test_case]]
