"""The prioritizer contract and the registry of available prioritizers.

A prioritizer is initialized once with the full candidate list, then pulled
one test at a time until no candidates are left. Each pull removes the
selected test from the candidate list.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from pytest_triage.faultprediction.engine import FaultPrioritizer
from pytest_triage.faultprediction.schwa import check_prerequisites as check_schwa_prerequisites
from pytest_triage.history.prioritizer import HistoryPrioritizer


if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from pathlib import Path

    from pytest_triage.config import TriageConfig
    from pytest_triage.identity import TestCase, TestCaseStore

    PrioritizerFactory = Callable[[TriageConfig, Path, TestCaseStore], 'TestCasePrioritizer']
    PrerequisiteCheck = Callable[[TriageConfig, Path | None], list[str]]


logger = logging.getLogger(__name__)


@runtime_checkable
class TestCasePrioritizer(Protocol):
    """Protocol for all test prioritization strategies."""

    def init(self, candidates: list[TestCase]) -> None:
        """Prepare the strategy for the given candidates.

        All blocking work (reading files, running tools) happens here.
        """
        ...

    def select_test_case(self, candidates: list[TestCase]) -> TestCase:
        """Remove and return the next test to run.

        Args:
            candidates: Non-empty list of tests not selected yet.
        """
        ...


def prioritize(prioritizer: TestCasePrioritizer, candidates: Iterable[TestCase]) -> list[TestCase]:
    """Order candidates by pulling a prioritizer until none are left.

    The caller's candidates are not modified.

    Args:
        prioritizer: The strategy to drive.
        candidates: The tests to order.

    Returns:
        The candidates in execution order.
    """
    remaining = list(candidates)
    prioritizer.init(remaining)
    ordered: list[TestCase] = []
    while remaining:
        ordered.append(prioritizer.select_test_case(remaining))
    logger.info('Prioritized %d tests with %s', len(ordered), type(prioritizer).__name__)
    return ordered


class PrioritizerRegistry:
    """Registry of prioritization strategies by name.

    Each strategy is registered with a factory building it from the run
    configuration and an optional prerequisite check run before the factory.

    Example:
        >>> registry = default_prioritizers()
        >>> sorted(registry.available())
        ['history', 'schwa']
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._factories: dict[str, PrioritizerFactory] = {}
        self._prerequisites: dict[str, PrerequisiteCheck] = {}

    def register(
        self,
        name: str,
        factory: PrioritizerFactory,
        prerequisites: PrerequisiteCheck | None = None,
    ) -> None:
        """Register a strategy.

        Args:
            name: The name used in configuration.
            factory: Builds the prioritizer from (config, rootdir, test_cases).
            prerequisites: Returns the failure messages of unmet prerequisites.
        """
        self._factories[name] = factory
        if prerequisites is not None:
            self._prerequisites[name] = prerequisites

    def check_prerequisites(self, name: str, config: TriageConfig, rootdir: Path | None) -> list[str]:
        """Return the failure messages of the strategy's unmet prerequisites."""
        check = self._prerequisites.get(name)
        return check(config, rootdir) if check is not None else []

    def create(
        self,
        name: str,
        config: TriageConfig,
        rootdir: Path,
        test_cases: TestCaseStore,
    ) -> TestCasePrioritizer:
        """Build a registered strategy.

        Raises:
            KeyError: If no strategy is registered with the given name.
        """
        if name not in self._factories:
            raise KeyError(f"Unknown prioritizer: '{name}'")
        return self._factories[name](config, rootdir, test_cases)

    def available(self) -> list[str]:
        """List all registered strategy names."""
        return list(self._factories.keys())


def default_prioritizers() -> PrioritizerRegistry:
    """Return a registry holding the built-in strategies."""
    registry = PrioritizerRegistry()
    registry.register('history', HistoryPrioritizer.from_config)
    registry.register(
        'schwa',
        FaultPrioritizer.from_config,
        prerequisites=check_schwa_prerequisites,
    )
    return registry
