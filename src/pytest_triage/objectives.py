"""Secondary objectives for ordering tests within a prioritization wave.

Fault-based prioritization finds the tests covering the most fault-prone
files, but says nothing about their order within that wave. A secondary
objective is a sort key that breaks the tie. Every key ends with the test's
canonical name, so the order within a wave is total and deterministic.

Available objectives:
    greedy: Tests covering more lines first.
    specificity: Tests covering fewer lines first. Specific tests tend to
        pinpoint a fault with less noise.

Example:
    >>> registry = default_objectives()
    >>> sorted(registry.available())
    ['greedy', 'specificity']
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pytest_triage.errors import ConfigurationError


if TYPE_CHECKING:
    from collections.abc import Callable

    from pytest_triage.coverage.mapper import CoverageIndex
    from pytest_triage.identity import TestCase

    SortKey = Callable[[TestCase], tuple[Any, ...]]
    ObjectiveFactory = Callable[[CoverageIndex], SortKey]


class _LineCounts:
    """Caches the number of lines each test covers."""

    def __init__(self, coverage: CoverageIndex) -> None:
        self._coverage = coverage
        self._cache: dict[TestCase, int] = {}

    def __call__(self, test_case: TestCase) -> int:
        if test_case not in self._cache:
            self._cache[test_case] = len(self._coverage.lines_covered(test_case))
        return self._cache[test_case]


def greedy(coverage: CoverageIndex) -> SortKey:
    """Order tests by the number of lines they cover, most first."""
    line_count = _LineCounts(coverage)
    return lambda test_case: (-line_count(test_case), test_case.name)


def specificity(coverage: CoverageIndex) -> SortKey:
    """Order tests by the number of lines they cover, fewest first."""
    line_count = _LineCounts(coverage)
    return lambda test_case: (line_count(test_case), test_case.name)


class ObjectiveRegistry:
    """Registry of secondary objectives by name.

    Example:
        >>> registry = ObjectiveRegistry()
        >>> registry.register('greedy', greedy)
        >>> 'greedy' in registry.available()
        True
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._factories: dict[str, ObjectiveFactory] = {}

    def register(
        self,
        name: str,
        factory: ObjectiveFactory,
    ) -> None:
        """Register an objective factory under a name.

        Args:
            name: The name used in configuration.
            factory: Builds the sort key from a coverage index.
        """
        self._factories[name] = factory

    def get(self, name: str, coverage: CoverageIndex) -> SortKey:
        """Build the sort key of a named objective.

        Args:
            name: The registered name of the objective.
            coverage: The coverage index the key reads from.

        Returns:
            A sort key over test cases.

        Raises:
            ConfigurationError: If no objective is registered with the given name.
        """
        if name not in self._factories:
            msg = f"Unknown secondary objective: '{name}'. Available objectives are: {sorted(self._factories)}"
            raise ConfigurationError(msg)
        return self._factories[name](coverage)

    def available(self) -> list[str]:
        """List all registered objective names."""
        return list(self._factories.keys())


def default_objectives() -> ObjectiveRegistry:
    """Return a registry holding the built-in objectives."""
    registry = ObjectiveRegistry()
    registry.register('greedy', greedy)
    registry.register('specificity', specificity)
    return registry
