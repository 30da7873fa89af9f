"""FaultPrioritizer: ordering tests by the fault-proneness of what they cover.

The prioritizer consumes a fault ranking one group of files at a time. For
each group it finds the candidate tests whose covered lines intersect the
lines of any file in the group, and emits them as one wave before moving
to the next group. When the ranking is exhausted, every remaining candidate
is emitted in its original order.

Example:
    >>> from pytest_triage.coverage.mapper import CoverageMap
    >>> from pytest_triage.faultprediction.signal import StaticFaultSignalProvider
    >>> from pytest_triage.identity import TestCaseStore
    >>> tests = TestCaseStore()
    >>> t1, t2 = tests.from_id('tests/test_a.py::t1'), tests.from_id('tests/test_a.py::t2')
    >>> prioritizer = FaultPrioritizer(StaticFaultSignalProvider(), CoverageMap(), lambda path: None)
    >>> candidates = [t1, t2]
    >>> prioritizer.init(candidates)
    >>> prioritizer.select_test_case(candidates) is t1
    True
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pytest_triage.coverage.collector import load_coverage_file
from pytest_triage.errors import ConfigurationError
from pytest_triage.faultprediction.schwa import SchwaProvider
from pytest_triage.identity import SourceUnitStore
from pytest_triage.objectives import default_objectives


if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from pytest_triage.config import TriageConfig
    from pytest_triage.coverage.mapper import CoverageIndex
    from pytest_triage.faultprediction.signal import FaultSignalProvider, FaultUnit
    from pytest_triage.identity import SourceUnit, TestCase, TestCaseStore
    from pytest_triage.objectives import ObjectiveRegistry


logger = logging.getLogger(__name__)


class FaultPrioritizer:
    """Selects tests wave by wave from a fault ranking.

    Attributes:
        provider: Source of the fault ranking, collected by init().
        coverage: Coverage index joining tests to source units.
        resolver: Maps a ranked file path to its source unit, or None if the
            path is not a registered production unit.
        group_size: Number of ranked files batched into one wave.
        objective: Optional sort key ordering tests within a wave.
        remaining: Ranked files not yet turned into a wave.
        active: The files of the current wave.
        pending: Tests of the current wave not yet selected.
    """

    def __init__(
        self,
        provider: FaultSignalProvider,
        coverage: CoverageIndex,
        resolver: Callable[[str], SourceUnit | None],
        group_size: int = 1,
        objective: Callable[[TestCase], Any] | None = None,
    ) -> None:
        """Create a fault prioritizer.

        Raises:
            ConfigurationError: If group_size is below 1.
        """
        if group_size < 1:
            msg = f'group_size must be at least 1, got {group_size}'
            raise ConfigurationError(msg)
        self.provider = provider
        self.coverage = coverage
        self.resolver = resolver
        self.group_size = group_size
        self.objective = objective
        self.remaining: list[FaultUnit] = []
        self.active: list[FaultUnit] = []
        self.pending: list[TestCase] = []
        self._waves = 0

    @classmethod
    def from_config(
        cls,
        config: TriageConfig,
        rootdir: Path,
        test_cases: TestCaseStore,  # noqa: ARG003
        objectives: ObjectiveRegistry | None = None,
    ) -> FaultPrioritizer:
        """Build a schwa-driven prioritizer for a project.

        Loads the per-test coverage data, registers every measured production
        module as a source unit and resolves ranked paths against rootdir.

        Args:
            config: The run configuration.
            rootdir: The project root, a git repository.
            test_cases: Registry of the candidate tests.
            objectives: Registry to resolve the secondary objective from.

        Raises:
            ConfigurationError: If the secondary objective is unknown.
        """
        coverage_map = load_coverage_file(config.coverage_file).coverage_map

        units = SourceUnitStore()
        for file_path in coverage_map.measured_files():
            units.register_file(file_path, config.source_extension)
        logger.debug('Registered %d production source units', len(units))

        objective = None
        if config.secondary_objective is not None:
            registry = objectives if objectives is not None else default_objectives()
            objective = registry.get(config.secondary_objective, coverage_map)

        return cls(
            provider=SchwaProvider.from_config(config, rootdir),
            coverage=coverage_map,
            resolver=lambda path: units.resolve(rootdir / path),
            group_size=config.group_size,
            objective=objective,
        )

    def init(self, candidates: list[TestCase]) -> None:
        """Collect the fault ranking.

        An unavailable signal leaves the ranking empty, so every candidate
        ends up in the fallback wave.
        """
        signal = self.provider.collect()
        self.remaining = list(signal.units)
        self.active = []
        self.pending = []
        self._waves = 0
        if not signal.available:
            logger.info('Prioritizing %d tests without a fault ranking: %s', len(candidates), signal.reason)
        else:
            logger.info('Prioritizing %d tests over %d ranked files', len(candidates), len(self.remaining))

    def select_test_case(self, candidates: list[TestCase]) -> TestCase:
        """Remove and return the next test to run.

        Args:
            candidates: Tests not selected yet, in their original order.
                The selected test is removed from this list.

        Returns:
            The first test of the current wave.

        Raises:
            ValueError: If there are no candidates left.
        """
        if not candidates:
            msg = 'select_test_case requires at least one candidate'
            raise ValueError(msg)

        while not self.pending and self.remaining:
            self._refill(candidates)

        if not self.pending:
            logger.debug('Fault ranking exhausted; %d tests left in collection order', len(candidates))
            self.pending = list(candidates)

        if self.objective is not None:
            self.pending.sort(key=self.objective)

        selected = self.pending.pop(0)
        candidates.remove(selected)
        return selected

    def _refill(self, candidates: list[TestCase]) -> None:
        """Take the next group of ranked files and queue the tests covering them."""
        self.active = self.remaining[: self.group_size]
        del self.remaining[: self.group_size]
        self._waves += 1

        queued: dict[TestCase, None] = {}
        for fault_unit in self.active:
            for test_case in self._tests_covering(candidates, fault_unit):
                queued.setdefault(test_case, None)
        self.pending = list(queued)

        logger.debug(
            'Wave %d: %s -> %d tests',
            self._waves,
            ', '.join(unit.path for unit in self.active),
            len(self.pending),
        )

    def _tests_covering(self, candidates: list[TestCase], fault_unit: FaultUnit) -> list[TestCase]:
        unit = self.resolver(fault_unit.path)
        if unit is None:
            logger.debug('%s is not a production source unit; skipping', fault_unit.path)
            return []
        owned = self.coverage.lines_of(unit)
        if not owned:
            return []
        return [test_case for test_case in candidates if not owned.isdisjoint(self.coverage.lines_covered(test_case))]
