"""CoverageCollector for building a CoverageMap from per-test coverage data.

Per-test coverage comes from coverage.py data recorded with dynamic
contexts, as produced by ``pytest --cov --cov-context=test``. Each context
is a pytest node id followed by the test phase (``|setup``, ``|run`` or
``|teardown``); the node id is turned into the test's canonical name.

Example:
    >>> collector = CoverageCollector()
    >>> collector.record_test_coverage('test_login(tests/test_auth.py)', {'src/auth.py': [10, 11]})
    >>> collector.coverage_map.get_tests('src/auth.py', 10)
    {'test_login(tests/test_auth.py)'}
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol

from coverage import CoverageData
from coverage.exceptions import CoverageException

from pytest_triage.coverage.mapper import CoverageMap
from pytest_triage.errors import ConfigurationError
from pytest_triage.identity import canonical_name, split_test_id


if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence
    from pathlib import Path


logger = logging.getLogger(__name__)

CONTEXT_PHASE_SEPARATOR = '|'


class CoverageDataProtocol(Protocol):
    """Protocol for the subset of coverage.py's CoverageData that we read."""

    def measured_files(self) -> Iterable[str]:
        """Return an iterable of file paths that have coverage data."""
        ...

    def lines(self, filename: str) -> Iterable[int] | None:
        """Return the lines covered for a file, or None if not measured."""
        ...

    def contexts_by_lineno(self, filename: str) -> Mapping[int, Sequence[str]]:
        """Return the contexts that executed each line of a file."""
        ...


def name_from_context(context: str) -> str | None:
    """Convert a pytest-cov test context into a canonical test name.

    Args:
        context: A context such as ``tests/test_auth.py::test_login|run``.

    Returns:
        The canonical name (``test_login(tests/test_auth.py)``), or None if the
        context does not identify a test.
    """
    node_id, separator, _ = context.rpartition(CONTEXT_PHASE_SEPARATOR)
    if not separator:
        node_id = context
    try:
        return canonical_name(*split_test_id(node_id))
    except ValueError:
        return None


class CoverageCollector:
    """Collects per-test coverage into a CoverageMap.

    Attributes:
        coverage_map: The CoverageMap storing test-to-line mappings.
        recorded_tests: Set of test names that have been recorded.
    """

    def __init__(self) -> None:
        """Create a new coverage collector."""
        self.coverage_map = CoverageMap()
        self.recorded_tests: set[str] = set()
        self._total_mappings = 0

    def record_test_coverage(
        self,
        test_name: str,
        coverage_data: dict[str, list[int]],
    ) -> None:
        """Record coverage data for a single test.

        Args:
            test_name: Canonical name of the test.
            coverage_data: Dict mapping file paths to lists of line numbers.
        """
        self.recorded_tests.add(test_name)
        for file_path, lines in coverage_data.items():
            for line_number in lines:
                self.coverage_map.add(file_path, line_number, test_name)
                self._total_mappings += 1

    def record_coverage_data(self, coverage_data: CoverageDataProtocol) -> None:
        """Record every measured line and its test contexts from coverage.py data.

        Lines executed outside any test context are still recorded, so that
        each file owns all of its measured lines.

        Args:
            coverage_data: A coverage.py CoverageData object.
        """
        for file_path in coverage_data.measured_files():
            for line_number in coverage_data.lines(file_path) or ():
                self.coverage_map.add_line(file_path, line_number)
            for line_number, contexts in coverage_data.contexts_by_lineno(file_path).items():
                for context in contexts:
                    test_name = name_from_context(context)
                    if test_name is None:
                        continue
                    self.coverage_map.add(file_path, line_number, test_name)
                    self.recorded_tests.add(test_name)
                    self._total_mappings += 1

    def get_stats(self) -> dict[str, Any]:
        """Get statistics about collected coverage data.

        Returns:
            Dict with keys:
                - total_tests: Number of tests recorded
                - total_locations: Number of unique source locations
                - total_mappings: Total number of test-to-location mappings
        """
        return {
            'total_tests': len(self.recorded_tests),
            'total_locations': len(self.coverage_map),
            'total_mappings': self._total_mappings,
        }


def load_coverage_file(path: Path) -> CoverageCollector:
    """Read a coverage.py data file into a CoverageCollector.

    A missing data file yields an empty collector, so fault-based ordering
    degrades to collection order instead of failing.

    Args:
        path: Location of the ``.coverage`` data file.

    Returns:
        A collector holding the file's per-test coverage.

    Raises:
        ConfigurationError: If the file is not a readable coverage.py data file.
    """
    collector = CoverageCollector()
    if not path.is_file():
        logger.warning('Coverage data file %s not found; no test covers any source file', path)
        return collector

    data = CoverageData(basename=str(path))
    try:
        data.read()
        collector.record_coverage_data(data)
    except CoverageException as exc:
        msg = f'Could not read coverage data file {path}: {exc}'
        raise ConfigurationError(msg) from exc

    stats = collector.get_stats()
    if not stats['total_tests']:
        logger.warning(
            'Coverage data in %s has no per-test contexts; record it with --cov-context=test',
            path,
        )
    logger.info(
        'Loaded coverage of %d tests over %d locations from %s',
        stats['total_tests'],
        stats['total_locations'],
        path,
    )
    return collector
