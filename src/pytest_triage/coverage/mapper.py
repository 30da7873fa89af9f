"""CoverageMap for mapping tests to the source lines they execute.

The CoverageMap is the in-memory coverage index used by fault-based
prioritization. It answers two questions: which lines does a test execute,
and which lines does a source unit own. A test covers a unit when the two
sets intersect.

Example:
    >>> coverage_map = CoverageMap()
    >>> coverage_map.add('src/auth.py', 42, 'test_login(tests/test_auth.py)')
    >>> len(coverage_map)
    1
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol


if TYPE_CHECKING:
    from collections.abc import Iterator

    from pytest_triage.identity import SourceUnit, TestCase


Line = tuple[str, int]


class CoverageIndex(Protocol):
    """Protocol for the coverage data the prioritization engine consumes."""

    def lines_covered(self, test_case: TestCase) -> frozenset[Line]:
        """Return the (file, line) pairs executed by a test."""
        ...

    def lines_of(self, unit: SourceUnit) -> frozenset[Line]:
        """Return the (file, line) pairs owned by a source unit."""
        ...


class CoverageMap:
    """Maps source locations (file:line) to the canonical names of the tests executing them.

    Lines can also be recorded without a test (for example lines executed
    while importing modules), so that a file owns every line measured in it.

    Attributes:
        _tests_by_line: Internal dict mapping (file, line) to sets of test names.
        _lines_by_test: Internal dict mapping test names to sets of (file, line).
        _lines_by_file: Internal dict mapping file paths to sets of line numbers.
    """

    def __init__(self) -> None:
        """Create an empty coverage map."""
        self._tests_by_line: dict[Line, set[str]] = {}
        self._lines_by_test: dict[str, set[Line]] = {}
        self._lines_by_file: dict[str, set[int]] = {}

    def __len__(self) -> int:
        """Return the number of source locations in the map."""
        return sum(len(lines) for lines in self._lines_by_file.values())

    def add_line(self, file_path: str, line_number: int) -> None:
        """Record that a source line was measured, without attributing it to a test."""
        self._lines_by_file.setdefault(file_path, set()).add(line_number)

    def add(self, file_path: str, line_number: int, test_name: str) -> None:
        """Add a coverage mapping from a source location to a test.

        Args:
            file_path: Path to the source file.
            line_number: Line number in the source file.
            test_name: Canonical name of the test that executes this line.
        """
        self.add_line(file_path, line_number)
        location = (file_path, line_number)
        self._tests_by_line.setdefault(location, set()).add(test_name)
        self._lines_by_test.setdefault(test_name, set()).add(location)

    def get_tests(self, file_path: str, line_number: int) -> set[str]:
        """Get the names of the tests that execute a source location.

        Returns:
            A set of canonical test names. Empty if no test covers this location.
        """
        return set(self._tests_by_line.get((file_path, line_number), ()))

    def lines_covered(self, test_case: TestCase) -> frozenset[Line]:
        """Return the (file, line) pairs executed by a test."""
        return frozenset(self._lines_by_test.get(test_case.name, ()))

    def lines_of(self, unit: SourceUnit) -> frozenset[Line]:
        """Return the (file, line) pairs measured in a source unit's file."""
        lines = self._lines_by_file.get(unit.file_path, ())
        return frozenset((unit.file_path, line_number) for line_number in lines)

    def __contains__(self, location: tuple[str, int]) -> bool:
        """Check if a source location is in the map.

        Args:
            location: A tuple of (file_path, line_number).
        """
        file_path, line_number = location
        return line_number in self._lines_by_file.get(file_path, ())

    def measured_files(self) -> list[str]:
        """Return the paths of all files with recorded lines."""
        return list(self._lines_by_file)

    def tests(self) -> list[str]:
        """Return the names of all tests with recorded coverage."""
        return list(self._lines_by_test)

    def locations(self) -> Iterator[Line]:
        """Iterate over all source locations in the map.

        Yields:
            Tuples of (file_path, line_number) for each location.
        """
        for file_path, lines in self._lines_by_file.items():
            for line_number in sorted(lines):
                yield file_path, line_number
