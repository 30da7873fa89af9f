"""ExecutionHistoryStore for querying historical test executions.

The history log is a CSV file with one row per observed execution (not per
test), so many rows are expected for each test. Columns, in order:

    project_id, version_id, num_revisions, revision_id,
    test_name, test_runtime, test_outcome, test_stack_trace

The header row is skipped and columns are read by position. Each execution
is inserted into its test's history at index ``abs(revision_id)``, clamped
to the current length of that history, so index 0 is the most recent run.
Rows with revision id 0 have no assigned revision and are skipped.

Example:
    >>> store = ExecutionHistoryStore()
    >>> store.execution_count(store.test_cases.from_id('a::never_seen'))
    0
"""

from __future__ import annotations

import csv
import logging
import os
import sys
from typing import TYPE_CHECKING

from pytest_triage.errors import ConfigurationError, HistoryParseError
from pytest_triage.history.execution import Execution
from pytest_triage.identity import TestCase, TestCaseStore, split_test_id


if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path


logger = logging.getLogger(__name__)

COLUMNS = (
    'project_id',
    'version_id',
    'num_revisions',
    'revision_id',
    'test_name',
    'test_runtime',
    'test_outcome',
    'test_stack_trace',
)
REVISION_ID = COLUMNS.index('revision_id')
TEST_NAME = COLUMNS.index('test_name')
TEST_RUNTIME = COLUMNS.index('test_runtime')
TEST_OUTCOME = COLUMNS.index('test_outcome')
TEST_STACK_TRACE = COLUMNS.index('test_stack_trace')

PASS_OUTCOME = 'pass'

# Returned by time_since_last_failure for tests that never failed.
NEVER_FAILED = sys.maxsize


class ExecutionHistoryStore:
    """Per-test execution history loaded from a CSV log.

    The store is filled once by init() or load() and is read-only afterwards.
    All queries accept any TestCase, including tests absent from the log.

    Attributes:
        test_cases: Registry used to resolve test names from the log.
    """

    def __init__(self, test_cases: TestCaseStore | None = None) -> None:
        """Create an empty store.

        Args:
            test_cases: Registry to resolve test identities through. A private
                registry is created if none is given.
        """
        self.test_cases = test_cases if test_cases is not None else TestCaseStore()
        self._histories: dict[TestCase, list[Execution]] = {}

    def __len__(self) -> int:
        """Return the number of tests seen in the log."""
        return len(self._histories)

    def __contains__(self, test_case: TestCase) -> bool:
        return test_case in self._histories

    def init(self, candidates: Sequence[TestCase], history_file: Path | None) -> None:
        """Validate the history file location and load it.

        Args:
            candidates: The tests about to be prioritized.
            history_file: Location of the history log.

        Raises:
            ConfigurationError: If no history file is configured or it is not
                a readable file. Raised before any parsing.
            HistoryParseError: If a row of the log is malformed.
        """
        if history_file is None:
            msg = (
                'History based prioritization needs a readable file containing the history of the '
                'test cases; set --triage-history-file or history_file in [tool.pytest-triage]'
            )
            raise ConfigurationError(msg)

        if not history_file.is_file() or not os.access(history_file, os.R_OK):
            msg = f'History file {history_file} does not exist or is not readable'
            raise ConfigurationError(msg)

        self.load(history_file)

        known = sum(1 for tc in candidates if self.execution_count(tc) > 0)
        logger.info('%d of %d candidate tests have execution history', known, len(candidates))

    def load(self, history_file: Path) -> None:
        """Parse the history log, replacing any previously loaded history.

        Args:
            history_file: Location of the history log.

        Raises:
            HistoryParseError: If a row is malformed. Nothing is kept from a
                failed load.
        """
        histories: dict[TestCase, list[Execution]] = {}
        skipped = 0

        with history_file.open(newline='', encoding='utf-8') as f:
            reader = csv.reader(f)
            next(reader, None)
            for row in reader:
                if not row:
                    continue
                if not self._insert_row(histories, row, reader.line_num):
                    skipped += 1

        self._histories = histories
        logger.info(
            'Loaded %d executions for %d tests from %s',
            sum(len(history) for history in histories.values()),
            len(histories),
            history_file,
        )
        if skipped:
            logger.debug('Skipped %d executions without an assigned revision', skipped)

    def _insert_row(
        self,
        histories: dict[TestCase, list[Execution]],
        row: list[str],
        line_number: int,
    ) -> bool:
        """Insert one log row into the histories being built.

        Returns:
            False if the row has no assigned revision and was skipped.
        """
        if len(row) < TEST_STACK_TRACE:
            msg = f'Line {line_number}: expected {len(COLUMNS)} columns, got {len(row)}'
            raise HistoryParseError(msg)

        try:
            class_name, method_name = split_test_id(row[TEST_NAME].strip())
        except ValueError as exc:
            raise HistoryParseError(f'Line {line_number}: {exc}') from exc

        test_case = self.test_cases.with_parts(class_name, method_name)
        history = histories.setdefault(test_case, [])

        try:
            index = abs(int(row[REVISION_ID]))
            duration = int(row[TEST_RUNTIME])
        except ValueError as exc:
            raise HistoryParseError(f'Line {line_number}: invalid numeric field: {exc}') from exc

        if duration < 0:
            msg = f'Line {line_number}: test_runtime must not be negative, got {duration}'
            raise HistoryParseError(msg)

        if index == 0:
            return False

        # The stack trace column is not decoded into a failure cause yet.
        execution = Execution(
            duration=duration,
            passed=row[TEST_OUTCOME].strip() == PASS_OUTCOME,
            failure_cause=None,
        )
        history.insert(min(index, len(history)), execution)
        return True

    def history(self, test_case: TestCase) -> list[Execution]:
        """Return the executions of a test, most recent first."""
        return list(self._histories.get(test_case, ()))

    def execution_count(self, test_case: TestCase) -> int:
        """Return the number of recorded executions, 0 for unknown tests."""
        return len(self._histories.get(test_case, ()))

    def failure_count(self, test_case: TestCase) -> int:
        """Return the number of failed executions, 0 for unknown tests."""
        return sum(1 for execution in self._histories.get(test_case, ()) if execution.failed)

    def has_failed(self, test_case: TestCase) -> bool:
        """Return True if any recorded execution of the test failed."""
        return any(execution.failed for execution in self._histories.get(test_case, ()))

    def time_since_last_failure(self, test_case: TestCase) -> int:
        """Return how many runs ago the test last failed.

        Returns:
            0 if the most recent run failed, 1 if the run before it was the
            last failure, and so on. NEVER_FAILED if the test is unknown or
            has never failed.
        """
        for distance, execution in enumerate(self._histories.get(test_case, ())):
            if execution.failed:
                return distance
        return NEVER_FAILED

    def average_duration(self, test_case: TestCase) -> float | None:
        """Return the mean recorded duration of a test, or None if unknown."""
        history = self._histories.get(test_case)
        if not history:
            return None
        return sum(execution.duration for execution in history) / len(history)
