"""HistoryPrioritizer for ordering tests by their failure history.

Tests that failed most recently run first. Among tests whose last failure is
equally recent, the ones that failed more often run first. Tests that never
failed keep their collection order at the end.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pytest_triage.history.store import ExecutionHistoryStore


if TYPE_CHECKING:
    from pathlib import Path

    from pytest_triage.config import TriageConfig
    from pytest_triage.identity import TestCase, TestCaseStore


class HistoryPrioritizer:
    """Prioritizer driven by an ExecutionHistoryStore.

    Attributes:
        history_file: Location of the history log.
        store: The history store, filled by init().
    """

    def __init__(self, history_file: Path | None, test_cases: TestCaseStore | None = None) -> None:
        """Create a history prioritizer.

        Args:
            history_file: Location of the history log.
            test_cases: Registry shared with the code producing the candidates.
        """
        self.history_file = history_file
        self.store = ExecutionHistoryStore(test_cases)
        self._positions: dict[TestCase, int] = {}

    @classmethod
    def from_config(
        cls,
        config: TriageConfig,
        rootdir: Path,  # noqa: ARG003
        test_cases: TestCaseStore,
    ) -> HistoryPrioritizer:
        """Build a history prioritizer sharing the candidates' test registry."""
        return cls(config.history_file, test_cases)

    def init(self, candidates: list[TestCase]) -> None:
        """Load the history log.

        Raises:
            ConfigurationError: If the history file is missing or unreadable.
            HistoryParseError: If the history file is malformed.
        """
        self.store.init(candidates, self.history_file)
        self._positions = {test_case: position for position, test_case in enumerate(candidates)}

    def _priority(self, test_case: TestCase) -> tuple[int, int, int]:
        return (
            self.store.time_since_last_failure(test_case),
            -self.store.failure_count(test_case),
            self._positions.get(test_case, len(self._positions)),
        )

    def select_test_case(self, candidates: list[TestCase]) -> TestCase:
        """Remove and return the candidate with the most pressing failure history."""
        if not candidates:
            msg = 'select_test_case requires at least one candidate'
            raise ValueError(msg)
        selected = min(candidates, key=self._priority)
        candidates.remove(selected)
        return selected
