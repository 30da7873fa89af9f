"""Execution dataclass representing one historical run of a test."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Execution:
    """One recorded run of a test case.

    Attributes:
        duration: Runtime of the test in the log's time unit.
        passed: Whether the test passed.
        failure_cause: Opaque reference to the failure detail. Failure detail
            is not decoded yet, so this is always None.
    """

    duration: int
    passed: bool
    failure_cause: object | None = None

    @property
    def failed(self) -> bool:
        """Return True if this run failed."""
        return not self.passed
