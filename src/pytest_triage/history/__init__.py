"""History-based test prioritization.

The ExecutionHistoryStore parses a log of past test executions into an
ordered per-test history (most recent first) and answers aggregate queries
about it. The HistoryPrioritizer uses those queries to run recently and
frequently failing tests first.

Exports:
    Execution: One historical run of a test
    ExecutionHistoryStore: Per-test execution history and queries
    HistoryPrioritizer: Orders tests by failure recency and frequency
"""

from __future__ import annotations

from pytest_triage.history.execution import Execution
from pytest_triage.history.prioritizer import HistoryPrioritizer
from pytest_triage.history.store import NEVER_FAILED, ExecutionHistoryStore


__all__ = ['NEVER_FAILED', 'Execution', 'ExecutionHistoryStore', 'HistoryPrioritizer']
