"""Per-test coverage for fault-based prioritization.

Fault rankings are about source files; prioritization is about tests. The
coverage index joins the two: a test covers a source unit when it executes
at least one of the unit's lines.

Exports:
    CoverageIndex: Protocol consumed by the FaultPrioritizer
    CoverageMap: In-memory coverage index
    CoverageCollector: Builds a CoverageMap from coverage.py data
"""

from __future__ import annotations

from pytest_triage.coverage.collector import CoverageCollector, load_coverage_file
from pytest_triage.coverage.mapper import CoverageIndex, CoverageMap


__all__ = ['CoverageCollector', 'CoverageIndex', 'CoverageMap', 'load_coverage_file']
