"""Fault-prediction based test prioritization.

An external defect predictor ranks source files by their probability of
containing a fault. The FaultPrioritizer joins that ranking with per-test
coverage so the tests exercising the most fault-prone files run first.

Exports:
    FaultUnit: A ranked source file and its fault probability
    FaultSignal: A ranking, or the reason none is available
    FaultSignalProvider: Protocol for ranking sources
    StaticFaultSignalProvider: Provider returning a fixed ranking
    SchwaProvider: Provider running the schwa predictor
    FaultPrioritizer: Wave-by-wave selection over the ranking
"""

from __future__ import annotations

from pytest_triage.faultprediction.engine import FaultPrioritizer
from pytest_triage.faultprediction.schwa import SchwaProvider
from pytest_triage.faultprediction.signal import (
    FaultSignal,
    FaultSignalProvider,
    FaultUnit,
    StaticFaultSignalProvider,
)


__all__ = [
    'FaultPrioritizer',
    'FaultSignal',
    'FaultSignalProvider',
    'FaultUnit',
    'SchwaProvider',
    'StaticFaultSignalProvider',
]
