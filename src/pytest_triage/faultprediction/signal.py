"""Fault signals: ranked fault-prone source files.

A FaultSignalProvider produces a FaultSignal once per run. A signal is either
a ranking of FaultUnits (possibly empty) or "unavailable" with a reason, for
example because the fault predictor could not be run. An unavailable signal
is not an error: prioritization carries on in collection order.

Example:
    >>> provider = StaticFaultSignalProvider([FaultUnit('shop/billing.py', 0.9)])
    >>> signal = provider.collect()
    >>> signal.available, [unit.path for unit in signal.units]
    (True, ['shop/billing.py'])
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable


if TYPE_CHECKING:
    from collections.abc import Iterable


@dataclass(frozen=True)
class FaultUnit:
    """A source file with its predicted probability of containing a fault.

    Attributes:
        path: Path of the source file, relative to the project root.
        prob: Fault probability reported by the predictor.
    """

    path: str
    prob: float


@dataclass(frozen=True)
class FaultSignal:
    """Result of collecting a fault ranking.

    Attributes:
        units: Fault units, most relevant first. Empty when unavailable.
        reason: Why no signal is available, or None when it is.
    """

    units: tuple[FaultUnit, ...] = field(default_factory=tuple)
    reason: str | None = None

    @property
    def available(self) -> bool:
        """Return True if the predictor produced a ranking."""
        return self.reason is None

    @classmethod
    def ranked(cls, units: Iterable[FaultUnit]) -> FaultSignal:
        """Create an available signal holding units in the given order."""
        return cls(units=tuple(units))

    @classmethod
    def unavailable(cls, reason: str) -> FaultSignal:
        """Create a signal recording that no ranking could be produced."""
        return cls(units=(), reason=reason)


@runtime_checkable
class FaultSignalProvider(Protocol):
    """Protocol for sources of fault rankings."""

    def collect(self) -> FaultSignal:
        """Produce the fault ranking for this run.

        Returns:
            The ranking, or an unavailable signal if none could be produced.
        """
        ...


class StaticFaultSignalProvider:
    """Provider returning a fixed, already ordered ranking.

    Attributes:
        signal: The signal returned by every collect() call.
    """

    def __init__(self, units: Iterable[FaultUnit] = ()) -> None:
        self.signal = FaultSignal.ranked(units)

    @classmethod
    def unavailable(cls, reason: str) -> StaticFaultSignalProvider:
        """Create a provider whose signal is unavailable."""
        provider = cls()
        provider.signal = FaultSignal.unavailable(reason)
        return provider

    def collect(self) -> FaultSignal:
        """Return the fixed signal."""
        return self.signal
