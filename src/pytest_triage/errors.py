"""Exception hierarchy for pytest-triage.

Every error raised deliberately by pytest-triage derives from TriageError so
the plugin can report it as a usage error instead of a crash.
"""

from __future__ import annotations


class TriageError(Exception):
    """Base class for all pytest-triage errors."""


class ConfigurationError(TriageError, ValueError):
    """A configuration value is missing or invalid.

    Raised before any prioritization starts, for example when the history
    file is not readable or the group size is below 1.
    """


class HistoryParseError(TriageError):
    """A row of the execution history log could not be parsed.

    The whole load is aborted; no partial history is kept.
    """


class PrerequisiteError(TriageError):
    """One or more prerequisites of a prioritizer are not met.

    Attributes:
        failures: The failure message of every unmet prerequisite.
    """

    def __init__(self, failures: list[str]) -> None:
        self.failures = list(failures)
        super().__init__('\n'.join(self.failures))
