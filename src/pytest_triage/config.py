"""Configuration loading for pytest-triage.

This module reads configuration from pyproject.toml [tool.pytest-triage]
section, merges it with command-line options and validates the result.
The resulting TriageConfig is immutable and is passed explicitly to every
component that needs it.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
import math
from pathlib import Path
import tomllib
from typing import Any, Literal

from pytest_triage.errors import ConfigurationError


RankingOrder = Literal['descending', 'ascending']
VALID_RANKING_ORDERS: frozenset[str] = frozenset(('descending', 'ascending'))

DEFAULT_COVERAGE_FILE = '.coverage'


@dataclass(frozen=True)
class TriageConfig:
    """Configuration for pytest-triage.

    Attributes:
        algorithm: Name of the prioritizer to run ('schwa' or 'history').
            None disables reordering.
        history_file: CSV log of historical test executions.
        coverage_file: coverage.py data file recorded with per-test contexts.
        group_size: Number of fault-ranked files batched into one wave.
        secondary_objective: Name of the tie-break ordering applied within a wave.
        revisions_weight: Influence of a file's revision count on its fault probability.
        authors_weight: Influence of a file's author count on its fault probability.
        fixes_weight: Influence of a file's bug-fix count on its fault probability.
        ranking_order: Whether the most fault-prone files come first ('descending')
            or last ('ascending').
        source_extension: Only files with this extension are ranked.
    """

    algorithm: str | None = None
    history_file: Path | None = None
    coverage_file: Path = Path(DEFAULT_COVERAGE_FILE)
    group_size: int = 1
    secondary_objective: str | None = None
    revisions_weight: float = 0.3
    authors_weight: float = 0.2
    fixes_weight: float = 0.5
    ranking_order: RankingOrder = 'descending'
    source_extension: str = '.py'

    def __post_init__(self) -> None:
        """Validate configuration values.

        Raises:
            ConfigurationError: If any configuration value is invalid.
        """
        if isinstance(self.group_size, bool) or not isinstance(self.group_size, int):
            msg = f'group_size must be an integer, got {self.group_size!r}'
            raise ConfigurationError(msg)

        if self.group_size < 1:
            msg = f'group_size must be at least 1, got {self.group_size}'
            raise ConfigurationError(msg)

        for name in ('revisions_weight', 'authors_weight', 'fixes_weight'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
                msg = f'{name} must be a non-negative number, got {value!r}'
                raise ConfigurationError(msg)

        if self.ranking_order not in VALID_RANKING_ORDERS:
            msg = f'Invalid ranking order: {self.ranking_order!r}. Valid orders are: {sorted(VALID_RANKING_ORDERS)}'
            raise ConfigurationError(msg)

        if not self.source_extension:
            msg = 'source_extension must not be empty'
            raise ConfigurationError(msg)

    def weights_sum_to_one(self) -> bool:
        """Return True if the three schwa feature weights add up to 1."""
        total = self.revisions_weight + self.authors_weight + self.fixes_weight
        return math.isclose(total, 1.0, abs_tol=1e-9)


def _as_path(rootdir: Path, value: str | None) -> Path | None:
    if value is None:
        return None
    path = Path(value)
    return path if path.is_absolute() else rootdir / path


def _cli_path(rootdir: Path | None, value: str) -> Path:
    path = Path(value.strip())
    if rootdir is None or path.is_absolute():
        return path
    return rootdir / path


def load_config(rootdir: Path) -> TriageConfig:
    """Load configuration from pyproject.toml.

    Reads the [tool.pytest-triage] section from pyproject.toml in the
    given directory. Returns default configuration if the file or section
    does not exist. Relative paths are resolved against rootdir.

    Args:
        rootdir: Directory containing pyproject.toml.

    Returns:
        TriageConfig with values from pyproject.toml or defaults.

    Raises:
        ConfigurationError: If a configured value is invalid.
    """
    pyproject_path = rootdir / 'pyproject.toml'

    if not pyproject_path.exists():
        return TriageConfig(coverage_file=rootdir / DEFAULT_COVERAGE_FILE)

    with pyproject_path.open('rb') as f:
        data = tomllib.load(f)

    tool_config: dict[str, Any] = data.get('tool', {}).get('pytest-triage', {})

    values: dict[str, Any] = {
        'algorithm': tool_config.get('algorithm'),
        'history_file': _as_path(rootdir, tool_config.get('history_file')),
        'coverage_file': _as_path(rootdir, tool_config.get('coverage_file', DEFAULT_COVERAGE_FILE)),
        'secondary_objective': tool_config.get('secondary_objective'),
    }
    for key in (
        'group_size',
        'revisions_weight',
        'authors_weight',
        'fixes_weight',
        'ranking_order',
        'source_extension',
    ):
        if key in tool_config:
            values[key] = tool_config[key]

    return TriageConfig(**values)


def merge_configs(
    file_config: TriageConfig,
    cli_algorithm: str | None = None,
    cli_history_file: str | None = None,
    cli_coverage_file: str | None = None,
    cli_group_size: int | None = None,
    cli_secondary_objective: str | None = None,
    cli_ranking_order: str | None = None,
    rootdir: Path | None = None,
) -> TriageConfig:
    """Merge CLI arguments with file configuration.

    CLI arguments take precedence over pyproject.toml configuration.
    Empty strings are treated as not provided.

    Args:
        file_config: Configuration loaded from pyproject.toml.
        cli_algorithm: Prioritizer name from --triage.
        cli_history_file: History log path from --triage-history-file.
        cli_coverage_file: Coverage data path from --triage-coverage-file.
        cli_group_size: Group size from --triage-group-size.
        cli_secondary_objective: Tie-break name from --triage-secondary-objective.
        cli_ranking_order: Ranking direction from --triage-ranking-order.
        rootdir: Directory relative CLI paths are resolved against, as for
            paths in pyproject.toml. Relative paths are kept as given when None.

    Returns:
        TriageConfig with CLI values overriding file config where provided.
    """
    overrides: dict[str, Any] = {}
    if cli_algorithm and cli_algorithm.strip():
        overrides['algorithm'] = cli_algorithm.strip()
    if cli_history_file and cli_history_file.strip():
        overrides['history_file'] = _cli_path(rootdir, cli_history_file)
    if cli_coverage_file and cli_coverage_file.strip():
        overrides['coverage_file'] = _cli_path(rootdir, cli_coverage_file)
    if cli_group_size is not None:
        overrides['group_size'] = cli_group_size
    if cli_secondary_objective and cli_secondary_objective.strip():
        overrides['secondary_objective'] = cli_secondary_objective.strip()
    if cli_ranking_order and cli_ranking_order.strip():
        overrides['ranking_order'] = cli_ranking_order.strip()

    return replace(file_config, **overrides)
