"""Fault ranking from the schwa defect predictor.

schwa (https://github.com/andrefreitas/schwa) mines a git repository and
estimates, per file, the probability of containing a fault from the number
of revisions, authors and bug fixes touching it. SchwaProvider runs it as
an external process with JSON output and turns its report into a FaultSignal.

Any failure to run schwa or to read its report degrades to an unavailable
signal; it never aborts the test run. Missing prerequisites, on the other
hand, are checked once up front by check_prerequisites().
"""

from __future__ import annotations

import functools
import json
import logging
import os
from pathlib import Path
import subprocess
import sys
import tempfile
from typing import TYPE_CHECKING, Any

from pytest_triage.faultprediction.signal import FaultSignal, FaultUnit


if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from pytest_triage.config import RankingOrder, TriageConfig

    Runner = Callable[[Sequence[str], Path | None], int]


logger = logging.getLogger(__name__)

SCHWA_SCRIPT = 'schwa'
JSON_FLAG = '-j'


def run_process(command: Sequence[str], output: Path | None = None) -> int:
    """Run a command to completion.

    Args:
        command: The command and its arguments.
        output: File receiving the command's standard output. Output is
            discarded when None.

    Returns:
        The exit code, or -1 if the command could not be started.
    """
    try:
        if output is None:
            result = subprocess.run(  # noqa: S603
                list(command),
                capture_output=True,
                check=False,
            )
        else:
            with output.open('wb') as out:
                result = subprocess.run(  # noqa: S603
                    list(command),
                    stdout=out,
                    stderr=subprocess.PIPE,
                    check=False,
                )
    except OSError as exc:
        logger.debug('Could not start %s: %s', command[0], exc)
        return -1
    return result.returncode


def find_schwa_command(runner: Runner = run_process) -> list[str] | None:
    """Locate a runnable schwa.

    Tries the ``schwa`` script first, then ``python -m schwa``. The result is
    remembered per runner, so the prerequisite check and the provider run
    ``schwa -h`` only once per session.

    Returns:
        The command prefix to invoke schwa with, or None if it is not installed.
    """
    command = _locate_schwa(runner)
    return list(command) if command is not None else None


@functools.cache
def _locate_schwa(runner: Runner) -> tuple[str, ...] | None:
    if runner([SCHWA_SCRIPT, '-h'], None) == 0:
        return (SCHWA_SCRIPT,)
    module_command = (sys.executable, '-m', 'schwa')
    if runner([*module_command, '-h'], None) == 0:
        return module_command
    return None


def parse_schwa_report(
    document: Any,
    extension: str = '.py',
    ranking_order: RankingOrder = 'descending',
) -> list[FaultUnit]:
    """Extract the ranked source files from a schwa JSON report.

    Args:
        document: The decoded JSON report.
        extension: Only children whose path ends with this are kept.
        ranking_order: 'descending' puts the highest probability first,
            'ascending' the lowest.

    Returns:
        Fault units sorted by probability in the requested order. Units with
        equal probability keep their report order.

    Raises:
        ValueError: If the report does not have the expected structure.
    """
    if not isinstance(document, dict) or not isinstance(document.get('children'), list):
        msg = 'schwa report has no children list'
        raise ValueError(msg)

    units: list[FaultUnit] = []
    for child in document['children']:
        if not isinstance(child, dict):
            msg = f'schwa report child is not an object: {child!r}'
            raise ValueError(msg)
        path = child.get('path')
        prob = child.get('prob')
        if not isinstance(path, str) or isinstance(prob, bool) or not isinstance(prob, (int, float)):
            msg = f'schwa report child has no valid path and prob: {child!r}'
            raise ValueError(msg)
        if path.endswith(extension):
            units.append(FaultUnit(path=path, prob=float(prob)))

    units.sort(key=lambda unit: unit.prob, reverse=ranking_order == 'descending')
    return units


class SchwaProvider:
    """Fault signal provider running schwa on the project repository.

    Attributes:
        root: The project root, a git repository.
        extension: Source file extension of ranked files.
        ranking_order: Direction of the probability ranking.
        command: Command prefix to run schwa with. Located on first use if None.
    """

    def __init__(
        self,
        root: Path,
        extension: str = '.py',
        ranking_order: RankingOrder = 'descending',
        command: Sequence[str] | None = None,
        runner: Runner = run_process,
    ) -> None:
        self.root = root
        self.extension = extension
        self.ranking_order = ranking_order
        self.command = list(command) if command is not None else None
        self._runner = runner

    @classmethod
    def from_config(cls, config: TriageConfig, root: Path) -> SchwaProvider:
        """Create a provider from the run configuration."""
        return cls(root, extension=config.source_extension, ranking_order=config.ranking_order)

    def collect(self) -> FaultSignal:
        """Run schwa and rank the source files of its report.

        Returns:
            The ranking, or an unavailable signal if schwa fails or its
            report cannot be read.
        """
        command = self.command if self.command is not None else find_schwa_command(self._runner)
        if command is None:
            return self._unavailable('schwa is not installed')

        fd, name = tempfile.mkstemp(prefix='schwa-json-output', suffix='.tmp')
        os.close(fd)
        output = Path(name)
        try:
            returncode = self._runner([*command, str(self.root), JSON_FLAG], output)
            if returncode != 0:
                return self._unavailable(f'schwa exited with status {returncode}')
            with output.open(encoding='utf-8') as f:
                document = json.load(f)
            units = parse_schwa_report(document, self.extension, self.ranking_order)
        except (OSError, ValueError) as exc:
            return self._unavailable(f'could not read schwa report: {exc}')
        finally:
            output.unlink(missing_ok=True)

        logger.info('schwa ranked %d source files', len(units))
        return FaultSignal.ranked(units)

    @staticmethod
    def _unavailable(reason: str) -> FaultSignal:
        logger.warning('No fault ranking available (%s); tests keep their collection order', reason)
        return FaultSignal.unavailable(reason)


def check_prerequisites(
    config: TriageConfig,
    rootdir: Path | None,
    runner: Runner = run_process,
) -> list[str]:
    """Check everything schwa prioritization needs before the run starts.

    Args:
        config: The run configuration.
        rootdir: The project root.
        runner: Runs commands; replaced in tests.

    Returns:
        The failure message of every unmet prerequisite. Empty if all are met.
    """
    failures: list[str] = []
    if not config.weights_sum_to_one():
        failures.append(
            'Feature weights do not add up to 1. revisions_weight, authors_weight and '
            'fixes_weight in [tool.pytest-triage] should sum to 1'
        )
    if find_schwa_command(runner) is None:
        failures.append(
            'schwa is not installed or is not runnable. Install it from '
            'https://github.com/andrefreitas/schwa and make sure `schwa -h` works'
        )
    if rootdir is None:
        failures.append('In order to use schwa, the project root must be set and must be a git repository')
    return failures
