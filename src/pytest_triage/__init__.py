"""pytest-triage: Run the tests most likely to fail first.

pytest-triage is a regression-test prioritization plugin. It reorders the
collected test items using external signals about where failures are likely:

- the historical execution record of each test (recent and frequent
  failures run first), and
- a per-file fault-probability ranking produced by the schwa defect
  predictor, joined with per-test coverage data.

Example:
    Order tests by their failure history::

        $ pytest --triage=history --triage-history-file=history.csv

    Order tests by fault-prone files, two files per wave::

        $ pytest --cov=src --cov-context=test
        $ pytest --triage=schwa --triage-group-size=2
"""

from __future__ import annotations


__version__ = '0.3.0'
__all__ = ['__version__']
