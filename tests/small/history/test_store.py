"""Tests for the ExecutionHistoryStore.

The store turns a CSV log with one row per execution into a per-test history
ordered from the most recent run to the oldest, and answers aggregate
queries that are defined for every test, including unknown ones.
"""

from __future__ import annotations

import random

import pytest

from pytest_triage.errors import ConfigurationError, HistoryParseError
from pytest_triage.history.execution import Execution
from pytest_triage.history.store import NEVER_FAILED, ExecutionHistoryStore


@pytest.fixture
def store(test_cases):
    """Create an empty store sharing the test registry fixture."""
    return ExecutionHistoryStore(test_cases)


@pytest.mark.small
class TestInit:
    """Tests for validating the history file location."""

    def test_missing_location_is_a_configuration_error(self, store):
        with pytest.raises(ConfigurationError, match='history'):
            store.init([], None)

    def test_nonexistent_file_is_a_configuration_error(self, store, tmp_path):
        with pytest.raises(ConfigurationError, match='not readable'):
            store.init([], tmp_path / 'missing.csv')

    def test_directory_is_a_configuration_error(self, store, tmp_path):
        with pytest.raises(ConfigurationError):
            store.init([], tmp_path)

    def test_loads_readable_file(self, store, test_cases, write_history):
        path = write_history([('a::m1', 1, 'pass')])

        store.init([test_cases.from_id('a::m1')], path)

        assert store.execution_count(test_cases.from_id('a::m1')) == 1


@pytest.mark.small
class TestConcreteScenario:
    """Three runs of a::m1 at revisions 1, 2, 3 with outcomes fail, pass, fail."""

    @pytest.fixture
    def m1(self, store, test_cases, write_history):
        path = write_history([('a::m1', 1, 'fail'), ('a::m1', 2, 'pass'), ('a::m1', 3, 'fail')])
        store.init([], path)
        return test_cases.from_id('a::m1')

    def test_execution_count(self, store, m1):
        assert store.execution_count(m1) == 3

    def test_failure_count(self, store, m1):
        assert store.failure_count(m1) == 2

    def test_has_failed(self, store, m1):
        assert store.has_failed(m1) is True

    def test_most_recent_run_failed(self, store, m1):
        assert store.time_since_last_failure(m1) == 0

    def test_history_is_most_recent_first(self, store, m1):
        assert [execution.passed for execution in store.history(m1)] == [False, True, False]

    def test_canonical_name(self, m1):
        assert m1.name == 'm1(a)'


@pytest.mark.small
class TestUnknownTests:
    """Queries on tests absent from the log return the documented defaults."""

    def test_defaults_for_unknown_test(self, store, test_cases, write_history):
        store.init([], write_history([('a::m1', 1, 'fail')]))
        unknown = test_cases.from_id('b::never_ran')

        assert store.execution_count(unknown) == 0
        assert store.failure_count(unknown) == 0
        assert store.has_failed(unknown) is False
        assert store.time_since_last_failure(unknown) == NEVER_FAILED
        assert store.history(unknown) == []
        assert store.average_duration(unknown) is None

    def test_defaults_before_loading(self, store, test_cases):
        unknown = test_cases.from_id('b::never_ran')

        assert store.execution_count(unknown) == 0
        assert store.time_since_last_failure(unknown) == NEVER_FAILED

    def test_never_failed_test_has_no_last_failure(self, store, test_cases, write_history):
        store.init([], write_history([('a::m1', 1, 'pass'), ('a::m1', 2, 'pass')]))
        m1 = test_cases.from_id('a::m1')

        assert store.has_failed(m1) is False
        assert store.time_since_last_failure(m1) == NEVER_FAILED


@pytest.mark.small
class TestParsing:
    """Tests for the clamped-insertion parsing rules."""

    def test_revision_zero_is_never_stored(self, store, test_cases, write_history):
        store.init([], write_history([('a::m1', 0, 'fail'), ('a::m1', 1, 'pass'), ('a::m1', 0, 'fail')]))
        m1 = test_cases.from_id('a::m1')

        assert store.execution_count(m1) == 1
        assert store.has_failed(m1) is False

    def test_negative_revision_uses_absolute_value(self, store, test_cases, write_history):
        store.init([], write_history([('a::m1', -1, 'fail'), ('a::m1', -2, 'pass')]))
        m1 = test_cases.from_id('a::m1')

        assert [execution.passed for execution in store.history(m1)] == [False, True]

    def test_sparse_revisions_are_clamped(self, store, test_cases, write_history):
        """A revision far beyond the history length is appended, not padded."""
        store.init([], write_history([('a::m1', 7, 'fail'), ('a::m1', 40, 'pass')]))
        m1 = test_cases.from_id('a::m1')

        assert store.history(m1) == [Execution(10, False), Execution(10, True)]

    def test_insertion_shifts_instead_of_overwriting(self, store, test_cases, write_history):
        store.init([], write_history([('a::m1', 1, 'pass'), ('a::m1', 2, 'pass'), ('a::m1', 1, 'fail')]))
        m1 = test_cases.from_id('a::m1')

        assert [execution.passed for execution in store.history(m1)] == [True, False, True]

    def test_length_is_independent_of_row_order(self, test_cases, write_history):
        """Shuffled rows yield the same number of stored executions."""
        rows = [('a::m1', revision, 'fail' if revision % 3 == 0 else 'pass') for revision in range(0, 12)]
        shuffled = list(rows)
        random.Random(7).shuffle(shuffled)

        ordered_store = ExecutionHistoryStore(test_cases)
        ordered_store.init([], write_history(rows, name='ordered.csv'))
        shuffled_store = ExecutionHistoryStore(test_cases)
        shuffled_store.init([], write_history(shuffled, name='shuffled.csv'))
        m1 = test_cases.from_id('a::m1')

        assert ordered_store.execution_count(m1) == shuffled_store.execution_count(m1) == 11
        assert ordered_store.failure_count(m1) == shuffled_store.failure_count(m1) == 3

    def test_monotonic_revisions_keep_recency_order(self, store, test_cases, write_history):
        outcomes = ['fail', 'pass', 'pass', 'fail', 'pass']
        store.init([], write_history([('a::m1', i + 1, outcome) for i, outcome in enumerate(outcomes)]))
        m1 = test_cases.from_id('a::m1')

        assert [execution.passed for execution in store.history(m1)] == [o == 'pass' for o in outcomes]

    def test_any_outcome_other_than_pass_is_a_failure(self, store, test_cases, write_history):
        store.init([], write_history([('a::m1', 1, 'error'), ('a::m1', 2, 'skipped'), ('a::m1', 3, 'pass')]))
        m1 = test_cases.from_id('a::m1')

        assert store.failure_count(m1) == 2

    def test_pytest_node_ids_split_on_last_separator(self, store, test_cases, write_history):
        store.init([], write_history([('tests/test_cart.py::TestCart::test_total', 1, 'fail')]))

        test_case = test_cases.with_name('test_total(tests/test_cart.py::TestCart)')

        assert store.failure_count(test_case) == 1

    def test_histories_are_kept_per_test(self, store, test_cases, write_history):
        store.init([], write_history([('a::m1', 1, 'fail'), ('a::m2', 1, 'pass'), ('b::m1', 1, 'pass')]))

        assert len(store) == 3
        assert store.failure_count(test_cases.from_id('a::m1')) == 1
        assert store.failure_count(test_cases.from_id('a::m2')) == 0

    def test_duration_and_missing_failure_cause(self, tmp_path, store, test_cases):
        path = tmp_path / 'history.csv'
        path.write_text(
            'project_id,version_id,num_revisions,revision_id,test_name,test_runtime,test_outcome,test_stack_trace\n'
            'shop,1,2,1,a::m1,30,fail,"AssertionError: boom\n  at line 3"\n'
            'shop,1,2,2,a::m1,10,pass,\n'
        )
        store.init([], path)
        m1 = test_cases.from_id('a::m1')

        latest = store.history(m1)[0]
        assert latest.duration == 30
        assert latest.failure_cause is None
        assert store.average_duration(m1) == 20

    def test_stack_trace_column_is_optional(self, tmp_path, store, test_cases):
        path = tmp_path / 'history.csv'
        path.write_text('header\nshop,1,1,1,a::m1,5,pass\n')
        store.init([], path)

        assert store.execution_count(test_cases.from_id('a::m1')) == 1

    def test_blank_lines_are_ignored(self, tmp_path, store, test_cases):
        path = tmp_path / 'history.csv'
        path.write_text('header\n\nshop,1,1,1,a::m1,5,pass,\n\n')
        store.init([], path)

        assert store.execution_count(test_cases.from_id('a::m1')) == 1


@pytest.mark.small
class TestMalformedRows:
    """Malformed rows abort the whole load."""

    @pytest.mark.parametrize(
        'row',
        [
            'shop,1,3,one,a::m1,10,pass,',
            'shop,1,3,1,a::m1,fast,pass,',
            'shop,1,3,,a::m1,10,pass,',
            'shop,1,3,1,a::m1,-5,pass,',
        ],
    )
    def test_unparseable_numeric_field(self, tmp_path, store, row):
        path = tmp_path / 'history.csv'
        path.write_text(f'header\nshop,1,3,1,a::m0,10,pass,\n{row}\n')

        with pytest.raises(HistoryParseError, match='Line 3'):
            store.init([], path)

    def test_test_name_without_separator(self, tmp_path, store):
        path = tmp_path / 'history.csv'
        path.write_text('header\nshop,1,3,1,just_a_name,10,pass,\n')

        with pytest.raises(HistoryParseError, match='class::method'):
            store.init([], path)

    def test_too_few_columns(self, tmp_path, store):
        path = tmp_path / 'history.csv'
        path.write_text('header\nshop,1,3,1,a::m1\n')

        with pytest.raises(HistoryParseError, match='columns'):
            store.init([], path)

    def test_failed_load_keeps_no_partial_history(self, tmp_path, store, test_cases, write_history):
        store.init([], write_history([('a::m1', 1, 'fail')]))
        path = tmp_path / 'broken.csv'
        path.write_text('header\nshop,1,3,1,a::m2,10,pass,\nshop,1,3,x,a::m2,10,pass,\n')

        with pytest.raises(HistoryParseError):
            store.init([], path)

        assert store.execution_count(test_cases.from_id('a::m2')) == 0
        assert store.execution_count(test_cases.from_id('a::m1')) == 1
