"""Tests for the secondary objectives ordering tests within a wave."""

from __future__ import annotations

import pytest

from pytest_triage.coverage.mapper import CoverageMap
from pytest_triage.errors import ConfigurationError
from pytest_triage.objectives import ObjectiveRegistry, default_objectives, greedy, specificity


@pytest.fixture
def coverage_with_breadth(test_cases):
    """Tests covering 1, 3 and 3 lines: narrow, wide_b and wide_a."""
    cm = CoverageMap()
    narrow = test_cases.from_id('tests/test_x.py::narrow')
    wide_a = test_cases.from_id('tests/test_x.py::wide_a')
    wide_b = test_cases.from_id('tests/test_x.py::wide_b')
    cm.add('src/x.py', 1, narrow.name)
    for line in range(1, 4):
        cm.add('src/x.py', line, wide_a.name)
        cm.add('src/x.py', line, wide_b.name)
    return cm, narrow, wide_a, wide_b


@pytest.mark.small
class TestObjectives:
    """Test the built-in objectives."""

    def test_greedy_puts_broad_tests_first(self, coverage_with_breadth):
        cm, narrow, wide_a, wide_b = coverage_with_breadth

        ordered = sorted([narrow, wide_b, wide_a], key=greedy(cm))

        assert ordered == [wide_a, wide_b, narrow]

    def test_specificity_puts_narrow_tests_first(self, coverage_with_breadth):
        cm, narrow, wide_a, wide_b = coverage_with_breadth

        ordered = sorted([wide_b, wide_a, narrow], key=specificity(cm))

        assert ordered == [narrow, wide_a, wide_b]

    def test_tests_without_coverage_are_least_greedy(self, coverage_with_breadth, test_cases):
        cm, narrow, _, _ = coverage_with_breadth
        uncovered = test_cases.from_id('tests/test_x.py::uncovered')

        assert sorted([uncovered, narrow], key=greedy(cm)) == [narrow, uncovered]


@pytest.mark.small
class TestObjectiveRegistry:
    """Test looking up objectives by name."""

    def test_default_objectives(self):
        assert sorted(default_objectives().available()) == ['greedy', 'specificity']

    def test_get_builds_sort_key(self, coverage_with_breadth):
        cm, narrow, wide_a, _ = coverage_with_breadth

        key = default_objectives().get('specificity', cm)

        assert key(narrow) < key(wide_a)

    def test_unknown_objective_is_a_configuration_error(self):
        with pytest.raises(ConfigurationError, match='fastest'):
            default_objectives().get('fastest', CoverageMap())

    def test_register_custom_objective(self, test_cases):
        registry = ObjectiveRegistry()
        registry.register('by_name', lambda coverage: lambda test_case: (test_case.name,))

        key = registry.get('by_name', CoverageMap())

        assert key(test_cases.from_id('a::m1')) == ('m1(a)',)
