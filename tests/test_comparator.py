"""Tests for comparison assertions and the cost table."""

import pytest

from gas_bench_lab.exceptions import ConfigurationError
from gas_bench_lab.harness import (
    AssertionOutcome,
    ComparisonAssertion,
    Comparator,
    CostTable,
    ThresholdAssertion,
    cheaper_than,
)
from gas_bench_lab.instrumentation import CostSeries, InvocationResult, Outcome


def series_of(variant, *costs, operations=None):
    """Series where an int commits, and an Outcome records a failure."""
    series = CostSeries(variant)
    for step, cost in enumerate(costs):
        operation = operations[step] if operations else f"op{step}"
        if isinstance(cost, Outcome):
            series.add(InvocationResult(variant, operation, step, cost, error="failed"))
        else:
            series.add(InvocationResult(variant, operation, step, Outcome.COMMITTED, gas_used=cost))
    return series


# =============================================================================
# ComparisonAssertion
# =============================================================================


class TestComparisonAssertion:
    """Ordering assertions over committed costs."""

    def test_strict_chain_passes(self):
        series = {
            "naive": series_of("naive", 300),
            "medium": series_of("medium", 200),
            "optimized": series_of("optimized", 100),
        }
        outcome, costs, detail = cheaper_than("optimized", "medium", "naive", step=0).evaluate(series)

        assert outcome == AssertionOutcome.PASS
        assert costs == {"optimized": 100, "medium": 200, "naive": 300}
        assert detail == "100 < 200 < 300"

    def test_equal_costs_fail_strict_but_pass_non_strict(self):
        series = {"a": series_of("a", 50), "b": series_of("b", 50)}

        strict, _, _ = cheaper_than("a", "b", step=0).evaluate(series)
        relaxed, _, _ = cheaper_than("a", "b", step=0, strict=False).evaluate(series)

        assert strict == AssertionOutcome.FAIL
        assert relaxed == AssertionOutcome.PASS

    def test_failure_names_the_broken_link(self):
        series = {
            "a": series_of("a", 10),
            "b": series_of("b", 30),
            "c": series_of("c", 20),
        }
        outcome, _, detail = cheaper_than("a", "b", "c", step=0).evaluate(series)

        assert outcome == AssertionOutcome.FAIL
        assert detail == "b=30 is not < c=20"

    def test_failed_step_is_inconclusive_not_fail(self):
        series = {
            "a": series_of("a", Outcome.REJECTED),
            "b": series_of("b", 10),
        }
        outcome, costs, detail = cheaper_than("a", "b", step=0).evaluate(series)

        assert outcome == AssertionOutcome.INCONCLUSIVE
        assert costs == {"a": None, "b": 10}
        assert "a" in detail

    def test_truncated_step_is_inconclusive(self):
        halted = series_of("a", Outcome.TIMEOUT)
        halted.truncate(1, "timeout at step 0")
        series = {"a": halted, "b": series_of("b", 10, 20)}

        outcome, _, _ = cheaper_than("a", "b", step=1).evaluate(series)

        assert outcome == AssertionOutcome.INCONCLUSIVE

    def test_requires_two_variants(self):
        with pytest.raises(ValueError):
            ComparisonAssertion(variants=("only",), step=0)

    def test_rejects_negative_step(self):
        with pytest.raises(ValueError):
            cheaper_than("a", "b", step=-1)

    def test_describe_uses_step_label(self):
        assertion = cheaper_than("B", "A", step=0)

        assert assertion.describe("create") == "B.create < A.create"
        assert assertion.describe() == "B.step0 < A.step0"
        assert cheaper_than("B", "A", step=0, strict=False).describe("x") == "B.x <= A.x"


class TestThresholdAssertion:
    """Upper bounds on a single variant."""

    def test_within_limit(self):
        series = {"a": series_of("a", 1000)}

        assert ThresholdAssertion("a", 0, limit=1000).evaluate(series)[0] == AssertionOutcome.PASS
        assert ThresholdAssertion("a", 0, limit=1000, strict=True).evaluate(series)[0] == AssertionOutcome.FAIL

    def test_missing_cost_is_inconclusive(self):
        series = {"a": series_of("a", Outcome.REJECTED)}

        outcome, _, _ = ThresholdAssertion("a", 0, limit=10).evaluate(series)

        assert outcome == AssertionOutcome.INCONCLUSIVE


# =============================================================================
# Comparator
# =============================================================================


class TestComparator:
    """End-to-end comparison of collected series."""

    def test_create_cheaper_but_increment_equal(self):
        series = {
            "A": series_of("A", 100, 50),
            "B": series_of("B", 80, 50),
        }
        report = Comparator().compare(
            series,
            [cheaper_than("B", "A", step=0), cheaper_than("B", "A", step=1)],
            ["create", "increment"],
        )

        first, second = report.results
        assert first.description == "B.create < A.create"
        assert first.outcome == AssertionOutcome.PASS
        assert second.description == "B.increment < A.increment"
        assert second.outcome == AssertionOutcome.FAIL
        assert report.table.as_matrix() == {"A": [100, 50], "B": [80, 50]}
        assert report.counts() == {"pass": 1, "fail": 1, "inconclusive": 0}
        assert not report.passed()

    def test_inconclusive_only_fails_when_configured(self):
        series = {
            "A": series_of("A", Outcome.REJECTED),
            "B": series_of("B", 10),
        }
        series["A"].truncate(1, "rejected")
        report = Comparator().compare(series, [cheaper_than("B", "A", step=0)], ["create"])

        assert [r.outcome for r in report.results] == [AssertionOutcome.INCONCLUSIVE]
        assert report.passed()
        assert not report.passed(inconclusive_fails=True)

    def test_refuses_series_still_being_collected(self):
        series = {"A": series_of("A", 10), "B": series_of("B", 10, 20)}

        with pytest.raises(ValueError, match="still being collected"):
            Comparator().compare(series, [], ["one", "two"])

    def test_truncated_short_series_is_complete_enough(self):
        short = series_of("A", Outcome.REJECTED)
        short.truncate(1, "halted")
        series = {"A": short, "B": series_of("B", 10, 20)}

        report = Comparator().compare(series, [], ["one", "two"])

        assert report.table.as_matrix() == {"A": [None, None], "B": [10, 20]}

    def test_unknown_variant_is_a_configuration_error(self):
        series = {"A": series_of("A", 10)}

        with pytest.raises(ConfigurationError):
            Comparator().compare(series, [cheaper_than("A", "Z", step=0)], ["one"])

    def test_step_out_of_range_is_a_configuration_error(self):
        series = {"A": series_of("A", 10), "B": series_of("B", 20)}

        with pytest.raises(ConfigurationError):
            Comparator().compare(series, [cheaper_than("A", "B", step=3)], ["one"])


class TestCostTable:
    """Cost table rows and markers."""

    def test_rows_carry_stable_fields(self):
        halted = series_of("A", 10, Outcome.REJECTED)
        halted.truncate(2, "rejected at step 1")
        series = {"A": halted, "B": series_of("B", 5, 6, 7)}

        table = CostTable.from_series(series, ["add", "inc", "del"])
        rows = table.rows()

        assert rows[0] == {"variant": "A", "operation": "add", "step": 0, "cost": 10, "outcome": "committed"}
        assert rows[1]["outcome"] == "rejected"
        assert rows[1]["cost"] is None
        assert rows[2]["outcome"] == "truncated"
        assert [r["cost"] for r in rows if r["variant"] == "B"] == [5, 6, 7]

    def test_undeployed_variant_is_marked(self):
        undeployed = CostSeries("A")
        undeployed.mark_undeployed("deployment failed")
        table = CostTable.from_series({"A": undeployed}, ["add"])

        assert table.cost("A", 0) is None
        assert table.markers["A"] == ["not_deployed"]
