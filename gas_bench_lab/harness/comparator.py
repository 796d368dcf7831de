"""
Comparison assertions over collected cost series.

Costs are compared as plain integers with no tolerance. An assertion that
references a step without a committed cost is Inconclusive, never Pass or
Fail.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional, Sequence, Union

from ..exceptions import ConfigurationError
from ..instrumentation.gas import CostSeries


class AssertionOutcome(str, Enum):
    """Result of evaluating one assertion."""

    PASS = "pass"
    FAIL = "fail"
    INCONCLUSIVE = "inconclusive"


def _collect_costs(
    variants: Sequence[str],
    step: int,
    series: Mapping[str, CostSeries],
) -> tuple[dict[str, Optional[int]], list[str]]:
    costs = {v: series[v].cost_at(step) for v in variants}
    missing = [v for v, cost in costs.items() if cost is None]
    return costs, missing


@dataclass(frozen=True)
class ComparisonAssertion:
    """Ordering assertion over two or more variants at one step.

    ``ComparisonAssertion(("optimized", "medium", "naive"), step=0)`` holds
    when cost(optimized) < cost(medium) < cost(naive). With ``strict=False``
    each link is ``<=`` instead.
    """

    variants: tuple[str, ...]
    step: int
    strict: bool = True

    def __post_init__(self):
        object.__setattr__(self, "variants", tuple(self.variants))
        if len(self.variants) < 2:
            raise ValueError("a comparison needs at least two variants")
        if self.step < 0:
            raise ValueError("step index must be non-negative")

    @property
    def operator(self) -> str:
        return "<" if self.strict else "<="

    def referenced_variants(self) -> tuple[str, ...]:
        return self.variants

    def describe(self, step_label: Optional[str] = None) -> str:
        label = step_label or f"step{self.step}"
        return f" {self.operator} ".join(f"{v}.{label}" for v in self.variants)

    def evaluate(self, series: Mapping[str, CostSeries]) -> tuple[AssertionOutcome, dict, str]:
        costs, missing = _collect_costs(self.variants, self.step, series)
        if missing:
            return (
                AssertionOutcome.INCONCLUSIVE,
                costs,
                f"no committed cost at step {self.step} for: {', '.join(missing)}",
            )

        for left, right in zip(self.variants, self.variants[1:]):
            ok = costs[left] < costs[right] if self.strict else costs[left] <= costs[right]
            if not ok:
                return (
                    AssertionOutcome.FAIL,
                    costs,
                    f"{left}={costs[left]} is not {self.operator} {right}={costs[right]}",
                )

        chain = f" {self.operator} ".join(str(costs[v]) for v in self.variants)
        return AssertionOutcome.PASS, costs, chain


@dataclass(frozen=True)
class ThresholdAssertion:
    """Upper bound on one variant's cost at one step."""

    variant: str
    step: int
    limit: int
    strict: bool = False

    def __post_init__(self):
        if self.step < 0:
            raise ValueError("step index must be non-negative")

    @property
    def operator(self) -> str:
        return "<" if self.strict else "<="

    def referenced_variants(self) -> tuple[str, ...]:
        return (self.variant,)

    def describe(self, step_label: Optional[str] = None) -> str:
        label = step_label or f"step{self.step}"
        return f"{self.variant}.{label} {self.operator} {self.limit}"

    def evaluate(self, series: Mapping[str, CostSeries]) -> tuple[AssertionOutcome, dict, str]:
        costs, missing = _collect_costs((self.variant,), self.step, series)
        if missing:
            return (
                AssertionOutcome.INCONCLUSIVE,
                costs,
                f"no committed cost at step {self.step} for: {self.variant}",
            )

        cost = costs[self.variant]
        ok = cost < self.limit if self.strict else cost <= self.limit
        if not ok:
            return AssertionOutcome.FAIL, costs, f"{cost} is not {self.operator} {self.limit}"
        return AssertionOutcome.PASS, costs, f"{cost} {self.operator} {self.limit}"


Assertion = Union[ComparisonAssertion, ThresholdAssertion]


def cheaper_than(*variants: str, step: int, strict: bool = True) -> ComparisonAssertion:
    """Assert ``variants`` are ordered cheapest first at ``step``."""
    return ComparisonAssertion(variants=tuple(variants), step=step, strict=strict)


@dataclass
class AssertionResult:
    """Evaluated assertion."""

    description: str
    outcome: AssertionOutcome
    detail: str
    costs: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "assertion": self.description,
            "outcome": self.outcome.value,
            "detail": self.detail,
            "costs": self.costs,
        }


@dataclass
class CostTable:
    """Variant x step cost matrix, with a failure marker where no cost exists."""

    variants: list[str]
    steps: list[str]
    costs: dict[str, list[Optional[int]]]
    markers: dict[str, list[Optional[str]]]

    @classmethod
    def from_series(
        cls,
        series: Mapping[str, CostSeries],
        step_labels: Sequence[str],
    ) -> "CostTable":
        variants = list(series)
        steps = list(step_labels)
        return cls(
            variants=variants,
            steps=steps,
            costs={v: [series[v].cost_at(i) for i in range(len(steps))] for v in variants},
            markers={v: [series[v].failure_at(i) for i in range(len(steps))] for v in variants},
        )

    def cost(self, variant: str, step: int) -> Optional[int]:
        return self.costs[variant][step]

    def as_matrix(self) -> dict[str, list[Optional[int]]]:
        """Plain ``{variant: [cost per step]}`` mapping."""
        return {v: list(c) for v, c in self.costs.items()}

    def rows(self) -> list[dict]:
        """Flat rows with stable field names for downstream tooling."""
        rows = []
        for variant in self.variants:
            for i, operation in enumerate(self.steps):
                rows.append({
                    "variant": variant,
                    "operation": operation,
                    "step": i,
                    "cost": self.costs[variant][i],
                    "outcome": self.markers[variant][i] or "committed",
                })
        return rows

    def to_dict(self) -> dict:
        return {"variants": self.variants, "steps": self.steps, "rows": self.rows()}


@dataclass
class ComparisonReport:
    """Cost table plus per-assertion outcomes for one scenario."""

    table: CostTable
    results: list[AssertionResult]
    name: str = "comparison"

    def counts(self) -> dict[str, int]:
        counts = {o.value: 0 for o in AssertionOutcome}
        for result in self.results:
            counts[result.outcome.value] += 1
        return counts

    @property
    def failures(self) -> list[AssertionResult]:
        return [r for r in self.results if r.outcome == AssertionOutcome.FAIL]

    @property
    def inconclusive(self) -> list[AssertionResult]:
        return [r for r in self.results if r.outcome == AssertionOutcome.INCONCLUSIVE]

    def passed(self, inconclusive_fails: bool = False) -> bool:
        """True when no assertion failed (and none was inconclusive, if configured)."""
        if self.failures:
            return False
        if inconclusive_fails and self.inconclusive:
            return False
        return True

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "table": self.table.to_dict(),
            "assertions": [r.to_dict() for r in self.results],
            "counts": self.counts(),
        }


class Comparator:
    """Evaluates assertions once every series of a scenario is collected."""

    def compare(
        self,
        series: Mapping[str, CostSeries],
        assertions: Sequence[Assertion],
        step_labels: Sequence[str],
        name: str = "comparison",
    ) -> ComparisonReport:
        step_count = len(step_labels)

        for variant, s in series.items():
            if len(s) > step_count:
                raise ValueError(f"series '{variant}' has more results than steps")
            if not s.is_truncated and len(s) < step_count:
                raise ValueError(
                    f"series '{variant}' is still being collected "
                    f"({len(s)}/{step_count} steps)"
                )

        results = []
        for assertion in assertions:
            unknown = [v for v in assertion.referenced_variants() if v not in series]
            if unknown:
                raise ConfigurationError(
                    f"assertion references unknown variant(s): {', '.join(unknown)}"
                )
            if assertion.step >= step_count:
                raise ConfigurationError(
                    f"assertion step {assertion.step} is out of range for {step_count} steps"
                )

            outcome, costs, detail = assertion.evaluate(series)
            results.append(AssertionResult(
                description=assertion.describe(step_labels[assertion.step]),
                outcome=outcome,
                detail=detail,
                costs=costs,
            ))

        return ComparisonReport(
            table=CostTable.from_series(series, step_labels),
            results=results,
            name=name,
        )
