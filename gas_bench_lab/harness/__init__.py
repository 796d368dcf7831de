"""
Benchmark harness for gas comparisons.

Provides deployment, invocation, scenario orchestration, comparison and
reporting.
"""

from .comparator import (
    AssertionOutcome,
    AssertionResult,
    ComparisonAssertion,
    ComparisonReport,
    Comparator,
    CostTable,
    ThresholdAssertion,
    cheaper_than,
)

from .runner import (
    BenchmarkRunner,
    DeploymentBatch,
    FailurePolicy,
    InstanceDeployer,
    OperationInvoker,
    RunConfig,
    ScenarioResult,
    ScenarioRunner,
    run_matrix,
)

from .reporter import (
    ConsoleReporter,
    JSONReporter,
)

__all__ = [
    # Comparator
    "AssertionOutcome",
    "AssertionResult",
    "ComparisonAssertion",
    "ComparisonReport",
    "Comparator",
    "CostTable",
    "ThresholdAssertion",
    "cheaper_than",
    # Runner
    "BenchmarkRunner",
    "DeploymentBatch",
    "FailurePolicy",
    "InstanceDeployer",
    "OperationInvoker",
    "RunConfig",
    "ScenarioResult",
    "ScenarioRunner",
    "run_matrix",
    # Reporter
    "ConsoleReporter",
    "JSONReporter",
]
