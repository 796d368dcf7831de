"""
Results rendering for gas comparisons.

Provides CLI tables and JSON export.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Optional

from .comparator import AssertionOutcome, ComparisonReport
from .runner import ScenarioResult

MARKERS = {
    "rejected": "REJECTED",
    "timeout": "TIMEOUT",
    "truncated": "-",
    "not_deployed": "DEPLOY FAILED",
    "missing": "?",
}


class ConsoleReporter:
    """Generates console/CLI reports."""

    def __init__(self, use_color: bool = True):
        self.use_color = use_color

    def _color(self, text: str, color: str) -> str:
        """Apply ANSI color if enabled."""
        if not self.use_color:
            return text

        colors = {
            "green": "\033[92m",
            "red": "\033[91m",
            "yellow": "\033[93m",
            "blue": "\033[94m",
            "bold": "\033[1m",
            "reset": "\033[0m",
        }

        return f"{colors.get(color, '')}{text}{colors['reset']}"

    def format_gas(self, gas: Optional[int]) -> str:
        """Format a gas figure with thousands separators."""
        if gas is None:
            return "N/A"
        return f"{gas:,}"

    def format_outcome(self, outcome: AssertionOutcome) -> str:
        """Format an assertion outcome with color."""
        if outcome == AssertionOutcome.PASS:
            return self._color("PASS", "green")
        if outcome == AssertionOutcome.FAIL:
            return self._color("FAIL", "red")
        return self._color("INCONCLUSIVE", "yellow")

    def cost_table(self, report: ComparisonReport) -> str:
        """Variant x operation gas table, with failure markers."""
        table = report.table
        name_width = max([len("Variant")] + [len(v) for v in table.variants]) + 2
        col_width = max([12] + [len(s) + 2 for s in table.steps])

        lines = []
        header = f"{'Variant':<{name_width}}" + "".join(f"{s:>{col_width}}" for s in table.steps)
        lines.append(self._color(header, "bold"))
        lines.append("-" * len(header))

        for variant in table.variants:
            row = f"{variant:<{name_width}}"
            for i in range(len(table.steps)):
                cost = table.costs[variant][i]
                if cost is not None:
                    row += f"{self.format_gas(cost):>{col_width}}"
                    continue
                marker = MARKERS.get(table.markers[variant][i] or "missing", "?")
                cell = f"{marker:>{col_width}}"
                row += self._color(cell, "red") if marker != "-" else cell
            lines.append(row)

        return "\n".join(lines)

    def assertions(self, report: ComparisonReport) -> str:
        """One line per assertion with its outcome."""
        if not report.results:
            return "  (no assertions)"
        lines = []
        for result in report.results:
            lines.append(f"  {self.format_outcome(result.outcome):<12} {result.description}")
            lines.append(f"      {result.detail}")
        return "\n".join(lines)

    def single_result(self, result: ScenarioResult) -> str:
        """Generate report for a single scenario result."""
        lines = []
        lines.append(self._color(f"\n{'=' * 60}", "blue"))
        lines.append(self._color(f"Scenario: {result.scenario.name}", "bold"))
        lines.append(self._color(f"{'=' * 60}", "blue"))

        if result.scenario.description:
            lines.append(result.scenario.description)

        lines.append(f"\nGas used:")
        lines.append(self.cost_table(result.report))

        if result.deployment_errors:
            lines.append(f"\n{self._color('Deployment errors:', 'red')}")
            for variant, reason in result.deployment_errors.items():
                lines.append(f"  - {variant}: {reason}")

        truncated = [s for s in result.series.values() if s.is_truncated and s.deployed]
        if truncated:
            lines.append(f"\n{self._color('Truncated series:', 'yellow')}")
            for s in truncated:
                lines.append(f"  - {s.variant}: {s.truncation_reason}")

        lines.append(f"\nAssertions:")
        lines.append(self.assertions(result.report))

        counts = result.report.counts()
        status = self._color("PASSED", "green") if result.passed else self._color("FAILED", "red")
        lines.append(
            f"\n{status}  pass={counts['pass']} fail={counts['fail']} "
            f"inconclusive={counts['inconclusive']}"
        )
        return "\n".join(lines)

    def summary(self, results: list[ScenarioResult]) -> str:
        """One line per scenario plus an overall verdict."""
        if not results:
            return "No results to display"

        lines = []
        lines.append(self._color(f"\n{'=' * 60}", "blue"))
        lines.append(self._color("Summary", "bold"))
        lines.append(self._color(f"{'=' * 60}", "blue"))

        for result in results:
            counts = result.report.counts()
            status = self._color("PASS", "green") if result.passed else self._color("FAIL", "red")
            lines.append(
                f"  {status}  {result.scenario.name:<24} "
                f"pass={counts['pass']} fail={counts['fail']} inconclusive={counts['inconclusive']}"
            )

        overall = all(r.passed for r in results)
        lines.append("")
        lines.append(
            self._color("All scenarios passed", "green") if overall
            else self._color("Some scenarios failed", "red")
        )
        return "\n".join(lines)


class JSONReporter:
    """Exports results as JSON for further analysis."""

    def __init__(self, output_dir: Optional[Path] = None):
        self.output_dir = output_dir or Path("results")

    def save_result(self, result: ScenarioResult) -> Path:
        """Save a single result to JSON."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        timestamp = result.start_time.strftime("%Y%m%d_%H%M%S")
        filepath = self.output_dir / f"{result.scenario.name}_{timestamp}.json"
        result.save(filepath)
        return filepath

    def save_suite(
        self,
        results: list[ScenarioResult],
        name: str = "gas_comparison",
    ) -> Path:
        """Save several scenario results as one JSON document."""
        self.output_dir.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filepath = self.output_dir / f"{name}_{timestamp}.json"

        data = {
            "name": name,
            "timestamp": timestamp,
            "passed": all(r.passed for r in results),
            "results": [r.to_dict() for r in results],
        }

        with open(filepath, "w") as f:
            json.dump(data, f, indent=2)

        return filepath

    def load_result(self, filepath: Path) -> dict:
        """Load a result from JSON."""
        with open(filepath) as f:
            return json.load(f)
