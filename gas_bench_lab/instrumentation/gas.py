"""
Cost measurement containers for gas benchmarking.

Provides:
- Timer for stamping when an invocation was submitted and settled
- InvocationResult for the outcome of one operation on one instance
- CostSeries for the ordered results of one variant across a scenario
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class Outcome(str, Enum):
    """How an invocation settled."""

    COMMITTED = "committed"
    REJECTED = "rejected"
    TIMEOUT = "timeout"


@dataclass
class InvocationResult:
    """Outcome of applying one operation to one instance."""

    variant: str
    operation: str
    step: int
    outcome: Outcome
    gas_used: int = 0
    error: Optional[str] = None
    started_at: float = 0.0
    finished_at: float = 0.0
    tx_hash: Optional[str] = None
    metadata: dict = field(default_factory=dict)

    def __post_init__(self):
        if self.gas_used < 0:
            raise ValueError("gas_used must be non-negative")
        if self.outcome != Outcome.COMMITTED:
            self.gas_used = 0

    @property
    def succeeded(self) -> bool:
        return self.outcome == Outcome.COMMITTED

    @property
    def cost(self) -> Optional[int]:
        """Gas used, or None when the invocation did not commit."""
        return self.gas_used if self.succeeded else None

    @property
    def duration_ms(self) -> float:
        return (self.finished_at - self.started_at) * 1000

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "variant": self.variant,
            "operation": self.operation,
            "step": self.step,
            "cost": self.cost,
            "outcome": self.outcome.value,
            "error": self.error,
            "tx_hash": self.tx_hash,
            "duration_ms": self.duration_ms,
            "metadata": self.metadata,
        }


class Timer:
    """Simple timer for stamping invocations."""

    def __init__(self, name: str = "timer"):
        self.name = name
        self.start_time: float = 0.0
        self.end_time: float = 0.0
        self._running = False

    def start(self) -> "Timer":
        self.start_time = time.perf_counter()
        self._running = True
        return self

    def stop(self) -> "Timer":
        self.end_time = time.perf_counter()
        self._running = False
        return self

    @property
    def elapsed_ms(self) -> float:
        """Elapsed time in milliseconds."""
        end = self.end_time if not self._running else time.perf_counter()
        return (end - self.start_time) * 1000

    def to_result(
        self,
        variant: str,
        step: int,
        outcome: Outcome,
        **kwargs,
    ) -> InvocationResult:
        """Convert to an InvocationResult for operation ``self.name``."""
        if self._running:
            self.stop()
        return InvocationResult(
            variant=variant,
            operation=self.name,
            step=step,
            outcome=outcome,
            started_at=self.start_time,
            finished_at=self.end_time,
            **kwargs,
        )


class CostSeries:
    """Ordered invocation results for one variant across one scenario.

    A series is truncated when a failure stops the variant early; nothing
    can be appended afterwards and every later step has no cost.
    """

    def __init__(self, variant: str):
        self.variant = variant
        self.results: list[InvocationResult] = []
        self.truncated_at: Optional[int] = None
        self.truncation_reason: Optional[str] = None
        self.deployed = True

    def __len__(self) -> int:
        return len(self.results)

    @property
    def is_truncated(self) -> bool:
        return self.truncated_at is not None

    def add(self, result: InvocationResult) -> None:
        """Append the result for the next step."""
        if self.is_truncated:
            raise ValueError(f"series for '{self.variant}' is truncated at step {self.truncated_at}")
        if result.variant != self.variant:
            raise ValueError(f"result for '{result.variant}' added to series '{self.variant}'")
        self.results.append(result)

    def truncate(self, step: int, reason: str) -> None:
        """Stop the series; steps from ``step`` on have no recorded cost."""
        if self.is_truncated:
            return
        self.truncated_at = step
        self.truncation_reason = reason

    def mark_undeployed(self, reason: str) -> None:
        """Record that the variant never got an instance."""
        self.deployed = False
        self.truncate(0, reason)

    def result_at(self, step: int) -> Optional[InvocationResult]:
        for result in self.results:
            if result.step == step:
                return result
        return None

    def cost_at(self, step: int) -> Optional[int]:
        """Committed cost at ``step``, or None if missing or failed."""
        result = self.result_at(step)
        return result.cost if result is not None else None

    def failure_at(self, step: int) -> Optional[str]:
        """Failure marker for ``step``, or None if it committed."""
        result = self.result_at(step)
        if result is not None:
            return None if result.succeeded else result.outcome.value
        if not self.deployed:
            return "not_deployed"
        if self.is_truncated and step >= self.truncated_at:
            return "truncated"
        return "missing"

    def costs(self) -> list[Optional[int]]:
        return [r.cost for r in self.results]

    @property
    def total_gas(self) -> int:
        return sum(r.gas_used for r in self.results)

    def is_complete(self, step_count: int) -> bool:
        """True when every one of ``step_count`` steps committed."""
        return (
            not self.is_truncated
            and len(self.results) == step_count
            and all(r.succeeded for r in self.results)
        )

    def to_dict(self) -> dict:
        return {
            "variant": self.variant,
            "results": [r.to_dict() for r in self.results],
            "truncated_at": self.truncated_at,
            "truncation_reason": self.truncation_reason,
            "deployed": self.deployed,
            "total_gas": self.total_gas,
        }
