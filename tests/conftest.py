"""Shared pytest fixtures and stub environments for Gas Bench Lab.

Provides:
- ScriptedEnvironment: an ExecutionEnvironment stub returning scripted gas
  figures and recording sequence-numbered invocation timestamps
- make_registry: registry factory for ad-hoc variant sets
- Fixtures for tracers with an in-memory span exporter
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Iterable, Optional

import pytest
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from gas_bench_lab.environment import Instance, Receipt
from gas_bench_lab.exceptions import (
    DeploymentError,
    EnvironmentUnavailableError,
    TransactionRejected,
)
from gas_bench_lab.harness import RunConfig
from gas_bench_lab.instrumentation import Tracer, TracingConfig
from gas_bench_lab.variants import ImplementationRegistry, Variant


@dataclass
class Call:
    """One invocation seen by the stub."""

    variant: str
    operation: str
    params: dict
    started: int
    finished: Optional[int] = None


class ScriptedEnvironment:
    """ExecutionEnvironment stub driven by a cost script.

    ``costs[variant][n]`` is the gas returned for the n-th invocation on that
    variant; ``None`` makes that invocation revert. ``rejections`` and
    ``hangs`` hold (variant, n) pairs that raise TransactionRejected or never
    complete; ``cancellations`` pairs have their pending call cancelled.
    """

    def __init__(
        self,
        costs: dict[str, list[Optional[int]]],
        rejections: Iterable[tuple[str, int]] = (),
        hangs: Iterable[tuple[str, int]] = (),
        cancellations: Iterable[tuple[str, int]] = (),
        fail_deploy: Iterable[str] = (),
        reachable: bool = True,
        latency: float = 0.0,
    ):
        self.costs = costs
        self.rejections = set(rejections)
        self.hangs = set(hangs)
        self.cancellations = set(cancellations)
        self.fail_deploy = set(fail_deploy)
        self.reachable = reachable
        self.latency = latency

        self.calls: list[Call] = []
        self.deployed: list[str] = []
        self.connected = False
        self.closed = False
        self._counts: dict[str, int] = {}
        self._sequence = 0

    def _tick(self) -> int:
        self._sequence += 1
        return self._sequence

    async def connect(self) -> None:
        if not self.reachable:
            raise EnvironmentUnavailableError("stub environment unreachable")
        self.connected = True

    async def close(self) -> None:
        self.closed = True

    async def deploy(self, variant: Variant) -> Instance:
        await asyncio.sleep(self.latency)
        if variant.name in self.fail_deploy:
            raise DeploymentError(variant.name, "scripted deployment failure")
        self.deployed.append(variant.name)
        address = f"0x{len(self.deployed):040x}"
        return Instance(variant=variant.name, contract=variant.contract, address=address)

    async def invoke(
        self,
        instance: Instance,
        operation: str,
        params: dict[str, Any],
    ) -> Receipt:
        variant = instance.variant
        n = self._counts.get(variant, 0)
        self._counts[variant] = n + 1

        call = Call(variant, operation, dict(params), started=self._tick())
        self.calls.append(call)

        await asyncio.sleep(self.latency)

        if (variant, n) in self.hangs:
            await asyncio.Event().wait()
        if (variant, n) in self.cancellations:
            raise asyncio.CancelledError()
        if (variant, n) in self.rejections:
            call.finished = self._tick()
            raise TransactionRejected("scripted rejection")

        call.finished = self._tick()
        cost = self.costs[variant][n]
        if cost is None:
            return Receipt(gas_used=23_000, status=False, revert_reason="scripted revert")
        return Receipt(gas_used=cost, status=True, tx_hash=f"0x{call.started:064x}")


def make_registry(*names: str) -> ImplementationRegistry:
    """Registry with one variant per name, deployed in the given order."""
    return ImplementationRegistry(
        name="test",
        variants=[Variant(name=n, contract=f"{n}Contract") for n in names],
    )


@pytest.fixture
def span_exporter() -> InMemorySpanExporter:
    """In-memory exporter collecting finished spans."""
    return InMemorySpanExporter()


@pytest.fixture
def tracer(span_exporter) -> Tracer:
    """Tracer exporting only to the in-memory exporter."""
    tracer = Tracer(TracingConfig(enable_console_export=False), exporter=span_exporter)
    yield tracer.initialize()
    tracer.shutdown()


@pytest.fixture
def quick_config() -> RunConfig:
    """Run config with short timeouts."""
    return RunConfig(name="test", invoke_timeout_seconds=0.5, deploy_timeout_seconds=0.5)
