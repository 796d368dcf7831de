"""
Benchmark orchestrator for gas comparisons.

Deploys every variant of an implementation registry, drives the same
sequence of operations through each instance in a fixed order, and hands
the collected cost series to the comparator.
"""

import asyncio
import json
import os
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional, Sequence

from ..environment.base import ExecutionEnvironment, Instance
from ..exceptions import ConfigurationError, DeploymentError, TransactionRejected
from ..instrumentation.gas import CostSeries, InvocationResult, Outcome, Timer
from ..instrumentation.traces import Tracer, get_tracer
from ..variants import ImplementationRegistry, Variant
from .comparator import Comparator, ComparisonReport

if TYPE_CHECKING:
    from ..scenarios.definitions import Scenario


class FailurePolicy(str, Enum):
    """What a failed step does to the rest of the scenario."""

    HALT_VARIANT = "halt-variant"
    ABORT_SCENARIO = "abort-scenario"
    CONTINUE = "continue"


_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off", ""}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {raw!r}")


def _env_timeout(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None:
        return default
    if raw.strip().lower() in {"", "none", "off"}:
        return None
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number of seconds, got {raw!r}") from None


@dataclass
class RunConfig:
    """Configuration for a benchmark run."""

    name: str = "gas-comparison"
    description: str = ""
    failure_policy: FailurePolicy = FailurePolicy.HALT_VARIANT
    fail_fast_deploy: bool = False
    invoke_timeout_seconds: Optional[float] = 60.0
    deploy_timeout_seconds: Optional[float] = 120.0
    inconclusive_fails: bool = False
    metadata: dict = field(default_factory=dict)

    def __post_init__(self):
        try:
            self.failure_policy = FailurePolicy(self.failure_policy)
        except ValueError:
            choices = ", ".join(p.value for p in FailurePolicy)
            raise ConfigurationError(
                f"Unknown failure policy {self.failure_policy!r} (choose from {choices})"
            ) from None

        for attr in ("invoke_timeout_seconds", "deploy_timeout_seconds"):
            value = getattr(self, attr)
            if value is not None and value <= 0:
                raise ConfigurationError(f"{attr} must be positive, got {value}")

    @classmethod
    def from_env(cls, **overrides: Any) -> "RunConfig":
        """Build a config from GAS_BENCH_* environment variables.

        Explicit keyword overrides win over the environment.
        """
        values: dict[str, Any] = {
            "failure_policy": os.getenv("GAS_BENCH_FAILURE_POLICY", FailurePolicy.HALT_VARIANT.value),
            "fail_fast_deploy": _env_bool("GAS_BENCH_FAIL_FAST_DEPLOY", False),
            "invoke_timeout_seconds": _env_timeout("GAS_BENCH_INVOKE_TIMEOUT", 60.0),
            "deploy_timeout_seconds": _env_timeout("GAS_BENCH_DEPLOY_TIMEOUT", 120.0),
            "inconclusive_fails": _env_bool("GAS_BENCH_INCONCLUSIVE_FAILS", False),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return {
            "name": self.name,
            "description": self.description,
            "failure_policy": self.failure_policy.value,
            "fail_fast_deploy": self.fail_fast_deploy,
            "invoke_timeout_seconds": self.invoke_timeout_seconds,
            "deploy_timeout_seconds": self.deploy_timeout_seconds,
            "inconclusive_fails": self.inconclusive_fails,
            "metadata": self.metadata,
        }


@dataclass
class DeploymentBatch:
    """Instances that deployed, and errors for those that did not."""

    instances: dict[str, Instance] = field(default_factory=dict)
    errors: dict[str, DeploymentError] = field(default_factory=dict)


class InstanceDeployer:
    """Obtains a live instance for each variant."""

    def __init__(
        self,
        environment: ExecutionEnvironment,
        config: RunConfig,
        tracer: Optional[Tracer] = None,
        verbose: bool = False,
    ):
        self.environment = environment
        self.config = config
        self.tracer = tracer or get_tracer()
        self.verbose = verbose

    async def deploy(self, variant: Variant) -> Instance:
        """Deploy one variant, raising DeploymentError if it does not come up."""
        attributes = {"bench.variant": variant.name, "bench.contract": variant.contract}
        async with self.tracer.async_span("deploy", attributes) as span:
            try:
                instance = await asyncio.wait_for(
                    self.environment.deploy(variant),
                    timeout=self.config.deploy_timeout_seconds,
                )
            except asyncio.TimeoutError:
                raise DeploymentError(
                    variant.name,
                    f"timed out after {self.config.deploy_timeout_seconds}s",
                ) from None
            except TransactionRejected as e:
                raise DeploymentError(variant.name, e.reason) from e
            span.set_attribute("bench.address", instance.address)
        return instance

    async def deploy_all(self, registry: ImplementationRegistry) -> DeploymentBatch:
        """Deploy every variant in registry order.

        A failed deployment is recorded and the remaining variants still
        deploy, unless ``fail_fast_deploy`` is set.
        """
        batch = DeploymentBatch()

        for variant in registry.variants:
            if self.verbose:
                print(f"  Deploying {variant.name} ({variant.contract})...", end="", flush=True)
            try:
                batch.instances[variant.name] = await self.deploy(variant)
                if self.verbose:
                    print(f" {batch.instances[variant.name].address}")
            except DeploymentError as e:
                if self.verbose:
                    print(f" error: {e.reason}")
                if self.config.fail_fast_deploy:
                    raise
                batch.errors[variant.name] = e

        return batch


class OperationInvoker:
    """Submits one operation to one instance and waits for its outcome.

    Rejections and timeouts come back as failed InvocationResults. Parameters
    are passed through as given: matching each variant's encoding is the
    caller's job.
    """

    def __init__(
        self,
        environment: ExecutionEnvironment,
        config: RunConfig,
        tracer: Optional[Tracer] = None,
    ):
        self.environment = environment
        self.config = config
        self.tracer = tracer or get_tracer()

    async def invoke(
        self,
        instance: Instance,
        step: int,
        operation: str,
        params: dict[str, Any],
    ) -> InvocationResult:
        attributes = {
            "bench.variant": instance.variant,
            "bench.operation": operation,
            "bench.step": step,
        }
        async with self.tracer.async_span("invoke", attributes) as span:
            timer = Timer(operation).start()
            try:
                receipt = await asyncio.wait_for(
                    self.environment.invoke(instance, operation, params),
                    timeout=self.config.invoke_timeout_seconds,
                )
            except asyncio.TimeoutError:
                result = timer.to_result(
                    instance.variant, step, Outcome.TIMEOUT,
                    error=f"no outcome within {self.config.invoke_timeout_seconds}s",
                )
            except asyncio.CancelledError:
                # Re-raise when the run itself is being cancelled.
                current = asyncio.current_task()
                if current is not None and current.cancelling():
                    raise
                result = timer.to_result(
                    instance.variant, step, Outcome.TIMEOUT,
                    error="pending call was cancelled",
                )
            except TransactionRejected as e:
                result = timer.to_result(
                    instance.variant, step, Outcome.REJECTED,
                    error=e.reason, tx_hash=e.tx_hash,
                )
            else:
                if receipt.committed:
                    result = timer.to_result(
                        instance.variant, step, Outcome.COMMITTED,
                        gas_used=receipt.gas_used, tx_hash=receipt.tx_hash,
                    )
                else:
                    result = timer.to_result(
                        instance.variant, step, Outcome.REJECTED,
                        error=receipt.revert_reason or "transaction reverted",
                        tx_hash=receipt.tx_hash,
                        metadata={"gas_burned": receipt.gas_used},
                    )

            span.set_attribute("bench.outcome", result.outcome.value)
            span.set_attribute("bench.gas_used", result.gas_used)
        return result


class ScenarioRunner:
    """Drives a scenario's steps through every deployed instance.

    Every instance receives step ``s`` (in variant order) before any instance
    receives step ``s + 1``. Invocations are awaited one at a time, so a
    shared account or nonce behaves the same on every run.
    """

    def __init__(
        self,
        invoker: OperationInvoker,
        config: RunConfig,
        verbose: bool = False,
    ):
        self.invoker = invoker
        self.config = config
        self.verbose = verbose

    async def execute(
        self,
        scenario: "Scenario",
        instances: Mapping[str, Instance],
        variants: Sequence[str],
        undeployed: Optional[Mapping[str, str]] = None,
    ) -> dict[str, CostSeries]:
        """Run every step and return one cost series per variant.

        Args:
            scenario: Scenario whose steps are executed
            instances: Deployed instances by variant name
            variants: All configured variant names, in invocation order
            undeployed: Deployment failure reason by variant name
        """
        series = {name: CostSeries(name) for name in variants}
        for name, reason in (undeployed or {}).items():
            series[name].mark_undeployed(f"deployment failed: {reason}")

        policy = self.config.failure_policy

        for index, step in enumerate(scenario.steps):
            for name in variants:
                variant_series = series[name]
                if variant_series.is_truncated:
                    continue

                if self.verbose:
                    print(f"  [{index}] {step.name} on {name}...", end="", flush=True)

                result = await self.invoker.invoke(
                    instances[name], index, step.operation, step.params_for(name)
                )
                variant_series.add(result)

                if self.verbose:
                    if result.succeeded:
                        print(f" {result.gas_used} gas")
                    else:
                        print(f" {result.outcome.value}: {result.error}")

                if result.succeeded or policy == FailurePolicy.CONTINUE:
                    continue

                reason = f"{result.outcome.value} at step {index} ({step.name})"
                if policy == FailurePolicy.HALT_VARIANT:
                    variant_series.truncate(index + 1, reason)
                    continue

                # Abort: nothing after this invocation runs for any variant.
                for other in series.values():
                    done = other.result_at(index) is not None
                    other.truncate(index + 1 if done else index, f"scenario aborted: {reason}")
                return series

        return series


@dataclass
class ScenarioResult:
    """Results from one scenario run."""

    scenario: "Scenario"
    config: RunConfig
    series: dict[str, CostSeries]
    report: ComparisonReport
    start_time: datetime
    end_time: datetime
    deployment_errors: dict[str, str] = field(default_factory=dict)
    metadata: dict = field(default_factory=dict)

    @property
    def passed(self) -> bool:
        return self.report.passed(self.config.inconclusive_fails)

    def to_dict(self) -> dict:
        """Convert result to dictionary for serialization."""
        return {
            "scenario": self.scenario.to_dict(),
            "config": self.config.to_dict(),
            "series": {name: s.to_dict() for name, s in self.series.items()},
            "report": self.report.to_dict(),
            "deployment_errors": self.deployment_errors,
            "passed": self.passed,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "duration_seconds": (self.end_time - self.start_time).total_seconds(),
            "metadata": self.metadata,
        }

    def save(self, path: Path) -> None:
        """Save results to JSON file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)


class BenchmarkRunner:
    """Orchestrates deploy, execute and compare for scenarios in one environment."""

    def __init__(
        self,
        environment: ExecutionEnvironment,
        config: Optional[RunConfig] = None,
        tracer: Optional[Tracer] = None,
        verbose: bool = True,
        comparator: Optional[Comparator] = None,
    ):
        self.environment = environment
        self.config = config or RunConfig()
        self.tracer = tracer or get_tracer()
        self.verbose = verbose
        self.comparator = comparator or Comparator()

    async def run_scenario(
        self,
        scenario: "Scenario",
        registry: ImplementationRegistry,
    ) -> ScenarioResult:
        """Run one scenario against fresh instances of every variant.

        The environment must already be connected.
        """
        scenario.validate(registry)
        start_time = datetime.now()

        if self.verbose:
            print(f"\nRunning scenario: {scenario.name}")
            print(f"  Variants: {', '.join(registry.names())}")
            print(f"  Steps: {', '.join(scenario.step_labels())}")
            print(f"  Failure policy: {self.config.failure_policy.value}")

        async with self.tracer.async_span("scenario", {"bench.scenario": scenario.name}):
            deployer = InstanceDeployer(self.environment, self.config, self.tracer, self.verbose)
            batch = await deployer.deploy_all(registry)

            runner = ScenarioRunner(
                OperationInvoker(self.environment, self.config, self.tracer),
                self.config,
                self.verbose,
            )
            series = await runner.execute(
                scenario,
                batch.instances,
                registry.names(),
                {name: e.reason for name, e in batch.errors.items()},
            )

            attributes = {"bench.scenario": scenario.name, "bench.assertions": len(scenario.assertions)}
            with self.tracer.span("compare", attributes) as span:
                report = self.comparator.compare(
                    series, scenario.assertions, scenario.step_labels(), name=scenario.name
                )
                counts = report.counts()
                span.set_attribute("bench.failed", counts["fail"])
                span.set_attribute("bench.inconclusive", counts["inconclusive"])

        end_time = datetime.now()
        result = ScenarioResult(
            scenario=scenario,
            config=self.config,
            series=series,
            report=report,
            start_time=start_time,
            end_time=end_time,
            deployment_errors={name: e.reason for name, e in batch.errors.items()},
            metadata={"environment": type(self.environment).__name__, "registry": registry.name},
        )

        if self.verbose:
            counts = report.counts()
            print(f"\nResults for {scenario.name}:")
            print(f"  pass: {counts['pass']}  fail: {counts['fail']}  inconclusive: {counts['inconclusive']}")

        return result

    async def run_all(
        self,
        scenarios: Sequence["Scenario"],
        registry: ImplementationRegistry,
    ) -> list[ScenarioResult]:
        """Connect once, then run scenarios one after another.

        EnvironmentUnavailableError from ``connect`` aborts the run.
        """
        await self.environment.connect()
        try:
            return [await self.run_scenario(s, registry) for s in scenarios]
        finally:
            await self.environment.close()

    async def run(
        self,
        scenario: "Scenario",
        registry: ImplementationRegistry,
    ) -> ScenarioResult:
        """Run a single scenario in its own connect/close cycle."""
        results = await self.run_all([scenario], registry)
        return results[0]


async def run_matrix(
    scenarios: Sequence["Scenario"],
    registry: ImplementationRegistry,
    environment_factory: Callable[[], ExecutionEnvironment],
    config: Optional[RunConfig] = None,
    tracer: Optional[Tracer] = None,
) -> list[ScenarioResult]:
    """Run scenarios concurrently, each in its own environment context.

    Results come back in the order of ``scenarios``. If any scenario raises,
    the others are cancelled and awaited before the error propagates.
    """
    runners = [
        BenchmarkRunner(environment_factory(), config, tracer, verbose=False)
        for _ in scenarios
    ]
    tasks = [
        asyncio.ensure_future(runner.run(scenario, registry))
        for runner, scenario in zip(runners, scenarios)
    ]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise

