"""Tests for the simulated chain and the UserRegistry contract models."""

import pytest

from gas_bench_lab.environment import (
    ExecutionEnvironment,
    SimulatedChain,
    encode_bytes32_string,
)
from gas_bench_lab.environment.evm import (
    COLD_SLOAD_GAS,
    SSTORE_SET_GAS,
    TX_BASE_GAS,
    GasMeter,
    Storage,
)
from gas_bench_lab.exceptions import (
    DeploymentError,
    EnvironmentUnavailableError,
    TransactionRejected,
)
from gas_bench_lab.harness import BenchmarkRunner, RunConfig, run_matrix
from gas_bench_lab.scenarios import (
    ADD_USER,
    ALL_SCENARIOS,
    USER_ADDRESS,
    USER_LIFECYCLE,
)
from gas_bench_lab.variants import USER_REGISTRIES, Variant

NAME_PARAMS = {
    "naive": {"user": USER_ADDRESS, "name": "Alice"},
    "medium": {"user": USER_ADDRESS, "name": "Alice"},
    "optimized": {"user": USER_ADDRESS, "name": encode_bytes32_string("Alice")},
}


async def deploy_all(chain):
    await chain.connect()
    return {v.name: await chain.deploy(v) for v in USER_REGISTRIES.variants}


# =============================================================================
# Chain behaviour
# =============================================================================


class TestSimulatedChain:
    """Deployment, invocation and failure modes."""

    def test_satisfies_environment_protocol(self):
        assert isinstance(SimulatedChain(), ExecutionEnvironment)

    @pytest.mark.asyncio
    async def test_unreachable(self):
        with pytest.raises(EnvironmentUnavailableError):
            await SimulatedChain(reachable=False).connect()

    @pytest.mark.asyncio
    async def test_requires_connection(self):
        with pytest.raises(EnvironmentUnavailableError):
            await SimulatedChain().deploy(USER_REGISTRIES.get("naive"))

    @pytest.mark.asyncio
    async def test_deploy_gives_distinct_addresses(self):
        instances = await deploy_all(SimulatedChain())

        addresses = {i.address for i in instances.values()}
        assert len(addresses) == 3
        assert instances["optimized"].contract == "OptimizedUserRegistry"

    @pytest.mark.asyncio
    async def test_unknown_contract(self):
        chain = SimulatedChain()
        await chain.connect()

        with pytest.raises(DeploymentError, match="unknown contract"):
            await chain.deploy(Variant(name="ghost", contract="GhostRegistry"))

    @pytest.mark.asyncio
    async def test_rejected_deployment(self):
        chain = SimulatedChain(reject_deployments=["medium"])
        await chain.connect()

        with pytest.raises(DeploymentError) as excinfo:
            await chain.deploy(USER_REGISTRIES.get("medium"))

        assert excinfo.value.variant == "medium"
        assert chain.invocation_log[-1].status is False

    @pytest.mark.asyncio
    async def test_constructor_out_of_gas(self):
        chain = SimulatedChain(gas_limit=50_000)
        await chain.connect()

        with pytest.raises(DeploymentError, match="out of gas"):
            await chain.deploy(USER_REGISTRIES.get("naive"))

    @pytest.mark.asyncio
    async def test_revert_returns_failed_receipt_and_burns_gas(self):
        chain = SimulatedChain()
        instances = await deploy_all(chain)

        receipt = await chain.invoke(instances["medium"], "incrementActions", {"user": USER_ADDRESS})

        assert not receipt.committed
        assert receipt.revert_reason == "user not active"
        assert receipt.gas_used > TX_BASE_GAS + COLD_SLOAD_GAS

    @pytest.mark.asyncio
    async def test_revert_rolls_back_storage(self):
        chain = SimulatedChain()
        instances = await deploy_all(chain)
        naive = instances["naive"]

        first = await chain.invoke(naive, "addUser", NAME_PARAMS["naive"])
        again = await chain.invoke(naive, "addUser", NAME_PARAMS["naive"])
        increment = await chain.invoke(naive, "incrementActions", {"user": USER_ADDRESS})

        assert first.committed
        assert not again.committed
        assert again.revert_reason == "user exists"
        assert increment.committed

    @pytest.mark.asyncio
    async def test_string_name_for_bytes32_variant_is_rejected(self):
        chain = SimulatedChain()
        instances = await deploy_all(chain)

        with pytest.raises(TransactionRejected, match="bytes32"):
            await chain.invoke(instances["optimized"], "addUser", NAME_PARAMS["naive"])

    @pytest.mark.asyncio
    @pytest.mark.parametrize("operation,params,message", [
        ("removeUser", {"user": USER_ADDRESS}, "no function"),
        ("incrementActions", {}, "missing argument"),
        ("incrementActions", {"user": USER_ADDRESS, "extra": 1}, "unexpected argument"),
        ("incrementActions", {"user": "alice"}, "invalid address"),
    ])
    async def test_bad_calls_are_rejected(self, operation, params, message):
        chain = SimulatedChain()
        instances = await deploy_all(chain)

        with pytest.raises(TransactionRejected, match=message):
            await chain.invoke(instances["naive"], operation, params)

    @pytest.mark.asyncio
    async def test_invocation_log_is_sequential(self):
        chain = SimulatedChain(latency=0.001)
        instances = await deploy_all(chain)
        for name, instance in instances.items():
            await chain.invoke(instance, "addUser", NAME_PARAMS[name])

        log = chain.invocation_log
        assert [r.kind for r in log] == ["deploy"] * 3 + ["invoke"] * 3
        for earlier, later in zip(log, log[1:]):
            assert earlier.started < earlier.finished < later.started


class TestStorage:
    """Journaled storage and its gas charges."""

    def test_rollback_restores_previous_values(self):
        storage = Storage()
        storage.begin(GasMeter())
        storage.store("count", 1)
        storage.commit()

        meter = GasMeter()
        storage.begin(meter)
        storage.store("count", 2)
        storage.store("fresh", 7)
        storage.rollback()

        assert storage.peek("count") == 1
        assert storage.peek("fresh") == 0
        assert meter.used > 0

    def test_commit_keeps_values(self):
        storage = Storage()
        meter = GasMeter()
        storage.begin(meter)
        storage.store("count", 5)
        storage.commit()

        assert storage.peek("count") == 5
        assert meter.used == COLD_SLOAD_GAS + SSTORE_SET_GAS

    def test_access_outside_a_transaction(self):
        with pytest.raises(RuntimeError):
            Storage().load("count")


# =============================================================================
# UserRegistry gas ordering
# =============================================================================


class TestUserRegistryCosts:
    """Relative gas costs of the three registries."""

    async def _lifecycle_costs(self):
        chain = SimulatedChain()
        instances = await deploy_all(chain)
        costs = {}
        for name, instance in instances.items():
            add = await chain.invoke(instance, "addUser", NAME_PARAMS[name])
            inc = await chain.invoke(instance, "incrementActions", {"user": USER_ADDRESS})
            off = await chain.invoke(instance, "deactivateUser", {"user": USER_ADDRESS})
            assert add.committed and inc.committed and off.committed
            costs[name] = (add.gas_used, inc.gas_used, off.gas_used)
        return costs

    @pytest.mark.asyncio
    async def test_add_user_strictly_ordered(self):
        costs = await self._lifecycle_costs()

        assert costs["optimized"][0] < costs["medium"][0] < costs["naive"][0]

    @pytest.mark.asyncio
    async def test_packed_counter_is_cheaper_to_increment(self):
        costs = await self._lifecycle_costs()

        assert costs["optimized"][1] == costs["medium"][1]
        assert costs["medium"][1] < costs["naive"][1]

    @pytest.mark.asyncio
    async def test_deactivate_costs_match(self):
        costs = await self._lifecycle_costs()

        assert costs["optimized"][2] == costs["medium"][2] == costs["naive"][2]

    @pytest.mark.asyncio
    async def test_fresh_chains_report_identical_costs(self):
        first = await self._lifecycle_costs()
        second = await self._lifecycle_costs()

        assert first == second


# =============================================================================
# Built-in scenarios
# =============================================================================


class TestBuiltInScenarios:
    """The shipped scenarios against the shipped registries."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", sorted(ALL_SCENARIOS))
    async def test_scenario_passes(self, name, tracer):
        runner = BenchmarkRunner(SimulatedChain(), RunConfig(), tracer, verbose=False)

        result = await runner.run(ALL_SCENARIOS[name], USER_REGISTRIES)

        assert result.passed
        assert result.report.counts()["fail"] == 0
        assert result.report.counts()["inconclusive"] == 0
        assert all(s.is_complete(len(ALL_SCENARIOS[name].steps)) for s in result.series.values())

    @pytest.mark.asyncio
    async def test_repeated_runs_are_deterministic(self, tracer):
        results = await run_matrix(
            [USER_LIFECYCLE, USER_LIFECYCLE],
            USER_REGISTRIES,
            SimulatedChain,
            RunConfig(),
            tracer,
        )

        first, second = (r.report.table.as_matrix() for r in results)
        assert first == second

    @pytest.mark.asyncio
    async def test_rejected_deployment_leaves_assertions_inconclusive(self, tracer):
        chain = SimulatedChain(reject_deployments=["naive"])
        runner = BenchmarkRunner(chain, RunConfig(), tracer, verbose=False)

        result = await runner.run(ADD_USER, USER_REGISTRIES)

        assert "naive" in result.deployment_errors
        assert result.series["medium"].is_complete(1)
        assert result.report.counts() == {"pass": 0, "fail": 0, "inconclusive": 1}
