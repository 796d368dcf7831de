"""
Deterministic in-process chain for running gas comparisons offline.

Each SimulatedChain is an independent environment context: its own
accounts, nonce, blocks and contract storage. Given the same sequence of
requests it always produces the same gas figures.
"""

import asyncio
import hashlib
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from ..exceptions import (
    DeploymentError,
    EnvironmentUnavailableError,
    TransactionRejected,
)
from ..variants import Variant
from .abi import calldata_gas, encode_arguments, function_selector
from .base import Instance, Receipt
from .evm import (
    CODE_DEPOSIT_GAS_PER_BYTE,
    CREATE_GAS,
    DEFAULT_GAS_LIMIT,
    TX_BASE_GAS,
    CallContext,
    ContractModel,
    GasMeter,
    Revert,
    Storage,
)
from .user_registry import USER_REGISTRY_CONTRACTS

# Well-known local development accounts.
DEFAULT_ACCOUNTS = (
    "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266",
    "0x70997970C51812dc3A010C7d01b50e0d17dc79C8",
    "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC",
)

GENESIS_TIMESTAMP = 1_700_000_000
BLOCK_TIME_SECONDS = 12


@dataclass(frozen=True)
class InvocationRecord:
    """Sequence-numbered trace of one request handled by the chain."""

    kind: str
    variant: str
    operation: str
    started: int
    finished: int
    gas_used: int = 0
    status: bool = True


@dataclass
class _Deployed:
    variant: str
    model: ContractModel
    storage: Storage


class SimulatedChain:
    """Gas-metered execution environment backed by Python contract models.

    Args:
        contracts: Mapping of contract name to ContractModel subclass.
            Defaults to the UserRegistry models.
        latency: Seconds awaited per request, so calls genuinely suspend.
        reachable: When False, ``connect`` raises EnvironmentUnavailableError.
        reject_deployments: Variant names whose deployment is refused.
        gas_limit: Per-transaction gas limit.
    """

    def __init__(
        self,
        contracts: Optional[Mapping[str, type[ContractModel]]] = None,
        latency: float = 0.0,
        reachable: bool = True,
        reject_deployments: Iterable[str] = (),
        gas_limit: int = DEFAULT_GAS_LIMIT,
        chain_id: int = 31337,
        accounts: tuple[str, ...] = DEFAULT_ACCOUNTS,
    ):
        self.contracts = dict(contracts if contracts is not None else USER_REGISTRY_CONTRACTS)
        self.latency = latency
        self.reachable = reachable
        self.reject_deployments = set(reject_deployments)
        self.gas_limit = gas_limit
        self.chain_id = chain_id
        self.accounts = accounts
        self.invocation_log: list[InvocationRecord] = []

        self._connected = False
        self._deployed: dict[str, _Deployed] = {}
        self._nonce = 0
        self._block_number = 0
        self._sequence = 0

    @property
    def deployer(self) -> str:
        return self.accounts[0]

    @property
    def block_number(self) -> int:
        return self._block_number

    def _next_sequence(self) -> int:
        self._sequence += 1
        return self._sequence

    async def _delay(self) -> None:
        if self.latency > 0:
            await asyncio.sleep(self.latency)
        else:
            await asyncio.sleep(0)

    def _require_connection(self) -> None:
        if not self._connected:
            raise EnvironmentUnavailableError("simulated chain is not connected")

    def _tx_hash(self, *parts: Any) -> str:
        payload = ":".join(str(p) for p in (self.chain_id, self._nonce, *parts))
        return "0x" + hashlib.sha256(payload.encode()).hexdigest()

    def _derive_address(self) -> str:
        digest = hashlib.sha256(f"{self.deployer.lower()}:{self._nonce}".encode()).hexdigest()
        return "0x" + digest[-40:]

    def _mine(self) -> None:
        self._nonce += 1
        self._block_number += 1

    def _context(self, meter: GasMeter) -> CallContext:
        block = self._block_number + 1
        return CallContext(
            sender=self.deployer,
            block_number=block,
            timestamp=GENESIS_TIMESTAMP + block * BLOCK_TIME_SECONDS,
            meter=meter,
        )

    async def connect(self) -> None:
        await self._delay()
        if not self.reachable:
            raise EnvironmentUnavailableError("simulated chain is unreachable")
        self._connected = True

    async def close(self) -> None:
        self._connected = False

    async def deploy(self, variant: Variant) -> Instance:
        self._require_connection()
        started = self._next_sequence()
        await self._delay()

        try:
            model_cls = self.contracts.get(variant.contract)
            if model_cls is None:
                raise DeploymentError(variant.name, f"unknown contract artifact '{variant.contract}'")
            if variant.name in self.reject_deployments:
                raise DeploymentError(variant.name, "deployment rejected by environment")

            meter = GasMeter(self.gas_limit)
            storage = Storage()
            storage.begin(meter)
            try:
                meter.charge(TX_BASE_GAS + CREATE_GAS + model_cls.code_size * CODE_DEPOSIT_GAS_PER_BYTE)
                model = model_cls(storage, *variant.constructor_args)
            except (Revert, TypeError) as e:
                raise DeploymentError(variant.name, f"constructor failed: {e}") from e
            storage.commit()
        except DeploymentError:
            self.invocation_log.append(
                InvocationRecord("deploy", variant.name, "deploy", started, self._next_sequence(), status=False)
            )
            raise

        address = self._derive_address()
        self._deployed[address] = _Deployed(variant=variant.name, model=model, storage=storage)
        self._mine()
        self.invocation_log.append(
            InvocationRecord("deploy", variant.name, "deploy", started, self._next_sequence(), meter.used)
        )
        return Instance(variant=variant.name, contract=variant.contract, address=address)

    def _build_call(
        self,
        deployed: _Deployed,
        operation: str,
        params: dict[str, Any],
    ) -> tuple[bytes, dict[str, Any]]:
        abi = deployed.model.functions.get(operation)
        if abi is None:
            raise TransactionRejected(
                f"{deployed.model.contract_name} has no function '{operation}'"
            )

        names = [name for name, _ in abi]
        missing = [n for n in names if n not in params]
        unexpected = sorted(set(params) - set(names))
        if missing:
            raise TransactionRejected(f"missing argument(s) for {operation}: {', '.join(missing)}")
        if unexpected:
            raise TransactionRejected(f"unexpected argument(s) for {operation}: {', '.join(unexpected)}")

        types = [abi_type for _, abi_type in abi]
        signature = f"{operation}({','.join(types)})"
        calldata = function_selector(signature) + encode_arguments(types, [params[n] for n in names])
        return calldata, {n: params[n] for n in names}

    async def invoke(
        self,
        instance: Instance,
        operation: str,
        params: dict[str, Any],
    ) -> Receipt:
        self._require_connection()
        started = self._next_sequence()
        await self._delay()

        deployed = self._deployed.get(instance.address)
        try:
            if deployed is None:
                raise TransactionRejected(f"no contract deployed at {instance.address}")
            calldata, args = self._build_call(deployed, operation, params)
        except TransactionRejected:
            self.invocation_log.append(
                InvocationRecord("invoke", instance.variant, operation, started, self._next_sequence(), status=False)
            )
            raise

        meter = GasMeter(self.gas_limit)
        ctx = self._context(meter)
        deployed.storage.begin(meter)
        revert_reason = None
        try:
            meter.charge(TX_BASE_GAS + calldata_gas(calldata))
            deployed.model.execute(operation, ctx, args)
        except Revert as e:
            deployed.storage.rollback()
            revert_reason = e.reason
        else:
            deployed.storage.commit()

        tx_hash = self._tx_hash(instance.address, operation)
        self._mine()
        receipt = Receipt(
            gas_used=meter.used,
            status=revert_reason is None,
            tx_hash=tx_hash,
            block_number=self._block_number,
            revert_reason=revert_reason,
        )
        self.invocation_log.append(
            InvocationRecord(
                "invoke", instance.variant, operation, started, self._next_sequence(),
                receipt.gas_used, receipt.status,
            )
        )
        return receipt
