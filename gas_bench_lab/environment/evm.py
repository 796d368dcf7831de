"""
Gas accounting primitives for the simulated chain.

Storage access follows the EIP-2929 warm/cold model. Refunds are not
modelled, so clearing a slot costs the same as any other update.
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar, Optional

TX_BASE_GAS = 21_000
CREATE_GAS = 32_000
CODE_DEPOSIT_GAS_PER_BYTE = 200
COLD_SLOAD_GAS = 2_100
WARM_ACCESS_GAS = 100
SSTORE_SET_GAS = 20_000
SSTORE_RESET_GAS = 2_900
LOG_GAS = 375
LOG_TOPIC_GAS = 375
LOG_DATA_GAS_PER_BYTE = 8

DEFAULT_GAS_LIMIT = 30_000_000


class Revert(Exception):
    """Raised by contract code to abort the current call."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class GasMeter:
    """Accumulates gas for one transaction."""

    def __init__(self, limit: int = DEFAULT_GAS_LIMIT):
        self.limit = limit
        self.used = 0

    def charge(self, amount: int) -> None:
        self.used += amount
        if self.used > self.limit:
            self.used = self.limit
            raise Revert("out of gas")


class Storage:
    """Contract storage with warm/cold tracking and per-transaction journal."""

    def __init__(self):
        self._slots: dict[str, int] = {}
        self._warm: set[str] = set()
        self._journal: dict[str, int] = {}
        self._meter: Optional[GasMeter] = None

    def begin(self, meter: GasMeter) -> None:
        """Start a transaction charging ``meter``."""
        self._meter = meter
        self._warm = set()
        self._journal = {}

    def commit(self) -> None:
        self._journal = {}
        self._meter = None

    def rollback(self) -> None:
        for slot, previous in self._journal.items():
            if previous:
                self._slots[slot] = previous
            else:
                self._slots.pop(slot, None)
        self._journal = {}
        self._meter = None

    def _charge(self, amount: int) -> None:
        if self._meter is None:
            raise RuntimeError("storage accessed outside a transaction")
        self._meter.charge(amount)

    def _touch(self, slot: str) -> None:
        if slot in self._warm:
            return
        self._warm.add(slot)
        self._charge(COLD_SLOAD_GAS)

    def load(self, slot: str) -> int:
        if slot in self._warm:
            self._charge(WARM_ACCESS_GAS)
        else:
            self._touch(slot)
        return self._slots.get(slot, 0)

    def store(self, slot: str, value: int) -> None:
        self._touch(slot)
        current = self._slots.get(slot, 0)

        if value == current:
            self._charge(WARM_ACCESS_GAS)
        elif current == 0:
            self._charge(SSTORE_SET_GAS)
        else:
            self._charge(SSTORE_RESET_GAS)

        self._journal.setdefault(slot, current)
        if value:
            self._slots[slot] = value
        else:
            self._slots.pop(slot, None)

    def store_string(self, slot: str, text: str) -> None:
        """Store a string using Solidity's short/long string layout."""
        data = text.encode("utf-8")
        if len(data) < 32:
            # Short strings share one slot with their length.
            packed = int.from_bytes(data.ljust(31, b"\x00"), "big") << 8 | len(data) * 2
            self.store(slot, packed)
            return

        self.store(slot, len(data) * 2 + 1)
        for i in range(0, len(data), 32):
            chunk = data[i:i + 32].ljust(32, b"\x00")
            self.store(f"{slot}[{i // 32}]", int.from_bytes(chunk, "big"))

    def peek(self, slot: str) -> int:
        """Read a slot without charging gas."""
        return self._slots.get(slot, 0)


@dataclass
class CallContext:
    """Block and sender information visible to contract code."""

    sender: str
    block_number: int
    timestamp: int
    meter: GasMeter
    events: list[dict] = field(default_factory=list)

    def emit(self, name: str, topics: int, data: bytes = b"") -> None:
        self.meter.charge(LOG_GAS + LOG_TOPIC_GAS * topics + LOG_DATA_GAS_PER_BYTE * len(data))
        self.events.append({"event": name, "topics": topics, "data": data.hex()})


class ContractModel:
    """Base class for contracts executed by the simulated chain.

    Subclasses declare ``contract_name`` and the parameter ABI of each
    callable operation in ``functions``; each operation is a method taking
    the call context plus its named parameters.
    """

    contract_name: ClassVar[str] = ""
    functions: ClassVar[dict[str, tuple[tuple[str, str], ...]]] = {}
    code_size: ClassVar[int] = 1_024

    def __init__(self, storage: Storage, *constructor_args: Any):
        self.storage = storage

    def execute(self, operation: str, ctx: CallContext, args: dict[str, Any]) -> None:
        getattr(self, operation)(ctx, **args)
