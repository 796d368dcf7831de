"""
Execution environment interface.

The harness treats the environment as an opaque asynchronous service that
can deploy a variant and invoke operations on the resulting instance.
"""

from dataclasses import dataclass
from typing import Any, Optional, Protocol, runtime_checkable

from ..variants import Variant


@dataclass(frozen=True)
class Instance:
    """Addressable handle to a deployed variant."""

    variant: str
    contract: str
    address: str


@dataclass(frozen=True)
class Receipt:
    """Definitive outcome of one submitted operation."""

    gas_used: int
    status: bool
    tx_hash: str = ""
    block_number: int = 0
    revert_reason: Optional[str] = None

    @property
    def committed(self) -> bool:
        return self.status


@runtime_checkable
class ExecutionEnvironment(Protocol):
    """Capability set every execution environment provides.

    - ``connect`` raises EnvironmentUnavailableError when unreachable.
    - ``deploy`` raises DeploymentError when the variant cannot be created.
    - ``invoke`` returns a Receipt (reverted receipts have ``status=False``)
      or raises TransactionRejected when the submission is refused.
    """

    async def connect(self) -> None:
        ...

    async def deploy(self, variant: Variant) -> Instance:
        ...

    async def invoke(
        self,
        instance: Instance,
        operation: str,
        params: dict[str, Any],
    ) -> Receipt:
        ...

    async def close(self) -> None:
        ...
