"""
Execution environments the harness can deploy variants into.
"""

from .abi import (
    decode_bytes32_string,
    encode_arguments,
    encode_bytes32_string,
    is_address,
)
from .base import ExecutionEnvironment, Instance, Receipt
from .evm import CallContext, ContractModel, GasMeter, Revert, Storage
from .simulated import DEFAULT_ACCOUNTS, InvocationRecord, SimulatedChain
from .user_registry import (
    USER_REGISTRY_CONTRACTS,
    MediumUserRegistry,
    NaiveUserRegistry,
    OptimizedUserRegistry,
)

__all__ = [
    # Interface
    "ExecutionEnvironment",
    "Instance",
    "Receipt",
    # Simulated chain
    "SimulatedChain",
    "InvocationRecord",
    "DEFAULT_ACCOUNTS",
    "CallContext",
    "ContractModel",
    "GasMeter",
    "Revert",
    "Storage",
    # Contracts
    "USER_REGISTRY_CONTRACTS",
    "NaiveUserRegistry",
    "MediumUserRegistry",
    "OptimizedUserRegistry",
    # ABI
    "encode_bytes32_string",
    "decode_bytes32_string",
    "encode_arguments",
    "is_address",
]
