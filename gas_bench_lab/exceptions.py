"""
Error taxonomy for the gas benchmark harness.

Only unrecoverable conditions travel as exceptions across component
boundaries. Per-step failures (rejected or timed-out invocations) are
captured as data on InvocationResult / CostSeries instead.
"""

from typing import Optional


class GasBenchError(Exception):
    """Base class for all harness errors."""


class ConfigurationError(GasBenchError):
    """Invalid registry, scenario or run configuration."""


class EnvironmentUnavailableError(GasBenchError):
    """The execution environment cannot be reached. Aborts the whole run."""


class DeploymentError(GasBenchError):
    """A variant could not be instantiated in the execution environment."""

    def __init__(self, variant: str, reason: str):
        self.variant = variant
        self.reason = reason
        super().__init__(f"Deployment of '{variant}' failed: {reason}")


class TransactionRejected(GasBenchError):
    """An operation was refused or reverted by the execution environment."""

    def __init__(self, reason: str, gas_used: int = 0, tx_hash: Optional[str] = None):
        self.reason = reason
        self.gas_used = gas_used
        self.tx_hash = tx_hash
        super().__init__(reason)
