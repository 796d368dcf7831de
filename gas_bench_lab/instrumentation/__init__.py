"""
Instrumentation module for gas benchmarking.

Provides cost measurement containers and tracing integration.
"""

from .gas import (
    Outcome,
    InvocationResult,
    CostSeries,
    Timer,
)

from .traces import (
    Tracer,
    TracingConfig,
    get_tracer,
    init_tracing,
    shutdown_tracing,
)

__all__ = [
    # Measurements
    "Outcome",
    "InvocationResult",
    "CostSeries",
    "Timer",
    # Tracing
    "Tracer",
    "TracingConfig",
    "get_tracer",
    "init_tracing",
    "shutdown_tracing",
]
