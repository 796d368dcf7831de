"""
Gas Bench Lab - A harness for comparing the gas cost of equivalent contracts.

Deploys several interchangeable implementations of the same component,
runs an identical sequence of operations against each and checks ordering
assertions such as "optimized cheaper than medium cheaper than naive".

Key modules:
- variants: Implementation registry (which variants exist, how to deploy them)
- environment: Execution environment interface and a simulated chain
- instrumentation: Invocation results, cost series and tracing
- scenarios: Predefined operation sequences and their assertions
- harness: Deployment, orchestration, comparison and reporting
"""

__version__ = "0.1.0"

from . import variants
from . import environment
from . import instrumentation
from . import harness
from . import scenarios

__all__ = [
    "variants",
    "environment",
    "instrumentation",
    "harness",
    "scenarios",
]
