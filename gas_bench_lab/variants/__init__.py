"""
Implementation registry: the variants under comparison.
"""

from .registry import (
    Variant,
    ImplementationRegistry,
    USER_REGISTRIES,
    load_registry,
)

__all__ = [
    "Variant",
    "ImplementationRegistry",
    "USER_REGISTRIES",
    "load_registry",
]
