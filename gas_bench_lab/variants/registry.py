"""
Implementation registry: which variants exist and how to instantiate them.

A registry is a plain configuration value handed to each run. It is never
mutated during a run and can be reloaded from disk between runs.
"""

from pathlib import Path
from typing import Any, Iterable, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..exceptions import ConfigurationError


class Variant(BaseModel):
    """One implementation under comparison."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, description="Unique name used in reports")
    contract: str = Field(min_length=1, description="Contract artifact to deploy")
    constructor_args: list[Any] = Field(default_factory=list)
    description: str = ""


class ImplementationRegistry(BaseModel):
    """Ordered set of variants deployed together in a run."""

    model_config = ConfigDict(frozen=True)

    name: str = "default"
    variants: list[Variant]

    @field_validator("variants")
    @classmethod
    def _unique_names(cls, variants: list[Variant]) -> list[Variant]:
        if not variants:
            raise ValueError("registry must define at least one variant")
        seen: set[str] = set()
        for variant in variants:
            if variant.name in seen:
                raise ValueError(f"duplicate variant name: {variant.name}")
            seen.add(variant.name)
        return variants

    def __len__(self) -> int:
        return len(self.variants)

    def names(self) -> list[str]:
        """Variant names in deployment order."""
        return [v.name for v in self.variants]

    def get(self, name: str) -> Variant:
        """Look up a variant by name."""
        for variant in self.variants:
            if variant.name == name:
                return variant
        raise ConfigurationError(f"Unknown variant: {name}")

    def select(self, names: Iterable[str]) -> "ImplementationRegistry":
        """Return a registry restricted to ``names``, in the requested order."""
        variants = [self.get(n) for n in names]
        try:
            return ImplementationRegistry(name=self.name, variants=variants)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid variant selection: {e}") from e


def load_registry(path: Union[str, Path]) -> ImplementationRegistry:
    """Load a registry from a JSON file.

    Expected shape::

        {"name": "Registries",
         "variants": [{"name": "naive", "contract": "NaiveUserRegistry"}, ...]}
    """
    path = Path(path)
    try:
        raw = path.read_text()
    except OSError as e:
        raise ConfigurationError(f"Cannot read registry file {path}: {e}") from e

    try:
        return ImplementationRegistry.model_validate_json(raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid registry file {path}: {e}") from e


USER_REGISTRIES = ImplementationRegistry(
    name="Registries",
    variants=[
        Variant(
            name="naive",
            contract="NaiveUserRegistry",
            description="Unpacked storage, string names, enumerable user list",
        ),
        Variant(
            name="medium",
            contract="MediumUserRegistry",
            description="Packed counters, string names",
        ),
        Variant(
            name="optimized",
            contract="OptimizedUserRegistry",
            description="Packed counters, bytes32 names",
        ),
    ],
)
