"""
Scenario definitions for gas benchmarking.

A scenario is an ordered list of steps applied to freshly deployed
instances of every variant. Each step names an operation and the
parameters to pass; variants that expect a different parameter encoding
get a per-variant override, so encoding differences stay visible.

Built-in scenarios reproduce the UserRegistry gas comparison:
1. addUser
2. incrementActions (after addUser)
3. deactivateUser (after addUser)
4. the full add / increment / deactivate lifecycle
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from ..environment.abi import encode_bytes32_string
from ..exceptions import ConfigurationError
from ..harness.comparator import Assertion, cheaper_than
from ..variants import ImplementationRegistry


@dataclass
class Step:
    """One operation applied to every variant."""

    operation: str
    params: dict[str, Any] = field(default_factory=dict)
    overrides: dict[str, dict[str, Any]] = field(default_factory=dict)
    label: Optional[str] = None

    @property
    def name(self) -> str:
        return self.label or self.operation

    def params_for(self, variant: str) -> dict[str, Any]:
        """Parameters for ``variant``: shared params updated by its override."""
        params = dict(self.params)
        params.update(self.overrides.get(variant, {}))
        return params

    def to_dict(self) -> dict:
        return {
            "operation": self.operation,
            "label": self.name,
            "params": _jsonable(self.params),
            "overrides": {v: _jsonable(p) for v, p in self.overrides.items()},
        }


@dataclass
class Scenario:
    """Definition of a benchmark scenario."""

    name: str
    description: str
    steps: list[Step]
    assertions: list[Assertion] = field(default_factory=list)
    metadata: dict = field(default_factory=dict)

    def step_labels(self) -> list[str]:
        return [s.name for s in self.steps]

    def validate(self, registry: ImplementationRegistry) -> None:
        """Check steps and assertions against the variants being deployed."""
        if not self.steps:
            raise ConfigurationError(f"Scenario '{self.name}' has no steps")

        names = set(registry.names())
        for step in self.steps:
            stray = sorted(set(step.overrides) - names)
            if stray:
                raise ConfigurationError(
                    f"Scenario '{self.name}' step '{step.name}' overrides unknown variant(s): {', '.join(stray)}"
                )

        for assertion in self.assertions:
            unknown = [v for v in assertion.referenced_variants() if v not in names]
            if unknown:
                raise ConfigurationError(
                    f"Scenario '{self.name}' asserts on unknown variant(s): {', '.join(unknown)}"
                )
            if assertion.step >= len(self.steps):
                raise ConfigurationError(
                    f"Scenario '{self.name}' asserts on step {assertion.step}, "
                    f"but has only {len(self.steps)} steps"
                )

    def restricted_to(self, registry: ImplementationRegistry) -> "Scenario":
        """Copy of this scenario without assertions on variants outside ``registry``."""
        names = set(registry.names())
        return Scenario(
            name=self.name,
            description=self.description,
            steps=[
                Step(s.operation, dict(s.params), {v: p for v, p in s.overrides.items() if v in names}, s.label)
                for s in self.steps
            ],
            assertions=[
                a for a in self.assertions
                if all(v in names for v in a.referenced_variants())
            ],
            metadata=dict(self.metadata),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "description": self.description,
            "steps": [s.to_dict() for s in self.steps],
            "assertions": [a.describe(self.steps[a.step].name) for a in self.assertions],
            "metadata": self.metadata,
        }


def _jsonable(params: dict[str, Any]) -> dict[str, Any]:
    return {k: "0x" + v.hex() if isinstance(v, (bytes, bytearray)) else v for k, v in params.items()}


# ============================================================================
# UserRegistry scenarios
# ============================================================================

USER_ADDRESS = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
USER_NAME = "Alice"


def add_user_step(user: str = USER_ADDRESS, name: str = USER_NAME) -> Step:
    """addUser with a string name, except for the bytes32-encoded optimized variant."""
    return Step(
        operation="addUser",
        params={"user": user, "name": name},
        overrides={"optimized": {"name": encode_bytes32_string(name)}},
    )


def increment_actions_step(user: str = USER_ADDRESS) -> Step:
    return Step(operation="incrementActions", params={"user": user})


def deactivate_user_step(user: str = USER_ADDRESS) -> Step:
    return Step(operation="deactivateUser", params={"user": user})


ADD_USER = Scenario(
    name="add_user",
    description="addUser gas comparison",
    steps=[add_user_step()],
    assertions=[cheaper_than("optimized", "medium", "naive", step=0)],
)

INCREMENT_ACTIONS = Scenario(
    name="increment_actions",
    description="incrementActions gas comparison",
    steps=[add_user_step(), increment_actions_step()],
    assertions=[cheaper_than("optimized", "medium", "naive", step=1, strict=False)],
)

DEACTIVATE_USER = Scenario(
    name="deactivate_user",
    description="deactivateUser gas comparison",
    steps=[add_user_step(), deactivate_user_step()],
    assertions=[cheaper_than("optimized", "medium", "naive", step=1, strict=False)],
)

USER_LIFECYCLE = Scenario(
    name="user_lifecycle",
    description="addUser, incrementActions and deactivateUser on one instance",
    steps=[add_user_step(), increment_actions_step(), deactivate_user_step()],
    assertions=[
        cheaper_than("optimized", "medium", "naive", step=0),
        cheaper_than("optimized", "medium", "naive", step=1, strict=False),
        cheaper_than("optimized", "medium", "naive", step=2, strict=False),
    ],
)


# ============================================================================
# Scenario Registry
# ============================================================================

ALL_SCENARIOS = {
    s.name: s
    for s in (ADD_USER, INCREMENT_ACTIONS, DEACTIVATE_USER, USER_LIFECYCLE)
}


def get_scenario(name: str) -> Scenario:
    """Get a scenario by name."""
    try:
        return ALL_SCENARIOS[name]
    except KeyError:
        raise ConfigurationError(f"Unknown scenario: {name}") from None


def list_scenarios() -> dict[str, str]:
    """Scenario names mapped to their descriptions."""
    return {name: s.description for name, s in ALL_SCENARIOS.items()}
