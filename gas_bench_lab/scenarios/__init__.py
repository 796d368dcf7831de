"""
Scenario definitions for gas benchmarking.
"""

from .definitions import (
    Step,
    Scenario,
    ADD_USER,
    INCREMENT_ACTIONS,
    DEACTIVATE_USER,
    USER_LIFECYCLE,
    ALL_SCENARIOS,
    USER_ADDRESS,
    USER_NAME,
    add_user_step,
    increment_actions_step,
    deactivate_user_step,
    get_scenario,
    list_scenarios,
)

__all__ = [
    "Step",
    "Scenario",
    "ADD_USER",
    "INCREMENT_ACTIONS",
    "DEACTIVATE_USER",
    "USER_LIFECYCLE",
    "ALL_SCENARIOS",
    "USER_ADDRESS",
    "USER_NAME",
    "add_user_step",
    "increment_actions_step",
    "deactivate_user_step",
    "get_scenario",
    "list_scenarios",
]
