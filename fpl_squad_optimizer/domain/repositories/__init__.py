"""Repository interfaces for data access abstraction."""

from .value_provider import PlanningCycle, ValueProvider

__all__ = [
    "PlanningCycle",
    "ValueProvider",
]
