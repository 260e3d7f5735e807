"""Common domain types and utilities."""

from .exceptions import (
    EmptyLineupError,
    FormationError,
    InfeasibleSquadError,
    InsufficientCandidatesError,
    SquadSelectionError,
)
from .result import DomainError, ErrorType, Result

__all__ = [
    "DomainError",
    "EmptyLineupError",
    "ErrorType",
    "FormationError",
    "InfeasibleSquadError",
    "InsufficientCandidatesError",
    "Result",
    "SquadSelectionError",
]
