"""Exceptions raised by the squad selection pipeline."""

from typing import Dict, Optional, Sequence, Tuple

from ..models.player import PlayerValuation, Position
from ..models.squad import BindingConstraint
from .result import DomainError, ErrorType


class SquadSelectionError(Exception):
    """Base class for selection pipeline failures."""

    error_type: ErrorType = ErrorType.CALCULATION_ERROR

    def details(self) -> Dict:
        return {}

    def to_domain_error(self) -> DomainError:
        """Structured form of this error for consumers."""
        return DomainError(
            error_type=self.error_type, message=str(self), details=self.details()
        )


class InsufficientCandidatesError(SquadSelectionError):
    """A position has fewer eligible candidates than its squad quota."""

    error_type = ErrorType.INSUFFICIENT_CANDIDATES

    def __init__(self, shortfalls: Dict[Position, Tuple[int, int]]):
        if not shortfalls:
            raise ValueError("InsufficientCandidatesError needs at least one shortfall")
        self.shortfalls = dict(shortfalls)
        self.position, (self.available, self.required) = next(
            iter(self.shortfalls.items())
        )
        summary = ", ".join(
            f"{pos.value} {available}/{required}"
            for pos, (available, required) in self.shortfalls.items()
        )
        super().__init__(f"Not enough eligible candidates ({summary})")

    def details(self) -> Dict:
        return {
            pos.value: {"available": available, "required": required}
            for pos, (available, required) in self.shortfalls.items()
        }


class InfeasibleSquadError(SquadSelectionError):
    """Selection finished without filling every squad slot."""

    error_type = ErrorType.INFEASIBLE_SQUAD

    def __init__(
        self,
        partial_squad: Sequence[PlayerValuation],
        binding_constraint: BindingConstraint,
        position: Optional[Position] = None,
        required: int = 0,
    ):
        self.partial_squad = tuple(partial_squad)
        self.binding_constraint = binding_constraint
        self.position = position
        self.required = required
        where = f" at {position.value}" if position is not None else ""
        super().__init__(
            f"Could not select full squad: {len(self.partial_squad)}/{required} "
            f"players, blocked by {binding_constraint.value}{where}"
        )

    def details(self) -> Dict:
        return {
            "binding_constraint": self.binding_constraint.value,
            "position": self.position.value if self.position else None,
            "selected": len(self.partial_squad),
            "required": self.required,
        }


class EmptyLineupError(SquadSelectionError):
    """Captaincy was requested for a lineup with fewer than two players."""

    error_type = ErrorType.INVARIANT_VIOLATION


class FormationError(SquadSelectionError):
    """The squad cannot field a legal starting formation."""

    error_type = ErrorType.INVARIANT_VIOLATION
