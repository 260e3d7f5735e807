"""Squad, lineup, captaincy and result domain models."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from .candidate import DroppedCandidate
from .player import POSITION_ORDER, PlayerValuation, Position


class BindingConstraint(str, Enum):
    """The constraint that stopped a squad from being completed."""

    BUDGET = "budget"
    POSITION = "position"
    TEAM = "team"


class SelectionMethod(str, Enum):
    """Algorithm used to pick the squad."""

    GREEDY = "greedy"
    INTEGER_PROGRAM = "integer_program"


class Squad(BaseModel):
    """The selected players, in the order they were picked."""

    model_config = ConfigDict(frozen=True)

    players: Tuple[PlayerValuation, ...]

    def __len__(self) -> int:
        return len(self.players)

    @property
    def player_ids(self) -> List[int]:
        return [p.player_id for p in self.players]

    @property
    def total_cost(self) -> Decimal:
        return sum((p.price for p in self.players), Decimal("0"))

    @property
    def total_predicted_value(self) -> float:
        return sum(p.predicted_value for p in self.players)

    def position_counts(self) -> Dict[Position, int]:
        counts = {position: 0 for position in POSITION_ORDER}
        for player in self.players:
            counts[player.position] += 1
        return counts

    def team_counts(self) -> Dict[int, int]:
        counts: Dict[int, int] = {}
        for player in self.players:
            counts[player.team_id] = counts.get(player.team_id, 0) + 1
        return counts

    def by_position(self, position: Position) -> List[PlayerValuation]:
        return [p for p in self.players if p.position == position]


class Lineup(BaseModel):
    """Starting eleven plus ordered bench."""

    model_config = ConfigDict(frozen=True)

    starters: Tuple[PlayerValuation, ...]
    bench: Tuple[PlayerValuation, ...] = ()
    formation: str = Field(..., description="Outfield shape, e.g. '4-4-2'")

    def __len__(self) -> int:
        return len(self.starters)

    @property
    def predicted_value(self) -> float:
        return sum(p.predicted_value for p in self.starters)

    def position_counts(self) -> Dict[Position, int]:
        counts = {position: 0 for position in POSITION_ORDER}
        for player in self.starters:
            counts[player.position] += 1
        return counts


class CaptainCandidate(BaseModel):
    """A starter ranked for the armband."""

    model_config = ConfigDict(frozen=True)

    player: PlayerValuation
    captain_score: float
    rank: int = Field(..., ge=1)


class Captaincy(BaseModel):
    """Captain and vice-captain drawn from the starting lineup."""

    model_config = ConfigDict(frozen=True)

    captain: PlayerValuation
    vice_captain: PlayerValuation
    top_candidates: Tuple[CaptainCandidate, ...] = ()

    @property
    def advantage(self) -> float:
        """Expected points gained by captaining the captain over the vice."""
        return (
            self.captain.predicted_value - self.vice_captain.predicted_value
        ) * 2


class OptimalityReport(BaseModel):
    """How far the greedy squad is from the integer-program optimum."""

    model_config = ConfigDict(frozen=True)

    greedy_value: float
    optimal_value: Optional[float] = None
    solver_status: str
    absolute_gap: Optional[float] = None
    relative_gap: Optional[float] = None

    @classmethod
    def compare(
        cls, greedy_value: float, optimal_value: Optional[float], solver_status: str
    ) -> "OptimalityReport":
        if optimal_value is None:
            return cls(greedy_value=greedy_value, solver_status=solver_status)
        absolute_gap = max(0.0, optimal_value - greedy_value)
        relative_gap = absolute_gap / optimal_value if optimal_value > 0 else 0.0
        return cls(
            greedy_value=greedy_value,
            optimal_value=optimal_value,
            solver_status=solver_status,
            absolute_gap=absolute_gap,
            relative_gap=relative_gap,
        )


class SquadSelectionResult(BaseModel):
    """Everything one selection run produced, successful or not."""

    model_config = ConfigDict(frozen=True)

    success: bool
    message: str
    squad: Optional[Squad] = None
    lineup: Optional[Lineup] = None
    captaincy: Optional[Captaincy] = None

    budget: Decimal
    total_cost: Decimal = Decimal("0")
    remaining_budget: Decimal
    total_predicted_value: float = 0.0
    starting_xi_value: float = 0.0
    position_breakdown: Dict[str, int] = Field(default_factory=dict)
    team_breakdown: Dict[str, int] = Field(default_factory=dict)

    binding_constraint: Optional[BindingConstraint] = None
    partial_squad: Tuple[PlayerValuation, ...] = ()
    dropped_candidates: Tuple[DroppedCandidate, ...] = ()
    optimality: Optional[OptimalityReport] = None

    gameweek: Optional[int] = None
    strategy: str
    selection_method: SelectionMethod = SelectionMethod.GREEDY
    selected_at: datetime
    duration_seconds: float = Field(default=0.0, ge=0.0)

    @field_serializer("selected_at", when_used="json")
    def serialize_datetime(self, value: datetime) -> str:
        return value.isoformat()
