"""Domain models with strict data contracts for squad selection."""

from .candidate import CandidatePool, DroppedCandidate, DropReason
from .player import (
    POSITION_ORDER,
    AvailabilityStatus,
    PlayerValuation,
    Position,
    RiskCategory,
    RiskFactor,
    RiskSeverity,
)
from .squad import (
    BindingConstraint,
    CaptainCandidate,
    Captaincy,
    Lineup,
    OptimalityReport,
    SelectionMethod,
    Squad,
    SquadSelectionResult,
)
from .strategy import RankingKey, SelectionStrategy, StrategyMode

__all__ = [
    "AvailabilityStatus",
    "BindingConstraint",
    "CandidatePool",
    "CaptainCandidate",
    "Captaincy",
    "DropReason",
    "DroppedCandidate",
    "Lineup",
    "OptimalityReport",
    "PlayerValuation",
    "Position",
    "POSITION_ORDER",
    "RankingKey",
    "RiskCategory",
    "RiskFactor",
    "RiskSeverity",
    "SelectionMethod",
    "SelectionStrategy",
    "Squad",
    "SquadSelectionResult",
    "StrategyMode",
]
