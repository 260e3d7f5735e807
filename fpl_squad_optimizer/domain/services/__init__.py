"""Domain services for squad selection."""

from .candidate_pool import CandidatePoolBuilder
from .result_assembler import ResultAssembler
from .squad_selection_service import SquadSelectionService
from .valuation_service import (
    EnsembleValueProvider,
    StaticValueProvider,
    StrategyAdjustedProvider,
    ValuationGatherer,
)

__all__ = [
    "CandidatePoolBuilder",
    "EnsembleValueProvider",
    "ResultAssembler",
    "SquadSelectionService",
    "StaticValueProvider",
    "StrategyAdjustedProvider",
    "ValuationGatherer",
]
