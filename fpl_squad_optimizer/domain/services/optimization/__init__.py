"""Optimization module for FPL squad selection.

This module provides:
- Greedy and integer-program squad selection
- Starting lineup and bench selection
- Captain and vice-captain assignment

Usage:
    from fpl_squad_optimizer.domain.services.optimization import SquadSelector

    squad = SquadSelector().select(pool, rules, strategy)
"""

from .captain_service import CaptaincySelector
from .lineup_selection import LineupSelector
from .optimization_base import OptimizationBaseMixin, SquadRules
from .squad_lp import OptimalSquadSelector
from .squad_selection import SquadSelector

__all__ = [
    "CaptaincySelector",
    "LineupSelector",
    "OptimalSquadSelector",
    "OptimizationBaseMixin",
    "SquadRules",
    "SquadSelector",
]
