"""
FPL Squad Optimizer Configuration Module

Import the global config instance to access configuration values.

Usage:
    from fpl_squad_optimizer.config import config

    budget = config.squad.budget
    strategy = config.optimization.strategy_mode
"""

from .settings import (
    CandidatePoolConfig,
    CaptaincyConfig,
    OptimizationConfig,
    SquadOptimizerConfig,
    SquadRulesConfig,
    ValuationConfig,
    config,
    load_config,
)

__all__ = [
    "CandidatePoolConfig",
    "CaptaincyConfig",
    "OptimizationConfig",
    "SquadOptimizerConfig",
    "SquadRulesConfig",
    "ValuationConfig",
    "config",
    "load_config",
]
