"""
Global Configuration System for the FPL Squad Optimizer

Centralized configuration for squad rules, candidate filtering, selection
strategy, captaincy and valuation gathering. Provides type-safe configuration
with validation and environment variable support.
"""

import json
import os
from decimal import Decimal
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from loguru import logger
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

VALID_POSITIONS = ("GKP", "DEF", "MID", "FWD")
VALID_STRATEGY_MODES = ["balanced", "aggressive", "conservative", "value_hunting"]
VALID_SELECTION_METHODS = ["greedy", "integer_program"]


class SquadRulesConfig(BaseModel):
    """Squad Construction Rules"""

    budget: Decimal = Field(
        default=Decimal("100.0"),
        description="Squad budget in millions",
        gt=0,
        le=1000,
    )
    position_quotas: Dict[str, int] = Field(
        default_factory=lambda: {"GKP": 2, "DEF": 5, "MID": 5, "FWD": 3},
        description="Players required per position",
    )
    team_cap: int = Field(
        default=3, description="Maximum players from a single team", ge=1, le=15
    )
    lineup_size: int = Field(
        default=11, description="Players in the starting lineup", ge=2, le=15
    )
    formation_bounds: Dict[str, Tuple[int, int]] = Field(
        default_factory=lambda: {
            "GKP": (1, 1),
            "DEF": (3, 5),
            "MID": (2, 5),
            "FWD": (1, 3),
        },
        description="Inclusive (min, max) starters per position",
    )

    @field_validator("position_quotas")
    @classmethod
    def validate_position_quotas(cls, v: Dict[str, int]) -> Dict[str, int]:
        if set(v) != set(VALID_POSITIONS):
            raise ValueError(f"position_quotas must cover exactly {VALID_POSITIONS}")
        if any(count < 1 for count in v.values()):
            raise ValueError("Every position quota must be at least 1")
        return v

    @field_validator("formation_bounds")
    @classmethod
    def validate_formation_bounds(
        cls, v: Dict[str, Tuple[int, int]]
    ) -> Dict[str, Tuple[int, int]]:
        if set(v) != set(VALID_POSITIONS):
            raise ValueError(f"formation_bounds must cover exactly {VALID_POSITIONS}")
        for position, (low, high) in v.items():
            if low < 0 or high < low:
                raise ValueError(f"Invalid formation bounds for {position}: {low}-{high}")
        return v

    @property
    def squad_size(self) -> int:
        return sum(self.position_quotas.values())


class CandidatePoolConfig(BaseModel):
    """Candidate Filtering Configuration"""

    min_confidence: float = Field(
        default=0.0,
        description="Drop valuations whose confidence is below this floor",
        ge=0.0,
        le=1.0,
    )
    excluded_statuses: List[str] = Field(
        default_factory=lambda: ["i", "s", "u", "n"],
        description="Availability statuses that are never selectable",
    )
    max_risk_severity: Optional[int] = Field(
        default=None,
        description="Drop candidates carrying any risk above this severity (1-3). None = keep all",
        ge=1,
        le=3,
    )

    @field_validator("excluded_statuses")
    @classmethod
    def validate_statuses(cls, v: List[str]) -> List[str]:
        valid = {"a", "d", "i", "s", "u", "n"}
        invalid = [s for s in v if s not in valid]
        if invalid:
            raise ValueError(f"Unknown availability statuses: {invalid}")
        return v


class OptimizationConfig(BaseModel):
    """Squad Optimization Configuration"""

    strategy_mode: str = Field(
        default="balanced",
        description="Selection strategy: 'balanced' (value x confidence), 'aggressive' (raw value), "
        "'conservative' (value x confidence^2), 'value_hunting' (points per million)",
    )
    selection_method: str = Field(
        default="greedy",
        description="'greedy' position-ordered scan or 'integer_program' (PuLP/CBC, optimal)",
    )
    reserve_budget: bool = Field(
        default=False,
        description="Greedy only: keep back the cheapest cost of every unfilled slot before accepting a player",
    )
    measure_optimality_gap: bool = Field(
        default=False,
        description="Also solve the integer program and report how far the greedy squad is from optimal",
    )
    ilp_time_limit_seconds: int = Field(
        default=30, description="CBC time limit per solve", ge=1, le=600
    )

    @field_validator("strategy_mode")
    @classmethod
    def validate_strategy_mode(cls, v):
        v = v.lower()
        if v not in VALID_STRATEGY_MODES:
            raise ValueError(f"strategy_mode must be one of {VALID_STRATEGY_MODES}")
        return v

    @field_validator("selection_method")
    @classmethod
    def validate_selection_method(cls, v):
        v = v.lower()
        if v not in VALID_SELECTION_METHODS:
            raise ValueError(
                f"selection_method must be one of {VALID_SELECTION_METHODS}"
            )
        return v


class CaptaincyConfig(BaseModel):
    """Captain Selection Configuration"""

    top_candidates: int = Field(
        default=5, description="Number of ranked captain candidates to report", ge=2, le=11
    )


class ValuationConfig(BaseModel):
    """Valuation Gathering Configuration"""

    max_workers: int = Field(
        default=8, description="Parallel ValueProvider calls", ge=1, le=64
    )
    gather_timeout_seconds: float = Field(
        default=30.0,
        description="Wall-clock limit for gathering all valuations",
        gt=0.0,
        le=3600.0,
    )
    ensemble_weights: Dict[str, float] = Field(
        default_factory=lambda: {"lightgbm": 0.40, "fast_tree": 0.35, "time_series": 0.25},
        description="Fixed blend weights for the ensemble value provider",
    )

    # Strategy adjustments applied to predictions at valuation time
    aggressive_multiplier: float = Field(
        default=1.1, description="Boost for aggressive predictions", ge=0.5, le=2.0
    )
    conservative_multiplier: float = Field(
        default=0.9, description="Shrink for conservative predictions", ge=0.5, le=2.0
    )
    value_hunting_threshold: float = Field(
        default=0.6,
        description="Points per million above which value hunting boosts a player",
        ge=0.0,
    )
    value_hunting_multiplier: float = Field(
        default=1.15, description="Boost for value picks", ge=1.0, le=2.0
    )

    @field_validator("ensemble_weights")
    @classmethod
    def validate_ensemble_weights(cls, v: Dict[str, float]) -> Dict[str, float]:
        if not v:
            raise ValueError("ensemble_weights must not be empty")
        if any(weight < 0 for weight in v.values()):
            raise ValueError("ensemble_weights must be non-negative")
        if abs(sum(v.values()) - 1.0) > 1e-6:
            raise ValueError(f"ensemble_weights must sum to 1.0, got {sum(v.values())}")
        return v


class SquadOptimizerConfig(BaseModel):
    """Master Configuration Container"""

    squad: SquadRulesConfig = Field(
        default_factory=SquadRulesConfig, description="Squad Construction Rules"
    )
    candidate_pool: CandidatePoolConfig = Field(
        default_factory=CandidatePoolConfig, description="Candidate Filtering"
    )
    optimization: OptimizationConfig = Field(
        default_factory=OptimizationConfig, description="Squad Optimization"
    )
    captaincy: CaptaincyConfig = Field(
        default_factory=CaptaincyConfig, description="Captain Selection"
    )
    valuation: ValuationConfig = Field(
        default_factory=ValuationConfig, description="Valuation Gathering"
    )

    @model_validator(mode="after")
    def validate_config_consistency(self):
        """Validate cross-field consistency"""
        bounds = self.squad.formation_bounds
        quotas = self.squad.position_quotas
        min_starters = sum(low for low, _ in bounds.values())
        max_starters = sum(min(high, quotas[pos]) for pos, (_, high) in bounds.items())
        if not min_starters <= self.squad.lineup_size <= max_starters:
            raise ValueError(
                f"squad.lineup_size {self.squad.lineup_size} cannot be reached with "
                f"formation bounds ({min_starters}-{max_starters} starters)"
            )
        if self.squad.lineup_size > self.squad.squad_size:
            raise ValueError("squad.lineup_size cannot exceed the squad size")
        for position, (low, _) in bounds.items():
            if low > quotas[position]:
                raise ValueError(
                    f"formation minimum for {position} exceeds its squad quota"
                )
        return self


def _parse_env_value(value: str):
    """Best-effort conversion of an environment string to bool/int/float."""
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    if value.isdigit() or (value.startswith("-") and value[1:].isdigit()):
        return int(value)
    if value.startswith("{") or value.startswith("["):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value
    try:
        return float(value) if "." in value else value
    except ValueError:
        return value


def _env_overrides(environ: Dict[str, str]) -> Dict[str, Dict]:
    """Collect FPL_{SECTION}_{FIELD} overrides.

    Sections may contain underscores (``candidate_pool``), so the longest
    matching section name wins.
    """
    sections = sorted(SquadOptimizerConfig.model_fields, key=len, reverse=True)
    overrides: Dict[str, Dict] = {}
    for env_var, value in environ.items():
        if not env_var.startswith("FPL_"):
            continue
        remainder = env_var[len("FPL_"):].lower()
        for section in sections:
            if remainder.startswith(section + "_"):
                field = remainder[len(section) + 1:]
                overrides.setdefault(section, {})[field] = _parse_env_value(value)
                break
    return overrides


def load_config(
    config_path: Optional[Path] = None,
    config_data: Optional[Dict] = None,
    environ: Optional[Dict[str, str]] = None,
) -> SquadOptimizerConfig:
    """
    Load configuration with environment variable overrides and optional config file

    Args:
        config_path: Optional path to a JSON configuration file
        config_data: Optional dictionary of configuration data
        environ: Environment to read overrides from (defaults to os.environ)

    Environment variables can override any config value using the pattern:
    FPL_{SECTION}_{FIELD} = value

    Example: FPL_SQUAD_BUDGET=95.5
    """
    config_dict: Dict = {}

    if config_path and config_path.exists():
        try:
            with open(config_path, "r") as f:
                if config_path.suffix.lower() == ".json":
                    config_dict = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"⚠️ Failed to load config file {config_path}: {e}")

    if config_data:
        for section, fields in config_data.items():
            if isinstance(fields, dict):
                config_dict.setdefault(section, {}).update(fields)
            else:
                config_dict[section] = fields

    env_overrides = _env_overrides(os.environ if environ is None else environ)
    for section, fields in env_overrides.items():
        config_dict.setdefault(section, {}).update(fields)

    try:
        return SquadOptimizerConfig(**config_dict)
    except ValidationError as e:
        logger.warning(f"⚠️ Configuration validation failed: {e}")
        logger.warning("Using default configuration...")
        return SquadOptimizerConfig()


# Global configuration instance
config = load_config()
