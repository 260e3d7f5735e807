"""Base utilities and data contracts for squad optimization.

This module contains shared functionality used across all optimization modules:
- Squad rules contract (Pydantic model)
- Ranking and deterministic tie-breaking
- Position grouping
- Formation labelling
"""

from decimal import Decimal
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from fpl_squad_optimizer.config import SquadOptimizerConfig, config as default_config
from fpl_squad_optimizer.domain.models import (
    POSITION_ORDER,
    PlayerValuation,
    Position,
    SelectionStrategy,
)


class SquadRules(BaseModel):
    """Data contract for the constants a selection run is held to."""

    model_config = ConfigDict(frozen=True)

    budget: Decimal = Field(gt=0, description="Budget in millions")
    position_quotas: Dict[Position, int]
    team_cap: int = Field(ge=1)
    lineup_size: int = Field(default=11, ge=2)
    formation_bounds: Dict[Position, Tuple[int, int]]

    @field_validator("position_quotas", "formation_bounds", mode="before")
    @classmethod
    def coerce_position_keys(cls, v):
        if isinstance(v, Mapping):
            return {Position.from_any(k): val for k, val in v.items()}
        return v

    @field_validator("position_quotas")
    @classmethod
    def validate_quotas(cls, v: Dict[Position, int]) -> Dict[Position, int]:
        missing = [p.value for p in POSITION_ORDER if p not in v]
        if missing:
            raise ValueError(f"position_quotas missing positions: {missing}")
        if any(count < 0 for count in v.values()):
            raise ValueError("Position quotas cannot be negative")
        return v

    @model_validator(mode="after")
    def validate_formation_fits_squad(self) -> "SquadRules":
        for position in POSITION_ORDER:
            if position not in self.formation_bounds:
                raise ValueError(f"formation_bounds missing {position.value}")
            low, _ = self.formation_bounds[position]
            if low > self.position_quotas[position]:
                raise ValueError(
                    f"Formation needs {low} {position.value} but quota is "
                    f"{self.position_quotas[position]}"
                )

        min_starters = sum(low for low, _ in self.formation_bounds.values())
        max_starters = sum(
            min(high, self.position_quotas[position])
            for position, (_, high) in self.formation_bounds.items()
        )
        if not min_starters <= self.lineup_size <= max_starters:
            raise ValueError(
                f"Lineup of {self.lineup_size} cannot be reached with these quotas "
                f"({min_starters}-{max_starters} starters fit the formation bounds)"
            )
        return self

    @property
    def squad_size(self) -> int:
        return sum(self.position_quotas.values())

    @classmethod
    def from_config(
        cls,
        cfg: Optional[SquadOptimizerConfig] = None,
        budget: Optional[Union[Decimal, float, str]] = None,
        position_quotas: Optional[Mapping] = None,
        team_cap: Optional[int] = None,
    ) -> "SquadRules":
        """Rules from configuration, with optional per-call overrides."""
        squad_cfg = (cfg or default_config).squad
        if isinstance(budget, float):
            budget = Decimal(str(budget))
        return cls(
            budget=budget if budget is not None else squad_cfg.budget,
            position_quotas=position_quotas
            if position_quotas is not None
            else squad_cfg.position_quotas,
            team_cap=team_cap if team_cap is not None else squad_cfg.team_cap,
            lineup_size=squad_cfg.lineup_size,
            formation_bounds=squad_cfg.formation_bounds,
        )


class OptimizationBaseMixin:
    """Mixin providing shared optimization utilities.

    - Strategy ranking with the fixed tie-break chain
    - Position grouping
    - Formation labels
    """

    def _ranking_key(
        self, strategy: SelectionStrategy, input_order: Mapping[int, int]
    ) -> Callable[[PlayerValuation], Tuple]:
        """Sort key: score desc, then price asc, variance asc, input order asc."""

        def key(player: PlayerValuation) -> Tuple:
            return (
                -strategy.score(player),
                player.price,
                player.estimate_variance,
                input_order.get(player.player_id, len(input_order)),
            )

        return key

    def _value_key(
        self, input_order: Mapping[int, int]
    ) -> Callable[[PlayerValuation], Tuple]:
        """Sort key on raw predicted value: value desc, price asc, input order."""

        def key(player: PlayerValuation) -> Tuple:
            return (
                -player.predicted_value,
                player.price,
                input_order.get(player.player_id, len(input_order)),
            )

        return key

    def _group_by_position(
        self, players: Sequence[PlayerValuation]
    ) -> Dict[Position, List[PlayerValuation]]:
        by_position: Dict[Position, List[PlayerValuation]] = {
            position: [] for position in POSITION_ORDER
        }
        for player in players:
            by_position[player.position].append(player)
        return by_position

    def _formation_label(self, counts: Mapping[Position, int]) -> str:
        """Outfield shape such as '4-4-2'."""
        return "-".join(
            str(counts.get(position, 0)) for position in POSITION_ORDER[1:]
        )
