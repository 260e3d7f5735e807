"""Selection strategy domain models."""

from enum import Enum
from typing import Union

from pydantic import BaseModel, ConfigDict, Field


class StrategyMode(str, Enum):
    """Named squad selection strategies."""

    BALANCED = "balanced"
    AGGRESSIVE = "aggressive"
    CONSERVATIVE = "conservative"
    VALUE_HUNTING = "value_hunting"

    @classmethod
    def from_any(cls, value: Union["StrategyMode", str]) -> "StrategyMode":
        if isinstance(value, StrategyMode):
            return value
        key = str(value).strip().lower().replace("-", "_")
        # Accept "ValueHunting" as well as "value_hunting"
        if key == "valuehunting":
            key = "value_hunting"
        try:
            return cls(key)
        except ValueError:
            valid = [m.value for m in cls]
            raise ValueError(f"strategy must be one of {valid}, got {value!r}")


class RankingKey(str, Enum):
    """Score used to order candidates within a position."""

    PREDICTED_VALUE = "predicted_value"
    VALUE_DENSITY = "value_density"
    BLENDED = "blended"


class SelectionStrategy(BaseModel):
    """
    Approximation knobs for the greedy squad selector.

    ``ranking_key`` decides scan order inside a position. For the blended key
    the score is ``predicted_value * confidence ** confidence_weight``, so a
    weight of 0 ignores confidence and larger weights punish shaky forecasts
    harder. ``reserve_budget`` keeps enough money back to fill every
    remaining slot with its cheapest candidate.
    """

    model_config = ConfigDict(frozen=True)

    mode: StrategyMode = StrategyMode.BALANCED
    ranking_key: RankingKey = RankingKey.BLENDED
    confidence_weight: float = Field(default=1.0, ge=0.0, le=5.0)
    reserve_budget: bool = False

    @classmethod
    def from_mode(
        cls, mode: Union[StrategyMode, str], reserve_budget: bool = False
    ) -> "SelectionStrategy":
        """Build the preset strategy for a named mode."""
        mode = StrategyMode.from_any(mode)
        presets = {
            StrategyMode.BALANCED: (RankingKey.BLENDED, 1.0),
            StrategyMode.AGGRESSIVE: (RankingKey.PREDICTED_VALUE, 0.0),
            StrategyMode.CONSERVATIVE: (RankingKey.BLENDED, 2.0),
            StrategyMode.VALUE_HUNTING: (RankingKey.VALUE_DENSITY, 0.0),
        }
        ranking_key, confidence_weight = presets[mode]
        return cls(
            mode=mode,
            ranking_key=ranking_key,
            confidence_weight=confidence_weight,
            reserve_budget=reserve_budget,
        )

    def score(self, player) -> float:
        """Ranking score for a PlayerValuation under this strategy."""
        if self.ranking_key == RankingKey.PREDICTED_VALUE:
            return player.predicted_value
        if self.ranking_key == RankingKey.VALUE_DENSITY:
            return player.value_density
        return player.predicted_value * player.confidence**self.confidence_weight
