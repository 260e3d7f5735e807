"""Candidate pool domain models."""

from enum import Enum
from typing import Dict, List, Optional, Tuple

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, model_validator

from .player import POSITION_ORDER, PlayerValuation, Position


class DropReason(str, Enum):
    """Why a raw valuation did not make it into the candidate pool."""

    MALFORMED = "malformed"
    NON_POSITIVE_PRICE = "non_positive_price"
    UNSUPPORTED_POSITION = "unsupported_position"
    MISSING_VALUE = "missing_value"
    LOW_CONFIDENCE = "low_confidence"
    UNAVAILABLE = "unavailable"
    HIGH_RISK = "high_risk"
    DUPLICATE = "duplicate"
    PROVIDER_ERROR = "provider_error"


class DroppedCandidate(BaseModel):
    """A raw valuation that was filtered out, kept for diagnostics."""

    model_config = ConfigDict(frozen=True)

    player_id: Optional[int] = None
    reason: DropReason
    detail: str = ""


class CandidatePool(BaseModel):
    """
    Filtered, deduplicated candidates for one planning cycle.

    Order is the stable input order and is what the selectors fall back on
    to break exact ties.
    """

    model_config = ConfigDict(frozen=True)

    candidates: Tuple[PlayerValuation, ...]
    gameweek: Optional[int] = Field(None, ge=1, le=38)
    dropped: Tuple[DroppedCandidate, ...] = ()

    @model_validator(mode="after")
    def validate_unique_ids(self) -> "CandidatePool":
        ids = [c.player_id for c in self.candidates]
        if len(ids) != len(set(ids)):
            raise ValueError("Candidate pool cannot contain duplicate player IDs")
        return self

    def __len__(self) -> int:
        return len(self.candidates)

    def by_position(self, position: Position) -> List[PlayerValuation]:
        return [c for c in self.candidates if c.position == position]

    def position_counts(self) -> Dict[Position, int]:
        counts = {position: 0 for position in POSITION_ORDER}
        for candidate in self.candidates:
            counts[candidate.position] += 1
        return counts

    def input_order(self) -> Dict[int, int]:
        """Map of player ID to its index in the pool."""
        return {c.player_id: i for i, c in enumerate(self.candidates)}

    def to_dataframe(self) -> pd.DataFrame:
        """Candidates as a DataFrame, one row per player."""
        rows = [
            {
                "player_id": c.player_id,
                "display_name": c.display_name,
                "position": c.position.value,
                "team_id": c.team_id,
                "price": float(c.price),
                "predicted_value": c.predicted_value,
                "confidence": c.confidence,
                "value_density": c.value_density,
            }
            for c in self.candidates
        ]
        return pd.DataFrame(
            rows,
            columns=[
                "player_id",
                "display_name",
                "position",
                "team_id",
                "price",
                "predicted_value",
                "confidence",
                "value_density",
            ],
        )
