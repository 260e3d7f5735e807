"""Candidate pool construction.

Turns raw valuations (mappings, PlayerValuation objects or a DataFrame) into
a filtered, deduplicated CandidatePool. Every rejected entry is kept as a
DroppedCandidate so callers can see why a player never reached selection.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd
from loguru import logger
from pydantic import ValidationError

from fpl_squad_optimizer.config import CandidatePoolConfig, config as default_config
from fpl_squad_optimizer.domain.common.exceptions import InsufficientCandidatesError
from fpl_squad_optimizer.domain.models import (
    POSITION_ORDER,
    CandidatePool,
    DroppedCandidate,
    DropReason,
    PlayerValuation,
    Position,
)

RawValuations = Union[pd.DataFrame, Iterable[Union[Mapping[str, Any], PlayerValuation]]]

# Column names used by the FPL API and prediction frames
COLUMN_ALIASES = {
    "id": "player_id",
    "web_name": "display_name",
    "name": "display_name",
    "team": "team_id",
    "xP": "predicted_value",
    "expected_points": "predicted_value",
    "status": "availability",
    "xP_uncertainty": "uncertainty",
}


def _alias_renames(keys: Iterable[str]) -> Dict[str, str]:
    """Alias -> canonical renames that do not collide with existing keys.

    An alias is only applied when its canonical name is absent, and the
    first alias listed in COLUMN_ALIASES claims a shared target.
    """
    keys = list(keys)
    claimed = set(keys)
    renames: Dict[str, str] = {}
    for alias, canonical in COLUMN_ALIASES.items():
        if alias in keys and canonical not in claimed:
            renames[alias] = canonical
            claimed.add(canonical)
    return renames


def _is_missing(value: Any) -> bool:
    return value is None or (pd.api.types.is_scalar(value) and pd.isna(value))


def _player_id_of(data: Mapping[str, Any]) -> Optional[int]:
    try:
        return int(data["player_id"])
    except (KeyError, TypeError, ValueError):
        return None


class CandidatePoolBuilder:
    """Builds candidate pools from raw valuations.

    Filters run in a fixed order: coercion, confidence floor, availability,
    risk ceiling, then deduplication by player ID (last write wins, keeping
    the slot of the first appearance).
    """

    def __init__(self, pool_config: Optional[CandidatePoolConfig] = None):
        self.config = pool_config or default_config.candidate_pool

    def build(
        self,
        raw_valuations: RawValuations,
        position_quotas: Mapping[Position, int],
        gameweek: Optional[int] = None,
        prior_drops: Sequence[DroppedCandidate] = (),
    ) -> CandidatePool:
        """
        Build the candidate pool for one planning cycle.

        Args:
            raw_valuations: DataFrame (one row per player) or iterable of
                mappings / PlayerValuation objects
            position_quotas: Players required per position
            gameweek: Planning cycle the valuations belong to
            prior_drops: Drops recorded upstream (e.g. provider failures)

        Returns:
            CandidatePool with surviving candidates in stable input order

        Raises:
            InsufficientCandidatesError: If any position has fewer eligible
                candidates than its quota.
        """
        dropped: List[DroppedCandidate] = list(prior_drops)
        survivors: Dict[int, PlayerValuation] = {}

        for raw in self._iter_raw(raw_valuations):
            valuation, drop = self._coerce(raw)
            if drop is None:
                drop = self._filter(valuation)
            if drop is not None:
                dropped.append(drop)
                logger.debug(
                    f"🚫 Dropped candidate {drop.player_id}: {drop.reason.value} {drop.detail}"
                )
                continue

            if valuation.player_id in survivors:
                replaced = survivors[valuation.player_id]
                dropped.append(
                    DroppedCandidate(
                        player_id=replaced.player_id,
                        reason=DropReason.DUPLICATE,
                        detail=f"{replaced.display_name} replaced by a later valuation",
                    )
                )
                logger.debug(
                    f"🚫 Duplicate valuation for player {valuation.player_id}, keeping the latest"
                )
            # Re-assigning an existing key keeps its original position
            survivors[valuation.player_id] = valuation

        pool = CandidatePool(
            candidates=tuple(survivors.values()),
            gameweek=gameweek,
            dropped=tuple(dropped),
        )

        counts = pool.position_counts()
        shortfalls = {
            position: (counts[position], position_quotas[position])
            for position in POSITION_ORDER
            if counts[position] < position_quotas[position]
        }
        if shortfalls:
            error = InsufficientCandidatesError(shortfalls)
            logger.error(f"❌ {error}")
            raise error

        if dropped:
            logger.info(
                f"🔍 Candidate pool: {len(pool)} eligible, {len(dropped)} dropped"
            )
        else:
            logger.info(f"🔍 Candidate pool: {len(pool)} eligible")
        return pool

    def _iter_raw(self, raw_valuations: RawValuations) -> Iterable[Any]:
        if isinstance(raw_valuations, pd.DataFrame):
            frame = raw_valuations.rename(
                columns=_alias_renames(raw_valuations.columns)
            )
            return frame.to_dict("records")
        return raw_valuations

    def _coerce(
        self, raw: Any
    ) -> Tuple[Optional[PlayerValuation], Optional[DroppedCandidate]]:
        """Validate one raw entry, classifying the failure if it is unusable."""
        if isinstance(raw, PlayerValuation):
            return raw, None
        if not isinstance(raw, Mapping):
            return None, DroppedCandidate(
                reason=DropReason.MALFORMED,
                detail=f"Expected a mapping, got {type(raw).__name__}",
            )

        renames = _alias_renames(raw.keys())
        data = {renames.get(k, k): v for k, v in raw.items()}
        data = {k: (None if _is_missing(v) else v) for k, v in data.items()}
        player_id = _player_id_of(data)

        if data.get("predicted_value") is None:
            return None, DroppedCandidate(
                player_id=player_id,
                reason=DropReason.MISSING_VALUE,
                detail="No predicted value",
            )

        price = data.get("price")
        try:
            price_ok = price is not None and Decimal(str(price)) > 0
        except InvalidOperation:
            price_ok = True  # left for the model validator to reject as malformed
        if not price_ok:
            return None, DroppedCandidate(
                player_id=player_id,
                reason=DropReason.NON_POSITIVE_PRICE,
                detail=f"Price {price!r}",
            )

        try:
            Position.from_any(data.get("position"))
        except ValueError:
            return None, DroppedCandidate(
                player_id=player_id,
                reason=DropReason.UNSUPPORTED_POSITION,
                detail=f"Position {data.get('position')!r}",
            )

        try:
            return PlayerValuation.model_validate(data), None
        except ValidationError as e:
            fields = sorted({".".join(str(loc) for loc in err["loc"]) for err in e.errors()})
            return None, DroppedCandidate(
                player_id=player_id,
                reason=DropReason.MALFORMED,
                detail=f"Invalid fields: {', '.join(fields)}",
            )

    def _filter(self, valuation: PlayerValuation) -> Optional[DroppedCandidate]:
        if valuation.confidence < self.config.min_confidence:
            return DroppedCandidate(
                player_id=valuation.player_id,
                reason=DropReason.LOW_CONFIDENCE,
                detail=f"Confidence {valuation.confidence:.2f} below {self.config.min_confidence:.2f}",
            )

        if valuation.availability.value in self.config.excluded_statuses:
            return DroppedCandidate(
                player_id=valuation.player_id,
                reason=DropReason.UNAVAILABLE,
                detail=f"Status {valuation.availability.value}",
            )

        ceiling = self.config.max_risk_severity
        worst = valuation.max_risk_severity
        if ceiling is not None and worst is not None and worst > ceiling:
            return DroppedCandidate(
                player_id=valuation.player_id,
                reason=DropReason.HIGH_RISK,
                detail=f"{worst.name.lower()} risk above ceiling {ceiling}",
            )

        return None
