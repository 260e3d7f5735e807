"""Valuation gathering and reference value providers.

This module handles:
- Parallel ValueProvider calls with a caller timeout
- Static valuations from a mapping or DataFrame
- Fixed-weight ensemble of component providers
- Strategy adjustments applied at valuation time
"""

from concurrent.futures import ThreadPoolExecutor, TimeoutError, as_completed
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd
from loguru import logger
from pydantic import ValidationError

from fpl_squad_optimizer.config import ValuationConfig, config as default_config
from fpl_squad_optimizer.domain.common.result import DomainError, ErrorType, Result
from fpl_squad_optimizer.domain.models import (
    DroppedCandidate,
    DropReason,
    PlayerValuation,
    StrategyMode,
)
from fpl_squad_optimizer.domain.repositories import PlanningCycle, ValueProvider


class ValuationGatherer:
    """Fans ValueProvider calls out over a thread pool.

    Results are merged back in the order of the requested IDs regardless of
    completion order. Anything that failed, raised or did not finish before
    the timeout is reported as a ``provider_error`` drop.
    """

    def __init__(self, valuation_config: Optional[ValuationConfig] = None):
        cfg = valuation_config or default_config.valuation
        self.max_workers = cfg.max_workers
        self.timeout_seconds = cfg.gather_timeout_seconds

    def gather(
        self,
        provider: ValueProvider,
        player_ids: Sequence[int],
        cycle: PlanningCycle,
    ) -> Tuple[List[PlayerValuation], List[DroppedCandidate]]:
        """
        Collect valuations for all players in one planning cycle.

        Returns:
            Tuple of (valuations in input order, dropped candidates)
        """
        logger.info(
            f"🔄 Gathering {len(player_ids)} valuations for GW{cycle.gameweek} "
            f"({self.max_workers} workers, {self.timeout_seconds:.0f}s timeout)"
        )
        outcomes: Dict[int, Result[PlayerValuation]] = {}

        executor = ThreadPoolExecutor(max_workers=self.max_workers)
        try:
            futures = {
                executor.submit(provider.get_valuation, player_id, cycle): player_id
                for player_id in player_ids
            }
            try:
                for future in as_completed(futures, timeout=self.timeout_seconds):
                    player_id = futures[future]
                    try:
                        outcomes[player_id] = future.result()
                    except Exception as e:
                        logger.error(f"❌ Provider raised for player {player_id}: {e}")
                        outcomes[player_id] = Result.failure(
                            DomainError.provider_error(
                                str(e), details={"player_id": player_id}
                            )
                        )
            except TimeoutError:
                pending = [pid for pid in player_ids if pid not in outcomes]
                logger.warning(
                    f"⚠️ Valuation gather timed out with {len(pending)} calls unfinished"
                )
                for player_id in pending:
                    outcomes[player_id] = Result.failure(
                        DomainError.timeout(
                            f"Timed out after {self.timeout_seconds:g}s",
                            details={"player_id": player_id},
                        )
                    )
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        valuations: List[PlayerValuation] = []
        dropped: List[DroppedCandidate] = []
        for player_id in player_ids:
            outcome = outcomes[player_id]
            if outcome.is_failure:
                dropped.append(
                    DroppedCandidate(
                        player_id=player_id,
                        reason=DropReason.PROVIDER_ERROR,
                        detail=outcome.error.message,
                    )
                )
            else:
                valuations.append(outcome.value)

        logger.info(
            f"✅ Gathered {len(valuations)}/{len(player_ids)} valuations"
            + (f", {len(dropped)} failed" if dropped else "")
        )
        return valuations, dropped


class StaticValueProvider(ValueProvider):
    """Serves valuations from a fixed table.

    Accepts a mapping of player ID to PlayerValuation (or raw dict), or a
    DataFrame with a ``player_id`` column.
    """

    def __init__(self, valuations: Union[pd.DataFrame, Mapping[int, object]]):
        if isinstance(valuations, pd.DataFrame):
            if "player_id" not in valuations.columns:
                raise ValueError("DataFrame must contain a 'player_id' column")
            self._rows = {
                int(row["player_id"]): {
                    k: v for k, v in row.items() if not _is_missing_scalar(v)
                }
                for row in valuations.to_dict("records")
            }
        else:
            self._rows = dict(valuations)

    def get_valuation(
        self, player_id: int, cycle: PlanningCycle
    ) -> Result[PlayerValuation]:
        row = self._rows.get(player_id)
        if row is None:
            return Result.failure(
                DomainError(
                    error_type=ErrorType.PROVIDER_ERROR,
                    message=f"No valuation for player {player_id}",
                    details={"player_id": player_id, "gameweek": cycle.gameweek},
                )
            )
        if isinstance(row, PlayerValuation):
            return Result.success(row)
        try:
            return Result.success(PlayerValuation.model_validate(row))
        except ValidationError as e:
            return Result.failure(
                DomainError.validation_error(
                    f"Invalid valuation for player {player_id}",
                    field_errors={
                        ".".join(str(loc) for loc in err["loc"]): err["msg"]
                        for err in e.errors()
                    },
                )
            )


def _is_missing_scalar(value: object) -> bool:
    return pd.api.types.is_scalar(value) and pd.isna(value)


class EnsembleValueProvider(ValueProvider):
    """Blends component providers with fixed weights.

    Predicted value is the weighted mean of the components that answered,
    with weights renormalized over them. Confidence is the weighted mean of
    component confidences scaled by the share of weight that answered, so
    a player only one model could value is trusted less.
    """

    def __init__(
        self,
        components: Mapping[str, ValueProvider],
        weights: Optional[Mapping[str, float]] = None,
    ):
        weights = dict(weights or default_config.valuation.ensemble_weights)
        unknown = set(components) - set(weights)
        if unknown:
            raise ValueError(f"No ensemble weight for components: {sorted(unknown)}")
        self.components = dict(components)
        self.weights = {name: weights[name] for name in self.components}

    def get_valuation(
        self, player_id: int, cycle: PlanningCycle
    ) -> Result[PlayerValuation]:
        return cycle.memoize(
            ("ensemble", id(self), player_id),
            lambda: self._blend(player_id, cycle),
        )

    def _blend(self, player_id: int, cycle: PlanningCycle) -> Result[PlayerValuation]:
        answered: List[Tuple[float, PlayerValuation]] = []
        errors: List[str] = []
        for name, component in self.components.items():
            outcome = component.get_valuation(player_id, cycle)
            if outcome.is_success:
                answered.append((self.weights[name], outcome.value))
            else:
                errors.append(f"{name}: {outcome.error.message}")

        total_weight = sum(weight for weight, _ in answered)
        if not answered or total_weight <= 0:
            return Result.failure(
                DomainError.provider_error(
                    f"No ensemble component valued player {player_id}",
                    details={"player_id": player_id, "components": errors},
                )
            )

        predicted = sum(w * v.predicted_value for w, v in answered) / total_weight
        confidence = sum(w * v.confidence for w, v in answered) / total_weight
        coverage = total_weight / sum(self.weights.values())
        base = answered[0][1]

        if errors:
            logger.debug(f"Ensemble for player {player_id} missing {len(errors)} components")

        return Result.success(
            base.model_copy(
                update={
                    "predicted_value": predicted,
                    "confidence": min(1.0, confidence * coverage),
                }
            )
        )


class StrategyAdjustedProvider(ValueProvider):
    """Applies strategy multipliers to another provider's predictions.

    - aggressive: every prediction boosted
    - conservative: every prediction shrunk
    - value_hunting: players above the points-per-million threshold boosted
    - balanced: unchanged
    """

    def __init__(
        self,
        inner: ValueProvider,
        mode: Union[StrategyMode, str],
        valuation_config: Optional[ValuationConfig] = None,
    ):
        self.inner = inner
        self.mode = StrategyMode.from_any(mode)
        self.config = valuation_config or default_config.valuation

    def get_valuation(
        self, player_id: int, cycle: PlanningCycle
    ) -> Result[PlayerValuation]:
        return self.inner.get_valuation(player_id, cycle).map(self._adjust)

    def _adjust(self, valuation: PlayerValuation) -> PlayerValuation:
        multiplier = 1.0
        if self.mode == StrategyMode.AGGRESSIVE:
            multiplier = self.config.aggressive_multiplier
        elif self.mode == StrategyMode.CONSERVATIVE:
            multiplier = self.config.conservative_multiplier
        elif (
            self.mode == StrategyMode.VALUE_HUNTING
            and valuation.value_density > self.config.value_hunting_threshold
        ):
            multiplier = self.config.value_hunting_multiplier

        if multiplier == 1.0:
            return valuation
        return valuation.model_copy(
            update={"predicted_value": valuation.predicted_value * multiplier}
        )
