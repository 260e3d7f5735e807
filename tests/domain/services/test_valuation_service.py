"""Tests for valuation gathering and the reference value providers."""

import threading
import time

import pandas as pd
import pytest

from fpl_squad_optimizer.config import ValuationConfig
from fpl_squad_optimizer.domain.common import DomainError, ErrorType, Result
from fpl_squad_optimizer.domain.models import DropReason, StrategyMode
from fpl_squad_optimizer.domain.repositories import PlanningCycle, ValueProvider
from fpl_squad_optimizer.domain.services.valuation_service import (
    EnsembleValueProvider,
    StaticValueProvider,
    StrategyAdjustedProvider,
    ValuationGatherer,
)


class SlowProvider(ValueProvider):
    """Answers in reverse ID order so completion order differs from input order."""

    def __init__(self, player_factory, fail_ids=(), raise_ids=()):
        self.player_factory = player_factory
        self.fail_ids = set(fail_ids)
        self.raise_ids = set(raise_ids)

    def get_valuation(self, player_id, cycle):
        time.sleep(0.01 * (10 - player_id))
        if player_id in self.raise_ids:
            raise RuntimeError("model server unavailable")
        if player_id in self.fail_ids:
            return Result.failure(DomainError.provider_error("no forecast"))
        return Result.success(self.player_factory(player_id, "MID"))


class BlockingProvider(ValueProvider):
    """Blocks one player's lookup until released."""

    def __init__(self, player_factory, blocked_id):
        self.player_factory = player_factory
        self.blocked_id = blocked_id
        self.release = threading.Event()

    def get_valuation(self, player_id, cycle):
        if player_id == self.blocked_id:
            self.release.wait(5)
        return Result.success(self.player_factory(player_id, "MID"))


@pytest.fixture
def cycle():
    return PlanningCycle(gameweek=12)


@pytest.fixture
def gatherer():
    return ValuationGatherer(ValuationConfig(max_workers=4, gather_timeout_seconds=5.0))


class TestValuationGatherer:
    """Test parallel gather, ordering and failure reporting."""

    def test_merges_in_input_order(self, gatherer, player_factory, cycle):
        valuations, dropped = gatherer.gather(
            SlowProvider(player_factory), [1, 2, 3, 4, 5], cycle
        )

        assert [v.player_id for v in valuations] == [1, 2, 3, 4, 5]
        assert dropped == []

    def test_failures_and_exceptions_become_drops(self, gatherer, player_factory, cycle):
        provider = SlowProvider(player_factory, fail_ids={2}, raise_ids={4})

        valuations, dropped = gatherer.gather(provider, [1, 2, 3, 4, 5], cycle)

        assert [v.player_id for v in valuations] == [1, 3, 5]
        assert [(d.player_id, d.reason) for d in dropped] == [
            (2, DropReason.PROVIDER_ERROR),
            (4, DropReason.PROVIDER_ERROR),
        ]
        assert "model server unavailable" in dropped[1].detail

    def test_timeout_reports_unfinished_calls(self, player_factory, cycle):
        gatherer = ValuationGatherer(
            ValuationConfig(max_workers=4, gather_timeout_seconds=0.2)
        )
        provider = BlockingProvider(player_factory, blocked_id=3)

        try:
            valuations, dropped = gatherer.gather(provider, [1, 2, 3, 4], cycle)
        finally:
            provider.release.set()

        assert [v.player_id for v in valuations] == [1, 2, 4]
        assert [(d.player_id, d.detail) for d in dropped] == [
            (3, "Timed out after 0.2s")
        ]


class TestPlanningCycle:
    def test_rejects_invalid_gameweek(self):
        with pytest.raises(ValueError, match="gameweek"):
            PlanningCycle(gameweek=0)

    def test_memoize_computes_once(self, cycle):
        calls = []

        def compute():
            calls.append(1)
            return 42

        assert cycle.memoize("fixtures", compute) == 42
        assert cycle.memoize("fixtures", compute) == 42
        assert len(calls) == 1

    def test_cycles_do_not_share_cache(self):
        first, second = PlanningCycle(gameweek=1), PlanningCycle(gameweek=1)
        first.memoize("key", lambda: "first")

        assert second.memoize("key", lambda: "second") == "second"


class TestStaticValueProvider:
    def test_from_mapping(self, player_factory, cycle):
        provider = StaticValueProvider({7: player_factory(7, "DEF")})

        result = provider.get_valuation(7, cycle)

        assert result.is_success
        assert result.value.player_id == 7

    def test_unknown_player_fails(self, cycle):
        result = StaticValueProvider({}).get_valuation(7, cycle)

        assert result.is_failure
        assert result.error.error_type == ErrorType.PROVIDER_ERROR

    def test_from_dataframe(self, cycle):
        frame = pd.DataFrame(
            [
                {
                    "player_id": 7,
                    "display_name": "Saka",
                    "position": "MID",
                    "team_id": 1,
                    "price": 10.0,
                    "predicted_value": 6.2,
                    "confidence": 0.8,
                    "uncertainty": None,
                }
            ]
        )

        result = StaticValueProvider(frame).get_valuation(7, cycle)

        assert result.value.display_name == "Saka"
        assert result.value.uncertainty is None

    def test_invalid_row_is_validation_error(self, cycle):
        provider = StaticValueProvider({7: {"player_id": 7, "position": "MID"}})

        result = provider.get_valuation(7, cycle)

        assert result.error.error_type == ErrorType.VALIDATION_ERROR
        assert "price" in result.error.field_errors


class TestEnsembleValueProvider:
    def test_weighted_blend(self, player_factory, cycle):
        ensemble = EnsembleValueProvider(
            {
                "lightgbm": StaticValueProvider(
                    {1: player_factory(1, predicted_value=10.0, confidence=0.8)}
                ),
                "fast_tree": StaticValueProvider(
                    {1: player_factory(1, predicted_value=6.0, confidence=0.6)}
                ),
                "time_series": StaticValueProvider(
                    {1: player_factory(1, predicted_value=4.0, confidence=1.0)}
                ),
            }
        )

        valuation = ensemble.get_valuation(1, cycle).value

        assert valuation.predicted_value == pytest.approx(0.40 * 10 + 0.35 * 6 + 0.25 * 4)
        assert valuation.confidence == pytest.approx(0.40 * 0.8 + 0.35 * 0.6 + 0.25 * 1.0)

    def test_missing_component_renormalizes_and_lowers_confidence(
        self, player_factory, cycle
    ):
        ensemble = EnsembleValueProvider(
            {
                "a": StaticValueProvider(
                    {1: player_factory(1, predicted_value=8.0, confidence=1.0)}
                ),
                "b": StaticValueProvider({}),
            },
            weights={"a": 0.5, "b": 0.5},
        )

        valuation = ensemble.get_valuation(1, cycle).value

        assert valuation.predicted_value == pytest.approx(8.0)
        assert valuation.confidence == pytest.approx(0.5)

    def test_all_components_fail(self, cycle):
        ensemble = EnsembleValueProvider(
            {"a": StaticValueProvider({})}, weights={"a": 1.0}
        )

        assert ensemble.get_valuation(1, cycle).is_failure

    def test_memoized_per_cycle(self, player_factory, cycle):
        counting = SlowProvider(player_factory)
        calls = []
        original = counting.get_valuation

        def tracked(player_id, c):
            calls.append(player_id)
            return original(player_id, c)

        counting.get_valuation = tracked
        ensemble = EnsembleValueProvider({"a": counting}, weights={"a": 1.0})

        ensemble.get_valuation(1, cycle)
        ensemble.get_valuation(1, cycle)

        assert calls == [1]

    def test_unknown_component_weight(self):
        with pytest.raises(ValueError, match="No ensemble weight"):
            EnsembleValueProvider({"mystery": StaticValueProvider({})})


class TestStrategyAdjustedProvider:
    @pytest.fixture
    def inner(self, player_factory):
        return StaticValueProvider(
            {
                1: player_factory(1, price=10.0, predicted_value=5.0),
                2: player_factory(2, price=5.0, predicted_value=5.0),
            }
        )

    def test_aggressive_boost(self, inner, cycle):
        provider = StrategyAdjustedProvider(inner, StrategyMode.AGGRESSIVE)

        assert provider.get_valuation(1, cycle).value.predicted_value == pytest.approx(5.5)

    def test_conservative_shrink(self, inner, cycle):
        provider = StrategyAdjustedProvider(inner, "conservative")

        assert provider.get_valuation(1, cycle).value.predicted_value == pytest.approx(4.5)

    def test_value_hunting_boosts_only_value_picks(self, inner, cycle):
        provider = StrategyAdjustedProvider(inner, "ValueHunting")

        # 0.5 points per million stays, 1.0 points per million is boosted
        assert provider.get_valuation(1, cycle).value.predicted_value == pytest.approx(5.0)
        assert provider.get_valuation(2, cycle).value.predicted_value == pytest.approx(5.75)

    def test_balanced_unchanged(self, inner, cycle):
        provider = StrategyAdjustedProvider(inner, StrategyMode.BALANCED)

        assert provider.get_valuation(2, cycle).value.predicted_value == 5.0

    def test_failure_passes_through(self, inner, cycle):
        provider = StrategyAdjustedProvider(inner, StrategyMode.AGGRESSIVE)

        assert provider.get_valuation(99, cycle).is_failure
