"""Unit tests for greedy squad selection.

Tests for:
- Squad structure invariants (size, quotas, budget, team cap)
- Ranking and deterministic tie-breaking
- Team cap and budget rejections with binding constraint diagnostics
- The reserve_budget knob
"""

import pytest
from decimal import Decimal

from fpl_squad_optimizer.domain.common import InfeasibleSquadError
from fpl_squad_optimizer.domain.models import (
    BindingConstraint,
    CandidatePool,
    Position,
    SelectionStrategy,
    StrategyMode,
)
from fpl_squad_optimizer.domain.services.optimization import SquadRules, SquadSelector


@pytest.fixture
def selector():
    return SquadSelector()


@pytest.fixture
def balanced():
    return SelectionStrategy.from_mode(StrategyMode.BALANCED)


def outfield(player_factory, start_id=100, price=4.0):
    """Exactly-quota cheap outfield players on distinct teams."""
    players = []
    player_id = start_id
    for position, count in (("DEF", 5), ("MID", 5), ("FWD", 3)):
        for _ in range(count):
            players.append(
                player_factory(player_id, position, price=price, predicted_value=2.0)
            )
            player_id += 1
    return players


class TestSquadStructure:
    """Successful selections always satisfy every squad rule."""

    def test_full_squad_matches_quotas(self, selector, candidates, rules, balanced):
        """Test 15 players with 2/5/5/3 split."""
        squad = selector.select(CandidatePool(candidates=tuple(candidates)), rules, balanced)

        assert len(squad) == 15
        assert squad.position_counts() == {
            Position.KEEPER: 2,
            Position.DEFENDER: 5,
            Position.MIDFIELDER: 5,
            Position.FORWARD: 3,
        }
        assert squad.total_cost <= rules.budget
        assert max(squad.team_counts().values()) <= rules.team_cap

    def test_picks_highest_value_per_position(self, selector, candidates, rules, balanced):
        """Test top-ranked players of each position are selected."""
        squad = selector.select(CandidatePool(candidates=tuple(candidates)), rules, balanced)

        # GKP 1-3, DEF 4-11, MID 12-19, FWD 20-24, values descending by ID
        assert squad.player_ids == [1, 2, 4, 5, 6, 7, 8, 12, 13, 14, 15, 16, 20, 21, 22]

    def test_selection_order_is_position_order(self, selector, candidates, rules, balanced):
        """Test players come back grouped Keeper, Defender, Midfielder, Forward."""
        squad = selector.select(CandidatePool(candidates=tuple(candidates)), rules, balanced)
        positions = [p.position for p in squad.players]

        assert positions == sorted(
            positions,
            key=[Position.KEEPER, Position.DEFENDER, Position.MIDFIELDER, Position.FORWARD].index,
        )

    def test_deterministic(self, selector, candidates, rules, balanced):
        """Test identical input yields an identical squad."""
        pool = CandidatePool(candidates=tuple(candidates))

        first = selector.select(pool, rules, balanced)
        second = selector.select(pool, rules, balanced)

        assert first == second


class TestRanking:
    """Ranking keys and tie-breaks."""

    def test_keepers_by_value(self, selector, player_factory, rules, balanced):
        """Test two highest-value keepers chosen from three (cost 9.5)."""
        keepers = [
            player_factory(1, "GKP", price=4.0, predicted_value=3.0),
            player_factory(2, "GKP", price=4.5, predicted_value=4.0),
            player_factory(3, "GKP", price=5.0, predicted_value=5.0),
        ]
        pool = CandidatePool(candidates=tuple(keepers + outfield(player_factory)))

        squad = selector.select(pool, rules, balanced)
        chosen = squad.by_position(Position.KEEPER)

        assert [p.player_id for p in chosen] == [3, 2]
        assert sum(p.price for p in chosen) == Decimal("9.5")

    def test_exact_tie_uses_input_order(self, selector, player_factory, rules, balanced):
        """Test equal score and price falls back to earlier input position."""
        keepers = [
            player_factory(1, "GKP", price=4.5, predicted_value=6.0),
            player_factory(7, "GKP", price=4.5, predicted_value=5.0),
            player_factory(3, "GKP", price=4.5, predicted_value=5.0),
        ]
        pool = CandidatePool(candidates=tuple(keepers + outfield(player_factory)))

        squad = selector.select(pool, rules, balanced)

        assert [p.player_id for p in squad.by_position(Position.KEEPER)] == [1, 7]

    def test_tie_prefers_cheaper_then_lower_variance(
        self, selector, player_factory, rules, balanced
    ):
        """Test tie-break chain: lower price, then lower estimate variance."""
        keepers = [
            player_factory(1, "GKP", price=5.0, predicted_value=5.0, uncertainty=0.5),
            player_factory(2, "GKP", price=4.5, predicted_value=5.0),
            player_factory(3, "GKP", price=5.0, predicted_value=5.0, uncertainty=0.2),
        ]
        pool = CandidatePool(candidates=tuple(keepers + outfield(player_factory)))

        squad = selector.select(pool, rules, balanced)

        assert [p.player_id for p in squad.by_position(Position.KEEPER)] == [2, 3]

    def test_value_hunting_prefers_points_per_million(
        self, selector, player_factory, rules
    ):
        """Test value_density ranking picks cheap efficient keepers."""
        keepers = [
            player_factory(1, "GKP", price=6.0, predicted_value=6.0),
            player_factory(2, "GKP", price=4.0, predicted_value=5.0),
            player_factory(3, "GKP", price=4.0, predicted_value=4.5),
        ]
        pool = CandidatePool(candidates=tuple(keepers + outfield(player_factory)))

        squad = selector.select(
            pool, rules, SelectionStrategy.from_mode(StrategyMode.VALUE_HUNTING)
        )

        assert [p.player_id for p in squad.by_position(Position.KEEPER)] == [2, 3]

    def test_conservative_penalizes_low_confidence(self, selector, player_factory, rules):
        """Test confidence weighting can reorder candidates."""
        keepers = [
            player_factory(1, "GKP", predicted_value=8.0, confidence=0.5),
            player_factory(2, "GKP", predicted_value=6.0, confidence=1.0),
            player_factory(3, "GKP", predicted_value=5.0, confidence=1.0),
        ]
        pool = CandidatePool(candidates=tuple(keepers + outfield(player_factory)))

        aggressive = selector.select(
            pool, rules, SelectionStrategy.from_mode(StrategyMode.AGGRESSIVE)
        )
        conservative = selector.select(
            pool, rules, SelectionStrategy.from_mode(StrategyMode.CONSERVATIVE)
        )

        assert [p.player_id for p in aggressive.by_position(Position.KEEPER)] == [1, 2]
        assert [p.player_id for p in conservative.by_position(Position.KEEPER)] == [2, 3]


class TestTeamCap:
    """Per-team limit applies across all positions."""

    def test_fourth_player_from_team_skipped(
        self, selector, candidate_factory, player_factory, rules, balanced
    ):
        """Test top player of each position on one team: only 3 taken."""
        stars = [
            player_factory(901, "GKP", team_id=50, predicted_value=20.0),
            player_factory(902, "DEF", team_id=50, predicted_value=20.0),
            player_factory(903, "MID", team_id=50, predicted_value=20.0),
            player_factory(904, "FWD", team_id=50, predicted_value=20.0),
        ]
        pool = CandidatePool(candidates=tuple(stars + candidate_factory()))

        squad = selector.select(pool, rules, balanced)

        assert squad.team_counts()[50] == 3
        assert 904 not in squad.player_ids
        assert {901, 902, 903} <= set(squad.player_ids)
        # Next-best forwards fill the quota instead
        assert [p.player_id for p in squad.by_position(Position.FORWARD)] == [20, 21, 22]

    def test_team_cap_binding_constraint(self, selector, player_factory, rules, balanced):
        """Test infeasibility caused only by the cap is reported as team."""
        players = [player_factory(i, "GKP", team_id=1) for i in (1, 2)]
        players += [player_factory(i, "DEF", team_id=1) for i in range(3, 9)]
        players += outfield(player_factory)[5:]
        pool = CandidatePool(candidates=tuple(players))

        with pytest.raises(InfeasibleSquadError) as exc_info:
            selector.select(pool, rules, balanced)

        error = exc_info.value
        assert error.binding_constraint == BindingConstraint.TEAM
        assert error.position == Position.DEFENDER
        assert len(error.partial_squad) == 2 + 1 + 8


class TestBudget:
    """Budget rejections and infeasibility."""

    def test_keepers_exhaust_budget(self, selector, player_factory, rules, balanced):
        """Test keepers costing the whole budget leave defenders unaffordable."""
        keepers = [
            player_factory(1, "GKP", price=50.0, predicted_value=6.0),
            player_factory(2, "GKP", price=50.0, predicted_value=5.0),
        ]
        pool = CandidatePool(candidates=tuple(keepers + outfield(player_factory)))

        with pytest.raises(InfeasibleSquadError) as exc_info:
            selector.select(pool, rules, balanced)

        error = exc_info.value
        assert error.binding_constraint == BindingConstraint.BUDGET
        assert error.position == Position.DEFENDER
        assert [p.player_id for p in error.partial_squad] == [1, 2]
        assert error.required == 15

    def test_spends_up_to_exact_budget(self, selector, player_factory, rules, balanced):
        """Test a squad costing exactly the budget is accepted."""
        keepers = [
            player_factory(1, "GKP", price=6.0, predicted_value=9.0),
            player_factory(2, "GKP", price=4.0, predicted_value=3.0),
            player_factory(3, "GKP", price=4.0, predicted_value=2.0),
        ]
        tight = SquadRules.from_config(budget=Decimal("62.0"))
        pool = CandidatePool(candidates=tuple(keepers + outfield(player_factory)))

        squad = selector.select(pool, tight, balanced)

        assert squad.total_cost == Decimal("62.0")
        assert [p.player_id for p in squad.by_position(Position.KEEPER)] == [1, 2]

    def test_greedy_without_reserve_paints_itself_into_a_corner(
        self, selector, player_factory, rules, balanced
    ):
        """Test overspending early makes the last position unaffordable."""
        keepers = [
            player_factory(1, "GKP", price=8.0, predicted_value=10.0),
            player_factory(2, "GKP", price=4.0, predicted_value=9.0),
            player_factory(3, "GKP", price=4.0, predicted_value=1.0),
        ]
        tight = SquadRules.from_config(budget=Decimal("62.0"))
        pool = CandidatePool(candidates=tuple(keepers + outfield(player_factory)))

        with pytest.raises(InfeasibleSquadError) as exc_info:
            selector.select(pool, tight, balanced)

        assert exc_info.value.binding_constraint == BindingConstraint.BUDGET
        assert exc_info.value.position == Position.FORWARD

    def test_reserve_budget_keeps_room_for_remaining_slots(
        self, selector, player_factory
    ):
        """Test reserve_budget skips the keeper that would strand later slots."""
        keepers = [
            player_factory(1, "GKP", price=8.0, predicted_value=10.0),
            player_factory(2, "GKP", price=4.0, predicted_value=9.0),
            player_factory(3, "GKP", price=4.0, predicted_value=1.0),
        ]
        tight = SquadRules.from_config(budget=Decimal("62.0"))
        pool = CandidatePool(candidates=tuple(keepers + outfield(player_factory)))
        strategy = SelectionStrategy.from_mode(StrategyMode.BALANCED, reserve_budget=True)

        squad = selector.select(pool, tight, strategy)

        assert len(squad) == 15
        assert [p.player_id for p in squad.by_position(Position.KEEPER)] == [2, 3]
        assert squad.total_cost == Decimal("60.0")

    def test_position_shortfall_binding_constraint(
        self, selector, player_factory, rules, balanced
    ):
        """Test running out of candidates (no rejections) is reported as position."""
        players = [player_factory(1, "GKP"), player_factory(2, "GKP")]
        players += outfield(player_factory)[:-1]
        pool = CandidatePool(candidates=tuple(players))

        with pytest.raises(InfeasibleSquadError) as exc_info:
            selector.select(pool, rules, balanced)

        assert exc_info.value.binding_constraint == BindingConstraint.POSITION
        assert exc_info.value.position == Position.FORWARD
