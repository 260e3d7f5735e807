"""Greedy squad selection.

Fills positions in fixed order (GKP, DEF, MID, FWD). Inside a position the
candidates are scanned in strategy order and each one is accepted iff the
quota is still open, the running cost stays within budget and its team is
below the cap. Rejected candidates are never revisited.
"""

import heapq
from decimal import Decimal
from typing import Dict, List, Sequence

from loguru import logger

from fpl_squad_optimizer.domain.common.exceptions import InfeasibleSquadError
from fpl_squad_optimizer.domain.models import (
    POSITION_ORDER,
    BindingConstraint,
    CandidatePool,
    PlayerValuation,
    Position,
    SelectionStrategy,
    Squad,
)

from .optimization_base import OptimizationBaseMixin, SquadRules


class SquadSelector(OptimizationBaseMixin):
    """Position-ordered, non-backtracking squad selector."""

    def select(
        self, pool: CandidatePool, rules: SquadRules, strategy: SelectionStrategy
    ) -> Squad:
        """Pick a full squad from the pool.

        Args:
            pool: Filtered candidates for the planning cycle
            rules: Budget, quotas and team cap
            strategy: Ranking key and approximation knobs

        Returns:
            Squad with exactly ``rules.squad_size`` players

        Raises:
            InfeasibleSquadError: If any quota could not be filled. Carries the
                partial selection and the constraint that blocked it.
        """
        logger.info(
            f"🎯 Greedy squad selection: {len(pool)} candidates, "
            f"budget £{rules.budget}m, team cap {rules.team_cap}, "
            f"ranking by {strategy.ranking_key.value}"
        )

        rank = self._ranking_key(strategy, pool.input_order())
        ranked = {
            position: sorted(pool.by_position(position), key=rank)
            for position in POSITION_ORDER
        }
        later_reserve = (
            self._later_position_reserve(ranked, rules)
            if strategy.reserve_budget
            else {}
        )

        selected: List[PlayerValuation] = []
        running_cost = Decimal("0")
        team_counts: Dict[int, int] = {}
        shortfalls = []

        for position in POSITION_ORDER:
            quota = rules.position_quotas[position]
            taken = 0
            rejected = {BindingConstraint.BUDGET: 0, BindingConstraint.TEAM: 0}
            candidates = ranked[position]

            for idx, candidate in enumerate(candidates):
                if taken >= quota:
                    break

                reserve = Decimal("0")
                if strategy.reserve_budget:
                    reserve = later_reserve[position] + self._cheapest_total(
                        candidates[idx + 1:], quota - taken - 1
                    )

                if running_cost + candidate.price + reserve > rules.budget:
                    rejected[BindingConstraint.BUDGET] += 1
                    logger.debug(
                        f"   💸 Skip {candidate.display_name} (£{candidate.price}m): "
                        f"£{running_cost}m spent, £{reserve}m reserved"
                    )
                    continue

                if team_counts.get(candidate.team_id, 0) >= rules.team_cap:
                    rejected[BindingConstraint.TEAM] += 1
                    logger.debug(
                        f"   🚫 Skip {candidate.display_name}: team {candidate.team_id} "
                        f"already has {rules.team_cap} players"
                    )
                    continue

                selected.append(candidate)
                running_cost += candidate.price
                team_counts[candidate.team_id] = team_counts.get(candidate.team_id, 0) + 1
                taken += 1

            logger.debug(
                f"{position.value}: {taken}/{quota} selected, running cost £{running_cost}m"
            )
            if taken < quota:
                shortfalls.append((position, rejected))

        if shortfalls:
            position, rejected = shortfalls[0]
            binding = self._binding_constraint(rejected)
            logger.warning(
                f"⚠️ Greedy selection stopped at {len(selected)}/{rules.squad_size} "
                f"players: {position.value} quota blocked by {binding.value}"
            )
            raise InfeasibleSquadError(
                partial_squad=selected,
                binding_constraint=binding,
                position=position,
                required=rules.squad_size,
            )

        squad = Squad(players=tuple(selected))
        logger.info(
            f"✅ Greedy squad complete: £{squad.total_cost}m spent, "
            f"{squad.total_predicted_value:.2f} predicted points"
        )
        return squad

    def _binding_constraint(
        self, rejected: Dict[BindingConstraint, int]
    ) -> BindingConstraint:
        """Budget if it turned anyone away, else team cap, else too few players."""
        if rejected[BindingConstraint.BUDGET]:
            return BindingConstraint.BUDGET
        if rejected[BindingConstraint.TEAM]:
            return BindingConstraint.TEAM
        return BindingConstraint.POSITION

    def _cheapest_total(
        self, candidates: Sequence[PlayerValuation], count: int
    ) -> Decimal:
        if count <= 0:
            return Decimal("0")
        return sum(
            heapq.nsmallest(count, (c.price for c in candidates)), Decimal("0")
        )

    def _later_position_reserve(
        self, ranked: Dict[Position, List[PlayerValuation]], rules: SquadRules
    ) -> Dict[Position, Decimal]:
        """Cheapest possible cost of all positions filled after each position."""
        reserve: Dict[Position, Decimal] = {}
        running = Decimal("0")
        for position in reversed(POSITION_ORDER):
            reserve[position] = running
            running += self._cheapest_total(
                ranked[position], rules.position_quotas[position]
            )
        return reserve
