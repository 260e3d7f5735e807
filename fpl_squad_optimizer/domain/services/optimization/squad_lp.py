"""Integer programming squad selection.

Solves the full selection problem with PuLP and the CBC solver:
- Guaranteed optimal total predicted value
- Deterministic (same input = same output)
- Used directly or as the reference when measuring the greedy gap
"""

import time
from decimal import Decimal
from typing import Dict, Optional, Tuple

import pulp
from loguru import logger

from fpl_squad_optimizer.domain.common.exceptions import InfeasibleSquadError
from fpl_squad_optimizer.domain.models import (
    POSITION_ORDER,
    BindingConstraint,
    CandidatePool,
    SelectionStrategy,
    Squad,
)

from .optimization_base import OptimizationBaseMixin, SquadRules

# Prices are in 0.1m steps; the model works in integer tenths
PRICE_SCALE = 10


class OptimalSquadSelector(OptimizationBaseMixin):
    """Binary program: maximize total predicted value under all squad rules."""

    def __init__(self, time_limit_seconds: int = 30):
        self.time_limit_seconds = time_limit_seconds

    def select(
        self,
        pool: CandidatePool,
        rules: SquadRules,
        strategy: Optional[SelectionStrategy] = None,
    ) -> Squad:
        """Pick the value-maximizing squad.

        ``strategy`` is accepted for interface parity with the greedy
        selector; the objective is always raw predicted value.

        Raises:
            InfeasibleSquadError: If no squad satisfies every constraint.
        """
        squad, status = self.solve(pool, rules)
        if squad is None:
            binding = self._diagnose_infeasibility(pool, rules)
            logger.error(
                f"❌ Integer program found no squad (status {status}), "
                f"blocked by {binding.value}"
            )
            raise InfeasibleSquadError(
                partial_squad=(),
                binding_constraint=binding,
                required=rules.squad_size,
            )
        return squad

    def solve(
        self, pool: CandidatePool, rules: SquadRules
    ) -> Tuple[Optional[Squad], str]:
        """Build and solve the program.

        Returns:
            Tuple of (squad or None, solver status string)
        """
        start_time = time.time()
        logger.info(
            f"🎯 Integer program: {len(pool)} candidates, budget £{rules.budget}m"
        )

        prob = pulp.LpProblem("FPL_Squad_Selection", pulp.LpMaximize)

        # Decision variables: x[player_id] = 1 if in squad, 0 otherwise
        player_vars: Dict[int, pulp.LpVariable] = {
            c.player_id: pulp.LpVariable(f"player_{c.player_id}", cat="Binary")
            for c in pool.candidates
        }

        prob += (
            pulp.lpSum(c.predicted_value * player_vars[c.player_id] for c in pool.candidates),
            "Total_Predicted_Value",
        )

        # CONSTRAINT 1: Squad size
        prob += (
            pulp.lpSum(player_vars.values()) == rules.squad_size,
            "Squad_Size",
        )

        # CONSTRAINT 2: Budget, in integer tenths
        budget_tenths = int(rules.budget * PRICE_SCALE)
        prob += (
            pulp.lpSum(
                int(c.price * PRICE_SCALE) * player_vars[c.player_id]
                for c in pool.candidates
            )
            <= budget_tenths,
            "Budget_Limit",
        )

        # CONSTRAINT 3: Position quotas
        for position in POSITION_ORDER:
            prob += (
                pulp.lpSum(
                    player_vars[c.player_id]
                    for c in pool.candidates
                    if c.position == position
                )
                == rules.position_quotas[position],
                f"Position_{position.value}",
            )

        # CONSTRAINT 4: Team cap
        for team_id in sorted({c.team_id for c in pool.candidates}):
            prob += (
                pulp.lpSum(
                    player_vars[c.player_id]
                    for c in pool.candidates
                    if c.team_id == team_id
                )
                <= rules.team_cap,
                f"Team_Limit_{team_id}",
            )

        logger.debug("Solving integer program with CBC solver...")
        prob.solve(pulp.PULP_CBC_CMD(msg=0, timeLimit=self.time_limit_seconds))
        status = pulp.LpStatus[prob.status]
        solve_time = time.time() - start_time

        if status != "Optimal":
            logger.warning(f"⚠️ CBC finished with status {status} in {solve_time:.2f}s")
            return None, status

        chosen_ids = {
            pid for pid, var in player_vars.items() if (pulp.value(var) or 0) > 0.5
        }
        players = [c for c in pool.candidates if c.player_id in chosen_ids]
        order = {position: i for i, position in enumerate(POSITION_ORDER)}
        players.sort(key=lambda p: order[p.position])
        squad = Squad(players=tuple(players))

        logger.info(
            f"✅ Integer program solved in {solve_time:.2f}s: £{squad.total_cost}m, "
            f"{squad.total_predicted_value:.2f} predicted points"
        )
        return squad, status

    def _diagnose_infeasibility(
        self, pool: CandidatePool, rules: SquadRules
    ) -> BindingConstraint:
        """Name the constraint most likely responsible for infeasibility."""
        counts = pool.position_counts()
        if any(counts[p] < rules.position_quotas[p] for p in POSITION_ORDER):
            return BindingConstraint.POSITION

        cheapest = Decimal("0")
        for position in POSITION_ORDER:
            prices = sorted(c.price for c in pool.by_position(position))
            cheapest += sum(prices[: rules.position_quotas[position]], Decimal("0"))
        if cheapest > rules.budget:
            return BindingConstraint.BUDGET
        return BindingConstraint.TEAM
