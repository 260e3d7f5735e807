"""Starting lineup and bench selection.

This module handles:
- Starting eleven selection within formation bounds
- Bench ordering (backup keeper first, then outfield by value)
- Formation labelling
"""

from typing import Dict, List

from loguru import logger

from fpl_squad_optimizer.domain.common.exceptions import FormationError
from fpl_squad_optimizer.domain.models import (
    POSITION_ORDER,
    Lineup,
    PlayerValuation,
    Position,
    Squad,
)

from .optimization_base import OptimizationBaseMixin, SquadRules


class LineupSelector(OptimizationBaseMixin):
    """Picks the highest-value legal eleven from a squad."""

    def select_lineup(self, squad: Squad, rules: SquadRules) -> Lineup:
        """Choose starters and bench for a complete squad.

        Every position's formation minimum is filled with its best players
        first, then the remaining slots go to the best players left whose
        position is still below its maximum.

        Args:
            squad: Selected squad
            rules: Lineup size and formation bounds

        Returns:
            Lineup with starters, ordered bench and formation label

        Raises:
            FormationError: If the squad cannot meet the formation bounds.
        """
        value_key = self._value_key({pid: i for i, pid in enumerate(squad.player_ids)})
        by_position = self._group_by_position(squad.players)
        for players in by_position.values():
            players.sort(key=value_key)

        starters: List[PlayerValuation] = []
        counts: Dict[Position, int] = {position: 0 for position in POSITION_ORDER}

        for position in POSITION_ORDER:
            minimum, _ = rules.formation_bounds[position]
            available = by_position[position]
            if len(available) < minimum:
                raise FormationError(
                    f"Squad has {len(available)} {position.value}, "
                    f"formation needs at least {minimum}"
                )
            starters.extend(available[:minimum])
            counts[position] = minimum

        chosen_ids = {p.player_id for p in starters}
        remaining = sorted(
            (p for p in squad.players if p.player_id not in chosen_ids), key=value_key
        )
        for player in remaining:
            if len(starters) >= rules.lineup_size:
                break
            _, maximum = rules.formation_bounds[player.position]
            if counts[player.position] >= maximum:
                continue
            starters.append(player)
            counts[player.position] += 1

        if len(starters) < rules.lineup_size:
            raise FormationError(
                f"Only {len(starters)} of {rules.lineup_size} starters fit the formation bounds"
            )

        position_rank = {position: i for i, position in enumerate(POSITION_ORDER)}
        starters.sort(key=lambda p: (position_rank[p.position], value_key(p)))

        starter_ids = {p.player_id for p in starters}
        bench_pool = [p for p in squad.players if p.player_id not in starter_ids]
        bench = sorted(
            bench_pool,
            key=lambda p: (p.position != Position.KEEPER, value_key(p)),
        )

        formation = self._formation_label(counts)
        lineup = Lineup(starters=tuple(starters), bench=tuple(bench), formation=formation)
        logger.info(
            f"✅ Lineup {formation}: {lineup.predicted_value:.2f} predicted points, "
            f"bench {', '.join(p.display_name for p in bench)}"
        )
        return lineup
