"""Captain selection for a starting lineup.

This module handles:
- Captain and vice-captain assignment
- Ranked captain candidates with their scores
"""

from typing import List

from loguru import logger

from fpl_squad_optimizer.domain.common.exceptions import EmptyLineupError
from fpl_squad_optimizer.domain.models import (
    CaptainCandidate,
    Captaincy,
    Lineup,
    PlayerValuation,
)

from .optimization_base import OptimizationBaseMixin


class CaptaincySelector(OptimizationBaseMixin):
    """Ranks starters for the armband.

    Captain score is predicted value weighted by confidence, so a shaky
    forecast has to clear a higher bar to wear the armband.
    """

    def select_captaincy(self, lineup: Lineup, top_n: int = 5) -> Captaincy:
        """Assign captain and vice-captain from the lineup's starters.

        Ordering: captain score desc, predicted value desc, lower price,
        then lineup order. The vice-captain is the runner-up.

        Raises:
            EmptyLineupError: If the lineup has fewer than two starters.
        """
        if len(lineup.starters) < 2:
            raise EmptyLineupError(
                f"Captaincy needs at least 2 starters, lineup has {len(lineup.starters)}"
            )

        order = {p.player_id: i for i, p in enumerate(lineup.starters)}
        ranked: List[PlayerValuation] = sorted(
            lineup.starters,
            key=lambda p: (
                -self._captain_score(p),
                -p.predicted_value,
                p.price,
                order[p.player_id],
            ),
        )

        top_candidates = tuple(
            CaptainCandidate(
                player=player, captain_score=self._captain_score(player), rank=i + 1
            )
            for i, player in enumerate(ranked[: max(top_n, 2)])
        )
        captaincy = Captaincy(
            captain=ranked[0], vice_captain=ranked[1], top_candidates=top_candidates
        )

        logger.info(
            f"✅ Captain: {captaincy.captain.display_name} "
            f"({self._captain_score(captaincy.captain):.2f}), "
            f"vice: {captaincy.vice_captain.display_name}"
        )
        return captaincy

    def _captain_score(self, player: PlayerValuation) -> float:
        return player.predicted_value * player.confidence
