"""Aggregation of selection outputs into a SquadSelectionResult."""

from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional, Sequence

import pandas as pd

from fpl_squad_optimizer.domain.common.exceptions import (
    InfeasibleSquadError,
    SquadSelectionError,
)
from fpl_squad_optimizer.domain.models import (
    POSITION_ORDER,
    Captaincy,
    DroppedCandidate,
    Lineup,
    OptimalityReport,
    SelectionMethod,
    Squad,
    SquadSelectionResult,
)

SQUAD_COLUMNS = [
    "player_id",
    "display_name",
    "position",
    "team_id",
    "price",
    "predicted_value",
    "confidence",
    "role",
]


class ResultAssembler:
    """Pure aggregation: no selection logic lives here."""

    def assemble(
        self,
        squad: Squad,
        lineup: Lineup,
        captaincy: Captaincy,
        budget: Decimal,
        strategy: str,
        selection_method: SelectionMethod = SelectionMethod.GREEDY,
        gameweek: Optional[int] = None,
        dropped: Sequence[DroppedCandidate] = (),
        optimality: Optional[OptimalityReport] = None,
        selected_at: Optional[datetime] = None,
        duration_seconds: float = 0.0,
    ) -> SquadSelectionResult:
        total_cost = squad.total_cost
        starting_xi_value = lineup.predicted_value + captaincy.captain.predicted_value

        return SquadSelectionResult(
            success=True,
            message=(
                f"Selected {len(squad)} players for £{total_cost}m "
                f"({squad.total_predicted_value:.1f} predicted points)"
            ),
            squad=squad,
            lineup=lineup,
            captaincy=captaincy,
            budget=budget,
            total_cost=total_cost,
            remaining_budget=budget - total_cost,
            total_predicted_value=squad.total_predicted_value,
            starting_xi_value=starting_xi_value,
            position_breakdown=self._position_breakdown(squad.players),
            team_breakdown=self._team_breakdown(squad.players),
            dropped_candidates=tuple(dropped),
            optimality=optimality,
            gameweek=gameweek,
            strategy=strategy,
            selection_method=selection_method,
            selected_at=selected_at or datetime.now(),
            duration_seconds=duration_seconds,
        )

    def failure(
        self,
        error: SquadSelectionError,
        budget: Decimal,
        strategy: str,
        selection_method: SelectionMethod = SelectionMethod.GREEDY,
        gameweek: Optional[int] = None,
        dropped: Sequence[DroppedCandidate] = (),
        selected_at: Optional[datetime] = None,
        duration_seconds: float = 0.0,
    ) -> SquadSelectionResult:
        """Failed result carrying the error message and any partial squad."""
        partial = ()
        binding = None
        if isinstance(error, InfeasibleSquadError):
            partial = error.partial_squad
            binding = error.binding_constraint

        partial_cost = sum((p.price for p in partial), Decimal("0"))
        return SquadSelectionResult(
            success=False,
            message=str(error),
            budget=budget,
            total_cost=partial_cost,
            remaining_budget=budget - partial_cost,
            total_predicted_value=sum(p.predicted_value for p in partial),
            position_breakdown=self._position_breakdown(partial),
            team_breakdown=self._team_breakdown(partial),
            binding_constraint=binding,
            partial_squad=partial,
            dropped_candidates=tuple(dropped),
            gameweek=gameweek,
            strategy=strategy,
            selection_method=selection_method,
            selected_at=selected_at or datetime.now(),
            duration_seconds=duration_seconds,
        )

    def squad_to_dataframe(self, result: SquadSelectionResult) -> pd.DataFrame:
        """Squad as a DataFrame with each player's role.

        Roles are ``captain``, ``vice_captain``, ``starter`` or ``bench``.
        Failed results give an empty frame with the same columns.
        """
        if not result.success or result.squad is None:
            return pd.DataFrame(columns=SQUAD_COLUMNS)

        starter_ids = {p.player_id for p in result.lineup.starters}
        captain_id = result.captaincy.captain.player_id
        vice_id = result.captaincy.vice_captain.player_id

        def role(player_id: int) -> str:
            if player_id == captain_id:
                return "captain"
            if player_id == vice_id:
                return "vice_captain"
            return "starter" if player_id in starter_ids else "bench"

        return pd.DataFrame(
            [
                {
                    "player_id": p.player_id,
                    "display_name": p.display_name,
                    "position": p.position.value,
                    "team_id": p.team_id,
                    "price": float(p.price),
                    "predicted_value": p.predicted_value,
                    "confidence": p.confidence,
                    "role": role(p.player_id),
                }
                for p in result.squad.players
            ],
            columns=SQUAD_COLUMNS,
        )

    def _position_breakdown(self, players: Iterable) -> dict:
        breakdown = {position.value: 0 for position in POSITION_ORDER}
        for player in players:
            breakdown[player.position.value] += 1
        return breakdown

    def _team_breakdown(self, players: Iterable) -> dict:
        breakdown: dict = {}
        for player in players:
            key = str(player.team_id)
            breakdown[key] = breakdown.get(key, 0) + 1
        return breakdown
