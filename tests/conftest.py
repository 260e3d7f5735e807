"""Shared player factories for squad selection tests."""

from typing import Dict, List, Optional

import pytest

from fpl_squad_optimizer.config import SquadOptimizerConfig
from fpl_squad_optimizer.domain.models import PlayerValuation
from fpl_squad_optimizer.domain.services.optimization import SquadRules


def make_player(
    player_id: int,
    position: str = "MID",
    team_id: Optional[int] = None,
    price: float = 5.0,
    predicted_value: float = 5.0,
    confidence: float = 1.0,
    **kwargs,
) -> PlayerValuation:
    """Valid PlayerValuation; each player gets their own team unless told otherwise."""
    return PlayerValuation(
        player_id=player_id,
        display_name=kwargs.pop("display_name", f"{position}{player_id}"),
        position=position,
        team_id=player_id if team_id is None else team_id,
        price=price,
        predicted_value=predicted_value,
        confidence=confidence,
        **kwargs,
    )


def make_candidates(
    counts: Optional[Dict[str, int]] = None,
    price: float = 5.0,
    confidence: float = 0.9,
    start_id: int = 1,
) -> List[PlayerValuation]:
    """Candidates per position with descending values (10, 9, 8, ...).

    Default counts give 3 GKP, 8 DEF, 8 MID and 5 FWD, all on distinct teams.
    """
    counts = counts or {"GKP": 3, "DEF": 8, "MID": 8, "FWD": 5}
    players = []
    player_id = start_id
    for position, count in counts.items():
        for i in range(count):
            players.append(
                make_player(
                    player_id,
                    position,
                    price=price,
                    predicted_value=10.0 - i,
                    confidence=confidence,
                )
            )
            player_id += 1
    return players


@pytest.fixture
def player_factory():
    return make_player


@pytest.fixture
def candidate_factory():
    return make_candidates


@pytest.fixture
def candidates():
    """Standard pool: 24 candidates, 15 x £5.0m fits easily in £100m."""
    return make_candidates()


@pytest.fixture
def rules():
    return SquadRules.from_config(SquadOptimizerConfig())


@pytest.fixture
def default_config():
    return SquadOptimizerConfig()
