"""Value provider interface for player valuations."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Hashable

from ..common.result import Result
from ..models.player import PlayerValuation


@dataclass
class PlanningCycle:
    """
    Context for one planning cycle (a single gameweek).

    Providers memoize per-gameweek lookups in ``cache`` instead of module
    globals, so nothing leaks between cycles or between requests.
    """

    gameweek: int
    cache: Dict[Hashable, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not 1 <= self.gameweek <= 38:
            raise ValueError(f"gameweek must be between 1 and 38, got {self.gameweek}")

    def memoize(self, key: Hashable, compute: Callable[[], Any]) -> Any:
        """Return the cached value for ``key``, computing it on first use."""
        if key not in self.cache:
            self.cache[key] = compute()
        return self.cache[key]


class ValueProvider(ABC):
    """
    Abstract source of player valuations.

    How values are forecast is the provider's business. The selection engine
    only relies on this contract: given a player and a cycle, return a point
    estimate with a confidence score, or a failure.
    """

    @abstractmethod
    def get_valuation(
        self, player_id: int, cycle: PlanningCycle
    ) -> Result[PlayerValuation]:
        """
        Get the valuation of one player for a planning cycle.

        Args:
            player_id: The player's ID
            cycle: Planning cycle context

        Returns:
            Result containing the valuation or error information
        """
        pass
