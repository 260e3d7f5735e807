"""Squad selection service: the single entry point of the selection engine."""

import time
from datetime import datetime
from decimal import Decimal
from typing import Mapping, Optional, Sequence, Union

from loguru import logger

from fpl_squad_optimizer.config import SquadOptimizerConfig, config as default_config
from fpl_squad_optimizer.domain.common.exceptions import (
    InfeasibleSquadError,
    InsufficientCandidatesError,
)
from fpl_squad_optimizer.domain.models import (
    DroppedCandidate,
    OptimalityReport,
    SelectionMethod,
    SelectionStrategy,
    Squad,
    SquadSelectionResult,
    StrategyMode,
)
from fpl_squad_optimizer.domain.repositories import PlanningCycle, ValueProvider

from .candidate_pool import CandidatePoolBuilder, RawValuations
from .optimization import (
    CaptaincySelector,
    LineupSelector,
    OptimalSquadSelector,
    SquadRules,
    SquadSelector,
)
from .result_assembler import ResultAssembler
from .valuation_service import ValuationGatherer

StrategyInput = Union[SelectionStrategy, StrategyMode, str, None]


class SquadSelectionService:
    """Service for building a squad, lineup and captaincy from valuations.

    Runs the pipeline CandidatePool -> squad selector -> LineupSelector ->
    CaptaincySelector -> ResultAssembler. Quota shortfalls and infeasible
    squads come back as failed results; invariant violations raise.
    """

    def __init__(self, config: Optional[SquadOptimizerConfig] = None):
        """Initialize the service with configuration.

        Args:
            config: Full optimizer configuration (defaults to the global config)
        """
        self.config = config or default_config
        self.pool_builder = CandidatePoolBuilder(self.config.candidate_pool)
        self.greedy_selector = SquadSelector()
        self.optimal_selector = OptimalSquadSelector(
            time_limit_seconds=self.config.optimization.ilp_time_limit_seconds
        )
        self.lineup_selector = LineupSelector()
        self.captaincy_selector = CaptaincySelector()
        self.assembler = ResultAssembler()
        self.gatherer = ValuationGatherer(self.config.valuation)

    def select_squad(
        self,
        candidates: RawValuations,
        budget: Optional[Union[Decimal, float, str]] = None,
        position_quotas: Optional[Mapping] = None,
        team_cap: Optional[int] = None,
        strategy: StrategyInput = None,
        gameweek: Optional[int] = None,
        selection_method: Optional[Union[SelectionMethod, str]] = None,
        prior_drops: Sequence[DroppedCandidate] = (),
    ) -> SquadSelectionResult:
        """Select a squad, lineup and captaincy from candidate valuations.

        Args:
            candidates: Raw valuations (DataFrame or iterable of mappings /
                PlayerValuation)
            budget: Budget in millions (defaults to config)
            position_quotas: Players per position (defaults to config)
            team_cap: Max players per team (defaults to config)
            strategy: SelectionStrategy, StrategyMode or mode name
            gameweek: Planning cycle, carried onto the result
            selection_method: 'greedy' or 'integer_program' (defaults to config)
            prior_drops: Drops recorded before pool construction

        Returns:
            SquadSelectionResult; ``success`` is False when the pool or the
            constraints made a full squad impossible.
        """
        started = time.perf_counter()
        selected_at = datetime.now()

        rules = SquadRules.from_config(
            self.config, budget=budget, position_quotas=position_quotas, team_cap=team_cap
        )
        resolved = self._resolve_strategy(strategy)
        method = SelectionMethod(
            selection_method or self.config.optimization.selection_method
        )

        logger.info(
            f"🎯 Squad selection: strategy {resolved.mode.value}, method {method.value}, "
            f"budget £{rules.budget}m"
            + (f", GW{gameweek}" if gameweek else "")
        )

        dropped: Sequence[DroppedCandidate] = tuple(prior_drops)
        try:
            pool = self.pool_builder.build(
                candidates,
                rules.position_quotas,
                gameweek=gameweek,
                prior_drops=prior_drops,
            )
            dropped = pool.dropped

            if method == SelectionMethod.INTEGER_PROGRAM:
                squad = self.optimal_selector.select(pool, rules, resolved)
            else:
                squad = self.greedy_selector.select(pool, rules, resolved)
        except (InsufficientCandidatesError, InfeasibleSquadError) as e:
            logger.warning(f"⚠️ Squad selection failed: {e}")
            return self.assembler.failure(
                e,
                budget=rules.budget,
                strategy=resolved.mode.value,
                selection_method=method,
                gameweek=gameweek,
                dropped=dropped,
                selected_at=selected_at,
                duration_seconds=time.perf_counter() - started,
            )

        optimality = None
        if self.config.optimization.measure_optimality_gap:
            optimality = self._measure_gap(squad, pool, rules, method)

        lineup = self.lineup_selector.select_lineup(squad, rules)
        captaincy = self.captaincy_selector.select_captaincy(
            lineup, top_n=self.config.captaincy.top_candidates
        )

        result = self.assembler.assemble(
            squad,
            lineup,
            captaincy,
            budget=rules.budget,
            strategy=resolved.mode.value,
            selection_method=method,
            gameweek=gameweek,
            dropped=dropped,
            optimality=optimality,
            selected_at=selected_at,
            duration_seconds=time.perf_counter() - started,
        )
        logger.info(
            f"✅ {result.message}, £{result.remaining_budget}m left, "
            f"captain {captaincy.captain.display_name} "
            f"in {result.duration_seconds:.2f}s"
        )
        return result

    def select_squad_for_cycle(
        self,
        provider: ValueProvider,
        player_ids: Sequence[int],
        cycle: PlanningCycle,
        strategy: StrategyInput = None,
        **overrides,
    ) -> SquadSelectionResult:
        """Gather valuations from a provider, then select.

        Provider failures and timeouts become ``provider_error`` drops on the
        result. ``overrides`` are passed through to ``select_squad``. The
        gameweek always comes from ``cycle``; a conflicting ``gameweek``
        override raises ValueError.
        """
        gameweek = overrides.pop("gameweek", cycle.gameweek)
        if gameweek != cycle.gameweek:
            raise ValueError(
                f"gameweek {gameweek} does not match planning cycle GW{cycle.gameweek}"
            )

        valuations, dropped = self.gatherer.gather(provider, player_ids, cycle)
        return self.select_squad(
            valuations,
            strategy=strategy,
            gameweek=cycle.gameweek,
            prior_drops=dropped,
            **overrides,
        )

    def _resolve_strategy(self, strategy: StrategyInput) -> SelectionStrategy:
        if isinstance(strategy, SelectionStrategy):
            return strategy
        mode = strategy if strategy is not None else self.config.optimization.strategy_mode
        return SelectionStrategy.from_mode(
            mode, reserve_budget=self.config.optimization.reserve_budget
        )

    def _measure_gap(
        self, squad: Squad, pool, rules: SquadRules, method: SelectionMethod
    ) -> Optional[OptimalityReport]:
        """Compare a greedy squad against the integer-program optimum."""
        if method == SelectionMethod.INTEGER_PROGRAM:
            logger.debug("Squad already optimal, skipping gap measurement")
            return None

        optimal, status = self.optimal_selector.solve(pool, rules)
        report = OptimalityReport.compare(
            greedy_value=squad.total_predicted_value,
            optimal_value=optimal.total_predicted_value if optimal else None,
            solver_status=status,
        )
        if report.absolute_gap is not None:
            logger.info(
                f"📊 Optimality gap: {report.absolute_gap:.2f} points "
                f"({report.relative_gap:.1%})"
            )
        return report
