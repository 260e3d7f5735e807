#!/usr/bin/env python3
"""Squad Selection - build a 15-player squad from a CSV of player valuations.

The CSV needs one row per player with at least player_id, display_name (or
web_name), position, team_id (or team), price, predicted_value (or xP) and
confidence columns.

Usage:
    # Default: balanced strategy, greedy selection, £100m budget
    uv run python scripts/select_squad.py valuations.csv

    # Value hunting with a tighter budget and the greedy gap report
    uv run python scripts/select_squad.py valuations.csv --strategy value_hunting --budget 95.5 --gap

    # Exact selection with the integer program
    uv run python scripts/select_squad.py valuations.csv --method integer_program
"""

import sys
from pathlib import Path
from typing import Optional

import pandas as pd
import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from fpl_squad_optimizer.config import load_config  # noqa: E402
from fpl_squad_optimizer.config.utils import export_config_to_json  # noqa: E402
from fpl_squad_optimizer.domain.models import (  # noqa: E402
    SelectionMethod,
    SquadSelectionResult,
    StrategyMode,
)
from fpl_squad_optimizer.domain.services import (  # noqa: E402
    ResultAssembler,
    SquadSelectionService,
)
from fpl_squad_optimizer.logging_setup import configure_logging  # noqa: E402

app = typer.Typer(help="FPL Squad Selection - budget, quota and team-cap constrained")
console = Console()


@app.command()
def main(
    valuations: Path = typer.Argument(..., help="CSV file of player valuations"),
    budget: Optional[float] = typer.Option(
        None, "--budget", "-b", help="Budget in millions (default from config)"
    ),
    team_cap: Optional[int] = typer.Option(
        None, "--team-cap", "-t", help="Max players per team (default from config)"
    ),
    strategy: Optional[str] = typer.Option(
        None,
        "--strategy",
        "-s",
        help="Strategy mode: balanced, aggressive, conservative, value_hunting",
    ),
    method: Optional[str] = typer.Option(
        None, "--method", "-m", help="Selection method: greedy, integer_program"
    ),
    gameweek: Optional[int] = typer.Option(
        None, "--gameweek", "-g", help="Planning gameweek (1-38)"
    ),
    gap: bool = typer.Option(
        False, "--gap", help="Also solve the integer program and report the greedy gap"
    ),
    reserve_budget: bool = typer.Option(
        False, "--reserve-budget", help="Keep back money for the cheapest remaining slots"
    ),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="JSON configuration file"
    ),
    write_config: Optional[Path] = typer.Option(
        None, "--write-config", help="Write the effective configuration to this JSON file"
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write the selected squad to this CSV file"
    ),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
):
    """Select a squad, starting eleven and captain from valuations."""
    configure_logging("DEBUG" if debug else "INFO")

    if gameweek is not None and not (1 <= gameweek <= 38):
        console.print(f"[red]Error: gameweek must be 1-38, got {gameweek}[/red]")
        raise typer.Exit(1)

    try:
        strategy_mode = StrategyMode.from_any(strategy) if strategy else None
        selection_method = SelectionMethod(method.lower()) if method else None
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    optimization_overrides = {}
    if gap:
        optimization_overrides["measure_optimality_gap"] = True
    if reserve_budget:
        optimization_overrides["reserve_budget"] = True
    cfg = load_config(
        config_path=config_path,
        config_data={"optimization": optimization_overrides}
        if optimization_overrides
        else None,
    )
    if write_config:
        export_config_to_json(cfg, write_config)

    try:
        frame = pd.read_csv(valuations)
    except (OSError, pd.errors.ParserError) as e:
        console.print(f"[red]Error reading {valuations}: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"\n[bold cyan]🎯 Squad Selection[/bold cyan] ({len(frame)} candidates)")

    service = SquadSelectionService(cfg)
    result = service.select_squad(
        frame,
        budget=budget,
        team_cap=team_cap,
        strategy=strategy_mode,
        gameweek=gameweek,
        selection_method=selection_method,
    )

    print_result(result)

    if output and result.success:
        ResultAssembler().squad_to_dataframe(result).to_csv(output, index=False)
        logger.info(f"✅ Squad written to {output}")

    if not result.success:
        raise typer.Exit(2)


def print_result(result: SquadSelectionResult):
    """Print the selection in rich formatted output."""
    console.print(
        f"[cyan]Strategy: {result.strategy} | Method: {result.selection_method.value} "
        f"| Budget: £{result.budget}m[/cyan]\n"
    )

    if not result.success:
        console.print(f"[bold red]❌ {result.message}[/bold red]")
        if result.partial_squad:
            console.print(
                f"[yellow]Partial squad: "
                f"{', '.join(p.display_name for p in result.partial_squad)}[/yellow]"
            )
        if result.dropped_candidates:
            console.print(
                f"[yellow]{len(result.dropped_candidates)} candidates dropped[/yellow]"
            )
        return

    captain_id = result.captaincy.captain.player_id
    vice_id = result.captaincy.vice_captain.player_id
    starter_ids = {p.player_id for p in result.lineup.starters}

    table = Table(title=f"Squad ({result.lineup.formation})")
    table.add_column("Pos", style="cyan")
    table.add_column("Player", style="bold")
    table.add_column("Team", justify="right")
    table.add_column("Price", justify="right")
    table.add_column("xP", justify="right")
    table.add_column("Conf", justify="right")
    table.add_column("Role")

    for player in result.lineup.starters + result.lineup.bench:
        if player.player_id == captain_id:
            role = "[bold green](C)[/bold green]"
        elif player.player_id == vice_id:
            role = "[green](V)[/green]"
        elif player.player_id in starter_ids:
            role = ""
        else:
            role = "[dim]bench[/dim]"
        table.add_row(
            player.position.value,
            player.display_name,
            player.team_name or str(player.team_id),
            f"£{player.price}m",
            f"{player.predicted_value:.2f}",
            f"{player.confidence:.2f}",
            role,
        )
    console.print(table)

    console.print(
        f"\n[bold]Cost:[/bold] £{result.total_cost}m "
        f"(£{result.remaining_budget}m left) | "
        f"[bold]Squad xP:[/bold] {result.total_predicted_value:.2f} | "
        f"[bold]XI xP (with captain):[/bold] {result.starting_xi_value:.2f}"
    )

    if result.optimality and result.optimality.absolute_gap is not None:
        console.print(
            f"[magenta]📊 Optimal: {result.optimality.optimal_value:.2f} | "
            f"Gap: {result.optimality.absolute_gap:.2f} "
            f"({result.optimality.relative_gap:.1%})[/magenta]"
        )

    if result.dropped_candidates:
        console.print(
            f"[yellow]⚠️ {len(result.dropped_candidates)} candidates dropped[/yellow]"
        )


if __name__ == "__main__":
    app()
