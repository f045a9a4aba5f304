"""Takao Engine CLI.

Usage:
    python -m takao_engine init ./data
    python -m takao_engine run ./data --max-turns 5 --seed 42
    python -m takao_engine step ./data --bucket default
    python -m takao_engine status ./data
    python -m takao_engine diary ./data --last 10
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated, Optional

import typer
from dotenv import load_dotenv

# Load .env early so TAKAO_* overrides are visible to load_config
load_dotenv()
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from takao_core import (
    LAST_ACTION_TURN,
    DataManager,
    EngineConfig,
    TakaoError,
    is_unit_alive,
    load_config,
    resolve_data_dir,
)
from takao_core.config import write_default_config
from takao_core.logging import setup_logging

from .engine import SimulationEngine

app = typer.Typer(
    name="takao-engine",
    help="Takao turn-based story engine",
    add_completion=False,
)

console = Console()

DataDirArg = Annotated[
    Optional[Path],
    typer.Argument(help="Data directory (defaults to $TAKAO_DATA_DIR or ./data)"),
]
SeedOption = Annotated[
    Optional[int], typer.Option("--seed", "-s", help="Seed for the random source")
]
BucketOption = Annotated[
    Optional[str], typer.Option("--bucket", "-b", help="Only use actions from this bucket")
]


def _prepare(data_dir: Optional[Path], seed: Optional[int]) -> tuple[Path, EngineConfig]:
    """Resolve the data directory, load config and configure logging."""
    path = resolve_data_dir(data_dir)
    if not path.exists():
        console.print(f"[red]Error:[/red] Data directory not found: {path}")
        raise typer.Exit(1)

    config = load_config(path)
    if seed is not None:
        config = config.model_copy(update={"seed": seed})

    setup_logging(level=config.log_level, log_dir=path / "logs")
    return path, config


def _start_engine(path: Path, config: EngineConfig) -> SimulationEngine:
    engine = SimulationEngine(path, config=config)
    try:
        engine.initialize()
    except TakaoError as e:
        console.print(f"[red]Startup error: {e}[/red]")
        raise typer.Exit(1)
    return engine


@app.command("init")
def init_data_dir(data_dir: DataDirArg = None) -> None:
    """Create a data directory with a default config.json."""
    path = resolve_data_dir(data_dir)
    config_path = write_default_config(path)
    console.print(f"[green]Config ready at[/green] {config_path}")
    if DataManager(path).actions_path() is None:
        console.print("[yellow]Add an actions.json before running turns.[/yellow]")


@app.command("run")
def run_simulation(
    data_dir: DataDirArg = None,
    max_turns: Annotated[
        Optional[int], typer.Option("--max-turns", "-t", help="Turns to run this session")
    ] = None,
    seed: SeedOption = None,
    bucket: BucketOption = None,
) -> None:
    """Run a session of turns."""
    path, config = _prepare(data_dir, seed)

    console.print(Panel(
        f"[bold]Data:[/bold] {path}\n"
        f"[bold]Max Turns:[/bold] {max_turns or ('unlimited' if config.run_indefinitely else config.max_turns_per_session)}\n"
        f"[bold]Seed:[/bold] {config.seed if config.seed is not None else 'random'}\n"
        f"[bold]Bucket:[/bold] {bucket or 'all'}",
        title="Takao Engine - Session",
        border_style="cyan",
    ))

    engine = _start_engine(path, config)
    try:
        executed = asyncio.run(engine.run(max_turns=max_turns, bucket=bucket))
    except KeyboardInterrupt:
        console.print(f"\n[yellow]Interrupted after turn {engine.last_turn_number}[/yellow]")
        raise typer.Exit(130)
    except TakaoError as e:
        console.print(f"[red]Simulation error: {e}[/red]")
        raise typer.Exit(1)

    failed = sum(1 for item in executed if not item.effect_applied)
    console.print(Panel(
        f"[green]Session complete[/green]\n"
        f"Turns run: {len(executed)}\n"
        f"Failed effects: {failed}\n"
        f"Last turn: {engine.last_turn_number}",
        title="Session Complete",
        border_style="green",
    ))


@app.command("step")
def step_simulation(
    data_dir: DataDirArg = None,
    seed: SeedOption = None,
    bucket: BucketOption = None,
) -> None:
    """Execute a single turn."""
    path, config = _prepare(data_dir, seed)
    engine = _start_engine(path, config)

    console.print(f"[cyan]Executing turn {engine.last_turn_number + 1}...[/cyan]")
    try:
        executed = asyncio.run(engine.step(bucket=bucket))
    except TakaoError as e:
        console.print(f"[red]Simulation error: {e}[/red]")
        raise typer.Exit(1)

    action = executed.action
    body = f"[bold]{action.player}[/bold] - {action.type}\n{action.description}"
    if executed.effect_applied:
        console.print(Panel(body, title=f"Turn {executed.turn}", border_style="green"))
    else:
        console.print(Panel(
            f"{body}\n[yellow]Effect not applied: {executed.failure_reason}[/yellow]",
            title=f"Turn {executed.turn}",
            border_style="yellow",
        ))


@app.command("status")
def show_status(data_dir: DataDirArg = None) -> None:
    """Show saved units and the last recorded turn."""
    path = resolve_data_dir(data_dir)
    if not path.exists():
        console.print(f"[red]Error:[/red] Data directory not found: {path}")
        raise typer.Exit(1)

    data = DataManager(path)
    units = data.load_units()

    table = Table(title=f"Units ({len(units)})")
    table.add_column("Name", style="bold")
    table.add_column("Type")
    table.add_column("Status")
    table.add_column("Health", justify="right")
    table.add_column("Mana", justify="right")
    table.add_column("Last Acted", justify="right")
    for unit in units:
        table.add_row(
            unit.name,
            unit.type,
            "[green]alive[/green]" if is_unit_alive(unit) else "[red]dead[/red]",
            str(unit.get_property_value("health") if unit.has_property("health") else "-"),
            str(unit.get_property_value("mana") if unit.has_property("mana") else "-"),
            str(unit.get_property_value(LAST_ACTION_TURN) or "-"),
        )

    console.print(Panel(
        f"[bold]Data:[/bold] {path}\n"
        f"[bold]Last Turn:[/bold] {data.get_last_turn_number()}\n"
        f"[bold]Catalog:[/bold] {data.actions_path() or '[red]missing[/red]'}",
        title="Simulation Status",
        border_style="cyan",
    ))
    console.print(table)


@app.command("diary")
def show_diary(
    data_dir: DataDirArg = None,
    last: Annotated[int, typer.Option("--last", "-n", help="Entries to show")] = 20,
) -> None:
    """Show the most recent diary entries."""
    path = resolve_data_dir(data_dir)
    entries = DataManager(path).load_diary()
    if not entries:
        console.print("[yellow]Diary is empty.[/yellow]")
        return

    table = Table(title=f"Diary ({len(entries)} entries)")
    table.add_column("Turn", justify="right")
    table.add_column("Player", style="bold")
    table.add_column("Action")
    table.add_column("Description")
    table.add_column("Changes")
    for entry in entries[-last:]:
        if entry.effect_applied:
            changes = "\n".join(entry.stat_changes_summary) or "-"
        else:
            changes = f"[yellow]not applied: {entry.failure_reason}[/yellow]"
        table.add_row(
            str(entry.turn),
            entry.action.player,
            entry.action.type,
            entry.action.description,
            changes,
        )
    console.print(table)


# Module entry point
def main() -> None:
    """Entry point for python -m takao_engine"""
    app()


if __name__ == "__main__":
    main()
