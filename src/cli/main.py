"""
Typer CLI for the lingo progression engine.

Commands:
    lingo reward 4 --retry          - Sun Drops for one activity
    lingo tree --days 7 --buffer 3  - Tree health after a gap
    lingo level 120                 - Level and sub-level for an acquired count
    lingo plan --deck deck.json     - Plan a session for a learner
    lingo simulate --deck deck.json - Run a scripted session and summarize it

Usage:
    lingo --help
    lingo plan --deck data/sample_deck.json --learner alice --minutes 15
    lingo simulate --deck data/sample_deck.json --accuracy 0.6 --seed 7
"""

from __future__ import annotations

import random
import sys
from datetime import timedelta
from pathlib import Path

import typer
from loguru import logger
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from config import get_settings
from src.adaptive.learning_engine import LearningEngine
from src.adaptive.models import SessionOptions
from src.content.pool import ContentPool
from src.core.activity import ActivityResult
from src.core.clock import utcnow
from src.core.exceptions import ProgressionError
from src.core.levels import (
    estimate_level,
    level_to_cefr,
    level_to_sub_level,
    units_to_next_band,
)
from src.db.store import InMemoryProgressStore, ProgressStore
from src.garden.sun_drops import calculate_earned
from src.garden.tree_health import (
    Tree,
    days_until_next_decay,
    health_description,
    health_indicator,
    needs_attention,
    tree_category,
    tree_health,
)

app = typer.Typer(
    help="lingo: adaptive progression engine inspection tools",
    no_args_is_help=True,
)

console = Console()


# ========================================
# Helpers
# ========================================


def _load_pool(deck: Path | None) -> ContentPool:
    path = deck or get_settings().content_deck_path
    if path is None:
        rprint("[red]No content deck given (use --deck or LINGO_CONTENT_DECK_PATH)[/red]")
        raise typer.Exit(code=1)
    path = Path(path)
    if not path.exists():
        rprint(f"[red]Content deck not found: {path}[/red]")
        raise typer.Exit(code=1)
    return ContentPool.load_json(path)


def _build_store(database_url: str | None) -> ProgressStore:
    if database_url is None:
        return InMemoryProgressStore()

    from src.db.database import create_db_engine
    from src.db.sql_store import SqlProgressStore

    return SqlProgressStore(create_db_engine(database_url))


# ========================================
# Pure calculators
# ========================================


@app.command("reward")
def reward(
    base_value: int = typer.Argument(..., help="Activity base value (1-4)"),
    retry: bool = typer.Option(False, "--retry", help="Activity is a retry"),
    help_used: bool = typer.Option(False, "--help-used", help="Help button was used"),
    wrong: int = typer.Option(0, "--wrong", "-w", help="Wrong attempts before success"),
) -> None:
    """Show the Sun Drops earned for one activity."""
    try:
        earned = calculate_earned(base_value, is_retry=retry, used_help=help_used, wrong_attempts=wrong)
    except ProgressionError as e:
        rprint(f"[red]{e}[/red]")
        raise typer.Exit(code=1) from e
    rprint(f"[bold yellow]☀ {earned}[/bold yellow] Sun Drops")


@app.command("tree")
def tree(
    days: int = typer.Option(0, "--days", "-d", help="Days since the last review"),
    buffer: float = typer.Option(0.0, "--buffer", "-b", help="Unconsumed gift buffer days"),
) -> None:
    """Show tree health after a gap without practice."""
    now = utcnow()
    sample = Tree(
        learner_id="cli",
        group="sample",
        last_refreshed_at=now - timedelta(days=max(0, days)),
        buffer_days=max(0.0, buffer),
    )
    category = tree_category(sample, now)
    health = tree_health(sample, now)

    table = Table(title="Tree Health", show_header=True)
    table.add_column("Days", justify="right", style="cyan")
    table.add_column("Buffer", justify="right", style="dim")
    table.add_column("Health", justify="right")
    table.add_column("Category")
    table.add_row(
        str(days),
        f"{buffer:g}",
        f"[{category.color}]{health}%[/{category.color}]",
        health_indicator(health),
    )
    console.print(table)
    rprint(f"  {health_description(sample, now)}")
    if needs_attention(sample, now):
        next_decay = days_until_next_decay(sample, now)
        if next_decay is not None:
            rprint(f"  [dim]Next health drop in {next_decay} day(s) without practice.[/dim]")


@app.command("level")
def level(
    acquired: int = typer.Argument(..., help="Number of acquired units"),
) -> None:
    """Show proficiency level and sub-level for an acquired-unit count."""
    value = estimate_level(max(0, acquired))
    next_band, remaining = units_to_next_band(max(0, acquired))

    table = Table(title="Proficiency", show_header=True)
    table.add_column("Acquired", justify="right", style="cyan")
    table.add_column("Level", justify="right", style="green")
    table.add_column("Sub-level")
    table.add_column("CEFR")
    table.add_column("Next band")
    table.add_row(
        str(acquired),
        str(value),
        level_to_sub_level(value).value,
        level_to_cefr(value),
        f"{next_band.value} in {remaining} units" if remaining else "-",
    )
    console.print(table)


# ========================================
# Engine commands
# ========================================


@app.command("plan")
def plan(
    deck: Path = typer.Option(None, "--deck", help="JSON content deck"),
    learner: str = typer.Option("demo", "--learner", "-l", help="Learner id"),
    minutes: float = typer.Option(None, "--minutes", "-m", help="Session length in minutes"),
    topics: list[str] = typer.Option(None, "--topic", "-t", help="Restrict new units to topics"),
    database_url: str = typer.Option(None, "--db", help="Progress database URL (default: in-memory)"),
) -> None:
    """Plan a session for a learner."""
    settings = get_settings()
    pool = _load_pool(deck)
    engine = LearningEngine.from_settings(pool, _build_store(database_url))

    options = SessionOptions(
        duration_minutes=minutes if minutes is not None else settings.session_default_minutes,
        max_new_units=settings.session_max_new_units,
        max_review_units=settings.session_max_review_units,
        max_context_units=settings.session_context_units,
        topics=list(topics or []),
    )
    context = engine.start_session(learner, options)
    session_plan = context.plan

    rprint(f"\n[bold cyan]Session plan for {learner}[/bold cyan]")
    rprint(
        f"  Target level: {session_plan.target_level:.1f} "
        f"(range {session_plan.difficulty_range[0]:.1f}-{session_plan.difficulty_range[1]:.1f})"
    )
    rprint(f"  {session_plan.reasoning}\n")

    table = Table(title=f"{session_plan.total_units} units", show_header=True)
    table.add_column("Role", style="cyan")
    table.add_column("Unit", style="dim")
    table.add_column("Text")
    table.add_column("Difficulty", justify="right")
    table.add_column("Topic")
    for role, units in (
        ("new", session_plan.target_units),
        ("review", session_plan.review_units),
        ("context", session_plan.context_units),
    ):
        for unit in units:
            table.add_row(role, unit.id, unit.text, f"{unit.difficulty:g}", unit.topic_group)
    console.print(table)

    mix = ", ".join(f"{t.value} {w:.0%}" for t, w in session_plan.activity_mix)
    rprint(f"\n  Activity mix: {mix}")
    rprint(f"  Estimated: {session_plan.estimated_minutes:g} of {session_plan.duration_minutes:g} minutes")


@app.command("simulate")
def simulate(
    deck: Path = typer.Option(None, "--deck", help="JSON content deck"),
    learner: str = typer.Option("demo", "--learner", "-l", help="Learner id"),
    activities: int = typer.Option(8, "--activities", "-n", help="Maximum activities to run"),
    accuracy: float = typer.Option(0.8, "--accuracy", "-a", help="Chance of answering correctly"),
    seed: int = typer.Option(None, "--seed", help="Random seed for a repeatable run"),
) -> None:
    """Run a scripted session against an in-memory store and print the summary."""
    rng = random.Random(seed)
    pool = _load_pool(deck)
    engine = LearningEngine.from_settings(pool, InMemoryProgressStore())
    engine.monitor.rng = random.Random(seed)

    now = utcnow()
    context = engine.start_session(learner, now=now)

    table = Table(title="Activities", show_header=True)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Type", style="cyan")
    table.add_column("Units")
    table.add_column("Result")
    table.add_column("☀", justify="right", style="yellow")
    table.add_column("Adaptation")

    for index in range(1, max(0, activities) + 1):
        recommendation = engine.next_activity(context)
        if recommendation is None:
            break
        now += timedelta(seconds=rng.randint(30, 90))
        correct = rng.random() < accuracy
        result = ActivityResult(
            unit_ids=list(recommendation.unit_ids),
            correct=correct,
            used_help=not correct and rng.random() < 0.5,
            attempts=1 if correct else 2,
            response_time_ms=rng.randint(2000, 15000),
            timestamp=now,
            activity_type=recommendation.activity_type,
        )
        outcome = engine.record_activity(context, result, now)
        table.add_row(
            str(index),
            recommendation.activity_type.value,
            ", ".join(recommendation.unit_ids),
            "[green]✓[/green]" if correct else "[red]✗[/red]",
            str(outcome.sun_drops),
            outcome.action.kind.value if not outcome.action.is_none else "",
        )
        should_end, reason = engine.should_end_session(context, now)
        if should_end:
            rprint(f"[dim]Ending early: {reason}[/dim]")
            break

    console.print(table)
    summary = engine.end_session(context, now)

    result_table = Table(title="Session Summary", show_header=True)
    result_table.add_column("Metric", style="cyan")
    result_table.add_column("Value", justify="right", style="green")
    result_table.add_row("Activities", str(summary.activities_completed))
    result_table.add_row("Accuracy", f"{summary.accuracy:.0%}")
    result_table.add_row("New units", str(summary.new_units))
    result_table.add_row("Reviewed", str(summary.reviewed_units))
    result_table.add_row("Acquired", str(summary.acquired_units))
    result_table.add_row("Sun Drops", str(summary.sun_drops_earned))
    result_table.add_row("Filter risk", f"{summary.filter_risk:.2f}")
    console.print(result_table)

    for tip in summary.tips:
        rprint(f"  💡 {tip}")


def main() -> None:
    """Entry point for the CLI."""
    settings = get_settings()
    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.log_level,
        format="<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}",
    )
    if settings.log_file:
        logger.add(settings.log_file, level="DEBUG", rotation="10 MB", retention=3)
    app()


if __name__ == "__main__":
    main()
