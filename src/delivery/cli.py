"""
Fluency: CLI for the adaptive drill scheduler.

Inspect stored progress, manage motor baselines, and run simulated
sessions against the real engine.

Commands:
- fluency thresholds  - Show speed bands for a baseline
- fluency stats       - Show per-item statistics for a namespace
- fluency baseline    - Show or set a motor baseline
- fluency reset       - Clear stored statistics for a namespace
- fluency simulate    - Drive quiz rounds with a synthetic learner
"""
from __future__ import annotations

import random
import sys
from pathlib import Path
from typing import Any, Optional

import typer
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm
from rich.table import Table

from config import get_settings
from src.adaptive.errors import StorageUnavailable
from src.adaptive.learner import LearnerModel
from src.adaptive.mastery import compute_median
from src.adaptive.recommendations import build_recommendation_text, compute_recommendations
from src.adaptive.state_store import SQLiteStorage
from src.adaptive.storage import MemoryStorage
from src.study.calibration import get_calibration_thresholds
from src.study.engine_state import EnginePhase
from src.study.quiz_engine import AUTO_ADVANCE_MS, CheckAnswerResult, QuizEngine, QuizMode
from src.study.round_summary import build_round_summary
from src.study.timers import ManualClock


# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="fluency",
    help="Fluency: adaptive drill scheduler",
    no_args_is_help=True,
)
console = Console()


def _open_store(namespace: str, db: Optional[Path]) -> SQLiteStorage:
    path = db or get_settings().resolved_database_path
    try:
        return SQLiteStorage(namespace, db_path=path)
    except StorageUnavailable as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


def _fmt_seconds(ms: float | None) -> str:
    return f"{ms / 1000:.2f}s" if ms is not None else "-"


def _fmt_ratio(value: float | None) -> str:
    return f"{value:.2f}" if value is not None else "-"


# =============================================================================
# Commands
# =============================================================================


@app.command()
def thresholds(
    baseline_ms: float = typer.Argument(1000, help="Motor baseline in milliseconds"),
) -> None:
    """Show the speed bands derived from a motor baseline."""
    table = Table(title=f"Speed bands for a {baseline_ms / 1000:.2f}s baseline")
    table.add_column("Level", style="bold")
    table.add_column("Max time", justify="right")
    table.add_column("Meaning")

    for band in get_calibration_thresholds(baseline_ms):
        max_time = f"{band.max_ms / 1000:.1f}s" if band.max_ms is not None else "-"
        table.add_row(band.label, max_time, band.meaning)

    console.print(table)


@app.command()
def stats(
    namespace: Optional[str] = typer.Option(None, "--namespace", "-n", help="Storage namespace"),
    db: Optional[Path] = typer.Option(None, "--db", help="SQLite state file"),
) -> None:
    """Show per-item statistics for a namespace."""
    settings = get_settings()
    namespace = namespace or settings.default_namespace
    store = _open_store(namespace, db)
    try:
        learner = LearnerModel(namespace, store, provider=settings.calibration_provider)
        selector = learner.selector
        item_ids = store.item_ids()

        if not item_ids:
            console.print(f"[dim]No stored items in namespace '{namespace}'.[/dim]")
            return

        table = Table(title=f"Namespace: {namespace}")
        table.add_column("Item", style="cyan")
        table.add_column("Samples", justify="right")
        table.add_column("EWMA", justify="right")
        table.add_column("Median", justify="right")
        table.add_column("Stability", justify="right")
        table.add_column("Recall", justify="right")
        table.add_column("Automaticity", justify="right")

        for item_id in item_ids:
            item = selector.get_stats(item_id)
            if item is None:
                continue
            stability = f"{item.stability:.1f}h" if item.stability is not None else "-"
            table.add_row(
                item_id,
                str(item.sample_count),
                _fmt_seconds(item.ewma),
                _fmt_seconds(compute_median(item.recent_times)),
                stability,
                _fmt_ratio(selector.get_recall(item_id)),
                _fmt_ratio(selector.get_automaticity(item_id)),
            )

        console.print(table)
        baseline = learner.motor_baseline
        console.print(
            f"Baseline: {_fmt_seconds(baseline)}" if baseline else "Baseline: 1s [dim](default)[/dim]"
        )
    finally:
        store.close()


@app.command()
def baseline(
    provider: Optional[str] = typer.Option(None, "--provider", "-p", help="Calibration provider key"),
    set_ms: Optional[float] = typer.Option(None, "--set", help="Store this baseline (ms)"),
    db: Optional[Path] = typer.Option(None, "--db", help="SQLite state file"),
) -> None:
    """Show or set the motor baseline for a calibration provider."""
    provider = provider or get_settings().calibration_provider
    store = _open_store(get_settings().default_namespace, db)
    try:
        if set_ms is not None:
            if set_ms <= 0:
                console.print("[red]Baseline must be positive[/red]")
                raise typer.Exit(1)
            store.save_motor_baseline(provider, set_ms)
            console.print(f"[green]Stored {set_ms:.0f}ms baseline for '{provider}'[/green]")
            return

        value = store.get_motor_baseline(provider)
        if value:
            console.print(f"Response time baseline ({provider}): {value / 1000:.1f}s")
        else:
            console.print(f"Response time baseline ({provider}): 1s [dim](default)[/dim]")
    except StorageUnavailable as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    finally:
        store.close()


@app.command()
def reset(
    namespace: Optional[str] = typer.Option(None, "--namespace", "-n", help="Storage namespace"),
    confirm: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    db: Optional[Path] = typer.Option(None, "--db", help="SQLite state file"),
) -> None:
    """Clear stored statistics for a namespace."""
    namespace = namespace or get_settings().default_namespace
    if not confirm and not Confirm.ask(f"Reset all progress in '{namespace}'?", default=False):
        raise typer.Exit(0)

    store = _open_store(namespace, db)
    try:
        count = store.reset()
    except StorageUnavailable as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    finally:
        store.close()
    console.print(f"[green]Reset {count} records in '{namespace}'[/green]")


# =============================================================================
# Simulation
# =============================================================================


class SyntheticMode(QuizMode):
    """Groups of numbered items with a simulated learner answering them."""

    namespace = "simulation"

    def __init__(self, groups: int, items_per_group: int, rng: random.Random, baseline: float):
        self.groups = groups
        self.items_per_group = items_per_group
        self.enabled_groups: set[int] = {0}
        self.rng = rng
        self.baseline = baseline
        self._speed: dict[str, float] = {}

    def items_for_group(self, index: int) -> list[str]:
        return [f"g{index}-{n}" for n in range(self.items_per_group)]

    def get_enabled_items(self) -> list[str]:
        return [i for g in sorted(self.enabled_groups) for i in self.items_for_group(g)]

    def on_present(self, item_id: str) -> Any:
        return item_id.upper()

    def check_answer(self, item_id: str, user_input: str, question: Any) -> CheckAnswerResult:
        return CheckAnswerResult(correct=user_input == question, correct_answer=question)

    def respond(self, item_id: str, accuracy: float) -> tuple[float, bool]:
        """Simulated response time and correctness; the learner speeds up with practice."""
        speed = self._speed.get(item_id, self.baseline * (2 + self.rng.random() * 4))
        self._speed[item_id] = max(self.baseline * 1.1, speed * 0.85)
        jitter = 0.8 + self.rng.random() * 0.4
        return speed * jitter, self.rng.random() < accuracy


@app.command()
def simulate(
    groups: int = typer.Option(4, "--groups", "-g", help="Number of item groups"),
    items: int = typer.Option(6, "--items", "-i", help="Items per group"),
    rounds: int = typer.Option(3, "--rounds", "-r", help="Rounds to play"),
    accuracy: float = typer.Option(0.9, "--accuracy", "-a", help="Chance of a correct answer"),
    baseline_ms: float = typer.Option(1000, "--baseline", "-b", help="Simulated motor baseline (ms)"),
    seed: int = typer.Option(7, "--seed", "-s", help="Random seed"),
) -> None:
    """Play quiz rounds with a synthetic learner on a simulated clock."""
    rng = random.Random(seed)
    clock = ManualClock()
    mode = SyntheticMode(groups, items, rng, baseline_ms)
    learner = LearnerModel(mode.namespace, MemoryStorage(), rng=rng.random, now=clock.now)
    learner.apply_baseline(baseline_ms)
    engine = QuizEngine(mode, learner=learner, clock=clock, rng=rng.random)

    for round_no in range(1, rounds + 1):
        if round_no == 1:
            engine.start()
        else:
            engine.continue_quiz()

        while engine.state.phase == EnginePhase.ACTIVE:
            item_id = engine.state.current_item_id
            elapsed, correct = mode.respond(item_id, accuracy)
            clock.advance(elapsed)
            if engine.state.phase != EnginePhase.ACTIVE:
                break
            engine.submit_answer(engine.state.current_question if correct else "?")
            clock.advance(AUTO_ADVANCE_MS)

        label = ", ".join(f"group {g + 1}" for g in sorted(mode.enabled_groups))
        summary = build_round_summary(engine.state, label)
        recommendation = compute_recommendations(
            engine.selector,
            range(groups),
            mode.items_for_group,
            expansion_threshold=get_settings().expansion_threshold,
            enabled_groups=mode.enabled_groups,
            sort_unstarted=lambda a, b: a.string - b.string,
        )
        advice = build_recommendation_text(recommendation, lambda g: f"group {g + 1}")

        body = "\n".join(
            line for line in (
                summary.context_line,
                summary.accuracy_line,
                summary.median_line,
                summary.count_text,
                f"[cyan]{advice}[/cyan]" if advice else "",
            ) if line
        )
        console.print(Panel(body, title=f"Round {round_no}", title_align="left", border_style="green"))

        if recommendation.enabled is not None:
            mode.enabled_groups = set(recommendation.enabled)

    engine.stop()
    console.print(f"[dim]{engine.state.feedback_text}[/dim]")


# =============================================================================
# Entry Point
# =============================================================================

def main() -> None:
    """CLI entry point."""
    settings = get_settings()

    # Configure logging
    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.log_level,
        format="<level>{message}</level>",
    )
    if settings.log_file:
        logger.add(settings.log_file, level="DEBUG", rotation="1 MB")

    app()


if __name__ == "__main__":
    main()
