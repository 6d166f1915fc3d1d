"""Display strings for the session header and the round-complete screen."""

from __future__ import annotations

from dataclasses import dataclass

from src.adaptive.mastery import compute_median
from src.study.engine_state import EngineState


@dataclass
class RoundSummary:
    context_line: str  # "all items · 4 / 12 fluent"
    accuracy_line: str  # "8 / 10 correct · 42s"
    median_line: str  # "1.2s median response time", or ""
    count_text: str  # "5 answers"


def build_round_summary(state: EngineState, practicing_label: str) -> RoundSummary:
    """
    Summarize the current round.

    Args:
        state: Engine state (round tallies and progress counts)
        practicing_label: What is being practiced, e.g. "strings 1-3"

    Returns:
        RoundSummary
    """
    context = f"{practicing_label} · {state.mastered_count} / {state.total_enabled_count} fluent"

    duration = round((state.round_duration_ms or 0) / 1000)
    accuracy = f"{state.round_correct} / {state.round_answered} correct · {duration}s"

    median = compute_median(state.round_response_times)
    median_line = f"{median / 1000:.1f}s median response time" if median is not None else ""

    count = state.round_answered
    count_text = f"{count} answer" if count == 1 else f"{count} answers"

    return RoundSummary(
        context_line=context,
        accuracy_line=accuracy,
        median_line=median_line,
        count_text=count_text,
    )
