"""
Engine State - pure transitions for the quiz session state machine.

Every function takes an EngineState and returns a new one; none of them
touch timers, storage or the selector. QuizEngine (quiz_engine.py) owns the
side effects and calls these to move between phases:

    idle -> active <-> (auto-advance) -> active | round-complete
    round-complete -> active (continue)
    idle -> calibration-intro -> calibrating -> calibration-results -> idle
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any


class EnginePhase(str, Enum):
    """Session phases."""

    IDLE = "idle"
    ACTIVE = "active"
    ROUND_COMPLETE = "round-complete"
    CALIBRATION_INTRO = "calibration-intro"
    CALIBRATING = "calibrating"
    CALIBRATION_RESULTS = "calibration-results"

    @property
    def is_calibration(self) -> bool:
        return self in (
            EnginePhase.CALIBRATION_INTRO,
            EnginePhase.CALIBRATING,
            EnginePhase.CALIBRATION_RESULTS,
        )


class KeyAction(str, Enum):
    """What a key press means in the current phase."""

    STOP = "stop"
    NEXT = "next"
    CONTINUE = "continue"
    DELEGATE = "delegate"
    IGNORE = "ignore"


STOP_KEY = "Escape"
NEXT_KEY = " "
CONTINUE_KEY = "Enter"

IDLE_MESSAGE_READY = "Ready to practice"
IDLE_MESSAGE_REVIEW = "Some items are fading. Time to review!"
IDLE_MESSAGE_AUTOMATIC = "Everything here is automatic. Try adding more."
MASTERY_MESSAGE = "Looks like you've got this!"
NEXT_HINT = "Space for next"


@dataclass
class EngineState:
    """Snapshot of one session. Owned by QuizEngine, replaced on every transition."""

    phase: EnginePhase = EnginePhase.IDLE
    current_item_id: str | None = None
    current_question: Any = None
    answered: bool = False
    question_start_time: float | None = None

    question_count: int = 0
    quiz_start_time: float | None = None

    # Round
    round_number: int = 0
    round_answered: int = 0
    round_correct: int = 0
    round_timer_expired: bool = False
    round_response_times: list[float] = field(default_factory=list)
    round_duration_ms: float = 0

    # Progress
    mastered_count: int = 0
    total_enabled_count: int = 0

    # Display
    feedback_text: str = ""
    feedback_class: str = ""
    time_display_text: str = ""
    hint_text: str = ""
    mastery_text: str = ""
    show_mastery: bool = False

    calibration_baseline: int | None = None

    quiz_active: bool = False
    answers_enabled: bool = False


def initial_engine_state() -> EngineState:
    return EngineState()


# =============================================================================
# Quiz Transitions
# =============================================================================


def _fresh_round(state: EngineState, round_number: int) -> EngineState:
    return replace(
        state,
        phase=EnginePhase.ACTIVE,
        current_item_id=None,
        current_question=None,
        answered=False,
        question_start_time=None,
        round_number=round_number,
        round_answered=0,
        round_correct=0,
        round_timer_expired=False,
        round_response_times=[],
        round_duration_ms=0,
        feedback_text="",
        feedback_class="",
        time_display_text="",
        hint_text="",
        quiz_active=True,
        answers_enabled=False,
    )


def engine_start(state: EngineState, now: float) -> EngineState:
    """Begin a quiz: first round, counters cleared."""
    started = _fresh_round(state, round_number=1)
    return replace(
        started,
        question_count=0,
        quiz_start_time=now,
        mastery_text="",
        show_mastery=False,
    )


def engine_next_question(
    state: EngineState,
    item_id: str,
    now: float,
    question: Any = None,
) -> EngineState:
    """Present a question and start its response clock."""
    return replace(
        state,
        current_item_id=item_id,
        current_question=question,
        answered=False,
        question_start_time=now,
        question_count=state.question_count + 1,
        feedback_text="",
        feedback_class="",
        time_display_text="",
        hint_text="",
        answers_enabled=True,
    )


def engine_submit_answer(
    state: EngineState,
    correct: bool,
    correct_answer: str,
    response_time: float,
) -> EngineState:
    """Record an answer in the round tallies and show feedback."""
    return replace(
        state,
        answered=True,
        round_answered=state.round_answered + 1,
        round_correct=state.round_correct + (1 if correct else 0),
        round_response_times=[*state.round_response_times, response_time],
        feedback_text="Correct!" if correct else f"Incorrect: {correct_answer}",
        feedback_class="correct" if correct else "incorrect",
        time_display_text=f"{response_time / 1000:.1f}s",
        hint_text=NEXT_HINT,
        answers_enabled=False,
    )


def engine_update_mastery_after_answer(state: EngineState, all_mastered: bool) -> EngineState:
    return replace(
        state,
        show_mastery=all_mastered,
        mastery_text=MASTERY_MESSAGE if all_mastered else "",
    )


def engine_update_progress(state: EngineState, mastered_count: int, total_enabled_count: int) -> EngineState:
    return replace(state, mastered_count=mastered_count, total_enabled_count=total_enabled_count)


def engine_round_timer_expired(state: EngineState) -> EngineState:
    return replace(state, round_timer_expired=True)


def engine_round_complete(state: EngineState, duration_ms: float) -> EngineState:
    return replace(
        state,
        phase=EnginePhase.ROUND_COMPLETE,
        round_duration_ms=duration_ms,
        answers_enabled=False,
        hint_text="",
    )


def engine_continue_round(state: EngineState) -> EngineState:
    """Start the next round of the same quiz."""
    return _fresh_round(state, round_number=state.round_number + 1)


def engine_update_idle_message(state: EngineState, all_automatic: bool, needs_review: bool) -> EngineState:
    """Pick the idle-screen message. No effect outside idle."""
    if state.phase != EnginePhase.IDLE:
        return state
    if needs_review:
        message = IDLE_MESSAGE_REVIEW
    elif all_automatic:
        message = IDLE_MESSAGE_AUTOMATIC
    else:
        message = IDLE_MESSAGE_READY
    return replace(state, feedback_text=message, feedback_class="")


# =============================================================================
# Calibration Transitions
# =============================================================================


def engine_start_calibration(state: EngineState) -> EngineState:
    if state.phase != EnginePhase.IDLE:
        return state
    return replace(state, phase=EnginePhase.CALIBRATION_INTRO, calibration_baseline=None, feedback_text="")


def engine_begin_calibration_trials(state: EngineState) -> EngineState:
    if state.phase != EnginePhase.CALIBRATION_INTRO:
        return state
    return replace(state, phase=EnginePhase.CALIBRATING)


def engine_calibration_results(state: EngineState, baseline: int) -> EngineState:
    if state.phase != EnginePhase.CALIBRATING:
        return state
    return replace(state, phase=EnginePhase.CALIBRATION_RESULTS, calibration_baseline=baseline)


# =============================================================================
# Key Routing
# =============================================================================


def engine_route_key(state: EngineState, key: str) -> KeyAction:
    """
    Decide what a key press does.

    - Escape stops from any phase except idle
    - Space advances once the current question is answered
    - Enter continues from round-complete
    - Other keys go to the mode while a question is open, or to the
      calibration run while trials are running
    """
    phase = state.phase
    if key == STOP_KEY:
        return KeyAction.IGNORE if phase == EnginePhase.IDLE else KeyAction.STOP

    if phase == EnginePhase.ACTIVE:
        if state.answered:
            return KeyAction.NEXT if key == NEXT_KEY else KeyAction.IGNORE
        return KeyAction.DELEGATE

    if phase == EnginePhase.ROUND_COMPLETE and key == CONTINUE_KEY:
        return KeyAction.CONTINUE

    if phase == EnginePhase.CALIBRATING:
        return KeyAction.DELEGATE

    return KeyAction.IGNORE
