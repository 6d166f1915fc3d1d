"""
Quiz Engine - the session state machine with its timers.

Wraps the pure transitions in engine_state.py with everything that has
side effects: the 60s round countdown, the auto-advance timer, adaptive
selection through the learner model, key routing, and the calibration
sub-flow.

Modes plug in through QuizMode: they list enabled items, build a question
for an item, and judge answers. The engine never touches ItemStats itself;
every answer goes through AdaptiveSelector.record_response().
"""

from __future__ import annotations

import math
import random
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from loguru import logger

from src.adaptive.config import AdaptiveConfig
from src.adaptive.learner import LearnerModel
from src.adaptive.selector import AdaptiveSelector
from src.study.calibration import (
    BUTTON_PROVIDER,
    CalibrationRun,
    CalibrationTarget,
    SpeedCheckProvider,
)
from src.study.engine_state import (
    EnginePhase,
    EngineState,
    KeyAction,
    engine_begin_calibration_trials,
    engine_calibration_results,
    engine_continue_round,
    engine_next_question,
    engine_round_complete,
    engine_round_timer_expired,
    engine_route_key,
    engine_start,
    engine_start_calibration,
    engine_submit_answer,
    engine_update_idle_message,
    engine_update_mastery_after_answer,
    engine_update_progress,
    initial_engine_state,
)
from src.study.timers import AsyncioClock, Clock, TimerHandle

ROUND_DURATION_MS = 60_000
ROUND_TICK_MS = 200
ROUND_WARNING_MS = 10_000
AUTO_ADVANCE_MS = 1000
AUTO_ADVANCE_EXPIRED_MS = 600

CHROMATIC_NOTES = ("C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B")


def format_round_time(ms: float) -> str:
    """Render remaining round time as m:ss, rounding up to the second."""
    total_sec = max(0, math.ceil(ms / 1000))
    return f"{total_sec // 60}:{total_sec % 60:02d}"


@dataclass
class CountdownState:
    """Round-timer display state."""

    pct: float = 100.0
    time: str = ""
    warning: bool = False
    last_question: bool = False


@dataclass
class CheckAnswerResult:
    correct: bool
    correct_answer: str


# =============================================================================
# Mode Contract
# =============================================================================


class QuizMode(ABC):
    """
    A drill mode: what to ask and how to judge it.

    Subclasses must list enabled items and check answers; everything else
    has a do-nothing default.
    """

    namespace: str = "default"
    label: str = "all items"

    @abstractmethod
    def get_enabled_items(self) -> list[str]:
        """Item ids in the current practice scope."""

    @abstractmethod
    def check_answer(self, item_id: str, user_input: str, question: Any) -> CheckAnswerResult:
        """Judge an answer to the question built by on_present()."""

    def on_present(self, item_id: str) -> Any:
        """Build the question for an item; the engine keeps it as current_question."""
        return None

    def get_expected_response_count(self, item_id: str) -> int:
        return 1

    def handle_key(self, key: str, engine: QuizEngine) -> bool:
        """Keys delegated while a question is open. Return True if consumed."""
        return False

    def get_calibration_targets(self) -> list[CalibrationTarget]:
        return [CalibrationTarget.from_note(note) for note in CHROMATIC_NOTES]

    def on_start(self) -> None:
        pass

    def on_stop(self) -> None:
        pass

    def on_answer(self, item_id: str, result: CheckAnswerResult) -> None:
        pass


# =============================================================================
# Engine
# =============================================================================


class QuizEngine:
    """
    Drives one mode's quiz sessions.

    Usage:
        engine = QuizEngine(mode, clock=ManualClock())
        engine.start()
        engine.submit_answer("C#")
        engine.clock.advance(1000)   # auto-advance to the next question

    Timer callbacks capture the round and question they were scheduled for
    and do nothing if the session has moved on.
    """

    def __init__(
        self,
        mode: QuizMode,
        learner: LearnerModel | None = None,
        clock: Clock | None = None,
        provider: SpeedCheckProvider = BUTTON_PROVIDER,
        rng: Callable[[], float] = random.random,
        on_change: Callable[[EngineState], None] | None = None,
    ):
        self.mode = mode
        self.clock = clock or AsyncioClock()
        self.provider = provider
        self.rng = rng
        self.on_change = on_change
        self.learner = learner or LearnerModel(
            mode.namespace,
            provider=provider.key,
            rng=rng,
            now=self.clock.now,
            get_expected_response_count=mode.get_expected_response_count,
        )

        self.state = initial_engine_state()
        self.countdown = CountdownState()
        self.calibration: CalibrationRun | None = None

        self._round_timer: TimerHandle | None = None
        self._round_start: float | None = None
        self._auto_advance: TimerHandle | None = None
        # Bumped whenever a round starts or the session stops; stale timer
        # callbacks compare against it.
        self._round_token = 0

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def selector(self) -> AdaptiveSelector:
        return self.learner.selector

    @property
    def baseline(self) -> float | None:
        return self.learner.motor_baseline

    def _set_state(self, state: EngineState) -> None:
        self.state = state
        if self.on_change:
            self.on_change(state)

    def compute_progress(self) -> tuple[int, int]:
        """(mastered_count, total_enabled_count) over the enabled items."""
        items = self.mode.get_enabled_items()
        threshold = self.selector.get_config().automaticity_threshold
        mastered = 0
        for item_id in items:
            auto = self.selector.get_automaticity(item_id)
            if auto is not None and auto > threshold:
                mastered += 1
        return mastered, len(items)

    def _with_progress(self, state: EngineState) -> EngineState:
        mastered, total = self.compute_progress()
        return engine_update_progress(state, mastered, total)

    # =========================================================================
    # Round Timer
    # =========================================================================

    def _cancel_auto_advance(self) -> None:
        if self._auto_advance is not None:
            self._auto_advance.cancel()
            self._auto_advance = None

    def _stop_round_timer(self) -> None:
        if self._round_timer is not None:
            self._round_timer.cancel()
            self._round_timer = None
        self._round_start = None
        self.countdown = CountdownState()

    def _start_round_timer(self) -> None:
        if self._round_timer is not None:
            self._round_timer.cancel()
        self._round_token += 1
        token = self._round_token
        self._round_start = self.clock.now()
        self.countdown = CountdownState(time=format_round_time(ROUND_DURATION_MS))
        self._round_timer = self.clock.call_every(ROUND_TICK_MS, lambda: self._tick(token))

    def _tick(self, token: int) -> None:
        if token != self._round_token or self._round_start is None:
            return

        remaining = ROUND_DURATION_MS - (self.clock.now() - self._round_start)
        self.countdown.pct = max(0.0, remaining / ROUND_DURATION_MS * 100)
        self.countdown.time = format_round_time(remaining)
        self.countdown.warning = 0 < remaining <= ROUND_WARNING_MS

        if remaining > 0:
            return

        if self._round_timer is not None:
            self._round_timer.cancel()
            self._round_timer = None
        self.countdown.pct = 0.0
        self.countdown.time = "0:00"
        self.countdown.warning = False

        if self.state.phase != EnginePhase.ACTIVE:
            return
        self._set_state(engine_round_timer_expired(self.state))
        if self.state.answered:
            self._complete_round()
        else:
            self.countdown.last_question = True

    def _complete_round(self) -> None:
        duration = self.clock.now() - self._round_start if self._round_start is not None else 0
        self._cancel_auto_advance()
        self._stop_round_timer()
        self._set_state(engine_round_complete(self.state, duration))
        logger.info(
            f"Round {self.state.round_number} complete: "
            f"{self.state.round_correct}/{self.state.round_answered} correct"
        )

    # =========================================================================
    # Core Actions
    # =========================================================================

    def start(self) -> bool:
        """
        Start a quiz from idle.

        Returns:
            False (and nothing changes) outside idle or with no enabled items
        """
        if self.state.phase != EnginePhase.IDLE:
            return False
        items = self.mode.get_enabled_items()
        if not items:
            logger.debug("start() ignored: no enabled items")
            return False

        self.selector.storage.preload(items)
        self._set_state(self._with_progress(engine_start(self.state, self.clock.now())))
        self.mode.on_start()
        self._start_round_timer()
        logger.info(f"Quiz started in {self.mode.namespace} with {len(items)} items")
        self.next_question()
        return True

    def next_question(self) -> None:
        """Present the next item, or close the round if its timer ran out."""
        self._cancel_auto_advance()
        if self.state.phase != EnginePhase.ACTIVE:
            return
        if self.state.round_timer_expired:
            self._complete_round()
            return

        items = self.mode.get_enabled_items()
        if not items:
            return

        item_id = self.selector.select_next(items)
        question = self.mode.on_present(item_id)
        self._set_state(engine_next_question(self.state, item_id, self.clock.now(), question))
        logger.debug(f"Presenting {item_id} (question {self.state.question_count})")

    def submit_answer(self, user_input: str) -> CheckAnswerResult | None:
        """
        Judge and record an answer to the open question.

        Returns:
            The check result, or None when no question is open
        """
        state = self.state
        if state.phase != EnginePhase.ACTIVE or state.answered or state.current_item_id is None:
            return None

        item_id = state.current_item_id
        response_time = self.clock.now() - (state.question_start_time or self.clock.now())
        result = self.mode.check_answer(item_id, user_input, state.current_question)
        self.selector.record_response(item_id, response_time, result.correct)

        items = self.mode.get_enabled_items()
        nxt = engine_submit_answer(state, result.correct, result.correct_answer, response_time)
        nxt = engine_update_mastery_after_answer(nxt, self.selector.check_all_automatic(items))
        self._set_state(self._with_progress(nxt))
        self.mode.on_answer(item_id, result)

        round_token = self._round_token
        question_no = self.state.question_count
        if self.state.round_timer_expired:
            self._auto_advance = self.clock.call_later(
                AUTO_ADVANCE_EXPIRED_MS, lambda: self._auto_complete(round_token)
            )
        else:
            self._auto_advance = self.clock.call_later(
                AUTO_ADVANCE_MS, lambda: self._auto_next(round_token, question_no)
            )
        return result

    def _auto_next(self, round_token: int, question_no: int) -> None:
        self._auto_advance = None
        state = self.state
        if round_token != self._round_token or question_no != state.question_count:
            return
        if state.phase == EnginePhase.ACTIVE and state.answered:
            self.next_question()

    def _auto_complete(self, round_token: int) -> None:
        self._auto_advance = None
        if round_token == self._round_token and self.state.phase == EnginePhase.ACTIVE:
            self._complete_round()

    def continue_quiz(self) -> None:
        """Start the next round from round-complete."""
        if self.state.phase != EnginePhase.ROUND_COMPLETE:
            return
        self._set_state(self._with_progress(engine_continue_round(self.state)))
        self._start_round_timer()
        self.next_question()

    def stop(self) -> None:
        """Cancel every timer and return to idle. Safe to call repeatedly."""
        was_running = self.state.phase != EnginePhase.IDLE
        self._cancel_auto_advance()
        self._stop_round_timer()
        self._round_token += 1
        if self.calibration is not None:
            self.calibration.cancel()
            self.calibration = None
        if was_running and not self.state.phase.is_calibration:
            self.mode.on_stop()
            logger.info(f"Quiz stopped after {self.state.question_count} questions")

        self._set_state(initial_engine_state())
        self.update_idle_message()

    def update_idle_message(self) -> None:
        if self.state.phase != EnginePhase.IDLE:
            return
        items = self.mode.get_enabled_items()
        self._set_state(
            engine_update_idle_message(
                self.state,
                self.selector.check_all_automatic(items),
                self.selector.check_needs_review(items),
            )
        )

    def handle_key(self, key: str) -> bool:
        """
        Route a key press.

        Returns:
            True if the key did something
        """
        action = engine_route_key(self.state, key)
        if action == KeyAction.STOP:
            if self.state.phase.is_calibration:
                self.cancel_calibration()
            else:
                self.stop()
            return True
        if action == KeyAction.NEXT:
            self.next_question()
            return True
        if action == KeyAction.CONTINUE:
            self.continue_quiz()
            return True
        if action == KeyAction.DELEGATE:
            if self.state.phase == EnginePhase.CALIBRATING and self.calibration is not None:
                return self.calibration.handle_key(key)
            return self.mode.handle_key(key, self)
        return False

    # =========================================================================
    # Calibration
    # =========================================================================

    def start_calibration(self) -> bool:
        """Show the speed-check intro. Only from idle."""
        if self.state.phase != EnginePhase.IDLE:
            return False
        self._set_state(engine_start_calibration(self.state))
        return True

    def begin_calibration_trials(self, targets: Sequence[CalibrationTarget] | None = None) -> bool:
        """
        Leave the intro and start the trial loop.

        Needs at least two targets to alternate between; with fewer the
        engine goes back to idle without measuring.
        """
        if self.state.phase != EnginePhase.CALIBRATION_INTRO:
            return False
        targets = list(targets) if targets is not None else self.mode.get_calibration_targets()
        if len(targets) < 2:
            logger.warning(f"Calibration needs at least 2 targets, got {len(targets)}")
            self.stop()
            return False

        self.calibration = CalibrationRun(
            targets=targets,
            clock=self.clock,
            on_done=self._calibration_done,
            rng=self.rng,
        )
        self._set_state(engine_begin_calibration_trials(self.state))
        self.calibration.begin()
        return True

    def calibration_respond(self, target_id: str) -> bool:
        """Pointer hit on a calibration target."""
        if self.state.phase != EnginePhase.CALIBRATING or self.calibration is None:
            return False
        return self.calibration.respond(target_id)

    def _calibration_done(self, baseline: int) -> None:
        self._set_state(engine_calibration_results(self.state, baseline))

    def complete_calibration(self, baseline: float | None = None) -> AdaptiveConfig | None:
        """
        Apply the measured baseline and return to idle.

        Args:
            baseline: Override for the measured value

        Returns:
            The rescaled config, or None if there was nothing to apply
        """
        if self.state.phase != EnginePhase.CALIBRATION_RESULTS:
            return None
        value = baseline if baseline is not None else self.state.calibration_baseline
        if value is None:
            return None

        config = self.learner.apply_baseline(value)
        self.calibration = None
        self._set_state(initial_engine_state())
        self.update_idle_message()
        return config

    def cancel_calibration(self) -> None:
        """Abandon calibration; nothing measured so far is applied."""
        if not self.state.phase.is_calibration:
            return
        logger.warning("Calibration cancelled; keeping the previous baseline")
        self.stop()
