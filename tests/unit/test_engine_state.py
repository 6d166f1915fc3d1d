"""Unit tests for the pure engine state transitions and key routing."""

from dataclasses import replace

import pytest

from src.study.engine_state import (
    IDLE_MESSAGE_AUTOMATIC,
    IDLE_MESSAGE_READY,
    IDLE_MESSAGE_REVIEW,
    EnginePhase,
    KeyAction,
    engine_begin_calibration_trials,
    engine_calibration_results,
    engine_continue_round,
    engine_next_question,
    engine_round_complete,
    engine_route_key,
    engine_start,
    engine_start_calibration,
    engine_submit_answer,
    engine_update_idle_message,
    initial_engine_state,
)


@pytest.fixture
def active():
    return engine_next_question(engine_start(initial_engine_state(), now=0), "C", now=10, question="q")


class TestQuizTransitions:
    def test_initial_is_idle(self):
        state = initial_engine_state()
        assert state.phase == EnginePhase.IDLE
        assert not state.quiz_active

    def test_start_opens_first_round(self):
        state = engine_start(initial_engine_state(), now=5)
        assert state.phase == EnginePhase.ACTIVE
        assert state.round_number == 1
        assert state.quiz_start_time == 5

    def test_next_question_stamps_start(self, active):
        assert active.current_item_id == "C"
        assert active.current_question == "q"
        assert active.question_start_time == 10
        assert active.question_count == 1
        assert active.answers_enabled

    def test_submit_updates_tallies(self, active):
        state = engine_submit_answer(active, False, "C", 1234)
        assert state.answered
        assert (state.round_answered, state.round_correct) == (1, 0)
        assert state.round_response_times == [1234]
        assert state.feedback_text == "Incorrect: C"
        assert state.time_display_text == "1.2s"
        assert not state.answers_enabled

    def test_submit_does_not_alias_previous_times(self, active):
        first = engine_submit_answer(active, True, "C", 1000)
        engine_submit_answer(first, True, "C", 2000)
        assert first.round_response_times == [1000]

    def test_continue_resets_round(self, active):
        done = engine_round_complete(engine_submit_answer(active, True, "C", 900), duration_ms=60_000)
        assert done.phase == EnginePhase.ROUND_COMPLETE
        nxt = engine_continue_round(done)
        assert nxt.phase == EnginePhase.ACTIVE
        assert nxt.round_number == 2
        assert nxt.round_answered == 0
        assert nxt.round_response_times == []
        assert not nxt.round_timer_expired
        # Quiz-level count carries over.
        assert nxt.question_count == 1


class TestIdleMessage:
    def test_messages(self):
        idle = initial_engine_state()
        assert engine_update_idle_message(idle, False, False).feedback_text == IDLE_MESSAGE_READY
        assert engine_update_idle_message(idle, True, False).feedback_text == IDLE_MESSAGE_AUTOMATIC
        assert engine_update_idle_message(idle, True, True).feedback_text == IDLE_MESSAGE_REVIEW

    def test_ignored_outside_idle(self, active):
        assert engine_update_idle_message(active, True, False) is active


class TestCalibrationTransitions:
    def test_flow(self):
        intro = engine_start_calibration(initial_engine_state())
        assert intro.phase == EnginePhase.CALIBRATION_INTRO
        running = engine_begin_calibration_trials(intro)
        assert running.phase == EnginePhase.CALIBRATING
        results = engine_calibration_results(running, 420)
        assert results.phase == EnginePhase.CALIBRATION_RESULTS
        assert results.calibration_baseline == 420

    def test_only_from_idle(self, active):
        assert engine_start_calibration(active) is active

    def test_results_only_while_calibrating(self):
        idle = initial_engine_state()
        assert engine_calibration_results(idle, 420) is idle


class TestRouteKey:
    def test_escape(self, active):
        assert engine_route_key(initial_engine_state(), "Escape") == KeyAction.IGNORE
        assert engine_route_key(active, "Escape") == KeyAction.STOP
        done = replace(active, phase=EnginePhase.ROUND_COMPLETE)
        assert engine_route_key(done, "Escape") == KeyAction.STOP
        calibrating = replace(active, phase=EnginePhase.CALIBRATING)
        assert engine_route_key(calibrating, "Escape") == KeyAction.STOP

    def test_space_only_after_answer(self, active):
        answered = replace(active, answered=True)
        assert engine_route_key(answered, " ") == KeyAction.NEXT
        assert engine_route_key(active, " ") == KeyAction.DELEGATE

    def test_other_keys_delegated_while_unanswered(self, active):
        assert engine_route_key(active, "c") == KeyAction.DELEGATE
        assert engine_route_key(replace(active, answered=True), "c") == KeyAction.IGNORE

    def test_continue_from_round_complete(self, active):
        done = replace(active, phase=EnginePhase.ROUND_COMPLETE)
        assert engine_route_key(done, "Enter") == KeyAction.CONTINUE
        assert engine_route_key(done, "c") == KeyAction.IGNORE

    def test_calibration_keys(self):
        calibrating = replace(initial_engine_state(), phase=EnginePhase.CALIBRATING)
        assert engine_route_key(calibrating, "c") == KeyAction.DELEGATE
        intro = replace(initial_engine_state(), phase=EnginePhase.CALIBRATION_INTRO)
        assert engine_route_key(intro, "c") == KeyAction.IGNORE

    def test_idle_ignores_everything(self):
        assert engine_route_key(initial_engine_state(), "c") == KeyAction.IGNORE
        assert engine_route_key(initial_engine_state(), "Enter") == KeyAction.IGNORE
