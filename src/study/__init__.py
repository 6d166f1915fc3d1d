"""
Quiz Session Module.

Runs timed quiz rounds over the adaptive scheduler:
- Clocks and timers (asyncio and simulated)
- Pure engine state transitions and key routing
- QuizEngine: round timer, auto-advance, calibration sub-flow
- Speed-check calibration of the motor baseline
- Round summary text
"""

from src.study.calibration import (
    BUTTON_PROVIDER,
    CalibrationRun,
    CalibrationTarget,
    SpeedCheckProvider,
    get_calibration_thresholds,
    pick_calibration_target,
)
from src.study.engine_state import EnginePhase, EngineState, KeyAction, engine_route_key
from src.study.quiz_engine import (
    CheckAnswerResult,
    CountdownState,
    QuizEngine,
    QuizMode,
    format_round_time,
)
from src.study.round_summary import RoundSummary, build_round_summary
from src.study.timers import AsyncioClock, Clock, ManualClock, TimerHandle

__all__ = [
    "QuizEngine",
    "QuizMode",
    "CheckAnswerResult",
    "CountdownState",
    "format_round_time",
    "EnginePhase",
    "EngineState",
    "KeyAction",
    "engine_route_key",
    "BUTTON_PROVIDER",
    "CalibrationRun",
    "CalibrationTarget",
    "SpeedCheckProvider",
    "get_calibration_thresholds",
    "pick_calibration_target",
    "RoundSummary",
    "build_round_summary",
    "AsyncioClock",
    "Clock",
    "ManualClock",
    "TimerHandle",
]
