"""
Calibration - measure a learner's motor baseline.

A speed check runs TOTAL_TRIALS reaction trials: one target is highlighted,
the learner hits it, the time is recorded. Warm-up trials are measured but
dropped, and the median of the rest becomes the baseline that
derive_scaled_config() uses to stretch or shrink every speed threshold.
"""

from __future__ import annotations

import math
import random
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from loguru import logger

from src.adaptive.mastery import compute_median
from src.study.timers import Clock, TimerHandle

TOTAL_TRIALS = 10
WARMUP_TRIALS = 2
PAUSE_MS = 400
FIRST_TRIAL_DELAY_MS = 300
FALLBACK_BASELINE_MS = 500
ACCIDENTAL_BIAS = 0.35


# =============================================================================
# Providers & Targets
# =============================================================================


@dataclass(frozen=True)
class SpeedCheckProvider:
    """One way of measuring motor speed (storage key + instructions)."""

    key: str
    intro_text: str
    trial_text: str


BUTTON_PROVIDER = SpeedCheckProvider(
    key="button",
    intro_text=(
        "Tap the highlighted button as quickly as you can. "
        "This measures your base response time so the app can set "
        "accurate timing thresholds."
    ),
    trial_text="Tap the green button!",
)


@dataclass(frozen=True)
class CalibrationTarget:
    """A button that can be highlighted during a trial."""

    id: str
    key: str
    accidental: bool = False

    @classmethod
    def from_note(cls, note: str) -> CalibrationTarget:
        """Target for a note button. Its letter key matches both C and C#."""
        return cls(id=note, key=note[0].upper(), accidental="#" in note or "b" in note[1:])


@dataclass(frozen=True)
class CalibrationThreshold:
    label: str
    max_ms: int | None
    meaning: str


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def get_calibration_thresholds(baseline: float) -> list[CalibrationThreshold]:
    """Human-readable speed bands for a baseline (multiples 1.5/3/4.5/6)."""
    return [
        CalibrationThreshold("Automatic", _round_half_up(baseline * 1.5), "Fully memorized, instant recall"),
        CalibrationThreshold("Good", _round_half_up(baseline * 3.0), "Solid recall, minor hesitation"),
        CalibrationThreshold("Developing", _round_half_up(baseline * 4.5), "Working on it, needs practice"),
        CalibrationThreshold("Slow", _round_half_up(baseline * 6.0), "Significant hesitation"),
        CalibrationThreshold("Very slow", None, "Not yet learned"),
    ]


def pick_calibration_target(
    targets: Sequence[CalibrationTarget],
    previous: CalibrationTarget | None = None,
    rng: Callable[[], float] = random.random,
) -> CalibrationTarget:
    """
    Pick the next target.

    Accidentals are chosen ACCIDENTAL_BIAS of the time when any exist, and the
    previous target is never repeated unless it is the only target.
    """
    accidentals = [t for t in targets if t.accidental]
    naturals = [t for t in targets if not t.accidental]

    if accidentals and rng() < ACCIDENTAL_BIAS:
        pool = accidentals
    else:
        pool = naturals or list(targets)

    choices = [t for t in pool if t != previous] or [t for t in targets if t != previous] or list(targets)
    return choices[math.floor(rng() * len(choices))]


def calibration_baseline(trial_times: Sequence[float]) -> int:
    """Median of the post-warm-up trials, rounded to whole ms."""
    median = compute_median(list(trial_times[WARMUP_TRIALS:]))
    return _round_half_up(median if median is not None else FALLBACK_BASELINE_MS)


# =============================================================================
# Trial Loop
# =============================================================================


@dataclass
class CalibrationRun:
    """
    One pass through the trial loop.

    begin() schedules the first trial; each matching response records a time
    and schedules the next after PAUSE_MS. After the last trial the baseline
    is computed and on_done is called with it. cancel() stops everything and
    on_done is never called.
    """

    targets: Sequence[CalibrationTarget]
    clock: Clock
    on_done: Callable[[int], None]
    rng: Callable[[], float] = random.random
    on_progress: Callable[[CalibrationRun], None] | None = None

    trial_index: int = 0
    times: list[float] = field(default_factory=list)
    current_target: CalibrationTarget | None = None
    baseline: int | None = None
    active: bool = False
    _started_at: float = 0.0
    _timer: TimerHandle | None = None

    @property
    def progress_text(self) -> str:
        return f"{self.trial_index + 1} / {TOTAL_TRIALS}"

    def begin(self) -> None:
        self.active = True
        self.trial_index = 0
        self.times = []
        self.current_target = None
        self.baseline = None
        self._timer = self.clock.call_later(FIRST_TRIAL_DELAY_MS, self._present)

    def _present(self) -> None:
        self._timer = None
        if not self.active:
            return
        self.current_target = pick_calibration_target(self.targets, self.current_target, self.rng)
        self._started_at = self.clock.now()
        if self.on_progress:
            self.on_progress(self)

    def respond(self, target_id: str) -> bool:
        """
        Register a hit on a target.

        Returns:
            True if it matched the highlighted target and was recorded
        """
        target = self.current_target
        if not self.active or target is None or self._timer is not None:
            return False
        if target_id != target.id:
            return False

        self.times.append(self.clock.now() - self._started_at)
        self.trial_index += 1

        if self.trial_index >= TOTAL_TRIALS:
            self.active = False
            self.current_target = None
            self.baseline = calibration_baseline(self.times)
            logger.info(f"Calibration complete: baseline {self.baseline}ms from {len(self.times)} trials")
            self.on_done(self.baseline)
        else:
            self._timer = self.clock.call_later(PAUSE_MS, self._present)
        return True

    def handle_key(self, key: str) -> bool:
        """Keyboard input: the target's letter counts as a hit."""
        target = self.current_target
        if target is None or not key:
            return False
        if key.upper() != target.key.upper():
            return False
        return self.respond(target.id)

    def cancel(self) -> None:
        self.active = False
        self.current_target = None
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
