"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import pytest
import sys
from pathlib import Path
from typing import Any

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.adaptive.learner import LearnerModel  # noqa: E402
from src.adaptive.selector import AdaptiveSelector  # noqa: E402
from src.adaptive.storage import MemoryStorage  # noqa: E402
from src.study.quiz_engine import CheckAnswerResult, QuizEngine, QuizMode  # noqa: E402
from src.study.timers import ManualClock  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


class SequenceRng:
    """Deterministic rng returning a fixed cycle of values."""

    def __init__(self, *values: float):
        self.values = list(values) or [0.0]
        self.calls = 0

    def __call__(self) -> float:
        value = self.values[self.calls % len(self.values)]
        self.calls += 1
        return value


class FakeMode(QuizMode):
    """Quiz mode whose correct answer is the item id itself."""

    namespace = "test"

    def __init__(self, items: list[str] | None = None):
        self.items = list(items) if items is not None else ["C", "D", "E"]
        self.presented: list[str] = []
        self.delegated: list[str] = []
        self.started = 0
        self.stopped = 0

    def get_enabled_items(self) -> list[str]:
        return list(self.items)

    def on_present(self, item_id: str) -> Any:
        self.presented.append(item_id)
        return {"prompt": f"Name {item_id}", "answer": item_id}

    def check_answer(self, item_id: str, user_input: str, question: Any) -> CheckAnswerResult:
        return CheckAnswerResult(correct=user_input == question["answer"], correct_answer=question["answer"])

    def handle_key(self, key: str, engine: QuizEngine) -> bool:
        self.delegated.append(key)
        return True

    def on_start(self) -> None:
        self.started += 1

    def on_stop(self) -> None:
        self.stopped += 1


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def memory_storage():
    return MemoryStorage()


@pytest.fixture
def manual_clock():
    """Simulated clock starting at a fixed wall-clock instant."""
    return ManualClock(start=1_700_000_000_000)


@pytest.fixture
def rng():
    return SequenceRng(0.0)


@pytest.fixture
def selector(memory_storage, manual_clock, rng):
    return AdaptiveSelector(memory_storage, rng=rng, now=manual_clock.now)


@pytest.fixture
def fake_mode():
    return FakeMode()


@pytest.fixture
def engine(fake_mode, memory_storage, manual_clock, rng):
    learner = LearnerModel(fake_mode.namespace, memory_storage, rng=rng, now=manual_clock.now)
    return QuizEngine(fake_mode, learner=learner, clock=manual_clock, rng=rng)


@pytest.fixture
def make_engine(memory_storage, manual_clock, rng):
    """Build an engine over a FakeMode with the given items."""

    def _make(items: list[str] | None = None) -> QuizEngine:
        mode = FakeMode(items)
        learner = LearnerModel(mode.namespace, memory_storage, rng=rng, now=manual_clock.now)
        return QuizEngine(mode, learner=learner, clock=manual_clock, rng=rng)

    return _make
