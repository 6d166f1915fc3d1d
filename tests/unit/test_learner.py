"""Unit tests for LearnerModel baseline handling."""

from src.adaptive.config import DEFAULT_CONFIG
from src.adaptive.errors import StorageUnavailable
from src.adaptive.learner import LearnerModel
from src.adaptive.storage import MemoryStorage


class NoBaselineStore(MemoryStorage):
    def get_motor_baseline(self, provider):
        raise StorageUnavailable("get_motor_baseline", provider)

    def save_motor_baseline(self, provider, baseline):
        raise StorageUnavailable("save_motor_baseline", provider)


class TestStoredBaseline:
    def test_uncalibrated_uses_defaults(self):
        learner = LearnerModel("notes")
        assert not learner.is_calibrated
        assert learner.selector.get_config() == DEFAULT_CONFIG

    def test_stored_baseline_scales_config(self):
        storage = MemoryStorage()
        storage.save_motor_baseline("button", 500)
        learner = LearnerModel("notes", storage)

        assert learner.is_calibrated
        config = learner.selector.get_config()
        assert config.min_time == 500
        assert config.automaticity_target == 1500
        assert config.max_response_time == 4500

    def test_baseline_is_per_provider(self):
        storage = MemoryStorage()
        storage.save_motor_baseline("keyboard", 500)
        assert not LearnerModel("notes", storage).is_calibrated
        assert LearnerModel("notes", storage, provider="keyboard").is_calibrated

    def test_non_positive_baseline_ignored(self):
        storage = MemoryStorage()
        storage.save_motor_baseline("button", 0)
        assert not LearnerModel("notes", storage).is_calibrated

    def test_unreadable_baseline_ignored(self):
        assert not LearnerModel("notes", NoBaselineStore()).is_calibrated


class TestApplyBaseline:
    def test_persists_and_rescales(self):
        storage = MemoryStorage()
        learner = LearnerModel("notes", storage)
        config = learner.apply_baseline(800)

        assert storage.get_motor_baseline("button") == 800
        assert config.min_time == 800
        assert learner.selector.get_config() == config
        assert learner.selector.deadlines.adaptive_config == config

    def test_reapplying_scales_from_defaults(self):
        learner = LearnerModel("notes")
        learner.apply_baseline(500)
        config = learner.apply_baseline(2000)
        assert config.min_time == 2000
        assert config.automaticity_target == 6000

    def test_save_failure_keeps_session_value(self):
        learner = LearnerModel("notes", NoBaselineStore())
        config = learner.apply_baseline(600)
        assert learner.motor_baseline == 600
        assert config.min_time == 600
