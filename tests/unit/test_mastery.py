"""
Unit tests for the mastery model.

Pure functions only; no storage and no clock.
"""

import pytest

from src.adaptive.config import DEFAULT_CONFIG, derive_scaled_config
from src.adaptive.mastery import (
    MS_PER_HOUR,
    ItemStats,
    compute_automaticity,
    compute_ewma,
    compute_median,
    compute_recall,
    compute_speed_bonus,
    compute_speed_score,
    compute_weight,
    next_stability,
    select_weighted,
    update_item_stats,
)

NOW = 1_700_000_000_000


def seen(ewma: float, **kwargs) -> ItemStats:
    defaults = dict(recent_times=[ewma], ewma=ewma, sample_count=1, last_seen=NOW, stability=4.0, last_correct_at=NOW)
    defaults.update(kwargs)
    return ItemStats(**defaults)


class TestEwma:
    def test_blends_toward_new_observation(self):
        assert compute_ewma(1000, 3000, 0.3) == pytest.approx(1600)

    def test_alpha_one_takes_new_value(self):
        assert compute_ewma(1000, 3000, 1.0) == pytest.approx(3000)


class TestWeight:
    def test_unseen_gets_flat_boost(self):
        assert compute_weight(None, DEFAULT_CONFIG) == DEFAULT_CONFIG.unseen_boost

    def test_fast_items_floor_at_one(self):
        assert compute_weight(seen(200), DEFAULT_CONFIG) == pytest.approx(1.0)

    def test_weight_grows_with_slowness(self):
        assert compute_weight(seen(2500), DEFAULT_CONFIG) == pytest.approx(2.5)
        assert compute_weight(seen(5000), DEFAULT_CONFIG) > compute_weight(seen(2500), DEFAULT_CONFIG)

    def test_unseen_weight_independent_of_sample_count(self):
        # An unseen item outweighs a barely-seen fast one.
        assert compute_weight(None, DEFAULT_CONFIG) > compute_weight(seen(1000), DEFAULT_CONFIG)


class TestSelectWeighted:
    def test_cumulative_subtraction(self):
        assert select_weighted(["a", "b"], [1, 3], 0.2) == "a"
        assert select_weighted(["a", "b"], [1, 3], 0.5) == "b"

    def test_zero_weight_is_never_chosen(self):
        assert select_weighted(["a", "b", "c"], [0, 3, 3], 0.0) == "b"
        assert select_weighted(["a", "b", "c"], [3, 3, 0], 0.999) == "b"

    def test_all_zero_falls_back_to_uniform(self):
        assert select_weighted(["a", "b"], [0, 0], 0.5) == "b"

    def test_leftover_remainder_returns_last_weighted_item(self):
        assert select_weighted(["a", "b", "c"], [3, 3, 0], 1.5) == "b"


class TestStability:
    def test_first_correct_starts_at_initial(self):
        assert next_stability(None, True, NOW, DEFAULT_CONFIG) == DEFAULT_CONFIG.initial_stability

    def test_correct_doubles(self):
        assert next_stability(seen(1000, stability=4.0), True, NOW, DEFAULT_CONFIG) == pytest.approx(8.0)

    def test_growth_capped(self):
        stats = seen(1000, stability=300.0)
        assert next_stability(stats, True, NOW, DEFAULT_CONFIG) == DEFAULT_CONFIG.max_stability

    def test_wrong_decays(self):
        assert next_stability(seen(1000, stability=4.0), False, NOW, DEFAULT_CONFIG) == pytest.approx(1.2)

    def test_wrong_on_first_answer(self):
        assert next_stability(None, False, NOW, DEFAULT_CONFIG) == pytest.approx(1.2)

    def test_wrong_floored(self):
        stats = seen(1000, stability=0.2)
        assert next_stability(stats, False, NOW, DEFAULT_CONFIG) == DEFAULT_CONFIG.min_stability

    def test_quick_recovery_after_miss_is_damped(self):
        missed = seen(1000, stability=1.2, last_seen=NOW - 1000, last_correct_at=None)
        assert missed.previous_was_wrong
        assert next_stability(missed, True, NOW, DEFAULT_CONFIG) == pytest.approx(1.8)

    def test_late_recovery_gets_full_growth(self):
        missed = seen(1000, stability=1.2, last_seen=NOW - 120_000, last_correct_at=None)
        assert next_stability(missed, True, NOW, DEFAULT_CONFIG) == pytest.approx(2.4)


class TestRecall:
    def test_unseen_is_none(self):
        assert compute_recall(None, NOW) is None

    def test_never_correct_is_zero(self):
        assert compute_recall(seen(1000, last_correct_at=None), NOW) == 0.0

    def test_fresh_is_one(self):
        assert compute_recall(seen(1000), NOW) == pytest.approx(1.0)

    def test_half_life(self):
        assert compute_recall(seen(1000, stability=4.0), NOW + 4 * MS_PER_HOUR) == pytest.approx(0.5)

    def test_higher_stability_decays_slower(self):
        later = NOW + 10 * MS_PER_HOUR
        assert compute_recall(seen(1000, stability=20.0), later) > compute_recall(seen(1000, stability=4.0), later)


class TestAutomaticity:
    def test_speed_score_reference_points(self):
        assert compute_speed_score(1500, 3000) == pytest.approx(0.8)
        assert compute_speed_score(3000, 3000) == pytest.approx(0.5)
        assert compute_speed_score(6000, 3000) == pytest.approx(0.2)

    def test_bonus_only_under_half_target(self):
        assert compute_speed_bonus(1500, 3000, 0.1) == 0.0
        assert compute_speed_bonus(750, 3000, 0.1) == pytest.approx(0.05)
        assert compute_speed_bonus(0, 3000, 0.1) == pytest.approx(0.1)

    def test_unseen_is_none(self):
        assert compute_automaticity(None, DEFAULT_CONFIG) is None

    def test_capped_at_one(self):
        assert compute_automaticity(seen(0), DEFAULT_CONFIG) == 1.0

    def test_decreases_with_ewma(self):
        fast = compute_automaticity(seen(800), DEFAULT_CONFIG)
        slow = compute_automaticity(seen(6000), DEFAULT_CONFIG)
        assert fast > DEFAULT_CONFIG.automaticity_threshold > slow


class TestUpdateItemStats:
    def test_first_response_seeds_ewma(self):
        stats = update_item_stats(None, 1200, True, NOW, DEFAULT_CONFIG)
        assert stats.ewma == 1200
        assert stats.sample_count == 1
        assert stats.last_correct_at == NOW
        assert stats.stability == DEFAULT_CONFIG.initial_stability

    def test_times_are_clamped(self):
        stats = update_item_stats(None, 20_000, True, NOW, DEFAULT_CONFIG)
        assert stats.ewma == DEFAULT_CONFIG.max_response_time
        assert stats.recent_times == [DEFAULT_CONFIG.max_response_time]

    def test_blends_later_responses(self):
        first = update_item_stats(None, 9000, True, NOW, DEFAULT_CONFIG)
        second = update_item_stats(first, 1000, True, NOW + 1000, DEFAULT_CONFIG)
        assert second.ewma == pytest.approx(6600)
        assert second.sample_count == 2

    def test_wrong_answer_keeps_last_correct(self):
        first = update_item_stats(None, 1000, True, NOW, DEFAULT_CONFIG)
        second = update_item_stats(first, 1000, False, NOW + 5000, DEFAULT_CONFIG)
        assert second.last_correct_at == NOW
        assert second.last_seen == NOW + 5000
        assert second.previous_was_wrong

    def test_recent_times_window(self):
        stats = None
        for i in range(12):
            stats = update_item_stats(stats, 1000 + i, True, NOW + i, DEFAULT_CONFIG)
        assert len(stats.recent_times) == DEFAULT_CONFIG.max_stored_times
        assert stats.recent_times[-1] == 1011

    def test_legacy_record_without_stability(self):
        stats = ItemStats.from_dict({"recent_times": [900], "ewma": 900, "sample_count": 1, "last_seen": NOW})
        assert stats.stability is None
        assert stats.last_correct_at is None


class TestMedian:
    def test_empty(self):
        assert compute_median([]) is None

    def test_odd_and_even(self):
        assert compute_median([3, 1, 2]) == 2
        assert compute_median([4, 1, 3, 2]) == pytest.approx(2.5)


class TestScaledConfig:
    def test_scales_motor_fields(self):
        cfg = derive_scaled_config(1400)
        assert cfg.min_time == 1400
        assert cfg.max_response_time == 12600
        assert cfg.automaticity_target == 4200

    def test_leaves_memory_fields_alone(self):
        cfg = derive_scaled_config(1400)
        assert cfg.initial_stability == DEFAULT_CONFIG.initial_stability
        assert cfg.self_correction_threshold == DEFAULT_CONFIG.self_correction_threshold
        assert cfg.automaticity_threshold == DEFAULT_CONFIG.automaticity_threshold

    def test_default_baseline_is_identity(self):
        cfg = derive_scaled_config(1000)
        assert cfg.min_time == DEFAULT_CONFIG.min_time
        assert cfg.automaticity_target == DEFAULT_CONFIG.automaticity_target

    def test_base_is_not_mutated(self):
        derive_scaled_config(500)
        assert DEFAULT_CONFIG.min_time == 1000
