"""
Adaptive Mastery Scheduler.

Decides which drill item to present next and how well each item is known.

Components:
- Mastery model: EWMA speed, stability, recall and automaticity (pure functions)
- AdaptiveSelector: weighted selection with no immediate repeats
- DeadlineTracker: per-item wall-clock due times
- Recommendation engine: consolidate / expand practice-scope advice
- Storage adapters: in-memory, SQLite, and a resilient wrapper
- LearnerModel: selector + storage + motor baseline for one mode
"""
from src.adaptive.config import (
    DEFAULT_CONFIG,
    DEFAULT_DEADLINE_CONFIG,
    DEFAULT_MOTOR_BASELINE_MS,
    AdaptiveConfig,
    DeadlineConfig,
    derive_scaled_config,
)
from src.adaptive.deadline import DeadlineTracker, wall_clock_ms
from src.adaptive.errors import AdaptiveError, EmptyInputError, StorageUnavailable
from src.adaptive.learner import LearnerModel
from src.adaptive.mastery import (
    ItemStats,
    compute_automaticity,
    compute_ewma,
    compute_median,
    compute_recall,
    compute_weight,
    select_weighted,
)
from src.adaptive.recommendations import (
    RecommendationResult,
    build_recommendation_text,
    compute_recommendations,
)
from src.adaptive.selector import AdaptiveSelector, StringRecommendation
from src.adaptive.state_store import SQLiteStorage
from src.adaptive.storage import MemoryStorage, ResilientStorage, StorageAdapter

__all__ = [
    # Configuration
    "AdaptiveConfig",
    "DeadlineConfig",
    "DEFAULT_CONFIG",
    "DEFAULT_DEADLINE_CONFIG",
    "DEFAULT_MOTOR_BASELINE_MS",
    "derive_scaled_config",
    # Mastery model
    "ItemStats",
    "compute_automaticity",
    "compute_ewma",
    "compute_median",
    "compute_recall",
    "compute_weight",
    "select_weighted",
    # Scheduling
    "AdaptiveSelector",
    "DeadlineTracker",
    "LearnerModel",
    "StringRecommendation",
    "RecommendationResult",
    "build_recommendation_text",
    "compute_recommendations",
    "wall_clock_ms",
    # Storage
    "StorageAdapter",
    "MemoryStorage",
    "ResilientStorage",
    "SQLiteStorage",
    # Errors
    "AdaptiveError",
    "EmptyInputError",
    "StorageUnavailable",
]
