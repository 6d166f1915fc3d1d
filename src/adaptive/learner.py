"""
Learner Model - one learner's adaptive state for a single quiz mode.

Bundles the storage adapter, the selector, and the motor baseline so the
session layer has a single object to hold. A stored baseline is applied at
construction, so thresholds are personalized before the first question.
"""

from __future__ import annotations

import random
from collections.abc import Callable

from loguru import logger

from src.adaptive.config import DEFAULT_CONFIG, AdaptiveConfig, derive_scaled_config
from src.adaptive.deadline import wall_clock_ms
from src.adaptive.errors import StorageUnavailable
from src.adaptive.selector import AdaptiveSelector
from src.adaptive.storage import MemoryStorage, StorageAdapter


class LearnerModel:
    """Storage, selector and motor baseline for one namespace."""

    def __init__(
        self,
        namespace: str,
        storage: StorageAdapter | None = None,
        provider: str = "button",
        rng: Callable[[], float] = random.random,
        now: Callable[[], float] = wall_clock_ms,
        get_expected_response_count: Callable[[str], int] | None = None,
        base_config: AdaptiveConfig = DEFAULT_CONFIG,
    ):
        self.namespace = namespace
        self.provider = provider
        self.storage = storage if storage is not None else MemoryStorage()
        self.base_config = base_config
        self.motor_baseline: float | None = self._load_baseline()

        config = base_config
        if self.motor_baseline is not None:
            config = derive_scaled_config(self.motor_baseline, base_config)

        self.selector = AdaptiveSelector(
            self.storage,
            config=config,
            rng=rng,
            now=now,
            get_expected_response_count=get_expected_response_count,
        )

    def _load_baseline(self) -> float | None:
        getter = getattr(self.storage, "get_motor_baseline", None)
        if getter is None:
            return None
        try:
            baseline = getter(self.provider)
        except StorageUnavailable as e:
            logger.warning(f"{e}; using default thresholds")
            return None
        # Only a positive stored value counts as a measurement.
        if baseline is not None and baseline > 0:
            return baseline
        return None

    @property
    def is_calibrated(self) -> bool:
        return self.motor_baseline is not None

    def apply_baseline(self, baseline: float) -> AdaptiveConfig:
        """
        Persist a measured baseline and rescale the live config.

        Args:
            baseline: Motor baseline in ms

        Returns:
            The config now in effect
        """
        self.motor_baseline = baseline
        saver = getattr(self.storage, "save_motor_baseline", None)
        if saver is not None:
            try:
                saver(self.provider, baseline)
            except StorageUnavailable as e:
                logger.warning(f"{e}; baseline kept for this session only")

        config = derive_scaled_config(baseline, self.base_config)
        self.selector.update_config(config)
        logger.info(
            f"Applied {baseline:.0f}ms baseline to {self.namespace}: "
            f"min_time={config.min_time:.0f}ms, target={config.automaticity_target:.0f}ms"
        )
        return config
