"""
Recommendation Engine - advisory practice-scope suggestions.

Aggregates selector state across groups of items (a string, a chord family)
and suggests which groups to consolidate (drop from active practice) and
which disabled group is worth turning on next. Nothing here mutates state;
applying a recommendation is the caller's decision.
"""

from __future__ import annotations

import functools
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field

from src.adaptive.selector import AdaptiveSelector, StringRecommendation

# A group is consolidated when at most this share of its items is due...
CONSOLIDATE_MAX_DUE_FRACTION = 0.2
# ...and at least this share is mastered.
CONSOLIDATE_MIN_MASTERED_FRACTION = 0.8


@dataclass
class RecommendationResult:
    """Suggested scope. `enabled` is None when no change is recommended."""

    recommended: set[int] = field(default_factory=set)
    enabled: set[int] | None = None
    consolidate_indices: list[int] = field(default_factory=list)
    consolidate_due_count: int = 0
    expand_index: int | None = None
    expand_new_count: int = 0


def group_automaticity(selector: AdaptiveSelector, item_ids: Sequence[str]) -> float:
    """Average automaticity of a group; unseen items count as 0."""
    if not item_ids:
        return 0.0
    total = sum(selector.get_automaticity(item_id) or 0.0 for item_id in item_ids)
    return total / len(item_ids)


def _should_consolidate(tally: StringRecommendation) -> bool:
    if tally.total_count == 0:
        return False
    due_fraction = tally.due_count / tally.total_count
    mastered_fraction = tally.mastered_count / tally.total_count
    return (
        due_fraction <= CONSOLIDATE_MAX_DUE_FRACTION
        and mastered_fraction >= CONSOLIDATE_MIN_MASTERED_FRACTION
    )


def compute_recommendations(
    selector: AdaptiveSelector,
    group_indices: Iterable[int],
    get_item_ids: Callable[[int], Sequence[str]],
    expansion_threshold: float | None = None,
    sort_unstarted: Callable[[StringRecommendation, StringRecommendation], int] | None = None,
    enabled_groups: Iterable[int] | None = None,
    prerequisites: Callable[[int], Iterable[int]] | None = None,
) -> RecommendationResult:
    """
    Suggest a new practice scope.

    1. Enabled groups with few due items and mostly mastered items become
       consolidation candidates.
    2. Among disabled groups whose prerequisites average above
       expansion_threshold automaticity, the one with the most unseen items
       becomes the expansion candidate. sort_unstarted breaks ties.
    3. The recommended scope is enabled minus consolidated plus expanded.

    Args:
        selector: Source of per-item state
        group_indices: Every group the mode offers
        get_item_ids: Item ids belonging to a group
        expansion_threshold: Automaticity bar for expanding (defaults to the
            selector's config)
        sort_unstarted: cmp-style comparator over group tallies
        enabled_groups: Currently enabled groups (defaults to every group
            with at least one answered item)
        prerequisites: Groups that must be automatic before a group is
            suggested (defaults to all enabled groups)

    Returns:
        RecommendationResult
    """
    if expansion_threshold is None:
        expansion_threshold = selector.get_config().expansion_threshold

    tallies = selector.get_string_recommendations(list(group_indices), get_item_ids)
    if enabled_groups is None:
        enabled = {t.string for t in tallies if t.seen_count > 0}
    else:
        enabled = set(enabled_groups)

    result = RecommendationResult()

    # Consolidation
    for tally in tallies:
        if tally.string in enabled and _should_consolidate(tally):
            result.consolidate_indices.append(tally.string)
            result.consolidate_due_count += tally.due_count

    # Expansion
    automaticity_cache: dict[int, float] = {}

    def automaticity_of(index: int) -> float:
        if index not in automaticity_cache:
            automaticity_cache[index] = group_automaticity(selector, get_item_ids(index))
        return automaticity_cache[index]

    def ready(index: int) -> bool:
        required = list(prerequisites(index)) if prerequisites else sorted(enabled)
        if not required:
            return True
        average = sum(automaticity_of(i) for i in required) / len(required)
        return average > expansion_threshold

    candidates = [t for t in tallies if t.string not in enabled and t.unseen_count > 0 and ready(t.string)]
    if candidates:
        if sort_unstarted is not None:
            candidates.sort(key=functools.cmp_to_key(sort_unstarted))
        # Stable sort keeps the comparator's order among equal unseen counts.
        candidates.sort(key=lambda t: t.unseen_count, reverse=True)
        result.expand_index = candidates[0].string
        result.expand_new_count = candidates[0].unseen_count

    # Never suggest an empty scope.
    if result.expand_index is None and set(result.consolidate_indices) >= enabled:
        result.consolidate_indices = []
        result.consolidate_due_count = 0

    recommended = enabled - set(result.consolidate_indices)
    if result.expand_index is not None:
        recommended.add(result.expand_index)

    result.recommended = recommended
    result.enabled = recommended if recommended != enabled else None
    return result


def build_recommendation_text(
    result: RecommendationResult,
    label_for: Callable[[int], str],
) -> str:
    """
    Render a recommendation as one line of advice.

    Returns:
        Text such as "Set aside G, D (3 due) · Start B (12 new)", or "" when
        there is nothing to suggest
    """
    parts = []
    if result.consolidate_indices:
        labels = ", ".join(label_for(i) for i in sorted(result.consolidate_indices))
        parts.append(f"Set aside {labels} ({result.consolidate_due_count} due)")
    if result.expand_index is not None:
        parts.append(f"Start {label_for(result.expand_index)} ({result.expand_new_count} new)")
    return " · ".join(parts)
