"""Threat scoring: rank grammar-error patterns by how urgently they need practice.

A pattern's threat blends three components:
- accuracy: low accuracy means high threat;
- recency: a recent mistake counts fully and halves every 7 days;
- frequency: more attempts make the score more trustworthy.

Patterns never attempted get a fixed novelty score so they still surface.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from .models import L1Trap, SniperRound

logger = logging.getLogger(__name__)

NOVELTY_BASE_SCORE = 50.0
ACCURACY_WEIGHT = 0.4
RECENCY_WEIGHT = 0.3
FREQUENCY_WEIGHT = 0.3
RECENCY_HALF_LIFE_DAYS = 7.0
MS_PER_DAY = 24 * 60 * 60 * 1000
MASTERY_STREAK = 3
MASTERY_ACCURACY = 0.8


@dataclass(frozen=True)
class PatternStats:
    """Learner history for one pattern, as supplied by persistence."""

    pattern_id: str
    l1_source: str
    category: str
    total_attempts: int
    mistake_count: int
    consecutive_correct_streak: int
    last_mistake_ms: int | None
    last_seen_ms: int

    @property
    def accuracy(self) -> float:
        if self.total_attempts > 0:
            return (self.total_attempts - self.mistake_count) / self.total_attempts
        return 0.0

    @property
    def is_mastered(self) -> bool:
        return self.consecutive_correct_streak >= MASTERY_STREAK and self.accuracy >= MASTERY_ACCURACY


@dataclass(frozen=True)
class ScoredTrap:
    """A trap paired with its stats and computed threat score."""

    trap: L1Trap
    stats: PatternStats | None
    threat_score: float

    @property
    def is_novelty(self) -> bool:
        return self.stats is None or self.stats.total_attempts == 0


@dataclass(frozen=True)
class SniperStats:
    """Aggregated pattern statistics for a dashboard."""

    total_patterns: int
    practiced_patterns: int
    mastered_patterns: int
    total_attempts: int
    total_mistakes: int

    @property
    def overall_accuracy(self) -> float:
        if self.total_attempts > 0:
            return (self.total_attempts - self.total_mistakes) / self.total_attempts
        return 0.0

    @property
    def mastery_progress(self) -> float:
        if self.total_patterns > 0:
            return self.mastered_patterns / self.total_patterns
        return 0.0


def threat_score(total_attempts: int, mistake_count: int, last_mistake_ms: int | None, now_ms: int) -> float:
    """Return threat score in [0, 100] for one pattern."""
    if total_attempts == 0:
        return NOVELTY_BASE_SCORE

    accuracy = (total_attempts - mistake_count) / total_attempts
    accuracy_score = (1.0 - accuracy) * 100.0

    if last_mistake_ms is not None:
        days_since_mistake = (now_ms - last_mistake_ms) / MS_PER_DAY
        recency_score = 100.0 * 0.5 ** (days_since_mistake / RECENCY_HALF_LIFE_DAYS)
    else:
        recency_score = 0.0

    frequency_score = min(total_attempts * 5.0, 100.0)

    total = accuracy_score * ACCURACY_WEIGHT + recency_score * RECENCY_WEIGHT + frequency_score * FREQUENCY_WEIGHT
    return min(100.0, max(0.0, total))


def stats_threat_score(stats: PatternStats | None, now_ms: int) -> float:
    """Return threat score for optional stats; missing stats count as novel."""
    if stats is None:
        return NOVELTY_BASE_SCORE
    return threat_score(stats.total_attempts, stats.mistake_count, stats.last_mistake_ms, now_ms)


def prioritize_patterns(patterns: Iterable[tuple[str, float]]) -> list[str]:
    """Return pattern ids by descending score; equal scores keep input order."""
    ranked = sorted(patterns, key=lambda pair: pair[1], reverse=True)
    return [pattern_id for pattern_id, _ in ranked]


def score_traps(
    traps: Iterable[L1Trap], stats: Mapping[str, PatternStats], now_ms: int
) -> list[ScoredTrap]:
    """Pair traps with their stats and return them highest threat first."""
    scored = [
        ScoredTrap(trap=trap, stats=stats.get(trap.id), threat_score=stats_threat_score(stats.get(trap.id), now_ms))
        for trap in traps
    ]
    scored.sort(key=lambda item: item.threat_score, reverse=True)
    return scored


def build_batch(
    traps: Iterable[L1Trap],
    stats: Mapping[str, PatternStats],
    now_ms: int,
    batch_size: int = 5,
) -> tuple[SniperRound, ...]:
    """Plan the next sniper batch from the highest-threat traps.

    Selected rounds are reordered greedily: each next round takes a different
    error category from the previous one whenever a remaining round allows it.
    """
    if batch_size <= 0:
        return ()
    selected = score_traps(traps, stats, now_ms)[:batch_size]
    ordered = _interleave_categories(selected)
    logger.debug(f"Planned sniper batch: {[item.trap.id for item in ordered]}")
    return tuple(
        SniperRound(trap=item.trap, threat_score=item.threat_score, is_novelty=item.is_novelty) for item in ordered
    )


def _interleave_categories(items: Sequence[ScoredTrap]) -> list[ScoredTrap]:
    """Greedy reorder avoiding back-to-back categories, preferring higher threat."""
    remaining = list(items)
    ordered: list[ScoredTrap] = []
    while remaining:
        pick = 0
        if ordered:
            last_category = ordered[-1].trap.category
            for index, item in enumerate(remaining):
                if item.trap.category != last_category:
                    pick = index
                    break
        ordered.append(remaining.pop(pick))
    return ordered


def summarize(traps: Iterable[L1Trap], stats: Mapping[str, PatternStats]) -> SniperStats:
    """Aggregate learner stats across all known traps."""
    trap_list = list(traps)
    known = [stats[trap.id] for trap in trap_list if trap.id in stats]
    return SniperStats(
        total_patterns=len(trap_list),
        practiced_patterns=len([item for item in known if item.total_attempts > 0]),
        mastered_patterns=len([item for item in known if item.is_mastered]),
        total_attempts=sum(item.total_attempts for item in known),
        total_mistakes=sum(item.mistake_count for item in known),
    )
