import pytest

from lingocore.models import L1Trap
from lingocore.threat import (
    MS_PER_DAY,
    NOVELTY_BASE_SCORE,
    PatternStats,
    build_batch,
    prioritize_patterns,
    score_traps,
    stats_threat_score,
    summarize,
    threat_score,
)

NOW_MS = 1_700_000_000_000


def _stats(
    pattern_id: str,
    attempts: int,
    mistakes: int,
    streak: int = 0,
    last_mistake_ms: int | None = None,
) -> PatternStats:
    return PatternStats(
        pattern_id=pattern_id,
        l1_source="RUSSIAN",
        category="ARTICLE",
        total_attempts=attempts,
        mistake_count=mistakes,
        consecutive_correct_streak=streak,
        last_mistake_ms=last_mistake_ms,
        last_seen_ms=NOW_MS,
    )


def test_never_attempted_pattern_scores_novelty() -> None:
    assert threat_score(0, 0, None, NOW_MS) == NOVELTY_BASE_SCORE
    assert stats_threat_score(None, NOW_MS) == NOVELTY_BASE_SCORE


def test_threat_score_blends_components() -> None:
    assert threat_score(10, 0, None, NOW_MS) == pytest.approx(15.0)
    assert threat_score(10, 5, NOW_MS, NOW_MS) == pytest.approx(65.0)
    assert threat_score(10, 5, NOW_MS - 7 * MS_PER_DAY, NOW_MS) == pytest.approx(50.0)
    assert threat_score(100, 100, NOW_MS, NOW_MS) == pytest.approx(100.0)


def test_fresh_mistake_outranks_mastered_pattern() -> None:
    mastered = threat_score(20, 0, None, NOW_MS)
    fresh_mistake = threat_score(20, 1, NOW_MS, NOW_MS)
    assert fresh_mistake > mastered


def test_recency_decays_over_time() -> None:
    scores = [threat_score(10, 2, NOW_MS - days * MS_PER_DAY, NOW_MS) for days in (0, 3, 7, 30)]
    assert scores == sorted(scores, reverse=True)


def test_pattern_stats_mastery() -> None:
    assert _stats("a", 10, 0, streak=3).is_mastered is True
    assert _stats("a", 10, 3, streak=5).is_mastered is False
    assert _stats("a", 10, 0, streak=2).is_mastered is False
    assert _stats("a", 0, 0).accuracy == 0.0


def test_prioritize_patterns_is_stable() -> None:
    ranked = prioritize_patterns([("a", 10.0), ("b", 30.0), ("c", 10.0), ("d", 30.0)])
    assert ranked == ["b", "d", "a", "c"]
    assert prioritize_patterns([]) == []


def test_score_traps_orders_by_threat(traps: list[L1Trap]) -> None:
    stats = {"ru-article": _stats("ru-article", 10, 0)}
    scored = score_traps(traps, stats, NOW_MS)
    assert [item.trap.id for item in scored] == ["he-bus", "ar-tense", "ru-article"]
    assert scored[0].is_novelty is True
    assert scored[-1].is_novelty is False


def test_build_batch_avoids_back_to_back_categories(traps: list[L1Trap]) -> None:
    stats = {"ru-article": _stats("ru-article", 10, 0)}
    batch = build_batch(traps, stats, NOW_MS)
    assert [round_.trap.id for round_ in batch] == ["he-bus", "ru-article", "ar-tense"]
    assert [round_.is_novelty for round_ in batch] == [True, False, True]
    assert batch[1].threat_score == pytest.approx(15.0)


def test_build_batch_respects_size(traps: list[L1Trap]) -> None:
    stats = {"ru-article": _stats("ru-article", 10, 0)}
    batch = build_batch(traps, stats, NOW_MS, batch_size=2)
    assert [round_.trap.id for round_ in batch] == ["he-bus", "ar-tense"]
    assert build_batch(traps, stats, NOW_MS, batch_size=0) == ()
    assert build_batch([], {}, NOW_MS) == ()


def test_summarize(traps: list[L1Trap]) -> None:
    stats = {
        "ru-article": _stats("ru-article", 10, 0, streak=3),
        "he-bus": _stats("he-bus", 4, 2, last_mistake_ms=NOW_MS),
        "unknown": _stats("unknown", 50, 50),
    }
    summary = summarize(traps, stats)
    assert summary.total_patterns == 3
    assert summary.practiced_patterns == 2
    assert summary.mastered_patterns == 1
    assert summary.total_attempts == 14
    assert summary.total_mistakes == 2
    assert summary.overall_accuracy == pytest.approx(12 / 14)
    assert summary.mastery_progress == pytest.approx(1 / 3)


def test_localized_explanation_fallbacks(traps: list[L1Trap]) -> None:
    he_bus, ru_article, _ = traps
    assert he_bus.get_explanation("ru") == "Use 'by' for transport (ru)."
    assert he_bus.get_explanation("he") == "Use 'by' with means of transport."
    assert ru_article.get_explanation("ru") == "Singular countable nouns need an article."
