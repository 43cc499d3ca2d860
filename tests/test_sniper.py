import pytest

from lingocore.models import L1Trap, SniperRound
from lingocore.sniper import (
    DEFAULT_CONFIG,
    FinishGame,
    NextQuestion,
    Reset,
    SniperConfig,
    SniperRank,
    SniperState,
    StartBatch,
    SubmitAnswer,
    TimeExpired,
    TimerTick,
    calculate_xp,
    rank_for,
    reduce,
)


def _rounds(traps: list[L1Trap], count: int) -> tuple[SniperRound, ...]:
    return tuple(SniperRound(trap=traps[index % len(traps)], threat_score=50.0, is_novelty=True) for index in range(count))


def _play(state: SniperState, answers: list[bool], config: SniperConfig = DEFAULT_CONFIG) -> SniperState:
    for answer in answers:
        state = reduce(state, SubmitAnswer(answer), config)
        state = reduce(state, NextQuestion(), config)
    return state


def test_start_batch(traps: list[L1Trap]) -> None:
    state = reduce(SniperState(), StartBatch(_rounds(traps, 5)))
    assert len(state.batch) == 5
    assert state.time_left_ms == 45_000
    assert state.mission_time_ms == 45_000
    assert state.cover_integrity == 100
    assert state.current_round is not None
    assert state.current_round.trap.id == "he-bus"
    assert state.questions_remaining == 5
    assert state.has_next_question is True


def test_blown_cover_still_finishes_batch(traps: list[L1Trap]) -> None:
    state = reduce(SniperState(), StartBatch(_rounds(traps, 7)))
    for index in range(7):
        state = reduce(state, SubmitAnswer(False))
        assert state.is_game_finished is False
        if index == 6:
            break
        state = reduce(state, NextQuestion())
    assert state.cover_integrity == 0
    assert state.is_cover_blown is True
    assert state.total_wrong == 7

    state = reduce(state, NextQuestion())
    assert state.is_game_finished is True
    assert state.rank == SniperRank.COMPROMISED
    assert state.xp_awarded == 0


def test_clean_run_earns_gold(traps: list[L1Trap]) -> None:
    state = _play(reduce(SniperState(), StartBatch(_rounds(traps, 5))), [True] * 5)
    assert state.is_game_finished is True
    assert state.accuracy == 1.0
    assert state.rank == SniperRank.GOLD
    assert state.xp_awarded == 150


def test_two_misses_earn_silver(traps: list[L1Trap]) -> None:
    state = _play(reduce(SniperState(), StartBatch(_rounds(traps, 5))), [True, False, True, False, True])
    assert state.cover_integrity == 70
    assert state.rank == SniperRank.SILVER
    assert state.xp_awarded == 60


def test_custom_silver_threshold_sets_rank_and_reward(traps: list[L1Trap]) -> None:
    config = SniperConfig(silver_threshold=80)
    state = reduce(SniperState(), StartBatch(_rounds(traps, 5)), config)
    state = _play(state, [True, False, True, False, True], config)
    assert state.cover_integrity == 70
    assert state.silver_threshold == 80
    assert state.rank == SniperRank.BRONZE
    assert state.xp_awarded == calculate_xp(state, SniperRank.BRONZE) == 40


def test_overtime_caps_rank_at_bronze(traps: list[L1Trap]) -> None:
    state = reduce(reduce(SniperState(), StartBatch(_rounds(traps, 5))), TimeExpired())
    assert state.time_left_ms == 0
    assert state.is_overtime is True

    state = _play(state, [True] * 5)
    assert state.is_game_finished is True
    assert state.total_correct == 5
    assert state.rank == SniperRank.BRONZE
    assert state.xp_awarded == 75


def test_timer_ticks_use_config(traps: list[L1Trap]) -> None:
    config = SniperConfig(mission_time_seconds=1, timer_tick_ms=400)
    state = reduce(SniperState(), StartBatch(_rounds(traps, 2)), config)
    assert state.time_left_ms == 1000

    state = reduce(state, TimerTick(), config)
    assert state.time_left_ms == 600
    assert state.time_left_percent == pytest.approx(0.6)
    state = reduce(state, TimerTick(), config)
    state = reduce(state, TimerTick(), config)
    assert state.time_left_ms == 0
    assert state.is_overtime is True

    state = reduce(state, SubmitAnswer(True), config)
    assert state.total_correct == 1


def test_cover_critical_threshold(traps: list[L1Trap]) -> None:
    state = reduce(SniperState(), StartBatch(_rounds(traps, 6)))
    for _ in range(4):
        state = reduce(reduce(state, SubmitAnswer(False)), NextQuestion())
    assert state.cover_integrity == 40
    assert state.is_cover_critical is False

    state = reduce(state, SubmitAnswer(False))
    assert state.cover_integrity == 25
    assert state.is_cover_critical is True


def test_progress_properties(traps: list[L1Trap]) -> None:
    state = reduce(SniperState(), StartBatch(_rounds(traps, 4)))
    state = reduce(reduce(state, SubmitAnswer(True)), NextQuestion())
    assert state.batch_progress == 0.25
    assert state.questions_remaining == 3
    state = _play(state, [True, True])
    assert state.current_index == 3
    assert state.has_next_question is False


def test_finished_batch_ignores_answers(traps: list[L1Trap]) -> None:
    state = reduce(reduce(SniperState(), StartBatch(_rounds(traps, 3))), FinishGame())
    assert state.is_game_finished is True
    assert reduce(state, SubmitAnswer(False)) is state
    assert reduce(state, NextQuestion()) is state
    assert state.current_index == 0

    empty = SniperState()
    assert reduce(empty, SubmitAnswer(True)) is empty


def test_reset(traps: list[L1Trap]) -> None:
    state = reduce(SniperState(), StartBatch(_rounds(traps, 3)))
    assert reduce(state, Reset()) == SniperState()


def test_rank_rules() -> None:
    assert rank_for(100, is_overtime=False) == SniperRank.GOLD
    assert rank_for(55, is_overtime=False) == SniperRank.SILVER
    assert rank_for(40, is_overtime=False) == SniperRank.BRONZE
    assert rank_for(100, is_overtime=True) == SniperRank.BRONZE
    assert rank_for(0, is_overtime=False) == SniperRank.COMPROMISED
    assert rank_for(70, is_overtime=False, config=SniperConfig(silver_threshold=80)) == SniperRank.BRONZE


def test_calculate_xp() -> None:
    state = SniperState(total_correct=2, cover_integrity=50)
    assert calculate_xp(state, SniperRank.BRONZE) == 25
    assert calculate_xp(state, SniperRank.COMPROMISED) == 12


def test_unknown_event_is_rejected() -> None:
    with pytest.raises(TypeError):
        reduce(SniperState(), "fire")  # type: ignore[arg-type]
