"""Timed grammar-correction ("sniper") mode.

Soft train, hard rank: the countdown reaching zero never stops play and a
blown cover never ends the batch. The learner always finishes every round;
time and cover only decide the final rank and reward.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace
from enum import Enum

from .economy import BASE_XP
from .models import SniperRound

FULL_COVER = 100
CRITICAL_COVER = 25


@dataclass(frozen=True)
class SniperConfig:
    """Tuning knobs for one sniper batch."""

    mission_time_seconds: int = 45
    timer_tick_ms: int = 100
    cover_penalty_per_error: int = 15
    batch_size: int = 5
    silver_threshold: int = 50

    @property
    def mission_time_ms(self) -> int:
        return self.mission_time_seconds * 1000


DEFAULT_CONFIG = SniperConfig()


class SniperRank(Enum):
    GOLD = "GOLD"
    SILVER = "SILVER"
    BRONZE = "BRONZE"
    COMPROMISED = "COMPROMISED"

    @property
    def display_name(self) -> str:
        return _RANK_DISPLAY_NAMES[self]

    @property
    def xp_multiplier(self) -> float:
        return _RANK_MULTIPLIERS[self]


_RANK_DISPLAY_NAMES = {
    SniperRank.GOLD: "Ghost Protocol",
    SniperRank.SILVER: "Clean Extraction",
    SniperRank.BRONZE: "Scraped Through",
    SniperRank.COMPROMISED: "Cover Blown",
}

_RANK_MULTIPLIERS = {
    SniperRank.GOLD: 2.0,
    SniperRank.SILVER: 1.5,
    SniperRank.BRONZE: 1.0,
    SniperRank.COMPROMISED: 0.5,
}


def rank_for(cover_integrity: int, is_overtime: bool, config: SniperConfig = DEFAULT_CONFIG) -> SniperRank:
    """Rank a finished batch from remaining cover and overtime."""
    if cover_integrity <= 0:
        return SniperRank.COMPROMISED
    if cover_integrity >= FULL_COVER and not is_overtime:
        return SniperRank.GOLD
    if cover_integrity >= config.silver_threshold and not is_overtime:
        return SniperRank.SILVER
    return SniperRank.BRONZE


@dataclass(frozen=True)
class SniperState:
    """Complete sniper batch snapshot."""

    batch: tuple[SniperRound, ...] = ()
    current_index: int = 0
    time_left_ms: int = DEFAULT_CONFIG.mission_time_ms
    mission_time_ms: int = DEFAULT_CONFIG.mission_time_ms
    is_overtime: bool = False
    cover_integrity: int = FULL_COVER
    silver_threshold: int = DEFAULT_CONFIG.silver_threshold
    is_game_finished: bool = False
    total_correct: int = 0
    total_wrong: int = 0
    xp_awarded: int = 0

    @property
    def time_left_percent(self) -> float:
        if self.mission_time_ms > 0:
            return self.time_left_ms / self.mission_time_ms
        return 0.0

    @property
    def current_round(self) -> SniperRound | None:
        if 0 <= self.current_index < len(self.batch):
            return self.batch[self.current_index]
        return None

    @property
    def batch_progress(self) -> float:
        if not self.batch:
            return 0.0
        return self.current_index / len(self.batch)

    @property
    def has_next_question(self) -> bool:
        return self.current_index < len(self.batch) - 1

    @property
    def questions_remaining(self) -> int:
        return max(0, len(self.batch) - self.current_index)

    @property
    def is_cover_critical(self) -> bool:
        return self.cover_integrity <= CRITICAL_COVER

    @property
    def is_cover_blown(self) -> bool:
        return self.cover_integrity <= 0

    @property
    def accuracy(self) -> float:
        answered = self.total_correct + self.total_wrong
        if answered > 0:
            return self.total_correct / answered
        return 0.0

    @property
    def rank(self) -> SniperRank:
        return rank_for(self.cover_integrity, self.is_overtime, SniperConfig(silver_threshold=self.silver_threshold))


@dataclass(frozen=True)
class StartBatch:
    rounds: tuple[SniperRound, ...]


@dataclass(frozen=True)
class SubmitAnswer:
    is_correct: bool


@dataclass(frozen=True)
class NextQuestion:
    pass


@dataclass(frozen=True)
class TimerTick:
    pass


@dataclass(frozen=True)
class TimeExpired:
    pass


@dataclass(frozen=True)
class FinishGame:
    pass


@dataclass(frozen=True)
class Reset:
    pass


SniperEvent = StartBatch | SubmitAnswer | NextQuestion | TimerTick | TimeExpired | FinishGame | Reset

EVENT_TYPES: tuple[type, ...] = (StartBatch, SubmitAnswer, NextQuestion, TimerTick, TimeExpired, FinishGame, Reset)


def reduce(state: SniperState, event: SniperEvent, config: SniperConfig = DEFAULT_CONFIG) -> SniperState:
    """Return the state after applying one event; `state` is never modified."""
    if isinstance(event, StartBatch):
        return _start_batch(event.rounds, config)
    if isinstance(event, SubmitAnswer):
        return _submit_answer(state, event, config)
    if isinstance(event, NextQuestion):
        if state.is_game_finished:
            return state
        if state.current_index + 1 < len(state.batch):
            return replace(state, current_index=state.current_index + 1)
        return _finish(state, config)
    if isinstance(event, TimerTick):
        remaining = max(0, state.time_left_ms - config.timer_tick_ms)
        return replace(state, time_left_ms=remaining, is_overtime=state.is_overtime or remaining <= 0)
    if isinstance(event, TimeExpired):
        return replace(state, time_left_ms=0, is_overtime=True)
    if isinstance(event, FinishGame):
        return _finish(state, config)
    if isinstance(event, Reset):
        return SniperState()
    raise TypeError(f"Unsupported sniper event: {event!r}")


def _start_batch(rounds: Sequence[SniperRound], config: SniperConfig) -> SniperState:
    return SniperState(
        batch=tuple(rounds),
        time_left_ms=config.mission_time_ms,
        mission_time_ms=config.mission_time_ms,
        silver_threshold=config.silver_threshold,
    )


def _submit_answer(state: SniperState, event: SubmitAnswer, config: SniperConfig) -> SniperState:
    if state.is_game_finished or state.current_round is None:
        return state
    if event.is_correct:
        return replace(state, total_correct=state.total_correct + 1)
    return replace(
        state,
        total_wrong=state.total_wrong + 1,
        cover_integrity=max(0, state.cover_integrity - config.cover_penalty_per_error),
    )


def _finish(state: SniperState, config: SniperConfig) -> SniperState:
    rank = rank_for(state.cover_integrity, state.is_overtime, config)
    return replace(
        state,
        is_game_finished=True,
        silver_threshold=config.silver_threshold,
        xp_awarded=calculate_xp(state, rank),
    )


def calculate_xp(state: SniperState, rank: SniperRank) -> int:
    """Return batch reward: cover adds up to 50%, then the rank multiplier applies."""
    base = state.total_correct * BASE_XP
    cover_bonus = state.cover_integrity / 200.0
    return int(base * (1.0 + cover_bonus) * rank.xp_multiplier)
