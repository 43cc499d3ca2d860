"""Host-side session cells and reward settlement around the pure reducers."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from . import cloze, scrambler, sniper
from .economy import LevelInfo, LevelProgress, check_level_up, level_for_xp, progress_to_next_level

logger = logging.getLogger(__name__)

S = TypeVar("S")
E = TypeVar("E")


class GameSession(Generic[S, E]):
    """Owns the current state of one game and feeds it events.

    The session is the single writer for its state: callers deliver events one
    at a time and read back immutable snapshots.
    """

    def __init__(self, mode: str, reducer: Callable[[S, E], S], initial: Callable[[], S]) -> None:
        """Initialize session with a reducer and an empty-state factory."""
        self.mode = mode
        self._reducer = reducer
        self._initial = initial
        self._state = initial()

    @property
    def state(self) -> S:
        """Return the current snapshot."""
        return self._state

    def dispatch(self, event: E) -> S:
        """Apply one event, keep the resulting state and return it."""
        next_state = self._reducer(self._state, event)
        if next_state is not self._state:
            logger.debug(f"{self.mode}: {type(event).__name__} applied")
        self._state = next_state
        return next_state

    def restore(self, state: S) -> None:
        """Replace the current state, e.g. with one loaded from a saved session."""
        self._state = state

    def reset(self) -> S:
        """Return to the empty initial state."""
        self._state = self._initial()
        return self._state


def scrambler_session() -> GameSession[scrambler.ScramblerState, scrambler.ScramblerEvent]:
    """Create a sentence-building session."""
    return GameSession("scrambler", scrambler.reduce, scrambler.ScramblerState)


def cloze_session() -> GameSession[cloze.ClozeState, cloze.ClozeEvent]:
    """Create a fill-in-the-blank session."""
    return GameSession("cloze", cloze.reduce, cloze.ClozeState)


def sniper_session(
    config: sniper.SniperConfig = sniper.DEFAULT_CONFIG,
) -> GameSession[sniper.SniperState, sniper.SniperEvent]:
    """Create a sniper session bound to one configuration."""

    def reduce(state: sniper.SniperState, event: sniper.SniperEvent) -> sniper.SniperState:
        return sniper.reduce(state, event, config)

    return GameSession("sniper", reduce, sniper.SniperState)


def submit_placement(
    session: GameSession[scrambler.ScramblerState, scrambler.ScramblerEvent],
) -> scrambler.ScramblerResult | None:
    """Submit the current word order, validate it and feed the verdict back.

    Returns None when no exercise is loaded or the session does not accept a submission.
    """
    exercise = session.state.current_exercise
    if exercise is None:
        return None
    session.dispatch(scrambler.Submit())
    if session.state.screen_state != scrambler.ScreenState.VALIDATING:
        return None
    result = scrambler.validate(exercise, session.state.user_placement)
    session.dispatch(scrambler.Validated(result))
    return result


@dataclass(frozen=True)
class RewardSummary:
    """Learner totals after adding one session's XP."""

    earned: int
    total_xp: int
    level: LevelInfo
    level_up: LevelInfo | None
    progress: LevelProgress


def settle_rewards(previous_total_xp: int, earned: int) -> RewardSummary:
    """Add earned XP to a learner total and report level changes."""
    total = previous_total_xp + max(0, earned)
    level_up = check_level_up(previous_total_xp, total)
    if level_up is not None:
        logger.info(f"Level up: {level_up.display_name} at {total} XP")
    return RewardSummary(
        earned=max(0, earned),
        total_xp=total,
        level=level_for_xp(total),
        level_up=level_up,
        progress=progress_to_next_level(total),
    )
