"""Sentence-building mode: state machine and answer validation.

Scoring per question:
- clean win on the first submission: one session point and full XP;
- self-corrected after a wrong submission: no session point, 70% XP;
- gave up (hint used): no session point, no XP.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from enum import Enum

from .economy import scrambler_xp
from .models import ScramblerExercise
from .sentence import count_words, detokenize, tokenize, tokens_match


class ScreenState(Enum):
    """Sentence-building session screens."""

    SETUP = "SETUP"
    PLAYING = "PLAYING"
    VALIDATING = "VALIDATING"
    FEEDBACK = "FEEDBACK"
    FINISHED = "FINISHED"


class GameMode(Enum):
    """Where exercises come from."""

    NORMAL = "NORMAL"
    MISTAKES = "MISTAKES"


class ColorTier(Enum):
    GREEN = "GREEN"
    YELLOW = "YELLOW"
    RED = "RED"


@dataclass(frozen=True)
class RefereeVerdict:
    """External grader judgment for a non-standard but plausible answer.

    Example: original "I often go to the park.", answer "To the park I often go."
    may come back valid with quality 70: grammatical, but unnatural.
    """

    is_valid: bool
    quality_score: int
    feedback: str
    better_version: str | None = None

    @property
    def xp_multiplier(self) -> float:
        if self.quality_score >= 90:
            return 1.0
        if self.quality_score >= 70:
            return 0.8
        if self.quality_score >= 50:
            return 0.5
        return 0.2

    @property
    def color_tier(self) -> ColorTier:
        if self.quality_score >= 80:
            return ColorTier.GREEN
        if self.quality_score >= 50:
            return ColorTier.YELLOW
        return ColorTier.RED


@dataclass(frozen=True)
class ScramblerResult:
    """Validation outcome for one submitted word order."""

    is_correct: bool
    score_percent: int
    correct_count: int
    total_count: int
    message: str
    token_results: Mapping[int, bool] = field(default_factory=dict)
    referee: RefereeVerdict | None = None

    @classmethod
    def from_referee(cls, verdict: RefereeVerdict, total_count: int) -> ScramblerResult:
        """Wrap a grader verdict so it can travel through a `Validated` event."""
        return cls(
            is_correct=verdict.is_valid,
            score_percent=max(0, min(100, verdict.quality_score)),
            correct_count=total_count if verdict.is_valid else 0,
            total_count=total_count,
            message=verdict.feedback,
            referee=verdict,
        )


class ScramblerRank(Enum):
    PERFECT = "PERFECT"
    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    FAIR = "FAIR"
    NEEDS_PRACTICE = "NEEDS_PRACTICE"

    @property
    def display_name(self) -> str:
        return _RANK_DISPLAY_NAMES[self]

    @property
    def xp_multiplier(self) -> float:
        return _RANK_MULTIPLIERS[self]

    @classmethod
    def from_accuracy(cls, accuracy: float) -> ScramblerRank:
        if accuracy >= 1.0:
            return cls.PERFECT
        if accuracy >= 0.9:
            return cls.EXCELLENT
        if accuracy >= 0.7:
            return cls.GOOD
        if accuracy >= 0.5:
            return cls.FAIR
        return cls.NEEDS_PRACTICE


_RANK_DISPLAY_NAMES = {
    ScramblerRank.PERFECT: "Perfect",
    ScramblerRank.EXCELLENT: "Excellent",
    ScramblerRank.GOOD: "Good",
    ScramblerRank.FAIR: "Fair",
    ScramblerRank.NEEDS_PRACTICE: "Needs Practice",
}

_RANK_MULTIPLIERS = {
    ScramblerRank.PERFECT: 2.0,
    ScramblerRank.EXCELLENT: 1.5,
    ScramblerRank.GOOD: 1.2,
    ScramblerRank.FAIR: 1.0,
    ScramblerRank.NEEDS_PRACTICE: 0.5,
}


@dataclass(frozen=True)
class ScramblerState:
    """Complete sentence-building session snapshot."""

    screen_state: ScreenState = ScreenState.SETUP
    game_mode: GameMode = GameMode.NORMAL

    selected_level: str = "A1"
    selected_tense: str = "Any"
    selected_type: str = "Statement"
    session_length: int = 5

    current_question_index: int = 0
    session_score: int = 0
    current_exercise: ScramblerExercise | None = None

    user_placement: tuple[int, ...] = ()
    locked_indices: frozenset[int] = frozenset()
    insertion_index: int | None = None
    validation_result: ScramblerResult | None = None

    has_error: bool = False
    is_hint_used: bool = False
    is_generating: bool = False
    is_validating: bool = False
    xp_awarded: int = 0

    @property
    def is_last_question(self) -> bool:
        return self.current_question_index >= self.session_length - 1

    @property
    def progress_percent(self) -> float:
        if self.session_length > 0:
            return (self.current_question_index + 1) / self.session_length
        return 0.0

    @property
    def questions_completed(self) -> int:
        """Questions with a verdict so far, counting the one on screen once judged."""
        judged = self.screen_state in (ScreenState.FEEDBACK, ScreenState.FINISHED)
        return self.current_question_index + (1 if judged else 0)

    @property
    def accuracy(self) -> float:
        completed = self.questions_completed
        if completed > 0:
            return self.session_score / completed
        return 0.0

    @property
    def rank(self) -> ScramblerRank:
        return ScramblerRank.from_accuracy(self.accuracy)


@dataclass(frozen=True)
class StartSession:
    level: str
    tense: str
    session_length: int
    sentence_type: str = "Statement"
    game_mode: GameMode = GameMode.NORMAL


@dataclass(frozen=True)
class LoadExercise:
    exercise: ScramblerExercise


@dataclass(frozen=True)
class PlaceWord:
    word_index: int


@dataclass(frozen=True)
class RemoveWord:
    placement_index: int


@dataclass(frozen=True)
class SetInsertionPoint:
    index: int | None


@dataclass(frozen=True)
class LockWord:
    index: int


@dataclass(frozen=True)
class Submit:
    pass


@dataclass(frozen=True)
class Validated:
    result: ScramblerResult


@dataclass(frozen=True)
class UseHint:
    pass


@dataclass(frozen=True)
class NextQuestion:
    pass


@dataclass(frozen=True)
class FinishSession:
    pass


@dataclass(frozen=True)
class Reset:
    pass


ScramblerEvent = (
    StartSession
    | LoadExercise
    | PlaceWord
    | RemoveWord
    | SetInsertionPoint
    | LockWord
    | Submit
    | Validated
    | UseHint
    | NextQuestion
    | FinishSession
    | Reset
)

EVENT_TYPES: tuple[type, ...] = (
    StartSession,
    LoadExercise,
    PlaceWord,
    RemoveWord,
    SetInsertionPoint,
    LockWord,
    Submit,
    Validated,
    UseHint,
    NextQuestion,
    FinishSession,
    Reset,
)


def reduce(state: ScramblerState, event: ScramblerEvent) -> ScramblerState:
    """Return the state after applying one event; `state` is never modified."""
    if isinstance(event, StartSession):
        return _start_session(event)
    if isinstance(event, LoadExercise):
        return _load_exercise(state, event)
    if isinstance(event, PlaceWord):
        return _place_word(state, event)
    if isinstance(event, RemoveWord):
        return _remove_word(state, event)
    if isinstance(event, SetInsertionPoint):
        return replace(state, insertion_index=event.index)
    if isinstance(event, LockWord):
        return _lock_word(state, event)
    if isinstance(event, Submit):
        return _submit(state)
    if isinstance(event, Validated):
        if state.screen_state != ScreenState.VALIDATING:
            return state
        return _validated(state, event)
    if isinstance(event, UseHint):
        return _use_hint(state)
    if isinstance(event, NextQuestion):
        return _next_question(state)
    if isinstance(event, FinishSession):
        return replace(state, screen_state=ScreenState.FINISHED)
    if isinstance(event, Reset):
        return ScramblerState()
    raise TypeError(f"Unsupported scrambler event: {event!r}")


def _start_session(event: StartSession) -> ScramblerState:
    return ScramblerState(
        screen_state=ScreenState.PLAYING,
        game_mode=event.game_mode,
        selected_level=event.level,
        selected_tense=event.tense,
        selected_type=event.sentence_type,
        session_length=event.session_length,
        is_generating=True,
    )


def _load_exercise(state: ScramblerState, event: LoadExercise) -> ScramblerState:
    return replace(
        state,
        current_exercise=event.exercise,
        user_placement=(),
        locked_indices=frozenset(),
        insertion_index=None,
        validation_result=None,
        has_error=False,
        is_hint_used=False,
        is_generating=False,
        screen_state=ScreenState.PLAYING,
    )


def _is_word_index(state: ScramblerState, index: int) -> bool:
    exercise = state.current_exercise
    return exercise is not None and 0 <= index < len(exercise.scrambled_words)


def _place_word(state: ScramblerState, event: PlaceWord) -> ScramblerState:
    if not _is_word_index(state, event.word_index) or event.word_index in state.user_placement:
        return state

    placement = list(state.user_placement)
    if state.insertion_index is not None:
        position = max(0, min(state.insertion_index, len(placement)))
        placement.insert(position, event.word_index)
    else:
        placement.append(event.word_index)
    return replace(state, user_placement=tuple(placement), insertion_index=None)


def _remove_word(state: ScramblerState, event: RemoveWord) -> ScramblerState:
    if not 0 <= event.placement_index < len(state.user_placement):
        return state
    # Locks hold word indices, not placement slots.
    if state.user_placement[event.placement_index] in state.locked_indices:
        return state
    placement = state.user_placement[: event.placement_index] + state.user_placement[event.placement_index + 1 :]
    return replace(state, user_placement=placement)


def _lock_word(state: ScramblerState, event: LockWord) -> ScramblerState:
    if not _is_word_index(state, event.index):
        return state
    if event.index in state.locked_indices:
        return replace(state, locked_indices=state.locked_indices - {event.index})
    return replace(state, locked_indices=state.locked_indices | {event.index})


def _submit(state: ScramblerState) -> ScramblerState:
    # Retries after a wrong verdict are submitted from FEEDBACK.
    if state.current_exercise is None or state.screen_state not in (ScreenState.PLAYING, ScreenState.FEEDBACK):
        return state
    return replace(state, screen_state=ScreenState.VALIDATING, is_validating=True)


def _validated(state: ScramblerState, event: Validated) -> ScramblerState:
    result = event.result
    already_credited = state.validation_result is not None and state.validation_result.is_correct
    score = state.session_score
    if result.is_correct and not already_credited and not state.has_error and not state.is_hint_used:
        score += 1

    xp = state.xp_awarded
    if result.is_correct and not already_credited and state.current_exercise is not None:
        exercise = state.current_exercise
        earned = scrambler_xp(
            exercise.level,
            count_words(exercise.original_sentence),
            is_perfect=not state.has_error,
            hint_used=state.is_hint_used,
        )
        if result.referee is not None:
            earned = int(earned * result.referee.xp_multiplier)
        xp += earned

    return replace(
        state,
        screen_state=ScreenState.FEEDBACK,
        validation_result=result,
        session_score=score,
        has_error=state.has_error or not result.is_correct,
        is_validating=False,
        xp_awarded=xp,
    )


def _use_hint(state: ScramblerState) -> ScramblerState:
    if state.current_exercise is None:
        return state
    return replace(state, user_placement=canonical_order(state.current_exercise), is_hint_used=True)


def _next_question(state: ScramblerState) -> ScramblerState:
    if state.is_last_question:
        return replace(state, screen_state=ScreenState.FINISHED)
    return replace(
        state,
        screen_state=ScreenState.PLAYING,
        current_question_index=state.current_question_index + 1,
        current_exercise=None,
        user_placement=(),
        locked_indices=frozenset(),
        insertion_index=None,
        validation_result=None,
        has_error=False,
        is_hint_used=False,
        is_generating=True,
    )


def canonical_order(exercise: ScramblerExercise) -> tuple[int, ...]:
    """Return word indices that rebuild the original sentence.

    Each original token takes the first unused scrambled word matching it;
    words that match nothing go last in their scrambled order.
    """
    remaining = list(range(len(exercise.scrambled_words)))
    order: list[int] = []
    for token in tokenize(exercise.original_sentence):
        for index in remaining:
            if tokens_match(exercise.scrambled_words[index], token):
                order.append(index)
                remaining.remove(index)
                break
    return tuple(order + remaining)


def validate(exercise: ScramblerExercise, user_placement: Sequence[int]) -> ScramblerResult:
    """Judge a word order against the original sentence and accepted alternatives."""
    user_words = [
        exercise.scrambled_words[index] for index in user_placement if 0 <= index < len(exercise.scrambled_words)
    ]
    user_sentence = detokenize(user_words).casefold()
    word_count = len(exercise.scrambled_words)

    if user_sentence == exercise.original_sentence.casefold():
        return ScramblerResult(
            is_correct=True,
            score_percent=100,
            correct_count=word_count,
            total_count=word_count,
            message="Perfect!",
        )

    for alternative in exercise.alternatives:
        if user_sentence == alternative.casefold():
            return ScramblerResult(
                is_correct=True,
                score_percent=100,
                correct_count=word_count,
                total_count=word_count,
                message="Correct! (Alternative form)",
            )

    original_tokens = tokenize(exercise.original_sentence)
    token_results: dict[int, bool] = {}
    correct_count = 0
    for index, word in enumerate(user_words):
        matched = index < len(original_tokens) and tokens_match(word, original_tokens[index])
        token_results[index] = matched
        if matched:
            correct_count += 1

    total = len(original_tokens)
    score_percent = (correct_count * 100) // total if total else 0
    return ScramblerResult(
        is_correct=False,
        score_percent=score_percent,
        correct_count=correct_count,
        total_count=total,
        message=f"Try again! {correct_count}/{total} words in correct position.",
        token_results=token_results,
    )
