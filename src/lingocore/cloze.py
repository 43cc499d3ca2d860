"""Fill-in-the-blank drills: state machine, answer checks and library mapping."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from .economy import BASE_XP
from .models import ClozeDrill, ClozeQuestion
from .similarity import similarity

DEFAULT_TIME_LIMIT_SECONDS = 30
OVERTIME_ACCURACY_FACTOR = 0.9
ALMOST_CORRECT_THRESHOLD = 0.8


class ClozeRank(Enum):
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
    def from_accuracy(cls, accuracy: float, was_overtime: bool) -> ClozeRank:
        """Rank final accuracy; finishing overtime counts as 90% of it."""
        adjusted = accuracy * OVERTIME_ACCURACY_FACTOR if was_overtime else accuracy
        if adjusted >= 1.0:
            return cls.PERFECT
        if adjusted >= 0.9:
            return cls.EXCELLENT
        if adjusted >= 0.7:
            return cls.GOOD
        if adjusted >= 0.5:
            return cls.FAIR
        return cls.NEEDS_PRACTICE


_RANK_DISPLAY_NAMES = {
    ClozeRank.PERFECT: "Perfect",
    ClozeRank.EXCELLENT: "Excellent",
    ClozeRank.GOOD: "Good",
    ClozeRank.FAIR: "Fair",
    ClozeRank.NEEDS_PRACTICE: "Needs Practice",
}

_RANK_MULTIPLIERS = {
    ClozeRank.PERFECT: 2.0,
    ClozeRank.EXCELLENT: 1.5,
    ClozeRank.GOOD: 1.2,
    ClozeRank.FAIR: 1.0,
    ClozeRank.NEEDS_PRACTICE: 0.5,
}


@dataclass(frozen=True)
class ClozeState:
    """Complete cloze drill snapshot."""

    drill: ClozeDrill | None = None
    current_index: int = 0

    total_correct: int = 0
    total_wrong: int = 0
    streak: int = 0
    best_streak: int = 0

    time_left_seconds: int = DEFAULT_TIME_LIMIT_SECONDS
    is_overtime: bool = False

    is_game_finished: bool = False
    xp_awarded: int = 0

    @property
    def total_answered(self) -> int:
        return self.total_correct + self.total_wrong

    @property
    def accuracy(self) -> float:
        if self.total_answered > 0:
            return self.total_correct / self.total_answered
        return 0.0

    @property
    def progress(self) -> float:
        if self.drill is not None and self.drill.total_questions > 0:
            return self.current_index / self.drill.total_questions
        return 0.0

    @property
    def current_question(self) -> ClozeQuestion | None:
        if self.drill is None or not 0 <= self.current_index < len(self.drill.questions):
            return None
        return self.drill.questions[self.current_index]

    @property
    def rank(self) -> ClozeRank:
        return ClozeRank.from_accuracy(self.accuracy, self.is_overtime)


@dataclass(frozen=True)
class StartDrill:
    drill: ClozeDrill
    time_limit_seconds: int = DEFAULT_TIME_LIMIT_SECONDS


@dataclass(frozen=True)
class SubmitAnswer:
    answer: str


@dataclass(frozen=True)
class Skip:
    pass


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


ClozeEvent = StartDrill | SubmitAnswer | Skip | NextQuestion | TimerTick | TimeExpired | FinishGame | Reset

EVENT_TYPES: tuple[type, ...] = (StartDrill, SubmitAnswer, Skip, NextQuestion, TimerTick, TimeExpired, FinishGame, Reset)


def reduce(state: ClozeState, event: ClozeEvent) -> ClozeState:
    """Return the state after applying one event; `state` is never modified."""
    if isinstance(event, StartDrill):
        return ClozeState(drill=event.drill, time_left_seconds=max(0, event.time_limit_seconds))
    if isinstance(event, SubmitAnswer):
        return _submit_answer(state, event)
    if isinstance(event, Skip):
        return _record_wrong(state) if _accepts_answers(state) else state
    if isinstance(event, NextQuestion):
        return _next_question(state)
    if isinstance(event, TimerTick):
        remaining = max(0, state.time_left_seconds - 1)
        return replace(state, time_left_seconds=remaining, is_overtime=state.is_overtime or remaining <= 0)
    if isinstance(event, TimeExpired):
        return replace(state, time_left_seconds=0, is_overtime=True)
    if isinstance(event, FinishGame):
        return _finish(state)
    if isinstance(event, Reset):
        return ClozeState()
    raise TypeError(f"Unsupported cloze event: {event!r}")


def _accepts_answers(state: ClozeState) -> bool:
    return not state.is_game_finished and state.current_question is not None


def _submit_answer(state: ClozeState, event: SubmitAnswer) -> ClozeState:
    question = state.current_question
    if question is None or state.is_game_finished:
        return state
    if not is_correct(event.answer, question.correct_answer):
        return _record_wrong(state)
    streak = state.streak + 1
    return replace(
        state,
        total_correct=state.total_correct + 1,
        streak=streak,
        best_streak=max(state.best_streak, streak),
    )


def _record_wrong(state: ClozeState) -> ClozeState:
    return replace(state, total_wrong=state.total_wrong + 1, streak=0)


def _next_question(state: ClozeState) -> ClozeState:
    if state.drill is None or state.is_game_finished:
        return state
    next_index = state.current_index + 1
    if next_index < len(state.drill.questions):
        return replace(state, current_index=next_index)
    return _finish(state)


def _finish(state: ClozeState) -> ClozeState:
    rank = ClozeRank.from_accuracy(state.accuracy, state.is_overtime)
    reward = int(state.total_correct * BASE_XP * rank.xp_multiplier)
    return replace(state, is_game_finished=True, xp_awarded=reward)


def is_correct(user_answer: str, correct_answer: str, strict: bool = False) -> bool:
    """Compare trimmed answers; case-insensitive unless `strict`."""
    user = user_answer.strip()
    expected = correct_answer.strip()
    if strict:
        return user == expected
    return user.casefold() == expected.casefold()


def answer_similarity(user_answer: str, correct_answer: str) -> float:
    """Return 0.0-1.0 closeness of an answer, for feedback only."""
    return similarity(user_answer, correct_answer)


def is_almost_correct(user_answer: str, correct_answer: str, threshold: float = ALMOST_CORRECT_THRESHOLD) -> bool:
    """Return whether a wrong answer is close enough for an "almost" hint."""
    if is_correct(user_answer, correct_answer):
        return False
    return answer_similarity(user_answer, correct_answer) >= threshold


@dataclass(frozen=True)
class LibraryMapping:
    """Which cloze library trains a grammar error type, if any."""

    error_type: str
    library_file: str | None
    deck_filter: str | None
    is_supported: bool
    alternative_drill_type: str | None


LIBRARY_MAPPINGS: tuple[LibraryMapping, ...] = (
    LibraryMapping("VERB_TENSE", "cloze_verb_tenses.json", None, True, None),
    LibraryMapping("ARTICLE_USAGE", "cloze_articles.json", None, True, None),
    LibraryMapping("PLURAL_SINGULAR", "cloze_plurals.json", None, False, "FILL_IN_BLANK"),
    LibraryMapping("SUBJECT_VERB_AGREE", "cloze_irregular_verbs_a2.json", "mixed_practice", True, None),
    LibraryMapping("PRONOUN_REFERENCE", "cloze_pronouns.json", None, True, None),
    LibraryMapping("PREPOSITION", "cloze_prepositions.json", None, True, None),
    LibraryMapping("WORD_ORDER", None, None, False, "SENTENCE_BUILDING"),
    LibraryMapping("QUESTION_FORM", "cloze_questions.json", None, True, None),
    LibraryMapping("NEGATIVE_FORM", "cloze_negatives.json", None, True, None),
    LibraryMapping("COMPARATIVE", "cloze_comparatives.json", None, False, "FILL_IN_BLANK"),
    LibraryMapping("SPELLING", None, None, False, "ERROR_CORRECTION"),
    LibraryMapping("CAPITALIZATION", None, None, False, "ERROR_CORRECTION"),
    LibraryMapping("PUNCTUATION", None, None, False, "ERROR_CORRECTION"),
)


def find_library_for_error(error_type: str) -> LibraryMapping | None:
    """Return the supported library for an error type, if one exists."""
    for mapping in LIBRARY_MAPPINGS:
        if mapping.error_type == error_type and mapping.is_supported:
            return mapping
    return None


def supported_error_types() -> list[str]:
    """Return error types that cloze drills can train today."""
    return [mapping.error_type for mapping in LIBRARY_MAPPINGS if mapping.is_supported]


def pending_libraries() -> list[LibraryMapping]:
    """Return mappings whose library file exists in the plan but is not supported yet."""
    return [mapping for mapping in LIBRARY_MAPPINGS if not mapping.is_supported and mapping.library_file is not None]
