"""Core content records supplied to the game reducers."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True)
class ScramblerExercise:
    """One sentence to rebuild from scrambled words."""

    id: str
    original_sentence: str
    scrambled_words: tuple[str, ...]
    alternatives: tuple[str, ...] = ()
    translation: str | None = None
    level: str = "A1"
    tense: str = "Present Simple"


@dataclass(frozen=True)
class ClozeQuestion:
    """One gap-fill item."""

    id: str
    unit_id: str
    original_sentence: str
    masked_sentence: str
    correct_answer: str
    options: tuple[str, ...]
    gap_index: int
    translation: str | None = None
    difficulty: float = 1.0


@dataclass(frozen=True)
class ClozeDrill:
    """Ordered cloze questions taken from one library."""

    library_id: str
    library_name: str
    library_emoji: str
    cefr_level: str
    questions: tuple[ClozeQuestion, ...]

    @property
    def total_questions(self) -> int:
        return len(self.questions)


class L1Source(Enum):
    """Native language behind an interference pattern."""

    HEBREW = "HEBREW"
    RUSSIAN = "RUSSIAN"
    ARABIC = "ARABIC"


class ErrorCategory(Enum):
    """Kind of grammar error; batches avoid repeating one back to back."""

    SYNTAX = "SYNTAX"
    PREPOSITION = "PREPOSITION"
    LEXICAL = "LEXICAL"
    TENSE = "TENSE"
    ARTICLE = "ARTICLE"
    WORD_ORDER = "WORD_ORDER"


@dataclass(frozen=True)
class L1Trap:
    """Static interference pattern: a typical wrong phrase and its correction."""

    id: str
    l1_source: L1Source
    category: ErrorCategory
    context: str
    error_pattern: str
    correct_pattern: str
    explanation: str
    explanations: Mapping[str, str] = field(default_factory=dict)

    def get_explanation(self, locale_code: str) -> str:
        """Return localized explanation, falling back to English, then the legacy field."""
        localized = self.explanations.get(locale_code)
        if localized is not None:
            return localized
        english = self.explanations.get("en")
        if english is not None:
            return english
        return self.explanation


@dataclass(frozen=True)
class SniperRound:
    """One planned sniper round, ready for display."""

    trap: L1Trap
    threat_score: float
    is_novelty: bool
