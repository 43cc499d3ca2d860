"""XP rewards and CEFR-style level progression shared by all game modes.

Reward rules:
- higher CEFR levels pay more (A1 x1.0 up to C2 x5.0);
- a clean first attempt earns the full reward, a self-corrected one 70%;
- giving up (hint used) earns nothing.

All rewards are truncated toward zero, never rounded.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

BASE_XP = 10

SELF_CORRECTED_MULTIPLIER = 0.7


class CEFRLevel(Enum):
    """Common European Framework of Reference proficiency tiers."""

    A1 = "A1"
    A2 = "A2"
    B1 = "B1"
    B2 = "B2"
    C1 = "C1"
    C2 = "C2"

    @property
    def code(self) -> str:
        return self.value

    @property
    def display_name(self) -> str:
        return _LEVEL_DISPLAY_NAMES[self]

    @classmethod
    def from_code(cls, code: str) -> CEFRLevel:
        """Resolve a level code case-insensitively; unknown codes map to A1."""
        normalized = code.strip().upper()
        for level in cls:
            if level.value == normalized:
                return level
        return cls.A1


_LEVEL_DISPLAY_NAMES = {
    CEFRLevel.A1: "Beginner",
    CEFRLevel.A2: "Elementary",
    CEFRLevel.B1: "Intermediate",
    CEFRLevel.B2: "Upper-Intermediate",
    CEFRLevel.C1: "Advanced",
    CEFRLevel.C2: "Mastery",
}

LEVEL_MULTIPLIERS = {
    CEFRLevel.A1: 1.0,
    CEFRLevel.A2: 1.2,
    CEFRLevel.B1: 1.5,
    CEFRLevel.B2: 2.0,
    CEFRLevel.C1: 3.0,
    CEFRLevel.C2: 5.0,
}


def _as_level(level: CEFRLevel | str) -> CEFRLevel:
    if isinstance(level, CEFRLevel):
        return level
    return CEFRLevel.from_code(level)


def level_multiplier(level: CEFRLevel | str) -> float:
    """Return reward multiplier for a CEFR level."""
    return LEVEL_MULTIPLIERS[_as_level(level)]


def accuracy_multiplier(is_perfect: bool, hint_used: bool) -> float:
    """Return 0.0 for a give-up, 1.0 for a clean win, 0.7 for a self-corrected win."""
    if hint_used:
        return 0.0
    if is_perfect:
        return 1.0
    return SELF_CORRECTED_MULTIPLIER


def _complexity_multiplier(sentence_length: int) -> float:
    if sentence_length <= 6:
        return 1.0
    if sentence_length <= 10:
        return 1.2
    return 1.5


def scrambler_xp(level: CEFRLevel | str, sentence_length: int, is_perfect: bool, hint_used: bool) -> int:
    """Return XP for one sentence-building question."""
    total = (
        BASE_XP
        * level_multiplier(level)
        * _complexity_multiplier(sentence_length)
        * accuracy_multiplier(is_perfect, hint_used)
    )
    return int(total)


def cloze_xp(level: CEFRLevel | str, correct_count: int, accuracy: float, was_overtime: bool) -> int:
    """Return level-scaled XP for a finished cloze drill."""
    if accuracy >= 1.0:
        accuracy_bonus = 2.0
    elif accuracy >= 0.9:
        accuracy_bonus = 1.5
    elif accuracy >= 0.7:
        accuracy_bonus = 1.2
    else:
        accuracy_bonus = 1.0
    time_penalty = 0.9 if was_overtime else 1.0
    return int(correct_count * BASE_XP * level_multiplier(level) * accuracy_bonus * time_penalty)


def sniper_xp(level: CEFRLevel | str, correct_count: int, accuracy: float, cover_integrity: int) -> int:
    """Return level-scaled XP for a finished sniper batch.

    `cover_integrity` is the 0-100 health value; full health adds a 50% survival bonus.
    """
    survival_bonus = 1.0 + cover_integrity / 200.0
    if accuracy >= 0.95:
        accuracy_bonus = 1.5
    elif accuracy >= 0.8:
        accuracy_bonus = 1.2
    else:
        accuracy_bonus = 1.0
    return int(correct_count * BASE_XP * level_multiplier(level) * survival_bonus * accuracy_bonus)


def max_possible_xp(level: CEFRLevel | str, sentence_length: int) -> int:
    """Return the XP a clean first-attempt win would earn."""
    return scrambler_xp(level, sentence_length, is_perfect=True, hint_used=False)


@dataclass(frozen=True)
class LevelInfo:
    """One learner level band."""

    code: str
    name: str
    min_xp: int
    max_xp: int | None

    @property
    def display_name(self) -> str:
        return f"{self.code} {self.name}"


@dataclass(frozen=True)
class LevelProgress:
    """XP progress inside the current level band."""

    current: int
    required: int
    percentage: float
    is_max_level: bool


LEVELS: tuple[LevelInfo, ...] = (
    LevelInfo("A1", "Novice", 0, 500),
    LevelInfo("A2", "Apprentice", 500, 1500),
    LevelInfo("B1", "Intermediate", 1500, 3000),
    LevelInfo("B2", "Upper-Intermediate", 3000, 5000),
    LevelInfo("C1", "Advanced", 5000, 8000),
    LevelInfo("C2", "Master", 8000, None),
)


def level_for_xp(xp: int) -> LevelInfo:
    """Return the highest level whose threshold `xp` reaches."""
    current = LEVELS[0]
    for level in LEVELS:
        if xp >= level.min_xp:
            current = level
    return current


def level_code(xp: int) -> str:
    """Return level code (A1, A2, ...) for `xp`."""
    return level_for_xp(xp).code


def progress_to_next_level(xp: int) -> LevelProgress:
    """Return progress towards the next level.

    At the top level `required` equals `current` and `percentage` is 1.0.
    """
    level = level_for_xp(xp)
    xp_in_level = xp - level.min_xp
    if level.max_xp is None:
        return LevelProgress(current=xp_in_level, required=xp_in_level, percentage=1.0, is_max_level=True)

    required = level.max_xp - level.min_xp
    percentage = min(1.0, max(0.0, xp_in_level / required))
    return LevelProgress(current=xp_in_level, required=required, percentage=percentage, is_max_level=False)


def next_level(xp: int) -> LevelInfo | None:
    """Return the level after the current one, or None at the top."""
    index = LEVELS.index(level_for_xp(xp))
    if index < len(LEVELS) - 1:
        return LEVELS[index + 1]
    return None


def check_level_up(old_xp: int, new_xp: int) -> LevelInfo | None:
    """Return the new level when moving from `old_xp` to `new_xp` changes it."""
    old_level = level_for_xp(old_xp)
    new_level = level_for_xp(new_xp)
    if new_level.code != old_level.code:
        return new_level
    return None


def xp_to_next_level(xp: int) -> int:
    """Return XP still needed for the next level (0 at the top)."""
    level = level_for_xp(xp)
    if level.max_xp is None:
        return 0
    return level.max_xp - xp
