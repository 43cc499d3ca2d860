from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from lingocore.models import (  # noqa: E402
    ClozeDrill,
    ClozeQuestion,
    ErrorCategory,
    L1Source,
    L1Trap,
    ScramblerExercise,
)


@pytest.fixture
def park_exercise() -> ScramblerExercise:
    """Exercise whose scrambled words are stored in original order."""
    return ScramblerExercise(
        id="park",
        original_sentence="I often go to the park.",
        scrambled_words=("I", "often", "go", "to", "the", "park", "."),
        alternatives=("Often I go to the park.",),
        level="A2",
    )


@pytest.fixture
def cloze_drill() -> ClozeDrill:
    questions = tuple(
        ClozeQuestion(
            id=f"q{idx}",
            unit_id="u1",
            original_sentence=sentence,
            masked_sentence=masked,
            correct_answer=answer,
            options=options,
            gap_index=gap,
        )
        for idx, (sentence, masked, answer, options, gap) in enumerate(
            [
                ("I went to the store.", "I ___ to the store.", "went", ("go", "went", "gone"), 1),
                ("She has a cat.", "She ___ a cat.", "has", ("have", "has"), 1),
                ("They are here.", "They ___ here.", "are", ("is", "are"), 1),
            ]
        )
    )
    return ClozeDrill(
        library_id="verbs",
        library_name="Verb Tenses",
        library_emoji="*",
        cefr_level="A2",
        questions=questions,
    )


@pytest.fixture
def traps() -> list[L1Trap]:
    return [
        L1Trap(
            id="he-bus",
            l1_source=L1Source.HEBREW,
            category=ErrorCategory.PREPOSITION,
            context="transport",
            error_pattern="I go with the bus",
            correct_pattern="I go by bus",
            explanation="Use 'by' with means of transport.",
            explanations={"ru": "Use 'by' for transport (ru)."},
        ),
        L1Trap(
            id="ru-article",
            l1_source=L1Source.RUSSIAN,
            category=ErrorCategory.ARTICLE,
            context="objects",
            error_pattern="I have car",
            correct_pattern="I have a car",
            explanation="Singular countable nouns need an article.",
        ),
        L1Trap(
            id="ar-tense",
            l1_source=L1Source.ARABIC,
            category=ErrorCategory.PREPOSITION,
            context="time",
            error_pattern="I am here since Monday",
            correct_pattern="I have been here since Monday",
            explanation="Use present perfect with 'since'.",
        ),
    ]
