"""Sentence tokenizer for word-reordering exercises."""

from __future__ import annotations

import re
from collections.abc import Sequence

PUNCTUATION_MARKS = frozenset(".,!?;:")

_TOKEN_RE = re.compile(r"[\w']+|[.,!?;:]")
_WHITESPACE_RE = re.compile(r"\s+")


def tokenize(text: str) -> list[str]:
    """Split text into word and punctuation tokens.

    Apostrophes stay inside words, so ``"I don't know."`` becomes
    ``["I", "don't", "know", "."]``.
    """
    return _TOKEN_RE.findall(text)


def detokenize(tokens: Sequence[str]) -> str:
    """Join tokens with single spaces, without a space before punctuation."""
    parts: list[str] = []
    for index, token in enumerate(tokens):
        if index > 0 and not is_punctuation(token):
            parts.append(" ")
        parts.append(token)
    return "".join(parts)


def is_punctuation(token: str) -> bool:
    """Return whether token is exactly one punctuation mark."""
    return token in PUNCTUATION_MARKS


def tokens_match(left: str, right: str) -> bool:
    """Compare tokens: punctuation exactly, words case-insensitively."""
    if is_punctuation(left) or is_punctuation(right):
        return left == right
    return left.casefold() == right.casefold()


def mask_word_at_index(words: Sequence[str], mask_index: int, mask: str = "___") -> str:
    """Return detokenized sentence with the word at `mask_index` replaced by `mask`."""
    return detokenize([mask if index == mask_index else word for index, word in enumerate(words)])


def split_into_words(sentence: str) -> list[str]:
    """Split on whitespace runs, dropping empty parts."""
    return [part for part in _WHITESPACE_RE.split(sentence) if part]


def count_words(sentence: str) -> int:
    """Count word tokens, ignoring punctuation."""
    return len([token for token in tokenize(sentence) if not is_punctuation(token)])
