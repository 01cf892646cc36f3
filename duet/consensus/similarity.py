"""Lexical similarity helpers for consensus building."""

from __future__ import annotations

# Words of this length or shorter are ignored when measuring agreement
_MIN_SIGNIFICANT_LENGTH = 3


def significant_words(text: str) -> set[str]:
    """Lowercased whitespace-separated words longer than three characters."""
    return {w for w in text.lower().split() if len(w) > _MIN_SIGNIFICANT_LENGTH}


def lexical_agreement(text_a: str, text_b: str) -> float:
    """Shared significant words over the larger vocabulary (0 if both empty)."""
    words_a = significant_words(text_a)
    words_b = significant_words(text_b)
    largest = max(len(words_a), len(words_b))
    if largest == 0:
        return 0.0
    return len(words_a & words_b) / largest


def jaccard_similarity(text_a: str, text_b: str) -> float:
    """Word-level Jaccard similarity of two strings (0 if both empty)."""
    words_a = set(text_a.lower().split())
    words_b = set(text_b.lower().split())
    union = words_a | words_b
    if not union:
        return 0.0
    return len(words_a & words_b) / len(union)
