"""Lexical title similarity based on Levenshtein edit distance."""

from rapidfuzz.distance import Levenshtein

# Titles scoring strictly above this are treated as the same story.
SIMILARITY_THRESHOLD = 0.85


def normalize_title(title: str) -> str:
    """Lower-case a title and strip surrounding whitespace."""
    return title.lower().strip()


def levenshtein_distance(s1: str, s2: str) -> int:
    """
    Compute the edit distance between two strings.

    Insertions, deletions and substitutions each cost 1. Strings are
    compared code point by code point.
    """
    return Levenshtein.distance(s1, s2)


def similarity(title1: str, title2: str) -> float:
    """
    Score how alike two titles are, from 0.0 (unrelated) to 1.0 (identical).

    Titles are normalized first; two empty titles are identical. The score
    is one minus the edit distance over the longer title's length.
    """
    s1 = normalize_title(title1)
    s2 = normalize_title(title2)

    if s1 == s2:
        return 1.0

    return Levenshtein.normalized_similarity(s1, s2)
