"""Deterministic string similarity helpers for entity resolution."""

from __future__ import annotations

import math
import re
import unicodedata
from collections import Counter

_POSSESSIVE_MARK_RE = re.compile(r"['’]")
_DISALLOWED_RE = re.compile(r"[^\w\s.-]|_")
_MULTISPACE_RE = re.compile(r"\s+")


def normalize_entity_text(value: str) -> str:
    """Normalize entity names/aliases for equality matching."""

    if not value:
        return ""
    decomposed = unicodedata.normalize("NFKD", value.lower())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    stripped = _POSSESSIVE_MARK_RE.sub("", stripped)
    cleaned = _DISALLOWED_RE.sub("", stripped)
    return _MULTISPACE_RE.sub(" ", cleaned).strip()


def jaro_winkler(left: str, right: str) -> float:
    """Case-insensitive Jaro-Winkler similarity in [0, 1]."""

    if left == right:
        return 1.0
    s1 = left.lower()
    s2 = right.lower()
    window = max(len(s1), len(s2)) // 2 - 1
    if window < 0:
        return 0.0

    s1_matches = [False] * len(s1)
    s2_matches = [False] * len(s2)
    matches = 0
    for i, ch in enumerate(s1):
        lo = max(0, i - window)
        hi = min(i + window + 1, len(s2))
        for j in range(lo, hi):
            if s2_matches[j] or s2[j] != ch:
                continue
            s1_matches[i] = True
            s2_matches[j] = True
            matches += 1
            break
    if matches == 0:
        return 0.0

    transpositions = 0
    k = 0
    for i, ch in enumerate(s1):
        if not s1_matches[i]:
            continue
        while not s2_matches[k]:
            k += 1
        if ch != s2[k]:
            transpositions += 1
        k += 1

    jaro = (matches / len(s1) + matches / len(s2) + (matches - transpositions / 2) / matches) / 3
    prefix = 0
    while prefix < 4 and prefix < len(s1) and prefix < len(s2) and s1[prefix] == s2[prefix]:
        prefix += 1
    return jaro + prefix * 0.1 * (1 - jaro)


def ngram_cosine(left: str, right: str, n: int = 3) -> float:
    """Cosine similarity of padded character n-gram counts."""

    left_grams = _ngram_counts(left, n)
    right_grams = _ngram_counts(right, n)
    left_norm = math.sqrt(sum(v * v for v in left_grams.values()))
    right_norm = math.sqrt(sum(v * v for v in right_grams.values()))
    if left_norm == 0 or right_norm == 0:
        return 0.0
    dot = sum(count * right_grams.get(gram, 0) for gram, count in left_grams.items())
    return dot / (left_norm * right_norm)


def string_similarity(left: str, right: str) -> float:
    """Composite similarity: 0.6 Jaro-Winkler + 0.4 trigram cosine."""

    if left == right:
        return 1.0
    score = 0.6 * jaro_winkler(left, right) + 0.4 * ngram_cosine(left, right, 3)
    return min(1.0, max(0.0, score))


def _ngram_counts(value: str, n: int) -> Counter[str]:
    padded = f" {value.lower()} "
    return Counter(padded[i : i + n] for i in range(len(padded) - n + 1))
