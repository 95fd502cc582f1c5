"""
Merging of per-variant transcripts into one.

The highest-confidence pass is taken as the base text. Each base word that
most passes agree on is kept; the others are replaced by the most frequent
close spelling (edit distance <= 2) seen across all passes.

Spellings seen equally often are ranked by the vocabulary first: a known
word wins over unknown ones. Only then do distance to the other candidates,
pass confidence and first appearance decide. The merged text therefore
depends on the vocabulary passed in (common English words by default).
"""

import logging
import re
from typing import Dict, List, Optional, Sequence, AbstractSet

from rapidfuzz.distance import Levenshtein

from .lexicon import COMMON_WORDS

logger = logging.getLogger(__name__)

MAX_EDIT_DISTANCE = 2

_WHITESPACE = re.compile(r'(\s+)')


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance between two strings."""
    return Levenshtein.distance(a, b)


def match_case(replacement: str, original: str) -> str:
    """
    Apply the casing pattern of ``original`` to ``replacement``.

    All caps stays all caps, a leading capital gives title case, anything
    else gives lower case.
    """
    if not original:
        return replacement
    if original == original.upper():
        return replacement.upper()
    if original[0] == original[0].upper():
        return replacement[:1].upper() + replacement[1:].lower()
    return replacement.lower()


class _WordStats:
    __slots__ = ("count", "confidence", "order")

    def __init__(self, confidence: float, order: int):
        self.count = 0
        self.confidence = confidence
        self.order = order


def _build_frequency_table(passes) -> Dict[str, _WordStats]:
    table = {}
    for result in passes:
        for word in result.text.split():
            normalized = word.lower()
            stats = table.get(normalized)
            if stats is None:
                stats = table[normalized] = _WordStats(result.confidence, len(table))
            stats.count += 1
            stats.confidence = max(stats.confidence, result.confidence)
    return table


def _best_candidate(
    word: str,
    table: Dict[str, _WordStats],
    vocabulary: AbstractSet[str]
) -> Optional[str]:
    candidates = {
        candidate: stats for candidate, stats in table.items()
        if edit_distance(word, candidate) <= MAX_EDIT_DISTANCE
    }
    if not candidates:
        return None

    top_count = max(stats.count for stats in candidates.values())
    top = [c for c, stats in candidates.items() if stats.count == top_count]
    if len(top) == 1:
        return top[0]

    # Equal counts: prefer known words, then the spelling closest to all
    # other candidates, then the most confident, then the first seen
    def rank(candidate: str):
        spread = sum(
            stats.count * edit_distance(candidate, other)
            for other, stats in candidates.items() if other != candidate
        )
        stats = candidates[candidate]
        return (candidate not in vocabulary, spread, -stats.confidence, stats.order)

    return min(top, key=rank)


def combine_passes(passes: Sequence, vocabulary: Optional[AbstractSet[str]] = None) -> str:
    """
    Merge the transcripts of several passes over the same image.

    Args:
        passes: PassResult-like objects with ``text`` and ``confidence``
        vocabulary: Known lower-case words; among equally frequent
            spellings a known word is preferred (COMMON_WORDS when None)

    Returns:
        Merged text; whitespace between words comes from the base pass
    """
    if not passes:
        return ""
    if len(passes) == 1:
        return passes[0].text

    vocabulary = COMMON_WORDS if vocabulary is None else vocabulary

    # Stable sort keeps input order among equal confidences
    base = sorted(passes, key=lambda p: p.confidence, reverse=True)[0]
    table = _build_frequency_table(passes)
    majority = len(passes) / 2

    merged: List[str] = []
    for token in _WHITESPACE.split(base.text):
        if not token.strip():
            merged.append(token)
            continue

        normalized = token.lower()
        stats = table.get(normalized)
        if stats is not None and stats.count >= majority:
            merged.append(token)
            continue

        best = _best_candidate(normalized, table, vocabulary)
        if best is not None and best != normalized:
            logger.debug(f"Consensus replaced {token!r} with {best!r}")
            merged.append(match_case(best, token))
        else:
            merged.append(token)

    return "".join(merged)
