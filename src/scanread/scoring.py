"""
Confidence scoring for merged transcripts.

The score starts from the mean pass confidence and receives small bounded
boosts for signs of well-formed text. It is pulled toward, but never
reaches, a 0.99 ceiling.
"""

import logging
import re
import string
from typing import Optional, Sequence, AbstractSet

from .lexicon import COMMON_WORDS

logger = logging.getLogger(__name__)

CONFIDENCE_CEILING = 0.99
MERGED_FLOOR = 0.85
PRE_PULL_CAP = 0.98
PULL_START = 0.7
PULL_FACTOR = 0.5

COMMON_SUFFIXES = (
    'ing', 'ed', 'tion', 'sion', 'ment', 'ness', 'ly', 'er', 'est',
    'able', 'ible', 'ful', 'less', 'ous', 'ive', 'al', 'ity',
)
COMMON_PREFIXES = (
    'un', 're', 'dis', 'pre', 'mis', 'non', 'over', 'under', 'sub', 'inter', 'trans',
)
MIN_STEM_LENGTH = 3

_VOWEL = re.compile(r'[aeiou]')
_CONSONANT = re.compile(r'[bcdfghjklmnpqrstvwxyz]')
_CONSONANT_RUN = re.compile(r'[bcdfghjklmnpqrstvwxyz]{5,}')
_NUMERIC = re.compile(r'[\d.,:/%+-]+')
_CODE = re.compile(r'[a-z0-9-]+')


# ============================================================================
# Word Validity
# ============================================================================

def is_likely_word(word: str, vocabulary: Optional[AbstractSet[str]] = None) -> bool:
    """
    Decide whether a token looks like a real word.

    Only tokens longer than 20 characters that match none of the word,
    affix, number, code or vowel/consonant patterns are rejected.

    Args:
        word: Token, possibly with surrounding punctuation
        vocabulary: Known lower-case words (common English when None)

    Returns:
        True if the token is plausibly a word, number or code
    """
    vocabulary = COMMON_WORDS if vocabulary is None else vocabulary
    token = word.strip(string.punctuation).lower()

    if len(token) <= 1:
        return True
    if token in vocabulary:
        return True

    for suffix in COMMON_SUFFIXES:
        if token.endswith(suffix) and len(token) - len(suffix) >= MIN_STEM_LENGTH:
            return True
    for prefix in COMMON_PREFIXES:
        if token.startswith(prefix) and len(token) - len(prefix) >= MIN_STEM_LENGTH:
            return True

    if _NUMERIC.fullmatch(token) and any(c.isdigit() for c in token):
        return True
    if _CODE.fullmatch(token) and any(c.isdigit() for c in token):
        return True

    if _VOWEL.search(token) and _CONSONANT.search(token) and not _CONSONANT_RUN.search(token):
        return True

    if len(token) <= 4:
        return True

    return 2 <= len(token) <= 20


def valid_word_ratio(text: str, vocabulary: Optional[AbstractSet[str]] = None) -> float:
    """Fraction of tokens longer than two characters that look like words."""
    words = [w for w in text.split() if len(w) > 2]
    if not words:
        return 0.0
    valid = sum(1 for w in words if is_likely_word(w, vocabulary))
    return valid / len(words)


# ============================================================================
# Confidence
# ============================================================================

def score_confidence(
    text: str,
    pass_confidences: Sequence[float],
    corrections_count: int = 0,
    merged: bool = False,
    vocabulary: Optional[AbstractSet[str]] = None
) -> float:
    """
    Compute the overall confidence of a transcript.

    Args:
        text: Final transcript
        pass_confidences: Confidences of the passes that produced it
        corrections_count: Number of corrections applied
        merged: True if several passes were merged
        vocabulary: Known words for the valid-word ratio

    Returns:
        Confidence in [0, 0.99)
    """
    if not pass_confidences or not text.strip():
        return 0.0

    score = sum(pass_confidences) / len(pass_confidences)
    if merged:
        score = max(score, MERGED_FLOOR)

    score += min(corrections_count * 0.02, 0.05)
    score += valid_word_ratio(text, vocabulary) * 0.05

    stripped = text.strip()
    if len(stripped) > 20:
        score += 0.01
    if len(stripped) > 50:
        score += 0.02
    if stripped[-1] in ".!?":
        score += 0.01
    if stripped[0].isupper():
        score += 0.01
    if any(c.isdigit() for c in stripped):
        score += 0.01

    score = min(max(score, 0.0), PRE_PULL_CAP)
    if score > PULL_START:
        score += (CONFIDENCE_CEILING - score) * PULL_FACTOR

    return min(max(score, 0.0), CONFIDENCE_CEILING - 0.005)
