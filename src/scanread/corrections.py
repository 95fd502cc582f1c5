"""
Post-recognition text corrections.

Provides:
- OCR character fixes (rn -> m, digits inside words)
- Dictionary spell checking
- Contextual fixes (doubled words, broken contractions)
- Formatting clean-up

Every change made by the first three steps is logged as a CorrectionRecord.
"""

import logging
import re
import string
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple, Dict, AbstractSet

from .consensus import match_case
from .lexicon import SpellChecker, WordListSpellChecker, COMMON_WORDS

logger = logging.getLogger(__name__)


class CorrectionReason(Enum):
    """Why a token was changed."""
    OCR_CHARACTER_FIX = "ocr-character-fix"
    SPELL_CHECK = "spell-check"
    CONTEXTUAL = "contextual"


@dataclass(frozen=True)
class CorrectionRecord:
    """One applied correction."""
    original: str
    corrected: str
    reason: CorrectionReason

    def to_dict(self) -> Dict[str, str]:
        return {
            "original": self.original,
            "corrected": self.corrected,
            "reason": self.reason.value,
        }


_WHITESPACE = re.compile(r'(\s+)')
_WORD_WITH_PUNCT = re.compile(r'(\W*)([A-Za-z]+)(\W*)')

_DIGIT_FIXES = (
    (re.compile(r'1(?=[a-zA-Z])'), 'l'),
    (re.compile(r'(?<=[a-zA-Z])1'), 'l'),
    (re.compile(r'0(?=[a-zA-Z])'), 'o'),
    (re.compile(r'(?<=[a-zA-Z])0'), 'o'),
)

_CONTEXTUAL_FIXES = (
    (re.compile(r"\b(the|an|a|of|to|and) \1\b", re.IGNORECASE), lambda m: m.group(1)),
    (re.compile(r"(?<![\w'])[l1]'m\b"), lambda m: "I'm"),
    (re.compile(r"\b(don|can|won) 't\b", re.IGNORECASE), lambda m: m.group(1) + "'t"),
)


def _is_known(word: str, vocabulary: AbstractSet[str]) -> bool:
    return word.strip(string.punctuation).lower() in vocabulary


# ============================================================================
# Correction Steps
# ============================================================================

def fix_ocr_errors(
    text: str,
    records: List[CorrectionRecord],
    vocabulary: AbstractSet[str] = COMMON_WORDS
) -> str:
    """
    Fix character confusions typical of OCR output.

    'rn' becomes 'm' when that turns an unknown token into a known word.
    In tokens mixing letters and digits, a 1 or 0 next to a letter becomes
    'l' or 'o' when the result is a known word.
    """
    fixed_tokens = []

    for token in _WHITESPACE.split(text):
        if not token.strip():
            fixed_tokens.append(token)
            continue

        fixed = token

        if 'rn' in fixed:
            with_m = fixed.replace('rn', 'm')
            if _is_known(with_m, vocabulary) and not _is_known(fixed, vocabulary):
                records.append(CorrectionRecord(fixed, with_m, CorrectionReason.OCR_CHARACTER_FIX))
                fixed = with_m

        if any(c.isdigit() for c in fixed) and any(c.isalpha() for c in fixed):
            num_fixed = fixed
            for pattern, letter in _DIGIT_FIXES:
                num_fixed = pattern.sub(letter, num_fixed)
            if num_fixed != fixed and _is_known(num_fixed, vocabulary):
                records.append(CorrectionRecord(fixed, num_fixed, CorrectionReason.OCR_CHARACTER_FIX))
                fixed = num_fixed

        fixed_tokens.append(fixed)

    return "".join(fixed_tokens)


def spell_check(
    text: str,
    records: List[CorrectionRecord],
    checker: SpellChecker,
    max_length_difference: int = 2
) -> str:
    """
    Replace unknown words with the closest dictionary suggestion.

    Only purely alphabetic words of three or more letters are checked;
    surrounding punctuation is kept and the original casing re-applied.
    """
    checked = []

    for token in _WHITESPACE.split(text):
        match = _WORD_WITH_PUNCT.fullmatch(token)
        if not match or len(match.group(2)) < 3:
            checked.append(token)
            continue

        lead, word, trail = match.groups()
        if checker.is_correct(word):
            checked.append(token)
            continue

        replacement = next(
            (s for s in checker.suggestions(word.lower())
             if abs(len(s) - len(word)) <= max_length_difference),
            None
        )
        if replacement is None:
            checked.append(token)
            continue

        corrected = match_case(replacement, word)
        records.append(CorrectionRecord(word, corrected, CorrectionReason.SPELL_CHECK))
        checked.append(lead + corrected + trail)

    return "".join(checked)


def contextual_correct(text: str, records: List[CorrectionRecord]) -> str:
    """Collapse doubled function words and repair split contractions."""
    result = text

    for pattern, replace in _CONTEXTUAL_FIXES:
        def substitute(match):
            corrected = replace(match)
            records.append(CorrectionRecord(match.group(0), corrected, CorrectionReason.CONTEXTUAL))
            return corrected

        result = pattern.sub(substitute, result)

    return result


def clean_formatting(text: str) -> str:
    """Normalize spacing around punctuation and between lines."""
    result = re.sub(r' {2,}', ' ', text)
    result = re.sub(r' ([.,;:!?])', r'\1', result)
    result = re.sub(r'([.,;:!?])([A-Za-z])', r'\1 \2', result)
    result = re.sub(r'\n{3,}', '\n\n', result)
    return "\n".join(line.strip() for line in result.split("\n")).strip()


# ============================================================================
# Full Post-processing
# ============================================================================

def post_process(
    text: str,
    config=None,
    spell_checker: Optional[SpellChecker] = None,
    vocabulary: Optional[AbstractSet[str]] = None
) -> Tuple[str, List[CorrectionRecord]]:
    """
    Run the enabled correction steps on a merged transcript.

    Args:
        text: Merged transcript
        config: RecognitionConfig (defaults used when None)
        spell_checker: Dictionary service; a word-list checker over
            ``vocabulary`` is used when spell checking is on and none given
        vocabulary: Known lower-case words

    Returns:
        Tuple of (corrected text, corrections in the order applied)
    """
    from .config import RecognitionConfig

    config = config or RecognitionConfig()
    vocabulary = COMMON_WORDS if vocabulary is None else vocabulary
    records: List[CorrectionRecord] = []

    result = text
    if config.ocr_character_fixes:
        result = fix_ocr_errors(result, records, vocabulary)

    if config.spell_check:
        checker = spell_checker or WordListSpellChecker(vocabulary)
        result = spell_check(result, records, checker)

    if config.contextual_correction:
        result = contextual_correct(result, records)

    result = clean_formatting(result)

    if records:
        logger.debug(f"Applied {len(records)} corrections")
    return result, records
