"""
Word lists and the dictionary/spell-check interface.

Provides:
- Common English words and medical vocabulary
- build_vocabulary() for the accepted-word set of a recognition call
- SpellChecker interface and a word-list implementation
"""

import logging
from typing import Iterable, List, FrozenSet

from rapidfuzz.distance import Levenshtein

logger = logging.getLogger(__name__)


# ============================================================================
# Word Lists
# ============================================================================

COMMON_WORDS = frozenset([
    'the', 'be', 'to', 'of', 'and', 'a', 'in', 'that', 'have', 'i',
    'it', 'for', 'not', 'on', 'with', 'he', 'as', 'you', 'do', 'at',
    'this', 'but', 'his', 'by', 'from', 'they', 'we', 'say', 'her', 'she',
    'or', 'an', 'will', 'my', 'one', 'all', 'would', 'there', 'their', 'what',
    'so', 'up', 'out', 'if', 'about', 'who', 'get', 'which', 'go', 'me',
    'when', 'make', 'can', 'like', 'time', 'no', 'just', 'him', 'know', 'take',
    'people', 'into', 'year', 'your', 'good', 'some', 'could', 'them', 'see', 'other',
    'than', 'then', 'now', 'look', 'only', 'come', 'its', 'over', 'think', 'also',
    'back', 'after', 'use', 'two', 'how', 'our', 'work', 'first', 'well', 'way',
    'even', 'new', 'want', 'because', 'any', 'these', 'give', 'day', 'most', 'us',
    'is', 'are', 'was', 'were', 'been', 'being', 'has', 'had', 'does', 'did',
    'name', 'date', 'page', 'line', 'text', 'note', 'total', 'number', 'address', 'signature',
    'hello', 'world', 'test', 'sample',
    'patient', 'doctor', 'medical', 'medicine', 'health', 'hospital', 'prescription', 'diagnosis',
    'treatment', 'medication', 'dose', 'tablet', 'tablets', 'capsule', 'capsules', 'injection',
    'symptoms', 'once', 'twice', 'daily', 'morning', 'evening', 'night', 'before', 'meals',
    'water',
])

MEDICAL_TERMS = frozenset([
    'mg', 'ml', 'mcg', 'kg', 'g', 'l', 'iu', 'bid', 'tid', 'qid', 'prn', 'stat',
    'po', 'iv', 'im', 'sc', 'sl', 'pr', 'od', 'os', 'ou', 'ac', 'pc', 'hs',
    'hypertension', 'diabetes', 'hyperlipidemia', 'hypothyroidism', 'anxiety', 'depression',
    'arthritis', 'asthma', 'copd', 'gerd', 'infection', 'inflammation', 'pain', 'fever',
    'abdomen', 'cardiac', 'cerebral', 'hepatic', 'pulmonary', 'renal', 'thoracic',
    'pneumonia', 'bronchitis', 'anemia',
    'biopsy', 'endoscopy', 'laparoscopy', 'ultrasound', 'radiography',
    'antibiotic', 'analgesic', 'antihypertensive', 'antipyretic',
])

MEDICAL_ABBREVIATIONS = {
    'BP': 'Blood Pressure',
    'HR': 'Heart Rate',
    'RR': 'Respiratory Rate',
    'T': 'Temperature',
    'O2': 'Oxygen',
    'SPO2': 'Oxygen Saturation',
    'BMI': 'Body Mass Index',
    'CBC': 'Complete Blood Count',
    'ECG': 'Electrocardiogram',
    'EKG': 'Electrocardiogram',
    'CT': 'Computed Tomography',
    'MRI': 'Magnetic Resonance Imaging',
    'IV': 'Intravenous',
    'IM': 'Intramuscular',
    'PO': 'Per Oral',
    'PRN': 'As Needed',
    'BID': 'Twice Daily',
    'TID': 'Three Times Daily',
    'QID': 'Four Times Daily',
    'QD': 'Once Daily',
    'STAT': 'Immediately',
    'NPO': 'Nothing By Mouth',
    'DNR': 'Do Not Resuscitate',
    'RX': 'Prescription',
    'DX': 'Diagnosis',
    'HX': 'History',
    'SX': 'Symptoms',
    'TX': 'Treatment',
}

DRUG_NAMES = frozenset([
    'acetaminophen', 'ibuprofen', 'aspirin', 'amoxicillin', 'azithromycin',
    'metformin', 'lisinopril', 'atorvastatin', 'omeprazole', 'amlodipine',
    'metoprolol', 'losartan', 'gabapentin', 'hydrochlorothiazide', 'hydrocodone',
    'sertraline', 'fluoxetine', 'escitalopram', 'trazodone', 'alprazolam',
    'prednisone', 'albuterol', 'levothyroxine', 'pantoprazole', 'furosemide',
    'montelukast',
])


def build_vocabulary(medical_mode: bool = False) -> FrozenSet[str]:
    """
    Lower-case words accepted as known for one recognition call.

    Medical mode adds medical terms, abbreviations and drug names.
    """
    if not medical_mode:
        return COMMON_WORDS
    abbreviations = {abbr.lower() for abbr in MEDICAL_ABBREVIATIONS}
    return COMMON_WORDS | MEDICAL_TERMS | DRUG_NAMES | abbreviations


# ============================================================================
# Spell Checking
# ============================================================================

class SpellChecker:
    """
    Dictionary service used by the spell-check correction step.

    Implementations answer whether a word is known and suggest known words
    ordered by ascending edit distance.
    """

    def is_correct(self, word: str) -> bool:
        raise NotImplementedError

    def suggestions(self, word: str, max_suggestions: int = 5) -> List[str]:
        raise NotImplementedError


class WordListSpellChecker(SpellChecker):
    """Spell checker backed by an in-memory word list."""

    def __init__(self, words: Iterable[str] = COMMON_WORDS, max_distance: int = 2):
        self.words = frozenset(w.lower() for w in words)
        self.custom_words = set()
        self.max_distance = max_distance

    def add_word(self, word: str) -> None:
        self.custom_words.add(word.lower())

    def is_correct(self, word: str) -> bool:
        normalized = "".join(c for c in word.lower() if c.isalpha())
        if not normalized:
            return True
        return normalized in self.words or normalized in self.custom_words

    def suggestions(self, word: str, max_suggestions: int = 5) -> List[str]:
        """
        Known words within ``max_distance`` edits of ``word``.

        Returns:
            Up to ``max_suggestions`` words, closest first (ties alphabetical)
        """
        normalized = word.lower()
        scored = []

        for candidate in self.words | self.custom_words:
            distance = Levenshtein.distance(normalized, candidate, score_cutoff=self.max_distance)
            if distance <= self.max_distance:
                scored.append((distance, candidate))

        scored.sort()
        return [candidate for _, candidate in scored[:max_suggestions]]
