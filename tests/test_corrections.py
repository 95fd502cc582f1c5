"""
Tests for post-recognition corrections and the word lists behind them.
"""

import pytest
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


class TestOcrFixes:
    """Test OCR character confusion fixes."""

    def test_rn_to_m(self):
        from scanread.corrections import fix_ocr_errors, CorrectionReason

        records = []
        result = fix_ocr_errors("Good rnorning", records)

        assert result == "Good morning"
        assert len(records) == 1
        assert records[0].original == "rnorning"
        assert records[0].reason == CorrectionReason.OCR_CHARACTER_FIX

    def test_known_rn_word_kept(self):
        """Test that a real word containing 'rn' is not touched."""
        from scanread.corrections import fix_ocr_errors

        records = []

        assert fix_ocr_errors("turn", records, vocabulary={"turn", "tum"}) == "turn"
        assert records == []

    def test_digits_in_words(self):
        """Test 1 -> l and 0 -> o next to letters."""
        from scanread.corrections import fix_ocr_errors

        records = []
        result = fix_ocr_errors("he11o w0rld", records)

        assert result == "hello world"
        assert [r.corrected for r in records] == ["hello", "world"]

    def test_numbers_untouched(self):
        """Test that plain numbers and unknown results are left alone."""
        from scanread.corrections import fix_ocr_errors

        records = []

        assert fix_ocr_errors("10 mg, room 1A", records) == "10 mg, room 1A"
        assert records == []

    def test_whitespace_preserved(self):
        from scanread.corrections import fix_ocr_errors

        assert fix_ocr_errors("a  w0rld\n", []) == "a  world\n"


class TestSpellCheck:
    """Test dictionary spell checking."""

    @pytest.fixture
    def checker(self):
        from scanread.lexicon import WordListSpellChecker
        return WordListSpellChecker()

    def test_replaces_with_casing_and_punctuation(self, checker):
        from scanread.corrections import spell_check, CorrectionReason

        records = []
        result = spell_check("Hospitel note for the patiant,", records, checker)

        assert result == "Hospital note for the patient,"
        assert [(r.original, r.corrected) for r in records] == [
            ("Hospitel", "Hospital"),
            ("patiant", "patient"),
        ]
        assert all(r.reason == CorrectionReason.SPELL_CHECK for r in records)

    def test_short_words_skipped(self, checker):
        """Test that words under three letters are never changed."""
        from scanread.corrections import spell_check

        assert spell_check("xq zz", [], checker) == "xq zz"

    def test_no_suggestion(self, checker):
        """Test that words without close suggestions are kept."""
        from scanread.corrections import spell_check

        records = []

        assert spell_check("xylophonic", records, checker) == "xylophonic"
        assert records == []


class TestContextual:
    """Test contextual corrections."""

    def test_doubled_words(self):
        from scanread.corrections import contextual_correct, CorrectionReason

        records = []
        result = contextual_correct("Take the the tablet", records)

        assert result == "Take the tablet"
        assert records[0].reason == CorrectionReason.CONTEXTUAL

    def test_contractions(self):
        from scanread.corrections import contextual_correct

        records = []
        result = contextual_correct("l'm sure we don 't know", records)

        assert result == "I'm sure we don't know"
        assert len(records) == 2

    def test_normal_text_unchanged(self):
        from scanread.corrections import contextual_correct

        records = []

        assert contextual_correct("the other theme", records) == "the other theme"
        assert records == []


class TestPostProcess:
    """Test the full correction chain."""

    def test_clean_formatting(self):
        from scanread.corrections import clean_formatting

        text = "  Hello ,world  again .\n\n\n\nNext  line "

        assert clean_formatting(text) == "Hello, world again.\n\nNext line"

    def test_steps_follow_config(self):
        from scanread.config import RecognitionConfig
        from scanread.corrections import post_process

        text = "Hospitel rnorning the the day"

        off = RecognitionConfig(ocr_character_fixes=False, contextual_correction=False)
        result, records = post_process(text, off)
        assert result == text
        assert records == []

        on = RecognitionConfig(spell_check=True)
        result, records = post_process(text, on)
        assert result == "Hospital morning the day"
        assert [r.reason.value for r in records] == [
            "ocr-character-fix", "spell-check", "contextual",
        ]

    def test_record_to_dict(self):
        from scanread.corrections import CorrectionRecord, CorrectionReason

        record = CorrectionRecord("he11o", "hello", CorrectionReason.OCR_CHARACTER_FIX)

        assert record.to_dict() == {
            "original": "he11o",
            "corrected": "hello",
            "reason": "ocr-character-fix",
        }


class TestLexicon:
    """Test word lists and the word-list spell checker."""

    def test_medical_vocabulary(self):
        from scanread.lexicon import build_vocabulary, COMMON_WORDS

        medical = build_vocabulary(medical_mode=True)

        assert build_vocabulary() == COMMON_WORDS
        assert "metformin" in medical
        assert "hypertension" in medical
        assert "npo" in medical
        assert COMMON_WORDS <= medical

    def test_suggestions_ordered(self):
        from scanread.lexicon import WordListSpellChecker

        checker = WordListSpellChecker(["cat", "car", "cart", "dog"])

        assert checker.suggestions("cas") == ["car", "cat", "cart"]
        assert checker.suggestions("cas", max_suggestions=1) == ["car"]

    def test_custom_words(self):
        from scanread.lexicon import WordListSpellChecker

        checker = WordListSpellChecker(["cat"])
        assert not checker.is_correct("Zyrtec")

        checker.add_word("zyrtec")

        assert checker.is_correct("Zyrtec")
        assert checker.is_correct("zyrtec.")
