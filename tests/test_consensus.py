"""
Tests for multi-pass consensus merging.
"""

import pytest
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


def make_passes(*entries):
    from scanread.recognition import PassResult
    return [
        PassResult(variant=f"v{i}", text=text, confidence=confidence)
        for i, (text, confidence) in enumerate(entries)
    ]


class TestCombinePasses:
    """Test transcript merging."""

    def test_fuzzy_majority_wins(self):
        """Test that a known spelling beats the most confident one on a tie."""
        from scanread.consensus import combine_passes

        passes = make_passes(
            ("The qick fox", 0.9),
            ("The quick fox", 0.8),
            ("The qwick fox", 0.7),
        )

        assert combine_passes(passes, vocabulary={"the", "quick", "fox"}) == "The quick fox"

    def test_tie_without_known_word(self):
        """Test that equally supported unknown spellings fall back to confidence."""
        from scanread.consensus import combine_passes

        passes = make_passes(
            ("The qick fox", 0.9),
            ("The quick fox", 0.8),
            ("The qwick fox", 0.7),
        )

        assert combine_passes(passes, vocabulary=frozenset()) == "The qick fox"

    def test_frequency_wins(self):
        """Test that the most frequent close spelling replaces a minority word."""
        from scanread.consensus import combine_passes

        passes = make_passes(
            ("Hellp world", 0.95),
            ("Hello world", 0.8),
            ("Hello world", 0.7),
        )

        assert combine_passes(passes) == "Hello world"

    def test_single_pass_unchanged(self):
        """Test that one pass is returned verbatim."""
        from scanread.consensus import combine_passes

        passes = make_passes(("Qwerty  zxcv", 0.3))

        assert combine_passes(passes) == "Qwerty  zxcv"

    def test_no_passes(self):
        from scanread.consensus import combine_passes

        assert combine_passes([]) == ""

    def test_agreed_words_kept(self):
        """Test that words most passes agree on are never replaced."""
        from scanread.consensus import combine_passes

        passes = make_passes(
            ("total 42", 0.9),
            ("total 42", 0.6),
            ("tota1 4Z", 0.5),
        )

        assert combine_passes(passes) == "total 42"

    def test_all_caps_preserved(self):
        """Test that the base word's casing is applied to the replacement."""
        from scanread.consensus import combine_passes

        passes = make_passes(
            ("THE QICK FOX", 0.9),
            ("the quick fox", 0.8),
            ("the quick fox", 0.7),
        )

        assert combine_passes(passes) == "THE QUICK FOX"

    def test_whitespace_from_base(self):
        """Test that the base pass's whitespace survives merging."""
        from scanread.consensus import combine_passes

        passes = make_passes(
            ("The  qick\tfox", 0.9),
            ("The quick fox", 0.8),
            ("The quick fox", 0.7),
        )

        assert combine_passes(passes) == "The  quick\tfox"

    def test_no_close_candidate(self):
        """Test that a word with no close spelling elsewhere is kept."""
        from scanread.consensus import combine_passes

        passes = make_passes(
            ("invoice", 0.9),
            ("receipt", 0.8),
            ("statement", 0.7),
        )

        assert combine_passes(passes) == "invoice"

    def test_equal_confidence_uses_first_pass(self):
        """Test that ties in confidence pick the earliest pass as base."""
        from scanread.consensus import combine_passes

        passes = make_passes(
            ("alpha beta", 0.5),
            ("gamma delta", 0.5),
        )

        assert combine_passes(passes) == "alpha beta"


class TestHelpers:
    """Test casing and distance helpers."""

    @pytest.mark.parametrize("replacement,original,expected", [
        ("quick", "QICK", "QUICK"),
        ("quick", "Qick", "Quick"),
        ("QUICK", "qick", "quick"),
        ("quick", "", "quick"),
    ])
    def test_match_case(self, replacement, original, expected):
        from scanread.consensus import match_case

        assert match_case(replacement, original) == expected

    def test_edit_distance(self):
        from scanread.consensus import edit_distance

        assert edit_distance("qick", "quick") == 1
        assert edit_distance("kitten", "sitting") == 3
        assert edit_distance("", "abc") == 3
