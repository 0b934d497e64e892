"""Unit tests for auth/password_policy.py -- pure logic, no I/O, no fixtures.

The uppercase clause is `ch != ch.lower()`. TestKnownWeakUppercaseRule pins
the non-ASCII characters that satisfy it without being ASCII capitals, so a
future change to the rule is a visible, deliberate decision.
"""

import pytest

from auth.password_policy import MIN_LENGTH, SPECIAL_CHARACTERS, evaluate


class TestPasses:
    def test_minimal_compliant_password(self):
        assert evaluate("Abc123!").passed

    def test_every_special_character_counts(self):
        for ch in SPECIAL_CHARACTERS:
            assert evaluate(f"Abcdef1{ch}").passed, ch

    def test_long_password(self):
        assert evaluate("Correct-Horse_Battery9").passed

    def test_passing_result_has_no_message(self):
        result = evaluate("Abc123!")
        assert result.message == ""
        assert result.missing == ()


class TestFailures:
    def test_no_uppercase(self):
        result = evaluate("abc123!")
        assert not result.passed
        assert result.missing == ("an uppercase letter",)

    def test_no_symbol_no_digit(self):
        result = evaluate("Abcdefg")
        assert not result.passed
        assert "a number" in result.missing
        assert any("special character" in m for m in result.missing)
        assert "an uppercase letter" not in result.missing

    def test_too_short(self):
        # 6 characters, every class present
        result = evaluate("Ab1!cd")
        assert not result.passed
        assert result.missing == (f"at least {MIN_LENGTH} characters",)

    def test_exactly_min_length_passes(self):
        assert len("Ab1!cde") == MIN_LENGTH
        assert evaluate("Ab1!cde").passed

    def test_symbol_outside_the_fixed_set_does_not_count(self):
        # '-' '.' '?' are not in @!#$%^&*()_+
        assert not evaluate("Abc123-.?").passed

    def test_empty_password_names_every_missing_class(self):
        result = evaluate("")
        assert not result.passed
        assert len(result.missing) == 4

    def test_single_combined_message(self):
        result = evaluate("abcdefg")
        assert result.message.startswith("Password is not strong enough.")
        for missing in result.missing:
            assert missing in result.message

    @pytest.mark.parametrize("digit_like", ["١", "²", "１"])
    def test_non_ascii_digits_do_not_count(self, digit_like):
        # Arabic-indic one, superscript two, fullwidth one
        result = evaluate(f"Abcdef!{digit_like}")
        assert not result.passed
        assert result.missing == ("a number",)


class TestKnownWeakUppercaseRule:
    """The rule accepts any character that changes under lowercasing."""

    def test_titlecase_letter_satisfies_uppercase_clause(self):
        # U+01C5 LATIN CAPITAL LETTER D WITH SMALL LETTER Z WITH CARON (titlecase)
        assert evaluate("ǅbc123!").passed

    def test_non_latin_capital_satisfies_uppercase_clause(self):
        # U+0394 GREEK CAPITAL LETTER DELTA
        assert evaluate("Δbc123!").passed

    def test_uncased_letters_do_not_satisfy_it(self):
        # CJK ideographs have no case
        assert not evaluate("中文abc12!").passed
