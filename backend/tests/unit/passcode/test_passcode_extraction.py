"""Unit tests for passcode extraction

Tests the ordered matcher list:
- Bracketed label wins over everything else
- Separator and nearby label patterns
- Bare six-digit fallback only when no labelled pattern matches
- Exactly six digits (no partial matches inside longer runs)
"""

import pytest

from domain.passcode.extraction import (
    DEFAULT_MATCHERS,
    build_matchers,
    extract_passcode,
    match_passcode,
    normalize_text,
)


class TestExtractPasscode:
    """Test cases for extract_passcode"""

    def test_bracketed_label(self):
        assert extract_passcode("【パスコード】345678 please use this code") == "345678"

    def test_bracketed_label_with_inner_whitespace(self):
        assert extract_passcode("【 パスコード 】\n  112233") == "112233"

    def test_full_width_colon_separator(self):
        assert extract_passcode("パスコード：987654") == "987654"

    def test_ascii_colon_separator(self):
        assert extract_passcode("パスコード: 246810") == "246810"

    def test_label_near_digits(self):
        text = "ログイン用のパスコードは以下の通りです。\n\n    654321\n\n有効期限は10分です。"
        assert extract_passcode(text) == "654321"

    def test_bare_fallback(self):
        assert extract_passcode("Your one-time code is 123456.") == "123456"

    def test_labelled_code_beats_earlier_bare_digits(self):
        text = "ご注文番号 111111\nパスコード：222222"
        assert extract_passcode(text) == "222222"

    def test_bracketed_beats_separator(self):
        text = "パスコード：111111\n【パスコード】222222"
        found = match_passcode(text)
        assert found.code == "222222"
        assert found.matcher == "bracketed"

    def test_seven_digits_do_not_match(self):
        assert extract_passcode("パスコード：1234567") is None
        assert extract_passcode("order 1234567") is None

    def test_five_digits_do_not_match(self):
        assert extract_passcode("パスコード：12345") is None

    def test_label_too_far_from_digits_falls_back_to_bare(self):
        text = "パスコード" + ("x" * 300) + " 135790"
        found = match_passcode(text)
        assert found.code == "135790"
        assert found.matcher == "bare"

    @pytest.mark.parametrize("text", [None, "", "no digits here", "パスコード：abcdef"])
    def test_no_code(self, text):
        assert extract_passcode(text) is None


class TestMatchers:
    """Test cases for the matcher list itself"""

    def test_default_order(self):
        assert [m.name for m in DEFAULT_MATCHERS] == ["bracketed", "separator", "nearby", "bare"]

    def test_custom_label(self):
        matchers = build_matchers(label="認証コード")
        assert extract_passcode("認証コード：555666", matchers) == "555666"
        assert match_passcode("認証コード：555666", matchers).matcher == "separator"

    def test_normalize_text_collapses_spaces_and_drops_cr(self):
        assert normalize_text("a\r\nb \t  c") == "a\nb c"
