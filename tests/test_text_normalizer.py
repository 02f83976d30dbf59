"""
텍스트 정규화 단위 테스트
"""
import pytest

from bilingual_splitter.utils.text_normalizer import (
    TextComparison,
    normalize_text,
    canonicalize_chars,
    compare_texts,
    collapse_whitespace,
    count_words,
    CONTEXT_WINDOW,
)


class TestNormalizeText:
    """normalize_text 테스트"""

    def test_empty(self):
        """빈 입력"""
        assert normalize_text("") == ""
        assert normalize_text(None) == ""

    def test_collapse_unicode_whitespace(self):
        """유니코드 공백/줄바꿈/제로폭 문자 통일"""
        text = "  Hello\u3000world\u200b\n\tagain\u2028end\u00a0 "
        assert normalize_text(text) == "Hello world again end"

    def test_dash_variants(self):
        """대시 변형 → 하이픈"""
        assert normalize_text("well—known − 1 – 2") == "well-known - 1 - 2"

    def test_curly_quotes(self):
        """곡선 따옴표 → 직선 따옴표"""
        assert normalize_text("He said “no” and ‘yes’ too.") == "He said \"no\" and 'yes' too."

    def test_strip_one_layer_of_quotes(self):
        """양끝 따옴표 한 겹 제거"""
        assert normalize_text('"Hello there."') == "Hello there."
        assert normalize_text("“Hello there.”") == "Hello there."

    def test_does_not_touch_letters(self):
        """글자는 바꾸지 않음"""
        assert normalize_text("Dr. Smith") == "Dr. Smith"


class TestCompareTexts:
    """compare_texts 테스트"""

    def test_match_after_normalization(self):
        """공백/따옴표 차이만 있으면 일치"""
        result = compare_texts("He  said “hi.”", 'He said "hi."')

        assert result.is_match
        assert result.offset == -1
        assert result.diff is None

    def test_first_mismatch_offset(self):
        """첫 불일치 위치와 컨텍스트"""
        result = compare_texts("The cat sat on the mat.", "The bat sat on the mat.")

        assert not result.is_match
        assert result.offset == 4
        assert result.original_context.startswith("The cat")
        assert result.produced_context.startswith("The bat")
        assert result.length_delta == 0
        assert "위치 4" in result.diff

    def test_context_window(self):
        """불일치 전후 20자"""
        original = "a" * 50 + "X" + "b" * 50
        produced = "a" * 50 + "Y" + "b" * 50
        result = compare_texts(original, produced)

        assert result.offset == 50
        assert len(result.original_context) == CONTEXT_WINDOW * 2
        assert "X" in result.original_context
        assert "Y" in result.produced_context

    def test_length_difference(self):
        """한쪽이 더 긴 경우"""
        result = compare_texts("abc", "abcdef")

        assert not result.is_match
        assert result.offset == 3
        assert result.length_delta == 3

    def test_to_dict(self):
        """딕셔너리 변환"""
        data = compare_texts("abc", "abd").to_dict()

        assert data["is_match"] is False
        assert data["offset"] == 2
        assert data["original_length"] == 3


class TestHelpers:
    """보조 함수 테스트"""

    def test_collapse_whitespace(self):
        assert collapse_whitespace("a\r\n b\n\nc ") == "a b c"
        assert collapse_whitespace(None) == ""

    def test_count_words(self):
        assert count_words("one two  three") == 3
        assert count_words("") == 0

    def test_text_comparison_length_delta(self):
        comparison = TextComparison(is_match=False, original_length=600, produced_length=540)
        assert comparison.length_delta == 60

    def test_canonicalize_chars_keeps_outer_quotes(self):
        assert canonicalize_chars(" “Hi”  — there ") == '"Hi" - there'
        assert canonicalize_chars(None) == ""
