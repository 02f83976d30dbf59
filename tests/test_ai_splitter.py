"""
AI 문장 분리/검증 단위 테스트 (생성 모델 mock)
"""
import json
from unittest.mock import Mock

import pytest

from bilingual_splitter.processors.ai_splitter import AISplitter, attach_korean, complete_classified
from bilingual_splitter.processors.models import Sentence, SplitMode
from bilingual_splitter.utils.errors import (
    FailureKind,
    FidelityError,
    FidelityKind,
    GenerationFailure,
)


MODEL = "gpt-4o-mini"


def split_response(*contents, overall=0.93, corrections=None):
    """모델 응답 JSON 생성"""
    payload = {
        "sentences": [{"no": i, "content": c, "confidence": 0.9} for i, c in enumerate(contents, start=1)],
        "overall_confidence": overall,
    }
    if corrections is not None:
        payload["corrections"] = corrections
    return json.dumps(payload, ensure_ascii=False)


class TestAISplit:
    """ai 모드 테스트"""

    def setup_method(self):
        self.client = Mock()
        self.splitter = AISplitter(self.client)

    def test_split(self):
        """모델 결과를 그대로 사용"""
        self.client.complete.return_value = split_response("Dr. Smith arrived.", "He left.")

        result = self.splitter.split("Dr. Smith arrived. He left.", MODEL)

        assert result.method == SplitMode.AI
        assert result.model == MODEL
        assert result.confidence == 0.93
        assert [s.content for s in result.sentences] == ["Dr. Smith arrived.", "He left."]
        assert [s.index for s in result.sentences] == [1, 2]

    def test_split_trusts_model(self):
        """ai 모드는 원문 검증을 하지 않음"""
        self.client.complete.return_value = split_response("Doctor Smith arrived.", "He left.")

        result = self.splitter.split("Dr. Smith arrived. He left.", MODEL)

        assert result.sentences[0].content == "Doctor Smith arrived."

    def test_prompt_contains_text_and_korean(self):
        """프롬프트에 원문과 한글 참고 포함"""
        self.client.complete.return_value = split_response("I like apples.", "You like pears.")

        result = self.splitter.split(
            "I like apples. You like pears.", MODEL, "나는 사과를 좋아한다. 너는 배를 좋아한다."
        )

        prompt, model = self.client.complete.call_args[0]
        assert "I like apples. You like pears." in prompt
        assert "나는 사과를 좋아한다." in prompt
        assert model == MODEL
        assert result.sentences[1].korean_translation == "너는 배를 좋아한다."

    def test_default_confidence(self):
        """overall_confidence 누락 시 기본값"""
        self.client.complete.return_value = '{"sentences": [{"content": "Hi there now."}]}'

        result = self.splitter.split("Hi there now.", MODEL)

        assert result.confidence == 0.95
        assert result.sentences[0].confidence == 0.9

    def test_empty_input_skips_model(self):
        """빈 입력은 모델을 호출하지 않음"""
        result = self.splitter.split("   ", MODEL)

        assert result.sentences == []
        self.client.complete.assert_not_called()

    def test_timeout_classified(self):
        """호출 예외는 분류되어 전파"""
        self.client.complete.side_effect = TimeoutError("timed out")

        with pytest.raises(GenerationFailure) as exc_info:
            self.splitter.split("Hello there. Bye now.", MODEL)

        assert exc_info.value.kind == FailureKind.TIMEOUT
        assert exc_info.value.model == MODEL
        assert exc_info.value.provider == "openai"

    def test_malformed_output(self):
        """JSON이 아닌 응답"""
        self.client.complete.return_value = "I cannot help with that."

        with pytest.raises(GenerationFailure) as exc_info:
            self.splitter.split("Hello there. Bye now.", MODEL)

        assert exc_info.value.kind == FailureKind.MALFORMED_OUTPUT

    def test_no_sentences(self):
        """문장이 비어 있으면 schema_violation"""
        self.client.complete.return_value = '{"sentences": [{"content": "  "}]}'

        with pytest.raises(FidelityError) as exc_info:
            self.splitter.split("Hello there. Bye now.", MODEL)

        assert exc_info.value.kind == FidelityKind.SCHEMA_VIOLATION


class TestAIVerify:
    """ai-verify 모드 테스트"""

    def setup_method(self):
        self.client = Mock()
        self.splitter = AISplitter(self.client)

    def test_verify_unchanged(self):
        """Regex 결과 확인"""
        self.client.complete.return_value = split_response("Dr. Smith arrived.", "He left.", corrections=[])

        result = self.splitter.verify("Dr. Smith arrived. He left.", MODEL)

        assert result.method == SplitMode.AI_VERIFY
        assert result.warnings == []
        prompt = self.client.complete.call_args[0][0]
        assert "Regex split result (2 sentences)" in prompt
        assert '1. "Dr. Smith arrived."' in prompt

    def test_verify_merge_reported(self):
        """경계 병합은 경고로 보고"""
        self.client.complete.return_value = split_response(
            "He said no. Way out was blocked.", corrections=["merged 1-2"]
        )

        result = self.splitter.verify("He said no. Way out was blocked.", MODEL)

        assert result.sentence_count == 1
        assert result.warnings == ["merged 1-2", "문장 경계 제거 (병합): ...He said no.|"]

    def test_verify_split_reported(self):
        """경계 추가는 경고로 보고"""
        self.client.complete.return_value = split_response("Dr.", "Smith arrived.", "He left.")

        result = self.splitter.verify("Dr. Smith arrived. He left.", MODEL)

        assert result.sentence_count == 3
        assert result.warnings == ["문장 경계 추가 (분리): ...Dr.|"]

    def test_verify_dropped_opening_quote_keeps_boundaries(self):
        """선두 따옴표만 빠진 경우 경계 변경으로 보고하지 않음"""
        english = '"I am here." He left the room quickly.'
        self.client.complete.return_value = split_response('I am here."', "He left the room quickly.")

        result = self.splitter.verify(english, MODEL)

        assert result.sentence_count == 2
        assert result.warnings == []

    def test_verify_whitespace_difference_allowed(self):
        """공백 차이는 변형이 아님"""
        self.client.complete.return_value = split_response("First line here.", "Second line here.")

        result = self.splitter.verify("First line here.\n\nSecond line here.", MODEL)

        assert result.sentence_count == 2

    def test_verify_rejects_modified_text(self):
        """한 글자라도 바뀌면 실패"""
        self.client.complete.return_value = split_response("Dr. Smith arived.", "He left.")

        with pytest.raises(FidelityError) as exc_info:
            self.splitter.verify("Dr. Smith arrived. He left.", MODEL)

        error = exc_info.value
        assert error.kind == FidelityKind.TEXT_MODIFIED
        assert error.offset == 12
        assert error.model == MODEL
        assert "arrived" in error.original_context
        assert "arived" in error.produced_context

    def test_verify_rejects_dropped_sentence(self):
        """문장 누락도 변형"""
        self.client.complete.return_value = split_response("Dr. Smith arrived.")

        with pytest.raises(FidelityError) as exc_info:
            self.splitter.verify("Dr. Smith arrived. He left.", MODEL)

        assert exc_info.value.kind == FidelityKind.TEXT_MODIFIED

    def test_verify_korean_mismatch_warning(self):
        """한글 문장 수 불일치는 경고"""
        self.client.complete.return_value = split_response("I like apples.", "You like pears.")

        result = self.splitter.verify("I like apples. You like pears.", MODEL, "나는 사과와 배를 좋아한다.")

        assert all(s.korean_translation is None for s in result.sentences)
        assert any("문장 개수 불일치" in w for w in result.warnings)
        assert result.korean_issues == []


class TestHelpers:
    """보조 함수 테스트"""

    def test_complete_classified_passthrough(self):
        """이미 분류된 실패는 그대로 전파"""
        failure = GenerationFailure(FailureKind.AUTH, "no key", model=MODEL)
        client = Mock()
        client.complete.side_effect = failure

        with pytest.raises(GenerationFailure) as exc_info:
            complete_classified(client, "prompt", MODEL, "test")

        assert exc_info.value is failure

    def test_attach_korean(self):
        sentences = [Sentence(1, "Hi there.", 2, 1.0), Sentence(2, "Bye now.", 2, 1.0)]

        assert attach_korean(sentences, "안녕하세요. 잘 가요.") is True
        assert sentences[1].korean_translation == "잘 가요."
        assert attach_korean(sentences, None) is False
