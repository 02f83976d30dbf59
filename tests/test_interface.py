"""
문장 분리 API 인터페이스 테스트
"""
import asyncio
import json
from unittest.mock import Mock

import pytest

from bilingual_splitter.api.interface import (
    BatchPassage,
    BatchResponse,
    SentenceSplitAPI,
    SplitRequest,
)
from bilingual_splitter.graph import SplitDispatcher


MODEL = "gpt-4o-mini"
ENGLISH = "I like apples. You like pears."
KOREAN = "나는 사과를 좋아한다. 너는 배를 좋아한다."


def pair_response(*pairs):
    return json.dumps({
        "pairs": [{"no": i, "english": e, "korean": k} for i, (e, k) in enumerate(pairs, start=1)],
        "confidence": 0.96,
    }, ensure_ascii=False)


class TestSplitRequest:
    """요청 검증 테스트"""

    def test_valid(self):
        assert SplitRequest(english=ENGLISH, mode="ai-verify").validate() == (True, None)

    def test_missing_english(self):
        valid, message = SplitRequest(english=None).validate()
        assert valid is False
        assert "english" in message

    def test_invalid_types(self):
        assert SplitRequest(english=123).validate()[0] is False
        assert SplitRequest(english=ENGLISH, korean=["a"]).validate()[0] is False

    def test_invalid_mode(self):
        valid, message = SplitRequest(english=ENGLISH, mode="fast").validate()
        assert valid is False
        assert "유효하지 않은 모드" in message

    def test_request_id(self):
        first, second = SplitRequest(english="a"), SplitRequest(english="a")
        assert first.request_id != second.request_id
        assert first.to_dict()["english"] == "a"


class TestBatchPassage:
    """배치 입력 변환 테스트"""

    def test_from_dict_aliases(self):
        passage = BatchPassage.from_dict({"id": 7, "content": ENGLISH, "koreanTranslation": KOREAN, "name": "p7"})

        assert passage.id == "7"
        assert passage.english == ENGLISH
        assert passage.korean == KOREAN
        assert passage.to_item().name == "p7"

    def test_from_dict_defaults(self):
        passage = BatchPassage.from_dict({"id": "x"})

        assert passage.english == ""
        assert passage.korean is None


class TestSentenceSplitAPI:
    """SentenceSplitAPI 테스트"""

    def setup_method(self):
        self.client = Mock()
        dispatcher = SplitDispatcher(client=self.client, default_model=MODEL, default_mode="parallel")
        self.api = SentenceSplitAPI(dispatcher=dispatcher)

    def teardown_method(self):
        self.api.shutdown()

    def test_regex_split(self):
        """regex 성공 응답과 통계"""
        response = self.api.split(SplitRequest(english="Dr. Smith arrived. He left.", mode="regex"))

        assert response.success is True
        assert response.stats["sentence_count"] == 2
        assert response.stats["total_words"] == 5
        assert response.translation_status is None

        data = response.to_dict()
        assert data["method"] == "regex"
        assert data["sentences"][0]["content"] == "Dr. Smith arrived."
        assert "error" not in data

    def test_parallel_with_analysis(self):
        """병렬 추출 + 번역 정렬 분석"""
        self.client.complete.return_value = pair_response(
            ("I like apples.", "나는 사과를 좋아한다."),
            ("You like pears.", "너는 배를 좋아한다."),
        )

        response = self.api.split(SplitRequest(english=ENGLISH, korean=KOREAN))

        assert response.success is True
        assert response.result.model == MODEL
        assert response.translation_status.alignment == "perfect"
        assert response.translation_status.quality == "good"
        assert response.to_dict()["translation_status"]["sentence_count"] == {"english": 2, "korean": 2}

    def test_analysis_disabled(self):
        self.client.complete.return_value = pair_response(
            ("I like apples.", "나는 사과를 좋아한다."),
            ("You like pears.", "너는 배를 좋아한다."),
        )

        response = self.api.split(SplitRequest(english=ENGLISH, korean=KOREAN, include_translation_analysis=False))

        assert response.translation_status is None

    def test_fidelity_failure_payload(self):
        """원문 변형: 구조화된 에러, 명시적 재시도 가능"""
        self.client.complete.return_value = pair_response(
            ("I like apple.", "나는 사과를 좋아한다."),
            ("You like pears.", "너는 배를 좋아한다."),
        )

        response = self.api.split(SplitRequest(english=ENGLISH, korean=KOREAN))

        assert response.success is False
        assert response.error["category"] == "fidelity"
        assert response.error["kind"] == "text_modified"
        assert response.error["requires_manual_retry"] is True
        assert response.can_retry is True
        data = response.to_dict()
        assert data["can_retry"] is True
        assert "sentences" not in data

    def test_generation_failure_payload(self):
        """호출 실패: 분류된 에러"""
        self.client.complete.side_effect = TimeoutError("timed out")

        response = self.api.split(SplitRequest(english=ENGLISH, mode="ai"))

        assert response.success is False
        assert response.error["category"] == "generation"
        assert response.error["kind"] == "timeout"
        assert response.error["retryable"] is True

    def test_validation_failure(self):
        """검증 실패는 재시도 불가"""
        response = self.api.split(SplitRequest(english=ENGLISH, mode="fast"))

        assert response.success is False
        assert response.error["category"] == "validation"
        assert response.can_retry is False
        self.client.complete.assert_not_called()

    def test_empty_english(self):
        """빈 영어 원문은 빈 성공 결과"""
        response = self.api.split(SplitRequest(english=""))

        assert response.success is True
        assert response.result.sentences == []
        assert response.stats["avg_words_per_sentence"] == 0

    def test_batch(self):
        """배치: 항목별 결과와 집계"""
        def complete(prompt, model):
            if "Broken" in prompt:
                raise TimeoutError("timed out")
            return json.dumps({"sentences": [{"content": "Hello there friend."}, {"content": "Bye now friend."}]})

        self.client.complete.side_effect = complete
        passages = [
            BatchPassage(id="p1", english="Hello there friend. Bye now friend.", name="first"),
            BatchPassage(id="p2", english="Broken passage here."),
        ]

        response = self.api.split_batch(passages, mode="ai-verify")

        assert isinstance(response, BatchResponse)
        assert response.summary() == {"total": 2, "success": 1, "failed": 1, "totalSentences": 2}
        assert response.mode == "ai-verify"
        assert response.model == MODEL

        data = response.to_dict()
        assert data["results"][0]["passage_name"] == "first"
        assert data["results"][0]["method"] == "ai-verify"
        assert data["results"][1]["error"]["kind"] == "timeout"

    def test_batch_invalid_mode(self):
        with pytest.raises(ValueError):
            self.api.split_batch([BatchPassage(id="p1", english=ENGLISH)], mode="fast")

    def test_split_async(self):
        """비동기 분리"""
        response = asyncio.run(self.api.split_async(SplitRequest(english=ENGLISH, mode="regex")))

        assert response.success is True
        assert response.result.sentence_count == 2

    def test_split_batch_async(self):
        passages = [BatchPassage(id="p1", english=ENGLISH), BatchPassage(id="p2", english="Only one here.")]

        response = asyncio.run(self.api.split_batch_async(passages, mode="regex"))

        assert response.summary()["totalSentences"] == 3
