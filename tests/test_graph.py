"""
LangGraph 디스패처 테스트
모드별 라우팅, hybrid 전환, 실패 전파, 배치 격리
"""
import json
import threading
import time
from unittest.mock import Mock, patch

import pytest

from bilingual_splitter.graph import BatchItem, SplitDispatcher
from bilingual_splitter.processors.models import SplitMode, SplitResult, Sentence
from bilingual_splitter.state import create_initial_state, get_state_summary
from bilingual_splitter.utils.llm_client import LLMClient, Provider
from bilingual_splitter.utils.errors import (
    FailureKind,
    FidelityError,
    FidelityKind,
    GenerationFailure,
)


MODEL = "gpt-4o-mini"
ENGLISH = "I like apples. You like pears."
KOREAN = "나는 사과를 좋아한다. 너는 배를 좋아한다."


def split_response(*contents):
    return json.dumps({
        "sentences": [{"no": i, "content": c} for i, c in enumerate(contents, start=1)],
        "overall_confidence": 0.95,
    })


def pair_response(*pairs):
    return json.dumps({
        "pairs": [{"no": i, "english": e, "korean": k} for i, (e, k) in enumerate(pairs, start=1)],
        "confidence": 0.96,
    }, ensure_ascii=False)


def regex_result(confidence, warnings=None):
    """신뢰도를 고정한 Regex 결과"""
    return SplitResult(
        sentences=[
            Sentence(1, "I like apples.", 3, confidence),
            Sentence(2, "You like pears.", 3, confidence),
        ],
        confidence=confidence,
        method=SplitMode.REGEX,
        warnings=warnings or [],
    )


class TestState:
    """상태 헬퍼 테스트"""

    def test_initial_state(self):
        state = create_initial_state(ENGLISH, None, MODEL, SplitMode.HYBRID)

        assert state["status"] == "pending"
        assert state["mode"] == SplitMode.HYBRID
        assert state["requested_mode"] == SplitMode.HYBRID
        assert state["escalated"] is False
        assert state["result"] is None

    def test_summary(self):
        summary = get_state_summary(create_initial_state(ENGLISH, model=MODEL))

        assert summary["mode"] == "parallel"
        assert summary["sentence_count"] == 0
        assert summary["method"] is None


class TestDispatcherModes:
    """모드별 실행 테스트"""

    def setup_method(self):
        self.client = Mock()
        self.dispatcher = SplitDispatcher(client=self.client, default_model=MODEL, default_mode="parallel")

    def test_regex_mode_no_model_call(self):
        """regex 모드는 생성 모델을 호출하지 않음"""
        result = self.dispatcher.run("Dr. Smith arrived. He left.", mode="regex")

        assert result.method == SplitMode.REGEX
        assert result.sentence_count == 2
        self.client.complete.assert_not_called()

    def test_ai_mode(self):
        self.client.complete.return_value = split_response("I like apples.", "You like pears.")

        result = self.dispatcher.run(ENGLISH, mode="ai")

        assert result.method == SplitMode.AI
        assert result.model == MODEL

    def test_ai_verify_mode(self):
        self.client.complete.return_value = split_response("I like apples.", "You like pears.")

        result = self.dispatcher.run(ENGLISH, mode=SplitMode.AI_VERIFY, model="gemini-2.0-flash")

        assert result.method == SplitMode.AI_VERIFY
        assert self.client.complete.call_args[0][1] == "gemini-2.0-flash"

    def test_parallel_mode(self):
        self.client.complete.return_value = pair_response(
            ("I like apples.", "나는 사과를 좋아한다."),
            ("You like pears.", "너는 배를 좋아한다."),
        )

        result = self.dispatcher.run(ENGLISH, KOREAN)

        assert result.method == SplitMode.PARALLEL
        assert result.sentences[1].korean_translation == "너는 배를 좋아한다."

    def test_parallel_without_korean_falls_back(self):
        """한글 해석이 없으면 ai-verify로 전환"""
        self.client.complete.return_value = split_response("I like apples.", "You like pears.")

        state = self.dispatcher.run_state(ENGLISH, None, mode="parallel")

        assert state["requested_mode"] == SplitMode.PARALLEL
        assert state["mode"] == SplitMode.AI_VERIFY
        assert state["result"].method == SplitMode.AI_VERIFY

    @pytest.mark.parametrize("mode", [m.value for m in SplitMode])
    def test_empty_input_all_modes(self, mode):
        """빈 영어 원문은 모든 모드에서 빈 결과"""
        result = self.dispatcher.run("  \n ", KOREAN, mode=mode)

        assert result.sentences == []
        assert result.confidence == 1.0
        self.client.complete.assert_not_called()

    def test_invalid_mode(self):
        with pytest.raises(ValueError):
            self.dispatcher.run(ENGLISH, mode="fast")

    def test_progress_callback(self):
        """노드 진행 콜백"""
        events = []

        self.dispatcher.run_state(ENGLISH, mode="regex", progress_callback=lambda node, status: events.append((node, status)))

        assert events == [("prepare", "running"), ("regex_split", "completed")]


class TestHybrid:
    """hybrid 전환 테스트"""

    def setup_method(self):
        self.client = Mock()
        self.client.complete.return_value = split_response("I like apples.", "You like pears.")
        self.regex_splitter = Mock()

    def make_dispatcher(self, regex_splitter=None):
        kwargs = {"regex_splitter": regex_splitter} if regex_splitter else {}
        return SplitDispatcher(
            client=self.client,
            default_model=MODEL,
            default_mode="hybrid",
            hybrid_threshold=0.9,
            **kwargs,
        )

    def test_threshold_inclusive(self):
        """신뢰도가 임계값과 같으면 Regex 결과 사용"""
        self.regex_splitter.split.return_value = regex_result(0.9)

        result = self.make_dispatcher(self.regex_splitter).run(ENGLISH)

        assert result.method == SplitMode.REGEX
        self.client.complete.assert_not_called()

    def test_below_threshold_escalates(self):
        """임계값 미만이면 AI로 전환"""
        self.regex_splitter.split.return_value = regex_result(0.89)

        result = self.make_dispatcher(self.regex_splitter).run(ENGLISH)

        assert result.method == SplitMode.HYBRID
        assert result.model == MODEL
        self.client.complete.assert_called_once()

    def test_warnings_escalate(self):
        """경고가 있으면 신뢰도와 무관하게 전환"""
        self.regex_splitter.split.return_value = regex_result(0.95, warnings=["문장 2: 문장이 너무 짧음"])

        result = self.make_dispatcher(self.regex_splitter).run(ENGLISH)

        assert result.method == SplitMode.HYBRID

    def test_clean_text_stays_regex(self):
        """실제 Regex 분리기: 모호성 없는 텍스트"""
        result = self.make_dispatcher().run("The cat sat on the mat. The dog slept by the door.")

        assert result.method == SplitMode.REGEX
        self.client.complete.assert_not_called()

    def test_alignment_signal_escalates(self):
        """한글 문장 수 불일치 신호로 전환"""
        state = self.make_dispatcher().run_state(ENGLISH, "나는 사과와 배를 정말 좋아한다.")

        assert state["escalated"] is True
        assert state["alignment"].alignment == "mismatched"
        assert state["result"].method == SplitMode.HYBRID


class TestFailures:
    """실패 전파 테스트"""

    def setup_method(self):
        self.client = Mock()
        self.dispatcher = SplitDispatcher(client=self.client, default_model=MODEL)

    def test_parallel_english_modified(self):
        """병렬 추출의 영어 변형은 실패"""
        self.client.complete.return_value = pair_response(
            ("I like apple.", "나는 사과를 좋아한다."),
            ("You like pears.", "너는 배를 좋아한다."),
        )

        with pytest.raises(FidelityError) as exc_info:
            self.dispatcher.run(ENGLISH, KOREAN, mode="parallel")

        assert exc_info.value.kind == FidelityKind.TEXT_MODIFIED

    def test_parallel_korean_modified_succeeds(self):
        """한글 변형은 실패가 아님"""
        self.client.complete.return_value = pair_response(
            ("I like apples.", "나는 사과를 싫어한다."),
            ("You like pears.", "너는 배를 좋아한다."),
        )

        result = self.dispatcher.run(ENGLISH, KOREAN, mode="parallel")

        assert len(result.korean_issues) == 1

    def test_ai_verify_modified(self):
        self.client.complete.return_value = split_response("I like apples.", "You like pear.")

        with pytest.raises(FidelityError):
            self.dispatcher.run(ENGLISH, mode="ai-verify")

    def test_failed_state(self):
        """run_state는 예외 대신 실패 상태 반환"""
        self.client.complete.side_effect = TimeoutError("timed out")

        state = self.dispatcher.run_state(ENGLISH, mode="ai")

        assert state["status"] == "failed"
        assert isinstance(state["failure"], GenerationFailure)
        assert state["failure"].kind == FailureKind.TIMEOUT
        assert state["error"].startswith("AI 분리 실패")


class TestBatch:
    """배치 실행 테스트"""

    def setup_method(self):
        self.client = Mock()

        def complete(prompt, model):
            if "Beta" in prompt:
                raise TimeoutError("timed out")
            if "Alpha" in prompt:
                return split_response("Alpha one is here.", "Alpha two is here.")
            return split_response("Gamma one is here.")

        self.client.complete.side_effect = complete
        self.dispatcher = SplitDispatcher(client=self.client, default_model=MODEL, batch_concurrency=2)

    def test_failure_isolated(self):
        """한 항목의 실패가 다른 항목에 영향을 주지 않음"""
        items = [
            BatchItem(id="a", english="Alpha one is here. Alpha two is here."),
            BatchItem(id="b", english="Beta one is here."),
            BatchItem(id="c", english="Gamma one is here.", name="gamma"),
        ]

        outcomes = self.dispatcher.run_batch(items, mode="ai-verify")

        assert [o.id for o in outcomes] == ["a", "b", "c"]
        assert [o.success for o in outcomes] == [True, False, True]
        assert outcomes[0].sentence_count == 2
        assert outcomes[1].error.kind == FailureKind.TIMEOUT
        assert outcomes[1].sentence_count == 0
        assert outcomes[2].name == "gamma"

    def test_empty_batch(self):
        assert self.dispatcher.run_batch([]) == []

    def test_unexpected_error_classified(self):
        """분류되지 않은 예외는 unknown으로 분류"""
        extractor = Mock()
        extractor.extract.side_effect = RuntimeError("boom")
        dispatcher = SplitDispatcher(client=self.client, default_model=MODEL, parallel_extractor=extractor)

        outcomes = dispatcher.run_batch([BatchItem(id="x", english=ENGLISH, korean=KOREAN)], mode="parallel")

        assert outcomes[0].success is False
        assert isinstance(outcomes[0].error, GenerationFailure)
        assert outcomes[0].error.kind == FailureKind.UNKNOWN
        assert outcomes[0].error.model == MODEL

    def test_provider_built_once_under_concurrency(self):
        """동시 배치에서도 제공자 클라이언트는 한 번만 생성"""
        constructed = []
        lock = threading.Lock()

        class SlowProvider:
            def __init__(self, **kwargs):
                time.sleep(0.05)
                with lock:
                    constructed.append(self)

            def complete(self, prompt, model_id):
                return split_response("Item is here.")

        client = LLMClient(api_keys={Provider.OPENAI: "sk-test"})
        dispatcher = SplitDispatcher(client=client, default_model=MODEL, batch_concurrency=10)
        items = [BatchItem(id=str(i), english=f"Item {i} is here.") for i in range(10)]

        with patch.dict(
            "bilingual_splitter.utils.llm_client._PROVIDER_CLASSES",
            {Provider.OPENAI: SlowProvider},
        ):
            outcomes = dispatcher.run_batch(items, mode="ai")

        assert len(constructed) == 1
        assert all(o.success for o in outcomes)
