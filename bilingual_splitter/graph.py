"""
LangGraph 워크플로우 모듈
모드별 문장 분리 전략을 선택하고 실행하는 디스패처
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Optional, Union

from langgraph.graph import END, StateGraph

from bilingual_splitter.processors import (
    AISplitter,
    ParallelExtractor,
    RegexSplitter,
    SplitMode,
    SplitResult,
    TranslationAnalyzer,
    empty_result,
)
from bilingual_splitter.state import SplitState, create_initial_state, get_state_summary
from bilingual_splitter.utils import (
    ErrorContext,
    GenerationClient,
    LLMClient,
    SplitterError,
    classify_error,
    provider_name,
    settings,
)

# 로깅 설정
logger = logging.getLogger(__name__)


# 모드 → 첫 전략 노드
_MODE_NODES = {
    SplitMode.REGEX: "regex_split",
    SplitMode.HYBRID: "regex_split",
    SplitMode.AI: "ai_split",
    SplitMode.AI_VERIFY: "ai_verify",
    SplitMode.PARALLEL: "parallel_extract",
}


def _fail(state: SplitState, error: Exception, label: str) -> SplitState:
    logger.error(f"{label} 실패 ({state.get('model')}): {error}")
    state["status"] = "failed"
    state["error"] = f"{label} 실패: {error}"
    state["failure"] = error
    return state


def _complete(state: SplitState, result: SplitResult) -> SplitState:
    state["result"] = result
    state["status"] = "completed"
    state["completed_at"] = datetime.now().isoformat()
    return state


# === 그래프 빌더 ===

def create_split_graph(
    ai_splitter: AISplitter,
    parallel_extractor: ParallelExtractor,
    regex_splitter: Optional[RegexSplitter] = None,
    analyzer: Optional[TranslationAnalyzer] = None,
    hybrid_threshold: Optional[float] = None,
) -> StateGraph:
    """
    문장 분리 워크플로우 그래프 생성

    노드 흐름:
    prepare ─┬→ regex_split ─(hybrid 전환)→ ai_split
             ├→ ai_split
             ├→ ai_verify
             └→ parallel_extract

    Args:
        ai_splitter: AI 분리기/검증기
        parallel_extractor: 병렬 추출기
        regex_splitter: Regex 분리기
        analyzer: 번역 정렬 분석기 (hybrid 전환 판단)
        hybrid_threshold: hybrid 모드에서 Regex 결과를 그대로 쓰는 최소 신뢰도

    Returns:
        StateGraph (컴파일 전)
    """
    regex_splitter = regex_splitter or RegexSplitter()
    analyzer = analyzer or TranslationAnalyzer(regex_splitter)
    threshold = hybrid_threshold if hybrid_threshold is not None else settings.hybrid_confidence_threshold

    # === 노드 함수 정의 ===

    def prepare(state: SplitState) -> SplitState:
        """
        입력 준비 노드

        - 빈 영어 원문: 모든 모드에서 빈 결과
        - parallel 모드에 한글 해석이 없으면 ai-verify로 전환
        """
        state["current_node"] = "prepare"
        state["status"] = "running"

        if not state.get("english", "").strip():
            logger.info("빈 입력 - 빈 결과 반환")
            return _complete(state, empty_result())

        korean = state.get("korean")
        if state["mode"] == SplitMode.PARALLEL and not (korean and korean.strip()):
            logger.info("한글 해석 없음 - parallel → ai-verify 전환")
            state["mode"] = SplitMode.AI_VERIFY

        return state

    def regex_split(state: SplitState) -> SplitState:
        """
        Regex 분리 노드

        hybrid 모드에서는 신뢰도와 경고, 번역 정렬 신호로 AI 전환 여부를 결정
        """
        state["current_node"] = "regex_split"

        try:
            result = regex_splitter.split(state["english"], state.get("korean"))
        except Exception as e:
            return _fail(state, e, "Regex 분리")

        state["regex_result"] = result
        if state["mode"] == SplitMode.REGEX:
            return _complete(state, result)

        reasons = []
        if result.confidence < threshold:
            reasons.append(f"신뢰도 {result.confidence:.2f} < {threshold}")
        if result.warnings:
            reasons.append(f"경고 {len(result.warnings)}건")

        korean = state.get("korean")
        if korean and korean.strip():
            signal = analyzer.analyze(state["english"], korean)
            state["alignment"] = signal
            if signal.needs_ai:
                reasons.append(f"번역 정렬 신호: {', '.join(signal.signals) or signal.alignment}")

        if not reasons:
            logger.info(f"hybrid: Regex 결과 사용 (신뢰도 {result.confidence:.2f})")
            return _complete(state, replace(result, method=SplitMode.REGEX))

        logger.info(f"hybrid: AI 전환 - {'; '.join(reasons)}")
        state["escalated"] = True
        return state

    def ai_split(state: SplitState) -> SplitState:
        """AI 분리 노드 (원문 검증 없음)"""
        state["current_node"] = "ai_split"

        try:
            result = ai_splitter.split(state["english"], state["model"], state.get("korean"))
        except Exception as e:
            return _fail(state, e, "AI 분리")

        if state.get("escalated"):
            result = replace(result, method=SplitMode.HYBRID)
        return _complete(state, result)

    def ai_verify(state: SplitState) -> SplitState:
        """AI 검증 노드 (원문 변형 시 실패)"""
        state["current_node"] = "ai_verify"

        try:
            result = ai_splitter.verify(state["english"], state["model"], state.get("korean"))
        except Exception as e:
            return _fail(state, e, "AI 검증")

        return _complete(state, result)

    def parallel_extract(state: SplitState) -> SplitState:
        """병렬 추출 노드 (영어 변형 시 실패, 한글 문제는 보고)"""
        state["current_node"] = "parallel_extract"

        try:
            result = parallel_extractor.extract(state["english"], state["korean"], state["model"])
        except Exception as e:
            return _fail(state, e, "병렬 추출")

        return _complete(state, result)

    # === 라우팅 ===

    def route_after_prepare(state: SplitState) -> str:
        if state.get("status") in ("completed", "failed"):
            return "end"
        return _MODE_NODES[state["mode"]]

    def route_after_regex(state: SplitState) -> str:
        if state.get("status") in ("completed", "failed"):
            return "end"
        return "ai_split"

    # 그래프 생성
    workflow = StateGraph(SplitState)

    # 노드 추가
    workflow.add_node("prepare", prepare)
    workflow.add_node("regex_split", regex_split)
    workflow.add_node("ai_split", ai_split)
    workflow.add_node("ai_verify", ai_verify)
    workflow.add_node("parallel_extract", parallel_extract)

    # 엣지 연결
    workflow.add_conditional_edges(
        "prepare",
        route_after_prepare,
        {
            "regex_split": "regex_split",
            "ai_split": "ai_split",
            "ai_verify": "ai_verify",
            "parallel_extract": "parallel_extract",
            "end": END,
        },
    )
    workflow.add_conditional_edges(
        "regex_split",
        route_after_regex,
        {"ai_split": "ai_split", "end": END},
    )
    workflow.add_edge("ai_split", END)
    workflow.add_edge("ai_verify", END)
    workflow.add_edge("parallel_extract", END)

    # 시작 노드 설정
    workflow.set_entry_point("prepare")

    return workflow


def compile_graph(client: GenerationClient, **kwargs):
    """
    그래프 컴파일

    Args:
        client: 생성 모델 클라이언트
        **kwargs: create_split_graph 추가 인자

    Returns:
        실행 가능한 CompiledGraph
    """
    regex_splitter = kwargs.pop("regex_splitter", None) or RegexSplitter()
    workflow = create_split_graph(
        ai_splitter=AISplitter(client, regex_splitter),
        parallel_extractor=kwargs.pop("parallel_extractor", None) or ParallelExtractor(client),
        regex_splitter=regex_splitter,
        **kwargs,
    )
    return workflow.compile()


# === 배치 ===

@dataclass
class BatchItem:
    """배치 입력 지문"""
    id: str
    english: str
    korean: Optional[str] = None
    name: Optional[str] = None


@dataclass
class BatchOutcome:
    """배치 항목별 결과 (성공 또는 분류된 실패)"""
    id: str
    success: bool
    result: Optional[SplitResult] = None
    error: Optional[SplitterError] = None
    name: Optional[str] = None

    @property
    def sentence_count(self) -> int:
        return self.result.sentence_count if self.result else 0


# === 디스패처 ===

class SplitDispatcher:
    """
    문장 분리 디스패처

    생성 모델 클라이언트를 주입받아 한 번 컴파일한 그래프로 모든 요청을 처리한다.
    인스턴스는 변경 가능한 공유 상태가 없어 여러 스레드에서 동시에 사용할 수 있다.
    """

    def __init__(
        self,
        client: Optional[GenerationClient] = None,
        default_model: Optional[str] = None,
        default_mode: Union[str, SplitMode, None] = None,
        batch_concurrency: Optional[int] = None,
        **graph_kwargs,
    ):
        """
        Args:
            client: 생성 모델 클라이언트 (기본: LLMClient)
            default_model: 기본 모델 ID (기본: settings에서)
            default_mode: 기본 모드 (기본: settings에서)
            batch_concurrency: 배치 동시 실행 수 (기본: settings에서)
            **graph_kwargs: regex_splitter, parallel_extractor, analyzer, hybrid_threshold
        """
        self.client = client or LLMClient()
        self.default_model = default_model or settings.default_model
        self.default_mode = SplitMode.parse(default_mode or settings.default_mode)
        self.batch_concurrency = batch_concurrency or settings.batch_concurrency
        self._app = compile_graph(self.client, **graph_kwargs)

    def run_state(
        self,
        english: str,
        korean: Optional[str] = None,
        model: Optional[str] = None,
        mode: Union[str, SplitMode, None] = None,
        progress_callback: Optional[Callable[[str, str], None]] = None,
    ) -> SplitState:
        """
        파이프라인 실행 후 최종 상태 반환 (실패해도 예외를 던지지 않음)

        Args:
            english: 영어 원문
            korean: 한글 해석 (선택)
            model: 모델 ID
            mode: 분리 모드
            progress_callback: 진행 상황 콜백 (node_name, status)

        Returns:
            최종 상태 (SplitState)
        """
        initial_state = create_initial_state(
            english=english,
            korean=korean,
            model=model or self.default_model,
            mode=SplitMode.parse(mode or self.default_mode),
        )

        # 스트리밍 실행
        final_state = initial_state
        for output in self._app.stream(initial_state):
            for node_name, state in output.items():
                final_state = state
                if progress_callback:
                    progress_callback(state.get("current_node", node_name), state.get("status", ""))

        logger.debug(f"분리 파이프라인 종료: {get_state_summary(final_state)}")
        return final_state

    def run(
        self,
        english: str,
        korean: Optional[str] = None,
        model: Optional[str] = None,
        mode: Union[str, SplitMode, None] = None,
    ) -> SplitResult:
        """
        단일 지문 분리

        Args:
            english: 영어 원문
            korean: 한글 해석 (선택)
            model: 모델 ID (기본: default_model)
            mode: 분리 모드 (기본: default_mode)

        Returns:
            SplitResult

        Raises:
            ValueError: 유효하지 않은 모드
            GenerationFailure: 분류된 생성 모델 실패
            FidelityError: 원문 변형 또는 응답 형식 위반
        """
        state = self.run_state(english, korean, model, mode)

        if state.get("status") == "failed":
            failure = state.get("failure")
            if failure is not None:
                raise failure
            raise RuntimeError(state.get("error") or "문장 분리 실패")

        return state["result"]

    def _run_item(self, item: BatchItem, mode: SplitMode, model: str) -> BatchOutcome:
        try:
            result = self.run(item.english, item.korean, model, mode)
            return BatchOutcome(id=item.id, success=True, result=result, name=item.name)
        except SplitterError as e:
            logger.warning(f"배치 항목 실패 [{item.id}]: {e}")
            return BatchOutcome(id=item.id, success=False, error=e, name=item.name)
        except Exception as e:
            context = ErrorContext(provider=provider_name(model), model=model, action="batch")
            failure = classify_error(e, context, provider_of=provider_name)
            logger.warning(f"배치 항목 실패 [{item.id}]: {failure.kind.value} - {e}")
            return BatchOutcome(id=item.id, success=False, error=failure, name=item.name)

    def run_batch(
        self,
        items: list[BatchItem],
        mode: Union[str, SplitMode, None] = None,
        model: Optional[str] = None,
        max_concurrency: Optional[int] = None,
    ) -> list[BatchOutcome]:
        """
        여러 지문 분리 (항목별 실패 격리, 동시 실행 수 제한)

        Args:
            items: 배치 입력 지문 목록
            mode: 분리 모드
            model: 모델 ID
            max_concurrency: 동시 실행 수 (기본: batch_concurrency)

        Returns:
            입력 순서대로의 BatchOutcome 리스트
        """
        if not items:
            return []

        split_mode = SplitMode.parse(mode or self.default_mode)
        model_id = model or self.default_model
        workers = min(max_concurrency or self.batch_concurrency, len(items))

        logger.info(f"배치 분리 시작: {len(items)}개 지문 (mode={split_mode.value}, model={model_id}, 동시 {workers})")

        with ThreadPoolExecutor(max_workers=workers) as executor:
            outcomes = list(executor.map(lambda item: self._run_item(item, split_mode, model_id), items))

        success = sum(1 for o in outcomes if o.success)
        logger.info(f"배치 분리 완료: 성공 {success}, 실패 {len(outcomes) - success}")
        return outcomes


# 편의 함수
def split_passage(
    english: str,
    korean: Optional[str] = None,
    model: Optional[str] = None,
    mode: Union[str, SplitMode, None] = None,
    client: Optional[GenerationClient] = None,
) -> SplitResult:
    """단일 지문 분리 (단축 함수)"""
    return SplitDispatcher(client=client).run(english, korean, model, mode)


def split_passages(
    items: list[BatchItem],
    mode: Union[str, SplitMode, None] = None,
    model: Optional[str] = None,
    client: Optional[GenerationClient] = None,
) -> list[BatchOutcome]:
    """배치 분리 (단축 함수)"""
    return SplitDispatcher(client=client).run_batch(items, mode, model)
