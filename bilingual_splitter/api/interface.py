"""
문장 분리 호출 인터페이스 모듈
외부 시스템에서 문장 분리 엔진을 호출하기 위한 API 제공
"""
import asyncio
import logging
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from bilingual_splitter.graph import BatchItem, BatchOutcome, SplitDispatcher
from bilingual_splitter.processors import (
    AlignmentSignal,
    SplitMode,
    SplitResult,
    TranslationAnalyzer,
)
from bilingual_splitter.utils import (
    GenerationClient,
    SplitterError,
    settings,
)

logger = logging.getLogger(__name__)


def _validation_error(message: str) -> dict:
    return {
        "category": "validation",
        "kind": "invalid_request",
        "message": message,
        "retryable": False,
    }


# === 입력 스키마 ===

@dataclass
class SplitRequest:
    """
    단일 지문 분리 요청

    Attributes:
        english: 영어 원문
        korean: 한글 해석 (선택)
        model: 생성 모델 ID (기본: settings에서)
        mode: 분리 모드 (regex, ai, hybrid, ai-verify, parallel)
        include_translation_analysis: 번역 정렬 분석 포함 여부

    Examples:
        request = SplitRequest(
            english="Dr. Smith arrived. He left.",
            korean="스미스 박사가 도착했다. 그는 떠났다.",
            mode="parallel",
        )
    """
    english: str
    korean: Optional[str] = None
    model: Optional[str] = None
    mode: Optional[str] = None
    include_translation_analysis: bool = True

    # 내부 사용
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())

    def validate(self) -> tuple[bool, Optional[str]]:
        """
        요청 유효성 검증

        Returns:
            (유효 여부, 에러 메시지)
        """
        if self.english is None:
            return False, "english는 필수입니다"

        if not isinstance(self.english, str):
            return False, "english는 문자열이어야 합니다"

        if self.korean is not None and not isinstance(self.korean, str):
            return False, "korean은 문자열이어야 합니다"

        if self.mode is not None:
            try:
                SplitMode.parse(self.mode)
            except ValueError as e:
                return False, str(e)

        return True, None

    def to_dict(self) -> dict:
        return {
            "request_id": self.request_id,
            "english": self.english,
            "korean": self.korean,
            "model": self.model,
            "mode": self.mode,
            "include_translation_analysis": self.include_translation_analysis,
            "created_at": self.created_at,
        }


@dataclass
class BatchPassage:
    """배치 입력 지문"""
    id: str
    english: str
    korean: Optional[str] = None
    name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BatchPassage":
        """
        딕셔너리 → BatchPassage

        영어 원문은 english 또는 content, 한글 해석은 korean 또는 koreanTranslation 키를 사용
        """
        return cls(
            id=str(data.get("id", "")),
            english=data.get("english", data.get("content", "")) or "",
            korean=data.get("korean", data.get("koreanTranslation")),
            name=data.get("name"),
        )

    def to_item(self) -> BatchItem:
        return BatchItem(id=self.id, english=self.english, korean=self.korean, name=self.name)


# === 출력 스키마 ===

@dataclass
class SplitResponse:
    """
    단일 지문 분리 응답

    성공 시 result와 통계, 실패 시 호출자가 재시도/모델 변경/중단을 결정할 수 있는
    에러 페이로드를 담는다.
    """
    request_id: str
    success: bool
    result: Optional[SplitResult] = None
    translation_status: Optional[AlignmentSignal] = None
    stats: Optional[dict] = None
    error: Optional[dict] = None
    response_time_ms: int = 0
    created_at: Optional[str] = None

    @property
    def can_retry(self) -> bool:
        """재시도 가능 여부 (검증 오류가 아니면 명시적 재시도 가능)"""
        if self.success or self.error is None:
            return False
        return self.error.get("category") != "validation"

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {
            "request_id": self.request_id,
            "success": self.success,
        }
        if self.result is not None:
            payload.update(self.result.to_dict())
        payload["translation_status"] = self.translation_status.to_dict() if self.translation_status else None
        payload["stats"] = self.stats
        payload["response_time_ms"] = self.response_time_ms
        if not self.success:
            payload["error"] = self.error
            payload["can_retry"] = self.can_retry
        return payload


@dataclass
class BatchItemResult:
    """배치 항목 결과"""
    passage_id: str
    success: bool
    passage_name: Optional[str] = None
    result: Optional[SplitResult] = None
    translation_status: Optional[AlignmentSignal] = None
    error: Optional[dict] = None

    @property
    def sentence_count(self) -> int:
        return self.result.sentence_count if self.result else 0

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {
            "passage_id": self.passage_id,
            "passage_name": self.passage_name,
            "success": self.success,
        }
        if self.result is not None:
            payload.update(self.result.to_dict())
            payload["translation_status"] = self.translation_status.to_dict() if self.translation_status else None
        if self.error is not None:
            payload["error"] = self.error
        return payload


@dataclass
class BatchResponse:
    """배치 분리 응답"""
    results: list[BatchItemResult]
    model: str
    mode: str
    response_time_ms: int = 0

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed_count(self) -> int:
        return self.total - self.success_count

    @property
    def total_sentences(self) -> int:
        return sum(r.sentence_count for r in self.results)

    def summary(self) -> dict:
        """집계 (total, success, failed, totalSentences)"""
        return {
            "total": self.total,
            "success": self.success_count,
            "failed": self.failed_count,
            "totalSentences": self.total_sentences,
        }

    def to_dict(self) -> dict:
        return {
            "success": True,
            "results": [r.to_dict() for r in self.results],
            "summary": self.summary(),
            "response_time_ms": self.response_time_ms,
            "model": self.model,
            "mode": self.mode,
        }


# === API 클래스 ===

class SentenceSplitAPI:
    """
    문장 분리 API

    Features:
        - 단일/배치 분리 (동기, 비동기)
        - 번역 정렬 분석
        - 실패를 예외 대신 구조화된 에러 페이로드로 반환

    Examples:
        api = SentenceSplitAPI()
        response = api.split(SplitRequest(english="Hello there. Bye now."))
        if response.success:
            for sentence in response.result.sentences:
                print(sentence.index, sentence.content)
        else:
            print(response.error["kind"], response.error.get("alternative_model"))
    """

    def __init__(
        self,
        dispatcher: Optional[SplitDispatcher] = None,
        client: Optional[GenerationClient] = None,
        analyzer: Optional[TranslationAnalyzer] = None,
        max_workers: int = 4,
    ):
        """
        Args:
            dispatcher: 분리 디스패처 (기본: client로 생성)
            client: 생성 모델 클라이언트 (dispatcher가 없을 때 사용)
            analyzer: 번역 정렬 분석기
            max_workers: 비동기 작업용 스레드 풀 크기
        """
        self.dispatcher = dispatcher or SplitDispatcher(client=client)
        self.analyzer = analyzer or TranslationAnalyzer()
        self._executor = ThreadPoolExecutor(max_workers=max_workers)

    def _analyze(self, english: str, korean: Optional[str], result: SplitResult) -> Optional[AlignmentSignal]:
        if not korean or not korean.strip():
            return None
        signal = self.analyzer.analyze(english, korean)
        return self.analyzer.reconcile_with_result(signal, result)

    def split(self, request: SplitRequest) -> SplitResponse:
        """
        단일 지문 분리

        Args:
            request: 분리 요청

        Returns:
            SplitResponse (예외를 던지지 않음)
        """
        start = time.perf_counter()

        valid, error_msg = request.validate()
        if not valid:
            return SplitResponse(
                request_id=request.request_id,
                success=False,
                error=_validation_error(error_msg),
                created_at=request.created_at,
            )

        try:
            result = self.dispatcher.run(request.english, request.korean, request.model, request.mode)
        except SplitterError as e:
            logger.error(f"문장 분리 실패 [{request.request_id}]: {e}")
            return SplitResponse(
                request_id=request.request_id,
                success=False,
                error=e.to_dict(),
                response_time_ms=int((time.perf_counter() - start) * 1000),
                created_at=request.created_at,
            )
        except Exception as e:
            logger.exception(f"문장 분리 내부 오류 [{request.request_id}]: {e}")
            return SplitResponse(
                request_id=request.request_id,
                success=False,
                error={"category": "internal", "kind": "unknown", "message": str(e), "retryable": False},
                response_time_ms=int((time.perf_counter() - start) * 1000),
                created_at=request.created_at,
            )

        translation_status = None
        if request.include_translation_analysis:
            translation_status = self._analyze(request.english, request.korean, result)

        return SplitResponse(
            request_id=request.request_id,
            success=True,
            result=result,
            translation_status=translation_status,
            stats=result.stats(),
            response_time_ms=int((time.perf_counter() - start) * 1000),
            created_at=request.created_at,
        )

    def split_batch(
        self,
        passages: list[BatchPassage],
        mode: Optional[str] = None,
        model: Optional[str] = None,
        include_translation_analysis: bool = True,
        max_concurrency: Optional[int] = None,
    ) -> BatchResponse:
        """
        배치 분리 (항목별 실패 격리)

        Args:
            passages: 지문 목록
            mode: 분리 모드
            model: 모델 ID
            include_translation_analysis: 번역 정렬 분석 포함 여부
            max_concurrency: 동시 실행 수

        Returns:
            BatchResponse

        Raises:
            ValueError: 유효하지 않은 모드
        """
        start = time.perf_counter()
        split_mode = SplitMode.parse(mode or self.dispatcher.default_mode)
        model_id = model or self.dispatcher.default_model

        outcomes = self.dispatcher.run_batch(
            [p.to_item() for p in passages],
            mode=split_mode,
            model=model_id,
            max_concurrency=max_concurrency,
        )

        results = []
        for passage, outcome in zip(passages, outcomes):
            results.append(self._to_item_result(passage, outcome, include_translation_analysis))

        return BatchResponse(
            results=results,
            model=model_id,
            mode=split_mode.value,
            response_time_ms=int((time.perf_counter() - start) * 1000),
        )

    def _to_item_result(
        self,
        passage: BatchPassage,
        outcome: BatchOutcome,
        include_translation_analysis: bool,
    ) -> BatchItemResult:
        if not outcome.success:
            return BatchItemResult(
                passage_id=outcome.id,
                passage_name=outcome.name,
                success=False,
                error=outcome.error.to_dict() if outcome.error else None,
            )

        translation_status = None
        if include_translation_analysis:
            translation_status = self._analyze(passage.english, passage.korean, outcome.result)

        return BatchItemResult(
            passage_id=outcome.id,
            passage_name=outcome.name,
            success=True,
            result=outcome.result,
            translation_status=translation_status,
        )

    async def split_async(self, request: SplitRequest) -> SplitResponse:
        """단일 지문 분리 - 비동기 버전"""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, lambda: self.split(request))

    async def split_batch_async(
        self,
        passages: list[BatchPassage],
        mode: Optional[str] = None,
        model: Optional[str] = None,
        include_translation_analysis: bool = True,
    ) -> BatchResponse:
        """배치 분리 - 비동기 버전"""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self._executor,
            lambda: self.split_batch(passages, mode, model, include_translation_analysis),
        )

    def shutdown(self):
        """리소스 정리"""
        self._executor.shutdown(wait=False)


# === 편의 함수 ===

def split_text(
    english: str,
    korean: Optional[str] = None,
    model: Optional[str] = None,
    mode: Optional[str] = None,
    client: Optional[GenerationClient] = None,
) -> SplitResponse:
    """
    단일 지문 분리 (편의 함수)

    Examples:
        response = split_text("Dr. Smith arrived. He left.", mode="regex")
        print([s.content for s in response.result.sentences])
    """
    api = SentenceSplitAPI(client=client)
    try:
        return api.split(SplitRequest(english=english, korean=korean, model=model, mode=mode))
    finally:
        api.shutdown()


def split_batch(
    passages: list[dict],
    mode: Optional[str] = None,
    model: Optional[str] = None,
    client: Optional[GenerationClient] = None,
) -> BatchResponse:
    """
    배치 분리 (편의 함수)

    Args:
        passages: {id, english|content, korean|koreanTranslation, name} 딕셔너리 목록
    """
    api = SentenceSplitAPI(client=client)
    try:
        return api.split_batch(
            [BatchPassage.from_dict(p) for p in passages],
            mode=mode or settings.default_mode,
            model=model,
        )
    finally:
        api.shutdown()
