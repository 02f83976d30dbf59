"""
모델 응답 스키마
생성 모델의 JSON 응답을 경계에서 바로 검증된 타입으로 변환
"""
import json
import logging
import re
from typing import Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from bilingual_splitter.utils import (
    FailureKind,
    FidelityError,
    FidelityKind,
    GenerationFailure,
    get_alternative_model,
    provider_name,
)


logger = logging.getLogger(__name__)

# ```json ... ``` 코드 펜스
_CODE_FENCE_PATTERN = re.compile(r"^\s*```(?:json)?\s*|\s*```\s*$", re.IGNORECASE)


class SentenceItem(BaseModel):
    """분리된 문장 항목"""
    no: Optional[int] = Field(None, description="문장 번호")
    content: str = Field(..., description="원문 그대로의 문장")
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0, description="모델 신뢰도")


class SplitResponseSchema(BaseModel):
    """AI 분리/검증 응답"""
    sentences: list[SentenceItem]
    overall_confidence: Optional[float] = Field(None, ge=0.0, le=1.0)
    corrections: list[str] = Field(default_factory=list, description="모델이 수정한 경계 설명")

    @field_validator("corrections", mode="before")
    @classmethod
    def _coerce_corrections(cls, v):
        """null 또는 객체 목록도 문자열 목록으로"""
        if v is None:
            return []
        if isinstance(v, str):
            return [v] if v.strip() else []
        if isinstance(v, list):
            return [item if isinstance(item, str) else json.dumps(item, ensure_ascii=False) for item in v]
        return v


class PairItem(BaseModel):
    """영어/한글 문장 쌍"""
    no: Optional[int] = None
    english: Optional[str] = None
    korean: Optional[str] = None
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0)


class KoreanIssueItem(BaseModel):
    """모델이 자체 보고한 한글 번역 문제"""
    model_config = ConfigDict(populate_by_name=True)

    type: str = "quality"
    pair_no: Optional[int] = Field(None, alias="pairNo")
    description: Optional[str] = None


class PairResponseSchema(BaseModel):
    """병렬 추출 응답"""
    pairs: list[PairItem]
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0)
    korean_issues: list[KoreanIssueItem] = Field(default_factory=list)

    @field_validator("korean_issues", mode="before")
    @classmethod
    def _coerce_issues(cls, v):
        return [] if v is None else v


SchemaT = TypeVar("SchemaT", bound=BaseModel)


def strip_code_fence(text: str) -> str:
    """마크다운 코드 펜스 제거"""
    return _CODE_FENCE_PATTERN.sub("", text or "").strip()


def parse_response(text: str, schema: Type[SchemaT], model: Optional[str] = None) -> SchemaT:
    """
    모델 응답 텍스트를 스키마로 파싱

    Args:
        text: 모델 응답 원문
        schema: 검증할 pydantic 모델
        model: 응답을 만든 모델 ID

    Returns:
        검증된 스키마 인스턴스

    Raises:
        GenerationFailure: JSON으로 파싱할 수 없음 (malformed_output)
        FidelityError: JSON은 유효하나 요구 형식과 다름 (schema_violation)
    """
    try:
        data = json.loads(strip_code_fence(text))
    except json.JSONDecodeError as e:
        logger.error(f"JSON 파싱 실패 ({model}): {e} - 응답 앞부분: {(text or '')[:100]!r}")
        raise GenerationFailure(
            kind=FailureKind.MALFORMED_OUTPUT,
            message=f"AI 응답을 JSON으로 파싱할 수 없습니다: {e}",
            provider=provider_name(model) if model else None,
            model=model,
            alternative_model=get_alternative_model(model, FailureKind.MALFORMED_OUTPUT, provider_name),
        ) from e

    if not isinstance(data, dict):
        raise FidelityError(
            kind=FidelityKind.SCHEMA_VIOLATION,
            message=f"AI 응답이 JSON 객체가 아닙니다: {type(data).__name__}",
            model=model,
        )

    try:
        return schema.model_validate(data)
    except ValidationError as e:
        logger.error(f"응답 형식 위반 ({model}): {e.error_count()}개 오류")
        raise FidelityError(
            kind=FidelityKind.SCHEMA_VIOLATION,
            message=f"AI 응답이 요구 형식과 다릅니다 ({schema.__name__}): {e.errors()[0]['msg']}",
            model=model,
        ) from e
