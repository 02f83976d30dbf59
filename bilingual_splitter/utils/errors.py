"""
에러 분류 모듈
생성 모델 호출 실패를 닫힌 분류 체계로 매핑하고 대안 모델을 추천
"""
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import anthropic
import openai
from google.genai import errors as genai_errors
from pydantic import ValidationError


logger = logging.getLogger(__name__)


class FailureKind(Enum):
    """생성 모델 실패 유형"""
    AUTH = "auth"                                   # API 키 누락/무효
    QUOTA = "quota"                                 # 요청 한도 또는 예산 초과
    TIMEOUT = "timeout"                             # 응답 시간 초과
    MALFORMED_OUTPUT = "malformed_output"           # JSON 파싱 불가
    PROVIDER_UNAVAILABLE = "provider_unavailable"   # 네트워크/서버 오류
    UNKNOWN = "unknown"


class FidelityKind(Enum):
    """원문 충실도 위반 유형"""
    TEXT_MODIFIED = "text_modified"         # 모델이 영어 원문을 변형함
    SCHEMA_VIOLATION = "schema_violation"   # JSON은 유효하나 요구 형식과 다름


RETRYABLE_KINDS = {
    FailureKind.TIMEOUT,
    FailureKind.QUOTA,
    FailureKind.PROVIDER_UNAVAILABLE,
}

# 대안 모델을 추천하는 실패 유형
_ALTERNATIVE_KINDS = {
    FailureKind.AUTH,
    FailureKind.QUOTA,
    FailureKind.PROVIDER_UNAVAILABLE,
    FailureKind.MALFORMED_OUTPUT,
}

# 제공자 수준 실패 (다른 제공자의 모델을 우선 추천)
_PROVIDER_LEVEL_KINDS = {
    FailureKind.AUTH,
    FailureKind.QUOTA,
    FailureKind.PROVIDER_UNAVAILABLE,
}

# 모델별 대안 (동급 우선)
ALTERNATIVE_MODELS: dict[str, list[str]] = {
    "gemini-2.0-flash": ["gemini-2.5-flash", "gpt-4o-mini", "claude-3-haiku-20240307"],
    "gemini-2.5-flash": ["gemini-2.0-flash", "gpt-4o-mini", "claude-3-haiku-20240307"],
    "gemini-1.5-pro": ["gemini-2.0-flash", "gpt-4o", "claude-3-5-sonnet-20241022"],
    "gpt-4o-mini": ["gemini-2.0-flash", "claude-3-haiku-20240307", "gpt-4o"],
    "gpt-4o": ["gpt-4o-mini", "claude-3-5-sonnet-20241022", "gemini-1.5-pro"],
    "claude-3-haiku-20240307": ["gpt-4o-mini", "gemini-2.0-flash"],
    "claude-3-5-sonnet-20241022": ["gpt-4o", "claude-3-haiku-20240307", "gemini-1.5-pro"],
}

# 메시지 기반 분류 규칙 (우선순위 순)
_MESSAGE_RULES: list[tuple[FailureKind, tuple[str, ...]]] = [
    (FailureKind.AUTH, ("api key", "apikey", "unauthorized", "permission denied", "authentication")),
    (FailureKind.TIMEOUT, ("timeout", "timed out", "시간 초과")),
    (FailureKind.QUOTA, ("rate limit", "too many requests", "quota", "billing", "resource_exhausted", "exceeded")),
    (FailureKind.PROVIDER_UNAVAILABLE, ("network", "connection", "econnrefused", "unavailable", "overloaded", "연결")),
    (FailureKind.MALFORMED_OUTPUT, ("json", "parse", "unexpected token")),
]


class SplitterError(Exception):
    """문장 분리 엔진 기본 예외"""

    retryable: bool = False

    def to_dict(self) -> dict:
        return {
            "category": "splitter",
            "kind": "unknown",
            "message": str(self),
            "retryable": self.retryable,
        }


class GenerationFailure(SplitterError):
    """
    분류된 생성 모델 호출 실패

    Attributes:
        kind: 실패 유형
        message: 사람이 읽을 수 있는 메시지
        provider: 제공자 (openai, anthropic, google)
        model: 모델 ID
        alternative_model: 재시도용 대안 모델 (선택)
        retryable: 같은 요청의 재시도가 의미 있는지 여부
    """

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        provider: Optional[str] = None,
        model: Optional[str] = None,
        alternative_model: Optional[str] = None,
        retryable: Optional[bool] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.provider = provider
        self.model = model
        self.alternative_model = alternative_model
        self.retryable = kind in RETRYABLE_KINDS if retryable is None else retryable

    def to_dict(self) -> dict:
        return {
            "category": "generation",
            "kind": self.kind.value,
            "message": self.message,
            "provider": self.provider,
            "model": self.model,
            "alternative_model": self.alternative_model,
            "retryable": self.retryable,
        }

    def __repr__(self) -> str:
        return f"GenerationFailure(kind={self.kind.value!r}, model={self.model!r}, message={self.message!r})"


class FidelityError(SplitterError):
    """
    원문 충실도 위반

    모델이 영어 원문을 변형했거나 요구 형식을 위반한 경우.
    자동 교정이나 자동 재시도 없이 호출자가 명시적으로 재시도해야 한다.
    """

    retryable = False
    requires_manual_retry = True

    def __init__(
        self,
        kind: FidelityKind,
        message: str,
        model: Optional[str] = None,
        offset: int = -1,
        original_context: str = "",
        produced_context: str = "",
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.model = model
        self.offset = offset
        self.original_context = original_context
        self.produced_context = produced_context

    def to_dict(self) -> dict:
        return {
            "category": "fidelity",
            "kind": self.kind.value,
            "message": self.message,
            "model": self.model,
            "offset": self.offset,
            "original_context": self.original_context,
            "produced_context": self.produced_context,
            "retryable": self.retryable,
            "requires_manual_retry": self.requires_manual_retry,
        }


@dataclass
class ErrorContext:
    """분류에 사용하는 호출 맥락"""
    provider: Optional[str] = None
    model: Optional[str] = None
    action: Optional[str] = None
    extra: dict = field(default_factory=dict)


def get_alternative_model(
    current_model: Optional[str],
    kind: FailureKind,
    provider_of=None,
) -> Optional[str]:
    """
    실패 유형에 따른 대안 모델 추천

    Args:
        current_model: 현재 모델 ID
        kind: 실패 유형
        provider_of: 모델 ID → 제공자 이름 함수 (제공자 수준 실패 시 다른 제공자 우선)

    Returns:
        대안 모델 ID 또는 None
    """
    if not current_model or kind not in _ALTERNATIVE_KINDS:
        return None

    candidates = [m for m in ALTERNATIVE_MODELS.get(current_model, []) if m != current_model]
    if not candidates:
        return None

    if kind in _PROVIDER_LEVEL_KINDS and provider_of is not None:
        current_provider = provider_of(current_model)
        for candidate in candidates:
            if provider_of(candidate) != current_provider:
                return candidate

    return candidates[0]


def _status_code(error: BaseException) -> Optional[int]:
    """SDK 예외에서 HTTP 상태 코드 추출"""
    for attr in ("status_code", "code"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    return None


def _kind_from_status(status: int, message: str) -> Optional[FailureKind]:
    if status in (401, 403):
        return FailureKind.AUTH
    if status == 429:
        return FailureKind.QUOTA
    if status in (408, 504):
        return FailureKind.TIMEOUT
    if status >= 500:
        return FailureKind.PROVIDER_UNAVAILABLE
    if status == 404:
        # 모델 없음: 현재 제공자/모델 조합을 사용할 수 없음
        return FailureKind.PROVIDER_UNAVAILABLE
    if status == 400 and ("api key" in message or "api_key" in message):
        return FailureKind.AUTH
    return None


def _kind_from_type(error: BaseException) -> Optional[FailureKind]:
    """SDK 예외 타입 기반 분류"""
    # 타임아웃은 연결 오류의 하위 클래스이므로 먼저 확인
    if isinstance(error, (TimeoutError, openai.APITimeoutError, anthropic.APITimeoutError)):
        return FailureKind.TIMEOUT
    if isinstance(error, (openai.AuthenticationError, openai.PermissionDeniedError,
                          anthropic.AuthenticationError, anthropic.PermissionDeniedError)):
        return FailureKind.AUTH
    if isinstance(error, (openai.RateLimitError, anthropic.RateLimitError)):
        return FailureKind.QUOTA
    if isinstance(error, (openai.APIConnectionError, anthropic.APIConnectionError, ConnectionError)):
        return FailureKind.PROVIDER_UNAVAILABLE
    if isinstance(error, (json.JSONDecodeError, ValidationError)):
        return FailureKind.MALFORMED_OUTPUT
    return None


def _kind_from_message(message: str) -> FailureKind:
    for kind, needles in _MESSAGE_RULES:
        if any(needle in message for needle in needles):
            return kind
    return FailureKind.UNKNOWN


def classify_error(
    raw_error: BaseException,
    context: Optional[ErrorContext] = None,
    provider_of=None,
) -> GenerationFailure:
    """
    제공자별 예외를 GenerationFailure로 분류 (순수 매핑, 네트워크 호출 없음)

    분류 순서: 이미 분류된 실패 → 예외 타입 → HTTP 상태 코드 → 메시지 문자열

    Args:
        raw_error: 원본 예외
        context: 호출 맥락 (제공자, 모델, 작업)
        provider_of: 모델 ID → 제공자 이름 함수 (대안 모델 추천용)

    Returns:
        GenerationFailure
    """
    context = context or ErrorContext()

    if isinstance(raw_error, GenerationFailure):
        return raw_error

    message = str(raw_error) or raw_error.__class__.__name__
    lowered = message.lower()

    kind = _kind_from_type(raw_error)
    if kind is None and isinstance(raw_error, (openai.APIStatusError, anthropic.APIStatusError, genai_errors.APIError)):
        status = _status_code(raw_error)
        if status is not None:
            kind = _kind_from_status(status, lowered)
    if kind is None:
        kind = _kind_from_message(lowered)

    failure = GenerationFailure(
        kind=kind,
        message=message,
        provider=context.provider,
        model=context.model,
        alternative_model=get_alternative_model(context.model, kind, provider_of),
    )

    logger.warning(
        f"생성 모델 오류 분류: {kind.value} "
        f"(provider={context.provider}, model={context.model}, action={context.action}) - {message[:200]}"
    )
    return failure
