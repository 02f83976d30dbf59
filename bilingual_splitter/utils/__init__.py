"""
유틸리티 모듈
설정, 텍스트 정규화, 에러 분류, LLM 클라이언트 제공
"""
from .config import settings, Settings
from .errors import (
    SplitterError,
    GenerationFailure,
    FidelityError,
    FailureKind,
    FidelityKind,
    ErrorContext,
    classify_error,
    get_alternative_model,
)
from .llm_client import (
    LLMClient,
    GenerationClient,
    Provider,
    ModelInfo,
    MODEL_REGISTRY,
    resolve_provider,
    provider_name,
)
from .text_normalizer import (
    TextComparison,
    normalize_text,
    canonicalize_chars,
    compare_texts,
    collapse_whitespace,
    count_words,
)

__all__ = [
    "settings",
    "Settings",
    # Errors
    "SplitterError",
    "GenerationFailure",
    "FidelityError",
    "FailureKind",
    "FidelityKind",
    "ErrorContext",
    "classify_error",
    "get_alternative_model",
    # LLM
    "LLMClient",
    "GenerationClient",
    "Provider",
    "ModelInfo",
    "MODEL_REGISTRY",
    "resolve_provider",
    "provider_name",
    # Normalizer
    "TextComparison",
    "normalize_text",
    "canonicalize_chars",
    "compare_texts",
    "collapse_whitespace",
    "count_words",
]
