"""
API 모듈
외부 시스템과의 연동 인터페이스 제공 (단일/배치 문장 분리)
"""
from .interface import (
    # Input/Output Schemas
    SplitRequest,
    SplitResponse,
    BatchPassage,
    BatchItemResult,
    BatchResponse,
    # Main Interface
    SentenceSplitAPI,
    # Convenience Functions
    split_text,
    split_batch,
)

__all__ = [
    # Schemas
    "SplitRequest",
    "SplitResponse",
    "BatchPassage",
    "BatchItemResult",
    "BatchResponse",
    # API Class
    "SentenceSplitAPI",
    # Functions
    "split_text",
    "split_batch",
]
