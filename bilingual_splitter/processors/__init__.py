"""
프로세서 모듈
Regex/AI 문장 분리, 병렬 추출, 번역 정렬 분석 기능 제공
"""
from .models import (
    SplitMode,
    IssueKind,
    IssueSeverity,
    Sentence,
    TranslationIssue,
    SplitResult,
    empty_result,
)
from .schemas import (
    SplitResponseSchema,
    PairResponseSchema,
    parse_response,
    strip_code_fence,
)
from .regex_splitter import (
    RegexSplitter,
    ABBREVIATIONS,
    split_sentences,
    split_korean_sentences,
)
from .translation_analyzer import (
    TranslationAnalyzer,
    AlignmentSignal,
    analyze_translation,
)
from .ai_splitter import (
    AISplitter,
    complete_classified,
)
from .parallel_extractor import ParallelExtractor

__all__ = [
    # Models
    "SplitMode",
    "IssueKind",
    "IssueSeverity",
    "Sentence",
    "TranslationIssue",
    "SplitResult",
    "empty_result",
    # Schemas
    "SplitResponseSchema",
    "PairResponseSchema",
    "parse_response",
    "strip_code_fence",
    # Regex splitter
    "RegexSplitter",
    "ABBREVIATIONS",
    "split_sentences",
    "split_korean_sentences",
    # Translation analyzer
    "TranslationAnalyzer",
    "AlignmentSignal",
    "analyze_translation",
    # AI splitter
    "AISplitter",
    "complete_classified",
    # Parallel extractor
    "ParallelExtractor",
]
