"""
텍스트 정규화 모듈
비교 전용 정규화 (반환/저장되는 텍스트에는 절대 적용하지 않음)
"""
import re
from dataclasses import dataclass
from typing import Optional


# 모든 종류의 공백 (유니코드 공백, 전각 공백, 줄/문단 구분자, 제로폭 문자)
_WHITESPACE_PATTERN = re.compile(r"[\s\u00a0\u2000-\u200d\u2028\u2029\u3000\ufeff]+")
# 대시/하이픈 변형
_DASH_PATTERN = re.compile(r"[\u2010-\u2015\u2212\ufe58\ufe63\uff0d]")
# 작은따옴표 변형 (곡선, 꺾쇠)
_SINGLE_QUOTE_PATTERN = re.compile(r"[\u2018\u2019\u201a\u201b\u2039\u203a]")
# 큰따옴표 변형 (곡선, 꺾쇠)
_DOUBLE_QUOTE_PATTERN = re.compile(r"[\u201c\u201d\u201e\u201f\u00ab\u00bb]")

QUOTE_CHARS = "\"'"

# 불일치 위치 전후로 보여줄 문자 수
CONTEXT_WINDOW = 20


@dataclass
class TextComparison:
    """정규화 비교 결과"""
    is_match: bool
    offset: int = -1                    # 첫 불일치 위치 (정규화 텍스트 기준)
    original_context: str = ""          # 원본의 불일치 주변 텍스트
    produced_context: str = ""          # 생성 결과의 불일치 주변 텍스트
    original_length: int = 0
    produced_length: int = 0

    @property
    def length_delta(self) -> int:
        """정규화 길이 차이 (절댓값)"""
        return abs(self.original_length - self.produced_length)

    @property
    def diff(self) -> Optional[str]:
        """사람이 읽을 수 있는 차이 설명"""
        if self.is_match:
            return None
        return (
            f"위치 {self.offset}: 원본[{self.original_context}] vs AI[{self.produced_context}] "
            f"(원본 {self.original_length}자, AI {self.produced_length}자)"
        )

    def to_dict(self) -> dict:
        return {
            "is_match": self.is_match,
            "offset": self.offset,
            "original_context": self.original_context,
            "produced_context": self.produced_context,
            "original_length": self.original_length,
            "produced_length": self.produced_length,
        }


def canonicalize_chars(text: Optional[str]) -> str:
    """공백/대시/따옴표 변형만 통일 (양끝 따옴표는 유지)"""
    if not text:
        return ""

    result = _WHITESPACE_PATTERN.sub(" ", text)
    result = _DASH_PATTERN.sub("-", result)
    result = _SINGLE_QUOTE_PATTERN.sub("'", result)
    result = _DOUBLE_QUOTE_PATTERN.sub('"', result)
    return result.strip()


def normalize_text(text: Optional[str]) -> str:
    """
    비교용 텍스트 정규화

    - 모든 공백류를 단일 ASCII 공백으로
    - 대시 변형을 하이픈으로, 곡선/꺾쇠 따옴표를 직선 따옴표로
    - 양끝 따옴표 한 겹 제거 (모델이 답을 따옴표로 감싸는 경우 대응)

    Args:
        text: 원본 텍스트

    Returns:
        정규화된 텍스트
    """
    result = canonicalize_chars(text)

    if result and result[0] in QUOTE_CHARS:
        result = result[1:]
    if result and result[-1] in QUOTE_CHARS:
        result = result[:-1]

    return result.strip()


def compare_texts(original: str, produced: str) -> TextComparison:
    """
    정규화 후 두 텍스트 비교

    Args:
        original: 원본 텍스트
        produced: 모델이 생성한 텍스트

    Returns:
        TextComparison (불일치 시 위치와 전후 20자 컨텍스트 포함)
    """
    normalized_original = normalize_text(original)
    normalized_produced = normalize_text(produced)

    if normalized_original == normalized_produced:
        return TextComparison(
            is_match=True,
            original_length=len(normalized_original),
            produced_length=len(normalized_produced),
        )

    # 첫 불일치 위치 (공통 접두사 길이)
    offset = min(len(normalized_original), len(normalized_produced))
    for i, (a, b) in enumerate(zip(normalized_original, normalized_produced)):
        if a != b:
            offset = i
            break

    start = max(0, offset - CONTEXT_WINDOW)
    end = offset + CONTEXT_WINDOW

    return TextComparison(
        is_match=False,
        offset=offset,
        original_context=normalized_original[start:end],
        produced_context=normalized_produced[start:end],
        original_length=len(normalized_original),
        produced_length=len(normalized_produced),
    )


def collapse_whitespace(text: Optional[str]) -> str:
    """줄바꿈 포함 연속 공백을 단일 공백으로 (셀 내 줄바꿈 처리)"""
    if not text:
        return ""
    return re.sub(r"\s+", " ", text).strip()


def count_words(text: Optional[str]) -> int:
    """공백 기준 단어 수"""
    if not text:
        return 0
    return len(text.split())
