"""
문장 분리 결과 모델
모든 분리 전략이 공유하는 데이터 클래스
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class SplitMode(Enum):
    """문장 분리 전략"""
    REGEX = "regex"
    AI = "ai"
    HYBRID = "hybrid"
    AI_VERIFY = "ai-verify"
    PARALLEL = "parallel"

    @classmethod
    def parse(cls, value: "str | SplitMode") -> "SplitMode":
        """문자열 또는 SplitMode → SplitMode"""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(m.value for m in cls)
            raise ValueError(f"유효하지 않은 모드: {value}. 허용: {allowed}") from None


class IssueKind(Enum):
    """한글 번역 문제 유형"""
    MISSING = "missing"             # 번역 누락
    INCOMPLETE = "incomplete"       # 번역 불완전
    QUALITY = "quality"             # 품질 의심
    MODIFIED = "modified"           # 모델이 한글 해석을 변형함


class IssueSeverity(Enum):
    """문제 심각도"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass
class Sentence:
    """분리된 문장"""
    index: int                                  # 1부터 시작하는 순서
    content: str                                # 영어 원문 (그대로)
    word_count: int                             # 공백 기준 단어 수
    confidence: float                           # 0-1
    korean_translation: Optional[str] = None    # 정렬된 한글 해석 (있는 경우)
    issues: list[str] = field(default_factory=list)  # 진단 메모

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "content": self.content,
            "word_count": self.word_count,
            "confidence": round(self.confidence, 4),
            "korean_translation": self.korean_translation,
            "issues": list(self.issues),
        }


@dataclass(frozen=True)
class TranslationIssue:
    """한글 번역 문제 (영어 쪽 실패를 일으키지 않음)"""
    kind: IssueKind
    sentence_index: int             # 0 = 지문 전체
    description: str
    severity: IssueSeverity
    needs_review: bool              # True: 관리자 확인 필요, False: 참고용

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "sentence_index": self.sentence_index,
            "description": self.description,
            "severity": self.severity.value,
            "needs_review": self.needs_review,
        }


@dataclass(frozen=True)
class SplitResult:
    """단일 지문 분리 결과"""
    sentences: list[Sentence]
    confidence: float
    method: SplitMode                           # 실제로 결과를 만든 전략
    model: Optional[str] = None                 # regex 전용이면 None
    warnings: list[str] = field(default_factory=list)
    korean_issues: list[TranslationIssue] = field(default_factory=list)

    @property
    def sentence_count(self) -> int:
        return len(self.sentences)

    def joined_text(self) -> str:
        """문장들을 단일 공백으로 연결한 텍스트"""
        return " ".join(s.content for s in self.sentences)

    def stats(self) -> dict:
        """문장 통계"""
        total_words = sum(s.word_count for s in self.sentences)
        count = len(self.sentences)
        return {
            "sentence_count": count,
            "total_words": total_words,
            "avg_words_per_sentence": round(total_words / count) if count else 0,
        }

    def to_dict(self) -> dict:
        return {
            "sentences": [s.to_dict() for s in self.sentences],
            "confidence": round(self.confidence, 4),
            "method": self.method.value,
            "model": self.model,
            "warnings": list(self.warnings),
            "korean_issues": [i.to_dict() for i in self.korean_issues],
        }


def empty_result() -> SplitResult:
    """빈 입력에 대한 결과"""
    return SplitResult(sentences=[], confidence=1.0, method=SplitMode.REGEX)
