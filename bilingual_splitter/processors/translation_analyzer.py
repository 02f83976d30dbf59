"""
번역 정렬 분석 모듈
영어/한글 문장 수와 휴리스틱으로 한글 해석의 정렬 상태를 진단
"""
import logging
import re
from dataclasses import dataclass, field, replace
from typing import Optional

from .models import SplitMode, SplitResult
from .regex_splitter import RegexSplitter, split_korean_sentences


logger = logging.getLogger(__name__)


_HANGUL_PATTERN = re.compile(r"[가-힣]")
_LATIN_WORD_PATTERN = re.compile(r"[a-zA-Z]{3,}")
# 10자 이상 텍스트의 연속 반복 (복사/붙여넣기 오류)
_REPEATED_PATTERN = re.compile(r"(.{10,})\1+", re.DOTALL)

COUNT_MISMATCH_SIGNAL = "문장 개수 불일치"


@dataclass
class AlignmentSignal:
    """번역 정렬 분석 결과"""
    has_translation: bool
    english_count: int
    korean_count: int
    alignment: str                  # perfect | mismatched | missing
    quality: str                    # good | suspicious | unknown
    suspicion_level: int
    needs_ai: bool
    signals: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "has_translation": self.has_translation,
            "sentence_count": {"english": self.english_count, "korean": self.korean_count},
            "alignment": self.alignment,
            "quality": self.quality,
            "suspicion_level": self.suspicion_level,
            "needs_ai": self.needs_ai,
            "signals": list(self.signals),
        }


class TranslationAnalyzer:
    """
    한글 해석 정렬 분석기

    읽기 전용 휴리스틱이며 실패하지 않는다. 단독 리포트와 hybrid 모드의
    AI 전환 판단에 함께 사용된다.
    """

    # 의심 점수
    SCORE_COUNT_MISMATCH = 40
    SCORE_SHORT = 30
    SCORE_LONG = 20
    SCORE_UNTRANSLATED = 25
    SCORE_LOW_HANGUL = 35
    SCORE_REPEATED = 40

    MAX_LENGTH_RATIO = 3.0
    UNTRANSLATED_RATIO = 0.3
    MIN_HANGUL_CHARS = 10
    CHARS_PER_ENGLISH_WORD = 1.2

    GOOD_BELOW = 20
    SUSPICIOUS_BELOW = 50

    def __init__(self, regex_splitter: Optional[RegexSplitter] = None):
        self.regex_splitter = regex_splitter or RegexSplitter()

    def analyze(self, english: str, korean: Optional[str]) -> AlignmentSignal:
        """
        번역 정렬 분석

        Args:
            english: 영어 원문
            korean: 한글 해석

        Returns:
            AlignmentSignal
        """
        english_count = len(self.regex_splitter.split_sentences(english or ""))

        if not korean or not korean.strip():
            return AlignmentSignal(
                has_translation=False,
                english_count=english_count,
                korean_count=0,
                alignment="missing",
                quality="unknown",
                suspicion_level=100,
                needs_ai=True,
                signals=["번역 없음"],
            )

        korean_count = len(split_korean_sentences(korean))
        signals = []
        suspicion = 0

        if english_count != korean_count:
            signals.append(f"{COUNT_MISMATCH_SIGNAL} (영: {english_count}, 한: {korean_count})")
            suspicion += self.SCORE_COUNT_MISMATCH

        # 영어 단어 수 대비 한글 글자 수
        english_words = len((english or "").split())
        hangul_chars = len(_HANGUL_PATTERN.findall(korean))
        if english_words and hangul_chars < english_words * self.CHARS_PER_ENGLISH_WORD:
            signals.append(f"번역이 너무 짧음 (영어 {english_words}단어, 한글 {hangul_chars}자)")
            suspicion += self.SCORE_SHORT

        if english and len(korean) / len(english) > self.MAX_LENGTH_RATIO:
            signals.append("번역이 너무 김")
            suspicion += self.SCORE_LONG

        latin_words = _LATIN_WORD_PATTERN.findall(korean)
        total_words = len(korean.split())
        if total_words and len(latin_words) / total_words > self.UNTRANSLATED_RATIO:
            signals.append(f"번역 안 된 영어 단어 많음 ({', '.join(latin_words[:3])})")
            suspicion += self.SCORE_UNTRANSLATED

        if hangul_chars < self.MIN_HANGUL_CHARS:
            signals.append("한글이 거의 없음")
            suspicion += self.SCORE_LOW_HANGUL

        if _REPEATED_PATTERN.search(korean):
            signals.append("반복된 텍스트 발견")
            suspicion += self.SCORE_REPEATED

        alignment = "perfect" if english_count == korean_count else "mismatched"
        if suspicion < self.GOOD_BELOW:
            quality = "good"
        elif suspicion < self.SUSPICIOUS_BELOW:
            quality = "suspicious"
        else:
            quality = "unknown"

        return AlignmentSignal(
            has_translation=True,
            english_count=english_count,
            korean_count=korean_count,
            alignment=alignment,
            quality=quality,
            suspicion_level=suspicion,
            needs_ai=suspicion >= self.SUSPICIOUS_BELOW or alignment == "mismatched",
            signals=signals,
        )

    def reconcile_with_result(self, signal: AlignmentSignal, result: SplitResult) -> AlignmentSignal:
        """
        병렬 추출 결과로 분석 보정

        병렬 추출이 성공했다면 모델이 만든 쌍이 Regex 추정보다 정확하므로
        문장 수와 정렬 판정을 결과 기준으로 덮어쓴다.

        Args:
            signal: analyze() 결과
            result: 분리 결과

        Returns:
            보정된 AlignmentSignal (parallel 결과가 아니면 그대로)
        """
        if result.method != SplitMode.PARALLEL or not result.sentences:
            return signal

        english_count = len(result.sentences)
        korean_count = sum(1 for s in result.sentences if s.korean_translation)

        return replace(
            signal,
            english_count=english_count,
            korean_count=korean_count,
            alignment="perfect" if english_count == korean_count else signal.alignment,
            quality="good" if result.confidence > 0.9 else signal.quality,
            needs_ai=False,
            signals=[s for s in signal.signals if not s.startswith(COUNT_MISMATCH_SIGNAL)],
        )


# 편의 함수
def analyze_translation(english: str, korean: Optional[str]) -> AlignmentSignal:
    """번역 정렬 분석 (단축 함수)"""
    return TranslationAnalyzer().analyze(english, korean)
