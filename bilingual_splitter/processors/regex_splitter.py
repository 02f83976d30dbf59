"""
Regex 문장 분리 모듈
약어/따옴표/괄호 예외를 처리하는 결정적 기본 분리기
"""
import re
import logging
from typing import Optional

from bilingual_splitter.utils import collapse_whitespace, count_words
from .models import Sentence, SplitMode, SplitResult, empty_result


logger = logging.getLogger(__name__)


# 문장 끝으로 오해하기 쉬운 약어
ABBREVIATIONS = [
    # 호칭
    "Dr.", "Mr.", "Mrs.", "Ms.", "Prof.", "Jr.", "Sr.",
    # 국가/지역
    "U.S.", "U.K.", "U.N.", "E.U.",
    # 학위
    "Ph.D.", "M.D.", "B.A.", "M.A.", "B.S.", "M.S.",
    # 라틴어 약어
    "e.g.", "i.e.", "etc.", "vs.", "cf.",
    # 월
    "Jan.", "Feb.", "Mar.", "Apr.", "Jun.", "Jul.", "Aug.", "Sep.", "Oct.", "Nov.", "Dec.",
    # 요일
    "Mon.", "Tue.", "Wed.", "Thu.", "Fri.", "Sat.", "Sun.",
    # 기타
    "St.", "Ave.", "Blvd.", "Rd.", "Mt.", "Inc.", "Corp.", "Ltd.", "Co.",
    "a.m.", "p.m.",
    "No.", "Vol.", "pp.", "Fig.", "Eq.",
]

_ABBREVIATION_SET = set(ABBREVIATIONS)
_ABBREVIATION_PATTERNS = [
    (abbr, re.compile(r"(?<![A-Za-z])" + re.escape(abbr)))
    for abbr in ABBREVIATIONS
]

# 종결 부호 (+ 선택적 닫는 따옴표) 뒤에 공백 또는 텍스트 끝
_TERMINAL_PATTERN = re.compile(r"[.!?]+[\"'”’]?(?= |$)")
# 다음 문장 시작으로 인정하는 문자
_SENTENCE_START_PATTERN = re.compile(r"[A-Z\"'“‘\d(]")
# 내부 종결 부호를 보호하는 구간
_QUOTED_PATTERN = re.compile(r"\"[^\"]+\"|“[^”]+”")
_PARENTHESIZED_PATTERN = re.compile(r"\([^)]+\)")
_NESTED_QUOTE_PATTERN = re.compile(r"\"[^\"]*'[^']+'[^\"]*\"")
# 보호 구간 안에 숨은 문장 경계 (인치 표시, 짝이 맞지 않는 따옴표)
_HIDDEN_BOUNDARY_PATTERN = re.compile(r"[.!?][\"'”’]? [A-Z]")

# 한국어 문장 종결: 마침표/느낌표/물음표 또는 종결 어미 뒤 공백
_KOREAN_BOUNDARY_PATTERN = re.compile(r"(?<=[.!?다요죠음함])\s+")

# 신뢰도 감점
PENALTY_SHORT = 0.1
PENALTY_LONG = 0.1
PENALTY_ABBREVIATION = 0.05
PENALTY_PAREN_IMBALANCE = 0.15
PENALTY_QUOTE_IMBALANCE = 0.1
PENALTY_NESTED_QUOTE = 0.05
PENALTY_HIDDEN_BOUNDARY = 0.15
PENALTY_ENUMERATION = 0.1
PENALTY_NO_TERMINAL = 0.2
PENALTY_ISSUE_RATIO = 0.1
PENALTY_KOREAN_MISMATCH = 0.1

MIN_WORDS = 3
MAX_WORDS = 50


def split_korean_sentences(text: Optional[str]) -> list[str]:
    """
    한글 문장 분리 (종결 부호 또는 종결 어미 뒤 공백 기준)

    Args:
        text: 한글 텍스트

    Returns:
        문장 리스트
    """
    if not text or not text.strip():
        return []
    return [s.strip() for s in _KOREAN_BOUNDARY_PATTERN.split(text.strip()) if s.strip()]


def detect_abbreviations(sentence: str) -> list[str]:
    """문장에 포함된 약어 목록"""
    return [abbr for abbr, pattern in _ABBREVIATION_PATTERNS if pattern.search(sentence)]


class RegexSplitter:
    """Regex 기반 문장 분리기"""

    def __init__(
        self,
        min_words: int = MIN_WORDS,
        max_words: int = MAX_WORDS,
    ):
        """
        Args:
            min_words: 이보다 짧으면 '너무 짧음' 진단
            max_words: 이보다 길면 '너무 김' 진단
        """
        self.min_words = min_words
        self.max_words = max_words

    def _protected_spans(self, text: str) -> list[tuple[int, int]]:
        """따옴표/괄호 구간 (start, end)"""
        spans = [m.span() for m in _QUOTED_PATTERN.finditer(text)]
        spans.extend(m.span() for m in _PARENTHESIZED_PATTERN.finditer(text))
        return spans

    def _is_abbreviation(self, text: str, terminal_start: int) -> bool:
        """종결 부호 직전 토큰이 약어인지 확인"""
        token_start = text.rfind(" ", 0, terminal_start) + 1
        token = text[token_start:terminal_start + 1].lstrip("\"'“‘(")
        return token in _ABBREVIATION_SET

    def find_boundaries(self, text: str) -> list[int]:
        """
        공백 정규화된 텍스트에서 문장 경계(종결 부호 끝 위치) 찾기

        Args:
            text: 공백이 단일 공백으로 정규화된 텍스트

        Returns:
            경계 위치 리스트 (마지막 문장 끝은 제외)
        """
        spans = self._protected_spans(text)
        boundaries = []

        for match in _TERMINAL_PATTERN.finditer(text):
            start, end = match.span()
            if end >= len(text):
                break

            # 다음 문장 시작 문자 확인 (공백 다음 문자)
            if not _SENTENCE_START_PATTERN.match(text, end + 1):
                continue

            # 따옴표/괄호 내부 (닫는 따옴표 직전 종결 부호는 문장 끝으로 인정)
            if any(s < start and end < e for s, e in spans):
                continue

            # 약어
            if match.group().startswith(".") and self._is_abbreviation(text, start):
                continue

            # 숫자 사이의 소수점
            if text[start] == "." and start > 0 and text[start - 1].isdigit() and text[end:end + 1].isdigit():
                continue

            boundaries.append(end)

        return boundaries

    def has_hidden_boundary(self, sentence: str) -> bool:
        """따옴표/괄호 구간 안에 약어가 아닌 문장 경계가 있는지"""
        for start, end in self._protected_spans(sentence):
            span = sentence[start:end]
            for match in _HIDDEN_BOUNDARY_PATTERN.finditer(span):
                if span[match.start()] == "." and self._is_abbreviation(span, match.start()):
                    continue
                return True
        return False

    def detect_issues(self, sentence: str) -> list[str]:
        """문장 단위 진단"""
        issues = []

        abbreviations = detect_abbreviations(sentence)
        if abbreviations:
            issues.append(f"약어 감지: {', '.join(abbreviations)}")

        words = count_words(sentence)
        if words < self.min_words:
            issues.append("문장이 너무 짧음")
        if words > self.max_words:
            issues.append("문장이 너무 김 (분리 필요할 수 있음)")

        if sentence.count("(") != sentence.count(")"):
            issues.append("괄호 불균형")
        if sentence.count('"') % 2 != 0:
            issues.append("큰따옴표 불균형")
        if _NESTED_QUOTE_PATTERN.search(sentence):
            issues.append("중첩 인용문")
        if self.has_hidden_boundary(sentence):
            issues.append("인용/괄호 안에 문장 경계 의심")

        return issues

    def sentence_confidence(self, sentence: str) -> float:
        """문장 신뢰도 (1.0에서 모호성마다 감점)"""
        confidence = 1.0

        words = count_words(sentence)
        if words < self.min_words:
            confidence -= PENALTY_SHORT
        if words > self.max_words:
            confidence -= PENALTY_LONG

        if detect_abbreviations(sentence):
            confidence -= PENALTY_ABBREVIATION

        if sentence.count("(") != sentence.count(")"):
            confidence -= PENALTY_PAREN_IMBALANCE
        if sentence.count('"') % 2 != 0:
            confidence -= PENALTY_QUOTE_IMBALANCE
        if _NESTED_QUOTE_PATTERN.search(sentence):
            confidence -= PENALTY_NESTED_QUOTE
        if self.has_hidden_boundary(sentence):
            confidence -= PENALTY_HIDDEN_BOUNDARY

        # 목록 항목일 수 있음
        if re.match(r"^\d+\.", sentence):
            confidence -= PENALTY_ENUMERATION

        if not re.search(r"[.!?][\"'”’]?$", sentence):
            confidence -= PENALTY_NO_TERMINAL

        return max(0.0, min(1.0, confidence))

    def split_sentences(self, text: str) -> list[Sentence]:
        """
        영어 텍스트를 문장으로 분리

        Args:
            text: 영어 원문

        Returns:
            Sentence 리스트 (빈 입력이면 빈 리스트)
        """
        normalized = collapse_whitespace(text)
        if not normalized:
            return []

        points = [0] + self.find_boundaries(normalized) + [len(normalized)]
        contents = [normalized[a:b].strip() for a, b in zip(points, points[1:])]

        sentences = []
        for content in contents:
            if not content:
                continue
            sentences.append(Sentence(
                index=len(sentences) + 1,
                content=content,
                word_count=count_words(content),
                confidence=self.sentence_confidence(content),
                issues=self.detect_issues(content),
            ))
        return sentences

    def overall_confidence(self, sentences: list[Sentence]) -> float:
        """전체 신뢰도 = 평균 문장 신뢰도 - 이슈 문장 비율 감점"""
        if not sentences:
            return 1.0
        average = sum(s.confidence for s in sentences) / len(sentences)
        issue_ratio = sum(1 for s in sentences if s.issues) / len(sentences)
        return max(0.0, average - issue_ratio * PENALTY_ISSUE_RATIO)

    def split(self, english: str, korean: Optional[str] = None) -> SplitResult:
        """
        Regex 문장 분리 (결정적, I/O 없음, 항상 성공)

        Args:
            english: 영어 원문
            korean: 한글 해석 (선택, 문장 수가 정확히 같을 때만 위치 기준 연결)

        Returns:
            SplitResult (method = regex)
        """
        sentences = self.split_sentences(english)
        if not sentences:
            return empty_result()

        confidence = self.overall_confidence(sentences)
        warnings = [
            f"문장 {s.index}: {', '.join(s.issues)}"
            for s in sentences if s.issues
        ]

        if korean and korean.strip():
            korean_sentences = split_korean_sentences(collapse_whitespace(korean))
            if len(korean_sentences) == len(sentences):
                for sentence, korean_sentence in zip(sentences, korean_sentences):
                    sentence.korean_translation = korean_sentence
            else:
                confidence = max(0.0, confidence - PENALTY_KOREAN_MISMATCH)
                warnings.append(
                    f"문장 개수 불일치 (영: {len(sentences)}, 한: {len(korean_sentences)}) "
                    f"- 한글 해석을 연결하지 않았습니다"
                )
                logger.debug(f"한글 문장 수 불일치: 영 {len(sentences)}, 한 {len(korean_sentences)}")

        return SplitResult(
            sentences=sentences,
            confidence=confidence,
            method=SplitMode.REGEX,
            warnings=warnings,
        )


# 편의 함수
def split_sentences(english: str, korean: Optional[str] = None) -> SplitResult:
    """Regex 문장 분리 (단축 함수)"""
    return RegexSplitter().split(english, korean)
