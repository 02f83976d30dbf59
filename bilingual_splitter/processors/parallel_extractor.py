"""
병렬 문장 추출 모듈
영어/한글 문장 쌍을 한 번에 추출하고 원문 보존을 검증

- 영어 원문: 한 글자라도 다르면 실패
- 한글 해석: 수정하지 않고 문제만 보고 (관리자 확인용)
"""
import logging
import re
from typing import Optional

from bilingual_splitter.utils import (
    FidelityError,
    FidelityKind,
    GenerationClient,
    collapse_whitespace,
    compare_texts,
    count_words,
    settings,
)
from .ai_splitter import DEFAULT_CONFIDENCE, complete_classified
from .models import (
    IssueKind,
    IssueSeverity,
    Sentence,
    SplitMode,
    SplitResult,
    TranslationIssue,
    empty_result,
)
from .schemas import KoreanIssueItem, PairItem, PairResponseSchema, parse_response


logger = logging.getLogger(__name__)


_HANGUL_PATTERN = re.compile(r"[가-힣]")
# 4글자 이상 라틴 문자 연속 (번역되지 않은 영어 단어)
_UNTRANSLATED_PATTERN = re.compile(r"[a-zA-Z]{4,}")


class ParallelExtractor:
    """영어/한글 병렬 문장 추출기"""

    PROMPT_TEMPLATE = """You are extracting sentence pairs from English text and its Korean translation.

**ABSOLUTE RULES - VIOLATION = COMPLETE FAILURE:**
1. EXTRACT text EXACTLY as given - NO modifications, corrections, or paraphrasing
2. Every character, space, and punctuation must match the original EXACTLY
3. You are a SPLITTER, not an EDITOR - never "fix" anything in either language
4. If unsure about a split, keep sentences together rather than splitting wrong

**TASK:**
Split into sentence pairs. Each pair = one English sentence + its corresponding Korean translation.

**INPUT:**
English:
"{english}"

Korean:
"{korean}"

**OUTPUT (JSON only, no markdown):**
{{
  "pairs": [
    {{"no": 1, "english": "Exact English text.", "korean": "정확한 한글 텍스트."}}
  ],
  "confidence": 0.95,
  "korean_issues": [
    {{"type": "missing|incomplete|quality", "pairNo": 2, "description": "문제 설명"}}
  ]
}}

**KOREAN ISSUE TYPES (report but NEVER fix):**
- missing: 번역이 누락된 경우
- incomplete: 번역이 불완전한 경우
- quality: 번역 품질이 의심되는 경우

REMEMBER: Report issues but NEVER modify any text!"""

    def __init__(
        self,
        client: GenerationClient,
        length_tolerance_chars: Optional[int] = None,
        length_tolerance_ratio: Optional[float] = None,
        incomplete_min_english_words: Optional[int] = None,
        incomplete_chars_per_word: Optional[float] = None,
        untranslated_word_limit: Optional[int] = None,
    ):
        """
        Args:
            client: 생성 모델 클라이언트
            length_tolerance_chars: 무시할 한글 길이 차이 (글자 수)
            length_tolerance_ratio: 무시할 한글 길이 차이 (원문 대비 비율)
            incomplete_min_english_words: '불완전' 검사를 적용할 최소 영어 단어 수 (초과)
            incomplete_chars_per_word: 영어 단어당 기대 한글 글자 수
            untranslated_word_limit: 허용하는 영어 단어(4자 이상) 개수
        """
        self.client = client
        self.length_tolerance_chars = (
            length_tolerance_chars if length_tolerance_chars is not None
            else settings.korean_length_tolerance_chars
        )
        self.length_tolerance_ratio = (
            length_tolerance_ratio if length_tolerance_ratio is not None
            else settings.korean_length_tolerance_ratio
        )
        self.incomplete_min_english_words = (
            incomplete_min_english_words if incomplete_min_english_words is not None
            else settings.incomplete_min_english_words
        )
        self.incomplete_chars_per_word = (
            incomplete_chars_per_word if incomplete_chars_per_word is not None
            else settings.incomplete_chars_per_word
        )
        self.untranslated_word_limit = (
            untranslated_word_limit if untranslated_word_limit is not None
            else settings.untranslated_word_limit
        )

    def extract(self, english: str, korean: str, model: str) -> SplitResult:
        """
        병렬 문장 쌍 추출 (mode = parallel)

        Args:
            english: 영어 원문
            korean: 한글 해석 (필수)
            model: 모델 ID

        Returns:
            SplitResult (method = parallel, 한글 문제는 korean_issues)

        Raises:
            ValueError: 한글 해석 없음
            GenerationFailure: 호출 실패 또는 JSON 파싱 실패
            FidelityError: 영어 원문 변형 또는 응답 형식 위반
        """
        # 셀 내 줄바꿈이 문장 경계로 오인되지 않도록 공백으로
        source_english = collapse_whitespace(english)
        source_korean = collapse_whitespace(korean)

        if not source_english:
            return empty_result()
        if not source_korean:
            raise ValueError("병렬 추출에는 한글 해석이 필요합니다")

        prompt = self.PROMPT_TEMPLATE.format(english=source_english, korean=source_korean)
        text = complete_classified(self.client, prompt, model, "parallel-extraction")
        parsed = parse_response(text, PairResponseSchema, model)
        logger.info(f"병렬 추출 응답 파싱 완료 ({model}): {len(parsed.pairs)}개 문장 쌍")

        pairs = []
        for pair in parsed.pairs:
            if not pair.english or not pair.english.strip():
                logger.warning(f"문장 {pair.no}의 영어 원문이 없습니다 - 건너뜀")
                continue
            pairs.append(pair)

        self.check_english(source_english, pairs, model)

        # 모델 번호 → 재번호
        renumbered = {pair.no: i for i, pair in enumerate(pairs, start=1) if pair.no is not None}

        issues = self.check_korean(source_korean, pairs)
        issues.extend(self.convert_reported_issues(parsed.korean_issues, renumbered))
        for index, pair in enumerate(pairs, start=1):
            issues.extend(self.scan_pair(index, pair))

        sentences = [
            Sentence(
                index=index,
                content=pair.english.strip(),
                word_count=count_words(pair.english),
                confidence=pair.confidence if pair.confidence is not None else DEFAULT_CONFIDENCE,
                korean_translation=pair.korean if pair.korean and pair.korean.strip() else None,
            )
            for index, pair in enumerate(pairs, start=1)
        ]

        warnings = []
        if issues:
            warnings.append(f"한글 번역에 {len(issues)}개의 문제가 발견되었습니다. 검토가 필요합니다.")
            logger.warning(f"한글 번역 문제 {len(issues)}건 (검토 필요 {sum(1 for i in issues if i.needs_review)}건)")

        return SplitResult(
            sentences=sentences,
            confidence=parsed.confidence if parsed.confidence is not None else DEFAULT_CONFIDENCE,
            method=SplitMode.PARALLEL,
            model=model,
            warnings=warnings,
            korean_issues=issues,
        )

    def check_english(self, source_english: str, pairs: list[PairItem], model: str) -> None:
        """
        영어 원문 보존 검증 (불일치 시 즉시 실패, 자동 복구 없음)

        Raises:
            FidelityError: 영어 원문이 변형됨
        """
        extracted = " ".join(pair.english for pair in pairs)
        comparison = compare_texts(source_english, extracted)
        if comparison.is_match:
            return

        logger.error(f"AI가 영어 원문을 수정함 ({model}) - {comparison.diff}")
        raise FidelityError(
            kind=FidelityKind.TEXT_MODIFIED,
            message=f"AI가 영어 원문을 변형했습니다. 다시 시도해주세요. {comparison.diff}",
            model=model,
            offset=comparison.offset,
            original_context=comparison.original_context,
            produced_context=comparison.produced_context,
        )

    def check_korean(self, source_korean: str, pairs: list[PairItem]) -> list[TranslationIssue]:
        """
        한글 해석 보존 검증 (실패 대신 문제로 보고)

        - 길이가 같은데 내용이 다름: 글자 치환 (low, 검토 필요)
        - 길이 차이가 허용 범위 이내: 공백/문장부호 수준으로 보고 무시
        - 그 외: modified (medium, 검토 필요)
        """
        extracted = " ".join(pair.korean for pair in pairs if pair.korean)
        comparison = compare_texts(source_korean, extracted)
        if comparison.is_match:
            return []

        delta = comparison.length_delta
        ratio = delta / comparison.original_length if comparison.original_length else 0.0

        if delta == 0:
            logger.warning(f"한글 해석 글자 변경 감지 - {comparison.diff}")
            return [TranslationIssue(
                kind=IssueKind.MODIFIED,
                sentence_index=0,
                description=f"한글 해석의 글자가 변경됨 (길이 동일): {comparison.diff}",
                severity=IssueSeverity.LOW,
                needs_review=True,
            )]

        if delta <= self.length_tolerance_chars or ratio <= self.length_tolerance_ratio:
            logger.info(f"한글 미미한 차이 무시 ({delta}자, {ratio:.1%}) - {comparison.diff}")
            return []

        logger.warning(f"AI가 한글 해석을 일부 수정함 ({delta}자, {ratio:.1%}) - {comparison.diff}")
        return [TranslationIssue(
            kind=IssueKind.MODIFIED,
            sentence_index=0,
            description=f"한글 해석이 일부 수정됨 ({delta}자, {ratio:.1%}): {comparison.diff}",
            severity=IssueSeverity.MEDIUM,
            needs_review=True,
        )]

    def convert_reported_issues(
        self,
        reported: list[KoreanIssueItem],
        renumbered: dict[int, int],
    ) -> list[TranslationIssue]:
        """모델이 보고한 문제 → TranslationIssue (항상 검토 필요)"""
        issues = []
        for item in reported:
            try:
                kind = IssueKind(item.type.strip().lower())
            except ValueError:
                kind = IssueKind.QUALITY
            pair_no = item.pair_no or 0
            issues.append(TranslationIssue(
                kind=kind,
                sentence_index=renumbered.get(pair_no, pair_no),
                description=item.description or "한글 번역 품질 문제",
                severity=IssueSeverity.MEDIUM,
                needs_review=True,
            ))
        return issues

    def scan_pair(self, index: int, pair: PairItem) -> list[TranslationIssue]:
        """
        문장 쌍 단위 품질 검사

        Args:
            index: 재번호된 문장 번호
            pair: 문장 쌍

        Returns:
            발견된 문제 리스트
        """
        korean = pair.korean or ""
        if not korean.strip():
            return [TranslationIssue(
                kind=IssueKind.MISSING,
                sentence_index=index,
                description=f"문장 {index}의 한글 번역이 없습니다",
                severity=IssueSeverity.HIGH,
                needs_review=True,
            )]

        issues = []

        english_words = count_words(pair.english)
        hangul_chars = len(_HANGUL_PATTERN.findall(korean))
        if (english_words > self.incomplete_min_english_words
                and hangul_chars < english_words * self.incomplete_chars_per_word):
            issues.append(TranslationIssue(
                kind=IssueKind.INCOMPLETE,
                sentence_index=index,
                description=(
                    f"문장 {index}의 한글 번역이 짧을 수 있습니다 "
                    f"(영어 {english_words}단어, 한글 {hangul_chars}자) - 참고용"
                ),
                severity=IssueSeverity.LOW,
                needs_review=False,
            ))

        untranslated = _UNTRANSLATED_PATTERN.findall(korean)
        if len(untranslated) > self.untranslated_word_limit:
            issues.append(TranslationIssue(
                kind=IssueKind.QUALITY,
                sentence_index=index,
                description=f"문장 {index}에 영어 단어가 많습니다: {', '.join(untranslated[:3])} - 참고용",
                severity=IssueSeverity.LOW,
                needs_review=False,
            ))

        return issues
