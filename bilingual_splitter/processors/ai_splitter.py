"""
AI 문장 분리 모듈
생성 모델로 문장을 분리(ai)하거나 Regex 결과를 검증/수정(ai-verify)
"""
import logging
from typing import Optional

from bilingual_splitter.utils import (
    ErrorContext,
    FidelityError,
    FidelityKind,
    GenerationClient,
    SplitterError,
    classify_error,
    canonicalize_chars,
    collapse_whitespace,
    compare_texts,
    count_words,
    provider_name,
)
from bilingual_splitter.utils.text_normalizer import QUOTE_CHARS
from .models import Sentence, SplitMode, SplitResult, empty_result
from .regex_splitter import RegexSplitter, split_korean_sentences
from .schemas import SentenceItem, SplitResponseSchema, parse_response


logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.95
AI_SENTENCE_CONFIDENCE = 0.9


def complete_classified(client: GenerationClient, prompt: str, model: str, action: str) -> str:
    """
    생성 모델 호출 (모든 실패를 GenerationFailure로 분류)

    Args:
        client: 생성 모델 클라이언트
        prompt: 프롬프트
        model: 모델 ID
        action: 작업 이름 (로그/분류 맥락)

    Returns:
        모델 응답 텍스트
    """
    try:
        return client.complete(prompt, model)
    except SplitterError:
        raise
    except Exception as e:
        context = ErrorContext(provider=provider_name(model), model=model, action=action)
        raise classify_error(e, context, provider_of=provider_name) from e


def attach_korean(sentences: list[Sentence], korean: Optional[str]) -> bool:
    """
    한글 해석을 위치 기준으로 연결 (문장 수가 정확히 같을 때만)

    Returns:
        연결 여부
    """
    if not korean or not korean.strip():
        return False
    korean_sentences = split_korean_sentences(collapse_whitespace(korean))
    if len(korean_sentences) != len(sentences):
        logger.debug(f"한글 연결 생략: 영 {len(sentences)}, 한 {len(korean_sentences)}")
        return False
    for sentence, korean_sentence in zip(sentences, korean_sentences):
        sentence.korean_translation = korean_sentence
    return True


class AISplitter:
    """생성 모델 기반 문장 분리기 / 검증기"""

    SPLIT_PROMPT_TEMPLATE = """You are an expert at splitting English text into grammatically complete sentences.

**CRITICAL RULES (MUST FOLLOW):**
1. **NEVER modify the original text** - preserve every character, space, and punctuation EXACTLY as given
2. Each sentence must be grammatically complete
3. Handle abbreviations correctly (Dr., Mr., Mrs., Ms., U.S., U.K., e.g., i.e., etc., vs.) - do NOT split at these
4. Quoted text with punctuation inside (e.g., "wrong." or "Hello!") - the quote is part of the sentence
5. Sentences end with: period(.), exclamation(!), question(?)
6. Quote marks can follow ending punctuation: ."  !"  ?"

**VALIDATION:**
- When you concatenate all sentence contents with single spaces, it MUST exactly match the original text
- Do NOT add, remove, change, or correct any characters

Output format (JSON only, no markdown):
{{
  "sentences": [
    {{"no": 1, "content": "First sentence exactly as original.", "confidence": 0.95}}
  ],
  "overall_confidence": 0.96
}}

Confidence: 0.0-1.0, lower for abbreviations/quotes/complex punctuation.

Text to split:
"{text}"
{korean_section}"""

    KOREAN_REFERENCE_TEMPLATE = """
Korean translation (for reference, try to match sentence counts):
"{korean}"
"""

    VERIFY_PROMPT_TEMPLATE = """You are validating sentence boundaries. Your job is to verify and correct if needed.

**CRITICAL: The original text MUST be preserved EXACTLY. Never modify, correct, or paraphrase any character.**

Original text:
"{text}"

Regex split result ({count} sentences):
{regex_sentences}

Review and correct the split if needed. Common issues:
1. Abbreviations (Dr., Mr., U.S., e.g., i.e.) should NOT cause splits
2. Quoted text ending with punctuation ("wrong." or "Hello!") - the quote ends the sentence
3. Each sentence must be grammatically complete

**VALIDATION REQUIREMENT:**
- Concatenating all your sentence contents with spaces must EXACTLY match the original text
- If you would need to change anything in the text itself (not just splits), return the regex result unchanged

Output JSON only (no markdown):
{{
  "sentences": [{{"no": 1, "content": "exact text from original", "confidence": 0.95}}],
  "overall_confidence": 0.96,
  "corrections": ["list of corrections made, or empty if none"]
}}"""

    def __init__(
        self,
        client: GenerationClient,
        regex_splitter: Optional[RegexSplitter] = None,
    ):
        """
        Args:
            client: 생성 모델 클라이언트 (complete(prompt, model_id) -> str)
            regex_splitter: ai-verify 기준선용 Regex 분리기
        """
        self.client = client
        self.regex_splitter = regex_splitter or RegexSplitter()

    def _build_sentences(self, items: list[SentenceItem]) -> list[Sentence]:
        """응답 항목 → Sentence (빈 문장 제외, 1부터 재번호)"""
        sentences = []
        for item in items:
            content = item.content.strip()
            if not content:
                continue
            sentences.append(Sentence(
                index=len(sentences) + 1,
                content=content,
                word_count=count_words(content),
                confidence=item.confidence if item.confidence is not None else AI_SENTENCE_CONFIDENCE,
            ))
        return sentences

    def _request(self, prompt: str, model: str, action: str) -> tuple[SplitResponseSchema, list[Sentence]]:
        text = complete_classified(self.client, prompt, model, action)
        parsed = parse_response(text, SplitResponseSchema, model)
        sentences = self._build_sentences(parsed.sentences)
        if not sentences:
            raise FidelityError(
                kind=FidelityKind.SCHEMA_VIOLATION,
                message="AI 응답에 문장이 없습니다",
                model=model,
            )
        return parsed, sentences

    def split(self, english: str, model: str, korean: Optional[str] = None) -> SplitResult:
        """
        AI 문장 분리 (mode = ai)

        모델 출력을 신뢰하며 원문 보존 검증을 하지 않는다.
        검증이 필요하면 verify()를 사용한다.

        Args:
            english: 영어 원문
            model: 모델 ID
            korean: 한글 해석 (선택, 문장 수 맞추기 참고용)

        Returns:
            SplitResult (method = ai)

        Raises:
            GenerationFailure: 호출 실패 또는 JSON 파싱 실패
            FidelityError: 응답 형식 위반
        """
        if not english or not english.strip():
            return empty_result()

        korean_section = ""
        if korean and korean.strip():
            korean_section = self.KOREAN_REFERENCE_TEMPLATE.format(korean=korean.strip())

        prompt = self.SPLIT_PROMPT_TEMPLATE.format(text=english.strip(), korean_section=korean_section)
        parsed, sentences = self._request(prompt, model, "ai-split")

        attach_korean(sentences, korean)
        logger.info(f"AI 분리 완료 ({model}): {len(sentences)}개 문장 (원문 검증 생략)")

        return SplitResult(
            sentences=sentences,
            confidence=parsed.overall_confidence if parsed.overall_confidence is not None else DEFAULT_CONFIDENCE,
            method=SplitMode.AI,
            model=model,
        )

    def verify(self, english: str, model: str, korean: Optional[str] = None) -> SplitResult:
        """
        AI 검증 분리 (mode = ai-verify)

        Regex 결과를 모델이 검토/수정하고, 결과 문장을 이어 붙인 텍스트가
        원문과 다르면 즉시 실패한다.

        Args:
            english: 영어 원문
            model: 모델 ID
            korean: 한글 해석 (선택)

        Returns:
            SplitResult (method = ai-verify, 경계 수정 내역은 warnings)

        Raises:
            GenerationFailure: 호출 실패 또는 JSON 파싱 실패
            FidelityError: 원문 변형 또는 응답 형식 위반
        """
        if not english or not english.strip():
            return empty_result()

        baseline = self.regex_splitter.split(english)
        regex_sentences = "\n".join(f'{s.index}. "{s.content}"' for s in baseline.sentences)
        prompt = self.VERIFY_PROMPT_TEMPLATE.format(
            text=english.strip(),
            count=baseline.sentence_count,
            regex_sentences=regex_sentences,
        )
        parsed, sentences = self._request(prompt, model, "ai-verify")

        joined = " ".join(s.content for s in sentences)
        comparison = compare_texts(english, joined)
        if not comparison.is_match:
            logger.error(f"AI가 원문을 변형함 ({model}) - {comparison.diff}")
            raise FidelityError(
                kind=FidelityKind.TEXT_MODIFIED,
                message=f"AI가 원문을 변형했습니다. 다시 시도해주세요. {comparison.diff}",
                model=model,
                offset=comparison.offset,
                original_context=comparison.original_context,
                produced_context=comparison.produced_context,
            )

        warnings = list(parsed.corrections)
        for note in self.describe_boundary_changes(baseline.sentences, sentences):
            if note not in warnings:
                warnings.append(note)

        if korean and korean.strip() and not attach_korean(sentences, korean):
            warnings.append(
                f"문장 개수 불일치 (영: {len(sentences)}, 한: {len(split_korean_sentences(korean))}) "
                f"- 한글 해석을 연결하지 않았습니다"
            )

        if warnings:
            logger.info(f"AI 검증: {len(warnings)}건의 경계 수정/경고")

        return SplitResult(
            sentences=sentences,
            confidence=parsed.overall_confidence if parsed.overall_confidence is not None else DEFAULT_CONFIDENCE,
            method=SplitMode.AI_VERIFY,
            model=model,
            warnings=warnings,
        )

    @staticmethod
    def _comparable_text(sentences: list[Sentence]) -> str:
        """경계 비교용 텍스트 (문자 통일, 선두 따옴표 한 겹 제거)"""
        text = " ".join(canonicalize_chars(s.content) for s in sentences)
        if text and text[0] in QUOTE_CHARS:
            text = text[1:]
        return text

    @staticmethod
    def _boundary_offsets(sentences: list[Sentence]) -> set[int]:
        """문장 경계 위치 (정규화 텍스트 기준 누적 길이)"""
        offsets = set()
        position = 0
        for number, sentence in enumerate(sentences[:-1]):
            content = canonicalize_chars(sentence.content)
            if number == 0 and content and content[0] in QUOTE_CHARS:
                content = content[1:]
            position += len(content)
            offsets.add(position)
            position += 1
        return offsets

    def describe_boundary_changes(self, baseline: list[Sentence], revised: list[Sentence]) -> list[str]:
        """
        Regex 기준선과 AI 결과의 경계 차이 설명

        Args:
            baseline: Regex 분리 문장
            revised: AI가 확정한 문장

        Returns:
            경계 추가/제거 설명 리스트
        """
        text = self._comparable_text(revised)
        before = self._boundary_offsets(baseline)
        after = self._boundary_offsets(revised)

        notes = []
        for offset in sorted(before - after):
            notes.append(f"문장 경계 제거 (병합): ...{text[max(0, offset - 20):offset]}|")
        for offset in sorted(after - before):
            notes.append(f"문장 경계 추가 (분리): ...{text[max(0, offset - 20):offset]}|")
        return notes
