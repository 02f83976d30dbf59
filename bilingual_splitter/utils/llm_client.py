"""
LLM 클라이언트 모듈
OpenAI / Anthropic / Google Gemini 제공자를 하나의 complete(prompt, model_id) 인터페이스로 제공
"""
import logging
from dataclasses import dataclass
from enum import Enum
from threading import Lock
from typing import Optional, Protocol

import anthropic
import openai
import tiktoken
from google import genai

from .config import settings
from .errors import (
    ErrorContext,
    FailureKind,
    GenerationFailure,
    classify_error,
)


logger = logging.getLogger(__name__)


class Provider(Enum):
    """생성 모델 제공자"""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"


@dataclass(frozen=True)
class ModelInfo:
    """모델 정보"""
    provider: Provider
    name: str                       # 표시 이름
    tier: str                       # mini | standard | premium
    input_cost_per_1k: float        # USD per 1K input tokens
    output_cost_per_1k: float       # USD per 1K output tokens


MODEL_REGISTRY: dict[str, ModelInfo] = {
    "gpt-4o": ModelInfo(Provider.OPENAI, "GPT-4o", "premium", 0.005, 0.015),
    "gpt-4o-mini": ModelInfo(Provider.OPENAI, "GPT-4o Mini", "mini", 0.00015, 0.0006),
    "claude-3-5-sonnet-20241022": ModelInfo(Provider.ANTHROPIC, "Claude 3.5 Sonnet", "premium", 0.003, 0.015),
    "claude-3-haiku-20240307": ModelInfo(Provider.ANTHROPIC, "Claude 3 Haiku", "mini", 0.00025, 0.00125),
    "gemini-1.5-pro": ModelInfo(Provider.GOOGLE, "Gemini 1.5 Pro", "standard", 0.00125, 0.005),
    "gemini-2.0-flash": ModelInfo(Provider.GOOGLE, "Gemini 2.0 Flash", "mini", 0.000075, 0.0003),
    "gemini-2.5-flash": ModelInfo(Provider.GOOGLE, "Gemini 2.5 Flash", "mini", 0.000075, 0.0003),
}

# 레지스트리에 없는 모델의 제공자 판별용 접두사
_PREFIX_PROVIDERS = [
    (("gpt-", "o1", "o3", "o4"), Provider.OPENAI),
    (("claude-",), Provider.ANTHROPIC),
    (("gemini-",), Provider.GOOGLE),
]


def resolve_provider(model_id: str) -> Provider:
    """
    모델 ID로 제공자 결정 (순수 함수)

    Raises:
        GenerationFailure: 지원하지 않는 모델
    """
    info = MODEL_REGISTRY.get(model_id)
    if info is not None:
        return info.provider

    for prefixes, provider in _PREFIX_PROVIDERS:
        if model_id.startswith(prefixes):
            return provider

    raise GenerationFailure(
        kind=FailureKind.UNKNOWN,
        message=f"지원하지 않는 모델입니다: {model_id}",
        model=model_id,
        alternative_model=settings.default_model,
        retryable=False,
    )


def provider_name(model_id: str) -> Optional[str]:
    """모델 ID → 제공자 이름 (판별 불가 시 None)"""
    try:
        return resolve_provider(model_id).value
    except GenerationFailure:
        return None


class GenerationClient(Protocol):
    """문장 분리 엔진이 사용하는 생성 모델 인터페이스"""

    def complete(self, prompt: str, model_id: str) -> str:
        ...


class OpenAIProvider:
    """OpenAI Chat Completions 제공자"""

    def __init__(self, api_key: str, timeout: float, temperature: float, max_tokens: int):
        self._client = openai.OpenAI(api_key=api_key, timeout=timeout, max_retries=0)
        self.temperature = temperature
        self.max_tokens = max_tokens

    def complete(self, prompt: str, model_id: str) -> str:
        response = self._client.chat.completions.create(
            model=model_id,
            messages=[{"role": "user", "content": prompt}],
            response_format={"type": "json_object"},
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        return response.choices[0].message.content or ""


class AnthropicProvider:
    """Anthropic Messages 제공자"""

    def __init__(self, api_key: str, timeout: float, temperature: float, max_tokens: int):
        self._client = anthropic.Anthropic(api_key=api_key, timeout=timeout, max_retries=0)
        self.temperature = temperature
        self.max_tokens = max_tokens

    def complete(self, prompt: str, model_id: str) -> str:
        message = self._client.messages.create(
            model=model_id,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            messages=[{"role": "user", "content": prompt}],
        )
        return "".join(block.text for block in message.content if block.type == "text")


class GoogleProvider:
    """Google Gemini 제공자 (google-genai)"""

    def __init__(self, api_key: str, timeout: float, temperature: float, max_tokens: int):
        # HttpOptions.timeout 단위는 밀리초
        self._client = genai.Client(api_key=api_key, http_options={"timeout": int(timeout * 1000)})
        self.temperature = temperature
        self.max_tokens = max_tokens

    def complete(self, prompt: str, model_id: str) -> str:
        response = self._client.models.generate_content(
            model=model_id,
            contents=prompt,
            config={
                "response_mime_type": "application/json",
                "temperature": self.temperature,
                "max_output_tokens": self.max_tokens,
            },
        )
        return response.text or ""


_PROVIDER_CLASSES = {
    Provider.OPENAI: OpenAIProvider,
    Provider.ANTHROPIC: AnthropicProvider,
    Provider.GOOGLE: GoogleProvider,
}


class LLMClient:
    """
    다중 제공자 LLM 클라이언트

    제공자 SDK 클라이언트는 처음 사용할 때 생성되어 이 인스턴스에 보관된다.
    재시도는 하지 않는다 (재시도는 호출자의 명시적 결정).
    """

    def __init__(
        self,
        api_keys: Optional[dict[Provider, str]] = None,
        timeout: Optional[float] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ):
        """
        Args:
            api_keys: 제공자별 API 키 (기본: 환경변수)
            timeout: 요청 타임아웃 (초, 기본: settings에서)
            temperature: 생성 온도 (기본: settings에서)
            max_tokens: 최대 출력 토큰 (기본: settings에서)
        """
        self._api_keys = api_keys or {
            Provider.OPENAI: settings.openai_api_key,
            Provider.ANTHROPIC: settings.anthropic_api_key,
            Provider.GOOGLE: settings.google_api_key,
        }
        self.timeout = timeout or settings.request_timeout
        self.temperature = temperature if temperature is not None else settings.temperature
        self.max_tokens = max_tokens or settings.max_output_tokens

        self._providers: dict[Provider, object] = {}
        self._lock = Lock()
        self._encoding: Optional[tiktoken.Encoding] = None

    def get_provider(self, provider: Provider):
        """제공자 클라이언트 (lazy loading)"""
        if provider in self._providers:
            return self._providers[provider]

        # 배치 워커들이 동시에 호출하므로 생성은 한 번만
        with self._lock:
            if provider not in self._providers:
                api_key = self._api_keys.get(provider, "")
                if not api_key:
                    raise GenerationFailure(
                        kind=FailureKind.AUTH,
                        message=f"{provider.value} API key not configured. .env 파일을 확인하세요.",
                        provider=provider.value,
                        retryable=False,
                    )
                self._providers[provider] = _PROVIDER_CLASSES[provider](
                    api_key=api_key,
                    timeout=self.timeout,
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                )
                logger.info(f"{provider.value} 클라이언트 초기화 완료")
            return self._providers[provider]

    def complete(self, prompt: str, model_id: str) -> str:
        """
        프롬프트 실행

        Args:
            prompt: 프롬프트
            model_id: 모델 ID (제공자는 모델 ID로 결정)

        Returns:
            모델 응답 텍스트

        Raises:
            GenerationFailure: 분류된 호출 실패
        """
        provider = resolve_provider(model_id)
        context = ErrorContext(provider=provider.value, model=model_id, action="complete")

        try:
            client = self.get_provider(provider)
        except GenerationFailure as e:
            e.model = model_id
            raise

        logger.debug(f"{provider.value}/{model_id} 호출 ({len(prompt):,}자)")
        try:
            text = client.complete(prompt, model_id)
        except Exception as e:
            raise classify_error(e, context, provider_of=provider_name) from e

        logger.debug(f"{provider.value}/{model_id} 응답 수신 ({len(text):,}자)")
        return text

    def count_tokens(self, text: str) -> int:
        """텍스트의 토큰 수 계산 (cl100k_base 근사)"""
        if self._encoding is None:
            self._encoding = tiktoken.get_encoding("cl100k_base")
        return len(self._encoding.encode(text))

    def estimate_cost(self, prompt: str, model_id: str, output_ratio: float = 1.5) -> dict:
        """
        호출 전 예상 비용 계산

        Args:
            prompt: 프롬프트
            model_id: 모델 ID
            output_ratio: 입력 대비 출력 토큰 비율 추정치

        Returns:
            예상 비용 정보
        """
        info = MODEL_REGISTRY.get(model_id)
        input_tokens = self.count_tokens(prompt)
        output_tokens = int(input_tokens * output_ratio)

        if info is None:
            return {
                "model": model_id,
                "estimated_input_tokens": input_tokens,
                "estimated_output_tokens": output_tokens,
                "estimated_total_cost_usd": "N/A",
            }

        input_cost = input_tokens / 1000 * info.input_cost_per_1k
        output_cost = output_tokens / 1000 * info.output_cost_per_1k
        return {
            "model": model_id,
            "provider": info.provider.value,
            "estimated_input_tokens": input_tokens,
            "estimated_output_tokens": output_tokens,
            "estimated_input_cost_usd": f"${input_cost:.6f}",
            "estimated_output_cost_usd": f"${output_cost:.6f}",
            "estimated_total_cost_usd": f"${input_cost + output_cost:.6f}",
        }
