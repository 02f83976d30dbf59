"""
설정 관리 모듈
환경변수와 settings.yaml을 통합 관리
"""
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

# .env 파일 로드
load_dotenv()

# 프로젝트 루트 경로
PROJECT_ROOT = Path(__file__).parent.parent.parent


class Settings:
    """애플리케이션 설정 클래스"""

    _instance: Optional["Settings"] = None
    _config: dict[str, Any] = {}

    def __new__(cls) -> "Settings":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._load_config()
        return cls._instance

    def _load_config(self) -> None:
        """settings.yaml 로드"""
        config_path = PROJECT_ROOT / "config" / "settings.yaml"
        if config_path.exists():
            with open(config_path, "r", encoding="utf-8") as f:
                self._config = yaml.safe_load(f) or {}

    def _section(self, name: str) -> dict:
        return self._config.get(name, {}) or {}

    # API 키 설정
    @property
    def openai_api_key(self) -> str:
        return os.getenv("OPENAI_API_KEY", "")

    @property
    def anthropic_api_key(self) -> str:
        return os.getenv("ANTHROPIC_API_KEY", "")

    @property
    def google_api_key(self) -> str:
        return os.getenv("GOOGLE_GEMINI_API_KEY", "") or os.getenv("GEMINI_API_KEY", "")

    # 생성 모델 설정
    @property
    def default_model(self) -> str:
        return os.getenv("SPLITTER_MODEL", self._section("generation").get("model", "gemini-2.0-flash"))

    @property
    def temperature(self) -> float:
        return self._section("generation").get("temperature", 0.1)

    @property
    def max_output_tokens(self) -> int:
        return self._section("generation").get("max_output_tokens", 4096)

    @property
    def request_timeout(self) -> float:
        return float(os.getenv(
            "SPLITTER_REQUEST_TIMEOUT",
            self._section("generation").get("request_timeout", 120.0),
        ))

    # 분리 설정
    @property
    def default_mode(self) -> str:
        return os.getenv("SPLITTER_MODE", self._section("splitting").get("mode", "parallel"))

    @property
    def hybrid_confidence_threshold(self) -> float:
        return self._section("splitting").get("hybrid_confidence_threshold", 0.9)

    @property
    def batch_concurrency(self) -> int:
        return self._section("splitting").get("batch_concurrency", 10)

    # 한글 검증 임계값
    @property
    def korean_length_tolerance_chars(self) -> int:
        return self._section("korean_validation").get("length_tolerance_chars", 5)

    @property
    def korean_length_tolerance_ratio(self) -> float:
        return self._section("korean_validation").get("length_tolerance_ratio", 0.01)

    @property
    def incomplete_min_english_words(self) -> int:
        return self._section("korean_validation").get("incomplete_min_english_words", 10)

    @property
    def incomplete_chars_per_word(self) -> float:
        return self._section("korean_validation").get("incomplete_chars_per_word", 1.2)

    @property
    def untranslated_word_limit(self) -> int:
        return self._section("korean_validation").get("untranslated_word_limit", 5)


# 싱글톤 인스턴스
settings = Settings()
