from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # LLM APIs
    anthropic_api_key: str = ""
    openai_api_key: str = ""

    # Layout Oracle
    # anthropic / openai: Vision 분석, variance: 밝기 분산 규칙 기반, none: 기본 레이아웃만 사용
    layout_provider: str = "anthropic"
    layout_model_anthropic: str = "claude-sonnet-4-5"
    layout_model_openai: str = "gpt-4o-mini"
    # Oracle 응답 대기 상한 (초). 초과 시 기본 레이아웃으로 대체
    layout_timeout_seconds: float = 30.0

    # Typography
    # 일본어 폰트 파일 디렉토리 (NotoSansJP-Regular.ttf 등)
    font_dir: str = "assets/fonts"
    default_font_id: str = "noto_sans_jp"
    # 문절 분할기: budoux(기본) 또는 heuristic
    segmenter: str = "budoux"

    # Base image fetch
    fetch_timeout_seconds: float = 30.0

    # SSL / Proxy Configuration
    # 기업 프록시 환경에서 SSL 검증 오류 발생 시 false로 설정
    ssl_verify: bool = True
    # 커스텀 CA 인증서 경로 (기업 CA 번들 경로, 비워두면 certifi 기본값 사용)
    ca_bundle_path: str = ""


@lru_cache
def get_settings() -> Settings:
    return Settings()
