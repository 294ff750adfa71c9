"""
공유 HTTP / LLM 클라이언트 팩토리

베이스 이미지·로고 다운로드와 레이아웃 Oracle 호출이 같은 SSL 설정을 쓰도록
모든 클라이언트를 여기서 생성합니다. SSL_VERIFY=false 또는 CA_BUNDLE_PATH로 제어합니다.
"""
from __future__ import annotations

import ssl

import certifi
import httpx
from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from jp_compositor.config import get_settings


def _build_ssl_context() -> ssl.SSLContext | bool | str:
    """환경설정에 따라 httpx verify 인자를 반환합니다.

    Returns:
        - ssl.SSLContext: 커스텀 CA 번들 사용 시 (certifi 번들 + 기업 CA)
        - str (certifi 경로): 기본 동작
        - False: SSL 검증 비활성화 (프록시 환경 임시 우회용)
    """
    settings = get_settings()

    if not settings.ssl_verify:
        return False

    if settings.ca_bundle_path:
        ctx = ssl.create_default_context(cafile=certifi.where())
        ctx.load_verify_locations(cafile=settings.ca_bundle_path)
        return ctx

    return certifi.where()


def create_http_client(timeout: float | None = None) -> httpx.AsyncClient:
    """이미지 다운로드용 AsyncClient. timeout 미지정 시 설정값을 사용합니다."""
    settings = get_settings()
    return httpx.AsyncClient(
        verify=_build_ssl_context(),
        timeout=timeout if timeout is not None else settings.fetch_timeout_seconds,
        follow_redirects=True,
    )


def create_anthropic_client(timeout: float | None = None) -> AsyncAnthropic:
    """SSL 설정이 적용된 AsyncAnthropic 클라이언트를 생성합니다."""
    settings = get_settings()
    return AsyncAnthropic(
        api_key=settings.anthropic_api_key,
        http_client=httpx.AsyncClient(verify=_build_ssl_context(), timeout=timeout),
        max_retries=0,
    )


def create_openai_client(timeout: float | None = None) -> AsyncOpenAI:
    """SSL 설정이 적용된 AsyncOpenAI 클라이언트를 생성합니다."""
    settings = get_settings()
    return AsyncOpenAI(
        api_key=settings.openai_api_key,
        http_client=httpx.AsyncClient(verify=_build_ssl_context(), timeout=timeout),
        max_retries=0,
    )
