from __future__ import annotations

import io
import re
from pathlib import Path

from PIL import Image

from jp_compositor.errors import ImageFetchError
from jp_compositor.models.composite import BaseImage
from jp_compositor.utils.http_client import create_http_client


def hex_to_rgba(color_str: str, alpha: int = 255) -> tuple[int, int, int, int]:
    """색상 문자열(#rrggbb 또는 #rgb)을 RGBA 튜플로 변환합니다.

    형식이 맞지 않으면 ValueError — 호출자는 해당 오버레이만 건너뜁니다.
    """
    color_str = color_str.strip()
    match = re.fullmatch(r"#?([0-9a-fA-F]{6}|[0-9a-fA-F]{3})", color_str)
    if not match:
        raise ValueError(f"Invalid color: {color_str!r}")
    h = match.group(1)
    if len(h) == 3:
        h = "".join(c * 2 for c in h)
    return int(h[0:2], 16), int(h[2:4], 16), int(h[4:6], 16), alpha


def decode_image(data: bytes) -> Image.Image:
    """이미지 바이트(PNG/JPEG/WebP 등)를 RGBA PIL Image로 디코딩합니다."""
    image = Image.open(io.BytesIO(data))
    image.load()
    return image.convert("RGBA")


async def download_bytes(url: str, timeout: float | None = None) -> bytes:
    """URL에서 바이트를 다운로드합니다. HTTP 오류는 httpx 예외로 전달됩니다."""
    async with create_http_client(timeout) as client:
        response = await client.get(url)
        response.raise_for_status()
    return response.content


async def load_bytes(path_or_url: str, timeout: float | None = None) -> bytes:
    """로컬 파일 경로 또는 URL에서 바이트를 읽습니다.

    - HTTPS/HTTP URL → httpx로 다운로드
    - 로컬 파일 경로 → 직접 읽기
    """
    if path_or_url.startswith(("http://", "https://")):
        return await download_bytes(path_or_url, timeout)
    return Path(path_or_url).read_bytes()


async def fetch_base_image(
    base_image: BaseImage, timeout: float | None = None
) -> tuple[bytes, Image.Image]:
    """베이스 이미지를 가져와 (원본 바이트, 디코딩된 RGBA Image)를 반환합니다.

    다운로드·디코딩 실패는 모두 ImageFetchError로 감쌉니다.
    """
    try:
        data = base_image.image_bytes
        if data is None:
            data = await load_bytes(base_image.url, timeout)
        return data, decode_image(data)
    except Exception as e:
        raise ImageFetchError(base_image.id, str(e)) from e


def paste_overlay(
    canvas: Image.Image, overlay: Image.Image, left: int, top: int
) -> Image.Image:
    """오버레이를 (left, top)에 알파 합성한 새 이미지를 반환합니다.

    캔버스 크기의 투명 레이어에 먼저 붙여넣으므로 경계를 벗어난 부분은 잘립니다.
    """
    base = canvas.convert("RGBA")
    layer = Image.new("RGBA", base.size, (0, 0, 0, 0))
    overlay_rgba = overlay.convert("RGBA")
    layer.paste(overlay_rgba, (int(left), int(top)))
    return Image.alpha_composite(base, layer)


def image_to_bytes(image: Image.Image, format: str = "PNG") -> bytes:
    """PIL Image를 bytes로 변환합니다."""
    buffer = io.BytesIO()
    image.convert("RGB").save(buffer, format=format)
    return buffer.getvalue()
