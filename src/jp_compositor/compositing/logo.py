from __future__ import annotations

from dataclasses import dataclass

from PIL import Image

from jp_compositor.models.layout import LogoPosition
from jp_compositor.utils.image_utils import decode_image

LOGO_WIDTH_RATIO = 0.12
EDGE_PADDING = 40


@dataclass(frozen=True)
class LogoOverlay:
    image: Image.Image
    top: int
    left: int


def place_logo(
    logo_bytes: bytes,
    image_width: int,
    image_height: int,
    position: LogoPosition | None = None,
) -> LogoOverlay:
    """로고를 이미지 너비의 12%로 리사이즈하고 배치 좌표를 계산합니다.

    position이 주어지면 그대로 사용하고, 없으면 우측 하단에서 40px 여백을 둡니다
    (리사이즈된 로고의 실제 높이 기준).
    """
    logo = decode_image(logo_bytes)
    target_width = max(1, round(image_width * LOGO_WIDTH_RATIO))
    target_height = max(1, round(logo.height * target_width / logo.width))
    resized = logo.resize((target_width, target_height), Image.LANCZOS)

    if position is not None:
        left, top = position.x, position.y
    else:
        left = image_width - target_width - EDGE_PADDING
        top = image_height - resized.height - EDGE_PADDING

    return LogoOverlay(image=resized, top=top, left=left)
