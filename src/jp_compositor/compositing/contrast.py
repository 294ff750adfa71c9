"""대비 분석기

텍스트가 놓일 영역의 휘도(WCAG)와 복잡도(채널 표준편차)를 계산해
가독성 처리 방식을 3단계 중 하나로 선택합니다.
  - 분산 큼 (복잡한 배경)          → 반투명 배경 (backdrop)
  - 분산 작음 + 극단적 밝기        → 외곽선 (stroke)
  - 그 외 (중간 복잡도)            → 드롭 섀도우 (shadow)
"""
from __future__ import annotations

from PIL import Image, ImageStat

from jp_compositor.models.layout import Rect
from jp_compositor.models.typography import (
    BackdropTreatment,
    ContrastTreatment,
    RegionStats,
    ShadowTreatment,
    StrokeTreatment,
)
from jp_compositor.utils.image_utils import decode_image

HIGH_VARIANCE = 50
LOW_VARIANCE = 25
LIGHT_LUMINANCE = 0.7
DARK_LUMINANCE = 0.3

# 밝은 배경 → 어두운 외곽선 / 어두운 배경 → 밝은 외곽선
STROKE_DARK = (0, 0, 0, 128)
STROKE_LIGHT = (255, 255, 255, 77)

WHITE_TEXT = "#FFFFFF"
DARK_TEXT = "#1A1A1A"

# 분석 실패 시 흰 글자와 함께 사용하는 기본 처리
DEFAULT_TREATMENT = ShadowTreatment(offset=2, blur=4)


def clamp_rect(rect: Rect, image_width: int, image_height: int) -> tuple[int, int, int, int]:
    """영역을 이미지 경계 내로 클램핑해 (left, top, right, bottom)을 반환합니다. 최소 1x1."""
    left = min(max(0, round(rect.x)), image_width - 1)
    top = min(max(0, round(rect.y)), image_height - 1)
    right = min(image_width, round(rect.x + rect.width))
    bottom = min(image_height, round(rect.y + rect.height))
    return left, top, left + max(1, right - left), top + max(1, bottom - top)


def analyze_region(image: bytes | Image.Image, rect: Rect) -> RegionStats:
    """이미지 영역의 WCAG 상대 휘도와 RGB 채널 표준편차 평균을 계산합니다.

    디코딩 오류는 그대로 전달되며, 호출자가 기본 처리로 대체합니다.
    """
    if isinstance(image, bytes):
        image = decode_image(image)
    rgb = image.convert("RGB")
    region = rgb.crop(clamp_rect(rect, rgb.width, rgb.height))

    stat = ImageStat.Stat(region)
    r_mean, g_mean, b_mean = (m / 255 for m in stat.mean[:3])
    luminance = 0.2126 * r_mean + 0.7152 * g_mean + 0.0722 * b_mean
    variance = sum(stat.stddev[:3]) / 3

    return RegionStats(luminance=min(1.0, max(0.0, luminance)), variance=variance)


def select_treatment(luminance: float, variance: float) -> ContrastTreatment:
    if variance > HIGH_VARIANCE:
        return BackdropTreatment(opacity=0.6)

    if variance < LOW_VARIANCE:
        if luminance > LIGHT_LUMINANCE:
            return StrokeTreatment(color=STROKE_DARK, width=2)
        if luminance < DARK_LUMINANCE:
            return StrokeTreatment(color=STROKE_LIGHT, width=2)

    return ShadowTreatment(offset=2, blur=4)


def select_text_color(luminance: float) -> str:
    return WHITE_TEXT if luminance < 0.5 else DARK_TEXT
