"""세로쓰기(縦書き) 텍스트 렌더러

글자 단위로 세로 슬롯(font_size × 1.2)에 배치합니다.
  - 한자·가나·전각 문자: 똑바로 세움
  - 반각 영문·숫자 (A-Z, a-z, 0-9): 슬롯 중심 기준 시계 방향 90° 회전
"""
from __future__ import annotations

import math
import re

from PIL import Image, ImageDraw

from jp_compositor.compositing.fonts import load_font
from jp_compositor.compositing.text_renderer import (
    BACKDROP_RADIUS,
    PADDING,
    backdrop_fill,
    render_shadow_layer,
)
from jp_compositor.models.typography import (
    BackdropTreatment,
    ContrastTreatment,
    ShadowTreatment,
    StrokeTreatment,
)
from jp_compositor.utils.image_utils import hex_to_rgba, paste_overlay

SLOT_HEIGHT_RATIO = 1.2

MAX_VERTICAL_LENGTH = 12
MIN_CJK_RATIO = 0.7
MAX_ASPECT_RATIO = 1.5

# 열이 공간보다 길어도 이 크기 밑으로는 줄이지 않음
MIN_VERTICAL_FONT_SIZE = 12

# 한자, 히라가나, 가타카나, CJK 기호, CJK 호환 한자
CJK_PATTERN = re.compile(r"[\u3000-\u9fff\uf900-\ufaff]")
HALFWIDTH_PATTERN = re.compile(r"[A-Za-z0-9]")


def is_vertical_eligible(length: int, text: str, image_aspect_ratio: float) -> bool:
    """세로쓰기 배치안을 제안할 수 있는지 판정합니다.

    세 조건을 모두 만족해야 합니다:
    1. 12자 이하
    2. CJK 문자 비율 70% 초과
    3. 가로로 긴 배너가 아님 (너비/높이 ≤ 1.5)
    """
    if length > MAX_VERTICAL_LENGTH:
        return False

    if not text:
        return False
    cjk_count = sum(1 for char in text if CJK_PATTERN.match(char))
    if cjk_count / len(text) <= MIN_CJK_RATIO:
        return False

    return image_aspect_ratio <= MAX_ASPECT_RATIO


def vertical_column_height(length: int, font_size: int) -> int:
    """세로쓰기 열 오버레이의 높이 (상하 여백 포함)."""
    return math.ceil(length * font_size * SLOT_HEIGHT_RATIO + PADDING * 2)


def fit_vertical_font_size(length: int, font_size: int, available_height: float) -> int:
    """열 높이가 available_height 안에 들어가는 가장 큰 글자 크기 (font_size 이하).

    공간이 너무 좁으면 MIN_VERTICAL_FONT_SIZE를 반환합니다.
    """
    if length <= 0:
        return font_size
    fitted = math.floor((available_height - PADDING * 2) / (length * SLOT_HEIGHT_RATIO))
    return max(MIN_VERTICAL_FONT_SIZE, min(font_size, fitted))


def _draw_char(
    canvas: Image.Image,
    char: str,
    center: tuple[float, float],
    font,
    font_size: int,
    fill: tuple[int, int, int, int],
    stroke: StrokeTreatment | None = None,
) -> Image.Image:
    stroke_kwargs = (
        {"stroke_width": stroke.width, "stroke_fill": stroke.color} if stroke else {}
    )

    if not HALFWIDTH_PATTERN.fullmatch(char):
        ImageDraw.Draw(canvas).text(
            center, char, font=font, fill=fill, anchor="mm", **stroke_kwargs
        )
        return canvas

    # 반각 영숫자: 정사각형 타일에 그린 뒤 시계 방향 회전
    tile_size = math.ceil(font_size * 1.5)
    tile = Image.new("RGBA", (tile_size, tile_size), (0, 0, 0, 0))
    ImageDraw.Draw(tile).text(
        (tile_size / 2, tile_size / 2), char, font=font, fill=fill, anchor="mm",
        **stroke_kwargs,
    )
    tile = tile.rotate(-90)
    return paste_overlay(
        canvas, tile, round(center[0] - tile_size / 2), round(center[1] - tile_size / 2)
    )


def render_vertical(
    text: str,
    font_size: int,
    font_family: str,
    color: str,
    treatment: ContrastTreatment,
) -> Image.Image:
    """세로쓰기 한 줄(열) 오버레이를 생성합니다.

    backdrop은 열 전체를 덮고, shadow/stroke는 글자마다 적용합니다.
    """
    font = load_font(font_family, font_size)
    fill = hex_to_rgba(color)
    slot_height = font_size * SLOT_HEIGHT_RATIO

    width = font_size + PADDING * 2
    height = vertical_column_height(len(text), font_size)
    canvas = Image.new("RGBA", (width, height), (0, 0, 0, 0))

    if isinstance(treatment, BackdropTreatment):
        ImageDraw.Draw(canvas).rounded_rectangle(
            [0, 0, width - 1, height - 1],
            radius=BACKDROP_RADIUS,
            fill=backdrop_fill(treatment),
        )

    centers = [
        (PADDING + font_size / 2, PADDING + i * slot_height + font_size / 2)
        for i in range(len(text))
    ]

    if isinstance(treatment, ShadowTreatment):
        def draw_shadow(layer: Image.Image, offset: int, shadow_color) -> Image.Image:
            for char, (cx, cy) in zip(text, centers):
                layer = _draw_char(
                    layer, char, (cx + offset, cy + offset), font, font_size, shadow_color
                )
            return layer

        canvas = Image.alpha_composite(
            canvas, render_shadow_layer(canvas.size, draw_shadow, treatment)
        )

    stroke = treatment if isinstance(treatment, StrokeTreatment) else None
    for char, center in zip(text, centers):
        canvas = _draw_char(canvas, char, center, font, font_size, fill, stroke)

    return canvas
