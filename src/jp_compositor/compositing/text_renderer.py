"""가로쓰기(横書き) 텍스트 렌더러

- render_text(): 금칙 처리된 여러 줄 텍스트 + 가독성 처리 (backdrop / stroke / shadow)
- render_cta(): 브랜드 액센트 컬러 배경의 CTA 알약형 버튼

반환값은 투명 RGBA 오버레이이며, 파이프라인이 레이아웃 좌표에 합성합니다.
텍스트는 Pillow에 데이터로만 전달되므로 사용자 입력이 마크업으로 해석되지 않습니다.
"""
from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass

from PIL import Image, ImageDraw, ImageFilter

from jp_compositor.compositing.fonts import load_font
from jp_compositor.models.layout import Align
from jp_compositor.models.typography import (
    BackdropTreatment,
    ContrastTreatment,
    ShadowTreatment,
    StrokeTreatment,
)
from jp_compositor.utils.image_utils import hex_to_rgba

PADDING = 20
LINE_HEIGHT_RATIO = 1.4
BACKDROP_RADIUS = 8
SHADOW_COLOR = (0, 0, 0, 102)  # 40% 불투명 검정

CTA_PADDING = 40
CTA_HEIGHT_RATIO = 2
CTA_RADIUS_RATIO = 0.4

_BASELINE_ANCHORS = {"left": "ls", "center": "ms", "right": "rs"}


@dataclass(frozen=True)
class TextElement:
    text: str
    x: int
    y: int
    font_size: int
    font_family: str
    color: str
    max_width: int
    align: Align = "left"


def _anchor_x(align: Align, canvas_width: int) -> float:
    if align == "center":
        return canvas_width / 2
    if align == "right":
        return canvas_width - PADDING
    return PADDING


def backdrop_fill(treatment: BackdropTreatment) -> tuple[int, int, int, int]:
    return 0, 0, 0, round(255 * treatment.opacity)


def render_shadow_layer(
    size: tuple[int, int],
    draw_glyphs: Callable[[Image.Image, int, tuple[int, int, int, int]], Image.Image],
    treatment: ShadowTreatment,
) -> Image.Image:
    """offset만큼 이동한 반투명 검정 글자를 그린 뒤 blur/2 반경으로 흐립니다."""
    layer = draw_glyphs(
        Image.new("RGBA", size, (0, 0, 0, 0)), treatment.offset, SHADOW_COLOR
    )
    if treatment.blur > 0:
        layer = layer.filter(ImageFilter.GaussianBlur(treatment.blur / 2))
    return layer


def render_text(
    element: TextElement, treatment: ContrastTreatment, lines: list[str]
) -> Image.Image:
    """여러 줄 가로쓰기 텍스트 오버레이를 생성합니다.

    레이어 순서: backdrop(선택) → shadow(선택) → stroke+fill 또는 fill
    """
    font = load_font(element.font_family, element.font_size)
    fill = hex_to_rgba(element.color)
    line_height = element.font_size * LINE_HEIGHT_RATIO

    width = element.max_width + PADDING * 2
    height = math.ceil(len(lines) * line_height + PADDING * 2)
    canvas = Image.new("RGBA", (width, height), (0, 0, 0, 0))

    if isinstance(treatment, BackdropTreatment):
        ImageDraw.Draw(canvas).rounded_rectangle(
            [0, 0, width - 1, height - 1],
            radius=BACKDROP_RADIUS,
            fill=backdrop_fill(treatment),
        )

    text_x = _anchor_x(element.align, width)
    anchor = _BASELINE_ANCHORS[element.align]
    baselines = [PADDING + i * line_height + element.font_size for i in range(len(lines))]

    if isinstance(treatment, ShadowTreatment):
        def draw_shadow(layer: Image.Image, offset: int, color) -> Image.Image:
            draw = ImageDraw.Draw(layer)
            for line, baseline in zip(lines, baselines):
                draw.text(
                    (text_x + offset, baseline + offset), line,
                    font=font, fill=color, anchor=anchor,
                )
            return layer

        canvas = Image.alpha_composite(
            canvas, render_shadow_layer(canvas.size, draw_shadow, treatment)
        )

    draw = ImageDraw.Draw(canvas)
    for line, baseline in zip(lines, baselines):
        if isinstance(treatment, StrokeTreatment):
            draw.text(
                (text_x, baseline), line, font=font, fill=fill, anchor=anchor,
                stroke_width=treatment.width, stroke_fill=treatment.color,
            )
        else:
            draw.text((text_x, baseline), line, font=font, fill=fill, anchor=anchor)

    return canvas


def render_cta(
    text: str,
    font_size: int,
    font_family: str,
    bg_color: str,
    text_color: str,
) -> Image.Image:
    """CTA 알약형 버튼 오버레이를 생성합니다.

    CTA는 자체 배경을 가지므로 브랜드 액센트 컬러를 그대로 사용합니다.
    너비 = 글자 수 × font_size + 40, 높이 = font_size × 2
    """
    pill_width = len(text) * font_size + CTA_PADDING
    pill_height = font_size * CTA_HEIGHT_RATIO
    radius = font_size * CTA_RADIUS_RATIO

    canvas = Image.new("RGBA", (pill_width, pill_height), (0, 0, 0, 0))
    draw = ImageDraw.Draw(canvas)
    draw.rounded_rectangle(
        [0, 0, pill_width - 1, pill_height - 1],
        radius=radius,
        fill=hex_to_rgba(bg_color),
    )

    font = load_font(font_family, font_size)
    draw.text(
        (pill_width / 2, pill_height / 2), text,
        font=font, fill=hex_to_rgba(text_color), anchor="mm",
    )
    return canvas
