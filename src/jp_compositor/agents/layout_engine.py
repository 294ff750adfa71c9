"""레이아웃 엔진

Oracle에게 배치안 3개를 받아 좌표를 검증·보정합니다.
Oracle이 응답하지 않거나(타임아웃 포함) 형식이 틀리면 비율 기반 기본 레이아웃 3개로 대체합니다.

보정 규칙 (Oracle 응답과 기본 레이아웃 모두에 적용):
  1. x/y를 20px 그리드에 스냅
  2. 40px 가장자리 여백 안으로 클램핑
  3. max_width를 [하한, 이미지 너비 - x - 40]으로 클램핑 (헤드라인 200px, 그 외 100px)
  4. 로고는 3개 배치안 모두 우측 하단 고정 위치
  5. 위→아래 순서로 겹치는 요소를 아래로 밀어냄 (세로쓰기 헤드라인은 열 높이 기준)
"""
from __future__ import annotations

import asyncio
import logging
import math
from typing import Any

from pydantic import ValidationError

from jp_compositor.agents.layout_oracle import LayoutOracle, LayoutRequest, build_layout_oracle
from jp_compositor.compositing.fonts import headline_font_size
from jp_compositor.compositing.logo import EDGE_PADDING, LOGO_WIDTH_RATIO
from jp_compositor.compositing.vertical_text import (
    fit_vertical_font_size,
    is_vertical_eligible,
    vertical_column_height,
)
from jp_compositor.config import Settings, get_settings
from jp_compositor.errors import LayoutOracleError
from jp_compositor.models.layout import LayoutAlternative, LogoPosition, TextPlacement

logger = logging.getLogger(__name__)

GRID = 20
LAYOUT_IDS = ("A", "B", "C")

HEADLINE_MIN_WIDTH = 200
ELEMENT_MIN_WIDTH = 100

# 겹침 판정용 요소 높이 추정치 (px)
HEADLINE_HEIGHT = 80
TAGLINE_HEIGHT = 48
CTA_HEIGHT = 56
OVERLAP_PADDING = 20

# 로고 슬롯 높이 (px)
LOGO_SLOT_HEIGHT = 40


def snap(value: float) -> int:
    """가장 가까운 20px 그리드 값 (0.5는 올림)."""
    return math.floor(value / GRID + 0.5) * GRID


def snap_up(value: float) -> int:
    return math.ceil(value / GRID) * GRID


def grid_floor(value: float) -> int:
    return math.floor(value / GRID) * GRID


def _clamp(value: int, upper_dim: int) -> int:
    # 상한도 그리드 값이어야 클램핑 후에도 20의 배수가 유지됨
    upper = max(EDGE_PADDING, grid_floor(upper_dim - EDGE_PADDING))
    return max(EDGE_PADDING, min(value, upper))


def fixed_logo_position(width: int, height: int) -> LogoPosition:
    """3개 배치안이 공유하는 우측 하단 로고 좌표."""
    logo_width = round(width * LOGO_WIDTH_RATIO)
    return LogoPosition(
        x=_clamp(grid_floor(width - EDGE_PADDING - logo_width), width),
        y=_clamp(grid_floor(height - EDGE_PADDING - LOGO_SLOT_HEIGHT), height),
    )


def _validate_placement(
    placement: TextPlacement, width: int, height: int, min_width: int
) -> TextPlacement:
    x = _clamp(snap(placement.x), width)
    y = _clamp(snap(placement.y), height)
    max_width = max(min_width, min(snap(placement.max_width), width - x - EDGE_PADDING))
    return TextPlacement(x=x, y=y, max_width=max_width, align=placement.align)


def _vertical_headline_height(
    placements: dict[str, TextPlacement],
    order: list[str],
    heights: dict[str, int],
    width: int,
    height: int,
    headline_text: str,
) -> int:
    """세로쓰기 헤드라인 열의 높이.

    헤드라인 아래 요소들이 이미지 안에 들어갈 공간을 남기도록 글자 크기를 줄여 계산합니다.
    """
    below = order[order.index("headline") + 1:]
    reserved = sum(heights[key] + OVERLAP_PADDING for key in below)
    available = height - EDGE_PADDING - placements["headline"].y - reserved
    length = len(headline_text)
    font_size = fit_vertical_font_size(length, headline_font_size(width), available)
    return vertical_column_height(length, font_size)


def vertical_headline_font_size(
    layout: LayoutAlternative, width: int, height: int, headline_text: str
) -> int:
    """검증된 세로쓰기 배치안에서 헤드라인 열이 바로 아래 요소와 겹치지 않는 글자 크기."""
    headline = layout.headline
    below = [
        placement.y
        for placement in (layout.tagline, layout.cta)
        if placement is not None and placement.y > headline.y
    ]
    bottom = min(below) - OVERLAP_PADDING if below else height - EDGE_PADDING
    return fit_vertical_font_size(
        len(headline_text), headline_font_size(width), bottom - headline.y
    )


def validate_layout(
    layout: LayoutAlternative,
    width: int,
    height: int,
    has_logo: bool,
    headline_text: str = "",
) -> LayoutAlternative:
    """배치안 좌표를 그리드·여백·최소 폭 규칙에 맞게 보정한 새 배치안을 반환합니다.

    Oracle의 응답은 규칙을 지켰다고 가정하지 않으므로 성공 응답에도 항상 적용합니다.
    세로쓰기 배치안은 headline_text 길이로 열 높이를 계산해 겹침을 판정합니다.
    """
    placements: dict[str, TextPlacement] = {
        "headline": _validate_placement(layout.headline, width, height, HEADLINE_MIN_WIDTH),
        "cta": _validate_placement(layout.cta, width, height, ELEMENT_MIN_WIDTH),
    }
    if layout.tagline is not None:
        placements["tagline"] = _validate_placement(
            layout.tagline, width, height, ELEMENT_MIN_WIDTH
        )

    heights = {"headline": HEADLINE_HEIGHT, "tagline": TAGLINE_HEIGHT, "cta": CTA_HEIGHT}
    order = sorted(placements, key=lambda key: placements[key].y)
    vertical = layout.orientation == "vertical" and bool(headline_text)

    for prev_key, key in zip(order, order[1:]):
        if vertical and prev_key == "headline":
            heights["headline"] = _vertical_headline_height(
                placements, order, heights, width, height, headline_text
            )
        prev = placements[prev_key]
        boundary = prev.y + heights[prev_key] + OVERLAP_PADDING
        if placements[key].y < boundary:
            placements[key] = placements[key].model_copy(
                update={"y": _clamp(snap_up(boundary), height)}
            )

    return layout.model_copy(
        update={
            "headline": placements["headline"],
            "tagline": placements.get("tagline"),
            "cta": placements["cta"],
            "logo": fixed_logo_position(width, height) if has_logo else None,
        }
    )


def build_fallback_layouts(
    width: int,
    height: int,
    has_tagline: bool,
    has_logo: bool,
    headline_text: str = "",
) -> list[LayoutAlternative]:
    """Oracle 없이 사용하는 기본 레이아웃 3개.

    - A: 헤드라인 상단 중앙, CTA 하단 중앙
    - B: 헤드라인 좌상단, CTA 우하단
    - C: 헤드라인 우측 (세로쓰기 가능하면 세로), CTA 하단 중앙
    """
    pad = EDGE_PADDING
    content_width = width - pad * 2

    def placement(x: float, y: float, max_width: float, align: str) -> TextPlacement:
        return TextPlacement(x=round(x), y=round(y), max_width=round(max_width), align=align)

    layout_a = LayoutAlternative(
        id="A",
        headline=placement(pad, height * 0.12, content_width, "center"),
        tagline=placement(pad, height * 0.28, content_width * 0.7, "center") if has_tagline else None,
        cta=placement(width * 0.3, height * 0.82, content_width * 0.4, "center"),
    )
    layout_b = LayoutAlternative(
        id="B",
        headline=placement(pad, height * 0.1, content_width * 0.6, "left"),
        tagline=placement(pad, height * 0.26, content_width * 0.5, "left") if has_tagline else None,
        cta=placement(width * 0.55, height * 0.85, content_width * 0.4, "right"),
    )
    vertical = bool(headline_text) and is_vertical_eligible(
        len(headline_text), headline_text, width / height
    )
    layout_c = LayoutAlternative(
        id="C",
        headline=placement(width * 0.55, height * 0.15, content_width * 0.4, "right"),
        tagline=placement(width * 0.55, height * 0.35, content_width * 0.35, "right") if has_tagline else None,
        cta=placement(width * 0.3, height * 0.8, content_width * 0.4, "center"),
        orientation="vertical" if vertical else "horizontal",
    )

    return [
        validate_layout(layout, width, height, has_logo, headline_text)
        for layout in (layout_a, layout_b, layout_c)
    ]


class LayoutEngine:
    """Oracle 호출 + 검증 + 기본 레이아웃 대체를 담당합니다.

    Args:
        oracle: 배치안 제안자. None이면 항상 기본 레이아웃을 사용합니다.
        timeout: Oracle 응답 대기 상한 (초). None이면 LAYOUT_TIMEOUT_SECONDS 설정값.
    """

    def __init__(self, oracle: LayoutOracle | None = None, timeout: float | None = None):
        self.oracle = oracle
        self.timeout = timeout if timeout is not None else get_settings().layout_timeout_seconds

    async def get_layouts(
        self,
        image_bytes: bytes,
        width: int,
        height: int,
        has_tagline: bool,
        has_logo: bool,
        headline_text: str,
    ) -> list[LayoutAlternative]:
        """항상 정확히 3개의 검증된 배치안을 반환합니다."""
        if self.oracle is None:
            return build_fallback_layouts(width, height, has_tagline, has_logo, headline_text)

        request = LayoutRequest(
            image_bytes=image_bytes,
            width=width,
            height=height,
            has_tagline=has_tagline,
            has_logo=has_logo,
            headline_text=headline_text,
        )
        try:
            raw = await asyncio.wait_for(self.oracle.propose(request), timeout=self.timeout)
            layouts = self._normalize(raw, request)
        except asyncio.TimeoutError:
            logger.warning(
                "Layout oracle timed out after %.1fs. Using fallback layouts.", self.timeout
            )
        except Exception as e:
            logger.warning("Layout oracle failed (%s). Using fallback layouts.", e)
        else:
            logger.info(
                "Layout oracle returned %d alternatives: %s",
                len(layouts),
                ", ".join(f"{layout.id}={layout.orientation}" for layout in layouts),
            )
            return layouts

        return build_fallback_layouts(width, height, has_tagline, has_logo, headline_text)

    async def aclose(self) -> None:
        """Oracle이 보유한 SDK 연결을 닫습니다."""
        close = getattr(self.oracle, "aclose", None)
        if close is not None:
            await close()

    def _normalize(self, raw: Any, request: LayoutRequest) -> list[LayoutAlternative]:
        if not isinstance(raw, list) or len(raw) < len(LAYOUT_IDS):
            count = len(raw) if isinstance(raw, list) else 0
            raise LayoutOracleError(f"Expected 3 alternatives, got {count}")
        if len(raw) > len(LAYOUT_IDS):
            logger.warning("Layout oracle returned %d alternatives; keeping first 3", len(raw))

        vertical_eligible = request.vertical_eligible
        layouts = []
        for layout_id, item in zip(LAYOUT_IDS, raw):
            if not isinstance(item, dict):
                raise LayoutOracleError(f"Alternative {layout_id} is not an object")
            data = {key: value for key, value in item.items() if key != "logo"}
            data["id"] = layout_id
            if not request.has_tagline:
                data["tagline"] = None
            try:
                layout = LayoutAlternative.model_validate(data)
            except ValidationError as e:
                raise LayoutOracleError(f"Alternative {layout_id} is malformed: {e}") from e

            if request.has_tagline and layout.tagline is None:
                headline = layout.headline
                layout = layout.model_copy(
                    update={
                        "tagline": TextPlacement(
                            x=headline.x,
                            y=headline.y + HEADLINE_HEIGHT + OVERLAP_PADDING,
                            max_width=round(headline.max_width * 0.7),
                            align=headline.align,
                        )
                    }
                )
            if layout.orientation == "vertical" and not vertical_eligible:
                layout = layout.model_copy(update={"orientation": "horizontal"})

            layouts.append(
                validate_layout(
                    layout,
                    request.width,
                    request.height,
                    request.has_logo,
                    request.headline_text,
                )
            )
        return layouts


def build_layout_engine(settings: Settings | None = None) -> LayoutEngine:
    settings = settings or get_settings()
    return LayoutEngine(
        oracle=build_layout_oracle(settings),
        timeout=settings.layout_timeout_seconds,
    )
