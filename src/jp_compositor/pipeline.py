"""
합성 파이프라인 오케스트레이터

베이스 이미지마다: 가져오기/디코딩 → 레이아웃 3안 → 배치안별 합성
  (금칙 줄바꿈 → 대비 분석 → 텍스트·CTA·로고 오버레이 → PNG 인코딩 → 메타데이터)

실패 격리:
  - 오버레이 1개 실패 → 해당 오버레이만 생략
  - 배치안 1개 실패 → 해당 배치안만 생략
  - 이미지 실패 (가져오기 실패 또는 3안 모두 실패) → 해당 이미지만 생략
  - 모든 이미지 실패 → TotalCompositingError
"""
from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from PIL import Image

from jp_compositor.agents.layout_engine import (
    LayoutEngine,
    build_layout_engine,
    grid_floor,
    vertical_headline_font_size,
)
from jp_compositor.compositing.contrast import (
    DEFAULT_TREATMENT,
    WHITE_TEXT,
    analyze_region,
    select_text_color,
    select_treatment,
)
from jp_compositor.compositing.fonts import headline_font_size, resolve_font_family
from jp_compositor.compositing.kinsoku import LineBreaker, build_line_breaker
from jp_compositor.compositing.logo import EDGE_PADDING, place_logo
from jp_compositor.compositing.text_renderer import (
    LINE_HEIGHT_RATIO,
    PADDING,
    TextElement,
    render_cta,
    render_text,
)
from jp_compositor.compositing.vertical_text import render_vertical, vertical_column_height
from jp_compositor.config import get_settings
from jp_compositor.errors import ImageCompositingError, TotalCompositingError
from jp_compositor.models.composite import (
    AdCopy,
    BaseImage,
    BrandColors,
    BrandKit,
    CompositeOutput,
    CompositingResult,
    LayoutMetadata,
    PlacedLogo,
    PlacedText,
)
from jp_compositor.models.layout import LayoutAlternative, Orientation, Rect
from jp_compositor.models.typography import ContrastTreatment
from jp_compositor.utils.image_utils import (
    decode_image,
    fetch_base_image,
    image_to_bytes,
    load_bytes,
    paste_overlay,
)

logger = logging.getLogger(__name__)

MAX_TAGLINE_LENGTH = 30
TAGLINE_SIZE_RATIO = 0.6
CTA_SIZE_RATIO = 0.7
CTA_TEXT_COLOR = "#FFFFFF"

ProgressCallback = Callable[[int, str], Awaitable[None]]


class ResultSink(Protocol):
    """합성 결과 저장소. 업로드·DB 기록 등 영속화는 호출 측 구현이 담당합니다."""

    async def store(self, base_image_id: str, composite: CompositeOutput) -> None:
        ...


class LocalDirectorySink:
    """<output_dir>/<base_id>-layout-<id>.png 와 같은 이름의 .json 메타데이터를 기록합니다."""

    def __init__(self, output_dir: str | Path = "output"):
        self.output_dir = Path(output_dir)

    async def store(self, base_image_id: str, composite: CompositeOutput) -> None:
        await asyncio.to_thread(self._write, base_image_id, composite)

    def _write(self, base_image_id: str, composite: CompositeOutput) -> None:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        stem = f"{base_image_id}-layout-{composite.layout_id}"
        image_path = self.output_dir / f"{stem}.png"
        image_path.write_bytes(composite.image_bytes)
        (self.output_dir / f"{stem}.json").write_text(
            composite.metadata.model_dump_json(indent=2), encoding="utf-8"
        )
        logger.info("Saved composite: %s", image_path)


@dataclass(frozen=True)
class _RenderContext:
    """한 번의 합성 실행 동안 모든 이미지·배치안이 읽기 전용으로 공유하는 입력."""

    headline: str
    tagline: str | None
    cta_text: str
    font_family: str
    brand_colors: BrandColors
    logo_bytes: bytes | None


@dataclass(frozen=True)
class _Overlay:
    name: str
    image: Image.Image
    left: int
    top: int


def derive_tagline(body_text: str) -> str | None:
    """본문이 30자 이하일 때만 태그라인으로 사용합니다."""
    if body_text and len(body_text) <= MAX_TAGLINE_LENGTH:
        return body_text
    return None


class Compositor:
    def __init__(
        self,
        layout_engine: LayoutEngine | None = None,
        line_breaker: LineBreaker | None = None,
        sink: ResultSink | None = None,
    ):
        self._owns_layout_engine = layout_engine is None
        self.layout_engine = layout_engine or build_layout_engine()
        self.line_breaker = line_breaker or build_line_breaker()
        self.sink = sink

    async def aclose(self) -> None:
        """직접 생성한 레이아웃 엔진의 Oracle 연결을 닫습니다."""
        if self._owns_layout_engine:
            await self.layout_engine.aclose()

    async def __aenter__(self) -> Compositor:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def composite_images(
        self,
        base_images: list[BaseImage],
        copy: AdCopy,
        brand: BrandKit,
        on_progress: ProgressCallback | None = None,
    ) -> list[CompositingResult]:
        """모든 베이스 이미지를 병렬로 합성합니다.

        Args:
            base_images: 합성 대상 이미지 목록
            copy: 헤드라인 / 본문 / CTA 카피
            brand: 폰트·색상·로고
            on_progress: (진행률 %, 메시지)를 받는 비동기 콜백. 이미지 1장 완료마다 호출

        Returns:
            성공한 이미지별 CompositingResult 목록 (실패한 이미지는 제외)

        Raises:
            TotalCompositingError: 모든 이미지가 실패한 경우
        """
        context = _RenderContext(
            headline=copy.headline,
            tagline=derive_tagline(copy.body_text),
            cta_text=copy.cta_text,
            font_family=resolve_font_family(brand.font_id),
            brand_colors=brand.colors,
            logo_bytes=await self._resolve_logo(brand),
        )
        logger.info(
            "Compositing %d image(s): font=%s, tagline=%s, logo=%s",
            len(base_images),
            context.font_family,
            context.tagline is not None,
            context.logo_bytes is not None,
        )

        total = len(base_images)
        completed = 0

        async def run_one(base_image: BaseImage) -> CompositingResult:
            nonlocal completed
            result = await self.composite_image(base_image, context)
            completed += 1
            if on_progress is not None:
                await self._report_progress(
                    on_progress, round(completed / total * 100), f"画像 {completed}/{total} 合成完了"
                )
            return result

        outcomes = await asyncio.gather(
            *(run_one(base_image) for base_image in base_images), return_exceptions=True
        )

        results: list[CompositingResult] = []
        errors: list[Exception] = []
        for base_image, outcome in zip(base_images, outcomes):
            if isinstance(outcome, Exception):
                logger.error("Failed to composite image %s: %s", base_image.id, outcome)
                errors.append(outcome)
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                results.append(outcome)

        if not results and errors:
            raise TotalCompositingError(errors) from errors[0]

        logger.info(
            "Compositing finished: %d/%d image(s) succeeded", len(results), total
        )
        return results

    async def composite_image(
        self, base_image: BaseImage, context: _RenderContext
    ) -> CompositingResult:
        """이미지 1장에 대해 배치안 3개를 합성합니다. 3개 모두 실패하면 ImageCompositingError."""
        settings = get_settings()
        image_bytes, image = await fetch_base_image(base_image, settings.fetch_timeout_seconds)
        width, height = image.size
        if (width, height) != (base_image.width, base_image.height):
            logger.warning(
                "Image %s declared %dx%d but decoded %dx%d; using decoded size",
                base_image.id, base_image.width, base_image.height, width, height,
            )

        layouts = await self.layout_engine.get_layouts(
            image_bytes,
            width,
            height,
            has_tagline=context.tagline is not None,
            has_logo=context.logo_bytes is not None,
            headline_text=context.headline,
        )

        outcomes = await asyncio.gather(
            *(
                asyncio.to_thread(self._composite_layout, image_bytes, base_image.id, layout, context)
                for layout in layouts
            ),
            return_exceptions=True,
        )

        composites: list[CompositeOutput] = []
        errors: list[Exception] = []
        for layout, outcome in zip(layouts, outcomes):
            if isinstance(outcome, Exception):
                logger.error(
                    "Layout %s compositing failed for image %s: %s",
                    layout.id, base_image.id, outcome,
                )
                errors.append(outcome)
                continue
            if isinstance(outcome, BaseException):
                raise outcome
            composites.append(outcome)
            await self._store(base_image.id, outcome)

        if not composites:
            reason = str(errors[0]) if errors else "no layouts"
            raise ImageCompositingError(base_image.id, reason)

        return CompositingResult(base_image_id=base_image.id, composites=composites)

    def _composite_layout(
        self,
        image_bytes: bytes,
        base_image_id: str,
        layout: LayoutAlternative,
        context: _RenderContext,
    ) -> CompositeOutput:
        """배치안 1개를 합성합니다. 워커 스레드에서 실행되며 매번 새 캔버스를 사용합니다."""
        canvas = decode_image(image_bytes)
        width, height = canvas.size

        base_size = headline_font_size(width)
        tagline_size = round(base_size * TAGLINE_SIZE_RATIO)
        cta_size = round(base_size * CTA_SIZE_RATIO)
        headline_size = base_size
        if layout.orientation == "vertical":
            headline_size = vertical_headline_font_size(layout, width, height, context.headline)

        headline_lines = self._break_lines(
            context.headline, layout.headline.max_width, headline_size, layout.orientation
        )
        tagline_lines = None
        if context.tagline and layout.tagline is not None:
            tagline_lines = self._break_lines(
                context.tagline, layout.tagline.max_width, tagline_size, "horizontal"
            )

        text_color, treatment = self._choose_treatment(
            canvas, layout, context.headline, headline_lines, headline_size
        )

        overlays: list[_Overlay | None] = []

        def build_headline() -> _Overlay:
            if layout.orientation == "vertical":
                image = render_vertical(
                    context.headline, headline_size, context.font_family, text_color, treatment
                )
            else:
                element = TextElement(
                    text=context.headline,
                    x=layout.headline.x,
                    y=layout.headline.y,
                    font_size=headline_size,
                    font_family=context.font_family,
                    color=text_color,
                    max_width=layout.headline.max_width,
                    align=layout.headline.align,
                )
                image = render_text(element, treatment, headline_lines)
            return _Overlay("headline", image, layout.headline.x, layout.headline.y)

        overlays.append(_try_overlay("Headline", build_headline))

        if tagline_lines is not None:
            def build_tagline() -> _Overlay:
                element = TextElement(
                    text=context.tagline,
                    x=layout.tagline.x,
                    y=layout.tagline.y,
                    font_size=tagline_size,
                    font_family=context.font_family,
                    color=text_color,
                    max_width=layout.tagline.max_width,
                    align=layout.tagline.align,
                )
                image = render_text(element, treatment, tagline_lines)
                return _Overlay("tagline", image, layout.tagline.x, layout.tagline.y)

            overlays.append(_try_overlay("Tagline", build_tagline))

        def build_cta() -> _Overlay:
            image = render_cta(
                context.cta_text,
                cta_size,
                context.font_family,
                context.brand_colors.accent,
                CTA_TEXT_COLOR,
            )
            return _Overlay("cta", image, layout.cta.x, layout.cta.y)

        overlays.append(_try_overlay("CTA", build_cta))

        if context.logo_bytes is not None and layout.logo is not None:
            def build_logo() -> _Overlay:
                logo = place_logo(context.logo_bytes, width, height, layout.logo)
                # 슬롯 높이보다 큰 로고는 하단 여백을 지키도록 그리드 단위로 올림
                lowest_top = max(0, grid_floor(height - EDGE_PADDING - logo.image.height))
                return _Overlay("logo", logo.image, logo.left, min(logo.top, lowest_top))

            overlays.append(_try_overlay("Logo", build_logo))

        placed = {overlay.name: overlay for overlay in overlays if overlay is not None}
        for overlay in placed.values():
            canvas = paste_overlay(canvas, overlay.image, overlay.left, overlay.top)

        metadata = LayoutMetadata(
            layout_id=layout.id,
            orientation=layout.orientation,
            headline=PlacedText(
                text=context.headline,
                x=layout.headline.x,
                y=layout.headline.y,
                font_size=headline_size,
                lines=headline_lines,
            ),
            tagline=(
                PlacedText(
                    text=context.tagline,
                    x=layout.tagline.x,
                    y=layout.tagline.y,
                    font_size=tagline_size,
                    lines=tagline_lines,
                )
                if tagline_lines is not None
                else None
            ),
            cta=PlacedText(
                text=context.cta_text,
                x=layout.cta.x,
                y=layout.cta.y,
                font_size=cta_size,
            ),
            logo=(
                PlacedLogo(
                    x=placed["logo"].left,
                    y=placed["logo"].top,
                    width=placed["logo"].image.width,
                )
                if "logo" in placed
                else None
            ),
            treatment=treatment,
            text_color=text_color,
            font_family=context.font_family,
            brand_colors=context.brand_colors.model_dump(),
            base_image_id=base_image_id,
        )

        return CompositeOutput(
            layout_id=layout.id,
            image_bytes=image_to_bytes(canvas, "PNG"),
            metadata=metadata,
        )

    def _break_lines(
        self, text: str, max_width: int, font_size: int, orientation: Orientation
    ) -> list[str]:
        try:
            return self.line_breaker.break_text(text, max_width, font_size, orientation).lines
        except Exception as e:
            logger.warning("Line breaking failed, using a single line: %s", e)
            return [text]

    def _choose_treatment(
        self,
        canvas: Image.Image,
        layout: LayoutAlternative,
        headline: str,
        headline_lines: list[str],
        font_size: int,
    ) -> tuple[str, ContrastTreatment]:
        """헤드라인 영역의 대비를 분석해 (글자색, 가독성 처리)를 결정합니다."""
        if layout.orientation == "vertical":
            region = Rect(
                x=layout.headline.x,
                y=layout.headline.y,
                width=font_size + PADDING * 2,
                height=vertical_column_height(len(headline), font_size),
            )
        else:
            region = Rect(
                x=layout.headline.x,
                y=layout.headline.y,
                width=layout.headline.max_width,
                height=math.ceil(len(headline_lines) * font_size * LINE_HEIGHT_RATIO + PADDING * 2),
            )

        try:
            stats = analyze_region(canvas, region)
        except Exception as e:
            logger.warning("Contrast analysis failed, using white text with shadow: %s", e)
            return WHITE_TEXT, DEFAULT_TREATMENT

        return select_text_color(stats.luminance), select_treatment(stats.luminance, stats.variance)

    async def _resolve_logo(self, brand: BrandKit) -> bytes | None:
        if brand.logo_bytes is not None:
            return brand.logo_bytes
        if not brand.logo_url:
            return None
        try:
            return await load_bytes(brand.logo_url, get_settings().fetch_timeout_seconds)
        except Exception as e:
            logger.warning("Failed to fetch logo, compositing without it: %s", e)
            return None

    async def _store(self, base_image_id: str, composite: CompositeOutput) -> None:
        if self.sink is None:
            return
        try:
            await self.sink.store(base_image_id, composite)
        except Exception as e:
            logger.error(
                "Result sink failed for %s layout %s: %s",
                base_image_id, composite.layout_id, e,
            )

    @staticmethod
    async def _report_progress(on_progress: ProgressCallback, percent: int, message: str) -> None:
        try:
            await on_progress(percent, message)
        except Exception as e:
            logger.warning("Progress callback failed: %s", e)


def _try_overlay(name: str, build: Callable[[], _Overlay]) -> _Overlay | None:
    try:
        return build()
    except Exception as e:
        logger.warning("%s overlay failed, skipping: %s", name, e)
        return None


async def composite_images(
    base_images: list[BaseImage],
    copy: AdCopy,
    brand: BrandKit,
    *,
    layout_engine: LayoutEngine | None = None,
    line_breaker: LineBreaker | None = None,
    sink: ResultSink | None = None,
    on_progress: ProgressCallback | None = None,
) -> list[CompositingResult]:
    """베이스 이미지마다 배치안 최대 3개의 합성 이미지와 메타데이터를 생성합니다."""
    async with Compositor(
        layout_engine=layout_engine, line_breaker=line_breaker, sink=sink
    ) as compositor:
        return await compositor.composite_images(
            base_images, copy, brand, on_progress=on_progress
        )
