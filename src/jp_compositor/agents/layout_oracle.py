"""레이아웃 Oracle — 베이스 이미지를 보고 텍스트 배치안 3개를 제안합니다.

- ClaudeLayoutOracle: Claude Vision + 강제 tool_use로 구조화된 좌표 수신
- OpenAILayoutOracle: GPT Vision + json_object 응답
- VarianceLayoutOracle: 네트워크 없이 영역별 밝기 분산으로 가장 차분한 영역 3곳 선택

Oracle의 응답은 검증되지 않은 원시 dict 목록입니다.
좌표 보정·형식 검증은 LayoutEngine이 항상 수행합니다.
"""
from __future__ import annotations

import asyncio
import base64
import json
import logging
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Any, Protocol

from jp_compositor.compositing.contrast import analyze_region
from jp_compositor.compositing.vertical_text import is_vertical_eligible
from jp_compositor.config import Settings, get_settings
from jp_compositor.errors import LayoutOracleError
from jp_compositor.models.layout import Rect
from jp_compositor.utils.http_client import create_anthropic_client, create_openai_client
from jp_compositor.utils.image_utils import decode_image

logger = logging.getLogger(__name__)

_TEMPLATE_PATH = (
    Path(__file__).parent.parent / "utils/prompt_templates/layout_analyzer.txt"
)

TOOL_NAME = "deliver_layout_alternatives"
EDGE_PADDING = 40


@dataclass(frozen=True)
class LayoutRequest:
    image_bytes: bytes
    width: int
    height: int
    has_tagline: bool
    has_logo: bool
    headline_text: str

    @property
    def vertical_eligible(self) -> bool:
        return is_vertical_eligible(
            len(self.headline_text), self.headline_text, self.width / self.height
        )


class LayoutOracle(Protocol):
    async def propose(self, request: LayoutRequest) -> list[dict[str, Any]]:
        """배치안 원시 데이터(dict) 목록을 반환합니다. 실패 시 예외를 던집니다."""
        ...


_PLACEMENT_SCHEMA = {
    "type": "object",
    "properties": {
        "x": {"type": "number", "description": "Left edge x-coordinate in pixels"},
        "y": {"type": "number", "description": "Top edge y-coordinate in pixels"},
        "max_width": {"type": "number", "description": "Maximum text width in pixels"},
        "align": {
            "type": "string",
            "enum": ["left", "center", "right"],
            "description": "Text alignment within max_width",
        },
    },
    "required": ["x", "y", "max_width", "align"],
}

_RECT_SCHEMA = {
    "type": "object",
    "properties": {
        "x": {"type": "number"},
        "y": {"type": "number"},
        "width": {"type": "number"},
        "height": {"type": "number"},
    },
    "required": ["x", "y", "width", "height"],
}

LAYOUT_TOOL = {
    "name": TOOL_NAME,
    "description": (
        "Return 3 distinct layout alternatives for Japanese text placement. "
        "Each alternative places headline, tagline and CTA in a different region "
        "of the image, avoiding the main subject."
    ),
    "input_schema": {
        "type": "object",
        "properties": {
            "alternatives": {
                "type": "array",
                "minItems": 3,
                "maxItems": 3,
                "items": {
                    "type": "object",
                    "properties": {
                        "id": {"type": "string", "description": "'A', 'B' or 'C'"},
                        "headline": _PLACEMENT_SCHEMA,
                        "tagline": {
                            "anyOf": [_PLACEMENT_SCHEMA, {"type": "null"}],
                            "description": "Tagline placement or null if not needed",
                        },
                        "cta": _PLACEMENT_SCHEMA,
                        "orientation": {
                            "type": "string",
                            "enum": ["horizontal", "vertical"],
                        },
                        "contrast_zones": {
                            "type": "array",
                            "items": {
                                "type": "object",
                                "properties": {
                                    "region": _RECT_SCHEMA,
                                    "brightness": {
                                        "type": "string",
                                        "enum": ["light", "dark", "mixed"],
                                    },
                                },
                                "required": ["region", "brightness"],
                            },
                        },
                    },
                    "required": ["id", "headline", "cta", "orientation", "contrast_zones"],
                },
            },
            "image_description": {
                "type": "string",
                "description": "Main subject, background and composition of the image",
            },
        },
        "required": ["alternatives"],
    },
}

_JSON_OUTPUT_INSTRUCTION = (
    "Respond with a single JSON object of the form "
    '{"alternatives": [...]} where each alternative has the keys id, headline, '
    "tagline, cta, orientation and contrast_zones. headline, tagline and cta are "
    "objects with x, y, max_width and align."
)


def build_layout_prompt(request: LayoutRequest, output_instruction: str) -> str:
    """이미지 크기·텍스트 구성에 맞춘 레이아웃 분석 프롬프트를 생성합니다."""
    if request.has_tagline:
        tagline_instruction = (
            "- Tagline (sub copy): secondary text element, smaller than headline. "
            "Place below or near the headline."
        )
    else:
        tagline_instruction = (
            "- Tagline: NOT needed. Set tagline to null for all alternatives."
        )

    if request.has_logo:
        logo_instruction = (
            "- Logo: fixed at the bottom-right corner with 40px padding. "
            "Keep that corner free of text in every alternative."
        )
    else:
        logo_instruction = "- Logo: NOT included."

    if request.vertical_eligible:
        orientation_instruction = (
            f'IMPORTANT: The headline "{request.headline_text}" is short, mostly CJK, '
            "and the image is not a wide banner. One of the 3 alternatives MUST use "
            "vertical (tategaki) orientation in a tall narrow safe area. "
            "The other 2 alternatives should be horizontal."
        )
    else:
        orientation_instruction = (
            "All 3 alternatives must use horizontal text orientation."
        )

    template = _TEMPLATE_PATH.read_text(encoding="utf-8")
    return template.format(
        width=request.width,
        height=request.height,
        headline_text=request.headline_text,
        headline_length=len(request.headline_text),
        tagline_instruction=tagline_instruction,
        logo_instruction=logo_instruction,
        max_x=request.width - EDGE_PADDING,
        max_y=request.height - EDGE_PADDING,
        max_width=request.width - EDGE_PADDING * 2,
        orientation_instruction=orientation_instruction,
        output_instruction=output_instruction,
    )


def _encode_jpeg(image_bytes: bytes) -> str:
    """이미지 바이트를 Vision API용 base64 JPEG 문자열로 변환합니다."""
    buf = BytesIO()
    decode_image(image_bytes).convert("RGB").save(buf, format="JPEG", quality=90)
    return base64.b64encode(buf.getvalue()).decode("utf-8")


def _extract_alternatives(payload: Any) -> list[dict[str, Any]]:
    if not isinstance(payload, dict):
        raise LayoutOracleError("Oracle payload is not an object")
    alternatives = payload.get("alternatives")
    if not isinstance(alternatives, list) or not alternatives:
        raise LayoutOracleError("Oracle returned no alternatives")
    return alternatives


class _SDKClientOracle:
    """SDK 클라이언트를 보유한 Oracle의 종료 처리.

    직접 생성한 클라이언트만 닫습니다. 주입된 클라이언트는 호출 측이 관리합니다.
    """

    _client: Any
    _owns_client: bool

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


class ClaudeLayoutOracle(_SDKClientOracle):
    """Claude Vision 기반 Oracle. tool_choice로 구조화 출력을 강제합니다."""

    def __init__(self, client=None, model: str | None = None):
        settings = get_settings()
        self._owns_client = client is None
        self._client = client or create_anthropic_client()
        self._model = model or settings.layout_model_anthropic

    async def propose(self, request: LayoutRequest) -> list[dict[str, Any]]:
        prompt = build_layout_prompt(
            request, f"Return your analysis using the {TOOL_NAME} tool."
        )
        response = await self._client.messages.create(
            model=self._model,
            max_tokens=2048,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "image",
                            "source": {
                                "type": "base64",
                                "media_type": "image/jpeg",
                                "data": _encode_jpeg(request.image_bytes),
                            },
                        },
                        {"type": "text", "text": prompt},
                    ],
                }
            ],
            tools=[LAYOUT_TOOL],
            tool_choice={"type": "tool", "name": TOOL_NAME},
        )

        tool_block = next(
            (block for block in response.content if block.type == "tool_use"), None
        )
        if tool_block is None:
            raise LayoutOracleError("Claude did not return a tool_use block")
        return _extract_alternatives(tool_block.input)


class OpenAILayoutOracle(_SDKClientOracle):
    """GPT Vision 기반 Oracle. json_object 응답 형식을 사용합니다."""

    def __init__(self, client=None, model: str | None = None):
        settings = get_settings()
        self._owns_client = client is None
        self._client = client or create_openai_client()
        self._model = model or settings.layout_model_openai

    async def propose(self, request: LayoutRequest) -> list[dict[str, Any]]:
        prompt = build_layout_prompt(request, _JSON_OUTPUT_INSTRUCTION)
        response = await self._client.chat.completions.create(
            model=self._model,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "image_url",
                            "image_url": {
                                "url": f"data:image/jpeg;base64,{_encode_jpeg(request.image_bytes)}",
                                "detail": "high",
                            },
                        },
                        {"type": "text", "text": prompt},
                    ],
                }
            ],
            response_format={"type": "json_object"},
            max_tokens=2048,
        )

        content = response.choices[0].message.content
        if not content:
            raise LayoutOracleError("OpenAI returned an empty response")
        try:
            payload = json.loads(content)
        except json.JSONDecodeError as e:
            raise LayoutOracleError(f"OpenAI returned invalid JSON: {e}") from e
        return _extract_alternatives(payload)


def _brightness(luminance: float) -> str:
    if luminance > 0.6:
        return "light"
    if luminance < 0.4:
        return "dark"
    return "mixed"


class VarianceLayoutOracle:
    """규칙 기반 Oracle.

    화면을 서로 겹치지 않는 영역 3개로 나누는 두 가지 분할을 비교합니다.
      - 띠 분할: 상단 / 중앙 / 하단
      - 열 분할: 상단 / 좌하단 / 우하단
    영역별 밝기 분산 합이 낮은 분할을 고르고, 분산이 낮은 영역부터 A·B·C로 배치합니다.
    헤드라인이 세로쓰기 대상이면 좌·우 열 배치안은 세로쓰기로 제안합니다.
    """

    _PARTITIONS = (("top", "middle", "bottom"), ("top", "left", "right"))

    def _regions(self, width: int, height: int) -> dict[str, Rect]:
        third = height // 3
        half = width // 2
        lower = height - third
        return {
            "top": Rect(x=0, y=0, width=width, height=third),
            "middle": Rect(x=0, y=third, width=width, height=third),
            "bottom": Rect(x=0, y=third * 2, width=width, height=height - third * 2),
            "left": Rect(x=0, y=third, width=half, height=lower),
            "right": Rect(x=half, y=third, width=width - half, height=lower),
        }

    def _placement(
        self, name: str, region: Rect, request: LayoutRequest
    ) -> dict[str, Any]:
        w, h = request.width, request.height
        content_width = w - EDGE_PADDING * 2
        orientation = "horizontal"
        top = region.y + EDGE_PADDING

        if name in ("left", "right"):
            column_width = round(content_width * 0.45)
            x = EDGE_PADDING if name == "left" else round(w * 0.55)
            align = "left" if name == "left" else "right"
            headline = {"x": x, "y": top, "max_width": column_width, "align": align}
            tagline = {"x": x, "y": top + round(h * 0.15), "max_width": column_width, "align": align}
            cta = {"x": x, "y": round(h * 0.82), "max_width": column_width, "align": align}
            if request.vertical_eligible:
                orientation = "vertical"
        else:
            headline = {"x": EDGE_PADDING, "y": top, "max_width": content_width, "align": "center"}
            tagline = {
                "x": EDGE_PADDING,
                "y": top + round(h * 0.12),
                "max_width": round(content_width * 0.7),
                "align": "center",
            }
            cta_y = round(h * 0.82) if name != "bottom" else top + round(h * 0.2)
            cta = {
                "x": round(w * 0.3),
                "y": cta_y,
                "max_width": round(content_width * 0.4),
                "align": "center",
            }

        return {
            "headline": headline,
            "tagline": tagline if request.has_tagline else None,
            "cta": cta,
            "orientation": orientation,
        }

    def _measure(self, image_bytes: bytes, regions: dict[str, Rect]):
        image = decode_image(image_bytes)
        return {name: analyze_region(image, rect) for name, rect in regions.items()}

    async def propose(self, request: LayoutRequest) -> list[dict[str, Any]]:
        regions = self._regions(request.width, request.height)
        stats = await asyncio.to_thread(self._measure, request.image_bytes, regions)
        logger.debug(
            "Region variance: %s",
            {name: round(region_stats.variance, 1) for name, region_stats in stats.items()},
        )

        partition = min(
            self._PARTITIONS,
            key=lambda names: sum(stats[name].variance for name in names),
        )
        ranked = sorted(partition, key=lambda name: stats[name].variance)

        alternatives = []
        for layout_id, name in zip("ABC", ranked):
            alternative = self._placement(name, regions[name], request)
            alternative["id"] = layout_id
            alternative["contrast_zones"] = [
                {
                    "region": regions[name].model_dump(),
                    "brightness": _brightness(stats[name].luminance),
                }
            ]
            alternatives.append(alternative)
        return alternatives


def build_layout_oracle(settings: Settings | None = None) -> LayoutOracle | None:
    """LAYOUT_PROVIDER 설정에 맞는 Oracle을 생성합니다. none이면 None (기본 레이아웃만 사용)."""
    settings = settings or get_settings()
    provider = settings.layout_provider.lower()

    if provider == "anthropic":
        return ClaudeLayoutOracle(model=settings.layout_model_anthropic)
    if provider == "openai":
        return OpenAILayoutOracle(model=settings.layout_model_openai)
    if provider == "variance":
        return VarianceLayoutOracle()
    if provider == "none":
        return None
    raise ValueError(f"Unknown layout provider: {settings.layout_provider!r}")
