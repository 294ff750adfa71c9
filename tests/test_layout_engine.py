"""레이아웃 엔진 테스트 — Oracle 실패 시 기본 레이아웃, 좌표 보정 규칙"""
import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from jp_compositor.agents.layout_engine import (
    EDGE_PADDING,
    OVERLAP_PADDING,
    LayoutEngine,
    build_fallback_layouts,
    fixed_logo_position,
    validate_layout,
    vertical_headline_font_size,
)
from jp_compositor.compositing.vertical_text import vertical_column_height
from jp_compositor.models.layout import LayoutAlternative, LogoPosition, TextPlacement

LONG_HEADLINE = "新春セール開催中！今だけの特別価格でお買い求めいただけます"
SHORT_HEADLINE = "新春大感謝祭"
TWELVE_CHAR_HEADLINE = "新春大感謝祭開催中今だけ"


def _assert_invariants(layouts, width, height, has_logo):
    assert len(layouts) == 3
    assert [layout.id for layout in layouts] == ["A", "B", "C"]

    for layout in layouts:
        assert layout.headline.max_width >= 200
        placements = [layout.headline, layout.cta]
        if layout.tagline is not None:
            placements.append(layout.tagline)
        for placement in placements:
            assert placement.x % 20 == 0
            assert placement.y % 20 == 0
            assert 40 <= placement.x <= width - 40
            assert 40 <= placement.y <= height - 40

    logos = [layout.logo for layout in layouts]
    if has_logo:
        assert logos[0] is not None
        assert all(logo == logos[0] for logo in logos)
        assert logos[0].x % 20 == 0 and logos[0].y % 20 == 0
        assert 40 <= logos[0].x <= width - 40
        assert 40 <= logos[0].y <= height - 40
    else:
        assert all(logo is None for logo in logos)


def _oracle(**propose_kwargs):
    oracle = MagicMock()
    oracle.propose = AsyncMock(**propose_kwargs)
    return oracle


def _raw_alternative(layout_id="A", **overrides):
    raw = {
        "id": layout_id,
        "headline": {"x": 60, "y": 80, "max_width": 600, "align": "left"},
        "tagline": None,
        "cta": {"x": 60, "y": 800, "max_width": 300, "align": "left"},
        "orientation": "horizontal",
        "contrast_zones": [],
    }
    raw.update(overrides)
    return raw


@pytest.mark.parametrize(
    "width, height", [(1024, 1024), (1200, 628), (1080, 1920), (300, 250)]
)
@pytest.mark.parametrize("has_tagline", [False, True])
@pytest.mark.parametrize("headline", [LONG_HEADLINE, SHORT_HEADLINE])
@pytest.mark.parametrize("has_logo", [False, True])
def test_fallback_layouts_satisfy_invariants(width, height, has_tagline, has_logo, headline):
    layouts = build_fallback_layouts(width, height, has_tagline, has_logo, headline)

    _assert_invariants(layouts, width, height, has_logo)
    assert all((layout.tagline is not None) == has_tagline for layout in layouts)


def test_fallback_layouts_are_distinct_regions():
    a, b, c = build_fallback_layouts(1024, 1024, False, False)

    assert a.headline.align == "center"
    assert b.headline.align == "left"
    assert c.headline.align == "right"
    assert c.headline.x > a.headline.x


def test_fallback_layout_c_is_vertical_for_short_cjk_headline():
    layouts = build_fallback_layouts(1024, 1024, False, False, SHORT_HEADLINE)
    assert [layout.orientation for layout in layouts] == ["horizontal", "horizontal", "vertical"]


def test_fallback_layout_c_stays_horizontal_on_wide_banner():
    layouts = build_fallback_layouts(1200, 628, False, False, SHORT_HEADLINE)
    assert all(layout.orientation == "horizontal" for layout in layouts)


def test_fixed_logo_position_bottom_right():
    assert fixed_logo_position(1024, 1024) == LogoPosition(x=860, y=940)


def test_validate_layout_snaps_clamps_and_resolves_overlap():
    layout = LayoutAlternative(
        id="A",
        headline=TextPlacement(x=5, y=7, max_width=50, align="left"),
        cta=TextPlacement(x=2000, y=50, max_width=300, align="center"),
        logo=LogoPosition(x=0, y=0),
    )

    validated = validate_layout(layout, 1024, 1024, has_logo=True)

    assert validated.headline == TextPlacement(x=40, y=40, max_width=200, align="left")
    assert validated.cta.x == 980
    assert validated.cta.max_width == 100
    # 헤드라인(40 + 80) + 여백 20 = 140
    assert validated.cta.y == 140
    assert validated.logo == LogoPosition(x=860, y=940)


def test_validate_layout_drops_logo_when_not_requested():
    layout = LayoutAlternative(
        id="A",
        headline=TextPlacement(x=100, y=100, max_width=400),
        cta=TextPlacement(x=100, y=600, max_width=200),
        logo=LogoPosition(x=500, y=500),
    )
    assert validate_layout(layout, 1024, 1024, has_logo=False).logo is None


@pytest.mark.asyncio
async def test_oracle_exception_falls_back():
    """Oracle 예외 → 기본 레이아웃 3개, 모든 불변 조건 충족."""
    engine = LayoutEngine(_oracle(side_effect=RuntimeError("vision API down")), timeout=5)

    layouts = await engine.get_layouts(b"image", 1024, 1024, False, False, LONG_HEADLINE)

    _assert_invariants(layouts, 1024, 1024, has_logo=False)
    assert layouts == build_fallback_layouts(1024, 1024, False, False, LONG_HEADLINE)


@pytest.mark.asyncio
async def test_oracle_timeout_falls_back():
    class SlowOracle:
        async def propose(self, request):
            await asyncio.sleep(10)
            return []

    engine = LayoutEngine(SlowOracle(), timeout=0.05)
    layouts = await engine.get_layouts(b"image", 1024, 1024, True, True, LONG_HEADLINE)

    assert layouts == build_fallback_layouts(1024, 1024, True, True, LONG_HEADLINE)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        [],
        None,
        [_raw_alternative("A"), _raw_alternative("B")],
        [{"id": "A"}, {"id": "B"}, {"id": "C"}],
        ["A", "B", "C"],
        [_raw_alternative("A", orientation="diagonal"), _raw_alternative("B"), _raw_alternative("C")],
    ],
)
async def test_malformed_oracle_payload_falls_back(payload):
    engine = LayoutEngine(_oracle(return_value=payload), timeout=5)

    layouts = await engine.get_layouts(b"image", 1024, 1024, False, True, LONG_HEADLINE)

    assert layouts == build_fallback_layouts(1024, 1024, False, True, LONG_HEADLINE)


@pytest.mark.asyncio
async def test_oracle_layouts_are_always_validated():
    payload = [
        _raw_alternative(
            "X",
            headline={"x": 5.4, "y": 7, "maxWidth": 50, "align": "left"},
            cta={"x": 2000, "y": 50, "maxWidth": 300, "align": "center"},
            logo={"x": 0, "y": 0},
        ),
        _raw_alternative("Y"),
        _raw_alternative("Z"),
    ]
    engine = LayoutEngine(_oracle(return_value=payload), timeout=5)

    layouts = await engine.get_layouts(b"image", 1024, 1024, False, True, LONG_HEADLINE)

    _assert_invariants(layouts, 1024, 1024, has_logo=True)
    assert layouts[0].headline == TextPlacement(x=40, y=40, max_width=200, align="left")
    assert layouts[0].cta.y == 140
    assert layouts[0].logo == fixed_logo_position(1024, 1024)
    assert layouts != build_fallback_layouts(1024, 1024, False, True, LONG_HEADLINE)


@pytest.mark.asyncio
async def test_extra_alternatives_are_truncated():
    payload = [_raw_alternative(layout_id) for layout_id in "ABCD"]
    engine = LayoutEngine(_oracle(return_value=payload), timeout=5)

    layouts = await engine.get_layouts(b"image", 1024, 1024, False, False, LONG_HEADLINE)

    _assert_invariants(layouts, 1024, 1024, has_logo=False)


@pytest.mark.asyncio
async def test_tagline_is_synthesised_when_oracle_omits_it():
    payload = [_raw_alternative(layout_id) for layout_id in "ABC"]
    engine = LayoutEngine(_oracle(return_value=payload), timeout=5)

    layouts = await engine.get_layouts(b"image", 1024, 1024, True, False, LONG_HEADLINE)

    _assert_invariants(layouts, 1024, 1024, has_logo=False)
    assert all(layout.tagline is not None for layout in layouts)
    assert all(layout.tagline.y > layout.headline.y for layout in layouts)


@pytest.mark.asyncio
async def test_tagline_is_removed_when_not_requested():
    tagline = {"x": 60, "y": 200, "max_width": 400, "align": "left"}
    payload = [_raw_alternative(layout_id, tagline=tagline) for layout_id in "ABC"]
    engine = LayoutEngine(_oracle(return_value=payload), timeout=5)

    layouts = await engine.get_layouts(b"image", 1024, 1024, False, False, LONG_HEADLINE)

    assert all(layout.tagline is None for layout in layouts)


@pytest.mark.asyncio
async def test_vertical_orientation_requires_eligible_headline():
    payload = [_raw_alternative(layout_id, orientation="vertical") for layout_id in "ABC"]
    engine = LayoutEngine(_oracle(return_value=payload), timeout=5)

    long_layouts = await engine.get_layouts(b"image", 1024, 1024, False, False, LONG_HEADLINE)
    short_layouts = await engine.get_layouts(b"image", 1024, 1024, False, False, SHORT_HEADLINE)

    assert all(layout.orientation == "horizontal" for layout in long_layouts)
    assert all(layout.orientation == "vertical" for layout in short_layouts)


@pytest.mark.asyncio
async def test_no_oracle_uses_fallback():
    layouts = await LayoutEngine(None, timeout=5).get_layouts(
        b"image", 800, 600, False, False, LONG_HEADLINE
    )
    assert layouts == build_fallback_layouts(800, 600, False, False, LONG_HEADLINE)


def _assert_column_clear(layout, width, height, headline):
    """세로쓰기 열이 아래 요소·이미지 하단 여백과 겹치지 않는지 확인합니다."""
    font_size = vertical_headline_font_size(layout, width, height, headline)
    column_bottom = layout.headline.y + vertical_column_height(len(headline), font_size)

    following = [
        placement
        for placement in (layout.tagline, layout.cta)
        if placement is not None and placement.y > layout.headline.y
    ]
    assert following
    for placement in following:
        assert column_bottom + OVERLAP_PADDING <= placement.y
    assert column_bottom <= height - EDGE_PADDING
    return font_size


@pytest.mark.parametrize("has_tagline", [False, True])
def test_fallback_vertical_column_does_not_overlap(has_tagline):
    """12자 세로쓰기: 열이 길면 글자 크기를 줄이고 아래 요소를 밀어냅니다."""
    layout = build_fallback_layouts(1024, 1024, has_tagline, True, TWELVE_CHAR_HEADLINE)[2]

    assert layout.orientation == "vertical"
    font_size = _assert_column_clear(layout, 1024, 1024, TWELVE_CHAR_HEADLINE)
    assert font_size < round(1024 / 16)
    assert layout.cta.y <= 1024 - EDGE_PADDING


@pytest.mark.asyncio
async def test_oracle_vertical_layout_pushes_elements_below_column():
    payload = [
        _raw_alternative(
            layout_id,
            orientation="vertical",
            cta={"x": 600, "y": 300, "max_width": 300, "align": "left"},
        )
        for layout_id in "ABC"
    ]
    engine = LayoutEngine(_oracle(return_value=payload), timeout=5)

    layouts = await engine.get_layouts(b"image", 1024, 1024, False, False, SHORT_HEADLINE)

    for layout in layouts:
        assert layout.orientation == "vertical"
        assert _assert_column_clear(layout, 1024, 1024, SHORT_HEADLINE) == round(1024 / 16)
