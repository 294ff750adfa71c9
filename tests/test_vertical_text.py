"""세로쓰기 판정·렌더링 테스트"""
import math

import pytest

from jp_compositor.compositing.vertical_text import (
    MIN_VERTICAL_FONT_SIZE,
    SLOT_HEIGHT_RATIO,
    fit_vertical_font_size,
    is_vertical_eligible,
    render_vertical,
    vertical_column_height,
)
from jp_compositor.models.typography import (
    BackdropTreatment,
    ShadowTreatment,
    StrokeTreatment,
)

TWELVE_CJK = "新春大感謝祭開催中今だけ"


def _eligible(text: str, aspect: float = 1.0) -> bool:
    return is_vertical_eligible(len(text), text, aspect)


def test_twelve_cjk_characters_are_eligible():
    assert len(TWELVE_CJK) == 12
    assert _eligible(TWELVE_CJK)


def test_thirteen_characters_are_not_eligible():
    assert not _eligible(TWELVE_CJK + "も")


def test_seventy_percent_cjk_is_not_enough():
    text = "あいうえおかきABC"
    assert len(text) == 10
    assert not _eligible(text)


def test_just_over_seventy_percent_cjk_is_eligible():
    text = "あいうえおAB"  # 5/7 ≈ 71%
    assert _eligible(text)


@pytest.mark.parametrize("aspect, expected", [(1.0, True), (1.5, True), (1.51, False)])
def test_wide_banner_is_not_eligible(aspect, expected):
    assert _eligible("新春セール", aspect) is expected


def test_empty_text_is_not_eligible():
    assert not _eligible("")


def test_column_size_follows_slot_height():
    overlay = render_vertical("新春SALE", 40, "Noto Sans JP", "#FFFFFF", ShadowTreatment())

    assert overlay.mode == "RGBA"
    assert overlay.size == (80, math.ceil(6 * 40 * SLOT_HEIGHT_RATIO + 40))
    assert overlay.getbbox() is not None


def test_backdrop_spans_whole_column():
    overlay = render_vertical("新春", 40, "Noto Sans JP", "#FFFFFF", BackdropTreatment(opacity=0.6))

    # 위쪽 여백은 글자 없이 backdrop만 존재
    assert overlay.getpixel((40, 5))[3] == 153
    assert overlay.getpixel((40, overlay.height - 5))[3] == 153


def test_stroke_treatment_renders():
    overlay = render_vertical(
        "セール2", 32, "Noto Sans JP", "#1A1A1A", StrokeTreatment(color=(255, 255, 255, 77))
    )
    assert overlay.getbbox() is not None


def test_fit_vertical_font_size_shrinks_long_column():
    """12자 × 64px 열(962px)은 600px 공간에 맞게 줄어듭니다."""
    assert vertical_column_height(12, 64) == 962
    font_size = fit_vertical_font_size(12, 64, 600)
    assert font_size == 38
    assert vertical_column_height(12, font_size) <= 600


def test_fit_vertical_font_size_keeps_size_when_column_fits():
    assert fit_vertical_font_size(6, 64, 1000) == 64


def test_fit_vertical_font_size_has_a_floor():
    assert fit_vertical_font_size(12, 64, 50) == MIN_VERTICAL_FONT_SIZE
