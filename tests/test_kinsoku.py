"""금칙 처리 줄바꿈 테스트 — 무손실 분할, 금칙 위반 해소, 반복 상한"""
import pytest

from jp_compositor.compositing.kinsoku import (
    MAX_KINSOKU_ITERATIONS,
    LineBreaker,
    _resolve_kinsoku,
    estimate_text_width,
    find_kinsoku_violations,
)
from jp_compositor.compositing.segmenter import BudouxSegmenter, HeuristicSegmenter

SCENARIO_HEADLINE = "新春セール開催中！今だけの特別価格でお買い求めいただけます"

ADVERSARIAL_TEXTS = [
    SCENARIO_HEADLINE,
    "「（『！？」」」、。",
    "ーーーーーーーー",
    "あ。い、う！え？お」",
    "「「「「「「「「あ",
    "¥1,000（税込）！！",
    "Summer SALE 50%OFF！",
    "っっっっゃゃゃゅゅょ",
    "価格は1.5倍、送料は0円。",
    "a",
]

# 금칙 문자가 아닌 글자를 포함한 실제 광고 문구. 금칙 문자만으로 된 문자열
# ("「（『！？」」」、。", "っっっ…")은 위반 없이 나눌 방법이 없어 무손실만 보장합니다.
REALISTIC_TEXTS = [
    SCENARIO_HEADLINE,
    "価格は1.5倍、送料は0円。",
    "¥1,000（税込）！！",
    "今だけ「特別価格」で、お買い求め。",
]


@pytest.fixture
def breaker():
    return LineBreaker(HeuristicSegmenter())


def test_scenario_headline_breaks_into_multiple_clean_lines(breaker):
    """400px / 40px 폰트: 여러 줄로 나뉘고, 금칙 위반이 없고, 원문이 보존됩니다."""
    result = breaker.break_text(SCENARIO_HEADLINE, 400, 40)

    assert len(result.lines) > 1
    assert "".join(result.lines) == SCENARIO_HEADLINE
    assert find_kinsoku_violations(result.lines) == []
    assert result.lines == ["新春セール開催中！", "今だけの特別価格でお", "買い求めいただけます"]


def test_scenario_headline_with_budoux():
    result = LineBreaker(BudouxSegmenter()).break_text(SCENARIO_HEADLINE, 400, 40)

    assert len(result.lines) > 1
    assert "".join(result.lines) == SCENARIO_HEADLINE
    assert find_kinsoku_violations(result.lines) == []


@pytest.mark.parametrize("text", ADVERSARIAL_TEXTS)
@pytest.mark.parametrize("max_width", [1, 10, 40, 80, 120, 400])
def test_lines_always_concatenate_to_input(breaker, text, max_width):
    """폭이 한 글자보다 좁아도 종료하며 원문을 잃지 않습니다."""
    result = breaker.break_text(text, max_width, 40)

    assert "".join(result.lines) == text
    assert all(result.lines)


@pytest.mark.parametrize("segmenter_cls", [HeuristicSegmenter, BudouxSegmenter])
@pytest.mark.parametrize("text", REALISTIC_TEXTS)
@pytest.mark.parametrize("max_width", [120, 160, 200, 400])
def test_realistic_copy_has_no_kinsoku_violations(segmenter_cls, text, max_width):
    """한 줄에 3글자 이상 들어가는 폭에서는 금칙 위반이 남지 않습니다."""
    result = LineBreaker(segmenter_cls()).break_text(text, max_width, 40)

    assert "".join(result.lines) == text
    assert find_kinsoku_violations(result.lines) == []


def test_punctuation_is_pulled_onto_previous_line(breaker):
    """행두 금칙 문자(。)는 앞 줄 끝으로 당겨집니다."""
    result = breaker.break_text("今日は。明日も", 120, 40)
    assert result.lines == ["今日は。", "明日も"]


def test_pushforward_moves_opening_bracket_to_next_line():
    assert _resolve_kinsoku(["値段は「", "特価」です"]) == ["値段は", "「特価」です"]


def test_pullback_moves_exclamation_to_previous_line():
    assert _resolve_kinsoku(["セール開催中", "！今だけ"]) == ["セール開催中！", "今だけ"]


def test_iteration_cap_can_leave_residual_violation():
    """연쇄 이동이 3회를 넘으면 위반이 남더라도 멈춥니다."""
    lines = ["あ", "ー", "ー", "ー", "ー", "い"]
    result = _resolve_kinsoku(lines)

    assert MAX_KINSOKU_ITERATIONS == 3
    assert "".join(result) == "".join(lines)
    assert result == ["あーーー", "ー", "い"]
    assert find_kinsoku_violations(result) == [0]


def test_empty_text_returns_no_lines(breaker):
    result = breaker.break_text("", 400, 40, "vertical")
    assert result.lines == []
    assert result.orientation == "vertical"


def test_failing_segmenter_falls_back_to_characters():
    class BrokenSegmenter:
        def segment(self, text):
            raise RuntimeError("model unavailable")

    result = LineBreaker(BrokenSegmenter()).break_text("今だけの特別価格", 160, 40)

    assert "".join(result.lines) == "今だけの特別価格"
    assert result.lines == ["今だけの", "特別価格"]


def test_lossy_segmenter_output_is_ignored():
    class LossySegmenter:
        def segment(self, text):
            return [text[:-1]]

    result = LineBreaker(LossySegmenter()).break_text("新春セール", 400, 40)
    assert result.lines == ["新春セール"]


def test_estimate_text_width_counts_half_width_as_half_em():
    assert estimate_text_width("新春", 40) == 80
    assert estimate_text_width("AB", 40) == 40
    assert estimate_text_width("！", 40) == 40


def test_find_kinsoku_violations_reports_boundary_index():
    assert find_kinsoku_violations(["新春「", "セール"]) == [0]
    assert find_kinsoku_violations(["新春", "セール", "。"]) == [1]
    assert find_kinsoku_violations(["新春", "セール"]) == []
