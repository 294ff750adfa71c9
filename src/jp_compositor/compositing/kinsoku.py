"""금칙 처리(禁則処理) 줄바꿈 엔진

1) 문절 분할기로 의미 단위 문절을 나눕니다 (예: "新春セール開催中！"은 한 덩어리)
2) max_width를 넘지 않도록 문절을 줄에 채웁니다 (한 문절이 너무 길면 글자 단위로 분할)
3) 줄 경계의 금칙 문자를 앞뒤 줄로 옮깁니다 — 연쇄 이동은 최대 3회로 제한

폭이 한 글자보다 좁은 극단적인 경우 3회 제한 때문에 금칙 위반이 남을 수 있습니다.
무한 루프 대신 이 근사를 택합니다.
"""
from __future__ import annotations

import logging

from jp_compositor.compositing.kinsoku_chars import NOT_AT_LINE_END, NOT_AT_LINE_START
from jp_compositor.compositing.segmenter import PhraseSegmenter, build_segmenter
from jp_compositor.config import Settings
from jp_compositor.models.layout import Orientation
from jp_compositor.models.typography import LineBreakResult

logger = logging.getLogger(__name__)

MAX_KINSOKU_ITERATIONS = 3

# 전각(1em)으로 계산하는 코드 포인트 범위
_FULL_WIDTH_RANGES = (
    (0x4E00, 0x9FFF),  # CJK Unified Ideographs
    (0x3400, 0x4DBF),  # CJK Extension A
    (0x3040, 0x309F),  # Hiragana
    (0x30A0, 0x30FF),  # Katakana
    (0xFF00, 0xFFEF),  # Halfwidth and Fullwidth Forms
    (0x3000, 0x303F),  # CJK Symbols and Punctuation
    (0xF900, 0xFAFF),  # CJK Compatibility Ideographs
)


def is_full_width(char: str) -> bool:
    code = ord(char)
    return any(start <= code <= end for start, end in _FULL_WIDTH_RANGES)


def estimate_text_width(text: str, font_size: float) -> float:
    """문자 종류로 렌더링 폭을 추정합니다. 전각 1em, 그 외 0.5em."""
    return sum(font_size if is_full_width(char) else font_size * 0.5 for char in text)


def find_kinsoku_violations(lines: list[str]) -> list[int]:
    """금칙 위반이 있는 줄 경계 인덱스 목록 (i = lines[i]와 lines[i+1] 사이)."""
    violations = []
    for i in range(len(lines) - 1):
        current, following = lines[i], lines[i + 1]
        if (current and current[-1] in NOT_AT_LINE_END) or (
            following and following[0] in NOT_AT_LINE_START
        ):
            violations.append(i)
    return violations


class LineBreaker:
    def __init__(self, segmenter: PhraseSegmenter):
        self.segmenter = segmenter

    def break_text(
        self,
        text: str,
        max_width_px: float,
        font_size_px: float,
        orientation: Orientation = "horizontal",
    ) -> LineBreakResult:
        """일본어 텍스트를 max_width와 금칙 규칙에 맞춰 줄로 나눕니다.

        예외를 던지지 않으며, 결과 줄을 이어 붙이면 항상 원문과 같습니다.
        """
        if not text:
            return LineBreakResult(lines=[], orientation=orientation)

        phrases = self._segment(text)
        lines = _resolve_kinsoku(_assemble_lines(phrases, max_width_px, font_size_px))
        violations = find_kinsoku_violations(lines)
        if violations:
            logger.debug(
                "Kinsoku violations left at boundaries %s (max_width=%s): %r",
                violations, max_width_px, lines,
            )
        return LineBreakResult(lines=lines, orientation=orientation)

    def _segment(self, text: str) -> list[str]:
        try:
            phrases = self.segmenter.segment(text)
        except Exception as e:
            logger.warning("Phrase segmentation failed, splitting per character: %s", e)
            return list(text)
        if "".join(phrases) != text:
            logger.warning("Segmenter output is not lossless, splitting per character")
            return list(text)
        return phrases


def _assemble_lines(phrases: list[str], max_width: float, font_size: float) -> list[str]:
    """문절을 줄에 채웁니다. 한 줄보다 긴 문절은 글자 단위로 나눕니다."""
    lines: list[str] = []
    current = ""

    for phrase in phrases:
        if estimate_text_width(current + phrase, font_size) <= max_width:
            current += phrase
            continue

        if current:
            lines.append(current)
            current = ""

        if estimate_text_width(phrase, font_size) <= max_width:
            current = phrase
            continue

        # 줄의 첫 글자는 폭과 무관하게 항상 배치
        for char in phrase:
            if current and estimate_text_width(current + char, font_size) > max_width:
                lines.append(current)
                current = char
            else:
                current += char

    if current:
        lines.append(current)
    return lines


def _resolve_kinsoku(lines: list[str]) -> list[str]:
    """줄 경계의 금칙 문자를 옮깁니다.

    - 줄 끝 문자가 행말 금칙이면 다음 줄 앞으로 밀어냄 (追い出し)
    - 다음 줄 첫 문자가 행두 금칙이면 현재 줄 끝으로 당겨옴 (追い込み)
    """
    if len(lines) <= 1:
        return lines

    result = list(lines)
    for _ in range(MAX_KINSOKU_ITERATIONS):
        changed = False
        for i in range(len(result) - 1):
            current, following = result[i], result[i + 1]
            if not current or not following:
                continue

            if current[-1] in NOT_AT_LINE_END:
                result[i] = current[:-1]
                result[i + 1] = current[-1] + following
                changed = True
                continue

            if following[0] in NOT_AT_LINE_START:
                result[i] = current + following[0]
                result[i + 1] = following[1:]
                changed = True

        result = [line for line in result if line]
        if not changed:
            break

    return result


def build_line_breaker(settings: Settings | None = None) -> LineBreaker:
    return LineBreaker(build_segmenter(settings))
