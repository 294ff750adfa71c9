"""문절(文節) 분할기

줄바꿈 엔진은 `PhraseSegmenter.segment()`만 호출하므로
BudouX 모델이든 규칙 기반 휴리스틱이든 교체해서 사용할 수 있습니다.
"""
from __future__ import annotations

import logging
from typing import Protocol

import budoux

from jp_compositor.compositing.kinsoku_chars import NOT_AT_LINE_END, NOT_AT_LINE_START
from jp_compositor.config import Settings, get_settings

logger = logging.getLogger(__name__)

# 문절 끝을 나타내는 구두점 (뒤에서 끊음)
_PHRASE_END = frozenset("、。，．！？!?」』）〕】〉》")


class PhraseSegmenter(Protocol):
    def segment(self, text: str) -> list[str]:
        """text를 의미 단위 문절 목록으로 나눕니다. 이어 붙이면 원문과 같아야 합니다."""
        ...


class BudouxSegmenter:
    """BudouX 일본어 모델 기반 분할기. 파서는 인스턴스마다 한 번 로드합니다."""

    def __init__(self) -> None:
        self._parser = budoux.load_default_japanese_parser()

    def segment(self, text: str) -> list[str]:
        if not text:
            return []
        return self._parser.parse(text)


def _is_hiragana(char: str) -> bool:
    return "ぁ" <= char <= "ゟ"


class HeuristicSegmenter:
    """모델 없이 문자 종류 전환만으로 문절을 추정하는 분할기.

    - 구두점·닫는 괄호 뒤에서 끊음
    - 여는 괄호 앞에서 끊음
    - 히라가나(조사·어미) 다음에 한자/가타카나/영숫자가 시작되면 끊음
      예: 今だけの|特別価格で|お買い|求めいただけます
    """

    def segment(self, text: str) -> list[str]:
        phrases: list[str] = []
        current = ""
        for char in text:
            if current and self._is_boundary(current[-1], char):
                phrases.append(current)
                current = ""
            current += char
        if current:
            phrases.append(current)
        return phrases

    @staticmethod
    def _is_boundary(prev: str, char: str) -> bool:
        if char in NOT_AT_LINE_START:
            return False
        if char in NOT_AT_LINE_END:
            return True
        if prev in _PHRASE_END:
            return True
        return _is_hiragana(prev) and not _is_hiragana(char)


def build_segmenter(settings: Settings | None = None) -> PhraseSegmenter:
    settings = settings or get_settings()
    name = settings.segmenter.lower()
    if name == "heuristic":
        return HeuristicSegmenter()
    if name != "budoux":
        logger.warning("Unknown segmenter %r, using budoux", settings.segmenter)
    return BudouxSegmenter()
