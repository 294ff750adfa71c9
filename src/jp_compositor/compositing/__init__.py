from .contrast import analyze_region, select_text_color, select_treatment
from .fonts import JAPANESE_FONTS, load_font, resolve_font_family
from .kinsoku import LineBreaker, build_line_breaker, find_kinsoku_violations
from .logo import LogoOverlay, place_logo
from .segmenter import BudouxSegmenter, HeuristicSegmenter, PhraseSegmenter, build_segmenter
from .text_renderer import TextElement, render_cta, render_text
from .vertical_text import is_vertical_eligible, render_vertical

__all__ = [
    "PhraseSegmenter",
    "BudouxSegmenter",
    "HeuristicSegmenter",
    "build_segmenter",
    "LineBreaker",
    "build_line_breaker",
    "find_kinsoku_violations",
    "analyze_region",
    "select_treatment",
    "select_text_color",
    "JAPANESE_FONTS",
    "load_font",
    "resolve_font_family",
    "TextElement",
    "render_text",
    "render_cta",
    "is_vertical_eligible",
    "render_vertical",
    "LogoOverlay",
    "place_logo",
]
