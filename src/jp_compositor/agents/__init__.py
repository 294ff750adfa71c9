from .layout_engine import (
    LayoutEngine,
    build_fallback_layouts,
    build_layout_engine,
    fixed_logo_position,
    validate_layout,
    vertical_headline_font_size,
)
from .layout_oracle import (
    ClaudeLayoutOracle,
    LayoutOracle,
    LayoutRequest,
    OpenAILayoutOracle,
    VarianceLayoutOracle,
    build_layout_oracle,
)

__all__ = [
    "LayoutEngine",
    "build_layout_engine",
    "validate_layout",
    "build_fallback_layouts",
    "fixed_logo_position",
    "vertical_headline_font_size",
    "LayoutOracle",
    "LayoutRequest",
    "ClaudeLayoutOracle",
    "OpenAILayoutOracle",
    "VarianceLayoutOracle",
    "build_layout_oracle",
]
