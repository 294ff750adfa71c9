from .composite import (
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
from .layout import (
    Align,
    ContrastZone,
    LayoutAlternative,
    LogoPosition,
    Orientation,
    Rect,
    TextPlacement,
)
from .typography import (
    BackdropTreatment,
    ContrastTreatment,
    LineBreakResult,
    RegionStats,
    ShadowTreatment,
    StrokeTreatment,
)

__all__ = [
    "Align",
    "Orientation",
    "Rect",
    "TextPlacement",
    "ContrastZone",
    "LogoPosition",
    "LayoutAlternative",
    "LineBreakResult",
    "RegionStats",
    "BackdropTreatment",
    "StrokeTreatment",
    "ShadowTreatment",
    "ContrastTreatment",
    "BaseImage",
    "AdCopy",
    "BrandColors",
    "BrandKit",
    "PlacedText",
    "PlacedLogo",
    "LayoutMetadata",
    "CompositeOutput",
    "CompositingResult",
]
