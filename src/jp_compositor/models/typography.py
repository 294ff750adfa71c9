from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from .layout import Orientation


class LineBreakResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    lines: list[str]
    orientation: Orientation = "horizontal"


class RegionStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    luminance: float = Field(ge=0.0, le=1.0, description="WCAG 상대 휘도 (0~1)")
    variance: float = Field(ge=0.0, description="RGB 채널 표준편차 평균")


class BackdropTreatment(BaseModel):
    """복잡한 배경: 텍스트 블록 전체에 반투명 배경을 깝니다."""

    model_config = ConfigDict(frozen=True)

    type: Literal["backdrop"] = "backdrop"
    opacity: float = Field(default=0.6, ge=0.0, le=1.0)


class StrokeTreatment(BaseModel):
    """단순한 배경 + 극단적 밝기: 외곽선만으로 충분합니다."""

    model_config = ConfigDict(frozen=True)

    type: Literal["stroke"] = "stroke"
    color: tuple[int, int, int, int]
    width: int = 2


class ShadowTreatment(BaseModel):
    """중간 복잡도 배경: 드롭 섀도우."""

    model_config = ConfigDict(frozen=True)

    type: Literal["shadow"] = "shadow"
    offset: int = 2
    blur: int = 4


ContrastTreatment = Annotated[
    Union[BackdropTreatment, StrokeTreatment, ShadowTreatment],
    Field(discriminator="type"),
]
