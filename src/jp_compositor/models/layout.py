from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

Align = Literal["left", "center", "right"]
Orientation = Literal["horizontal", "vertical"]


class Rect(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: int = Field(description="좌측 상단 x 좌표 (px)")
    y: int = Field(description="좌측 상단 y 좌표 (px)")
    width: int = Field(description="너비 (px)")
    height: int = Field(description="높이 (px)")

    @field_validator("x", "y", "width", "height", mode="before")
    @classmethod
    def _round_pixels(cls, value):
        return round(value) if isinstance(value, float) else value


class TextPlacement(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: int = Field(description="텍스트 블록 좌측 x 좌표 (px)")
    y: int = Field(description="텍스트 블록 상단 y 좌표 (px)")
    max_width: int = Field(
        validation_alias=AliasChoices("max_width", "maxWidth"),
        description="최대 줄 너비 (px)",
    )
    align: Align = Field(default="left", description="max_width 내 정렬")

    @field_validator("x", "y", "max_width", mode="before")
    @classmethod
    def _round_pixels(cls, value):
        # Vision 모델이 소수점 좌표를 반환하는 경우
        return round(value) if isinstance(value, float) else value


class ContrastZone(BaseModel):
    """Oracle이 참고용으로 제공하는 영역별 밝기 판정 (실제 처리는 대비 분석기가 결정)."""

    model_config = ConfigDict(frozen=True)

    region: Rect
    brightness: Literal["light", "dark", "mixed"]


class LogoPosition(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: int
    y: int


class LayoutAlternative(BaseModel):
    """이미지 1장당 3개씩 생성되는 텍스트·로고 배치안."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="배치안 식별자: 'A' | 'B' | 'C'")
    headline: TextPlacement
    tagline: TextPlacement | None = None
    cta: TextPlacement
    logo: LogoPosition | None = None
    orientation: Orientation = "horizontal"
    contrast_zones: list[ContrastZone] = Field(
        default_factory=list,
        validation_alias=AliasChoices("contrast_zones", "contrastZones"),
    )
