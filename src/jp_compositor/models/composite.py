from pydantic import BaseModel, ConfigDict, Field, model_validator

from .layout import Orientation
from .typography import ContrastTreatment


class BaseImage(BaseModel):
    """합성 대상 베이스 이미지. image_bytes 또는 url 중 하나는 필수입니다."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="베이스 이미지 자산 식별자")
    width: int = Field(gt=0)
    height: int = Field(gt=0)
    image_bytes: bytes | None = None
    url: str | None = None

    @model_validator(mode="after")
    def _require_source(self) -> "BaseImage":
        if self.image_bytes is None and not self.url:
            raise ValueError("BaseImage requires image_bytes or url")
        return self


class AdCopy(BaseModel):
    model_config = ConfigDict(frozen=True)

    headline: str = Field(description="헤드라인 (キャッチコピー)")
    body_text: str = Field(default="", description="본문 — 30자 이하일 때만 태그라인으로 사용")
    cta_text: str = Field(description="행동 유도 문구 (CTA)")


class BrandColors(BaseModel):
    model_config = ConfigDict(frozen=True)

    primary: str = "#333333"
    secondary: str = "#666666"
    accent: str = "#E63946"
    background: str = "#FFFFFF"


class BrandKit(BaseModel):
    """전체 합성 과정에서 읽기 전용으로 공유되는 브랜드 자산."""

    model_config = ConfigDict(frozen=True)

    font_id: str = "noto_sans_jp"
    colors: BrandColors = Field(default_factory=BrandColors)
    logo_bytes: bytes | None = None
    logo_url: str | None = None


class PlacedText(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    x: int
    y: int
    font_size: int
    lines: list[str] = Field(default_factory=list)


class PlacedLogo(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: int
    y: int
    width: int


class LayoutMetadata(BaseModel):
    """합성 결과 1장마다 생성되는 메타데이터 (재렌더링·카탈로그용)."""

    model_config = ConfigDict(frozen=True)

    layout_id: str
    orientation: Orientation
    headline: PlacedText
    tagline: PlacedText | None = None
    cta: PlacedText
    logo: PlacedLogo | None = None
    treatment: ContrastTreatment
    text_color: str
    font_family: str
    brand_colors: dict[str, str]
    base_image_id: str


class CompositeOutput(BaseModel):
    model_config = ConfigDict(frozen=True)

    layout_id: str
    image_bytes: bytes = Field(repr=False)
    metadata: LayoutMetadata


class CompositingResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    base_image_id: str
    composites: list[CompositeOutput] = Field(default_factory=list)
