from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from PIL import ImageFont

from jp_compositor.config import get_settings


@dataclass(frozen=True)
class JapaneseFont:
    id: str
    name_ja: str
    family: str
    category: str
    files: tuple[str, ...]


# 브랜드 설정에서 선택 가능한 일본어 폰트 (모두 Google Fonts 오픈소스)
JAPANESE_FONTS: tuple[JapaneseFont, ...] = (
    JapaneseFont("noto_sans_jp", "Noto Sans JP", "Noto Sans JP", "gothic",
                 ("NotoSansJP-Bold.ttf", "NotoSansJP-Regular.ttf", "NotoSansJP-VariableFont_wght.ttf")),
    JapaneseFont("noto_serif_jp", "Noto Serif JP", "Noto Serif JP", "mincho",
                 ("NotoSerifJP-Bold.otf", "NotoSerifJP-Regular.otf", "NotoSerifJP-VariableFont_wght.ttf")),
    JapaneseFont("m_plus_rounded_1c", "M PLUS Rounded 1c", "M PLUS Rounded 1c", "rounded",
                 ("MPLUSRounded1c-Bold.ttf", "MPLUSRounded1c-Regular.ttf")),
    JapaneseFont("m_plus_1p", "M PLUS 1p", "M PLUS 1p", "gothic",
                 ("MPLUS1p-Bold.ttf", "MPLUS1p-Regular.ttf")),
    JapaneseFont("sawarabi_gothic", "さわらびゴシック", "Sawarabi Gothic", "gothic",
                 ("SawarabiGothic-Regular.ttf",)),
    JapaneseFont("sawarabi_mincho", "さわらび明朝", "Sawarabi Mincho", "mincho",
                 ("SawarabiMincho-Regular.ttf",)),
    JapaneseFont("kosugi_maru", "小杉丸ゴシック", "Kosugi Maru", "rounded",
                 ("KosugiMaru-Regular.ttf",)),
)

DEFAULT_FONT_FAMILY = "Noto Sans JP"

# 헤드라인 글자 크기 = 이미지 너비 / 16
HEADLINE_SIZE_DIVISOR = 16


def get_font(font_id_or_family: str) -> JapaneseFont | None:
    key = font_id_or_family.strip().lower()
    for font in JAPANESE_FONTS:
        if key in (font.id, font.family.lower()):
            return font
    return None


def resolve_font_family(font_id: str | None) -> str:
    """브랜드 폰트 ID를 폰트 패밀리 이름으로 변환합니다.

    미등록 ID는 DEFAULT_FONT_ID 설정의 폰트, 그것도 미등록이면 Noto Sans JP.
    """
    font = get_font(font_id) if font_id else None
    if font is None:
        font = get_font(get_settings().default_font_id)
    return font.family if font else DEFAULT_FONT_FAMILY


def headline_font_size(image_width: int) -> int:
    return round(image_width / HEADLINE_SIZE_DIVISOR)


def load_font(font_family: str, size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """일본어 폰트를 로드합니다. 폰트 파일이 없으면 Pillow 기본 폰트로 fallback."""
    font_dir = Path(get_settings().font_dir)
    font = get_font(font_family) or get_font(DEFAULT_FONT_FAMILY)
    for file_name in font.files:
        font_path = font_dir / file_name
        if font_path.exists():
            return ImageFont.truetype(str(font_path), size=size)
    # Fallback: 일본어 글리프가 깨질 수 있음. font_dir 에 폰트 파일을 추가하세요
    return ImageFont.load_default(size=size)
