"""
사용법:
  uv run python -m jp_compositor [이미지 경로 또는 URL ...]

예시 카피로 합성 파이프라인을 실행하는 CLI 진입점.
이미지를 지정하지 않으면 그라데이션 샘플 이미지를 생성해 사용합니다.
결과는 output/ 디렉토리에 PNG + JSON 메타데이터로 저장됩니다.
"""
import asyncio
import logging
import sys

from PIL import Image, ImageDraw

from jp_compositor.errors import TotalCompositingError
from jp_compositor.models.composite import AdCopy, BaseImage, BrandColors, BrandKit
from jp_compositor.pipeline import LocalDirectorySink, composite_images
from jp_compositor.utils.image_utils import decode_image, image_to_bytes, load_bytes

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

# ── 예시 입력값 (실제 사용 시 교체) ──────────────────────────
example_copy = AdCopy(
    headline="新春セール開催中！今だけの特別価格でお買い求めいただけます",
    body_text="人気アイテムが最大50%オフ",
    cta_text="今すぐチェック",
)
example_brand = BrandKit(
    font_id="noto_sans_jp",
    colors=BrandColors(primary="#1A1A2E", accent="#E94560"),
)


def _sample_image(width: int = 1024, height: int = 1024) -> bytes:
    """하늘색 → 남색 세로 그라데이션 샘플 이미지."""
    image = Image.new("RGB", (width, height))
    draw = ImageDraw.Draw(image)
    for y in range(height):
        t = y / height
        draw.line(
            [(0, y), (width, y)],
            fill=(round(135 - 110 * t), round(206 - 160 * t), round(235 - 120 * t)),
        )
    return image_to_bytes(image, "PNG")


async def _base_images(sources: list[str]) -> list[BaseImage]:
    if not sources:
        return [BaseImage(id="sample", width=1024, height=1024, image_bytes=_sample_image())]
    images = []
    for i, source in enumerate(sources, start=1):
        data = await load_bytes(source)
        width, height = decode_image(data).size
        images.append(BaseImage(id=f"image_{i}", width=width, height=height, image_bytes=data))
    return images


async def _print_progress(percent: int, message: str) -> None:
    print(f"  [{percent:3d}%] {message}")


async def main() -> None:
    base_images = await _base_images(sys.argv[1:])
    try:
        results = await composite_images(
            base_images,
            example_copy,
            example_brand,
            sink=LocalDirectorySink("output"),
            on_progress=_print_progress,
        )
    except TotalCompositingError as e:
        print(f"\n❌ 합성 실패: {e}")
        sys.exit(1)

    print(f"\n✓ 완료: {len(results)}/{len(base_images)}개 이미지 합성")
    for result in results:
        for composite in result.composites:
            meta = composite.metadata
            print(
                f"  {result.base_image_id} / {composite.layout_id}: "
                f"{meta.orientation}, {meta.treatment.type}, lines={meta.headline.lines}"
            )
    print("\n💾 결과가 output/ 에 저장되었습니다")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
