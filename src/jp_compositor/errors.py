"""합성 파이프라인 예외 계층

- LayoutOracleError: 레이아웃 Oracle 응답 없음/형식 오류 → 엔진 내부에서 기본 레이아웃으로 복구
- ImageFetchError: 베이스 이미지 다운로드·디코딩 실패 → 해당 이미지만 제외
- ImageCompositingError: 한 이미지의 3개 레이아웃이 모두 실패 → 해당 이미지만 제외
- TotalCompositingError: 모든 이미지 실패 → 호출자에게 전달되는 유일한 예외
"""
from __future__ import annotations


class CompositingError(RuntimeError):
    """합성 파이프라인의 기본 예외."""


class LayoutOracleError(CompositingError):
    """Oracle이 빈 응답이나 형식이 맞지 않는 레이아웃을 반환했습니다."""


class ImageFetchError(CompositingError):
    def __init__(self, base_image_id: str, reason: str):
        super().__init__(f"Failed to load base image {base_image_id}: {reason}")
        self.base_image_id = base_image_id


class ImageCompositingError(CompositingError):
    def __init__(self, base_image_id: str, reason: str):
        super().__init__(f"All layouts failed for base image {base_image_id}: {reason}")
        self.base_image_id = base_image_id


class TotalCompositingError(CompositingError):
    def __init__(self, errors: list[BaseException]):
        self.errors = errors
        self.first_error = errors[0] if errors else None
        super().__init__(
            f"All {len(errors)} image(s) failed compositing. "
            f"First error: {self.first_error}"
        )
