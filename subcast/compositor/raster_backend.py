"""
래스터화 백엔드 모듈입니다.

역할:
- 컴포지터가 사용하는 최소 그리기 인터페이스(RasterBackend) 정의
  (캔버스 지우기, 줄 간격/텍스트 폭 측정, 텍스트 그리기, 픽셀 읽기)
- Pillow 기반 구현체(PillowRasterBackend) 제공
- 폰트 로드 실패 시 RasterBackendError 발생 (시작 전 치명적 오류)

좌표계:
    draw_text()의 (x, y)는 텍스트의 왼쪽 베이스라인 원점입니다.

사용 예시:
    >>> font = load_font("/fonts/NotoSans.ttf", 60.0)
    >>> backend = PillowRasterBackend(1920, 1080, font)
    >>> backend.draw_text("HELLO", 100.0, 1026.0, Paint())
    >>> backend.read_pixels(buffer)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from PIL import Image, ImageDraw, ImageFilter, ImageFont

logger = logging.getLogger(__name__)


class RasterBackendError(Exception):
    """폰트 로드나 그리기 표면 생성에 실패했을 때 발생하는 에러입니다."""
    pass


@dataclass(frozen=True)
class Paint:
    """
    텍스트 그리기 스타일입니다.

    필드:
        color: RGB 색상 (0~255)
        opacity: 불투명도 (0.0~1.0)
        anti_alias: 안티앨리어싱 사용 여부
        blur_sigma: 가우시안 블러 표준편차 (0이면 블러 없음)
    """
    color: tuple[int, int, int] = (255, 255, 255)
    opacity: float = 1.0
    anti_alias: bool = True
    blur_sigma: float = 0.0

    @property
    def alpha(self) -> int:
        """opacity를 0~255 알파값으로 변환합니다 (소수점 버림)."""
        return int(max(0.0, min(1.0, self.opacity)) * 255.0)


class RasterBackend(Protocol):
    """
    컴포지터가 소비하는 래스터화 기능 인터페이스입니다.

    테스트에서는 호출만 기록하는 가짜 구현체로 대체할 수 있습니다.
    """

    width: int
    height: int

    def clear(self) -> None:
        """캔버스 전체를 완전 투명으로 지웁니다."""
        ...

    def line_spacing(self) -> float:
        """폰트가 권장하는 줄 간격(픽셀)을 반환합니다."""
        ...

    def measure_text(self, text: str) -> float:
        """텍스트의 가로 폭(픽셀)을 반환합니다."""
        ...

    def draw_text(self, text: str, x: float, y: float, paint: Paint) -> None:
        """텍스트를 베이스라인 원점 (x, y)에 paint로 그립니다."""
        ...

    def read_pixels(self, buffer: bytearray) -> bool:
        """캔버스를 premultiplied RGBA로 buffer에 복사합니다. 실패 시 False."""
        ...


def load_font(font_path: str, font_size: float) -> ImageFont.FreeTypeFont:
    """
    TrueType/OpenType 폰트 파일을 로드합니다.

    파라미터:
        font_path: 폰트 파일 경로
        font_size: 폰트 크기 (픽셀)

    반환값:
        ImageFont.FreeTypeFont: 로드된 폰트

    에러:
        RasterBackendError: 경로가 비었거나 파일을 읽거나 해석할 수 없을 때
    """
    if not font_path:
        raise RasterBackendError("폰트 파일 경로가 지정되지 않았습니다")

    try:
        font = ImageFont.truetype(font_path, font_size)
    except (OSError, ValueError) as exc:
        raise RasterBackendError(f"폰트 로드 실패: {font_path}: {exc}") from exc

    logger.info(f"폰트 로드 완료: {font_path} (size={font_size})")
    return font


class PillowRasterBackend:
    """
    Pillow 기반 래스터화 백엔드입니다.

    RGBA 투명 이미지를 그리기 표면으로 사용합니다. 각 draw_text() 호출은
    별도의 투명 레이어에 그린 뒤(필요 시 블러 적용) 표면 위에 알파 합성하므로,
    먼저 그린 그림자가 나중에 그린 본문 뒤에 위치합니다.
    """

    def __init__(self, width: int, height: int, font: ImageFont.FreeTypeFont) -> None:
        """
        PillowRasterBackend를 초기화합니다.

        파라미터:
            width, height: 표면 크기 (픽셀)
            font: 텍스트 렌더링에 사용할 폰트

        에러:
            RasterBackendError: 표면을 생성할 수 없을 때
        """
        self.width = width
        self.height = height
        self._font = font

        try:
            self._surface = Image.new("RGBA", (width, height), (0, 0, 0, 0))
        except (ValueError, MemoryError) as exc:
            raise RasterBackendError(
                f"그리기 표면 생성 실패: {width}x{height}: {exc}"
            ) from exc

        logger.info(f"PillowRasterBackend 초기화 완료: {width}x{height}")

    @classmethod
    def from_font_path(
        cls,
        width: int,
        height: int,
        font_path: str,
        font_size: float,
    ) -> PillowRasterBackend:
        """폰트 파일 경로로부터 백엔드를 생성합니다."""
        return cls(width, height, load_font(font_path, font_size))

    def clear(self) -> None:
        self._surface.paste((0, 0, 0, 0), (0, 0, self.width, self.height))

    def line_spacing(self) -> float:
        ascent, descent = self._font.getmetrics()
        return float(ascent + descent)

    def measure_text(self, text: str) -> float:
        return float(self._font.getlength(text))

    def draw_text(self, text: str, x: float, y: float, paint: Paint) -> None:
        # 블러 시 가장자리 색이 어두워지지 않도록 레이어 색을 미리 채움
        layer = Image.new("RGBA", self._surface.size, paint.color + (0,))
        draw = ImageDraw.Draw(layer)
        if not paint.anti_alias:
            draw.fontmode = "1"
        draw.text(
            (x, y),
            text,
            font=self._font,
            fill=paint.color + (paint.alpha,),
            anchor="ls",
        )

        if paint.blur_sigma > 0:
            # Pillow의 GaussianBlur radius는 표준편차로 해석됨
            layer = layer.filter(ImageFilter.GaussianBlur(radius=paint.blur_sigma))

        self._surface.alpha_composite(layer)

    def read_pixels(self, buffer: bytearray) -> bool:
        """
        표면을 premultiplied RGBA(Pillow "RGBa")로 변환하여 buffer에 복사합니다.

        파라미터:
            buffer: width * height * 4 바이트 크기의 버퍼

        반환값:
            bool: 복사 성공 시 True. 크기가 맞지 않거나 변환 실패 시 False
                (buffer는 변경되지 않음)
        """
        try:
            data = self._surface.convert("RGBa").tobytes()
        except (ValueError, OSError) as exc:
            logger.debug(f"픽셀 변환 실패: {exc}")
            return False

        if len(data) != len(buffer):
            logger.debug(
                f"픽셀 버퍼 크기 불일치: expected={len(data)}, actual={len(buffer)}"
            )
            return False

        buffer[:] = data
        return True
