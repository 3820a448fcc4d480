"""
PillowRasterBackend 단위 테스트

검증 항목:
- 폰트 경로 누락/파일 없음 시 RasterBackendError
- 텍스트 폭/줄 간격 측정
- 텍스트 그리기 후 픽셀 변화, 지우기 후 완전 투명
- premultiplied RGBA 출력 (색상 ≤ 알파)
- 그림자 거리 0, 불투명도 0이면 흰색 본문만 출력
- 블러 적용 시 그림자 번짐
"""

from __future__ import annotations

import numpy as np
import pytest
from PIL import ImageFont

from conftest import make_config
from subcast.compositor.frame_compositor import FrameCompositor, PixelBuffer
from subcast.compositor.raster_backend import (
    Paint,
    PillowRasterBackend,
    RasterBackendError,
    load_font,
)
from subcast.subtitle import Cue


# =============================================================================
# 테스트 헬퍼
# =============================================================================

WIDTH = 160
HEIGHT = 60


def _default_font(size: float = 32) -> ImageFont.FreeTypeFont:
    """Pillow 내장 FreeType 기본 폰트를 로드합니다."""
    font = ImageFont.load_default(size=size)
    if not isinstance(font, ImageFont.FreeTypeFont):
        pytest.skip("FreeType 지원 없이 빌드된 Pillow")
    return font


def _make_backend() -> PillowRasterBackend:
    return PillowRasterBackend(WIDTH, HEIGHT, _default_font())


def _read(backend: PillowRasterBackend) -> np.ndarray:
    buffer = bytearray(backend.width * backend.height * 4)
    assert backend.read_pixels(buffer) is True
    return np.frombuffer(buffer, dtype=np.uint8).reshape(backend.height, backend.width, 4)


# =============================================================================
# 폰트 로드 테스트
# =============================================================================

def test_load_font_empty_path_raises():
    with pytest.raises(RasterBackendError):
        load_font("", 32.0)


def test_load_font_missing_file_raises(tmp_path):
    with pytest.raises(RasterBackendError):
        load_font(str(tmp_path / "missing.ttf"), 32.0)


def test_load_font_invalid_file_raises(tmp_path):
    bogus = tmp_path / "bogus.ttf"
    bogus.write_bytes(b"not a font")

    with pytest.raises(RasterBackendError):
        load_font(str(bogus), 32.0)


def test_from_font_path_propagates_font_error(tmp_path):
    with pytest.raises(RasterBackendError):
        PillowRasterBackend.from_font_path(WIDTH, HEIGHT, str(tmp_path / "none.ttf"), 32.0)


# =============================================================================
# 측정 테스트
# =============================================================================

def test_measure_text_grows_with_length():
    backend = _make_backend()

    short = backend.measure_text("Hi")
    long = backend.measure_text("Hi there")

    assert 0 < short < long
    assert backend.measure_text("") == 0


def test_line_spacing_is_positive():
    backend = _make_backend()

    assert backend.line_spacing() > 0


# =============================================================================
# 그리기 / 읽기 테스트
# =============================================================================

def test_new_surface_is_transparent():
    pixels = _read(_make_backend())

    assert not pixels.any()


def test_draw_text_changes_pixels_and_clear_resets():
    backend = _make_backend()

    backend.draw_text("HELLO", 10.0, 40.0, Paint())
    assert _read(backend)[:, :, 3].max() == 255

    backend.clear()
    assert not _read(backend).any()


def test_text_is_anchored_at_baseline():
    """글리프가 베이스라인(y) 위쪽에 그려지는지 확인합니다."""
    backend = _make_backend()

    backend.draw_text("HELLO", 10.0, 40.0, Paint())

    alpha = _read(backend)[:, :, 3]
    rows = np.nonzero(alpha.any(axis=1))[0]
    assert rows.max() <= 41
    assert rows.min() < 40


def test_read_pixels_is_premultiplied():
    """반투명 흰색은 premultiplied이므로 색상값이 알파를 넘지 않습니다."""
    backend = _make_backend()

    backend.draw_text("HELLO", 10.0, 40.0, Paint(opacity=0.5))
    pixels = _read(backend).astype(int)

    assert pixels[:, :, 3].max() == 127
    assert (pixels[:, :, :3] <= pixels[:, :, 3:4]).all()


def test_read_pixels_wrong_size_returns_false():
    backend = _make_backend()
    buffer = bytearray(10)

    assert backend.read_pixels(buffer) is False
    assert buffer == bytearray(10)


def test_blurred_draw_spreads_coverage():
    sharp = _make_backend()
    blurred = _make_backend()

    sharp.draw_text("HELLO", 10.0, 40.0, Paint(color=(0, 0, 0)))
    blurred.draw_text("HELLO", 10.0, 40.0, Paint(color=(0, 0, 0), blur_sigma=3.0))

    sharp_count = np.count_nonzero(_read(sharp)[:, :, 3])
    blurred_count = np.count_nonzero(_read(blurred)[:, :, 3])
    assert blurred_count > sharp_count


# =============================================================================
# 컴포지터 연동 테스트
# =============================================================================

def _render_with_pillow(**shadow) -> np.ndarray:
    config = make_config(
        video={"width": WIDTH, "height": HEIGHT},
        subtitle={"baseline": 45},
        shadow=shadow,
    )
    backend = PillowRasterBackend(WIDTH, HEIGHT, _default_font())
    buffer = PixelBuffer(WIDTH, HEIGHT)
    compositor = FrameCompositor(config, backend, buffer)
    compositor.render(Cue(start=0, end=1000, lines=("HELLO",)), 0)
    assert backend.read_pixels(buffer.data) is True
    return buffer.as_array().astype(int)


def test_no_shadow_outputs_only_white_coverage():
    """그림자 거리 0, 불투명도 0이면 흰색 본문 커버리지만 남습니다."""
    pixels = _render_with_pillow(distance=0.0, opacity=0.0, blur=8.0)

    alpha = pixels[:, :, 3]
    assert alpha.max() == 255
    # premultiplied 흰색: R = G = B = A (반올림 오차 1 허용)
    for channel in range(3):
        assert (np.abs(pixels[:, :, channel] - alpha) <= 1).all()


def test_shadow_adds_dark_coverage():
    pixels = _render_with_pillow(distance=4.0, opacity=1.0, angle=45.0)

    alpha = pixels[:, :, 3]
    # 그림자 영역은 불투명하지만 색상값이 알파보다 작음 (검은색)
    dark = (alpha > 0) & (pixels[:, :, 0] < alpha)
    assert dark.any()
