"""
단위 테스트 공용 픽스처

- FakeRasterBackend: 실제 픽셀 대신 호출만 기록하는 래스터화 백엔드
"""

from __future__ import annotations

import pytest

from subcast.compositor.raster_backend import Paint
from subcast.config.schema import AppConfig


class FakeRasterBackend:
    """
    호출을 기록하는 가짜 래스터화 백엔드입니다.

    텍스트 폭은 글자 수 × char_width로 계산합니다. read_pixels()는
    마지막 clear 이후 그린 것이 있으면 버퍼를 0xFF로, 없으면 0으로 채웁니다.
    """

    def __init__(
        self,
        width: int = 64,
        height: int = 32,
        spacing: float = 20.0,
        char_width: float = 10.0,
    ) -> None:
        self.width = width
        self.height = height
        self.spacing = spacing
        self.char_width = char_width
        self.calls: list[tuple] = []
        self.fail_reads = False
        self._has_content = False

    @property
    def draw_calls(self) -> list[tuple]:
        return [c for c in self.calls if c[0] == "draw_text"]

    @property
    def clear_count(self) -> int:
        return sum(1 for c in self.calls if c[0] == "clear")

    @property
    def read_count(self) -> int:
        return sum(1 for c in self.calls if c[0] == "read_pixels")

    def clear(self) -> None:
        self.calls.append(("clear",))
        self._has_content = False

    def line_spacing(self) -> float:
        return self.spacing

    def measure_text(self, text: str) -> float:
        return len(text) * self.char_width

    def draw_text(self, text: str, x: float, y: float, paint: Paint) -> None:
        self.calls.append(("draw_text", text, x, y, paint))
        self._has_content = True

    def read_pixels(self, buffer: bytearray) -> bool:
        self.calls.append(("read_pixels",))
        if self.fail_reads:
            return False
        fill = 0xFF if self._has_content else 0x00
        buffer[:] = bytes([fill]) * len(buffer)
        return True


def make_config(**sections) -> AppConfig:
    """테스트용 AppConfig를 생성합니다 (작은 프레임 크기)."""
    raw = {
        "video": {"fps": 25, "width": 64, "height": 32},
        "subtitle": {"baseline": 28, "line_height": 1.0, "font": {"path": "unused.ttf"}},
        "shadow": {"angle": 45.0, "distance": 0.0, "blur": 0.0, "opacity": 0.0},
    }
    for name, values in sections.items():
        raw.setdefault(name, {}).update(values)
    return AppConfig(**raw)


@pytest.fixture
def fake_backend() -> FakeRasterBackend:
    return FakeRasterBackend()
