"""
프레임 컴포지터 모듈입니다.

역할:
- 현재 active 큐와 렌더 캐시 키를 비교하여 틱마다 렌더 동작 결정
  (REDRAW / PRE_START_CLEAR / IDLE_CLEAR / NO_OP)
- 큐의 줄을 아래에서 위로 배치하고 가로 중앙 정렬하여 그리기
- 그림자(오프셋, 불투명도, 블러)를 본문보다 먼저 그림
- 픽셀 버퍼 재읽기 필요 여부(dirty)를 PixelBuffer에 표시

사용 예시:
    >>> compositor = FrameCompositor(config, backend, pixel_buffer)
    >>> action = compositor.render(scheduler.active, clock.now_ms)
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from subcast.compositor import RenderAction, RenderStats
from subcast.compositor.raster_backend import Paint, RasterBackend
from subcast.config.schema import AppConfig
from subcast.subtitle import Cue

logger = logging.getLogger(__name__)

# 픽셀당 바이트 수 (premultiplied RGBA)
BYTES_PER_PIXEL = 4

# 본문 텍스트 색상
_FOREGROUND_COLOR = (255, 255, 255)
# 그림자 색상
_SHADOW_COLOR = (0, 0, 0)


class PixelBuffer:
    """
    틱 사이에 유지되는 출력 프레임 버퍼입니다.

    캔버스를 다시 그리거나 지운 틱에만 dirty로 표시되어 백엔드에서 다시
    읽어오며, 그 외 틱에는 이전 프레임 바이트를 그대로 재출력합니다.
    """

    def __init__(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        self.data = bytearray(width * height * BYTES_PER_PIXEL)
        self.dirty = False

    @property
    def frame_size(self) -> int:
        """프레임 한 장의 바이트 수를 반환합니다."""
        return len(self.data)

    def mark_dirty(self) -> None:
        self.dirty = True

    def as_array(self) -> np.ndarray:
        """버퍼를 (height, width, 4) uint8 배열 뷰로 반환합니다 (복사 없음)."""
        return np.frombuffer(self.data, dtype=np.uint8).reshape(
            self.height, self.width, BYTES_PER_PIXEL
        )


@dataclass(frozen=True)
class LinePlacement:
    """
    한 줄의 배치 결과입니다.

    필드:
        text: 줄 텍스트
        x: 왼쪽 베이스라인 원점의 x 좌표
        y: 베이스라인 y 좌표
    """
    text: str
    x: float
    y: float


class FrameCompositor:
    """
    active 큐를 캔버스에 반영하고 재그리기를 최소화하는 컴포지터입니다.

    렌더 캐시 키 (start, end)가 바뀐 경우에만 다시 그리므로, 같은 큐가
    유지되는 동안에는 백엔드의 그리기 경로가 호출되지 않습니다.
    """

    def __init__(
        self,
        config: AppConfig,
        backend: RasterBackend,
        pixel_buffer: PixelBuffer,
        stats: Optional[RenderStats] = None,
    ) -> None:
        """
        FrameCompositor를 초기화합니다.

        파라미터:
            config: 전체 애플리케이션 설정 객체
            backend: 래스터화 백엔드
            pixel_buffer: 출력 프레임 버퍼 (dirty 표시 대상)
            stats: 누적 통계 (None이면 새로 생성)
        """
        self._canvas_width = config.video.width
        self._baseline = config.subtitle.baseline
        self._line_height_multiplier = config.subtitle.line_height
        self._shadow_cfg = config.shadow

        self._backend = backend
        self._pixel_buffer = pixel_buffer
        self.stats = stats if stats is not None else RenderStats()

        # 렌더 캐시 상태
        self._last_rendered_key: Optional[tuple[int, int]] = None
        self._is_cleared: bool = False

        self._shadow_paint = Paint(
            color=_SHADOW_COLOR,
            opacity=self._shadow_cfg.opacity,
            anti_alias=True,
            # 블러 반경을 표준편차로 변환
            blur_sigma=self._shadow_cfg.blur / 2.0 if self._shadow_cfg.blur > 0 else 0.0,
        )
        self._text_paint = Paint(color=_FOREGROUND_COLOR, opacity=1.0, anti_alias=True)

        angle_rad = math.radians(self._shadow_cfg.angle)
        self._shadow_offset = (
            self._shadow_cfg.distance * math.cos(angle_rad),
            self._shadow_cfg.distance * math.sin(angle_rad),
        )

    @property
    def last_rendered_key(self) -> Optional[tuple[int, int]]:
        return self._last_rendered_key

    @property
    def is_cleared(self) -> bool:
        return self._is_cleared

    # =========================================================================
    # 공개 인터페이스
    # =========================================================================

    def decide(self, active: Optional[Cue], now_ms: int) -> RenderAction:
        """
        현재 상태에서 수행할 렌더 동작을 결정합니다. 상태는 변경하지 않습니다.

        파라미터:
            active: 스케줄러의 현재 active 큐 (없으면 None)
            now_ms: 현재 틱의 가상 시각 (밀리초)

        반환값:
            RenderAction: 결정된 동작
        """
        if active is not None:
            if active.key != self._last_rendered_key:
                return RenderAction.REDRAW
            if now_ms < active.start and not self._is_cleared:
                return RenderAction.PRE_START_CLEAR
            return RenderAction.NO_OP

        if not self._is_cleared:
            return RenderAction.IDLE_CLEAR
        return RenderAction.NO_OP

    def render(self, active: Optional[Cue], now_ms: int) -> RenderAction:
        """
        렌더 동작을 결정하고 캔버스에 적용합니다.

        NO_OP가 아니면 픽셀 버퍼를 dirty로 표시하여 출력 전에 다시 읽도록 합니다.

        파라미터:
            active: 스케줄러의 현재 active 큐 (없으면 None)
            now_ms: 현재 틱의 가상 시각 (밀리초)

        반환값:
            RenderAction: 수행한 동작
        """
        action = self.decide(active, now_ms)

        if action is RenderAction.REDRAW:
            self._draw_cue(active)
            self._last_rendered_key = active.key
            self._is_cleared = False
            self.stats.redraws += 1
            logger.debug(f"자막 렌더링: key={active.key}, lines={len(active.lines)}")

        elif action is RenderAction.PRE_START_CLEAR:
            self._backend.clear()
            self._is_cleared = True
            self.stats.clears += 1

        elif action is RenderAction.IDLE_CLEAR:
            self._backend.clear()
            self._last_rendered_key = None
            self._is_cleared = True
            self.stats.clears += 1

        if action is not RenderAction.NO_OP:
            self._pixel_buffer.mark_dirty()

        return action

    def layout(self, cue: Cue) -> list[LinePlacement]:
        """
        큐의 줄을 아래에서 위로 배치합니다.

        마지막 줄은 베이스라인에 놓이고, 앞선 줄은 줄 높이만큼 위에 놓입니다.
        줄 높이 = 백엔드 줄 간격 × line_height 배율. 각 줄은 가로 중앙 정렬됩니다.

        파라미터:
            cue: 배치할 큐

        반환값:
            list[LinePlacement]: 입력 줄 순서대로의 배치 결과
        """
        line_height = self._backend.line_spacing() * self._line_height_multiplier
        line_count = len(cue.lines)

        placements = []
        for index, text in enumerate(cue.lines):
            lines_below = line_count - 1 - index
            y = self._baseline - lines_below * line_height
            x = (self._canvas_width - self._backend.measure_text(text)) / 2.0
            placements.append(LinePlacement(text=text, x=x, y=y))
        return placements

    # =========================================================================
    # 내부 렌더링 메서드
    # =========================================================================

    def _draw_cue(self, cue: Cue) -> None:
        """캔버스를 지우고 큐의 모든 줄을 그림자 → 본문 순서로 그립니다."""
        self._backend.clear()

        off_x, off_y = self._shadow_offset
        draw_shadow = self._shadow_cfg.opacity > 0

        for placement in self.layout(cue):
            if draw_shadow:
                self._backend.draw_text(
                    placement.text,
                    placement.x + off_x,
                    placement.y + off_y,
                    self._shadow_paint,
                )
            self._backend.draw_text(
                placement.text, placement.x, placement.y, self._text_paint
            )
