"""
프레임 출력 모듈입니다.

역할:
- 픽셀 버퍼가 dirty이면 백엔드에서 캔버스 픽셀을 다시 읽음
  (읽기 실패는 버퍼를 그대로 둔 채 계속 진행)
- 틱마다 전체 픽셀 버퍼를 출력 싱크에 무조건 기록
- 기록 후 가상 시계를 한 프레임 전진
- 기록 실패 시 False를 반환하여 루프 종료

사용 예시:
    >>> emitter = FrameEmitter(backend, pixel_buffer, sys.stdout.buffer, clock)
    >>> if not emitter.emit():
    ...     break
"""

from __future__ import annotations

import logging
from typing import BinaryIO, Optional

from subcast.compositor import RenderStats
from subcast.compositor.frame_compositor import PixelBuffer
from subcast.compositor.raster_backend import RasterBackend
from subcast.subtitle.timeline_scheduler import VirtualClock

logger = logging.getLogger(__name__)


class FrameEmitter:
    """
    한 틱에 고정 크기 프레임 하나를 출력하는 클래스입니다.

    프레임 사이에는 헤더나 구분자가 없으며, 각 프레임은 정확히
    width * height * 4 바이트입니다.
    """

    def __init__(
        self,
        backend: RasterBackend,
        pixel_buffer: PixelBuffer,
        sink: BinaryIO,
        clock: VirtualClock,
        stats: Optional[RenderStats] = None,
    ) -> None:
        """
        FrameEmitter를 초기화합니다.

        파라미터:
            backend: 픽셀을 읽어올 래스터화 백엔드
            pixel_buffer: 출력 프레임 버퍼
            sink: 바이너리 출력 스트림
            clock: 출력 후 전진시킬 가상 시계
            stats: 누적 통계 (None이면 새로 생성)
        """
        self._backend = backend
        self._pixel_buffer = pixel_buffer
        self._sink = sink
        self._clock = clock
        self.stats = stats if stats is not None else RenderStats()

    def emit(self) -> bool:
        """
        현재 틱의 프레임을 출력하고 시계를 전진시킵니다.

        반환값:
            bool: 출력 성공 시 True, 출력 스트림 기록 실패 시 False
        """
        if self._pixel_buffer.dirty:
            self._read_back()

        try:
            self._sink.write(self._pixel_buffer.data)
        except (OSError, ValueError) as exc:
            logger.error(
                f"프레임 출력 실패, 루프를 종료합니다: "
                f"frame={self._clock.frame_index}, error={exc}"
            )
            return False

        self.stats.frames_emitted += 1
        self._clock.advance()
        return True

    def flush(self) -> None:
        """출력 스트림을 비웁니다. 이미 닫힌 파이프는 무시합니다."""
        try:
            self._sink.flush()
        except (OSError, ValueError) as exc:
            logger.warning(f"출력 스트림 flush 실패: {exc}")

    def _read_back(self) -> None:
        """캔버스 픽셀을 버퍼로 읽어옵니다. 실패 시 버퍼를 그대로 둡니다."""
        self._pixel_buffer.dirty = False
        if self._backend.read_pixels(self._pixel_buffer.data):
            return

        self.stats.readback_failures += 1
        if self.stats.readback_failures == 1:
            logger.warning(
                f"픽셀 읽기 실패, 이전 버퍼를 재사용합니다: "
                f"frame={self._clock.frame_index}"
            )
        else:
            logger.debug(
                f"픽셀 읽기 실패 (누적 {self.stats.readback_failures}회): "
                f"frame={self._clock.frame_index}"
            )
